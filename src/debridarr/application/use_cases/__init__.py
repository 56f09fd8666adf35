from .play_resolve import PlayResolveUseCase
from .stream_list import StreamListUseCase

__all__ = ["PlayResolveUseCase", "StreamListUseCase"]
