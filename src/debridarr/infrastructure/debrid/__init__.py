from .alldebrid import AllDebridProvider
from .poller import PollPolicy, ProgressAwareBackoff, TorrentPoller
from .realdebrid import RealDebridProvider
from .registry import DebridProviderRegistry

__all__ = [
    "AllDebridProvider",
    "DebridProviderRegistry",
    "PollPolicy",
    "ProgressAwareBackoff",
    "RealDebridProvider",
    "TorrentPoller",
]
