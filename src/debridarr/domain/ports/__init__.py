from .cache import CachePort
from .debrid_provider import DebridProviderPort
from .reliability import ReliabilityLookupPort
from .stream_source import StreamSourcePort

__all__ = [
    "CachePort",
    "DebridProviderPort",
    "ReliabilityLookupPort",
    "StreamSourcePort",
]
