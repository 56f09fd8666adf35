from .cache_factory import create_cache
from .ttl_cache import TtlCache

__all__ = ["TtlCache", "create_cache"]
