from .addon_source import AddonStreamSource
from .aggregator import SourceAggregator

__all__ = ["AddonStreamSource", "SourceAggregator"]
