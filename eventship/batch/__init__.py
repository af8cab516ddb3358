from .aggregator import BatchAggregator, group_by_destination
from .overflow import OverflowStore

__all__ = [
    "BatchAggregator",
    "OverflowStore",
    "group_by_destination",
]
