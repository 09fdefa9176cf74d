"""
Live view of a table session for customers.

- reducer.py: view state, event routing and the pure reducer
- synchronizer.py: subscribe-and-refetch loop with cancellable refetches
"""

from .reducer import LiveViewState, Snapshot, reduce, subscription_channels, slices_for_event
from .synchronizer import (
    DatabaseSnapshotFetcher,
    LiveViewFeedError,
    LiveViewSynchronizer,
    SnapshotFetcher,
)

__all__ = [
    "LiveViewState",
    "Snapshot",
    "reduce",
    "subscription_channels",
    "slices_for_event",
    "LiveViewFeedError",
    "LiveViewSynchronizer",
    "SnapshotFetcher",
    "DatabaseSnapshotFetcher",
]
