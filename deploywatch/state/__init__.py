# deploywatch state management
"""Snapshot state for deploywatch."""

from .models import Deployment, Instance, InstanceSummary, LifecycleEvent
from .dedup import DedupSet
from .aggregator import StateAggregator

__all__ = [
    "Deployment",
    "Instance",
    "InstanceSummary",
    "LifecycleEvent",
    "DedupSet",
    "StateAggregator",
]
