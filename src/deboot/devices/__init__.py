"""Device modules for vacuum control."""

from .base import BaseVacuum, CloudSession, EventEmitter, Subscription
from .mock_vacuum import MockCloudSession, MockVacuum

__all__ = [
    "BaseVacuum",
    "CloudSession",
    "EventEmitter",
    "Subscription",
    "MockCloudSession",
    "MockVacuum",
]
