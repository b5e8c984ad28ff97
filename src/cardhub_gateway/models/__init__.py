"""SQLAlchemy models for the CardHub gateway."""

from .binding import CallsignBinding
from .route_log import RouteEvent
from .snapshot import Card, Project, SfOrder, SfSender, SyncMeta

__all__ = [
    "CallsignBinding",
    "Card",
    "Project",
    "RouteEvent",
    "SfOrder",
    "SfSender",
    "SyncMeta",
]
