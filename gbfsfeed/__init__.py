"""Polling, caching, and subscription delivery for GBFS feeds."""

from .config import ManagerConfig, PollingConfig, SubscriptionOptions, load_polling_config
from .exceptions import (
    DiscoveryMalformed,
    DiscoveryUnavailable,
    FeedFetchFailed,
    FeedParseFailed,
    GBFSError,
    SubscriptionNotInitialized,
    ValidationCollaboratorFailed,
)
from .loaders import GBFSLoader
from .manager import SubscriptionManager
from .models import FeedType
from .subscription import GBFSDelivery, Subscription

__all__ = [
    "DiscoveryMalformed",
    "DiscoveryUnavailable",
    "FeedFetchFailed",
    "FeedParseFailed",
    "FeedType",
    "GBFSDelivery",
    "GBFSError",
    "GBFSLoader",
    "ManagerConfig",
    "PollingConfig",
    "Subscription",
    "SubscriptionManager",
    "SubscriptionNotInitialized",
    "SubscriptionOptions",
    "ValidationCollaboratorFailed",
    "load_polling_config",
]
