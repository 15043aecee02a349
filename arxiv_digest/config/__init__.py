"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    DEFAULT_QUERY,
    IDENTIFYING_USER_AGENT,
    ArxivSettings,
    ClientProfile,
    FetchSettings,
    GlobalConfig,
    ListingSettings,
    RetryPolicyConfig,
    RouteConfig,
)

__all__ = [
    "ArxivSettings",
    "ClientProfile",
    "ConfigLocator",
    "ConfigRepository",
    "DEFAULT_QUERY",
    "FetchSettings",
    "GlobalConfig",
    "IDENTIFYING_USER_AGENT",
    "ListingSettings",
    "RetryPolicyConfig",
    "RouteConfig",
]
