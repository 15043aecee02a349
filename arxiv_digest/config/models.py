"""Pydantic models used across the arxiv-digest configuration flow."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

IDENTIFYING_USER_AGENT = "Mozilla/5.0 (compatible; ArxivDigest/1.0;)"

DEFAULT_QUERY = (
    '(cat:cs.CL OR cat:cs.CV OR cat:cs.AI) AND (abs:"language model" OR abs:"LLM" '
    'OR abs:"MLLM" OR abs:"large language model" OR abs:"small language model")'
)


class ClientProfile(str, Enum):
    """How the runtime reaches origin-restricted endpoints."""

    DESKTOP = "desktop"
    # Constrained clients try one direct request before the route chain.
    MOBILE = "mobile"


class RouteConfig(BaseModel):
    """One URL-rewriting strategy in the fallback chain.

    ``template`` must contain ``{url}``; an empty template means "request
    the target directly".
    """

    name: str
    template: str = ""
    quote: bool = True

    @field_validator("template")
    @classmethod
    def _check_placeholder(cls, value: str) -> str:
        value = value.strip()
        if value and "{url}" not in value:
            raise ValueError("Route template must contain a {url} placeholder")
        return value


def _default_routes() -> list[RouteConfig]:
    return [
        RouteConfig(name="allorigins", template="https://api.allorigins.win/raw?url={url}"),
        RouteConfig(name="corsproxy", template="https://corsproxy.io/?{url}"),
        RouteConfig(name="cors-sh", template="https://proxy.cors.sh/{url}", quote=False),
    ]


class RetryPolicyConfig(BaseModel):
    """Exponential backoff: ``base_delay * multiplier ** (attempt - 1)``."""

    attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0

    @model_validator(mode="after")
    def _validate_bounds(self) -> "RetryPolicyConfig":
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be non-negative")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        return self


class FetchSettings(BaseModel):
    """Knobs for the endpoint fetcher."""

    client_profile: ClientProfile = ClientProfile.DESKTOP
    user_agent: str = IDENTIFYING_USER_AGENT
    timeout: float = 20.0
    routes: list[RouteConfig] = Field(default_factory=_default_routes)
    listing_retry: RetryPolicyConfig = Field(default_factory=RetryPolicyConfig)

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be positive")
        return value

    @model_validator(mode="after")
    def _require_routes(self) -> "FetchSettings":
        if not self.routes:
            raise ValueError("At least one route is required")
        names = [route.name for route in self.routes]
        if len(names) != len(set(names)):
            raise ValueError("Route names must be unique")
        return self


class ArxivSettings(BaseModel):
    """Search API endpoint and request shaping."""

    api_url: str = "https://export.arxiv.org/api/query"
    max_results: int = 1000
    keyword_max_results: int = 100
    default_query: str = DEFAULT_QUERY

    @field_validator("max_results", "keyword_max_results")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("result caps must be >= 1")
        return value


class ListingSettings(BaseModel):
    """Secondary listing page (Hugging Face daily papers)."""

    base_url: str = "https://huggingface.co/papers"
    anchor_selector: str = 'a[href^="/papers/"]'


class GlobalConfig(BaseModel):
    """Global controls shared by every pipeline run."""

    fetch: FetchSettings = Field(default_factory=FetchSettings)
    arxiv: ArxivSettings = Field(default_factory=ArxivSettings)
    listing: ListingSettings = Field(default_factory=ListingSettings)
    store_path: Path = Field(default=Path("data/digest.db"))

    @field_validator("store_path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    def resolved_store_path(self, base_dir: Path) -> Path:
        """Return the tag/digest store path relative to the project data directory."""

        if not self.store_path.is_absolute():
            return (base_dir / self.store_path).resolve()
        return self.store_path


__all__ = [
    "ArxivSettings",
    "ClientProfile",
    "DEFAULT_QUERY",
    "FetchSettings",
    "GlobalConfig",
    "IDENTIFYING_USER_AGENT",
    "ListingSettings",
    "RetryPolicyConfig",
    "RouteConfig",
]
