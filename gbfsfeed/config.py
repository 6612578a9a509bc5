"""Typed configuration models for GBFS subscriptions and the polling manager."""
from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from requests import PreparedRequest

from gbfsfeed.models import DEFAULT_TTL_SECONDS

RequestAuthenticator = Callable[[PreparedRequest], PreparedRequest]


class SubscriptionOptions(BaseModel):
    """Immutable per-subscription settings supplied once at subscribe time."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    discovery_url: str = Field(description="URL of the operator's gbfs.json discovery manifest.")
    headers: Mapping[str, str] = Field(default_factory=dict, validate_default=True)
    language_code: Optional[str] = Field(
        default=None,
        description="Manifest language to poll; None picks the first language the manifest declares.",
    )
    request_authenticator: Optional[RequestAuthenticator] = Field(
        default=None,
        description="Hook attaching credentials to each outgoing request (a requests auth object or callable).",
        exclude=True,
    )
    request_timeout: float = Field(default=10.0, gt=0.0)
    enable_validation: bool = Field(default=False)
    discovery_refresh_seconds: float = Field(default=3600.0, gt=0.0)
    default_ttl_seconds: float = Field(default=float(DEFAULT_TTL_SECONDS), gt=0.0)

    @field_validator("headers")
    @classmethod
    def _freeze_headers(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    @field_validator("discovery_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(f"discovery_url must be an absolute http(s) URL, got {value!r}")
        return value


class ManagerConfig(BaseModel):
    """Controls for driving ticks across all registered subscriptions."""

    max_workers: int = Field(
        default=1,
        ge=1,
        description="Subscriptions ticked in parallel; 1 ticks them sequentially on the caller's thread.",
    )
    tick_interval_seconds: float = Field(default=10.0, gt=0.0)


class PollingConfig(BaseModel):
    """Top-level configuration for a polling process."""

    manager: ManagerConfig = Field(default_factory=ManagerConfig)
    subscriptions: List[SubscriptionOptions] = Field(default_factory=list)
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=False)


def load_polling_config(path: Optional[Path] = None) -> PollingConfig:
    """Load polling configuration from disk or return defaults."""

    if path is None:
        return PollingConfig()
    data = _load_json_or_yaml(path)
    return PollingConfig.model_validate(data)


def _load_json_or_yaml(path: Path) -> Dict[str, Any]:
    if path.suffix in {".json"}:
        import json

        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    if path.suffix in {".yaml", ".yml"}:
        import yaml

        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}
    raise ValueError(f"Unsupported config format: {path}")
