"""Environment-backed settings primitives for :mod:`interdependence`."""

from __future__ import annotations

import os
from typing import Final

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "DEFAULT_GATEWAY_URL",
    "DEFAULT_RELAY_URL",
    "DEFAULT_TRUSTED_PUBLISHER",
    "InterdependenceSettings",
    "get_settings",
]

DEFAULT_GATEWAY_URL: Final[str] = "https://arweave.net"
DEFAULT_RELAY_URL: Final[str] = "http://localhost:8080"
DEFAULT_TRUSTED_PUBLISHER: Final[str] = "aek33fcNH1qbb-SsDEqBF1KDWb8R1mxX6u4QGoo3tAs"
DEFAULT_TIMEOUT_SECONDS: Final[float] = 20.0
DEFAULT_PAGE_SIZE: Final[int] = 100


class InterdependenceSettings(BaseSettings):
    """Expose environment-derived configuration knobs.

    All environment lookups go through this class so that components never
    read ``os.environ`` directly. Every attribute has a working default, which
    means the package can resolve declarations against the public gateway with
    no configuration at all.

    Attributes:
        gateway_url: Base URL of the Arweave gateway used for reads.
        relay_url: Base URL of the relay server handling fork, sign and
            verify requests.
        trusted_publisher: Ledger address whose signature records are treated
            as authoritative.
        request_timeout: Timeout in seconds applied to every HTTP request.
        query_page_size: Number of transactions requested per GraphQL page.
        log_level: Level name enabling JSON logs in the command-line
            interface; logging stays off when unset.
    """

    gateway_url: str = Field(
        default=DEFAULT_GATEWAY_URL, alias="INTERDEPENDENCE_GATEWAY_URL"
    )
    relay_url: str | None = Field(
        default=None, alias="INTERDEPENDENCE_SERVER_URL", validate_default=True
    )
    trusted_publisher: str = Field(
        default=DEFAULT_TRUSTED_PUBLISHER, alias="INTERDEPENDENCE_TRUSTED_PUBLISHER"
    )
    request_timeout: float = Field(
        default=DEFAULT_TIMEOUT_SECONDS, alias="INTERDEPENDENCE_TIMEOUT"
    )
    query_page_size: int = Field(
        default=DEFAULT_PAGE_SIZE, alias="INTERDEPENDENCE_PAGE_SIZE"
    )
    log_level: str | None = Field(default=None, alias="INTERDEPENDENCE_LOG_LEVEL")

    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    @field_validator("request_timeout", mode="before")
    @classmethod
    def _parse_timeout(cls, value: object) -> float:
        """Parse the timeout while tolerating malformed input.

        Args:
            value: Raw environment value.

        Returns:
            Parsed positive float, otherwise the default timeout.
        """

        parsed: float | None = None
        if isinstance(value, (int, float)):
            parsed = float(value)
        elif isinstance(value, str):
            try:
                parsed = float(value.strip())
            except ValueError:
                parsed = None
        if parsed is None or parsed <= 0:
            return DEFAULT_TIMEOUT_SECONDS
        return parsed

    @field_validator("query_page_size", mode="before")
    @classmethod
    def _parse_page_size(cls, value: object) -> int:
        """Parse the GraphQL page size, falling back to the default."""

        parsed: int | None = None
        if isinstance(value, int):
            parsed = value
        elif isinstance(value, str):
            try:
                parsed = int(value.strip())
            except ValueError:
                parsed = None
        if parsed is None or parsed <= 0:
            return DEFAULT_PAGE_SIZE
        return parsed

    @field_validator("relay_url", mode="before")
    @classmethod
    def _fallback_legacy_relay_url(cls, value: object) -> str | None:
        """Support the front-end's legacy environment variable name."""

        if value in (None, ""):
            legacy = os.getenv("NEXT_PUBLIC_SERVER_URL")
            return legacy or None
        return str(value)

    @property
    def effective_relay_url(self) -> str:
        """Return the relay URL considering the legacy alias and default.

        Returns:
            The configured relay base URL, or ``http://localhost:8080``.
        """

        return self.relay_url or DEFAULT_RELAY_URL


def get_settings() -> InterdependenceSettings:
    """Return an :class:`InterdependenceSettings` instance.

    Returns:
        Settings parsed from environment variables.
    """

    return InterdependenceSettings()
