"""
Settings and configuration for registry-retag.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables at client construction time.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from .models import Credentials

__all__ = ["Settings", "RETRY_BACKOFF_STRATEGIES", "create_settings_from_env"]

RETRY_BACKOFF_STRATEGIES = ("fixed", "exponential")


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for the retag client.

    Registry Settings:
        registry_insecure: Use plain HTTP instead of HTTPS for bare hosts
        registry_user: Username for registry authentication
        registry_pass: Password for registry authentication
        http_timeout_s: HTTP request timeout in seconds

    Retry Settings:
        retry_attempts: Total attempts of the fetch/publish pipeline (1=no retry)
        retry_delay_s: Delay between attempts (base delay for exponential)
        retry_backoff: "fixed" or "exponential"
        retry_max_delay_s: Upper bound on a single exponential delay
        retry_deadline_s: Optional total time budget across all attempts

    Token Auth Settings:
        token_realm: Bearer token endpoint; when set, credentials are
            exchanged for a token instead of being sent as Basic auth
        token_service: Optional ``service`` parameter for the token endpoint
    """
    # Registry settings
    registry_insecure: bool = False
    registry_user: Optional[str] = None
    registry_pass: Optional[str] = None
    http_timeout_s: float = 30.0

    # Retry settings
    retry_attempts: int = 3
    retry_delay_s: float = 5.0
    retry_backoff: str = "fixed"
    retry_max_delay_s: float = 60.0
    retry_deadline_s: Optional[float] = None

    # Token auth settings
    token_realm: Optional[str] = None
    token_service: Optional[str] = None

    def __post_init__(self):
        """Validate settings on construction."""
        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be positive, got {self.http_timeout_s}")

        if self.retry_attempts < 1:
            raise ValueError(f"retry_attempts must be at least 1, got {self.retry_attempts}")

        if self.retry_delay_s < 0:
            raise ValueError(f"retry_delay_s must be non-negative, got {self.retry_delay_s}")

        if self.retry_backoff not in RETRY_BACKOFF_STRATEGIES:
            raise ValueError(
                f"Invalid retry_backoff: {self.retry_backoff}. "
                f"Supported values: {', '.join(RETRY_BACKOFF_STRATEGIES)}"
            )

        # The cap only applies to exponential backoff
        if self.retry_backoff == "exponential" and self.retry_max_delay_s < self.retry_delay_s:
            raise ValueError("retry_max_delay_s must not be smaller than retry_delay_s")

        if self.retry_deadline_s is not None and self.retry_deadline_s <= 0:
            raise ValueError(f"retry_deadline_s must be positive, got {self.retry_deadline_s}")

        # Credentials are all-or-nothing
        if self.registry_user and not self.registry_pass:
            raise ValueError("registry_user specified but registry_pass is missing")
        if self.registry_pass and not self.registry_user:
            raise ValueError("registry_pass specified but registry_user is missing")

        if self.token_realm and not self.token_realm.startswith(("http://", "https://")):
            raise ValueError(f"token_realm must be an http(s) URL, got {self.token_realm}")

    @property
    def credentials(self) -> Optional[Credentials]:
        """Credentials built from user/pass, or None for anonymous access."""
        if not self.registry_user:
            return None
        return Credentials(username=self.registry_user, password=self.registry_pass)


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        Registry:
        - RETAG_REGISTRY_INSECURE (default: false)
        - RETAG_REGISTRY_USERNAME (optional)
        - RETAG_REGISTRY_PASSWORD (optional)
        - RETAG_HTTP_TIMEOUT (default: 30.0)

        Retry:
        - RETAG_RETRY_ATTEMPTS (default: 3)
        - RETAG_RETRY_DELAY (default: 5.0)
        - RETAG_RETRY_BACKOFF (default: fixed)
        - RETAG_RETRY_MAX_DELAY (default: 60.0)
        - RETAG_RETRY_DEADLINE (optional)

        Token auth:
        - RETAG_TOKEN_REALM (optional)
        - RETAG_TOKEN_SERVICE (optional)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    def str_to_bool(value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on')

    def get_float(key: str, default: Optional[float]) -> Optional[float]:
        value = os.getenv(key)
        return float(value) if value else default

    def get_int(key: str, default: int) -> int:
        value = os.getenv(key)
        return int(value) if value else default

    return Settings(
        registry_insecure=str_to_bool(os.getenv("RETAG_REGISTRY_INSECURE", "false")),
        registry_user=os.getenv("RETAG_REGISTRY_USERNAME") or None,
        registry_pass=os.getenv("RETAG_REGISTRY_PASSWORD") or None,
        http_timeout_s=get_float("RETAG_HTTP_TIMEOUT", 30.0),
        retry_attempts=get_int("RETAG_RETRY_ATTEMPTS", 3),
        retry_delay_s=get_float("RETAG_RETRY_DELAY", 5.0),
        retry_backoff=os.getenv("RETAG_RETRY_BACKOFF", "fixed").lower(),
        retry_max_delay_s=get_float("RETAG_RETRY_MAX_DELAY", 60.0),
        retry_deadline_s=get_float("RETAG_RETRY_DEADLINE", None),
        token_realm=os.getenv("RETAG_TOKEN_REALM") or None,
        token_service=os.getenv("RETAG_TOKEN_SERVICE") or None,
    )
