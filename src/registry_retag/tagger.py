"""
Image retagging.

Re-publishes the manifest stored under one tag under another tag of the same
repository. Layer and config blobs are never transferred: the registry
already holds them, and the manifest bytes are sent back verbatim so the
destination tag resolves to the same digest as the source tag.

The fetch/publish pair is retried as one unit. Both steps are idempotent,
so repeating the whole pipeline after a transient failure is safe.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    stop_before_delay,
    stop_when_event_set,
    wait_exponential,
    wait_fixed,
)

from .models import Credentials, FetchedManifest
from .settings import RETRY_BACKOFF_STRATEGIES, Settings
from .storage.oci_errors import OciCancelled, OciError
from .storage.oci_registry import OciRegistry
from .storage.registry_http import RegistryHTTP

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry policy for the whole fetch/publish pipeline.

    Defaults give 3 attempts with a fixed 5 second delay between them.
    """
    attempts: int = 3
    delay_s: float = 5.0
    backoff: str = "fixed"
    max_delay_s: float = 60.0
    deadline_s: Optional[float] = None

    def __post_init__(self):
        if self.attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {self.attempts}")
        if self.delay_s < 0:
            raise ValueError(f"delay_s must be non-negative, got {self.delay_s}")
        if self.backoff not in RETRY_BACKOFF_STRATEGIES:
            raise ValueError(f"Unknown backoff strategy: {self.backoff}. "
                             f"Use {' or '.join(RETRY_BACKOFF_STRATEGIES)}")
        if self.backoff == "exponential" and self.max_delay_s < self.delay_s:
            raise ValueError(f"max_delay_s must not be smaller than delay_s, got {self.max_delay_s}")
        if self.deadline_s is not None and self.deadline_s <= 0:
            raise ValueError(f"deadline_s must be positive, got {self.deadline_s}")

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            attempts=settings.retry_attempts,
            delay_s=settings.retry_delay_s,
            backoff=settings.retry_backoff,
            max_delay_s=settings.retry_max_delay_s,
            deadline_s=settings.retry_deadline_s,
        )

    def wait(self):
        """tenacity wait strategy for this policy."""
        if self.backoff == "exponential":
            return wait_exponential(multiplier=self.delay_s, max=self.max_delay_s)
        return wait_fixed(self.delay_s)

    def stop(self, cancel: Optional[threading.Event] = None):
        """tenacity stop strategy for this policy."""
        stop = stop_after_attempt(self.attempts)
        if self.deadline_s is not None:
            # Stops when elapsed time plus the upcoming sleep would pass the deadline
            stop = stop | stop_before_delay(self.deadline_s)
        if cancel is not None:
            stop = stop | stop_when_event_set(cancel)
        return stop


class ImageTagger:
    """
    Retag operation over an OCI registry.

    Holds no per-operation state, so one instance may serve concurrent
    retags as long as the injected registry client is thread-safe.
    """

    def __init__(self, registry: OciRegistry, policy: Optional[RetryPolicy] = None,
                 sleep: Optional[Callable[[float], None]] = None):
        """
        Args:
            registry: Manifest fetch/publish implementation
            policy: Retry policy (defaults to RetryPolicy())
            sleep: Override for the delay between attempts (tests)
        """
        self.registry = registry
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    def tag_image(self, host: str, repository: str, source_tag: str, destination_tag: str,
                  cancel: Optional[threading.Event] = None) -> None:
        """
        Publish the manifest under ``source_tag`` again under ``destination_tag``.

        Args:
            host: Registry host
            repository: Repository path
            source_tag: Existing tag to copy from
            destination_tag: Tag to create or move
            cancel: Optional event; once set, no further request or retry is made

        Raises:
            ValueError: If any name is empty (not retried)
            OciError: The failure of the last attempt once retries are exhausted
        """
        _require(host=host, repository=repository, source_tag=source_tag,
                 destination_tag=destination_tag)
        target = f"{host}/{repository}:{source_tag} -> {destination_tag}"

        try:
            for attempt in self._retrying(cancel):
                with attempt:
                    self._retag_once(host, repository, source_tag, destination_tag, cancel)
        except OciError as e:
            logger.error(f"Retag {target} failed: {e}")
            raise

        logger.info(f"Retagged {target}")

    def get_manifest(self, host: str, repository: str, tag: str,
                     cancel: Optional[threading.Event] = None) -> FetchedManifest:
        """Fetch a manifest under the same retry policy as ``tag_image``."""
        _require(host=host, repository=repository, tag=tag)
        for attempt in self._retrying(cancel):
            with attempt:
                return self.registry.get_manifest(host, repository, tag, cancel=cancel)

    def _retag_once(self, host: str, repository: str, source_tag: str, destination_tag: str,
                    cancel: Optional[threading.Event]) -> None:
        fetched = self.registry.get_manifest(host, repository, source_tag, cancel=cancel)
        self.registry.put_manifest(host, repository, destination_tag, fetched.payload,
                                   fetched.media_type, cancel=cancel)
        logger.debug(f"Published {fetched.digest} as {repository}:{destination_tag}")

    def _retrying(self, cancel: Optional[threading.Event]) -> Retrying:
        return Retrying(
            stop=self.policy.stop(cancel),
            wait=self.policy.wait(),
            retry=retry_if_exception_type(OciError) & retry_if_not_exception_type(OciCancelled),
            sleep=self._sleep_for(cancel),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def _sleep_for(self, cancel: Optional[threading.Event]) -> Callable[[float], None]:
        if self._sleep is not None:
            return self._sleep
        if cancel is not None:
            # Event.wait returns early once the event is set
            return cancel.wait
        return time.sleep


def tag_image(host: str, repository: str, source_tag: str, destination_tag: str, *,
              credentials: Optional[Credentials] = None, policy: Optional[RetryPolicy] = None,
              insecure: bool = False, cancel: Optional[threading.Event] = None) -> None:
    """
    Retag ``repository:source_tag`` as ``repository:destination_tag`` on ``host``.

    Convenience wrapper that builds a short-lived RegistryHTTP client.
    """
    with RegistryHTTP(credentials=credentials, insecure=insecure) as registry:
        ImageTagger(registry, policy).tag_image(host, repository, source_tag, destination_tag,
                                                cancel=cancel)


def _require(**names: str) -> None:
    for key, value in names.items():
        if not value:
            raise ValueError(f"{key} must not be empty")


__all__ = ["RetryPolicy", "ImageTagger", "tag_image"]
