"""
Data models for manifest retagging.

These Pydantic models describe the manifest shape the registry returns. The
parsed model is only used for validation and display: the raw bytes are what
gets re-published, since re-serializing could change the manifest digest.
"""
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


class Descriptor(BaseModel):
    """
    Content descriptor for a config or layer blob.

    Missing fields fall back to empty values: descriptors are informational
    here and never decide whether a manifest can be retagged.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    media_type: str = Field(default="", alias="mediaType", description="Blob media type")
    digest: str = Field(default="", description="Content digest (sha256:...)")
    size: int = Field(default=0, description="Blob size in bytes")


class Manifest(BaseModel):
    """
    Single-platform image manifest.

    ``media_type`` defaults to an empty string so a manifest without the
    field still parses; the fetcher rejects it afterwards.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_version: int = Field(default=0, alias="schemaVersion", description="Manifest schema version")
    media_type: str = Field(default="", alias="mediaType", description="Manifest media type")
    config: Optional[Descriptor] = Field(default=None, description="Image config descriptor")
    layers: List[Descriptor] = Field(default_factory=list, description="Ordered layer descriptors")

    @field_validator("media_type", mode="before")
    @classmethod
    def null_media_type_is_empty(cls, v):
        return "" if v is None else v

    @property
    def total_size(self) -> int:
        """Sum of config and layer sizes in bytes."""
        size = sum(layer.size for layer in self.layers)
        if self.config is not None:
            size += self.config.size
        return size


class Credentials(BaseModel):
    """Username/password pair reused for every request of an operation."""
    model_config = ConfigDict(frozen=True)

    username: str
    password: SecretStr

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        if not v:
            raise ValueError("username must not be empty")
        return v

    def as_tuple(self) -> tuple[str, str]:
        """Return ``(username, password)`` in the shape httpx expects."""
        return self.username, self.password.get_secret_value()


@dataclass(frozen=True)
class FetchedManifest:
    """
    Manifest as read from the registry.

    Attributes:
        payload: Response body exactly as received
        media_type: Declared ``mediaType`` of the manifest
        manifest: Parsed view of ``payload``
    """
    payload: bytes
    media_type: str
    manifest: Manifest

    @property
    def digest(self) -> str:
        """Canonical ``sha256:`` digest of the raw payload."""
        return f"sha256:{hashlib.sha256(self.payload).hexdigest()}"


__all__ = ["Descriptor", "Manifest", "Credentials", "FetchedManifest"]
