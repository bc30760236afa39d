"""
Human-readable output formatting.

Centralizes all CLI output formatting so CLI commands stay thin.
"""
from __future__ import annotations

import typer

from ..models import FetchedManifest

def print_retag_summary(host: str, repository: str, source_tag: str, destination_tag: str) -> None:
    """Print the result of a successful retag."""
    typer.echo(f"Tagged {host}/{repository}:{source_tag} as {destination_tag}")

def print_manifest(fetched: FetchedManifest, verbose: bool = False) -> None:
    """
    Print manifest summary.

    Args:
        fetched: Manifest as read from the registry
        verbose: Also list each layer descriptor
    """
    manifest = fetched.manifest
    typer.echo(f"Media type: {fetched.media_type}")
    typer.echo(f"Digest: {fetched.digest}")
    typer.echo(f"Schema version: {manifest.schema_version}")
    if manifest.config is not None:
        typer.echo(f"Config: {manifest.config.digest} ({_format_bytes(manifest.config.size)})")
    typer.echo(f"Layers: {len(manifest.layers)}")
    typer.echo(f"Size: {_format_bytes(manifest.total_size)}")

    if verbose:
        for layer in manifest.layers:
            typer.echo(f"  {layer.digest}  {_format_bytes(layer.size)}  {layer.media_type}")

def print_error(exc: BaseException) -> None:
    """Print an error message on stderr."""
    typer.echo(f"Error: {exc}", err=True)

def _format_bytes(size_bytes: int) -> str:
    """
    Format byte count as human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "1.5 MB", "42 KB")
    """
    if size_bytes == 0:
        return "0 B"
    elif size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"
