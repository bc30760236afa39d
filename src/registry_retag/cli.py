"""
registry-retag CLI

Implements 2 CLI verbs:
- tag: Publish the manifest of one tag under another tag
- manifest: Show the manifest stored under a tag
"""
from __future__ import annotations

import logging
from typing import Optional

import typer

from .cli_context import CLIContext
from .operations import run_and_exit
from .operations.printers import print_manifest, print_retag_summary

app = typer.Typer(name="registry-retag", help="Re-tag images in an OCI registry")

def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

def _create_context(username: Optional[str], password: Optional[str], insecure: Optional[bool],
                    attempts: Optional[int], delay: Optional[float]) -> CLIContext:
    """Create CLI context from environment, applying command line overrides."""
    return CLIContext.from_env(
        registry_user=username,
        registry_pass=password,
        registry_insecure=insecure,
        retry_attempts=attempts,
        retry_delay_s=delay,
    )

@app.command()
def tag(
    host: str = typer.Argument(..., help="Registry host, e.g. localhost:5000"),
    repository: str = typer.Argument(..., help="Repository path, e.g. library/busybox"),
    source_tag: str = typer.Argument(..., help="Existing tag"),
    destination_tag: str = typer.Argument(..., help="Tag to create"),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="Registry username"),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="Registry password"),
    insecure: Optional[bool] = typer.Option(None, "--insecure/--secure", help="Use plain HTTP"),
    attempts: Optional[int] = typer.Option(None, "--attempts", help="Total attempts (default 3)"),
    delay: Optional[float] = typer.Option(None, "--delay", help="Seconds between attempts (default 5)"),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging")
) -> None:
    """Publish the manifest of SOURCE_TAG under DESTINATION_TAG."""
    _configure_logging(verbose)

    def _tag() -> None:
        context = _create_context(username, password, insecure, attempts, delay)
        try:
            context.tagger.tag_image(host, repository, source_tag, destination_tag)
        finally:
            context.close()
        print_retag_summary(host, repository, source_tag, destination_tag)

    run_and_exit(_tag)

@app.command()
def manifest(
    host: str = typer.Argument(..., help="Registry host, e.g. localhost:5000"),
    repository: str = typer.Argument(..., help="Repository path, e.g. library/busybox"),
    ref: str = typer.Argument(..., help="Tag to inspect"),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="Registry username"),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="Registry password"),
    insecure: Optional[bool] = typer.Option(None, "--insecure/--secure", help="Use plain HTTP"),
    attempts: Optional[int] = typer.Option(None, "--attempts", help="Total attempts (default 3)"),
    delay: Optional[float] = typer.Option(None, "--delay", help="Seconds between attempts (default 5)"),
    verbose: bool = typer.Option(False, "--verbose", help="Show layers and debug logging")
) -> None:
    """Show the manifest stored under a tag."""
    _configure_logging(verbose)

    def _manifest() -> None:
        context = _create_context(username, password, insecure, attempts, delay)
        try:
            fetched = context.tagger.get_manifest(host, repository, ref)
        finally:
            context.close()
        print_manifest(fetched, verbose=verbose)

    run_and_exit(_manifest)

def main() -> None:
    """CLI entry point."""
    app()

if __name__ == "__main__":
    main()
