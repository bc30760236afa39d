"""
Error mapping and CLI utilities.

Provides centralized exception-to-exit-code mapping and CLI command wrappers
to ensure consistent error handling across all Typer commands.
"""
from __future__ import annotations

import typer
from typing import Callable, TypeVar

from .printers import print_error

T = TypeVar('T')

EXIT_CODES = {
    "OciNotFound": 1,
    "ValidationError": 2,
    "ValueError": 2,
    "OciInvalidMediaType": 2,
    "OciHTTPStatusError": 3,
    "OciTransportError": 3,
    "OciManifestDecodeError": 3,
    "OciAuthError": 4,
    "OciCancelled": 130,
}

def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to standardized exit code.

    Returns:
    - 1: Source tag not found (OciNotFound)
    - 2: Validation error (ValueError, ValidationError, OciInvalidMediaType)
    - 3: Registry status or network error, or unknown error
    - 4: Token exchange returned no token (OciAuthError)
    - 130: Cancelled (OciCancelled)

    Args:
        exc: Exception to map

    Returns:
        Exit code (3 as fallback for unknown exceptions)
    """
    return EXIT_CODES.get(type(exc).__name__, 3)

def run_and_exit(func: Callable[[], T]) -> T:
    """
    Unified error wrapper for CLI commands.

    Executes the given function and maps any exceptions to appropriate
    exit codes using typer.Exit, after printing the error message.

    Raises:
        typer.Exit: With appropriate exit code if function raises exception
    """
    try:
        return func()
    except Exception as e:
        print_error(e)
        raise typer.Exit(code=exit_code_for(e)) from e
