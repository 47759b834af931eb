"""
Error mapping and CLI utilities.

Provides centralized exception-to-exit-code mapping and a CLI command
wrapper so every failure is reported the same way.
"""
from __future__ import annotations

import logging
from typing import Callable, TypeVar

import typer
from pydantic import ValidationError

T = TypeVar('T')

logger = logging.getLogger(__name__)

# Every failure is fatal and reported with the same code
EXIT_CODES = {
    "UsageError": 1,
    "ValidationError": 1,
    "ValueError": 1,
    "PreconditionError": 1,
    "InputError": 1,
    "BlobNotFoundError": 1,
    "ArchiveError": 1,
}

FALLBACK_EXIT_CODE = 1


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to exit code.

    Returns:
        1 for every known error and for anything unexpected
    """
    return EXIT_CODES.get(type(exc).__name__, FALLBACK_EXIT_CODE)


def error_message(exc: BaseException) -> str:
    """One-line description of an error for the terminal."""
    if isinstance(exc, ValidationError):
        problems = []
        for err in exc.errors():
            field = ".".join(str(part) for part in err.get("loc", ()))
            problems.append(f"{field}: {err['msg']}" if field else err["msg"])
        return "; ".join(problems)
    return str(exc) or type(exc).__name__


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Unified error wrapper for CLI commands.

    Executes the given function and maps any exception to its exit code
    using typer.Exit, after printing the message to stderr.

    Raises:
        typer.Exit: With appropriate exit code if function raises exception
    """
    try:
        return func()
    except typer.Exit:
        raise
    except Exception as e:
        logger.debug("Build failed", exc_info=True)
        typer.echo(f"error: {error_message(e)}", err=True)
        raise typer.Exit(code=exit_code_for(e)) from e
