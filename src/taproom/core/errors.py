"""Module defining custom exceptions for the Taproom application."""

from __future__ import annotations

import asyncio
import functools
from typing import Any, Callable, Self, TypeVar

from taproom.core.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

# Exit Codes
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1
EXIT_SYSTEM_ERROR = 2
EXIT_TRANSIENT_ERROR = 3


class BrewError(Exception):
    """Base exception class with context propagation.

    All exceptions in Taproom inherit from this class. Context is a
    dictionary that accumulates relevant information as the exception
    propagates up the call stack.

    Example:
        raise BrewError("An error occurred", context={"package": "foo"})

        # Or with context propagation
        try:
            ...
        except BrewError as e:
            raise e.with_context(action="update")
    """
    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def with_context(self, **new_context: Any) -> Self:
        """Merge additional context into this exception and return it.

        Args:
            **new_context: Additional context to add to the exception.

        Returns:
            The same exception instance with merged context.
        """
        self.context.update(new_context)
        return self

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{context_str}]"
        return self.message


class TransientError(BrewError):
    """Errors that may succeed when retried.

    Typically caused by network issues or a busy Homebrew lock. Only
    idempotent operations may be retried on this error.
    """


class UserError(BrewError):
    """Errors caused by user actions or inputs.

    These are reported back to the user and never retried.
    """


class SystemError(BrewError):
    """Errors due to system-level issues.

    Missing binaries, permissions and similar problems with the
    environment that need intervention outside Taproom.
    """


## Specific Exceptions ##

class BrewCommandError(TransientError):
    """Brew command returned a non-zero exit code."""
    def __init__(
        self,
        message: str | None = None,
        command: str | None = None,
        returncode: int | None = None,
        error: str | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        """Initialise BrewCommandError with detailed context.

        Args:
            message: Optional custom error message.
            command: The brew command that was executed.
            returncode: The exit code returned by the command.
            error: The error output from the command.
            context: Additional context information.
        """
        ctx = context or {}
        if command:
            ctx["command"] = command
        if returncode is not None:
            ctx["returncode"] = returncode
        if command or error:
            ctx["error"] = error or ""

        if message is None:
            message = f"Brew command failed with exit code {returncode if returncode is not None else 'unknown'}"

        super().__init__(message, context=ctx)

    @property
    def returncode(self) -> int | None:
        return self.context.get("returncode")


class BrewTimeoutError(TransientError):
    """Brew command timed out."""
    def __init__(
        self,
        message: str | None = None,
        command: str | None = None,
        timeout: float | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        ctx = context or {}
        if command:
            ctx["command"] = command
        if timeout is not None:
            ctx["timeout"] = timeout

        if message is None:
            message = f"Brew command timed out after {timeout or 'unknown'}s"

        super().__init__(message, context=ctx)


class PackageNotFoundError(UserError):
    """Requested package was not found by the package manager."""
    def __init__(
        self,
        message: str | None = None,
        package: str | None = None,
        kind: str | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        ctx = context or {}
        if package:
            ctx["package"] = package
        if kind:
            ctx["kind"] = kind

        if message is None:
            kind_str = f" {kind}" if kind else ""
            message = f"Package{kind_str} '{package or 'unknown'}' not found"

        super().__init__(message, context=ctx)


class AlreadyInFlightError(UserError):
    """An action is already running for the requested target.

    Raised by the action executor when a second request targets a package
    (or the whole catalog) that still has a pending action. The session
    reports it as a status message; it is never fatal.
    """
    def __init__(
        self,
        message: str | None = None,
        action: str | None = None,
        target: str | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        ctx = context or {}
        if action:
            ctx["action"] = action
        ctx["target"] = target or "catalog"

        if message is None:
            message = f"An action is already running for {ctx['target']}"

        super().__init__(message, context=ctx)


class BackendUnavailableError(SystemError):
    """The package manager binary cannot be invoked at all.

    This is the only condition that stops Taproom from entering the
    interactive loop.
    """
    def __init__(
        self,
        message: str | None = None,
        binary: str | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        ctx = context or {}
        if binary:
            ctx["binary"] = binary

        if message is None:
            message = f"Cannot run package manager '{binary or 'brew'}'"

        super().__init__(message, context=ctx)


def retry_on_transient(
    max_retries: int = 3,
    base_delay: float = 1.0,
    backoff: float = 2.0
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Retry functions on transient errors with exponential backoff.

    Args:
        max_retries: Maximum number of attempts before giving up.
        base_delay: Initial delay between attempts in seconds.
        backoff: Multiplier applied to the delay after each attempt.

    Returns:
        A decorator that applies the retry logic to the decorated function.

    Note:
        - Only retries on TransientError exceptions.
        - Decorates coroutine functions.
        - Only decorate idempotent operations.
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(1, max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except TransientError as e:
                    if attempt == max_retries:
                        log.error(
                            "retry_exhausted",
                            function=func.__name__,
                            attempts=max_retries,
                            error=str(e),
                            context=e.context
                        )
                        raise

                    delay = base_delay * (backoff ** (attempt - 1))
                    log.warning(
                        "retry_attempt",
                        function=func.__name__,
                        attempt=attempt,
                        max_attempts=max_retries,
                        delay_seconds=delay,
                        error=str(e),
                        context=e.context
                    )
                    await asyncio.sleep(delay)

            raise AssertionError("unreachable")

        return async_wrapper  # type: ignore

    return decorator


# Error Message Templates

ERROR_TEMPLATES = {
    AlreadyInFlightError: "⏳ Still working on {target}, please wait",
    PackageNotFoundError: "❌ Package not found: {package}",
    BackendUnavailableError: (
        "❌ Cannot run '{binary}'\n"
        "   Make sure Homebrew is installed and on your PATH (https://brew.sh)"
    ),
    BrewTimeoutError: "⚠️ Command timed out after {timeout}s: {command}",
    BrewCommandError: "⚠️ {command} failed (exit {returncode}): {error}",
    TransientError: "⚠️ Temporary failure: {message}",
    UserError: "❌ {message}",
    SystemError: "⚠️ System error: {message}",
    BrewError: "❌ {message}",
}


def format_error_message(error: BrewError) -> str:
    """Format an error for display in the CLI or the status bar.

    Args:
        error: The BrewError instance to format.

    Returns:
        A human-readable message.
    """
    for cls in type(error).__mro__:
        template = ERROR_TEMPLATES.get(cls)
        if template is not None:
            break
    else:
        template = ERROR_TEMPLATES[BrewError]

    try:
        return template.format(message=error.message, **error.context)
    except KeyError:
        return f"❌ {error.message}"
