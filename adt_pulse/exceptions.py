"""Exceptions for the ADT Pulse portal client."""

from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable, TypeVar

_LOGGER = logging.getLogger(__name__)

_OperationT = TypeVar("_OperationT", bound=Callable[..., Awaitable[Any]])


class PulseError(Exception):
    """Base exception for ADT Pulse errors."""

    kind = "error"

    def __init__(self, message: str, reason: str | None = None) -> None:
        """Initialize the exception."""
        super().__init__(message)
        self.reason = reason


class PulseInvalidInputError(PulseError):
    """Exception for caller supplied values that fail validation."""

    kind = "invalid_input"


class PulseUnknownMethodError(PulseInvalidInputError):
    """Exception for a verification method that was never offered."""


class PulseNotInitializedError(PulseError):
    """Exception for operations invoked out of sequence."""

    kind = "not_initialized"


class PulseUnauthenticatedError(PulseError):
    """Exception for a missing or implicitly expired session."""

    kind = "unauthenticated"


class PulsePortalFormatError(PulseError):
    """Exception for portal responses that could not be understood."""

    kind = "portal_format_mismatch"


class PulseUnsupportedPortalVersionError(PulsePortalFormatError):
    """Exception for portal builds outside the supported list."""

    kind = "unsupported_portal_version"

    def __init__(self, version: str) -> None:
        """Initialize the exception."""
        super().__init__(f"Portal version {version} is not supported", version)
        self.version = version


class PulseStaleTokenError(PulsePortalFormatError):
    """Exception for commands built from an outdated page render."""

    kind = "stale_token"


class PulseNetworkError(PulseError):
    """Exception for transport failures and server errors."""

    kind = "network"

    def __init__(
        self, message: str, reason: str | None = None, status: int | None = None
    ) -> None:
        """Initialize the exception."""
        super().__init__(message, reason)
        self.status = status


class PulseServerRejectedError(PulseError):
    """Exception for requests the portal understood but refused."""

    kind = "server_rejected"


def serialize_error(err: BaseException) -> dict[str, Any]:
    """Serialize an exception for an operation result."""
    data: dict[str, Any] = {
        "type": type(err).__name__,
        "kind": getattr(err, "kind", "error"),
        "message": str(err),
    }
    reason = getattr(err, "reason", None)
    if reason is not None:
        data["reason"] = reason
    status = getattr(err, "status", None)
    if status is not None:
        data["status"] = status
    return data


def pulse_operation(action: str) -> Callable[[_OperationT], _OperationT]:
    """Wrap a coroutine method so it returns an operation result.

    The wrapped method returns its ``info`` on success. A raised PulseError
    becomes ``{"action", "success": False, "info": {"message", "error"}}``.
    """

    def decorator(func: _OperationT) -> _OperationT:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> dict[str, Any]:
            try:
                info = await func(*args, **kwargs)
            except PulseError as err:
                _LOGGER.debug("%s failed: %s", action, err)
                return {
                    "action": action,
                    "success": False,
                    "info": {"message": str(err), "error": serialize_error(err)},
                }
            return {"action": action, "success": True, "info": info}

        return wrapper  # type: ignore[return-value]

    return decorator
