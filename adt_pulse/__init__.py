"""Client for the ADT Pulse security portal."""

from __future__ import annotations

from .api import AdtPulse
from .auth import AuthState, PulseAuth
from .config import CONFIG_SCHEMA, validate_config, validate_credentials
from .exceptions import (
    PulseError,
    PulseInvalidInputError,
    PulseNetworkError,
    PulseNotInitializedError,
    PulsePortalFormatError,
    PulseServerRejectedError,
    PulseStaleTokenError,
    PulseUnauthenticatedError,
    PulseUnknownMethodError,
    PulseUnsupportedPortalVersionError,
)
from .models import Credentials
from .session import PulseSession
from .sync import PulseSynchronizer

__all__ = [
    "AdtPulse",
    "AuthState",
    "CONFIG_SCHEMA",
    "Credentials",
    "PulseAuth",
    "PulseError",
    "PulseInvalidInputError",
    "PulseNetworkError",
    "PulseNotInitializedError",
    "PulsePortalFormatError",
    "PulseServerRejectedError",
    "PulseSession",
    "PulseStaleTokenError",
    "PulseSynchronizer",
    "PulseUnauthenticatedError",
    "PulseUnknownMethodError",
    "PulseUnsupportedPortalVersionError",
    "validate_config",
    "validate_credentials",
]
