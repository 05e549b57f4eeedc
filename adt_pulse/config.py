"""Configuration schema for the ADT Pulse portal client."""

from __future__ import annotations

import re
from typing import Any

import voluptuous as vol

from .const import (
    CONF_FINGERPRINT,
    CONF_FORCE_ARM_STATUSES,
    CONF_MODE,
    CONF_OPTIONS,
    CONF_PASSWORD,
    CONF_SENSOR_ADT_NAME,
    CONF_SENSOR_ADT_TYPE,
    CONF_SENSOR_ADT_ZONE,
    CONF_SENSOR_NAME,
    CONF_SENSORS,
    CONF_SPEED,
    CONF_SUBDOMAIN,
    CONF_USERNAME,
    DEFAULT_MODE,
    DEFAULT_SPEED,
    MAX_CONFIGURED_SENSORS,
    MODES,
    OPTIONS,
    SENSOR_TYPES,
    SPEEDS,
    SUBDOMAINS,
)
from .exceptions import PulseInvalidInputError
from .models import Credentials


def _regex(value: Any) -> str:
    """Validate a regular expression string."""
    value = vol.Coerce(str)(value)
    try:
        re.compile(value)
    except re.error as err:
        raise vol.Invalid(f"Invalid regular expression: {err}") from err
    return value


def _unique_zones(sensors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Reject two sensors configured for the same zone."""
    zones = [sensor[CONF_SENSOR_ADT_ZONE] for sensor in sensors]
    if len(zones) != len(set(zones)):
        raise vol.Invalid("Sensor zones must be unique")
    return sensors


SENSOR_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_SENSOR_NAME): vol.All(str, vol.Length(min=1, max=50)),
        vol.Required(CONF_SENSOR_ADT_NAME): vol.All(str, vol.Length(min=1, max=100)),
        vol.Required(CONF_SENSOR_ADT_TYPE): vol.In(SENSOR_TYPES),
        vol.Required(CONF_SENSOR_ADT_ZONE): vol.All(int, vol.Range(min=1, max=99)),
    }
)

CREDENTIALS_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_SUBDOMAIN): vol.In(SUBDOMAINS),
        vol.Required(CONF_USERNAME): vol.All(str, vol.Length(min=1, max=100)),
        vol.Required(CONF_PASSWORD): vol.All(str, vol.Length(min=1, max=300)),
        vol.Required(CONF_FINGERPRINT): vol.All(str, vol.Length(min=1, max=5120)),
    }
)

CONFIG_SCHEMA = CREDENTIALS_SCHEMA.extend(
    {
        vol.Optional(CONF_MODE, default=DEFAULT_MODE): vol.In(MODES),
        vol.Optional(CONF_SPEED, default=DEFAULT_SPEED): vol.In(SPEEDS),
        vol.Optional(CONF_OPTIONS, default=list): [vol.In(OPTIONS)],
        vol.Optional(CONF_SENSORS, default=list): vol.All(
            [SENSOR_SCHEMA],
            vol.Length(max=MAX_CONFIGURED_SENSORS),
            _unique_zones,
        ),
        vol.Optional(CONF_FORCE_ARM_STATUSES): [_regex],
    },
    extra=vol.REMOVE_EXTRA,
)


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """Validate a configuration record, raising PulseInvalidInputError."""
    try:
        return CONFIG_SCHEMA(config)
    except vol.Invalid as err:
        raise PulseInvalidInputError(f"Invalid configuration: {err}") from err


def validate_credentials(credentials: Credentials) -> None:
    """Raise PulseInvalidInputError for unusable credentials."""
    try:
        CREDENTIALS_SCHEMA(
            {
                CONF_SUBDOMAIN: credentials.subdomain,
                CONF_USERNAME: credentials.username,
                CONF_PASSWORD: credentials.password,
                CONF_FINGERPRINT: credentials.fingerprint,
            }
        )
    except vol.Invalid as err:
        raise PulseInvalidInputError(f"Invalid credentials: {err}") from err
