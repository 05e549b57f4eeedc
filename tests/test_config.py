from __future__ import annotations

import pytest

from adt_pulse.config import validate_config, validate_credentials
from adt_pulse.exceptions import PulseInvalidInputError
from adt_pulse.models import Credentials
from fakes import make_config


def _sensor(zone: int, adt_type: str = "doorWindow") -> dict:
    return {"adt_name": f"Zone {zone}", "adt_type": adt_type, "adt_zone": zone}


def test_defaults() -> None:
    config = validate_config(make_config())
    assert config["mode"] == "normal"
    assert config["speed"] == 1
    assert config["options"] == []
    assert config["sensors"] == []
    assert "force_arm_statuses" not in config


def test_extra_keys_are_dropped() -> None:
    config = validate_config(make_config(platform="adt_pulse"))
    assert "platform" not in config


def test_sensors_and_statuses() -> None:
    config = validate_config(
        make_config(
            mode="paused",
            speed=0.5,
            options=["ignoreSensorProblemStatus"],
            sensors=[_sensor(1), _sensor(7, "motion")],
            force_arm_statuses=[r"^\d+ Sensors? Open$"],
        )
    )
    assert [sensor["adt_zone"] for sensor in config["sensors"]] == [1, 7]
    assert config["force_arm_statuses"] == [r"^\d+ Sensors? Open$"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"subdomain": "portal-eu"},
        {"username": ""},
        {"password": "x" * 301},
        {"fingerprint": ""},
        {"mode": "fast"},
        {"speed": 2},
        {"options": ["unknownOption"]},
        {"sensors": [_sensor(1), _sensor(1)]},
        {"sensors": [_sensor(100)]},
        {"sensors": [_sensor(3, "doorbell")]},
        {"sensors": [{"adt_type": "motion", "adt_zone": 3}]},
        {"force_arm_statuses": ["(unclosed"]},
    ],
)
def test_invalid(overrides: dict) -> None:
    with pytest.raises(PulseInvalidInputError):
        validate_config(make_config(**overrides))


def test_sensor_limit() -> None:
    sensors = [_sensor(zone % 99 + 1) for zone in range(149)]
    with pytest.raises(PulseInvalidInputError):
        validate_config(make_config(sensors=sensors))


def test_missing_credentials() -> None:
    config = make_config()
    del config["password"]
    with pytest.raises(PulseInvalidInputError):
        validate_config(config)


def test_valid_credentials() -> None:
    validate_credentials(Credentials("portal-ca", "user@example.com", "hunter2", "fp"))


@pytest.mark.parametrize(
    "overrides",
    [
        {"subdomain": "portal-eu"},
        {"username": ""},
        {"password": "x" * 301},
        {"fingerprint": "x" * 5121},
    ],
)
def test_invalid_credentials(overrides: dict) -> None:
    values = {
        "subdomain": "portal",
        "username": "user@example.com",
        "password": "hunter2",
        "fingerprint": "fp",
        **overrides,
    }
    with pytest.raises(PulseInvalidInputError) as err:
        validate_credentials(Credentials(**values))
    assert "hunter2" not in str(err.value)
