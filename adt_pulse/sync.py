"""Polling synchronizer for the ADT Pulse portal."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from .api import AdtPulse
from .const import (
    CONF_MODE,
    CONF_SPEED,
    KEEP_ALIVE_INTERVAL,
    MAX_LOGIN_RETRIES,
    MODE_PAUSED,
    MODE_RESET,
    SESSION_LIFESPAN,
    SUSPEND_INTERVAL,
    SYNC_CHECK_INTERVAL,
)

_LOGGER = logging.getLogger(__name__)

ALARM_STATUSES = (
    "BURGLARY ALARM",
    "Carbon Monoxide Alarm",
    "FIRE ALARM",
    "WATER ALARM",
)


class PulseSynchronizer:
    """Keep one portal session alive and fetch data when it changes.

    There is no internal timer. The owner calls ``async_tick`` on an interval
    (``SYNCHRONIZE_INTERVAL``) and the synchronizer decides whether to sign
    in, extend the session, check for changes or fetch fresh data.
    """

    def __init__(
        self,
        api: AdtPulse,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the synchronizer."""
        self.api = api
        self.data: dict[str, Any] = {}
        self._clock = clock
        self._listeners: list[Callable[[], None]] = []

        speed = api.config[CONF_SPEED]
        self._keep_alive_interval = KEEP_ALIVE_INTERVAL.total_seconds() / speed
        self._sync_check_interval = SYNC_CHECK_INTERVAL.total_seconds() / speed

        self._session_started: float | None = None
        self._last_keep_alive: float | None = None
        self._last_sync_check: float | None = None
        self._login_failures = 0
        self._suspended_until: float | None = None
        self._ticking = False
        self._previous_alarm: str | None = None

    @property
    def suspended(self) -> bool:
        """Return True while sign-in is suspended after repeated failures."""
        return self._suspended_until is not None

    def async_add_listener(self, update_callback: Callable[[], None]) -> Callable[[], None]:
        """Register a callback for new data and return its remover."""
        self._listeners.append(update_callback)

        def remove_listener() -> None:
            if update_callback in self._listeners:
                self._listeners.remove(update_callback)

        return remove_listener

    def get_sensor(self, zone: int) -> dict[str, Any] | None:
        """Get the latest status of the sensor in a zone."""
        for sensor in self.data.get("sensors", []):
            if sensor.get("zone") == zone:
                return sensor
        return None

    async def async_tick(self, now: float | None = None) -> dict[str, Any]:
        """Run one synchronization step."""
        if self._ticking:
            return self.data

        self._ticking = True
        try:
            await self._async_tick(self._clock() if now is None else now)
        finally:
            self._ticking = False
        return self.data

    async def _async_tick(self, now: float) -> None:
        mode = self.api.config[CONF_MODE]
        if mode == MODE_PAUSED:
            return
        if mode == MODE_RESET:
            if self.api.is_authenticated() or self.data:
                _LOGGER.debug("Reset mode, dropping session and data")
                self.api.reset_session()
                self.data = {}
            return

        if self._suspended_until is not None:
            if now < self._suspended_until:
                return
            _LOGGER.info("Resuming sign-in attempts")
            self._suspended_until = None
            self._login_failures = 0

        if (
            self.api.is_authenticated()
            and self._session_started is not None
            and now - self._session_started >= SESSION_LIFESPAN.total_seconds()
        ):
            _LOGGER.debug("Session reached its lifespan, signing out")
            await self.api.logout()

        if not self.api.is_authenticated():
            if not await self._async_login(now):
                return

        if (
            self._last_keep_alive is not None
            and now - self._last_keep_alive >= self._keep_alive_interval
        ):
            self._last_keep_alive = now
            result = await self.api.perform_keep_alive()
            if not result["success"]:
                _LOGGER.error("Keep alive error: %s", result["info"]["message"])
                return

        if (
            self._last_sync_check is not None
            and now - self._last_sync_check < self._sync_check_interval
        ):
            return

        self._last_sync_check = now
        result = await self.api.perform_sync_check()
        if not result["success"]:
            _LOGGER.error("Sync check error: %s", result["info"]["message"])
            return

        if result["info"]["changed"] or not self.data:
            await self._async_update_data()

    async def _async_login(self, now: float) -> bool:
        result = await self.api.login()
        if result["success"]:
            self._login_failures = 0
            self._session_started = now
            self._last_keep_alive = now
            self._last_sync_check = None
            return True

        self._login_failures += 1
        _LOGGER.error(
            "Sign-in error (%d of %d): %s",
            self._login_failures,
            MAX_LOGIN_RETRIES,
            result["info"]["message"],
        )
        if self._login_failures >= MAX_LOGIN_RETRIES:
            self._suspended_until = now + SUSPEND_INTERVAL.total_seconds()
            _LOGGER.warning(
                "Sign-in failed %d times, suspending for %s",
                self._login_failures,
                SUSPEND_INTERVAL,
            )
        return False

    async def _async_update_data(self) -> None:
        """Fetch panel and sensor status."""
        panel = await self.api.get_panel_status()
        if not panel["success"]:
            _LOGGER.error("Panel status error: %s", panel["info"]["message"])
            return

        sensors = await self.api.get_sensors_status()
        if not sensors["success"]:
            _LOGGER.error("Sensor status error: %s", sensors["info"]["message"])
            return

        self.data = {
            "panel": panel["info"],
            "sensors": sensors["info"]["sensors"],
            "sync_code": self.api.sync_code,
        }
        _LOGGER.debug("Updated data for %d sensors", len(self.data["sensors"]))

        self._check_alarm_triggered(panel["info"].get("status"))
        for update_callback in list(self._listeners):
            update_callback()

    def _check_alarm_triggered(self, status: str | None) -> None:
        """Log when the panel starts reporting an alarm."""
        alarm = status if status in ALARM_STATUSES else None
        if alarm is not None and alarm != self._previous_alarm:
            _LOGGER.warning("ALARM TRIGGERED! %s (%s)", alarm, self.api.client.subdomain)
        self._previous_alarm = alarm
