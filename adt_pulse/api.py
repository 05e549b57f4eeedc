"""API client for the ADT Pulse portal."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import aiohttp

from .arm_state import (
    current_wire_state,
    from_panel_state,
    is_alarm_state,
    is_disarmed,
    ready_buttons,
    replace_stuck_night_button,
    select_button,
    to_canonical,
    translate_sensor_status,
)
from .auth import AuthState, PulseAuth
from .config import validate_config
from .const import (
    ARM_OFF,
    ARM_SETTLE_DELAY,
    BUTTON_CLEAR_ALARM,
    CANONICAL_ARM_STATES,
    CONF_FINGERPRINT,
    CONF_FORCE_ARM_STATUSES,
    CONF_OPTIONS,
    CONF_PASSWORD,
    CONF_SENSOR_ADT_TYPE,
    CONF_SENSOR_ADT_ZONE,
    CONF_SENSORS,
    CONF_SUBDOMAIN,
    CONF_USERNAME,
    DEFAULT_RETRIES,
    DEFAULT_RETRY_BACKOFF,
    DEFAULT_SYNC_CODE,
    GATEWAY_LABELS,
    OPTION_IGNORE_SENSOR_PROBLEM_STATUS,
    PANEL_LABELS,
    PATH_GATEWAY,
    PATH_KEEP_ALIVE,
    PATH_PANEL,
    PATH_SIGN_OUT,
    PATH_SUMMARY,
    PATH_SYNC_CHECK,
    PATH_SYSTEM,
)
from .exceptions import (
    PulseInvalidInputError,
    PulseNetworkError,
    PulsePortalFormatError,
    PulseServerRejectedError,
    PulseStaleTokenError,
    PulseUnauthenticatedError,
    pulse_operation,
)
from .extractor import (
    fetch_table_cells,
    parse_emergency_keys,
    parse_orb_security_buttons,
    parse_orb_sensors,
    parse_orb_text_summary,
    parse_sensors_table,
    parse_sync_code,
)
from .force_arm import ForceArmEscalation, ForceArmState
from .models import Credentials, OrbSecurityButton
from .session import PortalResponse, PulseSession, ResponseKind

_LOGGER = logging.getLogger(__name__)

# Disarm, then clear the alarm, is the longest chain the portal needs
MAX_DISARM_STEPS = 3


class AdtPulse:
    """Client for the ADT Pulse portal."""

    def __init__(
        self,
        config: dict[str, Any],
        session: aiohttp.ClientSession | None = None,
        base_url: str | None = None,
        test_mode: bool = False,
        arm_settle_delay: float = ARM_SETTLE_DELAY,
        retries: int = DEFAULT_RETRIES,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
    ) -> None:
        """Initialize the API client."""
        self.config = validate_config(config)
        self._client = PulseSession(
            self.config[CONF_SUBDOMAIN],
            session=session,
            base_url=base_url,
            retries=retries,
            retry_backoff=retry_backoff,
        )
        self._auth = PulseAuth(
            Credentials(
                subdomain=self.config[CONF_SUBDOMAIN],
                username=self.config[CONF_USERNAME],
                password=self.config[CONF_PASSWORD],
                fingerprint=self.config[CONF_FINGERPRINT],
            ),
            client=self._client,
        )
        self._test_mode = test_mode
        self._is_disarm_checked = False
        self._arm_settle_delay = arm_settle_delay
        self._sync_code = DEFAULT_SYNC_CODE
        self._force_arm_statuses: list[str] | None = self.config.get(CONF_FORCE_ARM_STATUSES)
        self._ignore_sensor_problems = (
            OPTION_IGNORE_SENSOR_PROBLEM_STATUS in self.config[CONF_OPTIONS]
        )
        self._configured_types: dict[int, str] = {
            sensor[CONF_SENSOR_ADT_ZONE]: sensor[CONF_SENSOR_ADT_TYPE]
            for sensor in self.config[CONF_SENSORS]
        }
        self._discovered_types: dict[int, str] = {}

    @property
    def client(self) -> PulseSession:
        """Return the underlying session client."""
        return self._client

    @property
    def sync_code(self) -> str:
        """Return the last observed sync code."""
        return self._sync_code

    async def close(self) -> None:
        """Close the session if we own it."""
        await self._client.close()

    def is_authenticated(self) -> bool:
        """Return True if a signed-in session is held."""
        return self._client.authenticated

    def reset_session(self) -> None:
        """Forget the session without contacting the portal."""
        self._auth.reset_session()
        self._sync_code = DEFAULT_SYNC_CODE

    def _require_authenticated(self) -> None:
        if not self._client.authenticated:
            raise PulseUnauthenticatedError("Not signed in to the portal")

    def _page_url(self, path: str) -> str:
        if path.startswith("/"):
            return f"{self._client.base_url}{path}"
        return self._client.url(path)

    async def _get_page(self, path: str, page: str) -> PortalResponse:
        self._require_authenticated()
        response = await self._client.request(
            "GET",
            self._client.url(path),
            headers={"Referer": self._client.url(PATH_SUMMARY)},
            expect=page,
            idempotent=True,
        )
        return self._client.ensure_success(response, page)

    @pulse_operation("LOGIN")
    async def login(self) -> dict[str, Any]:
        """Sign in with the configured credentials and trusted fingerprint."""
        if self._client.authenticated:
            _LOGGER.debug("Already signed in, skipping login")
            return {
                "already_authenticated": True,
                "network_id": self._client.network_id,
                "portal_version": self._client.portal_version,
            }

        state = await self._auth.sign_in()
        if state is AuthState.MFA_REQUIRED:
            self.reset_session()
            raise PulseServerRejectedError(
                "Fingerprint is invalid or this device is not trusted, "
                "complete verification first",
                "mfa_required",
            )

        self._auth.state = AuthState.AUTHENTICATED
        self._client.authenticated = True
        _LOGGER.info("Signed in to %s (portal %s)", self._client.subdomain, self._client.portal_version)
        return {
            "already_authenticated": False,
            "network_id": self._client.network_id,
            "portal_version": self._client.portal_version,
        }

    @pulse_operation("LOGOUT")
    async def logout(self) -> None:
        """Sign out, clearing the local session even if the portal fails."""
        if not self._client.authenticated:
            self.reset_session()
            return

        try:
            response = await self._client.request(
                "GET",
                self._client.url(
                    f"{PATH_SIGN_OUT}?networkid={self._client.network_id or ''}&partner=adt"
                ),
                expect="sign_out",
            )
            if response.kind is not ResponseKind.AUTHENTICATION_REQUIRED:
                self._client.ensure_success(response, "sign-out")
        finally:
            self.reset_session()
        _LOGGER.info("Signed out of %s", self._client.subdomain)

    @pulse_operation("GET_GATEWAY_INFORMATION")
    async def get_gateway_information(self) -> dict[str, Any]:
        """Read the gateway details page."""
        response = await self._get_page(PATH_GATEWAY, "gateway")
        cells = fetch_table_cells(response.text, GATEWAY_LABELS)
        if not cells:
            raise PulsePortalFormatError("Gateway details were not found")

        return {
            "manufacturer": cells.get("Manufacturer:"),
            "model": cells.get("Model:"),
            "network": {
                "broadband": {
                    "ip": cells.get("Broadband LAN IP Address:"),
                    "mac": cells.get("Broadband LAN MAC:"),
                },
                "device": {
                    "ip": cells.get("Device LAN IP Address:"),
                    "mac": cells.get("Device LAN MAC:"),
                },
            },
            "serial_number": cells.get("Serial Number:"),
            "status": cells.get("Status:"),
            "update": {
                "last": cells.get("Last Update:"),
                "next": cells.get("Next Update:"),
            },
            "versions": {
                "firmware": cells.get("Firmware Version:"),
                "hardware": cells.get("Hardware Version:"),
            },
        }

    @pulse_operation("GET_PANEL_INFORMATION")
    async def get_panel_information(self) -> dict[str, Any]:
        """Read the security panel details page."""
        response = await self._get_page(PATH_PANEL, "panel")
        cells = fetch_table_cells(response.text, PANEL_LABELS)
        if not cells:
            raise PulsePortalFormatError("Panel details were not found")

        emergency_keys = cells.get("Emergency Keys:")
        return {
            "emergency_keys": parse_emergency_keys(emergency_keys) if emergency_keys else [],
            "manufacturer_provider": cells.get("Manufacturer/Provider:"),
            "type_model": cells.get("Type/Model:"),
            "status": cells.get("Status:"),
        }

    @pulse_operation("GET_PANEL_STATUS")
    async def get_panel_status(self) -> dict[str, Any]:
        """Read the panel state from the summary orb."""
        response = await self._get_page(PATH_SUMMARY, "summary")
        status = parse_orb_text_summary(response.text)
        if status is None:
            raise PulsePortalFormatError("Panel status was not found on the summary page")

        status.arm_state = from_panel_state(status.state)
        return status.as_dict()

    @pulse_operation("GET_SENSORS_INFORMATION")
    async def get_sensors_information(self) -> dict[str, Any]:
        """Read the installed sensors from the system page."""
        response = await self._get_page(PATH_SYSTEM, "system")
        sensors = parse_sensors_table(response.text)
        self._discovered_types = {
            sensor.zone: sensor.adt_type for sensor in sensors if sensor.adt_type is not None
        }
        return {"sensors": [sensor.as_dict() for sensor in sensors]}

    @pulse_operation("GET_SENSORS_STATUS")
    async def get_sensors_status(self) -> dict[str, Any]:
        """Read the sensor states from the summary orb."""
        response = await self._get_page(PATH_SUMMARY, "summary")
        sensors = [
            translate_sensor_status(
                sensor,
                self._configured_types.get(sensor.zone, self._discovered_types.get(sensor.zone)),
                self._ignore_sensor_problems,
            )
            for sensor in parse_orb_sensors(response.text)
        ]
        return {"sensors": [sensor.as_dict() for sensor in sensors]}

    def _load_buttons(self, response: PortalResponse) -> list[OrbSecurityButton]:
        """Parse the buttons of a fresh summary render and stamp them."""
        generation = self._client.next_generation()
        buttons = parse_orb_security_buttons(response.text)
        for button in buttons:
            button.subdomain = self._client.subdomain
            button.generation = generation

        buttons = replace_stuck_night_button(
            buttons, self._client.backup_sat, self._client.is_clean_state
        )
        if not buttons:
            raise PulsePortalFormatError("Security buttons are not found on the summary page")
        return buttons

    @pulse_operation("GET_ORB_SECURITY_BUTTONS")
    async def get_orb_security_buttons(self) -> dict[str, Any]:
        """Read the arm and disarm buttons currently rendered."""
        response = await self._get_page(PATH_SUMMARY, "summary")
        buttons = self._load_buttons(response)
        return {"buttons": [button.as_dict() for button in buttons]}

    def _check_fresh(self, button: OrbSecurityButton) -> None:
        if button.subdomain != self._client.subdomain or button.generation != self._client.generation:
            raise PulseStaleTokenError(
                f'Button "{button.title}" was rendered before the latest summary page'
            )

    def _needs_clearing(self, buttons: list[OrbSecurityButton], is_alarm_active: bool) -> bool:
        current = current_wire_state(buttons)
        if not is_disarmed(current):
            return True
        return is_alarm_active and any(
            button.title == BUTTON_CLEAR_ALARM for button in ready_buttons(buttons)
        )

    async def _force_arm(self, escalation: ForceArmEscalation) -> None:
        handler = escalation.force_arm_command()
        _LOGGER.debug("Force arming to %s", handler.arm)
        response = await self._client.request(
            "POST",
            self._page_url(handler.relative_url),
            data={
                "sat": handler.sat,
                "href": handler.href,
                "armstate": handler.armstate,
                "arm": handler.arm,
            },
            expect="run_rra_command",
        )
        self._client.ensure_success(response, "force arm")
        if not escalation.record_force_arm_response(response.text):
            raise PulseServerRejectedError("Force arm was not accepted", "force_arm_failed")

    async def _arm_disarm(
        self,
        button: OrbSecurityButton,
        panel_status: str | None,
    ) -> tuple[list[OrbSecurityButton], ForceArmEscalation | None]:
        """Click one button, escalating to force-arm when the portal asks for it."""
        self._check_fresh(button)

        escalation = None
        if button.arm != ARM_OFF:
            escalation = ForceArmEscalation(
                str(self._client.portal_version), self._force_arm_statuses
            )
            escalation.arm_requested(panel_status)

        _LOGGER.debug("Clicking %s (%s to %s)", button.title, button.armstate, button.arm)
        response = await self._client.request(
            "POST",
            self._page_url(str(button.relative_url)),
            data={
                "href": button.href,
                "armstate": button.armstate,
                "arm": button.arm,
                "sat": button.sat,
            },
            headers={"Referer": self._client.url(PATH_SUMMARY)},
            expect="arm_disarm",
        )
        self._client.ensure_success(response, "arm/disarm")
        self._client.is_clean_state = False
        # Tokens on the rendered buttons are spent once one of them is used
        self._client.next_generation()

        if escalation is not None:
            if escalation.record_response(response.text) is ForceArmState.REJECTED:
                await self._force_arm(escalation)
            elif self._test_mode:
                raise PulseServerRejectedError(
                    "Test mode is active but no doors or windows were open",
                    "test_mode_no_open_sensors",
                )

        await asyncio.sleep(self._arm_settle_delay)
        summary = await self._get_page(PATH_SUMMARY, "summary")
        return self._load_buttons(summary), escalation

    @pulse_operation("SET_PANEL_STATUS")
    async def set_panel_status(
        self,
        arm_from: str,
        arm_to: str,
        is_alarm_active: bool = False,
    ) -> dict[str, Any]:
        """Move the panel to arm_to, disarming and force arming as needed."""
        if to_canonical(arm_from) is None:
            raise PulseInvalidInputError(f"Unknown arm state: {arm_from}")
        if arm_to not in CANONICAL_ARM_STATES:
            raise PulseInvalidInputError(f"Unknown arm state: {arm_to}")

        response = await self._get_page(PATH_SUMMARY, "summary")
        summary = parse_orb_text_summary(response.text)
        panel_status = summary.status if summary is not None else None
        buttons = self._load_buttons(response)

        current = current_wire_state(buttons)
        if current is None:
            raise PulsePortalFormatError("No ready security buttons on the summary page")
        if to_canonical(current) != to_canonical(arm_from):
            _LOGGER.debug("Panel is %s, not %s as expected", current, arm_from)

        if self._test_mode and not self._is_disarm_checked:
            if not is_disarmed(current):
                raise PulseServerRejectedError(
                    "Test mode is active and system is not disarmed", "test_mode_not_disarmed"
                )
            self._is_disarm_checked = True

        clear_alarm = is_alarm_active or is_alarm_state(current)
        if arm_to == ARM_OFF:
            if not self._needs_clearing(buttons, clear_alarm):
                return {"arm_from": current, "arm_to": arm_to, "changed": False}
        elif to_canonical(current) == arm_to:
            return {"arm_from": current, "arm_to": arm_to, "changed": False}

        steps = 0
        while self._needs_clearing(buttons, clear_alarm):
            steps += 1
            if steps > MAX_DISARM_STEPS:
                raise PulsePortalFormatError("Panel did not disarm")
            state = str(current_wire_state(buttons))
            button = select_button(buttons, state, ARM_OFF, clear_alarm)
            buttons, _ = await self._arm_disarm(button, panel_status)

        result: dict[str, Any] = {
            "arm_from": current,
            "arm_to": arm_to,
            "changed": True,
            "force_armed": False,
            "force_arm_reason": None,
        }

        if arm_to != ARM_OFF:
            button = select_button(buttons, str(current_wire_state(buttons)), arm_to)
            _, escalation = await self._arm_disarm(button, panel_status)
            if escalation is not None and escalation.state is ForceArmState.FORCE_ARMED:
                result["force_armed"] = True
                result["force_arm_reason"] = escalation.reason or escalation.message

        _LOGGER.info("Panel set from %s to %s", current, arm_to)
        return result

    @pulse_operation("PERFORM_SYNC_CHECK")
    async def perform_sync_check(self) -> dict[str, Any]:
        """Poll the sync code that changes when the portal has new data."""
        response = await self._get_page(
            f"{PATH_SYNC_CHECK}?t={int(time.time() * 1000)}", "sync_check"
        )
        sync_code = parse_sync_code(response.text)
        if sync_code is None:
            raise PulsePortalFormatError(f'"{response.text.strip()}" is not a sync code')

        changed = sync_code != self._sync_code
        self._sync_code = sync_code
        return {"sync_code": sync_code, "changed": changed}

    @pulse_operation("PERFORM_KEEP_ALIVE")
    async def perform_keep_alive(self) -> None:
        """Extend the portal session."""
        self._require_authenticated()
        response = await self._client.request(
            "POST",
            self._client.url(PATH_KEEP_ALIVE),
            data="",
            headers={"Referer": self._client.url(PATH_SUMMARY)},
            expect="keep_alive",
            idempotent=True,
        )
        self._client.ensure_success(response, "keep alive")

    @pulse_operation("IS_PORTAL_ACCESSIBLE")
    async def is_portal_accessible(self) -> None:
        """Check that the portal host answers."""
        try:
            response = await self._client.request(
                "HEAD", f"{self._client.base_url}/", idempotent=True
            )
        except PulseNetworkError:
            self.reset_session()
            raise

        if response.kind is not ResponseKind.SUCCESS:
            self.reset_session()
            raise PulseNetworkError(
                f"Portal answered HTTP {response.status}", status=response.status
            )
