"""Token and state extraction from ADT Pulse portal pages.

Every function here accepts raw page text (or a request path) and returns the
recovered values, or None / an empty list when nothing matched. Nothing in
this module raises on unexpected markup: deciding whether a missing value is
an error belongs to the caller.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from bs4 import BeautifulSoup
from bs4.element import Tag

from .const import (
    DEVICE_TYPES,
    FIRST_SENSOR_DEVICE_ID,
    SUPPORTED_PORTAL_VERSIONS,
    WIRE_ARM_STATES,
    WIRE_FORCE_ARM,
)
from .models import (
    DoSubmitHandler,
    MfaMethod,
    MfaTokens,
    OrbSecurityButton,
    PanelStatus,
    SensorInformation,
    SensorStatus,
    TrustedDevice,
)

_LOGGER = logging.getLogger(__name__)


def _path(suffix: str) -> re.Pattern[str]:
    """Compile a pattern for a path below /myhome/<version>/."""
    return re.compile(rf"^/myhome/(?P<version>[0-9.-]+)/{suffix}$")


# Final request paths (path and query) the portal lands on
PATH_PATTERNS: dict[str, re.Pattern[str]] = {
    "sign_in": _path(r"access/signin\.jsp"),
    "sign_in_failed": _path(r"access/signin\.jsp\?e=[a-z]+&partner=adt"),
    "sign_out": _path(r"access/signin\.jsp\?networkid=[a-z0-9]+&partner=adt"),
    "summary": _path(r"summary/summary\.jsp"),
    "mfa_challenge": _path(r"mfa/mfaSignIn\.jsp\?workflow=challenge"),
    "gateway": _path(r"system/gateway\.jsp"),
    "panel": _path(r"system/device\.jsp\?id=1"),
    "system": _path(r"system/system\.jsp"),
    "arm_disarm": _path(r"quickcontrol/armDisarm\.jsp"),
    "run_rra_command": _path(r"quickcontrol/serv/RunRRACommand"),
    "keep_alive": _path(r"KeepAlive"),
    "sync_check": _path(r"Ajax/SyncCheckServ\?t=\d+"),
    "rra_proxy": _path(r"nga/serv/RunRRAProxy\?.+"),
}

NETWORK_ID = re.compile(r"[?&]networkid=(?P<network_id>[^&#'\"]*)")
SAT_CODE = re.compile(r"sat=(?P<sat>[^&'\"]+)")
SET_ARM_STATE = re.compile(
    r"setArmState\(\s*'(?P<relative_url>[^']+)',\s*'(?P<loading_text>[^']+)',"
    r"\s*'(?P<index>[^']+)',\s*'(?P<total>[^']+)',\s*'(?P<change_access_code>[^']+)',"
    r"\s*'href=(?P<href>[^']+)&armstate=(?P<armstate>[^&]+)&arm=(?P<arm>[^&]+)"
    r"&sat=(?P<sat>[^']+?)'\s*\)"
)
DO_SUBMIT = re.compile(
    r"doSubmit\(\s*'(?P<relative_url>[^'?]+)\?sat=(?P<sat>[^&']+)&href=(?P<href>[^&']+)"
    r"(?:&armstate=(?P<armstate>[^&']+)&arm=(?P<arm>[^&']+))?'\s*\)"
)
NOTE_TEXT = "This may take several minutes"
ORB_TEXT_SUMMARY = re.compile(
    r"^(?P<state>[A-Za-z0-9 ]+)\. ?(?P<status>[A-Za-z0-9 ]*)\.?"
    rf"(?: ?(?P<note>{NOTE_TEXT})\.?)?$"
)
OPEN_SENSORS = re.compile(r"^(?P<count>\d+) Sensors? Open$")
EMERGENCY_KEYS = re.compile(r"[A-Za-z0-9]+: [A-Za-z0-9 ]+? \(Zone \d+\)")
SYNC_CODE = re.compile(r"^(?P<sync_code>\d+-\d+-\d+)$")
ZONE = re.compile(r"^Zone (?P<zone>\d+)$")
DEVICE_ID = re.compile(r"device\.jsp\?id=(?P<device_id>\d+)")
MFA_KEYS = {
    "client_type": "xClientType",
    "locale": "locale",
    "login": "xLogin",
    "pre_auth_token": "xPreAuthToken",
    "sat": "sat",
}
WHITESPACE = re.compile(r"\s+")
LINE_BREAK = re.compile(r"<br ?/?>")


def _mfa_key(key: str) -> re.Pattern[str]:
    return re.compile(rf"\b{key}\s*:\s*[\"'](?P<value>[^\"']+)[\"']")


MFA_KEY_PATTERNS = {name: _mfa_key(key) for name, key in MFA_KEYS.items()}


def clean_text(text: str | None) -> str:
    """Collapse whitespace runs into single spaces."""
    if text is None:
        return ""
    return WHITESPACE.sub(" ", text).strip()


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def _cell_text(cell: Tag | None) -> str:
    if cell is None:
        return ""
    return clean_text(cell.get_text(" "))


def match_path(name: str, path: str) -> str | None:
    """Return the portal version if the path is the named portal page."""
    match = PATH_PATTERNS[name].match(path)
    if match is None:
        return None
    return match.group("version")


def extract_portal_version(path: str) -> str | None:
    """Extract the portal build version from a request path."""
    match = re.match(r"^/myhome/(?P<version>[0-9.-]+)/", path)
    if match is None:
        return None
    return match.group("version")


def is_supported_portal_version(version: str | None) -> bool:
    """Return True if the portal build version is known to work."""
    return version in SUPPORTED_PORTAL_VERSIONS


def extract_network_id(html: str) -> str | None:
    """Extract the network (site) id used by sign-out links."""
    match = NETWORK_ID.search(html)
    if match is None:
        return None
    return match.group("network_id") or None


def extract_sat_code(html: str) -> str | None:
    """Extract the first sat code found in a page."""
    match = SAT_CODE.search(html)
    if match is None:
        return None
    return match.group("sat")


def extract_mfa_tokens(html: str) -> MfaTokens | None:
    """Extract the window.g.mfa values from the challenge page script."""
    values: dict[str, str] = {}
    for name, pattern in MFA_KEY_PATTERNS.items():
        match = pattern.search(html)
        if match is None:
            _LOGGER.debug("MFA key %s not found on challenge page", MFA_KEYS[name])
            return None
        values[name] = match.group("value")
    return MfaTokens(**values)


def parse_error_message(html: str) -> str | None:
    """Extract the warning shown on the sign-in page."""
    element = _soup(LINE_BREAK.sub(" ", html)).select_one("#warnMsgContents")
    if element is None:
        return None
    return clean_text(element.get_text(" ")) or None


def parse_orb_text_summary(html: str) -> PanelStatus | None:
    """Parse the summary orb text, e.g. "Disarmed. All Quiet."."""
    element = _soup(html).select_one("#divOrbTextSummary")
    if element is None:
        return None

    text = clean_text(element.get_text(" "))
    match = ORB_TEXT_SUMMARY.match(text)
    if match is None:
        _LOGGER.debug("Unrecognized orb text summary: %s", text)
        return None

    status = clean_text(match.group("status")) or None
    note = match.group("note")
    if status == NOTE_TEXT:
        status, note = None, NOTE_TEXT

    open_sensors = 0
    if status is not None:
        open_match = OPEN_SENSORS.match(status)
        if open_match is not None:
            open_sensors = int(open_match.group("count"))

    return PanelStatus(
        state=clean_text(match.group("state")),
        status=status,
        note=note,
        open_sensors=open_sensors,
    )


def parse_orb_security_buttons(html: str) -> list[OrbSecurityButton]:
    """Parse the arm and disarm buttons rendered in the summary orb."""
    buttons: list[OrbSecurityButton] = []

    for element in _soup(html).select("#divOrbSecurityButtons input"):
        disabled = element.has_attr("disabled")
        onclick = element.get("onclick")
        button_id = element.get("id")
        title = element.get("value")

        # Pending button, shown while the panel is changing state
        if disabled and onclick is None:
            buttons.append(OrbSecurityButton(disabled=True, id=button_id, title=title))
            continue

        if disabled or onclick is None:
            continue

        match = SET_ARM_STATE.search(onclick)
        if match is None:
            continue

        arm = match.group("arm")
        armstate = match.group("armstate")
        if arm not in ("away", "night", "off", "stay") or armstate not in WIRE_ARM_STATES:
            _LOGGER.debug("Ignoring button %s with arm=%s armstate=%s", title, arm, armstate)
            continue

        try:
            index = int(match.group("index"))
            total = int(match.group("total"))
        except ValueError:
            continue

        buttons.append(
            OrbSecurityButton(
                disabled=False,
                id=button_id,
                title=title,
                index=index,
                total=total,
                loading_text=match.group("loading_text"),
                relative_url=match.group("relative_url"),
                change_access_code=match.group("change_access_code") == "true",
                href=match.group("href"),
                armstate=armstate,
                arm=arm,
                sat=match.group("sat"),
            )
        )

    return buttons


def parse_do_submit_handlers(html: str) -> list[DoSubmitHandler]:
    """Parse the force-arm and cancel handlers shown after an arm attempt."""
    handlers: list[DoSubmitHandler] = []

    for element in _soup(html).select(".p_armDisarmWrapper input"):
        onclick = element.get("onclick")
        if onclick is None:
            continue

        match = DO_SUBMIT.search(onclick)
        if match is None:
            continue

        armstate = match.group("armstate")
        arm = match.group("arm")
        handlers.append(
            DoSubmitHandler(
                relative_url=match.group("relative_url"),
                sat=match.group("sat"),
                href=match.group("href").replace("\\/", "/"),
                armstate=armstate if armstate == WIRE_FORCE_ARM else None,
                arm=arm if arm in ("away", "night", "stay") else None,
            )
        )

    return handlers


def parse_arm_disarm_message(html: str) -> str | None:
    """Extract the message explaining an arm attempt."""
    wrapper = _soup(html).select_one(".p_armDisarmWrapper")
    if wrapper is None:
        return None
    element = wrapper.find("div")
    if element is None:
        return None
    return clean_text(element.get_text(" ")) or None


def parse_orb_sensors(html: str) -> list[SensorStatus]:
    """Parse the sensor rows of the summary orb, sorted by zone."""
    sensors: list[SensorStatus] = []

    for row in _soup(html).select("#orbSensorsList tr.p_listRow"):
        cells = row.find_all("td", recursive=False)
        if len(cells) < 4:
            continue

        icon = cells[0].find("canvas")
        name = cells[2].select_one("a.p_deviceNameText")
        zone = cells[2].select_one("span.p_grayNormalText, div.p_grayNormalText")
        if icon is None or name is None or zone is None or icon.get("icon") is None:
            continue

        zone_match = ZONE.match(_cell_text(zone))
        if zone_match is None:
            continue

        sensors.append(
            SensorStatus(
                zone=int(zone_match.group("zone")),
                name=_cell_text(name),
                icon=clean_text(icon.get("icon")),
                status=_cell_text(cells[3]),
            )
        )

    return sorted(sensors, key=lambda sensor: sensor.zone)


def parse_sensors_table(html: str) -> list[SensorInformation]:
    """Parse the devices table of the system page.

    Device ids 0 and 1 are the gateway and the panel; only ids from 2 up are
    sensors.
    """
    sensors: list[SensorInformation] = []

    for row in _soup(html).select("#systemContentList tr[class^=p_row] tr.p_listRow"):
        cells = row.find_all("td", recursive=False)
        if len(cells) < 5:
            continue

        device_match = DEVICE_ID.search(row.get("onclick", ""))
        if device_match is None:
            continue
        device_id = int(device_match.group("device_id"))
        if device_id < FIRST_SENSOR_DEVICE_ID:
            continue

        canvas = cells[0].find("canvas")
        status = clean_text(canvas.get("title")) if canvas is not None else ""
        zone_text = _cell_text(cells[2])
        if not zone_text.isdigit():
            continue
        device_type = _cell_text(cells[4])

        sensors.append(
            SensorInformation(
                device_id=device_id,
                name=_cell_text(cells[1]),
                zone=int(zone_text),
                device_type=device_type,
                adt_type=DEVICE_TYPES.get(device_type),
                status=status or "Status Unknown",
            )
        )

    return sorted(sensors, key=lambda sensor: sensor.zone)


def fetch_table_cells(html: str, labels: list[str]) -> dict[str, str]:
    """Return the cell following each matching label cell."""
    cells = _soup(html).find_all("td")
    matched: dict[str, str] = {}

    for position, cell in enumerate(cells[:-1]):
        label = _cell_text(cell)
        if label in labels and label not in matched:
            matched[label] = _cell_text(cells[position + 1])

    return matched


def parse_emergency_keys(text: str) -> list[str]:
    """Split the emergency keys cell, e.g. "Button: Fire Alarm (Zone 95)"."""
    return EMERGENCY_KEYS.findall(text)


def parse_sync_code(text: str) -> str | None:
    """Extract the sync code from a sync check response."""
    match = SYNC_CODE.match(text.strip())
    if match is None:
        return None
    return match.group("sync_code")


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None


def parse_mfa_methods(text: str) -> tuple[bool, list[MfaMethod]] | None:
    """Parse the verification methods descriptor."""
    data = _load_json(text)
    if not isinstance(data, dict) or not isinstance(data.get("state"), dict):
        return None

    state = data["state"]
    methods: list[MfaMethod] = []
    for item in state.get("mfaProperties") or []:
        if not isinstance(item, dict) or not item.get("id"):
            continue
        methods.append(
            MfaMethod(
                id=str(item["id"]),
                type=str(item.get("type", "")).upper(),
                label=str(item.get("label") or item.get("caption") or item["id"]),
            )
        )

    return bool(state.get("mfaEnabled")), methods


def parse_mfa_detail(text: str) -> str | None:
    """Extract the "detail" field of an MFA command response."""
    data = _load_json(text)
    if not isinstance(data, dict) or not isinstance(data.get("detail"), str):
        return None
    return data["detail"]


def parse_trusted_devices(text: str) -> list[TrustedDevice] | None:
    """Parse the trusted devices from an updates descriptor."""
    data = _load_json(text)
    try:
        devices = data["update"][0]["data"]["client"]["multiFactorAuth"]["state"][
            "trustedDevices"
        ]
    except (KeyError, IndexError, TypeError):
        return None

    if not isinstance(devices, list):
        return None

    return [
        TrustedDevice(
            id=str(device["id"]),
            name=str(device.get("name", "")),
            label=device.get("label"),
        )
        for device in devices
        if isinstance(device, dict) and "id" in device
    ]
