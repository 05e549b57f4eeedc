"""Arm state and sensor status translation for ADT Pulse."""

from __future__ import annotations

import logging

from .const import (
    ARM_AWAY,
    ARM_NIGHT,
    ARM_OFF,
    ARM_STAY,
    BUTTON_ARMING_NIGHT,
    BUTTON_CLEAR_ALARM,
    BUTTON_DISARM,
    CANONICAL_ARM_STATES,
    HREF_SET_ARM_STATE,
    PANEL_STATES,
    PATH_ARM_DISARM,
    SENSOR_FLAG_ALARM,
    SENSOR_FLAG_BYPASSED,
    SENSOR_FLAG_LOW_BATTERY,
    SENSOR_FLAG_TAMPERED,
    SENSOR_FLAG_TROUBLE,
    SENSOR_STATUS_CLOSED,
    SENSOR_STATUS_INSTALLING,
    SENSOR_STATUS_MOTION,
    SENSOR_STATUS_NO_MOTION,
    SENSOR_STATUS_OFFLINE,
    SENSOR_STATUS_OKAY,
    SENSOR_STATUS_OPEN,
    SENSOR_STATUS_TRIPPED,
    SENSOR_STATUS_UNKNOWN,
    SENSOR_TYPE_DOOR_WINDOW,
    SENSOR_TYPE_MOTION,
    WIRE_DISARMED,
    WIRE_DISARMED_WITH_ALARM,
    WIRE_DISARMED_WITH_ALARM_DIRTY,
    WIRE_NIGHT_STAY,
)
from .exceptions import PulseInvalidInputError, PulsePortalFormatError
from .models import OrbSecurityButton, SensorStatus

_LOGGER = logging.getLogger(__name__)

WIRE_TO_CANONICAL = {
    ARM_AWAY: ARM_AWAY,
    WIRE_DISARMED: ARM_OFF,
    WIRE_DISARMED_WITH_ALARM: ARM_OFF,
    WIRE_DISARMED_WITH_ALARM_DIRTY: ARM_OFF,
    ARM_NIGHT: ARM_NIGHT,
    WIRE_NIGHT_STAY: ARM_NIGHT,
    ARM_OFF: ARM_OFF,
    ARM_STAY: ARM_STAY,
}

# The portal renders "clean" values until the first state change of a session
CLEAN_WIRE = {
    ARM_AWAY: ARM_AWAY,
    ARM_NIGHT: ARM_NIGHT,
    ARM_OFF: ARM_OFF,
    ARM_STAY: ARM_STAY,
}
DIRTY_WIRE = {
    ARM_AWAY: ARM_AWAY,
    ARM_NIGHT: WIRE_NIGHT_STAY,
    ARM_OFF: WIRE_DISARMED,
    ARM_STAY: ARM_STAY,
}

ALARM_STATES = (WIRE_DISARMED_WITH_ALARM, WIRE_DISARMED_WITH_ALARM_DIRTY)
DISARMED_STATES = (ARM_OFF, WIRE_DISARMED)

# Sensor (icon, text) lookups
ICON_STATES = {
    "devStatOffline": SENSOR_STATUS_OFFLINE,
    "devStatUnknown": SENSOR_STATUS_UNKNOWN,
    "devStatInstalling": SENSOR_STATUS_INSTALLING,
}
ICON_FLAGS = {
    "devStatAlarm": SENSOR_FLAG_ALARM,
    "devStatLowBatt": SENSOR_FLAG_LOW_BATTERY,
    "devStatTamper": SENSOR_FLAG_TAMPERED,
}
PROBLEM_FLAGS = (SENSOR_FLAG_LOW_BATTERY, SENSOR_FLAG_TAMPERED, SENSOR_FLAG_TROUBLE)
TEXT_FLAGS = {
    "ALARM": SENSOR_FLAG_ALARM,
    "Bypassed": SENSOR_FLAG_BYPASSED,
    "Low Battery": SENSOR_FLAG_LOW_BATTERY,
    "Tampered": SENSOR_FLAG_TAMPERED,
    "Trouble": SENSOR_FLAG_TROUBLE,
}
TEXT_STATES_DEFAULT = {
    "Closed": SENSOR_STATUS_CLOSED,
    "Installing": SENSOR_STATUS_INSTALLING,
    "Motion": SENSOR_STATUS_MOTION,
    "No Motion": SENSOR_STATUS_NO_MOTION,
    "Offline": SENSOR_STATUS_OFFLINE,
    "Okay": SENSOR_STATUS_OKAY,
    "Open": SENSOR_STATUS_OPEN,
    "Tripped": SENSOR_STATUS_TRIPPED,
    "Unknown": SENSOR_STATUS_UNKNOWN,
}
TEXT_STATES_BY_TYPE = {
    SENSOR_TYPE_DOOR_WINDOW: {
        **TEXT_STATES_DEFAULT,
        "Okay": SENSOR_STATUS_CLOSED,
    },
    SENSOR_TYPE_MOTION: {
        **TEXT_STATES_DEFAULT,
        "Okay": SENSOR_STATUS_NO_MOTION,
    },
}


def to_canonical(wire: str | None) -> str | None:
    """Translate a portal arm state into away, night, stay or off."""
    return WIRE_TO_CANONICAL.get(wire or "")


def to_wire(canonical: str, clean: bool = True, alarm: bool = False) -> str:
    """Translate a canonical arm state into the value the portal renders."""
    if canonical not in CANONICAL_ARM_STATES:
        raise PulseInvalidInputError(f"Unknown arm state: {canonical}")
    if alarm and canonical == ARM_OFF:
        return WIRE_DISARMED_WITH_ALARM if clean else WIRE_DISARMED_WITH_ALARM_DIRTY
    return CLEAN_WIRE[canonical] if clean else DIRTY_WIRE[canonical]


def to_clean(wire: str) -> str:
    """Translate a portal arm state into its clean rendering."""
    if wire not in WIRE_TO_CANONICAL:
        raise PulseInvalidInputError(f"Unknown arm state: {wire}")
    return to_wire(WIRE_TO_CANONICAL[wire], True, is_alarm_state(wire))


def to_dirty(wire: str) -> str:
    """Translate a portal arm state into its rendering after a state change."""
    if wire not in WIRE_TO_CANONICAL:
        raise PulseInvalidInputError(f"Unknown arm state: {wire}")
    return to_wire(WIRE_TO_CANONICAL[wire], False, is_alarm_state(wire))


def is_alarm_state(wire: str | None) -> bool:
    """Return True if the portal state is disarmed with an alarm pending."""
    return wire in ALARM_STATES


def is_disarmed(wire: str | None) -> bool:
    """Return True if the portal state is disarmed with no alarm pending."""
    return wire in DISARMED_STATES


def from_panel_state(state: str | None) -> str | None:
    """Translate orb text such as "Armed Away" into a canonical arm state."""
    return PANEL_STATES.get(state or "")


def ready_buttons(buttons: list[OrbSecurityButton]) -> list[OrbSecurityButton]:
    """Return the buttons that can be clicked right now."""
    return [button for button in buttons if not button.disabled]


def current_wire_state(buttons: list[OrbSecurityButton]) -> str | None:
    """Return the portal arm state the rendered buttons transition from."""
    ready = ready_buttons(buttons)
    if not ready:
        return None
    return ready[0].armstate


def replace_stuck_night_button(
    buttons: list[OrbSecurityButton],
    backup_sat: str | None,
    clean: bool,
) -> list[OrbSecurityButton]:
    """Swap a stuck "Arming Night" button for a usable Disarm button.

    The portal sometimes keeps rendering a pending "Arming Night" button after
    the panel armed, leaving nothing to click. A Disarm button is rebuilt from
    the sat code seen at sign-in.
    """
    if backup_sat is None:
        return buttons

    replaced: list[OrbSecurityButton] = []
    for button in buttons:
        if button.disabled and button.title == BUTTON_ARMING_NIGHT:
            _LOGGER.warning('Replacing the stuck "%s" button with a Disarm button', button.title)
            button = OrbSecurityButton(
                disabled=False,
                id="security_button_0",
                title=BUTTON_DISARM,
                index=0,
                total=1,
                loading_text="Disarming",
                relative_url=PATH_ARM_DISARM,
                change_access_code=False,
                href=HREF_SET_ARM_STATE,
                armstate=to_wire(ARM_NIGHT, clean),
                arm=ARM_OFF,
                sat=backup_sat,
                subdomain=button.subdomain,
                generation=button.generation,
            )
        replaced.append(button)
    return replaced


def select_button(
    buttons: list[OrbSecurityButton],
    arm_from: str,
    arm_to: str,
    is_alarm_active: bool = False,
) -> OrbSecurityButton:
    """Select the one ready button that moves the panel from arm_from to arm_to.

    arm_from may be a canonical or a portal value. Clearing an alarm uses the
    dedicated "Clear Alarm" button instead of a plain Disarm.
    """
    if arm_to not in CANONICAL_ARM_STATES:
        raise PulseInvalidInputError(f"Unknown arm state: {arm_to}")
    canonical_from = to_canonical(arm_from)
    if canonical_from is None:
        raise PulseInvalidInputError(f"Unknown arm state: {arm_from}")

    # An armed panel is disarmed first, the alarm is cleared from the disarmed state
    clearing = arm_to == ARM_OFF and (
        is_alarm_state(arm_from) or (is_alarm_active and canonical_from == ARM_OFF)
    )
    matches = []
    for button in ready_buttons(buttons):
        if button.arm != arm_to or to_canonical(button.armstate) != canonical_from:
            continue
        is_clear = button.title == BUTTON_CLEAR_ALARM or is_alarm_state(button.armstate)
        if arm_to == ARM_OFF and is_clear != clearing:
            continue
        matches.append(button)

    if len(matches) != 1:
        raise PulsePortalFormatError(
            f"Expected one button for {arm_from} to {arm_to}, found {len(matches)}"
        )
    return matches[0]


def translate_sensor_status(
    sensor: SensorStatus,
    device_type: str | None = None,
    ignore_problems: bool = False,
) -> SensorStatus:
    """Fill in the canonical state and flags of a sensor from its icon and text.

    With ``ignore_problems`` the low battery, tampered and trouble flags are
    dropped so a faulty device only reports its open or closed state.
    """
    flags: list[str] = []
    state: str | None = ICON_STATES.get(sensor.icon)
    texts = TEXT_STATES_BY_TYPE.get(device_type or "", TEXT_STATES_DEFAULT)

    icon_flag = ICON_FLAGS.get(sensor.icon)
    if icon_flag is not None:
        flags.append(icon_flag)

    for part in (part.strip() for part in sensor.status.split(",")):
        flag = TEXT_FLAGS.get(part)
        if flag is not None:
            if flag not in flags:
                flags.append(flag)
            continue
        if state is None and part in texts:
            state = texts[part]

    if state is None:
        # ALARM with no other part still means the sensor tripped
        state = SENSOR_STATUS_TRIPPED if SENSOR_FLAG_ALARM in flags else SENSOR_STATUS_UNKNOWN

    if ignore_problems:
        flags = [flag for flag in flags if flag not in PROBLEM_FLAGS]

    sensor.device_type = device_type
    sensor.state = state
    sensor.flags = sorted(flags)
    return sensor
