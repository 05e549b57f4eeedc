"""Force-arm escalation after the portal rejects a plain arm."""

from __future__ import annotations

import logging
import re
from enum import Enum

from .const import DEFAULT_FORCE_ARM_STATUSES, WIRE_FORCE_ARM
from .exceptions import (
    PulseNotInitializedError,
    PulseServerRejectedError,
    PulseStaleTokenError,
)
from .extractor import parse_arm_disarm_message, parse_do_submit_handlers
from .models import DoSubmitHandler

_LOGGER = logging.getLogger(__name__)


class ForceArmState(Enum):
    """States of a force-arm escalation."""

    IDLE = "idle"
    ARM_REQUESTED = "arm_requested"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    FORCE_ARM_REQUESTED = "force_arm_requested"
    FORCE_ARMED = "force_armed"
    FAILED = "failed"


class ForceArmEscalation:
    """Track one arm attempt and whether it may be escalated to force-arm.

    Escalating is only legal right after the portal rejected the arm with a
    response carrying fresh force-arm tokens. Panel status texts matching
    ``statuses`` only explain why the arm was rejected.
    """

    def __init__(
        self,
        version: str,
        statuses: list[str] | None = None,
    ) -> None:
        """Initialize the escalation."""
        self._prefix = f"/myhome/{version}/"
        self._statuses = [
            re.compile(pattern)
            for pattern in (DEFAULT_FORCE_ARM_STATUSES if statuses is None else statuses)
        ]
        self.state = ForceArmState.IDLE
        self.message: str | None = None
        self.reason: str | None = None
        self._handler: DoSubmitHandler | None = None

    def _require(self, *states: ForceArmState) -> None:
        if self.state not in states:
            raise PulseNotInitializedError(
                f"Force-arm escalation is {self.state.value}, expected "
                + " or ".join(state.value for state in states)
            )

    def classify(self, panel_status: str | None) -> str | None:
        """Return the panel status if it explains a rejected arm."""
        if panel_status is None:
            return None
        for pattern in self._statuses:
            if pattern.match(panel_status):
                return panel_status
        return None

    def arm_requested(self, panel_status: str | None = None) -> None:
        """Record that a plain arm was sent."""
        self._require(ForceArmState.IDLE)
        self.reason = self.classify(panel_status)
        self.state = ForceArmState.ARM_REQUESTED

    def record_response(self, html: str) -> ForceArmState:
        """Classify the portal's answer to the plain arm."""
        self._require(ForceArmState.ARM_REQUESTED)
        self.message = parse_arm_disarm_message(html)

        handlers = parse_do_submit_handlers(html)
        if not handlers:
            self.state = ForceArmState.ACCEPTED
            return self.state

        handler = next(
            (handler for handler in handlers if handler.armstate == WIRE_FORCE_ARM), None
        )
        if handler is None:
            self.state = ForceArmState.FAILED
            raise PulseServerRejectedError(
                self.message or "Arm was rejected and cannot be forced",
                "force_arm_unavailable",
            )

        if not handler.relative_url.startswith(self._prefix):
            self.state = ForceArmState.FAILED
            raise PulseStaleTokenError(
                f"Force-arm handler targets {handler.relative_url}, not {self._prefix}"
            )

        _LOGGER.debug(
            "Arm rejected (%s), force-arm available", self.reason or self.message
        )
        self._handler = handler
        self.state = ForceArmState.REJECTED
        return self.state

    def force_arm_command(self) -> DoSubmitHandler:
        """Return the force-arm handler, once, after a rejection."""
        self._require(ForceArmState.REJECTED)
        handler = self._handler
        if handler is None:
            raise PulseNotInitializedError("Force-arm handler was already used")
        self._handler = None
        self.state = ForceArmState.FORCE_ARM_REQUESTED
        return handler

    def record_force_arm_response(self, body: str) -> bool:
        """Record the portal's answer to the force-arm command."""
        self._require(ForceArmState.FORCE_ARM_REQUESTED)
        if "1.0-OKAY" in body:
            self.state = ForceArmState.FORCE_ARMED
            return True
        self.state = ForceArmState.FAILED
        return False
