"""Sign-in and multi-factor authentication for the ADT Pulse portal."""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any
from urllib.parse import quote

import aiohttp

from .config import validate_credentials
from .const import (
    HREF_MFA,
    HREF_MFA_ADD_TRUSTED_DEVICE,
    HREF_MFA_REQUEST_OTP,
    HREF_MFA_VALIDATE_OTP,
    HREF_UPDATES,
    MFA_HEADERS,
    MFA_OTP_LENGTH,
    PATH_POST_SIGN_IN,
    PATH_RRA_PROXY,
    PATH_SIGN_IN,
    PATH_SYSTEM,
    TRUSTED_DEVICE_NAME_MAX_LENGTH,
)
from .exceptions import (
    PulseError,
    PulseInvalidInputError,
    PulseNotInitializedError,
    PulsePortalFormatError,
    PulseServerRejectedError,
    PulseUnknownMethodError,
    PulseUnsupportedPortalVersionError,
    pulse_operation,
)
from .extractor import (
    extract_mfa_tokens,
    extract_network_id,
    extract_sat_code,
    is_supported_portal_version,
    match_path,
    parse_error_message,
    parse_mfa_detail,
    parse_mfa_methods,
    parse_sensors_table,
    parse_trusted_devices,
)
from .models import Credentials, MfaState, MfaTokens, TrustedDevice
from .session import PortalResponse, PulseSession, ResponseKind

_LOGGER = logging.getLogger(__name__)

OTP_CODE = re.compile(rf"^\d{{{MFA_OTP_LENGTH}}}$")


class AuthState(Enum):
    """States of the sign-in flow."""

    UNAUTHENTICATED = "unauthenticated"
    CREDENTIALS_SUBMITTED = "credentials_submitted"
    MFA_REQUIRED = "mfa_required"
    METHOD_SELECTED = "method_selected"
    CODE_REQUESTED = "code_requested"
    CODE_VALIDATED = "code_validated"
    DEVICE_TRUST_PENDING = "device_trust_pending"
    DEVICE_TRUSTED = "device_trusted"
    SIGNED_IN = "signed_in"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"


class PulseAuth:
    """Walk a device through sign-in and multi-factor verification."""

    def __init__(
        self,
        credentials: Credentials,
        session: aiohttp.ClientSession | None = None,
        base_url: str | None = None,
        client: PulseSession | None = None,
    ) -> None:
        """Initialize the orchestrator."""
        self._credentials = credentials
        self.client = client or PulseSession(
            credentials.subdomain, session=session, base_url=base_url
        )
        self.state = AuthState.UNAUTHENTICATED
        self.mfa = MfaState()

    def _require(self, *states: AuthState) -> None:
        if self.state not in states:
            raise PulseNotInitializedError(
                f"Sign-in is {self.state.value}, expected "
                + " or ".join(state.value for state in states)
            )

    def _tokens(self) -> MfaTokens:
        if self.mfa.tokens is None:
            raise PulseNotInitializedError("Verification challenge was not loaded")
        return self.mfa.tokens

    def _proxy_url(self, query: str) -> str:
        return self.client.url(f"{PATH_RRA_PROXY}?{query}")

    def _pre_auth_headers(self) -> dict[str, str]:
        return {**MFA_HEADERS, **self._tokens().headers()}

    def _token_headers(self) -> dict[str, str]:
        tokens = self._tokens()
        headers = {**MFA_HEADERS, **tokens.headers()}
        headers.pop("X-preAuthToken")
        headers["X-token"] = self.mfa.otp_token or ""
        return headers

    def _store_summary_tokens(self, response: PortalResponse) -> None:
        self.client.network_id = extract_network_id(response.text)
        self.client.backup_sat = extract_sat_code(response.text)

    async def sign_in(self, credentials: Credentials | None = None) -> AuthState:
        """Load the sign-in page and post the credentials.

        Shared by ``submit`` and ``AdtPulse.login``. Returns SIGNED_IN or
        MFA_REQUIRED, raises for anything else.
        """
        if credentials is not None:
            if credentials.subdomain != self._credentials.subdomain:
                raise PulseInvalidInputError(
                    "Credentials are bound to the "
                    f"{self._credentials.subdomain} region"
                )
            self._credentials = credentials
        validate_credentials(self._credentials)

        self.client.reset()
        self.mfa = MfaState()
        self.state = AuthState.UNAUTHENTICATED

        response = await self.client.request(
            "GET", f"{self.client.base_url}/", expect="sign_in", idempotent=True
        )
        self.client.ensure_success(response, "sign-in")
        if not is_supported_portal_version(response.version):
            raise PulseUnsupportedPortalVersionError(str(response.version))
        self.client.portal_version = response.version

        self.state = AuthState.CREDENTIALS_SUBMITTED
        response = await self.client.request(
            "POST",
            self.client.url(f"{PATH_SIGN_IN}?e=ns&partner=adt"),
            data={
                "usernameForm": self._credentials.username,
                "passwordForm": self._credentials.password,
                "sun": "yes",
                "networkid": "",
                "fingerprint": self._credentials.fingerprint,
            },
            headers={"Referer": self.client.url(f"{PATH_SIGN_IN}?e=ns&partner=adt")},
            expect="summary",
        )
        if response.kind in (ResponseKind.SERVER_ERROR, ResponseKind.NOT_FOUND):
            self.client.ensure_success(response, "summary")

        if response.kind is ResponseKind.SUCCESS:
            self._store_summary_tokens(response)
            self.state = AuthState.SIGNED_IN
            _LOGGER.debug("Signed in without verification")
            return self.state

        if match_path("mfa_challenge", response.path) is not None:
            tokens = extract_mfa_tokens(response.text)
            if tokens is None:
                raise PulsePortalFormatError(
                    "Verification challenge page is missing its tokens"
                )
            self.mfa.tokens = tokens
            self.state = AuthState.MFA_REQUIRED
            _LOGGER.debug("Verification required")
            return self.state

        if (
            match_path("sign_in_failed", response.path) is not None
            or match_path("sign_in", response.path) is not None
        ):
            self.state = AuthState.REJECTED
            raise PulseServerRejectedError(
                parse_error_message(response.text) or "Sign-in was rejected",
                "invalid_credentials",
            )

        self.client.ensure_success(response, "summary")
        raise PulsePortalFormatError(f'"{response.path}" is not the summary page')

    @pulse_operation("SUBMIT")
    async def submit(self, credentials: Credentials | None = None) -> dict[str, Any]:
        """Submit the credentials, starting a fresh sign-in."""
        state = await self.sign_in(credentials)
        return {
            "mfa_required": state is AuthState.MFA_REQUIRED,
            "portal_version": self.client.portal_version,
        }

    @pulse_operation("GET_VERIFICATION_METHODS")
    async def get_verification_methods(self) -> dict[str, Any]:
        """Fetch the verification methods offered for this account."""
        self._require(AuthState.MFA_REQUIRED)
        tokens = self._tokens()

        response = await self.client.request(
            "GET",
            self._proxy_url(f"href={HREF_MFA}&sat={tokens.sat}"),
            headers=self._pre_auth_headers(),
            expect="rra_proxy",
        )
        self.client.ensure_success(response, "verification methods")

        parsed = parse_mfa_methods(response.text)
        if parsed is None or not parsed[1]:
            raise PulsePortalFormatError("No verification methods were found")

        self.mfa.enabled, self.mfa.methods = parsed
        return {
            "enabled": self.mfa.enabled,
            "methods": [
                {"id": method.id, "type": method.type, "label": method.label}
                for method in self.mfa.methods
            ],
        }

    @pulse_operation("REQUEST_CODE")
    async def request_code(self, method_id: str) -> None:
        """Ask the portal to send a verification code."""
        self._require(
            AuthState.MFA_REQUIRED, AuthState.METHOD_SELECTED, AuthState.CODE_REQUESTED
        )
        if not self.mfa.methods:
            raise PulseNotInitializedError("Verification methods were not fetched")

        method = next((item for item in self.mfa.methods if item.id == method_id), None)
        if method is None:
            raise PulseUnknownMethodError(f"Unknown verification method: {method_id}")

        self.mfa.selected_method = method
        self.state = AuthState.METHOD_SELECTED

        response = await self.client.request(
            "POST",
            self._proxy_url(f"href={HREF_MFA_REQUEST_OTP}&sat={self._tokens().sat}"),
            data={"id": method.id},
            headers=self._pre_auth_headers(),
            expect="rra_proxy",
        )
        self.client.ensure_success(response, "request code")

        detail = parse_mfa_detail(response.text)
        if detail is None:
            raise PulsePortalFormatError("Request code response has no detail")
        if "OK" not in detail:
            raise PulseServerRejectedError(
                f"Verification code was not sent: {detail}", "request_code_failed"
            )

        self.state = AuthState.CODE_REQUESTED
        _LOGGER.debug("Verification code requested via %s", method.type)

    @pulse_operation("VALIDATE_CODE")
    async def validate_code(self, otp_code: str) -> None:
        """Validate the verification code the user received."""
        if not isinstance(otp_code, str) or OTP_CODE.match(otp_code) is None:
            raise PulseInvalidInputError(
                f"Verification code must be exactly {MFA_OTP_LENGTH} digits"
            )
        self._require(AuthState.CODE_REQUESTED)

        response = await self.client.request(
            "POST",
            self._proxy_url(f"href={HREF_MFA_VALIDATE_OTP}&sat={self._tokens().sat}"),
            data={"otp": otp_code},
            headers=self._pre_auth_headers(),
            expect="rra_proxy",
        )
        self.client.ensure_success(response, "validate code")

        detail = parse_mfa_detail(response.text)
        if detail is None or not detail.startswith("u="):
            self.state = AuthState.REJECTED
            raise PulseServerRejectedError(
                "The verification code submitted is either invalidated or expired",
                "invalid_or_expired_code",
            )

        self.mfa.otp_token = detail
        self.state = AuthState.CODE_VALIDATED

    async def _fetch_trusted_devices(self) -> list[TrustedDevice]:
        sat = self._tokens().sat
        response = await self.client.request(
            "GET",
            self._proxy_url(
                f"only=client.multiFactorAuth&exclude=&sat={sat}&href={HREF_UPDATES}&sat={sat}&"
            ),
            headers=self._token_headers(),
            expect="rra_proxy",
            idempotent=True,
        )
        self.client.ensure_success(response, "trusted devices")

        devices = parse_trusted_devices(response.text)
        if devices is None:
            raise PulsePortalFormatError("Trusted devices were not found")
        self.mfa.trusted_devices = devices
        return devices

    @pulse_operation("GET_TRUSTED_DEVICES")
    async def get_trusted_devices(self) -> dict[str, Any]:
        """List the devices already trusted to skip verification."""
        self._require(AuthState.CODE_VALIDATED, AuthState.DEVICE_TRUSTED)
        devices = await self._fetch_trusted_devices()
        return {
            "trusted_devices": [
                {"id": device.id, "name": device.name, "label": device.label}
                for device in devices
            ]
        }

    @pulse_operation("ADD_TRUSTED_DEVICE")
    async def add_trusted_device(self, device_name: str) -> dict[str, Any]:
        """Trust this device so future sign-ins skip verification."""
        if (
            not isinstance(device_name, str)
            or not 1 <= len(device_name) <= TRUSTED_DEVICE_NAME_MAX_LENGTH
        ):
            raise PulseInvalidInputError(
                f"Device name must be 1 to {TRUSTED_DEVICE_NAME_MAX_LENGTH} characters"
            )
        self._require(AuthState.CODE_VALIDATED)

        # The portal stores names URL encoded, and the form encodes them again
        encoded_name = quote(device_name, safe="!'()*")
        if any(device.name in (device_name, encoded_name) for device in self.mfa.trusted_devices):
            raise PulseInvalidInputError(f'A trusted device named "{device_name}" already exists')

        self.state = AuthState.DEVICE_TRUST_PENDING
        try:
            response = await self.client.request(
                "POST",
                self._proxy_url(
                    f"href={HREF_MFA_ADD_TRUSTED_DEVICE}&sat={self._tokens().sat}"
                ),
                data={"name": encoded_name},
                headers=self._token_headers(),
                expect="rra_proxy",
            )
            self.client.ensure_success(response, "add trusted device")
            detail = parse_mfa_detail(response.text)
            if detail is None or "OK" not in detail:
                raise PulseServerRejectedError(
                    f"The trusted device could not be added: {detail}",
                    "add_trusted_device_failed",
                )
        except PulseError:
            self.state = AuthState.CODE_VALIDATED
            raise

        devices = await self._fetch_trusted_devices()
        device = next(
            (item for item in devices if item.name in (device_name, encoded_name)), None
        )
        self.mfa.trusted_device_id = device.id if device is not None else None
        self.state = AuthState.DEVICE_TRUSTED
        return {"id": self.mfa.trusted_device_id, "name": device_name}

    @pulse_operation("COMPLETE_SIGN_IN")
    async def complete_sign_in(self) -> dict[str, Any]:
        """Finish signing in and enumerate the installed sensors."""
        self._require(AuthState.SIGNED_IN, AuthState.CODE_VALIDATED, AuthState.DEVICE_TRUSTED)

        if self.state is not AuthState.SIGNED_IN:
            response = await self.client.request(
                "GET", self.client.url(PATH_POST_SIGN_IN), expect="summary"
            )
            self.client.ensure_success(response, "summary")
            self._store_summary_tokens(response)
            self.state = AuthState.SIGNED_IN

        response = await self.client.request(
            "GET", self.client.url(PATH_SYSTEM), expect="system", idempotent=True
        )
        self.client.ensure_success(response, "system")
        sensors = parse_sensors_table(response.text)

        self.client.authenticated = True
        self.mfa = MfaState()
        self.state = AuthState.AUTHENTICATED
        _LOGGER.info("Signed in to %s, found %d sensors", self.client.subdomain, len(sensors))
        return {
            "portal_version": self.client.portal_version,
            "sensors": [sensor.as_dict() for sensor in sensors],
        }

    def get_fingerprint(self) -> str:
        """Return the fingerprint supplied with the credentials."""
        return self._credentials.fingerprint

    def reset_session(self) -> None:
        """Forget the session and start over."""
        self.client.reset()
        self.mfa = MfaState()
        self.state = AuthState.UNAUTHENTICATED

    async def close(self) -> None:
        """Close the HTTP session if we own it."""
        await self.client.close()
