"""Data models for the ADT Pulse portal client."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class Credentials:
    """Sign-in credentials for one portal region."""

    subdomain: str
    username: str
    password: str
    fingerprint: str

    def __repr__(self) -> str:
        # Never leak secrets through logs or tracebacks
        return f"Credentials(subdomain={self.subdomain!r}, username={self.username!r})"


@dataclass
class MfaMethod:
    """A verification method offered by the portal."""

    id: str
    type: str
    label: str


@dataclass
class TrustedDevice:
    """A device that may skip verification on sign-in."""

    id: str
    name: str
    label: str | None = None


@dataclass
class MfaTokens:
    """Header values scraped from the verification challenge page."""

    client_type: str
    locale: str
    login: str
    pre_auth_token: str
    sat: str

    def headers(self) -> dict[str, str]:
        """Return the request headers carrying these tokens."""
        return {
            "X-clientType": self.client_type,
            "X-locale": self.locale,
            "X-login": self.login,
            "X-preAuthToken": self.pre_auth_token,
        }


@dataclass
class MfaState:
    """Progress of a multi-factor sign-in."""

    tokens: MfaTokens | None = None
    enabled: bool = False
    methods: list[MfaMethod] = field(default_factory=list)
    selected_method: MfaMethod | None = None
    otp_token: str | None = None
    trusted_devices: list[TrustedDevice] = field(default_factory=list)
    trusted_device_id: str | None = None


@dataclass
class PanelStatus:
    """Panel state rendered in the summary orb."""

    state: str | None
    status: str | None
    note: str | None = None
    arm_state: str | None = None
    open_sensors: int = 0

    def as_dict(self) -> dict[str, Any]:
        """Return the status as a plain dict."""
        return asdict(self)


@dataclass
class OrbSecurityButton:
    """An arm or disarm button rendered in the summary orb.

    Ready buttons carry the tokens needed for exactly one transition. Pending
    buttons (disabled while the panel changes state) carry only their title.
    """

    disabled: bool
    id: str | None
    title: str | None
    index: int | None = None
    total: int | None = None
    loading_text: str | None = None
    relative_url: str | None = None
    change_access_code: bool = False
    href: str | None = None
    armstate: str | None = None
    arm: str | None = None
    sat: str | None = None
    subdomain: str | None = None
    generation: int = 0

    def as_dict(self) -> dict[str, Any]:
        """Return the button as a plain dict without scraped tokens."""
        data = asdict(self)
        data.pop("sat")
        return data


@dataclass
class DoSubmitHandler:
    """A force-arm or cancel handler rendered after a rejected arm."""

    relative_url: str
    sat: str
    href: str
    armstate: str | None = None
    arm: str | None = None


@dataclass
class SensorStatus:
    """A sensor row from the summary orb."""

    zone: int
    name: str
    icon: str
    status: str
    device_type: str | None = None
    state: str | None = None
    flags: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        """Return the sensor status as a plain dict."""
        return asdict(self)


@dataclass
class SensorInformation:
    """A sensor row from the system devices table."""

    device_id: int
    name: str
    zone: int
    device_type: str
    adt_type: str | None
    status: str

    @property
    def online(self) -> bool:
        """Return True if the portal reports the sensor online."""
        return self.status == "Online"

    def as_dict(self) -> dict[str, Any]:
        """Return the sensor information as a plain dict."""
        data = asdict(self)
        data["online"] = self.online
        return data
