from __future__ import annotations

import json

import pytest

from adt_pulse.auth import AuthState, PulseAuth
from adt_pulse.const import (
    HREF_MFA,
    HREF_MFA_ADD_TRUSTED_DEVICE,
    HREF_MFA_REQUEST_OTP,
    HREF_MFA_VALIDATE_OTP,
    HREF_UPDATES,
)
from adt_pulse.models import Credentials
from fakes import (
    FINGERPRINT,
    MFA_CHALLENGE_PAGE,
    SIGN_IN_PAGE,
    SYSTEM_PAGE,
    FakePortal,
    add_sign_in,
    summary_page,
)

PROXY = "nga/serv/RunRRAProxy"
MFA_LANDING = "mfa/mfaSignIn.jsp?workflow=challenge"

METHODS = json.dumps(
    {
        "state": {
            "mfaEnabled": True,
            "mfaProperties": [
                {"id": "sms-1", "type": "SMS", "label": "Phone (***) ***-1234"},
                {"id": "email-1", "type": "EMAIL", "label": "u***@example.com"},
            ],
        }
    }
)


def _devices(*names: str) -> str:
    return json.dumps(
        {
            "update": [
                {
                    "data": {
                        "client": {
                            "multiFactorAuth": {
                                "state": {
                                    "trustedDevices": [
                                        {"id": f"td-{index}", "name": name, "label": name}
                                        for index, name in enumerate(names, start=1)
                                    ]
                                }
                            }
                        }
                    }
                }
            ]
        }
    )


def _credentials(**overrides: str) -> Credentials:
    values = {
        "subdomain": "portal",
        "username": "user@example.com",
        "password": "hunter2",
        "fingerprint": FINGERPRINT,
    }
    values.update(overrides)
    return Credentials(**values)


def _auth(portal: FakePortal) -> PulseAuth:
    return PulseAuth(_credentials(), session=portal)


def _add_mfa_routes(portal: FakePortal, validate_detail: str = "u=OTP-TOKEN") -> None:
    add_sign_in(portal, landing=MFA_LANDING, body=MFA_CHALLENGE_PAGE)
    portal.add("GET", PROXY, METHODS, href=HREF_MFA)
    portal.add("POST", PROXY, json.dumps({"detail": "OK"}), href=HREF_MFA_REQUEST_OTP)
    portal.add("POST", PROXY, json.dumps({"detail": validate_detail}), href=HREF_MFA_VALIDATE_OTP)
    portal.add("GET", "access/PostSigninProcessServ", summary_page(), final="summary/summary.jsp")
    portal.add("GET", "system/system.jsp", SYSTEM_PAGE)


async def _verified(portal: FakePortal) -> PulseAuth:
    auth = _auth(portal)
    await auth.submit()
    await auth.get_verification_methods()
    await auth.request_code("sms-1")
    result = await auth.validate_code("123456")
    assert result["success"], result
    return auth


def test_credentials_repr_hides_secrets() -> None:
    text = repr(_credentials())
    assert "hunter2" not in text
    assert FINGERPRINT not in text


@pytest.mark.asyncio
async def test_sign_in_without_verification(portal: FakePortal) -> None:
    add_sign_in(portal)
    portal.add("GET", "system/system.jsp", SYSTEM_PAGE)
    auth = _auth(portal)

    result = await auth.submit()
    assert result == {
        "action": "SUBMIT",
        "success": True,
        "info": {"mfa_required": False, "portal_version": "27.0.0-140"},
    }
    assert auth.state is AuthState.SIGNED_IN
    assert auth.client.network_id == "1234567890"

    result = await auth.complete_sign_in()
    assert result["success"]
    assert [sensor["zone"] for sensor in result["info"]["sensors"]] == [1, 7]
    assert auth.state is AuthState.AUTHENTICATED
    assert auth.client.authenticated
    assert portal.sent("GET", "access/PostSigninProcessServ") == []


@pytest.mark.asyncio
async def test_sign_in_posts_credentials(portal: FakePortal) -> None:
    add_sign_in(portal)
    await _auth(portal).submit()

    (request,) = portal.sent("POST", "access/signin.jsp")
    assert request.url.query["e"] == "ns"
    assert request.data["usernameForm"] == "user@example.com"
    assert request.data["passwordForm"] == "hunter2"
    assert request.data["fingerprint"] == FINGERPRINT


@pytest.mark.asyncio
async def test_full_verification_flow(portal: FakePortal) -> None:
    _add_mfa_routes(portal)
    auth = _auth(portal)

    result = await auth.submit()
    assert result["info"]["mfa_required"] is True
    assert auth.state is AuthState.MFA_REQUIRED

    result = await auth.get_verification_methods()
    assert result["success"]
    assert [method["id"] for method in result["info"]["methods"]] == ["sms-1", "email-1"]

    result = await auth.request_code("sms-1")
    assert result == {"action": "REQUEST_CODE", "success": True, "info": None}
    assert auth.state is AuthState.CODE_REQUESTED
    (request,) = portal.sent("POST", PROXY)
    assert request.data == {"id": "sms-1"}
    assert request.headers["X-preAuthToken"] == "ABCDEF0123456789"
    assert request.headers["X-login"] == "user@example.com"

    result = await auth.validate_code("123456")
    assert result["success"]
    assert auth.state is AuthState.CODE_VALIDATED

    result = await auth.complete_sign_in()
    assert result["success"]
    assert result["info"]["portal_version"] == "27.0.0-140"
    assert auth.state is AuthState.AUTHENTICATED
    assert auth.mfa.tokens is None
    assert auth.get_fingerprint() == FINGERPRINT


@pytest.mark.asyncio
async def test_out_of_sequence_calls_send_nothing(portal: FakePortal) -> None:
    auth = _auth(portal)

    for result in (
        await auth.get_verification_methods(),
        await auth.request_code("sms-1"),
        await auth.validate_code("123456"),
        await auth.get_trusted_devices(),
        await auth.add_trusted_device("Laptop"),
        await auth.complete_sign_in(),
    ):
        assert result["success"] is False
        assert result["info"]["error"]["kind"] == "not_initialized"
    assert portal.requests == []


@pytest.mark.asyncio
async def test_unknown_verification_method(portal: FakePortal) -> None:
    _add_mfa_routes(portal)
    auth = _auth(portal)
    await auth.submit()
    await auth.get_verification_methods()

    result = await auth.request_code("voice-9")

    assert result["success"] is False
    assert result["info"]["error"]["type"] == "PulseUnknownMethodError"
    assert result["info"]["error"]["kind"] == "invalid_input"
    assert auth.state is AuthState.MFA_REQUIRED


@pytest.mark.asyncio
@pytest.mark.parametrize("code", ["12345", "1234567", "12a456", ""])
async def test_code_must_be_six_digits(portal: FakePortal, code: str) -> None:
    result = await _auth(portal).validate_code(code)
    assert result["info"]["error"]["kind"] == "invalid_input"
    assert portal.requests == []


@pytest.mark.asyncio
async def test_wrong_code_is_rejected(portal: FakePortal) -> None:
    _add_mfa_routes(portal, validate_detail="Invalid code")
    auth = _auth(portal)
    await auth.submit()
    await auth.get_verification_methods()
    await auth.request_code("sms-1")

    result = await auth.validate_code("000000")

    assert result["success"] is False
    assert result["info"]["error"]["kind"] == "server_rejected"
    assert result["info"]["error"]["reason"] == "invalid_or_expired_code"
    assert auth.state is AuthState.REJECTED


@pytest.mark.asyncio
async def test_invalid_credentials(portal: FakePortal) -> None:
    add_sign_in(
        portal,
        landing="access/signin.jsp?e=ns&partner=adt",
        body='<div id="warnMsgContents">Sign In unsuccessful.<br/>Try again.</div>',
    )
    auth = _auth(portal)

    result = await auth.submit()

    assert result["success"] is False
    assert result["info"]["message"] == "Sign In unsuccessful. Try again."
    assert result["info"]["error"]["reason"] == "invalid_credentials"
    assert auth.state is AuthState.REJECTED


@pytest.mark.asyncio
async def test_unsupported_portal_version(portal: FakePortal) -> None:
    portal.add("GET", "/", SIGN_IN_PAGE, final="/myhome/99.0.0-1/access/signin.jsp")

    result = await _auth(portal).submit()

    assert result["info"]["error"]["kind"] == "unsupported_portal_version"
    assert portal.sent("POST", "access/signin.jsp") == []


@pytest.mark.asyncio
async def test_challenge_without_tokens(portal: FakePortal) -> None:
    add_sign_in(portal, landing=MFA_LANDING, body="<html></html>")
    result = await _auth(portal).submit()
    assert result["info"]["error"]["kind"] == "portal_format_mismatch"


@pytest.mark.asyncio
async def test_credentials_bound_to_region(portal: FakePortal) -> None:
    result = await _auth(portal).submit(_credentials(subdomain="portal-ca"))
    assert result["info"]["error"]["kind"] == "invalid_input"
    assert portal.requests == []


@pytest.mark.asyncio
async def test_add_trusted_device(portal: FakePortal) -> None:
    _add_mfa_routes(portal)
    portal.add("GET", PROXY, _devices("Old Phone"), href=HREF_UPDATES)
    portal.add("GET", PROXY, _devices("Old Phone", "Living Room Tablet"), href=HREF_UPDATES)
    portal.add("POST", PROXY, json.dumps({"detail": "OK"}), href=HREF_MFA_ADD_TRUSTED_DEVICE)
    auth = await _verified(portal)

    result = await auth.get_trusted_devices()
    assert result["info"]["trusted_devices"] == [
        {"id": "td-1", "name": "Old Phone", "label": "Old Phone"}
    ]

    result = await auth.add_trusted_device("Living Room Tablet")

    assert result["success"], result
    assert result["info"] == {"id": "td-2", "name": "Living Room Tablet"}
    assert auth.state is AuthState.DEVICE_TRUSTED
    request = [
        request
        for request in portal.sent("POST", PROXY)
        if request.url.query.get("href") == HREF_MFA_ADD_TRUSTED_DEVICE
    ][0]
    assert request.data == {"name": "Living%20Room%20Tablet"}
    assert request.headers["X-token"] == "u=OTP-TOKEN"
    assert "X-preAuthToken" not in request.headers

    result = await auth.complete_sign_in()
    assert result["success"]


@pytest.mark.asyncio
async def test_duplicate_trusted_device_name(portal: FakePortal) -> None:
    _add_mfa_routes(portal)
    portal.add("GET", PROXY, _devices("Laptop"), href=HREF_UPDATES)
    auth = await _verified(portal)
    await auth.get_trusted_devices()

    result = await auth.add_trusted_device("Laptop")

    assert result["info"]["error"]["kind"] == "invalid_input"
    assert auth.state is AuthState.CODE_VALIDATED


@pytest.mark.asyncio
async def test_failed_trusted_device_keeps_validated_code(portal: FakePortal) -> None:
    _add_mfa_routes(portal)
    portal.add("POST", PROXY, json.dumps({"detail": "Error"}), href=HREF_MFA_ADD_TRUSTED_DEVICE)
    auth = await _verified(portal)

    result = await auth.add_trusted_device("Laptop")

    assert result["info"]["error"]["reason"] == "add_trusted_device_failed"
    assert auth.state is AuthState.CODE_VALIDATED
    assert (await auth.complete_sign_in())["success"]


@pytest.mark.asyncio
async def test_reset_session(portal: FakePortal) -> None:
    add_sign_in(portal)
    auth = _auth(portal)
    await auth.submit()

    auth.reset_session()

    assert auth.state is AuthState.UNAUTHENTICATED
    assert auth.client.portal_version is None
    assert (await auth.complete_sign_in())["info"]["error"]["kind"] == "not_initialized"
