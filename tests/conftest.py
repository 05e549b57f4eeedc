from __future__ import annotations

import pytest

from adt_pulse.api import AdtPulse
from fakes import FakePortal, make_config


@pytest.fixture
def portal() -> FakePortal:
    return FakePortal()


@pytest.fixture
def api(portal: FakePortal) -> AdtPulse:
    return AdtPulse(make_config(), session=portal, arm_settle_delay=0, retry_backoff=0)
