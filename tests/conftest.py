# conftest.py

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock
import tempfile

import pytest

from ironlicensing import global_client
from ironlicensing.cache import OfflineCache
from ironlicensing.config import ClientConfig
from ironlicensing.license_client import LicenseClient
from ironlicensing.machine_identity import MachineIdentity
from ironlicensing.models import Activation, Feature, License, LicenseResult, LicenseStatus, LicenseType
from ironlicensing.transport import RemoteAuthorityClient

LICENSE_KEY = "IRON-AAAA-BBBB-CCCC-DDDD"
MACHINE_ID = "11111111-2222-3333-4444-555555555555"


class FakeClock:
    """Settable clock for cache-window tests"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


def make_license(key=LICENSE_KEY, status=LicenseStatus.VALID, features=("export-pdf",), **kwargs) -> License:
    return License(
        id="lic_1",
        key=key,
        status=status,
        license_type=kwargs.pop("license_type", LicenseType.SUBSCRIPTION),
        features=[Feature(key=name, name=name.title()) for name in features],
        max_activations=kwargs.pop("max_activations", 3),
        current_activations=kwargs.pop("current_activations", 1),
        **kwargs,
    )


@pytest.fixture
def temp_dir():
    """Provide temporary directory"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config(temp_dir):
    return ClientConfig(
        public_key="pk_test_123",
        product_slug="acme-editor",
        data_dir=temp_dir,
        cache_validation_minutes=60,
        offline_grace_days=7,
    )


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def mock_transport():
    """Remote authority double; every call succeeds with a valid license by default"""
    transport = Mock(spec=RemoteAuthorityClient)
    transport.validate.return_value = LicenseResult.success(make_license())
    transport.activate.return_value = LicenseResult(
        valid=True,
        license=make_license(),
        activations=[Activation(id="act_1", machine_id=MACHINE_ID, machine_name="build-box", platform="linux")],
    )
    transport.deactivate.return_value = True
    transport.start_trial.return_value = LicenseResult.success(
        make_license(key="TRIAL-0001", status=LicenseStatus.TRIAL, license_type=LicenseType.TRIAL)
    )
    transport.get_tiers.return_value = []
    return transport


@pytest.fixture
def cache(config):
    return OfflineCache(config)


@pytest.fixture
def license_client(config, mock_transport, cache, clock):
    machine_identity = Mock(spec=MachineIdentity)
    machine_identity.get_or_create.return_value = MACHINE_ID
    client = LicenseClient(
        config,
        transport=mock_transport,
        cache=cache,
        machine_identity=machine_identity,
        hostname_provider=lambda: "build-box",
        clock=clock,
    )
    yield client
    client.close()


@pytest.fixture(autouse=True)
def reset_global_client():
    yield
    global_client.shutdown()
