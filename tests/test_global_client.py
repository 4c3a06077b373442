"""
Tests for the process-wide client
"""
from unittest.mock import patch

import pytest

import ironlicensing
from ironlicensing import global_client
from ironlicensing.errors import AlreadyInitialized, FeatureRequired, PublicKeyRequired, Uninitialized
from ironlicensing.models import LicenseResult, LicenseStatus

from conftest import LICENSE_KEY, make_license


def test_free_functions_fail_before_init():
    with pytest.raises(Uninitialized):
        ironlicensing.validate(LICENSE_KEY)
    with pytest.raises(Uninitialized):
        ironlicensing.has_feature("export-pdf")
    with pytest.raises(Uninitialized):
        ironlicensing.status()
    with pytest.raises(Uninitialized):
        ironlicensing.get_client()


def test_init_once(temp_dir):
    client = ironlicensing.init("pk_test_123", "acme-editor", data_dir=temp_dir)

    assert ironlicensing.get_client() is client
    assert client.config.data_dir == temp_dir
    assert ironlicensing.status() is LicenseStatus.NOT_ACTIVATED
    assert ironlicensing.machine_id() == client.machine_id()


def test_second_init_raises(temp_dir):
    first = ironlicensing.init("pk_test_123", "acme-editor", data_dir=temp_dir)

    with pytest.raises(AlreadyInitialized):
        ironlicensing.init("pk_other", "other-product", data_dir=temp_dir)
    assert ironlicensing.get_client() is first


def test_failed_init_leaves_uninitialized(temp_dir):
    with pytest.raises(PublicKeyRequired):
        ironlicensing.init("", "acme-editor", data_dir=temp_dir)
    assert not global_client.is_initialized()


def test_shutdown_allows_reinit(temp_dir):
    ironlicensing.init("pk_test_123", "acme-editor", data_dir=temp_dir)
    ironlicensing.shutdown()

    with pytest.raises(Uninitialized):
        ironlicensing.get_client()
    ironlicensing.init("pk_test_123", "acme-editor", data_dir=temp_dir)


def test_free_functions_delegate(temp_dir):
    client = ironlicensing.init("pk_test_123", "acme-editor", data_dir=temp_dir)
    with patch.object(client.transport, "validate", return_value=LicenseResult.success(make_license())):
        result = ironlicensing.validate(LICENSE_KEY)

    assert result.valid
    assert ironlicensing.is_licensed()
    assert not ironlicensing.is_trial()
    assert ironlicensing.has_feature("export-pdf")
    assert ironlicensing.get_feature("export-pdf").key == "export-pdf"
    assert ironlicensing.get_license().key == LICENSE_KEY
    ironlicensing.require_feature("export-pdf")
    with pytest.raises(FeatureRequired):
        ironlicensing.require_feature("cloud-sync")
