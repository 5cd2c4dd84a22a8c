from datetime import datetime, timedelta, timezone

import pytest
from cryptography.x509.oid import NameOID

from tlsgen.crypto import template as template_mod
from tlsgen.crypto.template import BASE_KEY_USAGE, new_template
from tlsgen.errors import RandomnessError
from tlsgen.options import CertificateOptions


def _config():
    return (CertificateOptions.for_leaf()
            .common_name("svc.local")
            .organization("Acme", "Acme Labs")
            .build())


def test_validity_window_is_one_year_from_now():
    now = datetime(2024, 5, 1, 12, 30, 15, 250000, tzinfo=timezone.utc)
    tmpl = new_template(_config(), now=now)
    assert tmpl.not_before == now.replace(microsecond=0)
    assert tmpl.not_after - tmpl.not_before == timedelta(days=365)


def test_serial_is_positive_and_fits_128_bits():
    serials = {new_template(_config()).serial_number for _ in range(32)}
    assert len(serials) == 32
    assert all(0 < s < 2 ** 128 for s in serials)


def test_baseline_fields_only():
    tmpl = new_template(_config())
    assert tmpl.key_usage == set(BASE_KEY_USAGE)
    assert tmpl.ext_key_usage == []
    assert tmpl.ip_addresses == [] and tmpl.dns_names == []
    assert tmpl.is_ca is False
    assert tmpl.basic_constraints_valid is True


def test_templates_do_not_share_key_usage():
    a = new_template(_config())
    b = new_template(_config())
    a.key_usage.add("key_cert_sign")
    assert "key_cert_sign" not in b.key_usage


def test_rng_failure_raises_randomness_error(monkeypatch):
    def boom(n):
        raise OSError("no entropy")

    monkeypatch.setattr(template_mod.os, "urandom", boom)
    with pytest.raises(RandomnessError):
        new_template(_config())


def test_zero_serial_is_redrawn(monkeypatch):
    draws = iter([bytes(16), b"\x00" * 15 + b"\x07"])
    monkeypatch.setattr(template_mod.os, "urandom", lambda n: next(draws))
    assert new_template(_config()).serial_number == 7


def test_subject_name_order_and_multi_values():
    name = new_template(_config()).subject_name()
    oids = [attr.oid for attr in name]
    assert oids == [
        NameOID.COUNTRY_NAME,
        NameOID.STATE_OR_PROVINCE_NAME,
        NameOID.LOCALITY_NAME,
        NameOID.ORGANIZATION_NAME,
        NameOID.ORGANIZATION_NAME,
        NameOID.ORGANIZATIONAL_UNIT_NAME,
        NameOID.COMMON_NAME,
    ]
    orgs = [a.value for a in name.get_attributes_for_oid(NameOID.ORGANIZATION_NAME)]
    assert orgs == ["Acme", "Acme Labs"]


def test_empty_common_name_is_omitted():
    config = CertificateOptions.for_leaf().common_name("").build()
    name = new_template(config).subject_name()
    assert name.get_attributes_for_oid(NameOID.COMMON_NAME) == []
