from __future__ import annotations

import pytest

from kycrecon.config import ConfigurationError, get_reconcile_config
from kycrecon.domain.model import EntityRole, casefold_name, exact_name

_VARIABLES = (
    "KYC_LOCKED_ROLES",
    "KYC_NAME_MATCHING",
    "KYC_MAX_CONFLICT_RETRIES",
    *(f"KYC_REQUIRED_FIELDS_{role.upper()}" for role in EntityRole),
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARIABLES:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    config = get_reconcile_config()

    assert config.locked_roles == {EntityRole.DIRECTOR, EntityRole.SHAREHOLDER}
    assert config.name_normalizer() is exact_name
    assert config.max_conflict_retries == 3
    assert config.lock_policy().locks(EntityRole.SHAREHOLDER)
    assert not config.lock_policy().locks(EntityRole.INDIVIDUAL)


def test_locked_roles_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KYC_LOCKED_ROLES", "Individual, company,director,shareholder")

    config = get_reconcile_config()

    assert config.locked_roles == set(EntityRole)


def test_empty_locked_roles_disables_locking(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KYC_LOCKED_ROLES", "")

    assert get_reconcile_config().locked_roles == frozenset()


def test_unknown_role_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KYC_LOCKED_ROLES", "director,auditor")

    with pytest.raises(ConfigurationError) as exc:
        get_reconcile_config()

    assert exc.value.variable == "KYC_LOCKED_ROLES"


def test_normalized_name_matching(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KYC_NAME_MATCHING", "Normalized")

    assert get_reconcile_config().name_normalizer() is casefold_name


def test_invalid_name_matching(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KYC_NAME_MATCHING", "fuzzy")

    with pytest.raises(ConfigurationError, match="KYC_NAME_MATCHING"):
        get_reconcile_config()


@pytest.mark.parametrize("value", ["many", "-1"])
def test_invalid_retry_count(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    monkeypatch.setenv("KYC_MAX_CONFLICT_RETRIES", value)

    with pytest.raises(ConfigurationError):
        get_reconcile_config()


def test_required_fields_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KYC_REQUIRED_FIELDS_DIRECTOR", "email, phone")

    config = get_reconcile_config()

    assert config.compliance.fields_for(EntityRole.DIRECTOR) == ("email", "phone")
    assert "id_number" in config.compliance.fields_for(EntityRole.INDIVIDUAL)


def test_required_fields_override_rejects_unknown(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KYC_REQUIRED_FIELDS_COMPANY", "registration_number,full_name")

    with pytest.raises(ConfigurationError) as exc:
        get_reconcile_config()

    assert exc.value.variable == "KYC_REQUIRED_FIELDS_COMPANY"
