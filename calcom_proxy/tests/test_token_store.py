"""Tests for the credential store: merge-upsert, removal, legacy migration."""
import pytest

from calcom_proxy.errors import CredentialNotConfigured
from calcom_proxy.models import CalcomToken, LegacyCalcomToken


def _add_legacy(session_factory, uid, api_key, username):
    with session_factory() as db:
        db.add(LegacyCalcomToken(mentor_uid=uid, api_key=api_key, cal_com_username=username))
        db.commit()


def test_store_then_load(token_store):
    token_store.store("m1", "k1", "u1")
    credential = token_store.load("m1")
    assert credential is not None
    assert credential.api_key == "k1"
    assert credential.cal_com_username == "u1"
    assert credential.migrated_from_legacy is False
    assert credential.created_at is not None
    assert credential.updated_at is not None


def test_second_store_merges_and_keeps_created_at(token_store):
    first = token_store.store("m1", "k1", "u1")
    second = token_store.store("m1", "k2", "u2")
    assert second.api_key == "k2"
    assert second.cal_com_username == "u2"
    assert second.created_at == first.created_at
    assert second.updated_at >= first.updated_at


def test_store_keeps_migration_flag(token_store, session_factory):
    _add_legacy(session_factory, "m1", "k1", "u1")
    token_store.load("m1")
    updated = token_store.store("m1", "k9", "u9")
    assert updated.migrated_from_legacy is True


def test_load_missing_returns_none(token_store):
    assert token_store.load("nobody") is None


def test_incomplete_record_is_treated_as_absent(token_store, session_factory):
    with session_factory() as db:
        db.add(CalcomToken(mentor_uid="m1", api_key="k1", cal_com_username=""))
        db.commit()
    assert token_store.load("m1") is None
    with pytest.raises(CredentialNotConfigured):
        token_store.require("m1")


def test_require_returns_usable_credential(token_store):
    token_store.store("m1", "k1", "u1")
    assert token_store.require("m1").api_key == "k1"


def test_require_missing_raises(token_store):
    with pytest.raises(CredentialNotConfigured) as exc:
        token_store.require("nobody")
    assert exc.value.message == "Cal.com token not configured"


def test_remove_is_idempotent(token_store):
    token_store.store("m1", "k1", "u1")
    token_store.remove("m1")
    token_store.remove("m1")
    assert token_store.load("m1") is None


def test_legacy_record_is_migrated_then_deleted(token_store, session_factory):
    _add_legacy(session_factory, "m1", "k2", "u2")
    credential = token_store.load("m1")
    assert credential is not None
    assert credential.api_key == "k2"
    assert credential.cal_com_username == "u2"
    assert credential.migrated_from_legacy is True

    with session_factory() as db:
        assert db.get(LegacyCalcomToken, "m1") is None
        row = db.get(CalcomToken, "m1")
        assert row is not None
        assert row.migrated_from_legacy is True
        assert row.created_at is not None

    # Second read comes from the current table
    again = token_store.load("m1")
    assert again.cal_com_username == "u2"


def test_incomplete_legacy_record_is_not_migrated(token_store, session_factory):
    _add_legacy(session_factory, "m1", "k2", None)
    assert token_store.load("m1") is None
    with session_factory() as db:
        assert db.get(CalcomToken, "m1") is None
        assert db.get(LegacyCalcomToken, "m1") is not None


def test_current_record_wins_over_legacy(token_store, session_factory):
    token_store.store("m1", "k-new", "u-new")
    _add_legacy(session_factory, "m1", "k-old", "u-old")
    assert token_store.load("m1").api_key == "k-new"
    with session_factory() as db:
        assert db.get(LegacyCalcomToken, "m1") is not None
