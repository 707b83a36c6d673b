from decimal import Decimal

import pytest

from gold_loan.exceptions import InvalidSchemeConfig, InvalidThresholds, UnknownScheme
from gold_loan_web.scheme_store import LoanSchemeModel, SchemeStore, utcnow


@pytest.fixture
def store(database_url):
    store = SchemeStore(database_url)
    store.seed_defaults()
    return store


def test_seed_defaults_is_idempotent(store):
    store.seed_defaults()
    assert [s.slug for s in store.list_schemes()] == ["scheme-1", "scheme-2", "scheme-3", "scheme-4"]


def test_resolve_by_slug_or_id(store):
    by_slug = store.resolve(slug="scheme-2")
    by_id = store.resolve(scheme_id=by_slug.id)
    assert by_slug == by_id
    assert by_slug.base_rate == Decimal("2")
    assert by_slug.config.thresholds[0].days == 7


def test_resolve_unknown_scheme(store):
    with pytest.raises(UnknownScheme):
        store.resolve(slug="scheme-99")
    with pytest.raises(UnknownScheme):
        store.resolve()


def test_inactive_scheme_does_not_resolve(store):
    scheme = store.resolve(slug="scheme-3")
    store.save_scheme({"status": "inactive"}, scheme_id=scheme.id)
    with pytest.raises(UnknownScheme):
        store.resolve(slug="scheme-3")
    assert store.get("scheme-3").status == "inactive"
    assert "scheme-3" not in [s.slug for s in store.list_schemes(active_only=True)]


def test_update_merges_fields(store):
    scheme = store.resolve(slug="scheme-1")
    updated = store.save_scheme({"interest_rate": "1.75"}, scheme_id=scheme.id)
    assert updated.base_rate == Decimal("1.75")
    assert updated.config.validity_months == 12
    assert store.resolve(slug="scheme-1").base_rate == Decimal("1.75")


def test_slug_clash_is_rejected(store):
    scheme = store.resolve(slug="scheme-1")
    with pytest.raises(InvalidSchemeConfig):
        store.save_scheme({"slug": "scheme-2"}, scheme_id=scheme.id)


def test_invalid_config_is_not_saved(store):
    with pytest.raises(InvalidThresholds):
        store.save_scheme(
            {
                "slug": "bad",
                "interest_rate": "2",
                "calculation_type": "day_basis_tiered",
                "scheme_config": {"thresholds": [{"days": 10, "fraction": 0.5}, {"days": 5, "fraction": 0.25}]},
            }
        )
    assert store.get("bad") is None


def test_soft_delete(store):
    scheme = store.resolve(slug="scheme-4")
    store.delete_scheme(scheme.id)
    with pytest.raises(UnknownScheme):
        store.resolve(scheme_id=scheme.id)
    assert store.get(scheme.id) is None
    with pytest.raises(UnknownScheme):
        store.delete_scheme(scheme.id)


def test_soft_delete_records_naive_utc_timestamps(store):
    scheme = store.resolve(slug="scheme-3")
    store.delete_scheme(scheme.id)
    with store._session_factory() as session:
        row = session.get(LoanSchemeModel, scheme.id)
        assert row.deleted_at is not None
        assert row.deleted_at.tzinfo is None
        assert row.created_at <= row.deleted_at <= utcnow()
