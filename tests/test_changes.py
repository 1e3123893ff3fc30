from directory_sync.etl import changes
from directory_sync.models import CanonicalRestaurant, DirectoryRecord


def _pair(**incoming_overrides):
    base = dict(
        external_id="p1",
        name="Rudy's BBQ",
        address="1 Main St, Katy, TX",
        rating=4.2,
        review_count=300,
        phone="(281) 555-0100",
        website="https://rudys.example",
        hours_text="Monday: 11 AM-9 PM",
        price_tier=2,
    )
    existing = DirectoryRecord(record_id=7, **base)
    base.update(incoming_overrides)
    return existing, CanonicalRestaurant(**base)


def test_identical_records_are_not_significant():
    existing, incoming = _pair()
    assert changes.is_significant(existing, incoming) is False
    assert changes.changed_fields(existing, incoming) == []


def test_small_rating_change_is_ignored():
    existing, incoming = _pair(rating=4.25)
    assert changes.is_significant(existing, incoming) is False

    existing, incoming = _pair(rating=4.3)
    assert changes.is_significant(existing, incoming) is False


def test_large_rating_change_is_significant():
    existing, incoming = _pair(rating=4.35)
    assert changes.is_significant(existing, incoming) is True
    assert changes.changed_fields(existing, incoming) == ["rating"]


def test_review_count_change_is_significant():
    existing, incoming = _pair(review_count=318)
    assert changes.is_significant(existing, incoming) is True
    assert changes.changed_fields(existing, incoming) == ["review_count"]


def test_field_becoming_absent_is_significant():
    existing, incoming = _pair(phone=None)
    assert changes.is_significant(existing, incoming) is True

    existing, incoming = _pair(website=None, price_tier=3)
    assert changes.changed_fields(existing, incoming) == ["website", "price_tier"]


def test_fields_outside_policy_are_ignored():
    existing, incoming = _pair(description="New summary", name="Rudy's Bar-B-Q")
    assert changes.is_significant(existing, incoming) is False
