import pytest

from directory_sync.etl import matching
from directory_sync.models import CanonicalRestaurant, DirectoryRecord


def _record(record_id, name, address, external_id=None):
    return DirectoryRecord(record_id=record_id, name=name, address=address, external_id=external_id)


def test_levenshtein_distance():
    assert matching.levenshtein_distance("kitten", "sitting") == 3
    assert matching.levenshtein_distance("", "abc") == 3
    assert matching.levenshtein_distance("abc", "abc") == 0


def test_normalized_similarity_is_case_insensitive():
    assert matching.normalized_similarity("Rudy's BBQ", "RUDY'S bbq") == 1.0
    assert matching.normalized_similarity("", "") == 1.0
    assert matching.normalized_similarity(None, "") == 1.0
    assert matching.normalized_similarity("abcde", "abcdx") == pytest.approx(0.8)
    assert matching.normalized_similarity("abc", "") == 0.0


def test_resolve_prefers_external_id_over_fuzzy_match():
    fuzzy = _record(1, "Rudy's BBQ", "123 Main St")
    exact = _record(2, "Completely Different", "Elsewhere", external_id="p1")
    candidate = CanonicalRestaurant(external_id="p1", name="Rudy's BBQ", address="123 Main St")

    result = matching.IdentityResolver().resolve(candidate, [fuzzy, exact])

    assert result.matched
    assert result.record is exact


def test_resolve_name_similarity_threshold_is_strict():
    record = _record(1, "abcde", "1 Main St")
    candidate = CanonicalRestaurant(name="abcdx", address="1 Main St")

    assert matching.IdentityResolver().resolve(candidate, [record]).matched is False


def test_resolve_matches_just_above_both_thresholds():
    record = _record(1, "a" * 100, "b" * 100)
    candidate = CanonicalRestaurant(name="a" * 81 + "z" * 19, address="b" * 61 + "y" * 39)

    assert matching.normalized_similarity(candidate.name, record.name) == pytest.approx(0.81)
    assert matching.normalized_similarity(candidate.address, record.address) == pytest.approx(0.61)
    result = matching.IdentityResolver().resolve(candidate, [record])
    assert result.matched
    assert result.record is record


def test_resolve_requires_address_similarity():
    record = _record(1, "Pho Saigon", "1 Main St, Katy, TX")
    candidate = CanonicalRestaurant(name="Pho Saigon", address="99 Grand Pkwy, Richmond, TX")

    assert not matching.IdentityResolver().resolve(candidate, [record]).matched


def test_resolve_unmatched_when_snapshot_empty():
    candidate = CanonicalRestaurant(external_id="p1", name="Anything", address="Anywhere")
    result = matching.IdentityResolver().resolve(candidate, [])
    assert result.matched is False
    assert result.record is None


def test_first_strategy_returns_first_qualifying_record():
    near = _record(1, "Taco Casa", "100 Mason Rd, Katy")
    exact = _record(2, "Taco Casa!", "100 Mason Rd, Katy TX")
    candidate = CanonicalRestaurant(name="Taco Casa!", address="100 Mason Rd, Katy TX")

    result = matching.IdentityResolver(strategy="first").resolve(candidate, [near, exact])

    assert result.record is near


def test_best_strategy_returns_highest_scoring_record():
    near = _record(1, "Taco Casa", "100 Mason Rd, Katy")
    exact = _record(2, "Taco Casa!", "100 Mason Rd, Katy TX")
    candidate = CanonicalRestaurant(name="Taco Casa!", address="100 Mason Rd, Katy TX")

    result = matching.IdentityResolver(strategy="best").resolve(candidate, [near, exact])

    assert result.record is exact


def test_best_strategy_breaks_ties_by_lowest_store_id():
    later = _record(12, "Taco Casa", "100 Mason Rd")
    earlier = _record(3, "Taco Casa", "100 Mason Rd")
    candidate = CanonicalRestaurant(name="Taco Casa", address="100 Mason Rd")

    result = matching.IdentityResolver(strategy="best").resolve(candidate, [later, earlier])

    assert result.record is earlier


def test_unknown_strategy_rejected():
    with pytest.raises(ValueError):
        matching.IdentityResolver(strategy="closest")
