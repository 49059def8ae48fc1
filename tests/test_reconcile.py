"""
Tests for local reconciliation of full-text search results.
"""

from boston_data.reconcile import addresses_match, reconcile, record_location
from boston_data.schemas import MatchMode


PERMITS = [
    {"permitnumber": "A1", "address": "65 Commonwealth Avenue"},
    {"permitnumber": "A2", "address": "65 Commonwealth Ave Unit 3"},
    {"permitnumber": "A3", "address": "65 Commonwealth"},
    {"permitnumber": "A4", "address": "165 Beacon St"},
    {"permitnumber": "A5"},
]


def test_bidirectional_accepts_equality_and_containment():
    matches = reconcile(PERMITS, "65 Commonwealth Ave.", MatchMode.BIDIRECTIONAL)
    numbers = [p["permitnumber"] for p in matches]

    # Equal, record contains query, query contains record, and the
    # missing address (empty string is contained in every query)
    assert numbers == ["A1", "A2", "A3", "A5"]


def test_exact_requires_equality_after_normalization():
    matches = reconcile(PERMITS, "65 COMMONWEALTH AV", MatchMode.EXACT)
    assert [p["permitnumber"] for p in matches] == ["A1"]


def test_fallback_fields():
    requests = [
        {"case_enquiry_id": 1, "location_street_name": "10 Main Street", "location": "ignored"},
        {"case_enquiry_id": 2, "location_street_name": None, "location": "10 MAIN ST"},
        {"case_enquiry_id": 3, "location_street_name": "", "location": "12 Main St"},
        {"case_enquiry_id": 4},
    ]
    matches = reconcile(requests, "10 main st", MatchMode.EXACT, ["location_street_name", "location"])
    assert [r["case_enquiry_id"] for r in matches] == [1, 2]


def test_empty_result_is_not_an_error():
    assert reconcile([], "1 City Hall Sq", MatchMode.EXACT) == []
    assert reconcile([{"address": "2 Main St"}], "1 City Hall Sq", MatchMode.EXACT) == []


def test_record_location_handles_missing_and_numeric():
    assert record_location({}, ["address"]) == ""
    assert record_location({"address": None}, ["address"]) == ""
    assert record_location({"STREET": 42}, ["STREET"]) == "42"


def test_addresses_match_modes():
    assert addresses_match("10 MAIN ST", "10 MAIN ST", MatchMode.EXACT)
    assert not addresses_match("10 MAIN ST APT 2", "10 MAIN ST", MatchMode.EXACT)
    assert addresses_match("10 MAIN ST APT 2", "10 MAIN ST", MatchMode.BIDIRECTIONAL)
    assert addresses_match("MAIN ST", "10 MAIN ST", MatchMode.BIDIRECTIONAL)
