"""Tests for the interest filter and allow/block classification."""

from __future__ import annotations

from conftest import at, record

from vfpwatch.session.models import Category
from vfpwatch.session.pipeline import EventFilterPipeline, classify, matches_interest


def test_interest_match_is_displayed():
    pipeline = EventFilterPipeline({"10.0.0.5"})
    out = pipeline.apply([record(1, "Allow TCP 10.0.0.5:443 -> 10.0.0.9:5000")])

    assert len(out) == 1
    assert out[0].message == "Allow TCP 10.0.0.5:443 -> 10.0.0.9:5000"
    assert out[0].timestamp == at(1)


def test_non_matching_record_is_dropped():
    pipeline = EventFilterPipeline({"10.0.0.5"})
    assert pipeline.apply([record(1, "Block UDP 192.168.1.1 -> 192.168.1.2")]) == []


def test_empty_interest_displays_everything():
    pipeline = EventFilterPipeline()
    records = [record(1, "Allow a"), record(2, "Block b"), record(3, "Layer added")]
    assert [r.message for r in pipeline.apply(records)] == [
        "Allow a",
        "Block b",
        "Layer added",
    ]


def test_any_interest_address_matches():
    interest = frozenset({"10.0.0.5", "10.0.0.6"})
    assert matches_interest("Block 10.0.0.6 -> 8.8.8.8", interest)
    assert not matches_interest("Block 10.0.0.7 -> 8.8.8.8", interest)


def test_substring_match_is_literal():
    # Plain substring semantics: 10.0.0.5 is also found inside 10.0.0.50
    assert matches_interest("Allow 10.0.0.50", frozenset({"10.0.0.5"}))


def test_order_is_preserved():
    pipeline = EventFilterPipeline({"10.0.0.5"})
    records = [
        record(3, "Allow 10.0.0.5 third"),
        record(1, "Allow 10.0.0.9 skipped"),
        record(2, "Block 10.0.0.5 second"),
    ]
    assert [r.timestamp for r in pipeline.apply(records)] == [at(3), at(2)]


def test_classify_allow():
    assert classify("Allow TCP packet") is Category.ALLOW
    assert classify("ALLOWED by rule ALLOW_ALL") is Category.ALLOW
    assert classify("  allowing packet") is Category.ALLOW


def test_classify_block():
    assert classify("Block TCP packet") is Category.BLOCK
    assert classify("blocked by rule DENY") is Category.BLOCK


def test_classify_other():
    assert classify("Port 5 added to switch") is Category.OTHER
    assert classify("Rule allow matched") is Category.OTHER
    assert classify("") is Category.OTHER


def test_apply_assigns_categories():
    pipeline = EventFilterPipeline()
    out = pipeline.apply([record(1, "Allow x"), record(2, "Block y"), record(3, "z")])
    assert [r.category for r in out] == [Category.ALLOW, Category.BLOCK, Category.OTHER]
