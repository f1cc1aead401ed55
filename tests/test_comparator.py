"""Classification of reference/candidate response pairs."""

from __future__ import annotations

import itertools
import random

import pytest

from getlogs_diff.comparator import compare, first_difference
from getlogs_diff.errors import FailureKind
from getlogs_diff.types import Status

from conftest import make_log


def test_reversed_order_matches(ok_response) -> None:
    ref = [make_log(100, 0, 0, data="0xaa"), make_log(101, 0, 0, data="0xbb")]
    cand = list(reversed(ref))
    assert compare(ok_response(ref), ok_response(cand, endpoint="candidate")) is Status.MATCH


def test_any_permutation_matches(ok_response) -> None:
    entries = [make_log(b, t, i) for b, t, i in itertools.product((5, 6), (0, 1), (0, 3))]
    reference = ok_response(entries)
    rng = random.Random(1234)
    for _ in range(20):
        shuffled = entries[:]
        rng.shuffle(shuffled)
        assert compare(reference, ok_response(shuffled)) is Status.MATCH


def test_both_empty_match(ok_response) -> None:
    assert compare(ok_response([]), ok_response([])) is Status.MATCH


def test_missing_record_is_count_mismatch(ok_response) -> None:
    ref = [make_log(100), make_log(101), make_log(102)]
    cand = ref[:2]
    assert compare(ok_response(ref), ok_response(cand)) is Status.MISMATCH_COUNT


def test_empty_against_non_empty_is_count_mismatch(ok_response) -> None:
    assert compare(ok_response([]), ok_response([make_log(1)])) is Status.MISMATCH_COUNT


def test_count_beats_content(ok_response) -> None:
    ref = [make_log(100, data="0x01"), make_log(101)]
    cand = [make_log(100, data="0x02")]
    assert compare(ok_response(ref), ok_response(cand)) is Status.MISMATCH_COUNT


def test_different_data_is_content_mismatch(ok_response) -> None:
    ref = [make_log(100, data="0x01")]
    cand = [make_log(100, data="0x02")]
    assert compare(ok_response(ref), ok_response(cand)) is Status.MISMATCH_CONTENT


def test_different_opaque_field_is_content_mismatch(ok_response) -> None:
    ref = [make_log(100, removed=False)]
    cand = [make_log(100, removed=True)]
    assert compare(ok_response(ref), ok_response(cand)) is Status.MISMATCH_CONTENT


@pytest.mark.parametrize("kind", list(FailureKind))
@pytest.mark.parametrize("failing_side", ["reference", "candidate"])
def test_failure_wins(ok_response, failed_response, kind, failing_side) -> None:
    healthy = ok_response([make_log(1), make_log(2)])
    broken = failed_response(kind=kind, endpoint=failing_side)
    pair = (broken, healthy) if failing_side == "reference" else (healthy, broken)
    assert compare(*pair) is Status.ERROR


def test_failure_wins_even_when_other_side_empty(ok_response, failed_response) -> None:
    assert compare(ok_response([]), failed_response()) is Status.ERROR


def test_order_sensitive_mode_reports_different_order(ok_response) -> None:
    ref = [make_log(100), make_log(101)]
    cand = list(reversed(ref))
    reference = ok_response(ref, preserve_order=True)
    candidate = ok_response(cand, preserve_order=True)
    assert compare(reference, candidate, order_sensitive=True) is Status.MATCH_DIFFERENT_ORDER
    assert compare(reference, reference, order_sensitive=True) is Status.MATCH


def test_order_sensitive_mode_still_detects_content(ok_response) -> None:
    reference = ok_response([make_log(100, data="0x01"), make_log(101)], preserve_order=True)
    candidate = ok_response([make_log(101), make_log(100, data="0x02")], preserve_order=True)
    assert compare(reference, candidate, order_sensitive=True) is Status.MISMATCH_CONTENT


def test_first_difference_points_at_field(ok_response) -> None:
    ref = ok_response([make_log(100), make_log(101, data="0x01")]).records
    cand = ok_response([make_log(100), make_log(101, data="0x02")]).records
    divergence = first_difference(ref, cand)
    assert divergence.index == 1
    assert divergence.field == "data"
    assert divergence.expected == "0x01"
    assert divergence.actual == "0x02"
    assert "log #1 data" in divergence.describe()


def test_first_difference_on_identical_sequences(ok_response) -> None:
    records = ok_response([make_log(100)]).records
    assert first_difference(records, records) is None


def test_first_difference_reports_count(ok_response) -> None:
    records = ok_response([make_log(100), make_log(101)]).records
    divergence = first_difference(records, records[:1])
    assert divergence.field == "count"
    assert (divergence.index, divergence.expected, divergence.actual) == (1, 2, 1)


def test_duplicate_coordinates_keep_arrival_order(ok_response) -> None:
    # ties on (block, tx, log) are not reordered, so swapped duplicates differ
    first = make_log(100, data="0x01")
    second = make_log(100, data="0x02")
    reference = ok_response([first, second])
    candidate = ok_response([second, first])
    assert [r.data for r in reference.records] == ["0x01", "0x02"]
    assert compare(reference, candidate) is Status.MISMATCH_CONTENT
