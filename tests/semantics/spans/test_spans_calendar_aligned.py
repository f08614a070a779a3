"""
Semantic test: spans are calendar aligned, ordered and contiguous.

Invariant:
For a non-empty result, spans are strictly increasing, never overlap on
their nominal bounds, and each nominal window is exactly one partition of
the requested granularity.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from batch_backtest.backtest.orchestrator.spans import (
    BatchSize,
    _add_months,
    generate_spans,
)
from batch_backtest.backtest.runtime.entrypoint import prepare_batch

UTC = timezone.utc


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=UTC)


@pytest.mark.parametrize(
    ("batch_size", "start", "end", "expected"),
    [
        ("1 month", _utc(2018, 1, 1), _utc(2018, 4, 1), 3),
        ("1 quarter", _utc(2018, 1, 1), _utc(2019, 1, 1), 4),
        ("1 year", _utc(2018, 1, 1), _utc(2021, 1, 1), 3),
    ],
)
def test_partition_count_per_granularity(
    batch_size: str,
    start: datetime,
    end: datetime,
    expected: int,
) -> None:
    spans = generate_spans(batch_size, timedelta(0), start=start, end=end)

    assert len(spans) == expected
    assert spans[0].nominal_from == start
    assert spans[-1].to_ts == end


@pytest.mark.parametrize("batch_size", list(BatchSize))
def test_spans_are_ordered_contiguous_and_sized(batch_size: BatchSize) -> None:
    spans = generate_spans(
        batch_size,
        timedelta(hours=30),
        start=_utc(2017, 9, 21),
        end=_utc(2021, 2, 21),
        anchor_day=21,
    )

    assert spans

    for previous, current in zip(spans, spans[1:]):
        assert previous.nominal_from < current.nominal_from
        assert previous.to_ts == current.nominal_from

    for span in spans:
        assert span.from_ts < span.to_ts
        assert _add_months(span.nominal_from, batch_size.months) == span.to_ts
        assert span.nominal_from.day == 21


def test_monthly_anchor_day_reproduces_mid_month_table() -> None:
    """41 monthly spans from 2017-09-21 to 2021-02-21, each on the 21st."""
    spans = generate_spans(
        "1 month",
        timedelta(0),
        start=_utc(2017, 9, 21),
        end=_utc(2021, 2, 21),
        anchor_day=21,
    )

    assert len(spans) == 41
    assert spans[0].to_daterange() == {
        "from": "2017-09-21T00:00:00Z",
        "to": "2017-10-21T00:00:00Z",
    }
    assert spans[-1].to_daterange() == {
        "from": "2021-01-21T00:00:00Z",
        "to": "2021-02-21T00:00:00Z",
    }


def test_unaligned_start_moves_to_next_boundary() -> None:
    monthly = generate_spans(
        "1 month",
        timedelta(0),
        start=_utc(2018, 1, 15),
        end=_utc(2018, 6, 1),
    )
    quarterly = generate_spans(
        "1 quarter",
        timedelta(0),
        start=_utc(2018, 2, 10),
        end=_utc(2019, 1, 1),
    )

    assert [s.nominal_from.month for s in monthly] == [2, 3, 4, 5]
    assert [s.nominal_from.month for s in quarterly] == [4, 7, 10]


def test_partial_trailing_partition_is_dropped() -> None:
    spans = generate_spans(
        "1 quarter",
        timedelta(0),
        start=_utc(2018, 1, 1),
        end=_utc(2018, 8, 15),
    )

    assert [s.to_iso for s in spans] == [
        "2018-04-01T00:00:00Z",
        "2018-07-01T00:00:00Z",
    ]


@pytest.mark.parametrize("value", [None, "", "2 weeks", "monthly"])
def test_unknown_batch_size_defaults_to_monthly(value: str | None) -> None:
    assert BatchSize.parse(value) is BatchSize.MONTH

    spans = generate_spans(
        value,
        timedelta(0),
        start=_utc(2018, 1, 1),
        end=_utc(2018, 3, 1),
    )
    assert len(spans) == 2


@pytest.mark.parametrize("value", [3, 1.5, ["1 year"]])
def test_non_text_batch_size_plans_monthly_partitions(value: object) -> None:
    plan = prepare_batch(
        {
            "batchBacktest": {
                "batchSize": value,
                "range": {"from": "2018-01-01T00:00:00Z", "to": "2018-04-01T00:00:00Z"},
            },
        }
    )

    assert plan.batch_size is BatchSize.MONTH
    assert len(plan.partitions) == 3


def test_batch_size_parsing_is_case_and_space_tolerant() -> None:
    assert BatchSize.parse(" 1 Quarter ") is BatchSize.QUARTER
    assert BatchSize.parse(BatchSize.YEAR) is BatchSize.YEAR


def test_naive_datetimes_are_treated_as_utc() -> None:
    spans = generate_spans(
        "1 month",
        timedelta(0),
        start=datetime(2018, 1, 1),
        end=datetime(2018, 2, 1),
    )

    assert len(spans) == 1
    assert spans[0].nominal_from == _utc(2018, 1, 1)


def test_invalid_anchor_day_is_rejected() -> None:
    with pytest.raises(ValueError):
        generate_spans(
            "1 month",
            timedelta(0),
            start=_utc(2018, 1, 1),
            end=_utc(2019, 1, 1),
            anchor_day=31,
        )
