"""Chart series builder -- dense price series on a sparse label axis.

Histories are fixed cadence (CoinGecko's 7d sparkline is hourly, 168 points).
Only every `points_per_label`-th point gets a label, so the axis shows one
tick per day while the line keeps every point. Labels are computed from a
logical offset back from the fetch time, never from wall-clock parsing.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Sequence

from core.errors import SeriesLengthMismatch
from core.models.chart import ChartData, ChartPoint, ChartSeries
from core.models.market import AssetSymbol, asset_info

logger = logging.getLogger(__name__)

Labeler = Callable[[int], str]

DEFAULT_POINTS_PER_LABEL = 24
DEFAULT_TIME_UNIT = timedelta(hours=1)


def format_day_label(dt: datetime) -> str:
    """'Oct 19' style label (abbreviated month, unpadded day)."""
    return f"{dt:%b} {dt.day}"


def make_time_labeler(
    as_of: datetime,
    length: int,
    unit: timedelta = DEFAULT_TIME_UNIT,
    fmt: Callable[[datetime], str] = format_day_label,
) -> Labeler:
    """Label point i as the time (length - i) units before `as_of`."""

    def label(index: int) -> str:
        return fmt(as_of - (length - index) * unit)

    return label


def build_series(
    history: Sequence[Decimal],
    points_per_label: int,
    labeler: Labeler,
) -> list[ChartPoint]:
    """Pair every history value with a label, empty except on boundaries."""
    if points_per_label < 1:
        raise ValueError(f"points_per_label must be >= 1, got {points_per_label}")

    return [
        ChartPoint(
            label=(labeler(i) or "") if i % points_per_label == 0 else "",
            value=value,
        )
        for i, value in enumerate(history)
    ]


def align_histories(
    histories: dict[AssetSymbol, Sequence[Decimal]],
    strict: bool = False,
) -> dict[AssetSymbol, list[Decimal]]:
    """Bring every history to a common length.

    Series end at the same instant (the fetch time), so the longer ones
    lose their oldest points. With `strict`, mismatches raise instead.
    """
    lengths = {asset: len(values) for asset, values in histories.items()}
    if len(set(lengths.values())) <= 1:
        return {asset: list(values) for asset, values in histories.items()}

    if strict:
        raise SeriesLengthMismatch(lengths)

    shortest = min(lengths.values())
    logger.warning(
        "Chart series lengths differ (%s); truncating to %d points",
        ", ".join(f"{a.value}={n}" for a, n in lengths.items()),
        shortest,
    )
    return {
        asset: list(values[len(values) - shortest:]) for asset, values in histories.items()
    }


def build_chart(
    histories: dict[AssetSymbol, Sequence[Decimal]],
    as_of: datetime,
    points_per_label: int = DEFAULT_POINTS_PER_LABEL,
    unit: timedelta = DEFAULT_TIME_UNIT,
    strict: bool = False,
) -> ChartData:
    """Build a multi-series chart whose series share one label axis.

    Series appear in the iteration order of `histories`.
    """
    if not histories:
        return ChartData()

    aligned = align_histories(histories, strict=strict)
    length = len(next(iter(aligned.values())))
    labeler = make_time_labeler(as_of, length, unit)

    series: list[ChartSeries] = []
    for asset, values in aligned.items():
        info = asset_info(asset)
        series.append(ChartSeries(
            asset=asset,
            name=info.name,
            color=info.color,
            points=build_series(values, points_per_label, labeler),
        ))

    labels = [p.label for p in series[0].points]
    return ChartData(labels=labels, series=series)
