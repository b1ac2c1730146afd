"""Cross-report comparison tables for 2-4 cached reports.

All functions are pure and synchronous. A (report, difficulty) pair with no
matching row yields ``None`` for that cell: "no data" is never rendered as a
zero-filled cell, because zero questions and no data mean different things.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

import pandas as pd

from evalboard.data_helpers import ms_to_seconds
from evalboard.errors import InvalidComparison
from evalboard.models import DIFFICULTIES, CachedReport

MIN_COMPARE_ITEMS = 2
MAX_COMPARE_ITEMS = 4
HISTOGRAM_BUCKETS = 10


class LatencyMetric(str, Enum):
    TTFT = "ttft"
    TOTAL_GENERATION = "total_generation"

    @property
    def title(self) -> str:
        return "Time to first token" if self is LatencyMetric.TTFT else "Total generation time"


@dataclass(frozen=True)
class LatencyCell:
    """Median and p90 in seconds (2 decimals). Either may be None inside a present cell."""

    median_s: float | None
    p90_s: float | None


@dataclass(frozen=True)
class SuccessRateCell:
    questions_above_threshold: int | None
    total_questions: int | None
    percentage: float | None


@dataclass(frozen=True)
class ComparisonRow:
    """One difficulty across the compared reports; ``cells[i]`` belongs to ``reports[i]``."""

    difficulty: str
    cells: tuple[Any, ...]


@dataclass(frozen=True)
class ScoreHistogram:
    report_label: str
    difficulty: str
    counts: tuple[int, ...]
    mean_score: float | None
    sample_count: int


def _check_selection(reports: Sequence[CachedReport]) -> list[CachedReport]:
    reports = list(reports)
    if not MIN_COMPARE_ITEMS <= len(reports) <= MAX_COMPARE_ITEMS:
        raise InvalidComparison(
            f"Select between {MIN_COMPARE_ITEMS} and {MAX_COMPARE_ITEMS} reports to compare (got {len(reports)})"
        )
    return reports


def report_label(report: CachedReport) -> str:
    return report.label


# ---------------------------------------------------------------------------
# Latency
# ---------------------------------------------------------------------------


def _latency_cell(report: CachedReport, difficulty: str, metric: LatencyMetric) -> LatencyCell | None:
    row = report.row_for(difficulty)
    if row is None:
        return None
    if metric is LatencyMetric.TTFT:
        median, avg, p90 = row.median_ttft_ms, row.avg_ttft_ms, row.p90_ttft_ms
    else:
        median, avg, p90 = row.median_total_generation_ms, row.avg_total_generation_ms, row.p90_total_generation_ms
    return LatencyCell(
        median_s=ms_to_seconds(median if median is not None else avg),
        p90_s=ms_to_seconds(p90),
    )


def build_latency_comparison(
    reports: Sequence[CachedReport],
    metric: LatencyMetric | str = LatencyMetric.TTFT,
) -> list[ComparisonRow]:
    """Median/p90 latency per difficulty per report, in seconds."""
    reports = _check_selection(reports)
    metric = LatencyMetric(metric)
    return [
        ComparisonRow(difficulty=d, cells=tuple(_latency_cell(r, d, metric) for r in reports))
        for d in DIFFICULTIES
    ]


# ---------------------------------------------------------------------------
# Success rate
# ---------------------------------------------------------------------------


def _success_cell(report: CachedReport, difficulty: str) -> SuccessRateCell | None:
    row = report.row_for(difficulty)
    if row is None:
        return None
    # Percentage is the server-reported figure; recomputing it could disagree on rounding.
    return SuccessRateCell(
        questions_above_threshold=row.questions_above_threshold,
        total_questions=row.total_questions,
        percentage=row.success_percentage,
    )


def build_success_rate_comparison(reports: Sequence[CachedReport]) -> list[ComparisonRow]:
    reports = _check_selection(reports)
    return [
        ComparisonRow(difficulty=d, cells=tuple(_success_cell(r, d) for r in reports))
        for d in DIFFICULTIES
    ]


# ---------------------------------------------------------------------------
# Score histogram
# ---------------------------------------------------------------------------


def score_bucket(score: float | None, buckets: int = HISTOGRAM_BUCKETS) -> int | None:
    """Bucket index for a score in [0, 1]; bucket i covers [i/n, (i+1)/n), the last one includes 1.0.

    Returns None for scores outside [0, 1] or non-finite values.
    """
    if score is None or not math.isfinite(score) or score < 0.0 or score > 1.0:
        return None
    idx = math.floor(score * buckets)
    # score * buckets can round across a boundary; check against the boundaries themselves.
    if (idx + 1) / buckets <= score:
        idx += 1
    elif idx / buckets > score:
        idx -= 1
    return min(idx, buckets - 1)


def build_score_histogram(reports: Sequence[CachedReport], difficulty: str) -> list[ScoreHistogram]:
    """Per-report bucket counts and mean score for one difficulty."""
    reports = _check_selection(reports)
    out: list[ScoreHistogram] = []
    for report in reports:
        counts = [0] * HISTOGRAM_BUCKETS
        scores: list[float] = []
        for sample in report.samples_for(difficulty):
            idx = score_bucket(sample.score)
            if idx is None:
                continue
            counts[idx] += 1
            scores.append(sample.score)
        out.append(
            ScoreHistogram(
                report_label=report.label,
                difficulty=difficulty,
                counts=tuple(counts),
                mean_score=sum(scores) / len(scores) if scores else None,
                sample_count=len(scores),
            )
        )
    return out


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


def build_summary_comparison(reports: Sequence[CachedReport]) -> list[dict[str, Any] | None]:
    """Whole-experiment figures per report; None where a report has no summary."""
    reports = _check_selection(reports)
    out: list[dict[str, Any] | None] = []
    for report in reports:
        s = report.summary
        if s is None:
            out.append(None)
            continue
        out.append(
            {
                "report": report.label,
                "model": s.model,
                "provider": s.provider,
                "method": s.method,
                "total_questions": s.total_questions,
                "questions_above_threshold": s.questions_above_threshold,
                "success_percentage": s.success_percentage,
                "avg_ttft_s": ms_to_seconds(s.avg_ttft_ms),
                "avg_total_generation_s": ms_to_seconds(s.avg_total_generation_ms),
                "avg_evaluator_score": s.avg_evaluator_score,
            }
        )
    return out


# ---------------------------------------------------------------------------
# DataFrame views for the chart/table renderers
# ---------------------------------------------------------------------------


def latency_frame(rows: list[ComparisonRow], labels: Sequence[str]) -> pd.DataFrame:
    """Long-format frame: one record per (difficulty, report); absent cells keep None values."""
    records = []
    for row in rows:
        for label, cell in zip(labels, row.cells):
            records.append(
                {
                    "difficulty": row.difficulty,
                    "report": label,
                    "has_data": cell is not None,
                    "median_s": cell.median_s if cell else None,
                    "p90_s": cell.p90_s if cell else None,
                }
            )
    return pd.DataFrame.from_records(records, columns=["difficulty", "report", "has_data", "median_s", "p90_s"])


def success_rate_frame(rows: list[ComparisonRow], labels: Sequence[str]) -> pd.DataFrame:
    records = []
    for row in rows:
        for label, cell in zip(labels, row.cells):
            records.append(
                {
                    "difficulty": row.difficulty,
                    "report": label,
                    "has_data": cell is not None,
                    "questions_above_threshold": cell.questions_above_threshold if cell else None,
                    "total_questions": cell.total_questions if cell else None,
                    "success_percentage": cell.percentage if cell else None,
                }
            )
    return pd.DataFrame.from_records(
        records,
        columns=[
            "difficulty",
            "report",
            "has_data",
            "questions_above_threshold",
            "total_questions",
            "success_percentage",
        ],
    )


def histogram_frame(histograms: list[ScoreHistogram]) -> pd.DataFrame:
    records = []
    for h in histograms:
        for idx, count in enumerate(h.counts):
            records.append(
                {
                    "report": h.report_label,
                    "difficulty": h.difficulty,
                    "bucket": idx,
                    "bucket_start": idx / HISTOGRAM_BUCKETS,
                    "bucket_label": f"{idx / HISTOGRAM_BUCKETS:.1f}-{(idx + 1) / HISTOGRAM_BUCKETS:.1f}",
                    "count": count,
                }
            )
    return pd.DataFrame.from_records(
        records,
        columns=["report", "difficulty", "bucket", "bucket_start", "bucket_label", "count"],
    )
