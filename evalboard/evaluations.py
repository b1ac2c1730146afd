"""Per-question evaluation records: score sections and evaluator detail parsing.

Records come straight from ``/api/evaluations`` and are not cached. The
evaluator's parsed response nests one entry per question under
``evaluations``; only the first entry is read.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

import pandas as pd

from evalboard.data_helpers import as_float, as_str
from evalboard.models import DIFFICULTIES, normalize_difficulty

logger = logging.getLogger(__name__)

PASS_THRESHOLD = 0.85
IMAGE_METRIC_PREFIX = "img: "


class ScoreSection(str, Enum):
    ZERO = "zero"
    BELOW = "below"
    PASSED = "passed"

    @property
    def title(self) -> str:
        return {
            ScoreSection.ZERO: "Zero score",
            ScoreSection.BELOW: f"Below {PASS_THRESHOLD}",
            ScoreSection.PASSED: "Passed",
        }[self]


def score_section(score: Any) -> ScoreSection | None:
    """Section for an evaluator score; None when the score is missing or not numeric."""
    value = as_float(score)
    if value is None:
        return None
    if value == 0:
        return ScoreSection.ZERO
    if value < PASS_THRESHOLD:
        return ScoreSection.BELOW
    return ScoreSection.PASSED


def _evaluation_detail(parsed: Any) -> dict[str, Any]:
    if isinstance(parsed, str):
        try:
            parsed = json.loads(parsed)
        except ValueError:
            logger.debug("Unparsable evaluator response: %.80s", parsed)
            return {}
    if not isinstance(parsed, Mapping):
        return {}
    evaluations = parsed.get("evaluations")
    if not isinstance(evaluations, Mapping) or not evaluations:
        return {}
    first = next(iter(evaluations.values()))
    return dict(first) if isinstance(first, Mapping) else {}


def _low_scores(block: Any, prefix: str = "") -> list[str]:
    scores = block.get("scores") if isinstance(block, Mapping) else None
    if not isinstance(scores, Mapping):
        return []
    out = []
    for name, raw in scores.items():
        value = as_float(raw)
        if value is not None and value < PASS_THRESHOLD:
            out.append(prefix + str(name).replace("_", " "))
    return out


def failed_metrics(parsed_response: Any) -> list[str]:
    """Quality and image-quality sub-scores under the pass threshold, in response order.

    >>> failed_metrics({"evaluations": {"q1": {"ti_question_qa": {"scores": {"clarity": 0.5}}}}})
    ['clarity']
    """
    detail = _evaluation_detail(parsed_response)
    return _low_scores(detail.get("ti_question_qa")) + _low_scores(detail.get("image_quality"), IMAGE_METRIC_PREFIX)


def answer_correct(parsed_response: Any) -> bool | None:
    """The evaluator's answer verification verdict, None when it did not run."""
    verification = _evaluation_detail(parsed_response).get("answer_verification")
    if not isinstance(verification, Mapping) or verification.get("is_correct") is None:
        return None
    return bool(verification["is_correct"])


def recommendation(parsed_response: Any) -> str | None:
    qa = _evaluation_detail(parsed_response).get("ti_question_qa")
    if not isinstance(qa, Mapping):
        return None
    return as_str(qa.get("recommendation"))


_FRAME_COLUMNS = [
    "question_id",
    "recipe_id",
    "difficulty",
    "evaluator_score",
    "section",
    "answer_correct",
    "failed_metrics",
    "recommendation",
    "model",
    "grade_level",
    "question_type",
    "created_at",
    "evaluated_at",
]


def evaluations_frame(records: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Flatten records into one row per question for tables and CSV export.

    Difficulty is normalized to the canonical casing when it matches a known tier.
    ``failed_metrics`` is a comma-separated string so the column stays exportable.
    """
    canonical = {normalize_difficulty(d): d for d in DIFFICULTIES}
    rows = []
    for rec in records:
        parsed = rec.get("evaluator_parsed_response")
        score = as_float(rec.get("evaluator_score"))
        section = score_section(score)
        raw_difficulty = as_str(rec.get("difficulty"))
        rows.append(
            {
                "question_id": rec.get("question_id"),
                "recipe_id": rec.get("recipe_id"),
                "difficulty": canonical.get(normalize_difficulty(raw_difficulty), raw_difficulty),
                "evaluator_score": score,
                "section": section.value if section else None,
                "answer_correct": answer_correct(parsed),
                "failed_metrics": ", ".join(failed_metrics(parsed)),
                "recommendation": recommendation(parsed),
                "model": rec.get("model"),
                "grade_level": rec.get("grade_level"),
                "question_type": rec.get("question_type"),
                "created_at": rec.get("created_at"),
                "evaluated_at": rec.get("evaluated_at"),
            }
        )
    return pd.DataFrame.from_records(rows, columns=_FRAME_COLUMNS)


def section_counts(df: pd.DataFrame) -> pd.DataFrame:
    """Records per (difficulty, section); every section is present for each difficulty seen."""
    if df.empty:
        return pd.DataFrame(columns=["difficulty", "section", "count"])
    out = []
    for difficulty, group in df.groupby("difficulty", sort=False, dropna=False):
        counts = group["section"].value_counts()
        for section in ScoreSection:
            out.append({"difficulty": difficulty, "section": section.value, "count": int(counts.get(section.value, 0))})
    return pd.DataFrame.from_records(out, columns=["difficulty", "section", "count"])


def failed_metric_counts(records: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """How often each sub-metric fell under the threshold, most frequent first."""
    counter: Counter[str] = Counter()
    for rec in records:
        counter.update(failed_metrics(rec.get("evaluator_parsed_response")))
    return pd.DataFrame(counter.most_common(), columns=["metric", "count"])
