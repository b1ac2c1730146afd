"""Data model for cached experiment reports.

A ``CachedReport`` is one fetched experiment's result set, addressed by a
``FilterKey``. Rows and samples arrive from the reporting API as loosely typed
JSON (Postgres counts come back as strings), so every ``from_dict`` here parses
leniently: unparsable numbers become ``None`` rather than raising.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any

from evalboard.data_helpers import as_float, as_int, as_str, iso_utc, parse_dt
from evalboard.errors import InvalidFilter


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


DIFFICULTIES: tuple[str, ...] = tuple(d.value for d in Difficulty)


def normalize_difficulty(value: Any) -> str:
    """Case-fold a difficulty label for matching ("EASY " -> "easy")."""
    return str(value or "").strip().lower()


# ---------------------------------------------------------------------------
# Filter key
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FilterKey:
    """Composite identity of one report fetch."""

    experiment_tracker: str
    subject: str
    grade_level: str | None = None
    question_type: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "experiment_tracker", str(self.experiment_tracker or "").strip())
        object.__setattr__(self, "subject", str(self.subject or "").strip())
        object.__setattr__(self, "grade_level", as_str(self.grade_level))
        object.__setattr__(self, "question_type", as_str(self.question_type))

    def validate(self) -> None:
        """Raise InvalidFilter when the tracker or subject is blank."""
        missing = [
            name
            for name, value in (("experiment_tracker", self.experiment_tracker), ("subject", self.subject))
            if not value
        ]
        if missing:
            raise InvalidFilter(f"Filter key is missing required field(s): {', '.join(missing)}")

    @property
    def cache_key(self) -> str:
        return "|".join(
            [self.experiment_tracker, self.subject, self.grade_level or "", self.question_type or ""]
        )

    @property
    def label(self) -> str:
        return " | ".join(
            [self.experiment_tracker, self.subject, self.grade_level or "All", self.question_type or "All"]
        )

    def to_query_params(self) -> dict[str, str]:
        params = {"experiment_tracker": self.experiment_tracker, "subject": self.subject}
        if self.grade_level:
            params["grade_level"] = self.grade_level
        if self.question_type:
            params["question_type"] = self.question_type
        return params

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FilterKey:
        return cls(
            experiment_tracker=data.get("experiment_tracker") or "",
            subject=data.get("subject") or "",
            grade_level=data.get("grade_level"),
            question_type=data.get("question_type"),
        )


# ---------------------------------------------------------------------------
# Report rows, summary, samples
# ---------------------------------------------------------------------------

_ROW_INT_FIELDS = ("total_questions", "questions_above_threshold", "zero_scores", "below_threshold")
_ROW_TEXT_FIELDS = ("experiment_tracker", "model", "subject", "grade_level", "question_type")


@dataclass(frozen=True)
class ReportRow:
    """Per-difficulty metrics for one experiment."""

    difficulty: str
    total_questions: int | None = None
    questions_above_threshold: int | None = None
    success_percentage: float | None = None
    avg_ttft_ms: float | None = None
    median_ttft_ms: float | None = None
    p10_ttft_ms: float | None = None
    p90_ttft_ms: float | None = None
    p95_ttft_ms: float | None = None
    avg_total_generation_ms: float | None = None
    median_total_generation_ms: float | None = None
    p10_total_generation_ms: float | None = None
    p90_total_generation_ms: float | None = None
    p95_total_generation_ms: float | None = None
    avg_evaluator_score: float | None = None
    median_evaluator_score: float | None = None
    min_evaluator_score: float | None = None
    max_evaluator_score: float | None = None
    zero_scores: int | None = None
    below_threshold: int | None = None
    experiment_tracker: str | None = None
    model: str | None = None
    subject: str | None = None
    grade_level: str | None = None
    question_type: str | None = None

    def matches(self, difficulty: str) -> bool:
        return bool(self.difficulty) and normalize_difficulty(self.difficulty) == normalize_difficulty(difficulty)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReportRow:
        if not isinstance(data, Mapping):
            raise ValueError(f"report row must be an object, got {type(data).__name__}")
        kwargs: dict[str, Any] = {"difficulty": str(data.get("difficulty") or "").strip()}
        for f in fields(cls):
            if f.name == "difficulty":
                continue
            raw = data.get(f.name)
            if f.name in _ROW_INT_FIELDS:
                kwargs[f.name] = as_int(raw)
            elif f.name in _ROW_TEXT_FIELDS:
                kwargs[f.name] = as_str(raw)
            else:
                kwargs[f.name] = as_float(raw)
        return cls(**kwargs)


@dataclass(frozen=True)
class ExperimentSummary:
    """Whole-experiment aggregate."""

    experiment_tracker: str | None = None
    model: str | None = None
    total_questions: int | None = None
    questions_above_threshold: int | None = None
    total_recipes: int | None = None
    success_percentage: float | None = None
    prompt_id: str | None = None
    temperature: float | None = None
    provider: str | None = None
    method: str | None = None
    avg_ttft_ms: float | None = None
    avg_total_generation_ms: float | None = None
    avg_evaluator_score: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExperimentSummary:
        if not isinstance(data, Mapping):
            raise ValueError(f"summary must be an object, got {type(data).__name__}")
        return cls(
            experiment_tracker=as_str(data.get("experiment_tracker")),
            model=as_str(data.get("model")),
            total_questions=as_int(data.get("total_questions")),
            questions_above_threshold=as_int(data.get("questions_above_threshold")),
            total_recipes=as_int(data.get("total_recipes")),
            success_percentage=as_float(data.get("success_percentage")),
            prompt_id=as_str(data.get("prompt_id")),
            temperature=as_float(data.get("temperature")),
            provider=as_str(data.get("provider")),
            method=as_str(data.get("method")),
            avg_ttft_ms=as_float(data.get("avg_ttft_ms")),
            avg_total_generation_ms=as_float(data.get("avg_total_generation_ms")),
            avg_evaluator_score=as_float(data.get("avg_evaluator_score")),
        )


@dataclass(frozen=True)
class ScoreSample:
    question_id: int | None
    recipe_id: int | None
    difficulty: str
    score: float | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ScoreSample:
        if not isinstance(data, Mapping):
            raise ValueError(f"score sample must be an object, got {type(data).__name__}")
        score = data.get("score")
        if score is None:
            score = data.get("evaluator_score")
        return cls(
            question_id=as_int(data.get("question_id")),
            recipe_id=as_int(data.get("recipe_id")),
            difficulty=str(data.get("difficulty") or "").strip(),
            score=as_float(score),
        )


# ---------------------------------------------------------------------------
# Cached report
# ---------------------------------------------------------------------------


def _as_list(value: Any, name: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{name} must be a list, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class CachedReport:
    """One fetched experiment's full result set. Immutable once built."""

    filter_key: FilterKey
    report_rows: tuple[ReportRow, ...]
    summary: ExperimentSummary | None
    score_samples: tuple[ScoreSample, ...] = field(default_factory=tuple)
    fetched_at: datetime | None = None

    @property
    def cache_key(self) -> str:
        return self.filter_key.cache_key

    @property
    def label(self) -> str:
        return self.filter_key.label

    def row_for(self, difficulty: str) -> ReportRow | None:
        """Return the row whose difficulty matches case-insensitively, if any."""
        for row in self.report_rows:
            if row.matches(difficulty):
                return row
        return None

    def samples_for(self, difficulty: str) -> list[ScoreSample]:
        target = normalize_difficulty(difficulty)
        return [s for s in self.score_samples if s.difficulty and normalize_difficulty(s.difficulty) == target]

    @classmethod
    def from_payload(
        cls,
        filter_key: FilterKey,
        payload: Mapping[str, Any],
        fetched_at: datetime,
    ) -> CachedReport:
        """Build a report from a fetch result; raises ValueError on a malformed payload."""
        if not isinstance(payload, Mapping):
            raise ValueError(f"fetch payload must be an object, got {type(payload).__name__}")
        if not isinstance(payload.get("report_rows"), list):
            raise ValueError("fetch payload has no report_rows list")
        summary_raw = payload.get("summary")
        return cls(
            filter_key=filter_key,
            report_rows=tuple(ReportRow.from_dict(r) for r in payload["report_rows"]),
            summary=ExperimentSummary.from_dict(summary_raw) if summary_raw else None,
            score_samples=tuple(
                ScoreSample.from_dict(s) for s in _as_list(payload.get("score_samples"), "score_samples")
            ),
            fetched_at=fetched_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "filter_key": self.filter_key.to_dict(),
            "report_rows": [r.to_dict() for r in self.report_rows],
            "summary": self.summary.to_dict() if self.summary else None,
            "score_samples": [s.to_dict() for s in self.score_samples],
            "fetched_at": iso_utc(self.fetched_at) if self.fetched_at else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CachedReport:
        if not isinstance(data, Mapping):
            raise ValueError(f"cache entry must be an object, got {type(data).__name__}")
        key_raw = data.get("filter_key")
        if not isinstance(key_raw, Mapping):
            raise ValueError("cache entry has no filter_key")
        filter_key = FilterKey.from_dict(key_raw)
        filter_key.validate()
        if not isinstance(data.get("report_rows"), list):
            raise ValueError("cache entry has no report_rows list")
        summary_raw = data.get("summary")
        return cls(
            filter_key=filter_key,
            report_rows=tuple(ReportRow.from_dict(r) for r in data["report_rows"]),
            summary=ExperimentSummary.from_dict(summary_raw) if summary_raw else None,
            score_samples=tuple(
                ScoreSample.from_dict(s) for s in _as_list(data.get("score_samples"), "score_samples")
            ),
            fetched_at=parse_dt(data.get("fetched_at")),
        )

    @classmethod
    def from_legacy(cls, data: Mapping[str, Any]) -> CachedReport:
        """Read an entry written by the browser dashboard (camelCase data fields, epoch-ms timestamp)."""
        if not isinstance(data, Mapping):
            raise ValueError(f"legacy cache entry must be an object, got {type(data).__name__}")
        if "reportData" not in data:
            raise ValueError("legacy cache entry has no reportData")
        return cls.from_dict(
            {
                "filter_key": {
                    "experiment_tracker": data.get("experiment_tracker"),
                    "subject": data.get("subject"),
                    "grade_level": data.get("grade_level"),
                    "question_type": data.get("question_type"),
                },
                "report_rows": data.get("reportData"),
                "summary": data.get("summaryData"),
                "score_samples": data.get("scoresData"),
                "fetched_at": data.get("timestamp"),
            }
        )
