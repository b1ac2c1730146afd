"""Metric and page documentation registry.

Static dicts behind the inline page help panels and the Metrics Glossary page,
so definitions can be edited without touching UI code.

Provenance language
-------------------
* "Raw" = returned as-is by the reporting API.
* "Derived" = computed in this repo from cached report data.
"""

from __future__ import annotations

from typing import Any


# ---------------------------------------------------------------------------
# Metric documentation
# ---------------------------------------------------------------------------

METRICS: dict[str, dict[str, Any]] = {
    # -------------------------
    # Identity
    # -------------------------
    "experiment_tracker": {
        "name": "Experiment tracker",
        "category": "Identity",
        "definition": "Opaque identifier for one model-generation run under evaluation.",
        "provenance": "Raw. Chosen when the experiment was launched.",
        "used_in": ["Experiment Report", "Compare Reports", "Leaderboard"],
    },
    "filter_key": {
        "name": "Filter key",
        "category": "Identity",
        "definition": "The (tracker, subject, grade, question type) combination that addresses one cached report.",
        "formula": "`cache_key = tracker|subject|grade|question_type` (empty segment = All)",
        "provenance": "Derived from the filters you pick on the Experiment Report page.",
        "caveats": [
            "Grade and question type are optional; leaving them empty means 'All' and is a different report.",
        ],
        "used_in": ["Experiment Report", "Compare Reports"],
    },
    "difficulty": {
        "name": "Difficulty",
        "category": "Identity",
        "definition": "Question difficulty tier: Easy, Medium or Hard.",
        "provenance": "Raw. Matched case-insensitively when comparing reports.",
        "caveats": [
            "A report with no row for a tier shows 'No data', which is not the same as zero questions.",
        ],
        "used_in": ["Experiment Report", "Compare Reports", "Leaderboard", "Raw Records"],
    },
    "view_mode": {
        "name": "Attachment-filtered view",
        "category": "Identity",
        "definition": "Leaderboard variant that excludes standards requiring non-text content.",
        "provenance": "Raw. Sent to the API as `view_mode=attachment_filtered` (default) or `all`.",
        "used_in": ["Leaderboard"],
    },
    # -------------------------
    # Quality
    # -------------------------
    "success_rate": {
        "name": "Success rate",
        "category": "Quality",
        "definition": "Share of questions whose evaluator score cleared the threshold.",
        "formula": "`success_percentage = 100 * questions_above_threshold / total_questions`",
        "provenance": "Raw. Shown as reported by the API, never recomputed locally.",
        "caveats": [
            "Percentages are rounded server-side; recomputing from counts can differ in the last digit.",
        ],
        "used_in": ["Experiment Report", "Compare Reports", "Leaderboard"],
    },
    "questions_above_threshold": {
        "name": "Questions above threshold",
        "category": "Quality",
        "definition": "Number of evaluated questions whose evaluator score passed the threshold.",
        "provenance": "Raw.",
        "used_in": ["Experiment Report", "Compare Reports", "Leaderboard"],
    },
    "evaluator_score": {
        "name": "Evaluator score",
        "category": "Quality",
        "definition": "Per-question score in [0, 1] assigned by the automated evaluator.",
        "provenance": "Raw. One sample per evaluated question.",
        "caveats": [
            "Scores are only comparable between reports evaluated with the same evaluator version.",
        ],
        "used_in": ["Experiment Report", "Compare Reports", "Raw Records"],
    },
    "score_histogram": {
        "name": "Score distribution",
        "category": "Quality",
        "definition": "Evaluator scores for one difficulty counted into ten equal-width buckets.",
        "formula": "bucket `i` holds scores in `[i/10, (i+1)/10)`; a score of exactly 1.0 goes in the last bucket",
        "provenance": "Derived from cached score samples.",
        "caveats": [
            "Scores outside [0, 1] are ignored.",
        ],
        "used_in": ["Compare Reports"],
    },
    "score_section": {
        "name": "Score section",
        "category": "Quality",
        "definition": "Groups evaluation records by evaluator score: zero, below the pass threshold, or passed.",
        "formula": "`zero: score == 0`, `below: 0 < score < 0.85`, `passed: score >= 0.85`",
        "provenance": "Derived from each record's raw evaluator score.",
        "caveats": [
            "Records with no numeric score belong to no section.",
        ],
        "used_in": ["Raw Records"],
    },
    "failed_metrics": {
        "name": "Failed metrics",
        "category": "Quality",
        "definition": "Evaluator sub-scores for a question that fell under 0.85.",
        "provenance": "Derived from the question-quality and image-quality scores in the raw evaluator response.",
        "caveats": [
            "Image-quality metrics are prefixed with `img:`.",
            "Only the first evaluated question in a response is read.",
        ],
        "used_in": ["Raw Records"],
    },
    # -------------------------
    # Latency
    # -------------------------
    "ttft": {
        "name": "Time to first token (TTFT)",
        "category": "Latency",
        "definition": "Time from request until the model streamed its first token.",
        "formula": "median and p90 per difficulty, converted from ms to seconds (2 decimals)",
        "provenance": "Raw per-difficulty aggregates from the report endpoint.",
        "caveats": [
            "When the median is missing the average is shown instead.",
        ],
        "used_in": ["Experiment Report", "Compare Reports"],
    },
    "total_generation": {
        "name": "Total generation time",
        "category": "Latency",
        "definition": "Time from request until generation finished.",
        "formula": "median and p90 per difficulty, converted from ms to seconds (2 decimals)",
        "provenance": "Raw per-difficulty aggregates from the report endpoint.",
        "caveats": [
            "When the median is missing the average is shown instead.",
        ],
        "used_in": ["Experiment Report", "Compare Reports"],
    },
}


# ---------------------------------------------------------------------------
# Page documentation
# ---------------------------------------------------------------------------

PAGES: dict[str, dict[str, Any]] = {
    "experiment_report": {
        "title": "🧪 Experiment Report",
        "what": [
            "Load the per-difficulty report for one experiment and filter combination.",
            "Reports are cached locally after the first load; reopening one makes no API call.",
        ],
        "data": [
            "Report rows, summary and score samples from the reporting API.",
            "The local cache keeps the most recent reports and evicts the oldest first.",
        ],
        "key_metrics": ["filter_key", "success_rate", "ttft", "total_generation"],
        "pitfalls": [
            "A cached report is a snapshot. Delete it and load again to pick up newer results.",
        ],
    },
    "compare_reports": {
        "title": "📊 Compare Reports",
        "what": [
            "Put 2 to 4 cached reports side by side per difficulty.",
        ],
        "data": [
            "Only cached reports are listed; load them on the Experiment Report page first.",
        ],
        "key_metrics": ["ttft", "total_generation", "success_rate", "score_histogram"],
        "pitfalls": [
            "'No data' means the report has no row for that difficulty, not zero questions.",
        ],
    },
    "leaderboard": {
        "title": "🏆 Leaderboard",
        "what": [
            "Rank experiments for one subject by success rate.",
        ],
        "data": [
            "Fetched live from the reporting API; not cached.",
            "Blocked experiments are hidden.",
        ],
        "key_metrics": ["success_rate", "questions_above_threshold", "view_mode"],
        "pitfalls": [
            "Use a minimum question count so tiny experiments do not top the ranking.",
        ],
    },
    "raw_records": {
        "title": "🔍 Raw Records",
        "what": [
            "Read individual evaluation records for one experiment, lowest score first.",
            "See which evaluator sub-metrics fail most often.",
        ],
        "data": [
            "Fetched live from the reporting API; not cached.",
            "The API returns at most 500 records per request.",
        ],
        "key_metrics": ["evaluator_score", "score_section", "failed_metrics", "difficulty"],
        "pitfalls": [
            "The default max score of 0.85 hides passing records. Raise it to 1.0 to see them.",
        ],
    },
}
