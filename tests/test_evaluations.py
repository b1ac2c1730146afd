"""Tests for evaluation record sections and evaluator detail parsing."""

from __future__ import annotations

import json

import pandas as pd
import pytest

from evalboard.evaluations import (
    ScoreSection,
    answer_correct,
    evaluations_frame,
    failed_metric_counts,
    failed_metrics,
    recommendation,
    score_section,
    section_counts,
)


def _parsed(qa_scores=None, image_scores=None, is_correct=None, rec=None) -> dict:
    detail: dict = {}
    if qa_scores is not None or rec is not None:
        detail["ti_question_qa"] = {"scores": qa_scores or {}, "recommendation": rec}
    if image_scores is not None:
        detail["image_quality"] = {"scores": image_scores}
    if is_correct is not None:
        detail["answer_verification"] = {"is_correct": is_correct}
    return {"evaluations": {"q-1": detail}}


def _record(question_id, score, difficulty="Easy", **parsed_kwargs) -> dict:
    return {
        "question_id": question_id,
        "recipe_id": 100 + question_id,
        "difficulty": difficulty,
        "evaluator_score": score,
        "evaluator_parsed_response": _parsed(**parsed_kwargs),
        "model": "gpt-x",
    }


class TestScoreSection:
    @pytest.mark.parametrize(
        "score,section",
        [
            (0, ScoreSection.ZERO),
            ("0.0", ScoreSection.ZERO),
            (0.01, ScoreSection.BELOW),
            (0.8499, ScoreSection.BELOW),
            (0.85, ScoreSection.PASSED),
            (1.0, ScoreSection.PASSED),
        ],
    )
    def test_sections(self, score, section):
        assert score_section(score) is section

    @pytest.mark.parametrize("score", [None, "n/a", float("nan")])
    def test_non_numeric_score_has_no_section(self, score):
        assert score_section(score) is None


class TestEvaluatorDetail:
    def test_failed_metrics_under_threshold_only(self):
        parsed = _parsed(
            qa_scores={"clarity": 0.9, "grade_alignment": 0.5, "factual_accuracy": 0.85},
            image_scores={"label_legibility": 0.2, "layout": 1.0},
        )
        assert failed_metrics(parsed) == ["grade alignment", "img: label legibility"]

    def test_only_first_question_is_read(self):
        parsed = {
            "evaluations": {
                "q-1": {"ti_question_qa": {"scores": {"clarity": 0.1}}},
                "q-2": {"ti_question_qa": {"scores": {"difficulty_fit": 0.1}}},
            }
        }
        assert failed_metrics(parsed) == ["clarity"]

    def test_json_string_response_is_parsed(self):
        parsed = json.dumps(_parsed(qa_scores={"clarity": 0.4}, is_correct=False))
        assert failed_metrics(parsed) == ["clarity"]
        assert answer_correct(parsed) is False

    @pytest.mark.parametrize("parsed", [None, "{not json", [], {"evaluations": {}}, {"evaluations": {"q": "x"}}])
    def test_malformed_responses_are_empty(self, parsed):
        assert failed_metrics(parsed) == []
        assert answer_correct(parsed) is None
        assert recommendation(parsed) is None

    def test_non_numeric_sub_scores_are_ignored(self):
        assert failed_metrics(_parsed(qa_scores={"clarity": "PASS", "tone": None})) == []

    def test_answer_and_recommendation(self):
        parsed = _parsed(qa_scores={}, is_correct=True, rec=" accept ")
        assert answer_correct(parsed) is True
        assert recommendation(parsed) == "accept"


class TestFrames:
    def test_frame_flattens_records(self):
        records = [
            _record(1, 0, difficulty="hard", qa_scores={"clarity": 0.0}, is_correct=False),
            _record(2, 0.6, qa_scores={"clarity": 0.7, "tone": 0.3}),
            _record(3, 0.95, qa_scores={"clarity": 1.0}, is_correct=True),
        ]
        df = evaluations_frame(records)

        assert list(df["section"]) == ["zero", "below", "passed"]
        assert list(df["difficulty"]) == ["Hard", "Easy", "Easy"]
        assert df.loc[1, "failed_metrics"] == "clarity, tone"
        assert df.loc[2, "failed_metrics"] == ""
        assert df.loc[0, "answer_correct"] == False  # noqa: E712
        assert pd.isna(df.loc[1, "answer_correct"])

    def test_empty_records_keep_columns(self):
        df = evaluations_frame([])
        assert df.empty
        assert "section" in df.columns

    def test_section_counts_include_empty_sections(self):
        df = evaluations_frame([_record(1, 0), _record(2, 0.5), _record(3, 0.1, difficulty="Medium")])
        counts = section_counts(df)
        easy = counts[counts["difficulty"] == "Easy"].set_index("section")["count"].to_dict()
        medium = counts[counts["difficulty"] == "Medium"].set_index("section")["count"].to_dict()
        assert easy == {"zero": 1, "below": 1, "passed": 0}
        assert medium == {"zero": 0, "below": 1, "passed": 0}

    def test_failed_metric_counts_most_frequent_first(self):
        records = [
            _record(1, 0.2, qa_scores={"clarity": 0.1, "tone": 0.1}),
            _record(2, 0.3, qa_scores={"tone": 0.5}, image_scores={"layout": 0.0}),
            _record(3, 0.9, qa_scores={"tone": 0.9}),
        ]
        counts = failed_metric_counts(records)
        assert list(counts["metric"]) == ["tone", "clarity", "img: layout"]
        assert list(counts["count"]) == [2, 1, 1]

    def test_failed_metric_counts_empty(self):
        assert failed_metric_counts([]).empty
