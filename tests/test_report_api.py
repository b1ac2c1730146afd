"""Tests for the reporting API client: retry, status handling, request parameters.

All tests mock HTTP responses; no real API calls.
"""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import requests

from evalboard.errors import FetchFailed, InvalidFilter
from evalboard.models import FilterKey
from evalboard.report_api import ReportApiClient

from report_builders import row_dict


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_NO_JSON = object()


def _make_response(
    status_code: int,
    json_data: Any = _NO_JSON,
    headers: dict | None = None,
    text: str = "",
) -> MagicMock:
    """Build a mock requests.Response."""
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status_code
    resp.headers = headers if headers is not None else {"Content-Type": "application/json; charset=utf-8"}
    resp.text = text
    if json_data is _NO_JSON:
        resp.json.side_effect = ValueError("No JSON")
    else:
        resp.json.return_value = json_data
    return resp


def _client(responses: list[Any], **kwargs) -> tuple[ReportApiClient, MagicMock]:
    session = MagicMock(spec=requests.Session)
    session.get.side_effect = responses
    kwargs.setdefault("backoff", 0.01)
    return ReportApiClient("https://reports.example.com/api/", session=session, **kwargs), session


def _report_responses(rows=None, summary=None, scores=None) -> list[MagicMock]:
    return [
        _make_response(200, rows if rows is not None else [row_dict("Easy")]),
        _make_response(200, summary),
        _make_response(200, scores if scores is not None else []),
    ]


KEY = FilterKey("exp-A", "ela")


# ---------------------------------------------------------------------------
# Report payload
# ---------------------------------------------------------------------------


class TestFetchReport:
    def test_base_url_trailing_api_is_stripped(self):
        client, _ = _client([])
        assert client.base_url == "https://reports.example.com"

    def test_calls_three_endpoints_with_filter_params(self):
        client, session = _client(_report_responses(), evaluator_version="v3")
        payload = client.fetch_report_payload(FilterKey("exp-A", "ela", "3"))

        urls = [c.args[0] for c in session.get.call_args_list]
        assert urls == [
            "https://reports.example.com/api/experiment-report",
            "https://reports.example.com/api/experiment-summary",
            "https://reports.example.com/api/experiment-scores",
        ]
        params = session.get.call_args_list[0].kwargs["params"]
        assert params == {"experiment_tracker": "exp-A", "subject": "ela", "grade_level": "3", "evaluator_version": "v3"}
        assert set(payload) == {"report_rows", "summary", "score_samples"}
        assert payload["summary"] is None

    def test_null_scores_become_empty_list(self):
        responses = _report_responses()
        responses[2] = _make_response(200, None)
        client, _ = _client(responses)
        assert client.fetch_report_payload(KEY)["score_samples"] == []

    def test_rows_must_be_a_list(self):
        client, _ = _client(_report_responses(rows={"error": "nope"}))
        with pytest.raises(FetchFailed):
            client.fetch_report_payload(KEY)

    def test_incomplete_key_makes_no_request(self):
        client, session = _client([])
        with pytest.raises(InvalidFilter):
            client.fetch_report_payload(FilterKey("", "ela"))
        session.get.assert_not_called()

    def test_async_wrapper_returns_payload(self):
        client, _ = _client(_report_responses(scores=[{"question_id": 1, "evaluator_score": 0.5}]))
        payload = asyncio.run(client.fetch_report(KEY))
        assert payload["score_samples"][0]["evaluator_score"] == 0.5


# ---------------------------------------------------------------------------
# Retry and status handling
# ---------------------------------------------------------------------------


class TestRetry:
    @patch("evalboard.report_api.time_mod.sleep")
    def test_retries_on_5xx_then_succeeds(self, mock_sleep):
        responses = [_make_response(502, text="Bad Gateway")] + _report_responses()
        client, session = _client(responses, retry=2)
        payload = client.fetch_report_payload(KEY)
        assert len(payload["report_rows"]) == 1
        assert session.get.call_count == 4
        mock_sleep.assert_called_once()

    @patch("evalboard.report_api.time_mod.sleep")
    def test_5xx_exhausts_retries(self, mock_sleep):
        client, session = _client([_make_response(500, text="boom")] * 3, retry=2)
        with pytest.raises(FetchFailed) as excinfo:
            client.fetch_report_payload(KEY)
        assert excinfo.value.status_code == 500
        assert excinfo.value.filter_key == KEY
        assert session.get.call_count == 3
        assert mock_sleep.call_count == 2

    @patch("evalboard.report_api.time_mod.sleep")
    def test_4xx_is_not_retried(self, mock_sleep):
        client, session = _client([_make_response(404, text="not found")])
        with pytest.raises(FetchFailed) as excinfo:
            client.fetch_report_payload(KEY)
        assert excinfo.value.status_code == 404
        assert session.get.call_count == 1
        mock_sleep.assert_not_called()

    @patch("evalboard.report_api.time_mod.sleep")
    def test_connection_error_retried_then_raised(self, mock_sleep):
        client, session = _client([requests.ConnectionError("refused")] * 2, retry=1)
        with pytest.raises(FetchFailed):
            client.fetch_report_payload(KEY)
        assert session.get.call_count == 2

    def test_html_response_is_rejected(self):
        client, _ = _client([_make_response(200, headers={"Content-Type": "text/html"}, text="<html>")])
        with pytest.raises(FetchFailed, match="instead of JSON"):
            client.fetch_report_payload(KEY)

    def test_invalid_json_is_rejected(self):
        client, _ = _client([_make_response(200)])
        with pytest.raises(FetchFailed, match="invalid JSON"):
            client.fetch_report_payload(KEY)


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------


class TestLeaderboard:
    def test_optional_params_are_omitted(self):
        client, session = _client([_make_response(200, [{"experiment_tracker": "exp-A"}, "junk"])])
        rows = client.fetch_leaderboard("ELA", grade_level="  ", min_total_questions=0)
        params = session.get.call_args.kwargs["params"]
        assert params == {"subject": "ela", "view_mode": "attachment_filtered"}
        assert rows == [{"experiment_tracker": "exp-A"}]

    def test_filters_are_sent(self):
        client, session = _client([_make_response(200, [])])
        client.fetch_leaderboard(
            "math", grade_level="5", question_type="mcq", min_total_questions=20, view_mode="all", evaluator_version="v2"
        )
        params = session.get.call_args.kwargs["params"]
        assert params == {
            "subject": "math",
            "view_mode": "all",
            "grade_level": "5",
            "question_type": "mcq",
            "min_total_questions": 20,
            "evaluator_version": "v2",
        }

    @pytest.mark.parametrize("subject,view_mode", [("", "all"), ("ela", "everything")])
    def test_invalid_arguments_raise(self, subject, view_mode):
        client, session = _client([])
        with pytest.raises(ValueError):
            client.fetch_leaderboard(subject, view_mode=view_mode)
        session.get.assert_not_called()


# ---------------------------------------------------------------------------
# Evaluation records
# ---------------------------------------------------------------------------


class TestEvaluations:
    def test_filters_are_sent(self):
        client, session = _client([_make_response(200, [{"question_id": 7, "evaluator_score": 0.2}])])
        records = client.fetch_evaluations(FilterKey("exp-A", "ela", "3", "mcq"), difficulty="Hard", max_score=0.85)

        assert session.get.call_args.args[0] == "https://reports.example.com/api/evaluations"
        assert session.get.call_args.kwargs["params"] == {
            "experiment_tracker": "exp-A",
            "subject": "ela",
            "grade_level": "3",
            "question_type": "mcq",
            "difficulty": "Hard",
            "max_score": 0.85,
        }
        assert records == [{"question_id": 7, "evaluator_score": 0.2}]

    def test_optional_filters_are_omitted(self):
        client, session = _client([_make_response(200, [])])
        client.fetch_evaluations(KEY, difficulty=" ")
        assert session.get.call_args.kwargs["params"] == {"experiment_tracker": "exp-A", "subject": "ela"}

    def test_zero_max_score_is_sent(self):
        client, session = _client([_make_response(200, [])])
        client.fetch_evaluations(KEY, max_score=0)
        assert session.get.call_args.kwargs["params"]["max_score"] == 0.0

    def test_null_body_is_empty_and_non_objects_dropped(self):
        client, _ = _client([_make_response(200, None), _make_response(200, [{"question_id": 1}, 3, "x"])])
        assert client.fetch_evaluations(KEY) == []
        assert client.fetch_evaluations(KEY) == [{"question_id": 1}]

    def test_object_body_raises(self):
        client, _ = _client([_make_response(200, {"error": "bad subject"})])
        with pytest.raises(FetchFailed, match="did not return a list") as excinfo:
            client.fetch_evaluations(KEY)
        assert excinfo.value.filter_key == KEY

    def test_incomplete_key_makes_no_request(self):
        client, session = _client([])
        with pytest.raises(InvalidFilter):
            client.fetch_evaluations(FilterKey("exp-A", ""))
        session.get.assert_not_called()
