"""Client for the evaluation reporting API (experiment reports, evaluation records and leaderboard)."""

from __future__ import annotations

import asyncio
import logging
import time as time_mod
from typing import Any

import requests

from evalboard.config_utils import normalize_api_base_url
from evalboard.errors import FetchFailed
from evalboard.models import FilterKey

logger = logging.getLogger(__name__)

VIEW_MODES = ("attachment_filtered", "all")
DEFAULT_VIEW_MODE = "attachment_filtered"


class ReportApiClient:
    """Blocking HTTP client over ``requests.Session``.

    5xx responses and connection errors are retried ``retry`` times with linear
    backoff; anything else that is not a JSON 2xx response raises FetchFailed.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 30,
        retry: int = 2,
        backoff: float = 0.5,
        evaluator_version: str | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = normalize_api_base_url(base_url)
        if not self.base_url:
            raise ValueError("Missing reporting API base URL")
        self.timeout_s = float(timeout_s)
        self.retry = max(0, int(retry))
        self.backoff = float(backoff)
        self.evaluator_version = evaluator_version or None
        self.session = session or requests.Session()

    def _get_json(self, path: str, params: dict[str, Any], filter_key: FilterKey | None = None) -> Any:
        url = f"{self.base_url}{path}"
        attempts = 0
        while True:
            try:
                r = self.session.get(url, params=params, timeout=self.timeout_s)
            except requests.RequestException as exc:
                if attempts < self.retry:
                    attempts += 1
                    logger.warning("GET %s failed (%s), retry %d/%d", path, exc, attempts, self.retry)
                    time_mod.sleep(self.backoff * attempts)
                    continue
                raise FetchFailed(f"Request to {path} failed: {exc}", filter_key=filter_key) from exc

            if r.status_code < 400:
                break
            if 500 <= r.status_code < 600 and attempts < self.retry:
                attempts += 1
                logger.warning("GET %s returned %d, retry %d/%d", path, r.status_code, attempts, self.retry)
                time_mod.sleep(self.backoff * attempts)
                continue

            text_preview = str(getattr(r, "text", "") or "")[:500]
            raise FetchFailed(
                f"{path} returned status {r.status_code}: {text_preview}",
                filter_key=filter_key,
                status_code=r.status_code,
            )

        content_type = str((r.headers or {}).get("Content-Type") or "")
        if content_type and "json" not in content_type.lower():
            raise FetchFailed(
                f"{path} returned {content_type} instead of JSON",
                filter_key=filter_key,
                status_code=r.status_code,
            )
        try:
            return r.json()
        except ValueError as exc:
            raise FetchFailed(f"{path} returned invalid JSON", filter_key=filter_key, status_code=r.status_code) from exc

    def _report_params(self, filter_key: FilterKey) -> dict[str, Any]:
        params: dict[str, Any] = filter_key.to_query_params()
        if self.evaluator_version:
            params["evaluator_version"] = self.evaluator_version
        return params

    def fetch_report_payload(self, filter_key: FilterKey) -> dict[str, Any]:
        """Fetch report rows, summary and score samples for one filter key."""
        filter_key.validate()
        params = self._report_params(filter_key)
        rows = self._get_json("/api/experiment-report", params, filter_key)
        summary = self._get_json("/api/experiment-summary", params, filter_key)
        scores = self._get_json("/api/experiment-scores", params, filter_key)

        if not isinstance(rows, list):
            raise FetchFailed("/api/experiment-report did not return a list", filter_key=filter_key)
        if summary is not None and not isinstance(summary, dict):
            raise FetchFailed("/api/experiment-summary did not return an object", filter_key=filter_key)
        if scores is None:
            scores = []
        if not isinstance(scores, list):
            raise FetchFailed("/api/experiment-scores did not return a list", filter_key=filter_key)

        logger.info(
            "Fetched report %s: %d rows, %d score samples",
            filter_key.cache_key,
            len(rows),
            len(scores),
        )
        return {"report_rows": rows, "summary": summary, "score_samples": scores}

    async def fetch_report(self, filter_key: FilterKey) -> dict[str, Any]:
        """Async fetch function for ``FetchCoordinator.load_report``."""
        return await asyncio.to_thread(self.fetch_report_payload, filter_key)

    def fetch_leaderboard(
        self,
        subject: str,
        *,
        grade_level: str | None = None,
        question_type: str | None = None,
        min_total_questions: int | None = None,
        view_mode: str = DEFAULT_VIEW_MODE,
        evaluator_version: str | None = None,
    ) -> list[dict[str, Any]]:
        """Leaderboard rows for a subject. Empty optional filters are not sent."""
        subject = str(subject or "").strip()
        if not subject:
            raise ValueError("subject is required")
        if view_mode not in VIEW_MODES:
            raise ValueError(f"view_mode must be one of {VIEW_MODES}")

        params: dict[str, Any] = {"subject": subject.lower(), "view_mode": view_mode}
        if grade_level and str(grade_level).strip():
            params["grade_level"] = str(grade_level).strip()
        if question_type and str(question_type).strip():
            params["question_type"] = str(question_type).strip()
        if min_total_questions is not None and int(min_total_questions) > 0:
            params["min_total_questions"] = int(min_total_questions)
        version = evaluator_version or self.evaluator_version
        if version:
            params["evaluator_version"] = version

        data = self._get_json("/api/leaderboard", params)
        if not isinstance(data, list):
            raise FetchFailed("/api/leaderboard did not return a list")
        return [row for row in data if isinstance(row, dict)]

    def fetch_evaluations(
        self,
        filter_key: FilterKey,
        *,
        difficulty: str | None = None,
        max_score: float | None = None,
    ) -> list[dict[str, Any]]:
        """Per-question evaluation records for one filter key, lowest score first.

        ``max_score`` keeps only records scoring at or below it; None sends no limit.
        """
        filter_key.validate()
        params: dict[str, Any] = filter_key.to_query_params()
        if difficulty and str(difficulty).strip():
            params["difficulty"] = str(difficulty).strip()
        if max_score is not None:
            params["max_score"] = float(max_score)

        data = self._get_json("/api/evaluations", params, filter_key)
        if data is None:
            data = []
        if not isinstance(data, list):
            raise FetchFailed("/api/evaluations did not return a list", filter_key=filter_key)
        records = [row for row in data if isinstance(row, dict)]
        logger.info("Fetched %d evaluation records for %s", len(records), filter_key.cache_key)
        return records
