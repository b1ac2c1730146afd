"""Experiment Report tab: load one report through the cache and show it."""

from typing import Any

import pandas as pd
import streamlit as st

from evalboard import DIFFICULTIES, FilterKey
from evalboard.data_helpers import init_session_state
from evalboard.docs_ui import render_page_help
from evalboard.fetch_coordinator import FetchCoordinator
from evalboard.report_api import ReportApiClient
from evalboard.report_cache import ReportCacheStore
from evalboard.shared_ui import format_fetched_at, load_report_blocking

_ROW_COLUMNS = [
    "difficulty",
    "total_questions",
    "questions_above_threshold",
    "success_percentage",
    "median_ttft_ms",
    "p90_ttft_ms",
    "median_total_generation_ms",
    "p90_total_generation_ms",
    "avg_evaluator_score",
]


def _seconds_view(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    for col in [c for c in out.columns if c.endswith("_ms")]:
        out[col[: -len("_ms")] + "_s"] = (out[col] / 1000.0).round(2)
        out = out.drop(columns=[col])
    return out


def _render_report(report) -> None:
    st.markdown(f"**{report.label}** · fetched {format_fetched_at(report)}")

    s = report.summary
    if s is not None:
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Questions", f"{s.total_questions or 0:,}")
        c2.metric("Success rate", f"{s.success_percentage:.1f}%" if s.success_percentage is not None else "—")
        c3.metric("Avg TTFT", f"{s.avg_ttft_ms / 1000:.2f}s" if s.avg_ttft_ms is not None else "—")
        c4.metric(
            "Avg generation",
            f"{s.avg_total_generation_ms / 1000:.2f}s" if s.avg_total_generation_ms is not None else "—",
        )
        st.caption(
            f"Model: {s.model or '—'} · Provider: {s.provider or '—'} · Method: {s.method or '—'} · "
            f"Prompt: {s.prompt_id or '—'} · Temperature: {s.temperature if s.temperature is not None else '—'}"
        )
    else:
        st.caption("No summary row for this filter.")

    if not report.report_rows:
        st.info("The report has no per-difficulty rows for this filter.")
        return

    rows_df = pd.DataFrame([r.to_dict() for r in report.report_rows])
    order = {d.lower(): i for i, d in enumerate(DIFFICULTIES)}
    rows_df["_order"] = rows_df["difficulty"].str.lower().map(order).fillna(len(order))
    rows_df = rows_df.sort_values("_order")[_ROW_COLUMNS]
    st.dataframe(_seconds_view(rows_df), hide_index=True, use_container_width=True)


def render(
    store: ReportCacheStore,
    coordinator: FetchCoordinator,
    client: ReportApiClient | None,
) -> None:
    """Render the Experiment Report tab."""
    st.subheader("Experiment report")
    render_page_help("experiment_report")
    init_session_state({"report_current_key": None})

    with st.form("report_filters"):
        c1, c2, c3, c4 = st.columns([3, 1, 1, 1])
        tracker = c1.text_input("Experiment tracker", key="report_tracker")
        subject = c2.selectbox("Subject", options=["ela", "math", "science", "social-studies"], key="report_subject")
        grade_level = c3.text_input("Grade level", key="report_grade", placeholder="All")
        question_type = c4.text_input("Question type", key="report_qtype", placeholder="All")
        submitted = st.form_submit_button("📥 Load report", type="primary")

    if submitted:
        filter_key = FilterKey(tracker, subject, grade_level, question_type)
        report = load_report_blocking(coordinator, filter_key, client)
        if report is not None:
            st.session_state.report_current_key = filter_key

    cached = store.list()
    with st.expander(f"🗂️ Cached reports ({len(cached)}/{store.capacity})", expanded=not submitted):
        if not cached:
            st.caption("No cached reports yet. Load a report to cache it.")
        for entry in cached:
            c_open, c_del = st.columns([6, 1])
            with c_open:
                if st.button(
                    f"{entry.label} · {format_fetched_at(entry)}",
                    key=f"open_{entry.cache_key}",
                    use_container_width=True,
                ):
                    st.session_state.report_current_key = entry.filter_key
            with c_del:
                if st.button("🗑️", key=f"delete_{entry.cache_key}", help="Remove from cache"):
                    coordinator.delete(entry.filter_key)
                    if st.session_state.get("report_current_key") == entry.filter_key:
                        st.session_state.report_current_key = None
                    st.rerun()

    current: Any = st.session_state.get("report_current_key")
    if current is None:
        st.info("Enter an experiment tracker and subject, then **📥 Load report**. Cached reports open instantly.")
        return
    report = coordinator.cached(current)
    if report is None:
        st.info("That report is no longer cached. Load it again to refresh.")
        return
    _render_report(report)
