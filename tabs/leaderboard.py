"""Leaderboard tab."""

import pandas as pd
import streamlit as st

from evalboard import FetchFailed, VIEW_MODES, filter_blocked_experiments, should_highlight_experiment
from evalboard.charts import leaderboard_bar_chart
from evalboard.docs_ui import render_page_help
from evalboard.report_api import ReportApiClient

_VIEW_MODE_LABELS = {
    "attachment_filtered": "Text-only standards (attachment filtered)",
    "all": "All standards",
}


def render(client: ReportApiClient | None) -> None:
    """Render the Leaderboard tab."""
    st.subheader("Leaderboard")
    render_page_help("leaderboard")

    if client is None:
        st.info("Set EVALBOARD_API_URL (or the sidebar setting) to load the leaderboard.")
        return

    c1, c2, c3, c4 = st.columns([1, 1, 1, 2])
    subject = c1.selectbox("Subject", options=["ela", "math", "science", "social-studies"], key="lb_subject")
    grade_level = c2.text_input("Grade level", key="lb_grade", placeholder="All")
    question_type = c3.text_input("Question type", key="lb_qtype", placeholder="All")
    view_mode = c4.radio(
        "View",
        options=list(VIEW_MODES),
        format_func=lambda m: _VIEW_MODE_LABELS.get(m, m),
        horizontal=True,
        key="lb_view_mode",
    )
    min_total = st.number_input("Min total questions", min_value=0, value=0, step=10, key="lb_min_total")

    if st.button("🏆 Load leaderboard", type="primary"):
        try:
            with st.spinner("Loading leaderboard..."):
                rows = client.fetch_leaderboard(
                    subject,
                    grade_level=grade_level,
                    question_type=question_type,
                    min_total_questions=int(min_total) or None,
                    view_mode=view_mode,
                )
        except FetchFailed as exc:
            st.error(f"Failed to load leaderboard data: {exc}")
            return
        st.session_state.lb_rows = filter_blocked_experiments(rows)

    rows = st.session_state.get("lb_rows") or []
    if not rows:
        st.caption("No leaderboard rows loaded.")
        return

    df = pd.DataFrame(rows)
    for col in ("percentage", "total_questions", "questions_above_threshold"):
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
    if "experiment_tracker" in df.columns:
        df["highlight"] = [
            "⭐" if should_highlight_experiment(t, m) else ""
            for t, m in zip(df["experiment_tracker"], df.get("model", pd.Series([None] * len(df))))
        ]

    chart = leaderboard_bar_chart(df)
    if chart is not None:
        st.altair_chart(chart, use_container_width=True)
    st.dataframe(df, hide_index=True, use_container_width=True)
