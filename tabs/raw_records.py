"""Raw Records tab: per-question evaluation records for one experiment."""

import streamlit as st

from evalboard import DIFFICULTIES, FetchFailed, FilterKey, InvalidFilter
from evalboard.charts import failed_metrics_chart
from evalboard.data_helpers import csv_bytes_any, init_session_state
from evalboard.docs_ui import render_page_help
from evalboard.evaluations import (
    PASS_THRESHOLD,
    ScoreSection,
    evaluations_frame,
    failed_metric_counts,
    section_counts,
)
from evalboard.report_api import ReportApiClient

_SUBJECTS = ["ela", "math", "science", "social-studies"]


def _prefill_from_query_params() -> None:
    # Links from other tools open this page with ?experiment_tracker=...&subject=...
    params = st.query_params
    if "raw_tracker" not in st.session_state and params.get("experiment_tracker"):
        st.session_state.raw_tracker = params.get("experiment_tracker")
    if "raw_subject" not in st.session_state and params.get("subject") in _SUBJECTS:
        st.session_state.raw_subject = params.get("subject")


def render(client: ReportApiClient | None) -> None:
    """Render the Raw Records tab."""
    st.subheader("Raw evaluation records")
    render_page_help("raw_records")

    if client is None:
        st.info("Set EVALBOARD_API_URL (or the sidebar setting) to load evaluation records.")
        return

    init_session_state({"raw_records": [], "raw_records_key": None})
    _prefill_from_query_params()

    with st.form("raw_filters"):
        c1, c2, c3, c4 = st.columns([3, 1, 1, 1])
        tracker = c1.text_input("Experiment tracker", key="raw_tracker")
        subject = c2.selectbox("Subject", options=_SUBJECTS, key="raw_subject")
        grade_level = c3.text_input("Grade level", key="raw_grade", placeholder="All")
        question_type = c4.text_input("Question type", key="raw_qtype", placeholder="All")
        c5, c6 = st.columns(2)
        difficulty = c5.selectbox("Difficulty", options=["", *DIFFICULTIES], format_func=lambda d: d or "All")
        max_score = c6.number_input(
            "Max evaluator score",
            min_value=0.0,
            max_value=1.0,
            value=PASS_THRESHOLD,
            step=0.05,
            help="Only records scoring at or below this are returned. Set to 1.0 to see everything.",
        )
        submitted = st.form_submit_button("🔍 Load records", type="primary")

    if submitted:
        filter_key = FilterKey(tracker, subject, grade_level, question_type)
        try:
            with st.spinner("Loading evaluation records..."):
                records = client.fetch_evaluations(
                    filter_key,
                    difficulty=difficulty or None,
                    max_score=None if max_score >= 1.0 else float(max_score),
                )
        except InvalidFilter as exc:
            st.warning(str(exc))
            return
        except FetchFailed as exc:
            st.error(f"Failed to fetch evaluations: {exc}")
            return
        st.session_state.raw_records = records
        st.session_state.raw_records_key = filter_key

    records = st.session_state.get("raw_records") or []
    if st.session_state.get("raw_records_key") is None:
        st.info("Enter an experiment tracker and subject, then **🔍 Load records**.")
        return
    if not records:
        st.caption("No evaluation records match these filters.")
        return

    df = evaluations_frame(records)
    st.caption(f"{len(df):,} records for {st.session_state.raw_records_key.label}, lowest score first.")

    counts = section_counts(df)
    pivot = counts.pivot(index="difficulty", columns="section", values="count")
    pivot = pivot.reindex(columns=[s.value for s in ScoreSection]).rename(columns={s.value: s.title for s in ScoreSection})
    st.dataframe(pivot, use_container_width=True)

    chart = failed_metrics_chart(failed_metric_counts(records))
    if chart is not None:
        st.altair_chart(chart, use_container_width=True)

    section = st.radio(
        "Section",
        options=["all", *[s.value for s in ScoreSection]],
        format_func=lambda s: "All" if s == "all" else ScoreSection(s).title,
        horizontal=True,
        key="raw_section",
    )
    view = df if section == "all" else df[df["section"] == section]
    st.dataframe(view, hide_index=True, use_container_width=True)

    st.download_button(
        "⬇️ Download CSV",
        data=csv_bytes_any(view.to_dict(orient="records")),
        file_name="evaluation_records.csv",
        mime="text/csv",
    )

    ids = [str(q) for q in view["question_id"].tolist()]
    if ids:
        picked = st.selectbox("Inspect question", options=ids, key="raw_inspect")
        record = next((r for r in records if str(r.get("question_id")) == picked), None)
        if record is not None:
            with st.expander("Prompt and model response"):
                st.text(str(record.get("prompt_text") or ""))
                st.json(record.get("model_parsed_response") or {})
            with st.expander("Evaluator response", expanded=True):
                st.json(record.get("evaluator_parsed_response") or {})
