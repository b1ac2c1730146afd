"""Compare Reports tab: latency, success rate and score distributions across cached reports."""

import pandas as pd
import streamlit as st

from evalboard import (
    DIFFICULTIES,
    MAX_COMPARE_ITEMS,
    MIN_COMPARE_ITEMS,
    LatencyMetric,
    build_latency_comparison,
    build_score_histogram,
    build_success_rate_comparison,
    build_summary_comparison,
    csv_bytes_any,
    histogram_frame,
    latency_frame,
    success_rate_frame,
)
from evalboard.charts import latency_comparison_chart, score_histogram_chart, success_rate_comparison_chart
from evalboard.data_helpers import init_session_state
from evalboard.docs_ui import render_page_help
from evalboard.fetch_coordinator import FetchCoordinator
from evalboard.report_cache import ReportCacheStore
from evalboard.shared_ui import format_fetched_at

NO_DATA = "No data"


def _wide_table(frame: pd.DataFrame, value_fn) -> pd.DataFrame:
    """Pivot a long comparison frame into difficulty x report, rendering absent cells as "No data"."""
    table: dict[str, dict[str, str]] = {}
    for rec in frame.to_dict(orient="records"):
        table.setdefault(rec["difficulty"], {})[rec["report"]] = value_fn(rec) if rec["has_data"] else NO_DATA
    return pd.DataFrame.from_dict(table, orient="index").reindex(list(DIFFICULTIES))


def _fmt_seconds(value) -> str:
    return "—" if value is None or pd.isna(value) else f"{value:.2f}s"


def _fmt_latency(rec: dict) -> str:
    return f"p50 {_fmt_seconds(rec['median_s'])} · p90 {_fmt_seconds(rec['p90_s'])}"


def _fmt_success(rec: dict) -> str:
    pct = rec["success_percentage"]
    pct_text = "—" if pct is None or pd.isna(pct) else f"{pct:.1f}%"
    above = rec["questions_above_threshold"]
    total = rec["total_questions"]
    above_text = "—" if above is None or pd.isna(above) else f"{int(above):,}"
    total_text = "—" if total is None or pd.isna(total) else f"{int(total):,}"
    return f"{pct_text} ({above_text}/{total_text})"


def render(store: ReportCacheStore, coordinator: FetchCoordinator) -> None:
    """Render the Compare Reports tab."""
    st.subheader("Compare experiment reports")
    render_page_help("compare_reports")
    st.caption(
        f"Select {MIN_COMPARE_ITEMS} to {MAX_COMPARE_ITEMS} cached reports to compare latency, "
        "performance, and evaluator scores."
    )

    cached = store.list()
    if not cached:
        st.info("No cached reports available. Load experiment reports on the main page to cache them.")
        return

    init_session_state({"compare_selected": []})

    by_key = {r.cache_key: r for r in cached}
    selected_keys = [k for k in st.session_state.compare_selected if k in by_key]

    st.markdown(f"**Cached reports ({len(cached)}/{store.capacity})**")
    for report in cached:
        c_pick, c_meta, c_del = st.columns([6, 2, 1])
        with c_pick:
            picked = st.checkbox(
                report.label,
                value=report.cache_key in selected_keys,
                key=f"cmp_{report.cache_key}",
                disabled=report.cache_key not in selected_keys and len(selected_keys) >= MAX_COMPARE_ITEMS,
            )
        with c_meta:
            st.caption(f"{len(report.report_rows)} rows · {format_fetched_at(report)}")
        with c_del:
            if st.button("🗑️", key=f"cmp_del_{report.cache_key}", help="Remove from cache"):
                coordinator.delete(report.filter_key)
                st.session_state.compare_selected = [k for k in selected_keys if k != report.cache_key]
                st.rerun()
        if picked and report.cache_key not in selected_keys:
            selected_keys.append(report.cache_key)
        elif not picked and report.cache_key in selected_keys:
            selected_keys.remove(report.cache_key)
    st.session_state.compare_selected = selected_keys

    reports = [by_key[k] for k in selected_keys]
    if len(reports) < MIN_COMPARE_ITEMS:
        st.info(f"Choose at least {MIN_COMPARE_ITEMS} cached reports above to view detailed comparisons.")
        return

    labels = [r.label for r in reports]
    st.markdown("---")

    summaries = [s for s in build_summary_comparison(reports) if s is not None]
    if summaries:
        st.markdown("#### Overview")
        st.dataframe(pd.DataFrame(summaries), hide_index=True, use_container_width=True)

    st.markdown("#### Latency")
    metric = st.radio(
        "Latency metric",
        options=list(LatencyMetric),
        format_func=lambda m: m.title,
        horizontal=True,
        key="compare_latency_metric",
    )
    lat_df = latency_frame(build_latency_comparison(reports, metric), labels)
    chart = latency_comparison_chart(lat_df, f"{metric.title} (median, p90 tick)")
    if chart is not None:
        st.altair_chart(chart, use_container_width=True)
    st.dataframe(_wide_table(lat_df, _fmt_latency), use_container_width=True)

    st.markdown("#### Success rate")
    sr_df = success_rate_frame(build_success_rate_comparison(reports), labels)
    chart = success_rate_comparison_chart(sr_df)
    if chart is not None:
        st.altair_chart(chart, use_container_width=True)
    st.dataframe(_wide_table(sr_df, _fmt_success), use_container_width=True)

    st.markdown("#### Evaluator score distribution")
    difficulty = st.radio("Difficulty", options=list(DIFFICULTIES), horizontal=True, key="compare_hist_difficulty")
    histograms = build_score_histogram(reports, difficulty)
    chart = score_histogram_chart(histogram_frame(histograms), difficulty)
    if chart is not None:
        st.altair_chart(chart, use_container_width=True)
    else:
        st.caption(f"No {difficulty} score samples in the selected reports.")
    cols = st.columns(len(histograms))
    for col, h in zip(cols, histograms):
        col.metric(
            h.report_label,
            f"{h.mean_score:.2f}" if h.mean_score is not None else "N/A",
            help=f"Mean evaluator score over {h.sample_count} {difficulty} samples",
        )

    export_rows = [
        {"section": "latency", "metric": metric.value, **rec}
        for rec in lat_df.to_dict(orient="records")
    ] + [{"section": "success_rate", **rec} for rec in sr_df.to_dict(orient="records")]
    st.download_button(
        label="⬇️ Download comparison csv",
        data=csv_bytes_any(export_rows),
        file_name="report_comparison.csv",
        mime="text/csv",
        key="compare_csv_download",
    )
