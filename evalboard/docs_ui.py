"""Reusable documentation UI components.

These helpers power the per-page "How to read this" panels and the Metrics
Glossary page. All *content* lives in :mod:`evalboard.metrics_registry`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pandas as pd
import streamlit as st

from evalboard.metrics_registry import METRICS, PAGES

# Keep in sync with the glossary page filename.
GLOSSARY_PAGE_PATH = "pages/3_📚_Metrics_Glossary.py"

GLOSSARY_COLUMNS = ["metric_id", "name", "category", "definition", "used_in"]


def get_metric_doc(metric_id: str) -> dict[str, Any] | None:
    """Return the documentation dict for a metric_id, if present."""
    return METRICS.get(str(metric_id or "").strip())


def glossary_frame(metrics: Mapping[str, Mapping[str, Any]] = METRICS) -> pd.DataFrame:
    """One row per documented metric, sorted by category then name."""
    rows = [
        {
            "metric_id": metric_id,
            "name": doc.get("name", metric_id),
            "category": doc.get("category", ""),
            "definition": doc.get("definition", ""),
            "used_in": ", ".join(doc.get("used_in") or []),
        }
        for metric_id, doc in metrics.items()
    ]
    df = pd.DataFrame(rows, columns=GLOSSARY_COLUMNS)
    if df.empty:
        return df
    return df.sort_values(["category", "name"], na_position="last").reset_index(drop=True)


def filter_glossary(df: pd.DataFrame, query: str = "", categories: list[str] | None = None) -> pd.DataFrame:
    view = df
    if categories:
        view = view[view["category"].isin(categories)]
    ql = str(query or "").strip().lower()
    if ql and len(view):
        view = view[
            view.apply(
                lambda r: ql in str(r.get("metric_id") or "").lower()
                or ql in str(r.get("name") or "").lower()
                or ql in str(r.get("definition") or "").lower(),
                axis=1,
            )
        ]
    return view


def render_metric_doc(metric_id: str, *, show_id: bool = True) -> None:
    """Render the full documentation for a metric inside the current container."""
    metric_id = str(metric_id or "").strip()
    doc = get_metric_doc(metric_id)
    if not doc:
        st.caption("No documentation available for this metric yet.")
        return

    st.markdown(f"**{doc.get('name', metric_id)}**")
    if show_id:
        st.caption(f"ID: `{metric_id}`")

    for heading, field in (("", "definition"), ("How it's computed", "formula"), ("Where it comes from", "provenance")):
        text = str(doc.get(field) or "").strip()
        if not text:
            continue
        if heading:
            st.markdown(f"**{heading}**")
        st.markdown(text)

    caveats = [c for c in doc.get("caveats") or [] if str(c).strip()]
    if caveats:
        st.markdown("**Caveats**")
        for c in caveats:
            st.markdown(f"- {c}")

    used_in = doc.get("used_in") or []
    if used_in:
        st.caption("Used in: " + ", ".join(str(x) for x in used_in))


def render_page_help(page_id: str, *, expanded: bool = False) -> None:
    """Render a standardized per-page help expander."""
    doc = PAGES.get(str(page_id or "").strip().lower())
    if not doc:
        return

    with st.expander("How to read this page", expanded=expanded):
        st.markdown(f"#### {doc.get('title') or 'How to read this page'}")

        for heading, field in (("What this page is for", "what"), ("What data it uses", "data")):
            lines = [line for line in doc.get(field) or [] if str(line).strip()]
            if lines:
                st.markdown(f"**{heading}**")
                for line in lines:
                    st.markdown(f"- {line}")

        key_metrics = doc.get("key_metrics") or []
        if key_metrics:
            st.markdown("**Key metrics on this page**")
            for mid in key_metrics:
                mdoc = get_metric_doc(mid)
                if mdoc:
                    st.markdown(f"- **{mdoc.get('name', mid)}** (`{mid}`): {mdoc.get('definition', '')}")
                else:
                    st.markdown(f"- `{mid}`")

        pitfalls = [line for line in doc.get("pitfalls") or [] if str(line).strip()]
        if pitfalls:
            st.markdown("**Common pitfalls**")
            for line in pitfalls:
                st.markdown(f"- {line}")

        st.page_link(GLOSSARY_PAGE_PATH, label="📚 Open Metrics Glossary")


def render_metrics_glossary_page() -> None:
    """Render the Metrics Glossary page."""
    st.title("📚 Metrics Glossary")
    st.caption("Definitions, formulas, provenance, and caveats for Evalboard metrics.")

    df = glossary_frame()
    if df.empty:
        st.warning("No metrics have been registered yet.")
        return

    c1, c2 = st.columns([2, 1])
    with c1:
        q = st.text_input("Search", value="", placeholder="e.g. success, latency, difficulty")
    with c2:
        categories = sorted(x for x in df["category"].dropna().astype(str).unique() if x.strip())
        selected_categories = st.multiselect("Category", options=categories, default=[])

    view = filter_glossary(df, q, selected_categories)

    st.markdown("### All metrics")
    st.dataframe(view[GLOSSARY_COLUMNS], use_container_width=True, hide_index=True)

    st.markdown("### Metric details")
    options = view["metric_id"].tolist()
    if not options:
        st.info("No metrics match the current filters.")
        return

    deep_link = str(st.query_params.get("metric") or "").strip()
    if deep_link in METRICS and deep_link not in options:
        options = [deep_link] + options
    index = options.index(deep_link) if deep_link in options else 0

    selected = st.selectbox(
        "Select a metric",
        options=options,
        index=index,
        format_func=lambda mid: f"{METRICS.get(mid, {}).get('name', mid)}  ·  {mid}",
    )
    with st.container(border=True):
        render_metric_doc(selected, show_id=True)

    st.markdown("### Export")
    st.download_button(
        "Download filtered glossary as JSON",
        data=view.to_json(orient="records", indent=2).encode("utf-8"),
        file_name="evalboard_metrics_glossary.json",
        mime="application/json",
    )
