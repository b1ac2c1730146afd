"""Evalboard entry page: load and inspect one experiment report."""

import streamlit as st

from evalboard.shared_ui import configure_page, get_api_client, get_services, render_sidebar
from tabs import render_experiment_report


def main() -> None:
    configure_page(title="Experiment Report - Evalboard", page_icon="🧪")

    config = render_sidebar()
    store, coordinator = get_services()

    st.title("🧪 Experiment reports")
    st.caption(
        "Reports are cached locally after the first load, so reopening one is instant. "
        "Use **Compare Reports** to put cached reports side by side."
    )

    render_experiment_report(
        store=store,
        coordinator=coordinator,
        client=get_api_client(config),
    )


if __name__ == "__main__":
    main()
