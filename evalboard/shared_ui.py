"""Shared UI components for multipage Streamlit app."""

import asyncio
import logging
import os
from typing import Any

import streamlit as st

from evalboard.config_utils import resolve_app_config
from evalboard.data_helpers import maybe_load_dotenv
from evalboard.errors import FetchFailed, InvalidFilter
from evalboard.fetch_coordinator import FetchCoordinator
from evalboard.models import CachedReport, FilterKey
from evalboard.report_api import ReportApiClient
from evalboard.report_cache import ReportCacheStore
from evalboard.storage import FileStorage

logger = logging.getLogger(__name__)


def configure_page(title: str = "Evalboard", page_icon: str = "🧪", layout: str = "wide") -> None:
    """Configure Streamlit page settings and logging."""
    st.set_page_config(page_title=title, page_icon=page_icon, layout=layout)
    logging.basicConfig(level=os.getenv("EVALBOARD_LOG_LEVEL", "INFO"), format="%(levelname)s %(name)s: %(message)s")


def _secrets_map() -> dict[str, Any]:
    try:
        return dict(st.secrets)
    except Exception:
        return {}


def get_app_config() -> dict[str, Any]:
    """Current app configuration (session overrides, then secrets, then env)."""
    maybe_load_dotenv()
    session = {
        "api_base_url": st.session_state.get("api_base_url_override", ""),
    }
    return resolve_app_config(session, _secrets_map(), os.environ)


def get_services() -> tuple[ReportCacheStore, FetchCoordinator]:
    """Store and coordinator for this Streamlit session, created on first use."""
    if "report_store" not in st.session_state or "report_coordinator" not in st.session_state:
        config = get_app_config()
        store = ReportCacheStore(FileStorage(config["cache_dir"]), capacity=config["cache_capacity"])
        st.session_state.report_store = store
        st.session_state.report_coordinator = FetchCoordinator(store)
        logger.info("Report cache at %s (capacity %d)", config["cache_dir"], config["cache_capacity"])
    return st.session_state.report_store, st.session_state.report_coordinator


def get_api_client(config: dict[str, Any]) -> ReportApiClient | None:
    if not config.get("api_base_url"):
        return None
    return ReportApiClient(config["api_base_url"], evaluator_version=config.get("evaluator_version"))


def load_report_blocking(
    coordinator: FetchCoordinator,
    filter_key: FilterKey,
    client: ReportApiClient | None,
) -> CachedReport | None:
    """Run ``load_report`` to completion from a Streamlit script; errors are shown, not raised."""
    try:
        hit = coordinator.cached(filter_key)
        if hit is not None:
            return hit
        if client is None:
            st.error("Missing EVALBOARD_API_URL; only cached reports can be opened.")
            return None
        with st.spinner(f"Loading {filter_key.label}..."):
            return asyncio.run(coordinator.load_report(filter_key, client.fetch_report))
    except InvalidFilter as exc:
        st.error(str(exc))
    except FetchFailed as exc:
        logger.warning("Report fetch failed: %s", exc)
        st.error(f"Failed to load experiment data: {exc}")
    return None


def render_sidebar() -> dict[str, Any]:
    """Render the shared sidebar and return configuration dict."""
    config = get_app_config()
    store, _ = get_services()
    with st.sidebar:
        st.title("🧪 Evalboard")
        st.caption("Question-generation experiment reports.")
        st.markdown("---")
        with st.expander("⚙️ Settings", expanded=False):
            st.text_input(
                "Reporting API URL",
                value=config["api_base_url"],
                key="api_base_url_override",
                help="Overrides EVALBOARD_API_URL for this session.",
            )
            st.caption(f"Cache: `{config['cache_dir']}` · {len(store)}/{store.capacity} reports")
            st.json(config["sources"])
    return get_app_config()


def format_fetched_at(report: CachedReport) -> str:
    if report.fetched_at is None:
        return "unknown"
    return report.fetched_at.astimezone().strftime("%b %d, %H:%M")
