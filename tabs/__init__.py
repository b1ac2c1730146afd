"""Tab modules for the Streamlit app."""

from tabs.experiment_report import render as render_experiment_report
from tabs.compare_reports import render as render_compare_reports
from tabs.leaderboard import render as render_leaderboard
from tabs.raw_records import render as render_raw_records

__all__ = [
    "render_experiment_report",
    "render_compare_reports",
    "render_leaderboard",
    "render_raw_records",
]
