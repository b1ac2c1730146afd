"""Chart utilities for the Streamlit app."""

import altair as alt
import pandas as pd


def latency_comparison_chart(latency_df: pd.DataFrame, title: str) -> alt.Chart | None:
    """Grouped bars of median latency per difficulty, one bar per report; p90 as a tick."""
    df = latency_df[latency_df["has_data"]].copy() if len(latency_df) else latency_df
    if not len(df):
        return None
    base = alt.Chart(df).encode(
        x=alt.X("difficulty:N", title="Difficulty", sort=["Easy", "Medium", "Hard"]),
        xOffset=alt.XOffset("report:N"),
        color=alt.Color("report:N", title="Report"),
    )
    bars = base.mark_bar().encode(
        y=alt.Y("median_s:Q", title="Seconds"),
        tooltip=[
            alt.Tooltip("report:N", title="Report"),
            alt.Tooltip("difficulty:N", title="Difficulty"),
            alt.Tooltip("median_s:Q", title="Median (s)", format=".2f"),
            alt.Tooltip("p90_s:Q", title="p90 (s)", format=".2f"),
        ],
    )
    ticks = base.mark_tick(color="black", thickness=2).encode(y=alt.Y("p90_s:Q"))
    return (bars + ticks).properties(title=title)


def success_rate_comparison_chart(success_df: pd.DataFrame) -> alt.Chart | None:
    """Grouped bars of success percentage per difficulty, one bar per report."""
    df = success_df[success_df["has_data"]].copy() if len(success_df) else success_df
    if not len(df):
        return None
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("difficulty:N", title="Difficulty", sort=["Easy", "Medium", "Hard"]),
            xOffset=alt.XOffset("report:N"),
            y=alt.Y("success_percentage:Q", title="Success rate (%)", scale=alt.Scale(domain=[0, 100])),
            color=alt.Color("report:N", title="Report"),
            tooltip=[
                alt.Tooltip("report:N", title="Report"),
                alt.Tooltip("difficulty:N", title="Difficulty"),
                alt.Tooltip("questions_above_threshold:Q", title="Above threshold", format=","),
                alt.Tooltip("total_questions:Q", title="Total questions", format=","),
                alt.Tooltip("success_percentage:Q", title="Success rate (%)", format=".1f"),
            ],
        )
        .properties(title="Success rate by difficulty")
    )


def score_histogram_chart(histogram_df: pd.DataFrame, difficulty: str) -> alt.Chart | None:
    """Evaluator score distribution (10 fixed buckets) per report."""
    if not len(histogram_df) or not histogram_df["count"].sum():
        return None
    return (
        alt.Chart(histogram_df)
        .mark_bar()
        .encode(
            x=alt.X("bucket_label:N", title="Evaluator score", sort=None),
            xOffset=alt.XOffset("report:N"),
            y=alt.Y("count:Q", title="Questions"),
            color=alt.Color("report:N", title="Report"),
            tooltip=[
                alt.Tooltip("report:N", title="Report"),
                alt.Tooltip("bucket_label:N", title="Score range"),
                alt.Tooltip("count:Q", title="Questions"),
            ],
        )
        .properties(title=f"Evaluator score distribution ({difficulty})")
    )


def leaderboard_bar_chart(leaderboard_df: pd.DataFrame, top_n: int = 20) -> alt.Chart | None:
    """Success percentage per experiment, faceted by difficulty via color."""
    if not len(leaderboard_df) or not {"percentage", "experiment_tracker"} <= set(leaderboard_df.columns):
        return None
    df = leaderboard_df.sort_values("percentage", ascending=False).head(top_n)
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("percentage:Q", title="Success rate (%)", scale=alt.Scale(domain=[0, 100])),
            y=alt.Y("experiment_tracker:N", sort="-x", title="Experiment"),
            color=alt.Color("difficulty:N", title="Difficulty", sort=["Easy", "Medium", "Hard"]),
            tooltip=[
                alt.Tooltip("experiment_tracker:N", title="Experiment"),
                alt.Tooltip("model:N", title="Model"),
                alt.Tooltip("difficulty:N", title="Difficulty"),
                alt.Tooltip("questions_above_threshold:Q", title="Above threshold", format=","),
                alt.Tooltip("total_questions:Q", title="Total", format=","),
                alt.Tooltip("percentage:Q", title="Success rate (%)", format=".1f"),
            ],
        )
        .properties(title="Leaderboard")
    )


def failed_metrics_chart(counts_df: pd.DataFrame, top_n: int = 15) -> alt.Chart | None:
    """Horizontal bars of how often each evaluator sub-metric fell under the threshold."""
    if not len(counts_df):
        return None
    df = counts_df.head(top_n)
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("count:Q", title="Questions"),
            y=alt.Y("metric:N", sort="-x", title="Metric"),
            tooltip=[
                alt.Tooltip("metric:N", title="Metric"),
                alt.Tooltip("count:Q", title="Questions"),
            ],
        )
        .properties(title="Most frequent failed metrics")
    )
