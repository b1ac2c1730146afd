"""Evalboard: experiment report cache, fetch coordination and comparisons."""

from evalboard.errors import (
    EvalboardError,
    InvalidFilter,
    FetchFailed,
    CacheCorrupt,
    InvalidComparison,
)
from evalboard.models import (
    Difficulty,
    DIFFICULTIES,
    normalize_difficulty,
    FilterKey,
    ReportRow,
    ExperimentSummary,
    ScoreSample,
    CachedReport,
)
from evalboard.storage import (
    KeyValueStorage,
    MemoryStorage,
    FileStorage,
    StorageQuotaExceeded,
)
from evalboard.report_cache import (
    ReportCacheStore,
    CACHE_STORAGE_KEY,
    DEFAULT_CAPACITY,
)
from evalboard.fetch_coordinator import FetchCoordinator
from evalboard.comparison import (
    LatencyMetric,
    LatencyCell,
    SuccessRateCell,
    ComparisonRow,
    ScoreHistogram,
    MIN_COMPARE_ITEMS,
    MAX_COMPARE_ITEMS,
    build_latency_comparison,
    build_success_rate_comparison,
    build_score_histogram,
    build_summary_comparison,
    score_bucket,
    latency_frame,
    success_rate_frame,
    histogram_frame,
)
from evalboard.report_api import ReportApiClient, VIEW_MODES
from evalboard.evaluations import (
    PASS_THRESHOLD,
    ScoreSection,
    score_section,
    failed_metrics,
    evaluations_frame,
    failed_metric_counts,
)
from evalboard.blocked_experiments import (
    is_experiment_blocked,
    filter_blocked_experiments,
    should_highlight_experiment,
)
from evalboard.config_utils import resolve_app_config, normalize_api_base_url
from evalboard.data_helpers import maybe_load_dotenv, as_float, as_int, csv_bytes_any

__all__ = [
    # Errors
    "EvalboardError",
    "InvalidFilter",
    "FetchFailed",
    "CacheCorrupt",
    "InvalidComparison",
    # Models
    "Difficulty",
    "DIFFICULTIES",
    "normalize_difficulty",
    "FilterKey",
    "ReportRow",
    "ExperimentSummary",
    "ScoreSample",
    "CachedReport",
    # Storage
    "KeyValueStorage",
    "MemoryStorage",
    "FileStorage",
    "StorageQuotaExceeded",
    # Report cache
    "ReportCacheStore",
    "CACHE_STORAGE_KEY",
    "DEFAULT_CAPACITY",
    "FetchCoordinator",
    # Comparison
    "LatencyMetric",
    "LatencyCell",
    "SuccessRateCell",
    "ComparisonRow",
    "ScoreHistogram",
    "MIN_COMPARE_ITEMS",
    "MAX_COMPARE_ITEMS",
    "build_latency_comparison",
    "build_success_rate_comparison",
    "build_score_histogram",
    "build_summary_comparison",
    "score_bucket",
    "latency_frame",
    "success_rate_frame",
    "histogram_frame",
    # Reporting API
    "ReportApiClient",
    "VIEW_MODES",
    # Evaluation records
    "PASS_THRESHOLD",
    "ScoreSection",
    "score_section",
    "failed_metrics",
    "evaluations_frame",
    "failed_metric_counts",
    # Blocked experiments
    "is_experiment_blocked",
    "filter_blocked_experiments",
    "should_highlight_experiment",
    # Config / data helpers
    "resolve_app_config",
    "normalize_api_base_url",
    "maybe_load_dotenv",
    "as_float",
    "as_int",
    "csv_bytes_any",
]
