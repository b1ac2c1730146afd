"""Experiments hidden from the leaderboard and experiment selectors.

Ids match case-insensitively and exactly; patterns match as case-insensitive
substrings of either the tracker or the display name.
"""

from collections.abc import Callable, Iterable
from typing import Any, TypeVar

T = TypeVar("T")

BLOCKED_EXPERIMENT_IDS: tuple[str, ...] = ()
BLOCKED_EXPERIMENT_PATTERNS: tuple[str, ...] = ()
HIGHLIGHT_PATTERN = "incept"


def is_experiment_blocked(
    experiment_tracker: str | None,
    experiment_name: str | None = None,
    *,
    blocked_ids: Iterable[str] = BLOCKED_EXPERIMENT_IDS,
    patterns: Iterable[str] = BLOCKED_EXPERIMENT_PATTERNS,
) -> bool:
    if not experiment_tracker:
        return False
    tracker = str(experiment_tracker).lower()
    name = str(experiment_name or "").lower()
    pats = [str(p).lower() for p in patterns if str(p).strip()]

    if any(str(i).lower() == tracker for i in blocked_ids):
        return True
    if any(p in tracker for p in pats):
        return True
    return bool(name) and any(p in name for p in pats)


def filter_blocked_experiments(
    experiments: Iterable[T],
    get_tracker: Callable[[T], Any] = lambda row: row.get("experiment_tracker"),
    get_name: Callable[[T], Any] | None = None,
    **kwargs: Any,
) -> list[T]:
    """Drop blocked experiments; ``kwargs`` are passed through to ``is_experiment_blocked``."""
    out: list[T] = []
    for exp in experiments:
        name = get_name(exp) if get_name else None
        if not is_experiment_blocked(get_tracker(exp), name, **kwargs):
            out.append(exp)
    return out


def should_highlight_experiment(experiment_tracker: str | None, experiment_name: str | None = None) -> bool:
    tracker = str(experiment_tracker or "").lower()
    name = str(experiment_name or "").lower()
    return HIGHLIGHT_PATTERN in tracker or HIGHLIGHT_PATTERN in name
