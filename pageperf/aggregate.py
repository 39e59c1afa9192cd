"""
Reduce a list of trials for one page to a single set of values.

Two modes:
- "average": per field, mean over the trials that produced a number
- "selected": the values of one designated trial (1-based, default the third)
"""

import math
from collections.abc import Sequence

from .metrics import EXPORT_NAMES, NUMERIC_FIELDS, Failure, TrialResult, round2


def is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)


def average(trials: Sequence[TrialResult], name: str) -> float | Failure:
    """Mean of `name` over trials holding a number; Failure.NOT_AVAILABLE when none do."""
    values = [t.value(name) for t in trials]
    values = [v for v in values if is_number(v)]
    if not values:
        return Failure.NOT_AVAILABLE
    return round2(sum(values) / len(values))


def any_true(trials: Sequence[TrialResult], name: str = "link_found") -> bool:
    return any(t.ok and getattr(t, name) is True for t in trials)


def aggregate_average(trials: Sequence[TrialResult]) -> dict:
    out = {}
    for name in NUMERIC_FIELDS:
        v = average(trials, name)
        out[EXPORT_NAMES[name]] = v.value if isinstance(v, Failure) else v
    out[EXPORT_NAMES["link_found"]] = any_true(trials)
    return out


def aggregate_selected(trials: Sequence[TrialResult], selected_trial: int = 3) -> dict:
    if not 1 <= selected_trial <= len(trials):
        out = {EXPORT_NAMES[name]: Failure.NOT_AVAILABLE.value for name in NUMERIC_FIELDS}
        out[EXPORT_NAMES["link_found"]] = False
        return out
    trial = trials[selected_trial - 1]
    out = {EXPORT_NAMES[name]: trial.export_value(name) for name in NUMERIC_FIELDS}
    out[EXPORT_NAMES["link_found"]] = trial.export_value("link_found")
    return out


def aggregate(trials: Sequence[TrialResult], mode: str = "average", selected_trial: int = 3) -> dict:
    if mode == "selected":
        return aggregate_selected(trials, selected_trial)
    return aggregate_average(trials)
