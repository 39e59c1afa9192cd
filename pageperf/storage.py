import csv
import json
import logging
from collections.abc import Sequence
from pathlib import Path

import pandas as pd

from .metrics import Failure, SiteSummary, TrialResult
from .settings import MeasureConfig

logger = logging.getLogger(__name__)

NA = Failure.NOT_AVAILABLE.value

# Per-site CSV columns taken from the final primary trial
FINAL_TRIAL_COLUMNS = {
    "TransferredBytes": "transferred_bytes",
    "SameOriginTransferredBytes": "same_origin_bytes",
    "CrossOriginTransferredBytes": "cross_origin_bytes",
    "TransferredResources": "transferred_resources",
    "PageSize_MB": "page_size_mb",
    "DOMElementCount": "dom_element_count",
}

TRIAL_COLUMNS = [
    "URL",
    "Try_Number",
    "Measurement_Type",
    "HomepageLinkFound_Site",
    "HomepageLinkHref_Identified",
    "DOMContentLoadedTime_ms",
    "LoadTime_ms",
    "DOMContentLoadedWallTime_ms",
    "LoadWallTime_ms",
    "PageSize_Bytes",
    "PageSize_MB",
    "DOMElementCount",
]


def site_columns(trials: int = 3, secondary_trials: int = 3) -> list[str]:
    cols = ["URL", "ActualURL"]
    for i in range(1, trials + 1):
        cols += [f"DOMContentLoadedTime_ms_Try{i}", f"LoadTime_ms_Try{i}"]
    cols += list(FINAL_TRIAL_COLUMNS)
    cols += ["HomepageLinkFound", "HomepageLinkHref"]
    for i in range(1, secondary_trials + 1):
        cols += [f"Homepage_DOMContentLoadedTime_ms_Try{i}", f"Homepage_LoadTime_ms_Try{i}"]
    return cols


def _trial_at(trials: Sequence[TrialResult], i: int) -> TrialResult | None:
    return trials[i - 1] if i <= len(trials) else None


def _export(trial: TrialResult | None, name: str):
    return trial.export_value(name) if trial else NA


def site_row(s: SiteSummary, trials: int = 3, secondary_trials: int = 3) -> dict:
    row = {"URL": s.site_url, "ActualURL": s.actual_site_url}
    for i in range(1, trials + 1):
        t = _trial_at(s.metrics, i)
        row[f"DOMContentLoadedTime_ms_Try{i}"] = _export(t, "dom_content_loaded_ms")
        row[f"LoadTime_ms_Try{i}"] = _export(t, "load_ms")
    final = s.metrics[-1] if s.metrics else None
    for col, name in FINAL_TRIAL_COLUMNS.items():
        row[col] = _export(final, name)
    row["HomepageLinkFound"] = s.link_found
    row["HomepageLinkHref"] = s.other_url or NA
    for i in range(1, secondary_trials + 1):
        t = _trial_at(s.other_metrics, i)
        row[f"Homepage_DOMContentLoadedTime_ms_Try{i}"] = _export(t, "dom_content_loaded_ms")
        row[f"Homepage_LoadTime_ms_Try{i}"] = _export(t, "load_ms")
    return row


def sites_to_df(summaries: Sequence[SiteSummary], trials: int = 3, secondary_trials: int = 3) -> pd.DataFrame:
    """One row per site, fixed columns."""
    rows = [site_row(s, trials, secondary_trials) for s in summaries]
    return pd.DataFrame(rows, columns=site_columns(trials, secondary_trials))


def _trial_row(s: SiteSummary, n: int, kind: str, t: TrialResult | None) -> dict:
    values = {
        "DOMContentLoadedTime_ms": _export(t, "dom_content_loaded_ms"),
        "LoadTime_ms": _export(t, "load_ms"),
        "DOMContentLoadedWallTime_ms": _export(t, "dom_content_loaded_wall_ms"),
        "LoadWallTime_ms": _export(t, "load_wall_ms"),
        "PageSize_Bytes": _export(t, "transferred_bytes"),
        "PageSize_MB": _export(t, "page_size_mb"),
        "DOMElementCount": _export(t, "dom_element_count"),
    }
    return {
        "URL": s.site_url,
        "Try_Number": n,
        "Measurement_Type": kind,
        "HomepageLinkFound_Site": s.link_found,
        "HomepageLinkHref_Identified": s.other_url or NA,
        **values,
    }


def trials_to_df(summaries: Sequence[SiteSummary], secondary_trials: int = 3) -> pd.DataFrame:
    """
    One row per trial. Sites without a secondary page still get
    `secondary_trials` "Homepage Navigation" rows, filled with N/A.
    """
    rows = []
    for s in summaries:
        for n, t in enumerate(s.metrics, start=1):
            rows.append(_trial_row(s, n, "Initial Load", t))
        other = list(s.other_metrics) or [None] * secondary_trials
        for n, t in enumerate(other, start=1):
            rows.append(_trial_row(s, n, "Homepage Navigation", t))
    return pd.DataFrame(rows, columns=TRIAL_COLUMNS)


def save_df(df: pd.DataFrame, out_path: Path) -> Path:
    """
    Persist a DataFrame as CSV. String fields (URLs, sentinels) are quoted.
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out_path, index=False, quoting=csv.QUOTE_NONNUMERIC)
    logger.info("Saved %s", out_path)
    return out_path


def save_json(summaries: Sequence[SiteSummary], out_path: Path) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(
        json.dumps([s.to_dict() for s in summaries], ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    logger.info("Saved %s", out_path)
    return out_path


def save_results(summaries: Sequence[SiteSummary], config: MeasureConfig, name: str) -> Path:
    """
    Write `summaries` under results/<name>.<ext> in the configured format.

    Keeps the filesystem layout in one place.
    """
    fmt = config.output_format
    if fmt == "json":
        return save_json(summaries, config.results_path / f"{name}.json")
    if fmt == "trials_csv":
        return save_df(trials_to_df(summaries, config.secondary_trials), config.results_path / f"{name}.csv")
    return save_df(sites_to_df(summaries, config.trials, config.secondary_trials), config.results_path / f"{name}.csv")
