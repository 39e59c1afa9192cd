"""
Batch driver: measure every target of every dataset, one trial at a time.

For each site:
1. run the primary trials against the site URL
2. if the final primary trial detected a secondary link, run the
   secondary trials against it
3. aggregate both trial sets into a SiteSummary
"""

import logging
import shutil
from datetime import date
from pathlib import Path
from urllib.parse import urljoin, urlparse

from .aggregate import aggregate
from .metrics import SiteSummary, TrialResult
from .settings import MeasureConfig
from .storage import save_results
from .targets import Dataset
from .trial import TrialRunner

logger = logging.getLogger(__name__)


def is_http_url(url: str | None) -> bool:
    return bool(url) and urlparse(url).scheme in ("http", "https")


def resolve_secondary_url(href: str, requested_url: str, resolved_url: str | None = None) -> str:
    """
    Absolute URL of a detected link. Relative hrefs are resolved against the
    page the link was found on, or the requested URL when that is unknown.
    """
    if is_http_url(href):
        return href
    base = resolved_url if is_http_url(resolved_url) else requested_url
    return urljoin(base, href)


def actual_site_url(trials: list[TrialResult]) -> str:
    for t in trials:
        if t.ok and t.resolved_url:
            return t.resolved_url
    return trials[0].sentinel().value


def prepare_output_dir(path: Path, har_dir_name: str = "har") -> None:
    """
    Remove the output of earlier runs from `path` (the HAR directory and
    metrics-* files), creating `path` if needed. Anything else is left alone.
    """
    path.mkdir(parents=True, exist_ok=True)
    har_dir = path / har_dir_name
    if har_dir.is_dir():
        logger.info("[Batch] Clearing %s", har_dir)
        shutil.rmtree(har_dir)
    for stale in path.glob("metrics-*"):
        if stale.is_file():
            stale.unlink()


async def measure_site(runner, url: str, config: MeasureConfig, dataset: str | None = None) -> SiteSummary:
    primary = []
    for i in range(1, config.trials + 1):
        primary.append(await runner.run_trial(url, f"iter-{i}"))

    final = primary[-1]
    other_url = None
    other = []
    if final.ok and final.link_found and final.detected_link:
        other_url = resolve_secondary_url(final.detected_link, url, final.resolved_url)
        logger.info("[Batch] Measuring secondary page %s for %s", other_url, url)
        for i in range(1, config.secondary_trials + 1):
            other.append(await runner.run_trial(other_url, f"other-iter-{i}", find_link=False))
    else:
        logger.info("[Batch] No secondary page for %s, skipping its trials", url)

    return SiteSummary(
        site_url=url,
        actual_site_url=actual_site_url(primary),
        metrics=tuple(primary),
        other_url=other_url,
        other_metrics=tuple(other),
        summary=aggregate(primary, config.aggregation, config.selected_trial),
        other_summary=aggregate(other, config.aggregation, config.selected_trial),
        dataset=dataset,
    )


async def measure_dataset(runner, dataset: Dataset, config: MeasureConfig) -> list[SiteSummary]:
    summaries = []
    for n, url in enumerate(dataset.urls, start=1):
        logger.info("[Batch] (%d/%d) %s", n, len(dataset.urls), url)
        summaries.append(await measure_site(runner, url, config, dataset.name or None))
    return summaries


def output_name(dataset: Dataset, day: date | None = None) -> str:
    day = day or date.today()
    if dataset.name:
        return f"metrics-{dataset.name}-{day.isoformat()}"
    return f"metrics-{day.isoformat()}"


async def run(datasets: list[Dataset], config: MeasureConfig, runner_factory=TrialRunner) -> list[Path]:
    """
    Measure all datasets with one shared browser and write one output file
    per dataset. Returns the written paths.
    """
    if config.clear_results:
        prepare_output_dir(config.results_path, config.har_dir_name)
    else:
        config.results_path.mkdir(parents=True, exist_ok=True)

    written = []
    async with runner_factory(config) as runner:
        for dataset in datasets:
            summaries = await measure_dataset(runner, dataset, config)
            written.append(save_results(summaries, config, output_name(dataset)))
    return written
