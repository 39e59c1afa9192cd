import asyncio
import json
from datetime import date
from pathlib import Path

from pageperf.metrics import Failure, TrialResult
from pageperf.pipeline import (
    measure_site,
    output_name,
    prepare_output_dir,
    resolve_secondary_url,
    run,
)
from pageperf.settings import MeasureConfig
from pageperf.targets import Dataset


def make_ok(url: str, label: str, link: str | None = None) -> TrialResult:
    return TrialResult(
        url=url,
        label=label,
        dom_content_loaded_ms=100.0,
        load_ms=200.0,
        transferred_bytes=3000,
        same_origin_bytes=1000,
        cross_origin_bytes=2000,
        transferred_resources=2,
        page_size_mb=0.0,
        dom_element_count=10,
        resolved_url=url,
        detected_link=link,
        link_found=link is not None,
    )


class FakeRunner:
    """Replays canned trials; `links` maps a site URL to the link its trials detect."""

    def __init__(self, config=None, links=None, fail_last=()):
        self.config = config
        self.links = links or {}
        self.fail_last = set(fail_last)
        self.calls = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    async def run_trial(self, url, label, find_link=True):
        self.calls.append((url, label, find_link))
        if url in self.fail_last and label == "iter-3":
            return TrialResult.failed(url, label, Failure.DID_NOT_FINISH)
        return make_ok(url, label, self.links.get(url) if find_link else None)


def test_secondary_trials_run_when_final_trial_found_link():
    runner = FakeRunner(links={"https://a.com": "/about"})
    summary = asyncio.run(measure_site(runner, "https://a.com", MeasureConfig()))

    assert [c[1] for c in runner.calls] == [
        "iter-1", "iter-2", "iter-3", "other-iter-1", "other-iter-2", "other-iter-3",
    ]
    assert summary.other_url == "https://a.com/about"
    assert len(summary.metrics) == 3
    assert len(summary.other_metrics) == 3
    assert all(not find_link for _, label, find_link in runner.calls if label.startswith("other"))
    assert summary.summary["pageLoadTime_ms"] == 200.0


def test_no_link_skips_secondary_trials():
    runner = FakeRunner()
    summary = asyncio.run(measure_site(runner, "https://b.com", MeasureConfig()))

    assert len(runner.calls) == 3
    assert summary.other_metrics == ()
    assert summary.other_url is None
    assert summary.other_summary["pageLoadTime_ms"] == "N/A"
    assert summary.other_summary["linkFound"] is False
    assert summary.to_dict()["otherPage"] == "N/A"


def test_failed_final_trial_skips_secondary_trials():
    runner = FakeRunner(links={"https://c.com": "https://c.com/"}, fail_last={"https://c.com"})
    summary = asyncio.run(measure_site(runner, "https://c.com", MeasureConfig()))

    assert len(runner.calls) == 3
    assert summary.metrics[2].failure is Failure.DID_NOT_FINISH
    assert summary.summary["pageLoadTime_ms"] == 200.0


def test_resolve_secondary_url():
    assert resolve_secondary_url("https://x.com/home", "https://a.com") == "https://x.com/home"
    assert resolve_secondary_url("/about", "https://a.com/start", "https://www.a.com/landing") == "https://www.a.com/about"
    assert resolve_secondary_url("about", "https://a.com/dir/", "DNF") == "https://a.com/dir/about"


def test_prepare_output_dir_removes_stale_files(tmp_path: Path):
    out = tmp_path / "results"
    (out / "har" / "old.com").mkdir(parents=True)
    (out / "metrics-old.json").write_text("[]", encoding="utf-8")

    prepare_output_dir(out)

    assert out.is_dir()
    assert list(out.iterdir()) == []


def test_prepare_output_dir_leaves_unrelated_files(tmp_path: Path):
    (tmp_path / "pyproject.toml").write_text("[project]\n", encoding="utf-8")
    (tmp_path / "pageperf").mkdir()
    (tmp_path / "pages.json").write_text("[]", encoding="utf-8")
    (tmp_path / "metrics-2024-01-01.csv").write_text("", encoding="utf-8")

    prepare_output_dir(tmp_path)

    assert sorted(p.name for p in tmp_path.iterdir()) == ["pageperf", "pages.json", "pyproject.toml"]


def test_prepare_output_dir_creates_missing_dir(tmp_path: Path):
    out = tmp_path / "a" / "b"
    prepare_output_dir(out)
    assert out.is_dir()


def test_output_name():
    day = date(2025, 6, 1)
    assert output_name(Dataset(name="", urls=[]), day) == "metrics-2025-06-01"
    assert output_name(Dataset(name="news", urls=[]), day) == "metrics-news-2025-06-01"


def test_run_writes_one_summary_per_target_in_order(tmp_path: Path):
    config = MeasureConfig(results_dir=str(tmp_path / "results"))
    (tmp_path / "results").mkdir()
    (tmp_path / "results" / "metrics-stale.json").write_text("[]", encoding="utf-8")
    datasets = [Dataset(name="", urls=["https://one.com", "https://two.com"])]

    written = asyncio.run(run(datasets, config, runner_factory=lambda cfg: FakeRunner(cfg)))

    assert len(written) == 1
    assert not (tmp_path / "results" / "metrics-stale.json").exists()
    data = json.loads(written[0].read_text(encoding="utf-8"))
    assert [s["siteUrl"] for s in data] == ["https://one.com", "https://two.com"]
    assert all(len(s["metrics"]) == 3 for s in data)
    assert all(s["otherMetrics"] == [] for s in data)
