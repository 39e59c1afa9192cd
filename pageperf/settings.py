import logging
from dataclasses import dataclass, fields
from pathlib import Path

import yaml

PROJECT_ROOT = Path(__file__).resolve().parents[1]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/137.0.0.0 Safari/537.36"
)

OUTPUT_FORMATS = ("json", "csv", "trials_csv")
AGGREGATION_MODES = ("average", "selected")
LINK_STRATEGIES = ("homepage", "other")

logger = logging.getLogger(__name__)


@dataclass
class MeasureConfig:
    """
    Central configuration for a measurement run.

    Values can be overridden via measure_config.yaml at the project root.
    """

    # Trials
    trials: int = 3
    secondary_trials: int = 3

    # Browser tuning
    page_timeout_ms: int = 60_000
    browser_headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    accept_language: str = "en-US,en;q=0.9"

    # Output layout
    results_dir: str = "results"
    har_dir_name: str = "har"
    record_har: bool = True
    clear_results: bool = True
    output_format: str = "json"

    # Aggregation: "average" over trials, or values of one selected trial (1-based)
    aggregation: str = "average"
    selected_trial: int = 3

    # Secondary page detection
    link_strategy: str = "homepage"

    @property
    def results_path(self) -> Path:
        p = Path(self.results_dir)
        if not p.is_absolute():
            p = PROJECT_ROOT / p
        return p

    @property
    def har_path(self) -> Path:
        return self.results_path / self.har_dir_name

    def validate(self) -> None:
        for name in ("trials", "secondary_trials", "selected_trial", "page_timeout_ms"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        for name in ("output_format", "aggregation", "link_strategy", "results_dir", "user_agent", "accept_language"):
            if not isinstance(getattr(self, name), str):
                raise ValueError(f"{name} must be a string, got {getattr(self, name)!r}")
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(f"output_format must be one of {OUTPUT_FORMATS}, got {self.output_format!r}")
        if self.aggregation not in AGGREGATION_MODES:
            raise ValueError(f"aggregation must be one of {AGGREGATION_MODES}, got {self.aggregation!r}")
        if self.link_strategy not in LINK_STRATEGIES:
            raise ValueError(f"link_strategy must be one of {LINK_STRATEGIES}, got {self.link_strategy!r}")
        if self.trials < 1 or self.secondary_trials < 1:
            raise ValueError("trials and secondary_trials must be >= 1")
        if not 1 <= self.selected_trial <= self.trials:
            raise ValueError(f"selected_trial must be between 1 and {self.trials}")


def load_measure_config(path: str | Path | None = None) -> MeasureConfig:
    """
    Load MeasureConfig from YAML if present; otherwise use defaults.

    By default, looks for `measure_config.yaml` at the project root.
    """

    if path is None:
        path = PROJECT_ROOT / "measure_config.yaml"

    path = Path(path)

    if not path.exists():
        logger.info("[config] YAML not found at %s, using defaults", path)
        return MeasureConfig()

    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}

    if not isinstance(data, dict):
        logger.warning("[config] Expected mapping in %s, got %s, using defaults", path, type(data))
        return MeasureConfig()

    allowed_keys = {f.name for f in fields(MeasureConfig)}
    filtered = {k: v for k, v in data.items() if k in allowed_keys}

    return MeasureConfig(**filtered)
