"""
Loading the list of sites to measure.

Two input shapes are accepted:
- a JSON file holding a flat array of URL strings (e.g. pages.json)
- a directory of JSON dataset files, each {"name": ..., "urls": [...]}
"""

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)


class InputError(Exception):
    """The list of sites could not be read or does not match either input shape."""


class Dataset(BaseModel):
    name: str
    urls: list[str] = Field(default_factory=list)


_URL_LIST = TypeAdapter(list[str])


def _read_json(path: Path):
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise InputError(f"Could not read {path}: {e}") from e
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise InputError(f"Could not parse {path}: {e}") from e


def load_url_list(path: str | Path, name: str | None = None) -> Dataset:
    """Load a flat JSON array of URLs as a single unnamed (or `name`d) dataset."""
    path = Path(path)
    data = _read_json(path)
    try:
        urls = _URL_LIST.validate_python(data)
    except ValidationError as e:
        raise InputError(f"{path} must contain a JSON array of URL strings") from e
    logger.info("[Input] Loaded %d URLs from %s", len(urls), path)
    return Dataset(name=name or "", urls=urls)


def load_dataset(path: str | Path) -> Dataset:
    path = Path(path)
    data = _read_json(path)
    try:
        return Dataset.model_validate(data)
    except ValidationError as e:
        raise InputError(f"{path} is not a valid dataset file: {e}") from e


def load_datasets(directory: str | Path) -> list[Dataset]:
    """Load every *.json dataset file in `directory`, in file name order."""
    directory = Path(directory)
    if not directory.is_dir():
        raise InputError(f"Dataset directory not found: {directory}")

    datasets = [load_dataset(p) for p in sorted(directory.glob("*.json"))]
    if not datasets:
        raise InputError(f"No dataset files (*.json) in {directory}")

    logger.info(
        "[Input] Loaded %d datasets (%d URLs) from %s",
        len(datasets), sum(len(d.urls) for d in datasets), directory,
    )
    return datasets
