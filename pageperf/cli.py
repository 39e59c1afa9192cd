import argparse
import asyncio
import logging

import yaml

from .pipeline import run
from .settings import AGGREGATION_MODES, LINK_STRATEGIES, OUTPUT_FORMATS, load_measure_config
from .targets import InputError, load_datasets, load_url_list

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser("pageperf", description="Measure page load performance with a headless browser")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--pages", default="pages.json", help="JSON array of URLs (default: pages.json)")
    source.add_argument("--datasets", help="directory of dataset files ({name, urls})")
    parser.add_argument("--config", help="YAML config file (default: measure_config.yaml at the project root)")
    parser.add_argument("--format", choices=OUTPUT_FORMATS, dest="output_format")
    parser.add_argument("--aggregation", choices=AGGREGATION_MODES)
    parser.add_argument("--link-strategy", choices=LINK_STRATEGIES)
    parser.add_argument("--results-dir")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = load_measure_config(args.config)
        for key in ("output_format", "aggregation", "link_strategy", "results_dir"):
            value = getattr(args, key)
            if value is not None:
                setattr(config, key, value)
        config.validate()
    except (ValueError, TypeError, yaml.YAMLError) as e:
        logger.error("[Main] Invalid configuration: %s", e)
        return 1

    try:
        if args.datasets:
            datasets = load_datasets(args.datasets)
        else:
            datasets = [load_url_list(args.pages)]
    except InputError as e:
        logger.error("[Main] ERROR: %s", e)
        return 1

    try:
        written = asyncio.run(run(datasets, config))
    except Exception:
        logger.exception("[Main] A critical error occurred")
        return 1

    for path in written:
        logger.info("[Main] Results saved to %s", path)
    return 0

