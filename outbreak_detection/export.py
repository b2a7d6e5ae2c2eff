"""Export of detection results as flat records and CSV."""

import csv
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, Optional

from loguru import logger

from outbreak_detection.analysis import DetectionAnalyzer

FIELDNAMES = [
    "network_name",
    "repetitions",
    "time_horizon",
    "latency",
    "external_infection_probability",
    "transmission_probability",
    "false_negative_probability",
    "tests_per_day",
    "random_order",
    "detection_probability",
    "ci_width",
    "lower_ci",
    "upper_ci",
    "statistical_test",
    "batch_size",
    "alpha",
    "utc",
]


def result_records(analyzer: DetectionAnalyzer, timestamp: Optional[str] = None) -> Iterator[Dict]:
    """One record per (parameters, tests per day) result of ``analyzer``."""
    timestamp = timestamp or datetime.now(timezone.utc).isoformat()
    for (params, k), output in analyzer.results.items():
        yield {
            "network_name": params.network_name,
            "repetitions": params.repetitions,
            "time_horizon": params.time_horizon,
            "latency": params.latency,
            "external_infection_probability": params.external_infection_probability,
            "transmission_probability": params.transmission_probability,
            "false_negative_probability": params.false_negative_probability,
            "tests_per_day": k,
            "random_order": analyzer.random_order[(params, k)],
            "detection_probability": output.mean,
            "ci_width": output.ci_width,
            "lower_ci": output.lower,
            "upper_ci": output.upper,
            "statistical_test": output.method,
            "batch_size": output.batch_size,
            "alpha": output.alpha,
            "utc": timestamp,
        }


def write_results_csv(path: Path | str, analyzer: DetectionAnalyzer, append: bool = True) -> Path:
    """
    Write the analyzer's results to a CSV file.

    The header is written when the file is new or when ``append`` is False.

    Args:
        path: Output file
        analyzer: Analyzer holding the results
        append: Append to an existing file instead of overwriting it

    Returns:
        Path of the written file
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    write_header = not append or not path.exists()
    with path.open("a" if append else "w", newline="") as fh:
        writer = csv.DictWriter(fh, fieldnames=FIELDNAMES)
        if write_header:
            writer.writeheader()
        writer.writerows(result_records(analyzer))
    logger.info(f"Disease testing results written to {path}")
    return path
