from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from dataclasses import asdict, replace
from pathlib import Path
from typing import Optional

from ..logging_config import setup_logging
from ..sim.core.config import SimulationConfig
from ..sim.core.driver import SimulationDriver
from ..sim.core.presets import PRESETS
from ..sim.systems.analysis import force_percentages, selection_regime
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)

_BASIC_HEADER = [
    "generation",
    "allele_frequency",
    "delta",
    "tick_ms",
]

_DETAILED_HEADER = [
    "generation",
    "previous_frequency",
    "allele_frequency",
    "raw_delta",
    "applied_delta",
    "clamped",
    "mutation",
    "selection",
    "gene_flow",
    "drift",
    "recombination",
    "tick_ms",
]


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.generation,
        f"{metrics.allele_frequency:.6f}",
        f"{metrics.applied_delta:.6f}",
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    terms = metrics.terms
    return [
        metrics.generation,
        f"{metrics.previous_frequency:.6f}",
        f"{metrics.allele_frequency:.6f}",
        f"{metrics.raw_delta:.6f}",
        f"{metrics.applied_delta:.6f}",
        int(metrics.clamped),
        f"{terms.mutation:.6f}",
        f"{terms.selection:.6f}",
        f"{terms.gene_flow:.6f}",
        f"{terms.drift:.6f}",
        f"{terms.recombination:.6f}",
        f"{tick_ms:.3f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p95": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    count = len(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / count),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p95": _percentile(sorted_values, 0.95),
        "p99": _percentile(sorted_values, 0.99),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 50,
    preset: Optional[str] = None,
    config: Optional[SimulationConfig] = None,
) -> SimulationDriver:
    config = config if config is not None else SimulationConfig()
    if seed is not None:
        config = replace(config, seed=seed)

    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    driver = SimulationDriver(config)
    if preset is not None:
        driver.apply_preset(preset)
    logger.info("Running %d generations (seed=%s)", steps, config.seed)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    frequency_series: list[float] = []
    tick_ms_series: list[float] = []
    clamp_count = 0
    try:
        for _ in range(steps):
            metrics = driver.step()
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            frequency_series.append(metrics.allele_frequency)
            tick_ms_series.append(tick_ms)
            clamp_count += int(metrics.clamped)
            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        window = max(1, int(summary_window))
        state = driver.get_state()
        params = driver.parameters
        summary = {
            "steps": steps,
            "seed": config.seed,
            "preset": preset,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "parameters": asdict(params),
            "final_frequency": state.allele_frequency,
            "generation": state.generation,
            "clamped_ticks": clamp_count,
            "allele_frequency": _summary_stats(frequency_series),
            "tick_ms": _summary_stats(tick_ms_series),
            "force_percentages": force_percentages(params),
            "selection_regime": asdict(selection_regime(params)),
            "tail_window": {
                "window": window,
                "allele_frequency": _summary_stats(frequency_series[-window:]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
        logger.info("Wrote summary to %s", summary_path)

    return driver


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless allele-frequency force mixer")
    parser.add_argument("--steps", type=int, default=500)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--preset", choices=sorted(PRESETS), default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write per-generation metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided (detailed adds per-force terms).",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=50,
        help="Tail window size (generations) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    config = SimulationConfig.from_yaml(args.config) if args.config else None
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        preset=args.preset,
        config=config,
    )


if __name__ == "__main__":
    main()
