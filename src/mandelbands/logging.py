"""MLflow logging for band renders."""

from __future__ import annotations

import os
from typing import Any, Dict, List, Sequence

import mlflow
import pandas as pd
from matplotlib import pyplot as plt

from .config import RenderConfig
from .report import RenderReport

DEFAULT_TRACKING_URI = "file:./mlruns"
DEFAULT_EXPERIMENT_NAME = "mandelbands"


def log_to_mlflow(
    config: RenderConfig,
    report: RenderReport,
    suite_name: str = "default",
) -> None:
    """Log a render to MLflow with the image, timing metrics and band table.

    If MLFLOW_RUN_ID is set in the environment the run is continued,
    otherwise a new one is started.

    Args:
        config: Render configuration
        report: Combined outputs (pixels, timing stats, band table)
        suite_name: Name of the sweep suite, used for tagging/filtering
    """
    # Skip logging in test mode
    if os.environ.get("SKIP_MLFLOW"):
        return

    mlflow.set_tracking_uri(_resolve_tracking_uri())
    mlflow.set_experiment(_resolve_experiment_name())

    existing_run_id = os.environ.get("MLFLOW_RUN_ID")
    if existing_run_id:
        run_context = mlflow.start_run(run_id=existing_run_id)
    else:
        run_context = mlflow.start_run(run_name=config.run_name)

    with run_context as run:
        mlflow.set_tags(
            {
                "node_name": os.uname().nodename,
                "suite": suite_name,
            }
        )
        mlflow.log_params(config.to_dict())

        band_records = report.copy_bands()
        if band_records:
            mlflow.log_table(_records_to_table(band_records), "bands.json")

        timing_stats = report.timing or {}
        for key in ("wall_time", "comp_total", "comp_max", "load_imbalance", "bands"):
            mlflow.log_metric(key, float(timing_stats.get(key, 0.0)))

        image = report.image()
        if image is not None:
            fig, ax = plt.subplots(figsize=(6, 6 * config.height / config.width))
            ax.imshow(image, cmap="gray", vmin=0, vmax=255)
            ax.set_axis_off()
            mlflow.log_figure(fig, "figures/mandelbrot.png")
            plt.close(fig)

        print(f"[MLflow] Logged run: {config.run_name} (suite: {suite_name})")
        print(f"[MLflow] Run ID: {run.info.run_id}")


def _records_to_table(band_records: Sequence[Dict[str, Any]]) -> Dict[str, List[Any]]:
    """Convert row-wise band records into MLflow table format."""
    frame = pd.DataFrame.from_records(band_records)
    return frame.to_dict(orient="list")


def _resolve_tracking_uri() -> str:
    return os.environ.get("MLFLOW_TRACKING_URI") or DEFAULT_TRACKING_URI


def _resolve_experiment_name() -> str:
    return os.environ.get("MANDELBANDS_EXPERIMENT") or DEFAULT_EXPERIMENT_NAME
