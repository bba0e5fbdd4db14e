"""Execution helpers for the command line workflows."""

from __future__ import annotations

import os
import subprocess
import sys
from typing import List, Optional

from .config import RenderConfig
from .dispatch import render_threads
from .image import write_image
from .report import RenderReport


def run_single_render(
    config: RenderConfig,
    suite_name: Optional[str] = None,
) -> RenderReport:
    """Render ``config``, write the image and optionally log to MLflow.

    With the ``mpi`` backend every rank must call this; only rank 0 writes
    the image and logs.
    """
    if config.backend == "mpi":
        from mpi4py import MPI

        from .mpi import run_mpi_render

        comm = MPI.COMM_WORLD
        if comm.Get_rank() == 0:
            _print_start(config, f"ranks={comm.Get_size()}")
        report = run_mpi_render(config)
    else:
        _print_start(config, "threads")
        report = render_threads(config)

    if report.pixels is None:
        return report

    path = write_image(config.output, report.pixels, config.geometry)
    print(f"[Render] Wrote {path}", flush=True)

    if config.track:
        from .logging import log_to_mlflow

        suite = suite_name or os.environ.get("MANDELBANDS_SUITE") or "default"
        if os.environ.get("SKIP_MLFLOW"):
            print("[Render] SKIP_MLFLOW set - skipping MLflow logging.", flush=True)
        else:
            print("[Render] Logging to MLflow...", flush=True)
        log_to_mlflow(config, report, suite)

    wall_time = report.timing.get("wall_time", 0.0)
    print(f"[Timing] Total: {wall_time:.4f}s ({report.timing.get('bands', 0)} bands)")
    return report


def _print_start(config: RenderConfig, where: str) -> None:
    print(
        f"[Render] Starting '{config.run_name}' ({where}, workers={config.workers}, "
        f"size={config.image_size})",
        flush=True,
    )


def run_sweep(
    configs: List[RenderConfig],
    descriptor: str,
    *,
    task_id: Optional[int] = None,
    suite_name: Optional[str] = None,
) -> int:
    """Render ``configs`` one after another, or only ``configs[task_id]``.

    Returns the process exit code: 1 if any render failed.
    """
    if not configs:
        print(f"ERROR: No configurations found in {descriptor}", file=sys.stderr)
        return 1

    if task_id is not None:
        if not 0 <= task_id < len(configs):
            print(f"ERROR: task-id {task_id} out of range [0, {len(configs) - 1}]", file=sys.stderr)
            return 1
        selected = [(task_id, configs[task_id])]
    else:
        selected = list(enumerate(configs))
        print("=" * 70)
        print(f"Rendering {len(configs)} configurations from {descriptor}")
        print("=" * 70)

    failures = [
        f"[{idx}] {cfg.run_name}"
        for idx, cfg in selected
        if not run_config(cfg, idx, len(configs), suite_name=suite_name)
    ]

    if task_id is None:
        print(f"\nRendered {len(selected) - len(failures)}/{len(selected)} (failed: {len(failures)})")
    for failure in failures:
        print(f"  FAILED {failure}", file=sys.stderr)
    return 1 if failures else 0


def run_config(
    config: RenderConfig,
    config_idx: int,
    total_configs: int,
    *,
    suite_name: Optional[str] = None,
) -> bool:
    """Run one sweep entry; ``mpi`` configs are launched through mpirun."""
    print(f"\n[{config_idx + 1}/{total_configs}] {config.run_name}")
    print(
        "    workers=%s, backend=%s, size=%s, output=%s"
        % (config.workers, config.backend, config.image_size, config.output)
    )

    if config.backend == "mpi":
        return run_config_subprocess(config, suite_name=suite_name)

    try:
        run_single_render(config, suite_name)
    except (ValueError, OSError) as exc:
        print(f"    ✗ FAILED: {exc}", file=sys.stderr)
        return False

    print("    ✓ Completed")
    return True


def run_config_subprocess(config: RenderConfig, *, suite_name: Optional[str] = None) -> bool:
    """Execute a single configuration as a subprocess via mpirun."""
    cmd, env = build_command(config)
    if suite_name:
        env["MANDELBANDS_SUITE"] = suite_name

    result = subprocess.run(cmd, env=env, text=True, stderr=subprocess.PIPE)
    if result.returncode != 0:
        print(f"    ✗ FAILED with exit code {result.returncode}", file=sys.stderr)
        if result.stderr:
            print(f"    Error: {result.stderr[:200]}...", file=sys.stderr)
        return False

    print("    ✓ Completed")
    return True


def build_command(config: RenderConfig) -> tuple[list[str], dict[str, str]]:
    """Build the mpirun command and environment for a single configuration."""
    cmd = ["mpirun", "-n", str(config.ranks), sys.executable, sys.argv[0]]
    cmd.extend(config.to_cli_args())
    return cmd, os.environ.copy()
