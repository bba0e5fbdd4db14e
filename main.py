from __future__ import annotations

import argparse
import sys

from mandelbands.config import (
    default_render_config,
    load_named_sweep_configs,
    parse_complex,
    parse_image_size,
)
from mandelbands.execution import run_single_render, run_sweep

EXAMPLE = "--workers 8 -- mandel.png 1000x750 -1.20,0.35 -1,0.20"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Render the Mandelbrot set as a grayscale image, band by band in parallel.",
        epilog=(
            "Put -- before the positional arguments when a corner starts with a minus "
            f"sign. Example: %(prog)s {EXAMPLE}"
        ),
    )
    parser.add_argument("output", nargs="?", help="Image file to write (format from extension)")
    parser.add_argument("pixels", nargs="?", help="Image size as WIDTHxHEIGHT")
    parser.add_argument("upper_left", nargs="?", help="Upper-left corner as RE,IM")
    parser.add_argument("lower_right", nargs="?", help="Lower-right corner as RE,IM")
    parser.add_argument("--workers", type=int, default=32, help="Number of bands rendered in parallel")
    parser.add_argument("--backend", choices=["threads", "mpi"], default="threads",
                        help="Run bands on a thread pool, or across MPI ranks (launch with mpirun)")
    parser.add_argument("--track", action="store_true", help="Log the run to MLflow")
    parser.add_argument("-v", "--verbose", action="store_true", help="Report every band as it finishes")

    parser.add_argument("--sweep", type=str, help="Path to sweep YAML file")
    parser.add_argument("--suite", type=str, help="Name of suite/experiment within sweep file")
    parser.add_argument("--list-suites", action="store_true", help="List suites in sweep file")
    parser.add_argument("--task-id", type=int, help="Run specific config index (for HPC arrays)")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Handle sweep runs
    if args.sweep:
        if args.task_id is not None and args.suite is None:
            parser.error("--task-id requires --suite")
        try:
            suites = load_named_sweep_configs(args.sweep, args.suite)
        except ValueError as exc:
            parser.error(str(exc))

        if args.list_suites:
            for name, configs in suites:
                print(f"{name}: {len(configs)} configurations")
            return 0

        exit_code = 0
        for suite_name, configs in suites:
            rc = run_sweep(
                configs,
                f"{args.sweep}::{suite_name}",
                task_id=args.task_id,
                suite_name=suite_name,
            )
            exit_code = exit_code or rc
        return exit_code

    if args.suite or args.task_id is not None or args.list_suites:
        parser.error("--suite, --task-id and --list-suites require --sweep")

    # Handle direct run - all positionals required
    if None in (args.output, args.pixels, args.upper_left, args.lower_right):
        parser.error("Direct run requires: OUTPUT PIXELS UPPER_LEFT LOWER_RIGHT")

    try:
        width, height = parse_image_size(args.pixels)
        upper_left = parse_complex(args.upper_left)
        lower_right = parse_complex(args.lower_right)
        config = default_render_config(
            output=args.output,
            width=width,
            height=height,
            upper_left=upper_left,
            lower_right=lower_right,
            workers=args.workers,
            backend=args.backend,
            track=args.track,
            verbose=args.verbose,
        )
    except ValueError as exc:
        parser.error(str(exc))

    try:
        run_single_render(config)
    except (OSError, ValueError) as exc:
        print(f"ERROR: could not write {config.output}: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
