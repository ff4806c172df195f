"""CLI entrypoint for the French communes snapshot pipeline."""

from __future__ import annotations

import argparse
import random
import sys
from pathlib import Path

from communes_fr.common.config_loader import apply_overrides, load_config
from communes_fr.common.constants import EXIT_HARD_FAIL, EXIT_SUCCESS
from communes_fr.common.errors import PipelineError
from communes_fr.common.ids import generate_run_id
from communes_fr.common.logging import build_logger, close_logger, log_error_event
from communes_fr.common.time_utils import parse_run_date
from communes_fr.pipeline.runner import run_snapshot


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--run-date", default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default=".")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--max-in-flight", type=int, default=None)
    parser.add_argument("--heartbeat-seconds", type=float, default=None)
    return parser.parse_args(argv)


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    run_date = parse_run_date(args.run_date)
    config_dir = Path(args.config_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    data_dir = Path(args.data_dir)

    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    try:
        config = load_config(config_dir, overlay_config_dir=overlay_config_dir)
        config = apply_overrides(
            config,
            dispatch__max_in_flight=args.max_in_flight,
            collect__heartbeat_seconds=args.heartbeat_seconds,
        )
        # One generator for the whole process, seeded once.
        rng = random.Random()
        run_snapshot(config, data_dir, run_id, run_date, logger, rng=rng)
    except PipelineError as exc:
        log_error_event(
            logger,
            f"run aborted: {exc}",
            run_id=run_id,
            event="RUN_FAIL",
            status="error",
            error_code=exc.error_code,
        )
        return EXIT_HARD_FAIL
    except Exception as exc:
        log_error_event(
            logger,
            f"unexpected failure: {exc}",
            run_id=run_id,
            event="RUN_FAIL",
            status="error",
            error_code="UNEXPECTED_ERROR",
        )
        return EXIT_HARD_FAIL
    finally:
        close_logger(logger)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError as exc:
        print(f"communes-fr: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL
    except Exception as exc:
        print(f"communes-fr: unexpected failure: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
