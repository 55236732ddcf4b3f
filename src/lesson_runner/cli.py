"""Command-line entry point: ``runner discover`` and ``runner grade``."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from lesson_runner.config import ComparisonStrategy, GraderConfig, OutputFormat, load_config
from lesson_runner.errors import LessonError, ReportError
from lesson_runner.harness import GradingHarness
from lesson_runner.lessons import discover_exercises, override_specs
from lesson_runner.logging.logger import GradingLogger
from lesson_runner.report import Report, render_json, render_text, write_report

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_INFRASTRUCTURE = 3
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="runner", description="Grade lesson exercises against their solutions")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    parser.add_argument("--config", help="Path to grader YAML config")
    subparsers = parser.add_subparsers(dest="command", required=True)

    discover = subparsers.add_parser("discover", help="List exercises found under a lessons root")
    discover.add_argument("lessons_root")

    grade = subparsers.add_parser("grade", help="Run every exercise and its solution and compare them")
    grade.add_argument("lessons_root")
    grade.add_argument("--only", help="Grade a single exercise id")
    grade.add_argument("--strategy", choices=[s.value for s in ComparisonStrategy],
                       help="Override the comparison strategy for every exercise")
    grade.add_argument("--parallel", type=int, help="Max parallel exercises (default: CPU count)")
    grade.add_argument("--timeout", type=float, help="Per-script timeout in seconds")
    grade.add_argument("--format", choices=[f.value for f in OutputFormat], help="Report format")
    grade.add_argument("--output", help="Write the report to this file instead of stdout")
    grade.add_argument("--events", help="Append JSON-lines grading events to this file")
    return parser


def _load_config(path: str | None) -> GraderConfig:
    config = load_config(path) if path else GraderConfig()
    return config.apply_env()


def cmd_discover(args: argparse.Namespace, config: GraderConfig) -> int:
    root = Path(args.lessons_root)
    if not root.is_dir():
        print(f"error: lessons root does not exist: {root}", file=sys.stderr)
        return EXIT_USAGE
    try:
        specs = discover_exercises(root, config)
    except LessonError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_USAGE

    print(f"Discovered {len(specs)} exercise(s)")
    for spec in specs:
        print(f"  {spec.id} ({spec.strategy.value})")
    return EXIT_OK


def cmd_grade(args: argparse.Namespace, config: GraderConfig) -> int:
    root = Path(args.lessons_root)
    if not root.is_dir():
        print(f"error: lessons root does not exist: {root}", file=sys.stderr)
        return EXIT_USAGE

    if args.timeout is not None and args.timeout <= 0:
        print("error: --timeout must be positive", file=sys.stderr)
        return EXIT_USAGE

    updates = {}
    if args.parallel is not None:
        updates["parallel"] = args.parallel
    if args.format is not None:
        updates["output_format"] = args.format
    try:
        config = GraderConfig(**{**config.model_dump(), **updates})
    except ValidationError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_USAGE

    try:
        specs = discover_exercises(root, config)
    except LessonError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_USAGE

    if args.only:
        specs = [spec for spec in specs if spec.id == args.only]
        if not specs:
            print(f"error: no exercise with id {args.only!r}", file=sys.stderr)
            return EXIT_USAGE

    strategy = ComparisonStrategy(args.strategy) if args.strategy else None
    specs = override_specs(specs, strategy=strategy, timeout_seconds=args.timeout)

    grading_logger = GradingLogger(args.events) if args.events else None
    harness = GradingHarness(config, grading_logger=grading_logger)
    try:
        report = harness.grade_batch(specs)
    except KeyboardInterrupt:
        print("Interrupted; sandboxes cleaned up.", file=sys.stderr)
        return EXIT_INTERRUPTED

    text = render_json(report) if config.output_format == OutputFormat.JSON else render_text(report)
    try:
        write_report(text, args.output)
    except ReportError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_INFRASTRUCTURE

    return exit_code_for(report)


def exit_code_for(report: Report) -> int:
    """Errored exercises take precedence over failed ones."""
    if report.errored:
        return EXIT_INFRASTRUCTURE
    if report.failed:
        return EXIT_FAILED
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = _load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"error: invalid config: {e}", file=sys.stderr)
        return EXIT_USAGE

    if args.command == "discover":
        return cmd_discover(args, config)
    return cmd_grade(args, config)


def main_entry() -> None:
    """Console script entrypoint."""
    raise SystemExit(main())


if __name__ == "__main__":
    main_entry()
