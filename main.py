"""
FILE: main.py
--------------
Command-line entry point for the Aristostat test engine.
Loads a dataset JSON file and prints the engine's pydantic output as JSON.

Commands:
  suggest <test_id> <dataset.json>            default variables for a test
  check   <test_id> <dataset.json> [var ...]  is the test appropriate for the data?
  run     <test_id> <dataset.json> [var ...]  run one test (optionally validated)
  groups  <dataset.json>                      question groups detected from column names

The dataset file holds {"variables": [...], "rows": [...], "question_groups": [...]}.
"""

import argparse
import json
import logging
import pathlib
import sys

from Schemas.dataset import Dataset
from Schemas.statistician import TestId
from core.classifier_engine import suggest_question_groups, suggest_variables
from core.critic_engine import validate_test_result
from core.methodologist_engine import validate_test_choice
from core.statistician_engine import run_test

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def configure_logging(log_level: str):
    """Configure logging with the specified level."""
    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )
    return logging.getLogger(__name__)


def load_dataset(path: str) -> Dataset:
    """Reads and validates a dataset JSON file. A missing file raises SystemExit."""
    source = pathlib.Path(path)
    if not source.is_file():
        raise SystemExit(f"Dataset file not found: {path}")
    with source.open(encoding="utf-8") as fh:
        payload = json.load(fh)
    return Dataset.model_validate(payload)


# ─────────────────────────────────────────────
# COMMANDS
# ─────────────────────────────────────────────

def cmd_suggest(args):
    logger = configure_logging(args.log_level)
    dataset = load_dataset(args.dataset)
    suggestion = suggest_variables(args.test_id, dataset)
    logger.info("Suggested %d variable(s) for '%s'", len(suggestion.variables), args.test_id)
    print(suggestion.model_dump_json(indent=2))


def cmd_check(args):
    logger = configure_logging(args.log_level)
    dataset = load_dataset(args.dataset)
    try:
        validation = validate_test_choice(args.test_id, dataset, args.variables or None)
    except ValueError as exc:
        raise SystemExit(str(exc))

    if not validation.valid:
        logger.warning("'%s' is not appropriate for this dataset", validation.test_id)
    print(validation.model_dump_json(indent=2))


def cmd_run(args):
    logger = configure_logging(args.log_level)
    dataset = load_dataset(args.dataset)
    try:
        result = run_test(args.test_id, dataset, args.variables or None)
    except ValueError as exc:
        raise SystemExit(str(exc))

    print(result.model_dump_json(by_alias=True, indent=2))

    if args.validate:
        validation = validate_test_result(result)
        if not validation.consistent:
            logger.warning("Result for '%s' has %d issue(s)", result.test_id, len(validation.issues))
        print(validation.model_dump_json(indent=2))


def cmd_groups(args):
    configure_logging(args.log_level)
    dataset = load_dataset(args.dataset)
    groups = suggest_question_groups(dataset)
    print(json.dumps([g.model_dump(mode="json") for g in groups], indent=2))


def _add_log_level(parser):
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=LOG_LEVELS,
        help="Set logging level (default: WARNING)",
    )


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Aristostat - statistical test engine for survey datasets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Test ids: {', '.join(t.value for t in TestId)}",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Suggest command
    suggest_parser = subparsers.add_parser("suggest", help="Suggest default variables for a test")
    suggest_parser.add_argument("test_id", help="Test identifier, e.g. ttest")
    suggest_parser.add_argument("dataset", help="Path to the dataset JSON file")
    _add_log_level(suggest_parser)
    suggest_parser.set_defaults(func=cmd_suggest)

    # Check command
    check_parser = subparsers.add_parser("check", help="Check whether a test suits the dataset before running it")
    check_parser.add_argument("test_id", help="Test identifier, e.g. ttest")
    check_parser.add_argument("dataset", help="Path to the dataset JSON file")
    check_parser.add_argument(
        "variables",
        nargs="*",
        help="Variable names in role order (default: the suggested variables)",
    )
    _add_log_level(check_parser)
    check_parser.set_defaults(func=cmd_check)

    # Run command
    run_parser = subparsers.add_parser("run", help="Run a statistical test")
    run_parser.add_argument("test_id", help="Test identifier, e.g. ttest")
    run_parser.add_argument("dataset", help="Path to the dataset JSON file")
    run_parser.add_argument(
        "variables",
        nargs="*",
        help="Variable names in role order (default: the suggested variables)",
    )
    run_parser.add_argument(
        "--validate",
        action="store_true",
        help="Also print the critic's consistency check for the result",
    )
    _add_log_level(run_parser)
    run_parser.set_defaults(func=cmd_run)

    # Groups command
    groups_parser = subparsers.add_parser("groups", help="Detect question groups from column names")
    groups_parser.add_argument("dataset", help="Path to the dataset JSON file")
    _add_log_level(groups_parser)
    groups_parser.set_defaults(func=cmd_groups)

    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    if args.command is None:
        parser.print_help()
        return

    args.func(args)


if __name__ == "__main__":
    main()
