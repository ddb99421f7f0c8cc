# Path: scripts/br.py
# Purpose: CLI tool to train, enroll, compare and deduplicate galleries with biocore algorithms.
# Layer: scripts.
# Details: Each sub-command maps onto one function of biocore.operations.

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from biocore import operations
from biocore.algorithms.registry import AlgorithmRegistry
from biocore.errors import BioCoreError
from config import AppSettings, setup_logging

logger = logging.getLogger("br")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Biometric template processing with biocore")
    parser.add_argument("--algorithm", "-a", default=None, help="Algorithm descriptor, abbreviation or model file")
    parser.add_argument("--config", type=Path, default=None, help="JSON settings file")
    parser.add_argument("--multi-process", action="store_true", help="Run enrollment and comparison in worker processes")
    parser.add_argument("--processes", type=int, default=None, help="Number of worker processes")
    parser.add_argument("--parallelism", type=int, default=None, help="Threads used to distribute enrollment")
    parser.add_argument("--log-level", default=None, help="Logging verbosity (DEBUG, INFO, WARNING)")
    parser.add_argument("--no-progress", action="store_true", help="Hide progress bars")
    commands = parser.add_subparsers(dest="command", required=True)

    train = commands.add_parser("train", help="Train an algorithm and optionally store the model")
    train.add_argument("input")
    train.add_argument("model", nargs="?", default=None)

    enroll = commands.add_parser("enroll", help="Enroll a gallery")
    enroll.add_argument("input")
    enroll.add_argument("gallery", nargs="?", default=None)

    project = commands.add_parser("project", help="Project a gallery through the full enrollment stage")
    project.add_argument("input")
    project.add_argument("output")

    compare = commands.add_parser("compare", help="Compare every query against every target")
    compare.add_argument("target")
    compare.add_argument("query", nargs="?", default=".")
    compare.add_argument("output", nargs="?", default=None)

    pairwise = commands.add_parser("pairwise", help="Compare targets and queries position by position")
    pairwise.add_argument("target")
    pairwise.add_argument("query")
    pairwise.add_argument("output", nargs="?", default=None)

    dedup = commands.add_parser("deduplicate", help="Remove near duplicate records from a gallery")
    dedup.add_argument("input")
    dedup.add_argument("output")
    dedup.add_argument("threshold")

    convert = commands.add_parser("convert", help="Convert a Format, Gallery or Output file")
    convert.add_argument("file_type", choices=operations.CONVERSION_TYPES)
    convert.add_argument("input")
    convert.add_argument("output")

    cat = commands.add_parser("cat", help="Concatenate galleries")
    cat.add_argument("inputs", nargs="+")
    cat.add_argument("output")

    commands.add_parser("classifier", help="Report whether the algorithm is a classifier")
    return parser


def load_settings(args: argparse.Namespace) -> AppSettings:
    settings = AppSettings.from_file(args.config) if args.config else AppSettings.from_env()
    updates = {}
    if args.multi_process:
        updates["multi_process"] = True
    if args.processes is not None:
        updates["processes"] = args.processes
    if args.parallelism is not None:
        updates["parallelism"] = args.parallelism
    if args.log_level:
        updates["log_level"] = args.log_level
    if args.no_progress:
        updates["show_progress"] = False
    if args.algorithm:
        updates["default_algorithm"] = args.algorithm
    return settings.model_copy(update=updates)


def run(args: argparse.Namespace, registry: AlgorithmRegistry) -> None:
    algorithm = args.algorithm
    if args.command == "train":
        operations.train(args.input, args.model, algorithm=algorithm, registry=registry)
    elif args.command == "enroll":
        written = operations.enroll(args.input, args.gallery, algorithm=algorithm, registry=registry)
        print(f"Enrolled {len(written)} records")
    elif args.command == "project":
        operations.project(args.input, args.output, algorithm=algorithm, registry=registry)
    elif args.command == "compare":
        operations.compare(args.target, args.query, args.output, algorithm=algorithm, registry=registry)
    elif args.command == "pairwise":
        operations.pairwise_compare(args.target, args.query, args.output, algorithm=algorithm, registry=registry)
    elif args.command == "deduplicate":
        kept = operations.deduplicate(args.input, args.output, args.threshold, algorithm=algorithm, registry=registry)
        print(f"Kept {len(kept)} records")
    elif args.command == "convert":
        operations.convert(args.file_type, args.input, args.output)
    elif args.command == "cat":
        written = operations.cat(args.inputs, args.output)
        print(f"Concatenated {written} records")
    elif args.command == "classifier":
        classifier = operations.is_classifier(algorithm, registry=registry)
        print("classifier" if classifier else "verifier")


def main(argv: Optional[List[str]] = None) -> int:
    """Run one sub-command; return the process exit status."""

    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(args)
    except (OSError, ValueError) as exc:
        setup_logging("INFO")
        logger.error(f"Unable to load settings: {exc}")
        return 1
    setup_logging(settings.log_level)

    registry = AlgorithmRegistry(settings)
    try:
        run(args, registry)
    except BioCoreError as exc:
        logger.error(str(exc))
        return 1
    finally:
        registry.finalize()
    return 0


if __name__ == "__main__":
    sys.exit(main())
