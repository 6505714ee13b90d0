#!/usr/bin/env python3
"""Compare two trees of images and write a ranked HTML diff report.

Every image under the baseline tree is paired with the file at the same
relative path under the comparison tree. Byte-identical pairs are
skipped; the rest are decoded, scored and listed from most to least
different.

Exit codes: 0 if differences were found, 1 if none were found, 2 if
some pairs could not be compared or the run itself failed (bad config,
missing baseline tree, unwritable report).

Usage:
    python3 -m scripts.image_tree_diff
    python3 -m scripts.image_tree_diff before/ after/ diff.html
    python3 -m scripts.image_tree_diff out/gold out/new --workers 4 --relative-links
"""

import argparse
import sys
from pathlib import Path

from src.config import DiffConfig
from src.records import PairError
from src.tree_diff import EXIT_ERROR, print_summary, run_diff


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compare two directory trees of images and rank the differences.",
    )
    parser.add_argument(
        "baseline",
        nargs="?",
        type=Path,
        help="Baseline tree root (default: before)",
    )
    parser.add_argument(
        "comparison",
        nargs="?",
        type=Path,
        help="Comparison tree root (default: after)",
    )
    parser.add_argument(
        "output",
        nargs="?",
        type=Path,
        help="Output HTML report (default: diff.html)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="JSON config file; command-line values override it",
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Number of parallel workers (default: CPU count, 0 = no threads)",
    )
    parser.add_argument(
        "--extension",
        help="Image file extension to compare (default: .png)",
    )
    parser.add_argument(
        "--relative-links",
        action="store_true",
        default=None,
        help="Link images relative to the report's directory",
    )
    parser.add_argument(
        "--skip-unchanged",
        action="store_true",
        default=None,
        help="Leave out pairs whose pixels are identical despite different bytes",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Abort without a report on the first pair that cannot be compared",
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        default=None,
        help="Show a progress bar while scoring",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the image tree diff script.

    Returns:
        Exit code (0 diffs found, 1 no diffs, 2 on any error)
    """
    args = build_parser().parse_args(argv)

    try:
        config = DiffConfig.from_file(args.config) if args.config else DiffConfig()
        config = config.with_overrides(
            baseline_root=args.baseline,
            comparison_root=args.comparison,
            output=args.output,
            extension=args.extension,
            workers=args.workers,
            relative_links=args.relative_links,
            skip_unchanged=args.skip_unchanged,
            strict=args.strict,
            progress=args.progress,
        )
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    try:
        run = run_diff(config)
    except (FileNotFoundError, PairError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    for failure in run.failures:
        print(failure.describe(), file=sys.stderr)

    print_summary(run, config)
    return run.exit_code


if __name__ == "__main__":
    sys.exit(main())
