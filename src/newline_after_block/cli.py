"""Command-line entry point: newline-after-block [flags] PATH..."""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import List, Optional

from .config import AnalyzerConfig
from .exceptions import ConfigurationError
from .models import AnalysisResult
from .runner import AnalysisRunner

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "WARNING"),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="newline-after-block",
        description="Report block statements that are not followed by a blank line.",
    )
    parser.add_argument("paths", nargs="+", metavar="PATH", help="Go files, directories, or dir/... patterns")
    parser.add_argument(
        "-e",
        "--exclude",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Regex matched against file paths relative to the current directory (repeatable)",
    )
    parser.add_argument("--fix", action="store_true", help="Apply suggested fixes in place")
    parser.add_argument("--json", action="store_true", help="Print diagnostics as JSON")
    parser.add_argument("--goroot", metavar="DIR", help="Go installation root used to resolve standard library types")
    parser.add_argument("--no-gitignore", action="store_true", help="Do not honor .gitignore when walking dir/...")
    parser.add_argument(
        "-j",
        "--max-concurrent",
        type=int,
        metavar="N",
        help="Maximum number of packages analyzed at once",
    )
    return parser


def format_text(result: AnalysisResult) -> str:
    return "\n".join(f"{d.path}:{d.line}:{d.column}: {d.message}" for d in result.diagnostics)


def format_json(result: AnalysisResult) -> str:
    grouped = {}
    for diagnostic in result.diagnostics:
        grouped.setdefault(diagnostic.path, []).append(diagnostic.to_dict())
    return json.dumps(grouped, indent=2)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the analyzer and print its findings.

    Returns:
        0 if clean (or everything was fixed), 1 if diagnostics remain or
        files failed, 2 on configuration errors
    """
    setup_logging()
    args = build_parser().parse_args(argv)

    try:
        config = AnalyzerConfig.from_env(
            exclude=args.exclude,
            goroot=args.goroot,
            fix=args.fix,
            max_concurrent=args.max_concurrent,
            follow_gitignore=False if args.no_gitignore else None,
        )
        result = asyncio.run(AnalysisRunner(config).run(args.paths))
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"newline-after-block: {e}", file=sys.stderr)
        return 2

    output = format_json(result) if args.json else format_text(result)
    if output and (args.json or not args.fix):
        print(output)

    for file_path in result.fixed_files:
        logger.info(f"Rewrote {file_path}")

    if result.failed_files:
        return 1
    if result.diagnostics and not args.fix:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
