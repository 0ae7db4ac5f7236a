"""CLI entrypoint for git2pdf."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import OUTPUT_FORMATS
from .logging import configure_logging
from .orchestrator import Orchestrator, RunOptions, RunResult


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git2pdf",
        description="Render the crates of a Rust repository into print-ready PDF listings.",
    )
    parser.add_argument(
        "source",
        nargs="?",
        help="Git URL or local path of the repository to render.",
    )
    parser.add_argument(
        "--file",
        type=Path,
        help="Render a single .rs file instead of a repository.",
    )
    parser.add_argument("-r", "--ref", help="Branch, tag or commit to check out before rendering.")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Directory for the generated documents (defaults to the current directory).",
    )
    parser.add_argument("--paper-size", help="Page size as WIDTHxHEIGHT in millimetres (default 210x297).")
    parser.add_argument(
        "--margins",
        help="Margins in millimetres: one value, 'vertical,horizontal' or 'top,right,bottom,left'.",
    )
    parser.add_argument("--font-size", type=float, help="Font size in points (default 8).")
    parser.add_argument("--font", type=Path, help="Path to a monospace TrueType font.")
    parser.add_argument("--columns", type=int, help="Number of text columns per page (default 2).")
    parser.add_argument(
        "--include-tests",
        action="store_true",
        default=None,
        help="Also render unit and integration test files.",
    )
    parser.add_argument(
        "--theme",
        help="Highlighting theme name, or 'none' to disable highlighting.",
    )
    parser.add_argument(
        "--no-parallel",
        dest="parallel",
        action="store_false",
        default=None,
        help="Render files sequentially instead of on a worker pool.",
    )
    parser.add_argument(
        "--no-page-break",
        dest="page_break",
        action="store_false",
        default=None,
        help="Do not force a page break between files in HTML output.",
    )
    parser.add_argument("--modules", help="Comma-separated list of crate names to render.")
    parser.add_argument("--temp-dir", type=Path, help="Directory for clones and scratch files.")
    parser.add_argument("--format", dest="output_format", choices=OUTPUT_FORMATS, help="Output format.")
    parser.add_argument("--config", type=Path, help="Path to a .git2pdf.yml file.")
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file.")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Increase log verbosity for troubleshooting.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for git2pdf."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.source is None and args.file is None:
        parser.error("a SOURCE repository or --file PATH is required")
    if args.source is not None and args.file is not None:
        parser.error("SOURCE and --file cannot be combined")

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    options = RunOptions(
        output_dir=args.output,
        ref=args.ref,
        temp_dir=args.temp_dir,
        config_path=args.config,
        output_format=args.output_format,
        include_tests=args.include_tests,
        parallel=args.parallel,
        modules=_split_modules(args.modules),
        theme=args.theme,
        font_size=args.font_size,
        font_path=args.font,
        paper_size=args.paper_size,
        margins=args.margins,
        columns=args.columns,
        page_break=args.page_break,
    )

    orchestrator = Orchestrator()
    try:
        if args.file is not None:
            result = orchestrator.run_file(args.file, options)
        else:
            result = orchestrator.run(args.source, options)
    except RuntimeError as exc:
        parser.exit(1, f"git2pdf failed: {exc}\nRun with --verbose for more details.\n")

    _report(result)
    if not result.ok:
        parser.exit(1, f"{len(result.failed)} crate(s) failed; see the log above.\n")


def _split_modules(value: str | None) -> list[str] | None:
    if value is None:
        return None
    return [name.strip() for name in value.split(",") if name.strip()]


def _report(result: RunResult) -> None:
    for outcome in result.outcomes:
        if outcome.output_path is not None:
            print(f"{outcome.module}: {_relativize(outcome.output_path)}")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
