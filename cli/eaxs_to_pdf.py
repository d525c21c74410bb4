"""Render an EAXS document as an EA-PDF with DPart metadata."""
from __future__ import annotations

try:  # pragma: no cover
    from cli._bootstrap import ensure_project_root
except ModuleNotFoundError:  # pragma: no cover
    from _bootstrap import ensure_project_root

ensure_project_root()

import argparse
import logging
from pathlib import Path

from eapdf.cli import configure_runtime
from eapdf.errors import EaPdfError
from eapdf.processor import create_processor

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("eaxs", help="EAXS file to render")
    parser.add_argument(
        "--output",
        default=None,
        help="PDF output path (default: <eaxs>.pdf)",
    )
    parser.add_argument(
        "--fop-command",
        default=None,
        help="Apache FOP executable (fallback: EAPDF_FOP_COMMAND or fop)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Keep intermediate FO/XMP files and a pre-metadata PDF copy",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Optional log level override (e.g. INFO, DEBUG)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    config = configure_runtime(args.log_level, debug=args.debug, fop_command=args.fop_command)
    eaxs = Path(args.eaxs).expanduser().resolve()
    if not eaxs.is_file():
        raise SystemExit(f"EAXS file does not exist: {eaxs}")
    pdf = Path(args.output).expanduser() if args.output else eaxs.with_suffix(".pdf")
    try:
        create_processor(config).convert_eaxs_to_pdf(eaxs, pdf)
    except EaPdfError as exc:
        raise SystemExit(str(exc)) from exc


if __name__ == "__main__":
    main()
