"""Convert a mbox file or directory straight to an EA-PDF, via EAXS."""
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
from eapdf.ingestion import ingest_mailbox
from eapdf.processor import create_processor

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("source", help="mbox file or directory of mbox files")
    parser.add_argument("--account-id", default=None, help="GlobalId URI for the account")
    parser.add_argument("--account-emails", default=None, help="Comma-separated account email addresses")
    parser.add_argument("--eaxs", default=None, help="EAXS path (default: <source>.xml)")
    parser.add_argument("--output", default=None, help="PDF path (default: <eaxs>.pdf)")
    parser.add_argument("--hash-algorithm", default=None, help="Mbox hash function (default: SHA256)")
    parser.add_argument("--fop-command", default=None, help="Apache FOP executable")
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Keep intermediate files",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Optional log level override (e.g. INFO, DEBUG)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    config = configure_runtime(
        args.log_level,
        hash_algorithm=args.hash_algorithm,
        debug=args.debug,
        fop_command=args.fop_command,
    )
    source = Path(args.source).expanduser().resolve()
    try:
        eaxs, count = ingest_mailbox(
            source,
            args.account_id or source.as_uri(),
            args.account_emails,
            hash_algorithm=config.hash_algorithm,
            output_path=Path(args.eaxs).expanduser() if args.eaxs else None,
        )
        pdf = Path(args.output).expanduser() if args.output else eaxs.with_suffix(".pdf")
        create_processor(config).convert_eaxs_to_pdf(eaxs, pdf)
    except (EaPdfError, FileNotFoundError) as exc:
        raise SystemExit(str(exc)) from exc
    logger.info("Converted %s message(s) from %s into %s", count, source, pdf)


if __name__ == "__main__":
    main()
