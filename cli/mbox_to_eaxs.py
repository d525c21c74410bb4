"""Convert a mbox file (or a directory of mbox files) to an EAXS document."""
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
from eapdf.ingestion import ingest_mailbox, validate_eaxs

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("source", help="mbox file or directory of mbox files")
    parser.add_argument(
        "--account-id",
        default=None,
        help="GlobalId URI for the account (default: file URI of the source)",
    )
    parser.add_argument(
        "--account-emails",
        default=None,
        help="Comma-separated email addresses belonging to the account",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="EAXS output path (default: <source>.xml)",
    )
    parser.add_argument(
        "--hash-algorithm",
        default=None,
        help="Mbox hash function: MD5, SHA1, SHA256, SHA384 or SHA512 (fallback: EAPDF_HASH_ALGORITHM)",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the written EAXS against the bundled schema",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Optional log level override (e.g. INFO, DEBUG)",
    )
    return parser


def convert(args: argparse.Namespace, hash_algorithm: str) -> Path:
    source = Path(args.source).expanduser().resolve()
    account_id = args.account_id or source.as_uri()
    output, count = ingest_mailbox(
        source,
        account_id,
        args.account_emails,
        hash_algorithm=hash_algorithm,
        output_path=Path(args.output).expanduser() if args.output else None,
    )
    if args.validate:
        errors = validate_eaxs(output)
        for error in errors:
            logger.error("EAXS validation: %s", error)
        if errors:
            raise SystemExit(f"{output} is not valid EAXS ({len(errors)} error(s))")
        logger.info("%s is valid EAXS", output)
    logger.info("Converted %s message(s) from %s", count, source)
    return output


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    config = configure_runtime(args.log_level, hash_algorithm=args.hash_algorithm)
    try:
        convert(args, config.hash_algorithm)
    except (EaPdfError, FileNotFoundError) as exc:
        raise SystemExit(str(exc)) from exc


if __name__ == "__main__":
    main()
