"""Mailbox ingestion pipeline: mbox files in, one EAXS document out."""
from __future__ import annotations

import itertools
import logging
import os
from pathlib import Path
from typing import Iterator, List, Sequence, Tuple

from lxml import etree

from eapdf.config import DEFAULT_HASH_ALGORITHM
from eapdf.helpers.hashing import normalize_algorithm_name
from eapdf.ingestion.eaxs import NSMAP, mbox_element, message_element, q, text_element
from eapdf.ingestion.mbox import MboxReader, has_mbox_sentinel, parse_message
from eapdf.ingestion.models import Account, Folder, MboxFile

logger = logging.getLogger(__name__)

MBOX_SUFFIXES = {"", ".mbox", ".mbx", ".mbs"}
# Thunderbird indexes and our own artifacts living next to the mailboxes.
_SKIPPED_SUFFIXES = {".msf", ".xml", ".tmp", ".fo", ".xmp", ".pdf", ".json", ".dat", ".sqlite"}
_SUBFOLDER_SUFFIX = ".sbd"


def default_output_path(source: Path) -> Path:
    if source.is_dir():
        return source.parent / f"{source.name}.xml"
    if source.suffix.lower() in MBOX_SUFFIXES:
        return source.with_suffix(".xml")
    return source.with_name(f"{source.name}.xml")


def _folder_name(path: Path) -> str:
    return path.stem if path.suffix.lower() in MBOX_SUFFIXES else path.name


def _looks_like_mbox(path: Path) -> bool:
    if path.name.startswith(".") or path.suffix.lower() in _SKIPPED_SUFFIXES:
        return False
    if has_mbox_sentinel(path):
        return True
    logger.warning("Skipping %s: no mbox 'From ' line found", path)
    return False


def discover_folders(directory: Path) -> List[Folder]:
    """Map a directory of mbox files to folders.

    Each mbox file is a folder. A ``<name>.sbd`` directory (Thunderbird) or a
    plain subdirectory holds the sub-folders of ``<name>``.
    """
    folders: dict[str, Folder] = {}
    entries = sorted(directory.iterdir(), key=lambda p: p.name.lower())
    for path in entries:
        if path.is_file() and _looks_like_mbox(path):
            name = _folder_name(path)
            folders.setdefault(name, Folder(name=name, mbox_path=path))
    for path in entries:
        if not path.is_dir() or path.name.startswith("."):
            continue
        name = path.name[: -len(_SUBFOLDER_SUFFIX)] if path.name.endswith(_SUBFOLDER_SUFFIX) else path.name
        parent = folders.setdefault(name, Folder(name=name))
        parent.folders.extend(discover_folders(path))
    return sorted(folders.values(), key=lambda folder: folder.name.lower())


def _parse_emails(account_emails: str | Sequence[str] | None) -> List[str]:
    if not account_emails:
        return []
    if isinstance(account_emails, str):
        account_emails = account_emails.split(",")
    return [address.strip() for address in account_emails if address.strip()]


def _write_folder(
    xf,
    folder: Folder,
    root: Path,
    algorithm: str,
    local_ids: Iterator[int],
    *,
    progress_interval: int | None,
) -> None:
    attachments = 0
    with xf.element(q("Folder")):
        xf.write(text_element("Name", folder.name))
        if folder.mbox_path is not None:
            reader = MboxReader(folder.mbox_path, algorithm)
            for raw in reader:
                message = parse_message(raw, next(local_ids))
                xf.write(message_element(message))
                attachments += len(message.attachments())
                folder.message_count += 1
                if progress_interval and folder.message_count % progress_interval == 0:
                    logger.info(
                        "[ingest] %s: serialized %s message(s) so far",
                        folder.name,
                        folder.message_count,
                    )
            rel_path = folder.mbox_path.name if root.is_file() else folder.mbox_path.relative_to(root).as_posix()
            folder.mbox = MboxFile(
                rel_path=rel_path,
                eol=reader.eol or "LF",
                hash_function=algorithm,
                hash_value=reader.hash_value or "",
            )
        for child in folder.folders:
            _write_folder(xf, child, root, algorithm, local_ids, progress_interval=progress_interval)
        if folder.mbox is not None:
            xf.write(mbox_element(folder.mbox))
    logger.info(
        "[ingest] Folder '%s': %s message(s), %s attachment(s)",
        folder.name,
        folder.message_count,
        attachments,
    )


def ingest_mailbox(
    source_path: Path | str,
    account_id: str,
    account_emails: str | Sequence[str] | None = None,
    *,
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM,
    output_path: Path | str | None = None,
    progress_interval: int | None = 500,
) -> Tuple[Path, int]:
    """Serialize a mbox file (or a directory of them) as EAXS.

    Returns the EAXS path and the number of messages written. The document is
    written to a temporary sibling and moved into place only when complete.
    """
    algorithm = normalize_algorithm_name(hash_algorithm)
    source = Path(source_path)
    if not source.exists():
        raise FileNotFoundError(f"Mailbox source does not exist: {source}")

    account = Account(
        global_id=account_id,
        source_path=source,
        hash_algorithm=algorithm,
        email_addresses=_parse_emails(account_emails),
    )
    if source.is_dir():
        account.folders = discover_folders(source)
    else:
        account.folders = [Folder(name=_folder_name(source), mbox_path=source)]

    output = Path(output_path) if output_path else default_output_path(source)
    output.parent.mkdir(parents=True, exist_ok=True)
    temp_output = output.with_name(f"{output.name}.tmp")
    local_ids = itertools.count(1)
    logger.info("Converting %s to EAXS (%s) at %s", source, algorithm, output)
    completed = False
    try:
        with etree.xmlfile(str(temp_output), encoding="utf-8") as xf:
            xf.write_declaration()
            with xf.element(q("Account"), nsmap=NSMAP):
                for address in account.email_addresses:
                    xf.write(text_element("EmailAddress", address))
                xf.write(text_element("GlobalId", account.global_id))
                for folder in account.folders:
                    _write_folder(
                        xf,
                        folder,
                        source,
                        algorithm,
                        local_ids,
                        progress_interval=progress_interval,
                    )
        os.replace(temp_output, output)
        completed = True
    finally:
        if not completed:
            temp_output.unlink(missing_ok=True)

    message_count = account.message_count
    logger.info(
        "EAXS written to %s: %s folder(s), %s message(s)",
        output,
        sum(1 for top in account.folders for _ in top.walk()),
        message_count,
    )
    return output, message_count
