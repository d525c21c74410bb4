"""Streaming mbox reader and RFC 5322 message parsing."""
from __future__ import annotations

import base64
import logging
import re
from dataclasses import dataclass
from email import errors as email_errors
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import parsedate_to_datetime
from hashlib import sha1
from pathlib import Path
from typing import Iterator, List, Optional, Set, Tuple

from eapdf.helpers.hashing import CHUNK_SIZE, normalize_algorithm_name, require_hash_algorithm
from eapdf.ingestion.models import STATUS_FLAGS, BodyPart, Message

logger = logging.getLogger(__name__)

FROM_SENTINEL = b"From "
UTF8_BOM = b"\xef\xbb\xbf"

# How far into a file to look for the first message when sniffing for mbox.
SNIFF_LIMIT = 64 * 1024

_EOL = re.compile(rb"\r\n|\n|\r")

_HEADER_ERRORS = (ValueError, IndexError, TypeError, AttributeError, email_errors.MessageError)

# X-Mozilla-Status bit masks.
_MOZILLA_FLAGS = (
    (0x0001, "Seen"),
    (0x0002, "Answered"),
    (0x0004, "Flagged"),
    (0x0008, "Deleted"),
)

# X-Status letters used by mutt, pine and friends.
_X_STATUS_FLAGS = {
    "A": "Answered",
    "F": "Flagged",
    "D": "Deleted",
    "T": "Draft",
}


@dataclass
class RawMessage:
    from_line: bytes
    data: bytes
    offset: int


def _is_blank(line: bytes) -> bool:
    return line in (b"\n", b"\r\n", b"\r")


def iter_lines(fh, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Yield lines with their terminators; LF, CRLF and a lone CR all end a line."""
    pending = b""
    for chunk in iter(lambda: fh.read(chunk_size), b""):
        pending += chunk
        start = 0
        while True:
            match = _EOL.search(pending, start)
            if match is None:
                break
            # A trailing CR may be the first half of a CRLF split across chunks.
            if match.group() == b"\r" and match.end() == len(pending):
                break
            yield pending[start : match.end()]
            start = match.end()
        pending = pending[start:]
    if pending:
        yield pending


def _sentinel_line(line: bytes, first: bool) -> bytes:
    return line[len(UTF8_BOM) :] if first and line.startswith(UTF8_BOM) else line


def has_mbox_sentinel(path: Path | str, limit: int = SNIFF_LIMIT) -> bool:
    """True if ``path`` is blank or has a ``From `` line within ``limit`` bytes.

    Leading blank lines and other preamble bytes are tolerated, as when reading.
    """
    previous_blank = True
    has_content = False
    seen = 0
    with Path(path).open("rb") as fh:
        for line in iter_lines(fh):
            if previous_blank and _sentinel_line(line, seen == 0).startswith(FROM_SENTINEL):
                return True
            previous_blank = _is_blank(line)
            has_content = has_content or bool(line.strip())
            seen += len(line)
            if seen >= limit:
                break
    return not has_content


def _line_ending(line: bytes) -> Optional[str]:
    if line.endswith(b"\r\n"):
        return "CRLF"
    if line.endswith(b"\n"):
        return "LF"
    if b"\r" in line:
        return "CR"
    return None


class MboxReader:
    """Split an mbox file into raw messages while hashing every byte read.

    The digest covers the file exactly as stored, independent of how the
    messages are segmented. ``hash_value`` and ``eol`` are available once the
    iterator has been exhausted.
    """

    def __init__(self, path: Path | str, hash_algorithm: str) -> None:
        self.path = Path(path)
        self.hash_algorithm = normalize_algorithm_name(hash_algorithm)
        self.hash_value: str | None = None
        self.eol: str | None = None
        self.preamble_size = 0
        self.message_count = 0

    def __iter__(self) -> Iterator[RawMessage]:
        digest = require_hash_algorithm(self.hash_algorithm)
        current_from: bytes | None = None
        buffer: List[bytes] = []
        start = 0
        offset = 0
        previous_blank = True
        with self.path.open("rb") as fh:
            for line in iter_lines(fh):
                digest.update(line)
                if self.eol is None:
                    self.eol = _line_ending(line)
                candidate = _sentinel_line(line, offset == 0)
                if previous_blank and candidate.startswith(FROM_SENTINEL):
                    if current_from is not None:
                        yield self._emit(current_from, buffer, start)
                    else:
                        self._note_preamble(buffer)
                    current_from = candidate
                    buffer = []
                    start = offset
                else:
                    buffer.append(line)
                previous_blank = _is_blank(line)
                offset += len(line)
        if current_from is not None:
            yield self._emit(current_from, buffer, start)
        else:
            self._note_preamble(buffer)
        self.hash_value = digest.hexdigest().upper()
        if self.eol is None:
            self.eol = "LF"
        logger.debug(
            "Read %s message(s) from %s (%s %s)",
            self.message_count,
            self.path,
            self.hash_algorithm,
            self.hash_value,
        )

    def _emit(self, from_line: bytes, buffer: List[bytes], start: int) -> RawMessage:
        # The blank line before the next sentinel separates messages.
        if buffer and _is_blank(buffer[-1]):
            buffer = buffer[:-1]
        self.message_count += 1
        return RawMessage(from_line=from_line, data=b"".join(buffer), offset=start)

    def _note_preamble(self, buffer: List[bytes]) -> None:
        size = sum(len(line) for line in buffer)
        self.preamble_size = size
        if any(line.strip() for line in buffer):
            logger.warning(
                "Ignoring %s byte(s) before the first message in %s",
                size,
                self.path,
            )


def _unfold(value: str) -> str:
    return " ".join(value.replace("\r", "").split("\n")).strip()


def _raw_header(message: EmailMessage, name: str) -> Optional[str]:
    lowered = name.lower()
    for key, value in message.raw_items():
        if key.lower() == lowered:
            return _unfold(str(value))
    return None


def _header(message: EmailMessage, name: str) -> Optional[str]:
    """Return the decoded header value, falling back to the raw text."""
    try:
        value = message.get(name)
    except _HEADER_ERRORS:
        logger.debug("Could not parse header %s; using raw value", name)
        return _raw_header(message, name)
    if value is None:
        return None
    try:
        return _unfold(str(value))
    except _HEADER_ERRORS:
        return _raw_header(message, name)


def detect_status_flags(message: EmailMessage) -> List[str]:
    """Collect status flags from mbox and Mozilla client headers."""
    flags: Set[str] = set()
    status = _raw_header(message, "Status")
    if status and "R" in status:
        flags.add("Seen")
    x_status = _raw_header(message, "X-Status")
    if x_status:
        for letter, flag in _X_STATUS_FLAGS.items():
            if letter in x_status:
                flags.add(flag)
    mozilla = _raw_header(message, "X-Mozilla-Status")
    if mozilla:
        try:
            bits = int(mozilla.strip(), 16)
        except ValueError:
            logger.debug("Ignoring malformed X-Mozilla-Status %r", mozilla)
        else:
            for mask, flag in _MOZILLA_FLAGS:
                if bits & mask:
                    flags.add(flag)
    if _raw_header(message, "X-Mozilla-Draft-Info") is not None:
        flags.add("Draft")
    return [flag for flag in STATUS_FLAGS if flag in flags]


def _parse_date(message: EmailMessage):
    raw = _raw_header(message, "Date")
    if not raw:
        return None
    try:
        return parsedate_to_datetime(raw)
    except (TypeError, ValueError, IndexError):
        logger.debug("Unparseable Date header %r", raw)
        return None


def _decode_text(payload: bytes, charset: Optional[str]) -> str:
    try:
        return payload.decode(charset or "utf-8", errors="replace")
    except LookupError:
        return payload.decode("utf-8", errors="replace")


def _body_part(part: EmailMessage) -> BodyPart:
    body = BodyPart(
        content_type=part.get_content_type(),
        charset=part.get_content_charset(),
        transfer_encoding=(_header(part, "Content-Transfer-Encoding") or "").lower() or None,
        content_id=_header(part, "Content-ID"),
        content_description=_header(part, "Content-Description"),
        disposition=part.get_content_disposition(),
    )
    try:
        body.content_name = part.get_param("name", header="content-type", unquote=True)
        body.disposition_filename = part.get_filename()
    except _HEADER_ERRORS:
        logger.debug("Could not read name parameters of %s part", body.content_type)
    if isinstance(body.content_name, tuple):
        body.content_name = body.content_name[2]

    if part.get_content_maintype() == "multipart":
        body.boundary = part.get_boundary()
        body.preamble = part.preamble
        body.epilogue = part.epilogue
        body.parts = [_body_part(child) for child in part.iter_parts()]
        return body

    if part.is_multipart():
        # message/rfc822 and friends: keep the enclosed message as text.
        enclosed = part.get_payload()
        body.content = "".join(
            _decode_text(inner.as_bytes(policy=policy.compat32), "utf-8") for inner in enclosed
        )
        return body

    payload = part.get_payload(decode=True) or b""
    if part.get_content_maintype() == "text" and not body.is_attachment:
        body.content = _decode_text(payload, body.charset)
    else:
        body.content = base64.b64encode(payload).decode("ascii")
        body.content_encoding = "base64"
    return body


def _defects(message: EmailMessage) -> List[Tuple[str, str]]:
    found: List[Tuple[str, str]] = []
    for part in message.walk():
        for defect in part.defects:
            found.append((type(defect).__name__, str(defect) or part.get_content_type()))
    return found


def _message_id(message: EmailMessage, raw: RawMessage) -> str:
    value = (_header(message, "Message-ID") or "").strip().strip("<>").strip()
    if value:
        return value
    synthesized = f"{sha1(raw.data).hexdigest()}@eapdf.invalid"
    logger.warning("Message at offset %s has no Message-ID; using %s", raw.offset, synthesized)
    return synthesized


def parse_message(raw: RawMessage, local_id: int) -> Message:
    """Parse one raw mbox message into the archive model."""
    email_message = BytesParser(policy=policy.default).parsebytes(raw.data)
    in_reply_to = _header(email_message, "In-Reply-To")
    return Message(
        local_id=local_id,
        message_id=_message_id(email_message, raw),
        body=_body_part(email_message),
        mime_version=_header(email_message, "MIME-Version"),
        orig_date=_parse_date(email_message),
        from_=_header(email_message, "From"),
        sender=_header(email_message, "Sender"),
        to=_header(email_message, "To"),
        cc=_header(email_message, "Cc"),
        bcc=_header(email_message, "Bcc"),
        in_reply_to=in_reply_to.strip("<> ") if in_reply_to else None,
        subject=_header(email_message, "Subject"),
        headers=[(name, _unfold(str(value))) for name, value in email_message.raw_items()],
        status_flags=detect_status_flags(email_message),
        incomplete=_defects(email_message),
    )
