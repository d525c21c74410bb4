"""Dataclasses describing an archive's folders, mbox files and messages."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

STATUS_FLAGS = ("Seen", "Answered", "Flagged", "Deleted", "Draft", "Recent")


@dataclass
class BodyPart:
    content_type: str
    charset: Optional[str] = None
    content_name: Optional[str] = None
    transfer_encoding: Optional[str] = None
    content_id: Optional[str] = None
    content_description: Optional[str] = None
    disposition: Optional[str] = None
    disposition_filename: Optional[str] = None
    content: Optional[str] = None
    content_encoding: Optional[str] = None
    boundary: Optional[str] = None
    preamble: Optional[str] = None
    epilogue: Optional[str] = None
    parts: List["BodyPart"] = field(default_factory=list)

    @property
    def is_multipart(self) -> bool:
        return self.content_type.startswith("multipart/")

    @property
    def is_attachment(self) -> bool:
        return self.disposition == "attachment" or bool(self.disposition_filename)


@dataclass
class Message:
    local_id: int
    message_id: str
    body: BodyPart
    mime_version: Optional[str] = None
    orig_date: Optional[datetime] = None
    from_: Optional[str] = None
    sender: Optional[str] = None
    to: Optional[str] = None
    cc: Optional[str] = None
    bcc: Optional[str] = None
    in_reply_to: Optional[str] = None
    subject: Optional[str] = None
    headers: List[Tuple[str, str]] = field(default_factory=list)
    status_flags: List[str] = field(default_factory=list)
    incomplete: List[Tuple[str, str]] = field(default_factory=list)

    def attachments(self) -> List[BodyPart]:
        found: List[BodyPart] = []
        stack = [self.body]
        while stack:
            part = stack.pop(0)
            if part.is_attachment:
                found.append(part)
            stack.extend(part.parts)
        return found


@dataclass
class MboxFile:
    rel_path: str
    eol: str
    hash_function: str
    hash_value: str


@dataclass
class Folder:
    name: str
    mbox_path: Optional[Path] = None
    folders: List["Folder"] = field(default_factory=list)
    message_count: int = 0
    mbox: Optional[MboxFile] = None

    def walk(self) -> Iterator["Folder"]:
        """Yield this folder and its descendants depth-first."""
        yield self
        for child in self.folders:
            yield from child.walk()


@dataclass
class Account:
    global_id: str
    source_path: Path
    hash_algorithm: str
    email_addresses: List[str] = field(default_factory=list)
    folders: List[Folder] = field(default_factory=list)

    @property
    def message_count(self) -> int:
        return sum(folder.message_count for top in self.folders for folder in top.walk())
