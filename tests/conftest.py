from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, List, Tuple

import pytest
from lxml import etree
from pypdf import PdfWriter

from eapdf.config import AppConfig
from eapdf.transform.xslt import LxmlXsltTransformer

FO_NS = "http://www.w3.org/1999/XSL/Format"


def _email(
    subject: str = "Quarterly report",
    *,
    sender: str = "alice@example.org",
    to: str = "bob@example.org",
    body: str = "Hello Bob,\nthe report is attached.\n",
    message_id: str | None = "<msg-1@example.org>",
    date: str = "Mon, 02 Jan 2023 10:00:00 +0000",
    headers: Iterable[Tuple[str, str]] = (),
) -> str:
    lines = [f"From: {sender}", f"To: {to}", f"Subject: {subject}", f"Date: {date}"]
    if message_id:
        lines.append(f"Message-ID: {message_id}")
    lines.extend(f"{name}: {value}" for name, value in headers)
    lines.append("Content-Type: text/plain; charset=utf-8")
    return "\n".join(lines) + "\n\n" + body


@pytest.fixture
def make_email() -> Callable[..., str]:
    return _email


@pytest.fixture
def write_mbox(tmp_path: Path) -> Callable[..., Path]:
    """Write messages to an mbox file, each behind a ``From `` separator line."""

    def _write(name: str, messages: List[str], *, directory: Path | None = None) -> Path:
        path = (directory or tmp_path) / name
        path.parent.mkdir(parents=True, exist_ok=True)
        chunks = [
            f"From sender@example.org Mon Jan  2 10:00:00 2023\n{message.rstrip(chr(10))}\n\n"
            for message in messages
        ]
        path.write_bytes("".join(chunks).encode("utf-8"))
        return path

    return _write


@pytest.fixture
def settings() -> AppConfig:
    return AppConfig()


class StubFopTransformer:
    """Render one page for the account plus one per ``MESSAGE_<LocalId>`` block."""

    processor_version = "Apache FOP Version 2.9 (stub)"

    def __init__(self, status: int = 0):
        self.status = status
        self.calls: List[Tuple[Path, Path]] = []

    def transform(self, fo_path, pdf_path, messages) -> int:
        self.calls.append((Path(fo_path), Path(pdf_path)))
        if self.status != 0:
            messages.append((40, "SEVERE: stub failure"))
            return self.status
        document = etree.parse(str(fo_path))
        ids = [
            block.get("id")
            for block in document.iter(f"{{{FO_NS}}}block")
            if (block.get("id") or "").startswith("MESSAGE_")
        ]
        writer = PdfWriter()
        writer.add_blank_page(width=612, height=792)
        for index, destination in enumerate(ids, start=1):
            writer.add_blank_page(width=612, height=792)
            writer.add_named_destination(destination, index)
        with open(pdf_path, "wb") as fh:
            writer.write(fh)
        messages.append((20, f"INFO: rendered {len(ids)} message(s)"))
        return 0


class StubXsltTransformer:
    """Fail with ``status`` for the stylesheets named in ``failing``."""

    def __init__(self, failing: Iterable[str] = (), status: int = 1):
        self.failing = set(failing)
        self.status = status
        self.calls: List[str] = []

    def transform(self, input_path, template_path, output_path, params, messages) -> int:
        name = Path(template_path).name
        self.calls.append(name)
        if name in self.failing:
            messages.append((40, f"stub failure in {name}"))
            return self.status
        return LxmlXsltTransformer().transform(input_path, template_path, output_path, params, messages)


@pytest.fixture
def stub_fop() -> StubFopTransformer:
    return StubFopTransformer()


@pytest.fixture
def stub_fop_factory() -> Callable[..., StubFopTransformer]:
    return StubFopTransformer


@pytest.fixture
def stub_xslt_factory() -> Callable[..., StubXsltTransformer]:
    return StubXsltTransformer
