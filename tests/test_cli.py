from __future__ import annotations

import pytest
from lxml import etree

from cli import eaxs_to_pdf, mbox_to_eaxs
from eapdf.ingestion import XM_NS


def test_mbox_to_eaxs_writes_valid_archive(monkeypatch, tmp_path, write_mbox, make_email):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("EAPDF_HASH_ALGORITHM", raising=False)
    monkeypatch.delenv("EAPDF_CONFIG_FILE", raising=False)
    mbox = write_mbox("Inbox", [make_email("Hello")])
    output = tmp_path / "archive.xml"

    mbox_to_eaxs.main(
        [
            str(mbox),
            "--account-id",
            "mailto:alice@example.org",
            "--account-emails",
            "alice@example.org",
            "--hash-algorithm",
            "sha1",
            "--output",
            str(output),
            "--validate",
        ]
    )

    root = etree.parse(str(output)).getroot()
    assert root.findtext(f"{{{XM_NS}}}GlobalId") == "mailto:alice@example.org"
    assert root.findtext(f".//{{{XM_NS}}}Hash/{{{XM_NS}}}Function") == "SHA1"


def test_mbox_to_eaxs_rejects_unknown_hash(monkeypatch, tmp_path, write_mbox, make_email):
    monkeypatch.chdir(tmp_path)
    mbox = write_mbox("Inbox", [make_email()])
    with pytest.raises(SystemExit, match="not supported"):
        mbox_to_eaxs.main([str(mbox), "--hash-algorithm", "crc32"])


def test_eaxs_to_pdf_requires_existing_input(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit, match="does not exist"):
        eaxs_to_pdf.main([str(tmp_path / "missing.xml")])


def test_eaxs_to_pdf_uses_processor(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    eaxs = tmp_path / "account.xml"
    eaxs.write_text("<Account/>")
    calls = []

    class RecordingProcessor:
        def convert_eaxs_to_pdf(self, eaxs_path, pdf_path):
            calls.append((eaxs_path, pdf_path))
            return pdf_path

    monkeypatch.setattr(eaxs_to_pdf, "create_processor", lambda config: RecordingProcessor())
    eaxs_to_pdf.main([str(eaxs)])
    assert calls == [(eaxs.resolve(), eaxs.resolve().with_suffix(".pdf"))]
