from __future__ import annotations

import logging
from dataclasses import replace

import pytest
from pypdf import PdfReader

from eapdf.errors import ConfigurationError, TransformError
from eapdf.ingestion import ingest_mailbox
from eapdf.pdf.enhancer import PdfEnhancerFactory
from eapdf.processor import PRODUCER, EaxsToEaPdfProcessor
from eapdf.transform.xslt import LxmlXsltTransformer


@pytest.fixture
def eaxs(tmp_path, write_mbox, make_email):
    source = tmp_path / "profile"
    write_mbox("Inbox", [make_email("Lunch"), make_email("Budget")], directory=source)
    write_mbox("Archive", [make_email("Old news")], directory=source / "Inbox.sbd")
    path, _ = ingest_mailbox(source, "mailto:alice@example.org")
    return path


def _stage_errors(caplog, stage):
    return [
        record.getMessage()
        for record in caplog.records
        if record.levelno == logging.ERROR and getattr(record, "stage", None) == stage
    ]


def _intermediates(eaxs, pdf):
    return [
        eaxs.with_suffix(".fo"),
        eaxs.with_suffix(".xmp"),
        eaxs.with_suffix(".root.xmp"),
        pdf.with_suffix(".render.pdf"),
        pdf.with_suffix(".out.pdf"),
        pdf.with_suffix(".pre.pdf"),
    ]


def test_converts_eaxs_to_pdf_with_dparts(eaxs, tmp_path, settings, stub_fop):
    pdf = tmp_path / "out" / "account.pdf"
    processor = EaxsToEaPdfProcessor(LxmlXsltTransformer(), stub_fop, PdfEnhancerFactory(), settings)

    result = processor.convert_eaxs_to_pdf(eaxs, pdf)

    assert result == pdf
    assert len(stub_fop.calls) == 1
    reader = PdfReader(str(pdf))
    assert len(reader.pages) == 4
    root_node = reader.trailer["/Root"]["/DPartRoot"]["/DPartRootNode"]
    assert root_node["/DPM"]["/Name"] == "mailto:alice@example.org"
    assert PRODUCER.encode() in root_node["/Metadata"].get_data()
    inbox = root_node["/DParts"][0][0].get_object()
    assert inbox["/DPM"]["/Name"] == "Inbox"
    lunch, budget, archive = [ref.get_object() for ref in inbox["/DParts"][0]]
    assert lunch["/DPM"]["/LocalId"] == "1"
    assert b"Lunch" in lunch["/Metadata"].get_data()
    assert archive["/DPM"]["/Name"] == "Archive"
    assert all(not path.exists() for path in _intermediates(eaxs, pdf))


def test_failing_xslt_never_invokes_fo_stage(eaxs, tmp_path, settings, stub_fop, stub_xslt_factory, caplog):
    pdf = tmp_path / "account.pdf"
    pdf.write_bytes(b"previous rendition")
    xslt = stub_xslt_factory(failing={settings.xslt_fo_path.name})
    processor = EaxsToEaPdfProcessor(xslt, stub_fop, PdfEnhancerFactory(), settings)

    with caplog.at_level(logging.INFO, logger="eapdf.processor"), pytest.raises(TransformError) as excinfo:
        processor.convert_eaxs_to_pdf(eaxs, pdf)

    assert excinfo.value.status == 1
    assert _stage_errors(caplog, "EAXS transformation to FO") == ["stub failure in eaxs_to_fo.xsl"]
    assert str(excinfo.value) == "EAXS transformation to FO failed, status-1; review log details."
    assert stub_fop.calls == []
    assert pdf.read_bytes() == b"previous rendition"


def test_failing_fo_stage_leaves_pdf_untouched(eaxs, tmp_path, settings, stub_fop_factory, caplog):
    pdf = tmp_path / "account.pdf"
    pdf.write_bytes(b"previous rendition")
    fop = stub_fop_factory(status=1)
    processor = EaxsToEaPdfProcessor(LxmlXsltTransformer(), fop, PdfEnhancerFactory(), settings)

    with caplog.at_level(logging.INFO, logger="eapdf.processor"), pytest.raises(
        TransformError, match="FO transformation to PDF"
    ):
        processor.convert_eaxs_to_pdf(eaxs, pdf)

    assert _stage_errors(caplog, "FO transformation to PDF") == ["SEVERE: stub failure"]
    assert pdf.read_bytes() == b"previous rendition"
    assert not eaxs.with_suffix(".fo").exists()


def test_failing_metadata_stage_keeps_previous_pdf(eaxs, tmp_path, settings, stub_fop, stub_xslt_factory):
    pdf = tmp_path / "account.pdf"
    pdf.write_bytes(b"previous rendition")
    xslt = stub_xslt_factory(failing={settings.xslt_xmp_path.name}, status=3)
    processor = EaxsToEaPdfProcessor(xslt, stub_fop, PdfEnhancerFactory(), settings)

    with pytest.raises(TransformError) as excinfo:
        processor.convert_eaxs_to_pdf(eaxs, pdf)

    assert excinfo.value.stage == "EAXS transformation to XMP"
    assert pdf.read_bytes() == b"previous rendition"
    assert not pdf.with_suffix(".render.pdf").exists()


def test_debug_mode_keeps_intermediates(eaxs, tmp_path, settings, stub_fop):
    pdf = tmp_path / "account.pdf"
    processor = EaxsToEaPdfProcessor(
        LxmlXsltTransformer(), stub_fop, PdfEnhancerFactory(), replace(settings, debug=True)
    )

    processor.convert_eaxs_to_pdf(eaxs, pdf)

    assert pdf.exists()
    for path in (
        eaxs.with_suffix(".fo"),
        eaxs.with_suffix(".xmp"),
        eaxs.with_suffix(".root.xmp"),
        pdf.with_suffix(".pre.pdf"),
    ):
        assert path.exists(), path
    assert "/DPartRoot" not in PdfReader(str(pdf.with_suffix(".pre.pdf"))).trailer["/Root"]


def test_missing_collaborators_are_rejected(settings, stub_fop):
    with pytest.raises(ConfigurationError):
        EaxsToEaPdfProcessor(None, stub_fop, PdfEnhancerFactory(), settings)
    with pytest.raises(ConfigurationError):
        EaxsToEaPdfProcessor(LxmlXsltTransformer(), stub_fop, PdfEnhancerFactory(), None)


def test_missing_stylesheet_is_rejected(tmp_path, settings, stub_fop):
    broken = replace(settings, xslt_xmp_path=tmp_path / "missing.xsl")
    with pytest.raises(ConfigurationError, match="missing.xsl"):
        EaxsToEaPdfProcessor(LxmlXsltTransformer(), stub_fop, PdfEnhancerFactory(), broken)
