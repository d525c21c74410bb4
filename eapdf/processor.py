"""EAXS to EA-PDF conversion: XSLT -> XSL-FO -> PDF, then DPart metadata."""
from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import List

from eapdf import __version__
from eapdf.config import AppConfig
from eapdf.errors import ConfigurationError, TransformError
from eapdf.helpers.fonts import get_base_fonts
from eapdf.pdf.dparts import DPartInternalNode, build_dpart_tree
from eapdf.pdf.enhancer import DocumentEnhancerFactory, PdfEnhancerFactory
from eapdf.pdf.reconcile import reconcile_output
from eapdf.transform.base import PipelineMessage, XslFoTransformer, XsltTransformer, log_messages
from eapdf.transform.fo_postprocess import FoPostProcessor
from eapdf.transform.fop import FopTransformer
from eapdf.transform.xslt import LxmlXsltTransformer

logger = logging.getLogger(__name__)

PRODUCER = f"eapdf {__version__}"

FO_STAGE = "EAXS transformation to FO"
PDF_STAGE = "FO transformation to PDF"
XMP_STAGE = "EAXS transformation to XMP"
ROOT_XMP_STAGE = "EAXS transformation to root XMP"


class EaxsToEaPdfProcessor:
    """Convert an EAXS file into an EA-PDF.

    The stages run strictly in order and each status is checked before the
    next stage starts. Intermediate files live next to their inputs
    (``<eaxs>.fo``, ``<eaxs>.xmp``, ``<eaxs>.root.xmp``, ``<pdf>.render.pdf``,
    ``<pdf>.out.pdf``) and are removed when the run ends unless
    ``settings.debug`` is set, in which case ``<pdf>.pre.pdf`` keeps a copy
    of the PDF before metadata was added.
    """

    def __init__(
        self,
        xslt: XsltTransformer,
        xslfo: XslFoTransformer,
        enhancer_factory: DocumentEnhancerFactory,
        settings: AppConfig,
    ) -> None:
        if settings is None:
            raise ConfigurationError("settings are required")
        for name, value in (("xslt", xslt), ("xslfo", xslfo), ("enhancer_factory", enhancer_factory)):
            if value is None:
                raise ConfigurationError(f"{name} is required")
        for stylesheet in (settings.xslt_fo_path, settings.xslt_xmp_path, settings.xslt_root_xmp_path):
            if not Path(stylesheet).is_file():
                raise ConfigurationError(f"Stylesheet not found: {stylesheet}")
        self.xslt = xslt
        self.xslfo = xslfo
        self.enhancer_factory = enhancer_factory
        self.settings = settings
        logger.debug("%s created", type(self).__name__)

    def convert_eaxs_to_pdf(self, eaxs_path: Path | str, pdf_path: Path | str) -> Path:
        eaxs = Path(eaxs_path)
        pdf = Path(pdf_path)
        pdf.parent.mkdir(parents=True, exist_ok=True)
        fo_path = eaxs.with_suffix(".fo")
        render_path = pdf.with_suffix(".render.pdf")
        out_path = pdf.with_suffix(".out.pdf")

        try:
            self._render(eaxs, fo_path, render_path)
            if self.settings.debug:
                shutil.copyfile(render_path, pdf.with_suffix(".pre.pdf"))
            self._add_xmp(eaxs, render_path, out_path)
            os.replace(render_path, pdf)
            if reconcile_output(pdf, out_path):
                logger.info("EA-PDF written to %s", pdf)
            else:
                logger.warning("EA-PDF %s was published without the DPart metadata", pdf)
        finally:
            self._discard(fo_path, render_path, out_path)
        return pdf

    def _render(self, eaxs: Path, fo_path: Path, render_path: Path) -> None:
        fonts = get_base_fonts(eaxs, self.settings)
        params = {
            "fo-processor-version": self.xslfo.processor_version,
            "SerifFont": fonts.serif,
            "SansSerifFont": fonts.sans,
            "MonospaceFont": fonts.mono,
        }
        messages: List[PipelineMessage] = []
        status = self.xslt.transform(eaxs, self.settings.xslt_fo_path, fo_path, params, messages)
        log_messages(logger, messages, FO_STAGE)
        if status != 0:
            raise TransformError(FO_STAGE, status, messages)

        post_processor = FoPostProcessor(fo_path)
        post_processor.prevent_ligatures()
        post_processor.wrap_languages_in_font_family(self.settings)
        post_processor.save()

        messages = []
        status = self.xslfo.transform(fo_path, render_path, messages)
        log_messages(logger, messages, PDF_STAGE)
        if status != 0:
            raise TransformError(PDF_STAGE, status, messages)

    def _add_xmp(self, eaxs: Path, render_path: Path, out_path: Path) -> None:
        dparts = self._xmp_for_messages(eaxs)
        dparts.dpm_xmp = self._root_xmp_for_account(eaxs)
        with self.enhancer_factory.create(logger, render_path, out_path) as enhancer:
            enhancer.add_xmp_to_dparts(dparts)

    def _xmp_for_messages(self, eaxs: Path) -> DPartInternalNode:
        xmp_path = eaxs.with_suffix(".xmp")
        messages: List[PipelineMessage] = []
        try:
            status = self.xslt.transform(eaxs, self.settings.xslt_xmp_path, xmp_path, None, messages)
            log_messages(logger, messages, XMP_STAGE)
            if status != 0:
                raise TransformError(XMP_STAGE, status, messages)
            return build_dpart_tree(eaxs, xmp_path)
        finally:
            self._discard(xmp_path)

    def _root_xmp_for_account(self, eaxs: Path) -> str:
        xmp_path = eaxs.with_suffix(".root.xmp")
        messages: List[PipelineMessage] = []
        try:
            status = self.xslt.transform(
                eaxs,
                self.settings.xslt_root_xmp_path,
                xmp_path,
                {"producer": PRODUCER},
                messages,
            )
            log_messages(logger, messages, ROOT_XMP_STAGE)
            if status != 0:
                raise TransformError(ROOT_XMP_STAGE, status, messages)
            return xmp_path.read_text(encoding="utf-8")
        finally:
            self._discard(xmp_path)

    def _discard(self, *paths: Path) -> None:
        if self.settings.debug:
            return
        for path in paths:
            path.unlink(missing_ok=True)


def create_processor(settings: AppConfig) -> EaxsToEaPdfProcessor:
    """Build a processor with the default lxml and FOP collaborators."""
    return EaxsToEaPdfProcessor(
        LxmlXsltTransformer(),
        FopTransformer(settings.fop_command),
        PdfEnhancerFactory(),
        settings,
    )
