"""XSLT 1.0 transformer backed by lxml."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from lxml import etree

from eapdf.transform.base import PipelineMessage

logger = logging.getLogger(__name__)

_LEVELS = {
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "FATAL": logging.CRITICAL,
}


def _collect(error_log, messages: List[PipelineMessage]) -> None:
    for entry in error_log:
        level = _LEVELS.get(entry.level_name, logging.INFO)
        location = f"{entry.filename}:{entry.line}" if entry.line else entry.filename
        messages.append((level, f"{entry.message} ({location})" if location else entry.message))


class LxmlXsltTransformer:
    """Run an XSLT stylesheet; non-zero status on any stylesheet or input failure."""

    def __init__(self) -> None:
        self._cache: Dict[Path, etree.XSLT] = {}

    def _stylesheet(self, template_path: Path) -> etree.XSLT:
        key = template_path.resolve()
        stylesheet = self._cache.get(key)
        if stylesheet is None:
            stylesheet = etree.XSLT(etree.parse(str(key)))
            self._cache[key] = stylesheet
        return stylesheet

    def transform(
        self,
        input_path: Path | str,
        template_path: Path | str,
        output_path: Path | str,
        params: Optional[Dict[str, Any]],
        messages: List[PipelineMessage],
    ) -> int:
        template = Path(template_path)
        try:
            stylesheet = self._stylesheet(template)
        except (OSError, etree.XMLSyntaxError, etree.XSLTParseError) as exc:
            messages.append((logging.ERROR, f"Cannot load stylesheet {template}: {exc}"))
            return 2
        try:
            document = etree.parse(str(input_path))
        except (OSError, etree.XMLSyntaxError) as exc:
            messages.append((logging.ERROR, f"Cannot parse {input_path}: {exc}"))
            return 3

        string_params = {
            name: etree.XSLT.strparam(str(value))
            for name, value in (params or {}).items()
        }
        try:
            result = stylesheet(document, **string_params)
        except etree.XSLTApplyError as exc:
            _collect(stylesheet.error_log, messages)
            messages.append((logging.ERROR, f"Transform of {input_path} failed: {exc}"))
            return 1
        _collect(stylesheet.error_log, messages)
        logger.debug("Transformed %s with %s", input_path, template.name)
        try:
            Path(output_path).write_bytes(bytes(result))
        except OSError as exc:
            messages.append((logging.ERROR, f"Cannot write {output_path}: {exc}"))
            return 4
        return 0
