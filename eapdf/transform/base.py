"""Contracts for the XSLT and XSL-FO transform stages."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple

# (logging level, text) diagnostics reported by a transform stage.
PipelineMessage = Tuple[int, str]


class XsltTransformer(Protocol):
    def transform(
        self,
        input_path: Path | str,
        template_path: Path | str,
        output_path: Path | str,
        params: Optional[Dict[str, Any]],
        messages: List[PipelineMessage],
    ) -> int:
        ...


class XslFoTransformer(Protocol):
    @property
    def processor_version(self) -> str:
        ...

    def transform(
        self,
        fo_path: Path | str,
        pdf_path: Path | str,
        messages: List[PipelineMessage],
    ) -> int:
        ...


def log_messages(
    logger: logging.Logger,
    messages: List[PipelineMessage],
    stage: Optional[str] = None,
) -> None:
    extra = {"stage": stage} if stage else None
    for level, message in messages:
        logger.log(level, message, extra=extra)
