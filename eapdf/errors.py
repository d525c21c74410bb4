"""Exception hierarchy shared by the ingestion and PDF pipelines."""
from __future__ import annotations

from typing import List, Optional, Tuple


class EaPdfError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(EaPdfError, ValueError):
    """A collaborator or setting is missing or invalid."""


class TransformError(EaPdfError, RuntimeError):
    """A transform stage returned a non-zero status."""

    def __init__(
        self,
        stage: str,
        status: int,
        messages: Optional[List[Tuple[int, str]]] = None,
        detail: str | None = None,
    ) -> None:
        self.stage = stage
        self.status = status
        self.messages = list(messages or [])
        text = detail or f"{stage} failed, status-{status}; review log details."
        super().__init__(text)


class PostProcessingError(TransformError):
    """The FO artifact could not be rewritten; the original was left untouched."""

    def __init__(self, detail: str) -> None:
        super().__init__("FO post-processing", 1, detail=detail)


class IntegrityError(EaPdfError):
    """The archive or document would not be trustworthy if published."""


class UnsupportedHashAlgorithmError(IntegrityError, ValueError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Hash algorithm '{name}' is not supported")


class MetadataTreeError(IntegrityError):
    """The DPart tree does not mirror the archive's folder/message hierarchy."""
