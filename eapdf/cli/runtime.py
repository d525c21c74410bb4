"""Runtime helpers shared by CLI entrypoints."""
from __future__ import annotations

from eapdf.config import AppConfig, load_settings
from eapdf.logging import configure_logging


def configure_runtime(
    log_level: str | None = None,
    *,
    hash_algorithm: str | None = None,
    debug: bool | None = None,
    fop_command: str | None = None,
    structured: bool | None = None,
) -> AppConfig:
    config = load_settings(hash_algorithm, debug=debug, fop_command=fop_command)
    effective_structured = structured if structured is not None else config.structured_logging
    configure_logging(log_level or config.log_level, structured=effective_structured)
    return config
