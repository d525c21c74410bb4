"""Decide whether the metadata-enhanced PDF replaces the rendered one."""
from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def reconcile_output(original_path: Path | str, temp_path: Path | str) -> bool:
    """Move ``temp_path`` over ``original_path`` if it is at least as large.

    A smaller (or missing) enhanced file most likely means the metadata step
    truncated the document: the original is kept, the temp file discarded and
    False returned. Same-size corruption is not detected.
    """
    original = Path(original_path)
    temp = Path(temp_path)
    if not temp.exists():
        logger.warning("Enhanced output %s was not produced; keeping %s", temp, original)
        return False
    original_size = original.stat().st_size if original.exists() else 0
    temp_size = temp.stat().st_size
    if temp_size >= original_size:
        os.replace(temp, original)
        logger.debug("Replaced %s (%s bytes) with enhanced output (%s bytes)", original, original_size, temp_size)
        return True
    logger.warning(
        "Enhanced output %s (%s bytes) is smaller than %s (%s bytes); keeping the original",
        temp,
        temp_size,
        original,
        original_size,
    )
    temp.unlink(missing_ok=True)
    return False
