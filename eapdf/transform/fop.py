"""XSL-FO to PDF rendering through the Apache FOP command line."""
from __future__ import annotations

import logging
import re
import shlex
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from eapdf.transform.base import PipelineMessage

logger = logging.getLogger(__name__)

_LEVEL_PATTERN = re.compile(r"\b(SEVERE|ERROR|FATAL|WARNING|WARN|INFO|FINE|DEBUG)\b")
_LEVELS = {
    "SEVERE": logging.ERROR,
    "ERROR": logging.ERROR,
    "FATAL": logging.CRITICAL,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "INFO": logging.INFO,
    "FINE": logging.DEBUG,
    "DEBUG": logging.DEBUG,
}


def classify_line(line: str) -> PipelineMessage:
    match = _LEVEL_PATTERN.search(line)
    level = _LEVELS[match.group(1)] if match else logging.INFO
    return level, line


class FopTransformer:
    def __init__(
        self,
        command: str | Sequence[str] = "fop",
        *,
        config_path: Optional[Path] = None,
        timeout: float | None = None,
    ) -> None:
        self.command = shlex.split(command) if isinstance(command, str) else list(command)
        self.config_path = config_path
        self.timeout = timeout
        self._version: Optional[str] = None

    @property
    def processor_version(self) -> str:
        if self._version is None:
            try:
                completed = subprocess.run(
                    [*self.command, "-version"],
                    capture_output=True,
                    text=True,
                    timeout=60,
                    check=False,
                )
                output = (completed.stdout or completed.stderr).strip().splitlines()
                self._version = output[-1] if output else "FOP"
            except (OSError, subprocess.TimeoutExpired) as exc:
                logger.warning("Could not determine FOP version: %s", exc)
                self._version = "FOP"
        return self._version

    def transform(
        self,
        fo_path: Path | str,
        pdf_path: Path | str,
        messages: List[PipelineMessage],
    ) -> int:
        args = [*self.command]
        if self.config_path is not None:
            args += ["-c", str(self.config_path)]
        args += ["-fo", str(fo_path), "-pdf", str(pdf_path)]
        logger.debug("Running %s", " ".join(args))
        try:
            completed = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            messages.append((logging.ERROR, f"Could not run {self.command[0]}: {exc}"))
            return 127
        for stream in (completed.stdout, completed.stderr):
            for line in (stream or "").splitlines():
                if line.strip():
                    messages.append(classify_line(line))
        return completed.returncode
