from __future__ import annotations

import logging
import subprocess

import pytest

from eapdf.transform import fop
from eapdf.transform.fop import FopTransformer, classify_line


class RecordingRun:
    """Stand-in for ``subprocess.run`` that records calls and replays a result."""

    def __init__(self, returncode=0, stdout="", stderr="", error=None):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.error = error
        self.calls = []

    def __call__(self, args, **kwargs):
        self.calls.append((list(args), kwargs))
        if self.error is not None:
            raise self.error
        return subprocess.CompletedProcess(args, self.returncode, self.stdout, self.stderr)


@pytest.fixture
def fake_run(monkeypatch):
    def _install(**kwargs) -> RecordingRun:
        run = RecordingRun(**kwargs)
        monkeypatch.setattr(fop.subprocess, "run", run)
        return run

    return _install


@pytest.mark.parametrize(
    "line, level",
    [
        ("SEVERE: font not found", logging.ERROR),
        ("[ERROR] FOUserAgent - broken", logging.ERROR),
        ("FATAL: out of memory", logging.CRITICAL),
        ("WARNING: Glyph not available", logging.WARNING),
        ("[WARN] overflow", logging.WARNING),
        ("INFO: Rendered page #1.", logging.INFO),
        ("FINE: layout pass", logging.DEBUG),
        ("[DEBUG] loaded config", logging.DEBUG),
        ("no marker on this line", logging.INFO),
    ],
)
def test_classify_line(line, level):
    assert classify_line(line) == (level, line)


def test_transform_builds_command_and_passes_status(fake_run, tmp_path):
    run = fake_run(returncode=3, stdout="INFO: starting\n\n", stderr="SEVERE: page overflow\n")
    transformer = FopTransformer("java -jar fop.jar", config_path=tmp_path / "fop.xconf", timeout=30)
    messages = []

    status = transformer.transform(tmp_path / "in.fo", tmp_path / "out.pdf", messages)

    assert status == 3
    args, kwargs = run.calls[0]
    assert args == [
        "java",
        "-jar",
        "fop.jar",
        "-c",
        str(tmp_path / "fop.xconf"),
        "-fo",
        str(tmp_path / "in.fo"),
        "-pdf",
        str(tmp_path / "out.pdf"),
    ]
    assert kwargs["timeout"] == 30
    assert kwargs["check"] is False
    assert messages == [
        (logging.INFO, "INFO: starting"),
        (logging.ERROR, "SEVERE: page overflow"),
    ]


def test_transform_without_config_omits_flag(fake_run, tmp_path):
    run = fake_run()
    messages = []
    assert FopTransformer(["fop"]).transform("a.fo", "a.pdf", messages) == 0
    assert run.calls[0][0] == ["fop", "-fo", "a.fo", "-pdf", "a.pdf"]
    assert messages == []


@pytest.mark.parametrize(
    "error",
    [
        FileNotFoundError("fop"),
        subprocess.TimeoutExpired(cmd="fop", timeout=5),
    ],
)
def test_transform_reports_launch_failures(fake_run, error):
    fake_run(error=error)
    messages = []
    status = FopTransformer("fop", timeout=5).transform("a.fo", "a.pdf", messages)
    assert status == 127
    assert len(messages) == 1
    level, text = messages[0]
    assert level == logging.ERROR
    assert text.startswith("Could not run fop")


def test_processor_version_uses_last_line_once(fake_run):
    run = fake_run(stdout="Picked up JAVA_TOOL_OPTIONS\nFOP Version 2.9\n")
    transformer = FopTransformer("fop")
    assert transformer.processor_version == "FOP Version 2.9"
    assert transformer.processor_version == "FOP Version 2.9"
    assert len(run.calls) == 1
    assert run.calls[0][0] == ["fop", "-version"]


def test_processor_version_falls_back_when_fop_is_missing(fake_run, caplog):
    fake_run(error=FileNotFoundError("fop"))
    with caplog.at_level(logging.WARNING, logger="eapdf.transform.fop"):
        assert FopTransformer("fop").processor_version == "FOP"
    assert any("FOP version" in record.getMessage() for record in caplog.records)
