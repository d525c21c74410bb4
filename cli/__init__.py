"""Command-line entry points for the mbox -> EAXS -> EA-PDF pipeline."""

from ._bootstrap import ensure_project_root

ensure_project_root()

from . import eaxs_to_pdf, mbox_to_eaxs, mbox_to_pdf  # noqa: E402

__all__ = ["eaxs_to_pdf", "mbox_to_eaxs", "mbox_to_pdf"]
