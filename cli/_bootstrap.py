"""Make ``python cli/<script>.py`` work from a source checkout."""
from __future__ import annotations

import sys
from pathlib import Path


def ensure_project_root() -> None:
    """Put the repository root on sys.path so ``eapdf`` imports resolve.

    Running a file directly sets ``sys.path[0]`` to ``cli/``, one level below
    the package.
    """
    root = Path(__file__).resolve().parents[1]
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)
