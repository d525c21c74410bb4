"""Runtime bootstrap for the command line scripts."""

from eapdf.cli.runtime import configure_runtime

__all__ = ["configure_runtime"]
