"""Email archive (mbox -> EAXS -> EA-PDF) conversion toolkit."""

__version__ = "0.1.0"
