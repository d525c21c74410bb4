"""Mailbox to EAXS ingestion."""

from eapdf.ingestion.eaxs import XM, XM_NS, validate_eaxs
from eapdf.ingestion.pipelines import default_output_path, discover_folders, ingest_mailbox

__all__ = [
    "XM",
    "XM_NS",
    "default_output_path",
    "discover_folders",
    "ingest_mailbox",
    "validate_eaxs",
]
