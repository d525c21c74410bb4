"""Hash algorithm lookup for archive integrity values."""
from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any, List, Optional

from eapdf.errors import UnsupportedHashAlgorithmError

# Names recorded in Mbox/Hash/Function mapped to hashlib constructors.
_ALGORITHMS = {
    "MD5": "md5",
    "SHA1": "sha1",
    "SHA256": "sha256",
    "SHA384": "sha384",
    "SHA512": "sha512",
}

CHUNK_SIZE = 64 * 1024


def supported_hash_algorithms() -> List[str]:
    return list(_ALGORITHMS)


def create_hash_algorithm(name: str) -> Optional[Any]:
    """Return a new digest object for ``name`` or ``None`` if it is not supported."""
    hashlib_name = _ALGORITHMS.get((name or "").strip().upper())
    if hashlib_name is None:
        return None
    return hashlib.new(hashlib_name, usedforsecurity=False)


def require_hash_algorithm(name: str) -> Any:
    digest = create_hash_algorithm(name)
    if digest is None:
        raise UnsupportedHashAlgorithmError(name)
    return digest


def normalize_algorithm_name(name: str) -> str:
    require_hash_algorithm(name)
    return name.strip().upper()


def compute_file_hash(path: Path | str, name: str) -> str:
    """Stream ``path`` through ``name`` and return the uppercase hex digest."""
    digest = require_hash_algorithm(name)
    with Path(path).open("rb") as fh:
        for chunk in iter(lambda: fh.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest().upper()
