from __future__ import annotations

import hashlib
import json
from pathlib import Path

from mcpm.regions.records import RegionSet

FILE_HASH_LENGTH = 16


def file_hash(path: str | Path) -> str:
    return hashlib.sha256(Path(path).read_bytes()).hexdigest()[:FILE_HASH_LENGTH]


def region_set_hash(regions: RegionSet) -> str:
    ordered = sorted(regions.to_list(), key=lambda row: (row["world"], row["id"]))
    encoded = json.dumps(ordered, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()
