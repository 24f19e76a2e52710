"""
Static remediation text keyed by remediation key.
"""
from functools import lru_cache
from importlib import resources
from typing import Dict, Tuple

import yaml

REMEDIATION_FILE = "remediation.yaml"


@lru_cache(maxsize=1)
def load_remediation_table() -> Dict[str, Tuple[str, ...]]:
    """Load the packaged remediation table; the result is shared and read-only."""
    text = resources.files(__package__).joinpath(REMEDIATION_FILE).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    table = {}
    for key, entry in data.items():
        entry = entry or {}
        parts = [entry.get("summary", "")] + list(entry.get("snippets") or [])
        table[key] = tuple(p.strip() for p in parts if p and p.strip())
    return table


def remediation_for(key: str) -> Tuple[str, ...]:
    return load_remediation_table().get(key, ())
