"""
Utility functions for computing stable configuration hashes.
"""
import hashlib
import json
from typing import Any, Dict


def compute_config_hash(config: Any) -> str:
    """
    Compute a stable SHA256 hash of the configuration.

    The hash is computed over a normalized JSON representation with
    deterministic key ordering, so two configurations that differ only in
    the order their fields were assigned hash identically.

    Args:
        config: Configuration dictionary or pydantic Settings object

    Returns:
        SHA256 hash as hexadecimal string
    """
    if hasattr(config, "model_dump"):
        config_dict = config.model_dump()
    else:
        config_dict = config

    normalized = normalize_config_for_hash(config_dict)
    canonical_json = json.dumps(normalized, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()


def normalize_config_for_hash(config: Dict[str, Any]) -> Dict[str, Any]:
    """Drop ``None`` values and sort list-valued rule selections."""
    order_insensitive = {"enabled", "disabled"}

    def clean(obj: Any, key: str = "") -> Any:
        if isinstance(obj, dict):
            result = {}
            for k, v in obj.items():
                cleaned = clean(v, k)
                if cleaned is not None:
                    result[k] = cleaned
            return result
        if isinstance(obj, (list, tuple)):
            items = [clean(item) for item in obj]
            return sorted(items) if key in order_insensitive else items
        return obj

    return clean(config) or {}
