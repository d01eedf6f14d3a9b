"""
Config file loading, validation, and normalization.

This module answers one question:
    "Which keys apply to which files, and who signs the markers?"

Responsibilities:
- Load the YAML config file
- Validate structure, version and key material
- Normalize extensions and resolve relative paths
- Expose a clean, read-only Python representation

This module does NOT:
- Walk the filesystem
- Encrypt or decrypt data
- Decide eligibility for individual files
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .config import (
    AES_KEY_SIZES,
    DEFAULT_WORKERS,
    SUPPORTED_CONFIG_VERSION,
    normalize_extension,
)
from .errors import ConfigError


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Manifest:
    version: int
    key_map: Mapping[str, bytes]
    identity: Optional[Path] = None
    workers: int = DEFAULT_WORKERS
    directories: List[Path] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Loading API
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: str | Path) -> "Manifest":
        """
        Load and validate a config file.

        Relative paths inside the file (identity, directories) are
        resolved against the directory holding the config file.

        Args:
            path: Path to the YAML config file

        Raises:
            ConfigError: if the config is missing or invalid

        Returns:
            Manifest
        """

        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        try:
            with path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}")

        if not isinstance(raw, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        return cls.from_dict(raw, base_dir=path.parent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> "Manifest":
        base_dir = base_dir or Path.cwd()

        version = data.get("version")
        if version != SUPPORTED_CONFIG_VERSION:
            raise ConfigError(f"Unsupported config version: {version}")

        identity = cls._parse_identity(data.get("identity"))
        return cls(
            version=version,
            key_map=parse_key_map(data.get("keys") or {}),
            identity=base_dir / identity if identity else None,
            workers=cls._parse_workers(data.get("workers", DEFAULT_WORKERS)),
            directories=[base_dir / d for d in cls._parse_directories(data.get("directories"))],
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_identity(value: Any) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ConfigError(f"'identity' must be a path string, got {value!r}")
        return value

    @staticmethod
    def _parse_directories(value: Any) -> List[str]:
        if value is None:
            return []
        if not isinstance(value, list) or not all(isinstance(d, str) and d for d in value):
            raise ConfigError(f"'directories' must be a list of paths, got {value!r}")
        return value

    @staticmethod
    def _parse_workers(value: Any) -> int:
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            raise ConfigError(f"'workers' must be a positive integer, got {value!r}")
        return value


def decode_key(ext: str, value: Any) -> bytes:
    """Decode a base64 AES key and check its length."""
    if not isinstance(value, str):
        raise ConfigError(f"Key for '{ext}' must be a base64 string")

    try:
        key = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise ConfigError(f"Key for '{ext}' is not valid base64")

    if len(key) not in AES_KEY_SIZES:
        raise ConfigError(
            f"Key for '{ext}' is {len(key)} bytes, expected one of {AES_KEY_SIZES}"
        )
    return key


def encode_key(key: bytes) -> str:
    return base64.b64encode(key).decode("ascii")


def parse_key_map(data: Dict[str, Any]) -> Mapping[str, bytes]:
    """
    Build the read-only extension -> key map.

    Extensions are stored without their leading dot, so "txt" and ".txt"
    name the same entry and may not both appear.
    """

    if not isinstance(data, dict):
        raise ConfigError("'keys' must be a mapping of extension to key")

    keys: Dict[str, bytes] = {}
    for raw_ext, value in data.items():
        ext = normalize_extension(str(raw_ext))
        if not ext:
            raise ConfigError(f"Invalid extension: {raw_ext!r}")
        if ext in keys:
            raise ConfigError(f"Duplicate key for extension '{ext}'")
        keys[ext] = decode_key(ext, value)

    return MappingProxyType(keys)
