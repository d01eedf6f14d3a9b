"""
Global configuration and environment handling.

This module is responsible for:
- Defining global constants and defaults
- Loading the signing identity (path and passphrase may come from the environment)
- Normalizing extension names the same way everywhere

Nothing in this file should depend on:
- directory traversal
- the config file structure
- CLI arguments

If something here changes, the *entire tool* behavior changes.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Final, Optional

from .errors import ConfigError

if TYPE_CHECKING:
    from .primitives import SigningIdentity

# ---------------------------------------------------------------------------
# Tool / format versioning
# ---------------------------------------------------------------------------

SUPPORTED_CONFIG_VERSION: Final[int] = 1
TOOL_VERSION: Final[str] = "0.1.0"

# ---------------------------------------------------------------------------
# Default behavior
# ---------------------------------------------------------------------------

DEFAULT_CONFIG_PATH: Final[str] = "encryptdir.yml"
DEFAULT_WORKERS: Final[int] = min(32, (os.cpu_count() or 1) * 2)
DEFAULT_RSA_BITS: Final[int] = 2048

# In-flight temp files, one per original path
ENCRYPT_SUFFIX: Final[str] = ".enc"
DECRYPT_SUFFIX: Final[str] = ".dec"

# AES-GCM defaults
AES_NONCE_SIZE: Final[int] = 12
AES_TAG_SIZE: Final[int] = 16
AES_KEY_SIZES: Final[tuple] = (16, 24, 32)

# ---------------------------------------------------------------------------
# Environment variable names
# ---------------------------------------------------------------------------

ENV_IDENTITY: Final[str] = "ENCRYPTDIR_IDENTITY"
ENV_PASSPHRASE: Final[str] = "ENCRYPTDIR_PASSPHRASE"

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize_extension(ext: str) -> str:
    """
    Return an extension without its leading separator.

    "txt" and ".txt" both become "txt". Case is preserved, lookups are
    case-sensitive.
    """

    return ext[1:] if ext.startswith(".") else ext


def get_passphrase() -> Optional[str]:
    """Return the identity passphrase from the environment, if set."""
    return os.getenv(ENV_PASSPHRASE) or None


def load_signing_identity(path: str | Path | None = None) -> SigningIdentity:
    """
    Load the RSA signing identity.

    The explicit path wins, then the ENCRYPTDIR_IDENTITY environment
    variable. The PEM passphrase, if any, is read from ENCRYPTDIR_PASSPHRASE.

    Raises:
        ConfigError: if no path is available or the key cannot be read

    Returns:
        SigningIdentity
    """

    from .primitives import SigningIdentity

    raw = path or os.getenv(ENV_IDENTITY)
    if not raw:
        raise ConfigError(
            f"No signing identity configured (set 'identity' in the config "
            f"file or the {ENV_IDENTITY} environment variable)"
        )

    identity_path = Path(raw)
    try:
        return SigningIdentity.load(identity_path, passphrase=get_passphrase())
    except FileNotFoundError:
        raise ConfigError(f"Signing identity not found: {identity_path}")
    except (ValueError, IndexError, TypeError) as e:
        raise ConfigError(f"Invalid signing identity {identity_path}: {e}")
