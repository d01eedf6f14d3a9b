"""
encryptdir

Encrypts and decrypts files in place, by extension, across one or more
directory trees. Encrypted files carry a signed marker so that repeated
runs never double-encrypt or double-decrypt anything.
"""

__version__ = "0.1.0"

from .dispatcher import RootDispatcher, RunReport
from .errors import AggregateError, ConfigError, EncryptDirError, TransformError
from .manifest import Manifest
from .primitives import SigningIdentity
from .rules import KeyRules, Eligibility
from .transformer import Direction, Outcome, Transformer

__all__ = [
    "RootDispatcher",
    "RunReport",
    "AggregateError",
    "ConfigError",
    "EncryptDirError",
    "TransformError",
    "Manifest",
    "SigningIdentity",
    "KeyRules",
    "Eligibility",
    "Direction",
    "Outcome",
    "Transformer",
]
