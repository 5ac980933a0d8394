# Copyright (c) 2026 Signer — MIT License

"""Credential hashing — memory-hard password storage and verification.

Primitive:
    Blake2b (RFC 7693)  — pure-Python compression hash, 1..64 byte digests.

Derivation:
    compat  — Argon2id-style memory-hard function matching the stored
              credentials of the existing application (pure Python).
    rfc9106 — standards-compliant Argon2id via argon2-cffi.

Façade:
    hash_password / verify_password / needs_rehash over the encoded form
    $argon2id$v=19$m=<blocks>,t=<passes>,p=<lanes>$<salt>$<digest>
"""

from .errors import CredhashError, InvalidParameter, MalformedCredential
from .blake2b import Blake2b, blake2b
from .argon2 import derive
from .rfc9106 import derive_rfc9106
from .encoding import (
    Credential, format_credential, parse_credential, constant_time_equal,
)
from .hasher import (
    HashConfig, DEFAULT_CONFIG, PasswordHasher,
    SCHEME_COMPAT, SCHEME_RFC9106,
    generate_salt, hash_password, verify_password, needs_rehash,
)

__version__ = "1.0.0"

__all__ = [
    # Errors
    "CredhashError", "InvalidParameter", "MalformedCredential",
    # Primitive
    "Blake2b", "blake2b",
    # Derivation
    "derive", "derive_rfc9106",
    # Encoding
    "Credential", "format_credential", "parse_credential",
    "constant_time_equal",
    # Façade
    "HashConfig", "DEFAULT_CONFIG", "PasswordHasher",
    "SCHEME_COMPAT", "SCHEME_RFC9106",
    "generate_salt", "hash_password", "verify_password", "needs_rehash",
]
