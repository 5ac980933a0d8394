# Copyright (c) 2026 Signer — MIT License

"""Password hashing façade: hash, verify, and rehash checks.

Callers use two operations:

    encoded = hash_password("correct horse")
    ok = verify_password("correct horse", encoded)

Parameters travel in a ``HashConfig`` value passed to each call, so
different parameter sets can be used side by side (tests run with tiny
memory sizes, production with the 64 MiB default).

Two schemes are supported:

    compat   — the pure-Python engine in ``credhash.argon2``; matches
               credentials already stored by the application. Default.
    rfc9106  — argon2-cffi, standards-compliant Argon2id. Not compatible
               with compat digests; migrate with ``needs_rehash`` on the
               next successful login.
"""

import logging
from dataclasses import dataclass

import nacl.utils

from . import rfc9106
from .argon2 import _check_int, derive
from .encoding import (
    Credential, constant_time_equal, format_credential, is_padded,
    parse_credential,
)
from .errors import InvalidParameter, MalformedCredential

logger = logging.getLogger(__name__)

SCHEME_COMPAT = "compat"
SCHEME_RFC9106 = "rfc9106"
SCHEMES = (SCHEME_COMPAT, SCHEME_RFC9106)


# ── Configuration ────────────────────────────────────────────────

@dataclass(frozen=True)
class HashConfig:
    """Derivation parameters for newly hashed passwords.

    Attributes:
        iterations: Passes over memory (time cost).
        memory_blocks: Memory in 1 KiB blocks (65536 = 64 MiB).
        parallelism: Number of lanes.
        output_length: Digest length in bytes.
        salt_length: Random salt length in bytes.
        scheme: ``"compat"`` or ``"rfc9106"``.
    """
    iterations: int = 3
    memory_blocks: int = 65536
    parallelism: int = 1
    output_length: int = 32
    salt_length: int = 16
    scheme: str = SCHEME_COMPAT

    def __post_init__(self):
        for name in ("iterations", "memory_blocks", "parallelism",
                     "output_length", "salt_length"):
            _check_int(getattr(self, name), name)
        if not isinstance(self.scheme, str) or self.scheme not in SCHEMES:
            raise InvalidParameter(f"unknown scheme {self.scheme!r}")
        if self.iterations < 1:
            raise InvalidParameter("iterations must be >= 1")
        if self.parallelism < 1:
            raise InvalidParameter("parallelism must be >= 1")
        if self.memory_blocks < 8 * self.parallelism:
            raise InvalidParameter("memory_blocks must be >= 8 * parallelism")
        if self.output_length < 1:
            raise InvalidParameter("output_length must be >= 1")
        if self.salt_length < 1:
            raise InvalidParameter("salt_length must be >= 1")
        if self.scheme == SCHEME_COMPAT and self.salt_length % 3 == 0:
            # The salt field must carry Base64 padding to be told apart
            # from an rfc9106 string.
            raise InvalidParameter(
                "compat salt_length must not be a multiple of 3")
        if self.scheme == SCHEME_RFC9106:
            if self.salt_length < rfc9106.MIN_SALT:
                raise InvalidParameter(
                    f"rfc9106 salt_length must be >= {rfc9106.MIN_SALT}")
            if self.output_length < rfc9106.MIN_OUTPUT:
                raise InvalidParameter(
                    f"rfc9106 output_length must be >= {rfc9106.MIN_OUTPUT}")

    @classmethod
    def from_credential(cls, cred, scheme=SCHEME_COMPAT):
        """Rebuild the parameters a parsed ``Credential`` was made with."""
        return cls(
            iterations=cred.iterations,
            memory_blocks=cred.memory_blocks,
            parallelism=cred.parallelism,
            output_length=len(cred.digest),
            salt_length=len(cred.salt),
            scheme=scheme,
        )


DEFAULT_CONFIG = HashConfig()


def generate_salt(length=DEFAULT_CONFIG.salt_length):
    """Fresh random salt from libsodium's CSPRNG (thread-safe)."""
    return nacl.utils.random(length)


# ── Hash / verify ────────────────────────────────────────────────

def hash_password(password, config=DEFAULT_CONFIG):
    """Hash ``password`` (str or bytes) into an encoded credential string.

    Raises:
        InvalidParameter: if ``config`` cannot be used for derivation.
    """
    salt = generate_salt(config.salt_length)
    if config.scheme == SCHEME_RFC9106:
        return rfc9106.hash_rfc9106(password, config, salt)

    digest = derive(config.iterations, config.memory_blocks,
                    config.parallelism, password, salt,
                    config.output_length)
    return format_credential(Credential(
        memory_blocks=config.memory_blocks,
        iterations=config.iterations,
        parallelism=config.parallelism,
        salt=salt,
        digest=digest,
    ))


def _verify_compat(password, encoded):
    cred = parse_credential(encoded)
    candidate = derive(cred.iterations, cred.memory_blocks,
                       cred.parallelism, password, cred.salt,
                       len(cred.digest))
    return constant_time_equal(candidate, cred.digest)


def _verify_rfc9106(password, encoded):
    return rfc9106.verify_rfc9106(password, encoded)


def _engines(encoded, config):
    if is_padded(encoded):
        return (_verify_compat,)
    # Unpadded strings come from argon2-cffi, or from compat salt and
    # digest lengths that are multiples of 3: try the configured scheme
    # first, then the other one.
    if config.scheme == SCHEME_RFC9106:
        return (_verify_rfc9106, _verify_compat)
    return (_verify_compat, _verify_rfc9106)


def verify_password(password, encoded, config=DEFAULT_CONFIG):
    """Check ``password`` against an encoded credential string.

    ``config`` only decides which engine tries an unpadded string first;
    derivation parameters always come from ``encoded``.

    Never raises. Malformed strings, bad parameters, mismatches and any
    unexpected internal error all give ``False``.
    """
    try:
        engines = _engines(encoded, config)
    except MalformedCredential:
        return False

    for engine in engines:
        try:
            if engine(password, encoded):
                return True
        except (MalformedCredential, InvalidParameter):
            continue
        except Exception as exc:
            logger.warning("credential verification failed: %s",
                           type(exc).__name__)
    return False


def needs_rehash(encoded, config=DEFAULT_CONFIG):
    """True when ``encoded`` was not produced with ``config``.

    A compat string always needs rehashing under an rfc9106 config and
    vice versa.

    Raises:
        MalformedCredential: if ``encoded`` cannot be parsed.
    """
    if not is_padded(encoded):
        if config.scheme != SCHEME_RFC9106:
            return True
        return rfc9106.needs_rehash_rfc9106(encoded, config)

    if config.scheme != SCHEME_COMPAT:
        return True
    cred = parse_credential(encoded)
    try:
        stored = HashConfig.from_credential(cred)
    except InvalidParameter:
        return True
    return stored != config


class PasswordHasher:
    """A ``HashConfig`` bound to the hash/verify/rehash operations."""

    def __init__(self, config=DEFAULT_CONFIG):
        self.config = config

    def hash(self, password):
        return hash_password(password, self.config)

    def verify(self, password, encoded):
        return verify_password(password, encoded, self.config)

    def needs_rehash(self, encoded):
        return needs_rehash(encoded, self.config)
