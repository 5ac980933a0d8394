# Copyright (c) 2026 Signer — MIT License

"""Standards-compliant Argon2id (RFC 9106) through argon2-cffi.

The compat engine in ``credhash.argon2`` keeps existing credentials
verifiable; this module is the target for new ones. Its strings use the
same layout but unpadded Base64, which is how ``verify_password`` tells
them apart.
"""

import logging

from argon2 import PasswordHasher, Type
from argon2.exceptions import HashingError, InvalidHashError, VerificationError
from argon2.low_level import hash_secret_raw

from .errors import InvalidParameter

logger = logging.getLogger(__name__)

MIN_SALT = 8
MIN_OUTPUT = 4


def _hasher(config):
    return PasswordHasher(
        time_cost=config.iterations,
        memory_cost=config.memory_blocks,
        parallelism=config.parallelism,
        hash_len=config.output_length,
        salt_len=config.salt_length,
        type=Type.ID,
    )


def derive_rfc9106(iterations, memory_blocks, parallelism, password, salt,
                   output_length):
    """Argon2id raw hash per RFC 9106 (no secret, no associated data).

    Same arguments as ``credhash.argon2.derive``. argon2-cffi runs
    ``parallelism`` lanes on as many threads; the result does not depend
    on scheduling.
    """
    if iterations < 1:
        raise InvalidParameter("iterations must be >= 1")
    if parallelism < 1:
        raise InvalidParameter("parallelism must be >= 1")
    if memory_blocks < 8 * parallelism:
        raise InvalidParameter("memory_blocks must be >= 8 * parallelism")
    if output_length < MIN_OUTPUT:
        raise InvalidParameter(f"output_length must be >= {MIN_OUTPUT}")
    if len(salt) < MIN_SALT:
        raise InvalidParameter(f"salt must be >= {MIN_SALT} bytes")
    if isinstance(password, str):
        password = password.encode("utf-8")

    logger.debug("rfc9106 derive: t=%d m=%d p=%d len=%d",
                 iterations, memory_blocks, parallelism, output_length)
    try:
        return hash_secret_raw(
            secret=bytes(password), salt=bytes(salt), time_cost=iterations,
            memory_cost=memory_blocks, parallelism=parallelism,
            hash_len=output_length, type=Type.ID,
        )
    except HashingError as exc:
        raise InvalidParameter(str(exc)) from exc


def hash_rfc9106(password, config, salt):
    """Encode ``password`` as a standard PHC Argon2id string."""
    try:
        return _hasher(config).hash(password, salt=salt)
    except HashingError as exc:
        raise InvalidParameter(str(exc)) from exc


def verify_rfc9106(password, encoded):
    # Parameters come from the string itself; the hasher's own are unused.
    try:
        return PasswordHasher().verify(encoded, password)
    except (VerificationError, InvalidHashError):
        return False


def needs_rehash_rfc9106(encoded, config):
    return _hasher(config).check_needs_rehash(encoded)
