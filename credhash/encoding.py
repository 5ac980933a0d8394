# Copyright (c) 2026 Signer — MIT License

"""Encoded credential strings.

Format (six ``$``-delimited fields, the first one empty):

    $argon2id$v=19$m=<memory_blocks>,t=<iterations>,p=<parallelism>$<salt>$<digest>

Salt and digest are standard Base64 with padding. Strings written by
argon2-cffi share the layout but omit the padding; ``is_padded`` tells
the two apart.
"""

import base64
import binascii
import re
from dataclasses import dataclass

from .errors import MalformedCredential

ALGORITHM = "argon2id"
VERSION = 19

_PARAMS_RE = re.compile(r"m=([0-9]+),t=([0-9]+),p=([0-9]+)")
_VERSION_RE = re.compile(r"v=([0-9]+)")


@dataclass(frozen=True)
class Credential:
    memory_blocks: int
    iterations: int
    parallelism: int
    salt: bytes
    digest: bytes
    version: int = VERSION
    algorithm: str = ALGORITHM


def _b64encode(raw):
    return base64.b64encode(raw).decode("ascii")


def _b64decode(text, padded):
    if not padded:
        text += "=" * (-len(text) % 4)
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise MalformedCredential(f"invalid base64: {exc}") from None


def format_credential(cred):
    return "$%s$v=%d$m=%d,t=%d,p=%d$%s$%s" % (
        cred.algorithm,
        cred.version,
        cred.memory_blocks,
        cred.iterations,
        cred.parallelism,
        _b64encode(cred.salt),
        _b64encode(cred.digest),
    )


def _split(encoded):
    if not isinstance(encoded, str):
        raise MalformedCredential("credential must be a str")
    parts = encoded.split("$")
    if len(parts) != 6 or parts[0] != "":
        raise MalformedCredential(
            f"expected 6 '$'-delimited fields, got {len(parts)}")
    if parts[1] != ALGORITHM:
        raise MalformedCredential(f"unsupported algorithm {parts[1]!r}")
    return parts


def is_padded(encoded):
    """True when salt or digest carries Base64 padding.

    Padding means a compat string: standard PHC strings never pad. The
    reverse does not hold, since a compat salt or digest whose length is
    a multiple of 3 encodes without ``=``.
    """
    parts = _split(encoded)
    return parts[4].endswith("=") or parts[5].endswith("=")


def parse_credential(encoded, padded=True):
    """Parse an encoded credential string.

    With ``padded=False`` the salt and digest are read as unpadded
    Base64, as argon2-cffi writes them.

    Raises:
        MalformedCredential: on any structural or decoding error.
    """
    parts = _split(encoded)

    m = _VERSION_RE.fullmatch(parts[2])
    if m is None:
        raise MalformedCredential(f"bad version field {parts[2]!r}")
    version = int(m.group(1))

    m = _PARAMS_RE.fullmatch(parts[3])
    if m is None:
        raise MalformedCredential(f"bad parameter field {parts[3]!r}")
    memory_blocks, iterations, parallelism = (int(g) for g in m.groups())

    salt = _b64decode(parts[4], padded)
    digest = _b64decode(parts[5], padded)
    if not salt or not digest:
        raise MalformedCredential("empty salt or digest")

    return Credential(
        memory_blocks=memory_blocks,
        iterations=iterations,
        parallelism=parallelism,
        salt=salt,
        digest=digest,
        version=version,
    )


def constant_time_equal(a, b):
    """Compare two byte strings without an early exit on content.

    XORs every pair of bytes into one accumulator. A length difference
    is folded into the accumulator as well, so the loop always runs over
    the longer input.
    """
    a = bytes(a)
    b = bytes(b)
    diff = len(a) ^ len(b)
    n = max(len(a), len(b))
    a = a.ljust(n, b"\x00")
    b = b.ljust(n, b"\x00")
    for x, y in zip(a, b):
        diff |= x ^ y
    return diff == 0
