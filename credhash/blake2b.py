# Copyright (c) 2026 Signer — MIT License

"""Blake2b (RFC 7693) — pure Python, streaming.

Unkeyed Blake2b with a 1..64 byte digest. Output is identical to
``hashlib.blake2b(data, digest_size=n)`` and to libsodium's
``crypto_generichash``; the memory-hard derivation in this package is
built on top of it.

Usage:
    h = Blake2b(64)
    h.update_int(len(pw))
    h.update(pw)
    tag = h.digest()
"""

import struct

from .errors import CredhashError, InvalidParameter

# ── Constants ────────────────────────────────────────────────────

BLOCK_BYTES = 128
MAX_DIGEST = 64
ROUNDS = 12
MASK64 = (1 << 64) - 1

_IV = (
    0x6a09e667f3bcc908, 0xbb67ae8584caa73b,
    0x3c6ef372fe94f82b, 0xa54ff53a5f1d36f1,
    0x510e527fade682d1, 0x9b05688c2b3e6c1f,
    0x1f83d9abfb41bd6b, 0x5be0cd19137e2179,
)

_SIGMA = (
    (0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 14, 15),
    (14, 10, 4, 8, 9, 15, 13, 6, 1, 12, 0, 2, 11, 7, 5, 3),
    (11, 8, 12, 0, 5, 2, 15, 13, 10, 14, 3, 6, 7, 1, 9, 4),
    (7, 9, 3, 1, 13, 12, 11, 14, 2, 6, 5, 10, 4, 0, 15, 8),
    (9, 0, 5, 7, 2, 4, 10, 15, 14, 1, 11, 12, 6, 8, 3, 13),
    (2, 12, 6, 10, 0, 11, 8, 3, 4, 13, 7, 5, 15, 14, 1, 9),
    (12, 5, 1, 15, 14, 13, 4, 10, 0, 7, 6, 3, 9, 2, 8, 11),
    (13, 11, 7, 14, 12, 1, 3, 9, 5, 0, 15, 4, 8, 6, 2, 10),
    (6, 15, 14, 9, 11, 3, 0, 8, 12, 2, 13, 7, 1, 4, 10, 5),
    (10, 2, 8, 4, 7, 6, 1, 5, 15, 11, 9, 14, 3, 12, 13, 0),
)

_MSG = struct.Struct("<16Q")
_LE32 = struct.Struct("<I")


# ── Round function ───────────────────────────────────────────────

def _g(v, a, b, c, d, x, y):
    v[a] = (v[a] + v[b] + x) & MASK64
    t = v[d] ^ v[a]
    v[d] = ((t >> 32) | (t << 32)) & MASK64
    v[c] = (v[c] + v[d]) & MASK64
    t = v[b] ^ v[c]
    v[b] = ((t >> 24) | (t << 40)) & MASK64
    v[a] = (v[a] + v[b] + y) & MASK64
    t = v[d] ^ v[a]
    v[d] = ((t >> 16) | (t << 48)) & MASK64
    v[c] = (v[c] + v[d]) & MASK64
    t = v[b] ^ v[c]
    v[b] = ((t >> 63) | (t << 1)) & MASK64


def _compress(h, block, t, last):
    """Mix one 128-byte block into state ``h`` (in place).

    ``t`` is the 128-bit byte counter; its low and high words go into
    v[12] and v[13]. The final block inverts v[14].
    """
    m = _MSG.unpack(block)
    v = list(h) + list(_IV)
    v[12] ^= t & MASK64
    v[13] ^= (t >> 64) & MASK64
    if last:
        v[14] ^= MASK64

    for r in range(ROUNDS):
        s = _SIGMA[r % 10]
        _g(v, 0, 4, 8, 12, m[s[0]], m[s[1]])
        _g(v, 1, 5, 9, 13, m[s[2]], m[s[3]])
        _g(v, 2, 6, 10, 14, m[s[4]], m[s[5]])
        _g(v, 3, 7, 11, 15, m[s[6]], m[s[7]])
        _g(v, 0, 5, 10, 15, m[s[8]], m[s[9]])
        _g(v, 1, 6, 11, 12, m[s[10]], m[s[11]])
        _g(v, 2, 7, 8, 13, m[s[12]], m[s[13]])
        _g(v, 3, 4, 9, 14, m[s[14]], m[s[15]])

    for i in range(8):
        h[i] ^= v[i] ^ v[8 + i]


# ── Streaming hasher ─────────────────────────────────────────────

class Blake2b:
    """Incremental Blake2b with a fixed digest length.

    A full buffer is only compressed once more input arrives, so the last
    block of the message is always the one carrying the final-block flag.
    """

    def __init__(self, out_len=MAX_DIGEST):
        if isinstance(out_len, bool) or not isinstance(out_len, int):
            raise InvalidParameter("out_len must be an int")
        if out_len < 1 or out_len > MAX_DIGEST:
            raise InvalidParameter(
                f"out_len must be in [1, {MAX_DIGEST}], got {out_len}")
        self.digest_size = out_len
        self._h = list(_IV)
        self._h[0] ^= 0x01010000 | out_len
        self._buf = bytearray()
        self._t = 0
        self._done = False

    def update(self, data):
        if self._done:
            raise CredhashError("hash already finalized")
        data = memoryview(data).cast("B")
        pos = 0
        n = len(data)
        while pos < n:
            if len(self._buf) == BLOCK_BYTES:
                self._t += BLOCK_BYTES
                _compress(self._h, self._buf, self._t, False)
                self._buf.clear()
            take = min(BLOCK_BYTES - len(self._buf), n - pos)
            self._buf += data[pos:pos + take]
            pos += take
        return self

    def update_int(self, value):
        """Absorb ``value`` as a 4-byte little-endian word."""
        return self.update(_LE32.pack(value & 0xFFFFFFFF))

    def digest(self):
        if self._done:
            raise CredhashError("hash already finalized")
        self._done = True
        self._t += len(self._buf)
        block = bytes(self._buf) + bytes(BLOCK_BYTES - len(self._buf))
        _compress(self._h, block, self._t, True)
        self._buf.clear()
        out = struct.pack("<8Q", *self._h)
        return out[:self.digest_size]

    def hexdigest(self):
        return self.digest().hex()


def blake2b(data, out_len=MAX_DIGEST):
    """One-shot Blake2b of ``data`` with an ``out_len`` byte digest."""
    return Blake2b(out_len).update(data).digest()
