# Copyright (c) 2026 Signer — MIT License

"""Argon2id-style memory-hard derivation — pure Python, deterministic.

This is the "compat" engine: it reproduces, bit for bit, the digests
already stored by the application's existing credential strings. Its
seed hash, lane and slice layout and final XOR reduction follow RFC 9106,
but three pieces are simplified:

  * blocks are expanded by chained Blake2b-64 calls instead of H',
  * reference blocks are addressed straight from the predecessor's first
    word instead of through the RFC index window,
  * the block mixing step is a per-word LCG diffusion instead of the
    BlaMka permutation.

For standards-compliant hashes see ``credhash.rfc9106``.
"""

import logging
import struct

from nacl._sodium import ffi as _ffi, lib as _lib

from .blake2b import Blake2b, MAX_DIGEST
from .errors import InvalidParameter

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────

BLOCK_BYTES = 1024
BLOCK_WORDS = 128     # 1024 / 8
SYNC_POINTS = 4
ARGON2_VERSION = 0x13
ARGON2_ID = 2
MASK32 = 0xFFFFFFFF
MASK64 = (1 << 64) - 1

_LCG_MUL = 0x5DEECE66D
_LCG_INC = 0xB
_MASK48 = (1 << 48) - 1

_BLOCK = struct.Struct("<%dQ" % BLOCK_WORDS)
_ZERO_BLOCK = (0,) * BLOCK_WORDS

# ── Secure memory (libsodium-backed) ─────────────────────────────

def _secure_zero(buf):
    """Securely wipe a mutable buffer (bytearray / memoryview)."""
    if not isinstance(buf, (bytearray, memoryview)):
        return
    n = len(buf)
    if n == 0:
        return
    _lib.sodium_memzero(_ffi.from_buffer(buf), n)


def _le32(n):
    return struct.pack("<I", n & MASK32)


def _as_bytes(value, name):
    if isinstance(value, str):
        return bytearray(value.encode("utf-8"))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytearray(value)
    raise InvalidParameter(f"{name} must be str or bytes")


# ── Block expansion ──────────────────────────────────────────────

def _expand(data, out_len, marker=None):
    """Stretch ``data`` to ``out_len`` bytes with chained Blake2b-64.

    Each link hashes ``LE32(marker) || previous`` and contributes 64
    bytes; the result is truncated to ``out_len``. ``marker`` defaults
    to ``out_len``.
    """
    if marker is None:
        marker = out_len
    prefix = _le32(marker)
    parts = []
    cur = bytes(data)
    produced = 0
    while produced < out_len:
        cur = Blake2b(MAX_DIGEST).update(prefix).update(cur).digest()
        parts.append(cur)
        produced += MAX_DIGEST
    return b"".join(parts)[:out_len]


# ── Block mixing ─────────────────────────────────────────────────

def _mix_blocks(prev, ref):
    """Combine two blocks word by word into a new block.

    out[i] = v ^ rotr64(v, 32) where v = LCG48(prev[i] ^ ref[i]). The
    additive constant keeps equal inputs from collapsing to zero.
    """
    out = [((a ^ b) * _LCG_MUL + _LCG_INC) & _MASK48
           for a, b in zip(prev, ref)]
    return [v ^ (v >> 32) ^ ((v & MASK32) << 32) for v in out]


def _reference(word, lanes, lane_len):
    """Map a predecessor's first word to (ref_lane, ref_index)."""
    ref_lane = (word >> 32) % lanes
    ref_index = (word & MASK32) % (lane_len - 1)
    return ref_lane, ref_index


# ── Derivation phases ────────────────────────────────────────────

def _initial_hash(iterations, memory_blocks, parallelism, password, salt,
                  output_length):
    h = Blake2b(MAX_DIGEST)
    h.update_int(parallelism)
    h.update_int(output_length)
    h.update_int(memory_blocks)
    h.update_int(iterations)
    h.update_int(ARGON2_VERSION)
    h.update_int(ARGON2_ID)
    h.update_int(len(password))
    h.update(password)
    h.update_int(len(salt))
    h.update(salt)
    # Secret and associated data, always empty
    h.update_int(0)
    h.update_int(0)
    return h.digest()


def _prime_lanes(memory, h0, lanes, lane_len):
    for lane in range(lanes):
        for idx in (0, 1):
            raw = _expand(h0 + _le32(idx) + _le32(lane), BLOCK_BYTES)
            memory[lane * lane_len + idx] = list(_BLOCK.unpack(raw))


def _fill_segment(memory, slice_, lane, lanes, lane_len, seg_len):
    start = 2 if slice_ == 0 else slice_ * seg_len
    end = (slice_ + 1) * seg_len
    lane_start = lane * lane_len

    for index in range(start, end):
        curr = lane_start + index
        prev = lane_start + lane_len - 1 if index == 0 else curr - 1

        ref_lane, ref_index = _reference(memory[prev][0], lanes, lane_len)
        ref = ref_lane * lane_len + ref_index
        if ref == curr:
            ref = prev

        memory[curr] = _mix_blocks(memory[prev], memory[ref])


def _finalize(memory, lanes, lane_len, output_length):
    acc = [0] * BLOCK_WORDS
    for lane in range(lanes):
        last = memory[lane * lane_len + lane_len - 1]
        for i in range(BLOCK_WORDS):
            acc[i] ^= last[i]
    block = _BLOCK.pack(*acc)

    if output_length <= MAX_DIGEST:
        h = Blake2b(output_length)
        h.update_int(output_length)
        h.update(block)
        return h.digest()
    return _expand(block, output_length)


# ── Main derivation ──────────────────────────────────────────────

def _check_int(value, name):
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParameter(f"{name} must be an int")
    if value > MASK32:
        raise InvalidParameter(f"{name} must fit in 32 bits")


def derive(iterations, memory_blocks, parallelism, password, salt,
           output_length):
    """Memory-hard key derivation (compat engine).

    Args:
        iterations: Number of passes over memory (>= 1).
        memory_blocks: Number of 1 KiB blocks (>= 8 * parallelism).
        parallelism: Number of lanes (>= 1).
        password: Secret as str (UTF-8 encoded) or bytes.
        salt: Salt bytes.
        output_length: Digest length in bytes (>= 1).

    Memory is rounded down to whole segments: each lane gets
    ``memory_blocks // (4 * parallelism) * 4`` blocks. For lane lengths
    that are already a multiple of 4 (every stored credential, including
    the 65536-block default) this changes nothing. For other sizes the
    unrounded layout would leave each lane's last block unwritten and
    the digest independent of the password, so those digests differ from
    ones computed without rounding.

    Returns:
        ``output_length`` bytes. Identical inputs always give identical
        output.

    Raises:
        InvalidParameter: if any parameter is out of range.
    """
    for name, value in (("iterations", iterations),
                        ("memory_blocks", memory_blocks),
                        ("parallelism", parallelism),
                        ("output_length", output_length)):
        _check_int(value, name)
    if iterations < 1:
        raise InvalidParameter("iterations must be >= 1")
    if parallelism < 1:
        raise InvalidParameter("parallelism must be >= 1")
    if memory_blocks < 8 * parallelism:
        raise InvalidParameter("memory_blocks must be >= 8 * parallelism")
    if output_length < 1:
        raise InvalidParameter("output_length must be >= 1")
    if isinstance(salt, str):
        raise InvalidParameter("salt must be bytes")
    salt = _as_bytes(salt, "salt")
    pwd = _as_bytes(password, "password")

    logger.debug("argon2id derive: t=%d m=%d p=%d len=%d",
                 iterations, memory_blocks, parallelism, output_length)

    try:
        h0 = _initial_hash(iterations, memory_blocks, parallelism, pwd,
                           salt, output_length)
    finally:
        _secure_zero(pwd)

    # Whole segments only, so the last block of every lane gets written.
    seg_len = memory_blocks // (parallelism * SYNC_POINTS)
    lane_len = seg_len * SYNC_POINTS
    memory = [_ZERO_BLOCK] * (lane_len * parallelism)

    _prime_lanes(memory, h0, parallelism, lane_len)

    # Lanes run in order: a reference may land in any lane, so a lane
    # filled later in the slice can depend on one filled earlier.
    for _pass in range(iterations):
        for slice_ in range(SYNC_POINTS):
            for lane in range(parallelism):
                _fill_segment(memory, slice_, lane, parallelism,
                              lane_len, seg_len)

    result = _finalize(memory, parallelism, lane_len, output_length)
    del memory[:]
    return result
