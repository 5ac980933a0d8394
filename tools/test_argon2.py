# Copyright (c) 2026 Signer — MIT License

"""Test suite for the compat memory-hard derivation.

Tests:
    - Building blocks (seed hash, block expansion, mixing, addressing)
    - Agreement with an independent hashlib-based model of the algorithm
    - Known-answer digests, one and several lanes
    - Determinism, including concurrent callers
    - Parameter validation
    - Reference parameters (64 MiB), only with CREDHASH_SLOW_TESTS=1

Run from the repository root:
    python -m tools.test_argon2
"""

import hashlib
import os
import struct
import sys
import unittest
from concurrent.futures import ThreadPoolExecutor

# Ensure project root is on the import path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from credhash.argon2 import (
    BLOCK_WORDS,
    _expand, _initial_hash, _mix_blocks, _reference,
    derive,
)
from credhash.errors import InvalidParameter

_SALT = bytes(range(16))
_SLOW = os.environ.get("CREDHASH_SLOW_TESTS") == "1"

# Digests of the stored-credential algorithm computed outside this package,
# salt = bytes(range(salt_len)):
#   (iterations, memory_blocks, parallelism, password, salt_len, out_len)
_KNOWN_ANSWERS = [
    ((1, 8, 1, b"pw", 16, 32),
     "768bac851674dae699106f8f410a0c08ee20a2af489d07d85108ba243f145c39"),
    ((3, 32, 1, b"correct horse", 16, 32),
     "b2950d3456b4acb4011bc128c9449d397d42b4fa08164c392549a6d083591da5"),
    ((2, 64, 4, b"lanes", 16, 16),
     "23db0c271bd1e98d33f2f454860f3faa"),
    ((2, 48, 2, b"password", 16, 64),
     "8a6f863e87fcf74b6020571309812ef38bc130983f9b6a1f2445b4b93c000b44"
     "ba49592cbc3ea14c740e34ea7c44fab08c74466bffc536ba7d50b5c222f33906"),
    ((1, 16, 1, b"pw", 18, 30),
     "0b26a728de172ce881bc4441e874f0fcb7637538ea10bcc2a2b898395489"),
]

_REFERENCE_DIGEST = (
    "04cca4d40b1d4593054fb3b94ef0b4e934940f3e24f70959680c2cddf912bc5f")


def _le(n):
    return struct.pack("<I", n)


def _model_derive(t, m, p, pwd, salt, tag_len):
    """Straight-line model of the compat derivation on top of hashlib."""
    h0 = hashlib.blake2b(
        _le(p) + _le(tag_len) + _le(m) + _le(t) + _le(0x13) + _le(2) +
        _le(len(pwd)) + pwd + _le(len(salt)) + salt + _le(0) + _le(0)
    ).digest()

    def first_block(seed):
        out = b""
        cur = seed
        for _ in range(16):
            cur = hashlib.blake2b(_le(1024) + cur).digest()
            out += cur
        return list(struct.unpack("<128Q", out))

    seg = m // (4 * p)
    lane_len = seg * 4
    mem = [[0] * 128 for _ in range(lane_len * p)]
    for lane in range(p):
        mem[lane * lane_len] = first_block(h0 + _le(0) + _le(lane))
        mem[lane * lane_len + 1] = first_block(h0 + _le(1) + _le(lane))

    for _ in range(t):
        for s in range(4):
            for lane in range(p):
                start = 2 if s == 0 else s * seg
                for idx in range(start, (s + 1) * seg):
                    cur = lane * lane_len + idx
                    prev = lane * lane_len + lane_len - 1 if idx == 0 else cur - 1
                    w = mem[prev][0]
                    ref = ((w >> 32) % p) * lane_len + (w & 0xFFFFFFFF) % (lane_len - 1)
                    if ref == cur:
                        ref = prev
                    new = []
                    for a, b in zip(mem[prev], mem[ref]):
                        v = ((a ^ b) * 0x5DEECE66D + 0xB) % (1 << 48)
                        rot = ((v >> 32) | (v << 32)) % (1 << 64)
                        new.append(v ^ rot)
                    mem[cur] = new

    acc = [0] * 128
    for lane in range(p):
        last = mem[lane * lane_len + lane_len - 1]
        for i in range(128):
            acc[i] ^= last[i]
    return hashlib.blake2b(_le(tag_len) + struct.pack("<128Q", *acc),
                           digest_size=tag_len).digest()


class TestBuildingBlocks(unittest.TestCase):

    def test_initial_hash_layout(self):
        pwd = b"password"
        expected = hashlib.blake2b(
            _le(2) + _le(32) + _le(64) + _le(3) + _le(0x13) + _le(2) +
            _le(8) + pwd + _le(16) + _SALT + _le(0) + _le(0)
        ).digest()
        self.assertEqual(_initial_hash(3, 64, 2, pwd, _SALT, 32), expected)

    def test_expand_chains_blake2b(self):
        seed = b"\x01" * 72
        out = _expand(seed, 1024)
        self.assertEqual(len(out), 1024)
        first = hashlib.blake2b(_le(1024) + seed).digest()
        second = hashlib.blake2b(_le(1024) + first).digest()
        self.assertEqual(out[:64], first)
        self.assertEqual(out[64:128], second)

    def test_expand_truncates(self):
        out = _expand(b"abc", 100)
        self.assertEqual(len(out), 100)
        self.assertEqual(out[:64], hashlib.blake2b(_le(100) + b"abc").digest())

    def test_mix_equal_inputs_not_zero(self):
        block = list(range(BLOCK_WORDS))
        out = _mix_blocks(block, block)
        self.assertEqual(out, [0x0000000B0000000B] * BLOCK_WORDS)

    def test_mix_single_word(self):
        prev = [1] + [0] * (BLOCK_WORDS - 1)
        ref = [0] * BLOCK_WORDS
        out = _mix_blocks(prev, ref)
        self.assertEqual(out[0], 0xDEECE67DDEECE67D)
        self.assertEqual(out[1], 0x0000000B0000000B)

    def test_mix_is_not_identity(self):
        prev = [0xFFFFFFFFFFFFFFFF] * BLOCK_WORDS
        ref = [0] * BLOCK_WORDS
        self.assertNotEqual(_mix_blocks(prev, ref), prev)

    def test_mix_word_range(self):
        prev = [0xFFFFFFFFFFFFFFFF - i for i in range(BLOCK_WORDS)]
        ref = [i * 0x0123456789ABCDEF & 0xFFFFFFFFFFFFFFFF
               for i in range(BLOCK_WORDS)]
        for w in _mix_blocks(prev, ref):
            self.assertTrue(0 <= w < 1 << 64)

    def test_reference_addressing(self):
        # High word picks the lane, low word the index.
        word = (3 << 32) | 10
        self.assertEqual(_reference(word, 2, 8), (1, 3))
        self.assertEqual(_reference(word, 1, 8), (0, 3))


class TestDeriveModel(unittest.TestCase):

    def test_single_lane(self):
        self.assertEqual(
            derive(1, 8, 1, b"pw", _SALT, 32),
            _model_derive(1, 8, 1, b"pw", _SALT, 32))

    def test_multi_pass(self):
        self.assertEqual(
            derive(3, 32, 1, b"correct horse", _SALT, 32),
            _model_derive(3, 32, 1, b"correct horse", _SALT, 32))

    def test_multi_lane(self):
        self.assertEqual(
            derive(2, 64, 4, b"lanes", _SALT, 16),
            _model_derive(2, 64, 4, b"lanes", _SALT, 16))

    def test_uneven_lane_length(self):
        # 42 blocks over 2 lanes round down to 20 per lane, slices of 5
        self.assertEqual(
            derive(2, 42, 2, b"odd", _SALT, 64),
            _model_derive(2, 42, 2, b"odd", _SALT, 64))
        self.assertNotEqual(derive(2, 42, 2, b"odd", _SALT, 64),
                            derive(2, 42, 2, b"even", _SALT, 64))


class TestKnownAnswers(unittest.TestCase):

    def test_known_digests(self):
        for (t, m, p, pw, salt_len, out_len), expected in _KNOWN_ANSWERS:
            with self.subTest(t=t, m=m, p=p, out_len=out_len):
                digest = derive(t, m, p, pw, bytes(range(salt_len)), out_len)
                self.assertEqual(digest.hex(), expected)

    def test_model_agrees(self):
        for (t, m, p, pw, salt_len, out_len), expected in _KNOWN_ANSWERS:
            with self.subTest(t=t, m=m, p=p, out_len=out_len):
                digest = _model_derive(t, m, p, pw, bytes(range(salt_len)),
                                       out_len)
                self.assertEqual(digest.hex(), expected)


class TestDerive(unittest.TestCase):

    def test_deterministic(self):
        a = derive(2, 32, 2, b"password", _SALT, 32)
        b = derive(2, 32, 2, b"password", _SALT, 32)
        self.assertEqual(a, b)
        self.assertEqual(len(a), 32)

    def test_str_password_is_utf8(self):
        self.assertEqual(derive(1, 16, 1, "pässwörd", _SALT, 32),
                         derive(1, 16, 1, "pässwörd".encode("utf-8"), _SALT, 32))

    def test_inputs_change_output(self):
        base = derive(1, 16, 1, b"password", _SALT, 32)
        variants = [
            derive(2, 16, 1, b"password", _SALT, 32),
            derive(1, 24, 1, b"password", _SALT, 32),
            derive(1, 16, 2, b"password", _SALT, 32),
            derive(1, 16, 1, b"passwore", _SALT, 32),
            derive(1, 16, 1, b"password", _SALT[::-1], 32),
            derive(1, 16, 1, b"password", _SALT, 33)[:32],
        ]
        for i, v in enumerate(variants):
            with self.subTest(variant=i):
                self.assertNotEqual(v, base)

    def test_output_lengths(self):
        for n in (1, 4, 32, 64, 65, 100, 256):
            with self.subTest(n=n):
                self.assertEqual(len(derive(1, 8, 1, b"pw", _SALT, n)), n)

    def test_empty_password_and_salt(self):
        self.assertEqual(len(derive(1, 8, 1, b"", b"", 32)), 32)

    def test_concurrent_callers(self):
        args = (2, 32, 2, b"shared", _SALT, 32)
        expected = derive(*args)
        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(lambda _: derive(*args), range(8)))
        self.assertTrue(all(r == expected for r in results))

    def test_does_not_log_secrets(self):
        with self.assertLogs("credhash.argon2", level="DEBUG") as logs:
            derive(1, 8, 1, b"hunter2", _SALT, 32)
        text = "\n".join(logs.output)
        self.assertIn("t=1 m=8 p=1", text)
        self.assertNotIn("hunter2", text)


class TestDeriveValidation(unittest.TestCase):

    def test_zero_iterations(self):
        with self.assertRaises(InvalidParameter):
            derive(0, 64, 1, b"pw", _SALT, 32)

    def test_zero_parallelism(self):
        with self.assertRaises(InvalidParameter):
            derive(1, 64, 0, b"pw", _SALT, 32)

    def test_memory_below_minimum(self):
        with self.assertRaises(InvalidParameter):
            derive(1, 7, 1, b"pw", _SALT, 32)
        with self.assertRaises(InvalidParameter):
            derive(1, 31, 4, b"pw", _SALT, 32)

    def test_zero_output_length(self):
        with self.assertRaises(InvalidParameter):
            derive(1, 8, 1, b"pw", _SALT, 0)

    def test_bad_types(self):
        with self.assertRaises(InvalidParameter):
            derive(1, 8, 1, 12345, _SALT, 32)
        with self.assertRaises(InvalidParameter):
            derive(1, 8, 1, b"pw", "salt-as-text", 32)
        with self.assertRaises(InvalidParameter):
            derive(1.5, 8, 1, b"pw", _SALT, 32)

    def test_oversized_parameter(self):
        with self.assertRaises(InvalidParameter):
            derive(1 << 32, 8, 1, b"pw", _SALT, 32)


@unittest.skipUnless(_SLOW, "set CREDHASH_SLOW_TESTS=1 for 64 MiB runs")
class TestReferenceParameters(unittest.TestCase):

    def test_reference_scenario_digest(self):
        a = derive(3, 65536, 1, b"correct horse", _SALT, 32)
        b = derive(3, 65536, 1, b"correct horse", _SALT, 32)
        self.assertEqual(a, b)
        self.assertEqual(a.hex(), _REFERENCE_DIGEST)


if __name__ == "__main__":
    unittest.main(verbosity=2)
