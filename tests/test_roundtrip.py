"""Randomized round-trip properties for both wire forms.

Generates seeded random value trees and checks, for each:

  - parse_binary(format_binary(v)) equals v
  - parse_xml(format_xml(v)) equals v, compact and pretty-printed
  - the two decoded trees equal each other
  - parse() picks the right decoder for either encoding

Equality is llsd_equal (variant- and bit-exact).  Strings are generated
without leading/trailing whitespace, since XML trims element text.

Environment:
    LLSDWIRE_SEED    (default 4242)
    LLSDWIRE_TRIALS  (default 300)
"""

from __future__ import annotations

import math
import os
import random
import struct
import sys
import unittest
import uuid
from typing import Any

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from llsdwire import (
    CANONICAL_NAN,
    URI,
    Date,
    format_binary,
    format_binary_body,
    format_pretty_xml,
    format_xml,
    llsd_equal,
    parse,
    parse_binary,
    parse_xml,
)

SEED = int(os.environ.get("LLSDWIRE_SEED", "4242"))
TRIALS = int(os.environ.get("LLSDWIRE_TRIALS", "300"))
MAX_GEN_DEPTH = 5
MAX_ITEMS = 6
MAX_STR = 24


def rand_text(rng: random.Random) -> str:
    # Scalars excluding surrogates and XML-illegal control characters.
    out = []
    for _ in range(rng.randint(0, MAX_STR)):
        r = rng.random()
        if r < 0.70:
            out.append(chr(rng.randint(0x20, 0x7E)))
        elif r < 0.80:
            out.append(rng.choice("\t\n\r"))
        elif r < 0.90:
            out.append(chr(rng.randint(0xA0, 0xD7FF)))
        else:
            out.append(chr(rng.randint(0x10000, 0x10FFFF)))
    return "".join(out).strip()


def rand_real(rng: random.Random) -> float:
    r = rng.random()
    if r < 0.05:
        return CANONICAL_NAN
    if r < 0.5:
        return rng.uniform(-1e6, 1e6)
    while True:
        x = struct.unpack(">d", struct.pack(">Q", rng.getrandbits(64)))[0]
        if math.isfinite(x):
            return x


def rand_scalar(rng: random.Random) -> Any:
    kind = rng.randrange(10)
    if kind == 0:
        return None
    if kind == 1:
        return rng.random() < 0.5
    if kind == 2:
        return rng.randint(-(2**31), 2**31 - 1)
    if kind == 3:
        return rand_real(rng)
    if kind == 4:
        return uuid.UUID(int=rng.getrandbits(128))
    if kind == 5:
        return rand_text(rng)
    if kind == 6:
        return URI(rand_text(rng))
    if kind == 7:
        # Stay within years 1..9999 so the XML form can express it.
        return Date(rng.randint(-62135596800, 253402300799))
    return bytes(rng.getrandbits(8) for _ in range(rng.randint(0, 40)))


def rand_value(rng: random.Random, depth: int = 0) -> Any:
    if depth >= MAX_GEN_DEPTH or rng.random() < 0.5:
        return rand_scalar(rng)
    if rng.random() < 0.5:
        return {rand_text(rng): rand_value(rng, depth + 1)
                for _ in range(rng.randint(0, MAX_ITEMS))}
    return [rand_value(rng, depth + 1) for _ in range(rng.randint(0, MAX_ITEMS))]


class RoundTripTests(unittest.TestCase):
    def setUp(self) -> None:
        self.rng = random.Random(SEED)

    def _trees(self):
        for i in range(TRIALS):
            yield i, rand_value(self.rng)

    def test_binary(self):
        for i, tree in self._trees():
            with self.subTest(trial=i):
                self.assertTrue(llsd_equal(parse_binary(format_binary(tree)), tree))

    def test_xml_compact(self):
        for i, tree in self._trees():
            with self.subTest(trial=i):
                self.assertTrue(llsd_equal(parse_xml(format_xml(tree)), tree))

    def test_xml_pretty(self):
        for i, tree in self._trees():
            with self.subTest(trial=i):
                self.assertTrue(llsd_equal(parse_xml(format_pretty_xml(tree, indent=3)), tree))

    def test_cross_format(self):
        for i, tree in self._trees():
            with self.subTest(trial=i):
                self.assertTrue(llsd_equal(parse_xml(format_xml(tree)),
                                           parse_binary(format_binary(tree))))

    def test_dispatcher(self):
        for i, tree in self._trees():
            with self.subTest(trial=i):
                self.assertTrue(llsd_equal(parse(format_binary(tree)), tree))
                self.assertTrue(llsd_equal(parse(format_pretty_xml(tree)), tree))

    def test_dispatcher_headerless_composites(self):
        for i, tree in self._trees():
            if not isinstance(tree, (dict, list)):
                continue
            with self.subTest(trial=i):
                self.assertTrue(llsd_equal(parse(format_binary_body(tree)), tree))

    def test_encoding_is_deterministic_for_same_tree(self):
        for i, tree in self._trees():
            with self.subTest(trial=i):
                self.assertEqual(format_binary(tree), format_binary(tree))
                self.assertEqual(format_xml(tree), format_xml(tree))


if __name__ == "__main__":
    unittest.main()
