# python
"""
Namespace behavioral tests.

Scope
- Option, positional and metadata access.
- Accumulation of repeated option values.
- Whole-object helpers: to_dict/to_json, equality, copies.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import copy
import json
import unittest
from unittest import TestCase

from trellis import Namespace


class TestNamespaceOptions(TestCase):
    """Option values."""

    def testGetWithDefault(self):
        ns = Namespace("", {"host": "x"})
        self.assertEqual(ns.get_opt("host"), "x")
        self.assertIsNone(ns.get_opt("port"))
        self.assertEqual(ns.get_opt("port", 22), 22)

    def testSetHasAndDelete(self):
        ns = Namespace().set_opt("force", True)
        self.assertTrue(ns.has_opt("force"))
        ns.del_opt("force")
        self.assertFalse(ns.has_opt("force"))

    def testPushAccumulatesIntoList(self):
        ns = Namespace().push_opt("header", "a").push_opt("header", "b").push_opt("header", "c")
        self.assertEqual(ns.get_opt("header"), ["a", "b", "c"])

    def testMappingAccess(self):
        ns = Namespace()
        ns["host"] = "x"
        ns["none"] = None
        self.assertEqual(ns["host"], "x")
        self.assertIsNone(ns["missing"])
        self.assertIn("host", ns)
        self.assertNotIn("none", ns)
        del ns["host"]
        self.assertNotIn("host", ns)

    def testOptsPropertyIsACopy(self):
        ns = Namespace("", {"host": "x"})
        ns.opts["host"] = "y"
        self.assertEqual(ns.get_opt("host"), "x")


class TestNamespaceArgs(TestCase):
    """Positional values."""

    def testNamedAndPositionalAccess(self):
        ns = Namespace().add_arg("origin", "repo").add_arg("main")
        self.assertEqual(ns.get_arg("repo"), "origin")
        self.assertEqual(ns.get_arg(0), "origin")
        self.assertEqual(ns.get_arg(1), "main")
        self.assertEqual(ns.get_arg(-1), "main")
        self.assertEqual(ns.get_arg(5, "default"), "default")
        self.assertEqual(ns.args, {"repo": "origin", 1: "main"})

    def testHasArg(self):
        ns = Namespace().add_arg("origin", "repo")
        self.assertTrue(ns.has_arg("repo"))
        self.assertTrue(ns.has_arg(0))
        self.assertFalse(ns.has_arg(1))
        self.assertFalse(ns.has_arg("branch"))

    def testSetArg(self):
        ns = Namespace().set_arg("repo", "origin")
        self.assertEqual(ns.get_arg("repo"), "origin")


class TestNamespaceWhole(TestCase):
    """Metadata and whole-object helpers."""

    def testMeta(self):
        ns = Namespace().set_meta("filename", "prog")
        self.assertEqual(ns.get_meta("filename"), "prog")
        self.assertEqual(ns.get_meta("path", ""), "")

    def testToDictAndJson(self):
        ns = Namespace("push", {"force": True}, {"repo": "origin"}).set_meta("filename", "prog")
        expected = {
            "command": "push",
            "opts": {"force": True},
            "args": {"repo": "origin"},
            "meta": {"filename": "prog"},
        }
        self.assertEqual(ns.to_dict(), expected)
        self.assertEqual(json.loads(ns.to_json()), expected)

    def testEqualityAndCopy(self):
        ns = Namespace("push", {"header": ["a"]}, {"repo": "origin"})
        clone = copy.copy(ns)
        self.assertEqual(ns, clone)
        clone.push_opt("header", "b")
        self.assertNotEqual(ns, clone)
        self.assertEqual(ns.get_opt("header"), ["a"])

    def testCommandMustBeString(self):
        with self.assertRaises(TypeError):
            Namespace(1)


if __name__ == "__main__":
    unittest.main()
