# python
"""
Utility helpers behavioral tests.

Scope
- Unset sentinel and coalesce().
- rename() and mirror() helpers used by the schema metaclass.
- Shell-style pattern matching used by the registry.
- Identifier respelling used by the dispatch layer.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from trellis.utils import Unset, UnsetType, coalesce, rename, mirror, ismagic, globmatch, Identifier


class TestUnset(TestCase):
    """Sentinel and coalescing semantics."""

    def testUnsetIsSingletonAndFalsey(self):
        self.assertIs(UnsetType(), Unset)
        self.assertFalse(Unset)
        self.assertEqual(repr(Unset), "Unset")

    def testUnsetCannotBeSubclassed(self):
        with self.assertRaises(TypeError):
            type("Other", (UnsetType,), {})

    def testCoalesceOnlyReplacesUnset(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 5), 0)
        self.assertEqual(coalesce("", "x"), "")


class TestRenameAndMirror(TestCase):
    """Generated callables and read-only properties."""

    def testRenameDecorator(self):
        @rename("friendly")
        def generated():
            pass
        self.assertEqual(generated.__name__, "friendly")
        self.assertEqual(generated.__qualname__, "friendly")

    def testRenameRejectsNonCallable(self):
        with self.assertRaises(TypeError):
            rename(42, "name")

    def testMirrorHandsOutCopies(self):
        class Holder:
            items = mirror("items")

            def __init__(self):
                self._items = {"a": [1, 2]}

        holder = Holder()
        holder.items["a"].append(3)
        self.assertEqual(holder.items, {"a": [1, 2]})
        with self.assertRaises(AttributeError):
            holder.items = {}


class TestGlobMatch(TestCase):
    """Command pattern matching."""

    def testWildcardMatchesEverythingIncludingEmpty(self):
        self.assertTrue(globmatch("*", "push"))
        self.assertTrue(globmatch("*", ""))

    def testPrefixPattern(self):
        self.assertTrue(globmatch("git-*", "git-log"))
        self.assertFalse(globmatch("git-*", "git"))

    def testCharacterClassAndSingleChar(self):
        self.assertTrue(globmatch("re[bm]ase", "rebase"))
        self.assertFalse(globmatch("re[!bm]ase", "remase"))
        self.assertTrue(globmatch("pu?h", "push"))

    def testMatchIsWholeStringAndCaseSensitive(self):
        self.assertFalse(globmatch("push", "pushed"))
        self.assertFalse(globmatch("push", "PUSH"))

    def testIsMagic(self):
        self.assertTrue(ismagic("*"))
        self.assertTrue(ismagic("re[bm]ase"))
        self.assertFalse(ismagic("push"))


class TestIdentifier(TestCase):
    """Respelling names across conventions."""

    def testFromCamel(self):
        self.assertEqual(Identifier.fromcamel("addUser").kebab(), "add-user")

    def testFromSnake(self):
        self.assertEqual(Identifier.fromsnake("base_url").kebab(), "base-url")

    def testFromKebab(self):
        self.assertEqual(Identifier.fromkebab("dry-run").snake(), "dry_run")
        self.assertEqual(Identifier.fromkebab("dry-run").camel(), "dryRun")
        self.assertEqual(Identifier.fromkebab("dry-run").pascal(), "DryRun")

    def testFromMixedGuessesSpelling(self):
        self.assertEqual(Identifier.frommixed("dry_run").kebab(), "dry-run")
        self.assertEqual(Identifier.frommixed("dryRun").kebab(), "dry-run")
        self.assertEqual(Identifier.frommixed("name").kebab(), "name")


if __name__ == "__main__":
    unittest.main()
