# python
"""
Parsing engine behavioral tests (tokenizer, validator, coercion).

Scope
- Scalar coercion table for string, integer and boolean.
- Token consumption rules for long options, short options and bundles.
- Batch validation: every fault of a run is reported, in a fixed order.
- Reference scenarios: required options, commands with a wildcard schema, arrays,
  unknown options, short/long equivalence and boolean literals.

Conventions
- Test method names follow CamelCase per project convention.
- Parses go through tokenize() then validate(), exactly as Cli.parse() does.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from trellis import (
    Registry, Namespace, ValueType, CommandExit, FaultCode,
    InvalidCommandError, InvalidValueError, MissingOptionError, MissingArgError, InvalidOptionError,
    coerce, tokenize, validate,
)


def run(registry, *argv):
    return validate(registry, tokenize(registry, ["/usr/bin/prog", *argv]))


class TestCoerce(TestCase):
    """Scalar coercion."""

    def testBooleanTable(self):
        for value in (True, 1, "1", "true", "yes", "enabled"):
            with self.subTest(value=value):
                self.assertIs(coerce(value, ValueType.BOOLEAN), True)
        for value in (False, None, "", 0, "0", "false", "no", "disabled"):
            with self.subTest(value=value):
                self.assertIs(coerce(value, ValueType.BOOLEAN), False)

    def testBooleanRejectsOtherValues(self):
        for value in ("13", "on", "off", 2, "maybe"):
            with self.subTest(value=value), self.assertRaises(ValueError):
                coerce(value, "boolean")

    def testInteger(self):
        self.assertEqual(coerce("3", ValueType.INTEGER), 3)
        self.assertEqual(coerce(" 12 ", ValueType.INTEGER), 12)
        self.assertEqual(coerce("-4", ValueType.INTEGER), -4)
        self.assertEqual(coerce("2.7", ValueType.INTEGER), 2)
        self.assertEqual(coerce("1e3", ValueType.INTEGER), 1000)
        self.assertEqual(coerce(7, ValueType.INTEGER), 7)

    def testIntegerRejectsNonNumeric(self):
        for value in ("foo", "", True, None, "1x"):
            with self.subTest(value=value), self.assertRaises(ValueError):
                coerce(value, ValueType.INTEGER)

    def testIntegerRejectsHugeExponents(self):
        for value in ("1e1000000", "-1e10000000", "9.9e4301"):
            with self.subTest(value=value), self.assertRaises(ValueError):
                coerce(value, ValueType.INTEGER)
        self.assertEqual(coerce("1e-1000000", ValueType.INTEGER), 0)
        self.assertEqual(coerce("1e4300", ValueType.INTEGER), 10 ** 4300)

    def testString(self):
        self.assertEqual(coerce("x", ValueType.STRING), "x")
        self.assertEqual(coerce(3, ValueType.STRING), "3")
        self.assertEqual(coerce(True, ValueType.STRING), "1")
        self.assertEqual(coerce(False, ValueType.STRING), "")


class TestTokenize(TestCase):
    """Raw namespaces, before validation."""

    def testPathAndFilenameInMeta(self):
        ns = tokenize(Registry(), ["/usr/bin/prog"])
        self.assertEqual(ns.get_meta("path"), "/usr/bin/prog")
        self.assertEqual(ns.get_meta("filename"), "prog")

    def testCommandTakenOnlyWhenCommandsExist(self):
        self.assertEqual(tokenize(Registry().command("push"), ["prog", "push"]).command, "push")
        ns = tokenize(Registry().arg("file"), ["prog", "notes.txt"])
        self.assertEqual(ns.command, "")
        self.assertEqual(ns.get_arg("file"), "notes.txt")

    def testHelpTokens(self):
        for token in ("-?", "--?", "--help"):
            with self.subTest(token=token):
                self.assertIs(tokenize(Registry(), ["prog", token]).get_opt("help"), True)

    def testDoubleDashEndsOptions(self):
        ns = tokenize(Registry().opt("force:f", type="boolean"), ["prog", "-f", "--", "-x", "--y"])
        self.assertIs(ns.get_opt("f"), True)
        self.assertEqual(ns.args, {0: "-x", 1: "--y"})

    def testFirstPositionalEndsOptions(self):
        ns = tokenize(Registry().opt("host"), ["prog", "--host", "x", "file", "--other"])
        self.assertEqual(ns.opts, {"host": "x"})
        self.assertEqual(ns.args, {0: "file", 1: "--other"})

    def testLongBooleanConsumesOnlyLiterals(self):
        registry = Registry().opt("enabled:e", type="boolean")
        self.assertEqual(tokenize(registry, ["prog", "--enabled", "no"]).opts, {"enabled": "no"})
        ns = tokenize(registry, ["prog", "--enabled", "foo"])
        self.assertEqual(ns.opts, {"enabled": True})
        self.assertEqual(ns.args, {0: "foo"})

    def testShortIntegerBeforeOptionTakesDefault(self):
        ns = tokenize(Registry().opt("port:P", type="integer").opt("host:h"), ["prog", "-P", "-h", "x"])
        self.assertEqual(ns.opts, {"P": 1, "h": "x"})

    def testUndeclaredShortIsAFlag(self):
        self.assertEqual(tokenize(Registry(), ["prog", "-x"]).opts, {"x": True})

    def testRepeatedOptionsAccumulate(self):
        ns = tokenize(Registry().opt("host"), ["prog", "--host=a", "--host=b"])
        self.assertEqual(ns.get_opt("host"), ["a", "b"])

    def testBundleMixedTypes(self):
        registry = (
            Registry()
            .opt("enabled:e", type="boolean")
            .opt("disabled:d", type="boolean")
            .opt("count:c", type="integer")
            .opt("host:h")
        )
        self.assertEqual(tokenize(registry, ["prog", "-ed0c2c"]).opts, {"e": True, "d": "0", "c": 3})
        self.assertEqual(tokenize(registry, ["prog", "-ccc"]).opts, {"c": 3})
        self.assertEqual(tokenize(registry, ["prog", "-c12"]).opts, {"c": "12"})
        self.assertEqual(tokenize(registry, ["prog", "-c=5"]).opts, {"c": "5"})
        self.assertEqual(tokenize(registry, ["prog", "-ehlocalhost"]).opts, {"e": True, "h": "localhost"})

    def testRejectsNonSequenceArgv(self):
        with self.assertRaises(TypeError):
            tokenize(Registry(), "prog --help")
        with self.assertRaises(TypeError):
            tokenize(Registry(), ["prog", 1])


class TestScenarios(TestCase):
    """Reference parses."""

    def setUp(self):
        self.registry = (
            Registry()
            .opt("host:h", "The host.", required=True)
            .opt("user:u", "The user.", required=True)
            .opt("port:P", "The port.", type="integer")
        )

    def testRequiredOptionsGiven(self):
        ns = run(self.registry, "-hlocalhost", "-uroot")
        self.assertEqual(ns.get_opt("host"), "localhost")
        self.assertEqual(ns.get_opt("user"), "root")
        self.assertFalse(ns.has_opt("port"))

    def testAllFaultsReportedInOrder(self):
        with self.assertRaises(CommandExit) as context:
            run(self.registry, "-P", "foo")
        self.assertEqual(context.exception.messages, [
            "The value of --port (-P) is not a valid integer.",
            "Missing required option: host",
            "Missing required option: user",
        ])

    def testCommandWithWildcardSchema(self):
        registry = (
            Registry()
            .opt("verbose:v", type="integer")
            .arg("repo", required=True)
            .command("push").opt("force:f", type="boolean")
            .command("pull")
        )
        ns = run(registry, "push", "-f", "myrepo")
        self.assertEqual(ns.command, "push")
        self.assertEqual(ns.opts, {"force": True})
        self.assertEqual(ns.args, {"repo": "myrepo"})

    def testArrayOption(self):
        registry = Registry().opt("header", type="string[]")
        self.assertEqual(run(registry, "--header=a", "--header=b").get_opt("header"), ["a", "b"])
        self.assertEqual(run(registry, "--header=a").get_opt("header"), ["a"])

    def testArrayOptionThreeTimesKeepsOrder(self):
        registry = Registry().opt("tag:t", type="string[]")
        self.assertEqual(run(registry, "--tag=b", "--tag", "a", "--tag=c").get_opt("tag"), ["b", "a", "c"])

    def testArrayElementFaultNamesTheElement(self):
        with self.assertRaises(CommandExit) as context:
            run(Registry().opt("count", type="integer[]"), "--count=1", "--count=x")
        self.assertEqual(context.exception.messages, ["The value of --count[1] is not a valid integer."])

    def testUnknownOptionDoesNotStopOthers(self):
        registry = Registry().opt("host")
        with self.assertRaises(CommandExit) as context:
            run(registry, "--bogus=1", "--host=x")
        self.assertEqual(context.exception.messages, ["Invalid option: bogus"])

    def testNonArrayKeepsLastValue(self):
        self.assertEqual(run(Registry().opt("host"), "--host=a", "--host=b").get_opt("host"), "b")

    def testHugeExponentIsAnInvalidInteger(self):
        with self.assertRaises(CommandExit) as context:
            run(self.registry, "-hlocalhost", "-uroot", "--port=1e1000000")
        self.assertEqual(context.exception.messages, ["The value of --port (-P) is not a valid integer."])


class TestEquivalences(TestCase):
    """Spellings that must agree."""

    def testShortAndLongSpellings(self):
        registry = Registry().opt("host:h")
        for argv in (["--host=localhost"], ["--host", "localhost"], ["-hlocalhost"], ["-h", "localhost"]):
            with self.subTest(argv=argv):
                self.assertEqual(run(registry, *argv).get_opt("host"), "localhost")

    def testBooleanLiterals(self):
        registry = Registry().opt("enabled:e", type="boolean")
        for argv in (["-e"], ["-e1"], ["--enabled"], ["--enabled=true"], ["--enabled=yes"], ["-e", "true"]):
            with self.subTest(argv=argv):
                self.assertIs(run(registry, *argv).get_opt("enabled"), True)
        for argv in (["-e0"], ["--enabled=false"], ["--no-enabled"], ["-e", "0"], ["--enabled", "no"]):
            with self.subTest(argv=argv):
                self.assertIs(run(registry, *argv).get_opt("enabled"), False)

    def testBooleanRejectsOtherLiterals(self):
        registry = Registry().opt("enabled:e", type="boolean")
        for argv in (["--enabled=13"], ["--enabled=on"], ["-e", "off"]):
            with self.subTest(argv=argv), self.assertRaises(CommandExit) as context:
                run(registry, *argv)
            self.assertEqual(context.exception.messages, ["The value of --enabled (-e) is not a valid boolean."])

    def testIntegerSpellings(self):
        registry = Registry().opt("count:c", type="integer")
        for argv, expected in ((["-c12"], 12), (["-ccc"], 3), (["--count", "5"], 5), (["-c"], 1), (["-c1", "-cc"], 3)):
            with self.subTest(argv=argv):
                self.assertEqual(run(registry, *argv).get_opt("count"), expected)


class TestFaults(TestCase):
    """Batch contents, order and metadata."""

    def testFullOrder(self):
        registry = (
            Registry()
            .opt("count:c", type="integer")
            .opt("name", required=True)
            .arg("repo", required=True)
            .command("push")
        )
        with self.assertRaises(CommandExit) as context:
            run(registry, "bogus", "--count=x", "--extra")
        exit = context.exception
        self.assertEqual(exit.messages, [
            "Invalid command: bogus.",
            "The value of --count (-c) is not a valid integer.",
            "Missing required option: name",
            "Missing required arg: repo",
            "Invalid option: extra",
        ])
        self.assertEqual(
            [type(fault) for fault in exit.exceptions],
            [InvalidCommandError, InvalidValueError, MissingOptionError, MissingArgError, InvalidOptionError],
        )
        self.assertEqual(exit.exceptions[0].options["code"], FaultCode.INVALID_COMMAND)
        self.assertEqual(exit.exceptions[4].options["input"], "extra")
        self.assertEqual(str(exit), "\n".join(exit.messages))

    def testUndeclaredShortFlag(self):
        with self.assertRaises(CommandExit) as context:
            run(Registry(), "-x")
        self.assertEqual(context.exception.messages, ["Invalid option: x"])

    def testNegatedNonBoolean(self):
        with self.assertRaises(CommandExit) as context:
            run(Registry().opt("count", type="integer"), "--no-count=22")
        self.assertEqual(context.exception.messages, ["Cannot apply the --no- prefix on the non boolean --count."])

    def testNegatedBooleanWithValueIsUnknown(self):
        with self.assertRaises(CommandExit) as context:
            run(Registry().opt("enabled", type="boolean"), "--no-enabled", "foo")
        self.assertEqual(context.exception.messages, ["Invalid option: no-enabled"])

    def testRequiredArgSatisfiedByPosition(self):
        ns = run(Registry().arg("repo", required=True), "origin")
        self.assertEqual(ns.get_arg("repo"), "origin")


class TestRevalidation(TestCase):
    """Validating a valid result again changes nothing."""

    def testIdempotent(self):
        registry = (
            Registry()
            .opt("enabled:e", type="boolean")
            .opt("count:c", type="integer")
            .opt("header", type="string[]")
            .opt("host:h")
            .arg("repo")
        )
        first = run(registry, "-e", "-ccc", "--header=a", "--header=b", "-hx", "origin")
        second = validate(registry, first)
        self.assertEqual(first, second)
        self.assertIs(second.get_opt("enabled"), True)
        self.assertEqual(second.get_opt("count"), 3)
        self.assertEqual(second.get_meta("filename"), "prog")

    def testValidateAcceptsHandBuiltNamespaces(self):
        registry = Registry().opt("count", type="integer")
        self.assertEqual(validate(registry, Namespace("", {"count": "4"})).get_opt("count"), 4)


if __name__ == "__main__":
    unittest.main()
