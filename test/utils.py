"""
Tests for the internal helpers shared across deckhand.

This module verifies:
- The Unset sentinel (singleton identity, falsiness, unions, finality).
- coalesce() keeping real falsy values.
- rename() and mirror() as used by the metaclasses.
- ordinal() and checkname() as used by fault messages and builders.
"""
import copy
import unittest
from types import MappingProxyType
from unittest import TestCase

from deckhand.utils import *


class TestUnset(TestCase):
    """
    Unset is the "not provided" marker; None stays a real value.
    """

    def testSingleton(self):
        self.assertIs(UnsetType(), Unset)
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)

    def testFalsyAndRepr(self):
        self.assertFalse(Unset)
        self.assertEqual(repr(Unset), "Unset")
        self.assertNotEqual(Unset, None)

    def testUnions(self):
        self.assertIsInstance(Unset, str | Unset)
        self.assertIsInstance("value", str | Unset)
        self.assertNotIsInstance(3, str | Unset)

    def testFinal(self):
        with self.assertRaises(TypeError):
            class Derived(UnsetType):
                pass

    def testCoalesce(self):
        self.assertIsNone(coalesce(Unset))
        self.assertEqual(coalesce(Unset, "default"), "default")
        for value in (None, 0, "", [], False):
            with self.subTest(value=value):
                self.assertIs(coalesce(value, "default"), value)


class TestHelpers(TestCase):

    def testRename(self):
        def function():
            pass

        self.assertIs(rename(function, "renamed"), function)
        self.assertEqual((function.__name__, function.__qualname__), ("renamed", "renamed"))

        @rename("decorated")
        def other():
            pass

        self.assertEqual(other.__name__, "decorated")
        with self.assertRaises(TypeError):
            rename(1, "name")
        with self.assertRaises(TypeError):
            rename(function, 1)
        with self.assertRaises(TypeError):
            rename()

    def testMirrorFreezesContainers(self):
        class Holder:
            items = mirror("items")
            table = mirror("table")
            tags = mirror("tags")
            name = mirror("name")

            def __init__(self):
                self._items = [1, 2]
                self._table = {"a": 1}
                self._tags = {"x"}
                self._name = "holder"

        holder = Holder()
        self.assertEqual(holder.items, (1, 2))
        self.assertIsInstance(holder.table, MappingProxyType)
        self.assertEqual(holder.tags, frozenset({"x"}))
        self.assertEqual(holder.name, "holder")
        with self.assertRaises(AttributeError):
            holder.items = ()
        with self.assertRaises(TypeError):
            mirror(1)

    def testOrdinal(self):
        cases = {
            1: "first",
            2: "second",
            10: "tenth",
            11: "11th",
            12: "12th",
            13: "13th",
            21: "21st",
            22: "22nd",
            23: "23rd",
            111: "111th",
            0: "0",
        }
        for number, expected in cases.items():
            with self.subTest(number=number):
                self.assertEqual(ordinal(number), expected)

    def testCheckname(self):
        self.assertEqual(checkname("add_command()", "  test "), "test")
        with self.assertRaises(ValueError):
            checkname("add_command()", "   ")
        with self.assertRaises(KeyError) as context:
            checkname("add_command()", 3, "alias", error=KeyError)
        self.assertIn("alias must be a string", str(context.exception))


if __name__ == "__main__":
    unittest.main()
