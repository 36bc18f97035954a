"""Tests for record and string helpers."""

import re

from db_mapper.util import filter_keys, hashify, slugify, uuid


class TestUuid:
    def test_format(self) -> None:
        assert re.fullmatch(r"[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[0-9a-f]{4}-[0-9a-f]{12}", uuid())

    def test_unique(self) -> None:
        assert uuid() != uuid()


class TestHashify:
    def test_deterministic(self) -> None:
        assert hashify("abc") == hashify("abc")
        assert len(hashify("abc")) == 64

    def test_truncated(self) -> None:
        assert hashify("abc", 8) == "ba7816bf"

    def test_numbers(self) -> None:
        assert hashify(12) == hashify("12")

    def test_falsy_seed_is_random(self) -> None:
        assert hashify(None) != hashify(None)
        assert len(hashify("", 10)) == 10


class TestSlugify:
    def test_sentence(self) -> None:
        assert slugify("Hello World") == "hello-world"

    def test_punctuation(self) -> None:
        assert slugify("Tom & Jerry's 100% Show!") == "tom-jerrys-100-show"

    def test_collapses_and_trims_dashes(self) -> None:
        assert slugify("  --Mixed   case--  ") == "mixed-case"

    def test_hash_suffix(self) -> None:
        slug = slugify("Hello", 6)
        assert re.fullmatch(r"hello-[0-9a-f]{6}", slug)


class TestFilterKeys:
    def test_keeps_listed_keys(self) -> None:
        assert filter_keys({"a": 1, "b": 2, "c": 3}, ["a", "c", "z"]) == {"a": 1, "c": 3}

    def test_does_not_mutate(self) -> None:
        record = {"a": 1, "b": 2}
        filter_keys(record, ["a"])
        assert record == {"a": 1, "b": 2}
