"""Identifier case conversions used when synthesizing Rust names."""

import re
from dataclasses import dataclass


_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_SEPARATORS = re.compile(r"[^A-Za-z0-9]+")


def split_words(name: str) -> list:
    """Split snake, kebab and camel case identifiers into lowercase words."""
    name = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
    name = _CAMEL_BOUNDARY.sub(r"\1_\2", name)
    return [w.lower() for w in _SEPARATORS.split(name) if w]


def to_snake_case(name: str) -> str:
    return "_".join(split_words(name))


def to_upper_camel_case(name: str) -> str:
    return "".join(w[:1].upper() + w[1:] for w in split_words(name))


@dataclass(frozen=True)
class Name:
    """An identifier together with the case variants the generators need."""
    raw: str

    @property
    def snake_case(self) -> str:
        return to_snake_case(self.raw)

    @property
    def upper_camel_case(self) -> str:
        return to_upper_camel_case(self.raw)

    def __str__(self) -> str:
        return self.raw
