"""Path templates: compile ``/users/{id}`` style patterns and match URIs.

A template is a run of literal text and ``{name}`` tokens. Each token is
captured with its own regular expression, ``[^/]+`` unless overridden::

    >>> t = compile_template("/users/{id}", {"id": "num"})
    >>> t.match("/users/42")
    {'id': '42'}
    >>> t.match("/users/abc") is None
    True

Matching is anchored at both ends, so a template never matches a prefix of
a URI.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Generic, Never, TypeVar

from hookmux.errors import PatternError

DEFAULT_PATTERN = r"[^/]+"

# named presets usable in place of a raw regex in overrides
PATTERNS: dict[str, str] = {
    "num": r"\d+",
    "alpha": r"[-\w]+",
    "any": DEFAULT_PATTERN,
    "year": r"\d{4}",
    "month": r"\d{1,2}",
    "day": r"\d{1,2}",
    "md5": r"[a-fA-F0-9]{32}",
    "path": r".+",
}


K = TypeVar("K")
V = TypeVar("V")


class FrozenDict(dict[K, V], Generic[K, V]):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._hash: int | None = None

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash(frozenset(self.items()))
        return self._hash

    def _immutable(self, *args, **kwargs) -> Never:
        msg = "FrozenDict is immutable"
        raise TypeError(msg)

    __setitem__ = __delitem__ = clear = pop = popitem = setdefault = update = _immutable

    def __reduce__(self):
        return (type(self), (dict(self),))


@dataclass(slots=True, frozen=True)
class Segment:
    """One piece of a template: literal text, or a named capture."""

    value: str
    name: str | None = None
    regex: str | None = None

    @property
    def is_param(self) -> bool:
        return self.name is not None


@dataclass(slots=True, frozen=True)
class Template:
    """Compiled path template. Build with ``compile_template``."""

    raw: str
    segments: tuple[Segment, ...]
    overrides: FrozenDict[str, str] = field(default_factory=FrozenDict)
    _regex: re.Pattern[str] = field(default=re.compile(""), repr=False, compare=False)

    @property
    def names(self) -> tuple[str, ...]:
        """Token names in order of appearance."""
        return tuple(seg.name for seg in self.segments if seg.name is not None)

    def match(self, uri: str) -> dict[str, str] | None:
        """Match the whole of *uri*; return its params, or None on no match."""
        m = self._regex.fullmatch(uri)
        if m is None:
            return None
        return {name: m.group(name) for name in self.names}

    def pattern(self, name: str, regex: str) -> Template:
        """Return a copy of this template with *name* bound to *regex*."""
        return compile_template(self.raw, {**self.overrides, name: regex})

    def get_template(self) -> str:
        """The original, uncompiled pattern. Introspection only."""
        return self.raw

    def __str__(self) -> str:
        return self.raw


def parse_template(pattern: str) -> list[Segment]:
    """Split *pattern* into literal and token segments.

    Examples::

        "/users"            -> [Segment("/users")]
        "/users/{id}"       -> [Segment("/users/"), Segment("{id}", name="id")]
        "/d/{y}-{m}"        -> [Segment("/d/"), Segment("{y}", name="y"),
                                Segment("-"), Segment("{m}", name="m")]
    """
    segments: list[Segment] = []
    literal: list[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "}":
            msg = f"unbalanced '}}' at position {i} in {pattern!r}"
            raise PatternError(msg, pattern)
        if char != "{":
            literal.append(char)
            i += 1
            continue
        end = pattern.find("}", i + 1)
        nested = pattern.find("{", i + 1)
        if end == -1 or (nested != -1 and nested < end):
            msg = f"unbalanced '{{' at position {i} in {pattern!r}"
            raise PatternError(msg, pattern)
        name = pattern[i + 1 : end]
        if not name.isidentifier():
            msg = f"invalid token name {name!r} in {pattern!r}"
            raise PatternError(msg, pattern)
        if literal:
            segments.append(Segment("".join(literal)))
            literal = []
        segments.append(Segment(pattern[i : end + 1], name=name))
        i = end + 1
    if literal:
        segments.append(Segment("".join(literal)))
    return segments


def compile_template(
    pattern: str, overrides: Mapping[str, str] | None = None
) -> Template:
    """Compile *pattern*, binding token names to regexes from *overrides*.

    Override values are raw regular expressions or names from ``PATTERNS``.
    Raises ``PatternError`` for malformed patterns, duplicate token names,
    overrides naming tokens the pattern lacks, and invalid regexes.
    """
    overrides = dict(overrides or {})
    parsed = parse_template(pattern)

    names = [seg.name for seg in parsed if seg.name is not None]
    seen: set[str] = set()
    for name in names:
        if name in seen:
            msg = f"duplicate token {{{name}}} in {pattern!r}"
            raise PatternError(msg, pattern)
        seen.add(name)
    unknown = [name for name in overrides if name not in seen]
    if unknown:
        msg = f"override for unknown token(s) {', '.join(unknown)} in {pattern!r}"
        raise PatternError(msg, pattern)

    segments: list[Segment] = []
    parts: list[str] = []
    for seg in parsed:
        if seg.name is None:
            segments.append(seg)
            parts.append(re.escape(seg.value))
            continue
        regex = overrides.get(seg.name, DEFAULT_PATTERN)
        regex = PATTERNS.get(regex, regex)
        segments.append(Segment(seg.value, name=seg.name, regex=regex))
        parts.append(f"(?P<{seg.name}>(?:{regex}))")

    try:
        compiled = re.compile("".join(parts))
    except re.error as e:
        msg = f"invalid regular expression in {pattern!r}: {e}"
        raise PatternError(msg, pattern) from e

    return Template(
        raw=pattern,
        segments=tuple(segments),
        overrides=FrozenDict(overrides),
        _regex=compiled,
    )
