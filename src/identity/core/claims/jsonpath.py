"""Minimal JSONPath evaluator for claims payloads.

Supported syntax, evaluated over plain ``dict``/``list``/scalar trees::

    $.name  $['name']  $["na me"]  $[0]  $[-1]  $[0,2]  $[1:3]
    $.*  $[*]  $..name  $..['name']  $..*

A leading ``$`` is optional (``groups[0]`` reads as ``$.groups[0]``).

A path is *definite* when it can match at most one node: no wildcard, no
deep scan, no slice and no multi-selector. Definite paths produce the
matched value itself; indefinite paths produce the list of matches.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from src.identity.core.exceptions import InvalidClaimsPath

_MISSING = object()


@dataclass(frozen=True)
class _Name:
    key: str


@dataclass(frozen=True)
class _Index:
    index: int


@dataclass(frozen=True)
class _Slice:
    start: int | None
    stop: int | None


@dataclass(frozen=True)
class _Wildcard:
    pass


@dataclass(frozen=True)
class _Step:
    """One path step: a set of selectors, optionally applied at any depth."""

    selectors: tuple[_Name | _Index | _Slice | _Wildcard, ...]
    recursive: bool = False

    @property
    def definite(self) -> bool:
        return (
            not self.recursive
            and len(self.selectors) == 1
            and isinstance(self.selectors[0], (_Name, _Index))
        )


class _Parser:
    """Recursive-descent parser producing a list of steps."""

    def __init__(self, expression: str) -> None:
        self.expression = expression
        self.text = expression.strip()
        self.pos = 0

    def error(self, message: str) -> InvalidClaimsPath:
        return InvalidClaimsPath(
            f"Invalid JSONPath expression {self.expression!r} at {self.pos}: {message}"
        )

    def peek(self, size: int = 1) -> str:
        return self.text[self.pos : self.pos + size]

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def expect(self, token: str) -> None:
        if self.peek(len(token)) != token:
            raise self.error(f"expected {token!r}")
        self.pos += len(token)

    def skip_spaces(self) -> None:
        while not self.at_end() and self.text[self.pos].isspace():
            self.pos += 1

    def parse(self) -> list[_Step]:
        if not self.text:
            raise self.error("empty expression")
        if self.peek() == "$":
            self.pos += 1
        elif self.peek() not in (".", "["):
            # bare "groups[0]" is shorthand for "$.groups[0]"
            return [_Step((self.parse_name(),)), *self.parse_steps()]
        return self.parse_steps()

    def parse_steps(self) -> list[_Step]:
        steps = []
        while not self.at_end():
            steps.append(self.parse_step())
        return steps

    def parse_step(self) -> _Step:
        if self.peek(2) == "..":
            self.pos += 2
            if self.peek() == "[":
                return _Step(self.parse_bracket(), recursive=True)
            return _Step((self.parse_dot_selector(),), recursive=True)
        if self.peek() == ".":
            self.pos += 1
            return _Step((self.parse_dot_selector(),))
        if self.peek() == "[":
            return _Step(self.parse_bracket())
        raise self.error(f"unexpected character {self.peek()!r}")

    def parse_dot_selector(self) -> _Name | _Wildcard:
        if self.peek() == "*":
            self.pos += 1
            return _Wildcard()
        return self.parse_name()

    def parse_name(self) -> _Name:
        start = self.pos
        while not self.at_end() and self.text[self.pos] not in ".[":
            self.pos += 1
        name = self.text[start : self.pos].strip()
        if not name:
            raise self.error("expected a property name")
        return _Name(name)

    def parse_bracket(self) -> tuple[_Name | _Index | _Slice | _Wildcard, ...]:
        self.expect("[")
        selectors = [self.parse_selector()]
        self.skip_spaces()
        while self.peek() == ",":
            self.pos += 1
            selectors.append(self.parse_selector())
            self.skip_spaces()
        self.expect("]")
        return tuple(selectors)

    def parse_selector(self) -> _Name | _Index | _Slice | _Wildcard:
        self.skip_spaces()
        char = self.peek()
        if char == "*":
            self.pos += 1
            return _Wildcard()
        if char in ("'", '"'):
            return _Name(self.parse_quoted(char))
        if char == "?" or char == "(":
            raise self.error("filter and script expressions are not supported")
        return self.parse_index_or_slice()

    def parse_quoted(self, quote: str) -> str:
        self.pos += 1
        chars = []
        while True:
            if self.at_end():
                raise self.error("unterminated string")
            char = self.text[self.pos]
            if char == "\\" and self.pos + 1 < len(self.text):
                chars.append(self.text[self.pos + 1])
                self.pos += 2
                continue
            self.pos += 1
            if char == quote:
                return "".join(chars)
            chars.append(char)

    def parse_int(self) -> int | None:
        self.skip_spaces()
        start = self.pos
        if self.peek() == "-":
            self.pos += 1
        while not self.at_end() and self.text[self.pos].isdigit():
            self.pos += 1
        token = self.text[start : self.pos]
        if token in ("", "-"):
            self.pos = start
            return None
        return int(token)

    def parse_index_or_slice(self) -> _Index | _Slice:
        start = self.parse_int()
        self.skip_spaces()
        if self.peek() == ":":
            self.pos += 1
            stop = self.parse_int()
            return _Slice(start, stop)
        if start is None:
            raise self.error("expected an index, a quoted name or '*'")
        return _Index(start)


def _children(node: Any) -> Iterator[Any]:
    if isinstance(node, dict):
        yield from node.values()
    elif isinstance(node, list):
        yield from node


def _descendants(node: Any) -> Iterator[Any]:
    """``node`` and every node below it, depth first, document order."""
    yield node
    for child in _children(node):
        yield from _descendants(child)


def _select(node: Any, selector: _Name | _Index | _Slice | _Wildcard) -> Iterator[Any]:
    if isinstance(selector, _Wildcard):
        yield from _children(node)
    elif isinstance(selector, _Name):
        if isinstance(node, dict) and selector.key in node:
            yield node[selector.key]
    elif isinstance(selector, _Index):
        if isinstance(node, list) and -len(node) <= selector.index < len(node):
            yield node[selector.index]
    elif isinstance(node, list):
        yield from node[selector.start : selector.stop]


class JsonPath:
    """A compiled JSONPath expression."""

    def __init__(self, expression: str) -> None:
        self.expression = expression
        self._steps = _Parser(expression).parse()
        self.definite = all(step.definite for step in self._steps)

    def __repr__(self) -> str:
        return f"JsonPath({self.expression!r})"

    def find(self, document: Any) -> list[Any]:
        """Every node matched by the expression, in document order."""
        nodes = [document]
        for step in self._steps:
            matched = []
            for node in nodes:
                candidates = _descendants(node) if step.recursive else (node,)
                for candidate in candidates:
                    for selector in step.selectors:
                        matched.extend(_select(candidate, selector))
            nodes = matched
        return nodes

    def read(self, document: Any) -> Any:
        """Matched value for definite paths, list of matches otherwise.

        Returns ``_MISSING`` when a definite path does not resolve.
        """
        matches = self.find(document)
        if self.definite:
            return matches[0] if matches else _MISSING
        return matches


def is_missing(value: Any) -> bool:
    return value is _MISSING
