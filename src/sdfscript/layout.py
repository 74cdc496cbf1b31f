"""Wadler-style pretty-printing documents.

A document is built from text, line breaks and groups. ``render`` lays
each group out flat when it fits in the remaining width and breaks every
``line`` inside it otherwise.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class Line:
    """A break point. ``flat`` is what it renders as when not broken."""

    flat: str = " "
    hard: bool = False


@dataclass(frozen=True)
class Nest:
    indent: int
    doc: Doc


@dataclass(frozen=True)
class Group:
    doc: Doc


@dataclass(frozen=True)
class Concat:
    parts: tuple[Doc, ...]


Doc = Text | Line | Nest | Group | Concat

_LINE = Line(" ")
_SOFTLINE = Line("")
_HARDLINE = Line("", hard=True)
_EMPTY = Concat(())


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------


def text(s: str) -> Doc:
    return Text(s)


def line() -> Doc:
    """Break, or a single space when flat."""
    return _LINE


def softline() -> Doc:
    """Break, or nothing when flat."""
    return _SOFTLINE


def hardline() -> Doc:
    """Break that is never flattened."""
    return _HARDLINE


def nil() -> Doc:
    return _EMPTY


def nest(indent: int, doc: Doc) -> Doc:
    return Nest(indent, doc)


def group(doc: Doc) -> Doc:
    return Group(doc)


def concat(*docs: Doc | str) -> Doc:
    return Concat(tuple(Text(d) if isinstance(d, str) else d for d in docs))


def intersperse(separator: Doc | str, docs: Iterable[Doc]) -> Doc:
    if isinstance(separator, str):
        separator = Text(separator)
    parts: list[Doc] = []
    for i, doc in enumerate(docs):
        if i:
            parts.append(separator)
        parts.append(doc)
    return Concat(tuple(parts))


def bracketed(open_: str, items: list[Doc], close: str, indent: int = 4) -> Doc:
    """``open item, item, ... close``, one item per line when it doesn't fit."""
    if not items:
        return text(open_ + close)
    body = intersperse(concat(",", line()), items)
    return group(concat(open_, nest(indent, concat(softline(), body)), softline(), close))


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

_Command = tuple[int, bool, Doc]  # (indent, flat, doc)


def render(doc: Doc, width: int = 100) -> str:
    """Lay *doc* out within *width* columns where possible."""
    if width <= 0:
        raise ValueError(f"Width must be positive, got {width}")

    out: list[str] = []
    column = 0
    stack: list[_Command] = [(0, False, doc)]

    while stack:
        indent, flat, d = stack.pop()
        if isinstance(d, Text):
            out.append(d.text)
            column += len(d.text)
        elif isinstance(d, Concat):
            stack.extend((indent, flat, part) for part in reversed(d.parts))
        elif isinstance(d, Nest):
            stack.append((indent + d.indent, flat, d.doc))
        elif isinstance(d, Line):
            if flat and not d.hard:
                out.append(d.flat)
                column += len(d.flat)
            else:
                out.append("\n" + " " * indent)
                column = indent
        elif isinstance(d, Group):
            if flat:
                stack.append((indent, True, d.doc))
            else:
                fits = _fits(width - column, stack + [(indent, True, d.doc)])
                stack.append((indent, fits, d.doc))
        else:
            raise TypeError(f"Not a document: {d!r}")

    return "\n".join(ln.rstrip() for ln in "".join(out).split("\n"))


def _fits(remaining: int, commands: list[_Command]) -> bool:
    """Whether everything up to the next break-mode line fits in *remaining*."""
    todo = list(commands)
    while remaining >= 0:
        if not todo:
            return True
        indent, flat, d = todo.pop()
        if isinstance(d, Text):
            remaining -= len(d.text)
        elif isinstance(d, Concat):
            todo.extend((indent, flat, part) for part in reversed(d.parts))
        elif isinstance(d, Nest):
            todo.append((indent + d.indent, flat, d.doc))
        elif isinstance(d, Line):
            if d.hard:
                return not flat
            if not flat:
                return True
            remaining -= len(d.flat)
        elif isinstance(d, Group):
            todo.append((indent, flat, d.doc))
    return False
