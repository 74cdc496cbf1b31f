"""Macro preprocessing: ``@N{...}`` and ``@xyz{...}`` loop unrolling.

Expansion runs in two passes. ``parse_macros`` reads the raw source into a
small macro-syntax tree (blobs of plain text, numeric loops, letter loops),
and ``render`` turns that tree back into text. Loop bodies are rendered
before their own placeholders are substituted, so inner macros resolve
first and an outer ``$`` never sees a placeholder an inner loop consumed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from sdfscript.errors import MacroSyntaxError
from sdfscript.warning_policy import WarningPolicy, emit_warning

_PLACEHOLDER_RE = re.compile(r"\$\$\$|\$\$|\$")
_HOST_PREFIXES = ("Math.",)


@dataclass(frozen=True)
class Blob:
    """Literal text copied through unchanged."""

    text: str


@dataclass(frozen=True)
class MacroSequence:
    """Consecutive blobs and loops."""

    items: tuple[Blob | NumericLoop | LetterLoop, ...]


@dataclass(frozen=True)
class NumericLoop:
    """``@N{body}``: body repeated N times with ``$`` bound to 1..N."""

    count: int
    body: MacroSequence
    position: int


@dataclass(frozen=True)
class LetterLoop:
    """``@abc{body}``: body repeated once per letter with ``$`` bound to it."""

    letters: str
    body: MacroSequence
    position: int


def expand(text: str, *, policy: WarningPolicy | None = None) -> str:
    """Expand every macro in *text*. The result contains no ``@``.

    Raises:
        MacroSyntaxError: On a malformed spec or an unterminated body.
    """
    tree = parse_macros(text)
    return render(tree, policy=policy)


# ---------------------------------------------------------------------------
# Macro-syntax tree construction
# ---------------------------------------------------------------------------


def parse_macros(text: str) -> MacroSequence:
    """Parse *text* into a macro-syntax tree."""
    sequence, pos = _parse_sequence(text, 0, in_body=False)
    if pos != len(text):
        # Only a body can stop early, and the top level is never a body.
        raise MacroSyntaxError("Unexpected end of macro body", pos)
    return sequence


def _parse_sequence(text: str, pos: int, in_body: bool) -> tuple[MacroSequence, int]:
    """Read blobs and loops until end of text, or the closing brace of a body.

    Returns the sequence and the offset just past what was consumed. For a
    body the closing brace itself is left for the caller.
    """
    items: list[Blob | NumericLoop | LetterLoop] = []
    chunk: list[str] = []
    depth = 0

    while pos < len(text):
        c = text[pos]
        if c == "@":
            if chunk:
                items.append(Blob("".join(chunk)))
                chunk = []
            loop, pos = _parse_loop(text, pos)
            items.append(loop)
            continue
        if in_body:
            if c == "{":
                depth += 1
            elif c == "}":
                if depth == 0:
                    break
                depth -= 1
        chunk.append(c)
        pos += 1

    if chunk:
        items.append(Blob("".join(chunk)))
    return MacroSequence(tuple(items)), pos


def _parse_loop(text: str, start: int) -> tuple[NumericLoop | LetterLoop, int]:
    """Parse one ``@spec{body}`` starting at the ``@``."""
    pos = start + 1
    spec_end = pos
    while spec_end < len(text) and text[spec_end].isascii() and text[spec_end].isalnum():
        spec_end += 1
    spec = text[pos:spec_end]

    if spec_end >= len(text) or text[spec_end] != "{":
        raise MacroSyntaxError(f"Macro {('@' + spec)!r} must be followed by '{{'", start)
    if not spec:
        raise MacroSyntaxError("Macro has an empty loop spec", start)

    body, body_end = _parse_sequence(text, spec_end + 1, in_body=True)
    if body_end >= len(text):
        raise MacroSyntaxError(f"Unterminated body for macro '@{spec}'", start)
    end = body_end + 1

    if spec.isdigit():
        return NumericLoop(int(spec), body, start), end
    if spec.isalpha():
        return LetterLoop(spec, body, start), end
    raise MacroSyntaxError(
        f"Macro spec {spec!r} must be a decimal count or a run of letters", start
    )


# ---------------------------------------------------------------------------
# Tree-to-text rendering
# ---------------------------------------------------------------------------


def render(node: MacroSequence | Blob | NumericLoop | LetterLoop, *, policy: WarningPolicy | None = None) -> str:
    """Render a macro-syntax tree to plain text."""
    if isinstance(node, Blob):
        return _strip_host_prefixes(node.text)
    if isinstance(node, MacroSequence):
        return "".join(render(item, policy=policy) for item in node.items)
    if isinstance(node, NumericLoop):
        body = render(node.body, policy=policy)
        n = node.count
        return "".join(
            _substitute(body, str(i), str(i % n + 1), str((i + 1) % n + 1))
            for i in range(1, n + 1)
        )
    if isinstance(node, LetterLoop):
        body = render(node.body, policy=policy)
        _check_letter_loop(node, body, policy)
        letters = node.letters
        n = len(letters)
        return "".join(
            _substitute(body, letters[i], letters[(i + 1) % n], letters[(i + 2) % n])
            for i in range(n)
        )
    raise TypeError(f"Not a macro-syntax node: {node!r}")


def _substitute(body: str, current: str, following: str, after_following: str) -> str:
    """Replace ``$$$``, ``$$`` and ``$`` in one pass, longest match first."""
    values = {1: current, 2: following, 3: after_following}
    return _PLACEHOLDER_RE.sub(lambda m: values[len(m.group(0))], body)


def _strip_host_prefixes(text: str) -> str:
    """Drop ``Math.`` qualifiers left over from JavaScript-hosted sources."""
    for prefix in _HOST_PREFIXES:
        text = text.replace(prefix, "")
    return text


def _check_letter_loop(node: LetterLoop, body: str, policy: WarningPolicy | None) -> None:
    if "$" not in body:
        emit_warning(
            "W01",
            f"Body of macro '@{node.letters}' never uses a '$' placeholder",
            policy=policy,
            position=node.position,
        )
    if len(set(node.letters)) != len(node.letters):
        emit_warning(
            "W02",
            f"Macro '@{node.letters}' repeats a letter",
            policy=policy,
            position=node.position,
        )
