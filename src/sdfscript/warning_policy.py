"""Coded diagnostics for the macro and parsing stages.

Each code belongs to one stage; promoting it to an error raises that stage's
exception, so ``--warn-as-error W01`` fails the same way a malformed macro does.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass

from sdfscript.errors import MacroSyntaxError, ParseError, SdfScriptError


@dataclass(frozen=True)
class WarningCode:
    code: str
    summary: str
    stage_error: type[SdfScriptError]


WARNING_CODES: dict[str, WarningCode] = {
    wc.code: wc
    for wc in (
        WarningCode("W01", "letter loop body has no '$' placeholder", MacroSyntaxError),
        WarningCode("W02", "letter loop repeats a letter", MacroSyntaxError),
        WarningCode("W03", "program does not end with an expression", ParseError),
    )
}
KNOWN_CODES: frozenset[str] = frozenset(WARNING_CODES)


class SdfScriptWarning(UserWarning):
    """Warning carrying its code and, when known, the source offset."""

    def __init__(self, code: str, message: str, position: int | None = None) -> None:
        self.code = code
        self.position = position
        super().__init__(f"[{code}] {message}")


@dataclass(frozen=True)
class WarningPolicy:
    """Per-code handling: promote to the stage error, drop, or warn (default)."""

    warn_as_error: frozenset[str] = frozenset()
    suppress: frozenset[str] = frozenset()

    @classmethod
    def from_options(cls, warn_as_error: str | None, suppress: str | None) -> WarningPolicy | None:
        """Build a policy from comma-separated option values; ``None`` when both are unset."""
        if warn_as_error is None and suppress is None:
            return None
        return cls(
            warn_as_error=parse_code_list(warn_as_error or ""),
            suppress=parse_code_list(suppress or ""),
        )


def emit_warning(
    code: str,
    message: str,
    *,
    policy: WarningPolicy | None = None,
    position: int | None = None,
) -> None:
    """Report diagnostic *code*.

    Suppression wins over promotion. A promoted code raises the stage error
    registered for it in ``WARNING_CODES``.
    """
    stage_error = WARNING_CODES[code].stage_error
    if policy is not None:
        if code in policy.suppress:
            return
        if code in policy.warn_as_error:
            raise stage_error(f"[{code}] {message}", position)

    warnings.warn(SdfScriptWarning(code, message, position), stacklevel=3)


def parse_code_list(raw: str) -> frozenset[str]:
    """Parse ``"W01, w03"``-style option values; case-insensitive.

    Raises:
        ValueError: For a code not in ``WARNING_CODES``.
    """
    codes = {token.strip().upper() for token in raw.split(",")} - {""}
    unknown = sorted(codes - KNOWN_CODES)
    if unknown:
        known = ", ".join(f"{wc.code} ({wc.summary})" for wc in WARNING_CODES.values())
        raise ValueError(f"Unknown warning code: {unknown[0]!r} (known: {known})")
    return frozenset(codes)
