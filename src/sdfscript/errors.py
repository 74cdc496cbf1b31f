"""Custom exception hierarchy for the sdfscript toolchain."""

from __future__ import annotations


class SdfScriptError(Exception):
    """Base exception for all sdfscript errors.

    ``position`` is the character offset into the text the failing stage
    was reading, or ``None`` when the failure has no source location
    (evaluation errors work on the AST, which carries no offsets).
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        self.message = message
        self.position = position
        if position is not None:
            message = f"{message} (at offset {position})"
        super().__init__(message)


class MacroSyntaxError(SdfScriptError):
    """Raised when an ``@spec{body}`` macro is malformed or unterminated."""


class LexError(SdfScriptError):
    """Raised on a character or literal the lexer cannot tokenize."""


class ParseError(SdfScriptError):
    """Raised on an unexpected token or unmatched delimiter."""


class EvaluationError(SdfScriptError):
    """Raised when a program cannot be evaluated."""


class ArityError(EvaluationError):
    """Raised when a builtin is called with an unsupported argument count."""


class TypeMismatchError(EvaluationError):
    """Raised when an operand or argument has the wrong value kind."""


class UnboundVariableError(EvaluationError):
    """Raised when a variable is read before it is bound."""


class ReadOnlyVariableError(EvaluationError):
    """Raised when a program assigns to a reserved angle parameter."""


class CodegenError(SdfScriptError):
    """Raised when source generation or compilation of generated code fails."""


class SceneError(SdfScriptError):
    """Raised when a scene file cannot be read or fails schema validation."""
