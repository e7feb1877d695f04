"""
Generation-time errors.

Every error here is terminal for the program being generated: the caller
gets the message and no partial output.
"""

from typing import Optional


class GenerationError(ValueError):
    """Base class for errors raised while analyzing or synthesizing a program."""

    def __init__(self, message: str, program: Optional[str] = None):
        self.program = program
        if program:
            message = f"[{program}] {message}"
        super().__init__(message)


class ProgramModuleNotFoundError(GenerationError):
    """No usable module carrying the #[program] attribute."""


class MalformedInstructionError(GenerationError):
    """An instruction handler does not take a Context<T> first parameter."""

    def __init__(self, function: str, program: Optional[str] = None):
        self.function = function
        super().__init__(
            f"The function {function} does not have the Context parameter and is malformed.",
            program,
        )


class ContextNotFoundError(GenerationError):
    """The struct referenced by Context<T> is not defined anywhere in the source."""

    def __init__(self, struct: str, program: Optional[str] = None):
        self.struct = struct
        super().__init__(f"The Context struct {struct} was not found", program)


class UnsupportedContextError(GenerationError):
    """The context struct is a tuple or unit struct."""

    def __init__(self, struct: str, program: Optional[str] = None):
        self.struct = struct
        super().__init__(
            f"Context struct parse error: {struct} must have named fields",
            program,
        )


class UnknownAccountTypeError(GenerationError):
    """A leaf account field whose type shape cannot be classified."""

    def __init__(self, struct: str, field: str, type_text: str, reason: str = ""):
        self.struct = struct
        self.field = field
        self.type_text = type_text
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"Unsupported account type `{type_text}` for field `{field}` of `{struct}`{detail}"
        )


class InvalidProgramIdError(GenerationError):
    """declare_id! holds something that is not a valid Solana address."""
