"""Error taxonomy for effectscan analysis."""

from __future__ import annotations


class EffectScanError(RuntimeError):
    """Base class for every error raised by effectscan."""


class DeclarationParseError(EffectScanError):
    """Raised when a ``declare`` payload does not match the annotation grammar.

    ``text`` is the full payload and ``position`` the zero-based offset of the
    first offending character when the parser could determine one.
    """

    def __init__(
        self,
        message: str,
        *,
        text: str,
        position: int | None = None,
        function: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.text = text
        self.position = position
        self.function = function

    def for_function(self, function: str) -> DeclarationParseError:
        return DeclarationParseError(
            self.message,
            text=self.text,
            position=self.position,
            function=function,
        )

    def __str__(self) -> str:
        prefix = f"{self.function}: " if self.function else ""
        if self.position is None:
            return f"{prefix}{self.message}"
        return f"{prefix}{self.message} (at offset {self.position} in {self.text!r})"


class InferenceError(EffectScanError):
    """A fatal condition that aborts the analysis of one entrypoint."""

    kind = "inference-error"

    def __init__(self, message: str, *, function: str = "", lineno: int | None = None):
        super().__init__(message)
        self.message = message
        self.function = function
        self.lineno = lineno

    def __str__(self) -> str:
        where = self.function
        if self.lineno is not None:
            where = f"{where}:{self.lineno}" if where else f"line {self.lineno}"
        return f"{where}: {self.message}" if where else self.message


class UnsupportedBindingPattern(InferenceError):
    kind = "unsupported-binding-pattern"


class UnresolvedVariable(InferenceError):
    kind = "unresolved-variable"


class ArityError(InferenceError):
    kind = "arity"


class RecursionCycleError(InferenceError):
    """Raised when a function is re-entered with an argument shape already on the stack."""

    kind = "recursion-cycle"

    def __init__(self, cycle: tuple[str, ...], *, function: str = "", lineno: int | None = None):
        super().__init__(
            "recursive call cycle: " + " -> ".join(cycle),
            function=function,
            lineno=lineno,
        )
        self.cycle = cycle


class AnalysisBudgetExceeded(InferenceError):
    kind = "budget-exceeded"


class DeclarationUnavailable(InferenceError):
    """Wraps a :class:`DeclarationParseError` hit while analyzing a caller."""

    kind = "declaration-parse"

    def __init__(self, cause: DeclarationParseError, *, function: str = "", lineno: int | None = None):
        super().__init__(str(cause), function=function, lineno=lineno)
        self.cause = cause


class NeverThrown(EffectScanError):
    """Raised by :func:`effectscan.invariants.never` on a path that must not be reached.

    ``env`` carries the keyword context passed to ``never`` for the error report.
    """

    def __init__(self, reason: str, *, env: dict[str, object] | None = None):
        super().__init__(reason)
        self.reason = reason
        self.env = dict(env or {})

    def __str__(self) -> str:
        if not self.env:
            return self.reason
        context = ", ".join(f"{key}={value!r}" for key, value in sorted(self.env.items()))
        return f"{self.reason} ({context})"
