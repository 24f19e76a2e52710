"""Exception types raised by the analysis core."""

from typing import Iterable, Optional


class GriefscanError(Exception):
    """Base class for all griefscan errors."""


class MalformedInput(GriefscanError):
    """The Syntax Model violates a structural precondition."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class UnknownRuleIdentifier(GriefscanError):
    """Configuration references a rule that is not registered."""

    def __init__(self, identifiers: Iterable[str]):
        self.identifiers = tuple(identifiers)
        names = ", ".join(repr(i) for i in self.identifiers)
        super().__init__(f"Unknown rule identifier(s): {names}")


class RuleEvaluationError(GriefscanError):
    """A single rule failed while evaluating one function."""

    def __init__(self, rule_id: str, function_name: str, cause: BaseException):
        self.rule_id = rule_id
        self.function_name = function_name
        self.cause = cause
        super().__init__(
            f"Rule {rule_id} failed on {function_name}: {type(cause).__name__}: {cause}"
        )


class RegistryLockedError(GriefscanError):
    """A rule was registered while an analysis batch was in flight."""


class ConfigurationError(GriefscanError):
    """Configuration could not be loaded or validated."""
