"""Core data models for fact extraction, rule evaluation and reporting."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Tuple


class Severity(IntEnum):
    """Severity levels for findings with deterministic ordering and scores."""
    INFO = 1
    LOW = 2
    MEDIUM = 3
    HIGH = 4
    CRITICAL = 5

    @property
    def score(self) -> int:
        """Numeric score used for comparisons and ranking."""
        return int(self)

    @classmethod
    def from_string(cls, value: str) -> "Severity":
        name = (value or "").strip().upper()
        aliases = {"INFORMATIONAL": "INFO"}
        name = aliases.get(name, name)
        if name in cls.__members__:
            return cls[name]
        raise ValueError(f"Unknown severity: {value}")

    def __str__(self) -> str:
        return self.name


class FactKind(str, Enum):
    """Kinds of semantic observations derived from a function body."""
    LOOP_OVER_UNBOUNDED_COLLECTION = "LoopOverUnboundedCollection"
    EXTERNAL_CALL_BEFORE_STATE_WRITE = "ExternalCallBeforeStateWrite"
    EXTERNAL_CALL_AFTER_STATE_WRITE = "ExternalCallAfterStateWrite"
    PUSH_FUNDS_IN_LOOP = "PushFundsInLoop"
    BALANCE_OF_DEPENDENCY = "BalanceOfDependency"
    NO_MINIMUM_AMOUNT_CHECK = "NoMinimumAmountCheck"
    SHARED_MUTABLE_COUNTER = "SharedMutableCounter"
    UNGUARDED_EXTERNAL_CALL = "UnguardedExternalCall"
    MISSING_COMMIT_REVEAL = "MissingCommitReveal"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, order=True)
class SourceLocation:
    """Position of a syntax node in the original source."""
    line: int = 0
    column: int = 0
    file: str = ""

    def __str__(self) -> str:
        prefix = f"{self.file}:" if self.file else ""
        return f"{prefix}{self.line}:{self.column}"


@dataclass(frozen=True)
class StatementFact:
    """A single derived observation about one function."""
    kind: FactKind
    location: SourceLocation
    identifiers: Tuple[str, ...] = ()
    attributes: Tuple[Tuple[str, Any], ...] = ()

    def get(self, key: str, default: Any = None) -> Any:
        for name, value in self.attributes:
            if name == key:
                return value
        return default


@dataclass(frozen=True)
class FunctionFacts:
    """Facts extracted for one function, in traversal order."""
    function_name: str
    facts: Tuple[StatementFact, ...] = ()

    @property
    def kinds(self) -> frozenset:
        return frozenset(f.kind for f in self.facts)

    def of_kind(self, kind: FactKind) -> List[StatementFact]:
        return [f for f in self.facts if f.kind == kind]

    def __bool__(self) -> bool:
        return bool(self.facts)


@dataclass(frozen=True)
class Finding:
    """Security finding produced by a rule for one function."""
    rule_id: str
    severity: Severity
    contract_name: str
    function_name: str
    rationale: str
    location: SourceLocation = field(default_factory=SourceLocation)
    title: str = ""
    remediation_key: str = ""
    remediation: Tuple[str, ...] = ()
    identifiers: Tuple[str, ...] = ()
    confidence: float = 1.0
    category: str = "generic"
    cwe_id: Optional[str] = None
    function_signature: str = ""

    @property
    def function_key(self) -> str:
        return self.function_signature or self.function_name

    @property
    def key(self) -> Tuple[str, str, SourceLocation]:
        """Deduplication key: (rule, function, location)."""
        return (self.rule_id, self.function_key, self.location)

    @property
    def is_error(self) -> bool:
        return self.rule_id == RULE_EVALUATION_ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "title": self.title,
            "severity": self.severity.name,
            "contract": self.contract_name,
            "function": self.function_name,
            "signature": self.function_signature,
            "rationale": self.rationale,
            "location": {
                "file": self.location.file,
                "line": self.location.line,
                "column": self.location.column,
            },
            "remediation_key": self.remediation_key,
            "remediation": list(self.remediation),
            "identifiers": list(self.identifiers),
            "confidence": self.confidence,
            "category": self.category,
            "cwe_id": self.cwe_id,
        }


RULE_EVALUATION_ERROR = "rule-evaluation-error"


@dataclass(frozen=True)
class FunctionGroup:
    """Findings for one function, ranked by the aggregator."""
    function_name: str
    function_signature: str
    declaration_index: int
    findings: Tuple[Finding, ...]

    @property
    def max_severity(self) -> Severity:
        return max((f.severity for f in self.findings), default=Severity.INFO)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "function": self.function_name,
            "signature": self.function_signature,
            "max_severity": self.max_severity.name,
            "findings": [f.to_dict() for f in self.findings],
        }


@dataclass(frozen=True)
class AnalysisReport:
    """Read-only grouped findings for one contract."""
    contract_name: str
    groups: Tuple[FunctionGroup, ...] = ()

    @property
    def findings(self) -> List[Finding]:
        return [f for group in self.groups for f in group.findings]

    def by_rule(self, rule_id: str) -> List[Finding]:
        return [f for f in self.findings if f.rule_id == rule_id]

    def for_function(self, function_name: str) -> Tuple[Finding, ...]:
        """Findings for a function, matched by name or full signature."""
        matched: List[Finding] = []
        for group in self.groups:
            if function_name in (group.function_name, group.function_signature):
                matched.extend(group.findings)
        return tuple(matched)

    def severity_counts(self) -> Dict[str, int]:
        counts = {s.name: 0 for s in Severity}
        for finding in self.findings:
            counts[finding.severity.name] += 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contract": self.contract_name,
            "summary": self.severity_counts(),
            "groups": [g.to_dict() for g in self.groups],
        }


@dataclass(frozen=True)
class ContractError:
    """A contract whose analysis failed; kept apart from findings."""
    contract_name: str
    error_type: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contract": self.contract_name,
            "error_type": self.error_type,
            "message": self.message,
        }


@dataclass(frozen=True)
class BatchReport:
    """Results of analyzing several contracts in one batch."""
    reports: Tuple[AnalysisReport, ...] = ()
    errors: Tuple[ContractError, ...] = ()

    @property
    def findings(self) -> List[Finding]:
        return [f for report in self.reports for f in report.findings]

    def report_for(self, contract_name: str) -> Optional[AnalysisReport]:
        for report in self.reports:
            if report.contract_name == contract_name:
                return report
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reports": [r.to_dict() for r in self.reports],
            "errors": [e.to_dict() for e in self.errors],
        }
