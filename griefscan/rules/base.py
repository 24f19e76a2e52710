"""
Rule declaration type and helpers shared by the built-in rules.
"""
from __future__ import annotations

import fnmatch
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, Iterator, Optional, Tuple, Union

from ..core.models import FactKind, FunctionFacts, Severity, SourceLocation, StatementFact
from ..core.syntax import FunctionUnit


@dataclass(frozen=True)
class Match:
    """One place where a rule fires, before the engine turns it into a Finding."""
    location: SourceLocation
    rationale: str
    identifiers: Tuple[str, ...] = ()
    fact: Optional[StatementFact] = None

    def get(self, key: str, default: Any = None) -> Any:
        return self.fact.get(key, default) if self.fact is not None else default


MatchFn = Callable[[FunctionUnit, FunctionFacts], Iterable[Match]]
SeverityFn = Callable[[FunctionUnit, Match], Severity]


@dataclass(frozen=True)
class Rule:
    """
    A pure pattern rule.

    ``match`` inspects one function and its facts and yields Matches;
    ``severity`` is either a fixed level or a function assigning one per
    Match. Rules never see other rules' output.
    """
    rule_id: str
    title: str
    requires: FrozenSet[FactKind]
    match: MatchFn
    severity: Union[Severity, SeverityFn] = Severity.MEDIUM
    remediation_key: str = ""
    category: str = "unknown"
    description: str = ""
    cwe_id: Optional[str] = None
    confidence: float = 0.5
    tags: Tuple[str, ...] = field(default_factory=tuple)

    def applies_to(self, kinds: FrozenSet[FactKind]) -> bool:
        """Cheap pre-check: does the function carry any fact this rule needs?"""
        return not self.requires or not self.requires.isdisjoint(kinds)

    def severity_for(self, function: FunctionUnit, match: Match) -> Severity:
        if isinstance(self.severity, Severity):
            return self.severity
        return self.severity(function, match)

    @property
    def default_severity(self) -> Optional[Severity]:
        return self.severity if isinstance(self.severity, Severity) else None

    def matches_selector(self, selector: str) -> bool:
        """
        Check if this rule matches the given selector.

        Supports:
        - Exact id match: "reentrancy"
        - Glob patterns: "unbounded-*", "*-call"
        - Category patterns: "category:dos", "category:*"
        """
        if selector.startswith("category:"):
            category_pattern = selector[len("category:"):]
            if category_pattern == "*":
                return True
            return fnmatch.fnmatch(self.category, category_pattern)
        if selector == self.rule_id:
            return True
        return fnmatch.fnmatch(self.rule_id, selector)

    def get_metadata(self) -> Dict[str, Any]:
        """Get rule metadata for introspection."""
        default = self.default_severity
        return {
            "rule_id": self.rule_id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "requires": sorted(k.value for k in self.requires),
            "severity": default.name if default else "dynamic",
            "confidence": self.confidence,
            "remediation_key": self.remediation_key,
            "cwe_id": self.cwe_id,
            "tags": list(self.tags),
        }


def rule(
    rule_id: str,
    *,
    title: str,
    requires: Iterable[FactKind],
    severity: Union[Severity, SeverityFn] = Severity.MEDIUM,
    remediation_key: Optional[str] = None,
    category: str = "unknown",
    description: str = "",
    cwe_id: Optional[str] = None,
    confidence: float = 0.5,
    tags: Iterable[str] = (),
) -> Callable[[MatchFn], Rule]:
    """Decorator turning a match function into a :class:`Rule`."""
    def decorator(fn: MatchFn) -> Rule:
        return Rule(
            rule_id=rule_id,
            title=title,
            requires=frozenset(requires),
            match=fn,
            severity=severity,
            remediation_key=remediation_key or rule_id,
            category=category,
            description=description or (fn.__doc__ or "").strip(),
            cwe_id=cwe_id,
            confidence=confidence,
            tags=tuple(tags),
        )
    return decorator


def matches_for(facts: FunctionFacts, kind: FactKind, rationale: Callable[[StatementFact], str]) -> Iterator[Match]:
    """One Match per fact of ``kind``, in extraction order."""
    for fact in facts.of_kind(kind):
        yield Match(fact.location, rationale(fact), fact.identifiers, fact)

