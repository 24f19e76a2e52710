"""Registry for analysis rules."""

import importlib
import logging
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Tuple

from ..config.settings import RuleSettings
from .errors import RegistryLockedError, UnknownRuleIdentifier

if TYPE_CHECKING:
    from ..rules.base import Rule

logger = logging.getLogger(__name__)

# Populated once at import time by the built-in rule modules; read-only afterwards.
_BUILTIN_RULES: Dict[str, "Rule"] = {}


def builtin_rule(rule):
    """Decorator to add a rule to the built-in table."""
    if rule.rule_id in _BUILTIN_RULES:
        logger.warning(f"Rule {rule.rule_id} is already registered. Overriding.")
    _BUILTIN_RULES[rule.rule_id] = rule
    logger.debug(f"Registered built-in rule: {rule.rule_id}")
    return rule


def get_builtin_rules() -> List["Rule"]:
    """Get the built-in rules in registration order."""
    importlib.import_module("griefscan.rules")
    return list(_BUILTIN_RULES.values())


class RuleRegistry:
    """
    Ordered set of rules evaluated by the engine.

    Registration order is evaluation order. The registry is read-only while a
    batch is in flight; register new rules between batches.
    """

    def __init__(self, rules=()):
        self._rules: Dict[str, "Rule"] = {}
        self._lock = threading.Lock()
        self._active_batches = 0
        for rule in rules:
            self.register(rule)

    @classmethod
    def with_builtins(cls) -> "RuleRegistry":
        return cls(get_builtin_rules())

    def register(self, rule):
        """Add ``rule``; usable as a decorator on Rule objects."""
        with self._lock:
            if self._active_batches:
                raise RegistryLockedError(
                    f"Cannot register {rule.rule_id} while an analysis batch is running"
                )
            if rule.rule_id in self._rules:
                logger.warning(f"Rule {rule.rule_id} is already registered. Overriding.")
                del self._rules[rule.rule_id]
            self._rules[rule.rule_id] = rule
        logger.debug(f"Registered rule: {rule.rule_id}")
        return rule

    def unregister(self, rule_id: str) -> None:
        with self._lock:
            if self._active_batches:
                raise RegistryLockedError(
                    f"Cannot unregister {rule_id} while an analysis batch is running"
                )
            if rule_id not in self._rules:
                raise UnknownRuleIdentifier([rule_id])
            del self._rules[rule_id]

    def get(self, rule_id: str) -> Optional["Rule"]:
        return self._rules.get(rule_id)

    def ids(self) -> List[str]:
        return list(self._rules)

    def snapshot(self) -> Tuple["Rule", ...]:
        with self._lock:
            return tuple(self._rules.values())

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._rules

    def __iter__(self) -> Iterator["Rule"]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def locked(self) -> bool:
        return self._active_batches > 0

    @contextmanager
    def batch(self) -> Iterator[Tuple["Rule", ...]]:
        """Hold the registry read-only and yield the rules for one batch."""
        with self._lock:
            self._active_batches += 1
            rules = tuple(self._rules.values())
        try:
            yield rules
        finally:
            with self._lock:
                self._active_batches -= 1

    def select(self, selector: str) -> List["Rule"]:
        """Rules matching an id, glob or ``category:`` selector."""
        return [rule for rule in self.snapshot() if rule.matches_selector(selector)]

    def resolve(self, settings: Optional[RuleSettings] = None, rules=None) -> Tuple["Rule", ...]:
        """
        Apply rule selection settings and return the enabled rules in order.

        Explicit disable beats explicit enable; ``enabled=None`` means every rule.

        Raises:
            UnknownRuleIdentifier: if a selector or severity override names no rule
        """
        settings = settings or RuleSettings()
        rules = self.snapshot() if rules is None else tuple(rules)
        unknown: List[str] = []

        def matching(selector: str) -> set:
            matched = {r.rule_id for r in rules if r.matches_selector(selector)}
            if not matched:
                unknown.append(selector)
            return matched

        if settings.enabled is None:
            enabled = {r.rule_id for r in rules}
        else:
            enabled = set()
            for selector in settings.enabled:
                enabled |= matching(selector)
        disabled = set()
        for selector in settings.disabled:
            disabled |= matching(selector)

        known = {r.rule_id for r in rules}
        unknown.extend(rule_id for rule_id in settings.severity_overrides if rule_id not in known)
        if unknown:
            raise UnknownRuleIdentifier(unknown)

        final = enabled - disabled
        return tuple(r for r in rules if r.rule_id in final)
