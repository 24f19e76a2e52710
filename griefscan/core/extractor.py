"""
Fact extraction: one linear walk per function producing StatementFacts.

The walker keeps a small amount of running state (which storage variables
have been written so far, which locals alias storage lengths or balance
queries, which loops are open) and turns what it sees into the fact kinds
the rules consume. It never looks at another function's body.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ..config.settings import ExtractionSettings
from .errors import MalformedInput
from .models import FactKind, FunctionFacts, SourceLocation, StatementFact
from .syntax import (
    ASSIGNMENT_OPS, Assign, BinaryOp, Block, Call, ContractUnit, Delete, Emit, Expr,
    ExprStmt, FunctionUnit, Identifier, If, IndexAccess, Literal, Loop, MemberAccess,
    ParamKind, Parameter, Return, Revert, StateVariable, Stmt, Try, TupleExpr,
    UnaryOp, VarDecl, Visibility, dotted_name, mapping_value_type, root_name,
    walk_expr,
)

logger = logging.getLogger(__name__)

EXPR_TYPES = (Identifier, Literal, MemberAccess, IndexAccess, Call, BinaryOp, UnaryOp, TupleExpr)

# Roots whose member calls never leave the contract.
INTERNAL_NAMESPACES = frozenset({
    "abi", "msg", "block", "tx", "super", "this", "type",
    "string", "bytes", "Math", "SafeMath", "SafeCast", "Strings",
})
ARRAY_BUILTINS = frozenset({"push", "pop"})
GUARD_FUNCTIONS = frozenset({"require", "assert"})
HASH_FUNCTIONS = frozenset({"keccak256", "sha256", "ripemd160"})
COMPARISON_OPS = frozenset({"<", "<=", ">", ">=", "==", "!="})
ARITHMETIC_OPS = frozenset({"+", "-", "*", "/", "%", "**"})
COMPOUND_ASSIGN = ASSIGNMENT_OPS - {"="}
NEGATED_OP = {"<": ">=", "<=": ">", ">": "<=", ">=": "<", "==": "!=", "!=": "=="}
MIRRORED_OP = {"<": ">", "<=": ">=", ">": "<", ">=": "<=", "==": "==", "!=": "!="}
ELEMENTARY_TYPE_RE = re.compile(r"^(u?int\d*|bool|bytes\d*|string|bytes)$")
MINIMUM_NAME_RE = re.compile(r"^_?(?:(?:min|minimum)(?:[A-Z_]|$)|(?:MIN|MINIMUM)(?:_|$))")
STORAGE_QUALIFIERS = ("memory", "storage", "calldata")


@dataclass
class ContractFacts:
    """Facts for every function of one contract, in declaration order."""
    contract: ContractUnit
    functions: Tuple[FunctionFacts, ...] = ()

    def items(self):
        return zip(self.contract.functions, self.functions)

    def for_function(self, name: str) -> FunctionFacts:
        for function, facts in self.items():
            if name in (function.name, function.signature):
                return facts
        raise KeyError(name)


@dataclass
class _CallSite:
    call: Call
    location: SourceLocation
    target: str
    recipient: str
    value_transfer: bool
    low_level: bool
    can_reenter: bool
    fund_moving: bool
    in_try: bool = False
    loop_depth: int = 0
    reverted: bool = False
    result_var: Optional[str] = None
    reads: frozenset = frozenset()
    written_before: frozenset = frozenset()
    written_after: List[str] = field(default_factory=list)


@dataclass
class _LoopFrame:
    loop: Loop
    transfers: List[str] = field(default_factory=list)


@dataclass
class _Bound:
    unbounded: bool = False
    collection: str = ""
    text: str = ""
    reason: str = ""


def _literal_int(expr: Optional[Expr]) -> Optional[int]:
    if not isinstance(expr, Literal) or isinstance(expr.value, bool):
        return None
    value = expr.value
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(float(value)) if any(c in value for c in ".eE") else int(value, 0)
        except ValueError:
            return None
    return None


def _strip_type(type_name: str) -> str:
    parts = [p for p in (type_name or "").split() if p not in STORAGE_QUALIFIERS]
    base = " ".join(parts)
    while base.endswith("]"):
        base = base[:base.rindex("[")].strip()
    return base


def _dedupe(items) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(i for i in items if i))


class _FunctionWalker:
    """Single-pass traversal of one function body."""

    def __init__(
        self,
        contract: ContractUnit,
        function: FunctionUnit,
        settings: ExtractionSettings,
        reward_re: re.Pattern,
        contract_has_commit: bool,
    ):
        self.contract = contract
        self.function = function
        self.settings = settings
        self.reward_re = reward_re
        self.contract_has_commit = contract_has_commit
        self.path = f"contract {contract.name}.{function.signature}"

        self.state_vars: Dict[str, StateVariable] = {v.name: v for v in contract.state_variables}
        self.local_types: Dict[str, str] = {p.name: p.type_name for p in function.parameters if p.name}
        self.params: Dict[str, Parameter] = {p.name: p for p in function.parameters if p.name}
        self.storage_aliases: Dict[str, StateVariable] = {}
        self.length_aliases: Dict[str, str] = {}
        self.balance_aliases: Set[str] = set()

        self.facts: List[StatementFact] = []
        self.written: List[str] = []
        self.reads: Set[str] = set()
        self.calls: List[_CallSite] = []
        self.pending: List[_CallSite] = []
        self.loops: List[_LoopFrame] = []
        self.try_depth = 0
        self.saw_loop = False
        self.fund_moving = False
        self.guarded_subjects: Set[str] = set()
        self.asserted_names: Set[str] = set()
        self.growth: List[Tuple[SourceLocation, str, str]] = []
        self.hash_reveal: Optional[Tuple[SourceLocation, str, str]] = None
        self.stmt_location = function.location

    # -- entry point ------------------------------------------------------

    def run(self) -> FunctionFacts:
        self._visit_body(self.function.body)
        self._finish()
        return FunctionFacts(self.function.name, tuple(self.facts))

    @property
    def interacts(self) -> bool:
        """Whether the function calls out or iterates; otherwise it is trivial."""
        return bool(self.calls) or self.saw_loop

    def _emit(self, kind: FactKind, location: SourceLocation, identifiers=(), **attributes) -> None:
        self.facts.append(
            StatementFact(
                kind=kind,
                location=location,
                identifiers=_dedupe(identifiers),
                attributes=tuple(sorted(attributes.items())),
            )
        )

    # -- name resolution --------------------------------------------------

    def _state_var(self, name: Optional[str]) -> Optional[StateVariable]:
        """State variable behind ``name``, following storage pointers and shadowing."""
        if not name:
            return None
        if name in self.storage_aliases:
            return self.storage_aliases[name]
        if name in self.local_types:
            return None
        return self.state_vars.get(name)

    def _type_of(self, name: Optional[str]) -> str:
        if not name:
            return ""
        if name in self.local_types:
            return self.local_types[name]
        var = self._state_var(name)
        if var is not None:
            return mapping_value_type(var.type_name)
        return ""

    def _is_elementary(self, name: Optional[str]) -> bool:
        return bool(ELEMENTARY_TYPE_RE.match(_strip_type(self._type_of(name))))

    def _is_constant_name(self, name: str) -> bool:
        var = self.state_vars.get(name)
        if var is not None and name not in self.local_types:
            return not var.mutable or bool(MINIMUM_NAME_RE.match(name))
        return name.isupper()

    def _declare_local(self, name: str, type_name: str = "") -> None:
        self.local_types[name] = type_name
        self.storage_aliases.pop(name, None)
        self.length_aliases.pop(name, None)
        self.balance_aliases.discard(name)

    # -- statements -------------------------------------------------------

    def _visit_body(self, body) -> None:
        if not isinstance(body, tuple):
            raise MalformedInput("statement body must be a tuple", self.path)
        for stmt in body:
            self._visit_stmt(stmt)

    def _visit_stmt(self, stmt: Stmt) -> None:
        if not isinstance(stmt, Stmt):
            raise MalformedInput(f"unexpected statement node {type(stmt).__name__}", self.path)
        self.stmt_location = stmt.location if stmt.location.line else self.stmt_location

        if isinstance(stmt, Assign):
            self._visit_assign(stmt)
        elif isinstance(stmt, VarDecl):
            self._visit_var_decl(stmt)
        elif isinstance(stmt, ExprStmt):
            self._visit_expr(stmt.expr)
        elif isinstance(stmt, If):
            self._visit_if(stmt)
        elif isinstance(stmt, Loop):
            self._visit_loop(stmt)
        elif isinstance(stmt, Try):
            self.try_depth += 1
            try:
                self._visit_expr(stmt.call)
            finally:
                self.try_depth -= 1
            self._visit_body(stmt.body)
            self._visit_body(stmt.catch_body)
        elif isinstance(stmt, Return):
            self._visit_expr(stmt.value)
            if stmt.value is not None:
                self._check_balance_dependency(self.function.name, stmt.value, stmt.location)
        elif isinstance(stmt, Revert):
            for arg in stmt.args:
                self._visit_expr(arg)
        elif isinstance(stmt, Delete):
            self._visit_lvalue(stmt.target)
            self._record_write(stmt.target)
        elif isinstance(stmt, Emit):
            self._visit_expr(stmt.event)
        elif isinstance(stmt, Block):
            self._visit_body(stmt.body)
        else:
            raise MalformedInput(f"unsupported statement node {type(stmt).__name__}", self.path)

    def _visit_assign(self, stmt: Assign) -> None:
        self._visit_expr(stmt.value)
        targets = stmt.target.items if isinstance(stmt.target, TupleExpr) else (stmt.target,)
        for target in targets:
            if target is None:
                continue
            self._visit_lvalue(target)
            if stmt.op in COMPOUND_ASSIGN:
                self._note_read(root_name(target))
            name = root_name(target)
            if isinstance(target, Identifier) and self._state_var(name) is None:
                self._track_local(name, stmt.value)
            self._record_write(target, increment=self._is_unit_increment(stmt))
        if isinstance(stmt.value, Call):
            self._capture_result(stmt.value, targets)
        self._check_balance_dependency(root_name(stmt.target), stmt.value, stmt.location)

    def _visit_var_decl(self, stmt: VarDecl) -> None:
        self._visit_expr(stmt.value)
        for name in stmt.names:
            self._declare_local(name, stmt.type_name)
        if len(stmt.names) == 1:
            name = stmt.names[0]
            if "storage" in stmt.type_name.split() and stmt.value is not None:
                var = self._state_var(root_name(stmt.value))
                if var is not None:
                    self.storage_aliases[name] = var
            self._track_local(name, stmt.value)
            self._check_balance_dependency(name, stmt.value, stmt.location)
        if isinstance(stmt.value, Call):
            self._capture_result(stmt.value, [Identifier(n) for n in stmt.names])

    def _visit_if(self, stmt: If) -> None:
        self._visit_expr(stmt.condition)
        if self._reverts(stmt.then_body):
            self._record_guard(stmt.condition, negated=True)
        self._visit_body(stmt.then_body)
        self._visit_body(stmt.else_body)

    def _visit_loop(self, loop: Loop) -> None:
        self.saw_loop = True
        self._visit_body(loop.init)
        bound = self._loop_bound(loop.condition)
        frame = _LoopFrame(loop)
        self.loops.append(frame)
        try:
            self._visit_expr(loop.condition)
            self._visit_body(loop.body)
            self._visit_body(loop.update)
        finally:
            self.loops.pop()

        if bound.unbounded:
            self._emit(
                FactKind.LOOP_OVER_UNBOUNDED_COLLECTION,
                loop.location,
                (bound.collection,),
                bound=bound.text,
                pays_out=bool(frame.transfers),
                reason=bound.reason,
            )
        if frame.transfers:
            self._emit(
                FactKind.PUSH_FUNDS_IN_LOOP,
                loop.location,
                frame.transfers,
                bound=bound.text,
                storage_bound=bound.unbounded,
            )

    def _reverts(self, body: Tuple[Stmt, ...]) -> bool:
        for stmt in body:
            if isinstance(stmt, Revert):
                return True
            if isinstance(stmt, ExprStmt) and isinstance(stmt.expr, Call):
                call = stmt.expr
                if isinstance(call.callee, Identifier) and call.name == "revert":
                    return True
                if call.name in GUARD_FUNCTIONS and call.args \
                        and isinstance(call.args[0], Literal) and call.args[0].value is False:
                    return True
        return False

    # -- expressions ------------------------------------------------------

    def _visit_expr(self, expr: Optional[Expr], reverts: bool = False) -> None:
        if expr is None:
            return
        if not isinstance(expr, EXPR_TYPES):
            raise MalformedInput(f"unexpected expression node {type(expr).__name__}", self.path)

        if isinstance(expr, Identifier):
            self._note_read(expr.name)
        elif isinstance(expr, Call):
            self._visit_call(expr, reverts)
        elif isinstance(expr, MemberAccess):
            self._visit_expr(expr.base, reverts)
        elif isinstance(expr, IndexAccess):
            self._visit_expr(expr.base, reverts)
            self._visit_expr(expr.index, reverts)
        elif isinstance(expr, BinaryOp):
            self._visit_expr(expr.left, reverts)
            self._visit_expr(expr.right, reverts)
            if expr.op in ("==", "!="):
                self._check_hash_reveal(expr)
        elif isinstance(expr, UnaryOp):
            self._visit_expr(expr.operand, reverts)
            if expr.op in ("++", "--"):
                self._record_write(expr.operand, increment=expr.op == "++")
            elif expr.op == "delete":
                self._record_write(expr.operand)
        elif isinstance(expr, TupleExpr):
            for item in expr.items:
                self._visit_expr(item, reverts)

    def _visit_lvalue(self, target: Expr) -> None:
        """Visit the sub-expressions of an assignment target without counting it as a read."""
        if not isinstance(target, EXPR_TYPES):
            raise MalformedInput(f"unexpected assignment target {type(target).__name__}", self.path)
        if isinstance(target, IndexAccess):
            self._visit_lvalue(target.base)
            self._visit_expr(target.index)
        elif isinstance(target, MemberAccess):
            self._visit_lvalue(target.base)
        elif not isinstance(target, Identifier):
            self._visit_expr(target)

    def _note_read(self, name: Optional[str]) -> None:
        var = self._state_var(name)
        if var is not None:
            self.reads.add(var.name)

    def _visit_call(self, call: Call, reverts: bool) -> None:
        callee = call.callee
        if isinstance(callee, Identifier) and call.name in GUARD_FUNCTIONS:
            if call.args:
                self._record_guard(call.args[0], negated=False)
            for arg in call.args:
                self._visit_expr(arg, reverts=True)
            return

        if isinstance(callee, MemberAccess):
            self._visit_expr(callee.base, reverts)
        elif not isinstance(callee, Identifier):
            self._visit_expr(callee, reverts)
        self._visit_expr(call.value, reverts)
        for arg in call.args:
            self._visit_expr(arg, reverts)

        if isinstance(callee, MemberAccess) and callee.member in ARRAY_BUILTINS:
            self._record_write(callee.base, push=callee.member == "push")
            return

        site = self._classify_call(call)
        if site is not None:
            site.reverted = reverts
            self._record_call(site)

    def _classify_call(self, call: Call) -> Optional[_CallSite]:
        callee = call.callee
        if not isinstance(callee, MemberAccess):
            return None
        s = self.settings
        member = callee.member
        root = root_name(callee.base)

        low_level = member in s.low_level_call_members
        if member in s.value_transfer_members:
            value_transfer = True
        elif low_level:
            value_transfer = call.value is not None and _literal_int(call.value) != 0
        else:
            value_transfer = False

        if not (value_transfer or low_level):
            if root in INTERNAL_NAMESPACES or root in self.contract.libraries:
                return None
            if self._is_elementary(root):
                return None

        if len(call.args) >= 2 and member not in s.low_level_call_members:
            recipient = dotted_name(call.args[0])
        else:
            recipient = dotted_name(callee.base)
        is_query = member in s.balance_query_members or member == "staticcall"
        return _CallSite(
            call=call,
            location=call.location if call.location.line else self.stmt_location,
            target=dotted_name(callee),
            recipient=recipient,
            value_transfer=value_transfer,
            low_level=low_level,
            can_reenter=not is_query,
            fund_moving=value_transfer or member in s.token_pull_members,
        )

    def _record_call(self, site: _CallSite) -> None:
        site.in_try = self.try_depth > 0
        site.loop_depth = len(self.loops)
        site.reads = frozenset(self.reads)
        site.written_before = frozenset(self.written)
        self.calls.append(site)
        if site.fund_moving:
            self.fund_moving = True
        if site.value_transfer and self.loops:
            # Innermost loop only.
            self.loops[-1].transfers.append(site.target)
        if not site.can_reenter:
            return
        if self.written:
            self._emit(
                FactKind.EXTERNAL_CALL_AFTER_STATE_WRITE,
                site.location,
                (site.target, *self.written),
                value_transfer=site.value_transfer,
            )
        # Still pending for every variable not written yet.
        self.pending.append(site)

    def _capture_result(self, call: Call, targets) -> None:
        first = next((t for t in targets if t is not None), None)
        if not isinstance(first, Identifier):
            return
        for site in self.calls:
            if site.call is call and site.low_level:
                site.result_var = first.name

    # -- writes -----------------------------------------------------------

    def _record_write(self, target: Expr, increment: bool = False, push: bool = False) -> None:
        var = self._state_var(root_name(target))
        if var is None or not var.mutable:
            return
        self.written.append(var.name)
        for site in self.pending:
            if var.name in site.written_before:
                continue
            if var.name in site.reads or (var.holds_amount and site.fund_moving):
                site.written_after.append(var.name)

        if push or (increment and isinstance(target, Identifier)):
            self.growth.append((self.stmt_location, var.name, "push" if push else "increment"))

    def _is_unit_increment(self, stmt: Assign) -> bool:
        return stmt.op == "+=" and _literal_int(stmt.value) == 1

    def _is_open_entrypoint(self) -> bool:
        fn = self.function
        if not fn.visibility.is_entrypoint or fn.kind == "constructor" or fn.is_read_only:
            return False
        guards = self.settings.access_control_modifiers
        return not any(g.lower() in m.lower() for m in fn.modifiers for g in guards)

    def _has_reentrancy_guard(self) -> bool:
        guards = {g.lower() for g in self.settings.reentrancy_guard_modifiers}
        return any(m.split("(")[0].strip().lower() in guards for m in self.function.modifiers)

    # -- local aliases ----------------------------------------------------

    def _track_local(self, name: Optional[str], value: Optional[Expr]) -> None:
        if not name or value is None:
            return
        if isinstance(value, MemberAccess) and value.member == "length":
            var = self._state_var(root_name(value.base))
            if var is not None and var.mutable:
                self.length_aliases[name] = var.name
        if any(self._is_balance_source(e) for e in walk_expr(value)):
            self.balance_aliases.add(name)

    def _is_balance_query(self, expr: Expr) -> bool:
        is_call = isinstance(expr, Call)
        if is_call:
            expr = expr.callee
        if not isinstance(expr, MemberAccess) or expr.member not in self.settings.balance_query_members:
            return False
        root = root_name(expr.base)
        if is_call:
            return root not in INTERNAL_NAMESPACES or root == "this"
        # ``users[a].balance`` is internal bookkeeping, not a balance query.
        var = self._state_var(root)
        return var is None or mapping_value_type(var.type_name).startswith("address")

    def _is_balance_source(self, expr: Expr) -> bool:
        if isinstance(expr, Identifier):
            return expr.name in self.balance_aliases
        return self._is_balance_query(expr)

    def _check_balance_dependency(self, target: Optional[str], value: Optional[Expr], location) -> None:
        if not target or value is None or not self.reward_re.search(target):
            return
        sources = []
        for node in walk_expr(value):
            if isinstance(node, BinaryOp) and node.op in ARITHMETIC_OPS:
                for sub in walk_expr(node):
                    if isinstance(sub, Call) and self._is_balance_query(sub):
                        sources.append(dotted_name(sub.callee))
                    elif isinstance(sub, MemberAccess) and self._is_balance_query(sub):
                        sources.append(dotted_name(sub))
                    elif isinstance(sub, Identifier) and sub.name in self.balance_aliases:
                        sources.append(sub.name)
        if sources:
            self._emit(FactKind.BALANCE_OF_DEPENDENCY, location, (target, *sources))

    # -- loops ------------------------------------------------------------

    def _loop_bound(self, condition: Optional[Expr]) -> _Bound:
        if condition is None:
            return _Bound()
        limit = self.settings.max_constant_loop_bound
        for node in walk_expr(condition):
            if not (isinstance(node, BinaryOp) and node.op in COMPARISON_OPS):
                continue
            for side in (node.left, node.right):
                text = dotted_name(side)
                if isinstance(side, MemberAccess) and side.member == "length":
                    var = self._state_var(root_name(side.base))
                    if var is not None and var.mutable:
                        return _Bound(True, var.name, text, "storage-length")
                elif isinstance(side, Identifier):
                    if side.name in self.length_aliases:
                        return _Bound(True, self.length_aliases[side.name], text, "storage-length")
                    var = self._state_var(side.name)
                    if var is not None and var.mutable and var.holds_amount:
                        return _Bound(True, var.name, text, "storage-counter")
                else:
                    value = _literal_int(side)
                    if value is not None and limit is not None and value > limit:
                        return _Bound(True, str(value), str(value), "constant-exceeds-limit")
        return _Bound(text=dotted_name(condition))

    # -- guards -----------------------------------------------------------

    def _record_guard(self, condition: Expr, negated: bool) -> None:
        for node in walk_expr(condition):
            if isinstance(node, Identifier):
                self.asserted_names.add(node.name)
        for op, subject, bound in self._comparisons(condition, negated):
            if self._is_minimum_guard(op, bound):
                self.guarded_subjects.add(subject)

    def _comparisons(self, expr: Expr, negated: bool):
        """Yield (op, subject, bound) triples in ``require`` polarity."""
        if isinstance(expr, UnaryOp) and expr.op == "!":
            yield from self._comparisons(expr.operand, not negated)
            return
        if isinstance(expr, BinaryOp):
            splitter = "||" if negated else "&&"
            if expr.op == splitter:
                yield from self._comparisons(expr.left, negated)
                yield from self._comparisons(expr.right, negated)
                return
            if expr.op in COMPARISON_OPS:
                op = NEGATED_OP[expr.op] if negated else expr.op
                yield op, dotted_name(expr.left), expr.right
                yield MIRRORED_OP[op], dotted_name(expr.right), expr.left

    def _is_minimum_guard(self, op: str, bound: Expr) -> bool:
        floor = self.settings.minimum_amount_floor
        value = _literal_int(bound)
        if value is None:
            if isinstance(bound, Identifier) and self._is_constant_name(bound.name):
                return op in (">", ">=")
            return False
        if op == ">":
            return value >= floor
        if op == ">=":
            return value > floor
        if op == "!=":
            return value == 0 and floor == 0
        return False

    # -- front-running ----------------------------------------------------

    def _check_hash_reveal(self, expr: BinaryOp) -> None:
        for hashed, other in ((expr.left, expr.right), (expr.right, expr.left)):
            param = self._hashed_param(hashed)
            if param is None:
                continue
            for node in walk_expr(other):
                var = self._state_var(node.name) if isinstance(node, Identifier) else None
                if var is not None:
                    location = expr.location if expr.location.line else self.stmt_location
                    self.hash_reveal = (location, param, var.name)
                    return

    def _hashed_param(self, expr: Expr) -> Optional[str]:
        for node in walk_expr(expr):
            if isinstance(node, Call) and isinstance(node.callee, Identifier) and node.name in HASH_FUNCTIONS:
                for sub in walk_expr(node):
                    if isinstance(sub, Identifier) and sub.name in self.params:
                        return sub.name
        return None

    # -- end of function --------------------------------------------------

    def _finish(self) -> None:
        fn = self.function
        if not self.interacts:
            # No calls and no loops: nothing here can be griefed.
            self.facts.clear()
            return

        if self._is_open_entrypoint():
            for location, name, operation in self.growth:
                self._emit(FactKind.SHARED_MUTABLE_COUNTER, location, (name,), operation=operation)

        for site in self.pending:
            if site.written_after:
                self._emit(
                    FactKind.EXTERNAL_CALL_BEFORE_STATE_WRITE,
                    site.location,
                    (site.target, *site.written_after),
                    value_transfer=site.value_transfer,
                    guarded=self._has_reentrancy_guard(),
                )

        for site in self.calls:
            if site.in_try:
                continue
            if site.low_level and not (site.reverted or site.result_var in self.asserted_names):
                continue
            self._emit(
                FactKind.UNGUARDED_EXTERNAL_CALL,
                site.location,
                (site.target,),
                in_loop=site.loop_depth > 0,
                low_level=site.low_level,
                recipient=site.recipient,
                value_transfer=site.value_transfer,
            )

        if fn.visibility.is_entrypoint and fn.kind != "constructor" and self.fund_moving:
            subjects = [p.name for p in fn.params_of_kind(ParamKind.AMOUNT)]
            if fn.is_payable:
                subjects.append("msg.value")
            for subject in subjects:
                if subject not in self.guarded_subjects:
                    self._emit(
                        FactKind.NO_MINIMUM_AMOUNT_CHECK,
                        fn.location,
                        (subject,),
                        floor=self.settings.minimum_amount_floor,
                    )

        if (
            self.hash_reveal is not None
            and fn.visibility.is_entrypoint
            and not fn.is_read_only
            and not self.contract_has_commit
        ):
            location, param, stored = self.hash_reveal
            self._emit(FactKind.MISSING_COMMIT_REVEAL, location, (param, stored))


def validate_contract(contract: ContractUnit) -> None:
    """
    Check the structural preconditions the walker relies on.

    Raises:
        MalformedInput: on the first violation found
    """
    if not isinstance(contract, ContractUnit):
        raise MalformedInput(f"expected ContractUnit, got {type(contract).__name__}")
    if not isinstance(contract.name, str) or not contract.name:
        raise MalformedInput("contract name must be a non-empty string")
    path = f"contract {contract.name}"
    if not isinstance(contract.functions, tuple):
        raise MalformedInput("functions must be a tuple", path)
    for var in contract.state_variables:
        if not isinstance(var, StateVariable) or not var.name:
            raise MalformedInput("invalid state variable declaration", path)
    for function in contract.functions:
        if not isinstance(function, FunctionUnit):
            raise MalformedInput(f"expected FunctionUnit, got {type(function).__name__}", path)
        if not isinstance(function.name, str) or not function.name:
            raise MalformedInput("function name must be a non-empty string", path)
        if not isinstance(function.visibility, Visibility):
            raise MalformedInput(f"invalid visibility {function.visibility!r}", f"{path}.{function.name}")
        for param in function.parameters:
            if not isinstance(param, Parameter):
                raise MalformedInput("invalid parameter declaration", f"{path}.{function.name}")


class FactExtractor:
    """Derives StatementFacts for every function of a ContractUnit."""

    def __init__(self, settings: Optional[ExtractionSettings] = None):
        self.settings = settings or ExtractionSettings()
        self._reward_re = re.compile(self.settings.reward_variable_pattern, re.IGNORECASE)
        self._commit_re = re.compile(self.settings.commit_name_pattern, re.IGNORECASE)

    def extract(self, contract: ContractUnit) -> ContractFacts:
        """
        Extract facts for all functions of ``contract``.

        Raises:
            MalformedInput: if the Syntax Model is structurally invalid
        """
        validate_contract(contract)
        has_commit = self._has_commit_phase(contract)
        functions = tuple(self._walk(contract, fn, has_commit) for fn in contract.functions)
        logger.debug(
            f"Extracted {sum(len(f.facts) for f in functions)} facts "
            f"from {len(functions)} functions of {contract.name}"
        )
        return ContractFacts(contract, functions)

    def extract_function(self, contract: ContractUnit, function: FunctionUnit) -> FunctionFacts:
        """Extract facts for a single function of ``contract``."""
        validate_contract(contract)
        return self._walk(contract, function, self._has_commit_phase(contract))

    def _walk(self, contract: ContractUnit, function: FunctionUnit, has_commit: bool) -> FunctionFacts:
        return _FunctionWalker(contract, function, self.settings, self._reward_re, has_commit).run()

    def _has_commit_phase(self, contract: ContractUnit) -> bool:
        names = [v.name for v in contract.state_variables] + [f.name for f in contract.functions]
        return any(self._commit_re.search(name) for name in names)
