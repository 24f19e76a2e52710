"""
Normalized Syntax Model handed to the engine by a front-end parser.

The model is deliberately small: it keeps only the structure the fact
extractor needs (calls, assignments, loops, guards) and loses the rest of
the source language. ``load_contract`` builds it from the JSON-like mapping
emitted by a parser adapter.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from .errors import MalformedInput
from .models import SourceLocation


class Visibility(str, Enum):
    PUBLIC = "public"
    EXTERNAL = "external"
    INTERNAL = "internal"
    PRIVATE = "private"

    @property
    def is_entrypoint(self) -> bool:
        return self in (Visibility.PUBLIC, Visibility.EXTERNAL)


class ParamKind(str, Enum):
    """Semantic kind of a declared parameter."""
    ADDRESS = "address"
    AMOUNT = "amount"
    ARRAY = "array"
    OTHER = "other"


AMOUNT_NAME_RE = re.compile(
    r"(amount|value|wad|qty|quantity|shares?|assets?|deposit|bid|price|tokens?)",
    re.IGNORECASE,
)


def infer_param_kind(name: str, type_name: str) -> ParamKind:
    """Guess the semantic kind of a parameter from its declared type and name."""
    type_name = (type_name or "").strip()
    if type_name.endswith("]"):
        return ParamKind.ARRAY
    if type_name.startswith("address"):
        return ParamKind.ADDRESS
    if is_numeric_type(type_name) and AMOUNT_NAME_RE.search(name or ""):
        return ParamKind.AMOUNT
    return ParamKind.OTHER


def is_numeric_type(type_name: str) -> bool:
    return bool(re.match(r"^u?int\d*$", (type_name or "").strip()))


def mapping_value_type(type_name: str) -> str:
    """Return the innermost value type of a mapping, or the type itself."""
    type_name = (type_name or "").strip()
    while type_name.startswith("mapping"):
        _, _, rest = type_name.partition("=>")
        type_name = rest.strip()
        if type_name.endswith(")"):
            type_name = type_name[:-1].strip()
    return type_name


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

class Expr:
    """Base class for expression nodes."""

    location: SourceLocation


@dataclass(frozen=True)
class Identifier(Expr):
    name: str
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass(frozen=True)
class Literal(Expr):
    value: Any
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass(frozen=True)
class MemberAccess(Expr):
    base: Expr
    member: str
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass(frozen=True)
class IndexAccess(Expr):
    base: Expr
    index: Optional[Expr] = None
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass(frozen=True)
class Call(Expr):
    callee: Expr
    args: Tuple[Expr, ...] = ()
    value: Optional[Expr] = None
    location: SourceLocation = field(default_factory=SourceLocation)

    @property
    def name(self) -> str:
        """Called function or member name."""
        if isinstance(self.callee, Identifier):
            return self.callee.name
        if isinstance(self.callee, MemberAccess):
            return self.callee.member
        return ""


@dataclass(frozen=True)
class BinaryOp(Expr):
    op: str
    left: Expr
    right: Expr
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass(frozen=True)
class UnaryOp(Expr):
    op: str
    operand: Expr
    prefix: bool = True
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass(frozen=True)
class TupleExpr(Expr):
    items: Tuple[Optional[Expr], ...] = ()
    location: SourceLocation = field(default_factory=SourceLocation)


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------

class Stmt:
    """Base class for statement nodes."""

    location: SourceLocation


@dataclass(frozen=True)
class Assign(Stmt):
    target: Expr
    value: Expr
    op: str = "="
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass(frozen=True)
class VarDecl(Stmt):
    names: Tuple[str, ...]
    type_name: str = ""
    value: Optional[Expr] = None
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass(frozen=True)
class ExprStmt(Stmt):
    expr: Expr
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass(frozen=True)
class If(Stmt):
    condition: Expr
    then_body: Tuple[Stmt, ...] = ()
    else_body: Tuple[Stmt, ...] = ()
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass(frozen=True)
class Loop(Stmt):
    kind: str
    condition: Optional[Expr] = None
    body: Tuple[Stmt, ...] = ()
    init: Tuple[Stmt, ...] = ()
    update: Tuple[Stmt, ...] = ()
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass(frozen=True)
class Try(Stmt):
    call: Expr
    body: Tuple[Stmt, ...] = ()
    catch_body: Tuple[Stmt, ...] = ()
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass(frozen=True)
class Return(Stmt):
    value: Optional[Expr] = None
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass(frozen=True)
class Revert(Stmt):
    args: Tuple[Expr, ...] = ()
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass(frozen=True)
class Delete(Stmt):
    target: Expr
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass(frozen=True)
class Emit(Stmt):
    event: Expr
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass(frozen=True)
class Block(Stmt):
    body: Tuple[Stmt, ...] = ()
    location: SourceLocation = field(default_factory=SourceLocation)


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StateVariable:
    name: str
    type_name: str
    constant: bool = False
    immutable: bool = False
    location: SourceLocation = field(default_factory=SourceLocation)

    @property
    def mutable(self) -> bool:
        return not (self.constant or self.immutable)

    @property
    def holds_amount(self) -> bool:
        """True for numeric variables and mappings to numeric values."""
        return is_numeric_type(mapping_value_type(self.type_name))


@dataclass(frozen=True)
class Parameter:
    name: str
    type_name: str
    kind: ParamKind = ParamKind.OTHER


@dataclass(frozen=True)
class FunctionUnit:
    name: str
    visibility: Visibility
    body: Tuple[Stmt, ...] = ()
    parameters: Tuple[Parameter, ...] = ()
    modifiers: Tuple[str, ...] = ()
    state_mutability: str = "nonpayable"
    kind: str = "function"
    location: SourceLocation = field(default_factory=SourceLocation)

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(p.type_name for p in self.parameters)})"

    @property
    def is_payable(self) -> bool:
        return self.state_mutability == "payable"

    @property
    def is_read_only(self) -> bool:
        return self.state_mutability in ("view", "pure")

    def params_of_kind(self, kind: ParamKind) -> List[Parameter]:
        return [p for p in self.parameters if p.kind == kind]


@dataclass(frozen=True)
class ContractUnit:
    name: str
    functions: Tuple[FunctionUnit, ...] = ()
    state_variables: Tuple[StateVariable, ...] = ()
    libraries: Tuple[str, ...] = ()
    file_path: str = ""


# ---------------------------------------------------------------------------
# Traversal helpers
# ---------------------------------------------------------------------------

def root_name(expr: Optional[Expr]) -> Optional[str]:
    """Name of the identifier at the root of a member/index chain."""
    while isinstance(expr, (MemberAccess, IndexAccess)):
        expr = expr.base
    if isinstance(expr, Call) and expr.name in ("payable", "address"):
        return root_name(expr.args[0]) if expr.args else None
    if isinstance(expr, Identifier):
        return expr.name
    return None


def dotted_name(expr: Optional[Expr]) -> str:
    """Readable name for an lvalue-ish expression, e.g. ``msg.sender`` or ``users[]``."""
    if isinstance(expr, Identifier):
        return expr.name
    if isinstance(expr, MemberAccess):
        base = dotted_name(expr.base)
        return f"{base}.{expr.member}" if base else expr.member
    if isinstance(expr, IndexAccess):
        return f"{dotted_name(expr.base)}[]"
    if isinstance(expr, Call):
        if expr.name in ("payable", "address") and expr.args:
            return dotted_name(expr.args[0])
        callee = dotted_name(expr.callee)
        return f"{callee}()" if callee else ""
    return ""


def walk_expr(expr: Optional[Expr]) -> Iterator[Expr]:
    """Yield ``expr`` and every sub-expression, depth first, in source order."""
    if expr is None:
        return
    yield expr
    if isinstance(expr, MemberAccess):
        yield from walk_expr(expr.base)
    elif isinstance(expr, IndexAccess):
        yield from walk_expr(expr.base)
        yield from walk_expr(expr.index)
    elif isinstance(expr, Call):
        yield from walk_expr(expr.callee)
        yield from walk_expr(expr.value)
        for arg in expr.args:
            yield from walk_expr(arg)
    elif isinstance(expr, BinaryOp):
        yield from walk_expr(expr.left)
        yield from walk_expr(expr.right)
    elif isinstance(expr, UnaryOp):
        yield from walk_expr(expr.operand)
    elif isinstance(expr, TupleExpr):
        for item in expr.items:
            yield from walk_expr(item)


def iter_statements(body: Sequence[Stmt]) -> Iterator[Stmt]:
    """Yield every statement in ``body`` including nested ones, in order."""
    for stmt in body:
        yield stmt
        for child in child_bodies(stmt):
            yield from iter_statements(child)


def child_bodies(stmt: Stmt) -> List[Tuple[Stmt, ...]]:
    if isinstance(stmt, If):
        return [stmt.then_body, stmt.else_body]
    if isinstance(stmt, Loop):
        return [stmt.init, stmt.body, stmt.update]
    if isinstance(stmt, Try):
        return [stmt.body, stmt.catch_body]
    if isinstance(stmt, Block):
        return [stmt.body]
    return []


# ---------------------------------------------------------------------------
# Inbound loader
# ---------------------------------------------------------------------------

ASSIGNMENT_OPS = frozenset(("=", "+=", "-=", "*=", "/=", "%=", "|=", "&=", "^=", "<<=", ">>="))
STATE_MUTABILITIES = ("pure", "view", "nonpayable", "payable")
FUNCTION_KINDS = ("function", "constructor", "fallback", "receive")


class _Loader:
    """Builds Syntax Model nodes from nested mappings, tracking the path for errors."""

    def __init__(self, file_path: str = ""):
        self.file_path = file_path
        self._expr_builders: Dict[str, Callable[[Mapping[str, Any], str], Expr]] = {
            "Identifier": self._identifier,
            "Literal": self._literal,
            "MemberAccess": self._member_access,
            "IndexAccess": self._index_access,
            "Call": self._call,
            "BinaryOp": self._binary_op,
            "UnaryOp": self._unary_op,
            "Tuple": self._tuple,
        }
        self._stmt_builders: Dict[str, Callable[[Mapping[str, Any], str], Stmt]] = {
            "Assign": self._assign,
            "VarDecl": self._var_decl,
            "ExprStmt": self._expr_stmt,
            "If": self._if,
            "Loop": self._loop,
            "Try": self._try,
            "Return": self._return,
            "Revert": self._revert,
            "Delete": self._delete,
            "Emit": self._emit,
            "Block": self._block,
        }

    # -- helpers ----------------------------------------------------------

    def _require_mapping(self, data: Any, path: str) -> Mapping[str, Any]:
        if not isinstance(data, Mapping):
            raise MalformedInput(f"expected an object, got {type(data).__name__}", path)
        return data

    def _require_str(self, data: Mapping[str, Any], key: str, path: str) -> str:
        value = data.get(key)
        if not isinstance(value, str) or not value:
            raise MalformedInput(f"missing or empty '{key}'", path)
        return value

    def _require_list(self, data: Mapping[str, Any], key: str, path: str) -> List[Any]:
        value = data.get(key, [])
        if not isinstance(value, (list, tuple)):
            raise MalformedInput(f"'{key}' must be a list", path)
        return list(value)

    def _optional_str(self, data: Mapping[str, Any], key: str, default: str, path: str) -> str:
        value = data.get(key, default)
        if not isinstance(value, str):
            raise MalformedInput(f"'{key}' must be a string, got {type(value).__name__}", path)
        return value

    def _choice(self, data: Mapping[str, Any], key: str, default: str, allowed, path: str) -> str:
        value = self._optional_str(data, key, default, path)
        if value not in allowed:
            raise MalformedInput(f"unknown {key} {value!r}", path)
        return value

    def _position(self, data: Mapping[str, Any], key: str, path: str) -> int:
        value = data.get(key)
        if value is None:
            return 0
        # bool is an int subclass
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise MalformedInput(f"'{key}' must be a non-negative integer, got {value!r}", path)
        return value

    def _loc(self, data: Mapping[str, Any], path: str) -> SourceLocation:
        return SourceLocation(
            line=self._position(data, "line", path),
            column=self._position(data, "column", path),
            file=self.file_path,
        )

    # -- expressions ------------------------------------------------------

    def expr(self, data: Any, path: str) -> Expr:
        data = self._require_mapping(data, path)
        node = data.get("node")
        builder = self._expr_builders.get(node)
        if builder is None:
            raise MalformedInput(f"unknown expression node {node!r}", path)
        return builder(data, path)

    def optional_expr(self, data: Mapping[str, Any], key: str, path: str) -> Optional[Expr]:
        if data.get(key) is None:
            return None
        return self.expr(data[key], f"{path}.{key}")

    def _identifier(self, data, path):
        return Identifier(self._require_str(data, "name", path), self._loc(data, path))

    def _literal(self, data, path):
        if "value" not in data:
            raise MalformedInput("literal without 'value'", path)
        return Literal(data["value"], self._loc(data, path))

    def _member_access(self, data, path):
        return MemberAccess(
            self.expr(data.get("base"), f"{path}.base"),
            self._require_str(data, "member", path),
            self._loc(data, path),
        )

    def _index_access(self, data, path):
        return IndexAccess(
            self.expr(data.get("base"), f"{path}.base"),
            self.optional_expr(data, "index", path),
            self._loc(data, path),
        )

    def _call(self, data, path):
        args = tuple(
            self.expr(arg, f"{path}.args[{i}]")
            for i, arg in enumerate(self._require_list(data, "args", path))
        )
        return Call(
            self.expr(data.get("callee"), f"{path}.callee"),
            args,
            self.optional_expr(data, "value", path),
            self._loc(data, path),
        )

    def _binary_op(self, data, path):
        return BinaryOp(
            self._require_str(data, "op", path),
            self.expr(data.get("left"), f"{path}.left"),
            self.expr(data.get("right"), f"{path}.right"),
            self._loc(data, path),
        )

    def _unary_op(self, data, path):
        return UnaryOp(
            self._require_str(data, "op", path),
            self.expr(data.get("operand"), f"{path}.operand"),
            bool(data.get("prefix", True)),
            self._loc(data, path),
        )

    def _tuple(self, data, path):
        items = tuple(
            None if item is None else self.expr(item, f"{path}.items[{i}]")
            for i, item in enumerate(self._require_list(data, "items", path))
        )
        return TupleExpr(items, self._loc(data, path))

    # -- statements -------------------------------------------------------

    def stmt(self, data: Any, path: str) -> Stmt:
        data = self._require_mapping(data, path)
        node = data.get("node")
        builder = self._stmt_builders.get(node)
        if builder is None:
            raise MalformedInput(f"unknown statement node {node!r}", path)
        return builder(data, path)

    def body(self, data: Mapping[str, Any], key: str, path: str) -> Tuple[Stmt, ...]:
        return tuple(
            self.stmt(item, f"{path}.{key}[{i}]")
            for i, item in enumerate(self._require_list(data, key, path))
        )

    def _assign(self, data, path):
        return Assign(
            self.expr(data.get("target"), f"{path}.target"),
            self.expr(data.get("value"), f"{path}.value"),
            self._choice(data, "op", "=", ASSIGNMENT_OPS, path),
            self._loc(data, path),
        )

    def _var_decl(self, data, path):
        names = data.get("names")
        if names is None and "name" in data:
            names = [data["name"]]
        if not isinstance(names, (list, tuple)) or not names:
            raise MalformedInput("variable declaration without names", path)
        return VarDecl(
            tuple(str(n) for n in names if n),
            self._optional_str(data, "type", "", path),
            self.optional_expr(data, "value", path),
            self._loc(data, path),
        )

    def _expr_stmt(self, data, path):
        return ExprStmt(self.expr(data.get("expr"), f"{path}.expr"), self._loc(data, path))

    def _if(self, data, path):
        return If(
            self.expr(data.get("condition"), f"{path}.condition"),
            self.body(data, "then", path),
            self.body(data, "else", path),
            self._loc(data, path),
        )

    def _loop(self, data, path):
        kind = data.get("kind", "for")
        if kind not in ("for", "while", "do"):
            raise MalformedInput(f"unknown loop kind {kind!r}", path)
        return Loop(
            kind,
            self.optional_expr(data, "condition", path),
            self.body(data, "body", path),
            self.body(data, "init", path),
            self.body(data, "update", path),
            self._loc(data, path),
        )

    def _try(self, data, path):
        return Try(
            self.expr(data.get("call"), f"{path}.call"),
            self.body(data, "body", path),
            self.body(data, "catch", path),
            self._loc(data, path),
        )

    def _return(self, data, path):
        return Return(self.optional_expr(data, "value", path), self._loc(data, path))

    def _revert(self, data, path):
        args = tuple(
            self.expr(arg, f"{path}.args[{i}]")
            for i, arg in enumerate(self._require_list(data, "args", path))
        )
        return Revert(args, self._loc(data, path))

    def _delete(self, data, path):
        return Delete(self.expr(data.get("target"), f"{path}.target"), self._loc(data, path))

    def _emit(self, data, path):
        return Emit(self.expr(data.get("event"), f"{path}.event"), self._loc(data, path))

    def _block(self, data, path):
        return Block(self.body(data, "body", path), self._loc(data, path))

    # -- declarations -----------------------------------------------------

    def parameter(self, data: Any, path: str) -> Parameter:
        data = self._require_mapping(data, path)
        name = data.get("name") or ""
        type_name = self._require_str(data, "type", path)
        kind = data.get("kind")
        if kind is None:
            param_kind = infer_param_kind(name, type_name)
        else:
            try:
                param_kind = ParamKind(kind)
            except ValueError:
                raise MalformedInput(f"unknown parameter kind {kind!r}", path) from None
        return Parameter(name, type_name, param_kind)

    def state_variable(self, data: Any, path: str) -> StateVariable:
        data = self._require_mapping(data, path)
        return StateVariable(
            self._require_str(data, "name", path),
            self._require_str(data, "type", path),
            bool(data.get("constant", False)),
            bool(data.get("immutable", False)),
            self._loc(data, path),
        )

    def function(self, data: Any, path: str) -> FunctionUnit:
        data = self._require_mapping(data, path)
        name = self._require_str(data, "name", path)
        visibility = data.get("visibility", "public")
        try:
            vis = Visibility(visibility)
        except ValueError:
            raise MalformedInput(f"unknown visibility {visibility!r}", path) from None
        modifiers = self._require_list(data, "modifiers", path)
        if not all(isinstance(m, str) for m in modifiers):
            raise MalformedInput("modifiers must be strings", path)
        return FunctionUnit(
            name=name,
            visibility=vis,
            body=self.body(data, "body", path),
            parameters=tuple(
                self.parameter(p, f"{path}.parameters[{i}]")
                for i, p in enumerate(self._require_list(data, "parameters", path))
            ),
            modifiers=tuple(modifiers),
            state_mutability=self._choice(data, "state_mutability", "nonpayable", STATE_MUTABILITIES, path),
            kind=self._choice(data, "kind", "function", FUNCTION_KINDS, path),
            location=self._loc(data, path),
        )

    def contract(self, data: Any) -> ContractUnit:
        data = self._require_mapping(data, "contract")
        name = self._require_str(data, "name", "contract")
        path = f"contract {name}"
        libraries = self._require_list(data, "libraries", path)
        return ContractUnit(
            name=name,
            functions=tuple(
                self.function(f, f"{path}.functions[{i}]")
                for i, f in enumerate(self._require_list(data, "functions", path))
            ),
            state_variables=tuple(
                self.state_variable(v, f"{path}.state_variables[{i}]")
                for i, v in enumerate(self._require_list(data, "state_variables", path))
            ),
            libraries=tuple(str(lib) for lib in libraries),
            file_path=self.file_path,
        )


def load_contract(data: Mapping[str, Any], file_path: Optional[str] = None) -> ContractUnit:
    """
    Build a ContractUnit from the mapping produced by a parser adapter.

    Raises:
        MalformedInput: if the mapping does not describe a well-formed contract
    """
    if file_path is None and isinstance(data, Mapping):
        file_path = data.get("file", "") or ""
    return _Loader(file_path or "").contract(data)


def load_contracts(items: Sequence[Mapping[str, Any]]) -> List[ContractUnit]:
    return [load_contract(item) for item in items]
