"""
Builders for the mapping form of the Syntax Model used throughout the tests.

Strings passed where an expression is expected are read as identifiers or
dotted member chains (``"msg.sender"``); ints and bools become literals.
"""


def expr(value):
    if isinstance(value, dict):
        return value
    if isinstance(value, (bool, int)):
        return lit(value)
    if isinstance(value, str):
        head, *members = value.split(".")
        node = ident(head)
        for name in members:
            node = member(node, name)
        return node
    raise TypeError(f"cannot build expression from {value!r}")


def ident(name, line=0):
    return {"node": "Identifier", "name": name, "line": line}


def lit(value):
    return {"node": "Literal", "value": value}


def member(base, name, line=0):
    return {"node": "MemberAccess", "base": expr(base), "member": name, "line": line}


def index(base, idx=None):
    node = {"node": "IndexAccess", "base": expr(base)}
    if idx is not None:
        node["index"] = expr(idx)
    return node


def call(callee, *args, value=None, line=0):
    node = {"node": "Call", "callee": expr(callee), "args": [expr(a) for a in args], "line": line}
    if value is not None:
        node["value"] = expr(value)
    return node


def binop(op, left, right, line=0):
    return {"node": "BinaryOp", "op": op, "left": expr(left), "right": expr(right), "line": line}


def unary(op, operand, prefix=True):
    return {"node": "UnaryOp", "op": op, "operand": expr(operand), "prefix": prefix}


def payable(address):
    return call("payable", address)


# -- statements ---------------------------------------------------------------

def assign(target, value, op="=", line=0):
    return {"node": "Assign", "target": expr(target), "value": expr(value), "op": op, "line": line}


def var(name, type_name, value=None, line=0):
    node = {"node": "VarDecl", "names": [name], "type": type_name, "line": line}
    if value is not None:
        node["value"] = expr(value)
    return node


def stmt(e, line=0):
    return {"node": "ExprStmt", "expr": expr(e), "line": line}


def require(condition, line=0):
    return stmt(call("require", condition), line=line)


def if_(condition, then, orelse=(), line=0):
    return {"node": "If", "condition": expr(condition), "then": list(then), "else": list(orelse), "line": line}


def revert():
    return {"node": "Revert", "args": []}


def for_loop(condition, body, counter="i", line=0):
    """``for (uint256 i = 0; condition; i++) { body }``"""
    return {
        "node": "Loop",
        "kind": "for",
        "init": [var(counter, "uint256", lit(0))],
        "condition": expr(condition),
        "body": list(body),
        "update": [stmt(unary("++", counter, prefix=False))],
        "line": line,
    }


def try_(target_call, body=(), catch=(), line=0):
    return {"node": "Try", "call": expr(target_call), "body": list(body), "catch": list(catch), "line": line}


def ret(value=None):
    node = {"node": "Return"}
    if value is not None:
        node["value"] = expr(value)
    return node


def emit(event, *args):
    return {"node": "Emit", "event": call(event, *args)}


# -- declarations -------------------------------------------------------------

def param(name, type_name, kind=None):
    node = {"name": name, "type": type_name}
    if kind is not None:
        node["kind"] = kind
    return node


def state(name, type_name, constant=False, immutable=False):
    return {"name": name, "type": type_name, "constant": constant, "immutable": immutable}


def fn(name, body=(), params=(), visibility="public", modifiers=(), mutability="nonpayable", kind="function", line=0):
    return {
        "name": name,
        "visibility": visibility,
        "parameters": list(params),
        "modifiers": list(modifiers),
        "state_mutability": mutability,
        "kind": kind,
        "body": list(body),
        "line": line,
    }


def contract(name, functions, state_variables=(), libraries=()):
    return {
        "name": name,
        "functions": list(functions),
        "state_variables": list(state_variables),
        "libraries": list(libraries),
    }
