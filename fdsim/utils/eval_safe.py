"""Safe evaluation of attribute expressions.

Provides a restricted AST interpreter that only allows safe operations,
preventing imports, arbitrary attribute access, and other dangerous operations.

Programs are a short sequence of statements:
- simple assignments (``x = 1``) and augmented assignments (``x += 1``)
- expression statements; the value of the last one is the program's result

Only callables registered as helpers (or returned by a registered helper) can be
invoked, and attribute access is limited to HelperModule namespaces.
"""

import ast
import operator
from collections.abc import Mapping
from typing import Any

# Safe builtins allowed in expression evaluation
SAFE_BUILTINS = {
    "True": True,
    "False": False,
    "None": None,
    "abs": abs,
    "min": min,
    "max": max,
    "round": round,
    "pow": pow,
    "int": int,
    "float": float,
    "str": str,
    "len": len,
    "sum": sum,
    "all": all,
    "any": any,
    "bool": bool,
}


class ExpressionError(Exception):
    """Raised when expression evaluation fails."""

    pass


class HelperModule:
    """Read-only namespace of helpers reachable through attribute access.

    Example:
        >>> m = HelperModule("math", {"pow": pow})
        >>> m.lookup("pow")(2, 3)
        8
    """

    def __init__(self, name: str, members: Mapping[str, Any]):
        self.name = name
        self._members = dict(members)

    def lookup(self, attr: str) -> Any:
        if attr.startswith("_") or attr not in self._members:
            raise ExpressionError(f"Helper module '{self.name}' has no member '{attr}'")
        return self._members[attr]

    def __repr__(self) -> str:
        return f"HelperModule({self.name!r})"


_SAFE_BIN_OPS: dict[type[ast.operator], Any] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}
_SAFE_UNARY_OPS: dict[type[ast.unaryop], Any] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
}
_SAFE_BOOL_OPS = (ast.And, ast.Or)
_SAFE_CMP_OPS: dict[type[ast.cmpop], Any] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}

_NO_VALUE = object()


def _check_name(name: str) -> None:
    if name.startswith("__"):
        raise ExpressionError("dunder names are not allowed in expressions")


class _Interpreter:
    """Walks a parsed program against a mutable scope and a helper table."""

    def __init__(self, scope: dict[str, Any], helpers: Mapping[str, Any]):
        self.scope = scope
        self.helpers = helpers
        # Objects kept alive so their ids stay unique for the whole run
        self._allowed: list[Any] = []
        self._allowed_ids: set[int] = set()
        for value in list(SAFE_BUILTINS.values()) + list(helpers.values()):
            if callable(value):
                self._allow(value)

    def _allow(self, func: Any) -> None:
        if id(func) not in self._allowed_ids:
            self._allowed.append(func)
            self._allowed_ids.add(id(func))

    def run(self, program: ast.Module) -> Any:
        last = _NO_VALUE
        for stmt in program.body:
            if isinstance(stmt, ast.Expr):
                last = self.eval(stmt.value)
            elif isinstance(stmt, ast.Assign):
                value = self.eval(stmt.value)
                for target in stmt.targets:
                    if not isinstance(target, ast.Name):
                        raise ExpressionError("Only assignments to plain names are allowed")
                    _check_name(target.id)
                    self.scope[target.id] = value
            elif isinstance(stmt, ast.AugAssign):
                if not isinstance(stmt.target, ast.Name):
                    raise ExpressionError("Only assignments to plain names are allowed")
                op_type = type(stmt.op)
                if op_type not in _SAFE_BIN_OPS:
                    raise ExpressionError(f"Binary operator not allowed: {op_type.__name__}")
                name = stmt.target.id
                _check_name(name)
                if name not in self.scope:
                    raise ExpressionError(f"Unknown name '{name}' in expression")
                self.scope[name] = _SAFE_BIN_OPS[op_type](
                    self.scope[name], self.eval(stmt.value)
                )
            else:
                raise ExpressionError(
                    f"Unsupported statement: {type(stmt).__name__}"
                )
        if last is _NO_VALUE:
            raise ExpressionError("Expression does not produce a value")
        return last

    def eval(self, node: ast.AST) -> Any:
        if isinstance(node, ast.Constant):
            return node.value

        if isinstance(node, ast.Name):
            _check_name(node.id)
            if node.id in self.scope:
                return self.scope[node.id]
            if node.id in self.helpers:
                return self.helpers[node.id]
            if node.id in SAFE_BUILTINS:
                return SAFE_BUILTINS[node.id]
            raise ExpressionError(f"Unknown name '{node.id}' in expression")

        if isinstance(node, ast.List):
            return [self.eval(elt) for elt in node.elts]

        if isinstance(node, ast.Tuple):
            return tuple(self.eval(elt) for elt in node.elts)

        if isinstance(node, ast.Dict):
            for key in node.keys:
                if key is None:
                    raise ExpressionError("Dict unpacking is not allowed")
            return {
                self.eval(key): self.eval(val)
                for key, val in zip(node.keys, node.values)
            }

        if isinstance(node, ast.UnaryOp):
            op_type = type(node.op)
            if op_type not in _SAFE_UNARY_OPS:
                raise ExpressionError(f"Unary operator not allowed: {op_type.__name__}")
            return _SAFE_UNARY_OPS[op_type](self.eval(node.operand))

        if isinstance(node, ast.BinOp):
            op_type = type(node.op)
            if op_type not in _SAFE_BIN_OPS:
                raise ExpressionError(f"Binary operator not allowed: {op_type.__name__}")
            return _SAFE_BIN_OPS[op_type](self.eval(node.left), self.eval(node.right))

        if isinstance(node, ast.BoolOp):
            if not isinstance(node.op, _SAFE_BOOL_OPS):
                raise ExpressionError(
                    f"Boolean operator not allowed: {type(node.op).__name__}"
                )
            # Python semantics: return the deciding operand, not a bool
            value = None
            for operand in node.values:
                value = self.eval(operand)
                if isinstance(node.op, ast.And) and not value:
                    return value
                if isinstance(node.op, ast.Or) and value:
                    return value
            return value

        if isinstance(node, ast.Compare):
            left = self.eval(node.left)
            for op, comparator in zip(node.ops, node.comparators):
                op_type = type(op)
                if op_type not in _SAFE_CMP_OPS:
                    raise ExpressionError(
                        f"Comparison operator not allowed: {op_type.__name__}"
                    )
                right = self.eval(comparator)
                if not _SAFE_CMP_OPS[op_type](left, right):
                    return False
                left = right
            return True

        if isinstance(node, ast.IfExp):
            return (
                self.eval(node.body)
                if self.eval(node.test)
                else self.eval(node.orelse)
            )

        if isinstance(node, ast.Subscript):
            container = self.eval(node.value)
            if isinstance(node.slice, ast.Slice):
                index: Any = slice(
                    self.eval(node.slice.lower) if node.slice.lower else None,
                    self.eval(node.slice.upper) if node.slice.upper else None,
                    self.eval(node.slice.step) if node.slice.step else None,
                )
            else:
                index = self.eval(node.slice)
            if not isinstance(container, (list, tuple, dict, str)):
                raise ExpressionError(
                    f"Subscript not allowed on {type(container).__name__}"
                )
            return container[index]

        if isinstance(node, ast.Attribute):
            _check_name(node.attr)
            owner = self.eval(node.value)
            if not isinstance(owner, HelperModule):
                raise ExpressionError("Attribute access is only allowed on helper modules")
            member = owner.lookup(node.attr)
            if callable(member):
                self._allow(member)
            return member

        if isinstance(node, ast.Call):
            func = self.eval(node.func)
            if id(func) not in self._allowed_ids:
                raise ExpressionError("Only registered helper functions can be called")

            args = []
            for arg in node.args:
                if isinstance(arg, ast.Starred):
                    raise ExpressionError("Star-args are not allowed")
                args.append(self.eval(arg))
            kwargs = {}
            for kw in node.keywords:
                if kw.arg is None:
                    raise ExpressionError("Keyword splats are not allowed")
                kwargs[kw.arg] = self.eval(kw.value)

            result = func(*args, **kwargs)
            # Callables built by helpers (interpolator instances) may be called in turn
            if callable(result) and not isinstance(result, type):
                self._allow(result)
            return result

        raise ExpressionError(f"Unsupported expression element: {type(node).__name__}")


def parse_program(source: str) -> ast.Module:
    """Parse expression source into an AST module.

    Raises:
        ExpressionError: If the source is not valid syntax
    """
    try:
        return ast.parse(source, mode="exec")
    except SyntaxError as e:
        raise ExpressionError(f"Invalid expression syntax: {e.msg}") from e


def run_program(
    program: ast.Module,
    scope: dict[str, Any],
    helpers: Mapping[str, Any] | None = None,
) -> Any:
    """
    Safely run a parsed program with restricted builtins.

    Args:
        program: Module returned by parse_program()
        scope: Variable names to values; assignments write back into it
        helpers: Callables and HelperModules the program may use

    Returns:
        Value of the last expression statement

    Raises:
        ExpressionError: If evaluation fails

    Example:
        >>> run_program(parse_program("x = a * 2; x + 1"), {"a": 3})
        7
    """
    try:
        return _Interpreter(scope, helpers or {}).run(program)
    except ExpressionError:
        raise
    except Exception as e:
        raise ExpressionError(f"Evaluation failed: {e}") from e
