"""Restricted evaluation of user-authored code.

Every piece of user code (code nodes, router expressions, loop stop rules,
filter and calculator expressions) goes through this module. It compiles with
RestrictedPython and runs against a fixed set of safe builtins; there is no
import statement and no access to underscore attributes.
"""

from __future__ import annotations

import ast
import json
import math
import operator
import re
import textwrap
from types import SimpleNamespace
from typing import Any, Callable, Iterable

from RestrictedPython import compile_restricted
from RestrictedPython.Eval import default_guarded_getitem, default_guarded_getiter
from RestrictedPython.Guards import (
    full_write_guard,
    guarded_iter_unpack_sequence,
    guarded_unpack_sequence,
    safe_builtins,
    safer_getattr,
)
from RestrictedPython.Limits import limited_builtins
from RestrictedPython.PrintCollector import PrintCollector
from RestrictedPython.Utilities import utility_builtins

from conduit.errors import ConduitError

FUNCTION_NAME = "conduit_fn"

_INPLACE_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "+=": operator.iadd,
    "-=": operator.isub,
    "*=": operator.imul,
    "/=": operator.itruediv,
    "//=": operator.ifloordiv,
    "%=": operator.imod,
    "**=": operator.ipow,
    "<<=": operator.ilshift,
    ">>=": operator.irshift,
    "&=": operator.iand,
    "|=": operator.ior,
    "^=": operator.ixor,
}


class SandboxError(ConduitError):
    """Raised when user code cannot be compiled."""


def _inplacevar(op: str, target: Any, value: Any) -> Any:
    try:
        return _INPLACE_OPERATORS[op](target, value)
    except KeyError:
        raise SandboxError(f"Unsupported in-place operator: {op}") from None


def _builtins() -> dict[str, Any]:
    builtins = dict(safe_builtins)
    builtins.update(limited_builtins)
    builtins.update(utility_builtins)
    builtins.update(
        {
            "dict": dict,
            "list": list,
            "enumerate": enumerate,
            "min": min,
            "max": max,
            "sum": sum,
            "any": any,
            "all": all,
            "map": map,
            "filter": filter,
            "reversed": reversed,
            "json": SimpleNamespace(loads=json.loads, dumps=json.dumps),
            "re": SimpleNamespace(
                search=re.search,
                match=re.match,
                fullmatch=re.fullmatch,
                findall=re.findall,
                sub=re.sub,
                split=re.split,
                IGNORECASE=re.IGNORECASE,
                MULTILINE=re.MULTILINE,
                DOTALL=re.DOTALL,
            ),
            "math": math,
        }
    )
    return builtins


def restricted_globals(variables: dict[str, Any] | None = None) -> dict[str, Any]:
    namespace: dict[str, Any] = {
        "__builtins__": _builtins(),
        "__name__": "conduit_sandbox",
        "__metaclass__": type,
        "_getattr_": safer_getattr,
        "_getitem_": default_guarded_getitem,
        "_getiter_": default_guarded_getiter,
        "_write_": full_write_guard,
        "_iter_unpack_sequence_": guarded_iter_unpack_sequence,
        "_unpack_sequence_": guarded_unpack_sequence,
        "_inplacevar_": _inplacevar,
        "_print_": PrintCollector,
    }
    if variables:
        namespace.update(variables)
    return namespace


def _is_expression(source: str) -> bool:
    try:
        ast.parse(source, mode="eval")
    except SyntaxError:
        return False
    return True


def compile_function(
    param_names: Iterable[str],
    body: str,
    *,
    filename: str = "<node code>",
) -> Callable[..., Any]:
    """Compile ``body`` into a callable taking ``param_names``.

    A body that is a single expression is treated as ``return (<expr>)``.

    Raises:
        SandboxError: If the body does not compile under the restrictions.
    """
    params = list(param_names)
    source_body = textwrap.dedent(body).strip() or "return None"
    if _is_expression(source_body):
        source_body = f"return ({source_body})"

    source = f"def {FUNCTION_NAME}({', '.join(params)}):\n" + textwrap.indent(source_body, "    ")
    try:
        code = compile_restricted(source, filename=filename, mode="exec")
    except SyntaxError as e:
        raise SandboxError(f"Syntax error: {e}") from e

    namespace = restricted_globals()
    exec(code, namespace)
    return namespace[FUNCTION_NAME]


def evaluate(expression: str, variables: dict[str, Any] | None = None, *, filename: str = "<expression>") -> Any:
    """Evaluate a single restricted expression against ``variables``."""
    try:
        code = compile_restricted(expression.strip(), filename=filename, mode="eval")
    except SyntaxError as e:
        raise SandboxError(f"Syntax error: {e}") from e
    return eval(code, restricted_globals(variables))
