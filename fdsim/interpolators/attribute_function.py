"""Attribute values computed by an expression.

An expression is a short program in a restricted Python subset (see
fdsim.utils.eval_safe); the value of its last expression statement is the
attribute value. On top of the language it supports:

References to other entities' current attribute values:
    ${{EntityId}{AttributeName}}
    ${{EntityId:#:EntityType}{AttributeName}}
Each distinct entity is queried once per evaluation.

Persisted state declared in a leading comment:
    /* state: counter = 0, label = "x", history */ ...
    # state: counter = 0
Initializers are JSON values; variables without one start as None. Returning
{"result": value, "state": {...}} yields `value` and replaces the state.

Specifications that are plain literals (a number, a quoted string, an array)
short-circuit to a constant without running the evaluator.
"""

import copy
import json
import logging
import math
import random
import re
import textwrap
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from ..core.models.configuration import ContextBroker, Domain
from ..errors import InvalidInterpolationSpec, ValueResolutionError
from ..ngsi.client import ContextBrokerClient
from ..utils.eval_safe import ExpressionError, HelperModule, parse_program, run_program
from .date_increment import date_increment_interpolator
from .linear import linear_interpolator
from .multiline_position import multiline_position_interpolator
from .random_linear import random_interpolator, random_linear_interpolator
from .step import step_after_interpolator, step_before_interpolator
from .text_rotation import text_rotation_interpolator

logger = logging.getLogger(__name__)

_REFERENCE = re.compile(r"\$\{\{([^{}]+?)(?::#:([^{}]+))?\}\{([^{}]+)\}\}")
_PLACEHOLDER_PREFIX = "_fds_ref_"
_BLOCK_STATE = re.compile(r"\A\s*/\*\s*state\s*:(.*?)\*/", re.DOTALL)
_LINE_STATE = re.compile(r"\A\s*#\s*state\s*:([^\n]*)")
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


# =============================================================================
# Helpers available to expressions
# =============================================================================

BUILDERS: dict[str, Callable[..., Any]] = {
    "linear_interpolator": linear_interpolator,
    "step_before_interpolator": step_before_interpolator,
    "step_after_interpolator": step_after_interpolator,
    "random_interpolator": random_interpolator,
    "random_linear_interpolator": random_linear_interpolator,
    "date_increment_interpolator": date_increment_interpolator,
    "multiline_position_interpolator": multiline_position_interpolator,
    "text_rotation_interpolator": text_rotation_interpolator,
}

MATH = HelperModule(
    "math",
    {
        name: getattr(math, name)
        for name in (
            "pow", "sqrt", "floor", "ceil", "trunc", "fabs", "hypot",
            "sin", "cos", "tan", "asin", "acos", "atan", "atan2",
            "log", "log10", "log2", "exp", "radians", "degrees", "pi", "e",
        )
    },
)

RANDOM = HelperModule(
    "random",
    {
        "random": random.random,
        "uniform": random.uniform,
        "randint": random.randint,
        "choice": random.choice,
        "gauss": random.gauss,
    },
)

INTERPOLATORS = HelperModule("interpolators", BUILDERS)

# Names accepted by require(); dispatch names resolve to their builder
_REQUIRABLE: dict[str, Any] = {
    "math": MATH,
    "random": RANDOM,
    "interpolators": INTERPOLATORS,
    "time-linear-interpolator": linear_interpolator,
    "linear-interpolator": linear_interpolator,
    "time-step-before-interpolator": step_before_interpolator,
    "step-before-interpolator": step_before_interpolator,
    "time-step-after-interpolator": step_after_interpolator,
    "step-after-interpolator": step_after_interpolator,
    "time-random-linear-interpolator": random_linear_interpolator,
    "random-linear-interpolator": random_linear_interpolator,
    "random-interpolator": random_interpolator,
    "date-increment-interpolator": date_increment_interpolator,
    "multiline-position-interpolator": multiline_position_interpolator,
    "text-rotation-interpolator": text_rotation_interpolator,
}


def require(name: str) -> Any:
    """Look up a helper module or interpolator builder by name."""
    try:
        return _REQUIRABLE[name]
    except (KeyError, TypeError):
        raise ValueResolutionError(f"Cannot require {name!r}: no such helper") from None


HELPERS: dict[str, Any] = {
    "math": MATH,
    "random": RANDOM,
    "interpolators": INTERPOLATORS,
    "require": require,
    **BUILDERS,
}


# =============================================================================
# Specification parsing
# =============================================================================


def _literal(text: str) -> tuple[bool, Any]:
    """(True, value) if text is a JSON number, string or array."""
    try:
        value = json.loads(text)
    except ValueError:
        return False, None
    if isinstance(value, (int, float, str, list)) and not isinstance(value, bool):
        return True, value
    return False, None


def _split_declarations(text: str) -> list[str]:
    """Split a state declaration on top-level commas."""
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []
    escaped = False
    for char in text:
        if quote:
            current.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
            continue
        if char in "\"'":
            quote = char
        elif char in "[{":
            depth += 1
        elif char in "]}":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    if quote or depth != 0:
        raise InvalidInterpolationSpec(f"Invalid state declaration {text.strip()!r}: unbalanced")
    parts.append("".join(current))
    return parts


def _initializer(name: str, raw: str) -> Any:
    raw = raw.strip()
    try:
        return json.loads(raw)
    except ValueError:
        pass
    if len(raw) >= 2 and raw[0] == raw[-1] == "'":
        return raw[1:-1]
    raise InvalidInterpolationSpec(
        f"Invalid initial value {raw!r} for state variable {name!r}: a JSON value is required"
    )


def parse_state(source: str) -> tuple[dict[str, Any], str]:
    """Extract the state declaration from an expression.

    Returns:
        (initial state, remaining program source)

    Raises:
        InvalidInterpolationSpec: If the declaration is malformed
    """
    match = _BLOCK_STATE.match(source) or _LINE_STATE.match(source)
    if match is None:
        return {}, source

    state: dict[str, Any] = {}
    declaration = match.group(1)
    if declaration.strip():
        for part in _split_declarations(declaration):
            name, sep, raw = part.partition("=")
            name = name.strip()
            if not _IDENTIFIER.fullmatch(name) or name.startswith("__"):
                raise InvalidInterpolationSpec(
                    f"Invalid state variable name {name!r} in {declaration.strip()!r}"
                )
            state[name] = _initializer(name, raw) if sep else None
    return state, source[match.end():]


def substitute_references(source: str) -> tuple[str, dict[str, tuple[str, str | None, str]]]:
    """Replace entity attribute references with placeholder names.

    Returns:
        (rewritten source, {placeholder: (entity id, entity type, attribute)})
    """
    references: dict[str, tuple[str, str | None, str]] = {}
    placeholders: dict[str, str] = {}

    def replace(match: re.Match) -> str:
        text = match.group(0)
        if text not in placeholders:
            placeholder = f"{_PLACEHOLDER_PREFIX}{len(placeholders)}"
            placeholders[text] = placeholder
            entity_type = match.group(2).strip() if match.group(2) else None
            references[placeholder] = (
                match.group(1).strip(),
                entity_type,
                match.group(3).strip(),
            )
        return placeholders[text]

    return _REFERENCE.sub(replace, source), references


def _is_data(value: Any) -> bool:
    """Whether an expression result can be sent as an attribute value."""
    if isinstance(value, HelperModule) or callable(value):
        return False
    if isinstance(value, (list, tuple)):
        return all(_is_data(item) for item in value)
    if isinstance(value, dict):
        return all(_is_data(item) for item in value.values())
    return True


def _client(domain: Any, context_broker: Any) -> ContextBrokerClient:
    if domain is None or context_broker is None:
        raise ValueResolutionError(
            "Entity attribute references need a domain and a context broker"
        )
    try:
        domain = domain if isinstance(domain, Domain) else Domain.model_validate(domain)
        context_broker = (
            context_broker
            if isinstance(context_broker, ContextBroker)
            else ContextBroker.model_validate(context_broker)
        )
    except ValidationError as e:
        raise ValueResolutionError(f"Invalid context broker configuration: {e}") from e
    return ContextBrokerClient(context_broker, domain)


# =============================================================================
# Builder
# =============================================================================


def attribute_function_interpolator(
    interpolation_spec: Any,
    domain: Any = None,
    context_broker: Any = None,
) -> Callable[..., Any]:
    """Build an expression interpolator.

    Args:
        interpolation_spec: Literal value or expression source
        domain: Domain (or its dict form) used for entity references
        context_broker: ContextBroker (or its dict form) used for entity references

    Returns:
        Function taking an optional auth token and returning the attribute value

    Raises:
        InvalidInterpolationSpec: If the state declaration is malformed

    Example:
        >>> f = attribute_function_interpolator("# state: n = 0\\nn = n + 1\\n{'result': n, 'state': {'n': n}}")
        >>> f(), f()
        (1, 2)
    """
    if not isinstance(interpolation_spec, str):
        constant = interpolation_spec
        return lambda token=None: copy.deepcopy(constant)

    is_literal, literal = _literal(interpolation_spec.strip())
    if is_literal:
        return lambda token=None: copy.deepcopy(literal)

    state, body = parse_state(interpolation_spec)
    body, references = substitute_references(body)
    body = textwrap.dedent(body).strip()

    program = None
    deferred: str | None = None
    if "${" in body:
        deferred = f"Malformed entity attribute reference in {interpolation_spec!r}"
    else:
        try:
            program = parse_program(body)
        except ExpressionError as e:
            deferred = f"Invalid expression {interpolation_spec!r}: {e}"

    client: ContextBrokerClient | None = None

    def fetch(token: str | None) -> dict[str, Any]:
        nonlocal client
        if not references:
            return {}
        if client is None:
            client = _client(domain, context_broker)
        entities: dict[tuple[str, str | None], dict[str, Any]] = {}
        values: dict[str, Any] = {}
        for placeholder, (entity_id, entity_type, attribute) in references.items():
            key = (entity_id, entity_type)
            if key not in entities:
                entities[key] = client.query_attributes(entity_id, entity_type, token)
            if attribute not in entities[key]:
                raise ValueResolutionError(
                    f"Entity {entity_id!r} has no attribute {attribute!r}"
                )
            values[placeholder] = entities[key][attribute]
        return values

    def interpolate(token: str | None = None) -> Any:
        nonlocal state
        if deferred is not None:
            raise ValueResolutionError(deferred)

        scope = copy.deepcopy(state)
        scope.update(fetch(token))
        try:
            result = run_program(program, scope, HELPERS)
        except ExpressionError as e:
            cause = e.__cause__
            if isinstance(cause, ValueResolutionError):
                raise cause from e
            raise ValueResolutionError(
                f"Cannot evaluate expression {interpolation_spec!r}: {e}"
            ) from e

        if isinstance(result, dict) and set(result) == {"result", "state"}:
            if not isinstance(result["state"], dict):
                raise ValueResolutionError(
                    f"Expression {interpolation_spec!r} returned a state that is not a mapping"
                )
            state = copy.deepcopy(result["state"])
            logger.debug("Expression state updated: %s", state)
            result = result["result"]
        if not _is_data(result):
            raise ValueResolutionError(
                f"Expression {interpolation_spec!r} did not evaluate to a value: {result!r}"
            )
        return result

    return interpolate
