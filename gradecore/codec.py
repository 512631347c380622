"""
Value codec for test-case text.

Test-case inputs and outputs are written by people, so the same value shows up
as strict JSON (``[0,1]``), as a bare literal (``True``, ``'abc'``) or as
assignment shorthand (``nums = [2,7,11,15], target = 9``). decode() tries those
readings in that order and never raises; encode() produces the canonical JSON
text used for display and comparison.
"""

import ast
import json
from typing import Any, Callable, List, Optional, Tuple


# Literal names accepted by the permissive parser (JSON/JS and Python spellings)
LITERAL_NAMES = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "True": True,
    "False": False,
    "None": None,
}

FallbackFn = Optional[Callable[[str, str], None]]


class _LiteralNames(ast.NodeTransformer):
    """Rewrite true/false/null style names into constants."""

    def visit_Name(self, node: ast.Name) -> ast.AST:
        if node.id in LITERAL_NAMES:
            return ast.copy_location(ast.Constant(value=LITERAL_NAMES[node.id]), node)
        return node


def _report(on_fallback: FallbackFn, tier: str, text: str) -> None:
    if on_fallback is not None:
        on_fallback(tier, text)


def _parse_call(text: str) -> Optional[Tuple[list, dict]]:
    """
    Read text as the argument list of a call: ``1, [2]`` or ``a = 1, b = 2``.

    Returns (positional, keyword) values, or None when the text is not made
    of literals only.
    """
    try:
        tree = ast.parse(f"_({text})", mode="eval")
    except (SyntaxError, ValueError, MemoryError, RecursionError):
        return None

    call = tree.body
    if not (isinstance(call, ast.Call) and isinstance(call.func, ast.Name) and call.func.id == "_"):
        return None
    if not call.args and not call.keywords:
        return None

    transformer = _LiteralNames()
    try:
        positional = [ast.literal_eval(transformer.visit(arg)) for arg in call.args]
        keyword = {}
        for kw in call.keywords:
            if kw.arg is None:  # **mapping
                return None
            keyword[kw.arg] = ast.literal_eval(transformer.visit(kw.value))
    except (ValueError, TypeError, SyntaxError, MemoryError, RecursionError):
        return None

    return positional, keyword


def _loads(text: str) -> Tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (ValueError, RecursionError):
        return False, None


def decode(text: Any, on_fallback: FallbackFn = None) -> Any:
    """
    Decode a test-case string into a value.

    Tries strict JSON, then a literal-only parse, then gives the text back
    unchanged. on_fallback(tier, text) is called whenever JSON was not enough.
    """
    if not isinstance(text, str):
        return text

    stripped = text.strip()
    ok, value = _loads(stripped)
    if ok:
        return value

    parsed = _parse_call(stripped)
    if parsed is not None:
        _report(on_fallback, "literal", text)
        positional, keyword = parsed
        if keyword and not positional:
            return keyword
        values = positional + list(keyword.values())
        return values[0] if len(values) == 1 else values

    _report(on_fallback, "text", text)
    return text


def decode_arguments(text: str, on_fallback: FallbackFn = None) -> List[Any]:
    """
    Decode a test-case input into the positional arguments of the call.

    A JSON object gives its values in order, the same as the shorthand
    ``a = 1, b = [2]``; ``1, [2]`` is two arguments and any other JSON value is
    one. Empty input means no arguments.
    """
    stripped = text.strip()
    if not stripped:
        return []

    ok, value = _loads(stripped)
    if ok:
        return list(value.values()) if isinstance(value, dict) else [value]

    parsed = _parse_call(stripped)
    if parsed is not None:
        _report(on_fallback, "literal", text)
        positional, keyword = parsed
        if not keyword and len(positional) == 1 and isinstance(positional[0], dict):
            return list(positional[0].values())
        return positional + list(keyword.values())

    _report(on_fallback, "text", text)
    return [text]


def json_default(obj: Any) -> Any:
    """json.dumps hook for values JSON has no spelling for."""
    if isinstance(obj, (set, frozenset)):
        try:
            return sorted(obj)
        except TypeError:
            return list(obj)
    if isinstance(obj, (bytes, bytearray)):
        return obj.decode("utf-8", errors="replace")
    return repr(obj)


def encode(value: Any) -> str:
    """Canonical compact JSON text for a value."""
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=json_default)
    except (TypeError, ValueError, RecursionError):
        # non-string keys that JSON cannot coerce, or circular references
        return json.dumps(repr(value), ensure_ascii=False)


def _canonical(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return _canonical(json_default(value))
    if isinstance(value, dict):
        return {str(k): _canonical(v) for k, v in value.items()}
    return value


def normalize(value: Any) -> Any:
    """
    The one normalization applied before comparing actual and expected values.

    A top-level string is decoded once more, so ``"true"`` compares as
    ``true`` and ``"[0,1]"`` as ``[0,1]``. Nested strings are left alone.
    Tuples become lists, integral floats become ints, mapping keys become
    strings.
    """
    if isinstance(value, str):
        value = decode(value)
    return _canonical(value)


def comparison_key(value: Any) -> str:
    """Encoding of normalize(value) with sorted keys; equal keys mean equal values."""
    canonical = normalize(value)
    try:
        return json.dumps(canonical, sort_keys=True, separators=(",", ":"), default=json_default)
    except (TypeError, ValueError, RecursionError):
        return repr(canonical)


def values_equal(actual: Any, expected: Any) -> bool:
    """
    Deep structural equality after normalize().

    Arrays compare in order, objects by key set and values, and booleans are
    never equal to numbers.
    """
    return comparison_key(actual) == comparison_key(expected)
