"""
Runtime values for the Sam interpreter.

A `Value` pairs raw Python data with a `ValueKind` tag:

    INT               int, wrapped to the signed 64-bit range
    FLOAT             float
    STRING            str
    ARRAY             list of Value
    OBJECT            dict of str -> Value
    FUNCTION          FunctionData (body byte range + parameter names)
    FOREIGN_FUNCTION  str, the shell command template
    UNDEFINED         None

Operator semantics live here as plain functions so the evaluator only has
to unwrap control signals and dispatch.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from ..errors import (
    error_incomparable,
    error_not_attributable,
    error_unknown_attribute,
    error_unknown_operator,
)


INT_MIN = -(1 << 63)
INT_MAX = (1 << 63) - 1


class ValueKind(Enum):
    """The variants of a Sam value."""
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"
    FUNCTION = "function"
    FOREIGN_FUNCTION = "foreign function"
    UNDEFINED = "undefined"


@dataclass(frozen=True)
class FunctionData:
    """
    A user-defined function.

    Only the body's byte range is kept; the body node is looked up again
    in the program tree every time the function is called.
    """
    start_byte: int
    end_byte: int
    parameters: Tuple[str, ...]


@dataclass
class Value:
    """
    A runtime value with its Sam kind.

    The `data` field holds the Python representation, the `kind` field
    says which variant it is.
    """
    data: Any
    kind: ValueKind

    def __repr__(self) -> str:
        return f"Value({self.data!r}, {self.kind.name})"

    @property
    def is_number(self) -> bool:
        return self.kind in (ValueKind.INT, ValueKind.FLOAT)

    @property
    def is_undefined(self) -> bool:
        return self.kind == ValueKind.UNDEFINED

    @property
    def is_callable(self) -> bool:
        return self.kind in (ValueKind.FUNCTION, ValueKind.FOREIGN_FUNCTION)

    def is_truthy(self) -> bool:
        """Int-zero rule: numbers are true when nonzero, everything else is false."""
        if self.is_number:
            return self.data != 0
        return False

    def to_python(self) -> Any:
        """
        Convert to plain Python data.

        Arrays become lists, objects dicts, undefined None. Functions and
        foreign functions have no Python counterpart and stay Values.
        """
        if self.kind == ValueKind.UNDEFINED:
            return None
        if self.kind == ValueKind.ARRAY:
            return [item.to_python() for item in self.data]
        if self.kind == ValueKind.OBJECT:
            return {key: item.to_python() for key, item in self.data.items()}
        if self.is_callable:
            return self
        return self.data

    def __str__(self) -> str:
        return render(self)


# A statement or block either falls through with a Value or asks to
# unwind to the enclosing call with a Return.

@dataclass
class Return:
    """Early exit from the enclosing function call."""
    value: Value


Signal = Union[Value, Return]


# Convenience constructors

def wrap_int(n: int) -> int:
    """Wrap an integer into the signed 64-bit range."""
    return ((n - INT_MIN) & 0xFFFFFFFFFFFFFFFF) + INT_MIN


def int_val(n: int) -> Value:
    """Create an integer value."""
    return Value(wrap_int(int(n)), ValueKind.INT)


def float_val(x: float) -> Value:
    """Create a float value."""
    return Value(float(x), ValueKind.FLOAT)


def bool_val(b: bool) -> Value:
    """Booleans are Int 0 or 1."""
    return Value(1 if b else 0, ValueKind.INT)


def string_val(s: str) -> Value:
    """Create a string value."""
    return Value(str(s), ValueKind.STRING)


def array_val(items: List[Value]) -> Value:
    """Create an array value from a list of Values."""
    return Value(list(items), ValueKind.ARRAY)


def object_val(items: Dict[str, Value]) -> Value:
    """Create an object value."""
    return Value(dict(items), ValueKind.OBJECT)


def function_val(start_byte: int, end_byte: int, parameters: List[str]) -> Value:
    """Create a function value from a body byte range and parameter names."""
    return Value(FunctionData(start_byte, end_byte, tuple(parameters)), ValueKind.FUNCTION)


def foreign_val(command: str) -> Value:
    """Create a foreign function value from a shell command template."""
    return Value(command, ValueKind.FOREIGN_FUNCTION)


def undefined_val() -> Value:
    return Value(None, ValueKind.UNDEFINED)


def value_from_python(data: Any) -> Value:
    """
    Convert decoded JSON (or any plain Python data) into a Value.

    None -> undefined, bool -> Int 0/1, int -> Int (Float when it does not
    fit in 64 bits), float -> Float, str -> String, list/tuple -> Array,
    dict -> Object. Values are passed through unchanged.
    """
    if isinstance(data, Value):
        return data
    if data is None:
        return undefined_val()
    if isinstance(data, bool):
        return bool_val(data)
    if isinstance(data, int):
        if INT_MIN <= data <= INT_MAX:
            return int_val(data)
        return float_val(float(data))
    if isinstance(data, float):
        return float_val(data)
    if isinstance(data, str):
        return string_val(data)
    if isinstance(data, (list, tuple)):
        return array_val([value_from_python(item) for item in data])
    if isinstance(data, dict):
        return object_val({str(key): value_from_python(item) for key, item in data.items()})
    raise TypeError(f"cannot convert {type(data).__name__} to a Sam value")


def kind_name(value: Value) -> str:
    """Human-readable kind name for diagnostics."""
    return value.kind.value


# Rendering

def render(value: Value) -> str:
    """
    Textual form of a value.

    Used for `sam run` output, for foreign-function command lines and
    for shell fallback arguments. Strings render as their raw content.
    """
    if value.kind == ValueKind.STRING:
        return value.data
    return _render_nested(value)


def _render_nested(value: Value) -> str:
    kind = value.kind
    if kind == ValueKind.INT:
        return str(value.data)
    if kind == ValueKind.FLOAT:
        return repr(value.data)
    if kind == ValueKind.STRING:
        return _quote(value.data)
    if kind == ValueKind.ARRAY:
        return "[" + ", ".join(_render_nested(item) for item in value.data) + "]"
    if kind == ValueKind.OBJECT:
        entries = (f"{_quote(key)}: {_render_nested(item)}" for key, item in value.data.items())
        return "{" + ", ".join(entries) + "}"
    if kind == ValueKind.FUNCTION:
        return f"<function({', '.join(value.data.parameters)})>"
    if kind == ValueKind.FOREIGN_FUNCTION:
        return f"<foreign `{value.data}`>"
    return "undefined"


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


# Operators

def _float_pair(left: Value, right: Value) -> Tuple[float, float]:
    return float(left.data), float(right.data)


def _both_int(left: Value, right: Value) -> bool:
    return left.kind == ValueKind.INT and right.kind == ValueKind.INT


def add(left: Value, right: Value) -> Value:
    if left.kind == ValueKind.STRING and right.kind == ValueKind.STRING:
        return string_val(left.data + right.data)
    if not (left.is_number and right.is_number):
        return undefined_val()
    if _both_int(left, right):
        return int_val(left.data + right.data)
    a, b = _float_pair(left, right)
    return float_val(a + b)


def subtract(left: Value, right: Value) -> Value:
    if not (left.is_number and right.is_number):
        return undefined_val()
    if _both_int(left, right):
        return int_val(left.data - right.data)
    a, b = _float_pair(left, right)
    return float_val(a - b)


def multiply(left: Value, right: Value) -> Value:
    if not (left.is_number and right.is_number):
        return undefined_val()
    if _both_int(left, right):
        return int_val(left.data * right.data)
    a, b = _float_pair(left, right)
    return float_val(a * b)


def divide(left: Value, right: Value) -> Value:
    """Division always yields a Float; a zero divisor yields undefined."""
    if not (left.is_number and right.is_number) or right.data == 0:
        return undefined_val()
    a, b = _float_pair(left, right)
    return float_val(a / b)


def remainder(left: Value, right: Value) -> Value:
    """
    Int % Int is the truncating remainder (sign follows the dividend).
    With a Float operand the result is the Euclidean remainder, which is
    never negative. A zero divisor yields undefined.
    """
    if not (left.is_number and right.is_number) or right.data == 0:
        return undefined_val()
    if _both_int(left, right):
        magnitude = abs(left.data) % abs(right.data)
        return int_val(-magnitude if left.data < 0 else magnitude)
    a, b = _float_pair(left, right)
    result = math.fmod(a, b)
    if result < 0:
        result += abs(b)
    return float_val(result)


def values_equal(left: Value, right: Value) -> bool:
    """
    Structural equality.

    Numbers compare by value after promotion to float, so 3 == 3.0.
    Arrays and objects are equal when they have the same length (or keys)
    and equal elements. Values of different kinds are never equal.
    """
    if left.is_number and right.is_number:
        return float(left.data) == float(right.data)
    if left.kind != right.kind:
        return False
    if left.kind == ValueKind.ARRAY:
        return (len(left.data) == len(right.data)
                and all(values_equal(a, b) for a, b in zip(left.data, right.data)))
    if left.kind == ValueKind.OBJECT:
        if left.data.keys() != right.data.keys():
            return False
        return all(values_equal(item, right.data[key]) for key, item in left.data.items())
    return left.data == right.data


def compare(operator: str, left: Value, right: Value) -> Value:
    """
    Ordering comparison, defined only between numbers.

    Anything else has no ordering and raises; NaN has no ordering either.
    """
    if left.is_number and right.is_number:
        a, b = _float_pair(left, right)
        if not (math.isnan(a) or math.isnan(b)):
            if operator == "<":
                return bool_val(a < b)
            if operator == ">":
                return bool_val(a > b)
            if operator == "<=":
                return bool_val(a <= b)
            return bool_val(a >= b)
    raise error_incomparable(operator, kind_name(left), kind_name(right))


def logical(operator: str, left: Value, right: Value) -> Value:
    """&& and || over numbers coerced by the Int-zero rule; other kinds yield undefined."""
    if not (left.is_number and right.is_number):
        return undefined_val()
    if operator == "&&":
        return bool_val(left.is_truthy() and right.is_truthy())
    return bool_val(left.is_truthy() or right.is_truthy())


_ARITHMETIC = {
    "+": add,
    "-": subtract,
    "*": multiply,
    "/": divide,
    "%": remainder,
}


def binary_op(operator: str, left: Value, right: Value) -> Value:
    """Apply a binary operator to two plain values."""
    if operator in _ARITHMETIC:
        return _ARITHMETIC[operator](left, right)
    if operator == "==":
        return bool_val(values_equal(left, right))
    if operator == "!=":
        return bool_val(not values_equal(left, right))
    if operator in ("<", ">", "<=", ">="):
        return compare(operator, left, right)
    if operator in ("&&", "||"):
        return logical(operator, left, right)
    raise error_unknown_operator(operator)


def get_attribute(value: Value, name: str) -> Value:
    """Attribute access, legal only on objects."""
    if value.kind != ValueKind.OBJECT:
        raise error_not_attributable(kind_name(value), name)
    try:
        return value.data[name]
    except KeyError:
        raise error_unknown_attribute(name) from None


def parse_number(text: str) -> Optional[Value]:
    """
    Parse a number literal.

    Literals with a fraction or exponent are Floats, the rest Ints.
    Returns None when an Int literal does not fit in 64 bits.
    """
    if any(ch in text for ch in ".eE"):
        return float_val(float(text))
    n = int(text)
    if not INT_MIN <= n <= INT_MAX:
        return None
    return int_val(n)
