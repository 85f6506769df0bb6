"""
jsvalues.py
JavaScript value semantics shared by the optimizer (constant folding) and the
virtual machine, so a folded constant is exactly what the VM would compute.

Values are plain Python objects: int/float for numbers, bool, str, None for
null and the UNDEFINED singleton for undefined.
"""

import math
from decimal import Decimal


class Undefined:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "undefined"

    def __bool__(self):
        return False


UNDEFINED = Undefined()

# integers beyond this magnitude are not exact doubles
MAX_SAFE_INTEGER = 2 ** 53


def is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_nan(value):
    return isinstance(value, float) and math.isnan(value)


def js_number(value):
    """Collapse an int outside the exact double range to the double JS would hold."""
    if is_number(value) and isinstance(value, int) and abs(value) > MAX_SAFE_INTEGER:
        try:
            return float(value)
        except OverflowError:
            return float("inf") if value > 0 else float("-inf")
    return value


def to_boolean(value):
    if value is UNDEFINED or value is None:
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return not (is_nan(value) or value == 0)
    if isinstance(value, str):
        return len(value) > 0
    return True


def to_number(value):
    if value is UNDEFINED:
        return float("nan")
    if value is None:
        return 0
    if isinstance(value, bool):
        return 1 if value else 0
    if is_number(value):
        return value
    if isinstance(value, str):
        s = value.strip()
        if s == "":
            return 0
        if s in ("Infinity", "+Infinity"):
            return float("inf")
        if s == "-Infinity":
            return float("-inf")
        try:
            if "." in s or "e" in s.lower():
                return float(s)
            if s.lower().startswith("0x"):
                return js_number(int(s, 16))
            return js_number(int(s))
        except ValueError:
            return float("nan")
    return float("nan")


def to_string(value):
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        if abs(value) > MAX_SAFE_INTEGER:
            return to_string(js_number(value))
        return str(value)
    if isinstance(value, float):
        if is_nan(value):
            return "NaN"
        if value == float("inf"):
            return "Infinity"
        if value == float("-inf"):
            return "-Infinity"
        if value == 0:
            return "0"
        s = repr(value)
        if value.is_integer() and abs(value) < 1e21:
            if abs(value) <= MAX_SAFE_INTEGER:
                return str(int(value))
            # shortest round-trip digits, padded with zeros
            return format(Decimal(s).normalize(), "f")
        if 1e-6 <= abs(value) < 1e-4:
            # JS keeps plain decimal notation down to 1e-6
            return format(Decimal(s), "f")
        if "e" in s:
            mantissa, exponent = s.split("e")
            sign = "-" if exponent.startswith("-") else "+"
            return f"{mantissa}e{sign}{exponent.lstrip('+-').lstrip('0')}"
        return s
    return str(value)


def typeof(value):
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "object"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    return "object"


def is_nullish(value):
    return value is None or value is UNDEFINED


def loose_equals(a, b):
    if is_nullish(a) or is_nullish(b):
        return is_nullish(a) and is_nullish(b)
    if isinstance(a, bool):
        return loose_equals(to_number(a), b)
    if isinstance(b, bool):
        return loose_equals(a, to_number(b))
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    if is_number(a) or is_number(b):
        return to_number(a) == to_number(b)
    return a is b


def strict_equals(a, b):
    if is_number(a) and is_number(b):
        return a == b
    if type(a) is not type(b):
        return False
    if isinstance(a, (bool, str)):
        return a == b
    return a is b


def add(a, b):
    if isinstance(a, str) or isinstance(b, str):
        return to_string(a) + to_string(b)
    return js_number(to_number(a) + to_number(b))


def subtract(a, b):
    return js_number(to_number(a) - to_number(b))


def multiply(a, b):
    return js_number(to_number(a) * to_number(b))


def divide(a, b):
    x, y = to_number(a), to_number(b)
    if y == 0:
        if x == 0 or is_nan(x):
            return float("nan")
        return math.copysign(float("inf"), x) * math.copysign(1, y)
    return x / y


def remainder(a, b):
    x, y = to_number(a), to_number(b)
    if y == 0 or is_nan(x) or is_nan(y) or math.isinf(x):
        return float("nan")
    if math.isinf(y):
        return x
    result = math.fmod(x, y)
    if isinstance(x, int) and isinstance(y, int):
        return int(result)
    return result


def power(a, b):
    x, y = to_number(a), to_number(b)
    if isinstance(x, int) and isinstance(y, int) and abs(y) > 1100:
        x = float(x)
    try:
        result = x ** y
    except ZeroDivisionError:
        return float("inf")
    except OverflowError:
        odd = float(y).is_integer() and int(y) % 2 == 1
        return float("-inf") if x < 0 and odd else float("inf")
    if isinstance(result, complex):
        return float("nan")
    return js_number(result)


def to_int32(value):
    n = to_number(value)
    if is_nan(n) or math.isinf(n):
        return 0
    n = int(n) & 0xFFFFFFFF
    return n - 0x100000000 if n >= 0x80000000 else n


def to_uint32(value):
    return to_int32(value) & 0xFFFFFFFF


def shift_count(value):
    return to_uint32(value) & 31


def compare(a, b, test):
    if isinstance(a, str) and isinstance(b, str):
        return test(a, b)
    x, y = to_number(a), to_number(b)
    if is_nan(x) or is_nan(y):
        return False
    return test(x, y)


BINARY_OPS = {
    '+': add,
    '-': subtract,
    '*': multiply,
    '/': divide,
    '%': remainder,
    '**': power,
    '&': lambda a, b: to_int32(a) & to_int32(b),
    '|': lambda a, b: to_int32(a) | to_int32(b),
    '^': lambda a, b: to_int32(a) ^ to_int32(b),
    '<<': lambda a, b: to_int32(to_int32(a) << shift_count(b)),
    '>>': lambda a, b: to_int32(a) >> shift_count(b),
    '>>>': lambda a, b: to_uint32(a) >> shift_count(b),
    '<': lambda a, b: compare(a, b, lambda x, y: x < y),
    '>': lambda a, b: compare(a, b, lambda x, y: x > y),
    '<=': lambda a, b: compare(a, b, lambda x, y: x <= y),
    '>=': lambda a, b: compare(a, b, lambda x, y: x >= y),
    'EQ': loose_equals,
    'NEQ': lambda a, b: not loose_equals(a, b),
    'EQ_STRICT': strict_equals,
    'NEQ_STRICT': lambda a, b: not strict_equals(a, b),
}

UNARY_OPS = {
    'NEG': lambda a: -to_number(a),
    'POS': to_number,
    'NOT': lambda a: not to_boolean(a),
    'BITNOT': lambda a: ~to_int32(a),
    'TYPEOF': typeof,
}


def apply_op(op, a, b=UNDEFINED):
    """Evaluate a binary or unary quadruple op on already-resolved values."""
    if op in UNARY_OPS:
        return UNARY_OPS[op](a)
    return BINARY_OPS[op](a, b)


def is_operator(op):
    return op in BINARY_OPS or op in UNARY_OPS
