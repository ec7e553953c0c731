"""Number <-> text conversion for the `n:` key tag.

The wire form is the one JavaScript's Number.prototype.toString produces,
so keys written by other implementations of the format decode here and
vice versa. Python ints too large for a float to hold exactly keep every digit.
"""

import math
import re
from decimal import Decimal
from typing import Union

INTEGER_PATTERN = re.compile(r"-?[0-9]+")
FLOAT_PATTERN = re.compile(r"-?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def number_to_text(value: Union[int, float]) -> str:
    """Format a number the way JavaScript does.

    Args:
        value: int or non-NaN float

    Returns:
        Digits for ints and integral floats below 1e21, 'Infinity' /
        '-Infinity' for infinities, shortest round-trip digits otherwise
        with an exponent only outside [1e-7, 1e21). An int at or above
        1e21 that a float represents exactly is written like that float,
        so equal numbers always share a text form.

    Raises:
        ValueError: If value is NaN, or an int too long for str()
    """
    if isinstance(value, int):
        if abs(value) < 10**21:
            return str(value)
        try:
            as_float = float(value)
        except OverflowError:
            return str(value)
        if as_float != value:
            return str(value)
        value = as_float
    if math.isnan(value):
        raise ValueError("NaN has no key representation")
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"  # Also covers -0.0

    sign = "-" if value < 0 else ""
    # repr() gives the shortest digit string that round-trips, same as JS
    _, digit_tuple, exponent = Decimal(repr(abs(value))).as_tuple()
    digits = "".join(str(d) for d in digit_tuple).rstrip("0")
    exponent = int(exponent) + (len(digit_tuple) - len(digits))
    k = len(digits)
    n = exponent + k  # value == 0.digits * 10**n

    if k <= n <= 21:
        return sign + digits + "0" * (n - k)
    if 0 < n <= 21:
        return sign + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return sign + "0." + "0" * (-n) + digits

    exp_sign = "+" if n - 1 >= 0 else "-"
    mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
    return f"{sign}{mantissa}e{exp_sign}{abs(n - 1)}"


def number_from_text(text: str) -> Union[int, float]:
    """Parse the `n:` payload back into a number.

    Integer literals come back as int, everything else as float.

    Raises:
        ValueError: If text is not a number literal
    """
    if INTEGER_PATTERN.fullmatch(text):
        return int(text)
    if text == "Infinity":
        return math.inf
    if text == "-Infinity":
        return -math.inf
    if FLOAT_PATTERN.fullmatch(text):
        return float(text)
    raise ValueError(f"Invalid number literal: {text!r}")
