# Fixed pattern table shared by the symbolic engines, checked in priority order
import math
from collections import namedtuple
from enum import Enum
from typing import Optional

import sympy as sp

from expression import X


class PatternKind(Enum):
    CONSTANT = 'constant'            # c
    IDENTITY = 'identity'            # x
    POWER = 'power'                  # x^n
    LINEAR = 'linear'                # a*x
    SCALED_POWER = 'scaled_power'    # a*x^n
    SINE = 'sine'                    # sin(x)
    COSINE = 'cosine'                # cos(x)
    EXPONENTIAL = 'exponential'      # e^x, exp(x)
    LOGARITHM = 'logarithm'          # ln(x), log(x)
    RECIPROCAL = 'reciprocal'        # 1/x
    UNRECOGNIZED = 'unrecognized'


PatternMatch = namedtuple('PatternMatch', ['kind', 'coefficient', 'exponent'])

UNRECOGNIZED = PatternMatch(PatternKind.UNRECOGNIZED, None, None)


def signed_number(node: sp.Basic) -> Optional[float]:
    """Value of an integer or decimal literal, sign included; None for anything else.

    Rationals are not literals here: sqrt(x) parses as x**(1/2) and must
    not be read as a power of x.
    """
    if isinstance(node, (sp.Integer, sp.Float)):
        value = float(node)
        return value if math.isfinite(value) else None
    return None


def _power_of_x(node) -> Optional[float]:
    if isinstance(node, sp.Pow) and node.base == X:
        return signed_number(node.exp)
    return None


def _is_call_on_x(node, *funcs) -> bool:
    return isinstance(node, funcs) and node.args == (X,)


def _two_factors(node):
    if isinstance(node, sp.Mul) and len(node.args) == 2:
        return node.args
    return None, None


# -------------------------------------------------------------- #
# Matchers
# -------------------------------------------------------------- #
def _match_constant(node):
    value = signed_number(node)
    if value is not None:
        return PatternMatch(PatternKind.CONSTANT, value, None)


def _match_identity(node):
    if node == X:
        return PatternMatch(PatternKind.IDENTITY, 1.0, 1.0)


def _match_power(node):
    n = _power_of_x(node)
    if n is not None:
        return PatternMatch(PatternKind.POWER, 1.0, n)


def _match_linear(node):
    # -x parses as Mul(-1, x), so it lands here with a = -1
    left, right = _two_factors(node)
    if right == X:
        a = signed_number(left)
        if a is not None:
            return PatternMatch(PatternKind.LINEAR, a, 1.0)


def _match_scaled_power(node):
    left, right = _two_factors(node)
    if left is not None:
        a, n = signed_number(left), _power_of_x(right)
        if a is not None and n is not None:
            return PatternMatch(PatternKind.SCALED_POWER, a, n)


def _match_trig(node):
    if _is_call_on_x(node, sp.sin):
        return PatternMatch(PatternKind.SINE, 1.0, None)
    if _is_call_on_x(node, sp.cos):
        return PatternMatch(PatternKind.COSINE, 1.0, None)


def _match_exponential(node):
    e_to_x = isinstance(node, sp.Pow) and node.base is sp.E and node.exp == X
    if e_to_x or _is_call_on_x(node, sp.exp):
        return PatternMatch(PatternKind.EXPONENTIAL, 1.0, None)


def _match_logarithm(node):
    if _is_call_on_x(node, sp.log):
        return PatternMatch(PatternKind.LOGARITHM, 1.0, None)


def _match_reciprocal(node):
    # 1/x parses as Mul(1, Pow(x, -1)); a/x for other a stays a scaled power
    left, right = _two_factors(node)
    if left is sp.S.One and isinstance(right, sp.Pow) and right.base == X and right.exp is sp.S.NegativeOne:
        return PatternMatch(PatternKind.RECIPROCAL, 1.0, -1.0)


PATTERN_PRIORITY = (
    _match_constant,
    _match_identity,
    _match_power,
    _match_reciprocal,   # before a*x^n, which would read 1/x as 1*x^-1
    _match_linear,
    _match_scaled_power,
    _match_trig,
    _match_exponential,
    _match_logarithm,
)


def classify(node: sp.Basic) -> PatternMatch:
    for matcher in PATTERN_PRIORITY:
        match = matcher(node)
        if match is not None:
            return match
    return UNRECOGNIZED


def format_number(value: float) -> str:
    """Integral values print without a decimal point ('10', not '10.0'); others round-trip."""
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)
