import math
from typing import List, Optional

import numpy as np
from mpmath import mp

from abc_engines import MathEngine
from evaluator import Evaluator
from expression import EvaluationError
from utils.precision_manager import get_dps

DEFAULT_STEP = 1e-4         # central-difference half width
DEFAULT_INTERVALS = 1000    # Simpson subintervals; must be even
LIMIT_STEPS = 15            # approach offsets 10^-1 .. 10^-15
LIMIT_TOLERANCE = 1e-10
LIMIT_TAIL = 5
DIRECTIONS = ('left', 'right', 'both')


def approach_sequence(point: float, direction: str = 'both') -> List[float]:
    """Points closing in on `point`: the left side first, then the right."""
    offsets = [10.0 ** -i for i in range(1, LIMIT_STEPS + 1)]
    xs: List[float] = []
    if direction in ('left', 'both'):
        xs.extend(point - h for h in offsets)
    if direction in ('right', 'both'):
        xs.extend(point + h for h in offsets)
    return xs


def simpson_weights(n: int) -> np.ndarray:
    """1, 4, 2, 4, ..., 4, 1 for n subintervals (n + 1 samples)."""
    weights = np.ones(n + 1)
    weights[1:-1:2] = 4.0
    weights[2:-1:2] = 2.0
    return weights


class NumericalEngine(MathEngine):
    """Central differences, Simpson quadrature and numerical limits.

    Every routine is a pure function of its arguments. Evaluation failures
    are caught here and reported as NaN, with a '*_failed' trace event.
    """

    COMMANDS = ('slope', 'integral', 'limit')

    def __init__(self, evaluator: Optional[Evaluator] = None, dps: Optional[int] = None,
                 traceback_info: Optional[List[dict]] = None):
        super().__init__(evaluator, traceback_info)
        self.dps = dps if dps is not None else get_dps()

    # -------------------------------------------------------------- #
    # Derivative
    # -------------------------------------------------------------- #
    def numerical_derivative(self, expr: str, x: float, h: float = DEFAULT_STEP) -> float:
        if h == 0:
            self._add_traceback('derivative_failed', f'{expr}: zero step')
            return math.nan
        try:
            f = self.evaluator.compile(expr)
            forward, backward = f(x + h), f(x - h)
        except EvaluationError as e:
            self._add_traceback('derivative_failed', f'{expr} at x={x}: {e}')
            return math.nan
        return (forward - backward) / (2 * h)

    def derivative_samples(self, expr: str, xs, h: float = DEFAULT_STEP) -> np.ndarray:
        """numerical_derivative at every point of `xs`, NaN everywhere on failure."""
        points = np.asarray(xs, dtype=float)
        try:
            forward = self.evaluator.evaluate_many(expr, points + h)
            backward = self.evaluator.evaluate_many(expr, points - h)
        except EvaluationError as e:
            self._add_traceback('derivative_failed', f'{expr}: {e}')
            return np.full(points.shape, np.nan)
        with np.errstate(all='ignore'):
            return (forward - backward) / (2 * h)

    # -------------------------------------------------------------- #
    # Definite integral
    # -------------------------------------------------------------- #
    def definite_integral(self, expr: str, a: float, b: float, n: int = DEFAULT_INTERVALS) -> float:
        """Composite Simpson's rule over n subintervals.

        n should be even; an odd n is accepted and keeps the uneven
        weighting rather than being corrected. Reversed bounds flip the
        sign, equal bounds give exactly 0. Samples that are not finite
        count as 0 instead of poisoning the sum, so an integrable
        singularity on the grid still yields a (rough) value.
        """
        if a == b:
            return 0.0
        if a > b:
            return -self.definite_integral(expr, b, a, n)
        if n < 1:
            self._add_traceback('integral_failed', f'{expr}: n={n}')
            return math.nan

        h = (b - a) / n
        xs = a + np.arange(n + 1) * h
        xs[-1] = b
        try:
            ys = self.evaluator.evaluate_many(expr, xs)
        except EvaluationError as e:
            self._add_traceback('integral_failed', f'{expr} on [{a}, {b}]: {e}')
            return math.nan

        finite = np.isfinite(ys)
        if not finite.all():
            self._add_traceback('integral_dropped', f'{int((~finite).sum())} non-finite samples counted as 0')
        terms = simpson_weights(n) * np.where(finite, ys, 0.0)

        with mp.workdps(self.dps):
            total = mp.fsum(float(t) for t in terms)
            return float(mp.mpf(h) / 3 * total)

    # -------------------------------------------------------------- #
    # Limit
    # -------------------------------------------------------------- #
    def limit(self, expr: str, point: float, direction: str = 'both') -> float:
        """Numerical limit of expr as x -> point.

        Finite direct value wins. Otherwise the approach samples are pooled
        (left then right for 'both'), the last LIMIT_TAIL finite ones must lie
        within LIMIT_TOLERANCE of their mean. With 'both' that tail is the
        right-hand side only, so a jump discontinuity is not detected.
        """
        try:
            f = self.evaluator.compile(expr)
        except EvaluationError as e:
            self._add_traceback('limit_failed', f'{expr}: {e}')
            return math.nan

        try:
            direct = f(point)
        except EvaluationError:
            direct = math.nan
        if math.isfinite(direct):
            return float(direct)

        if direction not in DIRECTIONS:
            self._add_traceback('limit_failed', f'unknown direction {direction!r}')
            return math.nan

        try:
            samples = [v for v in (f(x) for x in approach_sequence(point, direction)) if math.isfinite(v)]
        except EvaluationError as e:
            self._add_traceback('limit_failed', f'{expr} near {point}: {e}')
            return math.nan
        if not samples:
            return math.nan

        tail = samples[-min(LIMIT_TAIL, len(samples)):]
        with mp.workdps(self.dps):
            mean = float(mp.fsum(tail) / len(tail))
        if all(abs(v - mean) < LIMIT_TOLERANCE for v in tail):
            return mean
        self._add_traceback('limit', f'{expr} at {point} ({direction}) does not converge')
        return math.nan

    # -------------------------------------------------------------- #
    # compute() entry
    # -------------------------------------------------------------- #
    def compute(self, expr: str) -> str:
        self._add_traceback('compute_start', expr)
        name, args = self._split_command(expr)
        if name == 'slope':
            self._expect_args(name, args, 2, 3)
            h = self._number(args[2]) if len(args) == 3 else DEFAULT_STEP
            result = self.numerical_derivative(args[0], self._number(args[1]), h)
        elif name == 'integral':
            self._expect_args(name, args, 3, 4)
            n = int(self._number(args[3])) if len(args) == 4 else DEFAULT_INTERVALS
            result = self.definite_integral(args[0], self._number(args[1]), self._number(args[2]), n)
        elif name == 'limit':
            self._expect_args(name, args, 2, 3)
            direction = args[2].lower() if len(args) == 3 else 'both'
            if direction not in DIRECTIONS:
                raise ValueError(f"limit direction must be one of {DIRECTIONS}, got {direction!r}")
            result = self.limit(args[0], self._number(args[1]), direction)
        else:
            raise ValueError(f"Unsupported numerical command: {expr}")
        self._add_traceback('compute_end', f'{expr} -> {result}')
        return str(result)
