from typing import List, Optional, Union

import numpy as np

from abc_engines import MathEngine
from evaluator import Evaluator
from expression import FUNCTIONS, EvaluationError, parse_expression, references_variable
from numerical_engine import DEFAULT_INTERVALS, DEFAULT_STEP, NumericalEngine
from symbolic_engine import DerivedExpression, ResultKind, SymbolicEngine


class CalculusEngine(MathEngine):
    """Call surface used by the visualizer: evaluation, pattern-table rewrites and numerical routines.

    One evaluator and one trace log are shared by the symbolic and numerical
    engines underneath. Pass an Evaluator to swap the math backend (or to
    inject a test double); the default is NumpyEvaluator.
    """

    COMMANDS = ('eval',) + SymbolicEngine.COMMANDS + NumericalEngine.COMMANDS

    def __init__(self, evaluator: Optional[Evaluator] = None, dps: Optional[int] = None):
        super().__init__(evaluator)
        self.symbolic = SymbolicEngine(self.evaluator, self.traceback_info)
        self.numerical = NumericalEngine(self.evaluator, dps=dps, traceback_info=self.traceback_info)

    # -------------------------------------------------------------- #
    # Public helpers (direct calls)
    # -------------------------------------------------------------- #
    def evaluate(self, expr: str, x: float) -> float:
        return self.evaluator.evaluate(expr, x)

    def differentiate(self, expr: str) -> DerivedExpression:
        return self.symbolic.differentiate(expr)

    def antiderivative(self, expr: str) -> DerivedExpression:
        return self.symbolic.antiderivative(expr)

    def numerical_derivative(self, expr: str, x: float, h: float = DEFAULT_STEP) -> float:
        return self.numerical.numerical_derivative(expr, x, h)

    def definite_integral(self, expr: str, a: float, b: float, n: int = DEFAULT_INTERVALS) -> float:
        return self.numerical.definite_integral(expr, a, b, n)

    def limit(self, expr: str, point: float, direction: str = 'both') -> float:
        return self.numerical.limit(expr, point, direction)

    def value_of(self, derived: DerivedExpression, x: float) -> float:
        """Value of a rewrite at x. NUMERIC falls back to the central difference of its source."""
        if derived.kind is ResultKind.CLOSED:
            return self.evaluator.evaluate(derived.text, x)
        if derived.kind is ResultKind.NUMERIC:
            return self.numerical.numerical_derivative(derived.source, x)
        raise EvaluationError(f"{derived.text} has no closed form and cannot be evaluated")

    def sample(self, target: Union[str, DerivedExpression], xs) -> np.ndarray:
        """Vectorized values of an expression or a rewrite over `xs`, for plotting."""
        points = np.asarray(xs, dtype=float)
        if not isinstance(target, DerivedExpression):
            return self.evaluator.evaluate_many(target, points)
        if target.kind is ResultKind.CLOSED:
            return self.evaluator.evaluate_many(target.text, points)
        if target.kind is ResultKind.NUMERIC:
            return self.numerical.derivative_samples(target.source, points)
        raise EvaluationError(f"{target.text} has no closed form and cannot be sampled")

    # -------------------------------------------------------------- #
    # compute() entry: route textual commands to the engines
    # -------------------------------------------------------------- #
    def compute(self, expr: str) -> str:
        self._add_traceback('compute_start', expr)
        name, args = self._split_command(expr)

        if name in SymbolicEngine.COMMANDS:
            return self.symbolic.compute(expr)
        if name in NumericalEngine.COMMANDS:
            return self.numerical.compute(expr)
        if name == 'eval':
            self._expect_args(name, args, 2, 2)
            result = self.evaluate(args[0], self._number(args[1]))
        elif name is None or name in FUNCTIONS:
            result = self._evaluate_bare(expr)
        else:
            raise ValueError(f"Unknown command {name!r}; expected one of {', '.join(self.COMMANDS)}")

        self._add_traceback('compute_end', f'{expr} -> {result}')
        return str(result)

    def _evaluate_bare(self, expr: str) -> float:
        if references_variable(parse_expression(expr)):
            raise ValueError(
                f"{expr!r} depends on x; use eval(f, x), derivative(f), integral(f, a, b) or limit(f, p)")
        return self.evaluator.evaluate(expr, 0.0)

    def help_lines(self) -> List[str]:
        return [
            "derivative(f)            closed-form derivative (or numeric marker)",
            "antiderivative(f)        closed-form antiderivative (or placeholder)",
            "slope(f, x[, h])         central-difference derivative at x",
            "integral(f, a, b[, n])   Simpson's rule, n even",
            "limit(f, p[, dir])       dir = left | right | both",
            "eval(f, x)               value of f at x",
        ]
