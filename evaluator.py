"""
Evaluator capability consumed by the engines.

Engines are handed an Evaluator instance instead of reaching for a
process-wide math registry, so tests can inject a double and a UI can
swap backends without touching the engines.

Contract: evaluate(expression, x) -> float. Raises EvaluationError for
malformed input or undefined symbols. A non-finite result (1/0, ln(-1))
is a value, not an error: callers test it with math.isfinite.
"""
from abc import ABC, abstractmethod
from typing import Callable, Iterable

import numpy as np
import sympy as sp

from expression import X, EvaluationError, parse_expression

__all__ = ['Evaluator', 'NumpyEvaluator', 'EvaluationError']


class Evaluator(ABC):
    """Abstract single-variable evaluator."""

    @abstractmethod
    def evaluate(self, expression: str, x: float) -> float:
        pass

    def compile(self, expression: str) -> Callable[[float], float]:
        """Bind `expression` once for repeated scalar calls within one operation."""
        return lambda value: self.evaluate(expression, value)

    def evaluate_many(self, expression: str, xs: Iterable[float]) -> np.ndarray:
        """Values at every point of `xs`. Subclasses may vectorize; this one loops."""
        fn = self.compile(expression)
        return np.array([fn(float(value)) for value in np.asarray(xs, dtype=float)], dtype=float)


class NumpyEvaluator(Evaluator):
    """Lambdifies the parsed SymPy tree to numpy; works on scalars and arrays alike.

    Numeric literals become float64 arguments of the generated function
    instead of Python numbers in its source, so constant pieces such as
    1/0 or 10^400 follow numpy's inf/nan rules rather than raising.
    """

    MODULES = 'numpy'

    def evaluate(self, expression: str, x: float) -> float:
        return self.compile(expression)(x)

    def compile(self, expression: str) -> Callable[[float], float]:
        fn = self._lambdify(parse_expression(expression), expression)

        def run(value):
            return float(fn(value))

        return run

    def evaluate_many(self, expression: str, xs: Iterable[float]) -> np.ndarray:
        fn = self._lambdify(parse_expression(expression), expression)
        points = np.asarray(xs, dtype=float)
        # constant expressions come back as a scalar
        return np.array(np.broadcast_to(fn(points), points.shape), dtype=float)

    def _lambdify(self, tree: sp.Expr, expression: str) -> Callable:
        try:
            # -1 stays in place so Pow(b, -1) prints as a true division a/b
            literals = [n for n in tree.atoms(sp.Number) if n is not sp.S.NegativeOne]
            slots = [sp.Dummy() for _ in literals]
            # keep the typed shape: x/x must not fold to 1 while swapping literals out
            with sp.evaluate(False):
                body = tree.xreplace(dict(zip(literals, slots)))
            compiled = sp.lambdify([X] + slots, body, self.MODULES)
        except (RecursionError, MemoryError) as e:
            raise EvaluationError(f"Expression {expression!r} is nested too deeply") from e
        constants = [np.float64(float(v)) for v in literals]

        def fn(value):
            with np.errstate(all='ignore'):
                return compiled(np.asarray(value, dtype=float), *constants)

        return fn
