from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from evaluator import Evaluator, NumpyEvaluator
from expression import EvaluationError, parse_expression, references_variable
from utils.trace_helpers import add_traceback


class MathEngine(ABC):
    """Abstract base class for the calculus engines.

    Holds the injected Evaluator and the trace log. Engines built together
    (see CalculusEngine) share one evaluator and one `traceback_info` list.
    """

    # command names understood by compute(); subclasses fill this in
    COMMANDS: Tuple[str, ...] = ()

    def __init__(self, evaluator: Optional[Evaluator] = None, traceback_info: Optional[List[dict]] = None):
        self.evaluator = evaluator if evaluator is not None else NumpyEvaluator()
        self.traceback_info: List[dict] = traceback_info if traceback_info is not None else []

    @abstractmethod
    def compute(self, expr: str) -> str:
        """Run one textual command such as 'integral(x^2, 0, 3)' and return the result as text."""
        pass

    # -------------------------------------------------------------- #
    # Trace helper
    # -------------------------------------------------------------- #
    def _add_traceback(self, step: str, info: str):
        add_traceback(self, step, info)

    # -------------------------------------------------------------- #
    # Command parsing helpers
    # -------------------------------------------------------------- #
    @staticmethod
    def _split_command(text: str) -> Tuple[Optional[str], List[str]]:
        """Split 'name(a, b, c)' into ('name', ['a', 'b', 'c']).

        Commas inside nested parentheses stay with their argument. Text that
        is not a single outer call comes back as (None, [text]).
        """
        text = text.strip()
        start = text.find('(')
        if start <= 0 or not text.endswith(')'):
            return None, [text]
        name = text[:start].strip()
        if not name.isidentifier():
            return None, [text]

        args, current, depth = [], [], 0
        for ch in text[start + 1:-1]:
            if ch == '(':
                depth += 1
            elif ch == ')':
                depth -= 1
                if depth < 0:
                    # the opening parenthesis closed early, e.g. sin(x)+cos(x)
                    return None, [text]
            if ch == ',' and depth == 0:
                args.append(''.join(current).strip())
                current = []
            else:
                current.append(ch)
        args.append(''.join(current).strip())
        return name.lower(), args

    @staticmethod
    def _expect_args(name: str, args: List[str], low: int, high: int) -> None:
        if not low <= len(args) <= high or any(not a for a in args):
            expected = str(low) if low == high else f"{low}-{high}"
            raise ValueError(f"{name}() takes {expected} arguments, got {len(args)}")

    def _number(self, text: str) -> float:
        """Evaluate a numeric argument such as '3', '-1.5' or '2*e'; it may not mention x."""
        if references_variable(parse_expression(text)):
            raise EvaluationError(f"Numeric argument expected, got {text!r}")
        return self.evaluator.evaluate(text, 0.0)
