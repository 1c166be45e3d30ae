"""
Pattern-table differentiation and antidifferentiation.

Only the shapes listed in pattern_rules are rewritten in closed form:

    c, x, x^n, a*x, a*x^n, sin(x), cos(x), e^x / exp(x), ln(x) / log(x), 1/x

Everything else degrades instead of raising. A derivative without a
closed form becomes a NUMERIC result (its values come from the central
difference of the source). An antiderivative without one becomes UNKNOWN,
a display-only placeholder that must never be evaluated.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from abc_engines import MathEngine
from expression import EvaluationError, normalize, parse_expression, to_latex
from pattern_rules import UNRECOGNIZED, PatternKind, PatternMatch, classify, format_number


class ResultKind(Enum):
    CLOSED = 'closed'
    NUMERIC = 'numeric'
    UNKNOWN = 'unknown'


@dataclass(frozen=True)
class DerivedExpression:
    """Outcome of a symbolic rewrite.

    kind   : CLOSED, NUMERIC or UNKNOWN.
    text   : the closed form for CLOSED, otherwise the display marker
             'derivative(f)' or 'antiderivative(f) + C'.
    source : the normalized expression the rewrite started from.
    """
    kind: ResultKind
    text: str
    source: str

    def __str__(self) -> str:
        return self.text

    @property
    def is_closed(self) -> bool:
        return self.kind is ResultKind.CLOSED

    @property
    def is_evaluable(self) -> bool:
        return self.kind is not ResultKind.UNKNOWN

    def latex(self) -> str:
        try:
            if self.kind is ResultKind.CLOSED:
                return to_latex(self.text)
            inner = to_latex(self.source)
        except EvaluationError:
            return r"\text{%s}" % self.text
        if self.kind is ResultKind.NUMERIC:
            return r"\frac{d}{dx}\left(%s\right)" % inner
        return r"\int %s \, dx + C" % inner


def _fmt(value: float) -> str:
    return format_number(value)


def _compact(source: str) -> str:
    return ''.join(source.split())


# -------------------------------------------------------------- #
# Rule tables: PatternMatch -> closed form, or None for no closed form
# -------------------------------------------------------------- #
def _derive_power(m: PatternMatch, source: str) -> str:
    n = m.exponent
    if n == 0:
        return '0'
    if n == 1:
        return '1'
    if n == 2:
        return '2*x'
    return f'{_fmt(n)}*x^{_fmt(n - 1)}'


def _derive_scaled_power(m: PatternMatch, source: str) -> str:
    a, n = m.coefficient, m.exponent
    if n == 0:
        return '0'
    if n == 1:
        return _fmt(a)
    return f'{_fmt(a * n)}*x^{_fmt(n - 1)}'


DERIVATIVE_RULES: Dict[PatternKind, Callable[[PatternMatch, str], str]] = {
    PatternKind.CONSTANT: lambda m, s: '0',
    PatternKind.IDENTITY: lambda m, s: '1',
    PatternKind.POWER: _derive_power,
    PatternKind.LINEAR: lambda m, s: _fmt(m.coefficient),
    PatternKind.SCALED_POWER: _derive_scaled_power,
    PatternKind.SINE: lambda m, s: 'cos(x)',
    PatternKind.COSINE: lambda m, s: '-sin(x)',
    PatternKind.EXPONENTIAL: lambda m, s: _compact(s),
    PatternKind.LOGARITHM: lambda m, s: '1/x',
}


def _integrate_power(m: PatternMatch, source: str) -> str:
    n = m.exponent
    if n == -1:
        return 'ln(abs(x))'
    return f'x^{_fmt(n + 1)}/{_fmt(n + 1)}'


def _integrate_scaled_power(m: PatternMatch, source: str) -> str:
    a, n = m.coefficient, m.exponent
    if n == -1:
        return f'{_fmt(a)}*ln(abs(x))'
    return f'{_fmt(a)}*x^{_fmt(n + 1)}/{_fmt(n + 1)}'


ANTIDERIVATIVE_RULES: Dict[PatternKind, Callable[[PatternMatch, str], str]] = {
    PatternKind.CONSTANT: lambda m, s: f'{_fmt(m.coefficient)}*x',
    PatternKind.IDENTITY: lambda m, s: 'x^2/2',
    PatternKind.POWER: _integrate_power,
    PatternKind.LINEAR: lambda m, s: f'{_fmt(m.coefficient)}*x^2/2',
    PatternKind.SCALED_POWER: _integrate_scaled_power,
    PatternKind.SINE: lambda m, s: '-cos(x)',
    PatternKind.COSINE: lambda m, s: 'sin(x)',
    PatternKind.EXPONENTIAL: lambda m, s: _compact(s),
    PatternKind.RECIPROCAL: lambda m, s: 'ln(abs(x))',
}


class SymbolicEngine(MathEngine):
    """Closed-form derivatives and antiderivatives for the fixed pattern table."""

    COMMANDS = ('derivative', 'antiderivative')

    def differentiate(self, expr: str) -> DerivedExpression:
        source = normalize(str(expr))
        closed = self._rewrite(source, DERIVATIVE_RULES)
        if closed is None:
            result = DerivedExpression(ResultKind.NUMERIC, f'derivative({source})', source)
        else:
            result = DerivedExpression(ResultKind.CLOSED, closed, source)
        self._add_traceback('differentiate', f'{source} -> {result.text} ({result.kind.value})')
        return result

    def antiderivative(self, expr: str) -> DerivedExpression:
        source = normalize(str(expr))
        closed = self._rewrite(source, ANTIDERIVATIVE_RULES)
        if closed is None:
            result = DerivedExpression(ResultKind.UNKNOWN, f'antiderivative({source}) + C', source)
        else:
            result = DerivedExpression(ResultKind.CLOSED, closed, source)
        self._add_traceback('antiderivative', f'{source} -> {result.text} ({result.kind.value})')
        return result

    def classify(self, expr: str) -> PatternMatch:
        """Pattern-table entry for `expr`; UNRECOGNIZED when it does not parse."""
        try:
            node = parse_expression(normalize(str(expr)))
        except EvaluationError as e:
            self._add_traceback('classify', f'unparseable, no pattern: {e}')
            return UNRECOGNIZED
        return classify(node)

    def _rewrite(self, source: str, rules) -> Optional[str]:
        match = self.classify(source)
        rule = rules.get(match.kind)
        return rule(match, source) if rule is not None else None

    def compute(self, expr: str) -> str:
        self._add_traceback('compute_start', expr)
        name, args = self._split_command(expr)
        if name not in self.COMMANDS:
            raise ValueError(f"Unsupported symbolic command: {expr}")
        self._expect_args(name, args, 1, 1)
        result = self.differentiate(args[0]) if name == 'derivative' else self.antiderivative(args[0])
        return str(result)
