"""
Expression parsing for the single-variable calculus grammar.

    parse_expression('5*x^2')  ->  Mul(5, Pow(x, 2))    (left unevaluated)

The vocabulary is fixed: decimal literals, the variable x, the constant e,
+ - * / ^, unary minus, parentheses and the one-argument functions in
FUNCTIONS. Text is first checked against that vocabulary (characters,
names, decimal literals), then handed to SymPy's parser with '^' read as
power and evaluation switched off, so the tree keeps the shape that was
typed. Anything outside the vocabulary raises EvaluationError.

Trees are not cached: every operation parses its expression string again.
"""
import math
import re

import sympy as sp
from sympy.parsing.sympy_parser import convert_xor, parse_expr, standard_transformations

VARIABLE = 'x'
CONSTANTS = ('e',)
FUNCTIONS = ('sin', 'cos', 'exp', 'ln', 'log', 'sqrt', 'abs')

X = sp.Symbol(VARIABLE)

# every name an expression may use
LOCALS = {
    VARIABLE: X,
    'e': sp.E,
    'sin': sp.sin,
    'cos': sp.cos,
    'exp': sp.exp,
    'ln': sp.log,
    'log': sp.log,
    'sqrt': sp.sqrt,
    'abs': sp.Abs,
}

TRANSFORMATIONS = standard_transformations + (convert_xor,)

_ALLOWED = re.compile(r'[A-Za-z0-9_\s.+\-*/^(),]*', re.ASCII)
_NAME = re.compile(r'[A-Za-z_]\w*', re.ASCII)
_NUMBER = re.compile(r'(?<![\w.])[\d.][\w.]*', re.ASCII)
_DECIMAL = re.compile(r'(\d+)(\.\d+)?', re.ASCII)


class EvaluationError(ValueError):
    """Malformed expression, undefined symbol or a failure inside the math backend."""


def normalize(text: str) -> str:
    """Trim and lowercase, the form the pattern table is written against."""
    return text.strip().lower()


def _decimal(literal: str, text: str) -> str:
    """'05' -> '5', '007.50' -> '7.50'; hex, binary, underscores and exponents are rejected."""
    match = _DECIMAL.fullmatch(literal)
    if match is None:
        raise EvaluationError(f"Malformed number {literal!r} in {text!r}")
    whole, fraction = match.groups()
    return (whole.lstrip('0') or '0') + (fraction or '')


def _check_vocabulary(text: str) -> str:
    source = text.strip()
    if not source:
        raise EvaluationError("Empty expression")
    if not _ALLOWED.fullmatch(source):
        raise EvaluationError(f"Unsupported character in {text!r}")

    # numbers first: '0x10' must not be read as 0 followed by the name x10
    source = _NUMBER.sub(lambda m: _decimal(m.group(0), text), source)
    for name in _NAME.findall(source):
        if name not in LOCALS:
            raise EvaluationError(f"Undefined symbol {name!r} in {text!r}")
    return source


def _check_tree(tree, text: str) -> None:
    if not isinstance(tree, sp.Expr):
        raise EvaluationError(f"Malformed expression {text!r}")
    for node in sp.preorder_traversal(tree):
        if isinstance(node, sp.Function) and len(node.args) != 1:
            raise EvaluationError(f"{node.func}() takes exactly one argument in {text!r}")
        if isinstance(node, sp.Number):
            try:
                finite = math.isfinite(float(node))
            except OverflowError:
                finite = False
            if not finite:
                raise EvaluationError(f"Literal out of range in {text!r}")


def parse_expression(text: str) -> sp.Expr:
    """Parse `text` into an unevaluated SymPy tree or raise EvaluationError."""
    if not isinstance(text, str):
        raise EvaluationError(f"Expression must be a string, got {type(text).__name__}")

    source = _check_vocabulary(text)
    try:
        tree = parse_expr(source, local_dict=dict(LOCALS),
                          transformations=TRANSFORMATIONS, evaluate=False)
        _check_tree(tree, text)
    except EvaluationError:
        raise
    except Exception as e:
        # SyntaxError, TokenError, TypeError for bad arity, RecursionError for deep nesting
        raise EvaluationError(f"Malformed expression {text!r}") from e
    return tree


def references_variable(tree: sp.Expr) -> bool:
    return X in tree.free_symbols


def to_latex(text: str) -> str:
    """LaTeX for an expression string; raises EvaluationError when it does not parse."""
    tree = parse_expression(text)
    try:
        return sp.latex(tree)
    except (RecursionError, MemoryError) as e:
        raise EvaluationError(f"Expression {text!r} is nested too deeply to render") from e
