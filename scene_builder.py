"""
Render data for the 3D view.

The renderer redraws every time a parameter changes. SceneBuilder.build()
turns an expression plus VisualizationOptions into plain numpy arrays
(curve points as (x, y, 0) rows, a tangent line, an integral outline,
limit approach arrows) and text labels. Nothing here draws: the result
is handed to whatever renderer the UI uses.

Elements that cannot be computed are left out of the scene and explained
in Scene.notices; building a scene never raises for a bad expression.
"""
import math
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np

from calculus_engine import CalculusEngine
from expression import EvaluationError
from pattern_rules import format_number
from symbolic_engine import DerivedExpression
from user_levels import DEFAULT_LEVEL, UserLevel, format_value

# UI option names -> VisualizationOptions fields
CAMEL_CASE_KEYS = {
    'xRange': 'x_range',
    'yRange': 'y_range',
    'showDerivative': 'show_derivative',
    'showTangentLine': 'show_tangent_line',
    'tangentPoint': 'tangent_point',
    'showIntegral': 'show_integral',
    'integralRange': 'integral_range',
    'showAntiderivative': 'show_antiderivative',
    'showLimit': 'show_limit',
    'limitPoint': 'limit_point',
    'limitDirection': 'limit_direction',
}


def _normalise_keys(options: Mapping[str, Any]) -> Dict[str, Any]:
    return {CAMEL_CASE_KEYS.get(key, key): value for key, value in options.items()}


@dataclass(frozen=True)
class VisualizationOptions:
    x_range: Tuple[float, float] = (-5.0, 5.0)
    y_range: Tuple[float, float] = (-5.0, 5.0)
    resolution: int = 50
    show_derivative: bool = False
    show_tangent_line: bool = False
    tangent_point: float = 1.0
    show_integral: bool = False
    integral_range: Tuple[float, float] = (-2.0, 2.0)
    show_antiderivative: bool = False
    show_limit: bool = False
    limit_point: float = 0.0
    limit_direction: str = 'both'

    def __post_init__(self):
        # lists from JSON become float tuples; no range checks beyond that
        for name in ('x_range', 'y_range', 'integral_range'):
            low, high = getattr(self, name)
            object.__setattr__(self, name, (float(low), float(high)))
        object.__setattr__(self, 'resolution', int(self.resolution))
        object.__setattr__(self, 'tangent_point', float(self.tangent_point))
        object.__setattr__(self, 'limit_point', float(self.limit_point))

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> 'VisualizationOptions':
        """Build from a UI options bag; camelCase keys accepted, unknown keys ignored."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in _normalise_keys(options).items() if k in known})

    def updated(self, **changes) -> 'VisualizationOptions':
        return replace(self, **_normalise_keys(changes))


# -------------------------------------------------------------- #
# Scene elements
# -------------------------------------------------------------- #
@dataclass
class Curve:
    name: str
    expression: str
    points: np.ndarray  # (k, 3) rows of x, y, 0; non-finite samples skipped


@dataclass
class TangentLine:
    x0: float
    y0: float
    slope: float
    points: np.ndarray


@dataclass
class IntegralArea:
    a: float
    b: float
    outline: np.ndarray  # (k, 3); non-finite values drawn on the axis
    value: float
    label: str


@dataclass
class ApproachArrow:
    side: str
    start: Tuple[float, float]
    end: Tuple[float, float]


@dataclass
class LimitView:
    point: float
    direction: str
    value: float
    marker: Optional[Tuple[float, float]]
    arrows: List[ApproachArrow]
    label: str


@dataclass
class Scene:
    expression: str
    curves: Dict[str, Curve] = field(default_factory=dict)
    tangent: Optional[TangentLine] = None
    integral: Optional[IntegralArea] = None
    limit: Optional[LimitView] = None
    notices: List[str] = field(default_factory=list)


def _points(xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    return np.column_stack([xs, ys, np.zeros_like(xs)])


class SceneBuilder:
    """Build a Scene for one expression and one set of options."""

    INTEGRAL_RESOLUTION = 50
    ARROW_COUNT = 5
    ARROW_SPACING = 0.5

    def __init__(self, engine: Optional[CalculusEngine] = None,
                 level: Union[str, UserLevel] = DEFAULT_LEVEL):
        self.engine = engine if engine is not None else CalculusEngine()
        self.level = level

    def build(self, expr: str, options: Union[VisualizationOptions, Mapping[str, Any], None] = None) -> Scene:
        if options is None:
            options = VisualizationOptions()
        elif not isinstance(options, VisualizationOptions):
            options = VisualizationOptions.from_mapping(options)

        low, high = options.x_range
        xs = np.linspace(low, high, max(options.resolution, 1) + 1)
        scene = Scene(expression=expr)

        self._add_curve(scene, 'function', expr, xs)

        if options.show_derivative:
            self._add_curve(scene, 'derivative', self.engine.differentiate(expr), xs)

        if options.show_antiderivative:
            antiderivative = self.engine.antiderivative(expr)
            if antiderivative.is_evaluable:
                self._add_curve(scene, 'antiderivative', antiderivative, xs)
            else:
                scene.notices.append(f"antiderivative: no closed form for {antiderivative.source}")

        if options.show_tangent_line:
            scene.tangent = self._tangent(scene, expr, options.tangent_point, xs)

        if options.show_integral:
            scene.integral = self._integral(expr, *options.integral_range)

        if options.show_limit:
            scene.limit = self._limit(expr, options.limit_point, options.limit_direction)

        return scene

    # -------------------------------------------------------------- #
    # Element builders
    # -------------------------------------------------------------- #
    def _add_curve(self, scene: Scene, name: str, target: Union[str, DerivedExpression], xs: np.ndarray):
        try:
            ys = self.engine.sample(target, xs)
        except EvaluationError as e:
            scene.notices.append(f"{name}: {e}")
            return
        keep = np.isfinite(ys)
        if not keep.any():
            scene.notices.append(f"{name}: no finite samples for {target}")
            return
        scene.curves[name] = Curve(name, str(target), _points(xs[keep], ys[keep]))

    def _value_at(self, expr: str, x: float) -> float:
        try:
            return self.engine.evaluate(expr, x)
        except EvaluationError:
            return math.nan

    def _tangent(self, scene: Scene, expr: str, x0: float, xs: np.ndarray) -> Optional[TangentLine]:
        try:
            y0 = self.engine.evaluate(expr, x0)
            slope = self.engine.value_of(self.engine.differentiate(expr), x0)
        except EvaluationError as e:
            scene.notices.append(f"tangent: {e}")
            return None
        if not (math.isfinite(y0) and math.isfinite(slope)):
            scene.notices.append(f"tangent: f or f' is undefined at x={format_number(x0)}")
            return None
        # y - y0 = m (x - x0)
        return TangentLine(x0, y0, slope, _points(xs, slope * (xs - x0) + y0))

    def _integral(self, expr: str, a: float, b: float) -> IntegralArea:
        xs = np.linspace(a, b, self.INTEGRAL_RESOLUTION + 1)
        try:
            ys = self.engine.sample(expr, xs)
        except EvaluationError:
            ys = np.zeros_like(xs)
        ys = np.where(np.isfinite(ys), ys, 0.0)

        value = self.engine.definite_integral(expr, a, b)
        label = f"∫[{format_number(a)}, {format_number(b)}] f(x) dx = {format_value(value, self.level)}"
        return IntegralArea(a, b, _points(xs, ys), value, label)

    def _limit(self, expr: str, point: float, direction: str) -> LimitView:
        value = self.engine.limit(expr, point, direction)
        marker = (point, value) if math.isfinite(value) else None

        arrows: List[ApproachArrow] = []
        for side, sign in (('left', -1.0), ('right', 1.0)):
            if direction in (side, 'both'):
                arrows.extend(self._approach_arrows(expr, point, side, sign))

        symbol = {'left': '⁻', 'right': '⁺'}.get(direction, '')
        label = f"lim[x→{format_number(point)}{symbol}] f(x) = {format_value(value, self.level)}"
        return LimitView(point, direction, value, marker, arrows, label)

    def _approach_arrows(self, expr: str, point: float, side: str, sign: float) -> List[ApproachArrow]:
        arrows = []
        for i in range(1, self.ARROW_COUNT + 1):
            start_x = point + sign * i * self.ARROW_SPACING
            start_y = self._value_at(expr, start_x)
            if not math.isfinite(start_y):
                continue

            end_x = point + sign * (i - 1) * self.ARROW_SPACING
            end_y = self._value_at(expr, end_x)
            if i == 1 and not math.isfinite(end_y):
                # the last arrow points at the one-sided limit when f(point) is undefined
                end_y = self.engine.limit(expr, point, side)
            if not math.isfinite(end_y):
                continue

            arrows.append(ApproachArrow(side, (start_x, start_y), (end_x, end_y)))
        return arrows
