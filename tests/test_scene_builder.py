"""
SceneBuilder tests: options handling and each scene element.
"""
import math
import os
import sys
import unittest

import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from scene_builder import SceneBuilder, VisualizationOptions
from user_levels import UserLevel


class OptionsSuite(unittest.TestCase):
    def test_defaults(self):
        options = VisualizationOptions()
        self.assertEqual(options.x_range, (-5.0, 5.0))
        self.assertEqual(options.resolution, 50)
        self.assertEqual(options.limit_direction, 'both')
        self.assertFalse(options.show_derivative)

    def test_from_mapping_accepts_ui_keys(self):
        options = VisualizationOptions.from_mapping(
            {'xRange': [0, 2], 'resolution': '10', 'showIntegral': True, 'integralRange': [1, 2], 'theme': 'dark'})
        self.assertEqual(options.x_range, (0.0, 2.0))
        self.assertEqual(options.resolution, 10)
        self.assertTrue(options.show_integral)
        self.assertEqual(options.integral_range, (1.0, 2.0))

    def test_updated_returns_a_copy(self):
        options = VisualizationOptions()
        changed = options.updated(showDerivative=True, tangent_point=2)
        self.assertTrue(changed.show_derivative)
        self.assertEqual(changed.tangent_point, 2.0)
        self.assertFalse(options.show_derivative)


class CurveSuite(unittest.TestCase):
    def setUp(self):
        self.builder = SceneBuilder()

    def test_function_curve(self):
        scene = self.builder.build('x^2')
        curve = scene.curves['function']
        self.assertEqual(curve.points.shape, (51, 3))
        np.testing.assert_allclose(curve.points[:, 1], curve.points[:, 0] ** 2)
        self.assertTrue((curve.points[:, 2] == 0).all())
        self.assertEqual(scene.notices, [])

    def test_non_finite_samples_are_skipped(self):
        scene = self.builder.build('1/x', {'resolution': 10})
        points = scene.curves['function'].points
        self.assertEqual(len(points), 10)
        self.assertNotIn(0.0, points[:, 0])

    def test_derivative_curves(self):
        scene = self.builder.build('x^2', {'showDerivative': True})
        self.assertEqual(scene.curves['derivative'].expression, '2*x')

        scene = self.builder.build('x^2+1', {'showDerivative': True})
        curve = scene.curves['derivative']
        self.assertEqual(curve.expression, 'derivative(x^2+1)')
        np.testing.assert_allclose(curve.points[:, 1], 2 * curve.points[:, 0], atol=1e-6)

    def test_antiderivative_curve_and_notice(self):
        scene = self.builder.build('cos(x)', {'showAntiderivative': True})
        self.assertEqual(scene.curves['antiderivative'].expression, 'sin(x)')

        scene = self.builder.build('ln(x)', {'showAntiderivative': True})
        self.assertNotIn('antiderivative', scene.curves)
        self.assertEqual(len(scene.notices), 1)
        self.assertIn('no closed form', scene.notices[0])


class TangentSuite(unittest.TestCase):
    def setUp(self):
        self.builder = SceneBuilder()

    def test_tangent_line(self):
        scene = self.builder.build('x^2', {'showTangentLine': True, 'tangentPoint': 1})
        tangent = scene.tangent
        self.assertEqual((tangent.x0, tangent.y0, tangent.slope), (1.0, 1.0, 2.0))
        xs = tangent.points[:, 0]
        np.testing.assert_allclose(tangent.points[:, 1], 2 * xs - 1)

    def test_tangent_from_numeric_derivative(self):
        scene = self.builder.build('x^3+x', {'showTangentLine': True, 'tangentPoint': 1})
        self.assertAlmostEqual(scene.tangent.slope, 4.0, delta=1e-6)

    def test_undefined_tangent_is_omitted(self):
        scene = self.builder.build('1/x', {'showTangentLine': True, 'tangentPoint': 0})
        self.assertIsNone(scene.tangent)
        self.assertTrue(any(n.startswith('tangent') for n in scene.notices))


class IntegralSuite(unittest.TestCase):
    def test_area_and_label(self):
        scene = SceneBuilder().build('x^2', {'showIntegral': True, 'integralRange': [0, 3]})
        area = scene.integral
        self.assertAlmostEqual(area.value, 9.0, delta=1e-9)
        self.assertEqual(area.outline.shape, (51, 3))
        self.assertEqual(area.label, '∫[0, 3] f(x) dx = 9.00')

    def test_label_follows_user_level(self):
        scene = SceneBuilder(level=UserLevel.EXPERT).build('x^2', {'showIntegral': True, 'integralRange': [0, 3]})
        self.assertEqual(scene.integral.label, '∫[0, 3] f(x) dx = 9.0000')

    def test_outline_draws_non_finite_on_axis(self):
        scene = SceneBuilder().build('1/x', {'showIntegral': True, 'integralRange': [-1, 1]})
        self.assertTrue(np.isfinite(scene.integral.outline).all())
        self.assertEqual(scene.integral.outline[25, 1], 0.0)


class LimitSuite(unittest.TestCase):
    def test_removable_discontinuity(self):
        scene = SceneBuilder().build('sin(x)/x', {'showLimit': True, 'limitPoint': 0})
        view = scene.limit
        self.assertAlmostEqual(view.value, 1.0, places=9)
        self.assertEqual(view.marker, (0.0, view.value))
        self.assertEqual(len(view.arrows), 10)
        self.assertEqual({a.side for a in view.arrows}, {'left', 'right'})
        # arrows next to the point end on the limit value
        inner = [a for a in view.arrows if a.end[0] == 0.0]
        self.assertEqual(len(inner), 2)
        for arrow in inner:
            self.assertAlmostEqual(arrow.end[1], 1.0, places=9)
        self.assertEqual(view.label, 'lim[x→0] f(x) = 1.00')

    def test_pole_from_the_left(self):
        scene = SceneBuilder().build('1/x', {'showLimit': True, 'limitPoint': 0, 'limitDirection': 'left'})
        view = scene.limit
        self.assertTrue(math.isnan(view.value))
        self.assertIsNone(view.marker)
        self.assertEqual(len(view.arrows), 4)
        self.assertTrue(all(a.side == 'left' for a in view.arrows))
        self.assertEqual(view.label, 'lim[x→0⁻] f(x) = undefined')


class RobustnessSuite(unittest.TestCase):
    def test_malformed_expression_never_raises(self):
        options = {'showDerivative': True, 'showAntiderivative': True, 'showTangentLine': True,
                   'showIntegral': True, 'showLimit': True}
        scene = SceneBuilder().build('2x +', options)
        self.assertEqual(scene.curves, {})
        self.assertIsNone(scene.tangent)
        self.assertEqual(scene.integral.label.split(' = ')[-1], 'undefined')
        self.assertEqual(scene.limit.arrows, [])
        self.assertGreaterEqual(len(scene.notices), 3)


if __name__ == '__main__':
    unittest.main()
