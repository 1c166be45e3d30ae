"""
User levels, persisted settings and working precision.
"""
import json
import math
import os
import sys
import tempfile
import unittest
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from user_levels import (
    DEFAULT_LEVEL,
    SettingsStore,
    UserLevel,
    format_value,
    get_level_definition,
    parse_level,
)
from utils.precision_manager import get_dps, presets, reset_dps, set_dps
from utils.trace_helpers import failures


class LevelSuite(unittest.TestCase):
    def test_precision_per_level(self):
        self.assertEqual(format_value(math.pi, 'beginner'), '3.14')
        self.assertEqual(format_value(math.pi, UserLevel.EXPERT), '3.1416')
        self.assertEqual(format_value(math.pi, 'Professional'), '3.141593')

    def test_undefined_values(self):
        for value in (math.nan, math.inf, -math.inf, None):
            with self.subTest(value=value):
                self.assertEqual(format_value(value), 'undefined')

    def test_unknown_level_falls_back(self):
        self.assertIsNone(parse_level('guru'))
        self.assertEqual(get_level_definition('guru'), get_level_definition(DEFAULT_LEVEL))
        self.assertEqual(format_value(2.0, 'guru'), '2.00')

    def test_feature_flags(self):
        beginner = get_level_definition(UserLevel.BEGINNER)
        professional = get_level_definition(UserLevel.PROFESSIONAL)
        self.assertTrue(beginner.show_guided_help)
        self.assertFalse(beginner.show_advanced_controls)
        self.assertTrue(professional.show_professional_tools)
        self.assertFalse(get_level_definition(UserLevel.EXPERT).show_professional_tools)


class SettingsStoreSuite(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / 'nested' / 'settings.json'
        self.store = SettingsStore(self.path)

    def tearDown(self):
        self._tmp.cleanup()

    def test_missing_file_is_default(self):
        self.assertEqual(self.store.load(), {})
        self.assertIs(self.store.current_level(), DEFAULT_LEVEL)
        self.assertEqual(self.store.traceback_info, [])

    def test_level_round_trip(self):
        self.assertTrue(self.store.set_level('expert'))
        self.assertIs(SettingsStore(self.path).current_level(), UserLevel.EXPERT)
        with open(self.path, encoding='utf-8') as f:
            self.assertEqual(json.load(f)['userLevel'], 'expert')

    def test_unknown_level_is_not_saved(self):
        self.assertFalse(self.store.set_level('guru'))
        self.assertFalse(self.path.exists())

    def test_should_show_feature(self):
        self.assertFalse(self.store.should_show_feature('show_technical_details'))
        self.store.set_level(UserLevel.PROFESSIONAL)
        self.assertTrue(self.store.should_show_feature('show_technical_details'))
        self.assertFalse(self.store.should_show_feature('no_such_feature'))

    def test_onboarding_shown_once_per_level(self):
        self.assertTrue(self.store.mark_onboarded())
        self.assertFalse(self.store.mark_onboarded('beginner'))
        self.assertTrue(self.store.mark_onboarded('expert'))
        self.assertEqual(self.store.load()['onboardedLevels'], ['beginner', 'expert'])

    def test_corrupt_file_is_recorded_not_raised(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text('{not json', encoding='utf-8')
        self.assertEqual(self.store.load(), {})
        self.assertEqual(failures(self.store)[0]['step'], 'settings_load_failed')

        self.path.write_text('[1, 2]', encoding='utf-8')
        self.assertIs(self.store.current_level(), DEFAULT_LEVEL)
        self.assertEqual(len(failures(self.store)), 2)


class PrecisionSuite(unittest.TestCase):
    def tearDown(self):
        reset_dps()

    def test_presets(self):
        self.assertEqual(get_dps(), 30)
        set_dps(50)
        self.assertEqual(get_dps(), 50)
        with self.assertRaises(ValueError):
            set_dps(42)
        self.assertEqual(get_dps(), 50)
        self.assertEqual(presets(), [15, 30, 50, 100])

    def test_engines_read_precision_at_construction(self):
        from numerical_engine import NumericalEngine
        set_dps(100)
        self.assertEqual(NumericalEngine().dps, 100)


if __name__ == '__main__':
    unittest.main()
