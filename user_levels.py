"""
User levels and persisted visualizer settings.

Three tiers control how much of the core a learner sees:

    beginner      2 decimals, guided help, no advanced controls
    expert        4 decimals, advanced controls and technical details
    professional  6 decimals, everything including professional tools

Settings live in a small JSON file so the chosen level (and which levels
have already shown their onboarding) survive restarts.
"""
import json
import math
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from utils.trace_helpers import add_traceback


class UserLevel(str, Enum):
    BEGINNER = 'beginner'
    EXPERT = 'expert'
    PROFESSIONAL = 'professional'


@dataclass(frozen=True)
class LevelDefinition:
    name: str
    description: str
    precision: int
    show_advanced_controls: bool = False
    show_technical_details: bool = False
    show_guided_help: bool = False
    show_professional_tools: bool = False


DEFAULT_LEVEL = UserLevel.BEGINNER

LEVEL_DEFINITIONS: Dict[UserLevel, LevelDefinition] = {
    UserLevel.BEGINNER: LevelDefinition(
        name='Beginner',
        description='New to calculus concepts with simplified controls',
        precision=2,
        show_guided_help=True,
    ),
    UserLevel.EXPERT: LevelDefinition(
        name='Expert',
        description='Comfortable with calculus and wants more control',
        precision=4,
        show_advanced_controls=True,
        show_technical_details=True,
    ),
    UserLevel.PROFESSIONAL: LevelDefinition(
        name='Professional',
        description='Advanced user requiring high-precision and detailed controls',
        precision=6,
        show_advanced_controls=True,
        show_technical_details=True,
        show_professional_tools=True,
    ),
}


def parse_level(level: Union[str, UserLevel, None]) -> Optional[UserLevel]:
    """UserLevel for `level`, or None when it names no level."""
    if isinstance(level, UserLevel):
        return level
    try:
        return UserLevel(str(level).strip().lower())
    except ValueError:
        return None


def get_level_definition(level: Union[str, UserLevel, None]) -> LevelDefinition:
    """Definition for `level`; unknown levels fall back to the default level."""
    return LEVEL_DEFINITIONS[parse_level(level) or DEFAULT_LEVEL]


def format_value(value: float, level: Union[str, UserLevel, None] = DEFAULT_LEVEL) -> str:
    """Fixed-point text at the level's precision; 'undefined' for NaN and infinities."""
    if value is None or not math.isfinite(value):
        return 'undefined'
    return f"{value:.{get_level_definition(level).precision}f}"


class SettingsStore:
    """JSON-backed settings: {'userLevel': ..., 'onboardedLevels': [...]}.

    A missing or unreadable file is treated as empty settings; the problem
    is recorded in `traceback_info` rather than raised.
    """

    DEFAULT_PATH = Path.home() / '.calculus_visualizer' / 'settings.json'

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path) if path is not None else self.DEFAULT_PATH
        self.traceback_info: List[dict] = []

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                settings = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            add_traceback(self, 'settings_load_failed', f'{self.path}: {e}')
            return {}
        if not isinstance(settings, dict):
            add_traceback(self, 'settings_load_failed', f'{self.path}: expected an object')
            return {}
        return settings

    def save(self, settings: Dict[str, Any]) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(settings, f, indent=2)
        except OSError as e:
            add_traceback(self, 'settings_save_failed', f'{self.path}: {e}')
            return False
        return True

    # ---- level helpers ------------------------------------------- #
    def current_level(self) -> UserLevel:
        return parse_level(self.load().get('userLevel')) or DEFAULT_LEVEL

    def set_level(self, level: Union[str, UserLevel]) -> bool:
        parsed = parse_level(level)
        if parsed is None:
            return False
        settings = self.load()
        settings['userLevel'] = parsed.value
        return self.save(settings)

    def should_show_feature(self, feature: str) -> bool:
        return bool(getattr(get_level_definition(self.current_level()), feature, False))

    def mark_onboarded(self, level: Union[str, UserLevel, None] = None) -> bool:
        """Record that `level` (default: current) has shown its onboarding. True the first time."""
        parsed = parse_level(level) if level is not None else self.current_level()
        if parsed is None:
            return False
        settings = self.load()
        seen = settings.setdefault('onboardedLevels', [])
        if parsed.value in seen:
            return False
        seen.append(parsed.value)
        self.save(settings)
        return True
