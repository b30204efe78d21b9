"""
autoclick package - watch the screen, click when something shows up

vision.py      - Screen capture (mss), template matching, change detection
clicker.py     - Click-and-verify retry protocol
loop.py        - Background scan loop with start/stop lifecycle
human_input.py - Pointer movement and clicks (pyautogui)
ui.py          - Rich terminal dashboard and session stats
config.py      - Typed configuration dataclasses
errors.py      - Exceptions
"""

from .config import AppConfig, AutomationConfig, Region, load_config, apply_overrides
from .errors import AutoClickError, ConfigurationError, CaptureError
from .vision import (
    ScreenCapture, Template, TemplateMatcher, MatchResult,
    find_match, change_percent, pixels_close, load_reference, clamp_region
)
from .clicker import ClickMode, ClickVerifier
from .loop import AutomationLoop, RunState
from .human_input import HumanMouse, Point
from .ui import Dashboard, Stats, make_logger, make_console_logger

__all__ = [
    "AppConfig", "AutomationConfig", "Region", "load_config", "apply_overrides",
    "AutoClickError", "ConfigurationError", "CaptureError",
    "ScreenCapture", "Template", "TemplateMatcher", "MatchResult",
    "find_match", "change_percent", "pixels_close", "load_reference", "clamp_region",
    "ClickMode", "ClickVerifier",
    "AutomationLoop", "RunState",
    "HumanMouse", "Point",
    "Dashboard", "Stats", "make_logger", "make_console_logger",
]
