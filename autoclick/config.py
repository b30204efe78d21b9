"""
autoclick/config.py - The Knobs and Dials

Everything the clicker can be told lives here. Values that would make the
loop misbehave (zero intervals, negative tolerance, thresholds over 100%)
get clamped on the way in instead of blowing up later.

Defaults are sane. Don't touch unless you know what you're doing.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml


# Anything faster than this just burns CPU grabbing the same frame.
MIN_SCAN_INTERVAL_MS = 100


# ═══════════════════════════════════════════════════════════════════════════════
# REGION - Where to Look
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Region:
    # Absolute screen rectangle. No region at all = whole primary display.
    x: int
    y: int
    width: int
    height: int

    @property
    def origin(self) -> Tuple[int, int]:
        return self.x, self.y

    @classmethod
    def parse(cls, text: str) -> "Region":
        """Parse "x,y,w,h" (the format the --region flag takes)."""
        parts = [p.strip() for p in text.split(",")]
        if len(parts) != 4:
            raise ValueError(f"Region needs 4 values x,y,w,h - got {text!r}")
        x, y, w, h = (int(p) for p in parts)
        return cls(x, y, w, h)


# ═══════════════════════════════════════════════════════════════════════════════
# AUTOMATION - The Scan / Match / Click Loop
# ═══════════════════════════════════════════════════════════════════════════════
#
# Tolerance is color distance, not a confidence score. 0 = pixel perfect.
# 30 survives compression noise and subtle hover highlights.
#

@dataclass(frozen=True)
class AutomationConfig:
    # Reference image. None/empty = no template, change detection only.
    template_path: Optional[str] = None

    # Max RGB distance between template and screen pixel. 0 = exact match.
    tolerance: int = 30

    # Scan every Nth offset. 1 = every pixel (slow), 2 = good default.
    stride: int = 2

    # Added to the computed click point. Handy when the image you matched
    # isn't the thing you actually want to click.
    click_offset: Tuple[int, int] = (0, 0)

    # Time between scans. Floor-clamped to MIN_SCAN_INTERVAL_MS.
    scan_interval_ms: int = 3000

    # Capture area. None = entire primary display.
    region: Optional[Region] = None

    # Change detection: click when this much of the frame changed.
    change_detection: bool = False
    change_threshold_percent: int = 5
    change_sample_step: int = 4

    # Click-and-verify
    max_click_retries: int = 5
    verify_settle_ms: int = 300
    retry_backoff_ms: int = 200

    def __post_init__(self) -> None:
        # Frozen, so clamp through object.__setattr__
        clamp = lambda name, value: object.__setattr__(self, name, value)
        clamp("template_path", self.template_path or None)
        clamp("tolerance", max(0, int(self.tolerance)))
        clamp("stride", max(1, int(self.stride)))
        clamp("click_offset", (int(self.click_offset[0]), int(self.click_offset[1])))
        clamp("scan_interval_ms", max(MIN_SCAN_INTERVAL_MS, int(self.scan_interval_ms)))
        clamp("change_threshold_percent", max(1, min(100, int(self.change_threshold_percent))))
        clamp("change_sample_step", max(1, int(self.change_sample_step)))
        clamp("max_click_retries", max(1, int(self.max_click_retries)))
        clamp("verify_settle_ms", max(0, int(self.verify_settle_ms)))
        clamp("retry_backoff_ms", max(0, int(self.retry_backoff_ms)))

    @property
    def scan_interval(self) -> float:
        return self.scan_interval_ms / 1000.0

    @property
    def has_template(self) -> bool:
        return self.template_path is not None


# ═══════════════════════════════════════════════════════════════════════════════
# MOUSE - How the Click Lands
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class MouseConfig:
    # Glide along a bezier curve instead of teleporting the pointer.
    glide: bool = False

    # Points on the curve. Only used when gliding.
    curve_resolution: int = 40

    # 1.0 = normal. Higher = faster glide.
    speed_factor: float = 1.0

    # How long the button stays down.
    press_ms: int = 50

    # pyautogui fail-safe: slam the mouse into a corner to abort.
    failsafe: bool = True


# ═══════════════════════════════════════════════════════════════════════════════
# HOTKEYS / UI
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class HotkeysConfig:
    # Pause/resume the scan loop without quitting
    pause_bot: str = "f9"
    # Quit the whole thing
    stop_bot: str = "f10"


@dataclass
class UIConfig:
    # Dashboard refresh. 100ms is smooth.
    refresh_rate_ms: int = 100
    # Plain log lines instead of the full-screen dashboard
    plain: bool = False


# ═══════════════════════════════════════════════════════════════════════════════
# MASTER CONFIG
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class AppConfig:
    """
    Everything bundled together. Use load_config() rather than building
    this by hand - it deals with missing keys and broken YAML.
    """
    automation: AutomationConfig = field(default_factory=AutomationConfig)
    mouse: MouseConfig = field(default_factory=MouseConfig)
    hotkeys: HotkeysConfig = field(default_factory=HotkeysConfig)
    ui: UIConfig = field(default_factory=UIConfig)


# ═══════════════════════════════════════════════════════════════════════════════
# CONFIG LOADER
# ═══════════════════════════════════════════════════════════════════════════════

def _get(data: dict, *keys, default=None):
    """Drill into nested dicts without KeyError explosions."""
    for key in keys:
        if not isinstance(data, dict):
            return default
        data = data.get(key)
        if data is None:
            return default
    return data


def _region_from(value: Any) -> Optional[Region]:
    # Accepts {x, y, width, height}, [x, y, w, h] or "x,y,w,h"
    if not value:
        return None
    if isinstance(value, dict):
        return Region(
            int(value.get("x", 0)), int(value.get("y", 0)),
            int(value.get("width", 0)), int(value.get("height", 0))
        )
    if isinstance(value, (list, tuple)) and len(value) == 4:
        return Region(*(int(v) for v in value))
    return Region.parse(str(value))


def load_config(path: str = "config.yaml") -> AppConfig:
    """
    Load config from YAML. Missing file = all defaults. Missing keys = defaults.
    Malformed YAML = all defaults too.
    """
    config_path = Path(path)

    if not config_path.exists():
        return AppConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return AppConfig()

    offset = _get(data, "automation", "click_offset", default={})
    change = _get(data, "automation", "change_detection", default={})
    verify = _get(data, "automation", "verify", default={})
    # `change_detection: true` is allowed as shorthand
    if not isinstance(change, dict):
        change = {"enabled": bool(change)}
    if not isinstance(offset, dict):
        offset = {}
    if not isinstance(verify, dict):
        verify = {}

    automation = AutomationConfig(
        template_path=_get(data, "automation", "template_path", default=None),
        tolerance=_get(data, "automation", "tolerance", default=30),
        stride=_get(data, "automation", "stride", default=2),
        click_offset=(offset.get("x", 0), offset.get("y", 0)),
        scan_interval_ms=_get(data, "automation", "scan_interval_ms", default=3000),
        region=_region_from(_get(data, "automation", "region")),
        change_detection=change.get("enabled", False),
        change_threshold_percent=change.get("threshold_percent", 5),
        change_sample_step=change.get("sample_step", 4),
        max_click_retries=verify.get("max_retries", 5),
        verify_settle_ms=verify.get("settle_ms", 300),
        retry_backoff_ms=verify.get("backoff_ms", 200)
    )

    mouse = MouseConfig(
        glide=_get(data, "mouse", "glide", default=False),
        curve_resolution=_get(data, "mouse", "curve_resolution", default=40),
        speed_factor=_get(data, "mouse", "speed_factor", default=1.0),
        press_ms=_get(data, "mouse", "press_ms", default=50),
        failsafe=_get(data, "mouse", "failsafe", default=True)
    )

    hotkeys = HotkeysConfig(
        pause_bot=_get(data, "hotkeys", "pause_bot", default="f9"),
        stop_bot=_get(data, "hotkeys", "stop_bot", default="f10")
    )

    ui = UIConfig(
        refresh_rate_ms=_get(data, "ui", "refresh_rate_ms", default=100),
        plain=_get(data, "ui", "plain", default=False)
    )

    return AppConfig(automation=automation, mouse=mouse, hotkeys=hotkeys, ui=ui)


def apply_overrides(base: AutomationConfig, overrides: Dict[str, Any]) -> AutomationConfig:
    """
    Command line beats YAML. Keys with value None are ignored so an argument
    that wasn't given leaves the config value alone.
    """
    changes = {k: v for k, v in overrides.items() if v is not None}
    if not changes:
        return base
    # replace() re-runs __post_init__, so everything gets clamped again
    return replace(base, **changes)
