# Image Autoclicker - watch a piece of the screen, click when the button shows up
# Because babysitting an "Accept" dialog for an hour is nobody's idea of fun

import argparse
import sys
import time
from pathlib import Path
from typing import Optional

import keyboard

from autoclick import (
    AppConfig, AutomationConfig, AutomationLoop, ConfigurationError, Region,
    apply_overrides, load_config
)
from autoclick.human_input import HumanMouse
from autoclick.ui import Dashboard, Stats, make_console_logger, make_logger
from autoclick.vision import ScreenCapture

# Configuration

DEFAULT_CONFIG_PATH = "config.yaml"

DEFAULT_CONFIG = """
# Image Autoclicker Configuration

automation:
  template_path: ""        # empty = change detection only
  tolerance: 30            # RGB distance, 0 = exact
  stride: 2                # scan every Nth offset
  scan_interval_ms: 3000   # never below 100
  click_offset:
    x: 0
    y: 0
  region: null             # x,y,w,h or null for the whole primary display
  change_detection:
    enabled: false
    threshold_percent: 5
    sample_step: 4
  verify:
    max_retries: 5
    settle_ms: 300
    backoff_ms: 200

mouse:
  glide: false
  curve_resolution: 40
  speed_factor: 1.0
  press_ms: 50
  failsafe: true

hotkeys:
  pause_bot: "f9"
  stop_bot: "f10"

ui:
  refresh_rate_ms: 100
  plain: false
"""

# Main thread poll rate while the worker does the real work
UI_TICK = 0.1


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="image-autoclicker",
        description="Scan the screen for an image (or for change) and click it."
    )
    p.add_argument("image_path", nargs="?", default=None,
                   help="Reference image. Empty string = change detection only.")
    p.add_argument("tolerance", nargs="?", type=int, default=None, help="Color tolerance (default 30)")
    p.add_argument("stride", nargs="?", type=int, default=None, help="Scan stride (default 2)")
    p.add_argument("offset_x", nargs="?", type=int, default=None, help="Click offset x (default 0)")
    p.add_argument("offset_y", nargs="?", type=int, default=None, help="Click offset y (default 0)")
    p.add_argument("interval_ms", nargs="?", type=int, default=None, help="Scan interval ms (default 3000)")
    p.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="YAML config file")
    p.add_argument("--region", type=Region.parse, default=None, help="Capture area as x,y,w,h")
    p.add_argument("--change-detect", action="store_const", const=True, default=None,
                   help="Click when the capture area changes")
    p.add_argument("--change-threshold", type=int, default=None, help="Percent of change that triggers (1-100)")
    p.add_argument("--plain", action="store_true", help="Plain log lines instead of the dashboard")
    return p


def resolve_automation(base: AutomationConfig, args: argparse.Namespace) -> AutomationConfig:
    # Command line wins over YAML
    offset = None
    if args.offset_x is not None or args.offset_y is not None:
        ox, oy = base.click_offset
        offset = (
            args.offset_x if args.offset_x is not None else ox,
            args.offset_y if args.offset_y is not None else oy
        )

    cfg = apply_overrides(base, {
        # "" stays "" here and becomes None in AutomationConfig
        "template_path": args.image_path,
        "tolerance": args.tolerance,
        "stride": args.stride,
        "click_offset": offset,
        "scan_interval_ms": args.interval_ms,
        "region": args.region,
        "change_detection": args.change_detect,
        "change_threshold_percent": args.change_threshold,
    })

    # No template = nothing to match, so watch for change instead
    if not cfg.has_template and not cfg.change_detection:
        cfg = apply_overrides(cfg, {"change_detection": True})
    return cfg


class AutoClickerApp:
    # Headless runner - wires config, capture, mouse, loop and dashboard

    def __init__(self, args: argparse.Namespace):
        self.args = args

        # State Flags
        self.running: bool = True
        self.pause_requested: bool = False

        # Components
        self.cfg: Optional[AppConfig] = None
        self.auto: Optional[AutomationConfig] = None
        self.stats = Stats()
        self.dash: Optional[Dashboard] = None
        self.log = lambda m, l: None
        self.loop: Optional[AutomationLoop] = None

    def bootstrap(self):
        # 1. Config First
        cfg_path = Path(self.args.config)
        if not cfg_path.exists() and self.args.config == DEFAULT_CONFIG_PATH:
            cfg_path.write_text(DEFAULT_CONFIG.strip() + "\n", encoding="utf-8")

        self.cfg = load_config(str(cfg_path))
        self.auto = resolve_automation(self.cfg.automation, self.args)

        # 2. Core Systems - template load fails here, before any UI exists
        try:
            mouse = HumanMouse(
                glide=self.cfg.mouse.glide,
                resolution=self.cfg.mouse.curve_resolution,
                speed=self.cfg.mouse.speed_factor,
                press_ms=self.cfg.mouse.press_ms,
                failsafe=self.cfg.mouse.failsafe,
                log_fn=lambda m, l: self.log(m, l)
            )
            self.loop = AutomationLoop.from_config(
                self.auto, ScreenCapture(), mouse,
                log_fn=lambda m, l: self.log(m, l),
                stats=self.stats
            )
        except ConfigurationError as e:
            print(f"CRITICAL: {e}")
            sys.exit(1)

        # 3. UI
        self._init_ui()

        # 4. Hotkeys
        self._bind_hotkeys()

        mode = self._mode_label()
        self.log(f"Mode: {mode}. Interval {self.auto.scan_interval_ms}ms, "
                 f"tolerance {self.auto.tolerance}, stride {self.auto.stride}", "INFO")
        self.log(f"Press {self.cfg.hotkeys.pause_bot.upper()} to pause, "
                 f"{self.cfg.hotkeys.stop_bot.upper()} to quit.", "WARN")

    def _mode_label(self) -> str:
        parts = []
        if self.auto.has_template:
            parts.append("template")
        if self.auto.change_detection:
            parts.append(f"change>={self.auto.change_threshold_percent}%")
        return " + ".join(parts) or "none"

    def _init_ui(self):
        if self.args.plain or self.cfg.ui.plain:
            self.log = make_console_logger()
            return

        region = self.auto.region
        self.dash = Dashboard(
            stats=self.stats,
            mode=self._mode_label(),
            template=Path(self.auto.template_path).name if self.auto.template_path else "",
            region=f"{region.x},{region.y} {region.width}x{region.height}" if region else "",
            refresh_ms=self.cfg.ui.refresh_rate_ms,
            pause_key=self.cfg.hotkeys.pause_bot,
            stop_key=self.cfg.hotkeys.stop_bot
        )
        self.log = make_logger(self.dash)
        self.dash.start()

    def _bind_hotkeys(self):
        # keyboard needs root on Linux; run without hotkeys rather than die
        try:
            keyboard.add_hotkey(self.cfg.hotkeys.pause_bot, self._request_pause)
            keyboard.add_hotkey(self.cfg.hotkeys.stop_bot, self._stop)
        except (ImportError, OSError, ValueError) as e:
            self.log(f"Hotkeys unavailable ({e}). Use Ctrl+C to quit.", "WARN")

    def _request_pause(self):
        self.pause_requested = True

    def _stop(self):
        self.running = False

    def handle_pause(self):
        # Toggle the scan loop from the main thread, never from the hook thread
        self.pause_requested = False
        if self.loop.is_running:
            self.loop.stop()
            self.stats.pause()
            if self.dash: self.dash.set_status(Dashboard.STATUS_IDLE, "Paused")
            self.log("PAUSED via hotkey", "WARN")
        else:
            self.stats.resume()
            self.loop.start()
            if self.dash: self.dash.set_status(Dashboard.STATUS_RUNNING)
            self.log("RESUMED operation", "SUCCESS")

    def run(self):
        self.bootstrap()

        try:
            self.loop.start()
            if self.dash: self.dash.set_status(Dashboard.STATUS_RUNNING)

            while self.running:
                if self.pause_requested: self.handle_pause()
                if self.dash: self.dash.update()
                time.sleep(UI_TICK)

        except KeyboardInterrupt:
            pass
        finally:
            self.shutdown()

    def shutdown(self):
        if self.loop:
            self.loop.stop()
        # Unregister hotkeys
        try:
            keyboard.unhook_all()
        except (ImportError, OSError, AttributeError):
            pass
        if self.dash:
            self.dash.stop()
        print("\nExiting Image Autoclicker...")


def main(argv=None):
    args = build_parser().parse_args(argv)
    AutoClickerApp(args).run()


if __name__ == "__main__":
    main()
