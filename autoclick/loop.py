"""
autoclick/loop.py - The scan loop.

One background thread per running period. Each tick: grab a frame, check
it for bulk change, otherwise look for the template, and click if either
fires. Every sleep is an Event.wait() so stop() wakes the worker right away
instead of letting it finish a 3 second nap.
"""

import threading
from enum import Enum
from typing import Callable, Optional, Tuple

import numpy as np

from .clicker import ClickMode, ClickVerifier
from .config import AutomationConfig
from .errors import CaptureError
from .ui import Stats
from .vision import Template, TemplateMatcher, change_percent, clamp_region, load_reference


# How long stop() waits for the worker to unwind
JOIN_TIMEOUT = 5.0


class RunState(Enum):
    IDLE = "idle"
    RUNNING = "running"


class AutomationLoop:

    def __init__(
        self,
        config: AutomationConfig,
        capture,
        mouse,
        template: Optional[Template] = None,
        log_fn: Optional[Callable[[str, str], None]] = None,
        stats: Optional[Stats] = None
    ) -> None:
        self.cfg = config
        self._capture = capture
        self._mouse = mouse
        self._template = template
        self._log = log_fn or (lambda m, l: None)
        self.stats = stats or Stats()

        self.matcher = TemplateMatcher(config.tolerance, config.stride)
        self.verifier = ClickVerifier(
            mouse=mouse,
            capture=self._grab,
            matcher=self.matcher,
            template=template,
            max_retries=config.max_click_retries,
            settle_ms=config.verify_settle_ms,
            backoff_ms=config.retry_backoff_ms,
            log_fn=self._log,
            stats=self.stats
        )

        # Lifecycle
        self._lock = threading.Lock()
        self._state = RunState.IDLE
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

        # Owned by the worker thread
        self._previous: Optional[np.ndarray] = None

    @classmethod
    def from_config(cls, config: AutomationConfig, capture, mouse, **kwargs) -> "AutomationLoop":
        """Load the reference image first. ConfigurationError propagates."""
        template = load_reference(config.template_path)
        return cls(config, capture, mouse, template=template, **kwargs)

    # ─── Lifecycle ─────────────────────────────────────────────────────────

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is RunState.RUNNING

    def start(self) -> bool:
        with self._lock:
            if self._state is RunState.RUNNING:
                return False
            # Fresh event per run so a straggling old worker stays stopped
            self._stop_event = threading.Event()
            self._previous = None
            self._thread = threading.Thread(
                target=self._run, args=(self._stop_event,),
                name="autoclick-loop", daemon=True
            )
            self._state = RunState.RUNNING
            self._thread.start()
        self._log("Scan loop started", "SUCCESS")
        return True

    def stop(self) -> bool:
        with self._lock:
            if self._state is RunState.IDLE:
                return False
            self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._state = RunState.IDLE

        if thread and thread is not threading.current_thread():
            thread.join(JOIN_TIMEOUT)
            if thread.is_alive():
                self._log("Worker still busy after stop, leaving it to finish", "WARN")
        self._log("Scan loop stopped", "INFO")
        return True

    # ─── Worker ────────────────────────────────────────────────────────────

    def _run(self, stop_event: threading.Event) -> None:
        try:
            while not stop_event.is_set():
                try:
                    self.tick(stop_event)
                except Exception as e:
                    self.stats.inc_errors()
                    self._log(f"Tick failed: {e}", "ERROR")
                if stop_event.wait(self.cfg.scan_interval):
                    break
        finally:
            # A straggler from an earlier run must not close the handle the
            # current worker is using
            with self._lock:
                current = stop_event is self._stop_event
            close = getattr(self._capture, "close", None)
            if current and close:
                close()

    def _grab(self) -> Optional[np.ndarray]:
        return self._capture.capture(self.cfg.region)

    def _capture_origin(self) -> Tuple[int, int]:
        # Top-left of the area that was actually grabbed, after clamping
        bounds = self._capture.bounds()
        if self.cfg.region is None:
            return bounds["left"], bounds["top"]
        clamped = clamp_region(self.cfg.region, bounds)
        return clamped.origin if clamped else self.cfg.region.origin

    def tick(self, stop_event: Optional[threading.Event] = None) -> None:
        """One capture / detect / click pass. Waits inside belong to `stop_event`."""
        if stop_event is None:
            stop_event = self._stop_event
        self.stats.inc_ticks()

        try:
            frame = self._grab()
            origin = self._capture_origin() if frame is not None else None
        except CaptureError as e:
            self.stats.inc_errors()
            self._log(f"Capture failed, skipping scan: {e}", "WARN")
            return
        if frame is None:
            self._log("Capture area is empty, skipping scan", "WARN")
            return

        try:
            if self.cfg.change_detection and self._previous is not None:
                pct = change_percent(self._previous, frame, self.cfg.change_sample_step)
                self.stats.set_change(pct)
                if pct >= self.cfg.change_threshold_percent:
                    self._on_change(pct, origin, stop_event)
                    # Change trigger preempts template matching
                    return

            if self._template is not None:
                match = self.matcher.match(self._template, frame)
                if match is not None:
                    self._on_match(match, origin, stop_event)
        finally:
            self._previous = frame

    def _on_change(self, pct: int, origin: Tuple[int, int], stop_event: threading.Event) -> None:
        self.stats.inc_change_triggers()
        target = self.change_target(origin)
        self._log(f"Change detected: {pct}% >= {self.cfg.change_threshold_percent}%", "SUCCESS")
        self.verifier.attempt(target, ClickMode.UNVERIFIED, wait=stop_event.wait)

    def _on_match(self, match, origin: Tuple[int, int], stop_event: threading.Event) -> None:
        self.stats.inc_matches()
        target = self.match_target(match, origin)
        self._log(f"Match at {match.x},{match.y} ({match.width}x{match.height})", "SUCCESS")
        self.verifier.attempt(target, ClickMode.VERIFIED, wait=stop_event.wait)

    # ─── Click targets ─────────────────────────────────────────────────────

    def match_target(self, match, origin: Tuple[int, int]) -> Tuple[int, int]:
        # Match is relative to the captured area; origin maps it to the screen
        cx, cy = match.center
        ox, oy = origin
        dx, dy = self.cfg.click_offset
        return cx + ox + dx, cy + oy + dy

    def change_target(self, origin: Tuple[int, int]) -> Tuple[int, int]:
        # Captured region's top-left, or screen center when watching the whole screen
        if self.cfg.region:
            bx, by = origin
        else:
            w, h = self._mouse.screen_size()
            bx, by = w // 2, h // 2
        dx, dy = self.cfg.click_offset
        return bx + dx, by + dy
