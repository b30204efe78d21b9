"""
autoclick/clicker.py - Click, wait, look again.

The whole protocol rests on one assumption: whatever we clicked goes away
once the click landed. So "the template vanished" is the success signal,
not a timer.
"""

from enum import Enum
from typing import Callable, Optional, Tuple

import numpy as np

from .errors import CaptureError
from .vision import Template, TemplateMatcher


class ClickMode(Enum):
    # Nothing to re-check against (change trigger, or no template)
    UNVERIFIED = "unverified"
    # Re-match after each click until the template is gone
    VERIFIED = "verified"


class ClickVerifier:
    """
    One logical "react to a detection" action.

    `wait(seconds)` is the loop's cancellable sleep: it returns True when a
    stop was requested, and the protocol bails out right there.
    """

    def __init__(
        self,
        mouse,
        capture: Callable[[], Optional[np.ndarray]],
        matcher: TemplateMatcher,
        template: Optional[Template] = None,
        max_retries: int = 5,
        settle_ms: int = 300,
        backoff_ms: int = 200,
        wait: Optional[Callable[[float], bool]] = None,
        log_fn: Optional[Callable[[str, str], None]] = None,
        stats=None
    ) -> None:
        self._mouse = mouse
        self._capture = capture
        self._matcher = matcher
        self._template = template
        self.max_retries = max_retries
        self.settle = settle_ms / 1000.0
        self.backoff = backoff_ms / 1000.0
        self._wait = wait or (lambda s: False)
        self._log = log_fn or (lambda m, l: None)
        self._stats = stats

    def in_bounds(self, target: Tuple[int, int]) -> bool:
        width, height = self._mouse.screen_size()
        x, y = target
        return 0 <= x < width and 0 <= y < height

    def _click(self, target: Tuple[int, int]) -> None:
        x, y = self._mouse.click(*target)
        if self._stats:
            self._stats.inc_clicks()
        self._log(f"Click @ {x},{y}", "CLICK")

    def attempt(
        self,
        target: Tuple[int, int],
        mode: ClickMode,
        wait: Optional[Callable[[float], bool]] = None
    ) -> bool:
        """`wait` overrides the constructor one for this attempt only."""
        wait = wait or self._wait
        if not self.in_bounds(target):
            self._log(f"Target {target[0]},{target[1]} is off screen. Skipping click.", "WARN")
            if self._stats:
                self._stats.inc_out_of_bounds()
            return False

        if mode is ClickMode.UNVERIFIED or self._template is None:
            return self._click_unverified(target, wait)
        return self._click_verified(target, wait)

    def _click_unverified(self, target: Tuple[int, int], wait) -> bool:
        for _ in range(self.max_retries):
            self._click(target)
            if wait(self.settle):
                return False
        return True

    def _click_verified(self, target: Tuple[int, int], wait) -> bool:
        for attempt in range(1, self.max_retries + 1):
            self._click(target)
            if wait(self.settle):
                return False

            if not self._still_there():
                self._log(f"Target gone after click {attempt}/{self.max_retries}", "SUCCESS")
                if self._stats:
                    self._stats.inc_verified()
                return True

            self._log(f"Target still visible ({attempt}/{self.max_retries})", "INFO")
            if wait(self.backoff):
                return False

        self._log(f"Gave up after {self.max_retries} clicks - target never went away", "WARN")
        if self._stats:
            self._stats.inc_verify_failures()
        return False

    def _still_there(self) -> bool:
        # A failed re-capture can't prove anything, so count it as present
        try:
            frame = self._capture()
        except CaptureError as e:
            self._log(f"Verify capture failed: {e}", "WARN")
            return True
        if frame is None:
            return True
        return self._matcher.match(self._template, frame) is not None
