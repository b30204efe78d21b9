"""
autoclick/vision.py - Screen capture, template matching and change detection.

Rasters are plain numpy arrays, (height, width, channels), uint8, in OpenCV
BGR / BGRA order. Color distance only looks at the first three channels so
the channel order never matters for a comparison.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import cv2
import mss
import mss.exception
import numpy as np

from .config import Region
from .errors import CaptureError, ConfigurationError


# Per-pixel change threshold for the change detector (30 squared).
CHANGE_DISTANCE_SQ = 900

# Sparse sample grid of the pre-check: template dimension / 4 per axis.
SPARSE_GRID_DIVISOR = 4

DEFAULT_SAMPLE_STEP = 4


@dataclass(frozen=True)
class MatchResult:
    # Where the template was found, relative to the searched raster
    x: int
    y: int
    width: int
    height: int

    @property
    def center(self) -> Tuple[int, int]:
        return self.x + self.width // 2, self.y + self.height // 2


# ═══════════════════════════════════════════════════════════════════════════════
# PIXEL MATH
# ═══════════════════════════════════════════════════════════════════════════════

def pixels_close(p1, p2, tolerance: int) -> bool:
    """
    Tolerance 0 means exact RGB equality. Anything else is a squared
    euclidean distance check. Alpha never takes part.
    """
    a = np.asarray(p1, dtype=np.int32)[:3]
    b = np.asarray(p2, dtype=np.int32)[:3]
    if tolerance == 0:
        return bool(np.array_equal(a, b))
    return int(np.sum((a - b) ** 2)) <= tolerance * tolerance


def _close_mask(pixels: np.ndarray, reference: np.ndarray, tolerance: int) -> np.ndarray:
    # Vectorized pixels_close over the last axis
    diff = pixels[..., :3].astype(np.int32) - reference[..., :3].astype(np.int32)
    if tolerance == 0:
        return np.all(diff == 0, axis=-1)
    return np.sum(diff * diff, axis=-1) <= tolerance * tolerance


# ═══════════════════════════════════════════════════════════════════════════════
# REFERENCE TEMPLATE
# ═══════════════════════════════════════════════════════════════════════════════

class Template:
    """
    The reference image plus everything derived from it once: which pixels
    are opaque and where the sparse pre-check samples. Read-only after
    construction.
    """

    def __init__(self, pixels: np.ndarray, name: str = "") -> None:
        if pixels is None or pixels.ndim != 3 or pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise ValueError("Template must be a non-empty (h, w, channels) raster")

        self.name = name
        self.pixels = pixels.copy()
        self.pixels.setflags(write=False)

        if pixels.shape[2] >= 4:
            self.opaque = self.pixels[:, :, 3] != 0
        else:
            self.opaque = np.ones(self.pixels.shape[:2], dtype=bool)
        self.opaque.setflags(write=False)

        self.sample_points = self._sparse_points()

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    def _sparse_points(self) -> List[Tuple[int, int]]:
        # Coarse grid, transparent pixels dropped. Row-major (ty, tx).
        step_y = max(1, self.height // SPARSE_GRID_DIVISOR)
        step_x = max(1, self.width // SPARSE_GRID_DIVISOR)
        return [
            (ty, tx)
            for ty in range(0, self.height, step_y)
            for tx in range(0, self.width, step_x)
            if self.opaque[ty, tx]
        ]


def _to_bgr8(img: np.ndarray) -> np.ndarray:
    # Normalize whatever imread handed back to 8-bit BGR / BGRA
    if img.dtype == np.uint16:
        img = (img >> 8).astype(np.uint8)
    elif img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)

    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    if img.shape[2] == 1:
        return cv2.cvtColor(img[:, :, 0], cv2.COLOR_GRAY2BGR)
    if img.shape[2] == 2:
        # gray + alpha
        bgr = cv2.cvtColor(img[:, :, 0], cv2.COLOR_GRAY2BGR)
        return np.dstack([bgr, img[:, :, 1]])
    return img


def load_reference(path: Optional[str]) -> Optional[Template]:
    """
    Decode the reference image. Empty/None path is fine - it just means no
    template. A path that points at nothing usable is a ConfigurationError.
    """
    if not path:
        return None

    p = Path(path)
    if not p.is_file():
        raise ConfigurationError(f"Reference image not found: {path}")

    # imread returns None instead of raising on garbage
    img = cv2.imread(str(p), cv2.IMREAD_UNCHANGED)
    if img is None or img.size == 0:
        raise ConfigurationError(f"Reference image unreadable: {path}")

    return Template(_to_bgr8(img), name=p.stem)


# ═══════════════════════════════════════════════════════════════════════════════
# SCREEN CAPTURE
# ═══════════════════════════════════════════════════════════════════════════════

def clamp_region(region: Region, bounds: dict) -> Optional[Region]:
    """
    Clip a region to a monitor dict (mss style: left/top/width/height).
    Returns None if nothing is left.
    """
    left, top = bounds["left"], bounds["top"]
    right, bottom = left + bounds["width"], top + bounds["height"]

    x = max(region.x, left)
    y = max(region.y, top)
    x2 = min(region.x + region.width, right)
    y2 = min(region.y + region.height, bottom)

    if x2 - x <= 0 or y2 - y <= 0:
        return None
    return Region(x, y, x2 - x, y2 - y)


class ScreenCapture:
    # Screen grabber using mss (way faster than pyautogui)

    def __init__(self, monitor_index: int = 1) -> None:
        self._sct: Optional[mss.mss] = None
        self.monitor_index = monitor_index

    def __enter__(self):
        self._sct = mss.mss()
        return self

    def __exit__(self, exc_type, exc_str, exc_tb):
        self.close()

    def close(self) -> None:
        # mss handles are per-thread on some platforms; the worker drops its
        # handle on exit and the next capture makes a fresh one.
        if self._sct:
            self._sct.close()
            self._sct = None

    def _monitor(self) -> dict:
        if not self._sct:
            self._sct = mss.mss()
        # Pick the right monitor (clamped to valid range)
        monitor_idx = max(0, min(self.monitor_index, len(self._sct.monitors) - 1))
        return self._sct.monitors[monitor_idx]

    def bounds(self) -> dict:
        """The monitor the captures come from, mss style (left/top/width/height)."""
        try:
            return dict(self._monitor())
        except mss.exception.ScreenShotError as e:
            raise CaptureError(f"Monitor lookup failed: {e}") from e

    def capture(self, region: Optional[Region] = None) -> Optional[np.ndarray]:
        try:
            monitor = self._monitor()
            if region is None:
                area = monitor
            else:
                clamped = clamp_region(region, monitor)
                if clamped is None:
                    return None
                area = {
                    "left": clamped.x, "top": clamped.y,
                    "width": clamped.width, "height": clamped.height
                }
            img = self._sct.grab(area)
        except mss.exception.ScreenShotError as e:
            raise CaptureError(f"Screen capture failed: {e}") from e

        # Convert to numpy/opencv BGR
        frame = np.array(img)
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)


# ═══════════════════════════════════════════════════════════════════════════════
# TEMPLATE MATCHING
# ═══════════════════════════════════════════════════════════════════════════════

class TemplateMatcher:
    """
    First-match tolerance search. Not best-match - the first offset in
    row-major order (y outer, x inner) that passes wins.

    Two stages per offset: a sparse pre-check on a coarse grid of template
    pixels, then a full check of every opaque pixel. The pre-check runs for
    all offsets at once as a numpy mask; only survivors get the full check,
    in scan order. Transparent (alpha 0) template pixels never constrain.
    """

    def __init__(
        self,
        tolerance: int = 30,
        stride: int = 2
    ) -> None:
        if tolerance < 0:
            raise ValueError(f"tolerance must be >= 0, got {tolerance}")
        if stride < 1:
            raise ValueError(f"stride must be >= 1, got {stride}")
        self._tol = tolerance
        self._stride = stride

    @property
    def tolerance(self) -> int:
        return self._tol

    @property
    def stride(self) -> int:
        return self._stride

    def match(self, template: Template, screen: Optional[np.ndarray]) -> Optional[MatchResult]:
        if screen is None:
            return None

        sh, sw = screen.shape[:2]
        th, tw = template.height, template.width
        if tw > sw or th > sh:
            return None

        ys = np.arange(0, sh - th + 1, self._stride)
        xs = np.arange(0, sw - tw + 1, self._stride)
        y_end, x_end = int(ys[-1]) + 1, int(xs[-1]) + 1

        candidates = self._sparse_check(template, screen, len(ys), len(xs), y_end, x_end)
        if candidates is None:
            return None

        # argwhere walks row-major, which is exactly the scan order
        for iy, ix in np.argwhere(candidates):
            x, y = int(xs[ix]), int(ys[iy])
            if self._full_check(template, screen, x, y):
                return MatchResult(x, y, tw, th)
        return None

    def _sparse_check(self, template, screen, ny, nx, y_end, x_end) -> Optional[np.ndarray]:
        candidates = np.ones((ny, nx), dtype=bool)
        s = self._stride
        for ty, tx in template.sample_points:
            # Screen pixel under template pixel (ty, tx) for every offset
            window = screen[ty:ty + y_end:s, tx:tx + x_end:s]
            candidates &= _close_mask(window, template.pixels[ty, tx], self._tol)
            if not candidates.any():
                return None
        return candidates

    def _full_check(self, template: Template, screen: np.ndarray, x: int, y: int) -> bool:
        patch = screen[y:y + template.height, x:x + template.width]
        close = _close_mask(patch, template.pixels, self._tol)
        return bool(np.all(close | ~template.opaque))


def find_match(
    raster: Optional[np.ndarray],
    template,
    tolerance: int = 30,
    stride: int = 2
) -> Optional[MatchResult]:
    """One-shot search. `template` may be a Template or a bare raster."""
    if not isinstance(template, Template):
        template = Template(np.asarray(template))
    return TemplateMatcher(tolerance, stride).match(template, raster)


# ═══════════════════════════════════════════════════════════════════════════════
# CHANGE DETECTION
# ═══════════════════════════════════════════════════════════════════════════════

def change_percent(
    prev: Optional[np.ndarray],
    curr: Optional[np.ndarray],
    sample_step: int = DEFAULT_SAMPLE_STEP
) -> int:
    """
    Percentage (0-100, truncated) of sampled pixels that moved more than 30
    in RGB distance. Only the overlap of the two frames is compared, on a
    sparse grid of every `sample_step`-th pixel.
    """
    if sample_step < 1:
        raise ValueError(f"sample_step must be >= 1, got {sample_step}")
    if prev is None or curr is None:
        return 0

    h = min(prev.shape[0], curr.shape[0])
    w = min(prev.shape[1], curr.shape[1])
    if h == 0 or w == 0:
        return 0

    a = prev[:h:sample_step, :w:sample_step, :3].astype(np.int32)
    b = curr[:h:sample_step, :w:sample_step, :3].astype(np.int32)
    dist_sq = np.sum((a - b) ** 2, axis=-1)

    total = dist_sq.size
    changed = int(np.count_nonzero(dist_sq > CHANGE_DISTANCE_SQ))
    return (100 * changed) // total
