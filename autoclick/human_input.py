# Mouse control - clamp, move, press, release. Optional bezier glide.

import time
import random
import math
from dataclasses import dataclass
from typing import Tuple, List, Optional, Callable


@dataclass
class Point:
    x: float
    y: float


def pascal_row(n: int) -> List[int]:
    # Generate Pascal's triangle row for bezier math
    result = [1]
    x = 1
    for i in range(1, n + 1):
        x = x * (n - i + 1) // i
        result.append(x)
    return result


def make_bezier(control_points: List[Point]) -> Callable[[float], Point]:
    # Build bezier curve function from control points
    n = len(control_points) - 1
    combinations = pascal_row(n)

    def bezier(t: float) -> Point:
        # Bernstein polynomials
        result_x = 0.0
        result_y = 0.0
        for i, point in enumerate(control_points):
            bernstein = combinations[i] * (t ** i) * ((1 - t) ** (n - i))
            result_x += point.x * bernstein
            result_y += point.y * bernstein
        return Point(result_x, result_y)

    return bezier


def ease_in_out(t: float) -> float:
    # easeInOutQuad
    if t < 0.5:
        return 2 * t * t
    return -1 + (4 - 2 * t) * t


def clamp_to_screen(x: int, y: int, size: Tuple[int, int]) -> Tuple[int, int]:
    width, height = size
    return max(0, min(x, width - 1)), max(0, min(y, height - 1))


class HumanMouse:
    """
    Input injector on top of pyautogui.

    pyautogui grabs the display the moment it's imported, so the import
    happens here rather than at module load.
    """

    def __init__(
        self,
        glide: bool = False,
        resolution: int = 40,
        speed: float = 1.0,
        press_ms: int = 50,
        failsafe: bool = True,
        log_fn: Optional[Callable[[str, str], None]] = None
    ) -> None:
        import pyautogui

        self._gui = pyautogui
        self._gui.FAILSAFE = failsafe
        self.glide = glide
        self.res = max(2, resolution)
        self.speed = speed if speed > 0 else 1.0
        self.press_ms = press_ms
        self._log = log_fn or (lambda m, l: None)

    def screen_size(self) -> Tuple[int, int]:
        w, h = self._gui.size()
        return int(w), int(h)

    def _pos(self) -> Point:
        x, y = self._gui.position()
        return Point(x, y)

    def move_to(self, x: int, y: int) -> None:
        if not self.glide:
            self._gui.moveTo(x, y, _pause=False)
            return

        start = self._pos()
        end = Point(x, y)
        dist = math.hypot(end.x - start.x, end.y - start.y)

        # Control points pulled off the straight line, scaled by distance
        offset = min(dist * 0.3, 200.0)
        c1 = Point(start.x + random.uniform(-offset, offset), start.y + random.uniform(-offset, offset))
        c2 = Point(end.x + random.uniform(-offset, offset), end.y + random.uniform(-offset, offset))
        curve = make_bezier([start, c1, c2, end])

        duration = max(0.05, (dist * 0.0004) / self.speed)
        start_time = time.time()

        for i in range(self.res + 1):
            t = i / self.res
            pos = curve(ease_in_out(t))
            self._gui.moveTo(pos.x, pos.y, _pause=False)

            # Sleep remainder of time slice to match duration
            elapsed = time.time() - start_time
            target_time = duration * t
            if elapsed < target_time:
                time.sleep(target_time - elapsed)

        # Curve math is float; land exactly on target
        self._gui.moveTo(x, y, _pause=False)

    def click(self, x: int, y: int) -> Tuple[int, int]:
        cx, cy = clamp_to_screen(int(x), int(y), self.screen_size())
        if (cx, cy) != (int(x), int(y)):
            self._log(f"Click {x},{y} clamped to {cx},{cy}", "WARN")
        self.move_to(cx, cy)
        self._gui.mouseDown(_pause=False)
        time.sleep(self.press_ms / 1000.0)
        self._gui.mouseUp(_pause=False)
        return cx, cy
