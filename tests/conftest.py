import numpy as np
import pytest

from autoclick.vision import clamp_region


def solid(width, height, color=(0, 0, 0), channels=3):
    img = np.zeros((height, width, channels), dtype=np.uint8)
    img[:, :, :3] = color
    if channels == 4:
        img[:, :, 3] = 255
    return img


def noise(width, height, seed=0):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)


class FakeMouse:
    def __init__(self, size=(1920, 1080)) -> None:
        self.size = size
        self.clicks = []

    def screen_size(self):
        return self.size

    def click(self, x, y):
        self.clicks.append((x, y))
        return x, y


class FakeCapture:
    """Hands out queued frames; repeats the last one once the queue runs dry."""

    def __init__(self, frames=None, bounds=None) -> None:
        self.frames = list(frames or [])
        self.monitor = dict(bounds or {"left": 0, "top": 0, "width": 1920, "height": 1080})
        self.regions = []
        self.closed = 0
        self._last = None

    def capture(self, region=None):
        self.regions.append(region)
        if self.frames:
            item = self.frames.pop(0)
            if isinstance(item, Exception):
                raise item
            self._last = item
        return self._last

    def bounds(self):
        return dict(self.monitor)

    def close(self):
        self.closed += 1


class DesktopCapture(FakeCapture):
    """Cuts regions out of one fixed desktop raster, clipped to its edges."""

    def __init__(self, desktop) -> None:
        height, width = desktop.shape[:2]
        super().__init__(bounds={"left": 0, "top": 0, "width": width, "height": height})
        self.desktop = desktop

    def capture(self, region=None):
        self.regions.append(region)
        if region is None:
            return self.desktop.copy()
        area = clamp_region(region, self.monitor)
        if area is None:
            return None
        return self.desktop[area.y:area.y + area.height, area.x:area.x + area.width].copy()


@pytest.fixture
def fake_mouse():
    return FakeMouse()


@pytest.fixture
def no_wait():
    return lambda seconds: False
