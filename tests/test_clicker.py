from autoclick.clicker import ClickMode, ClickVerifier
from autoclick.errors import CaptureError
from autoclick.ui import Stats
from autoclick.vision import Template, TemplateMatcher

from conftest import FakeCapture, FakeMouse, solid


BUTTON = (0, 200, 0)


def _screen(with_button: bool):
    screen = solid(60, 40, (30, 30, 30))
    if with_button:
        screen[10:20, 20:30] = BUTTON
    return screen


def _verifier(frames, mouse=None, wait=None, stats=None, max_retries=5):
    capture = FakeCapture(frames)
    verifier = ClickVerifier(
        mouse=mouse or FakeMouse(),
        capture=lambda: capture.capture(None),
        matcher=TemplateMatcher(tolerance=0, stride=1),
        template=Template(solid(10, 10, BUTTON)),
        max_retries=max_retries,
        wait=wait or (lambda s: False),
        stats=stats
    )
    return verifier, capture


def test_unverified_clicks_every_retry_and_succeeds():
    mouse = FakeMouse()
    verifier, capture = _verifier([], mouse=mouse)
    assert verifier.attempt((100, 200), ClickMode.UNVERIFIED) is True
    assert mouse.clicks == [(100, 200)] * 5
    assert capture.regions == []


def test_verified_succeeds_once_button_disappears():
    mouse = FakeMouse()
    stats = Stats()
    verifier, _ = _verifier([_screen(True), _screen(False)], mouse=mouse, stats=stats)
    assert verifier.attempt((25, 15), ClickMode.VERIFIED) is True
    assert len(mouse.clicks) == 2
    assert stats.verified == 1
    assert stats.clicks == 2


def test_verified_succeeds_after_first_click():
    mouse = FakeMouse()
    verifier, _ = _verifier([_screen(False)], mouse=mouse)
    assert verifier.attempt((25, 15), ClickMode.VERIFIED) is True
    assert len(mouse.clicks) == 1


def test_verified_gives_up_when_button_never_leaves():
    mouse = FakeMouse()
    stats = Stats()
    verifier, _ = _verifier([_screen(True)], mouse=mouse, stats=stats)
    assert verifier.attempt((25, 15), ClickMode.VERIFIED) is False
    assert len(mouse.clicks) == 5
    assert stats.verify_failures == 1


def test_verified_waits_settle_then_backoff():
    waits = []

    def wait(seconds):
        waits.append(seconds)
        return False

    verifier, _ = _verifier([_screen(True), _screen(False)], wait=wait)
    verifier.attempt((25, 15), ClickMode.VERIFIED)
    assert waits == [0.3, 0.2, 0.3]


def test_failed_recapture_counts_as_still_there():
    mouse = FakeMouse()
    verifier, _ = _verifier([CaptureError("display gone"), _screen(False)], mouse=mouse)
    assert verifier.attempt((25, 15), ClickMode.VERIFIED) is True
    assert len(mouse.clicks) == 2


def test_off_screen_target_is_never_clicked():
    mouse = FakeMouse(size=(800, 600))
    stats = Stats()
    verifier, _ = _verifier([], mouse=mouse, stats=stats)
    for target in [(-1, 10), (10, -1), (800, 10), (10, 600)]:
        assert verifier.attempt(target, ClickMode.UNVERIFIED) is False
        assert verifier.attempt(target, ClickMode.VERIFIED) is False
    assert mouse.clicks == []
    assert stats.out_of_bounds == 8


def test_stop_during_wait_aborts():
    mouse = FakeMouse()
    verifier, _ = _verifier([_screen(True)], mouse=mouse, wait=lambda s: True)
    assert verifier.attempt((25, 15), ClickMode.VERIFIED) is False
    assert len(mouse.clicks) == 1
    mouse.clicks.clear()
    assert verifier.attempt((25, 15), ClickMode.UNVERIFIED) is False
    assert len(mouse.clicks) == 1


def test_verified_without_template_behaves_unverified():
    mouse = FakeMouse()
    verifier = ClickVerifier(
        mouse=mouse,
        capture=lambda: None,
        matcher=TemplateMatcher(0, 1),
        template=None,
        max_retries=3,
        wait=lambda s: False
    )
    assert verifier.attempt((5, 5), ClickMode.VERIFIED) is True
    assert len(mouse.clicks) == 3


def test_per_attempt_wait_overrides_constructor_wait():
    mouse = FakeMouse()
    verifier, _ = _verifier([_screen(True)], mouse=mouse, wait=lambda s: False)
    assert verifier.attempt((25, 15), ClickMode.VERIFIED, wait=lambda s: True) is False
    assert len(mouse.clicks) == 1
    mouse.clicks.clear()
    # Next attempt falls back to the constructor one
    assert verifier.attempt((25, 15), ClickMode.UNVERIFIED) is True
    assert len(mouse.clicks) == 5
