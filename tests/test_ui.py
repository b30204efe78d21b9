from rich.console import Console

from autoclick.ui import Dashboard, Stats, make_console_logger


def test_stats_snapshot_counts():
    stats = Stats()
    for _ in range(4):
        stats.inc_ticks()
    stats.inc_matches()
    stats.inc_change_triggers()
    stats.inc_clicks()
    stats.set_change(12)
    data = stats.get()
    assert data["ticks"] == 4
    assert data["matches"] == 1
    assert data["change_triggers"] == 1
    assert data["hit_rate"] == 50.0
    assert data["last_change_pct"] == 12


def test_hit_rate_zero_without_ticks():
    assert Stats().get()["hit_rate"] == 0


def test_dashboard_renders_without_live():
    dash = Dashboard(mode="template", template="accept.png")
    dash.log("hello", "SUCCESS")
    dash.stats.inc_errors()
    Console(record=True, width=120).print(dash._render())


def test_console_logger_prints_level_and_message():
    console = Console(record=True, width=120)
    log = make_console_logger(console)
    log("Click @ 1,2", "CLICK")
    out = console.export_text()
    assert "CLICK" in out
    assert "Click @ 1,2" in out


def test_slow_refresh_still_redraws_once_a_second():
    assert Dashboard(refresh_ms=5000).refresh_per_second == 1
    assert Dashboard(refresh_ms=100).refresh_per_second == 10
    assert Dashboard(refresh_ms=1).refresh_per_second == 100
