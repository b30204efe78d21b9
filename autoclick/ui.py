# Dashboard UI

import threading
from collections import deque
from datetime import datetime, timedelta
from typing import Optional, Callable

from rich.console import Console, Group
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.align import Align
from rich.rule import Rule

VERSION = "v1.0.0"

COLORS = {
    "border": "#334155",
    "muted": "#64748b",
    "text": "#e2e8f0",
    "text_dim": "#94a3b8",
    "heading": "#38bdf8",
    "success": "#10b981",
    "warning": "#f59e0b",
    "warn": "#f59e0b",
    "error": "#ef4444",
    "info": "#3b82f6",
    "click": "#a855f7",
    "idle": "#64748b",
    "active": "#10b981",
}

HEADER = "▓▓▓ IMAGE AUTOCLICKER ▓▓▓"


class Stats:
    # Session stats. Written by the worker thread, read by the UI thread.

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._start = datetime.now()
        self._paused_duration = timedelta(0)
        self._pause_start: Optional[datetime] = None
        self.ticks = 0
        self.matches = 0
        self.change_triggers = 0
        self.clicks = 0
        self.verified = 0
        self.verify_failures = 0
        self.out_of_bounds = 0
        self.errors = 0
        self.last_change_pct: Optional[int] = None

    def pause(self) -> None:
        with self._lock:
            if not self._pause_start:
                self._pause_start = datetime.now()

    def resume(self) -> None:
        with self._lock:
            if self._pause_start:
                self._paused_duration += datetime.now() - self._pause_start
                self._pause_start = None

    def inc_ticks(self) -> None:
        with self._lock: self.ticks += 1

    def inc_matches(self) -> None:
        with self._lock: self.matches += 1

    def inc_change_triggers(self) -> None:
        with self._lock: self.change_triggers += 1

    def inc_clicks(self) -> None:
        with self._lock: self.clicks += 1

    def inc_verified(self) -> None:
        with self._lock: self.verified += 1

    def inc_verify_failures(self) -> None:
        with self._lock: self.verify_failures += 1

    def inc_out_of_bounds(self) -> None:
        with self._lock: self.out_of_bounds += 1

    def inc_errors(self) -> None:
        with self._lock: self.errors += 1

    def set_change(self, pct: int) -> None:
        with self._lock: self.last_change_pct = pct

    def get(self) -> dict:
        """Snapshot: runtime, runtime_sec, counters, hit_rate, last_change_pct."""
        with self._lock:
            now = datetime.now()
            current_pause = timedelta(0)
            if self._pause_start:
                current_pause = now - self._pause_start
            total_active = (now - self._start) - (self._paused_duration + current_pause)
            total_sec = max(0, int(total_active.total_seconds()))
            h, rem = divmod(total_sec, 3600)
            m, s = divmod(rem, 60)

            detections = self.matches + self.change_triggers
            hit_rate = (detections / self.ticks * 100) if self.ticks > 0 else 0

            return {
                "runtime": f"{h:02d}:{m:02d}:{s:02d}",
                "runtime_sec": total_sec,
                "ticks": self.ticks,
                "matches": self.matches,
                "change_triggers": self.change_triggers,
                "clicks": self.clicks,
                "verified": self.verified,
                "verify_failures": self.verify_failures,
                "out_of_bounds": self.out_of_bounds,
                "errors": self.errors,
                "hit_rate": hit_rate,
                "last_change_pct": self.last_change_pct,
            }


class LogBuffer:
    def __init__(self, max_lines: int = 15) -> None:
        self._lines = deque(maxlen=max_lines)
        self._lock = threading.Lock()

    def add(self, message: str, level: str = "INFO") -> None:
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        with self._lock:
            self._lines.append((timestamp, level, message))

    def get_all(self):
        with self._lock: return list(self._lines)


class Dashboard:
    STATUS_IDLE = "idle"
    STATUS_RUNNING = "running"
    STATUS_ERROR = "error"

    def __init__(
        self, stats: Optional[Stats] = None, mode: str = "", template: str = "",
        region: str = "", refresh_ms: int = 100,
        pause_key: str = "f9", stop_key: str = "f10"
    ) -> None:
        self._live = None
        self._mode = mode
        self._template = template
        self._region = region
        self._refresh_ms = max(10, refresh_ms)
        self._pause_key = pause_key.upper()
        self._stop_key = stop_key.upper()
        self._console = Console()
        self._stats = stats or Stats()
        self._log = LogBuffer(max_lines=50)
        self._status = self.STATUS_IDLE
        self._status_detail = ""
        self._lock = threading.Lock()

    @property
    def stats(self): return self._stats

    def log(self, message: str, level: str = "INFO"):
        self._log.add(message, level)

    def set_status(self, status: str, detail: str = ""):
        with self._lock:
            self._status = status
            self._status_detail = detail

    @property
    def refresh_per_second(self) -> int:
        # Live rejects 0; anything slower than 1s still redraws once a second
        return max(1, 1000 // self._refresh_ms)

    def start(self):
        self._live = Live(
            self._render(), console=self._console,
            refresh_per_second=self.refresh_per_second,
            screen=True, transient=False
        )
        self._live.start()

    def update(self):
        if self._live: self._live.update(self._render())

    def stop(self):
        if self._live:
            self._live.stop()
            self._live = None

    def _render(self):
        layout = Layout()
        layout.split(
            Layout(name="header", size=5),
            Layout(name="middle", size=12),
            Layout(name="log", ratio=1, minimum_size=5),
            Layout(name="footer", size=3)
        )
        layout["middle"].split_row(
            Layout(name="stats", ratio=2),
            Layout(name="activity", ratio=1)
        )
        layout["header"].update(self._render_header())
        layout["stats"].update(self._render_stats())
        layout["activity"].update(self._render_activity())
        layout["log"].update(self._render_log())
        layout["footer"].update(self._render_footer())
        return layout

    def _render_header(self):
        if self._status == self.STATUS_IDLE:
            badge = Text(" ● Idle ", style=f"bold {COLORS['idle']}")
        elif self._status == self.STATUS_RUNNING:
            badge = Text(" ⚡ Running ", style=f"bold {COLORS['active']}")
        elif self._status == self.STATUS_ERROR:
            badge = Text(" ✖ Error ", style=f"bold {COLORS['error']}")
        else:
            badge = Text(f" ● {self._status} ", style=f"bold {COLORS['muted']}")

        subtitle = Text()
        subtitle.append(f"  {VERSION}  ", style=f"bold {COLORS['text_dim']}")
        subtitle.append("│ Mode: ", style=COLORS['border'])
        subtitle.append(self._mode or "None", style=f"bold {COLORS['text']}")
        subtitle.append("  │  ", style=COLORS['border'])
        subtitle.append_text(badge)
        if self._status_detail:
            subtitle.append(f"  {self._status_detail}", style=COLORS['text_dim'])

        header_text = Text(HEADER, style=COLORS['heading'])
        return Panel(Align.center(Group(Align.center(header_text), Align.center(subtitle))), border_style=COLORS['border'])

    def _render_stats(self):
        data = self._stats.get()
        table = Table.grid(padding=(0, 2), expand=True)
        table.add_column("L", justify="right", style=COLORS['muted'])
        table.add_column("V", justify="left", style=f"bold {COLORS['text']}")
        table.add_row("Runtime", data["runtime"])
        table.add_row("Scans", str(data["ticks"]))
        table.add_row("Matches", str(data["matches"]))
        table.add_row("Change Hits", str(data["change_triggers"]))
        table.add_row("Clicks", str(data["clicks"]))
        table.add_row("Verified", str(data["verified"]))
        hr = data["hit_rate"]
        hr_color = COLORS['success'] if hr >= 80 else COLORS['warning'] if hr >= 50 else COLORS['muted']
        table.add_row("Hit Rate", Text(f"{hr:.1f}%", style=f"bold {hr_color}"))
        if data["verify_failures"] > 0:
            table.add_row("Gave Up", Text(str(data["verify_failures"]), style=f"bold {COLORS['warning']}"))
        if data["errors"] > 0:
            table.add_row("Errors", Text(str(data["errors"]), style=f"bold {COLORS['error']}"))

        return Panel(table, title=f"[{COLORS['heading']}]Live Stats[/]", border_style=COLORS['border'])

    def _render_activity(self):
        data = self._stats.get()
        lines = []
        lines.append(Align.center(Text(f"Template: {self._template or '-'}", style=COLORS['text'])))
        lines.append(Align.center(Text(f"Region: {self._region or 'full screen'}", style=COLORS['text_dim'])))
        lines.append(Text())
        lines.append(Rule(style=COLORS['border']))
        pct = data["last_change_pct"]
        lines.append(Align.center(Text(
            f"Last change: {pct}%" if pct is not None else "Last change: -",
            style=COLORS['text_dim']
        )))
        if data["out_of_bounds"] > 0:
            lines.append(Align.center(Text(f"Off-screen skips: {data['out_of_bounds']}", style=COLORS['warning'])))

        return Panel(Group(*lines), title=f"[{COLORS['heading']}]Activity[/]", border_style=COLORS['border'])

    def _render_log(self):
        lines = self._log.get_all()
        term_height = self._console.size.height
        avail = max(3, term_height - 25)
        visible = lines[-avail:] if lines else []

        if not visible:
            return Panel(Align.center(Text("Waiting...", style=COLORS['muted'])), title=f"[{COLORS['heading']}]Log[/]", border_style=COLORS['border'])

        text = Text()
        for ts, lvl, msg in visible:
            text.append(f" {ts} ", style=COLORS['text_dim'])
            c = COLORS.get(lvl.lower(), COLORS['info'])
            text.append(f"[{lvl:^7}]", style=f"bold {c}")
            text.append(f" {msg}\n", style=COLORS['text'])

        return Panel(Align(text, vertical="bottom"), title=f"[{COLORS['heading']}]Event Log[/]", border_style=COLORS['border'])

    def _render_footer(self):
        f = Text()
        f.append(f"  {self._pause_key} Pause/Resume  ", style=COLORS['muted'])
        f.append(f"{self._stop_key} Quit  ", style=COLORS['muted'])
        return Panel(Align.center(f), border_style=COLORS['border'])


def make_logger(dash: Dashboard):
    def log(msg: str, level: str = "INFO"):
        dash.log(msg, level)
        dash.update()
    return log


def make_console_logger(console: Optional[Console] = None) -> Callable[[str, str], None]:
    # Plain mode: one colored line per event, no full-screen layout
    console = console or Console()
    lock = threading.Lock()

    def log(msg: str, level: str = "INFO"):
        ts = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        line = Text()
        line.append(f"{ts} ", style=COLORS['text_dim'])
        line.append(f"[{level:^7}]", style=f"bold {COLORS.get(level.lower(), COLORS['info'])}")
        line.append(f" {msg}")
        with lock:
            console.print(line)
    return log
