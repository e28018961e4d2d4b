"""Tests for the terminal status line."""

import io

from netwatch.display import StatusLine


class FakeTTY(io.StringIO):
    def isatty(self):
        return True


def test_non_tty_prints_one_line_per_update():
    out = io.StringIO()
    line = StatusLine(out)
    line.update("attempt 1")
    line.update("attempt 2")
    line.finish()
    assert out.getvalue() == "attempt 1\nattempt 2\n"
    assert not line.live


def test_tty_rewrites_in_place():
    out = FakeTTY()
    line = StatusLine(out)
    line.update("attempt 1")
    line.update("attempt 2")
    line.finish()
    assert out.getvalue() == "\r\033[2Kattempt 1\r\033[2Kattempt 2\n"


def test_static_mode_on_tty():
    out = FakeTTY()
    line = StatusLine(out, live=False)
    line.update("probe")
    assert out.getvalue() == "probe\n"
    assert line.is_tty


def test_emit_clears_live_line():
    out = FakeTTY()
    line = StatusLine(out)
    line.update("probe 3")
    line.emit("host is DOWN")
    line.finish()
    assert out.getvalue() == "\r\033[2Kprobe 3\r\033[2Khost is DOWN\n"


def test_clear_without_pending_writes_nothing():
    out = FakeTTY()
    StatusLine(out).clear()
    assert out.getvalue() == ""


def test_colors_only_on_tty():
    assert StatusLine(io.StringIO()).up("UP") == "UP"
    assert StatusLine(FakeTTY()).down("DOWN") == "\033[31mDOWN\033[0m"
