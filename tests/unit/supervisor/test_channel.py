"""Unit tests for juliabridge.supervisor.channel: the file-and-doorbell call path."""
# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import threading
import time

import pytest

from juliabridge.exceptions import (
    ChannelBusyError,
    LiteralError,
    WorkerNotRunningError,
    WorkerTerminatedError,
)
from juliabridge.supervisor.channel import CallChannel, CallState, FlagWatcher
from juliabridge.values import Value
from tests.helpers.fakes import dying_worker, fake_worker, write_text_exact

HANDLE = 11


@pytest.fixture
def running(supervisor, backend):
    backend.add_window(HANDLE, supervisor.marker)
    return supervisor


@pytest.fixture
def channel(running):
    ch = CallChannel(running)
    yield ch
    ch.close()


# ── Completion ────────────────────────────────────────────


class TestEvaluate:
    def test_round_trip(self, channel, backend, paths):
        seen: list[str] = []
        backend.on_ring = fake_worker(paths, lambda expr: "#3", seen=seen)

        assert channel.evaluate("1 + 2") == Value.double(3.0)
        assert seen == ["1 + 2"]
        assert channel.state is CallState.COMPLETED
        assert not paths.flag.exists()

    def test_doorbell_carries_serve_command(self, channel, backend, paths):
        backend.on_ring = fake_worker(paths, lambda expr: "N")
        channel.evaluate("nothing")
        assert backend.rings == [(HANDLE, "srv_xl()")]

    def test_expression_written_verbatim(self, channel, backend, paths):
        seen: list[str] = []
        backend.on_ring = fake_worker(paths, lambda expr: "E", seen=seen)
        channel.evaluate('x = "a"\r\ny = 2')
        assert seen == ['x = "a"\r\ny = 2']

    def test_waits_for_flag_deletion(self, channel, backend, paths):
        backend.on_ring = fake_worker(paths, lambda expr: "T", delay=0.2)
        started = time.monotonic()
        assert channel.evaluate("true") == Value.boolean(True)
        assert time.monotonic() - started >= 0.2

    def test_flag_deletion_alone_completes(self, channel, backend, paths):
        write_text_exact(paths.result, "£precomputed")

        def on_ring(handle, command):
            threading.Timer(0.05, paths.flag.unlink).start()

        backend.on_ring = on_ring
        assert channel.evaluate("ignored").payload == "precomputed"

    def test_decode_options_from_config(self, channel, backend, paths, config):
        config.vector_as_column = True
        backend.on_ring = fake_worker(paths, lambda expr: "*1,2;2,2,;%1%2")
        assert channel.evaluate("[1, 2]").shape == (2, 1)

    def test_worker_error_text_passes_through(self, channel, backend, paths):
        backend.on_ring = fake_worker(paths, lambda expr: "£#Julia error: UndefVarError: `x` not defined")
        assert channel.evaluate("x").payload.startswith("#Julia error: UndefVarError")

    def test_call_builds_expression(self, channel, backend, paths):
        seen: list[str] = []
        backend.on_ring = fake_worker(paths, lambda expr: "#6", seen=seen)
        assert channel.call("sum", [1, 2, 3]) == Value.double(6.0)
        assert seen == ["sum([1,2,3])"]

    def test_sequential_calls(self, channel, backend, paths):
        counter = iter(range(1, 10))
        backend.on_ring = fake_worker(paths, lambda expr: f"&{next(counter)}")
        assert [channel.evaluate("next()").payload for _ in range(3)] == [1, 2, 3]


# ── Failures ──────────────────────────────────────────────


class TestFailures:
    def test_not_running(self, supervisor):
        channel = CallChannel(supervisor)
        with pytest.raises(WorkerNotRunningError) as exc_info:
            channel.evaluate("1")
        assert str(exc_info.value).startswith("evaluate: ")
        assert channel.state is CallState.IDLE

    def test_worker_dies_mid_call(self, channel, running, backend, paths):
        backend.on_ring = dying_worker(backend)
        with pytest.raises(WorkerTerminatedError, match="terminated mid-call"):
            channel.evaluate("sleep(60)")
        assert channel.state is CallState.WORKER_DIED
        assert not running.is_running()

    def test_ring_failure_marks_worker_dead(self, channel, backend):
        def on_ring(handle, command):
            raise WorkerTerminatedError("PostMessage failed")

        backend.on_ring = on_ring
        with pytest.raises(WorkerTerminatedError, match="PostMessage failed"):
            channel.evaluate("1")
        assert channel.state is CallState.WORKER_DIED

    def test_busy(self, channel):
        channel._busy.acquire()
        try:
            with pytest.raises(ChannelBusyError, match="already in progress"):
                channel.evaluate("1")
        finally:
            channel._busy.release()

    def test_invalid_call_name(self, channel, backend):
        with pytest.raises(LiteralError, match="Invalid Julia function name"):
            channel.call("not a name")
        assert backend.rings == []


# ── Flag watcher ──────────────────────────────────────────


class TestFlagWatcher:
    def test_sees_deletion(self, tmp_path):
        flag = tmp_path / "JuliaBridgeFlag_1.txt"
        flag.touch()
        watcher = FlagWatcher(flag)
        watcher.start()
        try:
            threading.Timer(0.1, flag.unlink).start()
            assert watcher.wait(5.0) is True
            assert not watcher.cleared.is_set()
        finally:
            watcher.stop()

    def test_ignores_other_files(self, tmp_path):
        flag = tmp_path / "JuliaBridgeFlag_1.txt"
        other = tmp_path / "JuliaBridgeFlag_2.txt"
        other.touch()
        watcher = FlagWatcher(flag)
        watcher.start()
        try:
            other.unlink()
            assert watcher.wait(0.3) is False
        finally:
            watcher.stop()

    def test_polling_fallback(self, channel, backend, paths, monkeypatch):
        def broken_start(self):
            raise OSError("inotify watch limit reached")

        monkeypatch.setattr(FlagWatcher, "start", broken_start)
        backend.on_ring = fake_worker(paths, lambda expr: "F")
        assert channel.evaluate("false") == Value.boolean(False)
        assert channel._watcher is None
