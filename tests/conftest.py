# tests/conftest.py

import os
import signal

import pytest

from Engine.job_control import Reaper


@pytest.fixture
def reaper():
    """Signal-mode reaper that is not hooked to SIGCHLD."""
    r = Reaper(mode="signal")
    yield r
    r.drain()


@pytest.fixture
def sigchld_reaper():
    """Signal-mode reaper installed as the SIGCHLD handler."""
    r = Reaper(mode="signal")
    previous = signal.signal(signal.SIGCHLD, r.handle_sigchld)
    try:
        yield r
    finally:
        signal.signal(signal.SIGCHLD, previous)
        r.drain()


@pytest.fixture
def poll_reaper():
    r = Reaper(mode="poll", poll_interval=0.01)
    yield r
    for pid in list(r.jobs):
        try:
            os.kill(pid, signal.SIGKILL)
            os.waitpid(pid, 0)
        except OSError:
            pass


@pytest.fixture
def pager_cat(monkeypatch):
    monkeypatch.setenv("PAGER", "cat")


@pytest.fixture
def out_file(tmp_path):
    """Writable descriptor for a pipeline's last stage, and its path."""
    path = tmp_path / "out.txt"
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o644)
    yield fd, path
    try:
        os.close(fd)
    except OSError:
        pass
