import os
import signal
import sys
import time
from collections import deque, namedtuple
from contextlib import contextmanager

import psutil

from config import REAPER_MODE, POLL_INTERVAL

EXITED = "exited"
SIGNALED = "signaled"
STOPPED = "stopped"

ChildStatus = namedtuple("ChildStatus", ["pid", "state", "value"])


def classify_status(pid, status):
    """Map a raw wait status to ChildStatus(pid, state, value)."""
    if os.WIFEXITED(status):
        return ChildStatus(pid, EXITED, os.WEXITSTATUS(status))
    if os.WIFSIGNALED(status):
        return ChildStatus(pid, SIGNALED, os.WTERMSIG(status))
    if os.WIFSTOPPED(status):
        return ChildStatus(pid, STOPPED, os.WSTOPSIG(status))
    return ChildStatus(pid, None, status)


def exit_code_of(child):
    """Shell-style exit code for a ChildStatus."""
    if child.state == EXITED:
        return child.value
    if child.state in (SIGNALED, STOPPED):
        return 128 + child.value
    return 1


class Reaper:
    """
    Background job table plus the strategy that reaps finished jobs.

    signal mode: SIGCHLD drains every terminated child with non-blocking,
                 non-specific waits, unless a pid-specific wait is running
                 (see hold()).
    poll mode:   each job runs under a supervisor process that polls its
                 child; the shell reaps supervisors by pid in sweep().
    """

    def __init__(self, mode=None, poll_interval=None):
        self.mode = mode or REAPER_MODE
        self.poll_interval = POLL_INTERVAL if poll_interval is None else poll_interval
        # Background jobs: pid → command string
        self.jobs = {}
        self.notifications = deque()
        self.finished = deque(maxlen=100)
        self._held = 0
        self._pending = False

    # ---------- signal mode ----------
    def handle_sigchld(self, signum, frame):
        self._pending = True
        if not self._held:
            self.drain()

    @contextmanager
    def hold(self):
        """
        Keep the SIGCHLD handler from reaping while the caller waits on a
        specific pid. A drain that was requested meanwhile runs on release.
        """
        self._held += 1
        try:
            yield
        finally:
            self._held -= 1
            if not self._held and self._pending:
                self.drain()

    def drain(self):
        """Reap every child that has already terminated."""
        self._pending = False
        reaped = []
        while True:
            try:
                pid, status = os.waitpid(-1, os.WNOHANG)
            except ChildProcessError:
                break
            except OSError as e:
                print(f"minishell: wait: {e}", file=sys.stderr)
                break
            if pid == 0:
                break
            reaped.append(self._finish(classify_status(pid, status)))
        return reaped

    # ---------- poll mode ----------
    def supervise(self, spawn):
        """
        Body of a supervisor process: start the real command with spawn(),
        poll until it changes state, then leave the same way it did: same
        exit code, or killed by the same signal. Never returns.
        """
        try:
            pid = spawn()
            while True:
                wpid, status = os.waitpid(pid, os.WNOHANG)
                if wpid:
                    break
                time.sleep(self.poll_interval)
            child = classify_status(wpid, status)
            if child.state == SIGNALED:
                try:
                    signal.signal(child.value, signal.SIG_DFL)
                except (OSError, ValueError):
                    pass  # SIGKILL is always default
                os.kill(os.getpid(), child.value)
            code = exit_code_of(child)
        except BaseException as e:
            print(f"minishell: supervisor: {e}", file=sys.stderr)
            code = 1
        os._exit(code)

    def sweep(self):
        """Reap finished supervisors (or jobs) by pid, without blocking."""
        reaped = []
        for pid in list(self.jobs):
            try:
                wpid, status = os.waitpid(pid, os.WNOHANG)
            except ChildProcessError:
                # already collected elsewhere
                self.jobs.pop(pid, None)
                continue
            except OSError as e:
                print(f"minishell: wait: {e}", file=sys.stderr)
                continue
            if wpid:
                reaped.append(self._finish(classify_status(wpid, status)))
        return reaped

    # ---------- common ----------
    def collect(self):
        if self.mode == "signal":
            with self.hold():
                return self.drain()
        return self.sweep()

    def add_job(self, pid, cmdline):
        """Thêm job vào danh sách background"""
        self.jobs[pid] = cmdline
        print(f"[{pid}] started in background: {cmdline}")

    def _finish(self, child):
        self.finished.append(child)
        cmdline = self.jobs.pop(child.pid, None)
        if child.state == EXITED:
            if cmdline is None:
                self.notifications.append(f"[{child.pid}] exited")
            else:
                self.notifications.append(f"[{child.pid}] exited ({child.value}): {cmdline}")
        return child

    def report(self):
        """Print queued completion notifications. Call only at safe points."""
        while self.notifications:
            print(self.notifications.popleft())
        sys.stdout.flush()

    def show_jobs(self):
        """Hiển thị danh sách tiến trình nền"""
        with self.hold():
            jobs = list(self.jobs.items())
            if not jobs:
                print("No background jobs.")
                return

            print(f"{'PID':<8} {'Command'}")
            print("-" * 40)
            for pid, cmd in jobs:
                try:
                    status = psutil.Process(pid).status()
                except psutil.NoSuchProcess:
                    status = "terminated"
                except psutil.Error:
                    status = "unknown"
                print(f"{pid:<8} {cmd}  [{status}]")
