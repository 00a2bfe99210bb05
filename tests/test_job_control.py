# tests/test_job_control.py

import os
import signal
import time

import psutil

from Engine.executor import launch_background, execute_command
from Engine.job_control import (
    ChildStatus, classify_status, exit_code_of, EXITED, SIGNALED, STOPPED,
)
from Engine.parser import Command

from helpers import zombie_children, wait_until


def _fork_exit(code, delay=0.0):
    pid = os.fork()
    if pid == 0:
        try:
            if delay:
                time.sleep(delay)
        finally:
            os._exit(code)
    return pid


# ---------- classification ----------

def test_classify_exited():
    assert classify_status(10, 3 << 8) == ChildStatus(10, EXITED, 3)


def test_classify_signaled():
    assert classify_status(11, signal.SIGKILL) == ChildStatus(11, SIGNALED, signal.SIGKILL)


def test_classify_stopped():
    status = (signal.SIGSTOP << 8) | 0x7F
    assert classify_status(12, status) == ChildStatus(12, STOPPED, signal.SIGSTOP)


def test_exit_code_of():
    assert exit_code_of(ChildStatus(1, EXITED, 0)) == 0
    assert exit_code_of(ChildStatus(1, EXITED, 4)) == 4
    assert exit_code_of(ChildStatus(1, SIGNALED, signal.SIGTERM)) == 128 + signal.SIGTERM


# ---------- signal mode ----------

def test_drain_collects_every_finished_child(reaper):
    pids = [_fork_exit(code) for code in (0, 1, 2)]
    for pid, code in zip(pids, (0, 1, 2)):
        reaper.jobs[pid] = f"job{code}"

    assert wait_until(lambda: len(zombie_children()) == 3)
    reaped = reaper.drain()

    assert sorted(reaped) == sorted(ChildStatus(p, EXITED, c) for p, c in zip(pids, (0, 1, 2)))
    assert reaper.jobs == {}
    assert zombie_children() == []


def test_drain_with_no_children_is_quiet(reaper, capsys):
    assert reaper.drain() == []
    assert capsys.readouterr().err == ""


def test_only_normal_exits_are_announced(reaper, capsys):
    ok = _fork_exit(0)
    reaper.jobs[ok] = "true"

    killed = os.fork()
    if killed == 0:
        try:
            time.sleep(30)
        finally:
            os._exit(0)
    reaper.jobs[killed] = "sleep 30"
    os.kill(killed, signal.SIGKILL)

    assert wait_until(lambda: len(zombie_children()) == 2)
    reaper.drain()
    reaper.report()

    out = capsys.readouterr().out
    assert f"[{ok}] exited (0): true" in out
    assert f"[{killed}]" not in out
    assert ChildStatus(killed, SIGNALED, signal.SIGKILL) in reaper.finished


def test_background_jobs_are_reaped_by_sigchld(sigchld_reaper, capfd):
    pids = [launch_background(Command(["true"]), sigchld_reaper) for _ in range(5)]
    assert all(pids)

    assert wait_until(lambda: not sigchld_reaper.jobs and not zombie_children())
    sigchld_reaper.report()

    out, _ = capfd.readouterr()
    for pid in pids:
        assert f"[{pid}] started in background: true" in out
        assert f"[{pid}] exited (0): true" in out


def test_hold_keeps_handler_off_the_foreground_child(sigchld_reaper):
    pid = _fork_exit(7, delay=0.1)
    with sigchld_reaper.hold():
        time.sleep(0.3)
        wpid, status = os.waitpid(pid, 0)
    assert wpid == pid
    assert os.WEXITSTATUS(status) == 7


def test_pending_drain_runs_when_hold_is_released(sigchld_reaper):
    pid = _fork_exit(0)
    sigchld_reaper.jobs[pid] = "job"
    with sigchld_reaper.hold():
        assert wait_until(lambda: pid in zombie_children())
        assert pid in sigchld_reaper.jobs
    assert sigchld_reaper.jobs == {}
    assert zombie_children() == []


def test_foreground_and_background_do_not_race(sigchld_reaper, capfd):
    launch_background(Command(["sleep", "0.1"]), sigchld_reaper)
    for _ in range(5):
        result = execute_command(Command(["true"]), reaper=sigchld_reaper)
        assert result is not None
        assert result.status.state == EXITED
    assert wait_until(lambda: not sigchld_reaper.jobs)
    assert zombie_children() == []


# ---------- poll mode ----------

def test_supervisor_reaps_command_and_mirrors_status(poll_reaper, capfd):
    pid = launch_background(Command(["sh", "-c", "exit 3"]), poll_reaper)
    assert pid in poll_reaper.jobs

    def done():
        poll_reaper.sweep()
        return not poll_reaper.jobs

    assert wait_until(done)
    assert poll_reaper.finished[-1] == ChildStatus(pid, EXITED, 3)
    assert zombie_children() == []

    poll_reaper.report()
    out, _ = capfd.readouterr()
    assert f"[{pid}] exited (3): sh -c exit 3" in out


def test_sweep_leaves_running_jobs_alone(poll_reaper, capfd):
    pid = launch_background(Command(["sleep", "5"]), poll_reaper)
    assert poll_reaper.sweep() == []
    assert pid in poll_reaper.jobs


def test_supervisor_mirrors_signal_death(poll_reaper, capfd):
    sup = launch_background(Command(["sleep", "5"]), poll_reaper)
    assert wait_until(lambda: psutil.Process(sup).children())
    os.kill(psutil.Process(sup).children()[0].pid, signal.SIGTERM)

    def done():
        poll_reaper.sweep()
        return not poll_reaper.jobs

    assert wait_until(done)
    assert poll_reaper.finished[-1] == ChildStatus(sup, SIGNALED, signal.SIGTERM)

    # only normal exits are announced
    poll_reaper.report()
    out, _ = capfd.readouterr()
    assert f"[{sup}] exited" not in out


def test_collect_uses_active_mode(poll_reaper, reaper, capfd):
    pid = launch_background(Command(["true"]), poll_reaper)
    assert wait_until(lambda: poll_reaper.collect() or not poll_reaper.jobs)
    assert pid not in poll_reaper.jobs

    child = _fork_exit(0)
    assert wait_until(lambda: child in zombie_children())
    assert [c.pid for c in reaper.collect()] == [child]


# ---------- jobs listing ----------

def test_show_jobs_empty(reaper, capsys):
    reaper.show_jobs()
    assert "No background jobs." in capsys.readouterr().out


def test_show_jobs_lists_live_state(reaper, capfd):
    pid = launch_background(Command(["sleep", "5"]), reaper)
    try:
        reaper.show_jobs()
        out, _ = capfd.readouterr()
        assert f"{pid:<8} sleep 5  [" in out
    finally:
        os.kill(pid, signal.SIGKILL)
        os.waitpid(pid, 0)
        reaper.jobs.pop(pid, None)


def test_show_jobs_while_jobs_finish(sigchld_reaper, capfd):
    # staggered exits land while the table is being listed
    for i in range(30):
        launch_background(Command(["sleep", f"{i * 0.005:.3f}"]), sigchld_reaper)

    for _ in range(30):
        sigchld_reaper.show_jobs()

    assert wait_until(lambda: not sigchld_reaper.jobs)
    assert zombie_children() == []
    sigchld_reaper.show_jobs()
    out, err = capfd.readouterr()
    assert out.rstrip().endswith("No background jobs.")
    assert "Traceback" not in err
