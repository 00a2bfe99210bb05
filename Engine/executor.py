import os
import sys
import time
from collections import namedtuple
from contextlib import nullcontext

from config import EXEC_FAILURE_STATUS
from Engine.job_control import classify_status
from Engine.signals import reset_for_child

CommandResult = namedtuple("CommandResult", ["program", "pid", "status", "elapsed"])


def _child_error(message):
    # The child's sys.stderr buffer belongs to the parent; write to fd 2 directly
    try:
        os.write(2, f"minishell: {message}\n".encode(errors="replace"))
    except OSError:
        pass


def flush_stdio():
    """Flush before fork so buffered output is not written twice."""
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (OSError, ValueError):
            pass


def exec_stage(alternatives, stdin=None, stdout=None, close_fds=()):
    """
    Child side of every fork: wire stdin/stdout, close every descriptor in
    close_fds, then exec the first alternative that can be executed.
    Never returns into shell code.
    """
    status = EXEC_FAILURE_STATUS
    try:
        reset_for_child()

        try:
            if stdin is not None:
                os.dup2(stdin, 0)
            if stdout is not None:
                os.dup2(stdout, 1)
        except OSError as e:
            _child_error(f"dup2: {e.strerror}")
            status = 1
            return

        for fd in close_fds:
            try:
                os.close(fd)
            except OSError as e:
                _child_error(f"close({fd}): {e.strerror}")

        error = None
        for command in alternatives:
            try:
                os.execvp(command.program, command.argv())
            except OSError as e:
                error = e

        if len(alternatives) == 1:
            _child_error(f"{alternatives[0].program}: {error.strerror}")
        elif alternatives:
            tried = "/".join(c.program for c in alternatives)
            _child_error(f"could not find {tried}")
    except BaseException as e:
        _child_error(f"exec: {e}")
    finally:
        os._exit(status)


def execute_command(command, background=False, reaper=None):
    """
    Run one external command.
    Foreground: wait for it and print the time it took.
    Returns: CommandResult, or None when nothing was waited on
    """
    if background:
        launch_background(command, reaper)
        return None

    flush_stdio()
    # held from fork to wait: the SIGCHLD handler must not reap this pid
    with reaping_held(reaper):
        try:
            pid = os.fork()
        except OSError as e:
            print(f"minishell: fork: {e}", file=sys.stderr)
            return None

        if pid == 0:
            exec_stage((command,))

        start = time.monotonic()
        try:
            status = os.waitpid(pid, 0)[1]
        except OSError as e:
            print(f"minishell: waitpid({pid}): {e}", file=sys.stderr)
            return None
        elapsed = time.monotonic() - start

    print(f"{command.program} exited, time used: {elapsed:f} s")
    return CommandResult(command.program, pid, classify_status(pid, status), elapsed)


def reaping_held(reaper):
    return nullcontext() if reaper is None else reaper.hold()


def launch_background(command, reaper):
    """
    Fork the command without waiting for it. Completion is picked up by
    the reaper: directly in signal mode, through a supervisor in poll mode.
    Returns: pid registered as the job, or None
    """
    flush_stdio()
    with reaper.hold():
        try:
            if reaper.mode == "poll":
                pid = os.fork()
                if pid == 0:
                    reaper.supervise(lambda: _spawn(command))
            else:
                pid = _spawn(command)
        except OSError as e:
            print(f"minishell: fork: {e}", file=sys.stderr)
            return None

        reaper.add_job(pid, str(command))
    return pid


def _spawn(command):
    pid = os.fork()
    if pid == 0:
        exec_stage((command,))
    return pid
