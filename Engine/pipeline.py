"""
Fixed-topology pipelines built on os.pipe / os.fork / os.dup2.

A pipeline is a list of Stage descriptors. Every pipe is allocated before
the first fork, so each child sees the same descriptor set and can close
all of it. A reader only sees end-of-stream once every write end of its
pipe is closed, in all children and in the shell.
"""
import os
import sys
from collections import namedtuple

from config import PAGER_ENV, DEFAULT_PAGERS
from Engine.executor import exec_stage, flush_stdio, reaping_held
from Engine.job_control import classify_status
from Engine.parser import Command

Stage = namedtuple("Stage", ["name", "alternatives"])


def stage(*args):
    """Stage with a single command"""
    command = Command(args)
    return Stage(command.program, (command,))


def pager_stage(environ=None):
    """$PAGER if set, then the default pagers, tried in that order."""
    environ = os.environ if environ is None else environ
    alternatives = []

    override = environ.get(PAGER_ENV, "").split()
    if override:
        alternatives.append(Command(override))
    for name in DEFAULT_PAGERS:
        alternatives.append(Command([name]))

    return Stage("pager", tuple(alternatives))


def checkenv_stages(args=(), environ=None):
    """
    printenv | sort | pager
    printenv | grep <args> | sort | pager   (when args are given)
    """
    stages = [stage("printenv")]
    if args:
        stages.append(stage("grep", *args))
    stages.append(stage("sort"))
    stages.append(pager_stage(environ))
    return stages


def _close_all(fds):
    for fd in fds:
        try:
            os.close(fd)
        except OSError as e:
            print(f"minishell: close({fd}): {e}", file=sys.stderr)


def open_pipes(count):
    """
    Returns: list of (read_fd, write_fd), or None if allocation failed
    (any pipes already made are closed again)
    """
    pipes = []
    for _ in range(count):
        try:
            pipes.append(os.pipe())
        except OSError as e:
            print(f"minishell: pipe: {e}", file=sys.stderr)
            _close_all(fd for pair in pipes for fd in pair)
            return None
    return pipes


def run_pipeline(stages, stdin=None, stdout=None, reaper=None):
    """
    Run stages connected by pipes and wait for all of them.

    stdin/stdout are descriptors for the first stage's input and the last
    stage's output; None means inherit from the shell.
    Returns: list of ChildStatus in stage order (None for a stage that
    could not be started), or None if the pipes could not be made
    """
    if not stages:
        return []

    pipes = open_pipes(len(stages) - 1)
    if pipes is None:
        return None
    pipe_fds = [fd for pair in pipes for fd in pair]

    flush_stdio()
    # held from the first fork to the last wait: stages are waited on by pid only
    with reaping_held(reaper):
        pids = []
        for idx, st in enumerate(stages):
            read_end = pipes[idx - 1][0] if idx > 0 else stdin
            write_end = pipes[idx][1] if idx < len(pipes) else stdout

            try:
                pid = os.fork()
            except OSError as e:
                print(f"minishell: fork ({st.name}): {e}", file=sys.stderr)
                pids.append(None)
                continue

            if pid == 0:
                exec_stage(st.alternatives, stdin=read_end, stdout=write_end, close_fds=pipe_fds)
            pids.append(pid)

        # the shell itself uses none of the pipes
        _close_all(pipe_fds)

        return _wait_all(pids)


def _wait_all(pids):
    statuses = []
    for pid in pids:
        if pid is None:
            statuses.append(None)
            continue
        try:
            wpid, status = os.waitpid(pid, 0)
        except OSError as e:
            print(f"minishell: wait: {e}", file=sys.stderr)
            statuses.append(None)
            continue
        statuses.append(classify_status(wpid, status))
    return statuses


def check_env(args=(), reaper=None):
    """Built-in checkEnv: show the environment through sort and a pager."""
    return run_pipeline(checkenv_stages(args), reaper=reaper)
