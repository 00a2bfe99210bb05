import os
import signal
import sys


def init_process_group():
    """
    Put the shell in its own process group so every descendant can be
    signalled at once on exit.
    Returns: the shell's process group id
    """
    try:
        os.setpgid(0, 0)
    except OSError as e:
        # e.g. EPERM when the shell is already a session leader
        print(f"minishell: could not set process group: {e}", file=sys.stderr)
    return os.getpgrp()


def broadcast_shutdown(pgid, sig=signal.SIGTERM):
    """
    Send sig to the whole process group; stray background jobs get it too.
    The shell itself ignores it.
    Returns: 0 on success, 1 if the signal could not be delivered
    """
    try:
        signal.signal(sig, signal.SIG_IGN)
    except (OSError, ValueError) as e:
        print(f"Warning: could not ignore signal {sig}: {e}", file=sys.stderr)

    try:
        os.killpg(pgid, sig)
    except OSError as e:
        print(f"minishell: killpg({pgid}): {e}", file=sys.stderr)
        return 1
    return 0
