import signal
import sys
from contextlib import contextmanager

# Signals blocked while a line is being read
READ_MASK = {signal.SIGCHLD}

# Dispositions a forked child must not carry into exec
CHILD_RESET = (signal.SIGINT, signal.SIGCHLD, signal.SIGTERM, signal.SIGPIPE)


class ReadInterrupted(Exception):
    """Ctrl+C arrived while the shell was waiting for input"""


class SignalGate:
    """
    Owns the shell's signal handlers.

    SIGINT never kills the shell: outside a read it is ignored, during a
    read it aborts the read with ReadInterrupted. SIGCHLD is routed to the
    reaper (signal mode only) and held back while a line is being read.
    """

    def __init__(self):
        self.reading = False
        self._previous = {}

    def install(self, reaper=None):
        self._set(signal.SIGINT, self.handle_sigint)
        if reaper is not None and reaper.mode == "signal":
            self._set(signal.SIGCHLD, reaper.handle_sigchld)

    def uninstall(self):
        for signum, handler in self._previous.items():
            try:
                signal.signal(signum, handler)
            except (OSError, ValueError) as e:
                print(f"minishell: could not restore handler for {signum}: {e}", file=sys.stderr)
        self._previous.clear()

    def _set(self, signum, handler):
        try:
            previous = signal.signal(signum, handler)
        except (OSError, ValueError) as e:
            print(f"minishell: sigaction({signum}): {e}", file=sys.stderr)
            return
        self._previous.setdefault(signum, previous)

    def handle_sigint(self, signum, frame):
        # Ctrl+C tại prompt chỉ hủy dòng đang nhập, không thoát shell
        if self.reading:
            raise ReadInterrupted()

    @contextmanager
    def mask_during_read(self):
        """
        Hold SIGCHLD back while a line is read. The previous mask is
        restored whatever way the read ends.
        """
        masked = True
        try:
            old_mask = signal.pthread_sigmask(signal.SIG_BLOCK, READ_MASK)
        except OSError as e:
            print(f"minishell: sighold: {e}", file=sys.stderr)
            masked = False

        self.reading = True
        try:
            yield
        finally:
            self.reading = False
            if masked:
                try:
                    signal.pthread_sigmask(signal.SIG_SETMASK, old_mask)
                except OSError as e:
                    print(f"minishell: sigrelse: {e}", file=sys.stderr)


def reset_for_child():
    """Run in a forked child before exec."""
    for signum in CHILD_RESET:
        signal.signal(signum, signal.SIG_DFL)
    signal.pthread_sigmask(signal.SIG_SETMASK, ())
