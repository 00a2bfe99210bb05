import sys

from config import PROMPT
from Engine.builtin import execute_builtin, BUILTINS, EXIT
from Engine.executor import execute_command
from Engine.job_control import Reaper, exit_code_of
from Engine.parser import parse_command
from Engine.process_group import init_process_group, broadcast_shutdown
from Engine.signals import SignalGate, ReadInterrupted

# Global state
last_status = 0


def prompt():
    """Generate shell prompt"""
    return PROMPT


def read_line(gate):
    """
    Read one line with SIGCHLD held back.
    Raises EOFError at end of input, ReadInterrupted on Ctrl+C.
    """
    with gate.mask_during_read():
        return input(prompt())


def run_line(line, reaper):
    """
    Execute one input line.
    Returns: False when the shell should exit, True otherwise
    """
    global last_status

    command, background = parse_command(line)
    if command is None:
        return True

    if background and command.program in BUILTINS:
        # built-ins always run inside the shell, in the foreground
        print(f"minishell: {command.program}: '&' ignored for built-in commands", file=sys.stderr)

    if command.program == EXIT:
        return False

    executed, exit_code = execute_builtin(command, reaper)
    if executed:
        last_status = exit_code
        return True

    result = execute_command(command, background, reaper)
    if result is not None:
        last_status = exit_code_of(result.status)
    return True


def main_loop(reaper=None):
    """Main shell loop. Returns the shell's exit status."""
    pgid = init_process_group()

    reaper = reaper or Reaper()
    gate = SignalGate()
    gate.install(reaper)

    try:
        while True:
            reaper.collect()
            reaper.report()

            try:
                line = read_line(gate)
            except EOFError:
                print()
                break
            except ReadInterrupted:
                print()
                continue

            if not run_line(line, reaper):
                break
    finally:
        gate.uninstall()
        sys.stdout.flush()
        status = broadcast_shutdown(pgid)

    return status
