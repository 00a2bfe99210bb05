import os
import sys

from Engine.pipeline import check_env

EXIT = "exit"
BUILTINS = ("cd", "pwd", "checkEnv", "jobs", "help", EXIT)


def builtin_help():
    """Print help message"""
    print("""MiniShell help:
 Built-in commands:
  cd [dir]            : change directory ($HOME by default)
  pwd                 : print working directory
  checkEnv [pattern]  : printenv [| grep pattern] | sort | $PAGER
  jobs                : show background jobs
  help                : print this help
  exit                : exit shell

Features:
  Background with & (run command in background)
  Elapsed time is printed after every foreground command
""")


def home_directory(environ=None):
    """$HOME, or None (reported) when it is not set."""
    environ = os.environ if environ is None else environ
    home = environ.get("HOME")
    if not home:
        print("cd: could not read HOME: not set", file=sys.stderr)
        return None
    return home


def builtin_cd(args, environ=None):
    """Change directory"""
    path = args[0] if args else home_directory(environ)
    if path is None:
        return 1
    try:
        os.chdir(path)
        return 0
    except OSError as e:
        print(f"cd: could not cd to '{path}': {e.strerror}", file=sys.stderr)
        return 1


def builtin_pwd():
    try:
        print(os.getcwd())
        return 0
    except OSError as e:
        print(f"pwd: could not get cwd: {e.strerror}", file=sys.stderr)
        return 1


def builtin_check_env(args, reaper=None):
    statuses = check_env(args, reaper=reaper)
    if not statuses or statuses[-1] is None:
        return 1
    return statuses[-1].value if statuses[-1].state == "exited" else 1


def builtin_jobs(reaper):
    """Background jobs and their live state"""
    if reaper is None:
        print("No background jobs.")
    else:
        reaper.show_jobs()
    return 0


def execute_builtin(command, reaper=None):
    """
    Execute built-in command if it matches.
    'exit' is reported as executed; the main loop leaves on it.
    Returns (executed: bool, exit_code: int)
    """
    cmd = command.program
    args = command.args

    builtins = {
        'pwd': lambda: builtin_pwd(),
        'help': lambda: builtin_help() or 0,
        'jobs': lambda: builtin_jobs(reaper),
        EXIT: lambda: 0,
    }

    if cmd == 'cd':
        return True, builtin_cd(args)
    elif cmd == 'checkEnv':
        return True, builtin_check_env(args, reaper)
    elif cmd in builtins:
        return True, builtins[cmd]()

    return False, 0
