import os
import sys

PROMPT = os.getenv("MINISHELL_PROMPT", "$ ")

# "signal": SIGCHLD handler reaps background jobs
# "poll":   one supervisor process per background job polls its child
REAPER_MODES = ("signal", "poll")
REAPER_MODE = os.getenv("MINISHELL_REAPER", "signal").strip().lower()
if REAPER_MODE not in REAPER_MODES:
    print(f"Warning: unknown MINISHELL_REAPER '{REAPER_MODE}', using 'signal'", file=sys.stderr)
    REAPER_MODE = "signal"

try:
    POLL_INTERVAL = float(os.getenv("MINISHELL_POLL_INTERVAL", "0.05"))
except ValueError:
    print("Warning: MINISHELL_POLL_INTERVAL is not a number, using 0.05", file=sys.stderr)
    POLL_INTERVAL = 0.05

PAGER_ENV = "PAGER"
DEFAULT_PAGERS = ("less", "more")

# Exit status of a forked child whose exec failed
EXEC_FAILURE_STATUS = 127
