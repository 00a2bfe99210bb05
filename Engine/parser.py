BACKGROUND_TOKEN = "&"


class Command(tuple):
    """
    Immutable argument list: program name followed by its arguments.
    A new Command is built for every input line.
    """

    def __new__(cls, args):
        return super().__new__(cls, (str(a) for a in args))

    @property
    def program(self):
        return self[0] if self else None

    @property
    def args(self):
        return self[1:]

    def argv(self):
        """Fresh list for os.execvp"""
        return list(self)

    def __repr__(self):
        return f"Command({list(self)!r})"

    def __str__(self):
        return " ".join(self)


def parse_command(line):
    """
    Split a command line on whitespace.
    Everything from the first '&' token on is dropped and marks the command
    as background.
    Returns: (command: Command or None, background: bool)
    """
    tokens = line.split()

    background = False
    if BACKGROUND_TOKEN in tokens:
        tokens = tokens[:tokens.index(BACKGROUND_TOKEN)]
        background = True

    if not tokens:
        return None, background

    return Command(tokens), background
