import sys

from Engine.shell import main_loop


def main():
    return main_loop()


if __name__ == "__main__":
    sys.exit(main())
