"""Allow ``python -m versionsync``."""

from versionsync.cli.app import run


if __name__ == "__main__":
    run()
