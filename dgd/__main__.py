"""Entry point for ``python -m dgd``."""

from dgd.cli.commands import app

if __name__ == "__main__":
    app()
