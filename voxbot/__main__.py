"""Entry point for ``python -m voxbot``."""

from voxbot.cli.commands import app

if __name__ == "__main__":
    app()
