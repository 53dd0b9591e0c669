"""Entry point for `python -m coach_agent`."""

from coach_agent.cli.commands import app

if __name__ == "__main__":
    app()
