"""Allow running prefctl as ``python -m prefctl``."""

from prefctl.cli.main import app

if __name__ == "__main__":
    app()
