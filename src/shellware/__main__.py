"""Shellware CLI entry point."""

from shellware.cli import app

if __name__ == "__main__":
    app()
