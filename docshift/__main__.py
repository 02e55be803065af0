"""
Entry point for running docshift as a module.

Enables execution via:
    python -m docshift [command] [options]

This is equivalent to running the installed CLI:
    docshift [command] [options]
"""

from docshift.cli import app

if __name__ == "__main__":
    app()
