"""
Main entry point for the tutorloop CLI.

This module is executed when running `python -m tutorloop` or via the `tutorloop` executable.
"""

from .cli import app


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
