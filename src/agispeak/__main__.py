"""Entry point for running agispeak as a module or AGI script."""

from .cli import app


def main() -> None:
    """Main entry point for the agispeak AGI application."""
    app()


if __name__ == "__main__":
    main()
