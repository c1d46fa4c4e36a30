"""Entry point for ``python -m async_function_queue``."""

from .cli import cli

if __name__ == "__main__":
    cli()
