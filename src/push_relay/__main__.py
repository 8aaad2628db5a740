"""Entry point for ``python -m push_relay``."""

from __future__ import annotations

from push_relay.app.cli import cli

__all__ = ["main"]


def main() -> None:
    """Run the push-relay command-line interface."""
    cli()


if __name__ == "__main__":
    main()
