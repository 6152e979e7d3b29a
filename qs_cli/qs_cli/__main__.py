"""Entry point for `python -m qs_cli` and the `pgqs` console script."""

from __future__ import annotations

from qs_cli.app import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()
