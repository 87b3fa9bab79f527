"""Module entrypoint for running Pagecast as ``python -m pagecast``."""

from __future__ import annotations

from pagecast.cli import main


if __name__ == "__main__":
    main()
