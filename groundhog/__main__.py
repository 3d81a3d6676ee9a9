"""Entry point for ``python -m groundhog``."""

from __future__ import annotations

from groundhog.cli.main import main

if __name__ == "__main__":
    main()
