"""Entry point for ``python -m solmatch``."""

from .cli import main

if __name__ == "__main__":  # pragma: no cover - script entry point
    raise SystemExit(main())
