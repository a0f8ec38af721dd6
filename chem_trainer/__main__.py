from __future__ import annotations

from .app import run


def main() -> int:
    """Launch the trainer (``python -m chem_trainer`` or the ``chem-trainer`` script)."""
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
