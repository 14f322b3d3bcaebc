"""`python -m dmbot` entrypoint."""

from __future__ import annotations

import anyio

from .cli import main

if __name__ == "__main__":
    anyio.run(main)
