"""Program loader: comma-separated integer text -> memory image."""

from __future__ import annotations

import logging
import re
from pathlib import Path

INT_RE = re.compile(r"[-+]?[0-9]+")


class LoadError(ValueError):
    """Raised when a program can't be read or parsed."""

    pass


def parse_program(text: str) -> list[int]:
    """Split `text` on commas and parse every token as a signed integer.

    Surrounding whitespace of each token is ignored, so a trailing newline
    is fine. Empty tokens are rejected.
    """
    program: list[int] = []
    for i, token in enumerate(text.split(",")):
        tok = token.strip()
        if not INT_RE.fullmatch(tok):
            err = f"Bad integer {tok!r} at index {i}"
            raise LoadError(err)
        try:
            program.append(int(tok))
        except ValueError as e:
            err = f"Bad integer at index {i}: {e}"
            raise LoadError(err) from e
    return program


def load_program(path: str | Path) -> list[int]:
    """Read a program file (UTF-8) and parse it."""
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        err = f"Can't read program {path}: {e}"
        raise LoadError(err) from e
    program = parse_program(text)
    logging.debug("Loaded program %s: %d words", p, len(program))
    return program
