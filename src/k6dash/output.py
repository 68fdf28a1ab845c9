"""Atomic file output for generated artifacts."""

from __future__ import annotations

import os
import tempfile
from contextlib import suppress
from pathlib import Path
from typing import Union

from .errors import OutputWriteError


def atomic_write_text(path: Union[str, Path], content: str) -> Path:
    """Write ``content`` to ``path`` via a temporary sibling file and rename.

    Parent directories are created. An existing file is replaced.

    Raises:
        OutputWriteError: If the directory or file cannot be written.
    """
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    except OSError as exc:
        raise OutputWriteError(f"Cannot write output file: {target}") from exc

    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            handle.write(content)
        os.chmod(temp_name, 0o644)
        os.replace(temp_name, target)
    except OSError as exc:
        with suppress(OSError):
            os.unlink(temp_name)
        raise OutputWriteError(f"Cannot write output file: {target}") from exc

    return target
