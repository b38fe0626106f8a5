"""
File persistence — atomic text writes.

Writes go to a temp file in the target directory and are renamed into
place, so a crash mid-write never leaves a truncated file behind.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` via write-to-temp-then-rename.

    Creates the parent directory if needed.  Raises OSError on failure;
    the previous file (if any) is left untouched.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}_",
        suffix=".tmp",
    )
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp.replace(path)
        logger.debug("Wrote %s", path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise
