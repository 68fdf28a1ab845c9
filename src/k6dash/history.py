"""Per-run snapshots of the dashboard and its summary artifact."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import List, Union

from .config import DASHBOARD_FILE, SUMMARY_ARTIFACT
from .errors import OutputWriteError

logger = logging.getLogger(__name__)

LOCAL_RUN = "local"


def save_history(
    site_dir: Union[str, Path],
    history_dir: Union[str, Path],
    run_number: str = LOCAL_RUN,
) -> List[Path]:
    """Copy the dashboard and combined summary into ``<history_dir>/<run_number>/``.

    Files that do not exist yet are skipped. Returns the copied paths.

    Raises:
        OutputWriteError: If the snapshot directory cannot be written.
    """
    site = Path(site_dir)
    target = Path(history_dir) / (run_number or LOCAL_RUN)

    copied: List[Path] = []
    try:
        target.mkdir(parents=True, exist_ok=True)
        for source in (site / DASHBOARD_FILE, site / SUMMARY_ARTIFACT):
            if not source.is_file():
                logger.debug("Skipping missing history file", extra={"path": str(source)})
                continue
            destination = target / source.name
            shutil.copyfile(source, destination)
            copied.append(destination)
    except OSError as exc:
        raise OutputWriteError(f"Cannot write history snapshot to {target}: {exc}") from exc

    logger.info("Saved run history", extra={"path": str(target), "files": len(copied)})
    return copied
