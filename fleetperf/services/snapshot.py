"""Persist the collected perf report as a JSON snapshot."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from ..config.models import SnapshotConfig
from ..errors import PersistenceFailure
from ..utils.metrics import HostReport


class SnapshotWriter:
    """
    Write a HostReport to disk as a single JSON document.

    The document is written to a temporary file next to the destination
    and renamed into place. A failed write leaves any previous snapshot
    untouched.
    """

    def __init__(self, config: SnapshotConfig, logger: logging.Logger = None):
        """
        Initialize snapshot writer.

        Args:
            config: Snapshot configuration
            logger: Optional logger instance
        """
        self.config = config
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

    def default_path(self) -> Path:
        if not (self.config.path or self.config.log_dated_dir):
            raise PersistenceFailure("No snapshot path or log_dated_dir configured")
        return self.config.resolve_path()

    def save(self, report: HostReport, path: Optional[Union[str, Path]] = None) -> Path:
        """
        Save the report.

        Args:
            report: Parsed reports keyed by hostname
            path: Destination file, defaults to the configured path

        Returns:
            Path: File written

        Raises:
            PersistenceFailure: If the snapshot cannot be written
        """
        target = Path(path) if path is not None else self.default_path()

        if not target.parent.is_dir():
            raise PersistenceFailure(f"Snapshot directory does not exist: {target.parent}")

        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent)
            )
            with os.fdopen(fd, "w") as f:
                json.dump(report, f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, target)

        except (OSError, TypeError, ValueError) as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceFailure(f"Failed to save perf data to {target}: {e}") from e

        self.logger.info(f"Saved perf data to {target}")
        return target

    @staticmethod
    def load(path: Union[str, Path]) -> HostReport:
        """
        Read a snapshot back.

        Args:
            path: Snapshot file

        Returns:
            HostReport: Reports keyed by hostname
        """
        with open(path, "r") as f:
            return json.load(f)
