"""Directory scanning utilities for sync operations."""

import logging
import os
import stat
from collections.abc import Iterable
from pathlib import Path
from typing import Optional

from ..exceptions import ScanError
from ..utils import normalize_extension

logger = logging.getLogger(__name__)


class DirectoryScanner:
    """Recursively collects files whose extension is in an accepted set.

    Extensions are compared case-sensitively against the part of the file
    name after the last dot, so ``{"py"}`` accepts ``a.py`` but neither
    ``a.PY`` nor ``a.pyc``.

    Examples:
        >>> scanner = DirectoryScanner(["py", "md"])
        >>> files = scanner.scan(["/home/user/project"])
        >>> # set of absolute paths to every .py and .md file
    """

    def __init__(self, extensions: Iterable[str], max_depth: Optional[int] = None):
        """Initialize directory scanner.

        Args:
            extensions: Accepted extensions (a leading dot is ignored)
            max_depth: Maximum directory depth below each root (None = unbounded)
        """
        self.extensions = frozenset(normalize_extension(ext) for ext in extensions)
        self.max_depth = max_depth

    def matches(self, path: Path) -> bool:
        """Check whether a file name carries an accepted extension."""
        suffix = path.suffix
        if not suffix:
            return False
        return suffix[1:] in self.extensions

    def scan(self, roots: Iterable[str]) -> set[str]:
        """Scan all roots and return the matching file paths.

        Roots that do not exist or are not directories are skipped. Paths
        are canonical (absolute, symlinks resolved) so that the same file
        always maps to the same key.

        Args:
            roots: Root directories to scan

        Returns:
            Set of canonical file paths

        Raises:
            ScanError: If a root cannot be accessed or a directory cannot be
                listed
        """
        found: set[str] = set()
        for root in roots:
            root_path = Path(root).expanduser()
            try:
                mode = root_path.stat().st_mode
            except (FileNotFoundError, NotADirectoryError):
                logger.debug(f"Skipping missing root: {root_path}")
                continue
            except OSError as e:
                raise ScanError(
                    f"Cannot access root {root_path}: {e}", path=str(root_path)
                ) from e
            if not stat.S_ISDIR(mode):
                logger.debug(f"Skipping root that is not a directory: {root_path}")
                continue
            self._scan_directory(root_path, found, depth=0)
        logger.debug(f"Scan found {len(found)} matching file(s)")
        return found

    def _scan_directory(self, directory: Path, found: set[str], depth: int) -> None:
        try:
            entries = list(os.scandir(directory))
        except OSError as e:
            raise ScanError(
                f"Cannot read directory {directory}: {e}", path=str(directory)
            ) from e

        for entry in entries:
            path = Path(entry.path)
            try:
                is_dir = entry.is_dir()
                is_file = not is_dir and entry.is_file()
            except OSError as e:
                raise ScanError(f"Cannot stat {path}: {e}", path=str(path)) from e

            if is_dir:
                if self.max_depth is not None and depth >= self.max_depth:
                    logger.debug(f"Depth limit reached, not descending into {path}")
                    continue
                self._scan_directory(path, found, depth + 1)
            elif is_file and self.matches(path):
                found.add(os.path.realpath(path))
