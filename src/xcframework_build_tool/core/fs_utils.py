"""
Filesystem helpers shared by the build, merge and packaging steps
"""

import os
import shutil
import stat
import time
from pathlib import Path


def _make_writable_and_retry(func, path, exc_info):
    """rmtree error handler: clear read-only bits and retry once"""
    os.chmod(path, stat.S_IWRITE | stat.S_IREAD | stat.S_IEXEC)
    func(path)


def remove_path(path: Path, max_retries: int = 3) -> None:
    """
    Remove a file, symlink or directory tree if it exists

    Symlinks are removed themselves, never followed.

    Raises:
        OSError: If the path cannot be removed after all retries
    """
    path = Path(path)

    if path.is_symlink() or path.is_file():
        path.unlink()
        return

    if not path.exists():
        return

    for attempt in range(max_retries):
        try:
            shutil.rmtree(path, onerror=_make_writable_and_retry)
            return
        except OSError as e:
            if attempt < max_retries - 1:
                time.sleep(0.5)
            else:
                raise OSError(
                    f"Failed to remove {path} after {max_retries} attempts: {e}"
                ) from e


def replace_with_symlink(link: Path, destination: Path) -> Path:
    """Replace whatever is at link with a relative symlink to destination"""
    link = Path(link)
    remove_path(link)
    link.symlink_to(os.path.relpath(destination, link.parent))
    return link
