# storage.py
"""Browse and delete files under the downloads root, outside the job system.

Nothing here locks against jobs writing into the same folder at the same time.
"""
import logging
import os
import posixpath
import shutil
from typing import Optional

from archive import sanitize_path
from settings import settings

logger = logging.getLogger(__name__)


def _normalize(relative: str) -> str:
    # "a/..", "./" and "/" all name the root itself
    relative = posixpath.normpath((relative or "").strip("/"))
    return "" if relative == "." else relative


def _resolve(relative: str, root: str) -> str:
    if not relative:
        return root
    return sanitize_path(root, relative)


def list_directory(relative_dir: str = "", root: Optional[str] = None) -> dict:
    root = os.path.abspath(root or settings.downloads_dir)
    relative_dir = _normalize(relative_dir)
    target = _resolve(relative_dir, root)
    if not os.path.isdir(target):
        raise FileNotFoundError(relative_dir)

    files = []
    if relative_dir:
        parent = posixpath.dirname(relative_dir)
        files.append({"name": "..", "type": "dir", "path": parent})

    with os.scandir(target) as entries:
        for entry in sorted(entries, key=lambda e: e.name):
            is_dir = entry.is_dir()
            # lstat: a dangling symlink still lists instead of failing the folder
            files.append({
                "name": entry.name,
                "size": 0 if is_dir else entry.stat(follow_symlinks=False).st_size,
                "type": "dir" if is_dir else "file",
                "path": f"{relative_dir}/{entry.name}" if relative_dir else entry.name,
            })
    return {"files": files, "current": relative_dir}


def delete_path(relative_path: str, root: Optional[str] = None) -> None:
    root = os.path.abspath(root or settings.downloads_dir)
    if not relative_path or not relative_path.strip("/"):
        raise ValueError("path required")
    target = sanitize_path(root, relative_path)
    if os.path.isdir(target) and not os.path.islink(target):
        shutil.rmtree(target)
    elif os.path.lexists(target):
        os.remove(target)
    else:
        raise FileNotFoundError(relative_path)
    logger.info("Deleted %s", target)
