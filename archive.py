# archive.py
"""Archive extraction with zip-slip protection.

Three formats are handled: zip and gzip'd tar in-process, rar through the
external ``unrar`` tool. Every in-process write target derived from an entry
name goes through ``sanitize_path`` before anything touches the disk.
Extraction is not atomic: entries written before a failure stay on disk.
"""
import logging
import os
import shutil
import subprocess
import tarfile
import zipfile
import zlib
from enum import Enum
from typing import Callable, Dict

from errors import ExtractionError, PathTraversalError, UnsupportedFormatError
from settings import settings

logger = logging.getLogger(__name__)

_COPY_ERRORS = (OSError, EOFError, RuntimeError, zlib.error, zipfile.BadZipFile, tarfile.TarError)


class ArchiveFormat(str, Enum):
    ZIP = "zip"
    TAR_GZ = "tar.gz"
    RAR = "rar"


def sanitize_path(root: str, relative: str) -> str:
    """Join ``relative`` onto ``root`` and refuse anything that lands outside it.

    The check is lexical: both sides are made absolute and normalized, and the
    result must sit strictly below the root. Absolute names are rejected
    because joining them discards the root.
    """
    base = os.path.normpath(os.path.abspath(root))
    target = os.path.normpath(os.path.join(base, relative))
    prefix = base if base.endswith(os.sep) else base + os.sep
    if not target.startswith(prefix):
        raise PathTraversalError(relative)
    return target


def classify_archive(filename: str) -> ArchiveFormat:
    name = filename.lower()
    ext = os.path.splitext(name)[1]
    if ext == ".zip":
        return ArchiveFormat.ZIP
    if ext == ".gz" or name.endswith(".tar.gz"):
        return ArchiveFormat.TAR_GZ
    if ext == ".rar":
        return ArchiveFormat.RAR
    raise UnsupportedFormatError(ext)


def extraction_target(source: str) -> str:
    """Folder an archive is unpacked into: the source path minus its extension(s)."""
    if source.lower().endswith(".tar.gz"):
        return source[: -len(".tar.gz")]
    return os.path.splitext(source)[0]


def _is_root_entry(name: str) -> bool:
    # "./" style entries name the destination itself
    return os.path.normpath(name) == "."


def _extract_zip(source: str, dest: str) -> None:
    try:
        archive = zipfile.ZipFile(source)
    except _COPY_ERRORS as exc:
        raise ExtractionError(f"cannot open zip {os.path.basename(source)}: {exc}") from exc

    with archive:
        for info in archive.infolist():
            if _is_root_entry(info.filename):
                continue
            target = sanitize_path(dest, info.filename)
            try:
                if info.is_dir():
                    os.makedirs(target, exist_ok=True)
                    continue
                os.makedirs(os.path.dirname(target), exist_ok=True)
                mode = (info.external_attr >> 16) & 0o777 or 0o644
                fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
                with os.fdopen(fd, "wb") as dst, archive.open(info) as src:
                    shutil.copyfileobj(src, dst)
            except _COPY_ERRORS as exc:
                raise ExtractionError(f"failed to extract {info.filename}: {exc}") from exc
            logger.debug("zip: wrote %s", target)


def _extract_tar_gz(source: str, dest: str) -> None:
    try:
        archive = tarfile.open(source, mode="r:gz")
    except _COPY_ERRORS as exc:
        raise ExtractionError(f"cannot open tar.gz {os.path.basename(source)}: {exc}") from exc

    with archive:
        try:
            for member in archive:
                if _is_root_entry(member.name):
                    continue
                target = sanitize_path(dest, member.name)
                if member.isdir():
                    os.makedirs(target, exist_ok=True)
                elif member.isreg():
                    os.makedirs(os.path.dirname(target), exist_ok=True)
                    src = archive.extractfile(member)
                    with src, open(target, "wb") as dst:
                        shutil.copyfileobj(src, dst)
                    logger.debug("tar: wrote %s", target)
                else:
                    logger.debug("tar: skipping %s (type %r)", member.name, member.type)
        except _COPY_ERRORS as exc:
            raise ExtractionError(f"failed to extract {os.path.basename(source)}: {exc}") from exc


def _extract_rar(source: str, dest: str) -> None:
    # No in-process sanitization here: entry safety is left to unrar itself.
    cmd = [settings.unrar_bin, "x", "-y", source, dest.rstrip(os.sep) + os.sep]
    try:
        subprocess.run(cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    except FileNotFoundError as exc:
        raise ExtractionError(f"{settings.unrar_bin} not found") from exc
    except subprocess.CalledProcessError as exc:
        raise ExtractionError(f"{settings.unrar_bin} exited with status {exc.returncode}") from exc


_EXTRACTORS: Dict[ArchiveFormat, Callable[[str, str], None]] = {
    ArchiveFormat.ZIP: _extract_zip,
    ArchiveFormat.TAR_GZ: _extract_tar_gz,
    ArchiveFormat.RAR: _extract_rar,
}


def extract(source: str, dest: str) -> None:
    """Unpack ``source`` into ``dest``, picking the algorithm from the extension."""
    fmt = classify_archive(source)
    try:
        os.makedirs(dest, exist_ok=True)
    except OSError as exc:
        raise ExtractionError(f"cannot create {dest}: {exc}") from exc
    logger.info("Extracting %s (%s) into %s", source, fmt.value, dest)
    _EXTRACTORS[fmt](source, dest)
