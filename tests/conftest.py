"""Shared fixtures. The downloads root is pointed at a scratch folder before
any application module reads its settings."""

import io
import os
import shutil
import tarfile
import tempfile
import time
import zipfile

import pytest

os.environ.setdefault("DOWNLOADS_DIR", tempfile.mkdtemp(prefix="filejobs-"))

from job_store import TERMINAL, JobStore  # noqa: E402


@pytest.fixture
def store():
    return JobStore()


@pytest.fixture
def root(tmp_path):
    path = tmp_path / "downloads"
    path.mkdir()
    return str(path)


def make_zip(path, entries):
    """entries: list of (name, bytes or None for a directory)."""
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in entries:
            if data is None:
                zf.writestr(zipfile.ZipInfo(name if name.endswith("/") else name + "/"), b"")
            else:
                zf.writestr(name, data)
    return str(path)


def make_tar_gz(path, entries):
    """entries: list of (name, bytes) for files, (name, None) for dirs, or a ready TarInfo."""
    with tarfile.open(path, "w:gz") as tf:
        for entry in entries:
            if isinstance(entry, tarfile.TarInfo):
                tf.addfile(entry)
                continue
            name, data = entry
            info = tarfile.TarInfo(name)
            if data is None:
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                tf.addfile(info)
            else:
                info.size = len(data)
                tf.addfile(info, io.BytesIO(data))
    return str(path)


def wait_for_terminal(store, job_id, timeout=10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        job = store.get(job_id)
        if job and job.status in TERMINAL:
            return job
        time.sleep(0.01)
    raise AssertionError(f"job {job_id} did not finish: {store.get(job_id)}")


@pytest.fixture
def downloads_root():
    """The root the FastAPI app serves; emptied after each test."""
    import main

    yield main.DOWNLOADS_DIR
    for name in os.listdir(main.DOWNLOADS_DIR):
        target = os.path.join(main.DOWNLOADS_DIR, name)
        if os.path.isdir(target):
            shutil.rmtree(target)
        else:
            os.remove(target)
