# worker.py
"""Job dispatch and the per-job execution unit.

Every submission starts its own unit of work straight away: there is no
queue and no cap on concurrent jobs, and nothing joins or cancels a job
once it is running.
"""
import logging
import os
import threading
import uuid
from typing import Callable, Dict, Optional, Union

import archive
import fetcher
import remux
from job_store import Job, JobStatus, JobStore, job_store
from schemas import DownloadRequest, ExtractRequest, RemuxRequest
from settings import settings

logger = logging.getLogger(__name__)

JobRequest = Union[DownloadRequest, RemuxRequest, ExtractRequest]
Progress = Callable[[str], None]


def public_url(relative_path: str) -> str:
    prefix = settings.raw_prefix.rstrip("/")
    return f"{prefix}/{relative_path.replace(os.sep, '/').lstrip('/')}"


def _relative(path: str, root: str) -> str:
    return os.path.relpath(path, root).replace(os.sep, "/")


# ---------- Per-type handlers: return the artifact path relative to root ----------

def _run_download(req: DownloadRequest, root: str, progress: Progress) -> str:
    path = fetcher.download_file(req.url, req.custom_name, root)
    result = path
    if req.auto_zip:
        progress("Zipping...")
        try:
            result = fetcher.package_as_zip(path, root)
        except (OSError, ValueError) as exc:
            # the raw download is still a usable artifact
            logger.warning("Auto-zip of %s failed, publishing raw file: %s", path, exc)
    return _relative(result, root)


def _run_remux(req: RemuxRequest, root: str, progress: Progress) -> str:
    return remux.remux_file(req.filename, req.container, req.custom_out, root=root)


def _run_extract(req: ExtractRequest, root: str, progress: Progress) -> str:
    source = archive.sanitize_path(root, req.filename)
    dest = archive.extraction_target(source)
    progress("Extracting...")
    archive.extract(source, dest)
    return _relative(dest, root)


_HANDLERS: Dict[type, Callable[..., str]] = {
    DownloadRequest: _run_download,
    RemuxRequest: _run_remux,
    ExtractRequest: _run_extract,
}


def process_job(
    job_id: str,
    request: JobRequest,
    store: JobStore = job_store,
    root: Optional[str] = None,
) -> None:
    """Run one job to a terminal state. Never raises."""
    root = os.path.abspath(root or settings.downloads_dir)

    def progress(message: str) -> None:
        store.update(job_id, JobStatus.PROCESSING, message)

    try:
        progress("Starting...")
        logger.info("Job %s (%s) started", job_id, request.job_type.value)
        handler = _HANDLERS[type(request)]
        relative = handler(request, root, progress)
    except Exception as exc:
        logger.exception("Job %s failed", job_id)
        store.update(job_id, JobStatus.FAILED, str(exc) or type(exc).__name__)
        return

    location = public_url(relative)
    store.update(job_id, JobStatus.COMPLETED, "Done", location)
    logger.info("Job %s completed: %s", job_id, location)


def submit_job(
    request: JobRequest,
    store: JobStore = job_store,
    root: Optional[str] = None,
) -> str:
    """Register a pending job, start it on its own thread, and hand back its id without waiting."""
    job_id = str(uuid.uuid4())
    store.create(Job(id=job_id, type=request.job_type))

    # one dedicated thread per job, never a shared pool
    threading.Thread(
        target=process_job,
        args=(job_id, request, store, root),
        name=f"job-{job_id[:8]}",
        daemon=True,
    ).start()

    logger.info("Job %s (%s) submitted", job_id, request.job_type.value)
    return job_id
