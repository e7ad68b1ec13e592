# main.py
# ------------------------------------------------------------------------------------
#  FastAPI service for the file jobs engine:
#  - POST   /api/download  -> fetch a remote file (optional auto-zip)
#  - POST   /api/remux     -> ffmpeg stream copy into another container
#  - POST   /api/extract   -> unpack zip / tar.gz / rar next to the archive
#  - GET    /api/job/{id}  -> poll status (pending|processing|completed|failed)
#  - GET    /api/files     -> list a folder under the downloads root
#  - DELETE /api/files     -> delete a file or folder under the downloads root
#  - GET    /raw/{path}    -> static serving of the downloads root
#  - GET    /debug/config  -> runtime env (hide in prod)
#  Jobs live in memory only and are gone after a restart.
# ------------------------------------------------------------------------------------

import logging
import os

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

import storage
from errors import PathTraversalError
from job_store import Job, job_store
from schemas import DownloadRequest, ExtractRequest, RemuxRequest, SubmitJobResponse
from settings import settings
from worker import JobRequest, submit_job

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

DOWNLOADS_DIR = os.path.abspath(settings.downloads_dir)
os.makedirs(DOWNLOADS_DIR, exist_ok=True)
logger.info("Serving %s under %s", DOWNLOADS_DIR, settings.raw_prefix)

# ------------- FastAPI app --------------
app = FastAPI(title="File Jobs API", version="0.1.0")

# In prod, tighten this list to your domains
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount(settings.raw_prefix, StaticFiles(directory=DOWNLOADS_DIR), name="raw")

# ---------- Health ----------
@app.get("/health")
def health():
    return {"ok": True, "downloads_dir": DOWNLOADS_DIR}

# ---------- Jobs ----------
def _submit(payload: JobRequest) -> SubmitJobResponse:
    job_id = submit_job(payload, store=job_store, root=DOWNLOADS_DIR)
    return SubmitJobResponse(job_id=job_id)

@app.post("/api/download", status_code=202, response_model=SubmitJobResponse)
def create_download(payload: DownloadRequest):
    return _submit(payload)

@app.post("/api/remux", status_code=202, response_model=SubmitJobResponse)
def create_remux(payload: RemuxRequest):
    return _submit(payload)

@app.post("/api/extract", status_code=202, response_model=SubmitJobResponse)
def create_extract(payload: ExtractRequest):
    return _submit(payload)

@app.get("/api/job/{job_id}", response_model=Job, response_model_exclude_none=True)
def get_job(job_id: str):
    job = job_store.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="job not found")
    return job

# ---------- Files ----------
@app.get("/api/files")
def list_files(dir: str = Query("", description="Folder relative to the downloads root")):
    try:
        return storage.list_directory(dir, root=DOWNLOADS_DIR)
    except PathTraversalError:
        raise HTTPException(status_code=400, detail="invalid directory")
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="directory not found")

@app.delete("/api/files")
def delete_file(path: str = Query("", description="File or folder relative to the downloads root")):
    try:
        storage.delete_path(path, root=DOWNLOADS_DIR)
    except (PathTraversalError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="file not found")
    return {"status": "deleted"}

# ---------- Index ----------
@app.get("/")
def index():
    return {"service": "file-jobs", "raw_prefix": settings.raw_prefix, "jobs_tracked": len(job_store)}

# ---------- Debug (hide in prod) ----------
if settings.debug:
    @app.get("/debug/config")
    def debug_config():
        return {
            "DOWNLOADS_DIR": DOWNLOADS_DIR,
            "RAW_PREFIX": settings.raw_prefix,
            "FFMPEG_BIN": settings.ffmpeg_bin,
            "UNRAR_BIN": settings.unrar_bin,
            "DOWNLOAD_TIMEOUT": settings.download_timeout,
            "LOG_LEVEL": settings.log_level,
        }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
