# fetcher.py
import logging
import os
import uuid
import zipfile
from email.message import Message
from pathlib import PurePosixPath
from typing import Optional

import httpx

from errors import FetchError
from settings import settings

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def build_client() -> httpx.Client:
    # Timeout(None) disables every httpx timeout; opt in via DOWNLOAD_TIMEOUT
    return httpx.Client(follow_redirects=True, timeout=httpx.Timeout(settings.download_timeout))


def _disposition_filename(header: str) -> str:
    """Pull ``filename`` out of a Content-Disposition value, or "" if absent/garbled."""
    if not header:
        return ""
    msg = Message()
    msg["content-disposition"] = header
    try:
        return msg.get_filename() or ""
    except ValueError:
        return ""


def resolve_filename(custom_name: str, content_disposition: str, url_path: str) -> str:
    """
    Pick the output name for a download:
    1) explicit custom name
    2) Content-Disposition filename
    3) last segment of the final URL path
    4) download_<uuid> when nothing usable is left
    The winner is cut down to its base name so it can only land in the target dir.
    """
    name = (custom_name or "").strip()
    if not name:
        name = _disposition_filename(content_disposition)
    if not name:
        name = PurePosixPath(url_path or "/").name

    name = PurePosixPath(name.replace("\\", "/")).name
    if name in ("", ".", "..", "/"):
        name = f"download_{uuid.uuid4()}"
    return name


def download_file(
    url: str,
    custom_name: str,
    dest_dir: str,
    client: Optional[httpx.Client] = None,
) -> str:
    """Stream ``url`` into ``dest_dir`` and return the absolute path written.

    A body that breaks off midway leaves the partial file on disk.
    """
    own_client = client is None
    if own_client:
        client = build_client()

    try:
        with client.stream("GET", url) as response:
            response.raise_for_status()
            filename = resolve_filename(
                custom_name,
                response.headers.get("content-disposition", ""),
                response.url.path,
            )
            os.makedirs(dest_dir, exist_ok=True)
            final_path = os.path.abspath(os.path.join(dest_dir, filename))
            logger.info("Downloading %s -> %s", url, final_path)

            written = 0
            try:
                with open(final_path, "wb") as out:
                    for chunk in response.iter_bytes(CHUNK_SIZE):
                        out.write(chunk)
                        written += len(chunk)
            except (httpx.HTTPError, OSError) as exc:
                raise FetchError(f"download of {url} interrupted after {written} bytes: {exc}") from exc
    except httpx.HTTPStatusError as exc:
        raise FetchError(f"GET {url} returned {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        raise FetchError(f"GET {url} failed: {exc}") from exc
    except OSError as exc:
        raise FetchError(f"cannot write download of {url}: {exc}") from exc
    finally:
        if own_client:
            client.close()

    logger.info("Downloaded %d bytes to %s", written, final_path)
    return final_path


def package_as_zip(source: str, dest_dir: str) -> str:
    """Wrap a single file into ``<stem>_<8 hex>.zip`` inside ``dest_dir``."""
    filename = os.path.basename(source)
    stem = os.path.splitext(filename)[0]
    os.makedirs(dest_dir, exist_ok=True)
    zip_path = os.path.join(dest_dir, f"{stem}_{uuid.uuid4().hex[:8]}.zip")
    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.write(source, arcname=filename)
    logger.info("Packaged %s into %s", source, zip_path)
    return zip_path
