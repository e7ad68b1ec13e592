# remux.py
import logging
import os
import subprocess
from typing import List, Optional

from archive import sanitize_path
from errors import RemuxError
from settings import settings

logger = logging.getLogger(__name__)

# keep error details readable in the job record
STDERR_TAIL = 600


def output_name(source_name: str, container: str, custom_output_name: str = "") -> str:
    """Name of the remuxed file; it always ends in ``.<container>``."""
    suffix = f".{container}"
    if custom_output_name:
        return custom_output_name if custom_output_name.endswith(suffix) else custom_output_name + suffix
    return os.path.splitext(source_name)[0] + suffix


def ffmpeg_command(source: str, output: str) -> List[str]:
    # -c copy: streams are copied as-is, the container comes from the output extension
    return [settings.ffmpeg_bin, "-y", "-i", source, "-c", "copy", output]


def remux_file(
    relative_source: str,
    container: str,
    custom_output_name: str = "",
    root: Optional[str] = None,
) -> str:
    """Copy a file's streams into a new container next to the source.

    Returns the output path relative to ``root``.
    """
    root = os.path.abspath(root or settings.downloads_dir)
    source = sanitize_path(root, relative_source)
    source_dir = os.path.dirname(source)

    name = os.path.basename(output_name(os.path.basename(source), container, custom_output_name))
    output = sanitize_path(source_dir, name)

    cmd = ffmpeg_command(source, output)
    logger.info("Remuxing %s -> %s", source, output)
    try:
        subprocess.run(cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    except FileNotFoundError as exc:
        raise RemuxError(f"ffmpeg error: {settings.ffmpeg_bin} not found") from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or b"").decode("utf-8", "replace").strip()
        raise RemuxError(f"ffmpeg error: exit status {exc.returncode}: {stderr[-STDERR_TAIL:]}") from exc

    return os.path.relpath(output, root).replace(os.sep, "/")
