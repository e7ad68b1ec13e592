import os
import subprocess

import pytest

import remux
from errors import PathTraversalError, RemuxError
from remux import output_name, remux_file


@pytest.mark.parametrize("source, container, custom, expected", [
    ("video.mp4", "mkv", "", "video.mkv"),
    ("video.mp4", "mkv", "final", "final.mkv"),
    ("video.mp4", "mkv", "final.mkv", "final.mkv"),
    ("archive.tar.mp4", "mov", "", "archive.tar.mov"),
])
def test_output_name(source, container, custom, expected):
    assert output_name(source, container, custom) == expected


@pytest.fixture
def fake_ffmpeg(monkeypatch):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        with open(cmd[-1], "wb") as f:
            f.write(b"remuxed")
        return subprocess.CompletedProcess(cmd, 0, b"", b"")

    monkeypatch.setattr(remux.subprocess, "run", fake_run)
    return calls


def test_remux_writes_next_to_source(root, fake_ffmpeg):
    os.makedirs(os.path.join(root, "360p"))
    source = os.path.join(root, "360p", "video.mp4")
    with open(source, "wb") as f:
        f.write(b"src")

    result = remux_file("360p/video.mp4", "mkv", root=root)

    assert result == "360p/video.mkv"
    output = os.path.join(os.path.abspath(root), "360p", "video.mkv")
    assert os.path.isfile(output)
    cmd = fake_ffmpeg[0]
    assert cmd[cmd.index("-i") + 1] == os.path.abspath(source)
    assert cmd[cmd.index("-c") + 1] == "copy"
    assert "-y" in cmd


def test_custom_output_cannot_leave_source_dir(root, fake_ffmpeg):
    result = remux_file("video.mp4", "mkv", "../../outside", root=root)
    assert result == "outside.mkv"


def test_source_outside_root_is_rejected(root, fake_ffmpeg):
    with pytest.raises(PathTraversalError):
        remux_file("../secret.mp4", "mkv", root=root)
    assert fake_ffmpeg == []


def test_ffmpeg_failure_wraps_stderr(root, monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.CalledProcessError(1, cmd, b"", b"Invalid data found when processing input")

    monkeypatch.setattr(remux.subprocess, "run", fake_run)
    with pytest.raises(RemuxError) as exc_info:
        remux_file("video.mp4", "mkv", root=root)
    assert "ffmpeg error" in str(exc_info.value)
    assert "Invalid data found" in str(exc_info.value)


def test_missing_ffmpeg_raises_remux_error(root, monkeypatch):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(remux.subprocess, "run", fake_run)
    with pytest.raises(RemuxError, match="not found"):
        remux_file("video.mp4", "mkv", root=root)
