"""Encoder tests: the ffmpeg process is replaced by a fake, so no binary is needed."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from fakes import make_clip
from services.encoder import FFmpegEncoder
from services.errors import EncodingFailure
from services.manifest import build_manifest, with_media


class _FakeProcess:
    def __init__(self, returncode: int, stderr: bytes = b"", hang: bool = False) -> None:
        self.returncode: int | None = None if hang else returncode
        self._final = returncode
        self._stderr = stderr
        self._hang = hang
        self.killed = False

    async def communicate(self) -> tuple[bytes, bytes]:
        if self._hang:
            await asyncio.sleep(3600)
        return b"", self._stderr

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9

    async def wait(self) -> int:
        return self.returncode if self.returncode is not None else self._final


def _manifest(tmp_path: Path, count: int = 3):
    clips = [make_clip(-10000 * (i + 1)) for i in range(count)]
    paths = []
    for clip in clips:
        path = tmp_path / "clips" / f"clip_{clip.id}.mp4"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"clip")
        paths.append(path)
    return with_media(build_manifest(clips), paths)


def _install_fake_exec(
    monkeypatch: pytest.MonkeyPatch,
    process: _FakeProcess,
    *,
    write_output: bool,
) -> dict[str, Any]:
    seen: dict[str, Any] = {}

    async def fake_exec(*cmd: str, **kwargs: Any) -> _FakeProcess:
        seen["cmd"] = list(cmd)
        list_file = Path(cmd[cmd.index("-i") + 1])
        seen["list_text"] = list_file.read_text(encoding="utf-8")
        seen["list_file"] = list_file
        if write_output:
            Path(cmd[-1]).write_bytes(b"\x00" * 2048)
        return process

    monkeypatch.setattr("services.encoder.asyncio.create_subprocess_exec", fake_exec)
    return seen


def test_build_command_matches_encoding_parameters(tmp_path: Path) -> None:
    encoder = FFmpegEncoder(temp_dir=tmp_path)
    cmd = encoder.build_command(Path("/t/list.txt"), Path("/t/out.mp4"))
    assert cmd[0] == "ffmpeg"
    joined = " ".join(cmd)
    assert "-f concat -safe 0 -i /t/list.txt" in joined
    assert "-c:v libx264 -preset ultrafast -crf 28" in joined
    assert "-c:a aac -b:a 128k" in joined
    assert cmd[-2:] == ["-y", "/t/out.mp4"]


@pytest.mark.asyncio
async def test_encode_success_reports_size_and_manifest_duration(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manifest = _manifest(tmp_path)
    seen = _install_fake_exec(monkeypatch, _FakeProcess(0), write_output=True)
    encoder = FFmpegEncoder(temp_dir=tmp_path / "temp", ffmpeg_binary="/usr/bin/ffmpeg")
    output = tmp_path / "videos" / "c1_0min_1.mp4"

    result = await encoder.encode(manifest, output, job_name="c1_0min_1")

    assert result.output_path == output
    assert output.exists()
    assert result.size_bytes == 2048
    assert result.duration_seconds == 60
    assert seen["cmd"][0] == "/usr/bin/ffmpeg"
    assert seen["list_file"].name == "c1_0min_1_list.txt"
    lines = seen["list_text"].splitlines()
    assert lines[0] == f"file '{manifest.entries[0].media_path}'"
    assert lines[1] == "duration 20"
    assert len(lines) == 6
    assert not seen["list_file"].exists()
    assert list((tmp_path / "temp").iterdir()) == []


@pytest.mark.asyncio
async def test_encode_nonzero_exit_raises_and_cleans_up(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manifest = _manifest(tmp_path, count=2)
    seen = _install_fake_exec(
        monkeypatch, _FakeProcess(1, stderr=b"Invalid data found"), write_output=True
    )
    encoder = FFmpegEncoder(temp_dir=tmp_path / "temp")
    output = tmp_path / "videos" / "c1_0min_1.mp4"

    with pytest.raises(EncodingFailure) as excinfo:
        await encoder.encode(manifest, output, job_name="c1_0min_1")

    assert excinfo.value.exit_code == 1
    assert not output.exists()
    assert not seen["list_file"].exists()
    assert list((tmp_path / "temp").iterdir()) == []


@pytest.mark.asyncio
async def test_encode_timeout_kills_process(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manifest = _manifest(tmp_path, count=1)
    process = _FakeProcess(0, hang=True)
    seen = _install_fake_exec(monkeypatch, process, write_output=False)
    encoder = FFmpegEncoder(temp_dir=tmp_path / "temp", timeout_seconds=0.05)

    with pytest.raises(EncodingFailure) as excinfo:
        await encoder.encode(manifest, tmp_path / "videos" / "x.mp4", job_name="x")

    assert process.killed is True
    assert excinfo.value.exit_code == -9
    assert not seen["list_file"].exists()


@pytest.mark.asyncio
async def test_missing_binary_is_an_encoding_failure(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    async def missing(*cmd: str, **kwargs: Any) -> Any:
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr("services.encoder.asyncio.create_subprocess_exec", missing)
    encoder = FFmpegEncoder(temp_dir=tmp_path / "temp", ffmpeg_binary="no-such-ffmpeg")

    with pytest.raises(EncodingFailure) as excinfo:
        await encoder.encode(_manifest(tmp_path, count=1), tmp_path / "out.mp4", job_name="job")

    assert excinfo.value.exit_code is None
    assert list((tmp_path / "temp").iterdir()) == []


@pytest.mark.asyncio
async def test_unresolved_manifest_is_rejected(tmp_path: Path) -> None:
    encoder = FFmpegEncoder(temp_dir=tmp_path)
    with pytest.raises(ValueError):
        await encoder.encode(build_manifest([make_clip(-1000)]), tmp_path / "out.mp4", job_name="job")
