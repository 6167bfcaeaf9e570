"""Tests for project submission, run control, polling and asset retrieval."""
import asyncio
import io
import math
from pathlib import Path

import pytest

from app.models.project import ProjectStatus, SourceType
from app.services.errors import ConflictError, InputError, NotFoundError, NotReadyError
from app.services.project_store import SqlProjectStore
from app.utils.ffmpeg import ScriptStyle


class TestSubmission:

    @pytest.mark.asyncio
    async def test_submit_file_starts_idle(self, service, video_file):
        project = await service.submit_file(str(video_file))

        assert project.status == ProjectStatus.IDLE
        assert project.progress == 0
        assert project.source_type == SourceType.FILE
        assert project.name == "talk"
        assert project.output_path is None

        stored = await service.get_project(project.id)
        assert stored.source_path == str(video_file.absolute())

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, service, video_file):
        first = await service.submit_file(str(video_file))
        second = await service.submit_file(str(video_file))
        assert first.id != second.id

    @pytest.mark.asyncio
    async def test_submit_file_missing(self, service, tmp_path):
        with pytest.raises(InputError):
            await service.submit_file(str(tmp_path / "missing.mp4"))

    @pytest.mark.asyncio
    async def test_submit_file_keeps_transcript(self, service, video_file):
        project = await service.submit_file(
            str(video_file),
            transcript=[{"start": 1, "end": 2, "text": "hi"}, {"start": 5, "end": 4, "text": "bad"}],
        )
        stored = await service.get_project(project.id)
        assert stored.source_transcript == [{"start": 1.0, "end": 2.0, "text": "hi"}]

    @pytest.mark.asyncio
    async def test_submit_file_unusable_transcript(self, service, video_file):
        with pytest.raises(InputError):
            await service.submit_file(str(video_file), transcript=[{"start": 3, "end": 1}])

    @pytest.mark.asyncio
    async def test_submit_upload(self, service, data_dirs):
        project = await service.submit_upload(io.BytesIO(b"\x00" * 100), "My Clip.mov")

        assert project.name == "My Clip"
        path = Path(project.source_path)
        assert path.parent == data_dirs["uploads_dir"]
        assert path.suffix == ".mov"
        assert path.read_bytes() == b"\x00" * 100

    @pytest.mark.asyncio
    async def test_submit_upload_bad_transcript_removes_file(self, service, data_dirs):
        with pytest.raises(InputError):
            await service.submit_upload(io.BytesIO(b"data"), "clip.mp4", transcript=[{"start": 2, "end": 2}])
        assert list(data_dirs["uploads_dir"].iterdir()) == []

    @pytest.mark.asyncio
    async def test_submit_remote(self, service):
        project = await service.submit_remote("  https://www.youtube.com/watch?v=abc  ")
        assert project.source_type == SourceType.REMOTE
        assert project.remote_ref == "https://www.youtube.com/watch?v=abc"
        assert project.source_path is None

    @pytest.mark.asyncio
    async def test_submit_remote_invalid(self, service):
        with pytest.raises(InputError):
            await service.submit_remote("not-a-url")

    @pytest.mark.asyncio
    async def test_submit_script(self, service):
        project = await service.submit_script("one\n\ntwo", per_line_sec=3.0)
        assert project.source_type == SourceType.SCRIPT
        assert project.meta["per_line_sec"] == 3.0
        assert project.meta["line_count"] == 2
        assert project.meta["style"]["font_size"] == 60

    @pytest.mark.asyncio
    async def test_submit_empty_script(self, service):
        with pytest.raises(InputError):
            await service.submit_script("   \n  ")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("per_line_sec", [math.inf, math.nan, 0.1, 120.0])
    async def test_submit_script_bad_timing(self, service, per_line_sec):
        with pytest.raises(InputError):
            await service.submit_script("hello", per_line_sec=per_line_sec)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("style", [
        ScriptStyle(text_color="white[x];movie=/etc/passwd[y];[x]null"),
        ScriptStyle(bg_color="black:alpha=0"),
        ScriptStyle(font_size=-5),
    ])
    async def test_submit_script_bad_style(self, service, style):
        with pytest.raises(InputError):
            await service.submit_script("hello", style=style)


class TestRunControl:

    @pytest.mark.asyncio
    async def test_unknown_project(self, service):
        with pytest.raises(NotFoundError):
            await service.get_project("nope")
        with pytest.raises(NotFoundError):
            await service.start_run("nope")
        with pytest.raises(NotFoundError):
            await service.poll_status("nope")
        with pytest.raises(NotFoundError):
            await service.fetch_asset("nope")

    @pytest.mark.asyncio
    async def test_duplicate_start_rejected(self, service, runner, video_file):
        project = await service.submit_file(str(video_file))

        gate = asyncio.Event()

        async def slow(project_id, store, **kwargs):
            await gate.wait()

        runner.register_handler("highlight_reel", slow)

        await service.start_run(project.id)
        with pytest.raises(ConflictError):
            await service.start_run(project.id)

        gate.set()
        await runner.wait(project.id)

    @pytest.mark.asyncio
    async def test_finished_project_cannot_restart(self, service, store, video_file):
        project = await service.submit_file(str(video_file))
        project.status = ProjectStatus.ERROR
        await store.upsert(project)

        with pytest.raises(ConflictError):
            await service.start_run(project.id)


class TestPollingAndAssets:

    @pytest.mark.asyncio
    async def test_poll_idle(self, service, video_file):
        project = await service.submit_file(str(video_file))
        assert await service.poll_status(project.id) == {
            "progress": 0,
            "status": "idle",
            "done": False,
            "error": None,
        }

    @pytest.mark.asyncio
    async def test_asset_not_ready(self, service, video_file):
        project = await service.submit_file(str(video_file))
        with pytest.raises(NotReadyError):
            await service.fetch_asset(project.id)

    @pytest.mark.asyncio
    async def test_asset_of_done_project(self, service, store, video_file, data_dirs):
        project = await service.submit_file(str(video_file))
        output = data_dirs["outputs_dir"] / "reel.mp4"
        output.write_bytes(b"reel")
        project.status = ProjectStatus.DONE
        project.progress = 100
        project.output_path = str(output)
        await store.upsert(project)

        assert await service.fetch_asset(project.id) == output
        status = await service.poll_status(project.id)
        assert status["done"] is True
        assert status["progress"] == 100

    @pytest.mark.asyncio
    async def test_asset_file_missing(self, service, store, video_file, data_dirs):
        project = await service.submit_file(str(video_file))
        project.status = ProjectStatus.DONE
        project.output_path = str(data_dirs["outputs_dir"] / "gone.mp4")
        await store.upsert(project)

        with pytest.raises(NotReadyError):
            await service.fetch_asset(project.id)

    @pytest.mark.asyncio
    async def test_error_is_reported(self, service, store, video_file):
        project = await service.submit_file(str(video_file))
        project.status = ProjectStatus.ERROR
        project.error = "Download failed - check URL and try again"
        await store.upsert(project)

        status = await service.poll_status(project.id)
        assert status["status"] == "error"
        assert status["done"] is False
        assert status["error"] == "Download failed - check URL and try again"


class TestStore:

    @pytest.mark.asyncio
    async def test_missing_record(self, store: SqlProjectStore):
        assert await store.get("missing") is None
