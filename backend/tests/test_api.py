"""HTTP-level tests for the project and script video endpoints."""
import json

import httpx
import pytest
import pytest_asyncio

from app.api.routes import get_project_service
from app.main import app
from app.models.project import ProjectStatus
from app.utils import ffmpeg


@pytest_asyncio.fixture
async def client(service):
    app.dependency_overrides[get_project_service] = lambda: service
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_local_project_lifecycle(client, service, store, video_file, data_dirs):
    response = await client.post("/api/projects/local", json={"file_path": str(video_file)})
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "idle"
    project_id = body["project_id"]

    response = await client.get(f"/api/projects/{project_id}/status")
    assert response.json() == {"progress": 0, "status": "idle", "done": False, "error": None}

    response = await client.get(f"/api/projects/{project_id}/export")
    assert response.status_code == 404
    assert response.json()["detail"] == "Asset not ready"

    # Finish the project by hand and download it
    project = await store.get(project_id)
    output = data_dirs["outputs_dir"] / "reel.mp4"
    output.write_bytes(b"reel-bytes")
    project.status = ProjectStatus.DONE
    project.progress = 100
    project.output_path = str(output)
    await store.upsert(project)

    response = await client.get(f"/api/projects/{project_id}/export")
    assert response.status_code == 200
    assert response.content == b"reel-bytes"
    assert response.headers["content-type"] == "video/mp4"

    response = await client.get(f"/api/projects/{project_id}")
    assert response.status_code == 200
    assert response.json()["status"] == "done"


@pytest.mark.asyncio
async def test_local_project_missing_file(client, tmp_path):
    response = await client.post("/api/projects/local", json={"file_path": str(tmp_path / "nope.mp4")})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_remote_project_invalid_url(client):
    response = await client.post("/api/projects/remote", json={"url": "nope"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_upload_with_transcript(client, service):
    transcript = json.dumps([{"start": 0, "end": 3, "text": "hello there"}])
    response = await client.post(
        "/api/projects/upload",
        files={"file": ("clip.mp4", b"\x00" * 64, "video/mp4")},
        data={"transcript": transcript},
    )
    assert response.status_code == 200
    project = await service.get_project(response.json()["project_id"])
    assert project.source_transcript == [{"start": 0.0, "end": 3.0, "text": "hello there"}]


@pytest.mark.asyncio
async def test_upload_with_invalid_transcript(client):
    response = await client.post(
        "/api/projects/upload",
        files={"file": ("clip.mp4", b"\x00" * 64, "video/mp4")},
        data={"transcript": json.dumps([{"start": 5, "end": 1}])},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_project(client):
    assert (await client.get("/api/projects/missing")).status_code == 404
    assert (await client.get("/api/projects/missing/status")).status_code == 404
    assert (await client.post("/api/projects/missing/process")).status_code == 404
    response = await client.get("/api/projects/missing/export")
    assert response.status_code == 404
    assert response.json()["detail"] == "Project not found"


@pytest.mark.asyncio
async def test_process_failed_project_conflicts(client, service, video_file):
    project = await service.submit_file(str(video_file))
    project.status = ProjectStatus.ERROR
    await service.store.upsert(project)

    response = await client.post(f"/api/projects/{project.id}/process")
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_script_video_endpoint(client, runner, store, monkeypatch):
    async def fake_render(lines, windows, total, style, output_path):
        output_path.write_bytes(b"video")
        return output_path

    monkeypatch.setattr(ffmpeg, "render_script_video", fake_render)

    response = await client.post(
        "/api/script-videos",
        data={"script": "one\ntwo\nthree", "per_line_sec": "2", "bg_color": "0x000000"},
    )
    assert response.status_code == 200
    project_id = response.json()["project_id"]

    await runner.wait(project_id)

    response = await client.get(f"/api/projects/{project_id}/status")
    assert response.json()["done"] is True
    assert response.json()["progress"] == 100

    project = await store.get(project_id)
    assert project.meta["style"]["bg_color"] == "0x000000"


@pytest.mark.asyncio
async def test_script_video_empty_script(client):
    response = await client.post("/api/script-videos", data={"script": "  \n  "})
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("fields", [
    {"per_line_sec": "inf"},
    {"per_line_sec": "nan"},
    {"text_color": "white[x];movie=/etc/passwd[y];[x]null"},
    {"bg_color": "black@0.5"},
    {"font_size": "-5"},
])
async def test_script_video_bad_options(client, data_dirs, fields):
    response = await client.post(
        "/api/script-videos",
        data={"script": "hello", **fields},
        files={"bgm": ("bgm.mp3", b"audio", "audio/mpeg")},
    )
    assert response.status_code == 400
    assert list(data_dirs["uploads_dir"].iterdir()) == []
