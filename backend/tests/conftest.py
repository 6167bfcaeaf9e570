"""Shared fixtures: an isolated SQLite store and job runner per test."""
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import settings
from app.db.database import init_db
from app.services.project_service import JOB_HIGHLIGHT_REEL, JOB_SCRIPT_VIDEO, ProjectService
from app.services.project_store import SqlProjectStore
from app.workers.handlers import handle_highlight_reel, handle_script_video
from app.workers.job_runner import JobRunner


@pytest.fixture
def data_dirs(tmp_path, monkeypatch):
    """Point every data directory at the test's temp dir."""
    dirs = {
        "uploads_dir": tmp_path / "uploads",
        "outputs_dir": tmp_path / "outputs",
        "work_dir": tmp_path / "work",
    }
    for name, path in dirs.items():
        path.mkdir()
        monkeypatch.setattr(settings, name, path)
    return dirs


@pytest_asyncio.fixture
async def store(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(bind=engine)
    yield SqlProjectStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
    await engine.dispose()


@pytest_asyncio.fixture
async def runner(store):
    job_runner = JobRunner(store)
    job_runner.register_handler(JOB_HIGHLIGHT_REEL, handle_highlight_reel)
    job_runner.register_handler(JOB_SCRIPT_VIDEO, handle_script_video)
    yield job_runner
    await job_runner.shutdown()


@pytest.fixture
def service(store, runner, data_dirs):
    return ProjectService(store=store, runner=runner)


@pytest.fixture
def video_file(tmp_path):
    """A stand-in source video; the renderer is always faked in tests."""
    path = tmp_path / "talk.mp4"
    path.write_bytes(b"\x00" * 2048)
    return path
