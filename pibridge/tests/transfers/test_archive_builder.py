from __future__ import annotations

from pathlib import Path
import tempfile
import zipfile

import pytest

from core.errors import LocalIOError, RemoteProtocolError
from core.remote.session import RemoteSession
from core.transfers.archive_builder import ArchiveBuilder
from core.transfers.progress import ProgressTopic
from core.transfers.transfer_engine import TransferEngine


def _builder(progress, chunk_size: int = 4) -> ArchiveBuilder:
    return ArchiveBuilder(TransferEngine(progress, chunk_size=chunk_size), progress)


@pytest.mark.asyncio
async def test_archive_of_top_level_files(
    session: RemoteSession, fake_sftp, workspace_dir: str, downloads_dir: Path, progress
) -> None:
    local_dir = fake_sftp.local(workspace_dir)
    (local_dir / "a.txt").write_bytes(b"alpha")
    (local_dir / "b.csv").write_bytes(b"1,2,3\n4,5,6\n")
    (local_dir / "c.bin").write_bytes(b"")

    archive_path = await _builder(progress).build_zip(
        session, workspace_dir, ["a.txt", "b.csv", "c.bin"], downloads_dir
    )

    assert archive_path.parent == downloads_dir
    assert archive_path.name.startswith("pi-interface_")
    with zipfile.ZipFile(archive_path) as archive:
        infos = {info.filename: info.file_size for info in archive.infolist()}
        assert infos == {"a.txt": 5, "b.csv": 12, "c.bin": 0}
        assert archive.read("b.csv") == b"1,2,3\n4,5,6\n"


@pytest.mark.asyncio
async def test_archive_of_directory_mirrors_structure(
    session: RemoteSession, fake_sftp, workspace_dir: str, downloads_dir: Path, progress
) -> None:
    local_dir = fake_sftp.local(workspace_dir) / "photos"
    (local_dir / "2024" / "empty").mkdir(parents=True)
    (local_dir / "a.txt").write_bytes(b"top")
    (local_dir / "2024" / "b.jpg").write_bytes(b"jpegdata")

    archive_path = await _builder(progress).build_zip(session, workspace_dir, ["photos"], downloads_dir)

    with zipfile.ZipFile(archive_path) as archive:
        names = set(archive.namelist())
        assert "photos/a.txt" in names
        assert "photos/2024/b.jpg" in names
        assert "photos/2024/empty/" in names
        assert archive.read("photos/2024/b.jpg") == b"jpegdata"


@pytest.mark.asyncio
async def test_total_size_counts_nested_files(
    session: RemoteSession, fake_sftp, workspace_dir: str, downloads_dir: Path, progress
) -> None:
    local_dir = fake_sftp.local(workspace_dir)
    (local_dir / "docs" / "deep").mkdir(parents=True)
    (local_dir / "docs" / "one.md").write_bytes(b"12345")
    (local_dir / "docs" / "deep" / "two.md").write_bytes(b"1234567")
    (local_dir / "readme").write_bytes(b"xyz")

    await _builder(progress).build_zip(session, workspace_dir, ["docs", "readme"], downloads_dir)

    assert progress.values(ProgressTopic.TOTAL_SIZE) == [15]
    zip_progress = progress.values(ProgressTopic.ZIP_PROGRESS)
    assert zip_progress == sorted(zip_progress)
    assert zip_progress[-1] == 15


@pytest.mark.asyncio
async def test_plan_is_depth_first(session: RemoteSession, fake_sftp, workspace_dir: str, progress) -> None:
    local_dir = fake_sftp.local(workspace_dir) / "root"
    (local_dir / "a" / "inner").mkdir(parents=True)
    (local_dir / "b").mkdir()
    (local_dir / "a" / "inner" / "x.txt").write_bytes(b"x")
    (local_dir / "b" / "y.txt").write_bytes(b"y")

    plan = await _builder(progress).plan(session, workspace_dir, ["root"])

    assert [entry.archive_path for entry in plan.entries] == ["root/a/inner/x.txt", "root/b/y.txt"]
    assert plan.directories == ["root/", "root/a/", "root/b/", "root/a/inner/"]


@pytest.mark.asyncio
async def test_successive_archives_do_not_collide(
    session: RemoteSession, fake_sftp, workspace_dir: str, downloads_dir: Path, progress
) -> None:
    local_dir = fake_sftp.local(workspace_dir)
    (local_dir / "a.txt").write_bytes(b"a")
    (local_dir / "b.txt").write_bytes(b"b")
    builder = _builder(progress)

    first = await builder.build_zip(session, workspace_dir, ["a.txt", "b.txt"], downloads_dir)
    second = await builder.build_zip(session, workspace_dir, ["a.txt", "b.txt"], downloads_dir)

    assert first != second
    assert first.exists() and second.exists()


@pytest.mark.asyncio
async def test_staging_directory_removed_on_failure(
    session: RemoteSession, fake_sftp, workspace_dir: str, downloads_dir: Path, progress, monkeypatch, tmp_path: Path
) -> None:
    local_dir = fake_sftp.local(workspace_dir)
    (local_dir / "a.txt").write_bytes(b"a")
    (local_dir / "b.txt").write_bytes(b"b")
    fake_sftp.failing_opens.add(f"{workspace_dir}/b.txt")
    staging_parent = tmp_path / "staging"
    staging_parent.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(staging_parent))

    with pytest.raises(RemoteProtocolError):
        await _builder(progress).build_zip(session, workspace_dir, ["a.txt", "b.txt"], downloads_dir)

    assert list(staging_parent.iterdir()) == []
    assert list(downloads_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_archive_into_missing_downloads_dir(
    session: RemoteSession, fake_sftp, workspace_dir: str, tmp_path: Path, progress
) -> None:
    (fake_sftp.local(workspace_dir) / "a.txt").write_bytes(b"a")

    with pytest.raises(LocalIOError, match="Downloads directory"):
        await _builder(progress).build_zip(session, workspace_dir, ["a.txt"], tmp_path / "missing")
