"""Tests for attachment upload, download and removal."""
from uuid import uuid4

import pytest
from sqlalchemy import select

from taskflow.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from taskflow.models.comment import Activity
from taskflow.schemas.task import TaskCreate
from taskflow.services.attachment_service import IncomingFile
from taskflow.utils.files import format_file_size, get_file_icon, validate_file_size, validate_file_type
from tests.fakes import FakeConnection


def _file(name="brief.pdf", mime_type="application/pdf", data=b"%PDF-1.4 test"):
    return IncomingFile(original_name=name, mime_type=mime_type, data=data)


async def _activity_contents(db, task_id):
    result = await db.execute(
        select(Activity.content).where(Activity.task_id == task_id).order_by(Activity.created_at)
    )
    return list(result.scalars().all())


def test_file_helpers():
    assert validate_file_type("report.pdf", "application/pdf") is None
    assert validate_file_type("setup.exe", "application/pdf") == "File type .exe is not allowed"
    assert validate_file_type("movie.mp4", "video/mp4") == "File type video/mp4 is not allowed"
    assert validate_file_size(10, max_size=5) == "File size exceeds 5 Bytes limit"
    assert validate_file_size(5, max_size=5) is None
    assert format_file_size(0) == "0 Bytes"
    assert format_file_size(1536) == "1.5 KB"
    assert format_file_size(10 * 1024 * 1024) == "10 MB"
    assert get_file_icon("image/png") == "image"
    assert get_file_icon("text/csv") == "spreadsheet"
    assert get_file_icon(None) == "file"


@pytest.mark.asyncio
async def test_upload_list_and_download(db_session, services, alice, bob):
    task = await services.tasks.create_task(db_session, TaskCreate(title="Docs", assigned_to=bob.id), alice.id)
    watcher = FakeConnection()
    services.connections.subscribe(services.connections.task_channel(task.id), watcher)

    uploaded = await services.attachments.upload(
        db_session,
        task.id,
        bob.id,
        [_file(), _file("notes.txt", "text/plain", b"hello")],
    )
    await services.connections.drain()

    assert uploaded.message == "2 file(s) uploaded successfully"
    assert [a.original_name for a in uploaded.attachments] == ["brief.pdf", "notes.txt"]
    assert uploaded.attachments[0].file_name.endswith(".pdf")
    assert uploaded.attachments[1].icon == "text"
    assert uploaded.attachments[1].formatted_size == "5 Bytes"
    assert watcher.events() == ["attachments:uploaded"]
    assert (await _activity_contents(db_session, task.id))[-1] == "uploaded 2 file(s): brief.pdf, notes.txt"

    listing = await services.attachments.list_attachments(db_session, task.id, alice.id)
    assert listing.pagination.total == 2
    assert listing.total_size == len(b"%PDF-1.4 test") + len(b"hello")

    note_id = uploaded.attachments[1].id
    row, url, data = await services.attachments.download(db_session, task.id, note_id, alice.id)
    assert url is None
    assert data == b"hello"
    assert row.original_name == "notes.txt"

    recent = await services.attachments.recent_for_user(db_session, bob.id)
    assert len(recent.attachments) == 2
    assert (await services.attachments.recent_for_user(db_session, alice.id)).attachments == []


@pytest.mark.asyncio
async def test_upload_validation(db_session, services, alice, carol):
    task = await services.tasks.create_task(db_session, TaskCreate(title="Docs"), alice.id)

    with pytest.raises(ValidationError):
        await services.attachments.upload(db_session, task.id, alice.id, [])
    with pytest.raises(ValidationError):
        await services.attachments.upload(db_session, task.id, alice.id, [_file(f"f{i}.pdf") for i in range(6)])
    with pytest.raises(ValidationError):
        await services.attachments.upload(db_session, task.id, alice.id, [_file("run.exe")])
    with pytest.raises(ValidationError):
        await services.attachments.upload(db_session, task.id, alice.id, [_file("clip.mp4", "video/mp4")])
    with pytest.raises(ForbiddenError):
        await services.attachments.upload(db_session, task.id, carol.id, [_file()])
    with pytest.raises(NotFoundError):
        await services.attachments.upload(db_session, uuid4(), alice.id, [_file()])

    listing = await services.attachments.list_attachments(db_session, task.id, alice.id)
    assert listing.attachments == []
    assert listing.formatted_total_size == "0 Bytes"


@pytest.mark.asyncio
async def test_delete_by_uploader_or_task_creator(db_session, services, alice, bob):
    task = await services.tasks.create_task(db_session, TaskCreate(title="Docs", assigned_to=bob.id), alice.id)
    mine = await services.attachments.upload(db_session, task.id, alice.id, [_file("alice.pdf")])
    theirs = await services.attachments.upload(db_session, task.id, bob.id, [_file("bob.pdf")])
    alice_file = mine.attachments[0]
    bob_file = theirs.attachments[0]

    with pytest.raises(ForbiddenError):
        await services.attachments.delete(db_session, task.id, alice_file.id, bob.id)

    await services.attachments.delete(db_session, task.id, bob_file.id, alice.id)

    assert not services.storage.exists(bob_file.file_name)
    assert services.storage.exists(alice_file.file_name)
    assert (await _activity_contents(db_session, task.id))[-1] == "deleted file: bob.pdf"
    with pytest.raises(NotFoundError):
        await services.attachments.download(db_session, task.id, bob_file.id, alice.id)


@pytest.mark.asyncio
async def test_attachment_must_belong_to_task(db_session, services, alice):
    first = await services.tasks.create_task(db_session, TaskCreate(title="One"), alice.id)
    second = await services.tasks.create_task(db_session, TaskCreate(title="Two"), alice.id)
    uploaded = await services.attachments.upload(db_session, first.id, alice.id, [_file()])

    with pytest.raises(ForbiddenError):
        await services.attachments.download(db_session, second.id, uploaded.attachments[0].id, alice.id)


@pytest.mark.asyncio
async def test_missing_blob_is_reported(db_session, services, alice):
    task = await services.tasks.create_task(db_session, TaskCreate(title="Docs"), alice.id)
    uploaded = await services.attachments.upload(db_session, task.id, alice.id, [_file()])
    key = uploaded.attachments[0].file_name
    services.storage.delete(key)

    with pytest.raises(NotFoundError):
        await services.attachments.download(db_session, task.id, uploaded.attachments[0].id, alice.id)
