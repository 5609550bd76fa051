"""
Integration tests for the file lifecycle: create, read, expire, delete.

Uses a real SQLite database and a local object store; time only moves
through the fake clock.
"""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import delete, select

from tempshare.core.exceptions import AuthorizationError, NotFoundError, StorageError, ValidationError
from tempshare.models.file import FileRecord
from tempshare.services.file_service import FileService
from tempshare.storage.local_store import LocalObjectStore


class VanishingObjectStore(LocalObjectStore):
    """Хранилище, которое принимает запись, но объект потом не находится"""

    async def head(self, key: str) -> bool:
        return False


@pytest.fixture
def service(session, object_store, clock):
    return FileService(session, object_store, clock=clock, max_upload_size=1024, verify_uploads=True)


class TestCreate:

    @pytest.mark.parametrize("days", [1, 7, 30])
    async def test_create_sets_expiry_from_clock(self, service, session, clock, make_user, days):
        # Arrange
        user = await make_user()

        # Act
        file_id = await service.create(user.id, "a.txt", "text/plain", 10, days, f"{user.id}/k-{days}")

        # Assert
        record = await session.get(FileRecord, file_id)
        assert record.expires_at == clock() + timedelta(days=days)
        assert record.created_at == clock()
        assert record.download_count == 0
        assert record.object_key == f"{user.id}/k-{days}"

    @pytest.mark.parametrize("days", [0, 31])
    async def test_create_rejects_out_of_range_and_writes_nothing(self, service, session, make_user, days):
        user = await make_user()

        with pytest.raises(ValidationError):
            await service.create(user.id, "a.txt", "text/plain", 10, days, "k")

        assert await service.list_for_owner(user.id) == []

    async def test_create_returns_distinct_ids(self, service, make_user):
        user = await make_user()

        first = await service.create(user.id, "a.txt", None, 1, 1, "k1")
        second = await service.create(user.id, "a.txt", None, 1, 1, "k2")

        assert first != second


class TestUpload:

    async def test_upload_stores_object_before_metadata(self, service, object_store, make_user):
        user = await make_user()

        record = await service.upload(user.id, "notes.txt", "text/plain", b"hello", 3)

        stored = await object_store.get(record.object_key)
        assert stored.body == b"hello"
        assert record.size == 5
        assert record.object_key.startswith(f"{user.id}/")
        assert record.object_key.endswith("-notes.txt")

    async def test_upload_too_large_stores_nothing(self, service, object_store, make_user):
        user = await make_user()

        with pytest.raises(ValidationError, match="File too large"):
            await service.upload(user.id, "big.bin", None, b"x" * 2048, 3)

        assert not object_store.base_path.exists()
        assert await service.list_for_owner(user.id) == []

    async def test_upload_fails_when_object_missing_after_put(self, session, clock, tmp_path, make_user):
        # Arrange
        user = await make_user()
        service = FileService(
            session, VanishingObjectStore(str(tmp_path / "vanishing")), clock=clock, verify_uploads=True
        )

        # Act / Assert
        with pytest.raises(StorageError):
            await service.upload(user.id, "a.txt", None, b"data", 1)

        assert await service.list_for_owner(user.id) == []

    async def test_upload_without_filename(self, service, make_user):
        user = await make_user()

        with pytest.raises(ValidationError, match="No file provided"):
            await service.upload(user.id, "  ", None, b"data", 1)

    async def test_upload_with_long_non_ascii_name(self, service, object_store, make_user):
        # Arrange
        user = await make_user()
        filename = "报告" * 50 + ".pdf"

        # Act
        record = await service.upload(user.id, filename, "application/pdf", b"x", 7)

        # Assert
        assert record.filename == filename
        assert record.object_key.endswith(".pdf")
        assert (await object_store.get(record.object_key)).body == b"x"


class TestExpiration:

    async def test_is_expired_boundary(self, service, clock, make_user):
        user = await make_user()
        file_id = await service.create(user.id, "a.txt", None, 1, 1, "k")

        clock.advance(days=1, microseconds=-1)
        assert await service.is_expired(file_id) is False

        clock.advance(microseconds=1)
        assert await service.is_expired(file_id) is True

    async def test_missing_file_counts_as_expired(self, service):
        assert await service.is_expired("does-not-exist") is True

    async def test_get_live_hides_expired_file(self, service, clock, make_user):
        user = await make_user()
        file_id = await service.create(user.id, "a.txt", None, 1, 1, "k")

        record = await service.get_live(file_id)
        assert record.user_id == user.id

        clock.advance(days=2)
        with pytest.raises(NotFoundError):
            await service.get_live(file_id)

    async def test_get_by_id_still_returns_expired_row(self, service, clock, make_user):
        user = await make_user()
        file_id = await service.create(user.id, "a.txt", None, 1, 1, "k")

        clock.advance(days=2)

        assert (await service.get_by_id(file_id)).id == file_id


class TestListForOwner:

    async def test_only_live_files_of_owner_newest_first(self, service, clock, make_user):
        # Arrange
        alice = await make_user()
        bob = await make_user()
        short = await service.create(alice.id, "short.txt", None, 1, 1, "k-short")
        clock.advance(hours=1)
        long = await service.create(alice.id, "long.txt", None, 1, 10, "k-long")
        await service.create(bob.id, "bob.txt", None, 1, 10, "k-bob")

        # Act
        before = [f.id for f in await service.list_for_owner(alice.id)]
        clock.advance(days=2)
        after = [f.id for f in await service.list_for_owner(alice.id)]

        # Assert
        assert before == [long, short]
        assert after == [long]


class TestDelete:

    async def test_delete_succeeds_once(self, service, make_user):
        user = await make_user()
        file_id = await service.create(user.id, "a.txt", None, 1, 1, "k")

        assert await service.delete(file_id, user.id) is True
        assert await service.delete(file_id, user.id) is False

    async def test_delete_by_other_user_removes_nothing(self, service, make_user):
        owner = await make_user()
        other = await make_user()
        file_id = await service.create(owner.id, "a.txt", None, 1, 1, "k")

        assert await service.delete(file_id, other.id) is False
        assert await service.get_by_id(file_id) is not None

    async def test_delete_file_removes_row_and_object(self, service, object_store, make_user):
        user = await make_user()
        record = await service.upload(user.id, "a.txt", None, b"data", 1)

        assert await service.delete_file(record.id, user.id) is True

        assert await service.get_by_id(record.id) is None
        assert await object_store.head(record.object_key) is False

    async def test_delete_file_by_non_owner_is_forbidden(self, service, object_store, make_user):
        owner = await make_user()
        other = await make_user()
        record = await service.upload(owner.id, "a.txt", None, b"data", 1)

        with pytest.raises(AuthorizationError):
            await service.delete_file(record.id, other.id)

        assert await object_store.head(record.object_key) is True

    async def test_delete_file_missing(self, service, make_user):
        user = await make_user()

        with pytest.raises(NotFoundError):
            await service.delete_file("nope", user.id)


class TestConcurrentDelete:
    """Каждый участник гонки работает в своей сессии БД."""

    async def test_parallel_deletes_have_single_winner(self, db, service, object_store, clock, make_user):
        # Arrange
        user = await make_user()
        file_id = await service.create(user.id, "a.txt", None, 1, 1, "k")

        async def delete_in_own_session():
            async with db.session_factory() as own_session:
                return await FileService(own_session, object_store, clock=clock).delete(file_id, user.id)

        # Act
        results = await asyncio.gather(delete_in_own_session(), delete_in_own_session())

        # Assert
        assert sorted(results) == [False, True]
        assert await service.get_by_id(file_id) is None

    async def test_delete_file_loses_race_and_keeps_object(self, db, service, object_store, make_user):
        # Arrange: строка исчезает между чтением и удалением
        user = await make_user()
        record = await service.upload(user.id, "a.txt", None, b"data", 1)
        lookup = service.file_repository.get_with_owner

        async def lookup_then_vanish(file_id):
            found = await lookup(file_id)
            async with db.session_factory() as other_session:
                await other_session.execute(delete(FileRecord).where(FileRecord.id == file_id))
                await other_session.commit()
            return found

        service.file_repository.get_with_owner = lookup_then_vanish

        # Act
        removed = await service.delete_file(record.id, user.id)

        # Assert
        assert removed is False
        assert await object_store.head(record.object_key) is True


class TestDownload:

    async def test_open_download_counts(self, service, session, make_user):
        user = await make_user()
        record = await service.upload(user.id, "a.txt", "text/plain", b"data", 1)

        _, stored = await service.open_download(record.id)
        await service.open_download(record.id)

        assert stored.body == b"data"
        count = await session.scalar(select(FileRecord.download_count).where(FileRecord.id == record.id))
        assert count == 2

    async def test_open_download_without_object(self, service, object_store, make_user):
        user = await make_user()
        record = await service.upload(user.id, "a.txt", None, b"data", 1)
        await object_store.delete(record.object_key)

        with pytest.raises(NotFoundError, match="not found in storage"):
            await service.open_download(record.id)

    async def test_open_download_of_expired_file(self, service, clock, make_user):
        user = await make_user()
        record = await service.upload(user.id, "a.txt", None, b"data", 1)
        clock.advance(days=1)

        with pytest.raises(NotFoundError):
            await service.open_download(record.id)
