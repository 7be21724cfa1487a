"""Tests for the cloud storage repository."""

from uuid import uuid4

import pytest

from services.cloud_storage.app.core.constants import FileResourceType
from services.cloud_storage.app.db.repository import CloudStorageRepository


async def _insert(repository, user_id, name, directory="/", resource_type=FileResourceType.NORMAL_RESOURCES):
    return await repository.insert_file(
        user_id=user_id,
        file_id=uuid4(),
        file_name=name,
        file_size=0 if resource_type == FileResourceType.DIRECTORY else 100,
        file_url="" if resource_type == FileResourceType.DIRECTORY else f"https://x/{name}",
        directory_path=directory,
        resource_type=resource_type,
        payload={},
    )


class TestTotalUsage:
    """Tests for usage reads and guarded increments."""

    @pytest.mark.asyncio
    async def test_no_row_means_zero(self, db_session):
        """Users without a usage row have used nothing."""
        repository = CloudStorageRepository(db_session)

        assert await repository.get_total_usage(uuid4()) == 0

    @pytest.mark.asyncio
    async def test_first_increment_creates_row(self, db_session):
        """The first increment inserts the usage row."""
        repository = CloudStorageRepository(db_session)
        user_id = uuid4()

        assert await repository.increment_total_usage(user_id, 1000, 10_000) == 1000
        assert await repository.get_total_usage(user_id) == 1000

    @pytest.mark.asyncio
    async def test_increments_accumulate(self, db_session):
        """Later increments add to the stored total."""
        repository = CloudStorageRepository(db_session)
        user_id = uuid4()

        await repository.increment_total_usage(user_id, 1000, 10_000)
        assert await repository.increment_total_usage(user_id, 9000, 10_000) == 10_000

    @pytest.mark.asyncio
    async def test_increment_over_limit_is_rejected(self, db_session):
        """An increment that would pass the limit leaves the total unchanged."""
        repository = CloudStorageRepository(db_session)
        user_id = uuid4()
        await repository.increment_total_usage(user_id, 6000, 10_000)

        assert await repository.increment_total_usage(user_id, 4001, 10_000) is None
        assert await repository.get_total_usage(user_id) == 6000

    @pytest.mark.asyncio
    async def test_single_file_over_limit_is_rejected(self, db_session):
        """A file larger than the limit never creates a row."""
        repository = CloudStorageRepository(db_session)
        user_id = uuid4()

        assert await repository.increment_total_usage(user_id, 10_001, 10_000) is None
        assert await repository.get_total_usage(user_id) == 0

    @pytest.mark.asyncio
    async def test_usage_is_per_user(self, db_session):
        """Totals of different users are independent."""
        repository = CloudStorageRepository(db_session)
        alice, bob = uuid4(), uuid4()

        await repository.increment_total_usage(alice, 700, 10_000)
        await repository.increment_total_usage(bob, 300, 10_000)

        assert await repository.get_total_usage(alice) == 700
        assert await repository.get_total_usage(bob) == 300


class TestFiles:
    """Tests for file records and listings."""

    @pytest.mark.asyncio
    async def test_get_directory(self, db_session):
        """Directories are found by parent path and name."""
        repository = CloudStorageRepository(db_session)
        user_id = uuid4()
        await _insert(repository, user_id, "docs", resource_type=FileResourceType.DIRECTORY)

        directory = await repository.get_directory(user_id, "/", "docs")

        assert directory is not None
        assert directory.file_name == "docs"
        assert await repository.get_directory(user_id, "/docs/", "docs") is None
        assert await repository.get_directory(uuid4(), "/", "docs") is None

    @pytest.mark.asyncio
    async def test_regular_file_is_not_a_directory(self, db_session):
        """A file named like a directory does not count as one."""
        repository = CloudStorageRepository(db_session)
        user_id = uuid4()
        await _insert(repository, user_id, "docs")

        assert await repository.get_directory(user_id, "/", "docs") is None

    @pytest.mark.asyncio
    async def test_list_files_directories_first(self, db_session):
        """Listings put directories before files and only show one level."""
        repository = CloudStorageRepository(db_session)
        user_id = uuid4()
        await _insert(repository, user_id, "a.png")
        await _insert(repository, user_id, "docs", resource_type=FileResourceType.DIRECTORY)
        await _insert(repository, user_id, "nested.png", directory="/docs/")

        files = await repository.list_files(user_id, "/")

        assert [f.file_name for f in files] == ["docs", "a.png"]

    @pytest.mark.asyncio
    async def test_list_files_pagination(self, db_session):
        """Limit and offset page through a directory."""
        repository = CloudStorageRepository(db_session)
        user_id = uuid4()
        for i in range(5):
            await _insert(repository, user_id, f"{i}.txt")

        first = await repository.list_files(user_id, "/", limit=2)
        rest = await repository.list_files(user_id, "/", limit=10, offset=2)

        assert len(first) == 2
        assert len(rest) == 3
        assert {f.file_id for f in first}.isdisjoint({f.file_id for f in rest})

    @pytest.mark.asyncio
    async def test_list_files_only_own(self, db_session):
        """Other users' files are not listed."""
        repository = CloudStorageRepository(db_session)
        await _insert(repository, uuid4(), "theirs.txt")

        assert await repository.list_files(uuid4(), "/") == []
