"""孤儿对象清理服务的单元测试。"""

from app.packages.filestore.core.enums import CleanupStatusEnum
from app.packages.filestore.crud.orphaned_object import orphaned_object_crud
from app.packages.filestore.services.file_service import FileService
from app.packages.filestore.services.orphan_service import OrphanCleanupService


def test_purge_retries_failed_keys_and_forgets_cleaned_ones(db_session_fixture, object_store):
    file_service = FileService(object_store)
    first = file_service.create_file(
        db_session_fixture, name="a", directory_id="root", mime_type="text/plain", size=1, key="orphan-a"
    )
    second = file_service.create_file(
        db_session_fixture, name="b", directory_id="root", mime_type="text/plain", size=1, key="orphan-b"
    )
    object_store.failing_keys = {"orphan-a", "orphan-b"}
    file_service.delete_file(db_session_fixture, first.file.id)
    file_service.delete_file(db_session_fixture, second.file.id)

    service = OrphanCleanupService(object_store)
    assert [row.key for row in service.list_orphans(db_session_fixture)] == ["orphan-a", "orphan-b"]

    # 只有 orphan-a 恢复可删
    object_store.failing_keys = {"orphan-b"}
    report = service.purge_orphans(db_session_fixture)

    assert report.status is CleanupStatusEnum.PARTIAL
    assert report.failed_keys == ["orphan-b"]
    remaining = service.list_orphans(db_session_fixture)
    assert [row.key for row in remaining] == ["orphan-b"]
    assert remaining[0].attempts == 2
    assert "orphan-b" in (remaining[0].last_error or "")


def test_recording_same_key_twice_increments_attempts(db_session_fixture):
    orphaned_object_crud.record(db_session_fixture, key="dup", file_id=1, error="first")
    row = orphaned_object_crud.record(db_session_fixture, key="dup", file_id=1, error="second")

    assert row.attempts == 2
    assert row.last_error == "second"
    assert orphaned_object_crud.count(db_session_fixture) == 1


def test_purge_with_nothing_recorded_is_complete(db_session_fixture, object_store):
    report = OrphanCleanupService(object_store).purge_orphans(db_session_fixture)
    assert report.status is CleanupStatusEnum.COMPLETE
    assert report.attempted_keys == []
    assert object_store.delete_attempts == []


def test_purge_never_deletes_key_owned_by_live_version(db_session_fixture, object_store):
    file_service = FileService(object_store)
    file_service.create_file(
        db_session_fixture, name="live", directory_id="root", mime_type="text/plain", size=1, key="live-key"
    )
    orphaned_object_crud.record(db_session_fixture, key="live-key", file_id=None, error="stale")

    report = OrphanCleanupService(object_store).purge_orphans(db_session_fixture)

    assert object_store.delete_attempts == []
    assert report.status is CleanupStatusEnum.COMPLETE
    assert orphaned_object_crud.count(db_session_fixture) == 0
    assert [f.name for f in file_service.find_files(db_session_fixture)] == ["live"]
