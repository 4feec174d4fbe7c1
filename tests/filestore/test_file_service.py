"""文件服务的单元测试：覆盖创建、修改、搜索与删除时的一致性约束。"""

import pytest
from sqlalchemy.exc import OperationalError

from app.packages.filestore.core.enums import CleanupStatusEnum, SignedUrlMode
from app.packages.filestore.core.exceptions import (
    AppException,
    DuplicateKeyError,
    NotFoundError,
    TransientStoreError,
    UploadCapabilityError,
)
from app.packages.filestore.crud.file import file_crud
from app.packages.filestore.crud.file_version import file_version_crud
from app.packages.filestore.crud.orphaned_object import orphaned_object_crud
from app.packages.filestore.db import session as db_session
from app.packages.filestore.services.file_service import FileService
from app.packages.filestore.services.file_version_service import FileVersionService
from app.packages.filestore.services.object_store import LocalObjectStore


def _create(service: FileService, db, name: str = "a.txt", **kwargs):
    params = {"name": name, "directory_id": "root", "mime_type": "text/plain", "size": 11}
    params.update(kwargs)
    return service.create_file(db, **params)


def _db_down(*args, **kwargs):
    raise OperationalError("SELECT 1", {}, Exception("database is unavailable"))


def test_create_file_has_single_version_matching_signed_key(db_session_fixture, object_store):
    """创建文件后应恰好有一个版本，且其 key 与签名 URL 使用的 key 一致。"""
    service = FileService(object_store)

    result = _create(service, db_session_fixture, key="custom-key-1")

    assert len(result.file.versions) == 1
    version = result.file.versions[0]
    assert version.key == "custom-key-1"
    assert version.name == "a.txt"
    assert version.size == 11
    assert object_store.signed == [(SignedUrlMode.UPLOAD, "custom-key-1")]
    assert "custom-key-1" in result.upload_url


def test_create_file_generates_key_when_omitted(db_session_fixture, object_store):
    service = FileService(object_store)

    result = _create(service, db_session_fixture)

    key = result.file.versions[0].key
    assert key
    assert object_store.signed == [(SignedUrlMode.UPLOAD, key)]


def test_create_file_metadata_failure_skips_object_store(db_session_fixture, object_store, monkeypatch):
    """元数据事务失败时不应请求签名 URL，也不应留下半成品文件。"""
    service = FileService(object_store)
    monkeypatch.setattr(file_version_crud, "create", _db_down)

    with pytest.raises(TransientStoreError):
        _create(service, db_session_fixture, name="half.txt")

    assert object_store.signed == []
    assert service.find_files(db_session_fixture, "half") == []


def test_create_file_duplicate_key_is_rejected(db_session_fixture, object_store):
    service = FileService(object_store)
    _create(service, db_session_fixture, key="dup-key")

    with pytest.raises(DuplicateKeyError):
        _create(service, db_session_fixture, name="b.txt", key="dup-key")

    assert len(object_store.signed) == 1
    assert [f.name for f in service.find_files(db_session_fixture)] == ["a.txt"]


def test_create_file_upload_url_failure_keeps_metadata(db_session_fixture, object_store):
    """签名失败发生在提交之后：记录保留，异常携带补救所需的 ID。"""
    service = FileService(object_store)
    object_store.fail_signing = True

    with pytest.raises(UploadCapabilityError) as exc_info:
        _create(service, db_session_fixture, key="no-url-key")

    err = exc_info.value
    assert err.key == "no-url-key"
    assert err.status_code == 502
    stored = service.get_file(db_session_fixture, err.file_id)
    assert [v.id for v in stored.versions] == [err.version_id]

    # 补救：重新申请上传链接，而不是重新创建
    object_store.fail_signing = False
    url = FileVersionService(object_store).request_file_upload(db_session_fixture, err.version_id)
    assert "no-url-key" in url


def test_get_file_missing_raises_not_found(db_session_fixture, object_store):
    with pytest.raises(NotFoundError):
        FileService(object_store).get_file(db_session_fixture, 987654)


def test_move_and_rename_file(db_session_fixture, object_store):
    service = FileService(object_store)
    file_id = _create(service, db_session_fixture).file.id

    moved = service.move_file(db_session_fixture, file_id, "dir-2")
    assert moved.directory_id == "dir-2"

    renamed = service.rename_file(db_session_fixture, file_id, "b.txt")
    assert renamed.name == "b.txt"
    assert renamed.directory_id == "dir-2"
    assert len(renamed.versions) == 1


def test_move_and_rename_missing_file_leave_state_unchanged(db_session_fixture, object_store):
    service = FileService(object_store)
    existing = _create(service, db_session_fixture).file

    with pytest.raises(NotFoundError):
        service.move_file(db_session_fixture, 987654, "elsewhere")
    with pytest.raises(NotFoundError):
        service.rename_file(db_session_fixture, 987654, "ghost.txt")

    files = service.find_files(db_session_fixture)
    assert [(f.id, f.name, f.directory_id) for f in files] == [(existing.id, "a.txt", "root")]


def test_find_files_is_case_insensitive_substring(db_session_fixture, object_store):
    service = FileService(object_store)
    for name in ("Report.pdf", "monthly_report", "REPORT_final", "invoice.pdf"):
        _create(service, db_session_fixture, name=name)

    names = [f.name for f in service.find_files(db_session_fixture, "report")]

    assert set(names) == {"Report.pdf", "monthly_report", "REPORT_final"}
    assert names == sorted(names)


def test_find_files_empty_query_matches_all_with_versions(db_session_fixture, object_store):
    service = FileService(object_store)
    for name in ("b.txt", "a.txt"):
        _create(service, db_session_fixture, name=name)

    files = service.find_files(db_session_fixture, "")

    assert [f.name for f in files] == ["a.txt", "b.txt"]
    assert all(len(f.versions) == 1 for f in files)


def test_find_files_treats_wildcards_literally(db_session_fixture, object_store):
    service = FileService(object_store)
    for name in ("100%_done.txt", "100 done.txt"):
        _create(service, db_session_fixture, name=name)

    assert [f.name for f in service.find_files(db_session_fixture, "%_")] == ["100%_done.txt"]


def test_delete_file_removes_metadata_then_objects(db_session_fixture, object_store):
    file_service = FileService(object_store)
    version_service = FileVersionService(object_store)
    created = _create(file_service, db_session_fixture)
    file_id = created.file.id
    second = version_service.create_file_version(
        db_session_fixture, file_id=file_id, name="a-v2.txt", mime_type="text/plain", size=12
    )
    keys = [created.file.versions[0].key, second.version.key]

    result = file_service.delete_file(db_session_fixture, file_id)

    assert result.file_id == file_id
    assert result.cleanup.status is CleanupStatusEnum.COMPLETE
    assert object_store.delete_attempts == keys
    with pytest.raises(NotFoundError):
        file_service.get_file(db_session_fixture, file_id)
    page = version_service.get_file_versions(db_session_fixture, file_id)
    assert page.items == []
    assert page.has_more is False


def test_delete_file_attempts_every_key_even_when_one_fails(db_session_fixture, object_store):
    """单个对象删除失败不应中断后续删除，且逻辑删除仍然成功。"""
    file_service = FileService(object_store)
    version_service = FileVersionService(object_store)
    file_id = _create(file_service, db_session_fixture, key="k-1").file.id
    for key in ("k-2", "k-3"):
        version_service.create_file_version(
            db_session_fixture, file_id=file_id, name=key, mime_type="text/plain", size=1, key=key
        )
    object_store.failing_keys = {"k-2"}

    result = file_service.delete_file(db_session_fixture, file_id)

    assert object_store.delete_attempts == ["k-1", "k-2", "k-3"]
    assert result.cleanup.status is CleanupStatusEnum.PARTIAL
    assert result.cleanup.failed_keys == ["k-2"]
    assert result.cleanup.succeeded_keys == ["k-1", "k-3"]
    with pytest.raises(NotFoundError):
        file_service.get_file(db_session_fixture, file_id)

    orphan = orphaned_object_crud.get_by_key(db_session_fixture, "k-2")
    assert orphan is not None
    assert orphan.file_id == file_id
    assert orphan.attempts == 1


def test_delete_file_all_object_deletes_failing_reports_failed(db_session_fixture, object_store):
    file_service = FileService(object_store)
    file_id = _create(file_service, db_session_fixture, key="only-key").file.id
    object_store.failing_keys = {"only-key"}

    result = file_service.delete_file(db_session_fixture, file_id)

    assert result.cleanup.status is CleanupStatusEnum.FAILED
    assert object_store.delete_attempts == ["only-key"]


def test_delete_file_metadata_failure_deletes_no_objects(db_session_fixture, object_store, monkeypatch):
    """元数据事务失败时文件仍然存在，且不应触碰对象存储。"""
    file_service = FileService(object_store)
    file_id = _create(file_service, db_session_fixture).file.id
    monkeypatch.setattr(file_crud, "delete_by_id", _db_down)

    with pytest.raises(TransientStoreError):
        file_service.delete_file(db_session_fixture, file_id)

    assert object_store.delete_attempts == []
    monkeypatch.undo()
    assert len(file_service.get_file(db_session_fixture, file_id).versions) == 1


def test_delete_missing_file_raises_not_found(db_session_fixture, object_store):
    with pytest.raises(NotFoundError):
        FileService(object_store).delete_file(db_session_fixture, 987654)
    assert object_store.delete_attempts == []


def test_double_delete_second_call_observes_not_found(db_session_fixture, object_store):
    file_service = FileService(object_store)
    file_id = _create(file_service, db_session_fixture).file.id

    file_service.delete_file(db_session_fixture, file_id)
    with pytest.raises(NotFoundError):
        file_service.delete_file(db_session_fixture, file_id)

    assert len(object_store.delete_attempts) == 1


def test_concurrent_delete_loser_issues_no_object_deletes(db_session_fixture, object_store, monkeypatch):
    """两个删除请求交错：快照之后文件被另一请求删除，落后者应得到 NotFound。"""
    file_service = FileService(object_store)
    version_service = FileVersionService(object_store)
    file_id = _create(file_service, db_session_fixture).file.id
    version_service.create_file_version(
        db_session_fixture, file_id=file_id, name="v2", mime_type="text/plain", size=2
    )

    original_list_keys = file_version_crud.list_keys
    winner_db = db_session.SessionLocal()

    def racing_list_keys(db, fid):
        snapshot = original_list_keys(db, fid)
        monkeypatch.setattr(file_version_crud, "list_keys", original_list_keys)
        FileService(object_store).delete_file(winner_db, fid)
        return snapshot

    monkeypatch.setattr(file_version_crud, "list_keys", racing_list_keys)
    try:
        with pytest.raises(NotFoundError):
            file_service.delete_file(db_session_fixture, file_id)
    finally:
        winner_db.close()

    # 只有获胜的一方清理了两个对象
    assert len(object_store.delete_attempts) == 2
    assert len(set(object_store.delete_attempts)) == 2


def test_create_file_rejects_key_still_pending_cleanup(db_session_fixture, object_store):
    """待清理的孤儿 key 不能被新版本复用，否则清理会删掉新版本的字节。"""
    file_service = FileService(object_store)
    file_id = _create(file_service, db_session_fixture, key="shared").file.id
    object_store.failing_keys = {"shared"}
    file_service.delete_file(db_session_fixture, file_id)
    other_id = _create(file_service, db_session_fixture, name="other.txt").file.id

    with pytest.raises(DuplicateKeyError):
        _create(file_service, db_session_fixture, name="again.txt", key="shared")
    with pytest.raises(DuplicateKeyError):
        FileVersionService(object_store).create_file_version(
            db_session_fixture, file_id=other_id, name="v2", mime_type="text/plain", size=1, key="shared"
        )

    assert [f.name for f in file_service.find_files(db_session_fixture)] == ["other.txt"]
    assert len(object_store.signed) == 2


def test_create_with_key_rejected_by_store_leaves_no_metadata(db_session_fixture, tmp_path):
    """对象存储不接受的 key 在写入元数据之前就被拒绝。"""
    store = LocalObjectStore(tmp_path, base_url="http://testserver/api/v1")
    file_service = FileService(store)
    existing_id = _create(file_service, db_session_fixture, name="kept.txt").file.id

    with pytest.raises(AppException) as exc_info:
        _create(file_service, db_session_fixture, name="evil", key="../../etc/x")
    assert exc_info.value.status_code == 400
    with pytest.raises(AppException):
        FileVersionService(store).create_file_version(
            db_session_fixture, file_id=existing_id, name="evil", mime_type="text/plain", size=1, key="../x"
        )

    assert [f.name for f in file_service.find_files(db_session_fixture)] == ["kept.txt"]
    assert len(file_service.get_file(db_session_fixture, existing_id).versions) == 1


def test_refresh_failure_after_commit_is_transient(db_session_fixture, object_store, monkeypatch):
    file_service = FileService(object_store)
    monkeypatch.setattr(db_session_fixture, "refresh", _db_down)

    with pytest.raises(TransientStoreError):
        _create(file_service, db_session_fixture, name="committed.txt")

    monkeypatch.undo()
    assert object_store.signed == []
    assert [f.name for f in file_service.find_files(db_session_fixture)] == ["committed.txt"]
