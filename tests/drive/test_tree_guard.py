"""递归删除对异常目录树（环、层级过深）的保护。"""

import uuid

import pytest

from app.packages.drive.core.config import get_settings
from app.packages.drive.core.exceptions import TreeStructureException
from app.packages.drive.models.file_node import FileNode
from app.packages.drive.services.file_service import file_service
from app.packages.drive.services.object_store import NullObjectStore


def _folder(owner_id: str, name: str, parent_id=None) -> FileNode:
    return FileNode(
        id=str(uuid.uuid4()),
        owner_id=owner_id,
        name=name,
        path="",
        size=0,
        mime_type="folder",
        parent_id=parent_id,
        is_folder=True,
    )


def test_cycle_aborts_folder_delete_and_rolls_back(db_session_fixture, owner_id):
    db = db_session_fixture
    a = _folder(owner_id, "a")
    b = _folder(owner_id, "b", parent_id=a.id)
    a.parent_id = b.id
    leaf = FileNode(
        id=str(uuid.uuid4()),
        owner_id=owner_id,
        name="leaf.txt",
        path=f"{owner_id}/leaf.txt",
        size=3,
        mime_type="text/plain",
        parent_id=b.id,
        is_folder=False,
    )
    db.add_all([a, b, leaf])
    db.commit()
    ids = [a.id, b.id, leaf.id]

    with pytest.raises(TreeStructureException) as exc_info:
        file_service.delete_folder(db, NullObjectStore(), owner_id=owner_id, folder_id=a.id)
    assert exc_info.value.status_code == 500

    db.expire_all()
    remaining = db.query(FileNode).filter(FileNode.id.in_(ids)).count()
    assert remaining == 3


def test_max_depth_aborts_folder_delete(db_session_fixture, owner_id, monkeypatch):
    db = db_session_fixture
    monkeypatch.setattr(get_settings(), "max_folder_depth", 2)

    root = _folder(owner_id, "level0")
    level1 = _folder(owner_id, "level1", parent_id=root.id)
    level2 = _folder(owner_id, "level2", parent_id=level1.id)
    db.add_all([root, level1, level2])
    db.commit()

    with pytest.raises(TreeStructureException):
        file_service.delete_folder(db, NullObjectStore(), owner_id=owner_id, folder_id=root.id)

    db.expire_all()
    assert db.get(FileNode, root.id) is not None
    assert db.get(FileNode, level2.id) is not None

    # 层级在上限内时正常删除
    result = file_service.delete_folder(db, NullObjectStore(), owner_id=owner_id, folder_id=level1.id)
    assert result["data"]["deletedCount"] == 2


def test_foreign_children_are_not_purged(db_session_fixture, owner_id):
    """他人节点即使 parent_id 指向本用户文件夹，也不会被递归删除。"""
    db = db_session_fixture
    folder = _folder(owner_id, "mine")
    stranger = _folder(f"{owner_id}_other", "theirs", parent_id=folder.id)
    db.add_all([folder, stranger])
    db.commit()

    result = file_service.delete_folder(db, NullObjectStore(), owner_id=owner_id, folder_id=folder.id)
    assert result["data"]["deletedCount"] == 1

    db.expire_all()
    assert db.get(FileNode, stranger.id) is not None
