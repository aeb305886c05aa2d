"""星标、回收站与永久删除接口的集成测试。"""

import os
from typing import Optional

from fastapi.testclient import TestClient

from app.main import app
from app.packages.drive.core.dependencies import get_store
from app.packages.drive.core.enums import ObjectDeletionStatusEnum
from app.packages.drive.models.file_node import FileNode
from app.packages.drive.models.object_deletion import ObjectDeletion


def _create_folder(client: TestClient, headers: dict, name: str, parent_id: Optional[str] = None) -> dict:
    resp = client.post("/api/v1/folders", json={"name": name, "parentId": parent_id}, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


def _register_file(
    client: TestClient,
    headers: dict,
    name: str,
    *,
    path: Optional[str] = None,
    size: int = 10,
    parent_id: Optional[str] = None,
) -> dict:
    resp = client.post(
        "/api/v1/files",
        json={
            "name": name,
            "path": path or f"uploads/{name}",
            "size": size,
            "mimeType": "text/plain",
            "parentId": parent_id,
        },
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


def _put_object(root: str, rel_path: str, content: bytes = b"data") -> str:
    full = os.path.join(root, rel_path)
    os.makedirs(os.path.dirname(full), exist_ok=True)
    with open(full, "wb") as fh:
        fh.write(content)
    return full


def test_toggle_star_twice_restores_state(client: TestClient, owner_headers, owner_id):
    headers = owner_headers(owner_id)
    node = _register_file(client, headers, "note.txt")
    assert node["isStarred"] is False

    first = client.patch(f"/api/v1/files/{node['id']}/star", headers=headers)
    assert first.status_code == 200
    assert first.json()["msg"] == "已添加星标"
    assert first.json()["data"]["isStarred"] is True

    second = client.patch(f"/api/v1/files/{node['id']}/star", headers=headers)
    assert second.json()["msg"] == "已取消星标"
    assert second.json()["data"]["isStarred"] is False
    assert second.json()["data"]["isTrashed"] is False


def test_toggle_star_on_folder(client: TestClient, owner_headers, owner_id):
    headers = owner_headers(owner_id)
    folder = _create_folder(client, headers, "photos")
    resp = client.patch(f"/api/v1/files/{folder['id']}/star", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["isStarred"] is True


def test_trash_and_restore(client: TestClient, owner_headers, owner_id):
    headers = owner_headers(owner_id)
    node = _register_file(client, headers, "draft.txt")

    resp = client.patch(f"/api/v1/files/{node['id']}/trash", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["msg"] == "已移入回收站"
    assert resp.json()["data"]["isTrashed"] is True

    resp = client.patch(f"/api/v1/files/{node['id']}/trash", headers=headers)
    assert resp.json()["msg"] == "已从回收站恢复"
    assert resp.json()["data"]["isTrashed"] is False


def test_trash_folder_does_not_cascade(client: TestClient, owner_headers, owner_id):
    headers = owner_headers(owner_id)
    folder = _create_folder(client, headers, "projects")
    child = _register_file(client, headers, "plan.txt", parent_id=folder["id"])

    client.patch(f"/api/v1/files/{folder['id']}/trash", headers=headers)

    children = client.get("/api/v1/files", params={"parentId": folder["id"]}, headers=headers).json()["data"]
    assert [c["id"] for c in children] == [child["id"]]
    assert children[0]["isTrashed"] is False


def test_toggle_on_missing_or_foreign_node_returns_404(client: TestClient, owner_headers, owner_id):
    alice = owner_headers(owner_id)
    bob = owner_headers(f"{owner_id}_bob")
    node = _register_file(client, alice, "mine.txt")

    for action in ("star", "trash"):
        resp = client.patch(f"/api/v1/files/{node['id']}/{action}", headers=bob)
        assert resp.status_code == 404
        assert resp.json()["msg"] == "文件或文件夹不存在"

    assert client.patch("/api/v1/files/does-not-exist/star", headers=alice).status_code == 404

    listed = client.get("/api/v1/files", headers=alice).json()["data"]
    assert listed[0]["isStarred"] is False
    assert listed[0]["isTrashed"] is False


def test_delete_file_removes_row_and_object(client: TestClient, owner_headers, owner_id, object_root):
    headers = owner_headers(owner_id)
    rel_path = f"{owner_id}/report.txt"
    full_path = _put_object(object_root, rel_path)
    node = _register_file(client, headers, "report.txt", path=rel_path)

    resp = client.delete(f"/api/v1/files/{node['id']}/delete", headers=headers)
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["msg"] == "文件已永久删除"
    assert payload["data"]["deletedFile"]["id"] == node["id"]
    assert not os.path.exists(full_path)

    assert client.get("/api/v1/files", headers=headers).json()["data"] == []
    again = client.delete(f"/api/v1/files/{node['id']}/delete", headers=headers)
    assert again.status_code == 404


def test_delete_file_survives_object_store_failure(
    client: TestClient, owner_headers, owner_id, db_session_fixture, flaky_store
):
    headers = owner_headers(owner_id)
    node = _register_file(client, headers, "stuck.txt", path=f"{owner_id}/stuck.txt")
    app.dependency_overrides[get_store] = lambda: flaky_store

    resp = client.delete(f"/api/v1/files/{node['id']}/delete", headers=headers)
    assert resp.status_code == 200
    assert flaky_store.calls.count(f"{owner_id}/stuck.txt") == 1

    assert db_session_fixture.get(FileNode, node["id"]) is None
    task = db_session_fixture.query(ObjectDeletion).filter(ObjectDeletion.node_id == node["id"]).one()
    assert task.status == ObjectDeletionStatusEnum.PENDING.value
    assert task.attempts == 1
    assert "unreachable" in task.last_error


def test_later_delete_request_retries_failed_object_delete(
    client: TestClient, owner_headers, owner_id, db_session_fixture, flaky_store, object_store, object_root
):
    headers = owner_headers(owner_id)
    a_path = f"{owner_id}/a.bin"
    b_path = f"{owner_id}/b.bin"
    a_full = _put_object(object_root, a_path)
    b_full = _put_object(object_root, b_path)
    first = _register_file(client, headers, "a.bin", path=a_path)
    second = _register_file(client, headers, "b.bin", path=b_path)

    app.dependency_overrides[get_store] = lambda: flaky_store
    assert client.delete(f"/api/v1/files/{first['id']}/delete", headers=headers).status_code == 200
    assert os.path.exists(a_full)

    # 存储恢复后，下一次删除请求会顺带补删之前失败的对象
    app.dependency_overrides[get_store] = lambda: object_store
    assert client.delete(f"/api/v1/files/{second['id']}/delete", headers=headers).status_code == 200
    assert not os.path.exists(a_full)
    assert not os.path.exists(b_full)

    db_session_fixture.expire_all()
    remaining = (
        db_session_fixture.query(ObjectDeletion)
        .filter(ObjectDeletion.node_id.in_([first["id"], second["id"]]))
        .all()
    )
    assert remaining == []


def test_empty_trash_request_retries_failed_object_delete(
    client: TestClient, owner_headers, owner_id, db_session_fixture, flaky_store, object_store, object_root
):
    headers = owner_headers(owner_id)
    rel_path = f"{owner_id}/stuck-again.bin"
    full_path = _put_object(object_root, rel_path)
    node = _register_file(client, headers, "stuck-again.bin", path=rel_path)

    app.dependency_overrides[get_store] = lambda: flaky_store
    client.delete(f"/api/v1/files/{node['id']}/delete", headers=headers)

    app.dependency_overrides[get_store] = lambda: object_store
    resp = client.delete("/api/v1/files/empty-trash", headers=headers)
    assert resp.status_code == 200
    assert not os.path.exists(full_path)
    db_session_fixture.expire_all()
    assert db_session_fixture.query(ObjectDeletion).filter(ObjectDeletion.node_id == node["id"]).first() is None


def test_delete_file_rejects_folder(client: TestClient, owner_headers, owner_id):
    headers = owner_headers(owner_id)
    folder = _create_folder(client, headers, "keep-me")

    resp = client.delete(f"/api/v1/files/{folder['id']}/delete", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["msg"] == "该 ID 对应的是文件夹，请使用文件夹删除接口"

    names = [i["name"] for i in client.get("/api/v1/files", headers=headers).json()["data"]]
    assert names == ["keep-me"]


def test_delete_folder_rejects_file(client: TestClient, owner_headers, owner_id):
    headers = owner_headers(owner_id)
    node = _register_file(client, headers, "plain.txt")

    resp = client.delete(f"/api/v1/folders/{node['id']}/delete", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["msg"] == "该 ID 对应的是文件，而不是文件夹"
    assert len(client.get("/api/v1/files", headers=headers).json()["data"]) == 1


def test_delete_folder_removes_whole_subtree(
    client: TestClient, owner_headers, owner_id, object_root, db_session_fixture
):
    headers = owner_headers(owner_id)
    root = _create_folder(client, headers, "root")
    sub = _create_folder(client, headers, "sub", parent_id=root["id"])
    deep = _create_folder(client, headers, "deep", parent_id=sub["id"])
    paths = [f"{owner_id}/a.txt", f"{owner_id}/b.txt", f"{owner_id}/c.txt"]
    files = [
        _register_file(client, headers, "a.txt", path=paths[0], parent_id=root["id"]),
        _register_file(client, headers, "b.txt", path=paths[1], parent_id=sub["id"]),
        _register_file(client, headers, "c.txt", path=paths[2], parent_id=deep["id"]),
    ]
    full_paths = [_put_object(object_root, p) for p in paths]
    sibling = _register_file(client, headers, "sibling.txt")

    resp = client.delete(f"/api/v1/folders/{root['id']}/delete", headers=headers)
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["msg"] == "文件夹删除成功"
    assert payload["data"]["deletedFolder"]["id"] == root["id"]
    assert payload["data"]["deletedCount"] == 6

    for node_id in [root["id"], sub["id"], deep["id"], *[f["id"] for f in files]]:
        assert db_session_fixture.get(FileNode, node_id) is None
    assert all(not os.path.exists(p) for p in full_paths)

    remaining = client.get("/api/v1/files", headers=headers).json()["data"]
    assert [i["id"] for i in remaining] == [sibling["id"]]


def test_delete_foreign_folder_is_not_found(client: TestClient, owner_headers, owner_id):
    alice = owner_headers(owner_id)
    bob = owner_headers(f"{owner_id}_bob")
    folder = _create_folder(client, alice, "alice")

    resp = client.delete(f"/api/v1/folders/{folder['id']}/delete", headers=bob)
    assert resp.status_code == 404
    assert len(client.get("/api/v1/files", headers=alice).json()["data"]) == 1


def test_empty_trash_removes_only_trashed_nodes(
    client: TestClient, owner_headers, owner_id, object_root, db_session_fixture
):
    headers = owner_headers(owner_id)
    kept = _register_file(client, headers, "kept.txt")
    binned = _register_file(client, headers, "binned.txt", path=f"{owner_id}/binned.txt")
    binned_path = _put_object(object_root, f"{owner_id}/binned.txt")
    folder = _create_folder(client, headers, "old")
    inside = _register_file(client, headers, "inside.txt", parent_id=folder["id"])
    nested_trashed = _register_file(client, headers, "nested.txt", parent_id=folder["id"])

    for node in (binned, folder, nested_trashed):
        client.patch(f"/api/v1/files/{node['id']}/trash", headers=headers)

    resp = client.delete("/api/v1/files/empty-trash", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["msg"] == "回收站已清空"
    # binned + folder + folder 下的两个文件
    assert resp.json()["data"]["deletedCount"] == 4

    assert not os.path.exists(binned_path)
    for node in (binned, folder, inside, nested_trashed):
        assert db_session_fixture.get(FileNode, node["id"]) is None

    assert client.get("/api/v1/files", params={"view": "trash"}, headers=headers).json()["data"] == []
    remaining = client.get("/api/v1/files", headers=headers).json()["data"]
    assert [i["id"] for i in remaining] == [kept["id"]]


def test_empty_trash_with_nothing_trashed(client: TestClient, owner_headers, owner_id):
    headers = owner_headers(owner_id)
    _register_file(client, headers, "safe.txt")

    resp = client.delete("/api/v1/files/empty-trash", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["deletedCount"] == 0
    assert len(client.get("/api/v1/files", headers=headers).json()["data"]) == 1


def test_empty_trash_leaves_other_owners_untouched(client: TestClient, owner_headers, owner_id):
    alice = owner_headers(owner_id)
    bob = owner_headers(f"{owner_id}_bob")
    node = _register_file(client, alice, "alice.txt")
    client.patch(f"/api/v1/files/{node['id']}/trash", headers=alice)

    resp = client.delete("/api/v1/files/empty-trash", headers=bob)
    assert resp.json()["data"]["deletedCount"] == 0

    trash = client.get("/api/v1/files", params={"view": "trash"}, headers=alice).json()["data"]
    assert [i["id"] for i in trash] == [node["id"]]
