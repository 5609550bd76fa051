"""
End-to-end tests for the file endpoints through the ASGI app.

The application is built with the test database, a local object store and
a fake clock, so expiry is reached by advancing the clock.
"""

from sqlalchemy import select

from conftest import cookie_header
from tempshare.models.file import FileRecord
from tempshare.services.reconciler import ExpirationReconciler


async def _upload(client, headers, name="hello.txt", body=b"hello world", expires_in="3"):
    data = {} if expires_in is None else {"expiresIn": expires_in}
    return await client.post(
        "/api/file/upload",
        headers=headers,
        files={"file": (name, body, "text/plain")},
        data=data,
    )


class TestUpload:

    async def test_upload_requires_session(self, client):
        response = await _upload(client, headers={})

        assert response.status_code == 401
        assert response.json()["detail"] == "Unauthorized"

    async def test_upload_with_expired_session(self, client, clock, auth_headers):
        _, headers = await auth_headers()
        clock.advance(days=8)

        response = await _upload(client, headers)

        assert response.status_code == 401

    async def test_upload_returns_link(self, client, clock, auth_headers):
        # Arrange
        _, headers = await auth_headers()

        # Act
        response = await _upload(client, headers, expires_in="3")

        # Assert
        assert response.status_code == 200
        body = response.json()
        assert body["filename"] == "hello.txt"
        assert body["size"] == 11
        assert body["downloadUrl"] == f"/api/file/{body['fileId']}/download"
        assert body["expiresAt"] == "2026-10-22T12:00:00Z"

    async def test_upload_defaults_to_seven_days(self, client, auth_headers):
        _, headers = await auth_headers()

        response = await _upload(client, headers, expires_in=None)

        assert response.json()["expiresAt"] == "2026-10-26T12:00:00Z"

    async def test_upload_rejects_bad_expiration(self, client, auth_headers):
        _, headers = await auth_headers()

        for raw in ("0", "31", "abc"):
            response = await _upload(client, headers, expires_in=raw)
            assert response.status_code == 400, raw

    async def test_upload_without_file(self, client, auth_headers):
        _, headers = await auth_headers()

        response = await client.post("/api/file/upload", headers=headers, data={"expiresIn": "3"})

        assert response.status_code == 400
        assert response.json()["detail"] == "No file provided"


class TestFileLifecycle:

    async def test_upload_info_expire_sweep(self, client, clock, db, object_store, auth_headers):
        # Arrange
        owner, headers = await auth_headers(name="Alice")
        file_id = (await _upload(client, headers, expires_in="1")).json()["fileId"]

        # Act / Assert: публичная информация без cookie
        info = await client.get(f"/api/file/{file_id}")
        assert info.status_code == 200
        assert info.json()["expired"] is False
        assert info.json()["uploader"]["name"] == "Alice"
        assert info.json()["downloadCount"] == 0

        clock.advance(days=1)
        assert (await client.get(f"/api/file/{file_id}")).status_code == 404
        assert (await client.get(f"/api/file/{file_id}/download")).status_code == 404

        async with db.session_factory() as session:
            object_key = await session.scalar(select(FileRecord.object_key).where(FileRecord.id == file_id))
            assert await ExpirationReconciler(session, object_store, clock=clock).sweep() == 1
            assert await session.get(FileRecord, file_id) is None
        assert await object_store.head(object_key) is False

    async def test_download_returns_bytes_and_counts(self, client, auth_headers):
        _, headers = await auth_headers()
        file_id = (await _upload(client, headers, name="report.txt", body=b"report")).json()["fileId"]

        first = await client.get(f"/api/file/{file_id}/download")
        await client.get(f"/api/file/{file_id}/download")

        assert first.status_code == 200
        assert first.content == b"report"
        assert first.headers["content-type"].startswith("text/plain")
        assert 'attachment; filename="report.txt"' in first.headers["content-disposition"]
        info = await client.get(f"/api/file/{file_id}")
        assert info.json()["downloadCount"] == 2

    async def test_unknown_file(self, client):
        assert (await client.get("/api/file/nope")).status_code == 404
        assert (await client.get("/api/file/nope/download")).status_code == 404


class TestDelete:

    async def test_owner_deletes_file(self, client, object_store, db, auth_headers):
        _, headers = await auth_headers()
        file_id = (await _upload(client, headers)).json()["fileId"]
        async with db.session_factory() as session:
            object_key = await session.scalar(select(FileRecord.object_key).where(FileRecord.id == file_id))

        response = await client.delete(f"/api/file/{file_id}", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert (await client.get(f"/api/file/{file_id}")).status_code == 404
        assert await object_store.head(object_key) is False
        assert (await client.delete(f"/api/file/{file_id}", headers=headers)).status_code == 404

    async def test_other_user_cannot_delete(self, client, auth_headers):
        _, owner_headers = await auth_headers()
        _, other_headers = await auth_headers()
        file_id = (await _upload(client, owner_headers)).json()["fileId"]

        response = await client.delete(f"/api/file/{file_id}", headers=other_headers)

        assert response.status_code == 403
        assert (await client.get(f"/api/file/{file_id}")).status_code == 200

    async def test_delete_requires_session(self, client, auth_headers):
        _, headers = await auth_headers()
        file_id = (await _upload(client, headers)).json()["fileId"]

        response = await client.delete(f"/api/file/{file_id}", headers=cookie_header("forged"))

        assert response.status_code == 401


class TestUserFiles:

    async def test_lists_only_own_live_files(self, client, clock, auth_headers):
        # Arrange
        _, headers = await auth_headers()
        _, other_headers = await auth_headers()
        short_id = (await _upload(client, headers, name="short.txt", expires_in="1")).json()["fileId"]
        clock.advance(minutes=5)
        long_id = (await _upload(client, headers, name="long.txt", expires_in="5")).json()["fileId"]
        await _upload(client, other_headers, name="theirs.txt")

        # Act
        before = await client.get("/api/user/files", headers=headers)
        clock.advance(days=1)
        after = await client.get("/api/user/files", headers=headers)

        # Assert
        assert [f["id"] for f in before.json()["files"]] == [long_id, short_id]
        assert [f["id"] for f in after.json()["files"]] == [long_id]
        assert after.json()["files"][0]["downloadCount"] == 0

    async def test_requires_session(self, client):
        assert (await client.get("/api/user/files")).status_code == 401
