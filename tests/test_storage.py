import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from sqlmodel import select

import models
from api_test_base import ApiTestCase
from core import config, storage
from core.config import DEFAULT_STORAGE_LIMIT_BYTES, MB
from models import UserRole

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class TestStorageUsageRoutes(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.admin = self.make_user(role=UserRole.admin)
        self.sales = self.make_user(role=UserRole.sales)

    def test_usage_without_row_reports_default_quota(self):
        response = self.client.get("/api/storage/usage", headers=self.auth_headers(self.sales))
        self.assertEqual(response.status_code, 200, response.text)
        data = response.json()
        self.assertEqual(data["used"]["bytes"], 0)
        self.assertEqual(data["limit"]["bytes"], DEFAULT_STORAGE_LIMIT_BYTES)
        self.assertEqual(data["available"]["bytes"], DEFAULT_STORAGE_LIMIT_BYTES)
        self.assertEqual(data["percentage"], "0.0")
        with self.session() as db:
            self.assertEqual(db.exec(select(models.StorageUsage)).all(), [])

    def test_usage_with_row(self):
        with self.session() as db:
            db.add(models.StorageUsage(user_id=self.sales.id, total_bytes=5 * MB, limit_bytes=10 * MB))
            db.commit()
        data = self.client.get("/api/storage/usage", headers=self.auth_headers(self.sales)).json()
        self.assertEqual(data["used"], {"bytes": 5 * MB, "mb": 5.0, "formatted": "5.00 MB"})
        self.assertEqual(data["available"]["mb"], 5.0)
        self.assertEqual(data["percentage"], "50.0")

    def test_admin_summary(self):
        with self.session() as db:
            db.add(models.StorageUsage(user_id=self.sales.id, total_bytes=2 * MB, limit_bytes=10 * MB))
            db.add(models.StorageUsage(user_id=self.admin.id, total_bytes=3 * MB, limit_bytes=10 * MB))
            db.commit()
        response = self.client.get("/api/storage/admin", headers=self.auth_headers(self.admin))
        self.assertEqual(response.status_code, 200, response.text)
        data = response.json()
        self.assertEqual(data["users"], 2)
        self.assertEqual(data["used"]["bytes"], 5 * MB)
        self.assertEqual(data["limit"]["bytes"], 20 * MB)
        self.assertEqual(data["percentage"], "25.0")

    def test_admin_summary_empty(self):
        data = self.client.get("/api/storage/admin", headers=self.auth_headers(self.admin)).json()
        self.assertEqual(data["users"], 0)
        self.assertEqual(data["limit"]["bytes"], DEFAULT_STORAGE_LIMIT_BYTES)

    def test_admin_summary_is_admin_only(self):
        response = self.client.get("/api/storage/admin", headers=self.auth_headers(self.sales))
        self.assertEqual(response.status_code, 403, response.text)


class TestUploadRoute(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.sales = self.make_user(role=UserRole.sales)
        self.upload_dir = Path(tempfile.mkdtemp(prefix="demo_hub_uploads_"))
        patcher = mock.patch.object(config, "UPLOAD_DIR", self.upload_dir)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(shutil.rmtree, self.upload_dir, True)

    def upload(self, filename="shot.png", content=PNG_BYTES, type="image", user=None):
        return self.client.post(
            "/api/upload",
            files={"file": (filename, content, "application/octet-stream")},
            data={"type": type},
            headers=self.auth_headers(user or self.sales),
        )

    def test_upload_image(self):
        response = self.upload()
        self.assertEqual(response.status_code, 200, response.text)
        data = response.json()
        self.assertEqual(data["type"], "image")
        self.assertEqual(data["size"], len(PNG_BYTES))
        self.assertEqual(data["mime_type"], "image/png")
        self.assertTrue(data["key"].startswith("image/"))
        self.assertTrue(data["key"].endswith(".png"))
        self.assertEqual(data["url"], f"/uploads/{data['key']}")
        self.assertEqual((self.upload_dir / data["key"]).read_bytes(), PNG_BYTES)

        with self.session() as db:
            usage = db.exec(select(models.StorageUsage).where(models.StorageUsage.user_id == self.sales.id)).one()
            self.assertEqual(usage.total_bytes, len(PNG_BYTES))
            stored = db.exec(select(models.StoredFile)).one()
            self.assertEqual(stored.storage_key, data["key"])
            self.assertEqual(stored.owner_user_id, self.sales.id)
            self.assertEqual(stored.file_size, len(PNG_BYTES))
            self.assertEqual(stored.type, models.MediaType.image)

    def test_failed_bookkeeping_removes_the_file(self):
        with mock.patch("routers.storage.storage_crud.record_upload", side_effect=RuntimeError("db down")):
            with self.assertRaises(RuntimeError):
                self.upload()
        self.assertEqual(list(self.upload_dir.rglob("*.*")), [])
        with self.session() as db:
            self.assertEqual(db.exec(select(models.StoredFile)).all(), [])

    def test_upload_video(self):
        response = self.upload(filename="Tour.MP4", content=b"\x00" * 32, type="video")
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["mime_type"], "video/mp4")
        self.assertTrue(response.json()["key"].startswith("video/"))

    def test_rejections(self):
        cases = [
            {"type": "pdf"},
            {"filename": "payload.exe"},
            {"filename": "noextension"},
            {"filename": "clip.mp4", "type": "image"},
            {"filename": "notes.pdf", "type": "image"},
        ]
        for case in cases:
            response = self.upload(**case)
            self.assertEqual(response.status_code, 400, f"{case}: {response.text}")
        self.assertEqual(list(self.upload_dir.rglob("*.*")), [])

    def test_file_too_large(self):
        with mock.patch("routers.storage.MAX_FILE_SIZE_IMAGE", 10):
            response = self.upload()
        self.assertEqual(response.status_code, 400, response.text)
        self.assertIn("limit", response.json()["detail"])

    def test_quota_exceeded(self):
        with self.session() as db:
            db.add(models.StorageUsage(user_id=self.sales.id, total_bytes=0, limit_bytes=10))
            db.commit()
        response = self.upload()
        self.assertEqual(response.status_code, 400, response.text)
        self.assertIn("Not enough storage space", response.json()["detail"])

    def test_upload_requires_login(self):
        response = self.client.post("/api/upload", files={"file": ("a.png", PNG_BYTES)}, data={"type": "image"})
        self.assertEqual(response.status_code, 401, response.text)


class TestLocalFileStore(unittest.TestCase):

    def setUp(self):
        self.upload_dir = Path(tempfile.mkdtemp(prefix="demo_hub_store_"))
        patcher = mock.patch.object(config, "UPLOAD_DIR", self.upload_dir)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(shutil.rmtree, self.upload_dir, True)

    def test_save_and_delete(self):
        key, url = storage.save_file(b"hello", "Readme.TXT")
        self.assertTrue(key.startswith("raw/"))
        self.assertTrue(key.endswith(".txt"))
        self.assertEqual(url, f"/uploads/{key}")
        self.assertTrue((self.upload_dir / key).exists())

        self.assertTrue(storage.delete_file(key))
        self.assertFalse((self.upload_dir / key).exists())
        self.assertFalse(storage.delete_file(key))

    def test_keys_cannot_escape_the_store(self):
        self.assertFalse(storage.delete_file("../outside.txt"))
        with self.assertRaises(ValueError):
            storage._path_for("../../etc/passwd")

    def test_public_base_url(self):
        with mock.patch.object(config, "PUBLIC_BASE_URL", "https://hub.example.com/"):
            self.assertEqual(storage.public_url("image/a.png"), "https://hub.example.com/uploads/image/a.png")

    def test_format_size(self):
        self.assertEqual(storage.format_size(0), {"bytes": 0, "mb": 0.0, "formatted": "0.00 MB"})
        self.assertEqual(storage.format_size(MB + MB // 2), {"bytes": MB + MB // 2, "mb": 1.5, "formatted": "1.50 MB"})


if __name__ == "__main__":
    unittest.main()
