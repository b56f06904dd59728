"""
Tests for the media HTTP API.
Every service is rebuilt per test on a temporary directory and SQLite file.
"""
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from datetime import datetime, timedelta
from io import BytesIO
from PIL import Image

from apps.media import deps
from apps.media.config import MediaConfig
from apps.media.main import app
from apps.media.services.cleanup_service import CleanupService
from apps.media.services.http_fetcher import HttpFetcher
from apps.media.services.image_codec import ImageCodec
from apps.media.services.image_service import ImageService
from apps.media.services.local_file_storage import LocalFileStorage
from apps.media.services.path_namer import PathNamer
from apps.media.services.storage_registry import StorageRegistry
from apps.media.services.thumbnail_service import ThumbnailService
from apps.media.services.url_resolver import UrlResolver
from apps.media.storage.image_store import Database, SqlContentReferences, SqlImageStore
from apps.media.storage.models import Page

JWT_SECRET = "test-secret-for-development-only"
BASE_URL = "http://testserver"

client = TestClient(app)


class MemoryCache:
    def __init__(self):
        self.values = {}

    async def has(self, key):
        return key in self.values

    async def put(self, key, value, ttl_seconds):
        self.values[key] = value

    async def close(self):
        pass


def create_test_token(user_id: str, email: str, role: str = "user") -> str:
    """Create a test JWT token"""
    payload = {
        "sub": user_id,
        "email": email,
        "role": role,
        "aud": "authenticated",
        "exp": datetime.utcnow() + timedelta(hours=1),
        "iat": datetime.utcnow()
    }
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


def auth(user_id="user-1", role="user"):
    return {"Authorization": f"Bearer {create_test_token(user_id, f'{user_id}@example.com', role)}"}


def create_test_image(size=(100, 100)) -> BytesIO:
    img = Image.effect_noise(size, 64).convert("RGB")
    img_bytes = BytesIO()
    img.save(img_bytes, format='PNG')
    img_bytes.seek(0)
    return img_bytes


def build_services(tmp_path, storage_backend="local"):
    config = MediaConfig(storage_backend=storage_backend, base_url=BASE_URL)
    registry = StorageRegistry(config, {
        "local": lambda: LocalFileStorage(str(tmp_path / "public"), name="local"),
        "local_secure": lambda: LocalFileStorage(str(tmp_path / "secure"), name="local_secure"),
    })
    db = Database(f"sqlite:///{tmp_path}/media.db")
    images = SqlImageStore(db)
    urls = UrlResolver(config)
    services = {
        deps.get_storage: registry,
        deps.get_database: db,
        deps.get_image_store: images,
        deps.get_thumbnail_service: ThumbnailService(registry, MemoryCache(), ImageCodec(), urls),
        deps.get_cleanup_service: CleanupService(registry, images, SqlContentReferences(db)),
        deps.get_image_service: ImageService(
            config, registry, images, PathNamer(), urls, ImageCodec(), HttpFetcher()
        ),
    }
    return services, db


@pytest.fixture
def services(tmp_path, monkeypatch):
    monkeypatch.setenv("JWT_SECRET", JWT_SECRET)
    built, db = build_services(tmp_path)
    install(built)
    yield built
    app.dependency_overrides.clear()
    db.dispose()


def provide(value):
    return lambda: value


def install(built):
    for dependency, value in built.items():
        app.dependency_overrides[dependency] = provide(value)


def upload(headers=None, name="photo.png", data=None, **form):
    return client.post(
        "/images",
        files={"file": (name, data or create_test_image(), "image/png")},
        data=form,
        headers=headers or {},
    )


class TestUpload:
    """POST /images and /images/base64"""

    def test_upload_requires_auth(self, services):
        assert upload().status_code == 401

    def test_upload_with_auth(self, services):
        response = upload(auth(), data=create_test_image(), type="gallery", uploaded_to="3")

        assert response.status_code == 200
        body = response.json()
        assert body["type"] == "gallery"
        assert body["uploaded_to"] == 3
        assert body["created_by"] == "user-1"
        assert body["path"].startswith("uploads/images/gallery/")
        assert body["path"].endswith("/photo.png")
        assert body["url"] == f"{BASE_URL}/{body['path']}"

    def test_upload_invalid_type(self, services):
        assert upload(auth(), type="wallpaper").status_code == 400

    def test_upload_empty_file(self, services):
        assert upload(auth(), data=BytesIO(b"")).status_code == 400

    def test_upload_with_resize(self, services):
        response = upload(auth(), data=create_test_image((400, 200)), resize_width="100")
        stored = client.get("/" + response.json()["path"])
        assert Image.open(BytesIO(stored.content)).size == (100, 50)

    def test_upload_rejects_non_positive_resize(self, services):
        assert upload(auth(), resize_width="0").status_code == 422
        assert upload(auth(), resize_height="-5").status_code == 422

    def test_base64_upload(self, services):
        import base64
        uri = "data:image/png;base64," + base64.b64encode(create_test_image().getvalue()).decode()

        response = client.post("/images/base64", json={"image": uri, "name": "drawing.png", "type": "drawio"},
                               headers=auth())

        assert response.status_code == 200
        assert response.json()["type"] == "drawio"

    def test_base64_without_delimiter(self, services):
        response = client.post("/images/base64", json={"image": "aGVsbG8=", "name": "x.png"}, headers=auth())
        assert response.status_code == 422
        assert "base64" in response.json()["detail"]


class TestThumbnails:
    """GET /images/{id} and /images/{id}/thumbnail"""

    def test_get_image_includes_thumbnail(self, services):
        image = upload(auth(), data=create_test_image((400, 300))).json()

        response = client.get(f"/images/{image['id']}")

        assert response.status_code == 200
        thumb = response.json()["thumbnail_url"]
        assert "/thumbs-220-220/" in thumb
        fetched = client.get(thumb.replace(BASE_URL, ""))
        assert fetched.status_code == 200
        assert Image.open(BytesIO(fetched.content)).size == (220, 220)

    def test_thumbnail_keep_ratio(self, services):
        image = upload(auth(), data=create_test_image((400, 300))).json()

        response = client.get(f"/images/{image['id']}/thumbnail",
                              params={"width": 200, "height": 200, "keep_ratio": True})

        assert response.status_code == 200
        body = response.json()
        assert "/scaled-200-200/" in body["url"]
        assert body["keep_ratio"] is True

    def test_thumbnail_missing_image(self, services):
        assert client.get("/images/999/thumbnail").status_code == 404

    def test_thumbnail_bad_size(self, services):
        assert client.get("/images/1/thumbnail", params={"width": 0}).status_code == 422

    def test_thumbnail_of_corrupt_source(self, services):
        image = upload(auth(), data=BytesIO(b"not really a png")).json()
        response = client.get(f"/images/{image['id']}/thumbnail")
        assert response.status_code == 422
        assert response.json()["detail"] == "Cannot create thumbnails from this image"

    def test_get_svg_image_without_thumbnail(self, services):
        svg = BytesIO(b'<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10"/>')
        image = upload(auth(), name="logo.svg", data=svg).json()

        response = client.get(f"/images/{image['id']}")

        assert response.status_code == 200
        assert response.json()["path"].endswith("/logo.svg")
        assert response.json()["thumbnail_url"] is None

    def test_get_image_with_missing_source(self, services, tmp_path):
        image = upload(auth()).json()
        (tmp_path / "public" / image["path"]).unlink()

        response = client.get(f"/images/{image['id']}")

        assert response.status_code == 200
        assert response.json()["id"] == image["id"]
        assert response.json()["thumbnail_url"] is None


class TestDelete:
    """DELETE /images/{id}"""

    def test_delete_requires_auth(self, services):
        image = upload(auth()).json()
        assert client.delete(f"/images/{image['id']}").status_code == 401

    def test_delete_other_users_image(self, services):
        image = upload(auth("user-1")).json()
        assert client.delete(f"/images/{image['id']}", headers=auth("user-2")).status_code == 403

    def test_delete_removes_thumbnails(self, services):
        image = upload(auth()).json()
        thumb = client.get(f"/images/{image['id']}/thumbnail").json()["url"]

        response = client.delete(f"/images/{image['id']}", headers=auth())

        assert response.status_code == 204
        assert client.get(f"/images/{image['id']}").status_code == 404
        assert client.get("/" + image["path"]).status_code == 404
        assert client.get(thumb.replace(BASE_URL, "")).status_code == 404

    def test_admin_can_delete(self, services):
        image = upload(auth("user-1")).json()
        assert client.delete(f"/images/{image['id']}", headers=auth("boss", role="admin")).status_code == 204


class TestCleanup:
    """POST /images/cleanup"""

    def test_cleanup_requires_admin(self, services):
        assert client.post("/images/cleanup", json={}, headers=auth()).status_code == 403

    def test_cleanup_dry_run_then_delete(self, services, tmp_path):
        used = upload(auth()).json()
        unused = upload(auth(), name="other.png").json()
        db = services[deps.get_image_store].db
        with db.session() as s:
            s.add(Page(name="Home", html=f'<img src="{used["url"]}">'))
            s.commit()

        dry = client.post("/images/cleanup", json={}, headers=auth("boss", role="admin")).json()
        assert dry == {"dry_run": True, "count": 1, "paths": [unused["path"]]}
        assert client.get(f"/images/{unused['id']}").status_code == 200

        real = client.post("/images/cleanup", json={"dry_run": False}, headers=auth("boss", role="admin")).json()
        assert real["count"] == 1
        assert client.get(f"/images/{unused['id']}").status_code == 404
        assert client.get(f"/images/{used['id']}").status_code == 200


class TestServing:
    """GET /uploads/images/..."""

    def test_serves_stored_bytes(self, services):
        data = create_test_image().getvalue()
        image = upload(auth(), data=BytesIO(data)).json()

        response = client.get("/" + image["path"])

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content == data

    def test_missing_file(self, services):
        assert client.get("/uploads/images/gallery/2024-01/none.png").status_code == 404

    def test_secure_storage_requires_auth(self, services, tmp_path):
        (tmp_path / "secure-run").mkdir()
        built, db = build_services(tmp_path / "secure-run", storage_backend="local_secure")
        install(built)

        image = upload(auth()).json()

        assert client.get("/" + image["path"]).status_code == 401
        assert client.get("/" + image["path"], headers=auth()).status_code == 200
        db.dispose()


class TestAuth:
    def test_bad_token(self, services):
        response = upload({"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_missing_secret(self, services, monkeypatch):
        monkeypatch.delenv("JWT_SECRET")
        assert upload(auth()).status_code == 500


class TestHealth:
    def test_healthz(self):
        assert client.get("/healthz").json() == {"status": "ok"}

    def test_readyz(self, services):
        response = client.get("/readyz")
        assert response.status_code == 200
        assert response.json() == {"ready": True, "database": "ok", "storage": "ok"}

    def test_metrics(self):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "media_thumbnail_requests_total" in response.text
