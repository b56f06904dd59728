import pytest
import httpx

from apps.media.config import MediaConfig
from apps.media.errors import RemoteFetchError
from apps.media.services.http_fetcher import HttpFetcher


def test_from_env(monkeypatch):
    monkeypatch.setenv("IMAGE_STORAGE_BACKEND", "S3")
    monkeypatch.setenv("S3_BUCKET_NAME", "wiki-media")
    monkeypatch.setenv("SECURE_IMAGES", "true")
    monkeypatch.setenv("THUMBNAIL_CACHE_TTL", "60")
    monkeypatch.delenv("STORAGE_URL", raising=False)

    config = MediaConfig.from_env()

    assert config.storage_backend == "s3"
    assert config.s3_bucket == "wiki-media"
    assert config.secure_images is True
    assert config.thumbnail_cache_ttl == 60
    assert config.storage_url is None


def test_unknown_backend_rejected():
    with pytest.raises(ValueError):
        MediaConfig(storage_backend="ftp")


def test_system_images_stay_public_under_secure_storage():
    config = MediaConfig(storage_backend="local_secure")
    assert config.backend_for_type("system") == "local"
    assert config.backend_for_type("gallery") == "local_secure"
    assert MediaConfig(storage_backend="s3").backend_for_type("system") == "s3"


@pytest.mark.asyncio
async def test_fetch_returns_body():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"img"))
    assert await HttpFetcher(transport=transport).fetch("https://example.com/a.png") == b"img"


@pytest.mark.asyncio
async def test_fetch_follows_redirects():
    def handler(request):
        if request.url.path == "/old.png":
            return httpx.Response(302, headers={"Location": "https://example.com/new.png"})
        return httpx.Response(200, content=b"moved")

    fetcher = HttpFetcher(transport=httpx.MockTransport(handler))
    assert await fetcher.fetch("https://example.com/old.png") == b"moved"


@pytest.mark.asyncio
async def test_fetch_http_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    with pytest.raises(RemoteFetchError) as exc:
        await HttpFetcher(transport=transport).fetch("https://example.com/a.png")
    assert exc.value.reason == "HTTP 503"


@pytest.mark.asyncio
async def test_fetch_connection_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(RemoteFetchError) as exc:
        await HttpFetcher(transport=httpx.MockTransport(handler)).fetch("https://example.com/a.png")
    assert exc.value.url == "https://example.com/a.png"
