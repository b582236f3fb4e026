"""Shared behaviour every storage backend must have (local on tmp disk, S3 on an in-memory client)."""
import asyncio

import pytest

from object_storage.services.storage.base import InvalidKeyError, StorageBackend
from object_storage.services.storage.local import LocalStorage


@pytest.fixture(params=["local", "s3"])
def backend(request, settings, s3_settings) -> StorageBackend:
    if request.param == "local":
        return LocalStorage("profileimages", settings)
    fake = request.getfixturevalue("fake_s3")
    from object_storage.services.storage.s3 import S3Storage
    storage = S3Storage("profileimages", s3_settings)
    assert storage._client is fake
    return storage


@pytest.mark.asyncio
async def test_get_never_written_key_is_absent(backend):
    assert await backend.get("never-written.png") is None
    assert await backend.get("nested/never/written.png") is None


@pytest.mark.asyncio
async def test_put_then_get_round_trips_bytes(backend):
    payload = bytes(range(256)) * 3
    await backend.put("a.png", payload)
    assert await backend.get("a.png") == payload


@pytest.mark.asyncio
async def test_put_empty_payload(backend):
    await backend.put("empty.bin", b"")
    assert await backend.get("empty.bin") == b""


@pytest.mark.asyncio
async def test_put_nested_key_creates_prerequisites(backend):
    await backend.put("users/42/avatar.png", b"\x89PNG\r\n")
    assert await backend.get("users/42/avatar.png") == b"\x89PNG\r\n"


@pytest.mark.asyncio
async def test_put_from_path_matches_source_file(backend, tmp_path):
    source = tmp_path / "upload.bin"
    source.write_bytes(b"\x00\xff" * 200_000)
    await backend.put_from_path("from-disk.bin", source)
    assert await backend.get("from-disk.bin") == source.read_bytes()


@pytest.mark.asyncio
async def test_put_same_payload_twice_is_idempotent(backend):
    await backend.put("same.png", b"same")
    await backend.put("same.png", b"same")
    assert await backend.get("same.png") == b"same"


@pytest.mark.asyncio
async def test_last_completed_put_wins(backend):
    await backend.put("k.png", b"first")
    await backend.put("k.png", b"second, and longer than the first")
    assert await backend.get("k.png") == b"second, and longer than the first"
    await backend.put("k.png", b"3")
    assert await backend.get("k.png") == b"3"


@pytest.mark.asyncio
async def test_concurrent_puts_on_different_keys(backend):
    keys = [f"concurrent/{i}.bin" for i in range(10)]
    await asyncio.gather(*(backend.put(k, k.encode()) for k in keys))
    results = await asyncio.gather(*(backend.get(k) for k in keys))
    assert results == [k.encode() for k in keys]


@pytest.mark.asyncio
@pytest.mark.parametrize("key", ["", "../escape.png", "a/../../b", "/abs.png", "a//b", "a\\b", "./a"])
async def test_unsafe_keys_rejected_on_write_and_absent_on_read(backend, key):
    with pytest.raises(InvalidKeyError):
        await backend.put(key, b"x")
    assert await backend.get(key) is None
    assert await backend.get_signed_url(key) is None


@pytest.mark.asyncio
async def test_put_from_missing_source_propagates(backend, tmp_path):
    with pytest.raises(OSError):
        await backend.put_from_path("missing.bin", tmp_path / "does-not-exist.bin")


@pytest.mark.asyncio
async def test_get_signed_url_returns_url_for_key(backend):
    await backend.put("a.png", b"data")
    url = await backend.get_signed_url("a.png")
    assert url is not None
    assert "a.png" in url
    assert await backend.get_signed_url("a.png", None) is not None


@pytest.mark.asyncio
async def test_concurrent_puts_same_key_leave_one_whole_payload(backend):
    big = b"A" * 2_000_000
    small = b"B" * 10
    for _ in range(10):
        await asyncio.gather(backend.put("race.bin", big), backend.put("race.bin", small))
        assert await backend.get("race.bin") in (big, small)
