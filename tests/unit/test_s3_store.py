from __future__ import annotations

import pytest
from botocore.exceptions import ClientError
from cryptography.fernet import Fernet

from state.kv_store import HIGH_SCORE_ENTRIES_KEY, HIGHEST_SCORE_KEY, NEON_UNLOCKED_KEY
from state.s3_store import OptimisticLockError, S3KeyValueStore


class _FakeBody:
    def __init__(self, data: bytes) -> None:
        self._data = data

    def read(self) -> bytes:
        return self._data


class _FakeS3:
    """In-memory S3 honouring If-Match / If-None-Match on PutObject."""

    def __init__(self) -> None:
        self._store = {}  # (bucket, key) -> {Body: bytes, ETag: str}
        self._version = 0
        self.gets = 0

    def put_object(self, *, Bucket: str, Key: str, Body: bytes, ContentType: str, IfMatch=None, IfNoneMatch=None):
        current = self._store.get((Bucket, Key))
        if IfNoneMatch == "*" and current is not None:
            raise ClientError({"Error": {"Code": "PreconditionFailed"}}, "PutObject")
        if IfMatch is not None and (current is None or current["ETag"] != IfMatch):
            raise ClientError({"Error": {"Code": "PreconditionFailed"}}, "PutObject")
        self._version += 1
        etag = f'"fake-{self._version}"'
        self._store[(Bucket, Key)] = {"Body": Body, "ETag": etag}
        return {"ETag": etag}

    def get_object(self, *, Bucket: str, Key: str):
        self.gets += 1
        item = self._store.get((Bucket, Key))
        if not item:
            raise ClientError({"Error": {"Code": "NoSuchKey"}}, "GetObject")
        return {"Body": _FakeBody(item["Body"]), "ETag": item["ETag"]}


@pytest.fixture()
def fernet_key() -> bytes:
    return Fernet.generate_key()


def _store(s3: _FakeS3, fernet_key: bytes) -> S3KeyValueStore:
    return S3KeyValueStore(s3=s3, bucket="b", key="save.json", fernet_key=fernet_key)


def test_missing_object_reads_as_defaults(fernet_key):
    store = _store(_FakeS3(), fernet_key)

    assert store.get_bool(NEON_UNLOCKED_KEY) is None
    assert store.get_int(HIGHEST_SCORE_KEY) is None
    assert store.get_json(HIGH_SCORE_ENTRIES_KEY) is None
    assert store.etag is None


def test_getters_share_one_fetch(fernet_key):
    s3 = _FakeS3()
    _store(s3, fernet_key).set_int(HIGHEST_SCORE_KEY, 9)
    s3.gets = 0

    store = _store(s3, fernet_key)
    for _ in range(3):
        store.get_int(HIGHEST_SCORE_KEY)
        store.get_bool(NEON_UNLOCKED_KEY)
    store.set_bool(NEON_UNLOCKED_KEY, True)
    store.get_bool(NEON_UNLOCKED_KEY)

    assert s3.gets == 1
    store.refresh()
    assert store.get_bool(NEON_UNLOCKED_KEY) is True
    assert s3.gets == 2


def test_values_persist_encrypted(fernet_key):
    s3 = _FakeS3()
    store = _store(s3, fernet_key)
    store.set_bool(NEON_UNLOCKED_KEY, True)
    store.set_int(HIGHEST_SCORE_KEY, 42)
    store.set_json(HIGH_SCORE_ENTRIES_KEY, b"[]")

    other = _store(s3, fernet_key)
    assert other.get_bool(NEON_UNLOCKED_KEY) is True
    assert other.get_int(HIGHEST_SCORE_KEY) == 42
    assert other.get_json(HIGH_SCORE_ENTRIES_KEY) == b"[]"
    assert other.get_int(NEON_UNLOCKED_KEY) is None
    raw = s3.get_object(Bucket="b", Key="save.json")["Body"].read()
    assert b"HighestScore" not in raw


def test_wrong_key_raises_value_error(fernet_key):
    s3 = _FakeS3()
    _store(s3, fernet_key).set_int(HIGHEST_SCORE_KEY, 1)

    with pytest.raises(ValueError):
        _store(s3, Fernet.generate_key()).get_int(HIGHEST_SCORE_KEY)


def test_concurrent_writer_is_detected_and_cache_dropped(fernet_key):
    s3 = _FakeS3()
    mine = _store(s3, fernet_key)
    mine.set_int(HIGHEST_SCORE_KEY, 1)

    theirs = _store(s3, fernet_key)
    theirs.set_int(HIGHEST_SCORE_KEY, 5)

    with pytest.raises(OptimisticLockError):
        mine.set_int(HIGHEST_SCORE_KEY, 2)
    assert mine.get_int(HIGHEST_SCORE_KEY) == 5


def test_first_write_does_not_clobber_existing_object(fernet_key):
    s3 = _FakeS3()
    early = _store(s3, fernet_key)
    assert early.get_int(HIGHEST_SCORE_KEY) is None  # cached as "no object"

    _store(s3, fernet_key).set_int(HIGHEST_SCORE_KEY, 8)

    with pytest.raises(OptimisticLockError):
        early.set_bool(NEON_UNLOCKED_KEY, True)
    assert early.get_int(HIGHEST_SCORE_KEY) == 8


def test_from_env_requires_bucket_and_key(monkeypatch):
    monkeypatch.delenv("COLOR_DASH_STATE_BUCKET", raising=False)
    monkeypatch.delenv("COLOR_DASH_FERNET_KEY", raising=False)
    with pytest.raises(RuntimeError) as exc:
        S3KeyValueStore.from_env()
    assert "COLOR_DASH_STATE_BUCKET" in str(exc.value)
    assert "COLOR_DASH_FERNET_KEY" in str(exc.value)
