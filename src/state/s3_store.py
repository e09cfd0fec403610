from __future__ import annotations

import logging
import os
from typing import Dict, Optional

import boto3
from botocore.exceptions import ClientError
from cryptography.fernet import Fernet, InvalidToken
from pydantic import ValidationError

from .kv_store import DocumentStore, Value
from .models import SaveDocument


logger = logging.getLogger(__name__)


ENV_BUCKET = "COLOR_DASH_STATE_BUCKET"
ENV_KEY = "COLOR_DASH_STATE_KEY"
ENV_FERNET_KEY = "COLOR_DASH_FERNET_KEY"

DEFAULT_OBJECT_KEY = "save.json"

_PRECONDITION_CODES = ("PreconditionFailed", "412", "ConditionalRequestConflict", "409")


class OptimisticLockError(Exception):
    """Raised when the save object changed since this store last read it."""


class S3KeyValueStore(DocumentStore):
    """
    Save slot kept as one Fernet-encrypted object in S3.

    - The object is fetched once, on first access, and every getter is served
      from that cached copy. `refresh()` drops the cache.
    - Each setter uploads the whole document with a conditional PutObject:
      `If-Match` on the ETag we hold, or `If-None-Match: *` when the object
      did not exist yet. Another writer in between surfaces as
      `OptimisticLockError`, and the cache is dropped so the next read
      picks up their version.
    """

    def __init__(
        self,
        *,
        s3: Optional[object] = None,
        bucket: str,
        key: str = DEFAULT_OBJECT_KEY,
        fernet_key: str | bytes,
        region_name: Optional[str] = None,
    ) -> None:
        self._s3 = s3 or boto3.client("s3", region_name=region_name)
        self._bucket = bucket
        self._key = key
        self._fernet = Fernet(fernet_key.encode("utf-8") if isinstance(fernet_key, str) else fernet_key)
        self._values: Optional[Dict[str, Value]] = None
        self._etag: Optional[str] = None

    @classmethod
    def from_env(cls) -> "S3KeyValueStore":
        bucket = os.environ.get(ENV_BUCKET)
        fkey = os.environ.get(ENV_FERNET_KEY)
        if not bucket or not fkey:
            missing = [name for name, val in [(ENV_BUCKET, bucket), (ENV_FERNET_KEY, fkey)] if not val]
            raise RuntimeError(f"Missing required environment variables for S3 save store: {', '.join(missing)}")
        return cls(bucket=bucket, key=os.environ.get(ENV_KEY) or DEFAULT_OBJECT_KEY, fernet_key=fkey)

    @property
    def etag(self) -> Optional[str]:
        return self._etag

    def refresh(self) -> None:
        self._values = None
        self._etag = None

    def _fetch(self) -> None:
        try:
            resp = self._s3.get_object(Bucket=self._bucket, Key=self._key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                self._values, self._etag = {}, None
                return
            raise

        try:
            plaintext = self._fernet.decrypt(resp["Body"].read())
        except InvalidToken as ex:
            raise ValueError("Failed to decrypt save: invalid Fernet token") from ex
        try:
            doc = SaveDocument.model_validate_json(plaintext)
        except ValidationError as ex:
            raise ValueError("Failed to parse decrypted save") from ex

        self._values, self._etag = dict(doc.values), resp.get("ETag")
        logger.debug("[save-fetch] s3://%s/%s keys=%s", self._bucket, self._key, len(self._values))

    def _read_values(self) -> Dict[str, Value]:
        if self._values is None:
            self._fetch()
        return self._values

    def _write_values(self, values: Dict[str, Value]) -> None:
        body = self._fernet.encrypt(SaveDocument(values=values).model_dump_json().encode("utf-8"))
        condition = {"IfMatch": self._etag} if self._etag else {"IfNoneMatch": "*"}
        try:
            resp = self._s3.put_object(
                Bucket=self._bucket,
                Key=self._key,
                Body=body,
                ContentType="application/octet-stream",
                **condition,
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _PRECONDITION_CODES:
                self.refresh()
                raise OptimisticLockError(f"save object s3://{self._bucket}/{self._key} changed concurrently") from e
            raise
        self._values, self._etag = values, resp.get("ETag")
