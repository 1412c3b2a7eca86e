"""Image uploads to S3-compatible object storage."""

from __future__ import annotations

import os
import re
import time
from pathlib import Path
from typing import Any, Optional, Union

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from policy_relay.client.errors import UploadError


def build_s3_client() -> Any:
    """Create an S3 client from the standard AWS environment variables."""
    region = os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION")
    kwargs: dict[str, Any] = {"service_name": "s3", "region_name": region}
    if os.environ.get("AWS_ACCESS_KEY_ID") and os.environ.get("AWS_SECRET_ACCESS_KEY"):
        kwargs.update(
            aws_access_key_id=os.environ["AWS_ACCESS_KEY_ID"],
            aws_secret_access_key=os.environ["AWS_SECRET_ACCESS_KEY"],
        )
    return boto3.client(**kwargs)


class ImageUploader:
    """Push JPEG images into one bucket under a key prefix.

    Parameters
    ----------
    s3_client:
        A boto3 S3 client (``build_s3_client()`` when omitted).
    bucket:
        Target bucket; defaults to ``S3_BUCKET_NAME``.
    key_prefix:
        Folder-like prefix prepended to every object key.
    """

    def __init__(
        self,
        s3_client: Any = None,
        bucket: Optional[str] = None,
        key_prefix: str = "food_uploads/",
    ) -> None:
        self.bucket = bucket or os.environ.get("S3_BUCKET_NAME", "")
        if not self.bucket:
            raise UploadError("No bucket configured (set S3_BUCKET_NAME)")
        self.s3 = s3_client if s3_client is not None else build_s3_client()
        self.key_prefix = key_prefix

    def object_key(self, path: Path, name: Optional[str] = None) -> str:
        stem = re.sub(r"\s+", "_", (name or path.stem).strip()) or "image"
        return f"{self.key_prefix}{stem}_{int(time.time() * 1000)}.jpg"

    def upload(self, path: Union[str, Path], name: Optional[str] = None) -> str:
        """Upload the file at *path* and return its public URL."""
        path = Path(path)
        key = self.object_key(path, name)
        try:
            with path.open("rb") as fh:
                self.s3.upload_fileobj(fh, self.bucket, key, ExtraArgs={"ContentType": "image/jpeg"})
        except OSError as exc:
            raise UploadError(f"Cannot read image {path}: {exc}") from exc
        except (BotoCoreError, ClientError) as exc:
            logger.error("S3 upload of {key} failed: {err}", key=key, err=exc)
            raise UploadError(f"Failed to upload image to S3: {exc}") from exc

        url = f"https://{self.bucket}.s3.amazonaws.com/{key}"
        logger.info("Uploaded {path} to {url}", path=path, url=url)
        return url
