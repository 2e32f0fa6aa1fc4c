import os
import posixpath
from typing import Optional
from botocore.exceptions import ClientError

from core import config
from core.errors import ValidationError


def normalize_file_path(file_path: str) -> str:
    """Relative theme file path; absolute paths and '..' segments are rejected."""
    raw = (file_path or "").strip().replace("\\", "/")
    if not raw or raw.startswith("/") or ":" in raw.split("/")[0]:
        raise ValidationError("File path must be relative", filePath=file_path)
    parts = [p for p in raw.split("/") if p not in ("", ".")]
    if not parts or any(p == ".." for p in parts):
        raise ValidationError("Invalid file path", filePath=file_path)
    return posixpath.join(*parts)


def theme_file_key(store_id: str, theme_code: str, file_path: str) -> str:
    return f"{config.THEME_FILES_PREFIX}/{store_id}/{theme_code}/{normalize_file_path(file_path)}"


def _local_path(key: str) -> str:
    return os.path.join(config.STATIC_DIR, *key.split("/"))


def write_text_key(key: str, content: str, content_type: str = "text/plain") -> None:
    data = (content or "").encode("utf-8")
    if config.s3 and config.R2_BUCKET:
        bucket = config.s3.Bucket(config.R2_BUCKET)
        bucket.put_object(Key=key, Body=data, ContentType=f"{content_type}; charset=utf-8", ACL='private')
    else:
        path = _local_path(key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'wb') as f:
            f.write(data)


def read_text_key(key: str) -> Optional[str]:
    """File content, or None when the file does not exist"""
    if config.s3 and config.R2_BUCKET:
        obj = config.s3.Object(config.R2_BUCKET, key)
        try:
            return obj.get()["Body"].read().decode("utf-8")
        except ClientError as ce:
            # Treat missing object as None without warning noise
            if ce.response.get('Error', {}).get('Code') in ('NoSuchKey', '404'):
                return None
            raise
    path = _local_path(key)
    if not os.path.isfile(path):
        return None
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()

