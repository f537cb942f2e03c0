"""
Media host abstraction for profile images: Cloudinary, S3-compatible buckets
and an in-memory test double.
"""

from __future__ import annotations

import base64
import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Optional, Protocol

import boto3
import cloudinary
import cloudinary.uploader
from botocore.config import Config

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}

_DATA_URI = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.*)$", re.DOTALL)


class MediaClient(Protocol):
    """Defines the operations the API needs from the media host."""

    def upload_image(
        self, data_uri: str, *, folder: str, transformation: list[dict]
    ) -> str:
        ...


def to_data_uri(content: bytes, content_type: str) -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


def parse_data_uri(data_uri: str) -> tuple[str, bytes]:
    match = _DATA_URI.match(data_uri)
    if not match:
        raise ValueError("Expected a base64 data URI")
    return match.group("mime"), base64.b64decode(match.group("data"))


def _object_name(folder: str, content_type: str) -> str:
    extension = _EXTENSIONS.get(content_type, "bin")
    return f"{folder}/{uuid.uuid4().hex}.{extension}"


@dataclass
class InMemoryMediaClient:
    """Test double for media uploads."""

    base_url: str = "https://example.test/media"
    uploads: list = field(default_factory=list)

    def upload_image(
        self, data_uri: str, *, folder: str, transformation: list[dict]
    ) -> str:
        content_type, content = parse_data_uri(data_uri)
        url = f"{self.base_url}/{_object_name(folder, content_type)}"
        self.uploads.append(
            {
                "url": url,
                "folder": folder,
                "transformation": transformation,
                "content_type": content_type,
                "content": content,
            }
        )
        return url


def cloudinary_configured() -> bool:
    """True when the SDK picked up credentials, e.g. from ``CLOUDINARY_URL``."""
    return bool(cloudinary.config().cloud_name)


@dataclass
class CloudinaryMediaClient:
    """
    Uploads through the Cloudinary SDK.

    Credentials left empty keep whatever the SDK read from ``CLOUDINARY_URL``.
    """

    cloud_name: Optional[str] = None
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    timeout: float = 30.0

    def __post_init__(self):
        credentials = {
            "cloud_name": self.cloud_name,
            "api_key": self.api_key,
            "api_secret": self.api_secret,
        }
        cloudinary.config(secure=True, **{k: v for k, v in credentials.items() if v})

    def upload_image(
        self, data_uri: str, *, folder: str, transformation: list[dict]
    ) -> str:
        result = cloudinary.uploader.upload(
            data_uri,
            folder=folder,
            transformation=transformation,
            resource_type="image",
            timeout=self.timeout,
        )
        return result["secure_url"]


@dataclass
class S3MediaClient:
    """
    S3-compatible bucket used as a plain image host.

    Images are stored as uploaded; transformation steps are not applied.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: Optional[str] = None

    def __post_init__(self):
        # Use virtual-hosted style addressing to satisfy COS/S3 requirements.
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.endpoint:
            return f"{self.endpoint.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"

    def upload_image(
        self, data_uri: str, *, folder: str, transformation: list[dict]
    ) -> str:
        content_type, content = parse_data_uri(data_uri)
        key = _object_name(folder, content_type)
        logger.debug("Storing %s without transformations", key)
        self._client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=content,
            ContentType=content_type,
        )
        return self.public_url(key)
