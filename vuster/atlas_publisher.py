"""
AtlasPublisher - Uploads the encoded atlas to S3-compatible storage.
"""

import asyncio
import logging
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import S3Config
from .errors import AtlasPublishError


class AtlasPublisher:
    """
    Writes the atlas to a fixed key and makes it publicly readable.

    The key is the same every cycle, so each publish overwrites the
    previous atlas in place.
    """

    CONTENT_TYPE = 'image/jpeg'

    def __init__(
        self,
        config: S3Config,
        object_key: str = 'vuster-atlas/thumbnails.jpg',
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize publisher.

        Args:
            config: S3 configuration
            object_key: Storage key the atlas is written to
            logger: Optional logger instance
        """
        self.config = config
        self.object_key = object_key
        self.logger = logger or logging.getLogger(__name__)

        self._client = boto3.client(
            's3',
            endpoint_url=config.endpoint,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            region_name=config.region,
            config=Config(
                signature_version='s3v4',
                s3={'addressing_style': 'path'}
            ),
            verify=config.verify_ssl
        )

    @property
    def client(self):
        """Return the underlying boto3 client."""
        return self._client

    def public_url(self, key: Optional[str] = None) -> str:
        """Stable public address of an object."""
        key = key or self.object_key
        if self.config.public_base_url:
            return f"{self.config.public_base_url.rstrip('/')}/{key}"
        return f"{self.config.endpoint.rstrip('/')}/{self.config.bucket}/{key}"

    def publish(self, data: bytes) -> str:
        """
        Upload the atlas and open it for public reads.

        Args:
            data: Encoded atlas image

        Returns:
            Public URL of the atlas

        Raises:
            AtlasPublishError: If the upload or ACL change fails
        """
        try:
            self._client.put_object(
                Bucket=self.config.bucket,
                Key=self.object_key,
                Body=data,
                ContentType=self.CONTENT_TYPE,
            )
            self._client.put_object_acl(
                Bucket=self.config.bucket,
                Key=self.object_key,
                ACL='public-read',
            )
        except (ClientError, BotoCoreError) as e:
            raise AtlasPublishError(
                f"Failed to publish atlas to {self.config.bucket}/{self.object_key}: {e}"
            ) from e

        url = self.public_url()
        self.logger.info(f"Published atlas ({len(data):,} bytes) to {url}")
        return url

    async def publish_async(self, data: bytes) -> str:
        """Run publish() in a worker thread."""
        return await asyncio.to_thread(self.publish, data)
