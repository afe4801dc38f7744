import logging
from uuid import uuid4

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from . import config

logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE_URL = (
    "https://images.unsplash.com/photo-1494976388531-d1058494cdd8"
    "?ixlib=rb-4.0.3&auto=format&fit=crop&w=500&q=80"
)

CONTENT_TYPES = {
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
    'webp': 'image/webp',
}


class VehicleImageStore:
    """Vehicle photos in S3-compatible object storage.

    Without credentials or an endpoint every upload returns the placeholder
    URL, so the console keeps working on a bare install.
    """

    def __init__(self, bucket_name: str = None, endpoint_url: str = None, access_domain: str = None,
                 region: str = None, access_key_id: str = None, secret_access_key: str = None):
        self.bucket_name = bucket_name or config.S3_BUCKET_NAME
        self.endpoint_url = endpoint_url if endpoint_url is not None else config.S3_ENDPOINT_URL
        self.access_domain = access_domain if access_domain is not None else config.S3_ACCESS_DOMAIN
        self.region = region or config.AWS_REGION
        access_key_id = access_key_id or config.AWS_ACCESS_KEY_ID
        secret_access_key = secret_access_key or config.AWS_SECRET_ACCESS_KEY

        self.session = None
        if self.endpoint_url and access_key_id and secret_access_key:
            self.session = aioboto3.Session(
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
                region_name=self.region
            )
            logger.info(f"Initialized image storage session: {self.endpoint_url}")
        else:
            logger.warning("Image storage not configured, uploads will use placeholder URLs")

    @property
    def configured(self) -> bool:
        return self.session is not None

    def file_url(self, file_key: str) -> str:
        if self.access_domain:
            return f"https://{self.access_domain}/{file_key}"
        return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{file_key}"

    def content_type(self, file_extension: str) -> str:
        return CONTENT_TYPES.get(file_extension.lower(), 'application/octet-stream')

    async def upload(self, file, filename: str) -> str:
        """Upload a vehicle photo and return its public URL, or the placeholder."""
        if not self.configured:
            logger.warning("Image storage not available, using placeholder")
            return PLACEHOLDER_IMAGE_URL

        file_extension = filename.rsplit('.', 1)[-1].lower() if '.' in filename else 'bin'
        file_key = f"vehicles/{uuid4()}.{file_extension}"

        try:
            async with self.session.client('s3', endpoint_url=self.endpoint_url) as s3_client:
                if hasattr(file, 'seek'):
                    file.seek(0)
                await s3_client.upload_fileobj(
                    file,
                    self.bucket_name,
                    file_key,
                    ExtraArgs={
                        'ACL': 'public-read',
                        'ContentType': self.content_type(file_extension)
                    }
                )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Image upload error: {e}")
            logger.warning("Upload failed, using placeholder")
            return PLACEHOLDER_IMAGE_URL

        url = self.file_url(file_key)
        logger.info(f"Image uploaded successfully: {url}")
        return url

    async def delete(self, file_url: str) -> bool:
        if not self.configured or not file_url or file_url == PLACEHOLDER_IMAGE_URL:
            return False

        file_key = "vehicles/" + file_url.rsplit('/', 1)[-1]
        try:
            async with self.session.client('s3', endpoint_url=self.endpoint_url) as s3_client:
                await s3_client.delete_object(Bucket=self.bucket_name, Key=file_key)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Image delete error: {e}")
            return False
        logger.info(f"Image deleted: {file_key}")
        return True
