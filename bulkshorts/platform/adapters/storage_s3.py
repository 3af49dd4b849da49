import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError
from bulkshorts.platform.ports.object_storage import ObjectStoragePort
from bulkshorts.core.config import settings
from bulkshorts.core.errors import StorageAccessError

_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}

class S3Storage(ObjectStoragePort):
    def __init__(self, client=None, bucket: str | None = None):
        if client is None:
            session = boto3.session.Session(
                aws_access_key_id=settings.S3_ACCESS_KEY,
                aws_secret_access_key=settings.S3_SECRET_KEY,
                region_name=settings.S3_REGION,
            )
            client = session.client(
                "s3",
                endpoint_url=settings.S3_ENDPOINT_URL,
                config=Config(signature_version="s3v4"),
            )
        self.s3 = client
        self.bucket = bucket or settings.S3_BUCKET

    def presign_download(self, key: str, expires_seconds: int = 900) -> str:
        return self.s3.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=expires_seconds,
        )

    def put_bytes(self, key: str, data: bytes, content_type: str) -> None:
        try:
            self.s3.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        except (BotoCoreError, ClientError) as e:
            raise StorageAccessError(f"cannot write object {key}: {e}") from e

    def get_bytes(self, key: str) -> bytes | None:
        try:
            obj = self.s3.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_CODES:
                return None
            raise StorageAccessError(f"cannot read object {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageAccessError(f"cannot read object {key}: {e}") from e
        return obj["Body"].read()

    def delete(self, key: str) -> None:
        try:
            self.s3.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageAccessError(f"cannot delete object {key}: {e}") from e
