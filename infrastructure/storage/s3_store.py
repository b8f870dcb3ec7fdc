from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from application.common.contracts import ListPage, StorageFile
from application.common.errors import StoreError

logger = logging.getLogger(__name__)

DELETE_BATCH_SIZE = 1000


@contextmanager
def _store_errors(operation: str, key: str) -> Iterator[None]:
    try:
        yield
    except (ClientError, BotoCoreError) as exc:
        logger.error(f"S3 {operation} failed for {key!r}: {exc}")
        raise StoreError(f"{operation} {key!r}: {exc}") from exc


class S3Store:
    def __init__(self, endpoint, access_key, secret_key, region, bucket: str,
                 *, acl: Optional[str] = None, page_size: int = 1000):
        self.bucket = bucket
        self.acl = acl or None
        self.page_size = page_size
        self.client = boto3.client(
            's3',
            endpoint_url=endpoint,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            config=Config(signature_version='s3v4',
                          s3={'addressing_style': 'path'},
            ),
        )

    @classmethod
    def from_settings(cls, settings) -> "S3Store":
        return cls(
            settings.s3_endpoint,
            settings.s3_access_key,
            settings.s3_secret_key,
            settings.s3_region,
            settings.s3_bucket,
            acl=settings.s3_object_acl,
        )

    def list_page(self, prefix: str, *, delimiter: Optional[str] = '/',
                  continuation_token: Optional[str] = None) -> ListPage:
        params = {'Bucket': self.bucket, 'Prefix': prefix, 'MaxKeys': self.page_size}
        if delimiter:
            params['Delimiter'] = delimiter
        if continuation_token:
            params['ContinuationToken'] = continuation_token

        with _store_errors('list', prefix):
            data = self.client.list_objects_v2(**params)

        files = [StorageFile(key=obj['Key'], size=int(obj.get('Size', 0))) for obj in data.get('Contents', [])]
        folders = [p['Prefix'] for p in data.get('CommonPrefixes', [])]
        next_token = data.get('NextContinuationToken') if data.get('IsTruncated') else None
        return ListPage(files=files, folders=folders, next_token=next_token)

    def put_object(self, key: str, body: bytes, *, content_type: Optional[str] = None) -> None:
        params = {'Bucket': self.bucket, 'Key': key, 'Body': body}
        if content_type:
            params['ContentType'] = content_type
        if self.acl:
            params['ACL'] = self.acl
        with _store_errors('put', key):
            self.client.put_object(**params)

    def upload_file(self, key: str, local_path: str, *, content_type: Optional[str] = None) -> None:
        extra = {}
        if content_type:
            extra['ContentType'] = content_type
        if self.acl:
            extra['ACL'] = self.acl
        with _store_errors('upload', key):
            self.client.upload_file(local_path, self.bucket, key, ExtraArgs=extra or None)

    def delete_objects(self, keys: Iterable[str]) -> int:
        keys = list(keys)
        deleted = 0
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start:start + DELETE_BATCH_SIZE]
            with _store_errors('delete', batch[0]):
                resp = self.client.delete_objects(
                    Bucket=self.bucket,
                    Delete={'Objects': [{'Key': k} for k in batch], 'Quiet': True},
                )
            errors = resp.get('Errors') or []
            if errors:
                first = errors[0]
                raise StoreError(
                    f"delete: {len(errors)} of {len(batch)} keys failed, "
                    f"first {first.get('Key')!r}: {first.get('Code')} {first.get('Message')}"
                )
            deleted += len(batch)
        return deleted

    def delete_object(self, key: str) -> None:
        with _store_errors('delete', key):
            self.client.delete_object(Bucket=self.bucket, Key=key)

    def head_object(self, key: str) -> Optional[int]:
        try:
            head = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in {"404", "NoSuchKey", "NotFound"}:
                return None
            raise StoreError(f"head {key!r}: {exc}") from exc
        except BotoCoreError as exc:
            raise StoreError(f"head {key!r}: {exc}") from exc
        size = head.get("ContentLength")
        return int(size) if size is not None else 0

    def presign_get(self, key: str, expires_in: int) -> str:
        with _store_errors('presign', key):
            return self.client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket, 'Key': key},
                ExpiresIn=expires_in,
            )
