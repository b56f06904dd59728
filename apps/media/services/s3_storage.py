"""
S3-compatible storage implementation.
Works with AWS S3, Cloudflare R2, MinIO, and other S3-compatible services.
"""
import asyncio
import logging
from typing import List, Optional, Union

import boto3
from botocore.exceptions import ClientError

from apps.media.errors import ImageNotFoundError
from apps.media.services.image_storage import ImageStorage, normalize_path
from apps.media.services.utils.image_utils import content_type_for

logger = logging.getLogger("mediastore.storage")

# delete_objects accepts at most 1000 keys per call
DELETE_BATCH_SIZE = 1000

MISSING_CODES = ('404', 'NoSuchKey', 'NotFound')


def _prefix(directory: str) -> str:
    directory = normalize_path(directory)
    return f"{directory}/" if directory else ""


class S3Storage(ImageStorage):
    """S3-compatible storage with support for AWS S3, Cloudflare R2, MinIO"""

    name = "s3"

    def __init__(
        self,
        bucket_name: str,
        endpoint_url: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        region_name: str = "us-east-1",
        client=None,
    ):
        """
        Initialize S3-compatible storage.

        Args:
            bucket_name: S3 bucket name
            endpoint_url: S3 endpoint (None for AWS, custom for MinIO/R2)
            access_key_id: AWS/S3 access key
            secret_access_key: AWS/S3 secret key
            region_name: AWS region or 'auto' for R2
            client: Pre-built boto3 client (tests)
        """
        self.bucket_name = bucket_name
        self.s3_client = client or boto3.client(
            's3',
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region_name,
            config=boto3.session.Config(signature_version='s3v4')
        )

    async def _run(self, fn):
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, fn)

    async def exists(self, path: str) -> bool:
        key = normalize_path(path)
        try:
            # head_object is cheap and does not download the body
            await self._run(lambda: self.s3_client.head_object(Bucket=self.bucket_name, Key=key))
            return True
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in MISSING_CODES:
                return False
            raise

    async def get(self, path: str) -> bytes:
        key = normalize_path(path)
        try:
            response = await self._run(
                lambda: self.s3_client.get_object(Bucket=self.bucket_name, Key=key)
            )
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in MISSING_CODES:
                raise ImageNotFoundError(path)
            raise
        return await self._run(response['Body'].read)

    async def put(self, path: str, data: bytes) -> None:
        key = normalize_path(path)
        await self._run(
            lambda: self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type_for(key),
            )
        )

    async def set_public(self, path: str) -> None:
        key = normalize_path(path)
        await self._run(
            lambda: self.s3_client.put_object_acl(
                Bucket=self.bucket_name, Key=key, ACL='public-read'
            )
        )

    async def delete(self, paths: Union[str, List[str]]) -> None:
        if isinstance(paths, str):
            paths = [paths]
        keys = [normalize_path(p) for p in paths]
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start:start + DELETE_BATCH_SIZE]
            response = await self._run(
                lambda: self.s3_client.delete_objects(
                    Bucket=self.bucket_name,
                    Delete={'Objects': [{'Key': k} for k in batch], 'Quiet': True},
                )
            )
            errors = response.get('Errors') or []
            if errors:
                first = errors[0]
                raise RuntimeError(
                    f"Failed to delete {len(errors)} object(s), first {first.get('Key')}: {first.get('Message')}"
                )

    async def _list(self, directory: str, delimited: bool) -> dict:
        params = {'Bucket': self.bucket_name, 'Prefix': _prefix(directory)}
        if delimited:
            params['Delimiter'] = '/'

        def collect():
            files, dirs = [], []
            paginator = self.s3_client.get_paginator('list_objects_v2')
            for page in paginator.paginate(**params):
                files.extend(obj['Key'] for obj in page.get('Contents', []))
                dirs.extend(p['Prefix'].rstrip('/') for p in page.get('CommonPrefixes', []))
            return {'files': files, 'directories': dirs}

        return await self._run(collect)

    async def files(self, directory: str) -> List[str]:
        listing = await self._list(directory, delimited=True)
        return sorted(k for k in listing['files'] if not k.endswith('/'))

    async def directories(self, directory: str) -> List[str]:
        listing = await self._list(directory, delimited=True)
        return sorted(listing['directories'])

    async def all_files(self, directory: str) -> List[str]:
        listing = await self._list(directory, delimited=False)
        return sorted(k for k in listing['files'] if not k.endswith('/'))

    async def delete_directory(self, directory: str) -> None:
        if not normalize_path(directory):
            raise ValueError("Refusing to delete the bucket root")
        # Directories are only key prefixes; drop everything below it
        listing = await self._list(directory, delimited=False)
        if listing['files']:
            logger.debug(f"Removing {len(listing['files'])} object(s) under {directory}")
            await self.delete(listing['files'])
