"""
smsdk/s3.py - S3 경로 파싱 및 업로드/다운로드 헬퍼

Usage:
    from smsdk.s3 import S3Uploader, parse_s3_url, s3_path_join

    bucket, key = parse_s3_url("s3://bucket/prefix/data.csv")
    uri = S3Uploader.upload("train.csv", "s3://bucket/data", sagemaker_session=session)
"""

from __future__ import annotations

import logging
import os
from urllib.parse import urlparse

from core.exceptions import ValidationError
from smsdk.session import Session

logger = logging.getLogger(__name__)


def parse_s3_url(url: str) -> tuple[str, str]:
    """S3 URI를 (bucket, key)로 분리

    Raises:
        ValidationError: s3:// 스킴이 아닌 경우
    """
    parsed_url = urlparse(url)
    if parsed_url.scheme != "s3":
        raise ValidationError("url", url, "s3://bucket/key 형식")
    return parsed_url.netloc, parsed_url.path.lstrip("/")


def is_s3_url(url: str) -> bool:
    """s3:// 스킴 여부"""
    return isinstance(url, str) and url.lower().startswith("s3://")


def s3_path_join(*args: str) -> str:
    """중복 슬래시 없이 S3 경로 조각을 연결

    첫 조각이 ``s3://`` 로 시작하면 스킴을 보존합니다.
    빈 조각은 무시합니다.
    """
    if args and args[0].startswith("s3://"):
        parts = (args[0][len("s3://") :],) + args[1:]
        return "s3://" + "/".join(a.strip("/") for a in parts if a and a.strip("/"))
    return "/".join(a.strip("/") for a in args if a and a.strip("/"))


class S3Uploader:
    """로컬 파일/문자열을 S3로 업로드"""

    @staticmethod
    def upload(local_path: str, desired_s3_uri: str, kms_key: str | None = None, sagemaker_session=None) -> str:
        """로컬 파일 또는 디렉토리를 desired_s3_uri 아래로 업로드

        Returns:
            업로드된 S3 URI (디렉토리면 prefix)
        """
        sagemaker_session = sagemaker_session or Session()
        bucket, key_prefix = parse_s3_url(desired_s3_uri)
        extra_args = {"SSEKMSKeyId": kms_key, "ServerSideEncryption": "aws:kms"} if kms_key else None
        return sagemaker_session.upload_data(
            path=local_path, bucket=bucket, key_prefix=key_prefix, extra_args=extra_args
        )

    @staticmethod
    def upload_string_as_file_body(
        body: str, desired_s3_uri: str, kms_key: str | None = None, sagemaker_session=None
    ) -> str:
        """문자열을 S3 객체 본문으로 업로드"""
        sagemaker_session = sagemaker_session or Session()
        bucket, key = parse_s3_url(desired_s3_uri)
        return sagemaker_session.upload_string_as_file_body(body=body, bucket=bucket, key=key, kms_key=kms_key)


class S3Downloader:
    """S3 객체 다운로드/조회"""

    @staticmethod
    def download(s3_uri: str, local_path: str, kms_key: str | None = None, sagemaker_session=None) -> list[str]:
        """S3 prefix 아래 객체를 local_path로 내려받기

        Returns:
            내려받은 로컬 파일 경로 목록
        """
        sagemaker_session = sagemaker_session or Session()
        bucket, key_prefix = parse_s3_url(s3_uri)
        extra_args = {"SSECustomerKey": kms_key} if kms_key else None
        return sagemaker_session.download_data(
            path=local_path, bucket=bucket, key_prefix=key_prefix, extra_args=extra_args
        )

    @staticmethod
    def read_file(s3_uri: str, sagemaker_session=None) -> str:
        """S3 객체 본문을 UTF-8 문자열로 반환"""
        sagemaker_session = sagemaker_session or Session()
        bucket, key_prefix = parse_s3_url(s3_uri)
        return sagemaker_session.read_s3_file(bucket, key_prefix)

    @staticmethod
    def list(s3_uri: str, sagemaker_session=None) -> list[str]:
        """S3 prefix 아래 객체 URI 목록"""
        sagemaker_session = sagemaker_session or Session()
        bucket, key_prefix = parse_s3_url(s3_uri)
        file_keys = sagemaker_session.list_s3_files(bucket=bucket, key_prefix=key_prefix)
        return [os.path.join("s3://", bucket, file_key) for file_key in file_keys]
