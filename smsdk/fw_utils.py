"""
smsdk/fw_utils.py - 프레임워크 추정기/모델 공용 유틸리티

사용자 코드(entry_point + source_dir + dependencies)를 ``sourcedir.tar.gz``로 묶어 업로드하고,
이미지 URI에서 프레임워크 이름과 버전을 추출합니다.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import tempfile
from collections import namedtuple

from core.exceptions import ValidationError
from smsdk.utils import base_name_from_image, create_tar_file

logger = logging.getLogger(__name__)

UploadedCode = namedtuple("UploadedCode", ["s3_prefix", "script_name"])
"""업로드된 사용자 코드 위치 (s3_prefix: tar.gz 객체 URI, script_name: 진입점 파일 이름)"""

SOURCE_ARCHIVE_NAME = "sourcedir.tar.gz"

_ECR_URI_PATTERN = re.compile(r"^(\d+)(\.)dkr(\.)ecr(\.)(.+)(\.)(.*)(/)(.*:.*)$")
_FRAMEWORK_TAG_PATTERN = re.compile(
    r"^(?:sagemaker(?:-rl)?-)?"
    r"(tensorflow|mxnet|chainer|pytorch|scikit-learn|xgboost)"
    r"(?:-)?(scriptmode|training|inference)?"
    r":(.*)-(.*?)-(py2|py3\d*)(?:.*)$"
)
_XGBOOST_TAG_PATTERN = re.compile(r"^sagemaker-(xgboost):(.*?)(?:-cpu-py3)?$")
_VERSION_TAG_PATTERN = re.compile(r"^(.*)-(cpu|gpu|inf)-(py2|py3\d*)$")


def tar_and_upload_dir(
    session,
    bucket: str,
    s3_key_prefix: str,
    script: str,
    directory: str | None = None,
    dependencies: list[str] | None = None,
    kms_key: str | None = None,
) -> UploadedCode:
    """사용자 코드를 압축해 S3에 업로드

    directory가 이미 S3 URI면 업로드하지 않고 그대로 사용합니다.

    Args:
        session: smsdk Session
        bucket: 대상 버킷
        s3_key_prefix: 대상 키 prefix (``{prefix}/sourcedir.tar.gz``로 저장)
        script: 진입점 스크립트 경로
        directory: 소스 디렉토리 (없으면 script 파일만 업로드)
        dependencies: 함께 묶을 추가 경로
        kms_key: SSE-KMS 키 ID

    Returns:
        UploadedCode
    """
    if directory and directory.lower().startswith("s3://"):
        return UploadedCode(s3_prefix=directory, script_name=os.path.basename(script))

    script_name = script if directory else os.path.basename(script)
    dependencies = dependencies or []
    key = f"{s3_key_prefix}/{SOURCE_ARCHIVE_NAME}"
    tmp = tempfile.mkdtemp()

    try:
        source_files = _list_files_to_compress(script, directory) + dependencies
        tar_file = create_tar_file(source_files, os.path.join(tmp, SOURCE_ARCHIVE_NAME))

        extra_args = {"ServerSideEncryption": "aws:kms", "SSEKMSKeyId": kms_key} if kms_key else None
        session.s3_client.upload_file(tar_file, bucket, key, ExtraArgs=extra_args)
        logger.debug(f"사용자 코드 업로드: s3://{bucket}/{key}")
    finally:
        shutil.rmtree(tmp)

    return UploadedCode(s3_prefix=f"s3://{bucket}/{key}", script_name=script_name)


def _list_files_to_compress(script: str, directory: str | None) -> list[str]:
    if directory is None:
        return [script]

    basedir = directory if directory else os.path.dirname(script)
    return [os.path.join(basedir, name) for name in os.listdir(basedir)]


def validate_source_dir(script: str, directory: str | None) -> bool:
    """source_dir 안에 진입점 스크립트가 있는지 확인

    Raises:
        ValidationError: 스크립트 파일이 없는 경우
    """
    if directory:
        if not os.path.isfile(os.path.join(directory, script)):
            raise ValidationError("entry_point", script, f"{directory} 안에 존재하는 파일")
    return True


def model_code_key_prefix(code_location_key_prefix: str | None, model_name: str | None, image: str) -> str:
    """모델 코드 업로드 키 prefix (``{prefix}/{model_name 또는 이미지 기반 이름}``)"""
    training_job_name = model_name or base_name_from_image(image)
    return "/".join(filter(None, [code_location_key_prefix, training_job_name]))


def framework_name_from_image(image_uri: str) -> tuple[str | None, str | None, str | None, str | None]:
    """SageMaker 프레임워크 이미지 URI에서 (프레임워크, py 버전, 태그, 모드) 추출

    SageMaker 이미지가 아니면 모든 값이 None입니다.

    Example:
        >>> framework_name_from_image("763104351884.dkr.ecr.us-east-1.amazonaws.com/pytorch-training:2.0.1-gpu-py310")
        ('pytorch', 'py310', '2.0.1-gpu-py310', 'training')
    """
    sagemaker_match = _ECR_URI_PATTERN.match(image_uri)
    if sagemaker_match is None:
        return None, None, None, None

    repo_and_tag = sagemaker_match.group(9)
    name_match = _FRAMEWORK_TAG_PATTERN.match(repo_and_tag)
    if name_match is not None:
        fw, scriptmode, ver, device, py = name_match.groups()
        return fw, py, f"{ver}-{device}-{py}", scriptmode

    xgboost_match = _XGBOOST_TAG_PATTERN.match(repo_and_tag)
    if xgboost_match is not None:
        return xgboost_match.group(1), "py3", xgboost_match.group(2), None

    return None, None, None, None


def framework_version_from_tag(image_tag: str) -> str | None:
    """``{version}-{device}-{py}`` 태그에서 버전 추출"""
    match = _VERSION_TAG_PATTERN.match(image_tag)
    return None if match is None else match.group(1)


def validate_version_or_image_args(framework_version: str | None, py_version: str | None, image_uri: str | None) -> None:
    """framework_version과 py_version이 모두 있거나 image_uri가 있어야 함

    Raises:
        ValidationError: 조건을 만족하지 않는 경우
    """
    if (framework_version is None or py_version is None) and image_uri is None:
        raise ValidationError(
            "framework_version/py_version",
            f"{framework_version}/{py_version}",
            "framework_version과 py_version 모두 지정 또는 image_uri 지정",
        )
