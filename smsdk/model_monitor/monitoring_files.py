"""
smsdk/model_monitor/monitoring_files.py - 기준선/모니터링 결과 파일

statistics.json, constraints.json, constraint_violations.json을 S3에서 읽고 저장합니다.

Example:
    constraints = Constraints.from_s3_uri("s3://bucket/baseline/constraints.json")
    constraints.set_monitoring(False, feature_name="age")
    constraints.save()
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from typing import Any

from core.exceptions import APICallError, ValidationError
from smsdk.s3 import S3Downloader, S3Uploader, s3_path_join

logger = logging.getLogger(__name__)


class ModelMonitoringFile:
    """모니터링 JSON 파일 베이스

    Attributes:
        body_dict: 파일 내용
        file_s3_uri: 파일 S3 URI
        kms_key: 저장 시 사용할 KMS 키
    """

    DEFAULT_FILE_NAME = "monitoring.json"

    def __init__(self, body_dict: dict[str, Any] | None, file_s3_uri: str | None, kms_key: str | None = None, sagemaker_session=None):
        self.body_dict = body_dict
        self.file_s3_uri = file_s3_uri
        self.kms_key = kms_key
        self.session = sagemaker_session

    def __repr__(self) -> str:
        return f"{type(self).__name__}(file_s3_uri={self.file_s3_uri!r})"

    def save(self, new_save_location_s3_uri: str | None = None) -> str:
        """body_dict를 JSON으로 S3에 저장 (새 위치를 주면 file_s3_uri 갱신)"""
        if new_save_location_s3_uri is not None:
            self.file_s3_uri = new_save_location_s3_uri

        return S3Uploader.upload_string_as_file_body(
            body=json.dumps(self.body_dict),
            desired_s3_uri=self.file_s3_uri,
            kms_key=self.kms_key,
            sagemaker_session=self.session,
        )

    @classmethod
    def from_s3_uri(cls, file_s3_uri: str, kms_key: str | None = None, sagemaker_session=None):
        """S3 JSON 파일로부터 생성

        Raises:
            APICallError: 파일을 읽을 수 없는 경우
            ValidationError: JSON이 아닌 경우
        """
        try:
            body = S3Downloader.read_file(s3_uri=file_s3_uri, sagemaker_session=sagemaker_session)
        except APICallError:
            logger.error(f"{cls.__name__} 파일을 읽을 수 없습니다: {file_s3_uri}")
            raise

        try:
            body_dict = json.loads(body)
        except ValueError as e:
            raise ValidationError("file_s3_uri", file_s3_uri, "JSON 파일") from e

        return cls(body_dict, file_s3_uri, kms_key=kms_key, sagemaker_session=sagemaker_session)

    @classmethod
    def from_string(cls, file_string: str, kms_key: str | None = None, file_name: str | None = None, sagemaker_session=None):
        """문자열을 ``s3://{bucket}/monitoring/{uuid}/{file_name}``에 올린 뒤 생성"""
        if sagemaker_session is None:
            from smsdk.session import Session

            sagemaker_session = Session()
        file_name = file_name or cls.DEFAULT_FILE_NAME
        desired_s3_uri = s3_path_join(
            "s3://",
            sagemaker_session.default_bucket(),
            sagemaker_session.default_bucket_prefix,
            "monitoring",
            str(uuid.uuid4()),
            file_name,
        )
        s3_uri = S3Uploader.upload_string_as_file_body(
            body=file_string,
            desired_s3_uri=desired_s3_uri,
            kms_key=kms_key,
            sagemaker_session=sagemaker_session,
        )
        return cls.from_s3_uri(s3_uri, kms_key=kms_key, sagemaker_session=sagemaker_session)

    @classmethod
    def from_file_path(cls, file_path: str, kms_key: str | None = None, sagemaker_session=None):
        """로컬 파일을 S3에 올린 뒤 생성"""
        file_name = os.path.basename(file_path)
        with open(file_path, encoding="utf-8") as f:
            file_body = f.read()

        return cls.from_string(file_body, kms_key=kms_key, file_name=file_name, sagemaker_session=sagemaker_session)


class Statistics(ModelMonitoringFile):
    """기준선/모니터링 통계 (statistics.json)"""

    DEFAULT_FILE_NAME = "statistics.json"


class Constraints(ModelMonitoringFile):
    """기준선 제약 조건 (constraints.json)"""

    DEFAULT_FILE_NAME = "constraints.json"

    def set_monitoring(self, enable_monitoring: bool, feature_name: str | None = None) -> None:
        """제약 조건 평가 활성화/비활성화

        feature_name이 없으면 전체 평가를, 있으면 해당 특성의 문자열 제약 평가를 전환합니다.
        """
        flag = "Enabled" if enable_monitoring else "Disabled"
        if feature_name is None:
            self.body_dict.setdefault("monitoring_config", {})["evaluate_constraints"] = flag
            return

        for feature in self.body_dict.get("features", []):
            if feature["name"] == feature_name:
                string_constraints = feature.setdefault("string_constraints", {})
                overrides = string_constraints.setdefault("monitoring_config_overrides", {})
                overrides["evaluate_constraints"] = flag


class ConstraintViolations(ModelMonitoringFile):
    """모니터링 실행의 제약 조건 위반 (constraint_violations.json)"""

    DEFAULT_FILE_NAME = "constraint_violations.json"
