"""
smsdk/model_monitor/data_capture_config.py - 엔드포인트 데이터 캡처 설정
"""

from __future__ import annotations

from typing import Any

from smsdk.s3 import s3_path_join

_MODEL_MONITOR_S3_PATH = "model-monitor"
_DATA_CAPTURE_S3_PATH = "data-capture"

# CaptureOptions 이름 -> API CaptureMode
_CAPTURE_MODES = {"REQUEST": "Input", "RESPONSE": "Output"}


class DataCaptureConfig:
    """엔드포인트 구성의 DataCaptureConfig

    Attributes:
        enable_capture: 캡처 활성화 여부
        sampling_percentage: 캡처할 요청 비율 (0-100)
        destination_s3_uri: 캡처 저장 위치 (기본: ``s3://{default_bucket}/model-monitor/data-capture``)
        kms_key_id: 캡처 암호화 KMS 키
        capture_options: "REQUEST", "RESPONSE" 목록
        csv_content_types: CSV로 취급할 Content-Type 목록
        json_content_types: JSON으로 취급할 Content-Type 목록
    """

    def __init__(
        self,
        enable_capture: bool,
        sampling_percentage: int = 20,
        destination_s3_uri: str | None = None,
        kms_key_id: str | None = None,
        capture_options: list[str] | None = None,
        csv_content_types: list[str] | None = None,
        json_content_types: list[str] | None = None,
        sagemaker_session=None,
    ):
        self.enable_capture = enable_capture
        self.sampling_percentage = sampling_percentage
        self.destination_s3_uri = destination_s3_uri
        if self.destination_s3_uri is None:
            if sagemaker_session is None:
                from smsdk.session import Session

                sagemaker_session = Session()
            self.destination_s3_uri = s3_path_join(
                "s3://",
                sagemaker_session.default_bucket(),
                sagemaker_session.default_bucket_prefix,
                _MODEL_MONITOR_S3_PATH,
                _DATA_CAPTURE_S3_PATH,
            )

        self.kms_key_id = kms_key_id
        self.capture_options = capture_options or ["REQUEST", "RESPONSE"]
        self.csv_content_types = csv_content_types or ["text/csv"]
        self.json_content_types = json_content_types or ["application/json"]

    def _to_request_dict(self) -> dict[str, Any]:
        request_dict: dict[str, Any] = {
            "EnableCapture": self.enable_capture,
            "InitialSamplingPercentage": self.sampling_percentage,
            "DestinationS3Uri": self.destination_s3_uri,
            "CaptureOptions": [
                {"CaptureMode": _CAPTURE_MODES.get(option.upper(), option)} for option in self.capture_options
            ],
        }

        if self.kms_key_id is not None:
            request_dict["KmsKeyId"] = self.kms_key_id

        if self.csv_content_types is not None or self.json_content_types is not None:
            request_dict["CaptureContentTypeHeader"] = {}
        if self.csv_content_types is not None:
            request_dict["CaptureContentTypeHeader"]["CsvContentTypes"] = self.csv_content_types
        if self.json_content_types is not None:
            request_dict["CaptureContentTypeHeader"]["JsonContentTypes"] = self.json_content_types

        return request_dict
