"""
smsdk/inputs.py - 학습/변환 작업 입력 채널 정의

TrainingInput과 FileSystemInput은 CreateTrainingJob의 Channel 구조를
``config`` 속성에 그대로 보관합니다.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from core.exceptions import ValidationError

FILE_SYSTEM_TYPES = ("FSxLustre", "EFS")
FILE_SYSTEM_ACCESS_MODES = ("ro", "rw")


class ShuffleConfig:
    """채널 데이터 셔플 시드"""

    def __init__(self, seed: int):
        self.seed = seed


class TrainingInput:
    """S3 기반 학습 입력 채널

    Attributes:
        config: CreateTrainingJob InputDataConfig 항목 (ChannelName 제외)
    """

    def __init__(
        self,
        s3_data: str,
        distribution: str | None = None,
        compression: str | None = None,
        content_type: str | None = None,
        record_wrapping: str | None = None,
        s3_data_type: str = "S3Prefix",
        input_mode: str | None = None,
        attribute_names: list[str] | None = None,
        target_attribute_name: str | None = None,
        shuffle_config: ShuffleConfig | None = None,
    ):
        self.config: dict[str, Any] = {
            "DataSource": {"S3DataSource": {"S3DataType": s3_data_type, "S3Uri": s3_data}}
        }

        if not (target_attribute_name or distribution):
            distribution = "FullyReplicated"

        if distribution is not None:
            self.config["DataSource"]["S3DataSource"]["S3DataDistributionType"] = distribution
        if compression is not None:
            self.config["CompressionType"] = compression
        if content_type is not None:
            self.config["ContentType"] = content_type
        if record_wrapping is not None:
            self.config["RecordWrapperType"] = record_wrapping
        if input_mode is not None:
            self.config["InputMode"] = input_mode
        if attribute_names is not None:
            self.config["DataSource"]["S3DataSource"]["AttributeNames"] = attribute_names
        if target_attribute_name is not None:
            self.config["TargetAttributeName"] = target_attribute_name
        if shuffle_config is not None:
            self.config["ShuffleConfig"] = {"Seed": shuffle_config.seed}


class FileSystemInput:
    """EFS/FSx for Lustre 학습 입력 채널"""

    def __init__(
        self,
        file_system_id: str,
        file_system_type: str,
        directory_path: str,
        file_system_access_mode: str = "ro",
        content_type: str | None = None,
    ):
        if file_system_type not in FILE_SYSTEM_TYPES:
            raise ValidationError("file_system_type", file_system_type, " 또는 ".join(FILE_SYSTEM_TYPES))
        if file_system_access_mode not in FILE_SYSTEM_ACCESS_MODES:
            raise ValidationError(
                "file_system_access_mode", file_system_access_mode, " 또는 ".join(FILE_SYSTEM_ACCESS_MODES)
            )

        self.config: dict[str, Any] = {
            "DataSource": {
                "FileSystemDataSource": {
                    "FileSystemId": file_system_id,
                    "FileSystemType": file_system_type,
                    "DirectoryPath": directory_path,
                    "FileSystemAccessMode": file_system_access_mode,
                }
            }
        }
        if content_type:
            self.config["ContentType"] = content_type


@dataclass
class TransformInput:
    """CreateTransformJob TransformInput 구성값"""

    data: str
    data_type: str = "S3Prefix"
    content_type: str | None = None
    compression_type: str | None = None
    split_type: str | None = None

    def to_request_dict(self) -> dict[str, Any]:
        config: dict[str, Any] = {"DataSource": {"S3DataSource": {"S3DataType": self.data_type, "S3Uri": self.data}}}
        if self.content_type is not None:
            config["ContentType"] = self.content_type
        if self.compression_type is not None:
            config["CompressionType"] = self.compression_type
        if self.split_type is not None:
            config["SplitType"] = self.split_type
        return config
