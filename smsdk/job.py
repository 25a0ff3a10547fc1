"""
smsdk/job.py - 작업 공통 베이스와 요청 구성 헬퍼

추정기 설정과 입력 채널을 CreateTrainingJob 요청 구조
(InputDataConfig, OutputDataConfig, ResourceConfig, StoppingCondition, VpcConfig)로 변환합니다.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from core.exceptions import ValidationError
from smsdk.inputs import FileSystemInput, TrainingInput


class _Job(ABC):
    """SageMaker 작업 핸들 베이스

    Attributes:
        sagemaker_session: 작업을 생성한 Session
        job_name: 작업 이름
    """

    def __init__(self, sagemaker_session, job_name: str):
        self.sagemaker_session = sagemaker_session
        self.job_name = job_name

    @abstractmethod
    def start_new(self, estimator, inputs):
        """작업 생성"""

    @abstractmethod
    def wait(self):
        """작업 종료까지 대기"""

    @abstractmethod
    def describe(self) -> dict[str, Any]:
        """Describe 응답"""

    @abstractmethod
    def stop(self) -> None:
        """작업 중지"""

    @property
    def name(self) -> str:
        return self.job_name

    @staticmethod
    def _load_config(inputs, estimator, expand_role: bool = True, validate_uri: bool = True) -> dict[str, Any]:
        """추정기와 입력으로 학습 요청의 공통 구성값 생성

        Returns:
            input_config, role, output_config, resource_config, stop_condition, vpc_config 키를 가진 딕셔너리
        """
        input_config = _Job._format_inputs_to_input_config(inputs, validate_uri)
        role = (
            estimator.sagemaker_session.expand_role(estimator.role)
            if (expand_role and estimator.role)
            else estimator.role
        )
        output_config = _Job._prepare_output_config(estimator.output_path, estimator.output_kms_key)
        resource_config = _Job._prepare_resource_config(
            estimator.instance_count,
            estimator.instance_type,
            estimator.volume_size,
            estimator.volume_kms_key,
        )
        stop_condition = _Job._prepare_stop_condition(estimator.max_run, estimator.max_wait)
        vpc_config = estimator.get_vpc_config()

        model_channel = _Job._prepare_channel(
            input_config, estimator.model_uri, estimator.model_channel_name, validate_uri, is_model=True
        )
        if model_channel:
            input_config = [] if input_config is None else input_config
            input_config.append(model_channel)

        if estimator.enable_network_isolation():
            code_channel = _Job._prepare_channel(
                input_config, estimator.code_uri, estimator.code_channel_name, validate_uri
            )
            if code_channel:
                input_config = [] if input_config is None else input_config
                input_config.append(code_channel)

        return {
            "input_config": input_config,
            "role": role,
            "output_config": output_config,
            "resource_config": resource_config,
            "stop_condition": stop_condition,
            "vpc_config": vpc_config,
        }

    @staticmethod
    def _format_inputs_to_input_config(inputs, validate_uri: bool = True) -> list[dict[str, Any]] | None:
        """fit() 입력을 InputDataConfig 채널 목록으로 변환

        허용 형식:
            - str: "training" 채널의 S3 URI
            - TrainingInput / FileSystemInput: "training" 채널
            - dict: 채널 이름 -> 위 형식 중 하나
        """
        if inputs is None:
            return None

        input_dict: dict[str, Any] = {}
        if isinstance(inputs, str):
            input_dict["training"] = _Job._format_string_uri_input(inputs, validate_uri)
        elif isinstance(inputs, (TrainingInput, FileSystemInput)):
            input_dict["training"] = inputs
        elif isinstance(inputs, dict):
            for k, v in inputs.items():
                input_dict[k] = _Job._format_string_uri_input(v, validate_uri)
        else:
            raise ValidationError("inputs", type(inputs).__name__, "str, dict, TrainingInput 또는 FileSystemInput")

        channels = [_Job._convert_input_to_channel(name, input_) for name, input_ in input_dict.items()]
        return channels

    @staticmethod
    def _convert_input_to_channel(channel_name: str, channel_s3_input) -> dict[str, Any]:
        channel_config = dict(channel_s3_input.config)
        channel_config["ChannelName"] = channel_name
        return channel_config

    @staticmethod
    def _format_string_uri_input(uri_input, validate_uri: bool = True, content_type: str | None = None, input_mode: str | None = None):
        """문자열 URI를 TrainingInput으로 변환. 입력 객체는 그대로 반환

        Raises:
            ValidationError: s3:// 또는 file:// 이 아닌 URI인 경우
        """
        if isinstance(uri_input, str) and validate_uri and uri_input.startswith("s3://"):
            return TrainingInput(uri_input, content_type=content_type, input_mode=input_mode)
        if isinstance(uri_input, str) and validate_uri and uri_input.startswith("file://"):
            raise ValidationError("inputs", uri_input, "s3:// URI (로컬 모드는 지원하지 않음)")
        if isinstance(uri_input, str) and validate_uri:
            raise ValidationError("inputs", uri_input, "s3:// URI")
        if isinstance(uri_input, str):
            return TrainingInput(uri_input, content_type=content_type, input_mode=input_mode)
        if isinstance(uri_input, (TrainingInput, FileSystemInput)):
            return uri_input

        raise ValidationError("inputs", type(uri_input).__name__, "str, TrainingInput 또는 FileSystemInput")

    @staticmethod
    def _prepare_channel(
        input_config: list[dict[str, Any]] | None,
        channel_uri: str | None = None,
        channel_name: str | None = None,
        validate_uri: bool = True,
        is_model: bool = False,
    ) -> dict[str, Any] | None:
        if not channel_uri:
            return None
        if not channel_name:
            raise ValidationError("channel_name", channel_name, f"채널 URI {channel_uri}에 대한 채널 이름")

        for existing_channel in input_config or []:
            if existing_channel["ChannelName"] == channel_name:
                raise ValidationError("channel_name", channel_name, "다른 채널과 겹치지 않는 이름")

        if is_model:
            channel_input = _Job._format_model_uri_input(channel_uri, validate_uri)
        else:
            channel_input = _Job._format_string_uri_input(channel_uri, validate_uri)
        return _Job._convert_input_to_channel(channel_name, channel_input)

    @staticmethod
    def _format_model_uri_input(model_uri, validate_uri: bool = True) -> TrainingInput:
        """모델 아티팩트 URI를 S3Object 채널 입력으로 변환"""
        if isinstance(model_uri, str) and validate_uri and model_uri.startswith("s3://"):
            return TrainingInput(
                model_uri,
                input_mode="File",
                distribution="FullyReplicated",
                content_type="application/x-sagemaker-model",
                s3_data_type="S3Object",
            )
        if isinstance(model_uri, str) and validate_uri:
            raise ValidationError("model_uri", model_uri, "s3:// URI")
        if isinstance(model_uri, str):
            return TrainingInput(model_uri, input_mode="File", s3_data_type="S3Object")
        raise ValidationError("model_uri", type(model_uri).__name__, "str")

    @staticmethod
    def _prepare_output_config(s3_path: str, kms_key_id: str | None) -> dict[str, str]:
        config = {"S3OutputPath": s3_path}
        if kms_key_id is not None:
            config["KmsKeyId"] = kms_key_id
        return config

    @staticmethod
    def _prepare_resource_config(
        instance_count: int, instance_type: str, volume_size: int, volume_kms_key: str | None
    ) -> dict[str, Any]:
        resource_config: dict[str, Any] = {
            "InstanceCount": instance_count,
            "InstanceType": instance_type,
            "VolumeSizeInGB": volume_size,
        }
        if volume_kms_key is not None:
            resource_config["VolumeKmsKeyId"] = volume_kms_key
        return resource_config

    @staticmethod
    def _prepare_stop_condition(max_run: int, max_wait: int | None) -> dict[str, int]:
        if max_wait:
            return {"MaxRuntimeInSeconds": max_run, "MaxWaitTimeInSeconds": max_wait}
        return {"MaxRuntimeInSeconds": max_run}
