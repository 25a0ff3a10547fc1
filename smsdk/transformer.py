"""
smsdk/transformer.py - 배치 변환 (Batch Transform)

저장된 SageMaker 모델로 S3 데이터 전체에 대한 추론 작업(CreateTransformJob)을 실행합니다.

Example:
    transformer = Transformer("my-model", instance_count=1, instance_type="ml.m5.xlarge")
    transformer.transform("s3://bucket/batch-input/", content_type="text/csv", split_type="Line")
"""

from __future__ import annotations

import logging
from typing import Any

from core.exceptions import ValidationError
from smsdk.inputs import TransformInput
from smsdk.job import _Job
from smsdk.s3 import is_s3_url, s3_path_join
from smsdk.session import Session
from smsdk.utils import base_from_name, base_name_from_image, name_from_base

logger = logging.getLogger(__name__)


class Transformer:
    """배치 변환 작업 구성과 실행

    Attributes:
        model_name: 사용할 SageMaker 모델 이름
        latest_transform_job: 마지막으로 시작한 _TransformJob
    """

    def __init__(
        self,
        model_name: str,
        instance_count: int,
        instance_type: str,
        strategy: str | None = None,
        assemble_with: str | None = None,
        output_path: str | None = None,
        output_kms_key: str | None = None,
        accept: str | None = None,
        max_concurrent_transforms: int | None = None,
        max_payload: int | None = None,
        tags: list[dict[str, str]] | None = None,
        env: dict[str, str] | None = None,
        base_transform_job_name: str | None = None,
        sagemaker_session: Session | None = None,
        volume_kms_key: str | None = None,
    ):
        self.model_name = model_name
        self.strategy = strategy
        self.env = env

        self.output_path = output_path
        self.output_kms_key = output_kms_key
        self.accept = accept
        self.assemble_with = assemble_with

        self.instance_count = instance_count
        self.instance_type = instance_type
        self.volume_kms_key = volume_kms_key

        self.max_concurrent_transforms = max_concurrent_transforms
        self.max_payload = max_payload
        self.tags = tags

        self.base_transform_job_name = base_transform_job_name
        self._current_job_name: str | None = None
        self.latest_transform_job: _TransformJob | None = None

        self.sagemaker_session = sagemaker_session or Session()

    def transform(
        self,
        data: str,
        data_type: str = "S3Prefix",
        content_type: str | None = None,
        compression_type: str | None = None,
        split_type: str | None = None,
        job_name: str | None = None,
        input_filter: str | None = None,
        output_filter: str | None = None,
        join_source: str | None = None,
        experiment_config: dict[str, str] | None = None,
        model_client_config: dict[str, int] | None = None,
        wait: bool = True,
        logs: bool = True,
    ) -> None:
        """변환 작업 시작

        Args:
            data: 입력 S3 URI
            data_type: "S3Prefix" 또는 "ManifestFile"
            content_type: 입력 MIME 타입
            compression_type: "Gzip" 또는 None
            split_type: "Line", "RecordIO", "TFRecord" 또는 None
            job_name: 작업 이름 (None이면 자동 생성)
            input_filter: 입력 JSONPath 필터
            output_filter: 출력 JSONPath 필터
            join_source: "Input"이면 입력과 출력을 결합
            experiment_config: 실험 연결 설정
            model_client_config: 모델 호출 타임아웃/재시도 설정
            wait: 작업 종료까지 대기 여부
            logs: 대기 중 로그 출력 여부 (wait=True일 때만)

        Raises:
            ValidationError: 입력이 S3 URI가 아닌 경우
        """
        if not is_s3_url(data):
            raise ValidationError("data", data, "s3:// URI")

        if job_name is not None:
            self._current_job_name = job_name
        else:
            base_name = self.base_transform_job_name
            if base_name is None:
                base_name = self._retrieve_base_name()
            self._current_job_name = name_from_base(base_name)

        if self.output_path is None:
            self.output_path = s3_path_join(
                "s3://",
                self.sagemaker_session.default_bucket(),
                self.sagemaker_session.default_bucket_prefix,
                self._current_job_name,
            )

        self.latest_transform_job = _TransformJob.start_new(
            self,
            data,
            data_type,
            content_type,
            compression_type,
            split_type,
            input_filter,
            output_filter,
            join_source,
            experiment_config,
            model_client_config,
        )

        if wait:
            self.latest_transform_job.wait(logs=logs)

    def _retrieve_base_name(self) -> str:
        image_uri = self._retrieve_image_uri()
        if image_uri:
            return base_name_from_image(image_uri)
        return self.model_name

    def _retrieve_image_uri(self) -> str | None:
        model_desc = self.sagemaker_session.describe_model(self.model_name)

        primary_container = model_desc.get("PrimaryContainer")
        if primary_container:
            return primary_container.get("Image")

        containers = model_desc.get("Containers")
        if containers:
            return containers[0].get("Image")

        return None

    def _ensure_last_transform_job(self) -> None:
        if self.latest_transform_job is None:
            raise ValidationError("latest_transform_job", None, "transform() 호출 후 사용")

    def wait(self, logs: bool = True) -> None:
        """마지막 변환 작업 종료까지 대기"""
        self._ensure_last_transform_job()
        self.latest_transform_job.wait(logs=logs)

    def stop_transform_job(self, wait: bool = True) -> None:
        """마지막 변환 작업 중지"""
        self._ensure_last_transform_job()
        self.latest_transform_job.stop()
        if wait:
            self.latest_transform_job.wait(logs=False)

    @classmethod
    def attach(cls, transform_job_name: str, sagemaker_session: Session | None = None) -> Transformer:
        """기존 변환 작업으로 Transformer 복원"""
        sagemaker_session = sagemaker_session or Session()

        job_details = sagemaker_session.describe_transform_job(transform_job_name)
        init_params = cls._prepare_init_params_from_job_description(job_details)
        transformer = cls(sagemaker_session=sagemaker_session, **init_params)
        transformer.latest_transform_job = _TransformJob(sagemaker_session, transform_job_name)
        transformer._current_job_name = transform_job_name
        return transformer

    @classmethod
    def _prepare_init_params_from_job_description(cls, job_details: dict[str, Any]) -> dict[str, Any]:
        init_params: dict[str, Any] = {}

        init_params["model_name"] = job_details["ModelName"]
        init_params["instance_count"] = job_details["TransformResources"]["InstanceCount"]
        init_params["instance_type"] = job_details["TransformResources"]["InstanceType"]
        init_params["volume_kms_key"] = job_details["TransformResources"].get("VolumeKmsKeyId")
        init_params["strategy"] = job_details.get("BatchStrategy")
        init_params["assemble_with"] = job_details["TransformOutput"].get("AssembleWith")
        init_params["output_path"] = job_details["TransformOutput"]["S3OutputPath"]
        init_params["output_kms_key"] = job_details["TransformOutput"].get("KmsKeyId")
        init_params["accept"] = job_details["TransformOutput"].get("Accept")
        init_params["max_concurrent_transforms"] = job_details.get("MaxConcurrentTransforms")
        init_params["max_payload"] = job_details.get("MaxPayloadInMB")
        init_params["base_transform_job_name"] = base_from_name(job_details["TransformJobName"])
        init_params["env"] = job_details.get("Environment")

        return init_params


class _TransformJob(_Job):
    """배치 변환 작업 핸들"""

    @classmethod
    def start_new(
        cls,
        transformer: Transformer,
        data: str,
        data_type: str,
        content_type: str | None,
        compression_type: str | None,
        split_type: str | None,
        input_filter: str | None,
        output_filter: str | None,
        join_source: str | None,
        experiment_config: dict[str, str] | None,
        model_client_config: dict[str, int] | None,
    ) -> _TransformJob:
        config = _TransformJob._load_config(data, data_type, content_type, compression_type, split_type, transformer)
        data_processing = _TransformJob._prepare_data_processing(input_filter, output_filter, join_source)

        transformer.sagemaker_session.transform(
            job_name=transformer._current_job_name,
            model_name=transformer.model_name,
            strategy=transformer.strategy,
            max_concurrent_transforms=transformer.max_concurrent_transforms,
            max_payload=transformer.max_payload,
            env=transformer.env,
            input_config=config["input_config"],
            output_config=config["output_config"],
            resource_config=config["resource_config"],
            experiment_config=experiment_config,
            tags=transformer.tags,
            data_processing=data_processing,
            model_client_config=model_client_config,
        )

        return cls(transformer.sagemaker_session, transformer._current_job_name)

    def wait(self, logs: bool = True) -> None:
        if logs:
            self.sagemaker_session.logs_for_transform_job(self.job_name, wait=True)
        else:
            self.sagemaker_session.wait_for_transform_job(self.job_name)

    def describe(self) -> dict[str, Any]:
        return self.sagemaker_session.describe_transform_job(self.job_name)

    def stop(self) -> None:
        self.sagemaker_session.stop_transform_job(name=self.job_name)

    @staticmethod
    def _load_config(
        data: str,
        data_type: str,
        content_type: str | None,
        compression_type: str | None,
        split_type: str | None,
        transformer: Transformer,
    ) -> dict[str, Any]:
        input_config = TransformInput(
            data=data,
            data_type=data_type,
            content_type=content_type,
            compression_type=compression_type,
            split_type=split_type,
        ).to_request_dict()

        output_config: dict[str, Any] = {"S3OutputPath": transformer.output_path}
        if transformer.accept is not None:
            output_config["Accept"] = transformer.accept
        if transformer.assemble_with is not None:
            output_config["AssembleWith"] = transformer.assemble_with
        if transformer.output_kms_key is not None:
            output_config["KmsKeyId"] = transformer.output_kms_key

        resource_config: dict[str, Any] = {
            "InstanceCount": transformer.instance_count,
            "InstanceType": transformer.instance_type,
        }
        if transformer.volume_kms_key is not None:
            resource_config["VolumeKmsKeyId"] = transformer.volume_kms_key

        return {
            "input_config": input_config,
            "output_config": output_config,
            "resource_config": resource_config,
        }

    @staticmethod
    def _prepare_data_processing(
        input_filter: str | None, output_filter: str | None, join_source: str | None
    ) -> dict[str, str] | None:
        config: dict[str, str] = {}

        if input_filter is not None:
            config["InputFilter"] = input_filter
        if output_filter is not None:
            config["OutputFilter"] = output_filter
        if join_source is not None:
            config["JoinSource"] = join_source

        return config or None
