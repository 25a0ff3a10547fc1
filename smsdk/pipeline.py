"""
smsdk/pipeline.py - 추론 파이프라인 모델 (여러 컨테이너를 순서대로 실행)

Example:
    preprocess = SKLearnModel(...)
    xgb = Model(image_uri, model_data)
    pipeline = PipelineModel([preprocess, xgb], role="SageMakerRole")
    predictor = pipeline.deploy(1, "ml.m5.large")
"""

from __future__ import annotations

import logging
from typing import Any

from core.exceptions import ValidationError
from smsdk.session import Session, pipeline_container_def, production_variant
from smsdk.transformer import Transformer
from smsdk.utils import base_name_from_image, name_from_base

logger = logging.getLogger(__name__)


class PipelineModel:
    """여러 Model을 하나의 SageMaker 모델(Containers)로 묶은 추론 파이프라인

    각 모델의 prepare_container_def() 결과가 models 순서대로 CreateModel의
    ``Containers`` 에 들어가며, 요청은 앞 컨테이너의 출력을 다음 컨테이너가 받습니다.
    """

    def __init__(
        self,
        models: list,
        role: str,
        predictor_cls: type | None = None,
        name: str | None = None,
        vpc_config: dict[str, Any] | None = None,
        sagemaker_session: Session | None = None,
        enable_network_isolation: bool = False,
    ):
        if not models:
            raise ValidationError("models", models, "하나 이상의 Model")
        self.models = models
        self.role = role
        self.predictor_cls = predictor_cls
        self.name = name
        self.vpc_config = vpc_config
        self.sagemaker_session = sagemaker_session
        self.enable_network_isolation = enable_network_isolation
        self.endpoint_name: str | None = None

    def pipeline_container_def(self, instance_type: str | None) -> list[dict[str, Any]]:
        """CreateModel ``Containers`` 목록"""
        return pipeline_container_def(self.models, instance_type)

    def _create_sagemaker_pipeline_model(
        self, instance_type: str | None, tags: list[dict[str, str]] | None = None
    ) -> None:
        if self.sagemaker_session is None:
            self.sagemaker_session = Session()

        containers = self.pipeline_container_def(instance_type)
        self.name = self.name or name_from_base(base_name_from_image(containers[0]["Image"]))
        self.sagemaker_session.create_model(
            self.name,
            self.role,
            containers,
            vpc_config=self.vpc_config,
            enable_network_isolation=self.enable_network_isolation,
            tags=tags,
        )

    def deploy(
        self,
        initial_instance_count: int,
        instance_type: str,
        serializer=None,
        deserializer=None,
        endpoint_name: str | None = None,
        tags: list[dict[str, str]] | None = None,
        wait: bool = True,
        update_endpoint: bool = False,
        data_capture_config=None,
    ):
        """파이프라인 모델을 엔드포인트로 배포

        update_endpoint=True면 새 엔드포인트 구성을 만들어 기존 엔드포인트에 적용합니다.

        Returns:
            predictor_cls가 있으면 그 인스턴스, 없으면 None
        """
        if instance_type.startswith("local"):
            raise ValidationError("instance_type", instance_type, "ml.* 인스턴스 타입 (로컬 모드 미지원)")

        self._create_sagemaker_pipeline_model(instance_type, tags)
        self.endpoint_name = endpoint_name or self.name

        data_capture_config_dict = None
        if data_capture_config is not None:
            data_capture_config_dict = data_capture_config._to_request_dict()

        if update_endpoint:
            endpoint_config_name = self.sagemaker_session.create_endpoint_config(
                name=self.name,
                model_name=self.name,
                initial_instance_count=initial_instance_count,
                instance_type=instance_type,
                tags=tags,
                data_capture_config_dict=data_capture_config_dict,
            )
            self.sagemaker_session.update_endpoint(self.endpoint_name, endpoint_config_name, wait=wait)
        else:
            self.sagemaker_session.endpoint_from_production_variants(
                name=self.endpoint_name,
                production_variants=[production_variant(self.name, instance_type, initial_instance_count)],
                tags=tags,
                wait=wait,
                data_capture_config_dict=data_capture_config_dict,
            )

        if self.predictor_cls is None:
            return None
        predictor = self.predictor_cls(self.endpoint_name, self.sagemaker_session)
        if serializer:
            predictor.serializer = serializer
        if deserializer:
            predictor.deserializer = deserializer
        return predictor

    def transformer(
        self,
        instance_count: int,
        instance_type: str,
        strategy: str | None = None,
        assemble_with: str | None = None,
        output_path: str | None = None,
        output_kms_key: str | None = None,
        accept: str | None = None,
        env: dict[str, str] | None = None,
        max_concurrent_transforms: int | None = None,
        max_payload: int | None = None,
        tags: list[dict[str, str]] | None = None,
        volume_kms_key: str | None = None,
    ) -> Transformer:
        """파이프라인 모델을 생성하고 배치 변환용 Transformer 반환"""
        self._create_sagemaker_pipeline_model(instance_type, tags)

        return Transformer(
            self.name,
            instance_count,
            instance_type,
            strategy=strategy,
            assemble_with=assemble_with,
            output_path=output_path,
            output_kms_key=output_kms_key,
            accept=accept,
            max_concurrent_transforms=max_concurrent_transforms,
            max_payload=max_payload,
            env=env,
            tags=tags,
            base_transform_job_name=self.name,
            volume_kms_key=volume_kms_key,
            sagemaker_session=self.sagemaker_session,
        )

    def delete_model(self) -> None:
        """파이프라인 SageMaker 모델 삭제 (구성 모델은 삭제하지 않음)

        Raises:
            ValidationError: 아직 생성되지 않은 경우
        """
        if self.name is None:
            raise ValidationError("name", None, "deploy() 또는 transformer()로 생성된 파이프라인 모델")
        self.sagemaker_session.delete_model(self.name)
