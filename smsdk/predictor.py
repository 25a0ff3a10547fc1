"""
smsdk/predictor.py - 실시간 엔드포인트 추론 핸들

InvokeEndpoint 호출과 엔드포인트 수명 주기(구성 교체, 삭제, 데이터 캡처 토글,
연결된 모니터 조회)를 담당합니다.

Example:
    predictor = Predictor("my-endpoint", serializer=CSVSerializer(), deserializer=CSVDeserializer())
    rows = predictor.predict([[1.0, 2.0, 3.0]])
    predictor.delete_endpoint()
"""

from __future__ import annotations

import logging
from typing import Any

from core.exceptions import ValidationError
from smsdk.deserializers import BaseDeserializer, BytesDeserializer
from smsdk.serializers import BaseSerializer, IdentitySerializer
from smsdk.session import Session, production_variant
from smsdk.utils import base_from_name, name_from_base

logger = logging.getLogger(__name__)


class Predictor:
    """엔드포인트 추론 요청 핸들

    Attributes:
        endpoint_name: 엔드포인트 이름
        sagemaker_session: Session
        serializer: 요청 직렬화기
        deserializer: 응답 역직렬화기
    """

    def __init__(
        self,
        endpoint_name: str,
        sagemaker_session: Session | None = None,
        serializer: BaseSerializer | None = None,
        deserializer: BaseDeserializer | None = None,
    ):
        self.endpoint_name = endpoint_name
        self.sagemaker_session = sagemaker_session or Session()
        self.serializer = serializer or IdentitySerializer()
        self.deserializer = deserializer or BytesDeserializer()
        self._endpoint_config_name: str | None = None
        self._model_names: list[str] | None = None

    def __repr__(self) -> str:
        return f"Predictor(endpoint_name={self.endpoint_name!r})"

    @property
    def content_type(self) -> str:
        return self.serializer.CONTENT_TYPE

    @property
    def accept(self) -> tuple[str, ...]:
        return self.deserializer.ACCEPT

    def predict(
        self,
        data: Any,
        initial_args: dict[str, Any] | None = None,
        target_model: str | None = None,
        target_variant: str | None = None,
        inference_id: str | None = None,
    ) -> Any:
        """엔드포인트 추론 호출

        Args:
            data: 직렬화할 입력 데이터
            initial_args: InvokeEndpoint 추가 인자 (ContentType/Accept 덮어쓰기 가능)
            target_model: 대상 모델 (TargetModel)
            target_variant: 대상 프로덕션 변형 (TargetVariant)
            inference_id: 추론 ID (데이터 캡처 ground truth 연결용)

        Returns:
            역직렬화된 응답
        """
        request_args = self._create_request_args(data, initial_args, target_model, target_variant, inference_id)
        response = self.sagemaker_session.sagemaker_runtime_client.invoke_endpoint(**request_args)
        return self._handle_response(response)

    def _handle_response(self, response: dict[str, Any]) -> Any:
        response_body = response["Body"]
        content_type = response.get("ContentType", "application/octet-stream")
        return self.deserializer.deserialize(response_body, content_type)

    def _create_request_args(
        self,
        data: Any,
        initial_args: dict[str, Any] | None = None,
        target_model: str | None = None,
        target_variant: str | None = None,
        inference_id: str | None = None,
    ) -> dict[str, Any]:
        args = dict(initial_args) if initial_args else {}

        if "EndpointName" not in args:
            args["EndpointName"] = self.endpoint_name
        if "ContentType" not in args:
            args["ContentType"] = self.content_type
        if "Accept" not in args:
            args["Accept"] = ", ".join(self.accept)
        if target_model:
            args["TargetModel"] = target_model
        if target_variant:
            args["TargetVariant"] = target_variant
        if inference_id:
            args["InferenceId"] = inference_id

        args["Body"] = self.serializer.serialize(data)
        return args

    def update_endpoint(
        self,
        initial_instance_count: int | None = None,
        instance_type: str | None = None,
        accelerator_type: str | None = None,
        model_name: str | None = None,
        tags: list[dict[str, str]] | None = None,
        kms_key: str | None = None,
        data_capture_config_dict: dict[str, Any] | None = None,
        wait: bool = True,
    ) -> None:
        """기존 구성을 복사한 새 엔드포인트 구성으로 엔드포인트 업데이트

        인스턴스/모델 관련 인자를 하나라도 주면 instance_type과 initial_instance_count가 모두 필요합니다.

        Raises:
            ValidationError: 인자 조합이 잘못되었거나 모델이 여러 개라 model_name이 필요한 경우
        """
        production_variants = None

        if initial_instance_count or instance_type or accelerator_type or model_name:
            if instance_type is None or initial_instance_count is None:
                raise ValidationError(
                    "instance_type/initial_instance_count",
                    f"{instance_type}/{initial_instance_count}",
                    "둘 다 지정",
                )

            if model_name is None:
                model_names = self._get_model_names()
                if len(model_names) > 1:
                    raise ValidationError("model_name", None, "모델이 여러 개인 엔드포인트는 model_name 지정")
                model_name = model_names[0]
            else:
                self._model_names = [model_name]

            production_variants = [
                production_variant(
                    model_name,
                    instance_type,
                    initial_instance_count=initial_instance_count,
                    accelerator_type=accelerator_type,
                )
            ]

        current_config_name = self._get_endpoint_config_name()
        new_config_name = name_from_base(base_from_name(current_config_name))
        self.sagemaker_session.create_endpoint_config_from_existing(
            current_config_name,
            new_config_name,
            new_tags=tags,
            new_kms_key=kms_key,
            new_data_capture_config_dict=data_capture_config_dict,
            new_production_variants=production_variants,
        )
        self.sagemaker_session.update_endpoint(self.endpoint_name, new_config_name, wait=wait)
        self._endpoint_config_name = new_config_name

    def delete_endpoint(self, delete_endpoint_config: bool = True) -> None:
        """엔드포인트 삭제 (기본적으로 엔드포인트 구성도 함께 삭제)"""
        if delete_endpoint_config:
            self._delete_endpoint_config()
        self.sagemaker_session.delete_endpoint(self.endpoint_name)

    def _delete_endpoint_config(self) -> None:
        self.sagemaker_session.delete_endpoint_config(self._get_endpoint_config_name())

    def delete_model(self) -> None:
        """엔드포인트에 연결된 모든 모델 삭제"""
        for model_name in self._get_model_names():
            self.sagemaker_session.delete_model(model_name)

    def enable_data_capture(self) -> None:
        """현재 설정값으로 데이터 캡처 활성화"""
        from smsdk.model_monitor.data_capture_config import DataCaptureConfig

        self.update_data_capture_config(
            DataCaptureConfig(enable_capture=True, sagemaker_session=self.sagemaker_session)
        )

    def disable_data_capture(self) -> None:
        from smsdk.model_monitor.data_capture_config import DataCaptureConfig

        self.update_data_capture_config(
            DataCaptureConfig(enable_capture=False, sagemaker_session=self.sagemaker_session)
        )

    def update_data_capture_config(self, data_capture_config) -> None:
        """데이터 캡처 설정을 교체한 새 엔드포인트 구성을 적용 (업데이트 완료까지 대기)"""
        current_config_name = self._get_endpoint_config_name()
        new_config_name = name_from_base(base_from_name(current_config_name))

        data_capture_config_dict = None
        if data_capture_config is not None:
            data_capture_config_dict = data_capture_config._to_request_dict()

        self.sagemaker_session.create_endpoint_config_from_existing(
            current_config_name,
            new_config_name,
            new_data_capture_config_dict=data_capture_config_dict,
        )
        self.sagemaker_session.update_endpoint(self.endpoint_name, new_config_name)
        self._endpoint_config_name = new_config_name

    def list_monitors(self) -> list:
        """엔드포인트에 연결된 모니터링 스케줄을 모니터 객체로 반환

        모니터링 유형(DataQuality, ModelQuality, ModelBias, ModelExplainability)에 맞는 클래스로 attach합니다.
        """
        from smsdk.model_monitor import (
            DefaultModelMonitor,
            ModelBiasMonitor,
            ModelExplainabilityMonitor,
            ModelMonitor,
            ModelQualityMonitor,
        )

        monitor_classes = {
            "DataQuality": DefaultModelMonitor,
            "ModelQuality": ModelQualityMonitor,
            "ModelBias": ModelBiasMonitor,
            "ModelExplainability": ModelExplainabilityMonitor,
        }

        monitoring_schedules_dict = self.sagemaker_session.list_monitoring_schedules(endpoint_name=self.endpoint_name)
        summaries = monitoring_schedules_dict.get("MonitoringScheduleSummaries", [])
        if not summaries:
            logger.info(f"엔드포인트 {self.endpoint_name}에 연결된 모니터링 스케줄이 없습니다")
            return []

        monitors = []
        for schedule_dict in summaries:
            schedule_name = schedule_dict["MonitoringScheduleName"]
            monitoring_type = schedule_dict.get("MonitoringType")
            if monitoring_type is None:
                desc = self.sagemaker_session.describe_monitoring_schedule(monitoring_schedule_name=schedule_name)
                monitoring_type = desc["MonitoringScheduleConfig"].get("MonitoringType")

            monitor_cls = monitor_classes.get(monitoring_type, ModelMonitor)
            monitors.append(
                monitor_cls.attach(monitor_schedule_name=schedule_name, sagemaker_session=self.sagemaker_session)
            )
        return monitors

    def endpoint_context(self) -> dict[str, Any] | None:
        """엔드포인트에 대한 SageMaker 컨텍스트 요약 (없으면 None)"""
        desc = self.sagemaker_session.sagemaker_client.describe_endpoint(EndpointName=self.endpoint_name)
        response = self.sagemaker_session.sagemaker_client.list_contexts(
            SourceUri=desc["EndpointArn"], ContextType="Endpoint"
        )
        summaries = response.get("ContextSummaries", [])
        return summaries[0] if summaries else None

    def _get_endpoint_config_name(self) -> str:
        if self._endpoint_config_name is None:
            endpoint_desc = self.sagemaker_session.sagemaker_client.describe_endpoint(EndpointName=self.endpoint_name)
            self._endpoint_config_name = endpoint_desc["EndpointConfigName"]
        return self._endpoint_config_name

    def _get_model_names(self) -> list[str]:
        if self._model_names is None:
            endpoint_config = self.sagemaker_session.sagemaker_client.describe_endpoint_config(
                EndpointConfigName=self._get_endpoint_config_name()
            )
            self._model_names = [variant["ModelName"] for variant in endpoint_config["ProductionVariants"]]
        return self._model_names
