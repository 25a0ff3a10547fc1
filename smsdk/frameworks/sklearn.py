"""
smsdk/frameworks/sklearn.py - Scikit-learn 추정기/모델

Scikit-learn 이미지는 CPU 전용이며 분산 학습을 지원하지 않습니다.
SKLearnProcessor는 같은 이미지로 처리 작업(Processing Job)을 실행합니다.
"""

from __future__ import annotations

from typing import Any

from core.exceptions import ValidationError
from smsdk import image_uris, vpc_utils
from smsdk.deserializers import CSVDeserializer
from smsdk.estimator import Framework
from smsdk.fw_utils import validate_version_or_image_args
from smsdk.model import FrameworkModel
from smsdk.network import NetworkConfig
from smsdk.predictor import Predictor
from smsdk.processing import ScriptProcessor
from smsdk.serializers import CSVSerializer
from smsdk.session import Session

FRAMEWORK_NAME = "sklearn"


class SKLearnPredictor(Predictor):
    """CSV 요청/응답을 사용하는 Scikit-learn 엔드포인트 Predictor"""

    def __init__(self, endpoint_name: str, sagemaker_session=None, serializer=None, deserializer=None):
        super().__init__(
            endpoint_name,
            sagemaker_session,
            serializer=serializer or CSVSerializer(),
            deserializer=deserializer or CSVDeserializer(),
        )


def _validate_not_gpu_instance_type(instance_type: str | None) -> None:
    if instance_type and instance_type.startswith(("ml.p", "ml.g")):
        raise ValidationError("instance_type", instance_type, "CPU 인스턴스 (Scikit-learn은 GPU 미지원)")


class SKLearn(Framework):
    """Scikit-learn 스크립트 모드 추정기"""

    _framework_name = FRAMEWORK_NAME

    def __init__(
        self,
        entry_point: str,
        framework_version: str | None = None,
        py_version: str = "py3",
        source_dir: str | None = None,
        hyperparameters: dict[str, Any] | None = None,
        image_uri: str | None = None,
        **kwargs: Any,
    ):
        validate_version_or_image_args(framework_version, py_version, image_uri)
        _validate_not_gpu_instance_type(kwargs.get("instance_type"))
        if kwargs.get("instance_count", 1) != 1:
            raise ValidationError("instance_count", kwargs.get("instance_count"), "1 (Scikit-learn은 분산 학습 미지원)")

        self.framework_version = framework_version
        self.py_version = py_version
        super().__init__(entry_point, source_dir, hyperparameters, image_uri=image_uri, **kwargs)

    def create_model(
        self,
        model_server_workers: int | None = None,
        role: str | None = None,
        vpc_config_override: Any = vpc_utils.VPC_CONFIG_DEFAULT,
        entry_point: str | None = None,
        source_dir: str | None = None,
        dependencies: list[str] | None = None,
        **kwargs: Any,
    ) -> SKLearnModel:
        """학습 결과로 SKLearnModel 생성 (학습 이미지를 추론에도 사용)"""
        if "image_uri" not in kwargs:
            kwargs["image_uri"] = self.image_uri
        if "enable_network_isolation" not in kwargs:
            kwargs["enable_network_isolation"] = self.enable_network_isolation()

        return SKLearnModel(
            self.model_data,
            role or self.role,
            entry_point or self._model_entry_point(),
            framework_version=self.framework_version,
            py_version=self.py_version,
            source_dir=(source_dir or self._model_source_dir()),
            container_log_level=self.container_log_level,
            code_location=self.code_location,
            model_server_workers=model_server_workers,
            sagemaker_session=self.sagemaker_session,
            vpc_config=self.get_vpc_config(vpc_config_override),
            dependencies=(dependencies or self.dependencies),
            **kwargs,
        )


class SKLearnModel(FrameworkModel):
    """Scikit-learn 추론 모델"""

    _framework_name = FRAMEWORK_NAME

    def __init__(
        self,
        model_data: str,
        role: str,
        entry_point: str,
        framework_version: str | None = None,
        py_version: str = "py3",
        image_uri: str | None = None,
        predictor_cls: type = SKLearnPredictor,
        **kwargs: Any,
    ):
        validate_version_or_image_args(framework_version, py_version, image_uri)
        self.framework_version = framework_version
        self.py_version = py_version
        super().__init__(model_data, image_uri, role, entry_point, predictor_cls=predictor_cls, **kwargs)

    def serving_image_uri(self, region_name: str, instance_type: str | None, accelerator_type: str | None = None) -> str:
        _validate_not_gpu_instance_type(instance_type)
        return image_uris.retrieve(
            self._framework_name,
            region_name,
            version=self.framework_version,
            py_version=self.py_version,
            instance_type=instance_type,
        )


class SKLearnProcessor(ScriptProcessor):
    """Scikit-learn 이미지로 전처리/후처리 스크립트를 실행하는 Processor

    Example:
        processor = SKLearnProcessor("1.2-1", role, "ml.m5.xlarge", instance_count=1)
        processor.run(code="preprocess.py", inputs=[...], outputs=[...])
    """

    def __init__(
        self,
        framework_version: str,
        role: str,
        instance_type: str,
        instance_count: int,
        command: list[str] | None = None,
        volume_size_in_gb: int = 30,
        volume_kms_key: str | None = None,
        output_kms_key: str | None = None,
        max_runtime_in_seconds: int | None = None,
        base_job_name: str | None = None,
        sagemaker_session: Session | None = None,
        env: dict[str, str] | None = None,
        tags: list[dict[str, str]] | None = None,
        network_config: NetworkConfig | None = None,
    ):
        _validate_not_gpu_instance_type(instance_type)
        sagemaker_session = sagemaker_session or Session()
        image_uri = image_uris.retrieve(
            FRAMEWORK_NAME,
            sagemaker_session.boto_region_name,
            version=framework_version,
            py_version="py3",
            instance_type=instance_type,
        )
        self.framework_version = framework_version

        super().__init__(
            role=role,
            image_uri=image_uri,
            command=command or ["python3"],
            instance_count=instance_count,
            instance_type=instance_type,
            volume_size_in_gb=volume_size_in_gb,
            volume_kms_key=volume_kms_key,
            output_kms_key=output_kms_key,
            max_runtime_in_seconds=max_runtime_in_seconds,
            base_job_name=base_job_name or "sagemaker-scikit-learn",
            sagemaker_session=sagemaker_session,
            env=env,
            tags=tags,
            network_config=network_config,
        )
