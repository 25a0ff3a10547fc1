"""
smsdk/frameworks/pytorch.py - PyTorch 추정기/모델

Example:
    estimator = PyTorch(
        entry_point="train.py",
        source_dir="src",
        role="SageMakerRole",
        framework_version="2.0.1",
        py_version="py310",
        instance_count=1,
        instance_type="ml.g5.xlarge",
    )
    estimator.fit("s3://bucket/train/")
"""

from __future__ import annotations

from typing import Any

from smsdk import image_uris, vpc_utils
from smsdk.deserializers import JSONDeserializer
from smsdk.estimator import Framework
from smsdk.fw_utils import validate_version_or_image_args
from smsdk.model import FrameworkModel
from smsdk.predictor import Predictor
from smsdk.serializers import JSONSerializer

FRAMEWORK_NAME = "pytorch"


class PyTorchPredictor(Predictor):
    """JSON 요청/응답을 사용하는 PyTorch 엔드포인트 Predictor"""

    def __init__(self, endpoint_name: str, sagemaker_session=None, serializer=None, deserializer=None):
        super().__init__(
            endpoint_name,
            sagemaker_session,
            serializer=serializer or JSONSerializer(),
            deserializer=deserializer or JSONDeserializer(),
        )


class PyTorch(Framework):
    """PyTorch 스크립트 모드 추정기"""

    _framework_name = FRAMEWORK_NAME

    def __init__(
        self,
        entry_point: str,
        framework_version: str | None = None,
        py_version: str | None = None,
        source_dir: str | None = None,
        hyperparameters: dict[str, Any] | None = None,
        image_uri: str | None = None,
        **kwargs: Any,
    ):
        validate_version_or_image_args(framework_version, py_version, image_uri)
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
    ) -> PyTorchModel:
        """학습 결과로 PyTorchModel 생성 (추론 이미지는 같은 버전의 inference 이미지)"""
        if "image_uri" not in kwargs:
            kwargs["image_uri"] = self.image_uri
        if "enable_network_isolation" not in kwargs:
            kwargs["enable_network_isolation"] = self.enable_network_isolation()

        return PyTorchModel(
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


class PyTorchModel(FrameworkModel):
    """PyTorch 추론 모델"""

    _framework_name = FRAMEWORK_NAME

    def __init__(
        self,
        model_data: str,
        role: str,
        entry_point: str,
        framework_version: str | None = None,
        py_version: str | None = None,
        image_uri: str | None = None,
        predictor_cls: type = PyTorchPredictor,
        **kwargs: Any,
    ):
        validate_version_or_image_args(framework_version, py_version, image_uri)
        self.framework_version = framework_version
        self.py_version = py_version
        super().__init__(model_data, image_uri, role, entry_point, predictor_cls=predictor_cls, **kwargs)

    def serving_image_uri(self, region_name: str, instance_type: str | None, accelerator_type: str | None = None) -> str:
        return image_uris.retrieve(
            self._framework_name,
            region_name,
            version=self.framework_version,
            py_version=self.py_version,
            instance_type=instance_type,
            accelerator_type=accelerator_type,
            image_scope="inference",
        )
