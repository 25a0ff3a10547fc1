"""
smsdk/frameworks/xgboost.py - XGBoost 스크립트 모드 추정기/모델

내장 알고리즘 모드와 같은 ``sagemaker-xgboost`` 이미지를 사용하며,
이미지 태그에 프로세서/파이썬 버전 구분이 없습니다.
"""

from __future__ import annotations

from typing import Any

from smsdk import image_uris, vpc_utils
from smsdk.deserializers import CSVDeserializer
from smsdk.estimator import Framework
from smsdk.fw_utils import framework_name_from_image, validate_version_or_image_args
from smsdk.model import FrameworkModel
from smsdk.predictor import Predictor
from smsdk.serializers import CSVSerializer

FRAMEWORK_NAME = "xgboost"


class XGBoostPredictor(Predictor):
    """CSV 요청/응답을 사용하는 XGBoost 엔드포인트 Predictor"""

    def __init__(self, endpoint_name: str, sagemaker_session=None, serializer=None, deserializer=None):
        super().__init__(
            endpoint_name,
            sagemaker_session,
            serializer=serializer or CSVSerializer(),
            deserializer=deserializer or CSVDeserializer(),
        )


class XGBoost(Framework):
    """XGBoost 스크립트 모드 추정기"""

    _framework_name = FRAMEWORK_NAME

    def __init__(
        self,
        entry_point: str,
        framework_version: str | None = None,
        source_dir: str | None = None,
        hyperparameters: dict[str, Any] | None = None,
        py_version: str = "py3",
        image_uri: str | None = None,
        **kwargs: Any,
    ):
        validate_version_or_image_args(framework_version, py_version, image_uri)
        self.framework_version = framework_version
        self.py_version = py_version
        super().__init__(entry_point, source_dir, hyperparameters, image_uri=image_uri, **kwargs)

    def training_image_uri(self) -> str:
        if self.image_uri:
            return self.image_uri
        return image_uris.retrieve(
            self._framework_name,
            self.sagemaker_session.boto_region_name,
            version=self.framework_version,
            py_version=self.py_version,
            instance_type=self.instance_type,
            image_scope="training",
        )

    def create_model(
        self,
        model_server_workers: int | None = None,
        role: str | None = None,
        vpc_config_override: Any = vpc_utils.VPC_CONFIG_DEFAULT,
        entry_point: str | None = None,
        source_dir: str | None = None,
        dependencies: list[str] | None = None,
        **kwargs: Any,
    ) -> XGBoostModel:
        """학습 결과로 XGBoostModel 생성"""
        if "image_uri" not in kwargs:
            kwargs["image_uri"] = self.image_uri
        if "enable_network_isolation" not in kwargs:
            kwargs["enable_network_isolation"] = self.enable_network_isolation()

        return XGBoostModel(
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

    @classmethod
    def _prepare_init_params_from_job_description(
        cls, job_details: dict[str, Any], model_channel_name: str | None = None
    ) -> dict[str, Any]:
        init_params = super()._prepare_init_params_from_job_description(job_details, model_channel_name)

        # sagemaker-xgboost 태그는 버전 그 자체 (예: 1.7-1)
        image_uri = job_details["AlgorithmSpecification"]["TrainingImage"]
        framework, py_version, tag, _ = framework_name_from_image(image_uri)
        if framework == cls._framework_name:
            init_params["framework_version"] = tag
            init_params["py_version"] = py_version
            init_params.pop("image_uri", None)
        return init_params


class XGBoostModel(FrameworkModel):
    """XGBoost 추론 모델"""

    _framework_name = FRAMEWORK_NAME

    def __init__(
        self,
        model_data: str,
        role: str,
        entry_point: str,
        framework_version: str | None = None,
        image_uri: str | None = None,
        py_version: str = "py3",
        predictor_cls: type = XGBoostPredictor,
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
            image_scope="inference",
        )
