"""
smsdk/frameworks/tensorflow.py - TensorFlow 추정기/모델

학습 스크립트는 ``--model_dir`` 하이퍼파라미터로 체크포인트 위치를 받고,
추론은 TensorFlow Serving 컨테이너(tensorflow-inference)를 사용합니다.

Example:
    estimator = TensorFlow(
        entry_point="train.py",
        role="SageMakerRole",
        framework_version="2.12",
        py_version="py310",
        instance_count=2,
        instance_type="ml.p3.2xlarge",
        distribution={"mpi": {"enabled": True, "processes_per_host": 1}},
    )
"""

from __future__ import annotations

from typing import Any

from core.exceptions import ValidationError
from smsdk import image_uris, vpc_utils
from smsdk.deserializers import JSONDeserializer
from smsdk.estimator import Framework
from smsdk.fw_utils import validate_version_or_image_args
from smsdk.model import FrameworkModel
from smsdk.predictor import Predictor
from smsdk.serializers import JSONSerializer

FRAMEWORK_NAME = "tensorflow"

# 분산 학습 하이퍼파라미터
PARAMETER_SERVER_ENABLED = "sagemaker_parameter_server_enabled"
MPI_ENABLED = "sagemaker_mpi_enabled"
MPI_PROCESSES_PER_HOST = "sagemaker_mpi_num_of_processes_per_host"
MPI_CUSTOM_FLAGS = "sagemaker_mpi_custom_mpi_options"


class TensorFlowPredictor(Predictor):
    """TensorFlow Serving REST API(JSON)용 Predictor"""

    def __init__(self, endpoint_name: str, sagemaker_session=None, serializer=None, deserializer=None):
        super().__init__(
            endpoint_name,
            sagemaker_session,
            serializer=serializer or JSONSerializer(),
            deserializer=deserializer or JSONDeserializer(),
        )


def _distribution_hyperparameters(distribution: dict[str, Any] | None) -> dict[str, Any]:
    """distribution 설정을 컨테이너 하이퍼파라미터로 변환

    Raises:
        ValidationError: parameter_server와 mpi를 함께 켠 경우
    """
    if not distribution:
        return {}

    ps_enabled = distribution.get("parameter_server", {}).get("enabled", False)
    mpi = distribution.get("mpi", {})
    if ps_enabled and mpi.get("enabled", False):
        raise ValidationError("distribution", distribution, "parameter_server 또는 mpi 중 하나")

    hyperparameters: dict[str, Any] = {PARAMETER_SERVER_ENABLED: ps_enabled}
    if mpi.get("enabled", False):
        hyperparameters[MPI_ENABLED] = True
        hyperparameters[MPI_PROCESSES_PER_HOST] = mpi.get("processes_per_host", 1)
        hyperparameters[MPI_CUSTOM_FLAGS] = mpi.get("custom_mpi_options", "")
    return hyperparameters


class TensorFlow(Framework):
    """TensorFlow 스크립트 모드 추정기

    model_dir를 지정하지 않으면 ``{output_path}/{job_name}/model`` 을 전달하고,
    False를 주면 model_dir 하이퍼파라미터를 생략합니다.
    """

    _framework_name = FRAMEWORK_NAME

    def __init__(
        self,
        entry_point: str,
        framework_version: str | None = None,
        py_version: str | None = None,
        source_dir: str | None = None,
        hyperparameters: dict[str, Any] | None = None,
        image_uri: str | None = None,
        model_dir: str | bool | None = None,
        distribution: dict[str, Any] | None = None,
        **kwargs: Any,
    ):
        validate_version_or_image_args(framework_version, py_version, image_uri)
        self.framework_version = framework_version
        self.py_version = py_version
        self.model_dir = model_dir
        self.distribution = distribution or {}
        super().__init__(entry_point, source_dir, hyperparameters, image_uri=image_uri, **kwargs)
        self._hyperparameters.update(_distribution_hyperparameters(self.distribution))

    def _default_s3_model_dir(self) -> str | None:
        if self.output_path and self.output_path.startswith("s3://"):
            return "/".join([self.output_path.rstrip("/"), self._current_job_name, "model"])
        return None

    def _prepare_for_training(self, job_name: str | None = None) -> None:
        super()._prepare_for_training(job_name=job_name)

        if self.model_dir is False:
            self._hyperparameters.pop("model_dir", None)
            return
        model_dir = self.model_dir or self._default_s3_model_dir()
        if model_dir:
            self._hyperparameters["model_dir"] = model_dir

    @classmethod
    def _prepare_init_params_from_job_description(
        cls, job_details: dict[str, Any], model_channel_name: str | None = None
    ) -> dict[str, Any]:
        init_params = super()._prepare_init_params_from_job_description(job_details, model_channel_name)

        hyperparameters = init_params["hyperparameters"]
        init_params["model_dir"] = hyperparameters.pop("model_dir", None)
        for key in (PARAMETER_SERVER_ENABLED, MPI_ENABLED, MPI_PROCESSES_PER_HOST, MPI_CUSTOM_FLAGS):
            hyperparameters.pop(key, None)
        return init_params

    def create_model(
        self,
        role: str | None = None,
        vpc_config_override: Any = vpc_utils.VPC_CONFIG_DEFAULT,
        entry_point: str | None = None,
        source_dir: str | None = None,
        dependencies: list[str] | None = None,
        **kwargs: Any,
    ) -> TensorFlowModel:
        """학습 결과로 TensorFlowModel 생성 (entry_point를 주면 inference.py 전/후처리 사용)"""
        if "enable_network_isolation" not in kwargs:
            kwargs["enable_network_isolation"] = self.enable_network_isolation()

        return TensorFlowModel(
            self.model_data,
            role or self.role,
            entry_point=entry_point,
            framework_version=self.framework_version,
            source_dir=source_dir,
            container_log_level=self.container_log_level,
            code_location=self.code_location,
            sagemaker_session=self.sagemaker_session,
            vpc_config=self.get_vpc_config(vpc_config_override),
            dependencies=(dependencies or self.dependencies),
            **kwargs,
        )


class TensorFlowModel(FrameworkModel):
    """TensorFlow Serving 추론 모델 (py_version 구분 없음)"""

    _framework_name = FRAMEWORK_NAME

    def __init__(
        self,
        model_data: str,
        role: str,
        entry_point: str | None = None,
        framework_version: str | None = None,
        image_uri: str | None = None,
        predictor_cls: type = TensorFlowPredictor,
        **kwargs: Any,
    ):
        if framework_version is None and image_uri is None:
            raise ValidationError("framework_version", None, "framework_version 또는 image_uri")
        self.framework_version = framework_version
        super().__init__(model_data, image_uri, role, entry_point, predictor_cls=predictor_cls, **kwargs)

    def serving_image_uri(self, region_name: str, instance_type: str | None, accelerator_type: str | None = None) -> str:
        return image_uris.retrieve(
            self._framework_name,
            region_name,
            version=self.framework_version,
            instance_type=instance_type,
            accelerator_type=accelerator_type,
            image_scope="inference",
        )
