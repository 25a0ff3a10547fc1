"""
smsdk/frameworks/huggingface.py - Hugging Face Transformers 추정기

Transformers 학습 이미지는 PyTorch 또는 TensorFlow 위에 빌드되어 있어
transformers_version과 기반 프레임워크 버전(pytorch_version 또는 tensorflow_version)을
함께 지정합니다. 학습 전용이며 추론 모델 생성은 지원하지 않습니다.

Example:
    estimator = HuggingFace(
        entry_point="train.py",
        role="SageMakerRole",
        transformers_version="4.26",
        pytorch_version="1.13",
        py_version="py39",
        instance_count=1,
        instance_type="ml.p3.2xlarge",
    )
"""

from __future__ import annotations

import re
from typing import Any

from core.exceptions import ValidationError
from smsdk import image_uris
from smsdk.estimator import Framework

FRAMEWORK_NAME = "huggingface"

# 1.13.1-transformers4.26.0-gpu-py39-cu117-ubuntu20.04
_TAG_PATTERN = re.compile(r"^(.*)-transformers(.*)-(cpu|gpu)-(py[0-9]+)")

# 분산 학습 하이퍼파라미터
DATA_PARALLEL_ENABLED = "sagemaker_distributed_dataparallel_enabled"
MODEL_PARALLEL_ENABLED = "sagemaker_mp_enabled"


class HuggingFace(Framework):
    """Hugging Face Transformers 스크립트 모드 추정기"""

    _framework_name = FRAMEWORK_NAME

    def __init__(
        self,
        entry_point: str,
        py_version: str | None = None,
        transformers_version: str | None = None,
        tensorflow_version: str | None = None,
        pytorch_version: str | None = None,
        source_dir: str | None = None,
        hyperparameters: dict[str, Any] | None = None,
        image_uri: str | None = None,
        distribution: dict[str, Any] | None = None,
        **kwargs: Any,
    ):
        self.py_version = py_version
        self.framework_version = transformers_version
        self.tensorflow_version = tensorflow_version
        self.pytorch_version = pytorch_version
        self._validate_args(image_uri)

        self.distribution = distribution or {}
        super().__init__(entry_point, source_dir, hyperparameters, image_uri=image_uri, **kwargs)
        self._hyperparameters.update(self._distribution_hyperparameters())

    def _validate_args(self, image_uri: str | None) -> None:
        """버전 조합 검증

        Raises:
            ValidationError: image_uri 없이 버전이 빠졌거나 기반 프레임워크를 둘 다/하나도 지정하지 않은 경우
        """
        if image_uri is not None:
            return
        if self.framework_version is None or self.py_version is None:
            raise ValidationError(
                "transformers_version/py_version",
                f"{self.framework_version}/{self.py_version}",
                "transformers_version과 py_version 모두 지정 또는 image_uri 지정",
            )
        if (self.tensorflow_version is None) == (self.pytorch_version is None):
            raise ValidationError(
                "tensorflow_version/pytorch_version",
                f"{self.tensorflow_version}/{self.pytorch_version}",
                "tensorflow_version 또는 pytorch_version 중 정확히 하나",
            )

    def _distribution_hyperparameters(self) -> dict[str, Any]:
        smdistributed = self.distribution.get("smdistributed", {})
        hyperparameters: dict[str, Any] = {}
        if smdistributed.get("dataparallel", {}).get("enabled", False):
            hyperparameters[DATA_PARALLEL_ENABLED] = True
        if smdistributed.get("modelparallel", {}).get("enabled", False):
            hyperparameters[MODEL_PARALLEL_ENABLED] = True
        return hyperparameters

    def _base_framework_version(self) -> str:
        if self.pytorch_version is not None:
            return f"pytorch{self.pytorch_version}"
        return f"tensorflow{self.tensorflow_version}"

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
            base_framework_version=self._base_framework_version(),
        )

    def create_model(self, **kwargs: Any):
        """지원하지 않음

        Raises:
            ValidationError: 항상
        """
        raise ValidationError(
            "create_model", FRAMEWORK_NAME, "Hugging Face 추론은 image_uri를 지정한 Model 사용"
        )

    @classmethod
    def _prepare_init_params_from_job_description(
        cls, job_details: dict[str, Any], model_channel_name: str | None = None
    ) -> dict[str, Any]:
        init_params = super()._prepare_init_params_from_job_description(job_details, model_channel_name)
        hyperparameters = init_params["hyperparameters"]
        hyperparameters.pop(DATA_PARALLEL_ENABLED, None)
        hyperparameters.pop(MODEL_PARALLEL_ENABLED, None)

        image_uri = init_params.pop("image_uri", None) or job_details["AlgorithmSpecification"]["TrainingImage"]
        match = _TAG_PATTERN.match(image_uri.split(":")[-1])
        if match is None:
            init_params["image_uri"] = image_uri
            return init_params

        base_version, transformers_version, _, py_version = match.groups()
        repo = image_uri.split("/")[-1].split(":")[0]
        init_params["transformers_version"] = transformers_version
        init_params["py_version"] = py_version
        if "tensorflow" in repo:
            init_params["tensorflow_version"] = base_version
        else:
            init_params["pytorch_version"] = base_version
        return init_params
