"""
smsdk/clarify.py - SageMaker Clarify 편향/설명 가능성 분석

analysis_config.json을 만들어 S3에 올리고 Clarify 컨테이너로 처리 작업을 실행합니다.

Example:
    processor = SageMakerClarifyProcessor(role, instance_count=1, instance_type="ml.c5.xlarge")
    data_config = DataConfig(
        s3_data_input_path="s3://bucket/train.csv",
        s3_output_path="s3://bucket/clarify-output",
        label="target",
        headers=["target", "age", "gender"],
    )
    bias_config = BiasConfig(label_values_or_threshold=[1], facet_name="gender")
    processor.run_pre_training_bias(data_config, bias_config)
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Any

from core.exceptions import ValidationError
from smsdk import image_uris
from smsdk.network import NetworkConfig
from smsdk.processing import ProcessingInput, ProcessingOutput, Processor
from smsdk.s3 import S3Uploader, s3_path_join
from smsdk.session import Session
from smsdk.utils import name_from_base

logger = logging.getLogger(__name__)

SUPPORTED_DATA_FORMATS = ("text/csv", "application/jsonlines")
SHAP_AGG_METHODS = ("mean_abs", "median", "mean_sq")


class DataConfig:
    """분석 대상 데이터셋 위치와 형식

    Attributes:
        s3_data_input_path: 입력 데이터셋 S3 URI
        s3_output_path: 분석 결과 S3 URI
        analysis_config: analysis_config.json 데이터셋 부분
    """

    def __init__(
        self,
        s3_data_input_path: str,
        s3_output_path: str,
        label: str | int | None = None,
        headers: list[str] | None = None,
        features: str | None = None,
        dataset_type: str = "text/csv",
        s3_data_distribution_type: str = "FullyReplicated",
        s3_compression_type: str = "None",
    ):
        if dataset_type not in SUPPORTED_DATA_FORMATS + ("application/x-parquet",):
            raise ValidationError("dataset_type", dataset_type, "text/csv, application/jsonlines, application/x-parquet")
        self.s3_data_input_path = s3_data_input_path
        self.s3_output_path = s3_output_path
        self.s3_data_distribution_type = s3_data_distribution_type
        self.s3_compression_type = s3_compression_type
        self.label = label
        self.headers = headers
        self.features = features

        self.analysis_config: dict[str, Any] = {"dataset_type": dataset_type}
        _set(features, "features", self.analysis_config)
        _set(headers, "headers", self.analysis_config)
        _set(label, "label", self.analysis_config)

    def get_config(self) -> dict[str, Any]:
        return dict(self.analysis_config)


class BiasConfig:
    """편향 분석 대상 레이블/패싯 설정"""

    def __init__(
        self,
        label_values_or_threshold: list[Any] | float,
        facet_name: str | int | list[str | int],
        facet_values_or_threshold: list[Any] | None = None,
        group_name: str | None = None,
    ):
        if isinstance(facet_name, list):
            if not facet_name:
                raise ValidationError("facet_name", facet_name, "1개 이상의 패싯")
            if facet_values_or_threshold is None:
                facet_values_or_threshold = [None] * len(facet_name)
            elif len(facet_values_or_threshold) != len(facet_name):
                raise ValidationError(
                    "facet_values_or_threshold", facet_values_or_threshold, "facet_name과 같은 길이"
                )
            facet_list = []
            for name, values in zip(facet_name, facet_values_or_threshold):
                facet = {"name_or_index": name}
                _set(values, "value_or_threshold", facet)
                facet_list.append(facet)
        else:
            facet = {"name_or_index": facet_name}
            _set(facet_values_or_threshold, "value_or_threshold", facet)
            facet_list = [facet]

        self.analysis_config: dict[str, Any] = {
            "label_values_or_threshold": label_values_or_threshold,
            "facet": facet_list,
        }
        _set(group_name, "group_variable", self.analysis_config)

    def get_config(self) -> dict[str, Any]:
        return dict(self.analysis_config)


class ModelConfig:
    """분석 중 생성할 섀도 엔드포인트(예측기) 설정"""

    def __init__(
        self,
        model_name: str,
        instance_count: int,
        instance_type: str,
        accept_type: str | None = None,
        content_type: str | None = None,
        content_template: str | None = None,
    ):
        self.predictor_config: dict[str, Any] = {
            "model_name": model_name,
            "instance_type": instance_type,
            "initial_instance_count": instance_count,
        }
        if accept_type is not None:
            if accept_type not in SUPPORTED_DATA_FORMATS:
                raise ValidationError("accept_type", accept_type, ", ".join(SUPPORTED_DATA_FORMATS))
            self.predictor_config["accept_type"] = accept_type
        if content_type is not None:
            if content_type not in SUPPORTED_DATA_FORMATS:
                raise ValidationError("content_type", content_type, ", ".join(SUPPORTED_DATA_FORMATS))
            self.predictor_config["content_type"] = content_type
        if content_template is not None:
            if "$features" not in content_template:
                raise ValidationError("content_template", content_template, "$features 자리표시자 포함")
            self.predictor_config["content_template"] = content_template

    def get_predictor_config(self) -> dict[str, Any]:
        return dict(self.predictor_config)

    def get_config(self) -> dict[str, Any]:
        return self.get_predictor_config()


class ModelPredictedLabelConfig:
    """모델 출력에서 예측 레이블/확률을 추출하는 방법"""

    def __init__(
        self,
        label: str | int | None = None,
        probability: str | int | None = None,
        probability_threshold: float | None = None,
        label_headers: list[str] | None = None,
    ):
        self.label = label
        self.probability = probability
        self.probability_threshold = probability_threshold
        if probability_threshold is not None:
            try:
                float(probability_threshold)
            except ValueError as e:
                raise ValidationError("probability_threshold", probability_threshold, "float로 변환 가능한 값") from e

        self.predictor_config: dict[str, Any] = {}
        _set(label, "label", self.predictor_config)
        _set(probability, "probability", self.predictor_config)
        _set(label_headers, "label_headers", self.predictor_config)

    def get_predictor_config(self) -> tuple[float | None, dict[str, Any]]:
        """(probability_threshold, predictor 설정) 반환"""
        return self.probability_threshold, dict(self.predictor_config)

    def get_config(self) -> dict[str, Any]:
        config = dict(self.predictor_config)
        _set(self.probability_threshold, "probability_threshold", config)
        return config


class ExplainabilityConfig:
    """설명 가능성 분석 설정 베이스"""

    def get_explainability_config(self) -> dict[str, Any] | None:
        return None

    def get_config(self) -> dict[str, Any] | None:
        return self.get_explainability_config()


class SHAPConfig(ExplainabilityConfig):
    """Kernel SHAP 설정

    Attributes:
        shap_config: analysis_config.json의 methods.shap 부분
    """

    def __init__(
        self,
        baseline: str | list[list[Any]],
        num_samples: int,
        agg_method: str,
        use_logit: bool = False,
        save_local_shap_values: bool = True,
    ):
        if agg_method not in SHAP_AGG_METHODS:
            raise ValidationError("agg_method", agg_method, ", ".join(SHAP_AGG_METHODS))
        self.shap_config = {
            "baseline": baseline,
            "num_samples": num_samples,
            "agg_method": agg_method,
            "use_logit": use_logit,
            "save_local_shap_values": save_local_shap_values,
        }

    def get_explainability_config(self) -> dict[str, Any]:
        return {"shap": dict(self.shap_config)}


class SageMakerClarifyProcessor(Processor):
    """Clarify 컨테이너로 편향/설명 가능성 처리 작업을 실행"""

    _CLARIFY_DATA_INPUT = "/opt/ml/processing/input/data"
    _CLARIFY_CONFIG_INPUT = "/opt/ml/processing/input/config"
    _CLARIFY_OUTPUT = "/opt/ml/processing/output"

    def __init__(
        self,
        role: str,
        instance_count: int,
        instance_type: str,
        volume_size_in_gb: int = 30,
        volume_kms_key: str | None = None,
        output_kms_key: str | None = None,
        max_runtime_in_seconds: int | None = None,
        sagemaker_session: Session | None = None,
        env: dict[str, str] | None = None,
        tags: list[dict[str, str]] | None = None,
        network_config: NetworkConfig | None = None,
    ):
        sagemaker_session = sagemaker_session or Session()
        container_uri = image_uris.retrieve("clarify", sagemaker_session.boto_region_name)
        super().__init__(
            role,
            container_uri,
            instance_count,
            instance_type,
            None,
            volume_size_in_gb,
            volume_kms_key,
            output_kms_key,
            max_runtime_in_seconds,
            None,
            sagemaker_session,
            env,
            tags,
            network_config,
        )

    def run(self, **_: Any) -> None:
        raise ValidationError(
            "run", None, "run_pre_training_bias, run_post_training_bias, run_bias, run_explainability 중 하나 사용"
        )

    def _run(
        self,
        data_config: DataConfig,
        analysis_config: dict[str, Any],
        wait: bool,
        logs: bool,
        job_name: str,
        kms_key: str | None,
    ) -> None:
        """analysis_config.json을 업로드하고 Clarify 처리 작업 실행"""
        analysis_config.setdefault("methods", {})["report"] = {"name": "report", "title": "Analysis Report"}

        if logs and not wait:
            raise ValidationError("logs", logs, "wait=True일 때만 logs=True 사용 가능")
        self._current_job_name = job_name

        with tempfile.TemporaryDirectory() as tmpdirname:
            analysis_config_file = os.path.join(tmpdirname, "analysis_config.json")
            with open(analysis_config_file, "w", encoding="utf-8") as f:
                json.dump(analysis_config, f)
            config_s3_uri = S3Uploader.upload(
                local_path=analysis_config_file,
                desired_s3_uri=s3_path_join(self._default_s3_prefix(), "input", "analysis_config"),
                kms_key=kms_key,
                sagemaker_session=self.sagemaker_session,
            )

        config_input = ProcessingInput(
            input_name="analysis_config",
            source=config_s3_uri,
            destination=self._CLARIFY_CONFIG_INPUT,
            s3_data_type="S3Prefix",
            s3_input_mode="File",
            s3_compression_type="None",
        )
        data_input = ProcessingInput(
            input_name="dataset",
            source=data_config.s3_data_input_path,
            destination=self._CLARIFY_DATA_INPUT,
            s3_data_type="S3Prefix",
            s3_input_mode="File",
            s3_data_distribution_type=data_config.s3_data_distribution_type,
            s3_compression_type=data_config.s3_compression_type,
        )
        result_output = ProcessingOutput(
            source=self._CLARIFY_OUTPUT,
            destination=data_config.s3_output_path,
            output_name="analysis_result",
            s3_upload_mode="EndOfJob",
        )

        logger.info(f"Clarify 분석 작업 시작: {job_name}")
        super().run(
            inputs=[data_input, config_input],
            outputs=[result_output],
            wait=wait,
            logs=logs,
            job_name=job_name,
        )

    def run_pre_training_bias(
        self,
        data_config: DataConfig,
        data_bias_config: BiasConfig,
        methods: str | list[str] = "all",
        wait: bool = True,
        logs: bool = True,
        job_name: str | None = None,
        kms_key: str | None = None,
    ) -> None:
        """학습 전 데이터셋 편향 분석 (CI, DPL 등)"""
        analysis_config = data_config.get_config()
        analysis_config.update(data_bias_config.get_config())
        analysis_config["methods"] = {"pre_training_bias": {"methods": methods}}
        if job_name is None:
            job_name = name_from_base("Clarify-Pretraining-Bias")
        self._run(data_config, analysis_config, wait, logs, job_name, kms_key)

    def run_post_training_bias(
        self,
        data_config: DataConfig,
        data_bias_config: BiasConfig,
        model_config: ModelConfig,
        model_predicted_label_config: ModelPredictedLabelConfig,
        methods: str | list[str] = "all",
        wait: bool = True,
        logs: bool = True,
        job_name: str | None = None,
        kms_key: str | None = None,
    ) -> None:
        """학습된 모델 예측의 편향 분석 (DPPL, DI 등)"""
        analysis_config = data_config.get_config()
        analysis_config.update(data_bias_config.get_config())

        probability_threshold, predictor_config = model_predicted_label_config.get_predictor_config()
        predictor_config.update(model_config.get_predictor_config())
        analysis_config["methods"] = {"post_training_bias": {"methods": methods}}
        analysis_config["predictor"] = predictor_config
        _set(probability_threshold, "probability_threshold", analysis_config)

        if job_name is None:
            job_name = name_from_base("Clarify-Posttraining-Bias")
        self._run(data_config, analysis_config, wait, logs, job_name, kms_key)

    def run_bias(
        self,
        data_config: DataConfig,
        bias_config: BiasConfig,
        model_config: ModelConfig,
        model_predicted_label_config: ModelPredictedLabelConfig | None = None,
        pre_training_methods: str | list[str] = "all",
        post_training_methods: str | list[str] = "all",
        wait: bool = True,
        logs: bool = True,
        job_name: str | None = None,
        kms_key: str | None = None,
    ) -> None:
        """학습 전/후 편향 분석을 한 작업으로 실행"""
        analysis_config = data_config.get_config()
        analysis_config.update(bias_config.get_config())
        analysis_config["predictor"] = model_config.get_predictor_config()
        if model_predicted_label_config is not None:
            probability_threshold, predictor_config = model_predicted_label_config.get_predictor_config()
            if predictor_config:
                analysis_config["predictor"].update(predictor_config)
            _set(probability_threshold, "probability_threshold", analysis_config)

        analysis_config["methods"] = {
            "pre_training_bias": {"methods": pre_training_methods},
            "post_training_bias": {"methods": post_training_methods},
        }
        if job_name is None:
            job_name = name_from_base("Clarify-Bias")
        self._run(data_config, analysis_config, wait, logs, job_name, kms_key)

    def run_explainability(
        self,
        data_config: DataConfig,
        model_config: ModelConfig,
        explainability_config: ExplainabilityConfig,
        model_scores: str | int | None = None,
        wait: bool = True,
        logs: bool = True,
        job_name: str | None = None,
        kms_key: str | None = None,
    ) -> None:
        """SHAP 기반 특성 기여도 분석"""
        analysis_config = data_config.get_config()
        predictor_config = model_config.get_predictor_config()
        _set(model_scores, "label", predictor_config)
        analysis_config["methods"] = explainability_config.get_explainability_config()
        analysis_config["predictor"] = predictor_config
        if job_name is None:
            job_name = name_from_base("Clarify-Explainability")
        self._run(data_config, analysis_config, wait, logs, job_name, kms_key)


def _set(value: Any, key: str, dictionary: dict[str, Any]) -> None:
    """value가 None이 아니면 dictionary[key]에 설정"""
    if value is not None:
        dictionary[key] = value
