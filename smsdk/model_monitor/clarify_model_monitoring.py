"""
smsdk/model_monitor/clarify_model_monitoring.py - Clarify 기반 편향/설명 가능성 모니터

기준선은 SageMakerClarifyProcessor로 생성하고, 스케줄은
ModelBias / ModelExplainability 작업 정의로 생성합니다.
분석 설정(analysis_config.json)은 S3에 업로드한 뒤 ConfigUri로 참조합니다.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

from core.exceptions import ValidationError
from smsdk import image_uris
from smsdk.clarify import (
    BiasConfig,
    DataConfig,
    ExplainabilityConfig,
    ModelConfig,
    ModelPredictedLabelConfig,
    SageMakerClarifyProcessor,
)
from smsdk.model_monitor.model_monitoring import (
    BaselineJob,
    EndpointInput,
    ModelMonitor,
    MonitoringExecution,
)
from smsdk.model_monitor.monitoring_files import Constraints
from smsdk.network import NetworkConfig
from smsdk.processing import ProcessingJob
from smsdk.s3 import S3Uploader, s3_path_join
from smsdk.session import Session
from smsdk.utils import name_from_base

logger = logging.getLogger(__name__)

# Clarify 분석 결과 파일 (constraints 역할)
_CLARIFY_ANALYSIS_FILE_NAME = "analysis.json"
_ANALYSIS_CONFIG_FILE_NAME = "analysis_config.json"


class BiasAnalysisConfig:
    """ModelBiasMonitor 분석 설정"""

    def __init__(self, bias_config: BiasConfig, headers: list[str] | None = None, label: str | int | None = None):
        self.analysis_config = bias_config.get_config()
        if headers is not None:
            self.analysis_config["headers"] = headers
        if label is not None:
            self.analysis_config["label"] = label

    def _to_dict(self) -> dict[str, Any]:
        return self.analysis_config


class ExplainabilityAnalysisConfig:
    """ModelExplainabilityMonitor 분석 설정

    Args:
        explainability_config: SHAPConfig 등
        model_config: 섀도 엔드포인트 설정
        headers: 레이블을 제외한 특성 이름 목록
    """

    def __init__(
        self,
        explainability_config: ExplainabilityConfig,
        model_config: ModelConfig,
        headers: list[str] | None = None,
    ):
        self.analysis_config: dict[str, Any] = {
            "methods": explainability_config.get_explainability_config(),
            "predictor": model_config.get_predictor_config(),
        }
        if headers is not None:
            self.analysis_config["headers"] = headers

    def _to_dict(self) -> dict[str, Any]:
        return self.analysis_config


class ClarifyBaseliningConfig:
    """Clarify 기준선 작업의 분석 설정과 엔드포인트 속성 보관"""

    def __init__(
        self,
        analysis_config: BiasAnalysisConfig | ExplainabilityAnalysisConfig,
        features_attribute: str | None = None,
        inference_attribute: str | int | None = None,
        probability_attribute: str | int | None = None,
        probability_threshold_attribute: float | None = None,
    ):
        self.analysis_config = analysis_config
        self.features_attribute = features_attribute
        self.inference_attribute = inference_attribute
        self.probability_attribute = probability_attribute
        self.probability_threshold_attribute = probability_threshold_attribute


class ClarifyBaseliningJob(BaselineJob):
    """Clarify 기준선 작업. 통계는 없고 analysis.json을 제약 조건으로 사용"""

    def baseline_statistics(self, file_name: str | None = None, kms_key: str | None = None):
        raise NotImplementedError(f"{type(self).__name__}는 통계를 지원하지 않습니다")

    def suggested_constraints(self, file_name: str | None = None, kms_key: str | None = None) -> Constraints:
        return super().suggested_constraints(file_name=_CLARIFY_ANALYSIS_FILE_NAME, kms_key=kms_key)


class ClarifyMonitoringExecution(MonitoringExecution):
    """Clarify 모니터링 실행. 통계 파일을 만들지 않음"""

    def statistics(self, file_name: str | None = None, kms_key: str | None = None):
        raise NotImplementedError(f"{type(self).__name__}는 통계를 지원하지 않습니다")


class ClarifyModelMonitor(ModelMonitor):
    """Clarify 모니터 베이스 (직접 생성할 수 없음)"""

    def __init__(
        self,
        role: str,
        instance_count: int = 1,
        instance_type: str = "ml.m5.xlarge",
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
        if type(self) is ClarifyModelMonitor:
            raise TypeError("ClarifyModelMonitor는 추상 클래스입니다. ModelBiasMonitor 또는 ModelExplainabilityMonitor를 사용하세요")

        session = sagemaker_session or Session()
        super().__init__(
            role=role,
            image_uri=image_uris.retrieve("clarify", region=session.boto_region_name),
            instance_count=instance_count,
            instance_type=instance_type,
            volume_size_in_gb=volume_size_in_gb,
            volume_kms_key=volume_kms_key,
            output_kms_key=output_kms_key,
            max_runtime_in_seconds=max_runtime_in_seconds,
            base_job_name=base_job_name,
            sagemaker_session=session,
            env=env,
            tags=tags,
            network_config=network_config,
        )
        self.latest_baselining_job_config: ClarifyBaseliningConfig | None = None

    def run_baseline(self, *args: Any, **kwargs: Any) -> ProcessingJob:
        raise NotImplementedError(f"{type(self).__name__}는 run_baseline() 대신 suggest_baseline()을 사용하세요")

    def latest_monitoring_statistics(self, *args: Any, **kwargs: Any):
        raise NotImplementedError(f"{type(self).__name__}는 통계를 지원하지 않습니다")

    def list_executions(self) -> list[ClarifyMonitoringExecution]:
        return [
            ClarifyMonitoringExecution(
                sagemaker_session=execution.sagemaker_session,
                job_name=execution.job_name,
                inputs=execution.inputs,
                output=execution.output,
                output_kms_key=execution.output_kms_key,
            )
            for execution in super().list_executions()
        ]

    def create_monitoring_schedule(
        self,
        endpoint_input: EndpointInput | str,
        ground_truth_input: str | None = None,
        analysis_config: str | BiasAnalysisConfig | ExplainabilityAnalysisConfig | None = None,
        output_s3_uri: str | None = None,
        constraints: Constraints | str | None = None,
        monitor_schedule_name: str | None = None,
        schedule_cron_expression: str | None = None,
        enable_cloudwatch_metrics: bool = True,
    ) -> None:
        """작업 정의와 스케줄 생성

        Args:
            endpoint_input: 엔드포인트 이름 또는 EndpointInput
            ground_truth_input: 정답 레이블 S3 URI (ModelBias 전용)
            analysis_config: analysis_config.json URI 또는 분석 설정 객체.
                None이면 마지막 기준선 작업의 설정을 재사용
            output_s3_uri: 분석 결과 위치
            constraints: 제약 조건 (None이면 마지막 기준선 작업 이름으로 연결)

        Raises:
            ValidationError: 이미 스케줄이 있거나 분석 설정을 결정할 수 없는 경우
        """
        self._ensure_no_schedule()

        monitor_schedule_name = self._generate_monitoring_schedule_name(schedule_name=monitor_schedule_name)
        new_job_definition_name = name_from_base(self.JOB_DEFINITION_BASE_NAME)

        request_dict = self._build_create_job_definition_request(
            monitoring_schedule_name=monitor_schedule_name,
            job_definition_name=new_job_definition_name,
            image_uri=self.image_uri,
            latest_baselining_job_name=self.latest_baselining_job_name,
            latest_baselining_job_config=self.latest_baselining_job_config,
            endpoint_input=endpoint_input,
            ground_truth_input=ground_truth_input,
            analysis_config=analysis_config,
            output_s3_uri=self._normalize_monitoring_output(monitor_schedule_name, output_s3_uri).destination,
            constraints=constraints,
            enable_cloudwatch_metrics=enable_cloudwatch_metrics,
            role=self.role,
            instance_count=self.instance_count,
            instance_type=self.instance_type,
            volume_size_in_gb=self.volume_size_in_gb,
            volume_kms_key=self.volume_kms_key,
            output_kms_key=self.output_kms_key,
            max_runtime_in_seconds=self.max_runtime_in_seconds,
            env=self.env,
            tags=self.tags,
            network_config=self.network_config,
        )
        self._create_schedule_with_job_definition(request_dict, monitor_schedule_name, schedule_cron_expression)

    def update_monitoring_schedule(
        self,
        endpoint_input: EndpointInput | str | None = None,
        ground_truth_input: str | None = None,
        analysis_config: str | BiasAnalysisConfig | ExplainabilityAnalysisConfig | None = None,
        output_s3_uri: str | None = None,
        constraints: Constraints | str | None = None,
        schedule_cron_expression: str | None = None,
        enable_cloudwatch_metrics: bool | None = None,
        role: str | None = None,
        instance_count: int | None = None,
        instance_type: str | None = None,
        volume_size_in_gb: int | None = None,
        volume_kms_key: str | None = None,
        output_kms_key: str | None = None,
        max_runtime_in_seconds: int | None = None,
        env: dict[str, str] | None = None,
        network_config: NetworkConfig | None = None,
    ) -> None:
        """새 작업 정의를 만들어 스케줄에 연결 (cron만 바뀌면 스케줄만 갱신)"""
        updates = {
            key: value
            for key, value in (
                ("endpoint_input", endpoint_input),
                ("ground_truth_input", ground_truth_input),
                ("analysis_config", analysis_config),
                ("output_s3_uri", output_s3_uri),
                ("constraints", constraints),
                ("enable_cloudwatch_metrics", enable_cloudwatch_metrics),
                ("role", role),
                ("instance_count", instance_count),
                ("instance_type", instance_type),
                ("volume_size_in_gb", volume_size_in_gb),
                ("volume_kms_key", volume_kms_key),
                ("output_kms_key", output_kms_key),
                ("max_runtime_in_seconds", max_runtime_in_seconds),
                ("env", env),
                ("network_config", network_config),
            )
            if value is not None
        }

        def build_request(job_definition_name: str, job_desc: dict[str, Any]) -> dict[str, Any]:
            return self._build_create_job_definition_request(
                monitoring_schedule_name=self.monitoring_schedule_name,
                job_definition_name=job_definition_name,
                image_uri=self.image_uri,
                existing_job_desc=job_desc,
                tags=self.tags,
                **updates,
            )

        self._update_schedule_with_job_definition(build_request, schedule_cron_expression, updates)

    def _create_baselining_processor(self) -> SageMakerClarifyProcessor:
        baselining_processor = SageMakerClarifyProcessor(
            role=self.role,
            instance_count=self.instance_count,
            instance_type=self.instance_type,
            volume_size_in_gb=self.volume_size_in_gb,
            volume_kms_key=self.volume_kms_key,
            output_kms_key=self.output_kms_key,
            max_runtime_in_seconds=self.max_runtime_in_seconds,
            sagemaker_session=self.sagemaker_session,
            env=self.env,
            tags=self.tags,
            network_config=self.network_config,
        )
        baselining_processor.image_uri = self.image_uri
        return baselining_processor

    def _record_baselining_job(self, baselining_processor: SageMakerClarifyProcessor, job_name: str) -> ProcessingJob:
        self.latest_baselining_job_name = job_name
        self.latest_baselining_job = ClarifyBaseliningJob.from_processing_job(baselining_processor.latest_job)
        self.baselining_jobs.append(self.latest_baselining_job)
        return baselining_processor.latest_job

    def _upload_analysis_config(self, analysis_config: dict[str, Any], output_s3_uri: str, job_definition_name: str) -> str:
        """analysis_config를 ``{output}/{job_definition_name}/{uuid}/analysis_config.json`` 으로 업로드"""
        s3_uri = s3_path_join(output_s3_uri, job_definition_name, str(uuid.uuid4()), _ANALYSIS_CONFIG_FILE_NAME)
        logger.info(f"분석 설정 업로드: {s3_uri}")
        return S3Uploader.upload_string_as_file_body(
            json.dumps(analysis_config),
            desired_s3_uri=s3_uri,
            sagemaker_session=self.sagemaker_session,
        )

    def _build_create_job_definition_request(
        self,
        monitoring_schedule_name: str | None,
        job_definition_name: str,
        image_uri: str | None,
        latest_baselining_job_name: str | None = None,
        latest_baselining_job_config: ClarifyBaseliningConfig | None = None,
        existing_job_desc: dict[str, Any] | None = None,
        endpoint_input: EndpointInput | str | None = None,
        ground_truth_input: str | None = None,
        analysis_config: str | BiasAnalysisConfig | ExplainabilityAnalysisConfig | None = None,
        output_s3_uri: str | None = None,
        constraints: Constraints | str | None = None,
        enable_cloudwatch_metrics: bool | None = None,
        role: str | None = None,
        instance_count: int | None = None,
        instance_type: str | None = None,
        volume_size_in_gb: int | None = None,
        volume_kms_key: str | None = None,
        output_kms_key: str | None = None,
        max_runtime_in_seconds: int | None = None,
        env: dict[str, str] | None = None,
        tags: list[dict[str, str]] | None = None,
        network_config: NetworkConfig | None = None,
    ) -> dict[str, Any]:
        """Create{ModelBias|ModelExplainability}JobDefinition 요청 생성

        Raises:
            ValidationError: analysis_config를 인자, 기준선 작업, 기존 작업 정의 어디에서도 찾을 수 없는 경우
        """
        existing_app_specification = (existing_job_desc or {}).get(f"{self.monitoring_type()}AppSpecification", {})

        if analysis_config is None:
            if latest_baselining_job_config is not None:
                analysis_config = latest_baselining_job_config.analysis_config
            elif existing_app_specification.get("ConfigUri"):
                analysis_config = existing_app_specification["ConfigUri"]
            else:
                raise ValidationError("analysis_config", None, "analysis_config URI 또는 객체 (기준선 작업이 없는 경우 필수)")

        if isinstance(analysis_config, str):
            analysis_config_uri = analysis_config
        else:
            upload_base = output_s3_uri or self._normalize_monitoring_output(monitoring_schedule_name).destination
            analysis_config_uri = self._upload_analysis_config(analysis_config._to_dict(), upload_base, job_definition_name)

        app_specification: dict[str, Any] = {"ConfigUri": analysis_config_uri, "ImageUri": image_uri}
        normalized_env = self._generate_env_map(env=env, enable_cloudwatch_metrics=enable_cloudwatch_metrics)
        if normalized_env:
            app_specification["Environment"] = normalized_env

        baseline_config: dict[str, Any] = {}
        if constraints is not None:
            _, constraints_object = self._get_baseline_files(None, constraints)
            baseline_config["ConstraintsResource"] = {"S3Uri": constraints_object.file_s3_uri}
        elif latest_baselining_job_name is not None:
            baseline_config["BaseliningJobName"] = latest_baselining_job_name

        normalized_endpoint_input = None
        if endpoint_input is not None:
            normalized_endpoint_input = self._normalize_endpoint_input(endpoint_input)
            if latest_baselining_job_config is not None:
                # 기준선 작업에서 쓴 속성으로 빈 값 채움
                for attr in (
                    "features_attribute",
                    "inference_attribute",
                    "probability_attribute",
                    "probability_threshold_attribute",
                ):
                    if getattr(normalized_endpoint_input, attr) is None:
                        setattr(normalized_endpoint_input, attr, getattr(latest_baselining_job_config, attr))

        return self._merge_job_definition_request(
            job_definition_name=job_definition_name,
            existing_job_desc=existing_job_desc,
            app_specification=app_specification,
            baseline_config=baseline_config,
            endpoint_input=normalized_endpoint_input,
            ground_truth_input=ground_truth_input,
            monitoring_schedule_name=monitoring_schedule_name,
            output_s3_uri=output_s3_uri,
            role=role,
            instance_count=instance_count,
            instance_type=instance_type,
            volume_size_in_gb=volume_size_in_gb,
            volume_kms_key=volume_kms_key,
            output_kms_key=output_kms_key,
            max_runtime_in_seconds=max_runtime_in_seconds,
            tags=tags,
            network_config=network_config,
        )


class ModelBiasMonitor(ClarifyModelMonitor):
    """엔드포인트 예측의 편향 지표(ModelBias)를 모니터링"""

    JOB_DEFINITION_BASE_NAME = "model-bias-job-definition"

    @classmethod
    def monitoring_type(cls) -> str:
        return "ModelBias"

    def suggest_baseline(
        self,
        data_config: DataConfig,
        bias_config: BiasConfig,
        model_config: ModelConfig,
        model_predicted_label_config: ModelPredictedLabelConfig | None = None,
        wait: bool = False,
        logs: bool = False,
        job_name: str | None = None,
        kms_key: str | None = None,
    ) -> ProcessingJob:
        """Clarify 편향 분석 작업으로 기준선 생성

        분석 설정과 엔드포인트 속성(features/inference/probability)은
        이후 create_monitoring_schedule()에서 재사용합니다.
        """
        baselining_processor = self._create_baselining_processor()
        baselining_job_name = self._generate_baselining_job_name(job_name=job_name)
        baselining_processor.run_bias(
            data_config=data_config,
            bias_config=bias_config,
            model_config=model_config,
            model_predicted_label_config=model_predicted_label_config,
            wait=wait,
            logs=logs,
            job_name=baselining_job_name,
            kms_key=kms_key,
        )

        latest_baselining_job_config = ClarifyBaseliningConfig(
            analysis_config=BiasAnalysisConfig(bias_config=bias_config, headers=data_config.headers, label=data_config.label),
            features_attribute=data_config.features,
        )
        if model_predicted_label_config is not None:
            latest_baselining_job_config.inference_attribute = model_predicted_label_config.label
            latest_baselining_job_config.probability_attribute = model_predicted_label_config.probability
            latest_baselining_job_config.probability_threshold_attribute = model_predicted_label_config.probability_threshold
        self.latest_baselining_job_config = latest_baselining_job_config

        return self._record_baselining_job(baselining_processor, baselining_job_name)


class ModelExplainabilityMonitor(ClarifyModelMonitor):
    """엔드포인트 예측의 특성 기여도(ModelExplainability)를 모니터링"""

    JOB_DEFINITION_BASE_NAME = "model-explainability-job-definition"

    @classmethod
    def monitoring_type(cls) -> str:
        return "ModelExplainability"

    def suggest_baseline(
        self,
        data_config: DataConfig,
        explainability_config: ExplainabilityConfig,
        model_config: ModelConfig,
        model_scores: str | int | None = None,
        wait: bool = False,
        logs: bool = False,
        job_name: str | None = None,
        kms_key: str | None = None,
    ) -> ProcessingJob:
        """Clarify SHAP 분석 작업으로 기준선 생성"""
        baselining_processor = self._create_baselining_processor()
        baselining_job_name = self._generate_baselining_job_name(job_name=job_name)
        baselining_processor.run_explainability(
            data_config=data_config,
            model_config=model_config,
            explainability_config=explainability_config,
            model_scores=model_scores,
            wait=wait,
            logs=logs,
            job_name=baselining_job_name,
            kms_key=kms_key,
        )

        # 설명 가능성 분석에는 레이블 컬럼이 필요 없음
        headers = data_config.headers
        if headers and data_config.label in headers:
            headers = [header for header in headers if header != data_config.label]

        self.latest_baselining_job_config = ClarifyBaseliningConfig(
            analysis_config=ExplainabilityAnalysisConfig(
                explainability_config=explainability_config,
                model_config=model_config,
                headers=headers,
            ),
            features_attribute=data_config.features,
            inference_attribute=model_scores,
        )

        return self._record_baselining_job(baselining_processor, baselining_job_name)
