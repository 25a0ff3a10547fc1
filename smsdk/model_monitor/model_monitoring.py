"""
smsdk/model_monitor/model_monitoring.py - 엔드포인트 모델 모니터링

기준선(baseline) 처리 작업을 실행하고 엔드포인트를 주기적으로 검사하는
모니터링 스케줄(CreateMonitoringSchedule)을 관리합니다.

스케줄은 두 가지 형식이 있습니다:
- 인라인 형식: MonitoringScheduleConfig.MonitoringJobDefinition에 작업 정의를 직접 포함 (ModelMonitor)
- 작업 정의 형식: Create{Type}JobDefinition으로 만든 정의를 이름으로 참조
  (DefaultModelMonitor, ModelQualityMonitor, ModelBiasMonitor, ModelExplainabilityMonitor)

Example:
    monitor = DefaultModelMonitor(role="SageMakerRole", instance_type="ml.m5.xlarge")
    monitor.suggest_baseline(
        baseline_dataset="s3://bucket/train/train.csv",
        dataset_format=DatasetFormat.csv(header=True),
    )
    monitor.create_monitoring_schedule(
        endpoint_input="my-endpoint",
        schedule_cron_expression=CronExpressionGenerator.hourly(),
    )
"""

from __future__ import annotations

import copy
import json
import logging
import os
import uuid
from typing import Any

from core.exceptions import APICallError, SMError, UnexpectedStatusError, ValidationError, is_not_found
from smsdk import image_uris
from smsdk.model_monitor.monitoring_files import ConstraintViolations, Constraints, Statistics
from smsdk.network import NetworkConfig
from smsdk.processing import ProcessingInput, ProcessingJob, ProcessingOutput, Processor
from smsdk.s3 import S3Uploader, is_s3_url, s3_path_join
from smsdk.session import Session
from smsdk.utils import name_from_base, retries

logger = logging.getLogger(__name__)

DEFAULT_REPOSITORY_NAME = "sagemaker-model-monitor-analyzer"

STATISTICS_JSON_DEFAULT_FILE_NAME = "statistics.json"
CONSTRAINTS_JSON_DEFAULT_FILE_NAME = "constraints.json"
CONSTRAINT_VIOLATIONS_JSON_DEFAULT_FILE_NAME = "constraint_violations.json"

# 컨테이너 경로
_CONTAINER_BASE_PATH = "/opt/ml/processing"
_CONTAINER_INPUT_PATH = "input"
_CONTAINER_ENDPOINT_INPUT_PATH = "endpoint"
_BASELINE_DATASET_INPUT_NAME = "baseline_dataset_input"
_RECORD_PREPROCESSOR_SCRIPT_INPUT_NAME = "record_preprocessor_script_input"
_POST_ANALYTICS_PROCESSOR_SCRIPT_INPUT_NAME = "post_analytics_processor_script_input"
_CONTAINER_OUTPUT_PATH = "output"
_DEFAULT_OUTPUT_NAME = "monitoring_output"

# S3 경로
_MODEL_MONITOR_S3_PATH = "model-monitor"
_BASELINING_S3_PATH = "baselining"
_MONITORING_S3_PATH = "monitoring"
_RESULTS_S3_PATH = "results"
_INPUT_S3_PATH = "input"

_SUGGESTION_JOB_BASE_NAME = "baseline-suggestion-job"
_MONITORING_SCHEDULE_BASE_NAME = "monitoring-schedule"

# 분석 컨테이너 환경 변수 이름
_DATASET_SOURCE_PATH_ENV_NAME = "dataset_source"
_DATASET_FORMAT_ENV_NAME = "dataset_format"
_OUTPUT_PATH_ENV_NAME = "output_path"
_RECORD_PREPROCESSOR_SCRIPT_ENV_NAME = "record_preprocessor_script"
_POST_ANALYTICS_PROCESSOR_SCRIPT_ENV_NAME = "post_analytics_processor_script"
_PUBLISH_CLOUDWATCH_METRICS_ENV_NAME = "publish_cloudwatch_metrics"
_ANALYSIS_TYPE_ENV_NAME = "analysis_type"
_PROBLEM_TYPE_ENV_NAME = "problem_type"
_GROUND_TRUTH_ATTRIBUTE_ENV_NAME = "ground_truth_attribute"
_INFERENCE_ATTRIBUTE_ENV_NAME = "inference_attribute"
_PROBABILITY_ATTRIBUTE_ENV_NAME = "probability_attribute"
_PROBABILITY_THRESHOLD_ATTRIBUTE_ENV_NAME = "probability_threshold_attribute"

PROBLEM_TYPES = ("Regression", "BinaryClassification", "MulticlassClassification")

# 스케줄 Pending 해제 대기: 36회 x 5초
_SCHEDULE_WAIT_RETRIES = 36
_SCHEDULE_WAIT_SECONDS = 5


class ModelMonitor:
    """모니터링 스케줄과 기준선 작업을 관리하는 베이스 모니터

    직접 사용하면 사용자 지정 이미지로 인라인 작업 정의 스케줄을 만듭니다.

    Attributes:
        baselining_jobs: 이 모니터로 실행한 BaselineJob 목록
        latest_baselining_job: 마지막 BaselineJob
        monitoring_schedule_name: 연결된 스케줄 이름
        job_definition_name: 작업 정의 형식 스케줄의 작업 정의 이름
    """

    JOB_DEFINITION_BASE_NAME: str | None = None

    def __init__(
        self,
        role: str,
        image_uri: str | None = None,
        instance_count: int = 1,
        instance_type: str = "ml.m5.xlarge",
        entrypoint: list[str] | None = None,
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
        self.role = role
        self.image_uri = image_uri
        self.instance_count = instance_count
        self.instance_type = instance_type
        self.entrypoint = entrypoint
        self.volume_size_in_gb = volume_size_in_gb
        self.volume_kms_key = volume_kms_key
        self.output_kms_key = output_kms_key
        self.max_runtime_in_seconds = max_runtime_in_seconds
        self.base_job_name = base_job_name
        self.sagemaker_session = sagemaker_session or Session()
        self.env = env
        self.tags = tags
        self.network_config = network_config

        self.baselining_jobs: list[BaselineJob] = []
        self.latest_baselining_job: BaselineJob | None = None
        self.arguments: list[str] | None = None
        self.latest_baselining_job_name: str | None = None
        self.monitoring_schedule_name: str | None = None
        self.job_definition_name: str | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(monitoring_schedule_name={self.monitoring_schedule_name!r})"

    @classmethod
    def monitoring_type(cls) -> str | None:
        """작업 정의 형식 스케줄의 MonitoringType (인라인 모니터는 None)"""
        return None

    # =========================================================================
    # 기준선
    # =========================================================================

    def run_baseline(
        self,
        baseline_inputs: list[ProcessingInput],
        output: ProcessingOutput | str,
        arguments: list[str] | None = None,
        wait: bool = True,
        logs: bool = True,
        job_name: str | None = None,
    ) -> ProcessingJob:
        """사용자 지정 이미지로 기준선 처리 작업 실행

        Args:
            baseline_inputs: ProcessingInput 목록 (로컬 경로는 S3로 업로드)
            output: ProcessingOutput 또는 컨테이너 출력 경로
            arguments: 컨테이너 인자
            wait: 작업 종료까지 대기 여부
            logs: 대기 중 로그 출력 여부
            job_name: 작업 이름 (None이면 자동 생성)

        Raises:
            ValidationError: 입력이 ProcessingInput이 아닌 경우
        """
        self.latest_baselining_job_name = self._generate_baselining_job_name(job_name=job_name)
        self.arguments = arguments

        for baseline_input in baseline_inputs:
            if not isinstance(baseline_input, ProcessingInput):
                raise ValidationError("baseline_inputs", type(baseline_input).__name__, "ProcessingInput 목록")

        normalized_output = self._normalize_processing_output(output)
        return self._start_baselining_job(baseline_inputs, normalized_output, self.env, wait, logs)

    def _start_baselining_job(
        self,
        inputs: list[ProcessingInput],
        output: ProcessingOutput,
        env: dict[str, str] | None,
        wait: bool,
        logs: bool,
    ) -> ProcessingJob:
        baselining_processor = Processor(
            role=self.role,
            image_uri=self.image_uri,
            instance_count=self.instance_count,
            instance_type=self.instance_type,
            entrypoint=self.entrypoint,
            volume_size_in_gb=self.volume_size_in_gb,
            volume_kms_key=self.volume_kms_key,
            output_kms_key=self.output_kms_key,
            max_runtime_in_seconds=self.max_runtime_in_seconds,
            base_job_name=self.base_job_name,
            sagemaker_session=self.sagemaker_session,
            env=env,
            tags=self.tags,
            network_config=self.network_config,
        )
        baselining_processor.run(
            inputs=inputs,
            outputs=[output],
            arguments=self.arguments,
            wait=wait,
            logs=logs,
            job_name=self.latest_baselining_job_name,
        )

        self.latest_baselining_job = BaselineJob.from_processing_job(baselining_processor.latest_job)
        self.baselining_jobs.append(self.latest_baselining_job)
        return baselining_processor.latest_job

    def baseline_statistics(self, file_name: str = STATISTICS_JSON_DEFAULT_FILE_NAME) -> Statistics:
        return self._require_latest_baselining_job().baseline_statistics(file_name=file_name, kms_key=self.output_kms_key)

    def suggested_constraints(self, file_name: str = CONSTRAINTS_JSON_DEFAULT_FILE_NAME) -> Constraints:
        return self._require_latest_baselining_job().suggested_constraints(file_name=file_name, kms_key=self.output_kms_key)

    def describe_latest_baselining_job(self) -> dict[str, Any]:
        return self._require_latest_baselining_job().describe()

    def _require_latest_baselining_job(self) -> BaselineJob:
        if self.latest_baselining_job is None:
            raise ValidationError("latest_baselining_job", None, "먼저 기준선 작업을 실행하세요")
        return self.latest_baselining_job

    # =========================================================================
    # 스케줄 (인라인 작업 정의)
    # =========================================================================

    def create_monitoring_schedule(
        self,
        endpoint_input: EndpointInput | str,
        output: MonitoringOutput,
        statistics: Statistics | str | None = None,
        constraints: Constraints | str | None = None,
        monitor_schedule_name: str | None = None,
        schedule_cron_expression: str | None = None,
    ) -> None:
        """인라인 작업 정의로 엔드포인트 모니터링 스케줄 생성

        Raises:
            ValidationError: 이미 스케줄을 만든 모니터인 경우
        """
        self._ensure_no_schedule()

        self.monitoring_schedule_name = self._generate_monitoring_schedule_name(schedule_name=monitor_schedule_name)

        normalized_endpoint_input = self._normalize_endpoint_input(endpoint_input)
        normalized_monitoring_output = self._normalize_monitoring_output_fields(output)

        statistics_object, constraints_object = self._get_baseline_files(statistics, constraints)

        monitoring_output_config: dict[str, Any] = {"MonitoringOutputs": [normalized_monitoring_output._to_request_dict()]}
        if self.output_kms_key is not None:
            monitoring_output_config["KmsKeyId"] = self.output_kms_key

        network_config_dict = None
        if self.network_config is not None:
            network_config_dict = self.network_config._to_request_dict()
            self._validate_network_config(network_config_dict)

        self.sagemaker_session.create_monitoring_schedule(
            monitoring_schedule_name=self.monitoring_schedule_name,
            schedule_expression=schedule_cron_expression,
            statistics_s3_uri=statistics_object.file_s3_uri if statistics_object is not None else None,
            constraints_s3_uri=constraints_object.file_s3_uri if constraints_object is not None else None,
            monitoring_inputs=[normalized_endpoint_input._to_request_dict()],
            monitoring_output_config=monitoring_output_config,
            instance_count=self.instance_count,
            instance_type=self.instance_type,
            volume_size_in_gb=self.volume_size_in_gb,
            volume_kms_key=self.volume_kms_key,
            image_uri=self.image_uri,
            entrypoint=self.entrypoint,
            arguments=self.arguments,
            max_runtime_in_seconds=self.max_runtime_in_seconds,
            environment=self.env,
            network_config=network_config_dict,
            role_arn=self.sagemaker_session.expand_role(self.role),
            tags=self.tags,
        )

    def update_monitoring_schedule(
        self,
        endpoint_input: EndpointInput | str | None = None,
        output: MonitoringOutput | None = None,
        statistics: Statistics | str | None = None,
        constraints: Constraints | str | None = None,
        schedule_cron_expression: str | None = None,
        instance_count: int | None = None,
        instance_type: str | None = None,
        entrypoint: list[str] | None = None,
        volume_size_in_gb: int | None = None,
        volume_kms_key: str | None = None,
        output_kms_key: str | None = None,
        arguments: list[str] | None = None,
        max_runtime_in_seconds: int | None = None,
        env: dict[str, str] | None = None,
        network_config: NetworkConfig | None = None,
        role: str | None = None,
        image_uri: str | None = None,
    ) -> None:
        """인라인 스케줄의 전달된 값만 갱신하고 Pending 해제까지 대기"""
        monitoring_inputs = None
        if endpoint_input is not None:
            monitoring_inputs = [self._normalize_endpoint_input(endpoint_input)._to_request_dict()]

        monitoring_output_config = None
        if output is not None:
            normalized_monitoring_output = self._normalize_monitoring_output_fields(output)
            monitoring_output_config = {"MonitoringOutputs": [normalized_monitoring_output._to_request_dict()]}

        statistics_object, constraints_object = self._get_baseline_files(statistics, constraints)

        for attr, value in (
            ("instance_type", instance_type),
            ("instance_count", instance_count),
            ("entrypoint", entrypoint),
            ("volume_size_in_gb", volume_size_in_gb),
            ("volume_kms_key", volume_kms_key),
            ("arguments", arguments),
            ("max_runtime_in_seconds", max_runtime_in_seconds),
            ("env", env),
            ("network_config", network_config),
            ("role", role),
            ("image_uri", image_uri),
        ):
            if value is not None:
                setattr(self, attr, value)

        if output_kms_key is not None:
            self.output_kms_key = output_kms_key
            if monitoring_output_config is None:
                monitoring_output_config = self._existing_inline_output_config()
            monitoring_output_config["KmsKeyId"] = output_kms_key

        network_config_dict = None
        if self.network_config is not None:
            network_config_dict = self.network_config._to_request_dict()
            self._validate_network_config(network_config_dict)

        self.sagemaker_session.update_monitoring_schedule(
            monitoring_schedule_name=self.monitoring_schedule_name,
            schedule_expression=schedule_cron_expression,
            statistics_s3_uri=statistics_object.file_s3_uri if statistics_object is not None else None,
            constraints_s3_uri=constraints_object.file_s3_uri if constraints_object is not None else None,
            monitoring_inputs=monitoring_inputs,
            monitoring_output_config=monitoring_output_config,
            instance_count=instance_count,
            instance_type=instance_type,
            volume_size_in_gb=volume_size_in_gb,
            volume_kms_key=volume_kms_key,
            image_uri=image_uri,
            entrypoint=entrypoint,
            arguments=arguments,
            max_runtime_in_seconds=max_runtime_in_seconds,
            environment=env,
            network_config=network_config_dict,
            role_arn=self.sagemaker_session.expand_role(self.role),
        )

        self._wait_for_schedule_changes_to_apply()

    def _existing_inline_output_config(self) -> dict[str, Any]:
        schedule_desc = self.describe_schedule()
        job_definition = schedule_desc["MonitoringScheduleConfig"].get("MonitoringJobDefinition", {})
        return copy.deepcopy(job_definition.get("MonitoringOutputConfig", {}))

    def start_monitoring_schedule(self) -> None:
        self.sagemaker_session.start_monitoring_schedule(monitoring_schedule_name=self.monitoring_schedule_name)
        self._wait_for_schedule_changes_to_apply()

    def stop_monitoring_schedule(self) -> None:
        self.sagemaker_session.stop_monitoring_schedule(monitoring_schedule_name=self.monitoring_schedule_name)
        self._wait_for_schedule_changes_to_apply()

    def delete_monitoring_schedule(self) -> None:
        """스케줄 삭제. 작업 정의 형식이면 스케줄이 사라진 뒤 작업 정의도 삭제"""
        self.sagemaker_session.delete_monitoring_schedule(monitoring_schedule_name=self.monitoring_schedule_name)

        if self.job_definition_name is not None:
            # 스케줄이 참조하는 동안 작업 정의는 삭제할 수 없음
            try:
                self._wait_for_schedule_changes_to_apply()
            except APICallError as e:
                if not is_not_found(e):
                    raise

            self.sagemaker_session.delete_monitoring_job_definition(self.monitoring_type(), self.job_definition_name)
            self.job_definition_name = None

        self.monitoring_schedule_name = None

    # =========================================================================
    # 조회
    # =========================================================================

    def describe_schedule(self) -> dict[str, Any]:
        return self.sagemaker_session.describe_monitoring_schedule(monitoring_schedule_name=self.monitoring_schedule_name)

    def list_executions(self) -> list[MonitoringExecution]:
        """스케줄의 실행 목록 (오래된 순, 마지막 요소가 최신)"""
        monitoring_executions_dict = self.sagemaker_session.list_monitoring_executions(
            monitoring_schedule_name=self.monitoring_schedule_name
        )
        summaries = monitoring_executions_dict.get("MonitoringExecutionSummaries", [])
        if not summaries:
            logger.info(f"스케줄 실행 기록이 없습니다: {self.monitoring_schedule_name}")
            return []

        processing_job_arns = [summary["ProcessingJobArn"] for summary in summaries if summary.get("ProcessingJobArn")]
        monitoring_executions = [
            MonitoringExecution.from_processing_arn(
                sagemaker_session=self.sagemaker_session,
                processing_job_arn=processing_job_arn,
            )
            for processing_job_arn in processing_job_arns
        ]
        monitoring_executions.reverse()
        return monitoring_executions

    def latest_monitoring_statistics(self, file_name: str = STATISTICS_JSON_DEFAULT_FILE_NAME) -> Statistics | None:
        """가장 최근 실행의 statistics.json (실행이 없거나 미완료면 None)"""
        executions = self.list_executions()
        if not executions:
            return None

        latest_monitoring_execution = executions[-1]
        try:
            return latest_monitoring_execution.statistics(file_name=file_name)
        except UnexpectedStatusError as e:
            logger.warning(f"최근 실행이 '{e.actual_status}' 상태라 통계를 조회할 수 없습니다")
            return None

    def latest_monitoring_constraint_violations(
        self, file_name: str = CONSTRAINT_VIOLATIONS_JSON_DEFAULT_FILE_NAME
    ) -> ConstraintViolations | None:
        """가장 최근 실행의 constraint_violations.json (실행이 없거나 미완료면 None)"""
        executions = self.list_executions()
        if not executions:
            return None

        latest_monitoring_execution = executions[-1]
        try:
            return latest_monitoring_execution.constraint_violations(file_name=file_name)
        except UnexpectedStatusError as e:
            logger.warning(f"최근 실행이 '{e.actual_status}' 상태라 위반 내역을 조회할 수 없습니다")
            return None

    # =========================================================================
    # attach
    # =========================================================================

    @classmethod
    def attach(cls, monitor_schedule_name: str, sagemaker_session: Session | None = None) -> ModelMonitor:
        """기존 모니터링 스케줄에 연결된 모니터 객체 생성

        Raises:
            ValidationError: 스케줄의 MonitoringType이 이 클래스와 맞지 않는 경우
        """
        sagemaker_session = sagemaker_session or Session()
        schedule_desc = sagemaker_session.describe_monitoring_schedule(monitoring_schedule_name=monitor_schedule_name)
        tags = sagemaker_session.list_tags(resource_arn=schedule_desc["MonitoringScheduleArn"])
        schedule_config = schedule_desc["MonitoringScheduleConfig"]

        job_definition_name = schedule_config.get("MonitoringJobDefinitionName")
        if job_definition_name:
            monitoring_type = schedule_config.get("MonitoringType")
            if cls.monitoring_type() is None or monitoring_type != cls.monitoring_type():
                raise ValidationError("MonitoringType", monitoring_type, f"{cls.__name__}가 지원하는 {cls.monitoring_type()}")
            job_desc = sagemaker_session.describe_monitoring_job_definition(monitoring_type, job_definition_name)
            return cls._attach(sagemaker_session, schedule_desc, job_desc, tags)

        job_definition = schedule_config["MonitoringJobDefinition"]
        cluster_config = job_definition["MonitoringResources"]["ClusterConfig"]
        app_specification = job_definition["MonitoringAppSpecification"]

        attached_monitor = cls(
            role=job_definition["RoleArn"],
            instance_count=cluster_config["InstanceCount"],
            instance_type=cluster_config["InstanceType"],
            volume_size_in_gb=cluster_config["VolumeSizeInGB"],
            volume_kms_key=cluster_config.get("VolumeKmsKeyId"),
            output_kms_key=job_definition.get("MonitoringOutputConfig", {}).get("KmsKeyId"),
            max_runtime_in_seconds=job_definition.get("StoppingCondition", {}).get("MaxRuntimeInSeconds"),
            sagemaker_session=sagemaker_session,
            env=job_definition.get("Environment"),
            tags=tags,
            network_config=NetworkConfig.from_request_dict(job_definition.get("NetworkConfig")),
        )
        attached_monitor.image_uri = app_specification["ImageUri"]
        attached_monitor.entrypoint = app_specification.get("ContainerEntrypoint")
        attached_monitor.arguments = app_specification.get("ContainerArguments")
        attached_monitor.monitoring_schedule_name = monitor_schedule_name
        return attached_monitor

    @classmethod
    def _attach(
        cls,
        sagemaker_session: Session,
        schedule_desc: dict[str, Any],
        job_desc: dict[str, Any],
        tags: list[dict[str, str]],
    ) -> ModelMonitor:
        """작업 정의 형식 스케줄의 Describe 응답으로 모니터 생성"""
        monitoring_type = schedule_desc["MonitoringScheduleConfig"]["MonitoringType"]
        cluster_config = job_desc["JobResources"]["ClusterConfig"]
        app_specification = job_desc.get(f"{monitoring_type}AppSpecification", {})

        attached_monitor = cls(
            role=job_desc["RoleArn"],
            instance_count=cluster_config["InstanceCount"],
            instance_type=cluster_config["InstanceType"],
            volume_size_in_gb=cluster_config["VolumeSizeInGB"],
            volume_kms_key=cluster_config.get("VolumeKmsKeyId"),
            output_kms_key=job_desc.get(f"{monitoring_type}JobOutputConfig", {}).get("KmsKeyId"),
            max_runtime_in_seconds=job_desc.get("StoppingCondition", {}).get("MaxRuntimeInSeconds"),
            sagemaker_session=sagemaker_session,
            env=app_specification.get("Environment"),
            tags=tags,
            network_config=NetworkConfig.from_request_dict(job_desc.get("NetworkConfig")),
        )
        if app_specification.get("ImageUri"):
            attached_monitor.image_uri = app_specification["ImageUri"]
        attached_monitor.monitoring_schedule_name = schedule_desc["MonitoringScheduleName"]
        attached_monitor.job_definition_name = schedule_desc["MonitoringScheduleConfig"]["MonitoringJobDefinitionName"]
        return attached_monitor

    # =========================================================================
    # 작업 정의 형식 스케줄 공통
    # =========================================================================

    def _ensure_no_schedule(self) -> None:
        if self.job_definition_name is not None or self.monitoring_schedule_name is not None:
            message = "이미 모니터링 스케줄을 만든 모니터입니다. delete_monitoring_schedule() 후 다시 생성하세요"
            logger.error(message)
            raise ValidationError("monitoring_schedule_name", self.monitoring_schedule_name, message)

    def _create_schedule_with_job_definition(
        self,
        request_dict: dict[str, Any],
        monitor_schedule_name: str,
        schedule_cron_expression: str | None,
    ) -> None:
        """작업 정의를 만든 뒤 스케줄 생성. 스케줄 생성이 실패하면 작업 정의를 되돌림"""
        new_job_definition_name = request_dict["JobDefinitionName"]
        self.sagemaker_session.create_monitoring_job_definition(self.monitoring_type(), request_dict)

        try:
            self.sagemaker_session.create_monitoring_schedule_from_job_definition(
                monitoring_schedule_name=monitor_schedule_name,
                job_definition_name=new_job_definition_name,
                monitoring_type=self.monitoring_type(),
                schedule_expression=schedule_cron_expression,
                tags=self.tags,
            )
        except SMError:
            logger.error(f"모니터링 스케줄 생성 실패: {monitor_schedule_name}")
            self._delete_orphan_job_definition(new_job_definition_name)
            raise

        self.job_definition_name = new_job_definition_name
        self.monitoring_schedule_name = monitor_schedule_name

    def _update_schedule_with_job_definition(
        self,
        build_request,
        schedule_cron_expression: str | None,
        updates: dict[str, Any],
    ) -> None:
        """변경값으로 새 작업 정의를 만들어 스케줄에 연결

        Args:
            build_request: (job_definition_name, existing_job_desc) -> 요청 딕셔너리
            schedule_cron_expression: 새 cron 식
            updates: None이 아닌 변경 인자. 성공 시 같은 이름의 속성에 반영
        """
        if not updates:
            if schedule_cron_expression is not None:
                self._update_monitoring_schedule(self.job_definition_name, schedule_cron_expression)
            return

        job_desc = self.sagemaker_session.describe_monitoring_job_definition(self.monitoring_type(), self.job_definition_name)
        new_job_definition_name = name_from_base(self.JOB_DEFINITION_BASE_NAME)
        request_dict = build_request(new_job_definition_name, job_desc)
        self.sagemaker_session.create_monitoring_job_definition(self.monitoring_type(), request_dict)

        try:
            self._update_monitoring_schedule(new_job_definition_name, schedule_cron_expression)
        except SMError:
            logger.error(f"모니터링 스케줄 업데이트 실패: {self.monitoring_schedule_name}")
            self._delete_orphan_job_definition(new_job_definition_name)
            raise

        self.job_definition_name = new_job_definition_name
        for attr, value in updates.items():
            if hasattr(self, attr):
                setattr(self, attr, value)

    def _delete_orphan_job_definition(self, job_definition_name: str) -> None:
        try:
            self.sagemaker_session.delete_monitoring_job_definition(self.monitoring_type(), job_definition_name)
        except SMError:
            logger.error(f"작업 정의 삭제 실패: {job_definition_name}")
            raise

    def _update_monitoring_schedule(self, job_definition_name: str | None, schedule_cron_expression: str | None = None) -> None:
        if job_definition_name is None or self.monitoring_schedule_name is None:
            message = "업데이트할 스케줄이 없습니다. 먼저 스케줄을 생성하세요"
            logger.error(message)
            raise ValidationError("monitoring_schedule_name", self.monitoring_schedule_name, message)

        self.sagemaker_session.update_monitoring_schedule(
            monitoring_schedule_name=self.monitoring_schedule_name,
            schedule_expression=schedule_cron_expression,
            job_definition_name=job_definition_name,
        )
        self._wait_for_schedule_changes_to_apply()

    def _merge_job_definition_request(
        self,
        job_definition_name: str,
        existing_job_desc: dict[str, Any] | None = None,
        app_specification: dict[str, Any] | None = None,
        baseline_config: dict[str, Any] | None = None,
        endpoint_input: EndpointInput | str | None = None,
        ground_truth_input: str | None = None,
        monitoring_schedule_name: str | None = None,
        output_s3_uri: str | None = None,
        role: str | None = None,
        instance_count: int | None = None,
        instance_type: str | None = None,
        volume_size_in_gb: int | None = None,
        volume_kms_key: str | None = None,
        output_kms_key: str | None = None,
        max_runtime_in_seconds: int | None = None,
        tags: list[dict[str, str]] | None = None,
        network_config: NetworkConfig | None = None,
    ) -> dict[str, Any]:
        """기존 작업 정의 위에 전달된 값을 덮어써서 Create{Type}JobDefinition 요청 생성"""
        monitoring_type = self.monitoring_type()
        existing = copy.deepcopy(existing_job_desc) if existing_job_desc else {}

        merged_app_specification = existing.get(f"{monitoring_type}AppSpecification", {})
        app_specification = dict(app_specification or {})
        environment = app_specification.pop("Environment", None)
        merged_app_specification.update(app_specification)
        if environment:
            merged_app_specification["Environment"] = {**merged_app_specification.get("Environment", {}), **environment}

        merged_baseline_config = existing.get(f"{monitoring_type}BaselineConfig", {})
        merged_baseline_config.update(baseline_config or {})

        job_input = existing.get(f"{monitoring_type}JobInput", {})
        if endpoint_input is not None:
            job_input.update(self._normalize_endpoint_input(endpoint_input)._to_request_dict())
        if ground_truth_input is not None:
            job_input["GroundTruthS3Input"] = {"S3Uri": ground_truth_input}

        job_output = existing.get(f"{monitoring_type}JobOutputConfig", {})
        if output_s3_uri is not None:
            normalized_monitoring_output = self._normalize_monitoring_output(monitoring_schedule_name, output_s3_uri)
            job_output["MonitoringOutputs"] = [normalized_monitoring_output._to_request_dict()]
        if output_kms_key is not None:
            job_output["KmsKeyId"] = output_kms_key

        cluster_config = existing.get("JobResources", {}).get("ClusterConfig", {})
        for key, value in (
            ("InstanceCount", instance_count),
            ("InstanceType", instance_type),
            ("VolumeSizeInGB", volume_size_in_gb),
            ("VolumeKmsKeyId", volume_kms_key),
        ):
            if value is not None:
                cluster_config[key] = value

        stop_condition = existing.get("StoppingCondition", {})
        if max_runtime_in_seconds is not None:
            stop_condition["MaxRuntimeInSeconds"] = max_runtime_in_seconds

        request_dict: dict[str, Any] = {
            "JobDefinitionName": job_definition_name,
            f"{monitoring_type}AppSpecification": merged_app_specification,
            f"{monitoring_type}JobInput": job_input,
            f"{monitoring_type}JobOutputConfig": job_output,
            "JobResources": {"ClusterConfig": cluster_config},
            "RoleArn": self.sagemaker_session.expand_role(role or existing.get("RoleArn")),
        }

        if merged_baseline_config:
            request_dict[f"{monitoring_type}BaselineConfig"] = merged_baseline_config

        if network_config is not None:
            network_config_dict = network_config._to_request_dict()
            self._validate_network_config(network_config_dict)
            request_dict["NetworkConfig"] = network_config_dict
        elif existing.get("NetworkConfig"):
            request_dict["NetworkConfig"] = existing["NetworkConfig"]

        if stop_condition:
            request_dict["StoppingCondition"] = stop_condition

        if tags is not None:
            request_dict["Tags"] = tags

        return request_dict

    # =========================================================================
    # 정규화 헬퍼
    # =========================================================================

    def _generate_baselining_job_name(self, job_name: str | None = None) -> str:
        if job_name is not None:
            return job_name
        return name_from_base(self.base_job_name or _SUGGESTION_JOB_BASE_NAME)

    def _generate_monitoring_schedule_name(self, schedule_name: str | None = None) -> str:
        if schedule_name is not None:
            return schedule_name
        return name_from_base(self.base_job_name or _MONITORING_SCHEDULE_BASE_NAME)

    @staticmethod
    def _generate_env_map(
        env: dict[str, str] | None,
        output_path: str | None = None,
        enable_cloudwatch_metrics: bool | None = None,
        record_preprocessor_script_container_path: str | None = None,
        post_processor_script_container_path: str | None = None,
        dataset_format: dict[str, Any] | None = None,
        dataset_source_container_path: str | None = None,
        analysis_type: str | None = None,
        problem_type: str | None = None,
        inference_attribute: str | None = None,
        probability_attribute: str | int | None = None,
        ground_truth_attribute: str | None = None,
        probability_threshold_attribute: float | None = None,
    ) -> dict[str, str]:
        """분석 컨테이너 환경 변수 생성 (None 값은 생략)"""
        normalized_env = dict(env or {})

        if enable_cloudwatch_metrics is not None:
            normalized_env[_PUBLISH_CLOUDWATCH_METRICS_ENV_NAME] = "Enabled" if enable_cloudwatch_metrics else "Disabled"

        if dataset_format is not None:
            normalized_env[_DATASET_FORMAT_ENV_NAME] = json.dumps(dataset_format)

        for key, value in (
            (_OUTPUT_PATH_ENV_NAME, output_path),
            (_RECORD_PREPROCESSOR_SCRIPT_ENV_NAME, record_preprocessor_script_container_path),
            (_POST_ANALYTICS_PROCESSOR_SCRIPT_ENV_NAME, post_processor_script_container_path),
            (_DATASET_SOURCE_PATH_ENV_NAME, dataset_source_container_path),
            (_ANALYSIS_TYPE_ENV_NAME, analysis_type),
            (_PROBLEM_TYPE_ENV_NAME, problem_type),
            (_INFERENCE_ATTRIBUTE_ENV_NAME, inference_attribute),
            (_PROBABILITY_ATTRIBUTE_ENV_NAME, probability_attribute),
            (_GROUND_TRUTH_ATTRIBUTE_ENV_NAME, ground_truth_attribute),
            (_PROBABILITY_THRESHOLD_ATTRIBUTE_ENV_NAME, probability_threshold_attribute),
        ):
            if value is not None:
                normalized_env[key] = str(value)

        return normalized_env

    def _get_baseline_files(
        self,
        statistics: Statistics | str | None,
        constraints: Constraints | str | None,
    ) -> tuple[Statistics | None, Constraints | None]:
        """S3 URI 문자열을 Statistics/Constraints 객체로 변환"""
        if isinstance(statistics, str):
            statistics = Statistics.from_s3_uri(statistics, sagemaker_session=self.sagemaker_session)
        if isinstance(constraints, str):
            constraints = Constraints.from_s3_uri(constraints, sagemaker_session=self.sagemaker_session)
        return statistics, constraints

    @staticmethod
    def _normalize_endpoint_input(endpoint_input: EndpointInput | str) -> EndpointInput:
        if isinstance(endpoint_input, str):
            return EndpointInput(
                endpoint_name=endpoint_input,
                destination=f"{_CONTAINER_BASE_PATH}/{_CONTAINER_INPUT_PATH}/{_CONTAINER_ENDPOINT_INPUT_PATH}",
            )
        return endpoint_input

    def _normalize_processing_output(self, output: ProcessingOutput | str) -> ProcessingOutput:
        if isinstance(output, str):
            s3_uri = s3_path_join(
                "s3://",
                self.sagemaker_session.default_bucket(),
                self.sagemaker_session.default_bucket_prefix,
                self.latest_baselining_job_name,
                "output",
            )
            return ProcessingOutput(source=output, destination=s3_uri, output_name=_DEFAULT_OUTPUT_NAME)
        return output

    def _normalize_baseline_output(self, output_s3_uri: str | None = None) -> ProcessingOutput:
        s3_uri = output_s3_uri or s3_path_join(
            "s3://",
            self.sagemaker_session.default_bucket(),
            self.sagemaker_session.default_bucket_prefix,
            _MODEL_MONITOR_S3_PATH,
            _BASELINING_S3_PATH,
            self.latest_baselining_job_name,
            _RESULTS_S3_PATH,
        )
        return ProcessingOutput(
            source=f"{_CONTAINER_BASE_PATH}/{_CONTAINER_OUTPUT_PATH}",
            destination=s3_uri,
            output_name=_DEFAULT_OUTPUT_NAME,
        )

    def _normalize_monitoring_output(self, monitoring_schedule_name: str | None, output_s3_uri: str | None = None) -> MonitoringOutput:
        s3_uri = output_s3_uri or s3_path_join(
            "s3://",
            self.sagemaker_session.default_bucket(),
            self.sagemaker_session.default_bucket_prefix,
            _MODEL_MONITOR_S3_PATH,
            _MONITORING_S3_PATH,
            monitoring_schedule_name,
            _RESULTS_S3_PATH,
        )
        return MonitoringOutput(source=f"{_CONTAINER_BASE_PATH}/{_CONTAINER_OUTPUT_PATH}", destination=s3_uri)

    def _normalize_monitoring_output_fields(self, output: MonitoringOutput) -> MonitoringOutput:
        if output.destination is None:
            output.destination = s3_path_join(
                "s3://",
                self.sagemaker_session.default_bucket(),
                self.sagemaker_session.default_bucket_prefix,
                self.monitoring_schedule_name,
                "output",
            )
        return output

    def _s3_uri_from_local_path(self, path: str, monitoring_schedule_name: str | None = None) -> str:
        """로컬 파일이면 S3로 업로드해 객체 URI를, S3 URI면 그대로 반환"""
        if is_s3_url(path):
            return path

        s3_uri = s3_path_join(
            "s3://",
            self.sagemaker_session.default_bucket(),
            self.sagemaker_session.default_bucket_prefix,
            _MODEL_MONITOR_S3_PATH,
            _MONITORING_S3_PATH,
            monitoring_schedule_name or self.monitoring_schedule_name,
            _INPUT_S3_PATH,
            str(uuid.uuid4()),
        )
        S3Uploader.upload(local_path=path, desired_s3_uri=s3_uri, sagemaker_session=self.sagemaker_session)
        return s3_path_join(s3_uri, os.path.basename(path))

    def _upload_and_convert_to_processing_input(
        self, source: str | None, destination: str, name: str
    ) -> ProcessingInput | None:
        """기준선 작업 입력 생성. 로컬 경로는 기준선 작업 input prefix 아래로 업로드"""
        if source is None:
            return None

        if not is_s3_url(source):
            s3_uri = s3_path_join(
                "s3://",
                self.sagemaker_session.default_bucket(),
                self.sagemaker_session.default_bucket_prefix,
                _MODEL_MONITOR_S3_PATH,
                _BASELINING_S3_PATH,
                self.latest_baselining_job_name,
                _INPUT_S3_PATH,
                name,
            )
            S3Uploader.upload(local_path=source, desired_s3_uri=s3_uri, sagemaker_session=self.sagemaker_session)
            source = s3_uri

        return ProcessingInput(source=source, destination=destination, input_name=name)

    def _wait_for_schedule_changes_to_apply(self) -> None:
        """스케줄이 Pending 상태를 벗어날 때까지 대기 (최대 3분)"""
        for _ in retries(
            max_retry_count=_SCHEDULE_WAIT_RETRIES,
            exception_message_prefix="스케줄 Pending 상태 해제 대기",
            seconds_to_sleep=_SCHEDULE_WAIT_SECONDS,
        ):
            schedule_desc = self.describe_schedule()
            if schedule_desc["MonitoringScheduleStatus"] != "Pending":
                break

    def _validate_network_config(self, network_config_dict: dict[str, Any]) -> None:
        """모델 모니터는 컨테이너 간 트래픽 암호화를 지원하지 않음"""
        if "EnableInterContainerTrafficEncryption" in network_config_dict:
            message = (
                "모델 모니터는 EnableInterContainerTrafficEncryption을 지원하지 않습니다. "
                "NetworkConfig의 encrypt_inter_container_traffic을 None으로 두세요"
            )
            logger.info(message)
            raise ValidationError(
                "encrypt_inter_container_traffic",
                network_config_dict["EnableInterContainerTrafficEncryption"],
                "None",
            )


class DefaultModelMonitor(ModelMonitor):
    """SageMaker 기본 분석 이미지로 데이터 품질(DataQuality)을 모니터링"""

    JOB_DEFINITION_BASE_NAME = "data-quality-job-definition"

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
        session = sagemaker_session or Session()
        super().__init__(
            role=role,
            image_uri=self._get_default_image_uri(session.boto_region_name),
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

    @classmethod
    def monitoring_type(cls) -> str:
        return "DataQuality"

    @staticmethod
    def _get_default_image_uri(region: str) -> str:
        return image_uris.retrieve("model-monitor", region=region)

    def run_baseline(self, *args: Any, **kwargs: Any) -> ProcessingJob:
        raise NotImplementedError("DefaultModelMonitor는 run_baseline() 대신 suggest_baseline()을 사용하세요")

    def suggest_baseline(
        self,
        baseline_dataset: str,
        dataset_format: dict[str, Any],
        record_preprocessor_script: str | None = None,
        post_analytics_processor_script: str | None = None,
        output_s3_uri: str | None = None,
        wait: bool = True,
        logs: bool = True,
        job_name: str | None = None,
    ) -> ProcessingJob:
        """기준선 데이터셋으로 statistics.json과 constraints.json을 생성하는 처리 작업 실행

        Args:
            baseline_dataset: 데이터셋 경로 (로컬 또는 S3)
            dataset_format: DatasetFormat.csv()/json()/sagemaker_capture_json()
            record_preprocessor_script: 레코드 전처리 스크립트 (로컬 또는 S3)
            post_analytics_processor_script: 분석 후처리 스크립트 (로컬 또는 S3)
            output_s3_uri: 결과 저장 위치
                (기본: ``s3://{bucket}/model-monitor/baselining/{job_name}/results``)
            wait: 작업 종료까지 대기 여부
            logs: 대기 중 로그 출력 여부
            job_name: 작업 이름

        Returns:
            기준선 ProcessingJob
        """
        self.latest_baselining_job_name = self._generate_baselining_job_name(job_name=job_name)

        normalized_baseline_dataset_input = self._upload_and_convert_to_processing_input(
            source=baseline_dataset,
            destination=f"{_CONTAINER_BASE_PATH}/{_CONTAINER_INPUT_PATH}/{_BASELINE_DATASET_INPUT_NAME}",
            name=_BASELINE_DATASET_INPUT_NAME,
        )

        normalized_record_preprocessor_script_input = self._upload_and_convert_to_processing_input(
            source=record_preprocessor_script,
            destination=f"{_CONTAINER_BASE_PATH}/{_CONTAINER_INPUT_PATH}/{_RECORD_PREPROCESSOR_SCRIPT_INPUT_NAME}",
            name=_RECORD_PREPROCESSOR_SCRIPT_INPUT_NAME,
        )
        record_preprocessor_script_container_path = None
        if normalized_record_preprocessor_script_input is not None:
            record_preprocessor_script_container_path = (
                f"{normalized_record_preprocessor_script_input.destination}/{os.path.basename(record_preprocessor_script)}"
            )

        normalized_post_processor_script_input = self._upload_and_convert_to_processing_input(
            source=post_analytics_processor_script,
            destination=f"{_CONTAINER_BASE_PATH}/{_CONTAINER_INPUT_PATH}/{_POST_ANALYTICS_PROCESSOR_SCRIPT_INPUT_NAME}",
            name=_POST_ANALYTICS_PROCESSOR_SCRIPT_INPUT_NAME,
        )
        post_processor_script_container_path = None
        if normalized_post_processor_script_input is not None:
            post_processor_script_container_path = (
                f"{normalized_post_processor_script_input.destination}/{os.path.basename(post_analytics_processor_script)}"
            )

        normalized_baseline_output = self._normalize_baseline_output(output_s3_uri=output_s3_uri)

        # CloudWatch 지표 게시는 스케줄 실행에서만 지원
        normalized_env = self._generate_env_map(
            env=self.env,
            dataset_format=dataset_format,
            output_path=normalized_baseline_output.source,
            enable_cloudwatch_metrics=False,
            dataset_source_container_path=normalized_baseline_dataset_input.destination,
            record_preprocessor_script_container_path=record_preprocessor_script_container_path,
            post_processor_script_container_path=post_processor_script_container_path,
        )

        baseline_job_inputs = [
            job_input
            for job_input in (
                normalized_baseline_dataset_input,
                normalized_record_preprocessor_script_input,
                normalized_post_processor_script_input,
            )
            if job_input is not None
        ]
        return self._start_baselining_job(baseline_job_inputs, normalized_baseline_output, normalized_env, wait, logs)

    def create_monitoring_schedule(
        self,
        endpoint_input: EndpointInput | str,
        record_preprocessor_script: str | None = None,
        post_analytics_processor_script: str | None = None,
        output_s3_uri: str | None = None,
        constraints: Constraints | str | None = None,
        statistics: Statistics | str | None = None,
        monitor_schedule_name: str | None = None,
        schedule_cron_expression: str | None = None,
        enable_cloudwatch_metrics: bool = True,
    ) -> None:
        """DataQuality 작업 정의와 스케줄 생성

        statistics/constraints를 주지 않으면 마지막 기준선 작업 이름(BaseliningJobName)을 연결합니다.

        Raises:
            ValidationError: 이미 스케줄을 만든 모니터인 경우
        """
        self._ensure_no_schedule()

        monitor_schedule_name = self._generate_monitoring_schedule_name(schedule_name=monitor_schedule_name)
        new_job_definition_name = name_from_base(self.JOB_DEFINITION_BASE_NAME)

        request_dict = self._build_create_data_quality_job_definition_request(
            monitoring_schedule_name=monitor_schedule_name,
            job_definition_name=new_job_definition_name,
            image_uri=self.image_uri,
            latest_baselining_job_name=self.latest_baselining_job_name,
            endpoint_input=endpoint_input,
            record_preprocessor_script=record_preprocessor_script,
            post_analytics_processor_script=post_analytics_processor_script,
            output_s3_uri=self._normalize_monitoring_output(monitor_schedule_name, output_s3_uri).destination,
            statistics=statistics,
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
        record_preprocessor_script: str | None = None,
        post_analytics_processor_script: str | None = None,
        output_s3_uri: str | None = None,
        statistics: Statistics | str | None = None,
        constraints: Constraints | str | None = None,
        schedule_cron_expression: str | None = None,
        instance_count: int | None = None,
        instance_type: str | None = None,
        volume_size_in_gb: int | None = None,
        volume_kms_key: str | None = None,
        output_kms_key: str | None = None,
        max_runtime_in_seconds: int | None = None,
        env: dict[str, str] | None = None,
        network_config: NetworkConfig | None = None,
        enable_cloudwatch_metrics: bool | None = None,
        role: str | None = None,
    ) -> None:
        """스케줄 갱신

        작업 정의 형식이면 새 작업 정의를 만들어 교체하고,
        인라인 형식(이전에 만든 스케줄)이면 스케줄 구성을 직접 갱신합니다.
        """
        if self.job_definition_name is not None:
            updates = {
                key: value
                for key, value in (
                    ("endpoint_input", endpoint_input),
                    ("record_preprocessor_script", record_preprocessor_script),
                    ("post_analytics_processor_script", post_analytics_processor_script),
                    ("output_s3_uri", output_s3_uri),
                    ("statistics", statistics),
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
                return self._build_create_data_quality_job_definition_request(
                    monitoring_schedule_name=self.monitoring_schedule_name,
                    job_definition_name=job_definition_name,
                    image_uri=self.image_uri,
                    existing_job_desc=job_desc,
                    tags=self.tags,
                    **updates,
                )

            self._update_schedule_with_job_definition(build_request, schedule_cron_expression, updates)
            return

        monitoring_inputs = None
        if endpoint_input is not None:
            monitoring_inputs = [self._normalize_endpoint_input(endpoint_input)._to_request_dict()]

        record_preprocessor_script_s3_uri = None
        if record_preprocessor_script is not None:
            record_preprocessor_script_s3_uri = self._s3_uri_from_local_path(record_preprocessor_script)

        post_analytics_processor_script_s3_uri = None
        if post_analytics_processor_script is not None:
            post_analytics_processor_script_s3_uri = self._s3_uri_from_local_path(post_analytics_processor_script)

        monitoring_output_config = None
        output_path = None
        if output_s3_uri is not None:
            normalized_monitoring_output = self._normalize_monitoring_output(self.monitoring_schedule_name, output_s3_uri)
            monitoring_output_config = {"MonitoringOutputs": [normalized_monitoring_output._to_request_dict()]}
            output_path = normalized_monitoring_output.source

        if env is not None:
            self.env = env

        normalized_env = self._generate_env_map(
            env=env, output_path=output_path, enable_cloudwatch_metrics=enable_cloudwatch_metrics
        )

        statistics_object, constraints_object = self._get_baseline_files(statistics, constraints)

        for attr, value in (
            ("instance_type", instance_type),
            ("instance_count", instance_count),
            ("volume_size_in_gb", volume_size_in_gb),
            ("volume_kms_key", volume_kms_key),
            ("max_runtime_in_seconds", max_runtime_in_seconds),
            ("network_config", network_config),
            ("role", role),
        ):
            if value is not None:
                setattr(self, attr, value)

        if output_kms_key is not None:
            self.output_kms_key = output_kms_key
            if monitoring_output_config is None:
                monitoring_output_config = self._existing_inline_output_config()
            monitoring_output_config["KmsKeyId"] = output_kms_key

        network_config_dict = None
        if self.network_config is not None:
            network_config_dict = self.network_config._to_request_dict()
            self._validate_network_config(network_config_dict)

        self.sagemaker_session.update_monitoring_schedule(
            monitoring_schedule_name=self.monitoring_schedule_name,
            schedule_expression=schedule_cron_expression,
            statistics_s3_uri=statistics_object.file_s3_uri if statistics_object is not None else None,
            constraints_s3_uri=constraints_object.file_s3_uri if constraints_object is not None else None,
            monitoring_inputs=monitoring_inputs,
            monitoring_output_config=monitoring_output_config,
            instance_count=instance_count,
            instance_type=instance_type,
            volume_size_in_gb=volume_size_in_gb,
            volume_kms_key=volume_kms_key,
            record_preprocessor_source_uri=record_preprocessor_script_s3_uri,
            post_analytics_processor_source_uri=post_analytics_processor_script_s3_uri,
            max_runtime_in_seconds=max_runtime_in_seconds,
            environment=normalized_env or None,
            network_config=network_config_dict,
            role_arn=self.sagemaker_session.expand_role(self.role),
        )

        self._wait_for_schedule_changes_to_apply()

    def _build_create_data_quality_job_definition_request(
        self,
        monitoring_schedule_name: str | None,
        job_definition_name: str,
        image_uri: str | None,
        latest_baselining_job_name: str | None = None,
        existing_job_desc: dict[str, Any] | None = None,
        endpoint_input: EndpointInput | str | None = None,
        record_preprocessor_script: str | None = None,
        post_analytics_processor_script: str | None = None,
        output_s3_uri: str | None = None,
        statistics: Statistics | str | None = None,
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
        """CreateDataQualityJobDefinition 요청 생성"""
        app_specification: dict[str, Any] = {"ImageUri": image_uri}
        if record_preprocessor_script is not None:
            app_specification["RecordPreprocessorSourceUri"] = self._s3_uri_from_local_path(
                record_preprocessor_script, monitoring_schedule_name
            )
        if post_analytics_processor_script is not None:
            app_specification["PostAnalyticsProcessorSourceUri"] = self._s3_uri_from_local_path(
                post_analytics_processor_script, monitoring_schedule_name
            )

        normalized_env = self._generate_env_map(env=env, enable_cloudwatch_metrics=enable_cloudwatch_metrics)
        if normalized_env:
            app_specification["Environment"] = normalized_env

        baseline_config: dict[str, Any] = {}
        statistics_object, constraints_object = self._get_baseline_files(statistics, constraints)
        if constraints_object is not None:
            baseline_config["ConstraintsResource"] = {"S3Uri": constraints_object.file_s3_uri}
        if statistics_object is not None:
            baseline_config["StatisticsResource"] = {"S3Uri": statistics_object.file_s3_uri}
        # BYOC에서는 ConstraintsResource와 BaseliningJobName이 함께 올 수 있음
        if latest_baselining_job_name is not None:
            baseline_config["BaseliningJobName"] = latest_baselining_job_name

        return self._merge_job_definition_request(
            job_definition_name=job_definition_name,
            existing_job_desc=existing_job_desc,
            app_specification=app_specification,
            baseline_config=baseline_config,
            endpoint_input=endpoint_input,
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


class ModelQualityMonitor(ModelMonitor):
    """엔드포인트 예측과 정답(ground truth)을 비교해 모델 품질(ModelQuality)을 모니터링"""

    JOB_DEFINITION_BASE_NAME = "model-quality-job-definition"

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
        session = sagemaker_session or Session()
        super().__init__(
            role=role,
            image_uri=image_uris.retrieve("model-monitor", region=session.boto_region_name),
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

    @classmethod
    def monitoring_type(cls) -> str:
        return "ModelQuality"

    def run_baseline(self, *args: Any, **kwargs: Any) -> ProcessingJob:
        raise NotImplementedError("ModelQualityMonitor는 run_baseline() 대신 suggest_baseline()을 사용하세요")

    def suggest_baseline(
        self,
        baseline_dataset: str,
        dataset_format: dict[str, Any],
        problem_type: str,
        inference_attribute: str | None = None,
        probability_attribute: str | int | None = None,
        ground_truth_attribute: str | None = None,
        probability_threshold_attribute: float | None = None,
        post_analytics_processor_script: str | None = None,
        output_s3_uri: str | None = None,
        wait: bool = False,
        logs: bool = False,
        job_name: str | None = None,
    ) -> ProcessingJob:
        """예측/정답이 포함된 데이터셋으로 모델 품질 기준선 생성

        Raises:
            ValidationError: problem_type이 지원되지 않는 경우
        """
        _validate_problem_type(problem_type)
        self.latest_baselining_job_name = self._generate_baselining_job_name(job_name=job_name)

        normalized_baseline_dataset_input = self._upload_and_convert_to_processing_input(
            source=baseline_dataset,
            destination=f"{_CONTAINER_BASE_PATH}/{_CONTAINER_INPUT_PATH}/{_BASELINE_DATASET_INPUT_NAME}",
            name=_BASELINE_DATASET_INPUT_NAME,
        )

        normalized_post_processor_script_input = self._upload_and_convert_to_processing_input(
            source=post_analytics_processor_script,
            destination=f"{_CONTAINER_BASE_PATH}/{_CONTAINER_INPUT_PATH}/{_POST_ANALYTICS_PROCESSOR_SCRIPT_INPUT_NAME}",
            name=_POST_ANALYTICS_PROCESSOR_SCRIPT_INPUT_NAME,
        )
        post_processor_script_container_path = None
        if normalized_post_processor_script_input is not None:
            post_processor_script_container_path = (
                f"{normalized_post_processor_script_input.destination}/{os.path.basename(post_analytics_processor_script)}"
            )

        normalized_baseline_output = self._normalize_baseline_output(output_s3_uri=output_s3_uri)

        normalized_env = self._generate_env_map(
            env=self.env,
            dataset_format=dataset_format,
            output_path=normalized_baseline_output.source,
            enable_cloudwatch_metrics=False,
            dataset_source_container_path=normalized_baseline_dataset_input.destination,
            post_processor_script_container_path=post_processor_script_container_path,
            analysis_type="MODEL_QUALITY",
            problem_type=problem_type,
            inference_attribute=inference_attribute,
            probability_attribute=probability_attribute,
            ground_truth_attribute=ground_truth_attribute,
            probability_threshold_attribute=probability_threshold_attribute,
        )

        baseline_job_inputs = [
            job_input
            for job_input in (normalized_baseline_dataset_input, normalized_post_processor_script_input)
            if job_input is not None
        ]
        return self._start_baselining_job(baseline_job_inputs, normalized_baseline_output, normalized_env, wait, logs)

    def create_monitoring_schedule(
        self,
        endpoint_input: EndpointInput | str,
        ground_truth_input: str,
        problem_type: str,
        record_preprocessor_script: str | None = None,
        post_analytics_processor_script: str | None = None,
        output_s3_uri: str | None = None,
        constraints: Constraints | str | None = None,
        monitor_schedule_name: str | None = None,
        schedule_cron_expression: str | None = None,
        enable_cloudwatch_metrics: bool = True,
    ) -> None:
        """ModelQuality 작업 정의와 스케줄 생성

        Args:
            endpoint_input: 엔드포인트 이름 또는 EndpointInput (inference_attribute 등 포함)
            ground_truth_input: 정답 레이블이 업로드되는 S3 URI
            problem_type: Regression, BinaryClassification, MulticlassClassification

        Raises:
            ValidationError: 이미 스케줄을 만든 모니터이거나 problem_type이 잘못된 경우
        """
        self._ensure_no_schedule()
        _validate_problem_type(problem_type)

        monitor_schedule_name = self._generate_monitoring_schedule_name(schedule_name=monitor_schedule_name)
        new_job_definition_name = name_from_base(self.JOB_DEFINITION_BASE_NAME)

        request_dict = self._build_create_model_quality_job_definition_request(
            monitoring_schedule_name=monitor_schedule_name,
            job_definition_name=new_job_definition_name,
            image_uri=self.image_uri,
            latest_baselining_job_name=self.latest_baselining_job_name,
            endpoint_input=endpoint_input,
            ground_truth_input=ground_truth_input,
            problem_type=problem_type,
            record_preprocessor_script=record_preprocessor_script,
            post_analytics_processor_script=post_analytics_processor_script,
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
        problem_type: str | None = None,
        record_preprocessor_script: str | None = None,
        post_analytics_processor_script: str | None = None,
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
        """새 ModelQuality 작업 정의를 만들어 스케줄에 연결 (cron만 바뀌면 스케줄만 갱신)"""
        if problem_type is not None:
            _validate_problem_type(problem_type)

        updates = {
            key: value
            for key, value in (
                ("endpoint_input", endpoint_input),
                ("ground_truth_input", ground_truth_input),
                ("problem_type", problem_type),
                ("record_preprocessor_script", record_preprocessor_script),
                ("post_analytics_processor_script", post_analytics_processor_script),
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
            return self._build_create_model_quality_job_definition_request(
                monitoring_schedule_name=self.monitoring_schedule_name,
                job_definition_name=job_definition_name,
                image_uri=self.image_uri,
                existing_job_desc=job_desc,
                tags=self.tags,
                **updates,
            )

        self._update_schedule_with_job_definition(build_request, schedule_cron_expression, updates)

    def _build_create_model_quality_job_definition_request(
        self,
        monitoring_schedule_name: str | None,
        job_definition_name: str,
        image_uri: str | None,
        latest_baselining_job_name: str | None = None,
        existing_job_desc: dict[str, Any] | None = None,
        endpoint_input: EndpointInput | str | None = None,
        ground_truth_input: str | None = None,
        problem_type: str | None = None,
        record_preprocessor_script: str | None = None,
        post_analytics_processor_script: str | None = None,
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
        """CreateModelQualityJobDefinition 요청 생성"""
        app_specification: dict[str, Any] = {"ImageUri": image_uri}
        if problem_type is not None:
            app_specification["ProblemType"] = problem_type
        if record_preprocessor_script is not None:
            app_specification["RecordPreprocessorSourceUri"] = self._s3_uri_from_local_path(
                record_preprocessor_script, monitoring_schedule_name
            )
        if post_analytics_processor_script is not None:
            app_specification["PostAnalyticsProcessorSourceUri"] = self._s3_uri_from_local_path(
                post_analytics_processor_script, monitoring_schedule_name
            )

        normalized_env = self._generate_env_map(env=env, enable_cloudwatch_metrics=enable_cloudwatch_metrics)
        if normalized_env:
            app_specification["Environment"] = normalized_env

        baseline_config: dict[str, Any] = {}
        if constraints is not None:
            _, constraints_object = self._get_baseline_files(None, constraints)
            baseline_config["ConstraintsResource"] = {"S3Uri": constraints_object.file_s3_uri}
        if latest_baselining_job_name is not None:
            baseline_config["BaseliningJobName"] = latest_baselining_job_name

        return self._merge_job_definition_request(
            job_definition_name=job_definition_name,
            existing_job_desc=existing_job_desc,
            app_specification=app_specification,
            baseline_config=baseline_config,
            endpoint_input=endpoint_input,
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


def _validate_problem_type(problem_type: str) -> None:
    if problem_type not in PROBLEM_TYPES:
        raise ValidationError("problem_type", problem_type, ", ".join(PROBLEM_TYPES))


def _read_output_file(job: ProcessingJob, file_cls, output_s3_uri: str, file_name: str, kms_key: str | None):
    """작업 출력 파일 로드. 파일이 없고 작업이 미완료면 UnexpectedStatusError"""
    try:
        return file_cls.from_s3_uri(
            s3_path_join(output_s3_uri, file_name),
            kms_key=kms_key,
            sagemaker_session=job.sagemaker_session,
        )
    except APICallError as e:
        if not is_not_found(e):
            raise
        status = job.describe()["ProcessingJobStatus"]
        if status != "Completed":
            raise UnexpectedStatusError(
                f"작업 {job.job_name}이(가) Completed 상태가 아닙니다. 완료된 작업의 파일만 조회할 수 있습니다",
                allowed_statuses=["Completed"],
                actual_status=status,
            ) from e
        raise


class BaselineJob(ProcessingJob):
    """기준선 처리 작업. 출력의 statistics.json / constraints.json 조회"""

    @classmethod
    def from_processing_job(cls, processing_job: ProcessingJob) -> BaselineJob:
        return cls(
            sagemaker_session=processing_job.sagemaker_session,
            job_name=processing_job.job_name,
            inputs=processing_job.inputs,
            outputs=processing_job.outputs,
            output_kms_key=processing_job.output_kms_key,
        )

    def baseline_statistics(self, file_name: str = STATISTICS_JSON_DEFAULT_FILE_NAME, kms_key: str | None = None) -> Statistics:
        return _read_output_file(self, Statistics, self.outputs[0].destination, file_name, kms_key)

    def suggested_constraints(self, file_name: str = CONSTRAINTS_JSON_DEFAULT_FILE_NAME, kms_key: str | None = None) -> Constraints:
        return _read_output_file(self, Constraints, self.outputs[0].destination, file_name, kms_key)


class MonitoringExecution(ProcessingJob):
    """모니터링 스케줄의 한 번의 실행 (처리 작업)

    Attributes:
        output: 실행 결과 출력 (statistics.json, constraint_violations.json 위치)
    """

    def __init__(
        self,
        sagemaker_session: Session,
        job_name: str,
        inputs: list[ProcessingInput] | None,
        output: ProcessingOutput | None,
        output_kms_key: str | None = None,
    ):
        self.output = output
        super().__init__(
            sagemaker_session=sagemaker_session,
            job_name=job_name,
            inputs=inputs,
            outputs=[output] if output is not None else None,
            output_kms_key=output_kms_key,
        )

    @classmethod
    def from_processing_arn(cls, sagemaker_session: Session, processing_job_arn: str) -> MonitoringExecution:
        processing_job = ProcessingJob.from_processing_arn(sagemaker_session, processing_job_arn)
        return cls(
            sagemaker_session=sagemaker_session,
            job_name=processing_job.job_name,
            inputs=processing_job.inputs,
            output=processing_job.outputs[0] if processing_job.outputs else None,
            output_kms_key=processing_job.output_kms_key,
        )

    def statistics(self, file_name: str = STATISTICS_JSON_DEFAULT_FILE_NAME, kms_key: str | None = None) -> Statistics:
        return _read_output_file(self, Statistics, self.output.destination, file_name, kms_key)

    def constraint_violations(
        self, file_name: str = CONSTRAINT_VIOLATIONS_JSON_DEFAULT_FILE_NAME, kms_key: str | None = None
    ) -> ConstraintViolations:
        return _read_output_file(self, ConstraintViolations, self.output.destination, file_name, kms_key)


class EndpointInput:
    """모니터링 작업 입력 엔드포인트

    Attributes:
        endpoint_name: 모니터링할 엔드포인트
        destination: 캡처 데이터가 내려받아질 컨테이너 경로
        start_time_offset / end_time_offset: 분석 구간 (ISO 8601 기간, 예: "-PT1H")
        features_attribute / inference_attribute / probability_attribute: 캡처 레코드의 JSONPath 또는 인덱스
        probability_threshold_attribute: 확률을 이진 레이블로 바꿀 임계값
    """

    S3_INPUT_MODES = ("File", "Pipe")
    S3_DATA_DISTRIBUTION_TYPES = ("FullyReplicated", "ShardedByS3Key")

    def __init__(
        self,
        endpoint_name: str,
        destination: str,
        s3_input_mode: str = "File",
        s3_data_distribution_type: str = "FullyReplicated",
        start_time_offset: str | None = None,
        end_time_offset: str | None = None,
        features_attribute: str | None = None,
        inference_attribute: str | None = None,
        probability_attribute: str | None = None,
        probability_threshold_attribute: float | None = None,
    ):
        if s3_input_mode not in self.S3_INPUT_MODES:
            raise ValidationError("s3_input_mode", s3_input_mode, ", ".join(self.S3_INPUT_MODES))
        if s3_data_distribution_type not in self.S3_DATA_DISTRIBUTION_TYPES:
            raise ValidationError(
                "s3_data_distribution_type", s3_data_distribution_type, ", ".join(self.S3_DATA_DISTRIBUTION_TYPES)
            )

        self.endpoint_name = endpoint_name
        self.destination = destination
        self.s3_input_mode = s3_input_mode
        self.s3_data_distribution_type = s3_data_distribution_type
        self.start_time_offset = start_time_offset
        self.end_time_offset = end_time_offset
        self.features_attribute = features_attribute
        self.inference_attribute = inference_attribute
        self.probability_attribute = probability_attribute
        self.probability_threshold_attribute = probability_threshold_attribute

    def __repr__(self) -> str:
        return f"EndpointInput(endpoint_name={self.endpoint_name!r}, destination={self.destination!r})"

    def _to_request_dict(self) -> dict[str, Any]:
        endpoint_input: dict[str, Any] = {
            "EndpointName": self.endpoint_name,
            "LocalPath": self.destination,
            "S3InputMode": self.s3_input_mode,
            "S3DataDistributionType": self.s3_data_distribution_type,
        }

        for key, value in (
            ("StartTimeOffset", self.start_time_offset),
            ("EndTimeOffset", self.end_time_offset),
            ("FeaturesAttribute", self.features_attribute),
            ("InferenceAttribute", self.inference_attribute),
            ("ProbabilityAttribute", self.probability_attribute),
            ("ProbabilityThresholdAttribute", self.probability_threshold_attribute),
        ):
            if value is not None:
                endpoint_input[key] = value

        return {"EndpointInput": endpoint_input}


class MonitoringOutput:
    """모니터링 작업 출력 (컨테이너 경로 -> S3)"""

    def __init__(self, source: str, destination: str | None = None, s3_upload_mode: str = "Continuous"):
        self.source = source
        self.destination = destination
        self.s3_upload_mode = s3_upload_mode

    def __repr__(self) -> str:
        return f"MonitoringOutput(source={self.source!r}, destination={self.destination!r})"

    def _to_request_dict(self) -> dict[str, Any]:
        return {
            "S3Output": {
                "S3Uri": self.destination,
                "LocalPath": self.source,
                "S3UploadMode": self.s3_upload_mode,
            }
        }
