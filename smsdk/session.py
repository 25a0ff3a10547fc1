"""
smsdk/session.py - SageMaker API 세션

boto3 세션과 SageMaker/S3/CloudWatch Logs 클라이언트를 묶어
작업 생성 요청 조립, 상태 폴링(wait), 로그 tailing을 담당합니다.

주요 구성 요소:
- Session: 모든 SageMaker API 호출의 진입점
- container_def / pipeline_container_def / production_variant / get_create_model_package_request: 요청 구조 헬퍼
- get_execution_role: 현재 자격 증명의 IAM 역할 ARN

Example:
    from smsdk.session import Session

    session = Session()
    bucket = session.default_bucket()
    uri = session.upload_data("data/train.csv", key_prefix="demo/train")

    session.train(**train_args)
    session.logs_for_job(job_name, wait=True)
"""

from __future__ import annotations

import copy
import json
import logging
import os
import time
from collections.abc import Callable
from typing import Any

import boto3
from botocore.exceptions import ClientError

from core.client import LOGS_MAX_ATTEMPTS, get_client
from core.config import SDKConfig, load_config
from core.exceptions import (
    APICallError,
    CapacityError,
    ConfigError,
    UnexpectedStatusError,
    ValidationError,
    is_access_denied,
    is_already_exists,
    is_not_found,
)
from core.retry import RetryConfig, get_error_code, is_retryable
from smsdk import vpc_utils
from smsdk.logs import JobLogTailer, LogState, console
from smsdk.utils import (
    download_folder,
    name_from_base,
    secondary_training_status_changed,
    secondary_training_status_message,
)

logger = logging.getLogger(__name__)

# 태그 전파 지연으로 인한 AccessDenied를 허용하는 시간 (초)
ACCESS_DENIED_GRACE_SECONDS = 300

# 대기 루프의 일시적 오류 (스로틀링 등) 재시도 백오프
WAIT_RETRY_CONFIG = RetryConfig(max_retries=5, base_delay=1.0, max_delay=30.0)

# 종료 상태
TERMINAL_JOB_STATUSES = ("Completed", "Failed", "Stopped")

# 대문자 상태 코드를 CamelCase로 변환 (컴파일 작업 등)
_STATUS_CODE_TABLE = {
    "COMPLETED": "Completed",
    "INPROGRESS": "InProgress",
    "IN_PROGRESS": "InProgress",
    "FAILED": "Failed",
    "STOPPED": "Stopped",
    "STOPPING": "Stopping",
    "STARTING": "Starting",
    "PENDING": "Pending",
}

# MonitoringType -> 작업 정의 API 이름 접미사
_MONITORING_JOB_DEFINITION_OPERATIONS = {
    "DataQuality": "data_quality_job_definition",
    "ModelQuality": "model_quality_job_definition",
    "ModelBias": "model_bias_job_definition",
    "ModelExplainability": "model_explainability_job_definition",
}


class Session:
    """SageMaker API 및 관련 AWS 서비스 호출을 관리하는 세션

    Attributes:
        boto_session: 하위 boto3 Session
        sagemaker_client: SageMaker client
        sagemaker_runtime_client: SageMaker Runtime client (InvokeEndpoint)
        config: SDK 설정
    """

    def __init__(
        self,
        boto_session: boto3.Session | None = None,
        sagemaker_client=None,
        sagemaker_runtime_client=None,
        default_bucket: str | None = None,
        config: SDKConfig | None = None,
    ):
        self.config = config or load_config()
        self.boto_session = boto_session or boto3.Session(region_name=self.config.region)

        self._region_name = self.boto_session.region_name or self.config.region
        if self._region_name is None:
            raise ConfigError("region", "리전을 찾을 수 없습니다. AWS_DEFAULT_REGION 또는 설정 파일에 region을 지정하세요")

        self.sagemaker_client = sagemaker_client or get_client(
            self.boto_session, "sagemaker", region_name=self._region_name, max_attempts=self.config.retry_attempts
        )
        self.sagemaker_runtime_client = sagemaker_runtime_client or get_client(
            self.boto_session, "sagemaker-runtime", region_name=self._region_name, max_attempts=self.config.retry_attempts
        )

        self._s3_client = None
        self._logs_client = None
        self._default_bucket: str | None = None
        self._default_bucket_name_override = default_bucket or self.config.default_bucket
        self.default_bucket_prefix = self.config.default_bucket_prefix

    def __repr__(self) -> str:
        return f"Session(region={self._region_name!r})"

    # =========================================================================
    # 클라이언트 / 계정
    # =========================================================================

    @property
    def boto_region_name(self) -> str:
        return self._region_name

    @property
    def s3_client(self):
        if self._s3_client is None:
            self._s3_client = get_client(self.boto_session, "s3", region_name=self._region_name)
        return self._s3_client

    @property
    def logs_client(self):
        if self._logs_client is None:
            self._logs_client = get_client(
                self.boto_session, "logs", region_name=self._region_name, max_attempts=LOGS_MAX_ATTEMPTS
            )
        return self._logs_client

    def account_id(self) -> str:
        """현재 자격 증명의 AWS 계정 ID"""
        sts = get_client(self.boto_session, "sts", region_name=self._region_name)
        return sts.get_caller_identity()["Account"]

    def _invoke(self, operation: str, **request: Any) -> Any:
        """SageMaker API 호출. ClientError는 APICallError로 변환"""
        try:
            return getattr(self.sagemaker_client, operation)(**request)
        except ClientError as e:
            raise APICallError.from_client_error("sagemaker", operation, e) from e

    def _append_default_tags(self, tags: list[dict[str, str]] | None) -> list[dict[str, str]] | None:
        """설정 파일의 기본 태그를 요청 태그에 병합 (같은 Key는 요청 값 우선)"""
        if not self.config.tags:
            return tags
        merged = list(tags or [])
        keys = {t["Key"] for t in merged}
        merged.extend(t for t in self.config.tags if t["Key"] not in keys)
        return merged

    # =========================================================================
    # S3
    # =========================================================================

    def upload_data(
        self,
        path: str,
        bucket: str | None = None,
        key_prefix: str = "data",
        extra_args: dict[str, Any] | None = None,
    ) -> str:
        """로컬 파일 또는 디렉토리를 S3에 업로드

        Args:
            path: 로컬 파일/디렉토리 경로
            bucket: 대상 버킷 (None이면 default_bucket)
            key_prefix: 대상 키 prefix
            extra_args: S3 upload_file ExtraArgs (KMS 등)

        Returns:
            파일이면 객체 URI, 디렉토리면 prefix URI
        """
        files: list[tuple[str, str]] = []
        key_prefix = key_prefix.strip("/")
        if os.path.isdir(path):
            for dirpath, _, filenames in os.walk(path):
                for name in filenames:
                    local_path = os.path.join(dirpath, name)
                    relative = os.path.relpath(local_path, path).replace(os.sep, "/")
                    files.append((local_path, f"{key_prefix}/{relative}" if key_prefix else relative))
        else:
            name = os.path.basename(path)
            files.append((path, f"{key_prefix}/{name}" if key_prefix else name))

        bucket = bucket or self.default_bucket()
        for local_path, s3_key in files:
            self.s3_client.upload_file(local_path, bucket, s3_key, ExtraArgs=extra_args)
            logger.debug(f"업로드: {local_path} -> s3://{bucket}/{s3_key}")

        if os.path.isdir(path):
            return f"s3://{bucket}/{key_prefix}"
        return f"s3://{bucket}/{files[0][1]}"

    def upload_string_as_file_body(self, body: str, bucket: str, key: str, kms_key: str | None = None) -> str:
        """문자열을 S3 객체로 저장하고 URI 반환"""
        put_args: dict[str, Any] = {"Body": body.encode("utf-8"), "Bucket": bucket, "Key": key}
        if kms_key:
            put_args["SSEKMSKeyId"] = kms_key
            put_args["ServerSideEncryption"] = "aws:kms"
        self.s3_client.put_object(**put_args)
        return f"s3://{bucket}/{key}"

    def download_data(
        self, path: str, bucket: str, key_prefix: str = "", extra_args: dict[str, Any] | None = None
    ) -> list[str]:
        """S3 prefix 아래 객체를 로컬 디렉토리로 다운로드

        Returns:
            다운로드된 로컬 파일 경로 목록
        """
        return download_folder(bucket, key_prefix, path, self, extra_args=extra_args)

    def read_s3_file(self, bucket: str, key_prefix: str) -> str:
        """S3 객체 본문을 UTF-8 문자열로 반환

        Raises:
            APICallError: 객체가 없거나 읽을 권한이 없는 경우
        """
        try:
            response = self.s3_client.get_object(Bucket=bucket, Key=key_prefix)
        except ClientError as e:
            raise APICallError.from_client_error("s3", "get_object", e) from e
        return response["Body"].read().decode("utf-8")

    def list_s3_files(self, bucket: str, key_prefix: str) -> list[str]:
        """S3 prefix 아래 객체 키 목록"""
        paginator = self.s3_client.get_paginator("list_objects_v2")
        keys: list[str] = []
        for page in paginator.paginate(Bucket=bucket, Prefix=key_prefix):
            keys.extend(obj["Key"] for obj in page.get("Contents", []))
        return keys

    def default_bucket(self) -> str:
        """기본 버킷 이름. 없으면 ``sagemaker-{region}-{account}`` 버킷을 생성"""
        if self._default_bucket:
            return self._default_bucket

        region = self.boto_region_name
        default_bucket = self._default_bucket_name_override
        if not default_bucket:
            default_bucket = generate_default_sagemaker_bucket_name(self.account_id(), region)

        self._create_s3_bucket_if_it_does_not_exist(bucket_name=default_bucket, region=region)
        self._default_bucket = default_bucket
        return self._default_bucket

    def _create_s3_bucket_if_it_does_not_exist(self, bucket_name: str, region: str) -> None:
        """버킷이 없으면 생성. 존재하지만 접근 권한이 없으면 예외"""
        try:
            self.s3_client.head_bucket(Bucket=bucket_name)
            return
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code in ("403", "AccessDenied"):
                raise APICallError(
                    "s3",
                    "head_bucket",
                    error_code="AccessDenied",
                    error_message=f"버킷 {bucket_name}이 존재하지만 접근 권한이 없습니다",
                    cause=e,
                ) from e
            if error_code not in ("404", "NoSuchBucket", "NotFound"):
                raise

        try:
            if region == "us-east-1":
                # us-east-1은 LocationConstraint를 지정하면 실패
                self.s3_client.create_bucket(Bucket=bucket_name)
            else:
                self.s3_client.create_bucket(
                    Bucket=bucket_name, CreateBucketConfiguration={"LocationConstraint": region}
                )
            logger.info(f"기본 버킷 생성: {bucket_name}")
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            message = e.response["Error"]["Message"]
            if error_code == "BucketAlreadyOwnedByYou":
                return
            if error_code == "OperationAborted" and "conflicting conditional operation" in message:
                # 다른 프로세스가 동시에 생성 중
                return
            raise

    # =========================================================================
    # 학습 (Training)
    # =========================================================================

    def train(
        self,
        input_mode: str,
        input_config: list[dict[str, Any]] | None,
        role: str,
        job_name: str,
        output_config: dict[str, Any],
        resource_config: dict[str, Any],
        vpc_config: dict[str, Any] | None,
        hyperparameters: dict[str, Any] | None,
        stop_condition: dict[str, Any],
        tags: list[dict[str, str]] | None,
        metric_definitions: list[dict[str, str]] | None,
        enable_network_isolation: bool = False,
        image_uri: str | None = None,
        algorithm_arn: str | None = None,
        encrypt_inter_container_traffic: bool = False,
        use_spot_instances: bool = False,
        checkpoint_s3_uri: str | None = None,
        checkpoint_local_path: str | None = None,
        experiment_config: dict[str, str] | None = None,
        debugger_rule_configs: list[dict[str, Any]] | None = None,
        debugger_hook_config: dict[str, Any] | None = None,
        tensorboard_output_config: dict[str, Any] | None = None,
        enable_sagemaker_metrics: bool | None = None,
        profiler_rule_configs: list[dict[str, Any]] | None = None,
        profiler_config: dict[str, Any] | None = None,
        environment: dict[str, str] | None = None,
        retry_strategy: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """CreateTrainingJob 요청 생성 및 전송

        Returns:
            CreateTrainingJob 응답
        """
        train_request = self._get_train_request(
            input_mode=input_mode,
            input_config=input_config,
            role=role,
            job_name=job_name,
            output_config=output_config,
            resource_config=resource_config,
            vpc_config=vpc_config,
            hyperparameters=hyperparameters,
            stop_condition=stop_condition,
            tags=self._append_default_tags(tags),
            metric_definitions=metric_definitions,
            enable_network_isolation=enable_network_isolation,
            image_uri=image_uri,
            algorithm_arn=algorithm_arn,
            encrypt_inter_container_traffic=encrypt_inter_container_traffic,
            use_spot_instances=use_spot_instances,
            checkpoint_s3_uri=checkpoint_s3_uri,
            checkpoint_local_path=checkpoint_local_path,
            experiment_config=experiment_config,
            debugger_rule_configs=debugger_rule_configs,
            debugger_hook_config=debugger_hook_config,
            tensorboard_output_config=tensorboard_output_config,
            enable_sagemaker_metrics=enable_sagemaker_metrics,
            profiler_rule_configs=profiler_rule_configs,
            profiler_config=profiler_config,
            environment=environment,
            retry_strategy=retry_strategy,
        )
        logger.info(f"학습 작업 생성: {job_name}")
        logger.debug(f"train request: {json.dumps(train_request, indent=4, default=str)}")
        return self._invoke("create_training_job", **train_request)

    def _get_train_request(
        self,
        input_mode: str,
        input_config: list[dict[str, Any]] | None,
        role: str,
        job_name: str,
        output_config: dict[str, Any],
        resource_config: dict[str, Any],
        vpc_config: dict[str, Any] | None,
        hyperparameters: dict[str, Any] | None,
        stop_condition: dict[str, Any],
        tags: list[dict[str, str]] | None,
        metric_definitions: list[dict[str, str]] | None,
        enable_network_isolation: bool = False,
        image_uri: str | None = None,
        algorithm_arn: str | None = None,
        encrypt_inter_container_traffic: bool = False,
        use_spot_instances: bool = False,
        checkpoint_s3_uri: str | None = None,
        checkpoint_local_path: str | None = None,
        experiment_config: dict[str, str] | None = None,
        debugger_rule_configs: list[dict[str, Any]] | None = None,
        debugger_hook_config: dict[str, Any] | None = None,
        tensorboard_output_config: dict[str, Any] | None = None,
        enable_sagemaker_metrics: bool | None = None,
        profiler_rule_configs: list[dict[str, Any]] | None = None,
        profiler_config: dict[str, Any] | None = None,
        environment: dict[str, str] | None = None,
        retry_strategy: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """CreateTrainingJob 요청 딕셔너리 조립

        Raises:
            ValidationError: image_uri와 algorithm_arn이 둘 다 있거나 둘 다 없는 경우
        """
        train_request: dict[str, Any] = {
            "AlgorithmSpecification": {"TrainingInputMode": input_mode},
            "OutputDataConfig": output_config,
            "TrainingJobName": job_name,
            "StoppingCondition": stop_condition,
            "ResourceConfig": resource_config,
            "RoleArn": role,
        }

        if image_uri and algorithm_arn:
            raise ValidationError("image_uri/algorithm_arn", f"{image_uri}/{algorithm_arn}", "둘 중 하나만 지정")
        if image_uri is None and algorithm_arn is None:
            raise ValidationError("image_uri/algorithm_arn", None, "둘 중 하나를 지정")

        if image_uri is not None:
            train_request["AlgorithmSpecification"]["TrainingImage"] = image_uri
        if algorithm_arn is not None:
            train_request["AlgorithmSpecification"]["AlgorithmName"] = algorithm_arn
        if input_config is not None:
            train_request["InputDataConfig"] = input_config
        if metric_definitions is not None:
            train_request["AlgorithmSpecification"]["MetricDefinitions"] = metric_definitions
        if enable_sagemaker_metrics is not None:
            train_request["AlgorithmSpecification"]["EnableSageMakerMetricsTimeSeries"] = enable_sagemaker_metrics
        if hyperparameters and len(hyperparameters) > 0:
            train_request["HyperParameters"] = {str(k): str(v) for k, v in hyperparameters.items()}
        if environment is not None:
            train_request["Environment"] = environment
        if tags is not None:
            train_request["Tags"] = tags
        if vpc_config is not None:
            train_request["VpcConfig"] = vpc_config
        if experiment_config and len(experiment_config) > 0:
            train_request["ExperimentConfig"] = experiment_config
        if enable_network_isolation:
            train_request["EnableNetworkIsolation"] = enable_network_isolation
        if encrypt_inter_container_traffic:
            train_request["EnableInterContainerTrafficEncryption"] = encrypt_inter_container_traffic
        if use_spot_instances:
            train_request["EnableManagedSpotTraining"] = use_spot_instances
        if checkpoint_s3_uri:
            checkpoint_config: dict[str, str] = {"S3Uri": checkpoint_s3_uri}
            if checkpoint_local_path:
                checkpoint_config["LocalPath"] = checkpoint_local_path
            train_request["CheckpointConfig"] = checkpoint_config
        if debugger_rule_configs is not None:
            train_request["DebugRuleConfigurations"] = debugger_rule_configs
        if debugger_hook_config is not None:
            train_request["DebugHookConfig"] = debugger_hook_config
        if tensorboard_output_config is not None:
            train_request["TensorBoardOutputConfig"] = tensorboard_output_config
        if profiler_rule_configs is not None:
            train_request["ProfilerRuleConfigurations"] = profiler_rule_configs
        if profiler_config is not None:
            train_request["ProfilerConfig"] = profiler_config
        if retry_strategy is not None:
            train_request["RetryStrategy"] = retry_strategy

        return train_request

    def describe_training_job(self, job_name: str) -> dict[str, Any]:
        """DescribeTrainingJob 응답"""
        return self._invoke("describe_training_job", TrainingJobName=job_name)

    def stop_training_job(self, job_name: str) -> None:
        """학습 작업 중지 요청"""
        logger.info(f"학습 작업 중지: {job_name}")
        self._invoke("stop_training_job", TrainingJobName=job_name)

    # =========================================================================
    # 처리 (Processing)
    # =========================================================================

    def process(
        self,
        inputs: list[dict[str, Any]] | None,
        output_config: dict[str, Any],
        job_name: str,
        resources: dict[str, Any],
        stopping_condition: dict[str, Any] | None,
        app_specification: dict[str, Any],
        environment: dict[str, str] | None,
        network_config: dict[str, Any] | None,
        role_arn: str,
        tags: list[dict[str, str]] | None,
        experiment_config: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """CreateProcessingJob 요청 생성 및 전송"""
        process_request: dict[str, Any] = {
            "ProcessingJobName": job_name,
            "ProcessingResources": resources,
            "AppSpecification": app_specification,
            "RoleArn": role_arn,
        }

        if inputs:
            process_request["ProcessingInputs"] = inputs
        if output_config and output_config.get("Outputs"):
            process_request["ProcessingOutputConfig"] = output_config
        if environment is not None:
            process_request["Environment"] = environment
        if network_config is not None:
            process_request["NetworkConfig"] = network_config
        if stopping_condition is not None:
            process_request["StoppingCondition"] = stopping_condition
        tags = self._append_default_tags(tags)
        if tags is not None:
            process_request["Tags"] = tags
        if experiment_config:
            process_request["ExperimentConfig"] = experiment_config

        logger.info(f"처리 작업 생성: {job_name}")
        logger.debug(f"process request: {json.dumps(process_request, indent=4, default=str)}")
        return self._invoke("create_processing_job", **process_request)

    def describe_processing_job(self, job_name: str) -> dict[str, Any]:
        """DescribeProcessingJob 응답"""
        return self._invoke("describe_processing_job", ProcessingJobName=job_name)

    def stop_processing_job(self, job_name: str) -> None:
        """처리 작업 중지 요청"""
        logger.info(f"처리 작업 중지: {job_name}")
        self._invoke("stop_processing_job", ProcessingJobName=job_name)

    def was_processing_job_successful(self, job_name: str) -> bool:
        """처리 작업이 Completed 상태인지 확인"""
        job_desc = self.describe_processing_job(job_name)
        return job_desc["ProcessingJobStatus"] == "Completed"

    # =========================================================================
    # 모니터링 스케줄
    # =========================================================================

    def create_monitoring_schedule(
        self,
        monitoring_schedule_name: str,
        schedule_expression: str | None,
        statistics_s3_uri: str | None,
        constraints_s3_uri: str | None,
        monitoring_inputs: list[dict[str, Any]],
        monitoring_output_config: dict[str, Any],
        instance_count: int,
        instance_type: str,
        volume_size_in_gb: int,
        volume_kms_key: str | None = None,
        image_uri: str | None = None,
        entrypoint: list[str] | None = None,
        arguments: list[str] | None = None,
        record_preprocessor_source_uri: str | None = None,
        post_analytics_processor_source_uri: str | None = None,
        max_runtime_in_seconds: int | None = None,
        environment: dict[str, str] | None = None,
        network_config: dict[str, Any] | None = None,
        role_arn: str | None = None,
        tags: list[dict[str, str]] | None = None,
    ) -> dict[str, Any]:
        """인라인 MonitoringJobDefinition으로 모니터링 스케줄 생성"""
        monitoring_schedule_request: dict[str, Any] = {
            "MonitoringScheduleName": monitoring_schedule_name,
            "MonitoringScheduleConfig": {
                "MonitoringJobDefinition": {
                    "MonitoringInputs": monitoring_inputs,
                    "MonitoringResources": {
                        "ClusterConfig": {
                            "InstanceCount": instance_count,
                            "InstanceType": instance_type,
                            "VolumeSizeInGB": volume_size_in_gb,
                        }
                    },
                    "MonitoringAppSpecification": {"ImageUri": image_uri},
                    "RoleArn": role_arn,
                }
            },
        }
        config = monitoring_schedule_request["MonitoringScheduleConfig"]
        job_definition = config["MonitoringJobDefinition"]

        if schedule_expression is not None:
            config["ScheduleConfig"] = {"ScheduleExpression": schedule_expression}

        if monitoring_output_config is not None:
            job_definition["MonitoringOutputConfig"] = monitoring_output_config

        baseline_config = self._baseline_config(statistics_s3_uri, constraints_s3_uri)
        if baseline_config:
            job_definition["BaselineConfig"] = baseline_config

        if volume_kms_key is not None:
            job_definition["MonitoringResources"]["ClusterConfig"]["VolumeKmsKeyId"] = volume_kms_key

        app_specification = job_definition["MonitoringAppSpecification"]
        if entrypoint is not None:
            app_specification["ContainerEntrypoint"] = entrypoint
        if arguments is not None:
            app_specification["ContainerArguments"] = arguments
        if record_preprocessor_source_uri is not None:
            app_specification["RecordPreprocessorSourceUri"] = record_preprocessor_source_uri
        if post_analytics_processor_source_uri is not None:
            app_specification["PostAnalyticsProcessorSourceUri"] = post_analytics_processor_source_uri

        if max_runtime_in_seconds is not None:
            job_definition["StoppingCondition"] = {"MaxRuntimeInSeconds": max_runtime_in_seconds}
        if environment is not None:
            job_definition["Environment"] = environment
        if network_config is not None:
            job_definition["NetworkConfig"] = network_config

        tags = self._append_default_tags(tags)
        if tags is not None:
            monitoring_schedule_request["Tags"] = tags

        logger.info(f"모니터링 스케줄 생성: {monitoring_schedule_name}")
        logger.debug(f"monitoring schedule request: {json.dumps(monitoring_schedule_request, indent=4, default=str)}")
        return self._invoke("create_monitoring_schedule", **monitoring_schedule_request)

    def create_monitoring_schedule_from_job_definition(
        self,
        monitoring_schedule_name: str,
        job_definition_name: str,
        monitoring_type: str,
        schedule_expression: str | None = None,
        tags: list[dict[str, str]] | None = None,
    ) -> dict[str, Any]:
        """별도로 생성한 작업 정의(DataQuality/ModelQuality/ModelBias/ModelExplainability)로 스케줄 생성"""
        config: dict[str, Any] = {
            "MonitoringJobDefinitionName": job_definition_name,
            "MonitoringType": monitoring_type,
        }
        if schedule_expression is not None:
            config["ScheduleConfig"] = {"ScheduleExpression": schedule_expression}

        request: dict[str, Any] = {"MonitoringScheduleName": monitoring_schedule_name, "MonitoringScheduleConfig": config}
        tags = self._append_default_tags(tags)
        if tags is not None:
            request["Tags"] = tags

        logger.info(f"모니터링 스케줄 생성: {monitoring_schedule_name} ({monitoring_type})")
        return self._invoke("create_monitoring_schedule", **request)

    def update_monitoring_schedule(
        self,
        monitoring_schedule_name: str,
        schedule_expression: str | None = None,
        statistics_s3_uri: str | None = None,
        constraints_s3_uri: str | None = None,
        monitoring_inputs: list[dict[str, Any]] | None = None,
        monitoring_output_config: dict[str, Any] | None = None,
        instance_count: int | None = None,
        instance_type: str | None = None,
        volume_size_in_gb: int | None = None,
        volume_kms_key: str | None = None,
        image_uri: str | None = None,
        entrypoint: list[str] | None = None,
        arguments: list[str] | None = None,
        record_preprocessor_source_uri: str | None = None,
        post_analytics_processor_source_uri: str | None = None,
        max_runtime_in_seconds: int | None = None,
        environment: dict[str, str] | None = None,
        network_config: dict[str, Any] | None = None,
        role_arn: str | None = None,
        job_definition_name: str | None = None,
    ) -> dict[str, Any]:
        """기존 스케줄 구성에 전달된 값만 덮어써서 업데이트"""
        existing_desc = self.describe_monitoring_schedule(monitoring_schedule_name=monitoring_schedule_name)
        config = copy.deepcopy(existing_desc["MonitoringScheduleConfig"])

        if schedule_expression is not None:
            config["ScheduleConfig"] = {"ScheduleExpression": schedule_expression}
        if job_definition_name is not None:
            config["MonitoringJobDefinitionName"] = job_definition_name

        job_definition = config.get("MonitoringJobDefinition")
        if job_definition is not None:
            baseline_config = job_definition.get("BaselineConfig", {})
            baseline_config.update(self._baseline_config(statistics_s3_uri, constraints_s3_uri))
            if baseline_config:
                job_definition["BaselineConfig"] = baseline_config

            if monitoring_inputs is not None:
                job_definition["MonitoringInputs"] = monitoring_inputs
            if monitoring_output_config is not None:
                job_definition["MonitoringOutputConfig"] = monitoring_output_config

            cluster_config = job_definition["MonitoringResources"]["ClusterConfig"]
            for key, value in (
                ("InstanceCount", instance_count),
                ("InstanceType", instance_type),
                ("VolumeSizeInGB", volume_size_in_gb),
                ("VolumeKmsKeyId", volume_kms_key),
            ):
                if value is not None:
                    cluster_config[key] = value

            app_specification = job_definition["MonitoringAppSpecification"]
            for key, value in (
                ("ImageUri", image_uri),
                ("ContainerEntrypoint", entrypoint),
                ("ContainerArguments", arguments),
                ("RecordPreprocessorSourceUri", record_preprocessor_source_uri),
                ("PostAnalyticsProcessorSourceUri", post_analytics_processor_source_uri),
            ):
                if value is not None:
                    app_specification[key] = value

            if max_runtime_in_seconds is not None:
                job_definition["StoppingCondition"] = {"MaxRuntimeInSeconds": max_runtime_in_seconds}
            if environment is not None:
                job_definition["Environment"] = environment
            if network_config is not None:
                job_definition["NetworkConfig"] = network_config
            if role_arn is not None:
                job_definition["RoleArn"] = role_arn

        logger.info(f"모니터링 스케줄 업데이트: {monitoring_schedule_name}")
        return self._invoke(
            "update_monitoring_schedule",
            MonitoringScheduleName=monitoring_schedule_name,
            MonitoringScheduleConfig=config,
        )

    @staticmethod
    def _baseline_config(statistics_s3_uri: str | None, constraints_s3_uri: str | None) -> dict[str, Any]:
        baseline_config: dict[str, Any] = {}
        if statistics_s3_uri is not None:
            baseline_config["StatisticsResource"] = {"S3Uri": statistics_s3_uri}
        if constraints_s3_uri is not None:
            baseline_config["ConstraintsResource"] = {"S3Uri": constraints_s3_uri}
        return baseline_config

    def start_monitoring_schedule(self, monitoring_schedule_name: str) -> None:
        logger.info(f"모니터링 스케줄 시작: {monitoring_schedule_name}")
        self._invoke("start_monitoring_schedule", MonitoringScheduleName=monitoring_schedule_name)

    def stop_monitoring_schedule(self, monitoring_schedule_name: str) -> None:
        logger.info(f"모니터링 스케줄 중지: {monitoring_schedule_name}")
        self._invoke("stop_monitoring_schedule", MonitoringScheduleName=monitoring_schedule_name)

    def delete_monitoring_schedule(self, monitoring_schedule_name: str) -> None:
        logger.info(f"모니터링 스케줄 삭제: {monitoring_schedule_name}")
        self._invoke("delete_monitoring_schedule", MonitoringScheduleName=monitoring_schedule_name)

    def describe_monitoring_schedule(self, monitoring_schedule_name: str) -> dict[str, Any]:
        return self._invoke("describe_monitoring_schedule", MonitoringScheduleName=monitoring_schedule_name)

    def list_monitoring_executions(
        self,
        monitoring_schedule_name: str,
        scheduled_time_before=None,
        scheduled_time_after=None,
        sort_by: str = "ScheduledTime",
        sort_order: str = "Descending",
        max_results: int = 100,
    ) -> dict[str, Any]:
        """스케줄의 실행 기록 조회"""
        request: dict[str, Any] = {
            "MonitoringScheduleName": monitoring_schedule_name,
            "SortBy": sort_by,
            "SortOrder": sort_order,
            "MaxResults": max_results,
        }
        if scheduled_time_before:
            request["ScheduledTimeBefore"] = scheduled_time_before
        if scheduled_time_after:
            request["ScheduledTimeAfter"] = scheduled_time_after
        return self._invoke("list_monitoring_executions", **request)

    def list_monitoring_schedules(
        self,
        endpoint_name: str | None = None,
        sort_by: str = "CreationTime",
        sort_order: str = "Descending",
        max_results: int = 100,
    ) -> dict[str, Any]:
        """모니터링 스케줄 목록 (엔드포인트 필터 가능)"""
        request: dict[str, Any] = {"SortBy": sort_by, "SortOrder": sort_order, "MaxResults": max_results}
        if endpoint_name is not None:
            request["EndpointName"] = endpoint_name
        return self._invoke("list_monitoring_schedules", **request)

    def create_monitoring_job_definition(self, monitoring_type: str, request: dict[str, Any]) -> dict[str, Any]:
        """Create{monitoring_type}JobDefinition 호출 (DataQuality, ModelQuality, ModelBias, ModelExplainability)"""
        request = dict(request)
        tags = self._append_default_tags(request.pop("Tags", None))
        if tags is not None:
            request["Tags"] = tags

        logger.info(f"{monitoring_type} 작업 정의 생성: {request['JobDefinitionName']}")
        logger.debug(f"job definition request: {json.dumps(request, indent=4, default=str)}")
        return self._invoke(f"create_{_MONITORING_JOB_DEFINITION_OPERATIONS[monitoring_type]}", **request)

    def describe_monitoring_job_definition(self, monitoring_type: str, job_definition_name: str) -> dict[str, Any]:
        return self._invoke(
            f"describe_{_MONITORING_JOB_DEFINITION_OPERATIONS[monitoring_type]}",
            JobDefinitionName=job_definition_name,
        )

    def delete_monitoring_job_definition(self, monitoring_type: str, job_definition_name: str) -> None:
        logger.info(f"{monitoring_type} 작업 정의 삭제: {job_definition_name}")
        self._invoke(
            f"delete_{_MONITORING_JOB_DEFINITION_OPERATIONS[monitoring_type]}",
            JobDefinitionName=job_definition_name,
        )

    # =========================================================================
    # 컴파일 (Neo)
    # =========================================================================

    def compile_model(
        self,
        input_model_config: dict[str, Any],
        output_model_config: dict[str, Any],
        role: str,
        job_name: str,
        stop_condition: dict[str, Any],
        tags: list[dict[str, str]] | None,
    ) -> dict[str, Any]:
        """CreateCompilationJob 요청 생성 및 전송"""
        compilation_job_request: dict[str, Any] = {
            "InputConfig": input_model_config,
            "OutputConfig": output_model_config,
            "RoleArn": role,
            "StoppingCondition": stop_condition,
            "CompilationJobName": job_name,
        }
        tags = self._append_default_tags(tags)
        if tags is not None:
            compilation_job_request["Tags"] = tags

        logger.info(f"컴파일 작업 생성: {job_name}")
        logger.debug(f"compile request: {json.dumps(compilation_job_request, indent=4, default=str)}")
        return self._invoke("create_compilation_job", **compilation_job_request)

    def describe_compilation_job(self, job_name: str) -> dict[str, Any]:
        return self._invoke("describe_compilation_job", CompilationJobName=job_name)

    # =========================================================================
    # 하이퍼파라미터 튜닝
    # =========================================================================

    def create_tuning_job(
        self,
        job_name: str,
        tuning_config: dict[str, Any],
        training_config: dict[str, Any],
        warm_start_config: dict[str, Any] | None = None,
        tags: list[dict[str, str]] | None = None,
    ) -> dict[str, Any]:
        """CreateHyperParameterTuningJob 요청 생성 및 전송"""
        tune_request: dict[str, Any] = {
            "HyperParameterTuningJobName": job_name,
            "HyperParameterTuningJobConfig": tuning_config,
            "TrainingJobDefinition": training_config,
        }
        if warm_start_config is not None:
            tune_request["WarmStartConfig"] = warm_start_config
        tags = self._append_default_tags(tags)
        if tags is not None:
            tune_request["Tags"] = tags

        logger.info(f"튜닝 작업 생성: {job_name}")
        logger.debug(f"tune request: {json.dumps(tune_request, indent=4, default=str)}")
        return self._invoke("create_hyper_parameter_tuning_job", **tune_request)

    @staticmethod
    def _map_tuning_config(
        strategy: str,
        max_jobs: int,
        max_parallel_jobs: int,
        early_stopping_type: str = "Off",
        objective_type: str | None = None,
        objective_metric_name: str | None = None,
        parameter_ranges: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """HyperParameterTuningJobConfig 조립"""
        tuning_config: dict[str, Any] = {
            "Strategy": strategy,
            "ResourceLimits": {
                "MaxNumberOfTrainingJobs": max_jobs,
                "MaxParallelTrainingJobs": max_parallel_jobs,
            },
            "TrainingJobEarlyStoppingType": early_stopping_type,
        }

        if objective_type is not None or objective_metric_name is not None:
            tuning_config["HyperParameterTuningJobObjective"] = {
                "Type": objective_type,
                "MetricName": objective_metric_name,
            }
        if parameter_ranges is not None:
            tuning_config["ParameterRanges"] = parameter_ranges

        return tuning_config

    @staticmethod
    def _map_training_config(
        static_hyperparameters: dict[str, str],
        input_mode: str,
        role: str,
        output_config: dict[str, Any],
        resource_config: dict[str, Any],
        stop_condition: dict[str, Any],
        input_config: list[dict[str, Any]] | None = None,
        metric_definitions: list[dict[str, str]] | None = None,
        image_uri: str | None = None,
        algorithm_arn: str | None = None,
        vpc_config: dict[str, Any] | None = None,
        enable_network_isolation: bool = False,
        encrypt_inter_container_traffic: bool = False,
        use_spot_instances: bool = False,
        checkpoint_s3_uri: str | None = None,
        checkpoint_local_path: str | None = None,
    ) -> dict[str, Any]:
        """튜닝 작업의 TrainingJobDefinition 조립"""
        training_job_definition: dict[str, Any] = {
            "StaticHyperParameters": static_hyperparameters,
            "RoleArn": role,
            "OutputDataConfig": output_config,
            "ResourceConfig": resource_config,
            "StoppingCondition": stop_condition,
        }

        algorithm_spec: dict[str, Any] = {"TrainingInputMode": input_mode}
        if metric_definitions is not None:
            algorithm_spec["MetricDefinitions"] = metric_definitions
        if algorithm_arn is not None:
            algorithm_spec["AlgorithmName"] = algorithm_arn
        else:
            algorithm_spec["TrainingImage"] = image_uri
        training_job_definition["AlgorithmSpecification"] = algorithm_spec

        if input_config is not None:
            training_job_definition["InputDataConfig"] = input_config
        if vpc_config is not None:
            training_job_definition["VpcConfig"] = vpc_config
        if enable_network_isolation:
            training_job_definition["EnableNetworkIsolation"] = True
        if encrypt_inter_container_traffic:
            training_job_definition["EnableInterContainerTrafficEncryption"] = True
        if use_spot_instances:
            training_job_definition["EnableManagedSpotTraining"] = True
        if checkpoint_s3_uri:
            checkpoint_config: dict[str, str] = {"S3Uri": checkpoint_s3_uri}
            if checkpoint_local_path:
                checkpoint_config["LocalPath"] = checkpoint_local_path
            training_job_definition["CheckpointConfig"] = checkpoint_config

        return training_job_definition

    def describe_tuning_job(self, job_name: str) -> dict[str, Any]:
        return self._invoke("describe_hyper_parameter_tuning_job", HyperParameterTuningJobName=job_name)

    def stop_tuning_job(self, name: str) -> None:
        """튜닝 작업 중지. 이미 종료된 작업이면 경고만 남김"""
        try:
            logger.info(f"튜닝 작업 중지: {name}")
            self.sagemaker_client.stop_hyper_parameter_tuning_job(HyperParameterTuningJobName=name)
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            if error_code == "ValidationException":
                logger.warning(f"튜닝 작업 {name}은 이미 중지되었거나 종료되었습니다")
            else:
                raise APICallError.from_client_error("sagemaker", "stop_hyper_parameter_tuning_job", e) from e

    # =========================================================================
    # 배치 변환 (Transform)
    # =========================================================================

    def transform(
        self,
        job_name: str,
        model_name: str,
        strategy: str | None,
        max_concurrent_transforms: int | None,
        max_payload: int | None,
        env: dict[str, str] | None,
        input_config: dict[str, Any],
        output_config: dict[str, Any],
        resource_config: dict[str, Any],
        experiment_config: dict[str, str] | None = None,
        tags: list[dict[str, str]] | None = None,
        data_processing: dict[str, str] | None = None,
        model_client_config: dict[str, int] | None = None,
    ) -> dict[str, Any]:
        """CreateTransformJob 요청 생성 및 전송"""
        transform_request: dict[str, Any] = {
            "TransformJobName": job_name,
            "ModelName": model_name,
            "TransformInput": input_config,
            "TransformOutput": output_config,
            "TransformResources": resource_config,
        }

        if strategy is not None:
            transform_request["BatchStrategy"] = strategy
        if max_concurrent_transforms is not None:
            transform_request["MaxConcurrentTransforms"] = max_concurrent_transforms
        if max_payload is not None:
            transform_request["MaxPayloadInMB"] = max_payload
        if env is not None:
            transform_request["Environment"] = env
        tags = self._append_default_tags(tags)
        if tags is not None:
            transform_request["Tags"] = tags
        if data_processing is not None:
            transform_request["DataProcessing"] = data_processing
        if experiment_config and len(experiment_config) > 0:
            transform_request["ExperimentConfig"] = experiment_config
        if model_client_config and len(model_client_config) > 0:
            transform_request["ModelClientConfig"] = model_client_config

        logger.info(f"변환 작업 생성: {job_name}")
        logger.debug(f"transform request: {json.dumps(transform_request, indent=4, default=str)}")
        return self._invoke("create_transform_job", **transform_request)

    def describe_transform_job(self, job_name: str) -> dict[str, Any]:
        return self._invoke("describe_transform_job", TransformJobName=job_name)

    def stop_transform_job(self, name: str) -> None:
        """변환 작업 중지. 이미 종료된 작업이면 경고만 남김"""
        try:
            logger.info(f"변환 작업 중지: {name}")
            self.sagemaker_client.stop_transform_job(TransformJobName=name)
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            if error_code == "ValidationException":
                logger.warning(f"변환 작업 {name}은 이미 중지되었거나 종료되었습니다")
            else:
                raise APICallError.from_client_error("sagemaker", "stop_transform_job", e) from e

    # =========================================================================
    # 모델
    # =========================================================================

    def create_model(
        self,
        name: str,
        role: str,
        container_defs: dict[str, Any] | list[dict[str, Any]],
        vpc_config: dict[str, Any] | None = None,
        enable_network_isolation: bool = False,
        tags: list[dict[str, str]] | None = None,
    ) -> str:
        """CreateModel 요청 전송. 같은 이름의 모델이 이미 있으면 그대로 사용

        Args:
            name: 모델 이름
            role: 실행 역할 이름 또는 ARN
            container_defs: 단일 컨테이너 정의(dict) 또는 추론 파이프라인 컨테이너 목록(list)
            vpc_config: VpcConfig
            enable_network_isolation: 네트워크 격리 여부
            tags: 태그

        Returns:
            모델 이름
        """
        role = self.expand_role(role)

        request: dict[str, Any] = {"ModelName": name, "ExecutionRoleArn": role}
        if isinstance(container_defs, list):
            request["Containers"] = container_defs
        else:
            request["PrimaryContainer"] = container_defs

        tags = self._append_default_tags(tags)
        if tags is not None:
            request["Tags"] = tags
        if vpc_config:
            request["VpcConfig"] = vpc_config
        if enable_network_isolation:
            request["EnableNetworkIsolation"] = True

        logger.info(f"모델 생성: {name}")
        logger.debug(f"create_model request: {json.dumps(request, indent=4, default=str)}")
        try:
            self.sagemaker_client.create_model(**request)
        except ClientError as e:
            if not is_already_exists(e):
                raise APICallError.from_client_error("sagemaker", "create_model", e) from e
            logger.warning(f"이미 존재하는 모델을 사용합니다: {name}")

        return name

    def create_model_from_job(
        self,
        training_job_name: str,
        name: str | None = None,
        role: str | None = None,
        image_uri: str | None = None,
        model_data_url: str | None = None,
        env: dict[str, str] | None = None,
        enable_network_isolation: bool | None = None,
        vpc_config_override: Any = vpc_utils.VPC_CONFIG_DEFAULT,
        tags: list[dict[str, str]] | None = None,
    ) -> str:
        """완료된 학습 작업의 산출물로 모델 생성"""
        training_job = self.describe_training_job(training_job_name)
        name = name or training_job_name
        role = role or training_job["RoleArn"]
        env = env or {}
        primary_container = container_def(
            image_uri or training_job["AlgorithmSpecification"]["TrainingImage"],
            model_data_url=model_data_url or training_job["ModelArtifacts"]["S3ModelArtifacts"],
            env=env,
        )
        vpc_config = _vpc_config_from_training_job(training_job, vpc_config_override)
        if enable_network_isolation is None:
            enable_network_isolation = training_job.get("EnableNetworkIsolation", False)
        return self.create_model(
            name,
            role,
            primary_container,
            vpc_config=vpc_config,
            enable_network_isolation=enable_network_isolation,
            tags=tags,
        )

    def describe_model(self, name: str) -> dict[str, Any]:
        return self._invoke("describe_model", ModelName=name)

    def describe_endpoint(self, endpoint_name: str) -> dict[str, Any]:
        return self._invoke("describe_endpoint", EndpointName=endpoint_name)

    def delete_model(self, model_name: str) -> None:
        logger.info(f"모델 삭제: {model_name}")
        self._invoke("delete_model", ModelName=model_name)

    # =========================================================================
    # 모델 패키지
    # =========================================================================

    def create_model_package_from_algorithm(
        self, name: str, description: str | None, algorithm_arn: str, model_data: str
    ) -> str:
        """알고리즘 리소스와 모델 아티팩트로 모델 패키지 생성. 이미 있으면 그대로 사용"""
        request = {
            "ModelPackageName": name,
            "ModelPackageDescription": description,
            "SourceAlgorithmSpecification": {
                "SourceAlgorithms": [{"AlgorithmName": algorithm_arn, "ModelDataUrl": model_data}]
            },
        }
        logger.info(f"모델 패키지 생성: {name}")
        try:
            self.sagemaker_client.create_model_package(**request)
        except ClientError as e:
            if not is_already_exists(e):
                raise APICallError.from_client_error("sagemaker", "create_model_package", e) from e
            logger.warning(f"이미 존재하는 모델 패키지를 사용합니다: {name}")
        return name

    def create_model_package_from_containers(
        self,
        containers: list[dict[str, Any]] | None = None,
        content_types: list[str] | None = None,
        response_types: list[str] | None = None,
        inference_instances: list[str] | None = None,
        transform_instances: list[str] | None = None,
        model_package_name: str | None = None,
        model_package_group_name: str | None = None,
        model_metrics: dict[str, Any] | None = None,
        metadata_properties: dict[str, Any] | None = None,
        marketplace_cert: bool = False,
        approval_status: str = "PendingManualApproval",
        description: str | None = None,
    ) -> dict[str, Any]:
        """추론 컨테이너 정의로 모델 패키지 생성 (모델 레지스트리 등록)

        Returns:
            CreateModelPackage 응답 (ModelPackageArn 포함)

        Raises:
            ValidationError: 요청 인자 조합이 잘못된 경우
        """
        request = get_create_model_package_request(
            model_package_name=model_package_name,
            model_package_group_name=model_package_group_name,
            containers=containers,
            content_types=content_types,
            response_types=response_types,
            inference_instances=inference_instances,
            transform_instances=transform_instances,
            model_metrics=model_metrics,
            metadata_properties=metadata_properties,
            marketplace_cert=marketplace_cert,
            approval_status=approval_status,
            description=description,
        )
        logger.info(f"모델 패키지 등록: {model_package_name or model_package_group_name}")
        logger.debug(f"create_model_package request: {json.dumps(request, indent=4, default=str)}")
        return self._invoke("create_model_package", **request)

    def describe_model_package(self, model_package_name: str) -> dict[str, Any]:
        return self._invoke("describe_model_package", ModelPackageName=model_package_name)

    # =========================================================================
    # 엔드포인트
    # =========================================================================

    def create_endpoint_config(
        self,
        name: str,
        model_name: str,
        initial_instance_count: int,
        instance_type: str,
        accelerator_type: str | None = None,
        tags: list[dict[str, str]] | None = None,
        kms_key: str | None = None,
        data_capture_config_dict: dict[str, Any] | None = None,
    ) -> str:
        """단일 프로덕션 변형(AllTraffic)을 가진 엔드포인트 구성 생성"""
        logger.info(f"엔드포인트 구성 생성: {name}")

        request: dict[str, Any] = {
            "EndpointConfigName": name,
            "ProductionVariants": [
                production_variant(
                    model_name,
                    instance_type,
                    initial_instance_count,
                    accelerator_type=accelerator_type,
                )
            ],
        }
        tags = self._append_default_tags(tags)
        if tags is not None:
            request["Tags"] = tags
        if kms_key is not None:
            request["KmsKeyId"] = kms_key
        if data_capture_config_dict is not None:
            request["DataCaptureConfig"] = data_capture_config_dict

        self._invoke("create_endpoint_config", **request)
        return name

    def create_endpoint_config_from_existing(
        self,
        existing_config_name: str,
        new_config_name: str,
        new_tags: list[dict[str, str]] | None = None,
        new_kms_key: str | None = None,
        new_data_capture_config_dict: dict[str, Any] | None = None,
        new_production_variants: list[dict[str, Any]] | None = None,
    ) -> str:
        """기존 엔드포인트 구성을 복사하고 일부 값을 교체해 새 구성 생성"""
        logger.info(f"엔드포인트 구성 복사: {existing_config_name} -> {new_config_name}")

        existing_endpoint_config_desc = self._invoke("describe_endpoint_config", EndpointConfigName=existing_config_name)

        request: dict[str, Any] = {
            "EndpointConfigName": new_config_name,
            "ProductionVariants": new_production_variants or existing_endpoint_config_desc["ProductionVariants"],
        }

        request_tags = new_tags or self.list_tags(existing_endpoint_config_desc["EndpointConfigArn"])
        if request_tags:
            request["Tags"] = request_tags

        if new_kms_key is not None or existing_endpoint_config_desc.get("KmsKeyId") is not None:
            request["KmsKeyId"] = new_kms_key or existing_endpoint_config_desc.get("KmsKeyId")

        request_data_capture_config_dict = new_data_capture_config_dict or existing_endpoint_config_desc.get(
            "DataCaptureConfig"
        )
        if request_data_capture_config_dict is not None:
            request["DataCaptureConfig"] = request_data_capture_config_dict

        self._invoke("create_endpoint_config", **request)
        return new_config_name

    def create_endpoint(
        self, endpoint_name: str, config_name: str, tags: list[dict[str, str]] | None = None, wait: bool = True
    ) -> str:
        """엔드포인트 생성. wait=True면 InService까지 대기"""
        logger.info(f"엔드포인트 생성: {endpoint_name}")

        tags = self._append_default_tags(tags) or []
        self._invoke("create_endpoint", EndpointName=endpoint_name, EndpointConfigName=config_name, Tags=tags)
        if wait:
            self.wait_for_endpoint(endpoint_name)
        return endpoint_name

    def update_endpoint(self, endpoint_name: str, endpoint_config_name: str, wait: bool = True) -> str:
        """엔드포인트에 새 구성 적용

        Raises:
            ValidationError: 엔드포인트가 존재하지 않는 경우
        """
        if not _deployment_entity_exists(lambda: self.sagemaker_client.describe_endpoint(EndpointName=endpoint_name)):
            raise ValidationError("endpoint_name", endpoint_name, "존재하는 엔드포인트")

        logger.info(f"엔드포인트 업데이트: {endpoint_name} -> {endpoint_config_name}")
        self._invoke("update_endpoint", EndpointName=endpoint_name, EndpointConfigName=endpoint_config_name)

        if wait:
            self.wait_for_endpoint(endpoint_name)
        return endpoint_name

    def delete_endpoint(self, endpoint_name: str) -> None:
        logger.info(f"엔드포인트 삭제: {endpoint_name}")
        self._invoke("delete_endpoint", EndpointName=endpoint_name)

    def delete_endpoint_config(self, endpoint_config_name: str) -> None:
        logger.info(f"엔드포인트 구성 삭제: {endpoint_config_name}")
        self._invoke("delete_endpoint_config", EndpointConfigName=endpoint_config_name)

    def endpoint_from_production_variants(
        self,
        name: str,
        production_variants: list[dict[str, Any]],
        tags: list[dict[str, str]] | None = None,
        kms_key: str | None = None,
        wait: bool = True,
        data_capture_config_dict: dict[str, Any] | None = None,
    ) -> str:
        """프로덕션 변형 목록으로 엔드포인트 구성과 엔드포인트를 함께 생성"""
        config_options: dict[str, Any] = {"EndpointConfigName": name, "ProductionVariants": production_variants}
        tags = self._append_default_tags(tags)
        if tags:
            config_options["Tags"] = tags
        if kms_key:
            config_options["KmsKeyId"] = kms_key
        if data_capture_config_dict is not None:
            config_options["DataCaptureConfig"] = data_capture_config_dict

        logger.info(f"엔드포인트 구성 생성: {name}")
        self._invoke("create_endpoint_config", **config_options)

        return self.create_endpoint(endpoint_name=name, config_name=name, tags=tags, wait=wait)

    def endpoint_from_job(
        self,
        job_name: str,
        initial_instance_count: int,
        instance_type: str,
        image_uri: str | None = None,
        name: str | None = None,
        role: str | None = None,
        wait: bool = True,
        model_environment_vars: dict[str, str] | None = None,
        vpc_config_override: Any = vpc_utils.VPC_CONFIG_DEFAULT,
        accelerator_type: str | None = None,
        data_capture_config: Any = None,
    ) -> str:
        """학습 작업 산출물로 모델/엔드포인트 구성/엔드포인트를 한 번에 생성"""
        job_desc = self.describe_training_job(job_name)
        output_url = job_desc["ModelArtifacts"]["S3ModelArtifacts"]
        image_uri = image_uri or job_desc["AlgorithmSpecification"]["TrainingImage"]
        role = role or job_desc["RoleArn"]
        name = name or job_name
        vpc_config_override = _vpc_config_from_training_job(job_desc, vpc_config_override)

        return self.endpoint_from_model_data(
            model_s3_location=output_url,
            image_uri=image_uri,
            initial_instance_count=initial_instance_count,
            instance_type=instance_type,
            name=name,
            role=role,
            wait=wait,
            model_environment_vars=model_environment_vars,
            model_vpc_config=vpc_config_override,
            accelerator_type=accelerator_type,
            data_capture_config=data_capture_config,
        )

    def endpoint_from_model_data(
        self,
        model_s3_location: str,
        image_uri: str,
        initial_instance_count: int,
        instance_type: str,
        name: str | None = None,
        role: str | None = None,
        wait: bool = True,
        model_environment_vars: dict[str, str] | None = None,
        model_vpc_config: dict[str, Any] | None = None,
        accelerator_type: str | None = None,
        data_capture_config: Any = None,
    ) -> str:
        """모델 아티팩트로 엔드포인트 생성. 같은 이름의 리소스가 있으면 재사용"""
        model_environment_vars = model_environment_vars or {}
        name = name or name_from_base(image_uri.split("/")[-1].split(":")[0])
        model_vpc_config = vpc_utils.sanitize(model_vpc_config)
        primary_container = container_def(
            image_uri=image_uri, model_data_url=model_s3_location, env=model_environment_vars
        )

        if not _deployment_entity_exists(lambda: self.sagemaker_client.describe_model(ModelName=name)):
            self.create_model(name, role or self._default_role(), primary_container, vpc_config=model_vpc_config)

        data_capture_config_dict = None
        if data_capture_config is not None:
            data_capture_config_dict = data_capture_config._to_request_dict()

        if not _deployment_entity_exists(
            lambda: self.sagemaker_client.describe_endpoint_config(EndpointConfigName=name)
        ):
            self.create_endpoint_config(
                name=name,
                model_name=name,
                initial_instance_count=initial_instance_count,
                instance_type=instance_type,
                accelerator_type=accelerator_type,
                data_capture_config_dict=data_capture_config_dict,
            )

        if not _deployment_entity_exists(lambda: self.sagemaker_client.describe_endpoint(EndpointName=name)):
            self.create_endpoint(endpoint_name=name, config_name=name, wait=wait)

        return name

    def list_tags(self, resource_arn: str, max_results: int = 50) -> list[dict[str, str]]:
        """리소스 태그 목록 (aws: 접두사 시스템 태그 제외)"""
        tags: list[dict[str, str]] = []
        next_token = None
        while True:
            request: dict[str, Any] = {"ResourceArn": resource_arn, "MaxResults": max_results}
            if next_token:
                request["NextToken"] = next_token
            response = self._invoke("list_tags", **request)
            tags.extend(t for t in response.get("Tags", []) if not t["Key"].startswith("aws:"))
            next_token = response.get("NextToken")
            if not next_token:
                return tags

    # =========================================================================
    # IAM
    # =========================================================================

    def expand_role(self, role: str) -> str:
        """역할 이름을 ARN으로 확장. 이미 ARN이면 그대로 반환"""
        if "/" in role:
            return role
        iam = get_client(self.boto_session, "iam", region_name=self._region_name)
        return iam.get_role(RoleName=role)["Role"]["Arn"]

    def _default_role(self) -> str:
        if self.config.role:
            return self.expand_role(self.config.role)
        return get_execution_role(self)

    def get_caller_identity_arn(self) -> str:
        """현재 자격 증명의 ARN. assumed-role이면 IAM 역할 ARN으로 변환"""
        sts = get_client(self.boto_session, "sts", region_name=self._region_name)
        assumed_role = sts.get_caller_identity()["Arn"]

        if ":assumed-role/" not in assumed_role:
            return assumed_role

        # arn:aws:sts::123456789012:assumed-role/RoleName/session -> arn:aws:iam::123456789012:role/RoleName
        partition_account, role_part = assumed_role.split(":assumed-role/", 1)
        role_name = role_part.split("/")[0]
        partition = partition_account.split(":")[1]
        account = partition_account.split(":")[4]
        role_arn = f"arn:{partition}:iam::{account}:role/{role_name}"

        iam = get_client(self.boto_session, "iam", region_name=self._region_name)
        try:
            # 역할 경로(path)가 있으면 get_role 결과가 정확
            return iam.get_role(RoleName=role_name)["Role"]["Arn"]
        except ClientError:
            logger.warning(f"get_role 호출 실패: {role_name}. 경로 없는 역할 ARN을 사용합니다: {role_arn}")
            return role_arn

    # =========================================================================
    # 대기 (wait)
    # =========================================================================

    def _poll(self, poll: int | None) -> int:
        return self.config.job_poll if poll is None else poll

    def wait_for_job(self, job: str, poll: int | None = None) -> dict[str, Any]:
        """학습 작업 종료까지 대기

        Raises:
            UnexpectedStatusError: 작업이 실패한 경우
        """
        desc = _wait_until_training_done(
            lambda last_desc: _train_done(self.sagemaker_client, job, last_desc), None, self._poll(poll)
        )
        _check_job_status(job, desc, "TrainingJobStatus")
        return desc

    def wait_for_processing_job(self, job: str, poll: int | None = None) -> dict[str, Any]:
        desc = _wait_until(lambda: _processing_job_status(self.sagemaker_client, job), self._poll(poll))
        _check_job_status(job, desc, "ProcessingJobStatus")
        return desc

    def wait_for_compilation_job(self, job: str, poll: int | None = None) -> dict[str, Any]:
        desc = _wait_until(lambda: _compilation_job_status(self.sagemaker_client, job), self._poll(poll))
        _check_job_status(job, desc, "CompilationJobStatus")
        return desc

    def wait_for_tuning_job(self, job: str, poll: int | None = None) -> dict[str, Any]:
        desc = _wait_until(lambda: _tuning_job_status(self.sagemaker_client, job), self._poll(poll))
        _check_job_status(job, desc, "HyperParameterTuningJobStatus")
        return desc

    def wait_for_transform_job(self, job: str, poll: int | None = None) -> dict[str, Any]:
        desc = _wait_until(lambda: _transform_job_status(self.sagemaker_client, job), self._poll(poll))
        _check_job_status(job, desc, "TransformJobStatus")
        return desc

    def wait_for_model_package(self, model_package_name: str, poll: int | None = None) -> dict[str, Any]:
        """모델 패키지가 Completed가 될 때까지 대기

        Raises:
            UnexpectedStatusError: Completed가 아닌 상태로 끝난 경우
        """
        desc = _wait_until(lambda: _model_package_status(self.sagemaker_client, model_package_name), self._poll(poll))
        status = desc["ModelPackageStatus"]

        if status != "Completed":
            reason = desc.get("FailureReason")
            raise UnexpectedStatusError(
                message=f"모델 패키지 {model_package_name} 생성 실패: {status}. 원인: {reason}",
                allowed_statuses=["Completed"],
                actual_status=status,
            )
        return desc

    def wait_for_endpoint(self, endpoint: str, poll: int | None = None) -> dict[str, Any]:
        """엔드포인트가 InService가 될 때까지 대기

        Raises:
            CapacityError: 용량 부족으로 실패한 경우
            UnexpectedStatusError: InService가 아닌 상태로 종료된 경우
        """
        poll = self.config.endpoint_poll if poll is None else poll
        desc = _wait_until(lambda: _deploy_done(self.sagemaker_client, endpoint), poll)
        status = desc["EndpointStatus"]

        if status != "InService":
            reason = desc.get("FailureReason")
            message = f"엔드포인트 {endpoint} 생성 실패: {status}. 원인: {reason}"
            if reason and "CapacityError" in str(reason):
                raise CapacityError(message=message, allowed_statuses=["InService"], actual_status=status)
            raise UnexpectedStatusError(message=message, allowed_statuses=["InService"], actual_status=status)
        return desc

    # =========================================================================
    # 로그
    # =========================================================================

    def logs_for_job(
        self,
        job_name: str,
        wait: bool = False,
        poll: int | None = None,
        log_type: str = "All",
        timeout: int | None = None,
    ) -> dict[str, Any]:
        """학습 작업 로그 출력. wait=True면 작업 종료까지 tailing

        상태 전이:
            TAILING       : 로그 읽기 -> 대기 -> 상태 확인 (완료 시 JOB_COMPLETE)
            JOB_COMPLETE  : 로그 읽기 -> 대기 (늦게 도착한 로그) -> COMPLETE
            COMPLETE      : 로그 읽기 -> 종료

        Args:
            job_name: 학습 작업 이름
            wait: 작업 종료까지 대기 여부
            poll: 폴링 간격 (초)
            log_type: "All", "Training", "Rules", "None"
            timeout: 최대 대기 시간 (초)

        Returns:
            마지막 DescribeTrainingJob 응답

        Raises:
            UnexpectedStatusError: wait=True이고 작업이 실패한 경우
        """
        poll = self.config.logs_poll if poll is None else poll
        request_end_time = time.time() + timeout if timeout else None

        description = self.sagemaker_client.describe_training_job(TrainingJobName=job_name)
        console.print(secondary_training_status_message(description, None), end="")

        instance_count = _instance_count(description, "Training")
        tailer = JobLogTailer(self.logs_client, "/aws/sagemaker/TrainingJobs", job_name, instance_count)
        state = _get_initial_job_state(description, "TrainingJobStatus", wait)

        last_describe_job_call = time.time()
        last_description = description
        last_rule_statuses: dict[str, Any] = {}

        while True:
            if log_type != "None":
                tailer.flush()

            if timeout and request_end_time and time.time() > request_end_time:
                console.print(f"대기 시간 초과: {timeout}초 경과")
                break

            if state == LogState.COMPLETE:
                break

            time.sleep(poll)

            if state == LogState.JOB_COMPLETE:
                state = LogState.COMPLETE
            elif time.time() - last_describe_job_call >= 30 or poll == 0:
                description = self.sagemaker_client.describe_training_job(TrainingJobName=job_name)
                last_describe_job_call = time.time()

                if secondary_training_status_changed(description, last_description):
                    console.print()
                    console.print(secondary_training_status_message(description, last_description), end="")
                    last_description = description

                status = description["TrainingJobStatus"]
                if status in TERMINAL_JOB_STATUSES:
                    console.print()
                    state = LogState.JOB_COMPLETE

                if log_type in ("All", "Rules"):
                    for key in ("DebugRuleEvaluationStatuses", "ProfilerRuleEvaluationStatuses"):
                        rule_statuses = description.get(key) or []
                        if rule_statuses and _rule_statuses_changed(rule_statuses, last_rule_statuses.get(key)):
                            for rule_status in rule_statuses:
                                console.print(f"{rule_status['RuleConfigurationName']}: {rule_status['RuleEvaluationStatus']}")
                            last_rule_statuses[key] = rule_statuses

        if wait:
            _check_job_status(job_name, description, "TrainingJobStatus")
            if tailer.dot:
                console.print()
            training_time = description.get("TrainingTimeInSeconds")
            billable_time = description.get("BillableTimeInSeconds")
            if training_time is not None:
                console.print(f"Training seconds: {training_time * instance_count}")
            if billable_time is not None:
                console.print(f"Billable seconds: {billable_time * instance_count}")
                if description.get("EnableManagedSpotTraining") and training_time:
                    saving = (1 - float(billable_time) / training_time) * 100
                    console.print(f"Managed Spot Training savings: {saving:.1f}%")
        return description

    def logs_for_processing_job(self, job_name: str, wait: bool = False, poll: int | None = None) -> dict[str, Any]:
        """처리 작업 로그 출력"""
        return self._logs_for_generic_job(
            job_name,
            lambda: self.sagemaker_client.describe_processing_job(ProcessingJobName=job_name),
            "ProcessingJobStatus",
            "Processing",
            wait,
            poll,
        )

    def logs_for_transform_job(self, job_name: str, wait: bool = False, poll: int | None = None) -> dict[str, Any]:
        """변환 작업 로그 출력"""
        return self._logs_for_generic_job(
            job_name,
            lambda: self.sagemaker_client.describe_transform_job(TransformJobName=job_name),
            "TransformJobStatus",
            "Transform",
            wait,
            poll,
        )

    def _logs_for_generic_job(
        self,
        job_name: str,
        describe_fn: Callable[[], dict[str, Any]],
        status_key: str,
        job_kind: str,
        wait: bool,
        poll: int | None,
    ) -> dict[str, Any]:
        poll = self.config.logs_poll if poll is None else poll
        description = describe_fn()
        instance_count = _instance_count(description, job_kind)
        tailer = JobLogTailer(self.logs_client, f"/aws/sagemaker/{job_kind}Jobs", job_name, instance_count)
        state = _get_initial_job_state(description, status_key, wait)

        while True:
            tailer.flush()
            if state == LogState.COMPLETE:
                break

            time.sleep(poll)

            if state == LogState.JOB_COMPLETE:
                state = LogState.COMPLETE
            else:
                description = describe_fn()
                if description[status_key] in TERMINAL_JOB_STATUSES:
                    console.print()
                    state = LogState.JOB_COMPLETE

        if wait:
            _check_job_status(job_name, description, status_key)
            if tailer.dot:
                console.print()
        return description


# =============================================================================
# 요청 구조 헬퍼
# =============================================================================


def container_def(
    image_uri: str,
    model_data_url: str | None = None,
    env: dict[str, str] | None = None,
    container_mode: str | None = None,
    image_config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """CreateModel 컨테이너 정의"""
    if env is None:
        env = {}
    c_def: dict[str, Any] = {"Image": image_uri, "Environment": env}
    if model_data_url:
        c_def["ModelDataUrl"] = model_data_url
    if container_mode:
        c_def["Mode"] = container_mode
    if image_config:
        c_def["ImageConfig"] = image_config
    return c_def


def pipeline_container_def(models: list, instance_type: str | None = None) -> list[dict[str, Any]]:
    """추론 파이프라인용 컨테이너 정의 목록 (모델 순서 유지)"""
    c_defs = []
    for model in models:
        c_defs.append(model.prepare_container_def(instance_type))
    return c_defs


def production_variant(
    model_name: str,
    instance_type: str,
    initial_instance_count: int = 1,
    variant_name: str = "AllTraffic",
    initial_weight: float = 1,
    accelerator_type: str | None = None,
) -> dict[str, Any]:
    """엔드포인트 구성 ProductionVariant 항목"""
    production_variant_configuration: dict[str, Any] = {
        "ModelName": model_name,
        "InstanceType": instance_type,
        "InitialInstanceCount": initial_instance_count,
        "VariantName": variant_name,
        "InitialVariantWeight": initial_weight,
    }
    if accelerator_type:
        production_variant_configuration["AcceleratorType"] = accelerator_type
    return production_variant_configuration


def get_create_model_package_request(
    model_package_name: str | None = None,
    model_package_group_name: str | None = None,
    containers: list[dict[str, Any]] | None = None,
    content_types: list[str] | None = None,
    response_types: list[str] | None = None,
    inference_instances: list[str] | None = None,
    transform_instances: list[str] | None = None,
    model_metrics: dict[str, Any] | None = None,
    metadata_properties: dict[str, Any] | None = None,
    marketplace_cert: bool = False,
    approval_status: str = "PendingManualApproval",
    description: str | None = None,
) -> dict[str, Any]:
    """CreateModelPackage 요청 조립

    모델 패키지 그룹에 등록하는 버전 패키지는 인스턴스 목록을 생략할 수 있고,
    그룹 없는 단독 패키지는 추론/변환 인스턴스 목록이 모두 필요합니다.

    Raises:
        ValidationError: 이름과 그룹을 함께 지정했거나 필수 항목이 빠진 경우
    """
    if model_package_name is not None and model_package_group_name is not None:
        raise ValidationError(
            "model_package_name", model_package_name, "model_package_group_name과 동시에 지정할 수 없음"
        )
    if model_package_name is None and model_package_group_name is None:
        raise ValidationError("model_package_group_name", None, "모델 패키지 이름 또는 그룹 이름")

    request: dict[str, Any] = {}
    if model_package_name is not None:
        request["ModelPackageName"] = model_package_name
    if model_package_group_name is not None:
        request["ModelPackageGroupName"] = model_package_group_name
    if description is not None:
        request["ModelPackageDescription"] = description
    if model_metrics:
        request["ModelMetrics"] = model_metrics
    if metadata_properties:
        request["MetadataProperties"] = metadata_properties

    if containers is not None:
        if not all([content_types, response_types]):
            raise ValidationError("content_types", content_types, "containers 지정 시 content_types와 response_types")
        if model_package_group_name is None and not all([inference_instances, transform_instances]):
            raise ValidationError(
                "inference_instances",
                inference_instances,
                "그룹 없는 모델 패키지의 inference_instances와 transform_instances",
            )
        inference_specification: dict[str, Any] = {
            "Containers": containers,
            "SupportedContentTypes": content_types,
            "SupportedResponseMIMETypes": response_types,
        }
        if inference_instances is not None:
            inference_specification["SupportedRealtimeInferenceInstanceTypes"] = inference_instances
        if transform_instances is not None:
            inference_specification["SupportedTransformInstanceTypes"] = transform_instances
        request["InferenceSpecification"] = inference_specification

    request["CertifyForMarketplace"] = marketplace_cert
    request["ModelApprovalStatus"] = approval_status
    return request


def get_execution_role(sagemaker_session: Session | None = None) -> str:
    """현재 자격 증명이 IAM 역할이면 그 ARN 반환

    Raises:
        ValidationError: 역할이 아닌 IAM 사용자 등으로 실행 중인 경우
    """
    if not sagemaker_session:
        sagemaker_session = Session()
    arn = sagemaker_session.get_caller_identity_arn()

    if ":role/" in arn:
        return arn
    raise ValidationError("role", arn, "IAM 역할 ARN (사용자 자격 증명에서는 role 인자를 직접 지정)")


def generate_default_sagemaker_bucket_name(account_id: str, region: str) -> str:
    """``sagemaker-{region}-{account}`` 기본 버킷 이름"""
    return f"sagemaker-{region}-{account_id}"


# =============================================================================
# 상태 확인 / 대기 내부 함수
# =============================================================================


def _deployment_entity_exists(describe_fn: Callable[[], Any]) -> bool:
    """Describe 호출 성공 여부로 리소스 존재 확인 ("Could not find" 외 오류는 전파)"""
    try:
        describe_fn()
        return True
    except ClientError as ce:
        if not is_not_found(ce):
            raise
        return False


def _instance_count(description: dict[str, Any], job_kind: str) -> int:
    if job_kind == "Training":
        resource_config = description["ResourceConfig"]
        if "InstanceGroups" in resource_config:
            return sum(group["InstanceCount"] for group in resource_config["InstanceGroups"])
        return resource_config["InstanceCount"]
    if job_kind == "Transform":
        return description["TransformResources"]["InstanceCount"]
    if job_kind == "Processing":
        return description["ProcessingResources"]["ClusterConfig"]["InstanceCount"]
    return 1


def _get_initial_job_state(description: dict[str, Any], status_key: str, wait: bool) -> LogState:
    status = description[status_key]
    job_already_completed = status in TERMINAL_JOB_STATUSES
    return LogState.TAILING if wait and not job_already_completed else LogState.COMPLETE


def _rule_statuses_changed(current_statuses: list[dict[str, Any]], last_statuses: list[dict[str, Any]] | None) -> bool:
    """디버거/프로파일러 규칙 평가 상태 변경 여부"""
    if not last_statuses:
        return True

    for current, last in zip(current_statuses, last_statuses):
        if (current["RuleConfigurationName"] == last["RuleConfigurationName"]) and (
            current["RuleEvaluationStatus"] != last["RuleEvaluationStatus"]
        ):
            return True
    return False


def _vpc_config_from_training_job(training_job_desc: dict[str, Any], vpc_config_override: Any = vpc_utils.VPC_CONFIG_DEFAULT):
    if vpc_config_override is vpc_utils.VPC_CONFIG_DEFAULT:
        return training_job_desc.get(vpc_utils.VPC_CONFIG_KEY)
    return vpc_utils.sanitize(vpc_config_override)


def _check_job_status(job: str, desc: dict[str, Any], status_key_name: str) -> None:
    """작업이 Completed(또는 Stopped)로 끝났는지 확인

    Raises:
        CapacityError: 실패 원인에 CapacityError가 포함된 경우
        UnexpectedStatusError: 그 외 실패
    """
    status = desc[status_key_name]
    status = _STATUS_CODE_TABLE.get(status, status)

    if status == "Stopped":
        logger.warning(
            f"{job} 작업이 'Completed'가 아닌 'Stopped' 상태로 종료되었습니다. "
            "시간 초과 등으로 조기 중단되었을 수 있으니 결과를 확인하세요."
        )
    elif status != "Completed":
        reason = desc.get("FailureReason", "(원인 없음)")
        job_type = status_key_name.replace("JobStatus", " job")
        message = f"Error for {job_type} {job}: {status}. Reason: {reason}"
        if "CapacityError" in str(reason):
            raise CapacityError(message=message, allowed_statuses=["Completed", "Stopped"], actual_status=status)
        raise UnexpectedStatusError(message=message, allowed_statuses=["Completed", "Stopped"], actual_status=status)


def _train_done(sagemaker_client, job_name: str, last_desc: dict[str, Any] | None) -> tuple[dict[str, Any], bool]:
    in_progress_statuses = ["InProgress", "Created"]

    desc = sagemaker_client.describe_training_job(TrainingJobName=job_name)
    status = desc["TrainingJobStatus"]

    if secondary_training_status_changed(desc, last_desc):
        console.print()
        console.print(secondary_training_status_message(desc, last_desc), end="")
    else:
        console.print(".", end="")

    if status in in_progress_statuses:
        return desc, False

    console.print()
    return desc, True


def _status_printer(status_codes: dict[str, str], status: str) -> None:
    console.print(status_codes.get(status, "?"), end="")


def _processing_job_status(sagemaker_client, job_name: str) -> dict[str, Any] | None:
    status_codes = {"Completed": "!", "InProgress": ".", "Failed": "*", "Stopped": "s", "Stopping": "_"}
    in_progress_statuses = ["InProgress", "Stopping", "Starting"]

    desc = sagemaker_client.describe_processing_job(ProcessingJobName=job_name)
    status = desc["ProcessingJobStatus"]
    _status_printer(status_codes, status)

    if status in in_progress_statuses:
        return None
    console.print()
    return desc


def _compilation_job_status(sagemaker_client, job_name: str) -> dict[str, Any] | None:
    status_codes = {"Completed": "!", "InProgress": ".", "Failed": "*", "Stopped": "s", "Stopping": "_"}
    in_progress_statuses = ["InProgress", "Stopping", "Starting"]

    desc = sagemaker_client.describe_compilation_job(CompilationJobName=job_name)
    status = _STATUS_CODE_TABLE.get(desc["CompilationJobStatus"], desc["CompilationJobStatus"])
    _status_printer(status_codes, status)

    if status in in_progress_statuses:
        return None
    console.print()
    return desc


def _tuning_job_status(sagemaker_client, job_name: str) -> dict[str, Any] | None:
    status_codes = {"Completed": "!", "InProgress": ".", "Failed": "*", "Stopped": "s", "Stopping": "_"}
    in_progress_statuses = ["InProgress"]

    desc = sagemaker_client.describe_hyper_parameter_tuning_job(HyperParameterTuningJobName=job_name)
    status = desc["HyperParameterTuningJobStatus"]
    _status_printer(status_codes, status)

    if status in in_progress_statuses:
        return None
    console.print()
    return desc


def _transform_job_status(sagemaker_client, job_name: str) -> dict[str, Any] | None:
    status_codes = {"Completed": "!", "InProgress": ".", "Failed": "*", "Stopped": "s", "Stopping": "_"}
    in_progress_statuses = ["InProgress", "Stopping"]

    desc = sagemaker_client.describe_transform_job(TransformJobName=job_name)
    status = desc["TransformJobStatus"]
    _status_printer(status_codes, status)

    if status in in_progress_statuses:
        return None
    console.print()
    return desc


def _model_package_status(sagemaker_client, model_package_name: str) -> dict[str, Any] | None:
    status_codes = {"Completed": "!", "InProgress": ".", "Pending": ".", "Failed": "*", "Deleting": "o"}
    in_progress_statuses = ["InProgress", "Pending"]

    desc = sagemaker_client.describe_model_package(ModelPackageName=model_package_name)
    status = desc["ModelPackageStatus"]
    _status_printer(status_codes, status)

    if status in in_progress_statuses:
        return None
    console.print()
    return desc


def _deploy_done(sagemaker_client, endpoint_name: str) -> dict[str, Any] | None:
    hosting_status_codes = {
        "OutOfService": "x",
        "Creating": "-",
        "Updating": "-",
        "InService": "!",
        "RollingBack": "<",
        "Deleting": "o",
        "Failed": "*",
    }
    in_progress_statuses = ["Creating", "Updating"]

    desc = sagemaker_client.describe_endpoint(EndpointName=endpoint_name)
    status = desc["EndpointStatus"]
    _status_printer(hosting_status_codes, status)

    return None if status in in_progress_statuses else desc


def _handle_wait_error(
    err: ClientError, elapsed_time: float, retry_attempt: int, retry_config: RetryConfig
) -> float | None:
    """대기 중 ClientError 처리

    태그 기반 정책은 태그 전파 전까지 AccessDenied를 낼 수 있어 처음 5분은 허용합니다.
    스로틀링 등 일시적 오류는 retry_config 백오프로 최대 ``max_retries`` 회까지 재시도합니다.

    Returns:
        None이면 다음 폴링까지 그대로 대기, 숫자면 추가로 기다릴 백오프 시간 (초)

    Raises:
        APICallError: 그 외 오류이거나 재시도 횟수를 모두 소진한 경우
    """
    if is_access_denied(err) and elapsed_time <= ACCESS_DENIED_GRACE_SECONDS:
        logger.warning(
            "AccessDeniedException 수신. 역할에 리소스 권한이 없을 수 있습니다. "
            "태그 기반 정책이라면 태그 전파를 기다리며 계속 대기합니다."
        )
        return None
    if is_retryable(err) and retry_attempt < retry_config.max_retries:
        delay = retry_config.get_delay(retry_attempt)
        logger.debug(
            f"일시적 오류로 재시도 {retry_attempt + 1}/{retry_config.max_retries} "
            f"({get_error_code(err)}), {delay:.2f}초 대기"
        )
        return delay
    raise APICallError.from_client_error("sagemaker", err.operation_name, err) from err


def _wait_until_training_done(
    callable_fn: Callable[[dict[str, Any] | None], tuple[dict[str, Any], bool]],
    desc: dict[str, Any] | None,
    poll: int = 5,
    retry_config: RetryConfig = WAIT_RETRY_CONFIG,
) -> dict[str, Any]:
    elapsed_time: float = 0
    retry_attempt = 0
    finished = False
    job_desc = desc
    while not finished:
        try:
            elapsed_time += poll
            time.sleep(poll)
            job_desc, finished = callable_fn(job_desc)
            retry_attempt = 0
        except ClientError as err:
            backoff = _handle_wait_error(err, elapsed_time, retry_attempt, retry_config)
            if backoff is not None:
                retry_attempt += 1
                elapsed_time += backoff
                time.sleep(backoff)
    return job_desc  # type: ignore[return-value]


def _wait_until(
    callable_fn: Callable[[], dict[str, Any] | None], poll: int = 5, retry_config: RetryConfig = WAIT_RETRY_CONFIG
) -> dict[str, Any]:
    elapsed_time: float = 0
    retry_attempt = 0
    result = None
    while result is None:
        try:
            elapsed_time += poll
            time.sleep(poll)
            result = callable_fn()
            retry_attempt = 0
        except ClientError as err:
            backoff = _handle_wait_error(err, elapsed_time, retry_attempt, retry_config)
            if backoff is not None:
                retry_attempt += 1
                elapsed_time += backoff
                time.sleep(backoff)
    return result
