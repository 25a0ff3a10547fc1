"""
smsdk/estimator.py - 학습 작업 추정기

EstimatorBase는 학습 작업 수명 주기(fit -> wait/logs -> deploy/transformer/compile)를 관리하고,
Estimator는 임의의 학습 이미지를, Framework는 스크립트 모드 프레임워크 이미지를 다룹니다.

Example:
    estimator = Estimator(
        image_uri=image_uris.retrieve("xgboost", "us-east-1", "1.7-1"),
        role="SageMakerRole",
        instance_count=1,
        instance_type="ml.m5.xlarge",
        hyperparameters={"num_round": 100},
    )
    estimator.fit({"train": "s3://bucket/train/"})
    predictor = estimator.deploy(1, "ml.m5.large")
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from core.exceptions import ValidationError
from smsdk import image_uris, vpc_utils
from smsdk.debugger import (
    DEFAULT_PROFILING_INTERVAL_MILLIS,
    DebuggerHookConfig,
    ProfilerConfig,
    ProfilerRule,
    Rule,
    TensorBoardOutputConfig,
)
from smsdk.fw_utils import (
    UploadedCode,
    framework_name_from_image,
    framework_version_from_tag,
    tar_and_upload_dir,
    validate_source_dir,
)
from smsdk.job import _Job
from smsdk.model import (
    CONTAINER_LOG_LEVEL_PARAM_NAME,
    DEFAULT_COMPILE_MAX_RUN,
    DIR_PARAM_NAME,
    JOB_NAME_PARAM_NAME,
    NEO_ALLOWED_FRAMEWORKS,
    SAGEMAKER_REGION_PARAM_NAME,
    SCRIPT_PARAM_NAME,
    Model,
)
from smsdk.s3 import parse_s3_url, s3_path_join
from smsdk.session import Session
from smsdk.transformer import Transformer
from smsdk.utils import base_from_name, base_name_from_image, name_from_base, to_str

logger = logging.getLogger(__name__)

# 기본 최대 학습 시간 (초)
DEFAULT_MAX_RUN = 24 * 60 * 60
DEFAULT_VOLUME_SIZE = 30


class EstimatorBase(ABC):
    """학습 작업 추정기 베이스

    하위 클래스는 training_image_uri(), hyperparameters(), create_model()을 구현합니다.

    Attributes:
        role: 실행 역할 이름 또는 ARN
        instance_count / instance_type: 학습 인스턴스
        output_path: 모델 아티팩트 출력 S3 위치 (None이면 기본 버킷)
        base_job_name: 작업 이름 접두사 (None이면 이미지 이름 기반)
        latest_training_job: 마지막 _TrainingJob
    """

    def __init__(
        self,
        role: str,
        instance_count: int | None = None,
        instance_type: str | None = None,
        volume_size: int = DEFAULT_VOLUME_SIZE,
        volume_kms_key: str | None = None,
        max_run: int = DEFAULT_MAX_RUN,
        input_mode: str = "File",
        output_path: str | None = None,
        output_kms_key: str | None = None,
        base_job_name: str | None = None,
        sagemaker_session: Session | None = None,
        tags: list[dict[str, str]] | None = None,
        subnets: list[str] | None = None,
        security_group_ids: list[str] | None = None,
        model_uri: str | None = None,
        model_channel_name: str = "model",
        metric_definitions: list[dict[str, str]] | None = None,
        encrypt_inter_container_traffic: bool = False,
        use_spot_instances: bool = False,
        max_wait: int | None = None,
        checkpoint_s3_uri: str | None = None,
        checkpoint_local_path: str | None = None,
        rules: list[Rule | ProfilerRule] | None = None,
        debugger_hook_config: DebuggerHookConfig | bool | None = None,
        tensorboard_output_config: TensorBoardOutputConfig | None = None,
        enable_sagemaker_metrics: bool | None = None,
        enable_network_isolation: bool = False,
        profiler_config: ProfilerConfig | None = None,
        disable_profiler: bool = False,
        environment: dict[str, str] | None = None,
        max_retry_attempts: int | None = None,
    ):
        if instance_count is None or instance_type is None:
            raise ValidationError(
                "instance_count/instance_type", f"{instance_count}/{instance_type}", "둘 다 지정"
            )
        if instance_type.startswith("local"):
            raise ValidationError("instance_type", instance_type, "ml.* 인스턴스 타입 (로컬 모드 미지원)")
        if use_spot_instances and max_wait is None:
            raise ValidationError("max_wait", max_wait, "스팟 학습에는 max_wait 지정")
        if max_wait is not None and max_wait < max_run:
            raise ValidationError("max_wait", max_wait, f"max_run({max_run}) 이상")

        self.role = role
        self.instance_count = instance_count
        self.instance_type = instance_type
        self.volume_size = volume_size
        self.volume_kms_key = volume_kms_key
        self.max_run = max_run
        self.input_mode = input_mode
        self.tags = tags
        self.metric_definitions = metric_definitions
        self.model_uri = model_uri
        self.model_channel_name = model_channel_name
        self.code_uri: str | None = None
        self.code_channel_name = "code"

        self.sagemaker_session = sagemaker_session or Session()

        self.base_job_name = base_job_name
        self._current_job_name: str | None = None
        self.output_path = output_path
        self.output_kms_key = output_kms_key
        self.latest_training_job: _TrainingJob | None = None
        self.jobs: list[_TrainingJob] = []
        self.deploy_instance_type: str | None = None

        self._compiled_models: dict[str, Model] = {}

        self.subnets = subnets
        self.security_group_ids = security_group_ids

        self.encrypt_inter_container_traffic = encrypt_inter_container_traffic
        self.use_spot_instances = use_spot_instances
        self.max_wait = max_wait
        self.checkpoint_s3_uri = checkpoint_s3_uri
        self.checkpoint_local_path = checkpoint_local_path

        self.rules = rules
        self.debugger_rules: list[Rule] = []
        self.profiler_rules: list[ProfilerRule] = []
        self.debugger_hook_config = debugger_hook_config
        self.tensorboard_output_config = tensorboard_output_config
        self.profiler_config = profiler_config
        self.disable_profiler = disable_profiler

        self.enable_sagemaker_metrics = enable_sagemaker_metrics
        self._enable_network_isolation = enable_network_isolation
        self.environment = environment
        self.max_retry_attempts = max_retry_attempts

    def __repr__(self) -> str:
        return f"{type(self).__name__}(base_job_name={self.base_job_name!r}, instance_type={self.instance_type!r})"

    @abstractmethod
    def training_image_uri(self) -> str:
        """학습 이미지 URI"""

    @abstractmethod
    def hyperparameters(self) -> dict[str, Any]:
        """CreateTrainingJob에 전달할 하이퍼파라미터"""

    @abstractmethod
    def create_model(self, **kwargs: Any) -> Model:
        """학습 산출물로 Model 생성"""

    def enable_network_isolation(self) -> bool:
        return self._enable_network_isolation

    # =========================================================================
    # 학습 준비
    # =========================================================================

    def _ensure_base_job_name(self) -> None:
        self.base_job_name = self.base_job_name or base_name_from_image(self.training_image_uri())

    def _get_or_create_name(self, name: str | None = None) -> str:
        if name:
            return name
        self._ensure_base_job_name()
        return name_from_base(self.base_job_name)

    def _prepare_for_training(self, job_name: str | None = None) -> None:
        """작업 이름, 기본 출력 경로, 디버거/프로파일러 기본값 설정"""
        self._current_job_name = self._get_or_create_name(job_name)

        if self.output_path is None:
            self.output_path = (
                s3_path_join(
                    "s3://",
                    self.sagemaker_session.default_bucket(),
                    self.sagemaker_session.default_bucket_prefix,
                )
                + "/"
            )

        self._prepare_rules()
        self._prepare_debugger_for_training()
        self._prepare_profiler_for_training()

    def _prepare_rules(self) -> None:
        self.debugger_rules = []
        self.profiler_rules = []
        region = self.sagemaker_session.boto_region_name
        for rule in self.rules or []:
            if isinstance(rule, ProfilerRule):
                rule.prepare_actions(region)
                self.profiler_rules.append(rule)
            elif isinstance(rule, Rule):
                rule.prepare_actions(region)
                self.debugger_rules.append(rule)
            else:
                raise ValidationError("rules", type(rule).__name__, "Rule 또는 ProfilerRule")

    def _prepare_debugger_for_training(self) -> None:
        if self.debugger_hook_config is False:
            if self.debugger_rules:
                raise ValidationError("debugger_hook_config", False, "디버거 규칙을 쓰려면 훅을 비활성화할 수 없음")
            return

        if self.debugger_hook_config is None:
            self.debugger_hook_config = DebuggerHookConfig(s3_output_path=self.output_path)
        elif self.debugger_hook_config.s3_output_path is None:
            self.debugger_hook_config.s3_output_path = self.output_path

        # 규칙에서 요구하는 컬렉션을 훅 설정에 합침
        rule_collections = {c for rule in self.debugger_rules for c in rule.collection_configs}
        if rule_collections:
            existing = set(self.debugger_hook_config.collection_configs or [])
            self.debugger_hook_config.collection_configs = list(existing | rule_collections)

    def _prepare_profiler_for_training(self) -> None:
        if self.disable_profiler:
            if self.profiler_rules:
                raise ValidationError("disable_profiler", True, "프로파일러 규칙을 쓰려면 프로파일러 활성화")
            self.profiler_config = ProfilerConfig(disable_profiler=True)
            return

        if self.profiler_config is None:
            self.profiler_config = ProfilerConfig(
                s3_output_path=self.output_path,
                system_monitor_interval_millis=DEFAULT_PROFILING_INTERVAL_MILLIS,
            )
        elif self.profiler_config.s3_output_path is None:
            self.profiler_config.s3_output_path = self.output_path

    # =========================================================================
    # 학습
    # =========================================================================

    def fit(
        self,
        inputs=None,
        wait: bool = True,
        logs: str | bool = "All",
        job_name: str | None = None,
        experiment_config: dict[str, str] | None = None,
    ) -> None:
        """학습 작업 시작

        Args:
            inputs: S3 URI 문자열, TrainingInput/FileSystemInput, 또는 채널 이름 -> 입력 딕셔너리
            wait: 작업 종료까지 대기 여부
            logs: 대기 중 출력할 로그 ("All", "Training", "Rules", "None" 또는 bool)
            job_name: 작업 이름 (None이면 자동 생성)
            experiment_config: 실험 연결 설정
        """
        self._prepare_for_training(job_name=job_name)

        self.latest_training_job = _TrainingJob.start_new(self, inputs, experiment_config)
        self.jobs.append(self.latest_training_job)
        if wait:
            self.latest_training_job.wait(logs=logs)

    def get_train_args(self, inputs=None, experiment_config: dict[str, str] | None = None) -> dict[str, Any]:
        """Session.train()에 전달할 인자 딕셔너리

        fit() 전에 호출하면 작업 이름과 기본값을 먼저 준비합니다.
        """
        if self._current_job_name is None:
            self._prepare_for_training()

        config = _Job._load_config(inputs, self)

        current_hyperparameters = self.hyperparameters()
        hyperparameters = None
        if current_hyperparameters is not None:
            hyperparameters = {str(k): to_str(v) for (k, v) in current_hyperparameters.items()}

        train_args = dict(config)
        train_args["input_mode"] = self.input_mode
        train_args["job_name"] = self._current_job_name
        train_args["hyperparameters"] = hyperparameters
        train_args["tags"] = self.tags
        train_args["metric_definitions"] = self.metric_definitions
        train_args["experiment_config"] = experiment_config
        train_args["environment"] = self.environment
        train_args["image_uri"] = self.training_image_uri()

        if self.enable_network_isolation():
            train_args["enable_network_isolation"] = True
        if self.encrypt_inter_container_traffic:
            train_args["encrypt_inter_container_traffic"] = True
        if self.use_spot_instances:
            train_args["use_spot_instances"] = True
        if self.checkpoint_s3_uri:
            train_args["checkpoint_s3_uri"] = self.checkpoint_s3_uri
        if self.checkpoint_local_path:
            train_args["checkpoint_local_path"] = self.checkpoint_local_path
        if self.enable_sagemaker_metrics is not None:
            train_args["enable_sagemaker_metrics"] = self.enable_sagemaker_metrics

        if self.debugger_rules:
            train_args["debugger_rule_configs"] = [rule._to_request_dict() for rule in self.debugger_rules]
        if isinstance(self.debugger_hook_config, DebuggerHookConfig):
            train_args["debugger_hook_config"] = self.debugger_hook_config._to_request_dict()
        if self.tensorboard_output_config:
            train_args["tensorboard_output_config"] = self.tensorboard_output_config._to_request_dict()
        if self.profiler_rules:
            train_args["profiler_rule_configs"] = [rule._to_request_dict() for rule in self.profiler_rules]
        if self.profiler_config:
            train_args["profiler_config"] = self.profiler_config._to_request_dict()
        if self.max_retry_attempts is not None:
            train_args["retry_strategy"] = {"MaximumRetryAttempts": self.max_retry_attempts}

        return train_args

    def _ensure_latest_training_job(self) -> None:
        if self.latest_training_job is None:
            raise ValidationError("latest_training_job", None, "fit() 또는 attach() 이후 사용")

    def wait(self, logs: str | bool = "All") -> None:
        """마지막 학습 작업 종료까지 대기"""
        self._ensure_latest_training_job()
        self.latest_training_job.wait(logs=logs)

    def describe(self) -> dict[str, Any]:
        """마지막 학습 작업의 DescribeTrainingJob 응답"""
        self._ensure_latest_training_job()
        return self.latest_training_job.describe()

    def stop(self) -> None:
        """마지막 학습 작업 중지"""
        self._ensure_latest_training_job()
        self.latest_training_job.stop()

    def logs(self) -> None:
        """마지막 학습 작업 로그를 종료까지 출력"""
        self._ensure_latest_training_job()
        self.sagemaker_session.logs_for_job(self.latest_training_job.name, wait=True)

    @property
    def model_data(self) -> str | None:
        """마지막 학습 작업의 모델 아티팩트 S3 URI"""
        if self.latest_training_job is None:
            logger.warning("완료된 학습 작업이 없어 model_data를 알 수 없습니다")
            return None
        desc = self.sagemaker_session.describe_training_job(self.latest_training_job.name)
        return desc["ModelArtifacts"]["S3ModelArtifacts"]

    # =========================================================================
    # attach
    # =========================================================================

    @classmethod
    def attach(
        cls, training_job_name: str, sagemaker_session: Session | None = None, model_channel_name: str = "model"
    ) -> EstimatorBase:
        """기존 학습 작업으로 추정기 복원 (작업이 진행 중이면 종료까지 대기)"""
        sagemaker_session = sagemaker_session or Session()

        job_details = sagemaker_session.describe_training_job(training_job_name)
        init_params = cls._prepare_init_params_from_job_description(job_details, model_channel_name)
        tags = sagemaker_session.list_tags(job_details["TrainingJobArn"])
        init_params.update(tags=tags or None)

        estimator = cls(sagemaker_session=sagemaker_session, **init_params)
        estimator.latest_training_job = _TrainingJob(sagemaker_session=sagemaker_session, job_name=training_job_name)
        estimator._current_job_name = estimator.latest_training_job.name
        estimator.latest_training_job.wait(logs="None")
        return estimator

    @classmethod
    def _prepare_init_params_from_job_description(
        cls, job_details: dict[str, Any], model_channel_name: str | None = None
    ) -> dict[str, Any]:
        """DescribeTrainingJob 응답을 생성자 인자로 변환"""
        init_params: dict[str, Any] = {}

        init_params["role"] = job_details["RoleArn"]
        init_params["instance_count"] = job_details["ResourceConfig"]["InstanceCount"]
        init_params["instance_type"] = job_details["ResourceConfig"]["InstanceType"]
        init_params["volume_size"] = job_details["ResourceConfig"]["VolumeSizeInGB"]
        init_params["max_run"] = job_details["StoppingCondition"]["MaxRuntimeInSeconds"]
        init_params["input_mode"] = job_details["AlgorithmSpecification"]["TrainingInputMode"]
        init_params["base_job_name"] = base_from_name(job_details["TrainingJobName"])
        init_params["output_path"] = job_details["OutputDataConfig"]["S3OutputPath"]
        init_params["output_kms_key"] = job_details["OutputDataConfig"].get("KmsKeyId")
        if "VolumeKmsKeyId" in job_details["ResourceConfig"]:
            init_params["volume_kms_key"] = job_details["ResourceConfig"]["VolumeKmsKeyId"]
        if "EnableNetworkIsolation" in job_details:
            init_params["enable_network_isolation"] = job_details["EnableNetworkIsolation"]

        init_params["hyperparameters"] = job_details.get("HyperParameters", {})

        algorithm_spec = job_details["AlgorithmSpecification"]
        if "AlgorithmName" in algorithm_spec:
            raise ValidationError("training_job", job_details["TrainingJobName"], "학습 이미지 기반 작업 (알고리즘 ARN 미지원)")
        init_params["image_uri"] = algorithm_spec["TrainingImage"]
        if algorithm_spec.get("MetricDefinitions"):
            init_params["metric_definitions"] = algorithm_spec["MetricDefinitions"]
        if "EnableSageMakerMetricsTimeSeries" in algorithm_spec:
            init_params["enable_sagemaker_metrics"] = algorithm_spec["EnableSageMakerMetricsTimeSeries"]

        if "EnableInterContainerTrafficEncryption" in job_details:
            init_params["encrypt_inter_container_traffic"] = job_details["EnableInterContainerTrafficEncryption"]

        subnets, security_group_ids = vpc_utils.from_dict(job_details.get(vpc_utils.VPC_CONFIG_KEY))
        if subnets:
            init_params["subnets"] = subnets
        if security_group_ids:
            init_params["security_group_ids"] = security_group_ids

        if "InputDataConfig" in job_details and model_channel_name:
            for channel in job_details["InputDataConfig"]:
                if channel["ChannelName"] == model_channel_name:
                    init_params["model_channel_name"] = model_channel_name
                    init_params["model_uri"] = channel["DataSource"]["S3DataSource"]["S3Uri"]
                    break

        if job_details.get("EnableManagedSpotTraining", False):
            init_params["use_spot_instances"] = True
            init_params["max_wait"] = job_details["StoppingCondition"].get("MaxWaitTimeInSeconds")

        checkpoint_config = job_details.get("CheckpointConfig")
        if checkpoint_config:
            init_params["checkpoint_s3_uri"] = checkpoint_config["S3Uri"]
            init_params["checkpoint_local_path"] = checkpoint_config.get("LocalPath")

        if job_details.get("Environment"):
            init_params["environment"] = job_details["Environment"]
        if job_details.get("RetryStrategy"):
            init_params["max_retry_attempts"] = job_details["RetryStrategy"]["MaximumRetryAttempts"]

        return init_params

    # =========================================================================
    # 배포 / 변환 / 컴파일
    # =========================================================================

    def deploy(
        self,
        initial_instance_count: int,
        instance_type: str,
        serializer=None,
        deserializer=None,
        accelerator_type: str | None = None,
        endpoint_name: str | None = None,
        use_compiled_model: bool = False,
        wait: bool = True,
        model_name: str | None = None,
        kms_key: str | None = None,
        data_capture_config=None,
        tags: list[dict[str, str]] | None = None,
        **kwargs: Any,
    ):
        """학습 결과 모델을 엔드포인트로 배포

        Returns:
            Predictor

        Raises:
            ValidationError: 학습 작업이 없거나 컴파일된 모델이 없는 인스턴스 패밀리인 경우
        """
        self._ensure_latest_training_job()
        self._ensure_base_job_name()
        default_name = name_from_base(self.base_job_name)
        endpoint_name = endpoint_name or default_name
        model_name = model_name or default_name

        self.deploy_instance_type = instance_type
        if use_compiled_model:
            family = "_".join(instance_type.split(".")[:-1])
            if family not in self._compiled_models:
                raise ValidationError("instance_type", instance_type, f"compile_model()로 컴파일한 패밀리 ({family})")
            model = self._compiled_models[family]
        else:
            kwargs.setdefault("model_kms_key", self.output_kms_key)
            model = self.create_model(**kwargs)

        model.name = model_name

        return model.deploy(
            instance_type=instance_type,
            initial_instance_count=initial_instance_count,
            serializer=serializer,
            deserializer=deserializer,
            accelerator_type=accelerator_type,
            endpoint_name=endpoint_name,
            tags=tags or self.tags,
            wait=wait,
            kms_key=kms_key,
            data_capture_config=data_capture_config,
        )

    def register(
        self,
        content_types: list[str],
        response_types: list[str],
        inference_instances: list[str] | None = None,
        transform_instances: list[str] | None = None,
        image_uri: str | None = None,
        model_package_name: str | None = None,
        model_package_group_name: str | None = None,
        model_metrics=None,
        metadata_properties: dict[str, Any] | None = None,
        marketplace_cert: bool = False,
        approval_status: str | None = None,
        description: str | None = None,
        **kwargs: Any,
    ):
        """학습 결과 모델을 모델 레지스트리에 등록

        Returns:
            ModelPackage
        """
        self._ensure_latest_training_job()
        model = self.create_model(**kwargs)
        return model.register(
            content_types,
            response_types,
            inference_instances=inference_instances,
            transform_instances=transform_instances,
            image_uri=image_uri,
            model_package_name=model_package_name,
            model_package_group_name=model_package_group_name,
            model_metrics=model_metrics,
            metadata_properties=metadata_properties,
            marketplace_cert=marketplace_cert,
            approval_status=approval_status,
            description=description,
        )

    def transformer(
        self,
        instance_count: int,
        instance_type: str,
        strategy: str | None = None,
        assemble_with: str | None = None,
        output_path: str | None = None,
        output_kms_key: str | None = None,
        accept: str | None = None,
        env: dict[str, str] | None = None,
        max_concurrent_transforms: int | None = None,
        max_payload: int | None = None,
        tags: list[dict[str, str]] | None = None,
        role: str | None = None,
        volume_kms_key: str | None = None,
        vpc_config_override: Any = vpc_utils.VPC_CONFIG_DEFAULT,
        enable_network_isolation: bool | None = None,
        model_name: str | None = None,
    ) -> Transformer:
        """학습 결과 모델로 Transformer 생성 (모델을 먼저 CreateModel)"""
        self._ensure_latest_training_job()
        tags = tags or self.tags
        model_name = self._get_or_create_name(model_name)

        if enable_network_isolation is None:
            enable_network_isolation = self.enable_network_isolation()

        model = self.create_model(
            role=role,
            vpc_config_override=vpc_config_override,
            enable_network_isolation=enable_network_isolation,
        )
        model.name = model_name
        model._create_sagemaker_model(instance_type, tags=tags)

        if enable_network_isolation:
            env = None

        return Transformer(
            model_name,
            instance_count,
            instance_type,
            strategy=strategy,
            assemble_with=assemble_with,
            output_path=output_path,
            output_kms_key=output_kms_key,
            accept=accept,
            max_concurrent_transforms=max_concurrent_transforms,
            max_payload=max_payload,
            env=env,
            tags=tags,
            base_transform_job_name=self.base_job_name,
            volume_kms_key=volume_kms_key,
            sagemaker_session=self.sagemaker_session,
        )

    def _compilation_job_name(self) -> str:
        self._ensure_base_job_name()
        return name_from_base(f"compilation-{self.base_job_name}")

    def compile_model(
        self,
        target_instance_family: str,
        input_shape: dict[str, Any] | str,
        output_path: str,
        framework: str | None = None,
        framework_version: str | None = None,
        compile_max_run: int = DEFAULT_COMPILE_MAX_RUN,
        tags: list[dict[str, str]] | None = None,
        target_platform_os: str | None = None,
        target_platform_arch: str | None = None,
        target_platform_accelerator: str | None = None,
        compiler_options: dict[str, Any] | str | None = None,
        **kwargs: Any,
    ) -> Model:
        """학습 결과 모델을 Neo로 컴파일 (완료까지 대기)

        Raises:
            ValidationError: 프레임워크가 Neo 미지원이거나 framework/framework_version 중 하나만 지정한 경우
        """
        if framework and framework not in NEO_ALLOWED_FRAMEWORKS:
            raise ValidationError("framework", framework, ", ".join(sorted(NEO_ALLOWED_FRAMEWORKS)))
        if (framework is None) != (framework_version is None):
            raise ValidationError(
                "framework/framework_version", f"{framework}/{framework_version}", "둘 다 지정하거나 둘 다 생략"
            )

        model = self.create_model(**kwargs)
        self._compiled_models[target_instance_family] = model.compile(
            target_instance_family,
            input_shape,
            output_path,
            self.role,
            tags=tags or self.tags,
            job_name=self._compilation_job_name(),
            compile_max_run=compile_max_run,
            framework=framework,
            framework_version=framework_version,
            target_platform_os=target_platform_os,
            target_platform_arch=target_platform_arch,
            target_platform_accelerator=target_platform_accelerator,
            compiler_options=compiler_options,
        )
        return self._compiled_models[target_instance_family]

    # =========================================================================
    # VPC / 산출물 경로
    # =========================================================================

    def get_vpc_config(self, vpc_config_override: Any = vpc_utils.VPC_CONFIG_DEFAULT) -> dict[str, Any] | None:
        """추정기 VpcConfig (override가 있으면 검증 후 사용)"""
        if vpc_config_override is vpc_utils.VPC_CONFIG_DEFAULT:
            return vpc_utils.to_dict(self.subnets, self.security_group_ids)
        return vpc_utils.sanitize(vpc_config_override)

    def latest_job_debugger_artifacts_path(self) -> str | None:
        """마지막 학습 작업의 디버거 텐서 출력 경로"""
        if self.latest_training_job is None or not isinstance(self.debugger_hook_config, DebuggerHookConfig):
            return None
        return s3_path_join(
            self.debugger_hook_config.s3_output_path, self.latest_training_job.name, "debug-output"
        )

    def latest_job_tensorboard_artifacts_path(self) -> str | None:
        """마지막 학습 작업의 TensorBoard 출력 경로"""
        if self.latest_training_job is None or self.tensorboard_output_config is None:
            return None
        return s3_path_join(
            self.tensorboard_output_config.s3_output_path, self.latest_training_job.name, "tensorboard-output"
        )

    def latest_job_profiler_artifacts_path(self) -> str | None:
        """마지막 학습 작업의 프로파일러 출력 경로"""
        if self.latest_training_job is None or self.profiler_config is None or self.disable_profiler:
            return None
        return s3_path_join(self.profiler_config.s3_output_path, self.latest_training_job.name, "profiler-output")


class _TrainingJob(_Job):
    """학습 작업 핸들"""

    @classmethod
    def start_new(cls, estimator: EstimatorBase, inputs, experiment_config: dict[str, str] | None = None) -> _TrainingJob:
        """CreateTrainingJob 호출 후 핸들 반환"""
        train_args = estimator.get_train_args(inputs, experiment_config)
        estimator.sagemaker_session.train(**train_args)
        return cls(estimator.sagemaker_session, estimator._current_job_name)

    def wait(self, logs: str | bool = "All") -> None:
        """작업 종료까지 대기. logs가 "None"/False가 아니면 로그를 출력하며 대기"""
        if logs is True:
            logs = "All"
        elif logs is False:
            logs = "None"

        if logs != "None":
            self.sagemaker_session.logs_for_job(self.job_name, wait=True, log_type=logs)
        else:
            self.sagemaker_session.wait_for_job(self.job_name)

    def describe(self) -> dict[str, Any]:
        return self.sagemaker_session.describe_training_job(self.job_name)

    def stop(self) -> None:
        self.sagemaker_session.stop_training_job(self.job_name)


class Estimator(EstimatorBase):
    """임의 학습 이미지 추정기

    하이퍼파라미터는 문자열로 변환되어 그대로 전달됩니다.
    """

    def __init__(
        self,
        image_uri: str,
        role: str,
        instance_count: int | None = None,
        instance_type: str | None = None,
        hyperparameters: dict[str, Any] | None = None,
        **kwargs: Any,
    ):
        self.image_uri = image_uri
        self._hyperparameters = dict(hyperparameters) if hyperparameters else {}
        super().__init__(role, instance_count, instance_type, **kwargs)

    def training_image_uri(self) -> str:
        return self.image_uri

    def set_hyperparameters(self, **kwargs: Any) -> None:
        """하이퍼파라미터 추가/갱신"""
        for k, v in kwargs.items():
            self._hyperparameters[k] = v

    def hyperparameters(self) -> dict[str, Any]:
        return self._hyperparameters

    def create_model(
        self,
        role: str | None = None,
        image_uri: str | None = None,
        predictor_cls: type | None = None,
        vpc_config_override: Any = vpc_utils.VPC_CONFIG_DEFAULT,
        **kwargs: Any,
    ) -> Model:
        """학습 산출물로 Model 생성 (기본적으로 학습 이미지를 추론에도 사용)"""
        if "enable_network_isolation" not in kwargs:
            kwargs["enable_network_isolation"] = self.enable_network_isolation()

        return Model(
            image_uri or self.training_image_uri(),
            self.model_data,
            role or self.role,
            vpc_config=self.get_vpc_config(vpc_config_override),
            sagemaker_session=self.sagemaker_session,
            predictor_cls=predictor_cls,
            **kwargs,
        )


class Framework(EstimatorBase):
    """스크립트 모드 프레임워크 추정기 베이스

    entry_point(및 source_dir, dependencies)를 ``sourcedir.tar.gz``로 업로드하고
    sagemaker_program, sagemaker_submit_directory, sagemaker_container_log_level,
    sagemaker_job_name, sagemaker_region 하이퍼파라미터를 주입합니다.
    모든 하이퍼파라미터는 JSON 문자열로 인코딩됩니다.
    """

    _framework_name: str | None = None

    def __init__(
        self,
        entry_point: str,
        source_dir: str | None = None,
        hyperparameters: dict[str, Any] | None = None,
        container_log_level: int = logging.INFO,
        code_location: str | None = None,
        image_uri: str | None = None,
        dependencies: list[str] | None = None,
        enable_network_isolation: bool = False,
        **kwargs: Any,
    ):
        super().__init__(enable_network_isolation=enable_network_isolation, **kwargs)
        if entry_point.lower().startswith("s3://"):
            raise ValidationError("entry_point", entry_point, "source_dir 기준 상대 경로 또는 로컬 파일 경로")

        self.source_dir = source_dir
        self.entry_point = entry_point
        self.dependencies = dependencies or []
        self.uploaded_code: UploadedCode | None = None

        self.container_log_level = container_log_level
        self.code_location = code_location
        self.image_uri = image_uri
        self._hyperparameters = dict(hyperparameters) if hyperparameters else {}

    def _prepare_for_training(self, job_name: str | None = None) -> None:
        super()._prepare_for_training(job_name=job_name)

        if self.source_dir and not self.source_dir.lower().startswith("s3://"):
            validate_source_dir(self.entry_point, self.source_dir)

        self.uploaded_code = self._stage_user_code_in_s3()
        if self.enable_network_isolation():
            # 네트워크 격리 시 코드는 "code" 채널로 전달
            self.code_uri = self.uploaded_code.s3_prefix
            code_dir = "/opt/ml/input/data/code/sourcedir.tar.gz"
        else:
            code_dir = self.uploaded_code.s3_prefix
        script = self.uploaded_code.script_name

        self._hyperparameters[DIR_PARAM_NAME] = code_dir
        self._hyperparameters[SCRIPT_PARAM_NAME] = script
        self._hyperparameters[CONTAINER_LOG_LEVEL_PARAM_NAME] = self.container_log_level
        self._hyperparameters[JOB_NAME_PARAM_NAME] = self._current_job_name
        self._hyperparameters[SAGEMAKER_REGION_PARAM_NAME] = self.sagemaker_session.boto_region_name

    def _stage_user_code_in_s3(self) -> UploadedCode:
        """사용자 코드를 ``{code_location 또는 기본 버킷}/{job_name}/source/sourcedir.tar.gz``로 업로드"""
        if self.code_location is None:
            code_bucket = self.sagemaker_session.default_bucket()
            key_prefix = self.sagemaker_session.default_bucket_prefix
        else:
            code_bucket, key_prefix = parse_s3_url(self.code_location)
        code_s3_prefix = "/".join(filter(None, [key_prefix, self._current_job_name, "source"]))

        output_bucket, _ = parse_s3_url(self.output_path)
        kms_key = self.output_kms_key if code_bucket == output_bucket else None

        return tar_and_upload_dir(
            session=self.sagemaker_session,
            bucket=code_bucket,
            s3_key_prefix=code_s3_prefix,
            script=self.entry_point,
            directory=self.source_dir,
            dependencies=self.dependencies,
            kms_key=kms_key,
        )

    def _model_source_dir(self) -> str | None:
        if self.source_dir and self.source_dir.lower().startswith("s3://"):
            return self.source_dir
        return self.uploaded_code.s3_prefix if self.uploaded_code else None

    def _model_entry_point(self) -> str | None:
        if self.uploaded_code:
            return self.uploaded_code.script_name
        return self.entry_point

    def set_hyperparameters(self, **kwargs: Any) -> None:
        for k, v in kwargs.items():
            self._hyperparameters[k] = v

    def hyperparameters(self) -> dict[str, str]:
        """JSON 인코딩된 하이퍼파라미터"""
        return {str(k): json.dumps(v) for k, v in self._hyperparameters.items()}

    def training_image_uri(self) -> str:
        if self.image_uri:
            return self.image_uri
        return image_uris.get_training_image_uri(
            self.sagemaker_session.boto_region_name,
            self._framework_name,
            getattr(self, "framework_version", None),
            getattr(self, "py_version", None),
            self.instance_type,
        )

    @classmethod
    def _prepare_init_params_from_job_description(
        cls, job_details: dict[str, Any], model_channel_name: str | None = None
    ) -> dict[str, Any]:
        init_params = super()._prepare_init_params_from_job_description(job_details, model_channel_name)

        hyperparameters = {k: json.loads(v) for k, v in init_params.pop("hyperparameters").items()}
        init_params["entry_point"] = hyperparameters.pop(SCRIPT_PARAM_NAME)
        source_dir = hyperparameters.pop(DIR_PARAM_NAME)
        init_params["source_dir"] = None if source_dir.startswith("/opt/ml") else source_dir
        init_params["container_log_level"] = hyperparameters.pop(CONTAINER_LOG_LEVEL_PARAM_NAME)
        hyperparameters.pop(JOB_NAME_PARAM_NAME, None)
        hyperparameters.pop(SAGEMAKER_REGION_PARAM_NAME, None)
        init_params["hyperparameters"] = hyperparameters

        image_uri = init_params.pop("image_uri")
        framework, py_version, tag, _ = framework_name_from_image(image_uri)
        if framework is None or framework != cls._framework_name:
            init_params["image_uri"] = image_uri
        else:
            init_params["py_version"] = py_version
            init_params["framework_version"] = framework_version_from_tag(tag) or tag

        return init_params

    @classmethod
    def attach(
        cls, training_job_name: str, sagemaker_session: Session | None = None, model_channel_name: str = "model"
    ) -> Framework:
        """기존 학습 작업으로 복원하고 업로드된 코드 위치를 연결"""
        estimator = super().attach(training_job_name, sagemaker_session, model_channel_name)
        estimator.uploaded_code = UploadedCode(estimator.source_dir, estimator.entry_point)
        return estimator
