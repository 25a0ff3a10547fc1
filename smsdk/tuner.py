"""
smsdk/tuner.py - 하이퍼파라미터 튜닝 (CreateHyperParameterTuningJob)

Example:
    tuner = HyperparameterTuner(
        estimator,
        objective_metric_name="validation:auc",
        hyperparameter_ranges={"eta": ContinuousParameter(0.01, 0.3), "max_depth": IntegerParameter(3, 10)},
        max_jobs=20,
        max_parallel_jobs=4,
    )
    tuner.fit({"train": "s3://bucket/train/", "validation": "s3://bucket/validation/"})
    predictor = tuner.deploy(1, "ml.m5.large")
"""

from __future__ import annotations

import importlib
import json
import logging
from enum import Enum
from typing import Any

from core.exceptions import ValidationError
from smsdk.estimator import EstimatorBase, Framework
from smsdk.job import _Job
from smsdk.parameter import CategoricalParameter, ContinuousParameter, IntegerParameter, ParameterRange
from smsdk.session import Session
from smsdk.utils import base_from_name, base_name_from_image, name_from_base

logger = logging.getLogger(__name__)

HYPERPARAMETER_TUNING_JOB_NAME = "HyperParameterTuningJobName"
PARENT_HYPERPARAMETER_TUNING_JOBS = "ParentHyperParameterTuningJobs"
WARM_START_TYPE = "WarmStartType"


class WarmStartTypes(Enum):
    """웜 스타트 유형"""

    IDENTICAL_DATA_AND_ALGORITHM = "IdenticalDataAndAlgorithm"
    TRANSFER_LEARNING = "TransferLearning"


class WarmStartConfig:
    """부모 튜닝 작업 결과를 이어받는 웜 스타트 설정

    Attributes:
        type: WarmStartTypes
        parents: 부모 튜닝 작업 이름 집합
    """

    def __init__(self, warm_start_type: WarmStartTypes | str, parents: set[str] | list[str]):
        try:
            self.type = WarmStartTypes(warm_start_type)
        except ValueError as e:
            raise ValidationError(
                "warm_start_type", warm_start_type, ", ".join(t.value for t in WarmStartTypes)
            ) from e

        if parents is None:
            raise ValidationError("parents", parents, "부모 튜닝 작업 이름 목록")
        self.parents = set(parents)

    def __repr__(self) -> str:
        return f"WarmStartConfig({self.type.value!r}, parents={sorted(self.parents)!r})"

    @classmethod
    def from_job_desc(cls, warm_start_config: dict[str, Any] | None) -> WarmStartConfig | None:
        """DescribeHyperParameterTuningJob 응답의 WarmStartConfig로부터 생성"""
        if (
            not warm_start_config
            or WARM_START_TYPE not in warm_start_config
            or PARENT_HYPERPARAMETER_TUNING_JOBS not in warm_start_config
        ):
            return None

        parents = [parent[HYPERPARAMETER_TUNING_JOB_NAME] for parent in warm_start_config[PARENT_HYPERPARAMETER_TUNING_JOBS]]
        return cls(warm_start_type=WarmStartTypes(warm_start_config[WARM_START_TYPE]), parents=parents)

    def to_input_req(self) -> dict[str, Any]:
        return {
            WARM_START_TYPE: self.type.value,
            PARENT_HYPERPARAMETER_TUNING_JOBS: [
                {HYPERPARAMETER_TUNING_JOB_NAME: parent} for parent in sorted(self.parents)
            ],
        }


class HyperparameterTuner:
    """추정기 하나에 대한 하이퍼파라미터 튜닝

    Attributes:
        estimator: 튜닝 대상 추정기
        latest_tuning_job: 마지막 _TuningJob
    """

    TUNING_JOB_NAME_MAX_LENGTH = 32

    SAGEMAKER_ESTIMATOR_MODULE = "sagemaker_estimator_module"
    SAGEMAKER_ESTIMATOR_CLASS_NAME = "sagemaker_estimator_class_name"

    DEFAULT_ESTIMATOR_MODULE = "smsdk.estimator"
    DEFAULT_ESTIMATOR_CLS_NAME = "Estimator"

    def __init__(
        self,
        estimator: EstimatorBase,
        objective_metric_name: str,
        hyperparameter_ranges: dict[str, ParameterRange],
        metric_definitions: list[dict[str, str]] | None = None,
        strategy: str = "Bayesian",
        objective_type: str = "Maximize",
        max_jobs: int = 1,
        max_parallel_jobs: int = 1,
        tags: list[dict[str, str]] | None = None,
        base_tuning_job_name: str | None = None,
        warm_start_config: WarmStartConfig | None = None,
        early_stopping_type: str = "Off",
    ):
        if not hyperparameter_ranges:
            raise ValidationError("hyperparameter_ranges", hyperparameter_ranges, "1개 이상의 파라미터 범위")
        if early_stopping_type not in ("Off", "Auto"):
            raise ValidationError("early_stopping_type", early_stopping_type, "Off, Auto")

        self.estimator = estimator
        self.objective_metric_name = objective_metric_name
        self._hyperparameter_ranges = hyperparameter_ranges
        self.metric_definitions = metric_definitions
        self.static_hyperparameters: dict[str, str] | None = None

        self.strategy = strategy
        self.objective_type = objective_type
        self.max_jobs = max_jobs
        self.max_parallel_jobs = max_parallel_jobs

        self.tags = tags
        self.base_tuning_job_name = base_tuning_job_name
        self._current_job_name: str | None = None
        self.latest_tuning_job: _TuningJob | None = None
        self.warm_start_config = warm_start_config
        self.early_stopping_type = early_stopping_type

    def __repr__(self) -> str:
        return f"HyperparameterTuner(objective={self.objective_metric_name!r}, max_jobs={self.max_jobs})"

    @property
    def sagemaker_session(self) -> Session:
        return self.estimator.sagemaker_session

    # =========================================================================
    # 튜닝 실행
    # =========================================================================

    def _prepare_for_tuning(self, job_name: str | None = None, include_cls_metadata: bool = False) -> None:
        self._prepare_job_name_for_tuning(job_name=job_name)
        self.static_hyperparameters = self._prepare_static_hyperparameters(
            self.estimator, self._hyperparameter_ranges, include_cls_metadata
        )

    def _prepare_job_name_for_tuning(self, job_name: str | None = None) -> None:
        if job_name is not None:
            self._current_job_name = job_name
            return

        base_name = self.base_tuning_job_name
        if base_name is None:
            base_name = base_name_from_image(self.estimator.training_image_uri())
        self._current_job_name = name_from_base(base_name, max_length=self.TUNING_JOB_NAME_MAX_LENGTH, short=True)

    def _prepare_static_hyperparameters(
        self,
        estimator: EstimatorBase,
        hyperparameter_ranges: dict[str, ParameterRange],
        include_cls_metadata: bool,
    ) -> dict[str, str]:
        """튜닝 대상을 제외한 고정 하이퍼파라미터 (프레임워크는 추정기 클래스 정보 포함)"""
        static_hyperparameters = {str(k): str(v) for (k, v) in estimator.hyperparameters().items()}
        for hyperparameter_name in hyperparameter_ranges:
            static_hyperparameters.pop(hyperparameter_name, None)

        # attach()가 추정기 클래스를 복원할 수 있도록
        if include_cls_metadata or isinstance(estimator, Framework):
            static_hyperparameters[self.SAGEMAKER_ESTIMATOR_CLASS_NAME] = json.dumps(type(estimator).__name__)
            static_hyperparameters[self.SAGEMAKER_ESTIMATOR_MODULE] = json.dumps(type(estimator).__module__)

        return static_hyperparameters

    def fit(self, inputs=None, job_name: str | None = None, include_cls_metadata: bool = False, wait: bool = False) -> None:
        """튜닝 작업 시작

        Args:
            inputs: 추정기 fit()과 같은 형식의 입력
            job_name: 튜닝 작업 이름 (None이면 자동 생성, 최대 32자)
            include_cls_metadata: 추정기 클래스 정보를 고정 하이퍼파라미터에 포함할지 여부
            wait: 튜닝 작업 종료까지 대기 여부
        """
        self.estimator._prepare_for_training(job_name)
        self._prepare_for_tuning(job_name=job_name, include_cls_metadata=include_cls_metadata)

        self.latest_tuning_job = _TuningJob.start_new(self, inputs)
        if wait:
            self.latest_tuning_job.wait()

    def hyperparameter_ranges(self) -> dict[str, list[dict[str, Any]]] | None:
        """ParameterRanges 요청 구조 (유형별로 묶음)"""
        if self._hyperparameter_ranges is None:
            return None
        return self._prepare_parameter_ranges_for_tuning(self._hyperparameter_ranges, self.estimator)

    @staticmethod
    def _prepare_parameter_ranges_for_tuning(
        parameter_ranges: dict[str, ParameterRange], estimator: EstimatorBase
    ) -> dict[str, list[dict[str, Any]]]:
        processed_parameter_ranges: dict[str, list[dict[str, Any]]] = {}
        for range_type in ParameterRange.RANGE_TYPES:
            hp_ranges = []
            for parameter_name, parameter in parameter_ranges.items():
                if parameter is not None and parameter.range_type == range_type:
                    # 프레임워크 컨테이너는 하이퍼파라미터를 JSON으로 읽음
                    if isinstance(parameter, CategoricalParameter) and isinstance(estimator, Framework):
                        tuning_range = parameter.as_json_range(parameter_name)
                    else:
                        tuning_range = parameter.as_tuning_range(parameter_name)
                    hp_ranges.append(tuning_range)
            processed_parameter_ranges[range_type + "ParameterRanges"] = hp_ranges
        return processed_parameter_ranges

    # =========================================================================
    # 조회 / 대기 / 중지
    # =========================================================================

    def _ensure_last_tuning_job(self) -> None:
        if self.latest_tuning_job is None:
            raise ValidationError("latest_tuning_job", None, "fit() 또는 attach() 이후 사용")

    def stop_tuning_job(self) -> None:
        """마지막 튜닝 작업 중지"""
        self._ensure_last_tuning_job()
        self.latest_tuning_job.stop()

    def describe(self) -> dict[str, Any]:
        """마지막 튜닝 작업의 DescribeHyperParameterTuningJob 응답"""
        self._ensure_last_tuning_job()
        return self.latest_tuning_job.describe()

    def wait(self) -> None:
        """마지막 튜닝 작업 종료까지 대기"""
        self._ensure_last_tuning_job()
        self.latest_tuning_job.wait()

    def _get_best_training_job(self) -> dict[str, Any]:
        self._ensure_last_tuning_job()
        tuning_job_describe_result = self.latest_tuning_job.describe()

        best_job = tuning_job_describe_result.get("BestTrainingJob")
        if best_job is None:
            raise ValidationError("BestTrainingJob", None, f"{self.latest_tuning_job.name}의 최적 학습 작업 (아직 없음)")
        return best_job

    def best_training_job(self) -> str:
        """최적 학습 작업 이름"""
        return self._get_best_training_job()["TrainingJobName"]

    def best_estimator(self, best_training_job: dict[str, Any] | None = None) -> EstimatorBase:
        """최적 학습 작업에 attach한 추정기"""
        if best_training_job is None:
            best_training_job = self._get_best_training_job()

        return type(self.estimator).attach(
            training_job_name=best_training_job["TrainingJobName"],
            sagemaker_session=self.sagemaker_session,
        )

    def deploy(
        self,
        initial_instance_count: int,
        instance_type: str,
        accelerator_type: str | None = None,
        endpoint_name: str | None = None,
        wait: bool = True,
        model_name: str | None = None,
        kms_key: str | None = None,
        data_capture_config=None,
        **kwargs: Any,
    ):
        """최적 학습 작업의 모델을 엔드포인트로 배포

        endpoint_name을 생략하면 최적 학습 작업 이름을 사용합니다.
        """
        best_training_job = self._get_best_training_job()
        best_estimator = self.best_estimator(best_training_job)

        return best_estimator.deploy(
            initial_instance_count=initial_instance_count,
            instance_type=instance_type,
            accelerator_type=accelerator_type,
            endpoint_name=endpoint_name or best_training_job["TrainingJobName"],
            wait=wait,
            model_name=model_name,
            kms_key=kms_key,
            data_capture_config=data_capture_config,
            **kwargs,
        )

    # =========================================================================
    # attach
    # =========================================================================

    @classmethod
    def attach(
        cls,
        tuning_job_name: str,
        sagemaker_session: Session | None = None,
        job_details: dict[str, Any] | None = None,
        estimator_cls: str | None = None,
    ) -> HyperparameterTuner:
        """기존 튜닝 작업으로 HyperparameterTuner 복원

        Args:
            tuning_job_name: 튜닝 작업 이름
            sagemaker_session: Session
            job_details: DescribeHyperParameterTuningJob 응답 (없으면 조회)
            estimator_cls: "모듈.클래스" 형식의 추정기 클래스 경로 (없으면 고정 하이퍼파라미터/기본값 사용)
        """
        sagemaker_session = sagemaker_session or Session()

        if job_details is None:
            job_details = sagemaker_session.describe_tuning_job(tuning_job_name)

        if "TrainingJobDefinition" not in job_details:
            raise ValidationError("TrainingJobDefinition", None, "단일 학습 정의를 가진 튜닝 작업")

        estimator = cls._prepare_estimator(
            estimator_cls=estimator_cls,
            training_details=job_details["TrainingJobDefinition"],
            sagemaker_session=sagemaker_session,
        )
        init_params = cls._prepare_init_params_from_job_description(job_details)

        tuner = cls(estimator=estimator, **init_params)
        tuner.latest_tuning_job = _TuningJob(sagemaker_session=sagemaker_session, job_name=tuning_job_name)
        tuner._current_job_name = tuning_job_name
        return tuner

    @classmethod
    def _prepare_estimator(
        cls, estimator_cls: str | None, training_details: dict[str, Any], sagemaker_session: Session
    ) -> EstimatorBase:
        estimator_class = cls._prepare_estimator_cls(estimator_cls, training_details)
        return cls._prepare_estimator_from_job_description(estimator_class, training_details, sagemaker_session)

    @classmethod
    def _prepare_estimator_cls(cls, estimator_cls: str | None, training_details: dict[str, Any]) -> type:
        # 사용자 지정 클래스 우선
        if estimator_cls is not None:
            module, cls_name = estimator_cls.rsplit(".", 1)
            return getattr(importlib.import_module(module), cls_name)

        hyperparameters = training_details.get("StaticHyperParameters", {})
        if cls.SAGEMAKER_ESTIMATOR_CLASS_NAME in hyperparameters and cls.SAGEMAKER_ESTIMATOR_MODULE in hyperparameters:
            module = json.loads(hyperparameters[cls.SAGEMAKER_ESTIMATOR_MODULE])
            cls_name = json.loads(hyperparameters[cls.SAGEMAKER_ESTIMATOR_CLASS_NAME])
            return getattr(importlib.import_module(module), cls_name)

        return getattr(importlib.import_module(cls.DEFAULT_ESTIMATOR_MODULE), cls.DEFAULT_ESTIMATOR_CLS_NAME)

    @classmethod
    def _prepare_estimator_from_job_description(
        cls, estimator_cls: type, training_details: dict[str, Any], sagemaker_session: Session
    ) -> EstimatorBase:
        details = dict(training_details)

        # 추정기가 기대하는 이름으로 교체
        hyperparameters = dict(details.pop("StaticHyperParameters", {}))
        hyperparameters.pop("_tuning_objective_metric", None)
        hyperparameters.pop(cls.SAGEMAKER_ESTIMATOR_CLASS_NAME, None)
        hyperparameters.pop(cls.SAGEMAKER_ESTIMATOR_MODULE, None)
        details["HyperParameters"] = hyperparameters

        details["TrainingJobName"] = ""
        output_config = dict(details["OutputDataConfig"])
        output_config.setdefault("KmsKeyId", "")
        details["OutputDataConfig"] = output_config

        init_params = estimator_cls._prepare_init_params_from_job_description(details)
        return estimator_cls(sagemaker_session=sagemaker_session, **init_params)

    @classmethod
    def _prepare_init_params_from_job_description(cls, job_details: dict[str, Any]) -> dict[str, Any]:
        tuning_config = job_details["HyperParameterTuningJobConfig"]

        params: dict[str, Any] = {
            "strategy": tuning_config["Strategy"],
            "max_jobs": tuning_config["ResourceLimits"]["MaxNumberOfTrainingJobs"],
            "max_parallel_jobs": tuning_config["ResourceLimits"]["MaxParallelTrainingJobs"],
            "warm_start_config": WarmStartConfig.from_job_desc(job_details.get("WarmStartConfig")),
            "early_stopping_type": tuning_config.get("TrainingJobEarlyStoppingType", "Off"),
            "base_tuning_job_name": base_from_name(job_details["HyperParameterTuningJobName"]),
        }

        objective = tuning_config.get("HyperParameterTuningJobObjective")
        if objective:
            params["objective_metric_name"] = objective["MetricName"]
            params["objective_type"] = objective["Type"]

        if "ParameterRanges" in tuning_config:
            params["hyperparameter_ranges"] = cls._prepare_parameter_ranges_from_job_description(
                tuning_config["ParameterRanges"]
            )

        training_details = job_details["TrainingJobDefinition"]
        metric_definitions = training_details["AlgorithmSpecification"].get("MetricDefinitions")
        if metric_definitions is not None:
            params["metric_definitions"] = metric_definitions

        return params

    @staticmethod
    def _prepare_parameter_ranges_from_job_description(parameter_ranges: dict[str, Any]) -> dict[str, ParameterRange]:
        ranges: dict[str, ParameterRange] = {}

        for parameter in parameter_ranges.get("CategoricalParameterRanges", []):
            ranges[parameter["Name"]] = CategoricalParameter(parameter["Values"])

        for parameter in parameter_ranges.get("ContinuousParameterRanges", []):
            ranges[parameter["Name"]] = ContinuousParameter(
                float(parameter["MinValue"]), float(parameter["MaxValue"]), parameter.get("ScalingType", "Auto")
            )

        for parameter in parameter_ranges.get("IntegerParameterRanges", []):
            ranges[parameter["Name"]] = IntegerParameter(
                int(parameter["MinValue"]), int(parameter["MaxValue"]), parameter.get("ScalingType", "Auto")
            )

        return ranges

    # =========================================================================
    # 웜 스타트
    # =========================================================================

    def transfer_learning_tuner(
        self, additional_parents: set[str] | None = None, estimator: EstimatorBase | None = None
    ) -> HyperparameterTuner:
        """이 튜닝 작업을 부모로 하는 TransferLearning 웜 스타트 튜너"""
        return self._create_warm_start_tuner(
            additional_parents=additional_parents,
            warm_start_type=WarmStartTypes.TRANSFER_LEARNING,
            estimator=estimator,
        )

    def identical_dataset_and_algorithm_tuner(self, additional_parents: set[str] | None = None) -> HyperparameterTuner:
        """이 튜닝 작업을 부모로 하는 IdenticalDataAndAlgorithm 웜 스타트 튜너"""
        return self._create_warm_start_tuner(
            additional_parents=additional_parents,
            warm_start_type=WarmStartTypes.IDENTICAL_DATA_AND_ALGORITHM,
        )

    def _create_warm_start_tuner(
        self,
        additional_parents: set[str] | None,
        warm_start_type: WarmStartTypes,
        estimator: EstimatorBase | None = None,
    ) -> HyperparameterTuner:
        self._ensure_last_tuning_job()
        all_parents = {self.latest_tuning_job.name}
        if additional_parents:
            all_parents = all_parents.union(additional_parents)

        return HyperparameterTuner(
            estimator=estimator or self.estimator,
            objective_metric_name=self.objective_metric_name,
            hyperparameter_ranges=self._hyperparameter_ranges,
            metric_definitions=self.metric_definitions,
            strategy=self.strategy,
            objective_type=self.objective_type,
            max_jobs=self.max_jobs,
            max_parallel_jobs=self.max_parallel_jobs,
            tags=self.tags,
            base_tuning_job_name=self.base_tuning_job_name,
            warm_start_config=WarmStartConfig(warm_start_type=warm_start_type, parents=all_parents),
            early_stopping_type=self.early_stopping_type,
        )


class _TuningJob(_Job):
    """하이퍼파라미터 튜닝 작업 핸들"""

    @classmethod
    def start_new(cls, tuner: HyperparameterTuner, inputs) -> _TuningJob:
        warm_start_config_req = None
        if tuner.warm_start_config:
            warm_start_config_req = tuner.warm_start_config.to_input_req()

        tuning_config = Session._map_tuning_config(
            strategy=tuner.strategy,
            max_jobs=tuner.max_jobs,
            max_parallel_jobs=tuner.max_parallel_jobs,
            early_stopping_type=tuner.early_stopping_type,
            objective_type=tuner.objective_type,
            objective_metric_name=tuner.objective_metric_name,
            parameter_ranges=tuner.hyperparameter_ranges(),
        )

        training_config = cls._prepare_training_config(
            inputs=inputs,
            estimator=tuner.estimator,
            static_hyperparameters=tuner.static_hyperparameters,
            metric_definitions=tuner.metric_definitions,
        )

        tuner.sagemaker_session.create_tuning_job(
            job_name=tuner._current_job_name,
            tuning_config=tuning_config,
            training_config=training_config,
            warm_start_config=warm_start_config_req,
            tags=tuner.tags,
        )

        return cls(tuner.sagemaker_session, tuner._current_job_name)

    @staticmethod
    def _prepare_training_config(
        inputs,
        estimator: EstimatorBase,
        static_hyperparameters: dict[str, str],
        metric_definitions: list[dict[str, str]] | None,
    ) -> dict[str, Any]:
        config = _Job._load_config(inputs, estimator)

        input_mode = estimator.input_mode
        for channel in config["input_config"] or []:
            if "InputMode" in channel:
                logger.debug(f"채널 입력 모드 사용: {channel['InputMode']}")
                input_mode = channel["InputMode"]
                break

        return Session._map_training_config(
            static_hyperparameters=static_hyperparameters,
            input_mode=input_mode,
            role=config["role"],
            output_config=config["output_config"],
            resource_config=config["resource_config"],
            stop_condition=config["stop_condition"],
            input_config=config["input_config"],
            metric_definitions=metric_definitions or estimator.metric_definitions,
            image_uri=estimator.training_image_uri(),
            vpc_config=config["vpc_config"],
            enable_network_isolation=estimator.enable_network_isolation(),
            encrypt_inter_container_traffic=estimator.encrypt_inter_container_traffic,
            use_spot_instances=estimator.use_spot_instances,
            checkpoint_s3_uri=estimator.checkpoint_s3_uri,
            checkpoint_local_path=estimator.checkpoint_local_path,
        )

    def wait(self) -> None:
        self.sagemaker_session.wait_for_tuning_job(self.job_name)

    def describe(self) -> dict[str, Any]:
        return self.sagemaker_session.describe_tuning_job(self.job_name)

    def stop(self) -> None:
        self.sagemaker_session.stop_tuning_job(name=self.job_name)
