"""
smsdk/debugger.py - SageMaker Debugger / Profiler 구성

학습 작업 요청의 DebugHookConfig, DebugRuleConfigurations,
TensorBoardOutputConfig, ProfilerConfig, ProfilerRuleConfigurations 항목을 생성합니다.
"""

from __future__ import annotations

from typing import Any

from core.exceptions import ValidationError
from smsdk import image_uris

# 내장 규칙 평가 기본 인스턴스
DEFAULT_RULE_INSTANCE_TYPE = "ml.t3.medium"
DEFAULT_RULE_VOLUME_SIZE_IN_GB = 0

# 시스템 모니터링 기본 주기 (ms)
DEFAULT_PROFILING_INTERVAL_MILLIS = 500
VALID_PROFILING_INTERVALS = (100, 200, 500, 1000, 5000, 60000)


def get_rule_container_image_uri(region: str) -> str:
    """리전의 내장 규칙 평가 컨테이너 이미지 URI"""
    return image_uris.retrieve(framework="debugger", region=region)


class CollectionConfig:
    """디버거 텐서 컬렉션 설정"""

    def __init__(self, name: str, parameters: dict[str, str] | None = None):
        self.name = name
        self.parameters = parameters

    def __eq__(self, other) -> bool:
        if not isinstance(other, CollectionConfig):
            return NotImplemented
        return self.name == other.name and self.parameters == other.parameters

    def __hash__(self) -> int:
        return hash((self.name, tuple(sorted((self.parameters or {}).items()))))

    def _to_request_dict(self) -> dict[str, Any]:
        collection_config_request: dict[str, Any] = {"CollectionName": self.name}
        if self.parameters is not None:
            collection_config_request["CollectionParameters"] = self.parameters
        return collection_config_request


class DebuggerHookConfig:
    """텐서 저장 위치와 컬렉션 설정"""

    def __init__(
        self,
        s3_output_path: str | None = None,
        container_local_output_path: str | None = None,
        hook_parameters: dict[str, str] | None = None,
        collection_configs: list[CollectionConfig] | None = None,
    ):
        self.s3_output_path = s3_output_path
        self.container_local_output_path = container_local_output_path
        self.hook_parameters = hook_parameters
        self.collection_configs = collection_configs

    def _to_request_dict(self) -> dict[str, Any]:
        debugger_hook_config_request: dict[str, Any] = {"S3OutputPath": self.s3_output_path}

        if self.container_local_output_path is not None:
            debugger_hook_config_request["LocalPath"] = self.container_local_output_path
        if self.hook_parameters is not None:
            debugger_hook_config_request["HookParameters"] = self.hook_parameters
        if self.collection_configs is not None:
            debugger_hook_config_request["CollectionConfigurations"] = [
                collection_config._to_request_dict() for collection_config in self.collection_configs
            ]

        return debugger_hook_config_request


class TensorBoardOutputConfig:
    """TensorBoard 출력 위치"""

    def __init__(self, s3_output_path: str, container_local_output_path: str | None = None):
        self.s3_output_path = s3_output_path
        self.container_local_output_path = container_local_output_path

    def _to_request_dict(self) -> dict[str, str]:
        tensorboard_output_config_request = {"S3OutputPath": self.s3_output_path}
        if self.container_local_output_path is not None:
            tensorboard_output_config_request["LocalPath"] = self.container_local_output_path
        return tensorboard_output_config_request


class _RuleBase:
    def __init__(
        self,
        name: str,
        image_uri: str,
        instance_type: str | None,
        container_local_output_path: str | None,
        s3_output_path: str | None,
        volume_size_in_gb: int | None,
        rule_parameters: dict[str, str] | None,
    ):
        self.name = name
        self.image_uri = image_uri
        self.instance_type = instance_type
        self.container_local_output_path = container_local_output_path
        self.s3_output_path = s3_output_path
        self.volume_size_in_gb = volume_size_in_gb
        self.rule_parameters = rule_parameters

    @staticmethod
    def _set_rule_parameters(source: str | None, rule_to_invoke: str | None, rule_parameters: dict[str, str] | None) -> dict[str, str]:
        merged: dict[str, str] = {}
        if source is not None:
            merged["source_s3_uri"] = source
        if rule_to_invoke is not None:
            merged["rule_to_invoke"] = rule_to_invoke
        merged.update(rule_parameters or {})
        return merged

    def _to_request_dict(self) -> dict[str, Any]:
        request: dict[str, Any] = {
            "RuleConfigurationName": self.name,
            "RuleEvaluatorImage": self.image_uri,
        }
        if self.instance_type is not None:
            request["InstanceType"] = self.instance_type
        if self.volume_size_in_gb is not None:
            request["VolumeSizeInGB"] = self.volume_size_in_gb
        if self.container_local_output_path is not None:
            request["LocalPath"] = self.container_local_output_path
        if self.s3_output_path is not None:
            request["S3OutputPath"] = self.s3_output_path
        if self.rule_parameters:
            request["RuleParameters"] = self.rule_parameters
        return request


class Rule(_RuleBase):
    """디버거 규칙. ``Rule.sagemaker`` (내장) 또는 ``Rule.custom`` (사용자 이미지)으로 생성

    Example:
        rule = Rule.sagemaker("LossNotDecreasing", rule_parameters={"tensor_regex": ".*loss.*"})
        estimator = Estimator(..., rules=[rule])
    """

    def __init__(
        self,
        name: str,
        image_uri: str,
        instance_type: str | None,
        container_local_output_path: str | None,
        s3_output_path: str | None,
        volume_size_in_gb: int | None,
        rule_parameters: dict[str, str] | None,
        collections_to_save: list[CollectionConfig] | None,
    ):
        super().__init__(
            name,
            image_uri,
            instance_type,
            container_local_output_path,
            s3_output_path,
            volume_size_in_gb,
            rule_parameters,
        )
        self.collection_configs = collections_to_save or []

    @classmethod
    def sagemaker(
        cls,
        base_config: str,
        name: str | None = None,
        container_local_output_path: str | None = None,
        s3_output_path: str | None = None,
        other_trials_s3_input_paths: list[str] | None = None,
        rule_parameters: dict[str, str] | None = None,
        collections_to_save: list[CollectionConfig] | None = None,
    ) -> Rule:
        """내장 규칙 (이미지 URI는 학습 작업 리전에 맞춰 나중에 채움)"""
        merged_rule_params: dict[str, str] = {"rule_to_invoke": base_config}
        if other_trials_s3_input_paths is not None:
            for index, s3_input_path in enumerate(other_trials_s3_input_paths):
                merged_rule_params[f"other_trial_{index}"] = s3_input_path
        merged_rule_params.update(rule_parameters or {})

        return cls(
            name=name or base_config,
            image_uri="DEFAULT_RULE_EVALUATOR_IMAGE",
            instance_type=None,
            container_local_output_path=container_local_output_path,
            s3_output_path=s3_output_path,
            volume_size_in_gb=None,
            rule_parameters=merged_rule_params,
            collections_to_save=collections_to_save,
        )

    @classmethod
    def custom(
        cls,
        name: str,
        image_uri: str,
        instance_type: str,
        volume_size_in_gb: int,
        source: str | None = None,
        rule_to_invoke: str | None = None,
        container_local_output_path: str | None = None,
        s3_output_path: str | None = None,
        other_trials_s3_input_paths: list[str] | None = None,
        rule_parameters: dict[str, str] | None = None,
        collections_to_save: list[CollectionConfig] | None = None,
    ) -> Rule:
        """사용자 정의 규칙 이미지"""
        merged_rule_params = cls._set_rule_parameters(source, rule_to_invoke, rule_parameters)
        if other_trials_s3_input_paths is not None:
            for index, s3_input_path in enumerate(other_trials_s3_input_paths):
                merged_rule_params[f"other_trial_{index}"] = s3_input_path

        return cls(
            name=name,
            image_uri=image_uri,
            instance_type=instance_type,
            container_local_output_path=container_local_output_path,
            s3_output_path=s3_output_path,
            volume_size_in_gb=volume_size_in_gb,
            rule_parameters=merged_rule_params,
            collections_to_save=collections_to_save,
        )

    def prepare_actions(self, region: str) -> None:
        """기본 이미지 플레이스홀더를 리전 규칙 이미지로 교체"""
        if self.image_uri == "DEFAULT_RULE_EVALUATOR_IMAGE":
            self.image_uri = get_rule_container_image_uri(region)
            self.instance_type = DEFAULT_RULE_INSTANCE_TYPE
            self.volume_size_in_gb = DEFAULT_RULE_VOLUME_SIZE_IN_GB


class ProfilerRule(_RuleBase):
    """프로파일러 규칙 (``ProfilerReport`` 등)"""

    @classmethod
    def sagemaker(cls, base_config: str, name: str | None = None, rule_parameters: dict[str, str] | None = None) -> ProfilerRule:
        return cls(
            name=name or base_config,
            image_uri="DEFAULT_RULE_EVALUATOR_IMAGE",
            instance_type=None,
            container_local_output_path=None,
            s3_output_path=None,
            volume_size_in_gb=None,
            rule_parameters={"rule_to_invoke": base_config, **(rule_parameters or {})},
        )

    @classmethod
    def custom(
        cls,
        name: str,
        image_uri: str,
        instance_type: str,
        volume_size_in_gb: int,
        source: str | None = None,
        rule_to_invoke: str | None = None,
        rule_parameters: dict[str, str] | None = None,
    ) -> ProfilerRule:
        return cls(
            name=name,
            image_uri=image_uri,
            instance_type=instance_type,
            container_local_output_path=None,
            s3_output_path=None,
            volume_size_in_gb=volume_size_in_gb,
            rule_parameters=cls._set_rule_parameters(source, rule_to_invoke, rule_parameters),
        )

    def prepare_actions(self, region: str) -> None:
        if self.image_uri == "DEFAULT_RULE_EVALUATOR_IMAGE":
            self.image_uri = get_rule_container_image_uri(region)
            self.instance_type = DEFAULT_RULE_INSTANCE_TYPE
            self.volume_size_in_gb = DEFAULT_RULE_VOLUME_SIZE_IN_GB


class ProfilerConfig:
    """시스템 모니터링 주기와 프로파일 출력 위치"""

    def __init__(
        self,
        s3_output_path: str | None = None,
        system_monitor_interval_millis: int | None = None,
        disable_profiler: bool = False,
    ):
        if system_monitor_interval_millis is not None and system_monitor_interval_millis not in VALID_PROFILING_INTERVALS:
            raise ValidationError(
                "system_monitor_interval_millis",
                system_monitor_interval_millis,
                ", ".join(str(v) for v in VALID_PROFILING_INTERVALS),
            )
        self.s3_output_path = s3_output_path
        self.system_monitor_interval_millis = system_monitor_interval_millis
        self.disable_profiler = disable_profiler

    def _to_request_dict(self) -> dict[str, Any]:
        profiler_config_request: dict[str, Any] = {}

        if self.s3_output_path is not None:
            profiler_config_request["S3OutputPath"] = self.s3_output_path
        if self.system_monitor_interval_millis is not None:
            profiler_config_request["ProfilingIntervalInMilliseconds"] = self.system_monitor_interval_millis
        profiler_config_request["DisableProfiler"] = self.disable_profiler

        return profiler_config_request
