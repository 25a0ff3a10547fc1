"""
smsdk/model.py - SageMaker 모델 배포 단위

Model은 이미지 URI와 모델 아티팩트(model.tar.gz)를 묶어 CreateModel 요청을 만들고,
엔드포인트 배포(deploy), 배치 변환(transformer), Neo 컴파일(compile)을 제공합니다.

FrameworkModel은 추론 스크립트(entry_point)를 업로드하고
``SAGEMAKER_PROGRAM`` 등 스크립트 모드 환경 변수를 컨테이너에 설정합니다.

ModelPackage는 모델 레지스트리/마켓플레이스 모델 패키지로 모델을 만들고,
Model.register()는 모델을 모델 패키지로 등록합니다.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from core.exceptions import ValidationError
from smsdk import fw_utils, image_uris
from smsdk.predictor import Predictor
from smsdk.s3 import parse_s3_url
from smsdk.session import Session, container_def, production_variant
from smsdk.transformer import Transformer
from smsdk.utils import base_from_name, base_name_from_image, get_short_version, name_from_base

logger = logging.getLogger(__name__)

# 스크립트 모드 하이퍼파라미터/환경 변수 이름
SCRIPT_PARAM_NAME = "sagemaker_program"
DIR_PARAM_NAME = "sagemaker_submit_directory"
CONTAINER_LOG_LEVEL_PARAM_NAME = "sagemaker_container_log_level"
JOB_NAME_PARAM_NAME = "sagemaker_job_name"
MODEL_SERVER_WORKERS_PARAM_NAME = "sagemaker_model_server_workers"
SAGEMAKER_REGION_PARAM_NAME = "sagemaker_region"
SAGEMAKER_OUTPUT_LOCATION = "sagemaker_s3_output"

NEO_ALLOWED_FRAMEWORKS = {"mxnet", "tensorflow", "keras", "pytorch", "onnx", "xgboost", "tflite"}

# Neo 컴파일 기본 최대 실행 시간 (초)
DEFAULT_COMPILE_MAX_RUN = 15 * 60


class Model:
    """배포 가능한 SageMaker 모델

    Attributes:
        image_uri: 추론 컨테이너 이미지
        model_data: 모델 아티팩트 S3 URI
        role: 실행 역할 이름 또는 ARN
        name: 모델 이름 (배포 시 자동 생성)
        endpoint_name: 마지막 배포 엔드포인트 이름
    """

    def __init__(
        self,
        image_uri: str,
        model_data: str | None = None,
        role: str | None = None,
        predictor_cls: type | None = None,
        env: dict[str, str] | None = None,
        name: str | None = None,
        vpc_config: dict[str, Any] | None = None,
        sagemaker_session: Session | None = None,
        enable_network_isolation: bool = False,
        model_kms_key: str | None = None,
    ):
        self.image_uri = image_uri
        self.model_data = model_data
        self.role = role
        self.predictor_cls = predictor_cls
        self.env = env or {}
        self.name = name
        self._base_name: str | None = None
        self.vpc_config = vpc_config
        self.sagemaker_session = sagemaker_session
        self.endpoint_name: str | None = None
        self._is_compiled_model = False
        self._compilation_job_name: str | None = None
        self._enable_network_isolation = enable_network_isolation
        self.model_kms_key = model_kms_key

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, image_uri={self.image_uri!r})"

    def _init_sagemaker_session_if_does_not_exist(self) -> None:
        if self.sagemaker_session:
            return
        self.sagemaker_session = Session()

    def prepare_container_def(self, instance_type: str | None = None, accelerator_type: str | None = None) -> dict[str, Any]:
        """CreateModel 컨테이너 정의 (하위 클래스에서 이미지/환경 변수 보강)"""
        return container_def(self.image_uri, self.model_data, self.env)

    def enable_network_isolation(self) -> bool:
        return self._enable_network_isolation

    def _ensure_base_name_if_needed(self, image_uri: str) -> None:
        if self._base_name is None:
            self._base_name = base_name_from_image(image_uri)

    def _set_model_name_if_needed(self) -> None:
        if self.name is None:
            self.name = name_from_base(self._base_name)

    def _create_sagemaker_model(
        self,
        instance_type: str | None = None,
        accelerator_type: str | None = None,
        tags: list[dict[str, str]] | None = None,
    ) -> None:
        """CreateModel 호출 (이름이 없으면 이미지 기반으로 생성)"""
        self._init_sagemaker_session_if_does_not_exist()
        c_def = self.prepare_container_def(instance_type, accelerator_type=accelerator_type)

        self._ensure_base_name_if_needed(c_def["Image"])
        self._set_model_name_if_needed()

        self.sagemaker_session.create_model(
            self.name,
            self.role,
            c_def,
            vpc_config=self.vpc_config,
            enable_network_isolation=self.enable_network_isolation(),
            tags=tags,
        )

    def _framework(self) -> str | None:
        return getattr(self, "_framework_name", None)

    def _get_framework_version(self) -> str | None:
        return getattr(self, "framework_version", None)

    def _compilation_job_config(
        self,
        target_instance_type: str | None,
        input_shape: dict[str, Any] | str,
        output_path: str,
        role: str,
        compile_max_run: int,
        job_name: str,
        framework: str,
        tags: list[dict[str, str]] | None,
        target_platform_os: str | None = None,
        target_platform_arch: str | None = None,
        target_platform_accelerator: str | None = None,
        compiler_options: dict[str, Any] | str | None = None,
        framework_version: str | None = None,
    ) -> dict[str, Any]:
        input_model_config: dict[str, Any] = {
            "S3Uri": self.model_data,
            "DataInputConfig": json.dumps(input_shape) if isinstance(input_shape, dict) else input_shape,
            "Framework": framework.upper(),
        }
        if framework_version and framework in ("pytorch", "tensorflow", "mxnet"):
            input_model_config["FrameworkVersion"] = get_short_version(framework_version)

        output_model_config: dict[str, Any] = {"S3OutputLocation": output_path}
        if target_instance_type is not None:
            output_model_config["TargetDevice"] = target_instance_type
        else:
            if target_platform_os is None or target_platform_arch is None:
                raise ValidationError(
                    "target_platform_os/target_platform_arch",
                    f"{target_platform_os}/{target_platform_arch}",
                    "target_instance_family가 없으면 둘 다 지정",
                )
            output_model_config["TargetPlatform"] = {"Os": target_platform_os, "Arch": target_platform_arch}
            if target_platform_accelerator is not None:
                output_model_config["TargetPlatform"]["Accelerator"] = target_platform_accelerator

        if compiler_options is not None:
            output_model_config["CompilerOptions"] = (
                json.dumps(compiler_options) if isinstance(compiler_options, dict) else compiler_options
            )

        return {
            "input_model_config": input_model_config,
            "output_model_config": output_model_config,
            "role": self.sagemaker_session.expand_role(role),
            "stop_condition": {"MaxRuntimeInSeconds": compile_max_run},
            "tags": tags,
            "job_name": job_name,
        }

    def _compilation_image_uri(
        self, region: str, target_instance_type: str, framework: str, framework_version: str | None
    ) -> str:
        framework_prefix = "inferentia-" if target_instance_type.startswith("ml_inf") else "neo-"
        return image_uris.retrieve(
            f"{framework_prefix}{framework}",
            region,
            instance_type=target_instance_type,
            version=framework_version,
        )

    def compile(
        self,
        target_instance_family: str | None,
        input_shape: dict[str, Any] | str,
        output_path: str,
        role: str,
        tags: list[dict[str, str]] | None = None,
        job_name: str | None = None,
        compile_max_run: int = DEFAULT_COMPILE_MAX_RUN,
        framework: str | None = None,
        framework_version: str | None = None,
        target_platform_os: str | None = None,
        target_platform_arch: str | None = None,
        target_platform_accelerator: str | None = None,
        compiler_options: dict[str, Any] | str | None = None,
    ) -> Model:
        """Neo 컴파일 작업을 실행하고 완료까지 대기

        컴파일이 끝나면 model_data가 컴파일 산출물로 바뀌고,
        ml_* 대상이면 image_uri도 Neo 추론 이미지로 바뀝니다.

        Raises:
            ValidationError: 프레임워크를 알 수 없거나 Neo가 지원하지 않는 경우
            UnexpectedStatusError: 컴파일 작업이 실패한 경우
        """
        framework = framework or self._framework()
        if framework is None:
            raise ValidationError("framework", None, ", ".join(sorted(NEO_ALLOWED_FRAMEWORKS)))
        if framework not in NEO_ALLOWED_FRAMEWORKS:
            raise ValidationError("framework", framework, ", ".join(sorted(NEO_ALLOWED_FRAMEWORKS)))
        framework_version = framework_version or self._get_framework_version()

        self._init_sagemaker_session_if_does_not_exist()
        job_name = job_name or name_from_base(f"compilation-{self._base_name or base_name_from_image(self.image_uri)}")

        config = self._compilation_job_config(
            target_instance_family,
            input_shape,
            output_path,
            role,
            compile_max_run,
            job_name,
            framework,
            tags,
            target_platform_os,
            target_platform_arch,
            target_platform_accelerator,
            compiler_options,
            framework_version,
        )
        self.sagemaker_session.compile_model(**config)
        job_status = self.sagemaker_session.wait_for_compilation_job(job_name)
        self.model_data = job_status["ModelArtifacts"]["S3ModelArtifacts"]

        if target_instance_family is not None:
            if target_instance_family.startswith("ml_"):
                self.image_uri = self._compilation_image_uri(
                    self.sagemaker_session.boto_region_name,
                    target_instance_family,
                    framework,
                    framework_version,
                )
                self._is_compiled_model = True
            else:
                logger.warning(
                    f"{target_instance_family}은 SageMaker 호스팅 대상이 아니므로 이 모델은 엔드포인트로 배포할 수 없습니다"
                )
        self._compilation_job_name = job_name
        return self

    def deploy(
        self,
        initial_instance_count: int,
        instance_type: str,
        serializer=None,
        deserializer=None,
        accelerator_type: str | None = None,
        endpoint_name: str | None = None,
        tags: list[dict[str, str]] | None = None,
        kms_key: str | None = None,
        wait: bool = True,
        data_capture_config=None,
    ) -> Predictor:
        """모델을 실시간 엔드포인트로 배포

        CreateModel, CreateEndpointConfig, CreateEndpoint를 차례로 호출합니다.

        Returns:
            predictor_cls (없으면 Predictor) 인스턴스

        Raises:
            ValidationError: role이 없거나 로컬 인스턴스 타입을 지정한 경우
        """
        self._init_sagemaker_session_if_does_not_exist()

        if self.role is None:
            raise ValidationError("role", None, "모델 배포에 사용할 IAM 역할")
        if instance_type.startswith("local"):
            raise ValidationError("instance_type", instance_type, "ml.* 인스턴스 타입 (로컬 모드 미지원)")

        compiled_model_suffix = "-".join(instance_type.split(".")[:-1])
        if self._is_compiled_model:
            self._ensure_base_name_if_needed(self.image_uri)
            if self._base_name is not None:
                self._base_name = "-".join((self._base_name, compiled_model_suffix))

        self._create_sagemaker_model(instance_type, accelerator_type, tags)

        variant = production_variant(
            self.name, instance_type, initial_instance_count, accelerator_type=accelerator_type
        )

        if endpoint_name:
            self.endpoint_name = endpoint_name
        else:
            base_endpoint_name = self._base_name or base_from_name(self.name)
            if self._is_compiled_model and not base_endpoint_name.endswith(compiled_model_suffix):
                base_endpoint_name = "-".join((base_endpoint_name, compiled_model_suffix))
            self.endpoint_name = name_from_base(base_endpoint_name)

        data_capture_config_dict = None
        if data_capture_config is not None:
            data_capture_config_dict = data_capture_config._to_request_dict()

        self.sagemaker_session.endpoint_from_production_variants(
            name=self.endpoint_name,
            production_variants=[variant],
            tags=tags,
            kms_key=kms_key,
            wait=wait,
            data_capture_config_dict=data_capture_config_dict,
        )

        predictor_cls = self.predictor_cls or Predictor
        predictor = predictor_cls(self.endpoint_name, self.sagemaker_session)
        if serializer:
            predictor.serializer = serializer
        if deserializer:
            predictor.deserializer = deserializer
        return predictor

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
        volume_kms_key: str | None = None,
    ) -> Transformer:
        """모델을 생성하고 배치 변환용 Transformer 반환"""
        self._create_sagemaker_model(instance_type, tags=tags)
        if self.enable_network_isolation():
            env = None

        return Transformer(
            self.name,
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
            base_transform_job_name=self._base_name or self.name,
            volume_kms_key=volume_kms_key,
            sagemaker_session=self.sagemaker_session,
        )

    def delete_model(self) -> None:
        """SageMaker 모델 삭제

        Raises:
            ValidationError: 아직 생성되지 않은 모델인 경우
        """
        if self.name is None:
            raise ValidationError("name", None, "deploy() 또는 transformer()로 생성된 모델")
        self._init_sagemaker_session_if_does_not_exist()
        self.sagemaker_session.delete_model(self.name)

    def register(
        self,
        content_types: list[str],
        response_types: list[str],
        inference_instances: list[str] | None = None,
        transform_instances: list[str] | None = None,
        model_package_name: str | None = None,
        model_package_group_name: str | None = None,
        image_uri: str | None = None,
        model_metrics=None,
        metadata_properties: dict[str, Any] | None = None,
        marketplace_cert: bool = False,
        approval_status: str | None = None,
        description: str | None = None,
    ) -> ModelPackage:
        """모델을 모델 레지스트리에 모델 패키지로 등록

        Args:
            content_types: 지원 입력 MIME 타입
            response_types: 지원 출력 MIME 타입
            inference_instances: 실시간 추론 인스턴스 타입 (그룹 없이 등록 시 필수)
            transform_instances: 배치 변환 인스턴스 타입 (그룹 없이 등록 시 필수)
            model_package_name: 단독 모델 패키지 이름
            model_package_group_name: 버전을 추가할 모델 패키지 그룹
            image_uri: 추론 이미지 (기본: 모델 이미지)
            model_metrics: ModelMetrics
            approval_status: 기본 PendingManualApproval

        Returns:
            등록된 ModelPackage
        """
        self._init_sagemaker_session_if_does_not_exist()

        image_uri = image_uri or self.image_uri
        if image_uri is None:
            raise ValidationError("image_uri", None, "등록할 추론 이미지 URI")

        c_def = {"Image": image_uri}
        if self.model_data is not None:
            c_def["ModelDataUrl"] = self.model_data

        response = self.sagemaker_session.create_model_package_from_containers(
            containers=[c_def],
            content_types=content_types,
            response_types=response_types,
            inference_instances=inference_instances,
            transform_instances=transform_instances,
            model_package_name=model_package_name,
            model_package_group_name=model_package_group_name,
            model_metrics=model_metrics._to_request_dict() if model_metrics else None,
            metadata_properties=metadata_properties,
            marketplace_cert=marketplace_cert,
            approval_status=approval_status or "PendingManualApproval",
            description=description,
        )
        return ModelPackage(
            role=self.role,
            model_data=self.model_data,
            model_package_arn=response.get("ModelPackageArn"),
            sagemaker_session=self.sagemaker_session,
        )


class ModelPackage(Model):
    """모델 패키지(모델 레지스트리/마켓플레이스) 기반 모델

    model_package_arn으로 기존 패키지를 쓰거나, algorithm_arn과 model_data로
    배포 시 새 패키지를 만든 뒤 Completed까지 기다립니다.
    """

    def __init__(
        self,
        role: str | None,
        model_data: str | None = None,
        algorithm_arn: str | None = None,
        model_package_arn: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(None, model_data, role=role, **kwargs)

        if algorithm_arn and model_package_arn:
            raise ValidationError("algorithm_arn", algorithm_arn, "model_package_arn과 동시에 지정할 수 없음")
        if not algorithm_arn and not model_package_arn:
            raise ValidationError("model_package_arn", None, "algorithm_arn 또는 model_package_arn")
        if algorithm_arn and model_data is None:
            raise ValidationError("model_data", None, "algorithm_arn 사용 시 모델 아티팩트 S3 URI")

        self.algorithm_arn = algorithm_arn
        self.model_package_arn = model_package_arn
        self._created_model_package_name: str | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, model_package_arn={self.model_package_arn!r})"

    def _create_sagemaker_model_package(self) -> str:
        name = self.name or name_from_base(self.algorithm_arn.split("/")[-1])
        return self.sagemaker_session.create_model_package_from_algorithm(
            name, "", self.algorithm_arn, self.model_data
        )

    def _model_package_name(self) -> str:
        if self.model_package_arn is not None:
            return self.model_package_arn
        if self._created_model_package_name is None:
            name = self._create_sagemaker_model_package()
            self.sagemaker_session.wait_for_model_package(name)
            self._created_model_package_name = name
        return self._created_model_package_name

    def _is_marketplace(self) -> bool:
        model_package_name = self.model_package_arn or self._created_model_package_name
        if model_package_name is None:
            return True

        desc = self.sagemaker_session.describe_model_package(model_package_name)
        containers = desc.get("InferenceSpecification", {}).get("Containers", [])
        return any("ProductId" in container for container in containers)

    def enable_network_isolation(self) -> bool:
        # 마켓플레이스 패키지는 네트워크 격리 필수
        return self._is_marketplace()

    def prepare_container_def(self, instance_type: str | None = None, accelerator_type: str | None = None) -> dict[str, Any]:
        c_def: dict[str, Any] = {"ModelPackageName": self._model_package_name()}
        if self.env:
            c_def["Environment"] = self.env
        return c_def

    def _create_sagemaker_model(
        self,
        instance_type: str | None = None,
        accelerator_type: str | None = None,
        tags: list[dict[str, str]] | None = None,
    ) -> None:
        self._init_sagemaker_session_if_does_not_exist()
        c_def = self.prepare_container_def(instance_type, accelerator_type=accelerator_type)

        if self._base_name is None:
            # arn:...:model-package/<name>[/<version>] 또는 패키지 이름
            parts = c_def["ModelPackageName"].split("/")
            self._base_name = parts[1] if len(parts) > 1 else parts[0]
        self._set_model_name_if_needed()

        self.sagemaker_session.create_model(
            self.name,
            self.role,
            c_def,
            vpc_config=self.vpc_config,
            enable_network_isolation=self.enable_network_isolation(),
            tags=tags,
        )


class FrameworkModel(Model):
    """스크립트 모드 추론 모델

    entry_point(및 source_dir)를 ``sourcedir.tar.gz``로 업로드하고
    SAGEMAKER_PROGRAM, SAGEMAKER_SUBMIT_DIRECTORY, SAGEMAKER_CONTAINER_LOG_LEVEL,
    SAGEMAKER_REGION 환경 변수를 설정합니다.
    """

    def __init__(
        self,
        model_data: str,
        image_uri: str | None,
        role: str,
        entry_point: str,
        source_dir: str | None = None,
        predictor_cls: type | None = None,
        env: dict[str, str] | None = None,
        name: str | None = None,
        container_log_level: int = logging.INFO,
        code_location: str | None = None,
        sagemaker_session: Session | None = None,
        dependencies: list[str] | None = None,
        model_server_workers: int | None = None,
        **kwargs: Any,
    ):
        super().__init__(
            image_uri,
            model_data,
            role,
            predictor_cls=predictor_cls,
            env=env,
            name=name,
            sagemaker_session=sagemaker_session,
            **kwargs,
        )
        self.entry_point = entry_point
        self.source_dir = source_dir
        self.dependencies = dependencies or []
        self.container_log_level = container_log_level
        if code_location:
            self.bucket, self.key_prefix = parse_s3_url(code_location)
        else:
            self.bucket, self.key_prefix = None, None
        self.model_server_workers = model_server_workers
        self.uploaded_code: fw_utils.UploadedCode | None = None

    def serving_image_uri(self, region_name: str, instance_type: str | None, accelerator_type: str | None = None) -> str:
        """추론 이미지 URI (프레임워크별 하위 클래스에서 구현)"""
        raise ValidationError("image_uri", None, f"{type(self).__name__}에는 image_uri 지정 필요")

    def prepare_container_def(self, instance_type: str | None = None, accelerator_type: str | None = None) -> dict[str, Any]:
        self._init_sagemaker_session_if_does_not_exist()
        deploy_image = self.image_uri
        if not deploy_image:
            deploy_image = self.serving_image_uri(
                self.sagemaker_session.boto_region_name, instance_type, accelerator_type=accelerator_type
            )

        deploy_key_prefix = fw_utils.model_code_key_prefix(self.key_prefix, self.name, deploy_image)
        self._upload_code(deploy_key_prefix)
        deploy_env = dict(self.env)
        deploy_env.update(self._script_mode_env_vars())
        if self.model_server_workers:
            deploy_env[MODEL_SERVER_WORKERS_PARAM_NAME.upper()] = str(self.model_server_workers)
        return container_def(deploy_image, self.model_data, deploy_env)

    def register(
        self,
        content_types: list[str],
        response_types: list[str],
        inference_instances: list[str] | None = None,
        transform_instances: list[str] | None = None,
        image_uri: str | None = None,
        **kwargs: Any,
    ) -> ModelPackage:
        """모델 패키지로 등록 (이미지가 없으면 첫 추론 인스턴스 기준 추론 이미지 사용)"""
        if image_uri is None and self.image_uri is None:
            self._init_sagemaker_session_if_does_not_exist()
            instance_type = (inference_instances or transform_instances or [None])[0]
            image_uri = self.serving_image_uri(self.sagemaker_session.boto_region_name, instance_type)
        return super().register(
            content_types,
            response_types,
            inference_instances=inference_instances,
            transform_instances=transform_instances,
            image_uri=image_uri,
            **kwargs,
        )

    def _upload_code(self, key_prefix: str) -> None:
        self._init_sagemaker_session_if_does_not_exist()
        if self.entry_point is None:
            return

        if self.bucket is None:
            bucket = self.sagemaker_session.default_bucket()
            key_prefix = "/".join(filter(None, [self.sagemaker_session.default_bucket_prefix, key_prefix]))
        else:
            bucket = self.bucket

        self.uploaded_code = fw_utils.tar_and_upload_dir(
            session=self.sagemaker_session,
            bucket=bucket,
            s3_key_prefix=key_prefix,
            script=self.entry_point,
            directory=self.source_dir,
            dependencies=self.dependencies,
            kms_key=self.model_kms_key,
        )

    def _script_mode_env_vars(self) -> dict[str, str]:
        script_name = None
        dir_name = None
        if self.uploaded_code:
            script_name = self.uploaded_code.script_name
            dir_name = self.uploaded_code.s3_prefix
        elif self.entry_point is not None:
            script_name = self.entry_point
            if self.source_dir is not None and self.source_dir.lower().startswith("s3://"):
                dir_name = self.source_dir

        self._init_sagemaker_session_if_does_not_exist()
        return {
            SCRIPT_PARAM_NAME.upper(): script_name or "",
            DIR_PARAM_NAME.upper(): dir_name or "",
            CONTAINER_LOG_LEVEL_PARAM_NAME.upper(): str(self.container_log_level),
            SAGEMAKER_REGION_PARAM_NAME.upper(): self.sagemaker_session.boto_region_name,
        }
