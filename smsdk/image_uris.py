"""
smsdk/image_uris.py - SageMaker 관리형 컨테이너 이미지 URI 조회

프레임워크/알고리즘별 JSON 설정(``image_uri_config/*.json``)에서
리전별 ECR 레지스트리 계정과 저장소 이름을 찾아 이미지 URI를 조립합니다.

URI 형식:
    {account}.dkr.ecr.{region}.{hostname}/{repository}:{tag}

리전 범위:
    번들된 설정은 주요 상용 리전(us-east-1/2, us-west-2, eu-west-1, eu-central-1,
    ap-northeast-1/2)의 레지스트리 계정만 담고 있습니다 (PyTorch는 cn-north-1 포함).
    그 밖의 리전은 retrieve()가 ValidationError를 발생시키므로,
    해당 리전에서는 image_uri를 직접 지정하거나 JSON 설정에 레지스트리를 추가해야 합니다.

Usage:
    from smsdk import image_uris

    uri = image_uris.retrieve("xgboost", region="ap-northeast-2", version="1.7-1")
    uri = image_uris.retrieve(
        "pytorch", region="us-east-1", version="2.0", py_version="py310",
        instance_type="ml.p3.2xlarge", image_scope="training",
    )
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any

from core.client import get_client
from core.exceptions import ValidationError

logger = logging.getLogger(__name__)

ECR_URI_TEMPLATE = "{registry}.dkr.{hostname}/{repository}"

CONFIG_DIR = Path(__file__).parent / "image_uri_config"

# 리전 접두사별 ECR 도메인
_DOMAIN_BY_PARTITION = {
    "cn-": "amazonaws.com.cn",
    "us-iso-": "c2s.ic.gov",
    "us-isob-": "sc2s.sgov.gov",
}
_DEFAULT_DOMAIN = "amazonaws.com"

# 푸시 시각이 없는 이미지의 정렬 키 (boto3는 tz-aware datetime 반환)
_NEVER_PUSHED = datetime.min.replace(tzinfo=timezone.utc)


@lru_cache(maxsize=32)
def config_for_framework(framework: str) -> dict[str, Any]:
    """프레임워크 JSON 설정 로드

    Raises:
        ValidationError: 지원하지 않는 프레임워크
    """
    path = CONFIG_DIR / f"{framework}.json"
    if not path.exists():
        raise ValidationError("framework", framework, ", ".join(list_frameworks()))
    with path.open(encoding="utf-8") as f:
        return json.load(f)


def list_frameworks() -> list[str]:
    """설정이 존재하는 프레임워크/알고리즘 이름 목록"""
    return sorted(p.stem for p in CONFIG_DIR.glob("*.json"))


def retrieve(
    framework: str,
    region: str | None = None,
    version: str | None = None,
    py_version: str | None = None,
    instance_type: str | None = None,
    accelerator_type: str | None = None,
    image_scope: str | None = None,
    base_framework_version: str | None = None,
    sagemaker_session=None,
) -> str:
    """조건에 맞는 SageMaker 이미지의 ECR URI 반환

    Args:
        framework: 프레임워크 또는 알고리즘 이름 (예: "xgboost", "pytorch", "kmeans")
        region: 리전 (None이면 sagemaker_session의 리전)
        version: 프레임워크 버전. 버전이 하나뿐이면 생략 가능
        py_version: 파이썬 버전. 하나뿐이면 생략 가능
        instance_type: 인스턴스 타입. cpu/gpu 이미지를 구분할 때 필요
        accelerator_type: Elastic Inference 가속기 (지정 시 "eia" scope)
        image_scope: "training", "inference", "eia" 등 이미지 용도
        base_framework_version: HuggingFace 이미지의 기반 프레임워크 (예: "pytorch1.13.1")
        sagemaker_session: region 미지정 시 리전을 얻을 Session

    Returns:
        이미지 URI

    Raises:
        ValidationError: 프레임워크/버전/리전/프로세서 조합이 지원되지 않는 경우
    """
    config = _config_for_framework_and_scope(framework, image_scope, accelerator_type)

    version = _validate_version_and_set_if_needed(version, config, framework)
    full_version = _version_for_config(version, config)
    version_config = config["versions"][full_version]
    tag_prefix = version_config.get("tag_prefix", full_version)

    if base_framework_version is not None:
        base_key = _version_for_config(base_framework_version, version_config)
        if base_key not in version_config:
            raise ValidationError(
                f"{framework} base_framework_version",
                base_framework_version,
                ", ".join(_base_framework_versions(version_config)),
            )
        version_config = version_config[base_key]
        # pytorch1.13.1 -> 1.13.1-transformers4.26.0
        base_version = re.sub(r"^[a-z]+", "", base_key)
        tag_prefix = f"{base_version}-transformers{full_version}"

    py_version = _validate_py_version_and_set_if_needed(py_version, version_config, framework)
    version_config = version_config.get(py_version) or version_config

    if region is None:
        if sagemaker_session is None:
            raise ValidationError("region", None, "리전 또는 sagemaker_session")
        region = sagemaker_session.boto_region_name

    registry = _registry_from_region(region, version_config["registries"])
    hostname = _hostname(region)

    repo = version_config["repository"]

    processor = _processor(instance_type, config.get("processors") or version_config.get("processors"))

    container_version = version_config.get("container_version", {}).get(processor)
    tag = _format_tag(tag_prefix, processor, py_version, container_version)

    if tag:
        repo = f"{repo}:{tag}"

    uri = ECR_URI_TEMPLATE.format(registry=registry, hostname=hostname, repository=repo)
    logger.debug(f"이미지 URI 조회: {framework} {version} -> {uri}")
    return uri


def get_training_image_uri(region: str, framework: str, framework_version: str, py_version: str | None, instance_type: str) -> str:
    """프레임워크 학습 이미지 URI (Framework 추정기용 단축 함수)"""
    return retrieve(
        framework,
        region=region,
        version=framework_version,
        py_version=py_version,
        instance_type=instance_type,
        image_scope="training",
    )


def _config_for_framework_and_scope(framework: str, image_scope: str | None, accelerator_type: str | None) -> dict[str, Any]:
    """프레임워크 설정에서 image_scope에 해당하는 부분 반환"""
    config = config_for_framework(framework)

    if accelerator_type:
        _validate_accelerator_type(accelerator_type)
        if image_scope not in ("eia", "inference"):
            logger.warning("Elastic Inference 가속기가 지정되어 image_scope를 'eia'로 변경합니다")
        image_scope = "eia"

    available_scopes = config.get("scope", list(config.keys()))

    if len(available_scopes) == 1:
        if image_scope and image_scope != available_scopes[0]:
            logger.warning(f"{framework}는 '{available_scopes[0]}' 이미지만 제공하여 image_scope '{image_scope}'를 무시합니다")
        image_scope = available_scopes[0]

    if image_scope is None and set(available_scopes) == {"training", "inference"}:
        logger.info("training/inference 이미지가 동일하여 image_scope 없이 진행합니다")
        image_scope = available_scopes[0]

    if image_scope not in available_scopes:
        raise ValidationError("image_scope", image_scope, ", ".join(available_scopes))

    return config if "scope" in config else config[image_scope]


def _validate_accelerator_type(accelerator_type: str) -> None:
    if not accelerator_type.startswith("ml.eia") and accelerator_type != "local_sagemaker_notebook":
        raise ValidationError("accelerator_type", accelerator_type, "ml.eia*")


def _validate_version_and_set_if_needed(version: str | None, config: dict[str, Any], framework: str) -> str:
    """버전 검증. 지원 버전이 하나뿐이면 기본값으로 사용"""
    available_versions = list(config["versions"].keys())
    aliased_versions = list(config.get("version_aliases", {}).keys())

    if len(available_versions) == 1 and version not in aliased_versions:
        if version and version != available_versions[0]:
            logger.warning(f"{framework}는 버전 {available_versions[0]}만 지원하여 버전 {version}을 무시합니다")
        return available_versions[0]

    if version is None:
        raise ValidationError(f"{framework} version", None, ", ".join(available_versions + aliased_versions))

    if version not in available_versions + aliased_versions:
        raise ValidationError(f"{framework} version", version, ", ".join(available_versions + aliased_versions))

    return version


def _version_for_config(version: str, config: dict[str, Any]) -> str:
    """별칭(alias) 버전을 실제 설정 키로 변환"""
    if version in config.get("version_aliases", {}):
        return config["version_aliases"][version]
    return version


def _validate_py_version_and_set_if_needed(py_version: str | None, version_config: dict[str, Any], framework: str) -> str | None:
    """파이썬 버전 검증. 하나뿐이면 기본값으로 사용"""
    available_versions = version_config.get("py_versions", list(version_config.keys()))

    if "repository" in available_versions:
        # py_version별 하위 설정이 없는 경우
        if py_version:
            logger.info(f"{framework} 이미지는 파이썬 버전 구분이 없어 py_version을 무시합니다")
        return None

    if py_version is None and len(available_versions) == 1:
        logger.info(f"py_version 기본값 사용: {available_versions[0]}")
        return available_versions[0]

    if py_version not in available_versions:
        raise ValidationError(f"{framework} py_version", py_version, ", ".join(available_versions))

    return py_version


def _registry_from_region(region: str, registry_dict: dict[str, str]) -> str:
    """리전의 ECR 레지스트리 계정 ID"""
    if region not in registry_dict:
        raise ValidationError("region", region, ", ".join(sorted(registry_dict.keys())))
    return registry_dict[region]


def _hostname(region: str) -> str:
    """리전 파티션에 맞는 ``ecr.{region}.{domain}`` 호스트명"""
    domain = _DEFAULT_DOMAIN
    for prefix, partition_domain in _DOMAIN_BY_PARTITION.items():
        if region.startswith(prefix):
            domain = partition_domain
            break
    return f"ecr.{region}.{domain}"


def _processor(instance_type: str | None, available_processors: list[str] | None) -> str | None:
    """인스턴스 타입으로부터 프로세서(cpu/gpu/inf) 결정"""
    if not available_processors:
        logger.debug("프로세서 구분이 없는 이미지")
        return None

    if instance_type is None:
        if len(available_processors) == 1:
            return available_processors[0]
        raise ValidationError("instance_type", None, "cpu/gpu 이미지를 고르기 위한 인스턴스 타입")

    if instance_type.startswith("local"):
        processor = "cpu" if instance_type == "local" else "gpu"
    elif instance_type.startswith("neuron") or instance_type.startswith(("ml.inf", "ml_inf")):
        processor = "inf"
    else:
        # ml.c5.xlarge -> c5, ml.p3.2xlarge -> p3, Neo 대상 패밀리 ml_c5 -> c5
        match = re.match(r"^ml[._]([a-z]+)\d", instance_type)
        if not match:
            raise ValidationError("instance_type", instance_type, "ml.<family>.<size> 또는 local/local_gpu")
        family = match.group(1)
        processor = "gpu" if family in ("p", "g") else "cpu"

    if processor not in available_processors:
        raise ValidationError("processor", processor, ", ".join(available_processors))
    return processor


def _format_tag(
    tag_prefix: str | None, processor: str | None, py_version: str | None, container_version: str | None = None
) -> str:
    """``{version}-{processor}-{py_version}[-{container_version}]`` 형식 태그 (빈 조각 제외)"""
    return "-".join(x for x in (tag_prefix, processor, py_version, container_version) if x)


def _base_framework_versions(version_config: dict[str, Any]) -> list[str]:
    return [k for k in version_config if k != "version_aliases"]


# =============================================================================
# 사용자 ECR 저장소
# =============================================================================


def list_ecr_uris(sagemaker_session) -> list[dict[str, Any]]:
    """계정의 ECR 저장소 목록 (repositoryName, repositoryUri, registryId)"""
    ecr = get_client(sagemaker_session.boto_session, "ecr", region_name=sagemaker_session.boto_region_name)
    repositories: list[dict[str, Any]] = []
    paginator = ecr.get_paginator("describe_repositories")
    for page in paginator.paginate():
        repositories.extend(page.get("repositories", []))
    return repositories


def ecr_tags(repo_name: str, sagemaker_session) -> list[dict[str, Any]]:
    """저장소 이미지 태그 목록 (최근 푸시 순)

    Raises:
        ValidationError: 저장소가 존재하지 않는 경우
    """
    repos = [r for r in list_ecr_uris(sagemaker_session) if r["repositoryName"] == repo_name]
    if not repos:
        raise ValidationError("repo_name", repo_name, "ECR에 존재하는 저장소")

    ecr = get_client(sagemaker_session.boto_session, "ecr", region_name=sagemaker_session.boto_region_name)
    images: list[dict[str, Any]] = []
    paginator = ecr.get_paginator("describe_images")
    for page in paginator.paginate(registryId=repos[0]["registryId"], repositoryName=repo_name):
        for detail in page.get("imageDetails", []):
            for tag in detail.get("imageTags", []):
                images.append({"repositoryName": repo_name, "imageTag": tag, "imagePushedAt": detail.get("imagePushedAt")})

    images.sort(key=lambda x: x["imagePushedAt"] or _NEVER_PUSHED, reverse=True)
    return images


def retrieve_ecr_uri(repo_name: str, tag: str | None = None, sagemaker_session=None) -> str:
    """사용자 ECR 저장소 이미지 URI. tag가 없으면 가장 최근 태그 사용

    Raises:
        ValidationError: 저장소 또는 태그가 존재하지 않는 경우
    """
    repos = {r["repositoryName"]: r for r in list_ecr_uris(sagemaker_session)}
    images = ecr_tags(repo_name, sagemaker_session)

    if tag is not None and not any(i["imageTag"] == tag for i in images):
        raise ValidationError("tag", tag, f"{repo_name} 저장소에 존재하는 태그")

    if tag is None:
        if not images:
            raise ValidationError("tag", None, f"{repo_name} 저장소에 푸시된 이미지")
        tag = images[0]["imageTag"]
        logger.info(f"최신 태그 사용: {repo_name}:{tag}")

    return f"{repos[repo_name]['repositoryUri']}:{tag}"
