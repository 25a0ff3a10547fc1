"""
smsdk/vpc_utils.py - VpcConfig 요청 구조 변환/검증
"""

from __future__ import annotations

from typing import Any

from core.exceptions import ValidationError

SUBNETS_KEY = "Subnets"
SECURITY_GROUP_IDS_KEY = "SecurityGroupIds"
VPC_CONFIG_KEY = "VpcConfig"

# "명시하지 않음"과 "VPC 해제(None)"를 구분하기 위한 sentinel
VPC_CONFIG_DEFAULT = "VPC_CONFIG_DEFAULT"


def to_dict(subnets: list[str] | None, security_group_ids: list[str] | None) -> dict[str, Any] | None:
    """서브넷/보안그룹 목록을 VpcConfig 딕셔너리로 변환

    둘 중 하나라도 비어 있으면 None을 반환합니다.
    """
    if subnets is None or security_group_ids is None:
        return None
    return {SUBNETS_KEY: subnets, SECURITY_GROUP_IDS_KEY: security_group_ids}


def from_dict(
    vpc_config: dict[str, Any] | None, do_sanitize: bool = False
) -> tuple[list[str] | None, list[str] | None]:
    """VpcConfig 딕셔너리를 (subnets, security_group_ids)로 분해"""
    if do_sanitize:
        vpc_config = sanitize(vpc_config)
    if vpc_config is None:
        return None, None
    return vpc_config[SUBNETS_KEY], vpc_config[SECURITY_GROUP_IDS_KEY]


def sanitize(vpc_config: dict[str, Any] | None) -> dict[str, Any] | None:
    """VpcConfig 구조를 검증하고 알려진 키만 남긴 사본 반환

    Raises:
        ValidationError: 타입이 잘못되었거나 필수 키가 비어 있는 경우
    """
    if vpc_config is None:
        return vpc_config
    if not isinstance(vpc_config, dict):
        raise ValidationError("vpc_config", vpc_config, "dict")
    if not vpc_config:
        raise ValidationError("vpc_config", vpc_config, "비어있지 않은 dict")

    subnets = vpc_config.get(SUBNETS_KEY)
    if subnets is None:
        raise ValidationError(SUBNETS_KEY, None, "서브넷 목록")
    if not isinstance(subnets, list):
        raise ValidationError(SUBNETS_KEY, subnets, "list")
    if not subnets:
        raise ValidationError(SUBNETS_KEY, subnets, "비어있지 않은 list")

    security_group_ids = vpc_config.get(SECURITY_GROUP_IDS_KEY)
    if security_group_ids is None:
        raise ValidationError(SECURITY_GROUP_IDS_KEY, None, "보안 그룹 목록")
    if not isinstance(security_group_ids, list):
        raise ValidationError(SECURITY_GROUP_IDS_KEY, security_group_ids, "list")
    if not security_group_ids:
        raise ValidationError(SECURITY_GROUP_IDS_KEY, security_group_ids, "비어있지 않은 list")

    return to_dict(subnets, security_group_ids)
