"""core/config.py - SDK 설정 로드.

YAML 설정 파일을 읽어 ``SDKConfig`` 로 변환합니다.

설정 파일 선택 우선순위:
    1. 함수 파라미터 (path).
    2. 환경변수 (SMA_CONFIG).
    3. 사용자 홈 (~/.sagemaker-automation/config.yaml).
    4. 내장 기본값.

설정 파일 예시::

    region: ap-northeast-2
    role: SageMakerExecutionRole
    default_bucket: my-sagemaker-bucket
    default_bucket_prefix: team-a
    poll:
      job: 5
      endpoint: 30
      logs: 10
    log_level: INFO
    retry_attempts: 5
    tags:
      - Key: team
        Value: ml
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from core.exceptions import ConfigError

logger = logging.getLogger(__name__)

# 환경변수 키
ENV_CONFIG = "SMA_CONFIG"

DEFAULT_CONFIG_PATH = Path.home() / ".sagemaker-automation" / "config.yaml"

# 버전 파일 (프로젝트 루트)
VERSION_FILE = Path(__file__).resolve().parent.parent / "version.txt"


@dataclass
class SDKConfig:
    """SDK 전역 설정

    Attributes:
        region: 기본 리전 (None이면 boto3 기본 체인)
        role: 기본 실행 역할 이름 또는 ARN
        default_bucket: 기본 S3 버킷 (None이면 sagemaker-{region}-{account})
        default_bucket_prefix: 기본 버킷 아래 키 prefix
        job_poll: 작업 상태 폴링 간격 (초)
        endpoint_poll: 엔드포인트 상태 폴링 간격 (초)
        logs_poll: CloudWatch 로그 폴링 간격 (초)
        log_level: smsdk 로거 레벨
        retry_attempts: boto3 client 최대 시도 횟수
        tags: 모든 생성 요청에 추가되는 기본 태그
    """

    region: str | None = None
    role: str | None = None
    default_bucket: str | None = None
    default_bucket_prefix: str | None = None
    job_poll: int = 5
    endpoint_poll: int = 30
    logs_poll: int = 10
    log_level: str = "WARNING"
    retry_attempts: int = 5
    tags: list[dict[str, str]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SDKConfig:
        """설정 딕셔너리로부터 생성

        Args:
            data: yaml.safe_load 결과

        Returns:
            SDKConfig 인스턴스

        Raises:
            ConfigError: 값의 타입이 잘못된 경우
        """
        poll = data.get("poll") or {}
        if not isinstance(poll, dict):
            raise ConfigError("poll", "매핑이어야 합니다")

        tags = data.get("tags") or []
        if not isinstance(tags, list) or not all(isinstance(t, dict) and "Key" in t for t in tags):
            raise ConfigError("tags", "[{Key, Value}, ...] 형식이어야 합니다")

        try:
            return cls(
                region=data.get("region"),
                role=data.get("role"),
                default_bucket=data.get("default_bucket"),
                default_bucket_prefix=data.get("default_bucket_prefix"),
                job_poll=int(poll.get("job", 5)),
                endpoint_poll=int(poll.get("endpoint", 30)),
                logs_poll=int(poll.get("logs", 10)),
                log_level=str(data.get("log_level", "WARNING")).upper(),
                retry_attempts=int(data.get("retry_attempts", 5)),
                tags=tags,
            )
        except (TypeError, ValueError) as e:
            raise ConfigError("poll", "정수 값이어야 합니다", cause=e) from e


def resolve_config_path(path: str | None = None) -> Path | None:
    """설정 파일 경로 결정 (우선순위 적용)

    Args:
        path: 명시적 설정 파일 경로 (최우선)

    Returns:
        존재하는 설정 파일 경로, 없으면 None

    Raises:
        ConfigError: 명시적으로 지정한 경로가 존재하지 않는 경우
    """
    explicit = path or os.environ.get(ENV_CONFIG)
    if explicit:
        candidate = Path(explicit).expanduser()
        if not candidate.exists():
            raise ConfigError(ENV_CONFIG, f"설정 파일이 없습니다: {candidate}")
        return candidate

    if DEFAULT_CONFIG_PATH.exists():
        return DEFAULT_CONFIG_PATH
    return None


def _load_config_internal(path: Path | None) -> SDKConfig:
    """내부 설정 로드 함수 (캐시 없음)"""
    if path is None:
        return SDKConfig()

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(str(path), "YAML 파싱 실패", cause=e) from e

    if not isinstance(data, dict):
        raise ConfigError(str(path), "최상위는 매핑이어야 합니다")

    logger.debug(f"설정 로드: {path}")
    return SDKConfig.from_dict(data)


@lru_cache(maxsize=8)
def load_config(path: str | None = None) -> SDKConfig:
    """설정 파일 로드

    Args:
        path: 설정 파일 경로 (None이면 환경변수 → 홈 디렉토리 → 기본값 순서)

    Returns:
        SDKConfig
    """
    return _load_config_internal(resolve_config_path(path))


def get_config_value(key_path: str, config: dict[str, Any] | None) -> Any:
    """점(.)으로 구분된 경로로 중첩 딕셔너리 값 조회

    Args:
        key_path: 예) "local.region_name"
        config: 조회 대상 딕셔너리

    Returns:
        값, 경로가 없으면 None
    """
    if config is None:
        return None

    current: Any = config
    for key in key_path.split("."):
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return None
    return current


def get_version() -> str:
    """version.txt 파일에서 버전 문자열 반환"""
    try:
        return VERSION_FILE.read_text(encoding="utf-8").strip()
    except OSError:
        return "0.0.0"
