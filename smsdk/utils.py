"""
smsdk/utils.py - 이름 생성, 타임스탬프, 압축 등 공용 유틸리티

SageMaker 리소스 이름은 최대 63자이며 영문/숫자/하이픈만 허용됩니다.
작업 이름은 ``{base}-{timestamp}`` 형식으로 생성합니다.
"""

from __future__ import annotations

import logging
import os
import random
import re
import tarfile
import tempfile
import time
from collections.abc import Iterator
from datetime import datetime
from typing import Any

from core.exceptions import SMError

logger = logging.getLogger(__name__)

# 리소스 이름 최대 길이
MAX_NAME_LENGTH = 63

_TIMESTAMP_SUFFIX = re.compile(r"^(.+)-\d{4}-\d{2}-\d{2}-\d{2}-\d{2}-\d{2}-\d{3}$")
_SHORT_TIMESTAMP_SUFFIX = re.compile(r"^(.+)-\d{6}-\d{4}$")


def sagemaker_timestamp() -> str:
    """밀리초까지 포함한 타임스탬프 (예: 2024-01-01-09-30-00-123)"""
    moment = time.time()
    moment_ms = repr(moment).split(".")[1][:3].ljust(3, "0")
    return time.strftime(f"%Y-%m-%d-%H-%M-%S-{moment_ms}", time.gmtime(moment))


def sagemaker_short_timestamp() -> str:
    """짧은 타임스탬프 (예: 240101-0930)"""
    return time.strftime("%y%m%d-%H%M")


def name_from_base(base: str, max_length: int = MAX_NAME_LENGTH, short: bool = False) -> str:
    """base 뒤에 타임스탬프를 붙여 고유한 리소스 이름을 생성

    전체 길이가 max_length를 넘지 않도록 base를 잘라냅니다.

    Args:
        base: 이름 접두사
        max_length: 최대 길이
        short: True면 짧은 타임스탬프 사용

    Returns:
        리소스 이름
    """
    timestamp = sagemaker_short_timestamp() if short else sagemaker_timestamp()
    trimmed_base = base[: max_length - len(timestamp) - 1]
    return f"{trimmed_base}-{timestamp}"


def unique_name_from_base(base: str, max_length: int = MAX_NAME_LENGTH) -> str:
    """타임스탬프와 4자리 16진수 난수를 붙여 이름 생성 (동시 생성 충돌 방지)"""
    unique = f"{random.randrange(16**4):04x}"
    ts = str(int(time.time()))
    available_length = max_length - 2 - len(ts) - len(unique)
    trimmed = base[:available_length]
    return f"{trimmed}-{ts}-{unique}"


def base_name_from_image(image: str) -> str:
    """이미지 URI에서 저장소 이름만 추출

    예) ``123.dkr.ecr.us-east-1.amazonaws.com/xgboost:1.5-1`` -> ``xgboost``
    """
    m = re.match(r"^(.+/)?([^:/]+)(:[^:]+)?$", image)
    algo_name = m.group(2) if m else image
    return algo_name


def base_from_name(name: str) -> str:
    """이름 끝의 타임스탬프를 제거하여 base를 복원"""
    for pattern in (_TIMESTAMP_SUFFIX, _SHORT_TIMESTAMP_SUFFIX):
        m = pattern.match(name)
        if m:
            return m.group(1)
    return name


def build_dict(key: str, value: Any) -> dict[str, Any]:
    """value가 있을 때만 {key: value} 반환"""
    if value:
        return {key: value}
    return {}


def get_short_version(framework_version: str) -> str:
    """``1.13.1`` -> ``1.13``"""
    return ".".join(framework_version.split(".")[:2])


def to_str(value: Any) -> str:
    """하이퍼파라미터 값을 API가 요구하는 문자열로 변환 (True -> "True")"""
    return str(value)


# =============================================================================
# 학습 보조 상태 (SecondaryStatus)
# =============================================================================


def secondary_training_status_changed(current_job_description: dict, prev_job_description: dict | None) -> bool:
    """SecondaryStatusTransitions의 마지막 메시지가 바뀌었는지 확인"""
    current_transitions = current_job_description.get("SecondaryStatusTransitions")
    if current_transitions is None or len(current_transitions) == 0:
        return False

    prev_transitions = (
        prev_job_description.get("SecondaryStatusTransitions") if prev_job_description is not None else None
    )

    last_message = prev_transitions[-1]["StatusMessage"] if prev_transitions else ""
    message = current_transitions[-1]["StatusMessage"]

    return message != last_message


def secondary_training_status_message(job_description: dict, prev_description: dict | None) -> str:
    """새로 추가된 보조 상태 전이를 ``시각 상태 - 메시지`` 줄로 포맷팅"""
    transitions = job_description.get("SecondaryStatusTransitions")
    if transitions is None or len(transitions) == 0:
        return ""

    prev_transitions_num = 0
    if prev_description is not None and prev_description.get("SecondaryStatusTransitions") is not None:
        prev_transitions_num = len(prev_description["SecondaryStatusTransitions"])

    if prev_transitions_num == len(transitions):
        # 마지막 전이의 메시지만 갱신된 경우
        transitions_to_print = transitions[-1:]
    else:
        transitions_to_print = transitions[prev_transitions_num - len(transitions) :]

    last_modified = job_description.get("LastModifiedTime")
    if isinstance(last_modified, datetime):
        status_time = last_modified.strftime("%Y-%m-%d %H:%M:%S")
    else:
        status_time = time.strftime("%Y-%m-%d %H:%M:%S", time.gmtime())

    status_strs = [f"{status_time} {t['Status']} - {t['StatusMessage']}" for t in transitions_to_print]
    return "\n".join(status_strs)


# =============================================================================
# 파일/압축
# =============================================================================


def create_tar_file(source_files: list[str], target: str | None = None) -> str:
    """파일/디렉토리 목록을 하나의 tar.gz로 압축

    디렉토리는 내용물이 아카이브 루트에 오도록 추가합니다.

    Args:
        source_files: 압축할 경로 목록
        target: 결과 파일 경로 (None이면 임시 파일)

    Returns:
        생성된 tar.gz 경로
    """
    if target:
        filename = target
    else:
        _, filename = tempfile.mkstemp(suffix=".tar.gz")

    with tarfile.open(filename, mode="w:gz") as t:
        for sf in source_files:
            if os.path.isdir(sf):
                for entry in sorted(os.listdir(sf)):
                    t.add(os.path.join(sf, entry), arcname=entry)
            else:
                t.add(sf, arcname=os.path.basename(sf))
    return filename


def download_folder(
    bucket_name: str, prefix: str, target: str, sagemaker_session, extra_args: dict[str, Any] | None = None
) -> list[str]:
    """S3 prefix 아래 객체를 로컬 디렉토리로 내려받기

    prefix가 단일 객체 키와 일치하면 그 파일만 ``target/<basename>`` 으로 내려받습니다.
    그 외에는 ``prefix/`` 아래 객체만 상대 경로를 유지해 내려받습니다.
    (``data/train`` 은 ``data/train2/...`` 를 포함하지 않음)

    Returns:
        내려받은 로컬 파일 경로 목록
    """
    s3 = sagemaker_session.s3_client
    prefix = prefix.lstrip("/")
    keys = sagemaker_session.list_s3_files(bucket_name, prefix)

    if prefix and not prefix.endswith("/") and prefix in keys:
        file_path = os.path.join(target, os.path.basename(prefix))
        os.makedirs(target or ".", exist_ok=True)
        s3.download_file(bucket_name, prefix, file_path, ExtraArgs=extra_args)
        return [file_path]

    folder = prefix.rstrip("/") + "/" if prefix.rstrip("/") else ""
    downloaded: list[str] = []
    for key in keys:
        if not key.startswith(folder) or key.endswith("/"):
            continue
        file_path = os.path.join(target, key[len(folder) :])
        os.makedirs(os.path.dirname(file_path) or ".", exist_ok=True)
        s3.download_file(bucket_name, key, file_path, ExtraArgs=extra_args)
        downloaded.append(file_path)
    return downloaded


def retries(max_retry_count: int, exception_message_prefix: str, seconds_to_sleep: float = 2) -> Iterator[int]:
    """재시도 횟수를 yield하고 모두 소진하면 SMError 발생

    Example:
        for _ in retries(36, "스케줄 반영 대기", seconds_to_sleep=5):
            if is_done():
                break

    Raises:
        SMError: max_retry_count번 안에 루프를 빠져나가지 못한 경우
    """
    for i in range(max_retry_count):
        yield i
        time.sleep(seconds_to_sleep)

    raise SMError(f"{exception_message_prefix}: {max_retry_count}회 재시도 후에도 완료되지 않았습니다")
