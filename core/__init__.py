# core/__init__.py
"""
core - SageMaker Automation 공통 인프라

smsdk와 CLI가 공유하는 설정, 예외, 재시도, boto3 클라이언트 팩토리를 포함합니다.

아키텍처:
    core/
    ├── client.py       # boto3 클라이언트 팩토리 (adaptive retry)
    ├── config.py       # SDK 설정 (YAML + 환경 변수)
    ├── exceptions.py   # 통합 예외 계층
    └── retry.py        # 지수 백오프 재시도

Usage:
    # 설정 사용
    from core.config import load_config
    config = load_config()
    print(config.job_poll)  # 5

    # 예외 처리
    from core.exceptions import APICallError, is_throttling
    try:
        session.describe_training_job("my-job")
    except APICallError as e:
        if is_throttling(e.cause):
            print("요청이 제한되었습니다")
"""

from core import client, config, exceptions, retry

__all__: list[str] = [
    "client",
    "config",
    "exceptions",
    "retry",
]
