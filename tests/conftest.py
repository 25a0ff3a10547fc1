"""
tests/conftest.py - pytest 공통 픽스처

SageMaker API 모킹과 테스트 헬퍼를 제공합니다.

Usage:
    def test_something(sagemaker_session, sagemaker_client):
        # sagemaker_session: MagicMock 클라이언트로 구성된 smsdk Session
        # sagemaker_client: Session이 사용하는 SageMaker client (MagicMock)
        pass
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

REGION = "us-west-2"
BUCKET_NAME = "sagemaker-test-bucket"
ROLE = "arn:aws:iam::123456789012:role/SageMakerRole"
ACCOUNT_ID = "123456789012"


# =============================================================================
# 환경 설정
# =============================================================================


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch, tmp_path):
    """테스트 환경 설정 (실제 자격 증명/설정 파일을 사용하지 않음)"""
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.delenv("SMA_CONFIG", raising=False)

    from core import config

    monkeypatch.setattr(config, "DEFAULT_CONFIG_PATH", tmp_path / "missing-config.yaml")
    config.load_config.cache_clear()

    yield

    config.load_config.cache_clear()


# =============================================================================
# SageMaker 모킹 픽스처
# =============================================================================


@pytest.fixture
def boto_session():
    """boto3.Session 모킹"""
    session = MagicMock(name="boto_session")
    session.region_name = REGION
    return session


@pytest.fixture
def sagemaker_client():
    """SageMaker client 모킹"""
    client = MagicMock(name="sagemaker_client")
    client.describe_training_job.return_value = {"TrainingJobStatus": "Completed"}
    client.list_tags.return_value = {"Tags": []}
    return client


@pytest.fixture
def sagemaker_runtime_client():
    """SageMaker Runtime client 모킹"""
    return MagicMock(name="sagemaker_runtime_client")


@pytest.fixture
def sdk_config():
    """폴링 간격 0초 설정"""
    from core.config import SDKConfig

    return SDKConfig(job_poll=0, endpoint_poll=0, logs_poll=0)


@pytest.fixture
def sagemaker_session(boto_session, sagemaker_client, sagemaker_runtime_client, sdk_config):
    """MagicMock 클라이언트로 구성된 smsdk Session"""
    from smsdk.session import Session

    session = Session(
        boto_session=boto_session,
        sagemaker_client=sagemaker_client,
        sagemaker_runtime_client=sagemaker_runtime_client,
        default_bucket=BUCKET_NAME,
        config=sdk_config,
    )
    session.expand_role = MagicMock(side_effect=lambda role: role if "/" in role else f"arn:aws:iam::{ACCOUNT_ID}:role/{role}")
    return session


# =============================================================================
# 유틸리티 함수
# =============================================================================


def create_mock_response(
    data: Dict[str, Any],
    next_token: Optional[str] = None,
) -> Dict[str, Any]:
    """페이지네이션 응답 생성 헬퍼"""
    response = data.copy()
    if next_token:
        response["NextToken"] = next_token
    return response


def create_mock_client_error(
    error_code: str,
    error_message: str = "Test error",
    operation_name: str = "TestOperation",
) -> Exception:
    """ClientError 생성 헬퍼"""
    from botocore.exceptions import ClientError

    return ClientError(
        {
            "Error": {
                "Code": error_code,
                "Message": error_message,
            }
        },
        operation_name,
    )


# =============================================================================
# moto 통합 (선택적)
# =============================================================================

try:
    import moto

    @pytest.fixture
    def aws_credentials(monkeypatch):
        """moto 사용 시 AWS 자격 증명 설정"""
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
        monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
        monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
        monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)

    @pytest.fixture
    def moto_s3(aws_credentials):
        """moto를 사용한 S3 모킹 (기본 버킷 생성)"""
        with moto.mock_aws():
            import boto3

            s3 = boto3.client("s3", region_name=REGION)
            s3.create_bucket(Bucket=BUCKET_NAME, CreateBucketConfiguration={"LocationConstraint": REGION})
            yield s3

    @pytest.fixture
    def moto_session(moto_s3, sagemaker_client, sagemaker_runtime_client, sdk_config):
        """실제 boto3 Session + moto S3 + MagicMock SageMaker client"""
        import boto3

        from smsdk.session import Session

        return Session(
            boto_session=boto3.Session(region_name=REGION),
            sagemaker_client=sagemaker_client,
            sagemaker_runtime_client=sagemaker_runtime_client,
            default_bucket=BUCKET_NAME,
            config=sdk_config,
        )

except ImportError:
    # moto가 설치되지 않은 경우 더미 픽스처
    @pytest.fixture
    def moto_s3():
        pytest.skip("moto not installed")

    @pytest.fixture
    def moto_session():
        pytest.skip("moto not installed")
