"""
tests/smsdk/test_smsdk_image_uris.py - smsdk/image_uris.py 테스트
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from core.exceptions import ValidationError
from smsdk import image_uris


class TestRetrieve:
    """retrieve 테스트"""

    def test_xgboost(self):
        uri = image_uris.retrieve("xgboost", region="us-west-2", version="1.7-1")
        assert uri == "246618743249.dkr.ecr.us-west-2.amazonaws.com/sagemaker-xgboost:1.7-1"

    def test_version_alias(self):
        """latest 별칭은 실제 버전 태그로 변환"""
        uri = image_uris.retrieve("xgboost", region="us-west-2", version="latest")
        assert uri.endswith("sagemaker-xgboost:1.7-1")

    def test_pytorch_gpu_training(self):
        uri = image_uris.retrieve(
            "pytorch",
            region="us-west-2",
            version="2.0",
            py_version="py310",
            instance_type="ml.p3.2xlarge",
            image_scope="training",
        )
        assert uri == "763104351884.dkr.ecr.us-west-2.amazonaws.com/pytorch-training:2.0.1-gpu-py310"

    def test_pytorch_cpu_inference(self):
        uri = image_uris.retrieve(
            "pytorch",
            region="us-west-2",
            version="1.13.1",
            instance_type="ml.c5.xlarge",
            image_scope="inference",
        )
        assert uri.endswith("pytorch-inference:1.13.1-cpu-py39")

    def test_china_partition_domain(self):
        uri = image_uris.retrieve(
            "pytorch", region="cn-north-1", version="2.0", instance_type="ml.c5.xlarge", image_scope="training"
        )
        assert ".amazonaws.com.cn/" in uri

    def test_model_monitor_single_version(self):
        """버전이 하나뿐인 이미지는 version 생략 가능"""
        uri = image_uris.retrieve("model-monitor", region="us-west-2")
        assert uri == "159807026194.dkr.ecr.us-west-2.amazonaws.com/sagemaker-model-monitor-analyzer:latest"

    def test_region_from_session(self):
        session = MagicMock(boto_region_name="us-east-1")
        uri = image_uris.retrieve("xgboost", version="1.5-1", sagemaker_session=session)
        assert uri.startswith("683313688378.dkr.ecr.us-east-1.")


class TestRetrieveErrors:
    """지원하지 않는 조합 테스트"""

    def test_unknown_framework(self):
        with pytest.raises(ValidationError):
            image_uris.retrieve("tensorflow-nonexistent", region="us-west-2")

    def test_unsupported_version(self):
        with pytest.raises(ValidationError):
            image_uris.retrieve("xgboost", region="us-west-2", version="0.1")

    def test_missing_version(self):
        with pytest.raises(ValidationError):
            image_uris.retrieve("xgboost", region="us-west-2")

    def test_unsupported_region(self):
        with pytest.raises(ValidationError):
            image_uris.retrieve("xgboost", region="mars-north-1", version="1.7-1")

    def test_missing_instance_type(self):
        """cpu/gpu 구분이 필요한 이미지는 instance_type 필수"""
        with pytest.raises(ValidationError):
            image_uris.retrieve("pytorch", region="us-west-2", version="2.0", image_scope="training")

    def test_missing_region(self):
        with pytest.raises(ValidationError):
            image_uris.retrieve("xgboost", version="1.7-1")


class TestListFrameworks:
    def test_list_frameworks(self):
        frameworks = image_uris.list_frameworks()
        assert "xgboost" in frameworks
        assert "model-monitor" in frameworks
        assert "clarify" in frameworks


class TestHuggingFaceAndTensorFlow:
    """기반 프레임워크 버전이 태그에 들어가는 이미지 테스트"""

    def test_huggingface_pytorch_training(self):
        uri = image_uris.retrieve(
            "huggingface",
            region="us-east-1",
            version="4.26",
            py_version="py39",
            instance_type="ml.p3.2xlarge",
            image_scope="training",
            base_framework_version="pytorch1.13",
        )
        assert uri == (
            "763104351884.dkr.ecr.us-east-1.amazonaws.com/"
            "huggingface-pytorch-training:1.13.1-transformers4.26.0-gpu-py39-cu117-ubuntu20.04"
        )

    def test_huggingface_unknown_base_framework(self):
        with pytest.raises(ValidationError):
            image_uris.retrieve(
                "huggingface",
                region="us-east-1",
                version="4.28",
                py_version="py310",
                instance_type="ml.p3.2xlarge",
                base_framework_version="tensorflow2.11",
            )

    def test_tensorflow_inference_has_no_py_version(self):
        uri = image_uris.retrieve(
            "tensorflow", region="us-west-2", version="2.12", instance_type="ml.c5.xlarge", image_scope="inference"
        )
        assert uri == "763104351884.dkr.ecr.us-west-2.amazonaws.com/tensorflow-inference:2.12.0-cpu"


class TestRegionCoverage:
    """번들 설정에 없는 리전 테스트"""

    @pytest.mark.parametrize(
        "framework,kwargs",
        [
            ("sklearn", {"version": "1.2-1"}),
            ("pytorch", {"version": "2.0", "instance_type": "ml.c5.xlarge", "image_scope": "training"}),
            ("model-monitor", {}),
        ],
    )
    def test_uncovered_region(self, framework, kwargs):
        with pytest.raises(ValidationError) as exc_info:
            image_uris.retrieve(framework, region="sa-east-1", **kwargs)
        assert exc_info.value.field == "region"


# =============================================================================
# 사용자 ECR 저장소
# =============================================================================

REPO = {
    "repositoryName": "my-algo",
    "repositoryUri": "123456789012.dkr.ecr.us-west-2.amazonaws.com/my-algo",
    "registryId": "123456789012",
}


@pytest.fixture
def ecr_client():
    with patch("smsdk.image_uris.get_client") as get_client:
        paginators = {"describe_repositories": MagicMock(), "describe_images": MagicMock()}
        paginators["describe_repositories"].paginate.return_value = [{"repositories": [REPO]}]
        paginators["describe_images"].paginate.return_value = [
            {
                "imageDetails": [
                    {"imageTags": ["v1"], "imagePushedAt": datetime(2024, 1, 1, tzinfo=timezone.utc)},
                    {"imageTags": ["untracked"]},
                    {"imageTags": ["v2", "latest"], "imagePushedAt": datetime(2024, 6, 1, tzinfo=timezone.utc)},
                ]
            }
        ]
        client = get_client.return_value
        client.get_paginator.side_effect = paginators.__getitem__
        yield get_client


class TestEcr:
    """list_ecr_uris / ecr_tags / retrieve_ecr_uri 테스트"""

    def test_uses_configured_client(self, ecr_client, sagemaker_session):
        image_uris.list_ecr_uris(sagemaker_session)

        ecr_client.assert_called_once_with(sagemaker_session.boto_session, "ecr", region_name="us-west-2")

    def test_tags_sorted_with_missing_push_time(self, ecr_client, sagemaker_session):
        tags = [i["imageTag"] for i in image_uris.ecr_tags("my-algo", sagemaker_session)]

        assert tags == ["v2", "latest", "v1", "untracked"]

    def test_retrieve_latest_tag(self, ecr_client, sagemaker_session):
        assert image_uris.retrieve_ecr_uri("my-algo", sagemaker_session=sagemaker_session) == f"{REPO['repositoryUri']}:v2"

    def test_unknown_repository_and_tag(self, ecr_client, sagemaker_session):
        with pytest.raises(ValidationError):
            image_uris.ecr_tags("other", sagemaker_session)
        with pytest.raises(ValidationError):
            image_uris.retrieve_ecr_uri("my-algo", tag="v9", sagemaker_session=sagemaker_session)
