"""
tests/smsdk/test_smsdk_pipeline.py - smsdk/pipeline.py 테스트
"""

from unittest.mock import patch

import pytest

from core.exceptions import ValidationError
from smsdk.model import Model
from smsdk.pipeline import PipelineModel
from smsdk.predictor import Predictor
from smsdk.transformer import Transformer

ROLE = "arn:aws:iam::123456789012:role/SageMakerRole"
SKLEARN_IMAGE = "246618743249.dkr.ecr.us-west-2.amazonaws.com/sagemaker-scikit-learn:1.2-1-cpu-py3"
XGB_IMAGE = "246618743249.dkr.ecr.us-west-2.amazonaws.com/sagemaker-xgboost:1.7-1"


@pytest.fixture
def models(sagemaker_session):
    preprocess = Model(SKLEARN_IMAGE, "s3://bucket/preprocess/model.tar.gz", ROLE, env={"MODE": "transform"})
    xgb = Model(XGB_IMAGE, "s3://bucket/xgb/model.tar.gz", ROLE)
    return [preprocess, xgb]


@pytest.fixture
def pipeline(models, sagemaker_session):
    return PipelineModel(models, ROLE, sagemaker_session=sagemaker_session)


class TestPipelineModel:
    """PipelineModel 생성/배포 테스트"""

    def test_requires_models(self, sagemaker_session):
        with pytest.raises(ValidationError) as exc_info:
            PipelineModel([], ROLE, sagemaker_session=sagemaker_session)
        assert exc_info.value.field == "models"

    def test_container_order(self, pipeline):
        containers = pipeline.pipeline_container_def("ml.m5.large")

        assert [c["Image"] for c in containers] == [SKLEARN_IMAGE, XGB_IMAGE]
        assert containers[0]["Environment"] == {"MODE": "transform"}

    def test_deploy(self, pipeline, sagemaker_client):
        result = pipeline.deploy(1, "ml.m5.large", endpoint_name="inference-pipeline", wait=False)

        model_request = sagemaker_client.create_model.call_args.kwargs
        assert model_request["ModelName"].startswith("sagemaker-scikit-learn-")
        assert "PrimaryContainer" not in model_request
        assert [c["Image"] for c in model_request["Containers"]] == [SKLEARN_IMAGE, XGB_IMAGE]

        config_request = sagemaker_client.create_endpoint_config.call_args.kwargs
        assert config_request["EndpointConfigName"] == "inference-pipeline"
        assert config_request["ProductionVariants"][0]["ModelName"] == pipeline.name
        sagemaker_client.create_endpoint.assert_called_once()
        assert pipeline.endpoint_name == "inference-pipeline"
        assert result is None

    def test_deploy_with_predictor_cls(self, models, sagemaker_session):
        pipeline = PipelineModel(
            models, ROLE, predictor_cls=Predictor, name="my-pipeline", sagemaker_session=sagemaker_session
        )

        predictor = pipeline.deploy(1, "ml.m5.large", wait=False)

        assert isinstance(predictor, Predictor)
        assert predictor.endpoint_name == "my-pipeline"

    def test_update_endpoint(self, models, sagemaker_session, sagemaker_client):
        pipeline = PipelineModel(models, ROLE, name="my-pipeline", sagemaker_session=sagemaker_session)

        pipeline.deploy(1, "ml.m5.large", endpoint_name="existing-endpoint", update_endpoint=True, wait=False)

        assert sagemaker_client.create_endpoint_config.call_args.kwargs["EndpointConfigName"] == "my-pipeline"
        sagemaker_client.update_endpoint.assert_called_once_with(
            EndpointName="existing-endpoint", EndpointConfigName="my-pipeline"
        )
        sagemaker_client.create_endpoint.assert_not_called()

    def test_deploy_local_rejected(self, pipeline, sagemaker_client):
        with pytest.raises(ValidationError):
            pipeline.deploy(1, "local")
        sagemaker_client.create_model.assert_not_called()

    def test_network_isolation(self, models, sagemaker_session, sagemaker_client):
        pipeline = PipelineModel(
            models,
            ROLE,
            vpc_config={"Subnets": ["subnet-1"], "SecurityGroupIds": ["sg-1"]},
            enable_network_isolation=True,
            sagemaker_session=sagemaker_session,
        )

        pipeline.deploy(1, "ml.m5.large", wait=False)

        request = sagemaker_client.create_model.call_args.kwargs
        assert request["EnableNetworkIsolation"] is True
        assert request["VpcConfig"] == {"Subnets": ["subnet-1"], "SecurityGroupIds": ["sg-1"]}

    def test_transformer(self, pipeline, sagemaker_client):
        transformer = pipeline.transformer(1, "ml.m5.large", output_path="s3://bucket/out")

        assert isinstance(transformer, Transformer)
        assert transformer.model_name == pipeline.name
        assert transformer.base_transform_job_name == pipeline.name
        sagemaker_client.create_model.assert_called_once()

    def test_delete_model(self, pipeline, sagemaker_client):
        with pytest.raises(ValidationError):
            pipeline.delete_model()

        pipeline.deploy(1, "ml.m5.large", wait=False)
        pipeline.delete_model()

        sagemaker_client.delete_model.assert_called_once_with(ModelName=pipeline.name)

    @patch("smsdk.pipeline.Session")
    def test_default_session(self, session_cls, models):
        pipeline = PipelineModel(models, ROLE, name="my-pipeline")

        pipeline.deploy(1, "ml.m5.large", wait=False)

        session = session_cls.return_value
        assert pipeline.sagemaker_session is session
        assert session.create_model.call_args.args[0] == "my-pipeline"
        session.endpoint_from_production_variants.assert_called_once()
