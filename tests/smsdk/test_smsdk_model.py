"""
tests/smsdk/test_smsdk_model.py - smsdk/model.py 테스트
"""

import json
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from core.exceptions import APICallError, UnexpectedStatusError, ValidationError
from smsdk.frameworks import XGBoostModel
from smsdk.model import FrameworkModel, Model, ModelPackage
from smsdk.model_metrics import MetricsSource, ModelMetrics
from smsdk.model_monitor import DataCaptureConfig
from smsdk.predictor import Predictor
from smsdk.serializers import JSONSerializer
from smsdk.transformer import Transformer

IMAGE = "246618743249.dkr.ecr.us-west-2.amazonaws.com/sagemaker-xgboost:1.7-1"
ROLE = "arn:aws:iam::123456789012:role/SageMakerRole"
MODEL_DATA = "s3://bucket/xgb/output/model.tar.gz"


@pytest.fixture
def model(sagemaker_session):
    return Model(IMAGE, MODEL_DATA, ROLE, sagemaker_session=sagemaker_session)


class TestDeploy:
    """Model.deploy() 테스트"""

    def test_deploy(self, model, sagemaker_client):
        predictor = model.deploy(1, "ml.m5.large", endpoint_name="xgb-endpoint", wait=False)

        model_request = sagemaker_client.create_model.call_args.kwargs
        assert model_request["ModelName"].startswith("sagemaker-xgboost-")
        assert model_request["ExecutionRoleArn"] == ROLE
        assert model_request["PrimaryContainer"] == {"Image": IMAGE, "Environment": {}, "ModelDataUrl": MODEL_DATA}

        sagemaker_client.create_endpoint_config.assert_called_once_with(
            EndpointConfigName="xgb-endpoint",
            ProductionVariants=[
                {
                    "ModelName": model.name,
                    "InstanceType": "ml.m5.large",
                    "InitialInstanceCount": 1,
                    "VariantName": "AllTraffic",
                    "InitialVariantWeight": 1,
                }
            ],
        )
        sagemaker_client.create_endpoint.assert_called_once_with(
            EndpointName="xgb-endpoint", EndpointConfigName="xgb-endpoint", Tags=[]
        )
        sagemaker_client.describe_endpoint.assert_not_called()
        assert isinstance(predictor, Predictor)
        assert model.endpoint_name == "xgb-endpoint"

    def test_deploy_generated_endpoint_name(self, model, sagemaker_client):
        model.deploy(1, "ml.m5.large", wait=False)

        endpoint_name = sagemaker_client.create_endpoint.call_args.kwargs["EndpointName"]
        assert endpoint_name.startswith("sagemaker-xgboost-")
        assert model.endpoint_name == endpoint_name

    def test_deploy_wait(self, model, sagemaker_client):
        sagemaker_client.describe_endpoint.return_value = {"EndpointStatus": "InService"}

        model.deploy(1, "ml.m5.large", endpoint_name="xgb-endpoint")

        sagemaker_client.describe_endpoint.assert_called_with(EndpointName="xgb-endpoint")

    def test_deploy_with_data_capture_and_serializer(self, model, sagemaker_session, sagemaker_client):
        capture = DataCaptureConfig(True, sampling_percentage=50, sagemaker_session=sagemaker_session)

        predictor = model.deploy(
            1,
            "ml.m5.large",
            endpoint_name="xgb-endpoint",
            data_capture_config=capture,
            kms_key="key-1",
            tags=[{"Key": "team", "Value": "ml"}],
            serializer=JSONSerializer(),
            wait=False,
        )

        config_request = sagemaker_client.create_endpoint_config.call_args.kwargs
        assert config_request["KmsKeyId"] == "key-1"
        assert config_request["Tags"] == [{"Key": "team", "Value": "ml"}]
        assert config_request["DataCaptureConfig"] == {
            "EnableCapture": True,
            "InitialSamplingPercentage": 50,
            "DestinationS3Uri": "s3://sagemaker-test-bucket/model-monitor/data-capture",
            "CaptureOptions": [{"CaptureMode": "Input"}, {"CaptureMode": "Output"}],
            "CaptureContentTypeHeader": {"CsvContentTypes": ["text/csv"], "JsonContentTypes": ["application/json"]},
        }
        assert isinstance(predictor.serializer, JSONSerializer)

    def test_deploy_requires_role(self, sagemaker_session):
        model = Model(IMAGE, MODEL_DATA, sagemaker_session=sagemaker_session)
        with pytest.raises(ValidationError):
            model.deploy(1, "ml.m5.large")

    def test_deploy_local_rejected(self, model):
        with pytest.raises(ValidationError):
            model.deploy(1, "local")

    def test_existing_model_reused(self, model, sagemaker_client):
        sagemaker_client.create_model.side_effect = ClientError(
            {"Error": {"Code": "ValidationException", "Message": "Cannot create already existing model"}},
            "CreateModel",
        )

        model.deploy(1, "ml.m5.large", endpoint_name="xgb-endpoint", wait=False)

        sagemaker_client.create_endpoint.assert_called_once()

    def test_create_model_error(self, model, sagemaker_client):
        sagemaker_client.create_model.side_effect = ClientError(
            {"Error": {"Code": "AccessDeniedException", "Message": "denied"}},
            "CreateModel",
        )

        with pytest.raises(APICallError):
            model.deploy(1, "ml.m5.large", wait=False)

    def test_network_isolation_and_vpc(self, sagemaker_session, sagemaker_client):
        model = Model(
            IMAGE,
            MODEL_DATA,
            ROLE,
            vpc_config={"Subnets": ["subnet-1"], "SecurityGroupIds": ["sg-1"]},
            enable_network_isolation=True,
            sagemaker_session=sagemaker_session,
        )

        model.deploy(1, "ml.m5.large", wait=False)

        request = sagemaker_client.create_model.call_args.kwargs
        assert request["EnableNetworkIsolation"] is True
        assert request["VpcConfig"] == {"Subnets": ["subnet-1"], "SecurityGroupIds": ["sg-1"]}


class TestModelOperations:
    """transformer / delete_model / compile 테스트"""

    def test_transformer(self, model, sagemaker_client):
        transformer = model.transformer(2, "ml.c5.xlarge", output_path="s3://bucket/out", env={"A": "1"})

        assert isinstance(transformer, Transformer)
        assert transformer.model_name == model.name
        assert transformer.base_transform_job_name == "sagemaker-xgboost"
        assert transformer.env == {"A": "1"}
        sagemaker_client.create_model.assert_called_once()

    def test_transformer_network_isolation_drops_env(self, sagemaker_session):
        model = Model(IMAGE, MODEL_DATA, ROLE, enable_network_isolation=True, sagemaker_session=sagemaker_session)

        transformer = model.transformer(1, "ml.c5.xlarge", env={"A": "1"})

        assert transformer.env is None

    def test_delete_model(self, model, sagemaker_client):
        model.deploy(1, "ml.m5.large", wait=False)

        model.delete_model()

        sagemaker_client.delete_model.assert_called_once_with(ModelName=model.name)

    def test_delete_model_before_create(self, model):
        with pytest.raises(ValidationError):
            model.delete_model()

    def test_compile_for_hosting(self, model, sagemaker_client):
        sagemaker_client.describe_compilation_job.return_value = {
            "CompilationJobStatus": "COMPLETED",
            "ModelArtifacts": {"S3ModelArtifacts": "s3://bucket/compiled/model-ml_c5.tar.gz"},
        }

        model.compile(
            "ml_c5",
            {"input0": [1, 3, 224, 224]},
            "s3://bucket/compiled",
            ROLE,
            framework="pytorch",
            framework_version="1.8",
            job_name="compile-1",
        )

        sagemaker_client.create_compilation_job.assert_called_once_with(
            InputConfig={
                "S3Uri": MODEL_DATA,
                "DataInputConfig": json.dumps({"input0": [1, 3, 224, 224]}),
                "Framework": "PYTORCH",
                "FrameworkVersion": "1.8",
            },
            OutputConfig={"S3OutputLocation": "s3://bucket/compiled", "TargetDevice": "ml_c5"},
            RoleArn=ROLE,
            StoppingCondition={"MaxRuntimeInSeconds": 900},
            CompilationJobName="compile-1",
        )
        assert model.model_data == "s3://bucket/compiled/model-ml_c5.tar.gz"
        assert model.image_uri == (
            "301217895009.dkr.ecr.us-west-2.amazonaws.com/sagemaker-inference-pytorch:1.8-cpu-py3"
        )

        # 컴파일된 모델은 인스턴스 패밀리가 이름에 붙음
        sagemaker_client.describe_endpoint.return_value = {"EndpointStatus": "InService"}
        model.deploy(1, "ml.c5.xlarge")
        assert model.name.startswith("sagemaker-inference-pytorch-ml-c5-")
        assert model.endpoint_name.startswith("sagemaker-inference-pytorch-ml-c5-")

    def test_compile_target_platform(self, model, sagemaker_client):
        sagemaker_client.describe_compilation_job.return_value = {
            "CompilationJobStatus": "COMPLETED",
            "ModelArtifacts": {"S3ModelArtifacts": "s3://bucket/compiled/model.tar.gz"},
        }

        model.compile(
            None,
            "[1,3,224,224]",
            "s3://bucket/compiled",
            ROLE,
            framework="tflite",
            target_platform_os="LINUX",
            target_platform_arch="ARM64",
            compiler_options={"gpu-code": "sm_72"},
        )

        output_config = sagemaker_client.create_compilation_job.call_args.kwargs["OutputConfig"]
        assert output_config["TargetPlatform"] == {"Os": "LINUX", "Arch": "ARM64"}
        assert output_config["CompilerOptions"] == '{"gpu-code": "sm_72"}'
        assert model.image_uri == IMAGE

    def test_compile_target_platform_incomplete(self, model):
        with pytest.raises(ValidationError):
            model.compile(None, "{}", "s3://bucket/compiled", ROLE, framework="tflite", target_platform_os="LINUX")

    @pytest.mark.parametrize("framework", [None, "caffe"])
    def test_compile_invalid_framework(self, model, framework):
        with pytest.raises(ValidationError):
            model.compile("ml_c5", "{}", "s3://bucket/compiled", ROLE, framework=framework)


class TestFrameworkModel:
    """FrameworkModel 테스트"""

    def test_image_required(self, sagemaker_session):
        model = FrameworkModel(MODEL_DATA, None, ROLE, "inference.py", sagemaker_session=sagemaker_session)
        with pytest.raises(ValidationError):
            model.prepare_container_def("ml.m5.large")

    def test_code_location(self, sagemaker_session, tmp_path):
        (tmp_path / "inference.py").write_text("def model_fn(model_dir): pass")
        s3_client = MagicMock(name="s3_client")
        sagemaker_session._s3_client = s3_client
        model = FrameworkModel(
            MODEL_DATA,
            IMAGE,
            ROLE,
            "inference.py",
            source_dir=str(tmp_path),
            code_location="s3://code-bucket/models",
            env={"EXTRA": "1"},
            name="xgb-model",
            sagemaker_session=sagemaker_session,
        )

        c_def = model.prepare_container_def("ml.m5.large")

        assert s3_client.upload_file.call_args.args[1:] == ("code-bucket", "models/xgb-model/sourcedir.tar.gz")
        assert c_def["Environment"] == {
            "EXTRA": "1",
            "SAGEMAKER_PROGRAM": "inference.py",
            "SAGEMAKER_SUBMIT_DIRECTORY": "s3://code-bucket/models/xgb-model/sourcedir.tar.gz",
            "SAGEMAKER_CONTAINER_LOG_LEVEL": "20",
            "SAGEMAKER_REGION": "us-west-2",
        }


# =============================================================================
# 모델 레지스트리
# =============================================================================

MODEL_PACKAGE_ARN = "arn:aws:sagemaker:us-west-2:123456789012:model-package/xgb-churn/1"
ALGORITHM_ARN = "arn:aws:sagemaker:us-west-2:123456789012:algorithm/my-algo"


class TestRegister:
    """Model.register() 테스트"""

    def test_register_to_group(self, model, sagemaker_client):
        sagemaker_client.create_model_package.return_value = {"ModelPackageArn": MODEL_PACKAGE_ARN}
        metrics = ModelMetrics(model_statistics=MetricsSource("application/json", "s3://bucket/statistics.json"))

        package = model.register(
            ["text/csv"],
            ["text/csv"],
            model_package_group_name="xgb-churn",
            model_metrics=metrics,
            description="churn model",
        )

        sagemaker_client.create_model_package.assert_called_once_with(
            ModelPackageGroupName="xgb-churn",
            ModelPackageDescription="churn model",
            ModelMetrics={
                "ModelQuality": {
                    "Statistics": {"ContentType": "application/json", "S3Uri": "s3://bucket/statistics.json"}
                }
            },
            InferenceSpecification={
                "Containers": [{"Image": IMAGE, "ModelDataUrl": MODEL_DATA}],
                "SupportedContentTypes": ["text/csv"],
                "SupportedResponseMIMETypes": ["text/csv"],
            },
            CertifyForMarketplace=False,
            ModelApprovalStatus="PendingManualApproval",
        )
        assert isinstance(package, ModelPackage)
        assert package.model_package_arn == MODEL_PACKAGE_ARN
        assert package.sagemaker_session is model.sagemaker_session

    def test_register_standalone_requires_instances(self, model, sagemaker_client):
        with pytest.raises(ValidationError) as exc_info:
            model.register(["text/csv"], ["text/csv"], model_package_name="xgb-churn")

        assert exc_info.value.field == "inference_instances"
        sagemaker_client.create_model_package.assert_not_called()

    def test_framework_model_uses_serving_image(self, sagemaker_session, sagemaker_client):
        sagemaker_client.create_model_package.return_value = {"ModelPackageArn": MODEL_PACKAGE_ARN}
        model = XGBoostModel(MODEL_DATA, ROLE, "inference.py", framework_version="1.7-1", sagemaker_session=sagemaker_session)

        model.register(
            ["text/csv"],
            ["text/csv"],
            inference_instances=["ml.m5.large"],
            transform_instances=["ml.m5.large"],
            model_package_name="xgb-churn",
        )

        request = sagemaker_client.create_model_package.call_args.kwargs
        assert request["ModelPackageName"] == "xgb-churn"
        assert request["InferenceSpecification"]["Containers"][0]["Image"] == IMAGE
        assert request["InferenceSpecification"]["SupportedRealtimeInferenceInstanceTypes"] == ["ml.m5.large"]


class TestModelPackage:
    """ModelPackage 테스트"""

    @pytest.mark.parametrize(
        "kwargs,field",
        [
            ({}, "model_package_arn"),
            ({"algorithm_arn": ALGORITHM_ARN, "model_package_arn": MODEL_PACKAGE_ARN}, "algorithm_arn"),
            ({"algorithm_arn": ALGORITHM_ARN}, "model_data"),
        ],
    )
    def test_invalid_arguments(self, kwargs, field):
        with pytest.raises(ValidationError) as exc_info:
            ModelPackage(ROLE, **kwargs)
        assert exc_info.value.field == field

    def test_deploy_existing_package(self, sagemaker_session, sagemaker_client):
        sagemaker_client.describe_model_package.return_value = {
            "ModelPackageStatus": "Completed",
            "InferenceSpecification": {"Containers": [{"Image": IMAGE}]},
        }
        package = ModelPackage(ROLE, model_package_arn=MODEL_PACKAGE_ARN, sagemaker_session=sagemaker_session)

        package.deploy(1, "ml.m5.large", endpoint_name="pkg-endpoint", wait=False)

        request = sagemaker_client.create_model.call_args.kwargs
        assert request["PrimaryContainer"] == {"ModelPackageName": MODEL_PACKAGE_ARN}
        assert request["ModelName"].startswith("xgb-churn-")
        assert "EnableNetworkIsolation" not in request
        sagemaker_client.create_model_package.assert_not_called()

    def test_marketplace_package_isolated(self, sagemaker_session, sagemaker_client):
        sagemaker_client.describe_model_package.return_value = {
            "ModelPackageStatus": "Completed",
            "InferenceSpecification": {"Containers": [{"Image": IMAGE, "ProductId": "prod-123"}]},
        }
        package = ModelPackage(
            ROLE, model_package_arn=MODEL_PACKAGE_ARN, env={"A": "1"}, sagemaker_session=sagemaker_session
        )

        package.deploy(1, "ml.m5.large", wait=False)

        request = sagemaker_client.create_model.call_args.kwargs
        assert request["EnableNetworkIsolation"] is True
        assert request["PrimaryContainer"] == {"ModelPackageName": MODEL_PACKAGE_ARN, "Environment": {"A": "1"}}

    def test_algorithm_creates_package_and_waits(self, sagemaker_session, sagemaker_client):
        sagemaker_client.describe_model_package.side_effect = [
            {"ModelPackageStatus": "InProgress"},
            {"ModelPackageStatus": "Completed"},
            {"ModelPackageStatus": "Completed", "InferenceSpecification": {"Containers": [{"Image": IMAGE}]}},
        ]
        package = ModelPackage(
            ROLE, model_data=MODEL_DATA, algorithm_arn=ALGORITHM_ARN, sagemaker_session=sagemaker_session
        )

        package.deploy(1, "ml.m5.large", wait=False)

        package_request = sagemaker_client.create_model_package.call_args.kwargs
        package_name = package_request["ModelPackageName"]
        assert package_name.startswith("my-algo-")
        assert package_request["SourceAlgorithmSpecification"] == {
            "SourceAlgorithms": [{"AlgorithmName": ALGORITHM_ARN, "ModelDataUrl": MODEL_DATA}]
        }
        assert sagemaker_client.create_model.call_args.kwargs["PrimaryContainer"] == {"ModelPackageName": package_name}

    def test_failed_package(self, sagemaker_session, sagemaker_client):
        sagemaker_client.describe_model_package.return_value = {
            "ModelPackageStatus": "Failed",
            "FailureReason": "bad artifact",
        }
        package = ModelPackage(
            ROLE, model_data=MODEL_DATA, algorithm_arn=ALGORITHM_ARN, sagemaker_session=sagemaker_session
        )

        with pytest.raises(UnexpectedStatusError):
            package.deploy(1, "ml.m5.large", wait=False)
        sagemaker_client.create_model.assert_not_called()
