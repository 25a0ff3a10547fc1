"""
tests/smsdk/test_smsdk_estimator.py - smsdk/estimator.py 테스트

fit()이 만드는 CreateTrainingJob 요청과 attach/deploy/transformer 흐름을 검증합니다.
"""

from unittest.mock import MagicMock

import pytest

from core.exceptions import UnexpectedStatusError, ValidationError
from smsdk.debugger import DebuggerHookConfig, ProfilerRule, Rule
from smsdk.estimator import Estimator
from smsdk.inputs import TrainingInput
from smsdk.predictor import Predictor
from smsdk.transformer import Transformer

IMAGE = "246618743249.dkr.ecr.us-west-2.amazonaws.com/sagemaker-xgboost:1.7-1"
ROLE = "arn:aws:iam::123456789012:role/SageMakerRole"
MODEL_DATA = "s3://sagemaker-test-bucket/xgb/output/model.tar.gz"


def _estimator(session, **kwargs):
    params = {
        "image_uri": IMAGE,
        "role": ROLE,
        "instance_count": 1,
        "instance_type": "ml.m5.xlarge",
        "sagemaker_session": session,
    }
    params.update(kwargs)
    return Estimator(**params)


def _train_request(sagemaker_client):
    return sagemaker_client.create_training_job.call_args.kwargs


def _job_description(**overrides):
    desc = {
        "TrainingJobName": "sagemaker-xgboost-2024-01-01-00-00-00-000",
        "TrainingJobArn": "arn:aws:sagemaker:us-west-2:123456789012:training-job/sagemaker-xgboost",
        "TrainingJobStatus": "Completed",
        "RoleArn": ROLE,
        "ResourceConfig": {"InstanceCount": 2, "InstanceType": "ml.c5.xlarge", "VolumeSizeInGB": 50},
        "StoppingCondition": {"MaxRuntimeInSeconds": 3600},
        "AlgorithmSpecification": {"TrainingInputMode": "File", "TrainingImage": IMAGE},
        "OutputDataConfig": {"S3OutputPath": "s3://bucket/output"},
        "HyperParameters": {"num_round": "10"},
        "ModelArtifacts": {"S3ModelArtifacts": MODEL_DATA},
    }
    desc.update(overrides)
    return desc


# =============================================================================
# 생성자 검증
# =============================================================================


class TestEstimatorInit:
    """Estimator 생성자 검증 테스트"""

    def test_instance_type_required(self, sagemaker_session):
        with pytest.raises(ValidationError):
            _estimator(sagemaker_session, instance_type=None)

    def test_local_mode_rejected(self, sagemaker_session):
        with pytest.raises(ValidationError, match="로컬 모드"):
            _estimator(sagemaker_session, instance_type="local")

    def test_spot_requires_max_wait(self, sagemaker_session):
        with pytest.raises(ValidationError):
            _estimator(sagemaker_session, use_spot_instances=True)

    def test_max_wait_less_than_max_run(self, sagemaker_session):
        with pytest.raises(ValidationError):
            _estimator(sagemaker_session, use_spot_instances=True, max_run=3600, max_wait=600)

    def test_methods_require_training_job(self, sagemaker_session):
        estimator = _estimator(sagemaker_session)
        with pytest.raises(ValidationError):
            estimator.deploy(1, "ml.m5.large")
        with pytest.raises(ValidationError):
            estimator.describe()
        assert estimator.model_data is None


# =============================================================================
# fit
# =============================================================================


class TestFit:
    """fit()이 보내는 CreateTrainingJob 요청 테스트"""

    def test_basic_request(self, sagemaker_session, sagemaker_client):
        estimator = _estimator(sagemaker_session, hyperparameters={"num_round": 100, "eta": 0.2})

        estimator.fit("s3://bucket/train/", wait=False)

        request = _train_request(sagemaker_client)
        assert request["TrainingJobName"].startswith("sagemaker-xgboost-")
        assert request["RoleArn"] == ROLE
        assert request["AlgorithmSpecification"] == {"TrainingInputMode": "File", "TrainingImage": IMAGE}
        assert request["HyperParameters"] == {"num_round": "100", "eta": "0.2"}
        assert request["OutputDataConfig"] == {"S3OutputPath": "s3://sagemaker-test-bucket/"}
        assert request["ResourceConfig"] == {"InstanceCount": 1, "InstanceType": "ml.m5.xlarge", "VolumeSizeInGB": 30}
        assert request["StoppingCondition"] == {"MaxRuntimeInSeconds": 86400}
        assert request["InputDataConfig"] == [
            {
                "DataSource": {
                    "S3DataSource": {
                        "S3DataType": "S3Prefix",
                        "S3Uri": "s3://bucket/train/",
                        "S3DataDistributionType": "FullyReplicated",
                    }
                },
                "ChannelName": "training",
            }
        ]
        sagemaker_client.describe_training_job.assert_not_called()

    def test_debugger_and_profiler_defaults(self, sagemaker_session, sagemaker_client):
        """훅/프로파일러 설정이 없으면 출력 경로 기준 기본값"""
        estimator = _estimator(sagemaker_session)

        estimator.fit(wait=False)

        request = _train_request(sagemaker_client)
        assert request["DebugHookConfig"] == {"S3OutputPath": "s3://sagemaker-test-bucket/"}
        assert request["ProfilerConfig"] == {
            "S3OutputPath": "s3://sagemaker-test-bucket/",
            "ProfilingIntervalInMilliseconds": 500,
            "DisableProfiler": False,
        }
        assert "InputDataConfig" not in request

    def test_disable_debugger_and_profiler(self, sagemaker_session, sagemaker_client):
        estimator = _estimator(sagemaker_session, debugger_hook_config=False, disable_profiler=True)

        estimator.fit(wait=False)

        request = _train_request(sagemaker_client)
        assert "DebugHookConfig" not in request
        assert request["ProfilerConfig"] == {"DisableProfiler": True}

    def test_builtin_rules_use_regional_image(self, sagemaker_session, sagemaker_client):
        rule = Rule.sagemaker("LossNotDecreasing")
        profiler_rule = ProfilerRule.sagemaker("ProfilerReport")
        estimator = _estimator(sagemaker_session, rules=[rule, profiler_rule])

        estimator.fit(wait=False)

        request = _train_request(sagemaker_client)
        debug_rule = request["DebugRuleConfigurations"][0]
        assert debug_rule["RuleConfigurationName"] == "LossNotDecreasing"
        assert debug_rule["RuleParameters"] == {"rule_to_invoke": "LossNotDecreasing"}
        assert debug_rule["RuleEvaluatorImage"].startswith("895741380848.dkr.ecr.us-west-2.")
        assert request["ProfilerRuleConfigurations"][0]["RuleConfigurationName"] == "ProfilerReport"

    def test_rules_with_disabled_hook(self, sagemaker_session):
        estimator = _estimator(sagemaker_session, rules=[Rule.sagemaker("Overfit")], debugger_hook_config=False)
        with pytest.raises(ValidationError):
            estimator.fit(wait=False)

    def test_dict_inputs_and_model_channel(self, sagemaker_session, sagemaker_client):
        estimator = _estimator(sagemaker_session, model_uri="s3://bucket/pretrained/model.tar.gz")

        estimator.fit(
            {
                "train": "s3://bucket/train/",
                "validation": TrainingInput("s3://bucket/val/", content_type="text/csv"),
            },
            wait=False,
        )

        channels = {c["ChannelName"]: c for c in _train_request(sagemaker_client)["InputDataConfig"]}
        assert set(channels) == {"train", "validation", "model"}
        assert channels["validation"]["ContentType"] == "text/csv"
        assert channels["model"]["DataSource"]["S3DataSource"]["S3DataType"] == "S3Object"
        assert channels["model"]["ContentType"] == "application/x-sagemaker-model"

    @pytest.mark.parametrize("uri", ["file:///tmp/data", "/local/path"])
    def test_invalid_input_uri(self, sagemaker_session, uri):
        estimator = _estimator(sagemaker_session)
        with pytest.raises(ValidationError):
            estimator.fit(uri, wait=False)

    def test_spot_and_checkpoint(self, sagemaker_session, sagemaker_client):
        estimator = _estimator(
            sagemaker_session,
            use_spot_instances=True,
            max_run=3600,
            max_wait=7200,
            checkpoint_s3_uri="s3://bucket/checkpoints",
            max_retry_attempts=2,
        )

        estimator.fit(wait=False, job_name="spot-job")

        request = _train_request(sagemaker_client)
        assert request["TrainingJobName"] == "spot-job"
        assert request["EnableManagedSpotTraining"] is True
        assert request["StoppingCondition"] == {"MaxRuntimeInSeconds": 3600, "MaxWaitTimeInSeconds": 7200}
        assert request["CheckpointConfig"] == {"S3Uri": "s3://bucket/checkpoints"}
        assert request["RetryStrategy"] == {"MaximumRetryAttempts": 2}

    def test_vpc_and_tags(self, sagemaker_session, sagemaker_client):
        estimator = _estimator(
            sagemaker_session,
            subnets=["subnet-1"],
            security_group_ids=["sg-1"],
            tags=[{"Key": "team", "Value": "ml"}],
        )

        estimator.fit(wait=False)

        request = _train_request(sagemaker_client)
        assert request["VpcConfig"] == {"Subnets": ["subnet-1"], "SecurityGroupIds": ["sg-1"]}
        assert request["Tags"] == [{"Key": "team", "Value": "ml"}]

    def test_fit_wait_without_logs(self, sagemaker_session, sagemaker_client):
        """wait=True, logs=False면 상태만 폴링"""
        estimator = _estimator(sagemaker_session)

        estimator.fit(wait=True, logs=False)

        sagemaker_client.describe_training_job.assert_called()
        assert estimator.latest_training_job.name == _train_request(sagemaker_client)["TrainingJobName"]

    def test_fit_wait_failed(self, sagemaker_session, sagemaker_client):
        sagemaker_client.describe_training_job.return_value = {
            "TrainingJobStatus": "Failed",
            "FailureReason": "AlgorithmError: bad data",
        }
        estimator = _estimator(sagemaker_session)

        with pytest.raises(UnexpectedStatusError):
            estimator.fit(wait=True, logs="None")

    def test_artifact_paths(self, sagemaker_session):
        estimator = _estimator(sagemaker_session, debugger_hook_config=DebuggerHookConfig(s3_output_path="s3://bucket/debug"))
        estimator.fit(wait=False, job_name="job-1")

        assert estimator.latest_job_debugger_artifacts_path() == "s3://bucket/debug/job-1/debug-output"
        assert estimator.latest_job_profiler_artifacts_path() == "s3://sagemaker-test-bucket/job-1/profiler-output"
        assert estimator.latest_job_tensorboard_artifacts_path() is None


# =============================================================================
# attach / 배포
# =============================================================================


class TestAttach:
    """attach() 테스트"""

    def test_attach(self, sagemaker_session, sagemaker_client):
        desc = _job_description(
            EnableManagedSpotTraining=True,
            StoppingCondition={"MaxRuntimeInSeconds": 3600, "MaxWaitTimeInSeconds": 7200},
            VpcConfig={"Subnets": ["subnet-1"], "SecurityGroupIds": ["sg-1"]},
        )
        sagemaker_client.describe_training_job.return_value = desc
        sagemaker_client.list_tags.return_value = {"Tags": [{"Key": "team", "Value": "ml"}]}

        estimator = Estimator.attach(desc["TrainingJobName"], sagemaker_session=sagemaker_session)

        assert estimator.latest_training_job.name == desc["TrainingJobName"]
        assert estimator.base_job_name == "sagemaker-xgboost"
        assert estimator.instance_count == 2
        assert estimator.instance_type == "ml.c5.xlarge"
        assert estimator.hyperparameters() == {"num_round": "10"}
        assert estimator.use_spot_instances is True
        assert estimator.max_wait == 7200
        assert estimator.subnets == ["subnet-1"]
        assert estimator.tags == [{"Key": "team", "Value": "ml"}]
        assert estimator.model_data == MODEL_DATA

    def test_attach_algorithm_job_rejected(self, sagemaker_session, sagemaker_client):
        sagemaker_client.describe_training_job.return_value = _job_description(
            AlgorithmSpecification={"TrainingInputMode": "File", "AlgorithmName": "arn:aws:sagemaker:algo"}
        )
        with pytest.raises(ValidationError):
            Estimator.attach("job", sagemaker_session=sagemaker_session)


class TestDeploy:
    """deploy() / transformer() / compile_model() 테스트"""

    @pytest.fixture
    def trained(self, sagemaker_session, sagemaker_client):
        sagemaker_client.describe_training_job.return_value = _job_description()
        sagemaker_client.describe_endpoint.return_value = {"EndpointStatus": "InService"}
        return Estimator.attach("sagemaker-xgboost-2024-01-01-00-00-00-000", sagemaker_session=sagemaker_session)

    def test_deploy(self, trained, sagemaker_client):
        predictor = trained.deploy(1, "ml.m5.large", endpoint_name="xgb-endpoint")

        assert isinstance(predictor, Predictor)
        assert predictor.endpoint_name == "xgb-endpoint"
        model_request = sagemaker_client.create_model.call_args.kwargs
        assert model_request["PrimaryContainer"] == {"Image": IMAGE, "Environment": {}, "ModelDataUrl": MODEL_DATA}
        config_request = sagemaker_client.create_endpoint_config.call_args.kwargs
        assert config_request["EndpointConfigName"] == "xgb-endpoint"
        assert config_request["ProductionVariants"][0]["ModelName"] == model_request["ModelName"]
        sagemaker_client.create_endpoint.assert_called_once()

    def test_deploy_compiled_model_missing(self, trained):
        with pytest.raises(ValidationError):
            trained.deploy(1, "ml.c5.xlarge", use_compiled_model=True)

    def test_transformer(self, trained, sagemaker_client):
        transformer = trained.transformer(1, "ml.m5.large", output_path="s3://bucket/batch-out")

        assert isinstance(transformer, Transformer)
        assert transformer.model_name == sagemaker_client.create_model.call_args.kwargs["ModelName"]
        assert transformer.base_transform_job_name == "sagemaker-xgboost"

    def test_compile_model(self, trained, sagemaker_client):
        sagemaker_client.describe_compilation_job.return_value = {
            "CompilationJobStatus": "COMPLETED",
            "ModelArtifacts": {"S3ModelArtifacts": "s3://bucket/compiled/model.tar.gz"},
        }

        model = trained.compile_model(
            "jetson_nano", {"data": [1, 4]}, "s3://bucket/compiled", framework="xgboost", framework_version="1.7"
        )

        request = sagemaker_client.create_compilation_job.call_args.kwargs
        assert request["CompilationJobName"].startswith("compilation-sagemaker-xgboost-")
        assert request["InputConfig"]["Framework"] == "XGBOOST"
        assert request["OutputConfig"]["TargetDevice"] == "jetson_nano"
        assert model.model_data == "s3://bucket/compiled/model.tar.gz"

    def test_compile_model_invalid_framework(self, trained):
        with pytest.raises(ValidationError):
            trained.compile_model("ml_c5", {"data": [1, 4]}, "s3://bucket/compiled", framework="caffe", framework_version="1")

    def test_compile_model_version_without_framework(self, trained):
        with pytest.raises(ValidationError):
            trained.compile_model("ml_c5", {"data": [1, 4]}, "s3://bucket/compiled", framework_version="1.7")


class TestEstimatorOperations:
    """stop / describe / set_hyperparameters 테스트"""

    def test_stop_and_describe(self, sagemaker_session, sagemaker_client):
        estimator = _estimator(sagemaker_session)
        estimator.fit(wait=False, job_name="job-1")

        estimator.stop()
        estimator.describe()

        sagemaker_client.stop_training_job.assert_called_once_with(TrainingJobName="job-1")
        sagemaker_client.describe_training_job.assert_called_with(TrainingJobName="job-1")

    def test_set_hyperparameters(self, sagemaker_session):
        estimator = _estimator(sagemaker_session, hyperparameters={"a": 1})
        estimator.set_hyperparameters(b=2, a=3)
        assert estimator.hyperparameters() == {"a": 3, "b": 2}

    def test_get_train_args_before_fit(self, sagemaker_session):
        estimator = _estimator(sagemaker_session, base_job_name="custom")
        args = estimator.get_train_args("s3://bucket/train")
        assert args["job_name"].startswith("custom-")
        assert args["image_uri"] == IMAGE
        assert isinstance(args["input_config"], list)

    def test_unknown_rule_type(self, sagemaker_session):
        estimator = _estimator(sagemaker_session, rules=[MagicMock()])
        with pytest.raises(ValidationError):
            estimator.fit(wait=False)
