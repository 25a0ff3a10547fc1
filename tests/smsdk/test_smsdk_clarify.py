"""
tests/smsdk/test_smsdk_clarify.py - smsdk/clarify.py 및 Clarify 모니터 테스트
"""

import io
import json
from unittest.mock import MagicMock

import pytest
from botocore.response import StreamingBody

from core.exceptions import ValidationError
from smsdk.clarify import (
    BiasConfig,
    DataConfig,
    ModelConfig,
    ModelPredictedLabelConfig,
    SageMakerClarifyProcessor,
    SHAPConfig,
)
from smsdk.model_monitor import (
    ClarifyModelMonitor,
    EndpointInput,
    ExplainabilityAnalysisConfig,
    ModelBiasMonitor,
    ModelExplainabilityMonitor,
)

ROLE = "arn:aws:iam::123456789012:role/SageMakerRole"
CLARIFY_IMAGE = "306415355426.dkr.ecr.us-west-2.amazonaws.com/sagemaker-clarify-processing:1.0"


@pytest.fixture
def s3_client(sagemaker_session):
    client = MagicMock(name="s3_client")
    sagemaker_session._s3_client = client
    return client


@pytest.fixture
def uploaded_configs(s3_client):
    """upload_file로 올라간 analysis_config.json 내용을 키별로 보관"""
    captured = {}

    def upload_file(local_path, bucket, key, ExtraArgs=None):
        with open(local_path, encoding="utf-8") as f:
            captured[key] = json.load(f)

    s3_client.upload_file.side_effect = upload_file
    return captured


@pytest.fixture
def data_config():
    return DataConfig(
        s3_data_input_path="s3://bucket/train.csv",
        s3_output_path="s3://bucket/clarify-output",
        label="target",
        headers=["target", "age", "gender"],
    )


@pytest.fixture
def model_config():
    return ModelConfig("xgb-model", 1, "ml.c5.xlarge", accept_type="text/csv", content_type="text/csv")


# =============================================================================
# 분석 설정
# =============================================================================


class TestAnalysisConfigs:
    """DataConfig / BiasConfig / ModelConfig / SHAPConfig 테스트"""

    def test_data_config(self, data_config):
        assert data_config.get_config() == {
            "dataset_type": "text/csv",
            "headers": ["target", "age", "gender"],
            "label": "target",
        }

    def test_data_config_invalid_type(self):
        with pytest.raises(ValidationError):
            DataConfig("s3://bucket/in", "s3://bucket/out", dataset_type="application/xml")

    def test_bias_config_multiple_facets(self):
        config = BiasConfig([1], ["gender", "age"], [["F"], [40]], group_name="region")

        assert config.get_config() == {
            "label_values_or_threshold": [1],
            "facet": [
                {"name_or_index": "gender", "value_or_threshold": ["F"]},
                {"name_or_index": "age", "value_or_threshold": [40]},
            ],
            "group_variable": "region",
        }

    def test_bias_config_facet_length_mismatch(self):
        with pytest.raises(ValidationError):
            BiasConfig([1], ["gender", "age"], [["F"]])

    def test_model_config_validation(self):
        with pytest.raises(ValidationError):
            ModelConfig("m", 1, "ml.c5.xlarge", content_type="application/xml")
        with pytest.raises(ValidationError):
            ModelConfig("m", 1, "ml.c5.xlarge", content_template='{"instances": []}')

    def test_predicted_label_config(self):
        config = ModelPredictedLabelConfig(probability="score", probability_threshold=0.6)

        assert config.get_predictor_config() == (0.6, {"probability": "score"})
        assert config.get_config() == {"probability": "score", "probability_threshold": 0.6}

    def test_shap_config(self):
        config = SHAPConfig([[35, 0]], num_samples=100, agg_method="mean_abs")

        assert config.get_explainability_config() == {
            "shap": {
                "baseline": [[35, 0]],
                "num_samples": 100,
                "agg_method": "mean_abs",
                "use_logit": False,
                "save_local_shap_values": True,
            }
        }
        with pytest.raises(ValidationError):
            SHAPConfig([[0]], 10, agg_method="max")


# =============================================================================
# SageMakerClarifyProcessor
# =============================================================================


class TestClarifyProcessor:
    """Clarify 처리 작업 실행 테스트"""

    @pytest.fixture
    def processor(self, sagemaker_session):
        return SageMakerClarifyProcessor(ROLE, 1, "ml.c5.xlarge", sagemaker_session=sagemaker_session)

    def test_image_resolved(self, processor):
        assert processor.image_uri == CLARIFY_IMAGE

    def test_plain_run_rejected(self, processor):
        with pytest.raises(ValidationError):
            processor.run()

    def test_pre_training_bias(self, processor, sagemaker_client, data_config, uploaded_configs):
        processor.run_pre_training_bias(
            data_config,
            BiasConfig([1], "gender", ["F"]),
            methods=["CI", "DPL"],
            wait=False,
            logs=False,
            job_name="clarify-1",
        )

        assert uploaded_configs["clarify-1/input/analysis_config/analysis_config.json"] == {
            "dataset_type": "text/csv",
            "headers": ["target", "age", "gender"],
            "label": "target",
            "label_values_or_threshold": [1],
            "facet": [{"name_or_index": "gender", "value_or_threshold": ["F"]}],
            "methods": {
                "pre_training_bias": {"methods": ["CI", "DPL"]},
                "report": {"name": "report", "title": "Analysis Report"},
            },
        }

        request = sagemaker_client.create_processing_job.call_args.kwargs
        assert request["ProcessingJobName"] == "clarify-1"
        assert request["AppSpecification"] == {"ImageUri": CLARIFY_IMAGE}
        inputs = {i["InputName"]: i["S3Input"] for i in request["ProcessingInputs"]}
        assert inputs["dataset"]["S3Uri"] == "s3://bucket/train.csv"
        assert inputs["dataset"]["LocalPath"] == "/opt/ml/processing/input/data"
        assert inputs["analysis_config"]["S3Uri"] == (
            "s3://sagemaker-test-bucket/clarify-1/input/analysis_config/analysis_config.json"
        )
        assert inputs["analysis_config"]["LocalPath"] == "/opt/ml/processing/input/config"
        assert request["ProcessingOutputConfig"]["Outputs"] == [
            {
                "OutputName": "analysis_result",
                "S3Output": {
                    "S3Uri": "s3://bucket/clarify-output",
                    "LocalPath": "/opt/ml/processing/output",
                    "S3UploadMode": "EndOfJob",
                },
            }
        ]

    def test_post_training_bias_predictor(self, processor, data_config, model_config, uploaded_configs):
        processor.run_post_training_bias(
            data_config,
            BiasConfig([1], "gender"),
            model_config,
            ModelPredictedLabelConfig(probability_threshold=0.8),
            wait=False,
            logs=False,
            job_name="clarify-2",
        )

        config = uploaded_configs["clarify-2/input/analysis_config/analysis_config.json"]
        assert config["probability_threshold"] == 0.8
        assert config["predictor"] == {
            "model_name": "xgb-model",
            "instance_type": "ml.c5.xlarge",
            "initial_instance_count": 1,
            "accept_type": "text/csv",
            "content_type": "text/csv",
        }
        assert config["methods"]["post_training_bias"] == {"methods": "all"}

    def test_explainability(self, processor, sagemaker_client, data_config, model_config, uploaded_configs):
        processor.run_explainability(
            data_config,
            model_config,
            SHAPConfig([[35, 0]], 50, "mean_abs"),
            model_scores="probability",
            wait=False,
            logs=False,
        )

        job_name = sagemaker_client.create_processing_job.call_args.kwargs["ProcessingJobName"]
        assert job_name.startswith("Clarify-Explainability-")
        config = uploaded_configs[f"{job_name}/input/analysis_config/analysis_config.json"]
        assert config["predictor"]["label"] == "probability"
        assert set(config["methods"]) == {"shap", "report"}

    def test_logs_require_wait(self, processor, data_config):
        with pytest.raises(ValidationError):
            processor.run_pre_training_bias(data_config, BiasConfig([1], "gender"), wait=False, logs=True)


# =============================================================================
# Clarify 모니터
# =============================================================================


class TestClarifyMonitors:
    """ModelBiasMonitor / ModelExplainabilityMonitor 테스트"""

    def test_base_class_not_instantiable(self, sagemaker_session):
        with pytest.raises(TypeError):
            ClarifyModelMonitor(ROLE, sagemaker_session=sagemaker_session)

    def test_bias_baseline_then_schedule(
        self, sagemaker_session, sagemaker_client, s3_client, uploaded_configs, data_config, model_config
    ):
        monitor = ModelBiasMonitor(ROLE, sagemaker_session=sagemaker_session)
        assert monitor.image_uri == CLARIFY_IMAGE

        monitor.suggest_baseline(
            data_config,
            BiasConfig([1], "gender"),
            model_config,
            ModelPredictedLabelConfig(probability="score", probability_threshold=0.5),
            job_name="bias-baseline",
        )
        assert monitor.latest_baselining_job.job_name == "bias-baseline"

        monitor.create_monitoring_schedule(
            endpoint_input="my-endpoint",
            ground_truth_input="s3://bucket/ground-truth",
            output_s3_uri="s3://bucket/bias-reports",
            monitor_schedule_name="bias-schedule",
        )

        put_args = s3_client.put_object.call_args.kwargs
        assert put_args["Bucket"] == "bucket"
        assert put_args["Key"].startswith("bias-reports/model-bias-job-definition-")
        assert put_args["Key"].endswith("/analysis_config.json")
        assert json.loads(put_args["Body"]) == {
            "label_values_or_threshold": [1],
            "facet": [{"name_or_index": "gender"}],
            "headers": ["target", "age", "gender"],
            "label": "target",
        }

        definition = sagemaker_client.create_model_bias_job_definition.call_args.kwargs
        assert definition["ModelBiasAppSpecification"] == {
            "ConfigUri": f"s3://bucket/{put_args['Key']}",
            "ImageUri": CLARIFY_IMAGE,
            "Environment": {"publish_cloudwatch_metrics": "Enabled"},
        }
        assert definition["ModelBiasBaselineConfig"] == {"BaseliningJobName": "bias-baseline"}
        endpoint_input = definition["ModelBiasJobInput"]["EndpointInput"]
        assert endpoint_input["ProbabilityAttribute"] == "score"
        assert endpoint_input["ProbabilityThresholdAttribute"] == 0.5
        assert "InferenceAttribute" not in endpoint_input
        assert definition["ModelBiasJobInput"]["GroundTruthS3Input"] == {"S3Uri": "s3://bucket/ground-truth"}
        assert sagemaker_client.create_monitoring_schedule.call_args.kwargs["MonitoringScheduleConfig"]["MonitoringType"] == (
            "ModelBias"
        )

    def test_explainability_schedule_with_config_uri(self, sagemaker_session, sagemaker_client, s3_client):
        monitor = ModelExplainabilityMonitor(ROLE, sagemaker_session=sagemaker_session)

        monitor.create_monitoring_schedule(
            endpoint_input=EndpointInput("my-endpoint", "/opt/ml/processing/input/endpoint", features_attribute="features"),
            analysis_config="s3://bucket/configs/analysis_config.json",
            monitor_schedule_name="explain-schedule",
        )

        s3_client.put_object.assert_not_called()
        definition = sagemaker_client.create_model_explainability_job_definition.call_args.kwargs
        assert definition["ModelExplainabilityAppSpecification"]["ConfigUri"] == "s3://bucket/configs/analysis_config.json"
        assert "ModelExplainabilityBaselineConfig" not in definition
        assert definition["ModelExplainabilityJobInput"]["EndpointInput"]["FeaturesAttribute"] == "features"

    def test_explainability_requires_analysis_config(self, sagemaker_session):
        monitor = ModelExplainabilityMonitor(ROLE, sagemaker_session=sagemaker_session)
        with pytest.raises(ValidationError):
            monitor.create_monitoring_schedule("my-endpoint", monitor_schedule_name="explain-schedule")

    def test_explainability_baseline_drops_label_header(
        self, sagemaker_session, uploaded_configs, data_config, model_config
    ):
        monitor = ModelExplainabilityMonitor(ROLE, sagemaker_session=sagemaker_session)

        monitor.suggest_baseline(
            data_config, SHAPConfig([[35, 0]], 50, "mean_abs"), model_config, model_scores=0, job_name="explain-baseline"
        )

        config = monitor.latest_baselining_job_config
        assert isinstance(config.analysis_config, ExplainabilityAnalysisConfig)
        assert config.analysis_config._to_dict()["headers"] == ["age", "gender"]
        assert config.inference_attribute == 0

    def test_statistics_not_supported(self, sagemaker_session, uploaded_configs, data_config, model_config):
        monitor = ModelExplainabilityMonitor(ROLE, sagemaker_session=sagemaker_session)
        monitor.suggest_baseline(data_config, SHAPConfig([[0]], 10, "median"), model_config, job_name="explain-baseline")

        with pytest.raises(NotImplementedError):
            monitor.baseline_statistics()
        with pytest.raises(NotImplementedError):
            monitor.latest_monitoring_statistics()

    def test_suggested_constraints_reads_analysis(
        self, sagemaker_session, s3_client, uploaded_configs, data_config, model_config
    ):
        monitor = ModelBiasMonitor(ROLE, sagemaker_session=sagemaker_session)
        monitor.suggest_baseline(data_config, BiasConfig([1], "gender"), model_config, job_name="bias-baseline")
        data = json.dumps({"version": "1.0", "post_training_bias_metrics": {}}).encode("utf-8")
        s3_client.get_object.return_value = {"Body": StreamingBody(io.BytesIO(data), len(data))}

        constraints = monitor.suggested_constraints()

        s3_client.get_object.assert_called_once_with(Bucket="bucket", Key="clarify-output/analysis.json")
        assert constraints.body_dict["version"] == "1.0"
