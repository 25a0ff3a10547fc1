"""
tests/smsdk/test_smsdk_transformer.py - smsdk/transformer.py 및 입력 채널 테스트
"""

import pytest

from core.exceptions import UnexpectedStatusError, ValidationError
from smsdk.inputs import FileSystemInput, ShuffleConfig, TrainingInput, TransformInput
from smsdk.transformer import Transformer


@pytest.fixture
def transformer(sagemaker_session):
    return Transformer(
        "xgb-model",
        instance_count=2,
        instance_type="ml.m5.xlarge",
        strategy="MultiRecord",
        assemble_with="Line",
        accept="text/csv",
        sagemaker_session=sagemaker_session,
    )


def _transform_request(sagemaker_client):
    return sagemaker_client.create_transform_job.call_args.kwargs


class TestTransform:
    """transform() 요청 테스트"""

    def test_request(self, transformer, sagemaker_client):
        sagemaker_client.describe_model.return_value = {
            "PrimaryContainer": {"Image": "246618743249.dkr.ecr.us-west-2.amazonaws.com/sagemaker-xgboost:1.7-1"}
        }

        transformer.transform(
            "s3://bucket/batch-in/",
            content_type="text/csv",
            split_type="Line",
            input_filter="$[1:]",
            join_source="Input",
            wait=False,
        )

        request = _transform_request(sagemaker_client)
        job_name = request["TransformJobName"]
        assert job_name.startswith("sagemaker-xgboost-")
        assert request["ModelName"] == "xgb-model"
        assert request["BatchStrategy"] == "MultiRecord"
        assert request["TransformInput"] == {
            "DataSource": {"S3DataSource": {"S3DataType": "S3Prefix", "S3Uri": "s3://bucket/batch-in/"}},
            "ContentType": "text/csv",
            "SplitType": "Line",
        }
        assert request["TransformOutput"] == {
            "S3OutputPath": f"s3://sagemaker-test-bucket/{job_name}",
            "Accept": "text/csv",
            "AssembleWith": "Line",
        }
        assert request["TransformResources"] == {"InstanceCount": 2, "InstanceType": "ml.m5.xlarge"}
        assert request["DataProcessing"] == {"InputFilter": "$[1:]", "JoinSource": "Input"}

    def test_base_name_from_pipeline_model(self, transformer, sagemaker_client):
        sagemaker_client.describe_model.return_value = {
            "Containers": [{"Image": "123456789012.dkr.ecr.us-west-2.amazonaws.com/preprocess:1"}]
        }

        transformer.transform("s3://bucket/in", wait=False)

        assert _transform_request(sagemaker_client)["TransformJobName"].startswith("preprocess-")

    def test_explicit_job_name_and_output(self, sagemaker_session, sagemaker_client):
        transformer = Transformer(
            "model", 1, "ml.m5.large", output_path="s3://bucket/out", sagemaker_session=sagemaker_session
        )

        transformer.transform("s3://bucket/in", job_name="batch-1", wait=False)

        request = _transform_request(sagemaker_client)
        assert request["TransformJobName"] == "batch-1"
        assert request["TransformOutput"] == {"S3OutputPath": "s3://bucket/out"}
        assert "DataProcessing" not in request
        sagemaker_client.describe_model.assert_not_called()

    def test_non_s3_input(self, transformer):
        with pytest.raises(ValidationError):
            transformer.transform("/local/data", wait=False)

    def test_wait_without_logs(self, transformer, sagemaker_client):
        sagemaker_client.describe_transform_job.return_value = {"TransformJobStatus": "Completed"}

        transformer.transform("s3://bucket/in", job_name="batch-1", wait=True, logs=False)

        sagemaker_client.describe_transform_job.assert_called_with(TransformJobName="batch-1")

    def test_wait_failed(self, transformer, sagemaker_client):
        sagemaker_client.describe_transform_job.return_value = {
            "TransformJobStatus": "Failed",
            "FailureReason": "ClientError: bad record",
        }

        with pytest.raises(UnexpectedStatusError, match="bad record"):
            transformer.transform("s3://bucket/in", job_name="batch-1", wait=True, logs=False)


class TestTransformerLifecycle:
    """attach / stop 테스트"""

    def test_wait_before_transform(self, transformer):
        with pytest.raises(ValidationError):
            transformer.wait()

    def test_stop(self, transformer, sagemaker_client):
        sagemaker_client.describe_transform_job.return_value = {"TransformJobStatus": "Stopped"}
        transformer.transform("s3://bucket/in", job_name="batch-1", wait=False)

        transformer.stop_transform_job()

        sagemaker_client.stop_transform_job.assert_called_once_with(TransformJobName="batch-1")

    def test_attach(self, sagemaker_session, sagemaker_client):
        sagemaker_client.describe_transform_job.return_value = {
            "TransformJobName": "xgb-model-2024-01-01-00-00-00-000",
            "ModelName": "xgb-model",
            "TransformResources": {"InstanceCount": 1, "InstanceType": "ml.c5.xlarge"},
            "TransformOutput": {"S3OutputPath": "s3://bucket/out", "AssembleWith": "Line"},
            "BatchStrategy": "SingleRecord",
            "MaxPayloadInMB": 6,
        }

        transformer = Transformer.attach("xgb-model-2024-01-01-00-00-00-000", sagemaker_session=sagemaker_session)

        assert transformer.model_name == "xgb-model"
        assert transformer.instance_type == "ml.c5.xlarge"
        assert transformer.strategy == "SingleRecord"
        assert transformer.max_payload == 6
        assert transformer.base_transform_job_name == "xgb-model"
        assert transformer.latest_transform_job.name == "xgb-model-2024-01-01-00-00-00-000"


# =============================================================================
# 입력 채널
# =============================================================================


class TestInputs:
    """TrainingInput / FileSystemInput / TransformInput 테스트"""

    def test_training_input_options(self):
        channel = TrainingInput(
            "s3://bucket/train",
            compression="Gzip",
            record_wrapping="RecordIO",
            input_mode="Pipe",
            attribute_names=["source-ref", "label"],
            shuffle_config=ShuffleConfig(42),
        )

        assert channel.config == {
            "DataSource": {
                "S3DataSource": {
                    "S3DataType": "S3Prefix",
                    "S3Uri": "s3://bucket/train",
                    "S3DataDistributionType": "FullyReplicated",
                    "AttributeNames": ["source-ref", "label"],
                }
            },
            "CompressionType": "Gzip",
            "RecordWrapperType": "RecordIO",
            "InputMode": "Pipe",
            "ShuffleConfig": {"Seed": 42},
        }

    def test_training_input_target_attribute_without_distribution(self):
        channel = TrainingInput("s3://bucket/train", target_attribute_name="label")
        assert "S3DataDistributionType" not in channel.config["DataSource"]["S3DataSource"]

    def test_file_system_input(self):
        channel = FileSystemInput("fs-1234", "EFS", "/data/train", content_type="text/csv")

        assert channel.config["DataSource"]["FileSystemDataSource"] == {
            "FileSystemId": "fs-1234",
            "FileSystemType": "EFS",
            "DirectoryPath": "/data/train",
            "FileSystemAccessMode": "ro",
        }
        assert channel.config["ContentType"] == "text/csv"

    @pytest.mark.parametrize("fs_type,mode", [("NFS", "ro"), ("EFS", "rwx")])
    def test_file_system_input_invalid(self, fs_type, mode):
        with pytest.raises(ValidationError):
            FileSystemInput("fs-1234", fs_type, "/data", file_system_access_mode=mode)

    def test_transform_input(self):
        config = TransformInput("s3://bucket/manifest", data_type="ManifestFile", compression_type="Gzip").to_request_dict()
        assert config == {
            "DataSource": {"S3DataSource": {"S3DataType": "ManifestFile", "S3Uri": "s3://bucket/manifest"}},
            "CompressionType": "Gzip",
        }
