"""
tests/smsdk/test_smsdk_processing.py - smsdk/processing.py 테스트
"""

from unittest.mock import MagicMock

import pytest

from core.exceptions import ValidationError
from smsdk.network import NetworkConfig
from smsdk.processing import ProcessingInput, ProcessingJob, ProcessingOutput, Processor, ScriptProcessor

IMAGE = "246618743249.dkr.ecr.us-west-2.amazonaws.com/sagemaker-scikit-learn:1.2-1-cpu-py3"
ROLE = "arn:aws:iam::123456789012:role/SageMakerRole"


@pytest.fixture
def s3_client(sagemaker_session):
    client = MagicMock(name="s3_client")
    sagemaker_session._s3_client = client
    return client


def _process_request(sagemaker_client):
    return sagemaker_client.create_processing_job.call_args.kwargs


class TestProcessor:
    """Processor.run() 테스트"""

    def test_run_request(self, sagemaker_session, sagemaker_client):
        processor = Processor(
            role=ROLE,
            image_uri=IMAGE,
            instance_count=1,
            instance_type="ml.m5.xlarge",
            entrypoint=["python3", "/opt/program/run.py"],
            max_runtime_in_seconds=600,
            env={"MODE": "eval"},
            network_config=NetworkConfig(enable_network_isolation=True, subnets=["subnet-1"], security_group_ids=["sg-1"]),
            sagemaker_session=sagemaker_session,
        )

        processor.run(
            inputs=[ProcessingInput(source="s3://bucket/raw/", destination="/opt/ml/processing/input")],
            outputs=[ProcessingOutput(source="/opt/ml/processing/output")],
            arguments=["--split", "0.2"],
            wait=False,
            logs=False,
            job_name="proc-1",
        )

        request = _process_request(sagemaker_client)
        assert request["ProcessingJobName"] == "proc-1"
        assert request["ProcessingInputs"] == [
            {
                "InputName": "input-1",
                "S3Input": {
                    "S3Uri": "s3://bucket/raw/",
                    "LocalPath": "/opt/ml/processing/input",
                    "S3DataType": "S3Prefix",
                    "S3InputMode": "File",
                    "S3DataDistributionType": "FullyReplicated",
                },
            }
        ]
        assert request["ProcessingOutputConfig"] == {
            "Outputs": [
                {
                    "OutputName": "output-1",
                    "S3Output": {
                        "S3Uri": "s3://sagemaker-test-bucket/proc-1/output/output-1",
                        "LocalPath": "/opt/ml/processing/output",
                        "S3UploadMode": "EndOfJob",
                    },
                }
            ]
        }
        assert request["ProcessingResources"] == {
            "ClusterConfig": {"InstanceType": "ml.m5.xlarge", "InstanceCount": 1, "VolumeSizeInGB": 30}
        }
        assert request["AppSpecification"] == {
            "ImageUri": IMAGE,
            "ContainerArguments": ["--split", "0.2"],
            "ContainerEntrypoint": ["python3", "/opt/program/run.py"],
        }
        assert request["StoppingCondition"] == {"MaxRuntimeInSeconds": 600}
        assert request["Environment"] == {"MODE": "eval"}
        assert request["NetworkConfig"] == {
            "EnableNetworkIsolation": True,
            "VpcConfig": {"SecurityGroupIds": ["sg-1"], "Subnets": ["subnet-1"]},
        }
        assert processor.latest_job.name == "proc-1"

    def test_logs_require_wait(self, sagemaker_session):
        processor = Processor(ROLE, IMAGE, 1, "ml.m5.xlarge", sagemaker_session=sagemaker_session)
        with pytest.raises(ValidationError):
            processor.run(wait=False, logs=True)

    def test_local_input_uploaded(self, sagemaker_session, sagemaker_client, s3_client, tmp_path):
        data = tmp_path / "data.csv"
        data.write_text("a,b\n1,2\n")
        processor = Processor(ROLE, IMAGE, 1, "ml.m5.xlarge", sagemaker_session=sagemaker_session)

        processor.run(
            inputs=[ProcessingInput(source=str(data), destination="/opt/ml/processing/input", input_name="raw")],
            wait=False,
            logs=False,
            job_name="proc-1",
        )

        s3_client.upload_file.assert_called_once_with(
            str(data), "sagemaker-test-bucket", "proc-1/input/raw/data.csv", ExtraArgs=None
        )
        s3_input = _process_request(sagemaker_client)["ProcessingInputs"][0]["S3Input"]
        assert s3_input["S3Uri"] == "s3://sagemaker-test-bucket/proc-1/input/raw/data.csv"
        assert "ProcessingOutputConfig" not in _process_request(sagemaker_client)

    def test_generated_job_name(self, sagemaker_session, sagemaker_client):
        processor = Processor(ROLE, IMAGE, 1, "ml.m5.xlarge", sagemaker_session=sagemaker_session)

        processor.run(wait=False, logs=False)

        assert _process_request(sagemaker_client)["ProcessingJobName"].startswith("sagemaker-scikit-learn-")

    def test_invalid_input_type(self, sagemaker_session):
        processor = Processor(ROLE, IMAGE, 1, "ml.m5.xlarge", sagemaker_session=sagemaker_session)
        with pytest.raises(ValidationError):
            processor.run(inputs=["s3://bucket/raw"], wait=False, logs=False)

    def test_gzip_requires_pipe(self):
        processing_input = ProcessingInput("s3://bucket/raw", "/opt/ml/processing/input", "raw", s3_compression_type="Gzip")
        with pytest.raises(ValidationError):
            processing_input._to_request_dict()

    def test_wait_without_logs(self, sagemaker_session, sagemaker_client):
        sagemaker_client.describe_processing_job.return_value = {"ProcessingJobStatus": "Completed"}
        processor = Processor(ROLE, IMAGE, 1, "ml.m5.xlarge", sagemaker_session=sagemaker_session)

        processor.run(wait=True, logs=False, job_name="proc-1")

        sagemaker_client.describe_processing_job.assert_called_with(ProcessingJobName="proc-1")


class TestScriptProcessor:
    """ScriptProcessor 테스트"""

    @pytest.fixture
    def processor(self, sagemaker_session):
        return ScriptProcessor(
            role=ROLE,
            image_uri=IMAGE,
            command=["python3"],
            instance_count=1,
            instance_type="ml.m5.xlarge",
            sagemaker_session=sagemaker_session,
        )

    def test_local_code_uploaded_as_code_input(self, processor, sagemaker_client, s3_client, tmp_path):
        script = tmp_path / "preprocess.py"
        script.write_text("print('preprocess')")

        processor.run(code=str(script), wait=False, logs=False, job_name="proc-1")

        s3_client.upload_file.assert_called_once_with(
            str(script), "sagemaker-test-bucket", "proc-1/input/code/preprocess.py", ExtraArgs=None
        )
        request = _process_request(sagemaker_client)
        code_input = request["ProcessingInputs"][-1]
        assert code_input["InputName"] == "code"
        assert code_input["S3Input"]["S3Uri"] == "s3://sagemaker-test-bucket/proc-1/input/code/preprocess.py"
        assert code_input["S3Input"]["LocalPath"] == "/opt/ml/processing/input/code"
        assert request["AppSpecification"]["ContainerEntrypoint"] == [
            "python3",
            "/opt/ml/processing/input/code/preprocess.py",
        ]

    def test_s3_code(self, processor, sagemaker_client, s3_client):
        processor.run(code="s3://bucket/code/evaluate.py", wait=False, logs=False, job_name="proc-1")

        s3_client.upload_file.assert_not_called()
        entrypoint = _process_request(sagemaker_client)["AppSpecification"]["ContainerEntrypoint"]
        assert entrypoint[-1] == "/opt/ml/processing/input/code/evaluate.py"

    def test_missing_code(self, processor, tmp_path):
        with pytest.raises(ValidationError):
            processor.run(code=str(tmp_path / "missing.py"), wait=False, logs=False)

    def test_directory_code(self, processor, tmp_path):
        with pytest.raises(ValidationError):
            processor.run(code=str(tmp_path), wait=False, logs=False)

    def test_unknown_scheme(self, processor):
        with pytest.raises(ValidationError):
            processor.run(code="https://example.com/script.py", wait=False, logs=False)


class TestProcessingJob:
    """ProcessingJob 복원 테스트"""

    def test_from_processing_arn(self, sagemaker_session, sagemaker_client):
        sagemaker_client.describe_processing_job.return_value = {
            "ProcessingJobName": "proc-1",
            "ProcessingInputs": [
                {
                    "InputName": "raw",
                    "S3Input": {"S3Uri": "s3://bucket/raw", "LocalPath": "/opt/ml/processing/input", "S3DataType": "S3Prefix"},
                }
            ],
            "ProcessingOutputConfig": {
                "KmsKeyId": "key-1",
                "Outputs": [
                    {
                        "OutputName": "result",
                        "S3Output": {"S3Uri": "s3://bucket/out", "LocalPath": "/opt/ml/processing/output", "S3UploadMode": "Continuous"},
                    }
                ],
            },
        }

        job = ProcessingJob.from_processing_arn(
            sagemaker_session, "arn:aws:sagemaker:us-west-2:123456789012:processing-job/proc-1"
        )

        sagemaker_client.describe_processing_job.assert_called_once_with(ProcessingJobName="proc-1")
        assert job.name == "proc-1"
        assert job.inputs[0].source == "s3://bucket/raw"
        assert job.outputs[0].s3_upload_mode == "Continuous"
        assert job.output_kms_key == "key-1"

    def test_stop(self, sagemaker_session, sagemaker_client):
        job = ProcessingJob(sagemaker_session, "proc-1", None, None)
        job.stop()
        sagemaker_client.stop_processing_job.assert_called_once_with(ProcessingJobName="proc-1")
