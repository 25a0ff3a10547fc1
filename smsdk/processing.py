"""
smsdk/processing.py - 처리 작업 (Processing Job)

컨테이너 이미지로 임의의 전처리/평가 작업을 실행합니다 (CreateProcessingJob).
로컬 입력은 ``s3://{bucket}/{job_name}/input/{input_name}``으로 업로드되고,
S3가 아닌 출력 목적지는 ``s3://{bucket}/{job_name}/output/{output_name}``으로 치환됩니다.

Example:
    processor = ScriptProcessor(
        role="SageMakerRole",
        image_uri=image_uris.retrieve("sklearn", "ap-northeast-2", version="1.2-1"),
        command=["python3"],
        instance_count=1,
        instance_type="ml.m5.xlarge",
    )
    processor.run(
        code="preprocess.py",
        inputs=[ProcessingInput(source="s3://bucket/raw/", destination="/opt/ml/processing/input")],
        outputs=[ProcessingOutput(source="/opt/ml/processing/output")],
    )
"""

from __future__ import annotations

import logging
import os
from typing import Any
from urllib.parse import urlparse

from core.exceptions import ValidationError
from smsdk.job import _Job
from smsdk.logs import console
from smsdk.network import NetworkConfig
from smsdk.s3 import S3Uploader, s3_path_join
from smsdk.session import Session
from smsdk.utils import base_name_from_image, name_from_base

logger = logging.getLogger(__name__)


class Processor:
    """처리 작업 실행기

    Attributes:
        jobs: 이 Processor로 시작한 ProcessingJob 목록
        latest_job: 마지막 ProcessingJob
        arguments: 마지막 실행의 컨테이너 인자
    """

    def __init__(
        self,
        role: str,
        image_uri: str,
        instance_count: int,
        instance_type: str,
        entrypoint: list[str] | None = None,
        volume_size_in_gb: int = 30,
        volume_kms_key: str | None = None,
        output_kms_key: str | None = None,
        max_runtime_in_seconds: int | None = None,
        base_job_name: str | None = None,
        sagemaker_session: Session | None = None,
        env: dict[str, str] | None = None,
        tags: list[dict[str, str]] | None = None,
        network_config: NetworkConfig | None = None,
    ):
        self.role = role
        self.image_uri = image_uri
        self.instance_count = instance_count
        self.instance_type = instance_type
        self.entrypoint = entrypoint
        self.volume_size_in_gb = volume_size_in_gb
        self.volume_kms_key = volume_kms_key
        self.output_kms_key = output_kms_key
        self.max_runtime_in_seconds = max_runtime_in_seconds
        self.base_job_name = base_job_name
        self.sagemaker_session = sagemaker_session or Session()
        self.env = env
        self.tags = tags
        self.network_config = network_config

        self.jobs: list[ProcessingJob] = []
        self.latest_job: ProcessingJob | None = None
        self._current_job_name: str | None = None
        self.arguments: list[str] | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(image_uri={self.image_uri!r}, instance_type={self.instance_type!r})"

    def run(
        self,
        inputs: list[ProcessingInput] | None = None,
        outputs: list[ProcessingOutput] | None = None,
        arguments: list[str] | None = None,
        wait: bool = True,
        logs: bool = True,
        job_name: str | None = None,
        experiment_config: dict[str, str] | None = None,
    ) -> None:
        """처리 작업 실행

        Args:
            inputs: ProcessingInput 목록
            outputs: ProcessingOutput 목록
            arguments: 컨테이너 인자
            wait: 작업 종료까지 대기 여부
            logs: 대기 중 로그 출력 여부 (wait=True일 때만 의미 있음)
            job_name: 작업 이름 (None이면 자동 생성)
            experiment_config: 실험 연결 설정

        Raises:
            ValidationError: wait=False인데 logs=True인 경우, 입력/출력 타입이 잘못된 경우
        """
        if logs and not wait:
            raise ValidationError("logs", logs, "wait=True일 때만 logs=True 사용 가능")

        self._current_job_name = self._generate_current_job_name(job_name=job_name)

        normalized_inputs = self._normalize_inputs(inputs)
        normalized_outputs = self._normalize_outputs(outputs)
        self.arguments = arguments

        self._start_job(normalized_inputs, normalized_outputs, experiment_config, wait, logs)

    def _start_job(
        self,
        inputs: list[ProcessingInput],
        outputs: list[ProcessingOutput],
        experiment_config: dict[str, str] | None,
        wait: bool,
        logs: bool,
    ) -> None:
        self.latest_job = ProcessingJob.start_new(
            processor=self,
            inputs=inputs,
            outputs=outputs,
            experiment_config=experiment_config,
        )
        self.jobs.append(self.latest_job)
        if wait:
            self.latest_job.wait(logs=logs)

    def _generate_current_job_name(self, job_name: str | None = None) -> str:
        if job_name is not None:
            return job_name
        base_name = self.base_job_name or base_name_from_image(self.image_uri)
        return name_from_base(base_name)

    def _default_s3_prefix(self) -> str:
        return s3_path_join(
            "s3://",
            self.sagemaker_session.default_bucket(),
            self.sagemaker_session.default_bucket_prefix,
            self._current_job_name,
        )

    def _normalize_inputs(self, inputs: list[ProcessingInput] | None = None) -> list[ProcessingInput]:
        """입력 이름을 채우고 로컬 경로를 S3로 업로드"""
        normalized_inputs = []
        for count, file_input in enumerate(inputs or [], 1):
            if not isinstance(file_input, ProcessingInput):
                raise ValidationError("inputs", file_input, "ProcessingInput 객체")
            if not file_input.input_name:
                file_input.input_name = f"input-{count}"

            if urlparse(file_input.source).scheme != "s3":
                desired_s3_uri = s3_path_join(self._default_s3_prefix(), "input", file_input.input_name)
                file_input.source = S3Uploader.upload(
                    local_path=file_input.source,
                    desired_s3_uri=desired_s3_uri,
                    sagemaker_session=self.sagemaker_session,
                )
            normalized_inputs.append(file_input)
        return normalized_inputs

    def _normalize_outputs(self, outputs: list[ProcessingOutput] | None = None) -> list[ProcessingOutput]:
        """출력 이름을 채우고 S3가 아닌 목적지를 기본 위치로 치환"""
        normalized_outputs = []
        for count, output in enumerate(outputs or [], 1):
            if not isinstance(output, ProcessingOutput):
                raise ValidationError("outputs", output, "ProcessingOutput 객체")
            if not output.output_name:
                output.output_name = f"output-{count}"

            if urlparse(output.destination or "").scheme != "s3":
                output.destination = s3_path_join(self._default_s3_prefix(), "output", output.output_name)
            normalized_outputs.append(output)
        return normalized_outputs


class ScriptProcessor(Processor):
    """사용자 스크립트를 업로드해 ``command``로 실행하는 Processor"""

    _CODE_CONTAINER_BASE_PATH = "/opt/ml/processing/input/"
    _CODE_CONTAINER_INPUT_NAME = "code"

    def __init__(
        self,
        role: str,
        image_uri: str,
        command: list[str],
        instance_count: int,
        instance_type: str,
        volume_size_in_gb: int = 30,
        volume_kms_key: str | None = None,
        output_kms_key: str | None = None,
        max_runtime_in_seconds: int | None = None,
        base_job_name: str | None = None,
        sagemaker_session: Session | None = None,
        env: dict[str, str] | None = None,
        tags: list[dict[str, str]] | None = None,
        network_config: NetworkConfig | None = None,
    ):
        self.command = command
        super().__init__(
            role=role,
            image_uri=image_uri,
            instance_count=instance_count,
            instance_type=instance_type,
            volume_size_in_gb=volume_size_in_gb,
            volume_kms_key=volume_kms_key,
            output_kms_key=output_kms_key,
            max_runtime_in_seconds=max_runtime_in_seconds,
            base_job_name=base_job_name,
            sagemaker_session=sagemaker_session,
            env=env,
            tags=tags,
            network_config=network_config,
        )

    def run(
        self,
        code: str,
        inputs: list[ProcessingInput] | None = None,
        outputs: list[ProcessingOutput] | None = None,
        arguments: list[str] | None = None,
        wait: bool = True,
        logs: bool = True,
        job_name: str | None = None,
        experiment_config: dict[str, str] | None = None,
    ) -> None:
        """스크립트를 ``code`` 입력 채널로 전달하고 처리 작업 실행

        Args:
            code: 로컬 파일 경로 또는 S3 URI
        """
        if logs and not wait:
            raise ValidationError("logs", logs, "wait=True일 때만 logs=True 사용 가능")

        self._current_job_name = self._generate_current_job_name(job_name=job_name)

        user_code_s3_uri = self._handle_user_code_url(code)
        user_script_name = self._get_user_code_name(code)

        inputs_with_code = self._convert_code_and_add_to_inputs(inputs, user_code_s3_uri)
        self._set_entrypoint(self.command, user_script_name)

        normalized_inputs = self._normalize_inputs(inputs_with_code)
        normalized_outputs = self._normalize_outputs(outputs)
        self.arguments = arguments

        self._start_job(normalized_inputs, normalized_outputs, experiment_config, wait, logs)

    @staticmethod
    def _get_user_code_name(code: str) -> str:
        return os.path.basename(urlparse(code).path)

    def _handle_user_code_url(self, code: str) -> str:
        """S3 URI는 그대로, 로컬 파일은 업로드 후 S3 URI 반환

        Raises:
            ValidationError: 파일이 없거나 디렉토리인 경우, 알 수 없는 스킴인 경우
        """
        code_url = urlparse(code)
        if code_url.scheme == "s3":
            return code

        if code_url.scheme in ("", "file"):
            local_path = code_url.path if code_url.scheme == "file" else code
            if not os.path.exists(local_path):
                raise ValidationError("code", code, "존재하는 파일 경로")
            if not os.path.isfile(local_path):
                raise ValidationError("code", code, "디렉토리가 아닌 파일 경로")
            return self._upload_code(local_path)

        raise ValidationError("code", code, "로컬 파일 경로 또는 s3:// URI")

    def _upload_code(self, code: str) -> str:
        desired_s3_uri = s3_path_join(self._default_s3_prefix(), "input", self._CODE_CONTAINER_INPUT_NAME)
        return S3Uploader.upload(local_path=code, desired_s3_uri=desired_s3_uri, sagemaker_session=self.sagemaker_session)

    def _convert_code_and_add_to_inputs(self, inputs: list[ProcessingInput] | None, s3_uri: str) -> list[ProcessingInput]:
        code_file_input = ProcessingInput(
            source=s3_uri,
            destination=f"{self._CODE_CONTAINER_BASE_PATH}{self._CODE_CONTAINER_INPUT_NAME}",
            input_name=self._CODE_CONTAINER_INPUT_NAME,
        )
        return (inputs or []) + [code_file_input]

    def _set_entrypoint(self, command: list[str], user_script_name: str) -> None:
        user_script_location = f"{self._CODE_CONTAINER_BASE_PATH}{self._CODE_CONTAINER_INPUT_NAME}/{user_script_name}"
        self.entrypoint = list(command) + [user_script_location]


class ProcessingJob(_Job):
    """처리 작업 핸들

    Attributes:
        inputs: ProcessingInput 목록
        outputs: ProcessingOutput 목록
        output_kms_key: 출력 암호화 KMS 키
    """

    def __init__(
        self,
        sagemaker_session: Session,
        job_name: str,
        inputs: list[ProcessingInput] | None,
        outputs: list[ProcessingOutput] | None,
        output_kms_key: str | None = None,
    ):
        self.inputs = inputs
        self.outputs = outputs
        self.output_kms_key = output_kms_key
        super().__init__(sagemaker_session=sagemaker_session, job_name=job_name)

    @classmethod
    def start_new(
        cls,
        processor: Processor,
        inputs: list[ProcessingInput],
        outputs: list[ProcessingOutput],
        experiment_config: dict[str, str] | None,
    ) -> ProcessingJob:
        """Processor 설정으로 CreateProcessingJob 호출"""
        process_request_args: dict[str, Any] = {}

        process_request_args["inputs"] = [file_input._to_request_dict() for file_input in inputs]

        process_request_args["output_config"] = {"Outputs": [output._to_request_dict() for output in outputs]}
        if processor.output_kms_key is not None:
            process_request_args["output_config"]["KmsKeyId"] = processor.output_kms_key

        process_request_args["experiment_config"] = experiment_config
        process_request_args["job_name"] = processor._current_job_name

        process_request_args["resources"] = {
            "ClusterConfig": {
                "InstanceType": processor.instance_type,
                "InstanceCount": processor.instance_count,
                "VolumeSizeInGB": processor.volume_size_in_gb,
            }
        }
        if processor.volume_kms_key is not None:
            process_request_args["resources"]["ClusterConfig"]["VolumeKmsKeyId"] = processor.volume_kms_key

        if processor.max_runtime_in_seconds is not None:
            process_request_args["stopping_condition"] = {"MaxRuntimeInSeconds": processor.max_runtime_in_seconds}
        else:
            process_request_args["stopping_condition"] = None

        process_request_args["app_specification"] = {"ImageUri": processor.image_uri}
        if processor.arguments is not None:
            process_request_args["app_specification"]["ContainerArguments"] = processor.arguments
        if processor.entrypoint is not None:
            process_request_args["app_specification"]["ContainerEntrypoint"] = processor.entrypoint

        process_request_args["environment"] = processor.env

        if processor.network_config is not None:
            process_request_args["network_config"] = processor.network_config._to_request_dict()
        else:
            process_request_args["network_config"] = None

        process_request_args["role_arn"] = processor.sagemaker_session.expand_role(processor.role)
        process_request_args["tags"] = processor.tags

        console.print(f"\n[bold]Job Name:[/bold] {process_request_args['job_name']}")
        console.print("[bold]Inputs:[/bold]", process_request_args["inputs"])
        console.print("[bold]Outputs:[/bold]", process_request_args["output_config"]["Outputs"])

        processor.sagemaker_session.process(**process_request_args)

        return cls(
            processor.sagemaker_session,
            processor._current_job_name,
            inputs,
            outputs,
            processor.output_kms_key,
        )

    @classmethod
    def from_processing_name(cls, sagemaker_session: Session, processing_job_name: str) -> ProcessingJob:
        """기존 처리 작업 이름으로 ProcessingJob 복원"""
        job_desc = sagemaker_session.describe_processing_job(job_name=processing_job_name)

        inputs = None
        if job_desc.get("ProcessingInputs"):
            inputs = [
                ProcessingInput(
                    source=processing_input["S3Input"]["S3Uri"],
                    destination=processing_input["S3Input"]["LocalPath"],
                    input_name=processing_input["InputName"],
                    s3_data_type=processing_input["S3Input"].get("S3DataType", "S3Prefix"),
                    s3_input_mode=processing_input["S3Input"].get("S3InputMode", "File"),
                    s3_data_distribution_type=processing_input["S3Input"].get(
                        "S3DataDistributionType", "FullyReplicated"
                    ),
                    s3_compression_type=processing_input["S3Input"].get("S3CompressionType", "None"),
                )
                for processing_input in job_desc["ProcessingInputs"]
                if "S3Input" in processing_input
            ]

        outputs = None
        output_config = job_desc.get("ProcessingOutputConfig") or {}
        if output_config.get("Outputs"):
            outputs = [
                ProcessingOutput(
                    source=processing_output["S3Output"]["LocalPath"],
                    destination=processing_output["S3Output"]["S3Uri"],
                    output_name=processing_output["OutputName"],
                    s3_upload_mode=processing_output["S3Output"].get("S3UploadMode", "EndOfJob"),
                )
                for processing_output in output_config["Outputs"]
                if "S3Output" in processing_output
            ]

        return cls(
            sagemaker_session=sagemaker_session,
            job_name=processing_job_name,
            inputs=inputs,
            outputs=outputs,
            output_kms_key=output_config.get("KmsKeyId"),
        )

    @classmethod
    def from_processing_arn(cls, sagemaker_session: Session, processing_job_arn: str) -> ProcessingJob:
        """처리 작업 ARN(arn:aws:sagemaker:...:processing-job/NAME)으로 복원"""
        processing_job_name = processing_job_arn.split(":")[5][len("processing-job/") :]
        return cls.from_processing_name(sagemaker_session=sagemaker_session, processing_job_name=processing_job_name)

    def wait(self, logs: bool = True) -> None:
        if logs:
            self.sagemaker_session.logs_for_processing_job(self.job_name, wait=True)
        else:
            self.sagemaker_session.wait_for_processing_job(self.job_name)

    def describe(self) -> dict[str, Any]:
        return self.sagemaker_session.describe_processing_job(self.job_name)

    def stop(self) -> None:
        self.sagemaker_session.stop_processing_job(self.name)


class ProcessingInput:
    """처리 작업 S3 입력"""

    def __init__(
        self,
        source: str,
        destination: str,
        input_name: str | None = None,
        s3_data_type: str = "S3Prefix",
        s3_input_mode: str = "File",
        s3_data_distribution_type: str = "FullyReplicated",
        s3_compression_type: str = "None",
    ):
        self.source = source
        self.destination = destination
        self.input_name = input_name
        self.s3_data_type = s3_data_type
        self.s3_input_mode = s3_input_mode
        self.s3_data_distribution_type = s3_data_distribution_type
        self.s3_compression_type = s3_compression_type

    def __repr__(self) -> str:
        return f"ProcessingInput(source={self.source!r}, destination={self.destination!r})"

    def _to_request_dict(self) -> dict[str, Any]:
        """ProcessingInputs 요소 생성

        Raises:
            ValidationError: Pipe 모드가 아닌데 Gzip 압축을 지정한 경우
        """
        s3_input_request: dict[str, Any] = {
            "InputName": self.input_name,
            "S3Input": {
                "S3Uri": self.source,
                "LocalPath": self.destination,
                "S3DataType": self.s3_data_type,
                "S3InputMode": self.s3_input_mode,
                "S3DataDistributionType": self.s3_data_distribution_type,
            },
        }

        if self.s3_compression_type == "Gzip" and self.s3_input_mode != "Pipe":
            raise ValidationError("s3_compression_type", self.s3_compression_type, "Pipe 입력 모드에서만 Gzip 사용")
        if self.s3_compression_type != "None":
            s3_input_request["S3Input"]["S3CompressionType"] = self.s3_compression_type

        return s3_input_request


class ProcessingOutput:
    """처리 작업 S3 출력"""

    def __init__(
        self,
        source: str,
        destination: str | None = None,
        output_name: str | None = None,
        s3_upload_mode: str = "EndOfJob",
    ):
        self.source = source
        self.destination = destination
        self.output_name = output_name
        self.s3_upload_mode = s3_upload_mode

    def __repr__(self) -> str:
        return f"ProcessingOutput(source={self.source!r}, destination={self.destination!r})"

    def _to_request_dict(self) -> dict[str, Any]:
        return {
            "OutputName": self.output_name,
            "S3Output": {
                "S3Uri": self.destination,
                "LocalPath": self.source,
                "S3UploadMode": self.s3_upload_mode,
            },
        }
