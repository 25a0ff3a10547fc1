# tests/cli/test_app.py
"""
cli/app.py 단위 테스트

sma 명령의 조회/대기/로그/중지, 설정 출력, 오류 종료 코드를 검증합니다.
세션은 ``cli.app._make_session`` 을 패치해 MagicMock으로 대체합니다.
"""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError
from click.testing import CliRunner

from core.exceptions import APICallError


@pytest.fixture
def runner():
    """Click CliRunner"""
    return CliRunner()


@pytest.fixture
def session():
    """_make_session이 반환할 smsdk Session 목"""
    mock_session = MagicMock(name="session")
    with patch("cli.app._make_session", return_value=mock_session) as factory:
        mock_session.factory = factory
        yield mock_session


# =============================================================================
# 기본 옵션
# =============================================================================


class TestCliBasics:
    """버전/도움말 테스트"""

    def test_version(self, runner):
        from cli.app import cli
        from core.config import get_version

        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert get_version() in result.output
        assert "sma" in result.output

    def test_help_lists_commands(self, runner):
        from cli.app import cli

        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("describe", "wait", "logs", "stop", "image-uri", "config"):
            assert command in result.output


# =============================================================================
# 작업 명령
# =============================================================================


class TestJobCommands:
    """describe / wait / logs / stop 테스트"""

    def test_describe_training(self, runner, session):
        from cli.app import cli

        session.describe_training_job.return_value = {
            "TrainingJobName": "xgb-job",
            "TrainingJobStatus": "Completed",
            "ResponseMetadata": {"RequestId": "abc"},
        }

        result = runner.invoke(cli, ["--region", "us-west-2", "describe", "training", "xgb-job"])

        assert result.exit_code == 0
        session.factory.assert_called_once_with("us-west-2", None)
        session.describe_training_job.assert_called_once_with("xgb-job")
        assert '"TrainingJobStatus": "Completed"' in result.output
        assert "ResponseMetadata" not in result.output

    def test_describe_invalid_target(self, runner, session):
        from cli.app import cli

        result = runner.invoke(cli, ["describe", "notebook", "nb-1"])

        assert result.exit_code == 2
        session.factory.assert_not_called()

    def test_wait_endpoint(self, runner, session):
        from cli.app import cli

        session.wait_for_endpoint.return_value = {"EndpointStatus": "InService"}

        result = runner.invoke(cli, ["wait", "endpoint", "xgb-endpoint", "--poll", "1"])

        assert result.exit_code == 0
        session.wait_for_endpoint.assert_called_once_with("xgb-endpoint", poll=1)
        assert "xgb-endpoint: InService" in result.output

    def test_wait_training_default_poll(self, runner, session):
        from cli.app import cli

        session.wait_for_job.return_value = {"TrainingJobStatus": "Completed"}

        result = runner.invoke(cli, ["wait", "training", "xgb-job"])

        assert result.exit_code == 0
        session.wait_for_job.assert_called_once_with("xgb-job", poll=None)

    def test_logs_processing(self, runner, session):
        from cli.app import cli

        result = runner.invoke(cli, ["logs", "processing", "proc-1", "--wait"])

        assert result.exit_code == 0
        session.logs_for_processing_job.assert_called_once_with("proc-1", wait=True)

    def test_stop_tuning(self, runner, session):
        from cli.app import cli

        result = runner.invoke(cli, ["stop", "tuning", "hpo-1"])

        assert result.exit_code == 0
        session.stop_tuning_job.assert_called_once_with("hpo-1")
        assert "중지 요청: hpo-1" in result.output

    def test_sm_error_exit_code(self, runner, session):
        from cli.app import cli

        session.describe_endpoint.side_effect = APICallError(
            "sagemaker", "describe_endpoint", "ValidationException", "Could not find endpoint"
        )

        result = runner.invoke(cli, ["describe", "endpoint", "missing"])

        assert result.exit_code == 1
        assert "오류:" in result.output

    def test_client_error_exit_code(self, runner, session):
        from cli.app import cli

        session.stop_training_job.side_effect = ClientError(
            {"Error": {"Code": "AccessDeniedException", "Message": "denied"}},
            "StopTrainingJob",
        )

        result = runner.invoke(cli, ["stop", "training", "xgb-job"])

        assert result.exit_code == 1
        assert "오류:" in result.output


# =============================================================================
# image-uri / config
# =============================================================================


class TestImageUriCommand:
    """image-uri 명령 테스트"""

    def test_xgboost(self, runner):
        from cli.app import cli

        result = runner.invoke(cli, ["image-uri", "xgboost", "--version", "1.7-1", "--region", "us-west-2"])

        assert result.exit_code == 0
        assert result.output.strip() == "246618743249.dkr.ecr.us-west-2.amazonaws.com/sagemaker-xgboost:1.7-1"

    def test_region_from_group_option(self, runner):
        from cli.app import cli

        result = runner.invoke(cli, ["--region", "us-west-2", "image-uri", "model-monitor"])

        assert result.exit_code == 0
        assert result.output.strip() == (
            "159807026194.dkr.ecr.us-west-2.amazonaws.com/sagemaker-model-monitor-analyzer:latest"
        )

    def test_unknown_version(self, runner):
        from cli.app import cli

        result = runner.invoke(cli, ["image-uri", "xgboost", "--version", "0.1", "--region", "us-west-2"])

        assert result.exit_code == 1
        assert "오류:" in result.output


class TestConfigShow:
    """config show 명령 테스트"""

    def test_show_file(self, runner, tmp_path):
        from cli.app import cli

        config_file = tmp_path / "config.yaml"
        config_file.write_text("region: ap-northeast-2\npoll:\n  job: 7\n", encoding="utf-8")

        result = runner.invoke(cli, ["config", "show", "--config", str(config_file)])

        assert result.exit_code == 0
        assert '"region": "ap-northeast-2"' in result.output
        assert '"job_poll": 7' in result.output

    def test_missing_file(self, runner, tmp_path):
        from cli.app import cli

        result = runner.invoke(cli, ["config", "show", "--config", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 1
        assert "오류:" in result.output
