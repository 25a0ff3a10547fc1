"""
tests/core/test_core_config.py - core/config.py 테스트
"""

from pathlib import Path

import pytest

from core.config import (
    ENV_CONFIG,
    SDKConfig,
    get_config_value,
    get_version,
    load_config,
    resolve_config_path,
)
from core.exceptions import ConfigError


def _write(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


class TestSDKConfig:
    """SDKConfig 데이터클래스 테스트"""

    def test_default_values(self):
        """기본값 확인"""
        config = SDKConfig()
        assert config.region is None
        assert config.job_poll == 5
        assert config.endpoint_poll == 30
        assert config.logs_poll == 10
        assert config.log_level == "WARNING"
        assert config.retry_attempts == 5
        assert config.tags == []

    def test_from_dict(self):
        config = SDKConfig.from_dict(
            {
                "region": "ap-northeast-2",
                "role": "SageMakerRole",
                "default_bucket": "my-bucket",
                "poll": {"job": 2, "endpoint": 10},
                "log_level": "debug",
                "tags": [{"Key": "team", "Value": "ml"}],
            }
        )

        assert config.region == "ap-northeast-2"
        assert config.role == "SageMakerRole"
        assert config.default_bucket == "my-bucket"
        assert config.job_poll == 2
        assert config.endpoint_poll == 10
        assert config.logs_poll == 10
        assert config.log_level == "DEBUG"
        assert config.tags == [{"Key": "team", "Value": "ml"}]

    def test_from_dict_invalid_poll(self):
        with pytest.raises(ConfigError):
            SDKConfig.from_dict({"poll": [1, 2]})

    def test_from_dict_non_integer_poll(self):
        with pytest.raises(ConfigError):
            SDKConfig.from_dict({"poll": {"job": "fast"}})

    def test_from_dict_invalid_tags(self):
        """태그는 Key를 가진 매핑 목록이어야 함"""
        with pytest.raises(ConfigError):
            SDKConfig.from_dict({"tags": ["team=ml"]})


class TestResolveConfigPath:
    """설정 파일 경로 우선순위 테스트"""

    def test_no_config(self):
        assert resolve_config_path() is None

    def test_explicit_path(self, tmp_path):
        path = _write(tmp_path / "config.yaml", "region: us-east-1\n")
        assert resolve_config_path(str(path)) == path

    def test_explicit_path_missing(self, tmp_path):
        with pytest.raises(ConfigError):
            resolve_config_path(str(tmp_path / "nope.yaml"))

    def test_env_var(self, tmp_path, monkeypatch):
        path = _write(tmp_path / "env.yaml", "region: eu-west-1\n")
        monkeypatch.setenv(ENV_CONFIG, str(path))

        assert resolve_config_path() == path

    def test_home_default(self, tmp_path, monkeypatch):
        """환경변수가 없으면 홈 디렉토리 설정 사용"""
        from core import config

        path = _write(tmp_path / "home.yaml", "region: eu-west-1\n")
        monkeypatch.setattr(config, "DEFAULT_CONFIG_PATH", path)

        assert resolve_config_path() == path


class TestLoadConfig:
    """load_config 테스트"""

    def test_defaults_without_file(self):
        assert load_config() == SDKConfig()

    def test_load_yaml(self, tmp_path):
        path = _write(
            tmp_path / "config.yaml",
            "region: ap-northeast-2\npoll:\n  job: 1\n  logs: 3\nretry_attempts: 8\n",
        )

        config = load_config(str(path))

        assert config.region == "ap-northeast-2"
        assert config.job_poll == 1
        assert config.logs_poll == 3
        assert config.retry_attempts == 8

    def test_empty_file(self, tmp_path):
        path = _write(tmp_path / "empty.yaml", "")
        assert load_config(str(path)) == SDKConfig()

    def test_invalid_yaml(self, tmp_path):
        path = _write(tmp_path / "bad.yaml", "region: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_top_level_must_be_mapping(self, tmp_path):
        path = _write(tmp_path / "list.yaml", "- a\n- b\n")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_cached(self, tmp_path):
        """같은 경로는 캐시된 인스턴스 반환"""
        path = _write(tmp_path / "config.yaml", "region: us-east-1\n")
        assert load_config(str(path)) is load_config(str(path))


class TestHelpers:
    """get_config_value / get_version 테스트"""

    def test_get_config_value(self):
        data = {"poll": {"job": 5}}
        assert get_config_value("poll.job", data) == 5
        assert get_config_value("poll.endpoint", data) is None
        assert get_config_value("poll", None) is None

    def test_get_version(self):
        """버전 형식 확인 (x.y.z)"""
        version = get_version()
        parts = version.split(".")
        assert len(parts) >= 2
        for part in parts:
            assert part.isdigit()
