"""
tests/smsdk/test_smsdk_utils.py - smsdk/utils.py 테스트
"""

import os
import tarfile
from datetime import datetime
from unittest.mock import patch

import pytest

from core.exceptions import SMError
from smsdk.utils import (
    MAX_NAME_LENGTH,
    base_from_name,
    base_name_from_image,
    build_dict,
    create_tar_file,
    download_folder,
    get_short_version,
    name_from_base,
    retries,
    sagemaker_timestamp,
    secondary_training_status_changed,
    secondary_training_status_message,
    to_str,
    unique_name_from_base,
)

# =============================================================================
# 이름 생성
# =============================================================================


class TestNameGeneration:
    """리소스 이름 생성 테스트"""

    def test_timestamp_format(self):
        ts = sagemaker_timestamp()
        parts = ts.split("-")
        assert len(parts) == 7
        assert all(p.isdigit() for p in parts)
        assert len(parts[-1]) == 3

    def test_name_from_base(self):
        name = name_from_base("xgboost")
        assert name.startswith("xgboost-")
        assert base_from_name(name) == "xgboost"

    def test_name_from_base_truncates(self):
        """63자를 넘지 않도록 base를 잘라냄"""
        name = name_from_base("a" * 100)
        assert len(name) == MAX_NAME_LENGTH

    def test_short_name(self):
        name = name_from_base("model", short=True)
        assert base_from_name(name) == "model"

    def test_unique_name(self):
        name = unique_name_from_base("tuning-job", max_length=32)
        assert len(name) <= 32
        assert name.startswith("tuning-job-")

    def test_base_from_name_without_timestamp(self):
        assert base_from_name("my-custom-name") == "my-custom-name"

    @pytest.mark.parametrize(
        "image,expected",
        [
            ("123456789012.dkr.ecr.us-east-1.amazonaws.com/xgboost:1.5-1", "xgboost"),
            ("123456789012.dkr.ecr.us-east-1.amazonaws.com/team/my-algo", "my-algo"),
            ("my-algo:latest", "my-algo"),
        ],
    )
    def test_base_name_from_image(self, image, expected):
        assert base_name_from_image(image) == expected


class TestSmallHelpers:
    """build_dict / get_short_version / to_str 테스트"""

    def test_build_dict(self):
        assert build_dict("KmsKeyId", "key") == {"KmsKeyId": "key"}
        assert build_dict("KmsKeyId", None) == {}

    def test_get_short_version(self):
        assert get_short_version("1.13.1") == "1.13"
        assert get_short_version("2.0") == "2.0"

    @pytest.mark.parametrize("value,expected", [(True, "True"), ("abc", "abc"), (0.01, "0.01"), (10, "10")])
    def test_to_str(self, value, expected):
        assert to_str(value) == expected


# =============================================================================
# 학습 보조 상태
# =============================================================================


def _transition(status, message):
    return {"Status": status, "StatusMessage": message}


class TestSecondaryStatus:
    """SecondaryStatusTransitions 출력 테스트"""

    def test_changed_without_previous(self):
        desc = {"SecondaryStatusTransitions": [_transition("Starting", "Launching instances")]}
        assert secondary_training_status_changed(desc, None)

    def test_unchanged(self):
        desc = {"SecondaryStatusTransitions": [_transition("Starting", "Launching instances")]}
        assert not secondary_training_status_changed(desc, dict(desc))

    def test_no_transitions(self):
        assert not secondary_training_status_changed({}, None)
        assert secondary_training_status_message({}, None) == ""

    def test_message_prints_new_transitions(self):
        prev = {"SecondaryStatusTransitions": [_transition("Starting", "Launching")]}
        current = {
            "SecondaryStatusTransitions": [
                _transition("Starting", "Launching"),
                _transition("Downloading", "Downloading data"),
            ],
            "LastModifiedTime": datetime(2024, 1, 1, 9, 30, 0),
        }

        message = secondary_training_status_message(current, prev)

        assert message == "2024-01-01 09:30:00 Downloading - Downloading data"


# =============================================================================
# 파일/재시도
# =============================================================================


class TestCreateTarFile:
    """create_tar_file 테스트"""

    def test_files_and_directories(self, tmp_path):
        script = tmp_path / "train.py"
        script.write_text("print('hi')")
        lib = tmp_path / "lib"
        lib.mkdir()
        (lib / "util.py").write_text("")

        target = str(tmp_path / "sourcedir.tar.gz")
        result = create_tar_file([str(script), str(lib)], target=target)

        assert result == target
        with tarfile.open(result) as t:
            assert sorted(t.getnames()) == ["train.py", "util.py"]

    def test_temp_target(self, tmp_path):
        script = tmp_path / "inference.py"
        script.write_text("")

        result = create_tar_file([str(script)])
        try:
            assert result.endswith(".tar.gz")
            assert os.path.exists(result)
        finally:
            os.remove(result)


class TestDownloadFolder:
    """download_folder 테스트 (moto)"""

    BUCKET = "sagemaker-test-bucket"

    def test_stays_inside_target(self, moto_s3, moto_session, tmp_path):
        moto_s3.put_object(Bucket=self.BUCKET, Key="data/train/a.csv", Body=b"1")
        moto_s3.put_object(Bucket=self.BUCKET, Key="data/train2/x.csv", Body=b"2")
        target = tmp_path / "out"

        downloaded = download_folder(self.BUCKET, "data/train", str(target), moto_session)

        assert downloaded == [str(target / "a.csv")]
        assert not (tmp_path / "train2").exists()

    def test_leading_slash_and_single_key(self, moto_s3, moto_session, tmp_path):
        moto_s3.put_object(Bucket=self.BUCKET, Key="data/train/a.csv", Body=b"1")

        downloaded = download_folder(self.BUCKET, "/data/train/a.csv", str(tmp_path), moto_session)

        assert downloaded == [str(tmp_path / "a.csv")]
        assert (tmp_path / "a.csv").read_bytes() == b"1"

    def test_empty_prefix_downloads_everything(self, moto_s3, moto_session, tmp_path):
        moto_s3.put_object(Bucket=self.BUCKET, Key="a.csv", Body=b"1")
        moto_s3.put_object(Bucket=self.BUCKET, Key="dir/b.csv", Body=b"2")

        downloaded = download_folder(self.BUCKET, "", str(tmp_path), moto_session)

        assert sorted(downloaded) == [str(tmp_path / "a.csv"), str(tmp_path / "dir" / "b.csv")]


class TestRetries:
    """retries 제너레이터 테스트"""

    @patch("smsdk.utils.time.sleep")
    def test_break_before_exhausted(self, mock_sleep):
        for i in retries(5, "대기"):
            if i == 2:
                break
        assert mock_sleep.call_count == 2

    @patch("smsdk.utils.time.sleep")
    def test_exhausted_raises(self, mock_sleep):
        with pytest.raises(SMError, match="스케줄 반영 대기"):
            for _ in retries(3, "스케줄 반영 대기", seconds_to_sleep=5):
                pass
        assert mock_sleep.call_count == 3
        mock_sleep.assert_called_with(5)
