"""
tests/smsdk/test_smsdk_s3.py - smsdk/s3.py 테스트

경로 파싱은 순수 함수 테스트, 업로드/다운로드는 moto S3로 검증합니다.
"""

from unittest.mock import MagicMock, patch

import pytest

from core.exceptions import APICallError, ValidationError
from smsdk.s3 import S3Downloader, S3Uploader, is_s3_url, parse_s3_url, s3_path_join

BUCKET = "sagemaker-test-bucket"


class TestS3Paths:
    """S3 경로 헬퍼 테스트"""

    def test_parse_s3_url(self):
        assert parse_s3_url("s3://bucket/prefix/data.csv") == ("bucket", "prefix/data.csv")
        assert parse_s3_url("s3://bucket") == ("bucket", "")

    def test_parse_non_s3(self):
        with pytest.raises(ValidationError):
            parse_s3_url("https://bucket/key")

    def test_is_s3_url(self):
        assert is_s3_url("S3://bucket/key")
        assert not is_s3_url("file:///tmp/data")
        assert not is_s3_url(None)

    def test_s3_path_join(self):
        assert s3_path_join("s3://bucket/", "/prefix/", "file.json") == "s3://bucket/prefix/file.json"
        assert s3_path_join("prefix", "", "sub/") == "prefix/sub"


class TestS3UploadDownload:
    """moto S3 통합 테스트"""

    def test_upload_file_and_read(self, moto_session, tmp_path):
        local = tmp_path / "statistics.json"
        local.write_text('{"version": 0.0}')

        uri = S3Uploader.upload(str(local), f"s3://{BUCKET}/baseline", sagemaker_session=moto_session)

        assert uri == f"s3://{BUCKET}/baseline/statistics.json"
        assert S3Downloader.read_file(uri, sagemaker_session=moto_session) == '{"version": 0.0}'

    def test_upload_directory(self, moto_session, tmp_path):
        source = tmp_path / "code"
        (source / "lib").mkdir(parents=True)
        (source / "train.py").write_text("")
        (source / "lib" / "util.py").write_text("")

        uri = S3Uploader.upload(str(source), f"s3://{BUCKET}/code", sagemaker_session=moto_session)

        assert uri == f"s3://{BUCKET}/code"
        listed = S3Downloader.list(uri, sagemaker_session=moto_session)
        assert sorted(listed) == [f"s3://{BUCKET}/code/lib/util.py", f"s3://{BUCKET}/code/train.py"]

    def test_upload_string_and_download(self, moto_session, tmp_path):
        uri = S3Uploader.upload_string_as_file_body(
            '{"features": []}', f"s3://{BUCKET}/analysis/analysis_config.json", sagemaker_session=moto_session
        )

        downloaded = S3Downloader.download(f"s3://{BUCKET}/analysis", str(tmp_path), sagemaker_session=moto_session)

        assert uri == f"s3://{BUCKET}/analysis/analysis_config.json"
        assert downloaded == [str(tmp_path / "analysis_config.json")]
        assert (tmp_path / "analysis_config.json").read_text() == '{"features": []}'

    def test_read_missing_file(self, moto_session):
        """없는 객체는 APICallError (NoSuchKey)"""
        with pytest.raises(APICallError) as exc_info:
            S3Downloader.read_file(f"s3://{BUCKET}/missing.json", sagemaker_session=moto_session)
        assert exc_info.value.error_code == "NoSuchKey"

    def test_default_bucket_created(self, moto_s3, sagemaker_client, sdk_config):
        """기본 버킷이 없으면 LocationConstraint와 함께 생성"""
        import boto3

        from smsdk.session import Session

        session = Session(
            boto_session=boto3.Session(region_name="us-west-2"),
            sagemaker_client=sagemaker_client,
            default_bucket="another-bucket",
            config=sdk_config,
        )

        assert session.default_bucket() == "another-bucket"
        names = [b["Name"] for b in moto_s3.list_buckets()["Buckets"]]
        assert "another-bucket" in names


class TestS3DownloadPrefix:
    """prefix 경계 처리 (moto)"""

    def test_sibling_prefix_excluded(self, moto_s3, moto_session, tmp_path):
        moto_s3.put_object(Bucket=BUCKET, Key="analysis/a.json", Body=b"a")
        moto_s3.put_object(Bucket=BUCKET, Key="analysis2/b.json", Body=b"b")

        downloaded = moto_session.download_data(str(tmp_path), BUCKET, "analysis")

        assert downloaded == [str(tmp_path / "a.json")]
        assert not (tmp_path / "2").exists()

    def test_nested_keys_keep_relative_path(self, moto_s3, moto_session, tmp_path):
        moto_s3.put_object(Bucket=BUCKET, Key="reports/run-1/statistics.json", Body=b"{}")
        moto_s3.put_object(Bucket=BUCKET, Key="reports/run-1/sub/constraints.json", Body=b"{}")

        downloaded = S3Downloader.download(
            f"s3://{BUCKET}/reports/run-1/", str(tmp_path), sagemaker_session=moto_session
        )

        assert sorted(downloaded) == [
            str(tmp_path / "statistics.json"),
            str(tmp_path / "sub" / "constraints.json"),
        ]

    def test_single_object(self, moto_s3, moto_session, tmp_path):
        moto_s3.put_object(Bucket=BUCKET, Key="model/model.tar.gz", Body=b"model")
        moto_s3.put_object(Bucket=BUCKET, Key="model/model.tar.gz.bak", Body=b"old")

        downloaded = S3Downloader.download(
            f"s3://{BUCKET}/model/model.tar.gz", str(tmp_path / "out"), sagemaker_session=moto_session
        )

        assert downloaded == [str(tmp_path / "out" / "model.tar.gz")]
        assert (tmp_path / "out" / "model.tar.gz").read_bytes() == b"model"


class TestDefaultSession:
    """sagemaker_session 생략 시 기본 Session 생성"""

    @patch("smsdk.s3.Session")
    def test_upload_without_session(self, mock_session_cls, tmp_path):
        session = MagicMock(name="session")
        session.upload_data.return_value = f"s3://{BUCKET}/data/train.csv"
        mock_session_cls.return_value = session
        local = tmp_path / "train.csv"
        local.write_text("1,2")

        uri = S3Uploader.upload(str(local), f"s3://{BUCKET}/data")

        assert uri == f"s3://{BUCKET}/data/train.csv"
        mock_session_cls.assert_called_once_with()
        session.upload_data.assert_called_once_with(
            path=str(local), bucket=BUCKET, key_prefix="data", extra_args=None
        )

    @patch("smsdk.s3.Session")
    def test_string_upload_without_session(self, mock_session_cls):
        S3Uploader.upload_string_as_file_body("{}", f"s3://{BUCKET}/baseline/constraints.json")

        mock_session_cls.return_value.upload_string_as_file_body.assert_called_once_with(
            body="{}", bucket=BUCKET, key="baseline/constraints.json", kms_key=None
        )

    @patch("smsdk.s3.Session")
    def test_downloader_without_session(self, mock_session_cls):
        session = mock_session_cls.return_value
        session.read_s3_file.return_value = "{}"
        session.list_s3_files.return_value = ["baseline/statistics.json"]

        assert S3Downloader.read_file(f"s3://{BUCKET}/baseline/statistics.json") == "{}"
        assert S3Downloader.list(f"s3://{BUCKET}/baseline") == [f"s3://{BUCKET}/baseline/statistics.json"]
        S3Downloader.download(f"s3://{BUCKET}/baseline", "/tmp/baseline")

        session.read_s3_file.assert_called_once_with(BUCKET, "baseline/statistics.json")
        session.download_data.assert_called_once_with(
            path="/tmp/baseline", bucket=BUCKET, key_prefix="baseline", extra_args=None
        )
