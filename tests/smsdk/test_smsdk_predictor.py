"""
tests/smsdk/test_smsdk_predictor.py - smsdk/predictor.py 테스트
"""

import io

import pytest
from botocore.response import StreamingBody

from core.exceptions import ValidationError
from smsdk.deserializers import JSONDeserializer
from smsdk.model_monitor import DefaultModelMonitor, ModelQualityMonitor
from smsdk.predictor import Predictor
from smsdk.serializers import CSVSerializer


def _response(data: bytes, content_type: str):
    return {"Body": StreamingBody(io.BytesIO(data), len(data)), "ContentType": content_type}


@pytest.fixture
def predictor(sagemaker_session, sagemaker_client):
    sagemaker_client.describe_endpoint.return_value = {
        "EndpointName": "my-endpoint",
        "EndpointArn": "arn:aws:sagemaker:us-west-2:123456789012:endpoint/my-endpoint",
        "EndpointConfigName": "my-endpoint-2024-01-01-00-00-00-000",
        "EndpointStatus": "InService",
    }
    sagemaker_client.describe_endpoint_config.return_value = {
        "EndpointConfigName": "my-endpoint-2024-01-01-00-00-00-000",
        "EndpointConfigArn": "arn:aws:sagemaker:us-west-2:123456789012:endpoint-config/my-endpoint",
        "ProductionVariants": [{"ModelName": "model-a", "VariantName": "AllTraffic", "InstanceType": "ml.m5.large"}],
    }
    return Predictor(
        "my-endpoint",
        sagemaker_session,
        serializer=CSVSerializer(),
        deserializer=JSONDeserializer(),
    )


class TestPredict:
    """predict() 요청/응답 테스트"""

    def test_predict(self, predictor, sagemaker_runtime_client):
        sagemaker_runtime_client.invoke_endpoint.return_value = _response(b'{"score": 0.9}', "application/json")

        result = predictor.predict([1, 2, 3], target_variant="AllTraffic", inference_id="req-1")

        assert result == {"score": 0.9}
        sagemaker_runtime_client.invoke_endpoint.assert_called_once_with(
            EndpointName="my-endpoint",
            ContentType="text/csv",
            Accept="application/json",
            TargetVariant="AllTraffic",
            InferenceId="req-1",
            Body="1,2,3",
        )

    def test_initial_args_override(self, predictor, sagemaker_runtime_client):
        sagemaker_runtime_client.invoke_endpoint.return_value = _response(b"[]", "application/json")

        predictor.predict("1,2", initial_args={"ContentType": "text/plain", "CustomAttributes": "x"})

        kwargs = sagemaker_runtime_client.invoke_endpoint.call_args.kwargs
        assert kwargs["ContentType"] == "text/plain"
        assert kwargs["CustomAttributes"] == "x"

    def test_default_serde(self, sagemaker_session, sagemaker_runtime_client):
        sagemaker_runtime_client.invoke_endpoint.return_value = _response(b"raw", "application/octet-stream")

        result = Predictor("ep", sagemaker_session).predict(b"payload")

        assert result == b"raw"
        kwargs = sagemaker_runtime_client.invoke_endpoint.call_args.kwargs
        assert kwargs["ContentType"] == "application/octet-stream"
        assert kwargs["Accept"] == "*/*"


class TestEndpointLifecycle:
    """update/delete/데이터 캡처 테스트"""

    def test_update_endpoint_instance_type(self, predictor, sagemaker_client):
        predictor.update_endpoint(initial_instance_count=2, instance_type="ml.c5.xlarge")

        request = sagemaker_client.create_endpoint_config.call_args.kwargs
        assert request["EndpointConfigName"].startswith("my-endpoint-")
        assert request["EndpointConfigName"] != "my-endpoint-2024-01-01-00-00-00-000"
        assert request["ProductionVariants"] == [
            {
                "ModelName": "model-a",
                "InstanceType": "ml.c5.xlarge",
                "InitialInstanceCount": 2,
                "VariantName": "AllTraffic",
                "InitialVariantWeight": 1,
            }
        ]
        sagemaker_client.update_endpoint.assert_called_once_with(
            EndpointName="my-endpoint", EndpointConfigName=request["EndpointConfigName"]
        )

    def test_update_endpoint_requires_both(self, predictor):
        with pytest.raises(ValidationError):
            predictor.update_endpoint(instance_type="ml.c5.xlarge")

    def test_update_endpoint_multiple_models(self, predictor, sagemaker_client):
        sagemaker_client.describe_endpoint_config.return_value["ProductionVariants"].append({"ModelName": "model-b"})
        with pytest.raises(ValidationError):
            predictor.update_endpoint(initial_instance_count=1, instance_type="ml.c5.xlarge")

    def test_delete_endpoint_and_model(self, predictor, sagemaker_client):
        predictor.delete_model()
        predictor.delete_endpoint()

        sagemaker_client.delete_model.assert_called_once_with(ModelName="model-a")
        sagemaker_client.delete_endpoint_config.assert_called_once_with(
            EndpointConfigName="my-endpoint-2024-01-01-00-00-00-000"
        )
        sagemaker_client.delete_endpoint.assert_called_once_with(EndpointName="my-endpoint")

    def test_delete_endpoint_keep_config(self, predictor, sagemaker_client):
        predictor.delete_endpoint(delete_endpoint_config=False)
        sagemaker_client.delete_endpoint_config.assert_not_called()

    def test_disable_data_capture(self, predictor, sagemaker_client):
        predictor.disable_data_capture()

        request = sagemaker_client.create_endpoint_config.call_args.kwargs
        assert request["DataCaptureConfig"]["EnableCapture"] is False
        sagemaker_client.update_endpoint.assert_called_once()


class TestListMonitors:
    """list_monitors() 테스트"""

    def test_no_schedules(self, predictor, sagemaker_client):
        sagemaker_client.list_monitoring_schedules.return_value = {"MonitoringScheduleSummaries": []}
        assert predictor.list_monitors() == []

    def test_monitor_types(self, predictor, sagemaker_client, monkeypatch):
        sagemaker_client.list_monitoring_schedules.return_value = {
            "MonitoringScheduleSummaries": [
                {"MonitoringScheduleName": "dq", "MonitoringType": "DataQuality"},
                {"MonitoringScheduleName": "mq", "MonitoringType": "ModelQuality"},
            ]
        }
        attached = []

        def fake_attach(cls):
            def _attach(monitor_schedule_name, sagemaker_session=None):
                attached.append((cls.__name__, monitor_schedule_name))
                return cls.__name__

            return _attach

        monkeypatch.setattr(DefaultModelMonitor, "attach", fake_attach(DefaultModelMonitor))
        monkeypatch.setattr(ModelQualityMonitor, "attach", fake_attach(ModelQualityMonitor))

        monitors = predictor.list_monitors()

        assert monitors == ["DefaultModelMonitor", "ModelQualityMonitor"]
        assert attached == [("DefaultModelMonitor", "dq"), ("ModelQualityMonitor", "mq")]
        assert sagemaker_client.list_monitoring_schedules.call_args.kwargs["EndpointName"] == "my-endpoint"
