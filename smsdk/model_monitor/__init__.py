"""
smsdk/model_monitor - 엔드포인트 모델 모니터링

- DataCaptureConfig: 엔드포인트 요청/응답 캡처 설정
- DefaultModelMonitor: 데이터 품질 (DataQuality)
- ModelQualityMonitor: 모델 품질 (ModelQuality)
- ModelBiasMonitor / ModelExplainabilityMonitor: Clarify 편향/설명 가능성
- Statistics / Constraints / ConstraintViolations: 기준선 및 실행 결과 파일
"""

from smsdk.model_monitor.clarify_model_monitoring import (
    BiasAnalysisConfig,
    ClarifyBaseliningConfig,
    ClarifyBaseliningJob,
    ClarifyModelMonitor,
    ClarifyMonitoringExecution,
    ExplainabilityAnalysisConfig,
    ModelBiasMonitor,
    ModelExplainabilityMonitor,
)
from smsdk.model_monitor.cron_expression_generator import CronExpressionGenerator
from smsdk.model_monitor.data_capture_config import DataCaptureConfig
from smsdk.model_monitor.dataset_format import DatasetFormat, MonitoringDatasetFormat
from smsdk.model_monitor.model_monitoring import (
    BaselineJob,
    DefaultModelMonitor,
    EndpointInput,
    ModelMonitor,
    ModelQualityMonitor,
    MonitoringExecution,
    MonitoringOutput,
)
from smsdk.model_monitor.monitoring_files import ConstraintViolations, Constraints, Statistics

__all__ = [
    "BaselineJob",
    "BiasAnalysisConfig",
    "ClarifyBaseliningConfig",
    "ClarifyBaseliningJob",
    "ClarifyModelMonitor",
    "ClarifyMonitoringExecution",
    "ConstraintViolations",
    "Constraints",
    "CronExpressionGenerator",
    "DataCaptureConfig",
    "DatasetFormat",
    "DefaultModelMonitor",
    "EndpointInput",
    "ExplainabilityAnalysisConfig",
    "ModelBiasMonitor",
    "ModelExplainabilityMonitor",
    "ModelMonitor",
    "ModelQualityMonitor",
    "MonitoringDatasetFormat",
    "MonitoringExecution",
    "MonitoringOutput",
    "Statistics",
]
