# smsdk/__init__.py
"""
smsdk - SageMaker 객체 모델 클라이언트

Estimator, Model, Predictor, Transformer, Processor, HyperparameterTuner,
ModelMonitor 객체의 메서드 호출을 SageMaker API 요청으로 변환하고
Describe 호출로 작업 상태를 추적합니다.

구조:
    smsdk/
    ├── session.py          # boto3 SageMaker/S3/Logs 클라이언트 래퍼
    ├── estimator.py        # 학습 작업 (Estimator, Framework)
    ├── model.py            # 모델 생성/배포/등록 (Model, FrameworkModel, ModelPackage)
    ├── model_metrics.py    # 모델 패키지 지표 (ModelMetrics, MetricsSource)
    ├── pipeline.py         # 추론 파이프라인 (PipelineModel)
    ├── predictor.py        # 실시간 추론 (Predictor)
    ├── transformer.py      # 배치 변환 (Transformer)
    ├── processing.py       # 처리 작업 (Processor, ScriptProcessor)
    ├── tuner.py            # 하이퍼파라미터 튜닝
    ├── clarify.py          # Clarify 편향/설명 가능성 분석
    ├── frameworks/         # PyTorch, SKLearn, TensorFlow, XGBoost, HuggingFace
    └── model_monitor/      # 엔드포인트 모니터링

Usage:
    from smsdk import Estimator, Session

    session = Session()
    estimator = Estimator(
        image_uri="123456789012.dkr.ecr.us-east-1.amazonaws.com/my-algo:latest",
        role="SageMakerRole",
        instance_count=1,
        instance_type="ml.m5.xlarge",
        sagemaker_session=session,
    )
    estimator.fit({"train": "s3://bucket/train"})
"""

from core.config import get_version
from smsdk.estimator import Estimator, EstimatorBase, Framework
from smsdk.inputs import FileSystemInput, TrainingInput, TransformInput
from smsdk.model import FrameworkModel, Model, ModelPackage
from smsdk.model_metrics import MetricsSource, ModelMetrics
from smsdk.network import NetworkConfig
from smsdk.pipeline import PipelineModel
from smsdk.predictor import Predictor
from smsdk.processing import ProcessingInput, ProcessingJob, ProcessingOutput, Processor, ScriptProcessor
from smsdk.session import Session
from smsdk.transformer import Transformer
from smsdk.tuner import HyperparameterTuner

__version__ = get_version()

__all__: list[str] = [
    "Estimator",
    "EstimatorBase",
    "FileSystemInput",
    "Framework",
    "FrameworkModel",
    "HyperparameterTuner",
    "MetricsSource",
    "Model",
    "ModelMetrics",
    "ModelPackage",
    "NetworkConfig",
    "PipelineModel",
    "Predictor",
    "ProcessingInput",
    "ProcessingJob",
    "ProcessingOutput",
    "Processor",
    "ScriptProcessor",
    "Session",
    "TrainingInput",
    "TransformInput",
    "Transformer",
    "__version__",
]
