"""
smsdk/frameworks - 스크립트 모드 프레임워크 추정기/모델

- PyTorch / PyTorchModel
- SKLearn / SKLearnModel / SKLearnProcessor
- TensorFlow / TensorFlowModel
- XGBoost / XGBoostModel
- HuggingFace (학습 전용)
"""

from smsdk.frameworks.huggingface import HuggingFace
from smsdk.frameworks.pytorch import PyTorch, PyTorchModel, PyTorchPredictor
from smsdk.frameworks.sklearn import SKLearn, SKLearnModel, SKLearnPredictor, SKLearnProcessor
from smsdk.frameworks.tensorflow import TensorFlow, TensorFlowModel, TensorFlowPredictor
from smsdk.frameworks.xgboost import XGBoost, XGBoostModel, XGBoostPredictor

__all__ = [
    "HuggingFace",
    "PyTorch",
    "PyTorchModel",
    "PyTorchPredictor",
    "SKLearn",
    "SKLearnModel",
    "SKLearnPredictor",
    "SKLearnProcessor",
    "TensorFlow",
    "TensorFlowModel",
    "TensorFlowPredictor",
    "XGBoost",
    "XGBoostModel",
    "XGBoostPredictor",
]
