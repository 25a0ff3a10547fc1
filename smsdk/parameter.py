"""
smsdk/parameter.py - 하이퍼파라미터 튜닝 범위
"""

from __future__ import annotations

import json
from typing import Any

from core.exceptions import ValidationError

SCALING_TYPES = ("Auto", "Linear", "Logarithmic", "ReverseLogarithmic")


class ParameterRange:
    """연속/정수 하이퍼파라미터 범위 베이스

    Attributes:
        min_value: 최소값
        max_value: 최대값
        scaling_type: 탐색 스케일 ("Auto", "Linear", "Logarithmic", "ReverseLogarithmic")
    """

    RANGE_TYPES = ("Continuous", "Categorical", "Integer")
    range_type: str

    def __init__(self, min_value: float | int, max_value: float | int, scaling_type: str = "Auto"):
        if scaling_type not in SCALING_TYPES:
            raise ValidationError("scaling_type", scaling_type, ", ".join(SCALING_TYPES))
        self.min_value = min_value
        self.max_value = max_value
        self.scaling_type = scaling_type

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.min_value!r}, {self.max_value!r}, scaling_type={self.scaling_type!r})"

    def is_valid(self, value: Any) -> bool:
        return self.min_value <= value <= self.max_value

    @classmethod
    def cast_to_type(cls, value: Any) -> Any:
        return float(value)

    def as_tuning_range(self, name: str) -> dict[str, str]:
        """ParameterRanges 요청 항목"""
        return {
            "Name": name,
            "MinValue": str(self.min_value),
            "MaxValue": str(self.max_value),
            "ScalingType": self.scaling_type,
        }


class ContinuousParameter(ParameterRange):
    range_type = "Continuous"

    @classmethod
    def cast_to_type(cls, value: Any) -> float:
        return float(value)


class IntegerParameter(ParameterRange):
    range_type = "Integer"

    @classmethod
    def cast_to_type(cls, value: Any) -> int:
        return int(value)


class CategoricalParameter(ParameterRange):
    """범주형 하이퍼파라미터 (값은 문자열로 변환)"""

    range_type = "Categorical"

    def __init__(self, values: list[Any] | Any):
        if isinstance(values, list):
            self.values = [str(v) for v in values]
        else:
            self.values = [str(values)]

    def __repr__(self) -> str:
        return f"CategoricalParameter({self.values!r})"

    def as_tuning_range(self, name: str) -> dict[str, Any]:
        return {"Name": name, "Values": self.values}

    def as_json_range(self, name: str) -> dict[str, Any]:
        """프레임워크 컨테이너용 범위 (값을 JSON 문자열로 인코딩)"""
        return {"Name": name, "Values": [json.dumps(v) for v in self.values]}

    def is_valid(self, value: Any) -> bool:
        return str(value) in self.values

    @classmethod
    def cast_to_type(cls, value: Any) -> str:
        return str(value)
