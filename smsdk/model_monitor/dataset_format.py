"""
smsdk/model_monitor/dataset_format.py - 기준선/모니터링 입력 데이터셋 형식
"""

from __future__ import annotations

from typing import Any

from core.exceptions import ValidationError


class DatasetFormat:
    """기준선 작업(suggest_baseline)의 dataset_format 값"""

    @staticmethod
    def csv(header: bool = True, output_columns_position: str = "START") -> dict[str, Any]:
        if output_columns_position not in ("START", "END"):
            raise ValidationError("output_columns_position", output_columns_position, "START, END")
        return {"csv": {"header": header, "output_columns_position": output_columns_position}}

    @staticmethod
    def json(lines: bool = True) -> dict[str, Any]:
        return {"json": {"lines": lines}}

    @staticmethod
    def sagemaker_capture_json() -> dict[str, Any]:
        return {"sagemakerCaptureJson": {}}


class MonitoringDatasetFormat:
    """배치 변환 입력 모니터링의 DatasetFormat 요청 구조"""

    @staticmethod
    def csv(header: bool = True) -> dict[str, Any]:
        return {"Csv": {"Header": header}}

    @staticmethod
    def json(lines: bool = True) -> dict[str, Any]:
        return {"Json": {"Line": lines}}

    @staticmethod
    def parquet() -> dict[str, Any]:
        return {"Parquet": {}}
