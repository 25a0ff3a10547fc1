"""
smsdk/model_metrics.py - 모델 패키지 등록용 품질/편향/설명 가능성 지표

CreateModelPackage 요청의 ``ModelMetrics`` 필드를 구성합니다.

Example:
    metrics = ModelMetrics(
        model_statistics=MetricsSource("application/json", "s3://bucket/statistics.json"),
    )
    model.register(..., model_metrics=metrics)
"""

from __future__ import annotations

from typing import Any


class MetricsSource:
    """지표 파일 위치 (S3 URI + 콘텐츠 타입)"""

    def __init__(self, content_type: str, s3_uri: str, content_digest: str | None = None):
        self.content_type = content_type
        self.s3_uri = s3_uri
        self.content_digest = content_digest

    def _to_request_dict(self) -> dict[str, str]:
        request = {"ContentType": self.content_type, "S3Uri": self.s3_uri}
        if self.content_digest is not None:
            request["ContentDigest"] = self.content_digest
        return request


def _pair(statistics: MetricsSource | None, constraints: MetricsSource | None) -> dict[str, Any]:
    pair: dict[str, Any] = {}
    if statistics is not None:
        pair["Statistics"] = statistics._to_request_dict()
    if constraints is not None:
        pair["Constraints"] = constraints._to_request_dict()
    return pair


class ModelMetrics:
    """모델 패키지에 첨부할 지표 묶음

    모든 필드는 선택이며, 지정된 항목만 요청 딕셔너리에 포함됩니다.
    """

    def __init__(
        self,
        model_statistics: MetricsSource | None = None,
        model_constraints: MetricsSource | None = None,
        model_data_statistics: MetricsSource | None = None,
        model_data_constraints: MetricsSource | None = None,
        bias: MetricsSource | None = None,
        explainability: MetricsSource | None = None,
    ):
        self.model_statistics = model_statistics
        self.model_constraints = model_constraints
        self.model_data_statistics = model_data_statistics
        self.model_data_constraints = model_data_constraints
        self.bias = bias
        self.explainability = explainability

    def _to_request_dict(self) -> dict[str, Any]:
        request: dict[str, Any] = {}

        model_quality = _pair(self.model_statistics, self.model_constraints)
        if model_quality:
            request["ModelQuality"] = model_quality

        model_data_quality = _pair(self.model_data_statistics, self.model_data_constraints)
        if model_data_quality:
            request["ModelDataQuality"] = model_data_quality

        if self.bias is not None:
            request["Bias"] = {"Report": self.bias._to_request_dict()}
        if self.explainability is not None:
            request["Explainability"] = {"Report": self.explainability._to_request_dict()}
        return request
