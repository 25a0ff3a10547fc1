"""
smsdk/serializers.py - 추론 요청 본문 직렬화

Predictor가 InvokeEndpoint 요청 본문과 ContentType 헤더를 만들 때 사용합니다.
"""

from __future__ import annotations

import abc
import io
import json
from typing import Any

from core.exceptions import ValidationError


class BaseSerializer(abc.ABC):
    """요청 본문 직렬화 베이스"""

    CONTENT_TYPE = "application/octet-stream"

    def __init__(self, content_type: str | None = None):
        if content_type is not None:
            self.CONTENT_TYPE = content_type

    @abc.abstractmethod
    def serialize(self, data: Any) -> Any:
        """요청 본문으로 변환"""


class CSVSerializer(BaseSerializer):
    """리스트/2차원 리스트를 CSV 문자열로 변환"""

    CONTENT_TYPE = "text/csv"

    def serialize(self, data: Any) -> str:
        if isinstance(data, str):
            return data
        if hasattr(data, "read"):
            return data.read()

        if _is_sequence_like(data) and len(data) > 0 and _is_sequence_like(data[0]):
            return "\n".join(self._serialize_row(row) for row in data)
        return self._serialize_row(data)

    @staticmethod
    def _serialize_row(data: Any) -> str:
        if isinstance(data, str):
            return data
        if _is_sequence_like(data):
            return ",".join(str(x) for x in data)
        raise ValidationError("data", type(data).__name__, "str, list 또는 중첩 list")


class JSONSerializer(BaseSerializer):
    """JSON 문자열로 변환 (str은 그대로 전달)"""

    CONTENT_TYPE = "application/json"

    def serialize(self, data: Any) -> str:
        if isinstance(data, str):
            return data
        if hasattr(data, "read"):
            return data.read()
        return json.dumps(data)


class JSONLinesSerializer(BaseSerializer):
    """레코드 목록을 줄 단위 JSON으로 변환"""

    CONTENT_TYPE = "application/jsonlines"

    def serialize(self, data: Any) -> str:
        if isinstance(data, str):
            return data
        if hasattr(data, "read"):
            return data.read()
        return "\n".join(json.dumps(record) for record in data)


class IdentitySerializer(BaseSerializer):
    """데이터를 변환 없이 전달"""

    def serialize(self, data: Any) -> Any:
        if isinstance(data, io.IOBase):
            return data.read()
        return data


def _is_sequence_like(obj: Any) -> bool:
    return hasattr(obj, "__iter__") and hasattr(obj, "__getitem__") and not isinstance(obj, (str, bytes))
