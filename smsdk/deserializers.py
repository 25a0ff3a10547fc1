"""
smsdk/deserializers.py - 추론 응답 본문 역직렬화

InvokeEndpoint 응답의 ``Body`` (botocore StreamingBody)를 파이썬 값으로 변환합니다.
역직렬화가 끝나면 스트림을 닫습니다 (StreamDeserializer 제외).
"""

from __future__ import annotations

import abc
import codecs
import csv
import json
from typing import Any


class BaseDeserializer(abc.ABC):
    """응답 본문 역직렬화 베이스"""

    ACCEPT: tuple[str, ...] = ("*/*",)

    def __init__(self, accept: str | tuple[str, ...] | None = None):
        if accept is not None:
            self.ACCEPT = (accept,) if isinstance(accept, str) else tuple(accept)

    @abc.abstractmethod
    def deserialize(self, stream, content_type: str) -> Any:
        """응답 스트림 변환"""


class StringDeserializer(BaseDeserializer):
    ACCEPT = ("application/json",)

    def __init__(self, encoding: str = "UTF-8", accept: str | tuple[str, ...] | None = None):
        super().__init__(accept)
        self.encoding = encoding

    def deserialize(self, stream, content_type: str) -> str:
        try:
            return stream.read().decode(self.encoding)
        finally:
            stream.close()


class BytesDeserializer(BaseDeserializer):
    def deserialize(self, stream, content_type: str) -> bytes:
        try:
            return stream.read()
        finally:
            stream.close()


class CSVDeserializer(BaseDeserializer):
    """CSV 응답을 행 목록(list[list[str]])으로 변환"""

    ACCEPT = ("text/csv",)

    def __init__(self, encoding: str = "utf-8", accept: str | tuple[str, ...] | None = None):
        super().__init__(accept)
        self.encoding = encoding

    def deserialize(self, stream, content_type: str) -> list[list[str]]:
        try:
            decoded_string = stream.read().decode(self.encoding)
            return list(csv.reader(decoded_string.splitlines()))
        finally:
            stream.close()


class JSONDeserializer(BaseDeserializer):
    ACCEPT = ("application/json",)

    def deserialize(self, stream, content_type: str) -> Any:
        try:
            return json.load(codecs.getreader("utf-8")(stream))
        finally:
            stream.close()


class JSONLinesDeserializer(BaseDeserializer):
    """줄 단위 JSON 응답을 레코드 목록으로 변환"""

    ACCEPT = ("application/jsonlines",)

    def deserialize(self, stream, content_type: str) -> list[Any]:
        try:
            body = stream.read().decode("utf-8")
            return [json.loads(line) for line in body.splitlines() if line.strip()]
        finally:
            stream.close()


class StreamDeserializer(BaseDeserializer):
    """스트림과 ContentType을 그대로 반환 (호출자가 스트림을 닫아야 함)"""

    def deserialize(self, stream, content_type: str) -> tuple[Any, str]:
        return stream, content_type
