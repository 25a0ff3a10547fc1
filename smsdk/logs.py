"""
smsdk/logs.py - CloudWatch Logs 멀티 스트림 읽기

작업 인스턴스마다 로그 스트림이 하나씩 생기므로, 여러 스트림을
타임스탬프 순으로 병합해 읽고 인스턴스별 색상으로 출력합니다.

주요 구성 요소:
- Position: 스트림별 읽기 위치 (타임스탬프 + 같은 타임스탬프 내 skip 개수)
- log_stream: 단일 스트림 이벤트 제너레이터
- multi_stream_iter: 여러 스트림을 타임스탬프 순으로 병합
- ColorWrap: 스트림 인덱스별 rich 색상 출력
- LogState: 로그 tailing 상태 머신 상태
"""

from __future__ import annotations

import logging
from collections import namedtuple
from collections.abc import Iterator
from enum import Enum
from typing import Any

from botocore.exceptions import ClientError
from rich.console import Console
from rich.markup import escape

from core.retry import call_with_retry

logger = logging.getLogger(__name__)

# 전역 콘솔 인스턴스 (폴링 진행 상황/로그 출력)
console = Console(highlight=False, soft_wrap=True)

Position = namedtuple("Position", ["timestamp", "skip"])


class LogState(Enum):
    """로그 tailing 상태

    TAILING: 로그 읽기 + 대기 + 작업 상태 확인
    JOB_COMPLETE: 작업 완료 후 늦게 도착한 로그를 위해 한 번 더 읽기
    COMPLETE: 마지막으로 읽고 종료
    """

    TAILING = 1
    JOB_COMPLETE = 2
    COMPLETE = 3


class ColorWrap:
    """인스턴스(스트림 인덱스)별 색상으로 로그 라인 출력"""

    _stream_colors = ["blue", "green", "yellow", "magenta", "cyan", "red"]

    def __init__(self, force: bool = False, out: Console | None = None):
        self.console = out or console
        self.colorize = force or self.console.is_terminal

    def __call__(self, index: int, s: str) -> None:
        if self.colorize:
            self._color_wrap(index, s)
        else:
            self.console.print(escape(s), markup=False, highlight=False)

    def _color_wrap(self, index: int, s: str) -> None:
        color = self._stream_colors[index % len(self._stream_colors)]
        self.console.print(f"[{color}]{escape(s)}[/{color}]")


def log_stream(client, log_group: str, stream_name: str, start_time: int = 0, skip: int = 0) -> Iterator[dict[str, Any]]:
    """단일 로그 스트림 이벤트를 순서대로 생성

    Args:
        client: CloudWatch Logs client
        log_group: 로그 그룹 이름
        stream_name: 로그 스트림 이름
        start_time: 이 타임스탬프(ms) 이후부터 읽기
        skip: 시작 타임스탬프에서 이미 읽은 이벤트 수

    Yields:
        로그 이벤트 딕셔너리 (timestamp, message)
    """
    next_token = None
    event_count = 1

    while event_count > 0:
        token_args = {"nextToken": next_token} if next_token else {}
        response = call_with_retry(
            lambda: client.get_log_events(
                logGroupName=log_group,
                logStreamName=stream_name,
                startTime=start_time,
                startFromHead=True,
                **token_args,
            )
        )
        next_token = response["nextForwardToken"]
        events = response["events"]
        event_count = len(events)
        if event_count > skip:
            events = events[skip:]
            skip = 0
        else:
            skip = skip - event_count
            events = []
        yield from events


def multi_stream_iter(client, log_group: str, streams: list[str], positions: dict[str, Position]) -> Iterator[tuple[int, dict[str, Any]]]:
    """여러 스트림을 타임스탬프 순으로 병합해 (스트림 인덱스, 이벤트) 생성"""
    event_iters = [log_stream(client, log_group, s, positions[s].timestamp, positions[s].skip) for s in streams]
    events: list[dict[str, Any] | None] = []
    for s in event_iters:
        try:
            events.append(next(s))
        except StopIteration:
            events.append(None)

    while any(events):
        i = min((idx for idx, e in enumerate(events) if e), key=lambda idx: events[idx]["timestamp"])  # type: ignore[index]
        yield i, events[i]  # type: ignore[misc]
        try:
            events[i] = next(event_iters[i])
        except StopIteration:
            events[i] = None


def describe_job_log_streams(client, log_group: str, job_name: str, instance_count: int) -> list[str]:
    """작업 이름 prefix를 가진 로그 스트림 이름 목록

    첫 작업 실행 직후에는 로그 그룹이 아직 없을 수 있어 ResourceNotFoundException은 빈 목록으로 처리합니다.
    """
    try:
        paginator = client.get_paginator("describe_log_streams")
        stream_names: list[str] = []
        for page in paginator.paginate(
            logGroupName=log_group,
            logStreamNamePrefix=job_name + "/",
            orderBy="LogStreamName",
            PaginationConfig={"PageSize": min(max(instance_count, 1), 50)},
        ):
            stream_names.extend(s["logStreamName"] for s in page.get("logStreams", []))
        return stream_names
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") != "ResourceNotFoundException":
            raise
        logger.debug(f"로그 그룹 없음: {log_group}")
        return []


class JobLogTailer:
    """작업 로그 스트림을 추적하며 새 이벤트를 출력

    Attributes:
        stream_names: 발견된 스트림 이름 목록
        positions: 스트림별 읽기 위치
        dot: 마지막 출력이 진행 점(.)이었는지 여부
    """

    def __init__(self, logs_client, log_group: str, job_name: str, instance_count: int, color_wrap: ColorWrap | None = None):
        self.client = logs_client
        self.log_group = log_group
        self.job_name = job_name
        self.instance_count = instance_count
        self.color_wrap = color_wrap or ColorWrap()
        self.stream_names: list[str] = []
        self.positions: dict[str, Position] = {}
        self.dot = False

    def flush(self) -> None:
        """새 스트림을 찾고 읽지 않은 이벤트를 모두 출력"""
        if len(self.stream_names) < self.instance_count:
            # 컨테이너가 stdout에 쓰기 시작해야 스트림이 생기므로 인스턴스 수만큼 찾을 때까지 재조회
            self.stream_names = describe_job_log_streams(self.client, self.log_group, self.job_name, self.instance_count)
            for s in self.stream_names:
                self.positions.setdefault(s, Position(timestamp=0, skip=0))

        if not self.stream_names:
            self.dot = True
            console.print(".", end="")
            return

        if self.dot:
            console.print()
            self.dot = False

        for idx, event in multi_stream_iter(self.client, self.log_group, self.stream_names, self.positions):
            self.color_wrap(idx, event["message"])
            ts, count = self.positions[self.stream_names[idx]]
            if event["timestamp"] == ts:
                self.positions[self.stream_names[idx]] = Position(timestamp=ts, skip=count + 1)
            else:
                self.positions[self.stream_names[idx]] = Position(timestamp=event["timestamp"], skip=1)
