"""
core/exceptions.py - 통합 예외 계층 구조

SDK 전체에서 사용되는 예외 클래스들을 정의합니다.
일관된 예외 처리와 에러 메시지를 제공합니다.

예외 계층 구조:
    SMError (베이스)
    ├── APICallError (AWS API 호출 실패)
    ├── UnexpectedStatusError (작업/엔드포인트가 허용되지 않은 상태로 종료)
    │   └── CapacityError (인스턴스 용량 부족으로 실패)
    ├── ConfigError (설정 관련)
    └── ValidationError (입력 검증)

Usage:
    from core.exceptions import APICallError, UnexpectedStatusError

    try:
        sagemaker_client.create_training_job(**request)
    except ClientError as e:
        raise APICallError.from_client_error("sagemaker", "create_training_job", e)
"""

from typing import Any, Dict, List, Optional

# =============================================================================
# 베이스 예외
# =============================================================================


class SMError(Exception):
    """SageMaker Automation 기본 예외 클래스

    모든 커스텀 예외의 베이스 클래스입니다.

    Attributes:
        message: 에러 메시지
        cause: 원인 예외 (체이닝용)
        details: 추가 상세 정보
    """

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details or {}

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """예외 정보를 딕셔너리로 반환"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "cause": str(self.cause) if self.cause else None,
            "details": self.details,
        }


# =============================================================================
# AWS API 호출 관련 예외
# =============================================================================


class APICallError(SMError):
    """AWS API 호출 관련 예외

    boto3/botocore의 ClientError를 래핑하여 일관된 예외 처리를 제공합니다.
    """

    def __init__(
        self,
        service: str,
        operation: str,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        message = f"{service}.{operation}"
        if error_code:
            message = f"{message} 실패 ({error_code})"
        if error_message:
            message = f"{message}: {error_message}"

        super().__init__(message, cause)
        self.service = service
        self.operation = operation
        self.error_code = error_code
        self.error_message = error_message
        self.details.update(
            {
                "service": service,
                "operation": operation,
                "error_code": error_code,
            }
        )

    @classmethod
    def from_client_error(
        cls,
        service: str,
        operation: str,
        client_error: Exception,
    ) -> "APICallError":
        """botocore.exceptions.ClientError로부터 생성

        Args:
            service: AWS 서비스 이름
            operation: API 작업 이름
            client_error: ClientError 예외

        Returns:
            APICallError 인스턴스
        """
        error_code = None
        error_message = None

        if hasattr(client_error, "response"):
            error_info = client_error.response.get("Error", {})
            error_code = error_info.get("Code")
            error_message = error_info.get("Message")

        return cls(
            service=service,
            operation=operation,
            error_code=error_code,
            error_message=error_message,
            cause=client_error,
        )


# =============================================================================
# 작업 상태 관련 예외
# =============================================================================


class UnexpectedStatusError(SMError):
    """작업 또는 엔드포인트가 허용되지 않은 상태로 종료된 경우

    Attributes:
        allowed_statuses: 정상으로 간주되는 상태 목록
        actual_status: 실제 종료 상태
    """

    def __init__(
        self,
        message: str,
        allowed_statuses: List[str],
        actual_status: str,
    ):
        super().__init__(message)
        self.allowed_statuses = allowed_statuses
        self.actual_status = actual_status
        self.details.update(
            {
                "allowed_statuses": allowed_statuses,
                "actual_status": actual_status,
            }
        )


class CapacityError(UnexpectedStatusError):
    """인스턴스 용량 부족(CapacityError)으로 작업이 실패한 경우"""

    pass


# =============================================================================
# 설정/검증 관련 예외
# =============================================================================


class ConfigError(SMError):
    """설정 관련 예외"""

    def __init__(
        self,
        key: str,
        message: str,
        cause: Optional[Exception] = None,
    ):
        full_message = f"설정 오류 [{key}]: {message}"
        super().__init__(full_message, cause)
        self.config_key = key
        self.details["config_key"] = key


class ValidationError(SMError):
    """입력 검증 오류"""

    def __init__(
        self,
        field: str,
        value: Any,
        expected: str,
        cause: Optional[Exception] = None,
    ):
        message = f"검증 오류 [{field}]: 예상값 '{expected}', 실제값 '{value}'"
        super().__init__(message, cause)
        self.field = field
        self.value = value
        self.expected = expected
        self.details.update(
            {
                "field": field,
                "value": str(value),
                "expected": expected,
            }
        )


# =============================================================================
# 예외 유틸리티 함수
# =============================================================================


def _error_code(error: Exception) -> str:
    if isinstance(error, APICallError):
        return error.error_code or ""
    response = getattr(error, "response", None)
    if response is not None:
        return response.get("Error", {}).get("Code", "")
    return ""


def _error_message(error: Exception) -> str:
    if isinstance(error, APICallError):
        return error.error_message or ""
    response = getattr(error, "response", None)
    if response is not None:
        return response.get("Error", {}).get("Message", "")
    return ""


def is_access_denied(error: Exception) -> bool:
    """액세스 거부 오류인지 확인

    Args:
        error: 확인할 예외

    Returns:
        액세스 거부 오류이면 True
    """
    return _error_code(error) in (
        "AccessDenied",
        "AccessDeniedException",
        "UnauthorizedAccess",
    )


def is_throttling(error: Exception) -> bool:
    """스로틀링 오류인지 확인

    Args:
        error: 확인할 예외

    Returns:
        스로틀링 오류이면 True
    """
    throttling_codes = {
        "Throttling",
        "ThrottlingException",
        "RequestLimitExceeded",
        "TooManyRequestsException",
        "RateExceeded",
    }
    return _error_code(error) in throttling_codes


def is_not_found(error: Exception) -> bool:
    """리소스를 찾을 수 없는 오류인지 확인

    SageMaker는 존재하지 않는 리소스에 대해 ValidationException("Could not find ...")을
    반환하므로 이 경우도 포함합니다.

    Args:
        error: 확인할 예외

    Returns:
        리소스 없음 오류이면 True
    """
    not_found_codes = {
        "ResourceNotFound",
        "ResourceNotFoundException",
        "NotFoundException",
        "NoSuchEntity",
        "NoSuchBucket",
        "NoSuchKey",
        "404",
    }
    code = _error_code(error)
    if code in not_found_codes:
        return True
    return code == "ValidationException" and "Could not find" in _error_message(error)


def is_already_exists(error: Exception) -> bool:
    """이미 존재하는 리소스를 생성하려 한 오류인지 확인

    Args:
        error: 확인할 예외

    Returns:
        리소스 중복 오류이면 True
    """
    code = _error_code(error)
    message = _error_message(error)
    if code not in ("ValidationException", "ResourceInUse"):
        return False
    return any(p in message for p in ("Cannot create already existing", "already exists"))


def format_error_for_user(error: Exception) -> str:
    """사용자에게 표시할 에러 메시지 포맷팅

    Args:
        error: 예외

    Returns:
        사용자 친화적인 에러 메시지
    """
    if isinstance(error, SMError):
        return str(error)

    if hasattr(error, "response"):
        error_info = error.response.get("Error", {})
        code = error_info.get("Code", "UnknownError")
        message = error_info.get("Message", str(error))

        friendly_messages = {
            "AccessDenied": "권한이 없습니다. IAM 정책을 확인하세요.",
            "AccessDeniedException": "권한이 없습니다. IAM 정책을 확인하세요.",
            "ExpiredToken": "인증 토큰이 만료되었습니다. 다시 로그인하세요.",
            "InvalidClientTokenId": "잘못된 자격 증명입니다.",
            "Throttling": "요청이 너무 많습니다. 잠시 후 다시 시도하세요.",
            "ResourceLimitExceeded": "계정의 SageMaker 리소스 한도를 초과했습니다.",
        }

        return friendly_messages.get(code, f"{code}: {message}")

    return str(error)
