"""业务异常体系。

所有对外可见的失败都继承 `ServiceError`，携带稳定的机器可识别错误码、
对应 HTTP 状态码与面向用户的提示语。异常处理器负责序列化，
服务层只负责抛出，不拼装响应结构。
"""

from typing import Any

from fastapi import status


class ServiceError(Exception):
    """业务异常基类。"""

    code = "SERVICE_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Die Anfrage konnte nicht verarbeitet werden."
    retryable = False

    def __init__(self, message: str | None = None, **details: Any) -> None:
        super().__init__(message or self.message)
        if message:
            self.message = message
        self.details = details


class InvalidCredential(ServiceError):
    """邮箱或密码错误；目录中没有对应成员时同样使用，避免账号枚举。"""

    code = "INVALID_CREDENTIAL"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "E-Mail-Adresse oder Passwort ist falsch."


class WeakSecret(ServiceError):
    code = "WEAK_SECRET"
    status_code = status.HTTP_422_UNPROCESSABLE_CONTENT
    message = "Das Passwort erfüllt nicht die Mindestanforderungen."


class InvalidSelectionToken(ServiceError):
    code = "INVALID_SELECTION_TOKEN"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Die Mitgliederauswahl ist abgelaufen oder ungültig. Bitte erneut anmelden."


class CandidateNotInSet(ServiceError):
    code = "CANDIDATE_NOT_IN_SET"
    status_code = status.HTTP_403_FORBIDDEN
    message = "Das gewählte Mitglied gehört nicht zu dieser Anmeldung."


class InvalidResetToken(ServiceError):
    code = "INVALID_RESET_TOKEN"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Der Link zum Zurücksetzen ist ungültig oder abgelaufen."


class NoSuchProfile(ServiceError):
    """目录确认不存在该成员（不可重试）。"""

    code = "NO_SUCH_PROFILE"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Mitglied nicht gefunden."


class DirectoryUnavailable(ServiceError):
    """成员目录网络/服务故障（可重试）。"""

    code = "DIRECTORY_UNAVAILABLE"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Daten derzeit nicht verfügbar. Bitte versuchen Sie es später erneut."
    retryable = True


class DuplicateEntryForDate(ServiceError):
    code = "DUPLICATE_ENTRY_FOR_DATE"
    status_code = status.HTTP_409_CONFLICT
    message = "Für dieses Datum existiert bereits ein Eintrag."


class ValidationError(ServiceError):
    """工时记录字段越界（日期、工时、描述）。"""

    code = "VALIDATION_ERROR"
    status_code = status.HTTP_422_UNPROCESSABLE_CONTENT
    message = "Die Eingaben sind ungültig."


class Unauthorized(ServiceError):
    """会话身份与目标资源归属不一致。"""

    code = "UNAUTHORIZED"
    status_code = status.HTTP_403_FORBIDDEN
    message = "Keine Berechtigung für diesen Eintrag."


class NotFound(ServiceError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Eintrag nicht gefunden."


class RateLimited(ServiceError):
    code = "RATE_LIMITED"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    message = "Zu viele Anfragen. Bitte versuchen Sie es in einigen Sekunden erneut."
    retryable = True
