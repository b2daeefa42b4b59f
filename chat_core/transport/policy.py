"""响应分类与统一提示策略。

所有请求的返回都在这里归类，调用方只需判断 ApiResult.ok：

    code 0    -> SUCCESS，原样返回
    code 401  -> AUTH_ERROR，清空本地凭证、跳转登录页、错误通知
    code 100  -> SOFT_WARNING，仅轻提示
    其他非 0  -> APPLICATION_ERROR，错误通知（code + 服务端信息）

另外三类没有合法信封的情况：HTTP 状态错误、网络异常、本地中断
（中断只记日志，不提示）。
"""

from enum import Enum
from typing import Dict, Mapping, Optional, Tuple

import httpx

from chat_core.config.settings import settings
from chat_core.domain.exceptions import (
    AbortError,
    ApplicationError,
    AuthError,
    BusinessError,
    HttpStatusError,
    SoftWarning,
    TransportError,
)
from chat_core.domain.models import ResponseEnvelope
from chat_core.infrastructure.logging.logger import logger
from chat_core.infrastructure.storage.credential_store import CredentialStore
from chat_core.navigation.state import NavigationState
from chat_core.transport.notifier import Notifier


class Outcome(str, Enum):
    SUCCESS = "success"
    SOFT_WARNING = "soft_warning"
    APPLICATION_ERROR = "application_error"
    AUTH_ERROR = "auth_error"
    HTTP_ERROR = "http_error"
    TRANSPORT_ERROR = "transport_error"
    ABORTED = "aborted"
    RAW = "raw"


DEFAULT_CODE_OUTCOMES: Mapping[int, Outcome] = {
    0: Outcome.SUCCESS,
    100: Outcome.SOFT_WARNING,
    401: Outcome.AUTH_ERROR,
}

STATUS_MESSAGES: Mapping[int, str] = {
    200: "The server successfully returned the requested data.",
    201: "Data created or modified successfully.",
    202: "A request has been queued in the background (asynchronous task).",
    204: "Data deleted successfully.",
    400: "There was an error in the request issued, and the server did not create or modify data.",
    401: "The user does not have permissions (wrong token, username, password).",
    403: "The user is authorized, but access is prohibited.",
    404: "The request was made for a record that does not exist, and the server did not perform the operation.",
    406: "The requested format is not available.",
    410: "The requested resource has been permanently deleted and will not be available again.",
    422: "When creating an object, a validation error occurred.",
    500: "A server error occurred, please check the server.",
    502: "Gateway error.",
    503: "The service is unavailable and the server is temporarily overloaded or undergoing maintenance.",
    504: "Gateway timeout.",
}

REQUEST_ERROR = "Request error"
HINT = "Hint"
NETWORK_ANOMALY = "Network anomaly"
NETWORK_ANOMALY_DESCRIPTION = "There is an abnormality in your network and you cannot connect to the server."
NOTIFICATION_DURATION = 3.0


class ResponsePolicy:
    """code -> Outcome 的映射表加上每种 Outcome 的副作用。

    映射表可以通过 code_outcomes 注入，未列出的非 0 code 一律按
    APPLICATION_ERROR 处理。
    """

    def __init__(
        self,
        notifier: Notifier,
        credentials: CredentialStore,
        navigation: NavigationState,
        code_outcomes: Optional[Mapping[int, Outcome]] = None,
        login_path: Optional[str] = None,
    ):
        self._notifier = notifier
        self._credentials = credentials
        self._navigation = navigation
        self._code_outcomes: Dict[int, Outcome] = dict(code_outcomes or DEFAULT_CODE_OUTCOMES)
        self._login_path = login_path or settings.login_path

    def outcome_for(self, code: int) -> Outcome:
        return self._code_outcomes.get(code, Outcome.APPLICATION_ERROR)

    async def apply(self, envelope: ResponseEnvelope) -> Tuple[Outcome, Optional[BusinessError]]:
        outcome = self.outcome_for(envelope.code)
        if outcome is Outcome.SUCCESS:
            return outcome, None
        if outcome is Outcome.AUTH_ERROR:
            return outcome, await self._on_auth_error(envelope)
        if outcome is Outcome.SOFT_WARNING:
            return outcome, self._on_soft_warning(envelope)
        return outcome, self._on_application_error(envelope)

    async def _on_auth_error(self, envelope: ResponseEnvelope) -> AuthError:
        self._notifier.notify_error(envelope.message, envelope.message, NOTIFICATION_DURATION)
        self._credentials.remove_all()
        logger.warning("policy.auth_error", extra={"extra": {"redirect": self._login_path}})
        await self._navigation.push(self._login_path)
        return AuthError(code="AUTH_ERROR", message=envelope.message, http_status=401)

    def _on_soft_warning(self, envelope: ResponseEnvelope) -> SoftWarning:
        self._notifier.show_message(envelope.message)
        return SoftWarning(code="SOFT_WARNING", message=envelope.message, retcode=envelope.code)

    def _on_application_error(self, envelope: ResponseEnvelope) -> ApplicationError:
        self._notifier.notify_error(f"{HINT} : {envelope.code}", envelope.message, NOTIFICATION_DURATION)
        logger.warning(
            "policy.application_error",
            extra={"extra": {"retcode": envelope.code, "retmsg": envelope.message}},
        )
        return ApplicationError(code="APPLICATION_ERROR", message=envelope.message, retcode=envelope.code)

    def on_http_status(self, response: httpx.Response, url: str) -> HttpStatusError:
        status = response.status_code
        description = STATUS_MESSAGES.get(status) or response.reason_phrase
        self._notifier.notify_error(f"{REQUEST_ERROR} {status}: {url}", description)
        return HttpStatusError(code="HTTP_ERROR", message=description, http_status=status, url=url)

    def on_transport_error(self, exc: Exception, url: str) -> TransportError:
        self._notifier.notify_error(NETWORK_ANOMALY, NETWORK_ANOMALY_DESCRIPTION)
        logger.error("policy.transport_error", extra={"extra": {"url": url, "error": str(exc)}})
        return TransportError(code="NETWORK_ERROR", message=str(exc) or NETWORK_ANOMALY, url=url)

    def on_abort(self, exc: AbortError, url: str) -> AbortError:
        logger.info("user abort request", extra={"extra": {"url": url, "reason": exc.message}})
        return exc
