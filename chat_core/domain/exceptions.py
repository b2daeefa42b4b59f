"""统一业务异常模型。

请求管线把每次调用的失败归类为以下几种之一，并交给通知策略统一提示：

- TransportError: 拿不到响应对象（断网、超时等）。
- AuthError: 信封 code == 401。
- AbortError: 本地主动中断的请求，只记日志。
- ApplicationError: 其他非 0 的业务 code。
- SoftWarning: code == 100，仅做轻提示。

调用方只看 ApiResult.ok，不要自己再弹错误提示。
"""

ABORT_REQUEST_ERR_MESSAGE = "The user aborted a request."


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "NETWORK_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 url、retcode 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class TransportError(BusinessError):
    """网络层错误，例如连接失败、超时等。"""


class AuthError(BusinessError):
    """鉴权失败（信封 code 401）。"""


class AbortError(BusinessError):
    """请求被本地主动中断。"""

    def __init__(self, message: str = ABORT_REQUEST_ERR_MESSAGE, **extra):
        super().__init__(code="ABORTED", message=message, http_status=499, **extra)


class ApplicationError(BusinessError):
    """后端返回的非 0 业务码（100 / 401 之外）。"""


class SoftWarning(BusinessError):
    """code 100：仅提示，不跳转也不清理凭证。"""


class HttpStatusError(BusinessError):
    """HTTP 状态码 >= 400 且响应体不是合法信封。"""


class StoreError(BusinessError):
    """会话 store 的前置条件不满足（例如回滚时没有对应的 exchange）。"""
