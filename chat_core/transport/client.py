"""带拦截器的异步请求客户端。

每次调用依次经过：

1. 出站：选择 Authorization（分享 token 优先于本地会话凭证，skip_token 时不带），
   并把 json / params 的字段名递归转成 snake_case。
2. 发送：固定超时；超时和连接失败一律按网络异常处理；可通过 AbortSignal 中断。
3. 入站：expect_blob 时原样返回；否则只解析一次信封，交给 ResponsePolicy 分类并提示。

调用方拿到的永远是 ApiResult，不会收到异常。
"""

import asyncio
import contextlib
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from chat_core.config.settings import settings
from chat_core.domain.exceptions import ABORT_REQUEST_ERR_MESSAGE, AbortError, BusinessError
from chat_core.domain.models import ResponseEnvelope
from chat_core.infrastructure.logging.logger import logger
from chat_core.infrastructure.storage.credential_store import CredentialStore
from chat_core.navigation.identity import IdentityResolver
from chat_core.transport.casing import convert_keys_to_snake
from chat_core.transport.policy import Outcome, ResponsePolicy

AUTHORIZATION_HEADER = "Authorization"


class AbortSignal:
    """请求的中断信号，调用 abort() 后挂起中的请求立即结束。"""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason = ABORT_REQUEST_ERR_MESSAGE

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    def abort(self, reason: str = ABORT_REQUEST_ERR_MESSAGE) -> None:
        self.reason = reason
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass
class ApiResult:
    """一次请求的归类结果。"""

    outcome: Outcome
    envelope: Optional[ResponseEnvelope] = None
    response: Optional[httpx.Response] = None
    error: Optional[BusinessError] = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @property
    def code(self) -> Optional[int]:
        return self.envelope.code if self.envelope else None

    @property
    def data(self) -> Any:
        return self.envelope.data if self.envelope else None


class RequestClient:
    def __init__(
        self,
        identity: IdentityResolver,
        credentials: CredentialStore,
        policy: ResponsePolicy,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._identity = identity
        self._credentials = credentials
        self._policy = policy
        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        self._timeout = timeout or settings.http_timeout
        self._transport = transport

    def build_headers(self, headers: Optional[Dict[str, str]] = None, skip_token: bool = False) -> Dict[str, str]:
        merged: Dict[str, str] = {}
        if not skip_token:
            shared_id = self._identity.shared_id()
            authorization = f"Bearer {shared_id}" if shared_id else self._credentials.get_authorization()
            if authorization:
                merged[AUTHORIZATION_HEADER] = authorization
        merged.update(headers or {})
        return merged

    async def get(self, path: str, **kwargs: Any) -> ApiResult:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> ApiResult:
        return await self.request("POST", path, **kwargs)

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        skip_token: bool = False,
        expect_blob: bool = False,
        signal: Optional[AbortSignal] = None,
    ) -> ApiResult:
        url = f"{self._base_url}{path}"
        kwargs: Dict[str, Any] = {"headers": self.build_headers(headers, skip_token)}
        if json is not None:
            kwargs["json"] = convert_keys_to_snake(json)
        if params is not None:
            kwargs["params"] = convert_keys_to_snake(params)

        start = time.time()
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport, trust_env=False) as client:
                resp = await self._send(client, method, url, signal, kwargs)
        except AbortError as e:
            return ApiResult(outcome=Outcome.ABORTED, error=self._policy.on_abort(e, url))
        except httpx.RequestError as e:
            # 连接失败、DNS 失败、超时都拿不到响应
            return ApiResult(outcome=Outcome.TRANSPORT_ERROR, error=self._policy.on_transport_error(e, url))

        if expect_blob:
            return ApiResult(outcome=Outcome.RAW, response=resp)

        envelope = self._parse_envelope(resp)
        if envelope is None:
            err = self._policy.on_http_status(resp, url)
            return ApiResult(outcome=Outcome.HTTP_ERROR, response=resp, error=err)

        outcome, err = await self._policy.apply(envelope)
        logger.info(
            "request.done",
            extra={
                "extra": {
                    "method": method,
                    "url": url,
                    "status": resp.status_code,
                    "retcode": envelope.code,
                    "outcome": outcome.value,
                    "elapsed_seconds": round(time.time() - start, 3),
                }
            },
        )
        return ApiResult(outcome=outcome, envelope=envelope, response=resp, error=err)

    @staticmethod
    async def _send(
        client: httpx.AsyncClient,
        method: str,
        url: str,
        signal: Optional[AbortSignal],
        kwargs: Dict[str, Any],
    ) -> httpx.Response:
        if signal is None:
            return await client.request(method, url, **kwargs)
        if signal.aborted:
            raise AbortError(signal.reason)
        send_task = asyncio.ensure_future(client.request(method, url, **kwargs))
        abort_task = asyncio.ensure_future(signal.wait())
        done, _ = await asyncio.wait({send_task, abort_task}, return_when=asyncio.FIRST_COMPLETED)
        if send_task in done:
            abort_task.cancel()
            return send_task.result()
        send_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await send_task
        raise AbortError(signal.reason)

    @staticmethod
    def _parse_envelope(resp: httpx.Response) -> Optional[ResponseEnvelope]:
        try:
            payload = resp.json()
        except ValueError:
            return None
        if not isinstance(payload, dict) or ("code" not in payload and "retcode" not in payload):
            return None
        return ResponseEnvelope.from_payload(payload)
