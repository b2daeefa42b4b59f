"""可订阅的导航状态（当前路径 + 查询参数）。

导航状态可能被外部随时修改（用户点击、地址栏、鉴权跳转），
依赖它的组件通过 subscribe 注册异步监听器，而不是轮询。
"""

from __future__ import annotations

from typing import Awaitable, Callable, Dict, List, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit

from chat_core.infrastructure.logging.logger import logger

NavigationListener = Callable[["NavigationState"], Awaitable[None]]


class NavigationState:
    def __init__(self, path: str = "/", query: Optional[Mapping[str, str]] = None):
        self._path = path
        self._query: Dict[str, str] = dict(query or {})
        self._listeners: List[NavigationListener] = []

    @classmethod
    def from_url(cls, url: str) -> "NavigationState":
        parts = urlsplit(url)
        return cls(path=parts.path or "/", query=dict(parse_qsl(parts.query, keep_blank_values=True)))

    @property
    def path(self) -> str:
        return self._path

    @property
    def query(self) -> Dict[str, str]:
        return dict(self._query)

    @property
    def url(self) -> str:
        if not self._query:
            return self._path
        return f"{self._path}?{urlencode(self._query)}"

    def get(self, key: str) -> str:
        """缺失的参数返回空串。"""

        return self._query.get(key) or ""

    def subscribe(self, listener: NavigationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def set_query(self, params: Mapping[str, Optional[str]], *, replace: bool = False) -> None:
        """更新查询参数；值为 None 表示删除该参数。replace=True 时先清空原参数。"""

        nxt: Dict[str, str] = {} if replace else dict(self._query)
        for key, value in params.items():
            if value is None:
                nxt.pop(key, None)
            else:
                nxt[key] = value
        self._query = nxt
        await self._notify()

    async def push(self, path: str, query: Optional[Mapping[str, str]] = None) -> None:
        self._path = path
        self._query = dict(query or {})
        await self._notify()

    async def _notify(self) -> None:
        logger.info("navigation.changed", extra={"extra": {"url": self.url}})
        for listener in list(self._listeners):
            await listener(self)
