"""后端接口路径配置。

业务代码只引用这里的逻辑名，接口版本或路径调整时集中修改。"""

from dataclasses import dataclass
from typing import Mapping

API_PREFIX = "/v1"


@dataclass(frozen=True)
class Endpoint:
    method: str
    path: str

    @property
    def url(self) -> str:
        return f"{API_PREFIX}{self.path}"


ENDPOINTS: Mapping[str, Endpoint] = {
    # dialog
    "list_dialog": Endpoint("GET", "/dialog/list"),
    "get_dialog": Endpoint("GET", "/dialog/get"),
    "set_dialog": Endpoint("POST", "/dialog/set"),
    "remove_dialog": Endpoint("POST", "/dialog/rm"),
    # conversation
    "list_conversation": Endpoint("GET", "/conversation/list"),
    "get_conversation": Endpoint("GET", "/conversation/get"),
    "set_conversation": Endpoint("POST", "/conversation/set"),
    "remove_conversation": Endpoint("POST", "/conversation/rm"),
    "complete_conversation": Endpoint("POST", "/conversation/completion"),
    # api token & stats
    "list_token": Endpoint("GET", "/api/list_token"),
    "create_token": Endpoint("POST", "/api/new_token"),
    "remove_token": Endpoint("POST", "/api/rm"),
    "get_stats": Endpoint("GET", "/api/stats"),
}


def get_endpoint(name: str) -> Endpoint:
    try:
        return ENDPOINTS[name]
    except KeyError:
        raise KeyError(f"Unknown endpoint: {name!r}") from None
