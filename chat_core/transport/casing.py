"""出站字段名统一转换为 snake_case。

调用方写 conversationId 还是 conversation_id 都可以，
发到线上的字段名始终一致。嵌套的 dict / list 会递归处理，值本身不变。
"""

import re
from typing import Any

_BOUNDARY_1 = re.compile(r"(.)([A-Z][a-z]+)")
_BOUNDARY_2 = re.compile(r"([a-z0-9])([A-Z])")


def to_snake_case(name: str) -> str:
    s = _BOUNDARY_1.sub(r"\1_\2", name)
    s = _BOUNDARY_2.sub(r"\1_\2", s)
    return s.replace("-", "_").lower()


def convert_keys_to_snake(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            (to_snake_case(k) if isinstance(k, str) else k): convert_keys_to_snake(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [convert_keys_to_snake(v) for v in value]
    return value
