import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol
from uuid import uuid4

from chat_core.config.settings import settings
from chat_core.domain.exceptions import BusinessError

AUTHORIZATION_KEY = "Authorization"
TOKEN_KEY = "Token"
USER_INFO_KEY = "userInfo"


class CredentialStore(Protocol):
    def get_authorization(self) -> str:
        ...

    def set_authorization(self, value: str) -> None:
        ...

    def remove_all(self) -> None:
        ...


class JsonCredentialStore(CredentialStore):
    """本地会话凭证，保存在单个 JSON 文件里，写入时先写临时文件再替换。"""

    def __init__(self, path: str | Path | None = None):
        self._path = Path(path or settings.credential_store_path).resolve()
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_authorization(self) -> str:
        return self._read().get(AUTHORIZATION_KEY) or ""

    def set_authorization(self, value: str) -> None:
        self._update({AUTHORIZATION_KEY: value})

    def get_token(self) -> str:
        return self._read().get(TOKEN_KEY) or ""

    def get_user_info(self) -> Dict[str, Any]:
        return self._read().get(USER_INFO_KEY) or {}

    def set_items(
        self,
        authorization: Optional[str] = None,
        token: Optional[str] = None,
        user_info: Optional[Dict[str, Any]] = None,
    ) -> None:
        items: Dict[str, Any] = {}
        if authorization is not None:
            items[AUTHORIZATION_KEY] = authorization
        if token is not None:
            items[TOKEN_KEY] = token
        if user_info is not None:
            items[USER_INFO_KEY] = user_info
        self._update(items)

    def remove_all(self) -> None:
        if self._path.exists():
            try:
                self._path.unlink()
            except OSError as e:
                raise BusinessError(code="STORE_DELETE_ERROR", message=str(e))

    def _read(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise BusinessError(code="STORE_READ_ERROR", message=str(e))
        return data if isinstance(data, dict) else {}

    def _update(self, items: Dict[str, Any]) -> None:
        data = self._read()
        data.update(items)
        tmp_path = self._path.with_name(f"{self._path.stem}.{uuid4().hex}.json.tmp")
        try:
            tmp_path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise BusinessError(code="STORE_WRITE_ERROR", message=str(e))
