"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置，优先级依次降低。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("CHAT_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
        Path(__file__).resolve().parents[1] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """客户端配置。"""

    # ---- 后端接口 ----
    api_base_url: str = Field(
        default="http://127.0.0.1:9380",
        description="后端服务地址，所有接口路径都拼接在其后",
    )
    http_timeout: float = Field(
        default=300.0,
        ge=1.0,
        description="HTTP 超时时间（秒），超时按网络异常处理",
    )

    # ---- 凭证与导航 ----
    credential_store_path: str = Field(
        default=".storage/credentials.json",
        description="本地会话凭证文件",
    )
    login_path: str = Field(default="/login", description="鉴权失败后跳转的登录页")
    shared_token_param: str = Field(
        default="shared_id",
        description="分享链接携带的 token 查询参数名",
    )

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if not v:
            raise ValueError("api_base_url must not be empty")
        return v.rstrip("/")

    @field_validator("login_path")
    @classmethod
    def validate_login_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("login_path must start with '/'")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = Settings()
