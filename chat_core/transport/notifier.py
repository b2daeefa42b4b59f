"""用户提示的抽象。

- notify_error: 阻塞式错误通知（需要用户注意）。
- show_message: 轻提示，短暂显示，不打断操作。

UI 层实现该协议；默认实现只写日志。
"""

from typing import Optional, Protocol

from chat_core.infrastructure.logging.logger import logger


class Notifier(Protocol):
    def notify_error(self, message: str, description: str, duration: Optional[float] = None) -> None:
        ...

    def show_message(self, text: str) -> None:
        ...


class LoggingNotifier:
    def notify_error(self, message: str, description: str, duration: Optional[float] = None) -> None:
        logger.error(message, extra={"extra": {"description": description, "duration": duration}})

    def show_message(self, text: str) -> None:
        logger.warning(text)
