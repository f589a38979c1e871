from __future__ import annotations

from .init import get_logger

"""User-facing notices.

The export pipeline reports its outcome to the person at the keyboard through
these helpers. Cancellation is informational, not an error, so it goes through
notice_info rather than notice_error.
"""

__all__ = [
    "notice_info",
    "notice_success",
    "notice_warn",
    "notice_error",
]


def notice_info(message: str) -> None:
    get_logger().info(message)


def notice_success(message: str) -> None:
    get_logger().info(message)


def notice_warn(message: str) -> None:
    # 複数行メッセージは行ごとにラベルを付ける
    for line in message.splitlines() or [""]:
        get_logger().warning(line)


def notice_error(message: str) -> None:
    for line in message.splitlines() or [""]:
        get_logger().error(line)
