"""Exception hierarchy for fetching subject pages.

Retryable errors are anti-bot signals and transient transport failures.
Fatal errors are bad statuses and pages that fail the sanity check. The
fetcher still spends its whole attempt budget on both kinds; only the error
left standing after the last attempt is mapped to a user-facing status.
"""

from typing import Optional


class DoubanError(Exception):
    """Base class for everything this package raises."""


class InvalidIdError(DoubanError):
    status_code = 400

    def __init__(self, douban_id: Optional[str]):
        self.douban_id = douban_id
        if douban_id is None:
            self.user_message = "缺少必要参数: id"
        else:
            self.user_message = "无效的豆瓣ID格式"
        super().__init__(f"{self.user_message}: {douban_id!r}")

    def to_dict(self) -> dict:
        if self.douban_id is None:
            return {"error": self.user_message}
        return {"error": self.user_message, "id": self.douban_id}


class FetchError(DoubanError):
    status_code = 500
    user_message = "获取豆瓣详情失败"


class RetryableFetchError(FetchError):
    pass


class FatalFetchError(FetchError):
    pass


class FetchTimeout(RetryableFetchError):
    status_code = 504
    user_message = "请求超时，请稍后重试"


class NetworkError(RetryableFetchError):
    status_code = 502
    user_message = "网络连接失败"


class AntiBotError(RetryableFetchError):
    def __init__(self, status: int, reason: str = ""):
        self.status = status
        super().__init__(f"HTTP {status}: {reason}")


class HTTPStatusFetchError(FatalFetchError):
    def __init__(self, status: int, reason: str = ""):
        self.status = status
        super().__init__(f"HTTP {status}: {reason}")


class InvalidContentError(FatalFetchError):
    def __init__(self, message: str = "获取到无效页面内容"):
        super().__init__(message)


class ParseError(FatalFetchError):
    status_code = 422
    user_message = "页面解析失败"


class UnexpectedFetchError(FetchError):
    """Any other exception raised during an attempt."""

    def __init__(self, error: Exception):
        self.error = error
        super().__init__(f"{type(error).__name__}: {error}")


class FetchExhaustedError(DoubanError):
    """Terminal error once every attempt has failed."""

    def __init__(self, douban_id: str, attempts: int, last_error: Exception):
        self.douban_id = douban_id
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"All {attempts} attempts failed for {douban_id}: {last_error}")

    @property
    def status_code(self) -> int:
        return getattr(self.last_error, "status_code", 500)

    @property
    def user_message(self) -> str:
        return getattr(self.last_error, "user_message", FetchError.user_message)

    def to_dict(self) -> dict:
        return {
            "error": self.user_message,
            "details": str(self.last_error),
            "id": self.douban_id,
            "attempts": self.attempts,
        }
