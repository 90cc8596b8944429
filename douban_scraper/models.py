"""Data models for subject details."""

from dataclasses import asdict, dataclass, field
from typing import List, Optional

SUCCESS_MESSAGE = "获取成功"
PARTIAL_MESSAGE = "部分获取成功（解析出错）"


def placeholder_title(douban_id: str) -> str:
    return f"影片-{douban_id}"


@dataclass
class DoubanDetails:
    id: str
    title: str = ""
    poster: str = ""
    rate: str = ""  # raw text, e.g. "9.4"
    year: str = ""
    directors: List[str] = field(default_factory=list)
    screenwriters: List[str] = field(default_factory=list)
    cast: List[str] = field(default_factory=list)
    genres: List[str] = field(default_factory=list)
    countries: List[str] = field(default_factory=list)
    languages: List[str] = field(default_factory=list)
    episodes: Optional[int] = None
    # Series carry episode_length, films carry movie_duration; never both.
    episode_length: Optional[int] = None
    movie_duration: Optional[int] = None
    first_aired: str = ""
    plot_summary: str = ""

    @classmethod
    def empty(cls, douban_id: str) -> "DoubanDetails":
        return cls(id=douban_id, title=placeholder_title(douban_id))

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DetailsResult:
    data: DoubanDetails
    code: int = 200
    message: str = SUCCESS_MESSAGE

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "data": self.data.to_dict()}
