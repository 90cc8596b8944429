"""YAML config loader."""

import os
from dataclasses import dataclass, field
from typing import Dict, List

import yaml

DEFAULT_CACHE_TIME = 7200  # 2 hours

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
    ),
    "Referer": "https://movie.douban.com/",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
    "Accept-Encoding": "gzip, deflate, br",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Upgrade-Insecure-Requests": "1",
}


@dataclass
class FetchConfig:
    base_url: str = "https://movie.douban.com/subject"
    timeout: float = 20.0
    max_attempts: int = 3
    retry_delays: List[float] = field(default_factory=lambda: [1.0, 2.0, 3.0])
    retry_jitter: float = 1.0
    headers: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS))


@dataclass
class CacheConfig:
    cache_time: int = DEFAULT_CACHE_TIME


@dataclass
class AppConfig:
    log_dir: str = "logs"
    fetch: FetchConfig = field(default_factory=FetchConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)


def default_config_path() -> str:
    return os.environ.get("CONFIG_PATH", "config.yaml")


def load_config(config_path: str = None) -> AppConfig:
    config_path = config_path or default_config_path()
    if not os.path.exists(config_path):
        return AppConfig()

    with open(config_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"Expected a mapping in {config_path}, got {type(raw).__name__}")

    fetch_raw = raw.get("fetch", {}) or {}
    headers = dict(DEFAULT_HEADERS)
    headers.update(fetch_raw.get("headers", {}) or {})
    fetch = FetchConfig(**{k: v for k, v in fetch_raw.items()
                           if k in FetchConfig.__dataclass_fields__ and k != "headers"})
    fetch.headers = headers

    if len(fetch.retry_delays) < fetch.max_attempts - 1:
        raise ValueError(
            f"retry_delays needs at least {fetch.max_attempts - 1} entries "
            f"for max_attempts={fetch.max_attempts}"
        )

    cache_raw = raw.get("cache", {}) or {}
    cache = CacheConfig(**{k: v for k, v in cache_raw.items() if k in CacheConfig.__dataclass_fields__})

    return AppConfig(
        log_dir=raw.get("log_dir", "logs"),
        fetch=fetch,
        cache=cache,
    )


def get_cache_time(config_path: str = None) -> int:
    """Cache lifetime in seconds for successful detail responses.

    The CACHE_TIME environment variable wins over the YAML value.
    Raises ValueError if the configured value is not a positive integer.
    """
    env_value = os.environ.get("CACHE_TIME")
    value = env_value if env_value is not None else load_config(config_path).cache.cache_time

    seconds = int(value)
    if seconds <= 0:
        raise ValueError(f"Cache time must be positive, got {seconds}")
    return seconds
