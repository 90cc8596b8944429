"""CLI entry point: fetch one subject and print its details as JSON."""

import argparse
import asyncio
import json
import sys

from .config import load_config
from .errors import FetchExhaustedError, InvalidIdError
from .extractor import DetailExtractor
from .fetcher import DoubanFetcher, validate_douban_id
from .logger import setup_logger


async def fetch_details(config, douban_id: str) -> dict:
    async with DoubanFetcher(config.fetch) as fetcher:
        result = await fetcher.fetch_details(douban_id)
    return result.to_dict()


def extract_file(html_path: str, douban_id: str) -> dict:
    """Parse a saved subject page without touching the network."""
    with open(html_path, encoding="utf-8") as f:
        html = f.read()
    return DetailExtractor().extract(html, douban_id).to_dict()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Douban subject details fetcher")
    parser.add_argument("--id", type=str, required=True, dest="douban_id",
                        help="Numeric Douban subject id")
    parser.add_argument("--html", type=str, default=None,
                        help="Parse a saved HTML page instead of fetching")
    parser.add_argument("--config", type=str, default=None,
                        help="Path to config file (default: $CONFIG_PATH or config.yaml)")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logger(config.log_dir)

    try:
        douban_id = validate_douban_id(args.douban_id)
        if args.html:
            payload = extract_file(args.html, douban_id)
        else:
            payload = asyncio.run(fetch_details(config, douban_id))
    except InvalidIdError as e:
        print(json.dumps(e.to_dict(), ensure_ascii=False), file=sys.stderr)
        sys.exit(2)
    except FetchExhaustedError as e:
        print(json.dumps(e.to_dict(), ensure_ascii=False), file=sys.stderr)
        sys.exit(1)

    print(json.dumps(payload, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
