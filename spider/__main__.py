import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import SpiderConfig, load_yaml_config
from .errors import ConfigError
from .service import SpiderService

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _attach_file_logging(log_path: Path, level: str) -> None:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
    logging.getLogger().addHandler(file_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="spider", description="Same-site web spider")
    parser.add_argument("root_url", nargs="?", help="Crawl root URL (overrides config)")
    parser.add_argument("--config", help="Path to config YAML file")
    parser.add_argument("--include-subdomains", action="store_true", default=None,
                        help="Also crawl subdomains of the root host")
    parser.add_argument("--user-agent", help="User agent for requests and robots.txt")
    parser.add_argument("--workers", type=int, help="Number of worker threads")
    parser.add_argument("--max-pages", type=int, help="Stop after this many pages (0 = no limit)")
    parser.add_argument("--no-robots", action="store_true", help="Ignore robots.txt")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, ...)")
    return parser


def load_config(args: argparse.Namespace) -> SpiderConfig:
    data = {}
    if args.config:
        data = load_yaml_config(args.config)

    if args.root_url:
        data["root_url"] = args.root_url
    if args.include_subdomains is not None:
        data["include_subdomains"] = args.include_subdomains
    if args.user_agent:
        data["user_agent"] = args.user_agent
    if args.workers is not None:
        data["workers"] = args.workers
    if args.max_pages is not None:
        data["max_pages"] = args.max_pages
    if args.no_robots:
        data["robots"] = dict(data.get("robots") or {}, enabled=False)
    if args.log_level:
        data["logs"] = dict(data.get("logs") or {}, log_level=args.log_level)

    if not data.get("root_url"):
        raise ConfigError("A root URL is required (argument or root_url in config)")

    return SpiderConfig.from_dict(data)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=getattr(logging, config.logs.log_level.upper()),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
    if config.logs.log_file:
        _attach_file_logging(Path(config.logs.log_file), config.logs.log_level)

    service = SpiderService(config)
    try:
        records = service.run()
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    finally:
        service.close()

    for record in records:
        print(json.dumps({
            "url": record.url,
            "status": record.status,
            "ok": record.ok,
            "links": record.links,
            "final_url": record.final_url,
        }))

    return 0


if __name__ == "__main__":
    sys.exit(main())
