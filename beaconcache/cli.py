import argparse
import asyncio
import json
from pathlib import Path
from typing import Any

from common.utils.logger import configure_logging

from .factory import CacheMode, create_beacon_cache, create_memory_codec


def load_beacons_json(path: str) -> list[dict[str, Any]]:
    """
    Load one beacon object or a list of beacon objects from a JSON file.

    Parameters
    ----------
    path : str
        Path to the JSON file.

    Returns
    -------
    List[Dict[str, Any]]
        The beacon records found in the file.
    """
    data = json.loads(Path(path).read_text())
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list) and all(isinstance(item, dict) for item in data):
        return data
    raise SystemExit(f"{path} must contain a JSON object or a list of objects")


def build_config(args: argparse.Namespace) -> dict[str, Any]:
    config: dict[str, Any] = {
        "cache": {"namespace": args.namespace},
        "codec": {"provider": args.provider},
    }
    if args.config_file:
        config["config_file"] = args.config_file
    if args.redis_host:
        config["redis"] = {"host": args.redis_host, "port": args.redis_port, "db": args.redis_db}
    return config


async def _run_command_async(args: argparse.Namespace) -> None:
    configure_logging("beaconcache-cli", level=args.log_level, json_output=False)
    config = build_config(args)

    if args.cmd == "decode":
        # decoding needs no cache state
        codec = create_memory_codec(config["codec"])
        for record in load_beacons_json(args.path):
            print(json.dumps({"beacon_id": record.get("beacon_id"), "text": codec.decode(record)}))
        return

    cache = await asyncio.to_thread(create_beacon_cache, CacheMode.PUSH_ONLY, config)
    if args.cmd == "add":
        added = 0
        for record in load_beacons_json(args.path):
            if await asyncio.to_thread(cache.add_beacon, record) is not None:
                added += 1
        print(json.dumps({"added": added}))
    elif args.cmd == "related":
        print(json.dumps(cache.find_related(args.beacon_id)))
    elif args.cmd == "heal":
        evicted = cache.self_heal()
        await asyncio.to_thread(cache.save)
        print(json.dumps({"evicted": evicted}))
    elif args.cmd == "stats":
        print(json.dumps(cache.stats(), indent=2))
    elif args.cmd == "clear":
        await asyncio.to_thread(cache.clear)
        print("OK")


def main() -> None:
    """Entry point for the beacon cache CLI that dispatches to an async runner."""
    parser = argparse.ArgumentParser(prog="beaconcache", description="Beacon cache CLI")
    parser.add_argument("--namespace", default="default")
    parser.add_argument("--config-file", dest="config_file", default=None, help="JSON/YAML settings file")
    parser.add_argument("--redis-host", dest="redis_host", default=None, help="Use Redis instead of memory")
    parser.add_argument("--redis-port", dest="redis_port", type=int, default=6379)
    parser.add_argument("--redis-db", dest="redis_db", type=int, default=0)
    parser.add_argument(
        "--provider", default="deterministic", choices=["deterministic", "holographic"]
    )
    parser.add_argument("--log-level", dest="log_level", default="WARNING")

    sub = parser.add_subparsers(dest="cmd", required=True)

    p_add = sub.add_parser("add", help="Add beacons from a JSON file")
    p_add.add_argument("path")

    p_decode = sub.add_parser("decode", help="Decode beacons from a JSON file to text")
    p_decode.add_argument("path")

    p_related = sub.add_parser("related", help="List ids related to a beacon id")
    p_related.add_argument("beacon_id")

    sub.add_parser("heal", help="Run one self-healing pass")
    sub.add_parser("stats", help="Show cache stats")
    sub.add_parser("clear", help="Clear the cache and its stored blob")

    args = parser.parse_args()
    asyncio.run(_run_command_async(args))


if __name__ == "__main__":
    main()
