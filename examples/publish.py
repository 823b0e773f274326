"""Publish a single message through the JSON-RPC channel gateway.

    pip install bunny-client

    python examples/publish.py --host localhost --routing-key test "Hello World!"

    # Share the session token with other processes through Redis
    pip install bunny-client[redis]
    python examples/publish.py --redis-url redis://localhost:6379/0 "Hello World!"
"""

import argparse
import logging
import sys

from bunny_client import (
    BunnyError,
    ClientConfig,
    InMemorySharedCache,
    PublishClient,
    RedisSharedCache,
)


def main() -> int:
    parser = argparse.ArgumentParser(description="Publish one message")
    parser.add_argument("message", nargs="?", default="Hello World!")
    parser.add_argument("--host", default="localhost")
    parser.add_argument("--port", type=int, default=55672)
    parser.add_argument("--exchange", default="")
    parser.add_argument("--routing-key", default="test")
    parser.add_argument("--redis-url", default=None, help="Share sessions via Redis")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.redis_url:
        cache = RedisSharedCache.from_url(args.redis_url)
    else:
        cache = InMemorySharedCache()

    config = ClientConfig.from_env(host=args.host, port=args.port)
    with PublishClient(config, cache=cache) as client:
        try:
            client.publish(args.exchange, args.routing_key, args.message)
        except BunnyError as exc:
            print(f"Error delivering message: {exc}")
            return 1

    print("Message Published")
    return 0


if __name__ == "__main__":
    sys.exit(main())
