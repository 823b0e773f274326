"""Publish throughput benchmark.

Sends N messages over one cached session and reports throughput and
per-call latency.

Usage:
    python benchmarks/bench_publish.py [--host HOST] [--port PORT]
                                       [--count N] [--routing-key KEY]
"""

import argparse
import statistics
import time

from bunny_client import BunnyError, InMemorySharedCache, PublishClient


# -- Config ------------------------------------------------------------------

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 55672
DEFAULT_COUNT = 1000


def run(host: str, port: int, count: int, routing_key: str) -> None:
    latencies: list[float] = []

    with PublishClient(host=host, port=port, cache=InMemorySharedCache()) as client:
        start = time.perf_counter()
        for i in range(count):
            t0 = time.perf_counter()
            try:
                client.publish("", routing_key, f"Hello World #{i}")
            except BunnyError as exc:
                print(f"Error publishing, stopping after {i} messages: {exc}")
                break
            latencies.append((time.perf_counter() - t0) * 1000)
        elapsed = time.perf_counter() - start
        stats = client.get_stats()

    sent = len(latencies)
    print(f"{sent:,} messages sent in {elapsed:.2f} seconds")
    if sent:
        print(f"  throughput:  {sent / elapsed:,.0f} msg/s")
        print(f"  latency p50: {statistics.median(latencies):.2f} ms")
        if sent > 1:
            print(f"  latency p99: {statistics.quantiles(latencies, n=100)[98]:.2f} ms")
    print(
        f"  sessions opened: {stats['sessions_opened']}, "
        f"stale-session retries: {stats['stale_session_retries']}"
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="bunny-client publish benchmark")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--count", type=int, default=DEFAULT_COUNT)
    parser.add_argument("--routing-key", default="test")
    args = parser.parse_args()

    run(args.host, args.port, args.count, args.routing_key)
