#!/usr/bin/env python3
"""
Push a build job onto a gateway queue, the way a producer would.

Usage:
    # Default queue
    python scripts/enqueue_job.py --branch master --clone-url https://github.com/frigg/frigg-hq.git

    # Named queue, extra fields as JSON
    python scripts/enqueue_job.py --queue custom --branch dev --clone-url URL --extra '{"sha": "abc"}'

Environment:
    REDIS_URL, KEY_PREFIX: same settings the gateway reads
"""
import argparse
import asyncio
import json
import sys

from gateway.config import Settings
from gateway.core.jobs import JobFetcher
from gateway.infra.redis_store import close_store, init_store


async def push(job: dict, queue: str | None, current: Settings) -> int:
    store = await init_store(
        current.redis_url,
        prefix=current.key_prefix,
        conn_timeout=current.redis_conn_timeout,
        socket_timeout=current.redis_socket_timeout,
    )
    try:
        return await JobFetcher(store).enqueue(job, queue)
    finally:
        await close_store()


def main():
    parser = argparse.ArgumentParser(
        description="Push a build job onto a gateway queue",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("--branch", "-b", required=True, help="Branch to build")
    parser.add_argument("--clone-url", "-u", required=True, help="Repository clone URL")
    parser.add_argument("--queue", "-q", default=None, help="Named queue (default queue if omitted)")
    parser.add_argument("--extra", "-e", default=None, help="Extra job fields as a JSON object")

    args = parser.parse_args()

    job = {"branch": args.branch, "clone_url": args.clone_url}
    if args.extra:
        try:
            extra = json.loads(args.extra)
        except ValueError as exc:
            print(f"Error: --extra is not valid JSON: {exc}", file=sys.stderr)
            sys.exit(1)
        if not isinstance(extra, dict):
            print("Error: --extra must be a JSON object", file=sys.stderr)
            sys.exit(1)
        job.update(extra)

    depth = asyncio.run(push(job, args.queue, Settings()))
    print(f"Queued on {args.queue or 'default'} (depth={depth})")


if __name__ == "__main__":
    main()
