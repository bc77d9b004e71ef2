#!/usr/bin/env python3
"""
Generate a worker token for the gateway.

Usage:
    python scripts/generate_token.py              # 32-byte token
    python scripts/generate_token.py 48           # 48-byte token
    python scripts/generate_token.py --env        # Output as .env line

Example output:
    FRIGG_WORKER_TOKEN=Yx8kL2mN9pQ4rS6tU0vW3xZ5aB7cD1eF...

Workers send the same value in the x-frigg-worker-token header.
"""
import secrets
import sys


def generate_token(length: int = 32) -> str:
    """Generate a URL-safe random token."""
    return secrets.token_urlsafe(length)


def main():
    length = 32
    env_format = False

    for arg in sys.argv[1:]:
        if arg == "--env":
            env_format = True
        elif arg.isdigit():
            length = int(arg)
        elif arg in ("--help", "-h"):
            print(__doc__)
            return

    token = generate_token(length)
    if env_format:
        print(f"FRIGG_WORKER_TOKEN={token}")
    else:
        print(token)


if __name__ == "__main__":
    main()
