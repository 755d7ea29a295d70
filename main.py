#!/usr/bin/env python3
"""
NoteSafe -- multi-tenant notes API.

Usage:
  python main.py
  python main.py --host 0.0.0.0 --port 9000
  python main.py --reload
  python main.py --check-config

Environment variables (or .env):
  SECRET_KEY             Token signing key, at least 32 characters. Required
                         unless DEBUG=true, which generates a throwaway key.
  DEBUG                  true for local development.
  DATABASE_URL           SQLAlchemy URL. Default: sqlite:///./notesafe.db
  TOKEN_EXPIRE_SECONDS   Access token lifetime. Default: 900 (15 minutes).
  BCRYPT_ROUNDS          bcrypt work factor, 4-31. Default: 12.
  LOG_LEVEL              Default: INFO.
"""

import argparse
import sys

import uvicorn
from pydantic import ValidationError

from core.config import get_settings


def _check_config() -> int:
    """Load Settings and report whether they validate. Never prints the secret."""
    try:
        settings = get_settings()
    except ValidationError as e:
        # errors()[i]["msg"] only; str(e) echoes input values, secret included.
        for err in e.errors():
            print(f"  [!] Invalid configuration: {err['msg']}")
        return 1
    print(f"  database_url:          {settings.database_url}")
    print(f"  token_expire_seconds:  {settings.token_expire_seconds}")
    print(f"  token_issuer:          {settings.token_issuer}")
    print(f"  bcrypt_rounds:         {settings.bcrypt_rounds}")
    print(f"  debug:                 {settings.debug}")
    print("  Configuration OK.")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="NoteSafe -- multi-tenant notes API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    parser.add_argument("--check-config", action="store_true", help="Validate settings and exit")
    args = parser.parse_args(argv)

    if args.check_config:
        return _check_config()

    # Fail before binding the port if the configuration is unusable.
    if _check_config() != 0:
        return 1

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
