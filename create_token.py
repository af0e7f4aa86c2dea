#!/usr/bin/env python3
"""
Print a long-lived access token for an existing account.

Useful for API clients and manual testing against a local server.  The
token is signed with the ``SECRET_KEY`` of the current environment, so
run this with the same configuration as the server.

Usage:
    python create_token.py --email admin@homebonzenga.com --days 365
"""

import argparse
import sys

from bonzenga_api.app.core.db import get_connection, init_db
from bonzenga_api.app.core.security import create_access_token


def main() -> None:
    ap = argparse.ArgumentParser(description="Mint an access token for a Home Bonzenga account.")
    ap.add_argument("--email", required=True, help="Account email")
    ap.add_argument("--days", type=int, default=365, help="Token lifetime in days (default: 365)")
    args = ap.parse_args()

    init_db()
    email = args.email.strip().lower()
    conn = get_connection()
    try:
        row = conn.execute("SELECT role_id, status FROM users WHERE email = ?", (email,)).fetchone()
    finally:
        conn.close()
    if not row:
        print(f"[!] No user found with email: {email}", file=sys.stderr)
        sys.exit(2)
    if row["status"] != "ACTIVE":
        print(f"[!] Account is {row['status'].lower()}; the token would be rejected", file=sys.stderr)
        sys.exit(2)

    # expires_delta is in seconds
    token = create_access_token({"sub": email, "role_id": row["role_id"]}, expires_delta=args.days * 24 * 60 * 60)
    print(token)


if __name__ == "__main__":
    main()
