#!/usr/bin/env python3
"""
Generate a Supabase-shaped access token for manual API testing.

The token is signed with SUPABASE_JWT_SECRET. The service also confirms the
token with Supabase Auth, so the user id must belong to a live user of the
same project.

Usage:
python scripts/generate_test_token.py --user-id <uuid> [--admin] [--expires-hours 24]
"""

import argparse
import os
import sys
import time
from uuid import UUID

import jwt

SECRET_KEY = os.getenv("SUPABASE_JWT_SECRET")
ALGORITHM = "HS256"


def generate_test_token(
    user_id: str, email: str = None, admin: bool = False, expires_hours: int = 24
) -> str:
    """Mint an HS256 token with the claims the recipes service reads"""
    now = int(time.time())
    app_metadata = {"provider": "email"}
    if admin:
        app_metadata["role"] = "admin"

    payload = {
        "sub": user_id,
        "aud": "authenticated",
        "role": "authenticated",
        "email": email,
        "app_metadata": app_metadata,
        "iat": now,
        "exp": now + expires_hours * 3600,
    }

    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def main():
    parser = argparse.ArgumentParser(description="Generate a test access token")
    parser.add_argument("--user-id", required=True, help="UUID of the Supabase user")
    parser.add_argument("--email", default=None, help="Email claim to embed")
    parser.add_argument(
        "--admin",
        action="store_true",
        help="Embed the admin role (the Supabase user must also carry it in app_metadata)",
    )
    parser.add_argument(
        "--expires-hours", type=int, default=24, help="Token expiry in hours (default: 24)"
    )

    args = parser.parse_args()

    if not SECRET_KEY:
        print("❌ SUPABASE_JWT_SECRET is not set")
        sys.exit(1)

    try:
        UUID(args.user_id)
    except ValueError:
        print(f"❌ Invalid UUID format: {args.user_id}")
        sys.exit(1)

    token = generate_test_token(args.user_id, args.email, args.admin, args.expires_hours)

    print("🎯 Test Token Generated Successfully!")
    print("=" * 60)
    print(f"User ID: {args.user_id}")
    print(f"Admin: {'yes' if args.admin else 'no'}")
    print(f"Expires in: {args.expires_hours} hours")
    print("=" * 60)
    print()
    print(token)
    print()
    print("🧪 Try it:")
    print(
        f"curl -X POST -H 'Authorization: Bearer {token}' -H 'Content-Type: application/json' "
        "-d '{\"ingredients\": [\"tomato\", \"onion\"]}' http://localhost:8000/api/v1/recipes/generate"
    )


if __name__ == "__main__":
    main()
