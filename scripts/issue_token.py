"""Mint a development bearer token the way the identity gateway would."""
import argparse
import uuid
from datetime import timedelta

from orderflow.core.security import create_access_token
from orderflow.models.user import UserRole


def main():
    parser = argparse.ArgumentParser(description="Issue a development access token")
    parser.add_argument("role", choices=[r.value for r in UserRole], help="Role claim for the token")
    parser.add_argument("--user-id", default=None, help="Subject (defaults to a random id)")
    parser.add_argument("--email", default="", help="Email claim")
    parser.add_argument("--name", default="", help="Display name claim")
    parser.add_argument("--minutes", type=int, default=None, help="Lifetime in minutes")
    args = parser.parse_args()

    user_id = args.user_id or uuid.uuid4().hex
    expires = timedelta(minutes=args.minutes) if args.minutes else None
    token = create_access_token(
        user_id,
        args.role,
        email=args.email,
        name=args.name,
        expires_delta=expires,
    )

    print(f"# user {user_id} ({args.role})")
    print(token)


if __name__ == "__main__":
    main()
