"""
Create a user without going through the HTTP API. Run from project root:
  python -m app.scripts.create_user USERNAME EMAIL PASSWORD [--full-name NAME]
Example:
  python -m app.scripts.create_user alice alice@example.com your-secure-password --full-name "Alice A"
"""
import argparse
import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.core.exceptions import AuthServiceError
from app.core.log import configure_logging
from app.services.auth import AuthService
from app.services.user_store import UserStore

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Keystone user.")
    parser.add_argument("username", help="Username (unique)")
    parser.add_argument("email", help="Email address (unique)")
    parser.add_argument("password", help="Password (1-128 chars, at most 72 UTF-8 bytes)")
    parser.add_argument("--full-name", default=None, help="Full name (defaults to username)")
    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    db = SessionLocal()
    try:
        service = AuthService(UserStore(db), settings)
        try:
            user = service.register(
                full_name=args.full_name or args.username,
                email=args.email,
                password=args.password,
                username=args.username,
            )
        except AuthServiceError as e:
            logger.warning("User not created: %s", e.message)
            print(e.message, file=sys.stderr)
            return 1
        print(f"Created user '{user.username}' <{user.email}> with id {user.id}.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
