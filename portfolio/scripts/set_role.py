"""
Change an account's role (e.g. promote the site owner to admin). Run from project root:
  python -m portfolio.scripts.set_role EMAIL [role]
Example:
  python -m portfolio.scripts.set_role me@example.com admin
"""
import argparse
import sys

from portfolio.core.database import SessionLocal
from portfolio.core.errors import NotFound
from portfolio.services.credentials import set_role


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Set the role of a registered account.")
    parser.add_argument("email", help="Email the account registered with")
    parser.add_argument("role", nargs="?", default="admin", choices=["user", "admin"])
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        user = set_role(db, args.email, args.role)
    except NotFound:
        print(f"No account registered with '{args.email}'.", file=sys.stderr)
        return 1
    finally:
        db.close()
    print(f"User '{user.username}' now has role '{args.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
