#!/usr/bin/env python3
"""
BlogEngine -- editor allow-list administration.

Editors are provisioned out-of-band: the web application only ever reads the
allow-list. Use this command to manage it against the same DATABASE_URL the
server uses.

Usage:
  python main.py list
  python main.py grant 110248495921238986420 --note "Nabil"
  python main.py revoke 110248495921238986420

The subject id is the identity provider's stable "sub" value for the person,
not their email address.

Environment variables:
  DATABASE_URL  SQLAlchemy URL of the data store (defaults to ./blogengine.db).
  SECRET_KEY    Not used by this command, but required by the shared settings
                unless DEBUG=true.
"""

import argparse
import sys

from auth.store import AuthorizationStore
from core.config import get_settings
from core.database import Database
from core.errors import StoreError


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="main.py",
        description="Manage the BlogEngine editor allow-list.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="Show every authorized editor.")

    grant = sub.add_parser("grant", help="Authorize a subject id to edit.")
    grant.add_argument("subject_id", help="Identity provider subject id ('sub').")
    grant.add_argument("--note", default=None, help="Free-text label, e.g. the person's name.")

    revoke = sub.add_parser("revoke", help="Remove a subject id from the allow-list.")
    revoke.add_argument("subject_id", help="Identity provider subject id ('sub').")
    return parser


def run(argv: list[str], store: AuthorizationStore) -> int:
    """Execute one CLI command against store. Returns the process exit code."""
    args = _build_parser().parse_args(argv)

    if args.command == "list":
        editors = store.list_editors()
        if not editors:
            print("  No authorized editors.")
        for editor in editors:
            note = f"  ({editor.note})" if editor.note else ""
            print(f"  {editor.subject_id}{note}  since {editor.created_at}")
        return 0

    if args.command == "grant":
        if store.grant(args.subject_id, note=args.note):
            print(f"  [+] {args.subject_id} can now edit.")
        else:
            print(f"  [=] {args.subject_id} is already an editor.")
        return 0

    if store.revoke(args.subject_id):
        print(f"  [-] {args.subject_id} can no longer edit.")
        return 0
    print(f"  [!] {args.subject_id} was not an editor.")
    return 1


def main() -> None:
    settings = get_settings()
    db = Database(settings.database_url, timeout=settings.store_timeout_seconds)
    try:
        db.create_all()
        code = run(sys.argv[1:], AuthorizationStore(db))
    except StoreError as exc:
        print(f"  [!] {exc.message}")
        code = 2
    finally:
        db.close()
    sys.exit(code)


if __name__ == "__main__":
    main()
