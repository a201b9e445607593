"""Create a sign-in account and its profile.

Usage:
    python -m gradportal.create_account --email admin@example.edu \
        --full-name "Registrar" --role admin --password-env ADMIN_PASSWORD
"""
import argparse
import asyncio
import getpass
import os
import sys

from pydantic import ValidationError

from gradportal.backend_client import create_account, get_backend_client
from gradportal.core.enums import Role
from gradportal.core.exceptions import BackendError
from gradportal.database import Base, engine, ensure_profile_schema
from gradportal.models import auth_session, profile, user  # noqa: F401


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--email", required=True)
    parser.add_argument("--full-name", required=True)
    parser.add_argument("--role", choices=[role.value for role in Role], default=Role.STUDENT.value)
    parser.add_argument("--student-id")
    parser.add_argument(
        "--password-env",
        help="read the password from this environment variable instead of prompting",
    )
    return parser


def prepare_database() -> None:
    Base.metadata.create_all(bind=engine)
    ensure_profile_schema()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.password_env:
        password = os.getenv(args.password_env, "")
    else:
        password = getpass.getpass("Password: ")

    prepare_database()

    try:
        created = asyncio.run(
            create_account(
                get_backend_client(),
                email=args.email,
                password=password,
                full_name=args.full_name,
                role=args.role,
                student_id=args.student_id,
            )
        )
    except (BackendError, ValidationError) as exc:
        print(f"Could not create account: {exc}", file=sys.stderr)
        return 1

    print(f"Created {created.role} {created.email} ({created.id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
