import argparse
import asyncio
import re

from sqlalchemy import select

from app.core import security
from app.db.session import SessionLocal
from app.models.user import User, UserRole
from app.services import coupons as coupons_service

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PASSWORD_MIN_LEN = 8


async def sweep_coupons() -> int:
    async with SessionLocal() as session:
        expired = await coupons_service.sweep_expired(session)
    print(f"Expired coupons: {expired}")
    return expired


def _validate_admin_inputs(email: str, password: str) -> str:
    email_norm = (email or "").strip().lower()
    if not EMAIL_RE.fullmatch(email_norm):
        raise SystemExit(f"Invalid email: {email!r}")
    if len(password or "") < PASSWORD_MIN_LEN:
        raise SystemExit(f"Password must be at least {PASSWORD_MIN_LEN} characters")
    return email_norm


async def create_admin(*, email: str, password: str, name: str | None = None) -> User:
    email_norm = _validate_admin_inputs(email, password)
    async with SessionLocal() as session:
        user = (await session.execute(select(User).where(User.email == email_norm))).scalar_one_or_none()
        if user is None:
            user = User(
                email=email_norm,
                hashed_password=security.hash_password(password),
                name=(name or "").strip() or None,
                role=UserRole.admin,
            )
            session.add(user)
            action = "created"
        else:
            user.role = UserRole.admin
            user.hashed_password = security.hash_password(password)
            if name:
                user.name = name.strip()
            action = "promoted"
        await session.commit()
        await session.refresh(user)
    print(f"Admin {action}: {user.email} id={user.id}")
    return user


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Prize-draw maintenance utilities")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("sweep-coupons", help="Expire active coupons past their expiry date")

    admin = subparsers.add_parser("create-admin", help="Create an admin account or promote an existing user")
    admin.add_argument("--email", required=True, help="Admin email")
    admin.add_argument("--password", required=True, help="Admin password")
    admin.add_argument("--name", help="Display name (optional)")
    return parser


def _run_cli_command(args: argparse.Namespace) -> bool:
    if args.command == "sweep-coupons":
        asyncio.run(sweep_coupons())
        return True

    if args.command == "create-admin":
        asyncio.run(create_admin(email=args.email, password=args.password, name=args.name))
        return True

    return False


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not _run_cli_command(args):
        parser.print_help()


if __name__ == "__main__":
    main()
