"""
Start-up seeding and a small command line for account management.

    python -m core.demo_data create-user --name "Ana" --email ana@example.com --password secret1 --role sales
    python -m core.demo_data seed-samples
"""
import argparse
import logging
import sys
from typing import Optional

from sqlmodel import Session, select

import models
from crud import user_crud
from core.config import ADMIN_EMAIL, ADMIN_NAME, ADMIN_PASSWORD
from models import DemoStatus, UserRole

logger = logging.getLogger(__name__)


def ensure_admin_user(db: Session) -> models.User:
    """
    Returns an admin account, creating the configured one when the database
    has no admin at all. An existing but inactive configured admin is reactivated.
    """
    admin = user_crud.get_admin(db)
    if admin is not None:
        if not admin.is_active and admin.email == ADMIN_EMAIL.lower():
            logger.warning(f"Admin user '{admin.email}' exists but is INACTIVE. Activating now.")
            admin.is_active = True
            db.add(admin)
            db.commit()
            db.refresh(admin)
        return admin

    existing = user_crud.get_user_by_email(db, ADMIN_EMAIL)
    if existing is not None:
        # The configured email is taken by a non-admin; promote it rather than fail start-up.
        logger.warning(f"Promoting existing user '{existing.email}' to admin.")
        existing.role = UserRole.admin
        existing.is_active = True
        db.add(existing)
        db.commit()
        db.refresh(existing)
        return existing

    logger.info(f"No admin found, creating '{ADMIN_EMAIL}'.")
    return user_crud.create_user(db, name=ADMIN_NAME, email=ADMIN_EMAIL, password=ADMIN_PASSWORD, role=UserRole.admin)


def populate_sample_data(db: Session, owner: models.User) -> None:
    """
    Adds a sample product with one active demo when the catalog is empty.
    """
    if db.exec(select(models.Product)).first():
        logger.info("Products table is not empty. Skipping sample data.")
        return

    product = models.Product(name="Sample CRM", corporate_color="#1F6FEB")
    db.add(product)
    db.commit()
    db.refresh(product)

    demo = models.Demo(
        product_id=product.id,
        title="Sample CRM walkthrough",
        subtitle="Pipeline, contacts and reporting in five minutes",
        url="https://example.com",
        instructions_en="Open the pipeline view and drag a deal to the next stage.",
        status=DemoStatus.active,
    )
    db.add(demo)
    db.commit()
    logger.info(f"Sample product {product.id} and demo {demo.id} added for '{owner.email}'.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m core.demo_data", description="Demo Hub account tools")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="Create a user account")
    create.add_argument("--name", required=True)
    create.add_argument("--email", required=True)
    create.add_argument("--password", required=True)
    create.add_argument("--role", choices=[r.value for r in UserRole], default=UserRole.sales.value)

    sub.add_parser("seed-admin", help="Create the configured admin if no admin exists")
    sub.add_parser("seed-samples", help="Add a sample product and demo to an empty catalog")
    return parser


def main(argv: Optional[list] = None, session: Optional[Session] = None) -> int:
    args = _build_parser().parse_args(argv)

    if session is None:
        from database import create_db_and_tables, engine
        create_db_and_tables()
        session = Session(engine)

    with session as db:
        if args.command == "create-user":
            if len(args.password) < 6:
                print("Password must be at least 6 characters.", file=sys.stderr)
                return 1
            if user_crud.get_user_by_email(db, args.email):
                print(f"A user with email {args.email} already exists.", file=sys.stderr)
                return 1
            user = user_crud.create_user(
                db, name=args.name, email=args.email, password=args.password, role=UserRole(args.role)
            )
            print(f"Created {UserRole(user.role).value} user {user.email} (id={user.id})")
        elif args.command == "seed-admin":
            admin = ensure_admin_user(db)
            print(f"Admin: {admin.email} (id={admin.id})")
        elif args.command == "seed-samples":
            populate_sample_data(db, ensure_admin_user(db))
            print("Sample data ready.")
    return 0


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    sys.exit(main())
