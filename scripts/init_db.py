#!/usr/bin/env python3
"""
Create tables and seed the site settings row (and optionally an admin account).
Run from the project root: python -m scripts.init_db [--admin-email ... --admin-password ...]
"""
import argparse

from tipster.db.base import Base
from tipster.db.session import SessionLocal, engine, unit_of_work
from tipster.models import User, UserRole
from tipster.services.auth.passwords import hash_password
from tipster.services.site_settings.settings_service import SiteSettingsService


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--admin-email")
    parser.add_argument("--admin-password")
    parser.add_argument("--admin-username", default="admin")
    args = parser.parse_args()

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        with unit_of_work(db):
            SiteSettingsService(db).get_or_create()
            if args.admin_email and args.admin_password:
                email = args.admin_email.strip().lower()
                admin = db.query(User).filter(User.email == email).first()
                if admin is None:
                    admin = User(email=email)
                    db.add(admin)
                admin.password_hash = hash_password(args.admin_password)
                admin.role = UserRole.ADMIN.value
                admin.premium_until = None
                admin.admin_username = args.admin_username
        print("Schema ready, site settings seeded.")
        if args.admin_email and args.admin_password:
            print(f"Admin: {args.admin_email}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
