#!/usr/bin/env python3
"""
DisasterLink Super Admin Account Setup Script

Creates the super admin account that issues admin invite codes.

Usage (interactive):
    cd apps/api
    python scripts/create_superadmin.py

Usage (non-interactive):
    cd apps/api
    python scripts/create_superadmin.py --email your@email.com --password YourPass123
"""
import os
import sys
import getpass
import re
import argparse

# Ensure project root is importable so `apps.api.*` works
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '../../..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

# Load environment variables
from dotenv import load_dotenv
load_dotenv()


def validate_password(password: str) -> tuple[bool, str]:
    """Validate password strength."""
    if len(password) < 8:
        return False, "Password must be at least 8 characters long"
    if not re.search(r'[A-Z]', password):
        return False, "Password must contain at least one uppercase letter"
    if not re.search(r'[a-z]', password):
        return False, "Password must contain at least one lowercase letter"
    if not re.search(r'[0-9]', password):
        return False, "Password must contain at least one digit"
    return True, ""


def main():
    parser = argparse.ArgumentParser(description='Create a DisasterLink super admin account')
    parser.add_argument('--email', '-e', help='Super admin email address')
    parser.add_argument('--password', '-p', help='Super admin password (min 8 chars, upper, lower and digit)')
    parser.add_argument('--name', '-n', default='Super Admin', help='Display name')
    parser.add_argument('--force', '-f', action='store_true', help='Skip confirmation if a super admin already exists')
    args = parser.parse_args()

    print("\n" + "=" * 50)
    print("  DisasterLink Super Admin Account Setup")
    print("=" * 50 + "\n")

    from apps.api.app import create_app
    from apps.api import db
    from apps.api.models.user import User
    from apps.api.utils.auth import hash_password
    from apps.api.utils.identity import SUPER_ADMIN
    from apps.api.utils.validators import ValidationError, validate_email

    app = create_app()

    with app.app_context():
        existing = User.query.filter(User.role == SUPER_ADMIN).first()
        if existing and not args.force:
            print(f"A super admin account already exists: {existing.email}")
            try:
                response = input("\nDo you want to create another one? (y/N): ").strip().lower()
            except EOFError:
                print("Non-interactive mode. Use --force to skip this check.")
                sys.exit(1)
            if response != 'y':
                print("Cancelled.")
                sys.exit(0)

        email = args.email
        while True:
            if not email:
                try:
                    email = input("Enter your email: ")
                except EOFError:
                    print("Email is required. Use --email flag for non-interactive mode.")
                    sys.exit(1)
            try:
                email = validate_email(email)
            except ValidationError as e:
                print(f"  {e.message}")
                if args.email:
                    sys.exit(1)
                email = None
                continue
            if User.query.filter_by(email=email).first():
                print("  This email is already registered.")
                sys.exit(1)
            break

        password = args.password
        if password:
            valid, error = validate_password(password)
            if not valid:
                print(f"  {error}")
                sys.exit(1)
        else:
            while True:
                try:
                    password = getpass.getpass("Enter password (min 8 characters): ")
                except EOFError:
                    print("Password is required. Use --password flag for non-interactive mode.")
                    sys.exit(1)
                valid, error = validate_password(password)
                if not valid:
                    print(f"  {error}")
                    continue
                if password != getpass.getpass("Confirm password: "):
                    print("  Passwords do not match.")
                    continue
                break

        print("\nCreating super admin account...")
        user = User(
            email=email,
            password_hash=hash_password(password),
            full_name=args.name,
            role=SUPER_ADMIN,
            is_active=True,
        )
        db.session.add(user)
        db.session.commit()

        print("\n" + "=" * 50)
        print("  SUCCESS!")
        print("=" * 50)
        print(f"\n  Email: {email}")
        print(f"  Role: {SUPER_ADMIN}")
        print("\n  Issue admin invites with POST /api/admin-invites")
        print("\n" + "=" * 50 + "\n")


if __name__ == '__main__':
    main()
