"""
Create the first super admin login.
Usage: python scripts/create_admin.py --username admin --password <password>
"""
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from welfare.db.base import SessionLocal
from welfare.models.user import UserRole
from welfare.services.auth import UserError, create_user


def create_admin(username: str = "admin", password: str = "admin123", name: str = "Administrator"):
    """Create a super admin user."""
    db = SessionLocal()
    try:
        create_user(db, username=username, password=password, name=name, role=UserRole.SUPER_ADMIN)
        print(f"✅ Super admin created successfully!")
        print(f"   Username: {username}")
        print(f"\n⚠️  Please change the password after first login!")
    except UserError as e:
        print(f"❌ {e}")
    finally:
        db.close()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Create a super admin user")
    parser.add_argument("--username", default="admin", help="Login username")
    parser.add_argument("--password", default="admin123", help="Login password")
    parser.add_argument("--name", default="Administrator", help="Display name")

    args = parser.parse_args()

    create_admin(username=args.username, password=args.password, name=args.name)
