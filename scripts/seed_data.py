"""
Seed initial data: organisation settings and residences.
Usage: python scripts/seed_data.py [--residence NAME ...]
"""
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import select
from welfare.db.base import SessionLocal
from welfare.models.member import Residence
from welfare.services.settings import get_settings

DEFAULT_RESIDENCES = ["Nairobi", "Kiambu", "Machakos"]


def seed_settings(db):
    """Create the settings row with default fees if it is missing."""
    print("Seeding settings...")
    row = get_settings(db)
    db.commit()
    print(f"Settings seeded (registration {row.registration_fee}, renewal {row.renewal_fee})")


def seed_residences(db, names):
    print("Seeding residences...")
    for name in names:
        existing = db.execute(select(Residence).where(Residence.name == name)).scalars().first()
        if not existing:
            db.add(Residence(name=name))
    db.commit()
    print("Residences seeded")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Seed settings and residences")
    parser.add_argument("--residence", action="append", dest="residences", help="Residence name (repeatable)")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        seed_settings(db)
        seed_residences(db, args.residences or DEFAULT_RESIDENCES)
        print("\nSeed data complete!")
    except Exception as e:
        db.rollback()
        print(f"Error seeding data: {e}")
        raise
    finally:
        db.close()
