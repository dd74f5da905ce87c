from sqlalchemy import select
from sqlalchemy.orm import Session

from welfare.models.system import OrganizationSettings


def get_settings(db: Session) -> OrganizationSettings:
    """Return the settings row, creating it with defaults on first use."""
    row = db.execute(select(OrganizationSettings).limit(1)).scalars().first()
    if row is None:
        row = OrganizationSettings()
        db.add(row)
        db.flush()
    return row


def update_settings(db: Session, changes: dict) -> OrganizationSettings:
    """Apply a partial update to the settings row."""
    row = get_settings(db)
    for key, value in changes.items():
        if not hasattr(OrganizationSettings, key) or key == "id":
            raise ValueError(f"Unknown setting: {key}")
        setattr(row, key, value)
    db.commit()
    db.refresh(row)
    return row
