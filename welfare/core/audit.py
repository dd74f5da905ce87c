"""Monthly audit trail of staff actions.

One line per action in ``LOGS_DIR/audit_YYYY_MM.log``::

    2026-10-19 09:15:02 | treasurer | Tess Treasurer | Fund wallet | member_id=..., amount=500
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from welfare.core.config import LOGS_DIR

logger = logging.getLogger(__name__)


def audit_log_path(when: Optional[datetime] = None) -> Path:
    when = when or datetime.now()
    return LOGS_DIR / f"audit_{when.strftime('%Y_%m')}.log"


def write_audit_log(user_name: str, user_role: str, action: str, details: str = ""):
    """Append an entry. The action has already been committed, so a failed write is logged, not raised."""
    now = datetime.now()
    entry = " | ".join((now.strftime("%Y-%m-%d %H:%M:%S"), user_role, user_name, action, details))
    try:
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
        with open(audit_log_path(now), "a", encoding="utf-8") as f:
            f.write(entry + "\n")
    except OSError:
        logger.error("Could not write audit entry: %s", entry, exc_info=True)
