"""refresh_wallet_balance_cache

Revision ID: refresh_wallet_balance_cache
Revises: create_initial_schema
Create Date: 2026-10-19 09:30:00.000000

Wallet funding used to write the transaction and the wallet_balance column
separately, so imported columns can disagree with the ledger. Recompute the
column with the same sign rules the ledger uses: registration, contribution
and arrears always count as debits.
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = 'refresh_wallet_balance_cache'
down_revision: Union[str, None] = 'create_initial_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(
        """
        UPDATE members
        SET wallet_balance = COALESCE(
            (
                SELECT SUM(
                    CASE
                        WHEN t.transaction_type IN ('registration', 'contribution', 'arrears')
                        THEN -ABS(t.amount)
                        ELSE t.amount
                    END
                )
                FROM transactions t
                WHERE t.member_id = members.id
            ),
            0
        )
        """
    )


def downgrade() -> None:
    # The cache is derived data; nothing to restore
    pass
