"""Initial schema — scout_targets, scout_runs, events.

Revision ID: 001
Revises:
Create Date: 2026-10-12
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Scout targets
    op.create_table(
        "scout_targets",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("url", sa.String(1000), nullable=False),
        sa.Column("city", sa.String(100)),
        sa.Column("selector", sa.String(500)),
        sa.Column("last_events_found", sa.Integer, server_default=sa.text("0")),
        sa.Column("last_scraped_at", sa.DateTime(timezone=True)),
    )

    # Scout runs
    op.create_table(
        "scout_runs",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="RUNNING"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True)),
        sa.Column("events_found", sa.Integer),
        sa.Column("log_summary", sa.Text),
    )
    op.create_index("idx_scout_run_started", "scout_runs", ["started_at"])

    # Events
    op.create_table(
        "events",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("venue", sa.String(255)),
        sa.Column("event_type", sa.String(50)),
        sa.Column("link", sa.Text),
        sa.Column("lat", sa.Float),
        sa.Column("lng", sa.Float),
        sa.Column("start_time", sa.String(40)),
        sa.Column("end_time", sa.String(40), index=True),
        sa.Column("image_path", sa.String(500)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("events")
    op.drop_index("idx_scout_run_started", table_name="scout_runs")
    op.drop_table("scout_runs")
    op.drop_table("scout_targets")
