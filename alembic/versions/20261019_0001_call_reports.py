"""Create patient profile and phone call report tables."""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "user_information",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("information", sa.Text(), nullable=True),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("age", sa.String(length=16), nullable=True),
        sa.Column("gender", sa.String(length=64), nullable=True),
        sa.Column("occupation", sa.String(length=120), nullable=True),
        sa.Column("relationship_status", sa.String(length=64), nullable=True),
        sa.Column("living_situation", sa.Text(), nullable=True),
        sa.Column("mental_health_diagnosis", sa.Text(), nullable=True),
        sa.Column("therapy_history", sa.Text(), nullable=True),
        sa.Column("psychiatric_medication", sa.Text(), nullable=True),
        sa.Column("mental_health_hospitalization", sa.Text(), nullable=True),
        sa.Column("past_self_harm_thoughts", sa.Text(), nullable=True),
        sa.Column("current_self_harm_thoughts", sa.Text(), nullable=True),
        sa.Column("additional_info", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("timezone('utc', now())"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("timezone('utc', now())"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_user_information"),
        sa.UniqueConstraint("user_id", name="uq_user_information_user_id"),
    )
    op.create_index(
        "ix_user_information_phone_number",
        "user_information",
        ["phone_number"],
        unique=False,
    )

    op.create_table(
        "phone_call_reports",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("conversation_id", sa.String(length=128), nullable=True),
        sa.Column("mood", sa.Integer(), nullable=False),
        sa.Column("mood_description", sa.Text(), nullable=False),
        sa.Column("emotions", sa.JSON(), nullable=False, server_default=sa.text("'[]'::json")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("timezone('utc', now())"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_phone_call_reports"),
        sa.CheckConstraint("mood >= 1 AND mood <= 5", name="ck_phone_call_reports_mood"),
        sa.UniqueConstraint("conversation_id", name="uq_phone_call_reports_conversation"),
    )
    op.create_index(
        "ix_phone_call_reports_user_created",
        "phone_call_reports",
        ["user_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_phone_call_reports_user_created", table_name="phone_call_reports")
    op.drop_table("phone_call_reports")
    op.drop_index("ix_user_information_phone_number", table_name="user_information")
    op.drop_table("user_information")
