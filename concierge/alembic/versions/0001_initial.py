"""Initial symptom intake schema."""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

# Enum columns are stored as plain strings (native_enum=False)
DURATIONS = ("Less than a day", "1-3 days", "4-7 days", "1-2 weeks", "More than 2 weeks")
URGENCY = ("Low", "Medium", "High")
RISK = ("Mild", "Moderate", "Needs Review")
STATUSES = ("Submitted", "Under Review", "Reviewed", "Scheduled", "Escalated")


def _enum(values, name):
    return sa.Enum(*values, name=name, native_enum=False, length=32)


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, index=True),
        sa.Column("full_name", sa.String(length=120)),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="member"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "symptom_submissions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("profile_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("symptoms", sa.Text(), nullable=False),
        sa.Column("duration", _enum(DURATIONS, "durationcategory")),
        sa.Column("severity", sa.Integer()),
        sa.Column("onset_date", sa.Date()),
        sa.Column("urgency_flag", _enum(URGENCY, "urgencyflag"), nullable=False),
        sa.Column("status", _enum(STATUSES, "submissionstatus"), nullable=False),
        sa.Column("ai_assessment", sa.Text()),
        sa.Column("ai_risk_level", _enum(RISK, "risklabel")),
        sa.Column("ai_confidence", sa.Float()),
        sa.Column("session_id", sa.String(length=16)),
        sa.Column("attachments_incomplete", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_symptom_submissions_created_at", "symptom_submissions", ["created_at"])

    op.create_table(
        "submission_files",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("submission_id", sa.String(length=36), sa.ForeignKey("symptom_submissions.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("file_url", sa.String(length=1024), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("file_type", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "provider_notes",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("submission_id", sa.String(length=36), sa.ForeignKey("symptom_submissions.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("provider_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "triage_activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("submission_id", sa.String(length=36), sa.ForeignKey("symptom_submissions.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("user_id", sa.String(length=36), nullable=False, index=True),
        sa.Column("action", sa.String(length=40), nullable=False),
        sa.Column("details", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade():
    op.drop_table("triage_activity_logs")
    op.drop_table("provider_notes")
    op.drop_table("submission_files")
    op.drop_index("ix_symptom_submissions_created_at", table_name="symptom_submissions")
    op.drop_table("symptom_submissions")
    op.drop_table("users")
