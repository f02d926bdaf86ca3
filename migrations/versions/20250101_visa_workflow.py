"""create visa workflow tables"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "visa_workflow_20250101"
down_revision = None
branch_labels = None
depends_on = None


USER_ROLES = ("applicant", "admin", "office")
VISA_STATUSES = (
    "pending",
    "documentsPending",
    "paymentPending",
    "paymentVerified",
    "assigned",
    "processing",
    "completed",
    "rejected",
)
DOCUMENT_TYPES = ("passport", "photo", "university_certificate", "other")
PAYMENT_METHODS = ("screenshot", "instapay")
PAYMENT_STATUSES = ("pending", "verified", "rejected")
SENDER_TYPES = ("applicant", "admin", "office", "system")
MESSAGE_TYPES = ("text", "image", "document", "payment", "system")
NOTIFICATION_TYPES = ("message", "system")
JOIN_REQUEST_STATUSES = ("pending", "approved", "rejected")


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("role", sa.Enum(*USER_ROLES, name="user_role"), nullable=False),
        sa.Column("profile_image_url", sa.String(length=512), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("governorate", sa.String(length=120), nullable=True),
        sa.Column("logo_url", sa.String(length=512), nullable=True),
        sa.Column("visa_limit", sa.Integer(), nullable=True),
        sa.Column("active_visa_requests", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_active_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("active_visa_requests >= 0", name="ck_users_active_non_negative"),
    )
    op.create_index("ix_users_governorate", "users", ["governorate"])

    op.create_table(
        "visa_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("applicant_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "active_applicant_id",
            sa.Integer(),
            sa.ForeignKey("users.id"),
            nullable=True,
            unique=True,
        ),
        sa.Column("office_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("admin_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("status", sa.Enum(*VISA_STATUSES, name="visa_status"), nullable=False),
        sa.Column("passport_number", sa.String(length=64), nullable=False),
        sa.Column("payment_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("payment_verified_at", sa.DateTime(), nullable=True),
        sa.Column("payment_screenshot_url", sa.String(length=512), nullable=True),
        sa.Column("payment_reference", sa.String(length=128), nullable=True),
        sa.Column("visa_document_url", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_visa_requests_applicant_id", "visa_requests", ["applicant_id"])
    op.create_index("ix_visa_requests_office_id", "visa_requests", ["office_id"])
    op.create_index("ix_visa_requests_status", "visa_requests", ["status"])

    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "visa_request_id", sa.Integer(), sa.ForeignKey("visa_requests.id"), nullable=False
        ),
        sa.Column("document_type", sa.Enum(*DOCUMENT_TYPES, name="document_type"), nullable=False),
        sa.Column("document_url", sa.String(length=512), nullable=False),
        sa.Column("document_name", sa.String(length=255), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_documents_visa_request_id", "documents", ["visa_request_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "visa_request_id", sa.Integer(), sa.ForeignKey("visa_requests.id"), nullable=False
        ),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "payment_method", sa.Enum(*PAYMENT_METHODS, name="payment_method"), nullable=False
        ),
        sa.Column("status", sa.Enum(*PAYMENT_STATUSES, name="payment_status"), nullable=False),
        sa.Column("reference_number", sa.String(length=128), nullable=True),
        sa.Column("screenshot_url", sa.String(length=512), nullable=True),
        sa.Column("verified_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("verified_at", sa.DateTime(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_payments_visa_request_id", "payments", ["visa_request_id"])
    op.create_index("ix_payments_status", "payments", ["status"])

    op.create_table(
        "chats",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "visa_request_id",
            sa.Integer(),
            sa.ForeignKey("visa_requests.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("applicant_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("office_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("admin_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "chat_messages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "visa_request_id", sa.Integer(), sa.ForeignKey("visa_requests.id"), nullable=False
        ),
        sa.Column("sender_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("sender_type", sa.Enum(*SENDER_TYPES, name="sender_type"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("message_type", sa.Enum(*MESSAGE_TYPES, name="message_type"), nullable=False),
        sa.Column("file_url", sa.String(length=512), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("timestamp", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_chat_messages_visa_request_id", "chat_messages", ["visa_request_id"])
    op.create_index("ix_chat_messages_timestamp", "chat_messages", ["timestamp"])

    op.create_table(
        "message_read_status",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("message_id", sa.Integer(), sa.ForeignKey("chat_messages.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("read_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("message_id", "user_id", name="uq_message_read_status_reader"),
    )
    op.create_index("ix_message_read_status_message_id", "message_read_status", ["message_id"])
    op.create_index("ix_message_read_status_user_id", "message_read_status", ["user_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("type", sa.Enum(*NOTIFICATION_TYPES, name="notification_type"), nullable=False),
        sa.Column("reference_id", sa.Integer(), sa.ForeignKey("visa_requests.id"), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_reference_id", "notifications", ["reference_id"])

    op.create_table(
        "office_join_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "visa_request_id", sa.Integer(), sa.ForeignKey("visa_requests.id"), nullable=False
        ),
        sa.Column("office_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "status", sa.Enum(*JOIN_REQUEST_STATUSES, name="join_request_status"), nullable=False
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("visa_request_id", "office_id", name="uq_office_join_request"),
    )
    op.create_index(
        "ix_office_join_requests_visa_request_id", "office_join_requests", ["visa_request_id"]
    )


def downgrade():
    op.drop_index("ix_office_join_requests_visa_request_id", table_name="office_join_requests")
    op.drop_table("office_join_requests")
    op.drop_index("ix_notifications_reference_id", table_name="notifications")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_message_read_status_user_id", table_name="message_read_status")
    op.drop_index("ix_message_read_status_message_id", table_name="message_read_status")
    op.drop_table("message_read_status")
    op.drop_index("ix_chat_messages_timestamp", table_name="chat_messages")
    op.drop_index("ix_chat_messages_visa_request_id", table_name="chat_messages")
    op.drop_table("chat_messages")
    op.drop_table("chats")
    op.drop_index("ix_payments_status", table_name="payments")
    op.drop_index("ix_payments_visa_request_id", table_name="payments")
    op.drop_table("payments")
    op.drop_index("ix_documents_visa_request_id", table_name="documents")
    op.drop_table("documents")
    op.drop_index("ix_visa_requests_status", table_name="visa_requests")
    op.drop_index("ix_visa_requests_office_id", table_name="visa_requests")
    op.drop_index("ix_visa_requests_applicant_id", table_name="visa_requests")
    op.drop_table("visa_requests")
    op.drop_index("ix_users_governorate", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_name in (
        "join_request_status",
        "notification_type",
        "message_type",
        "sender_type",
        "payment_status",
        "payment_method",
        "document_type",
        "visa_status",
        "user_role",
    ):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
