from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "4c1e9a7d2b10"
down_revision = None
branch_labels = None
depends_on = None


def _payment_state_columns():
    return [
        sa.Column("internal_bill_id", sa.String(), nullable=False),
        sa.Column("gateway_provider", sa.String(), nullable=False),
        sa.Column("gateway_order_id", sa.String(), nullable=True),
        sa.Column("legacy_order_id", sa.String(), nullable=True),
        sa.Column("gateway_session_id", sa.String(), nullable=True),
        sa.Column("gateway_payment_id", sa.String(), nullable=True),
        sa.Column("gateway_signature", sa.String(), nullable=True),
        sa.Column("gateway_payment_data", sa.JSON(), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(), nullable=False, server_default="INR"),
        sa.Column("payment_status", sa.String(), nullable=False, server_default="pending_payment"),
        sa.Column("payment_method", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def _payment_state_indexes(table):
    op.create_index(f"ix_{table}_internal_bill_id", table, ["internal_bill_id"], unique=True)
    op.create_index(f"ix_{table}_gateway_order_id", table, ["gateway_order_id"], unique=True)
    op.create_index(f"ix_{table}_legacy_order_id", table, ["legacy_order_id"])
    op.create_index(f"ix_{table}_gateway_payment_id", table, ["gateway_payment_id"])


def upgrade():
    # ---------------- USERS ----------------
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # ---------------- BOOKINGS ----------------
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_payment_state_columns(),
        sa.Column("user_email", sa.String(), nullable=False),
        sa.Column("user_name", sa.String(), nullable=False),
        sa.Column("user_phone", sa.String(), nullable=False),
        sa.Column("user_address", sa.String(), nullable=True),
        sa.Column("activity_name", sa.String(), nullable=False),
        sa.Column("combo_name", sa.String(), nullable=True),
        sa.Column("selected_activities", sa.JSON(), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("booking_time_slot", sa.String(), nullable=False),
        sa.Column("participants", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("refund_id", sa.String(), nullable=True),
        sa.Column("refund_status", sa.String(), nullable=False, server_default="none"),
        sa.Column("refund_amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("refund_reason", sa.Text(), nullable=True),
        sa.Column("refund_initiated_at", sa.DateTime(), nullable=True),
        sa.Column("refund_processed_at", sa.DateTime(), nullable=True),
        sa.Column("gateway_refund_data", sa.JSON(), nullable=True),
        sa.Column("is_updated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("original_booking_date", sa.Date(), nullable=True),
        sa.Column("original_booking_time_slot", sa.String(), nullable=True),
        sa.Column("updated_booking_date", sa.Date(), nullable=True),
        sa.Column("updated_booking_time_slot", sa.String(), nullable=True),
        sa.Column("balance_amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("balance_payment_order_id", sa.String(), nullable=True),
        sa.Column("balance_payment_id", sa.String(), nullable=True),
        sa.Column("balance_payment_status", sa.String(), nullable=True),
        sa.Column("balance_payment_method", sa.String(), nullable=True),
        sa.Column("adjustment_refund_ids", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_user_email", "bookings", ["user_email"])
    op.create_index("ix_bookings_booking_date", "bookings", ["booking_date"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index(
        "ix_bookings_balance_payment_order_id", "bookings", ["balance_payment_order_id"], unique=True
    )
    _payment_state_indexes("bookings")

    # ---------------- DIY ORDERS ----------------
    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_payment_state_columns(),
        sa.Column("customer_name", sa.String(), nullable=False),
        sa.Column("customer_email", sa.String(), nullable=False),
        sa.Column("customer_phone", sa.String(), nullable=False),
        sa.Column("customer_address", sa.Text(), nullable=False),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("subtotal", sa.Integer(), nullable=False),
        sa.Column("gst", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("delivery_status", sa.String(), nullable=False, server_default="order_confirmed"),
        sa.Column("delivery_time", sa.String(), nullable=True),
        sa.Column("delivery_status_updated_at", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
    )
    op.create_index("ix_orders_id", "orders", ["id"])
    op.create_index("ix_orders_user_id", "orders", ["user_id"])
    op.create_index("ix_orders_customer_email", "orders", ["customer_email"])
    _payment_state_indexes("orders")

    # ---------------- PAYMENT LEDGER ----------------
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("gateway_provider", sa.String(), nullable=False),
        sa.Column("gateway_payment_id", sa.String(), nullable=False),
        sa.Column("gateway_order_id", sa.String(), nullable=False),
        sa.Column("internal_bill_id", sa.String(), nullable=False),
        sa.Column("order_type", sa.String(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(), nullable=False, server_default="INR"),
        sa.Column("status", sa.String(), nullable=False, server_default="paid"),
        sa.Column("method", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("contact", sa.String(), nullable=True),
        sa.Column("card_last4", sa.String(), nullable=True),
        sa.Column("card_network", sa.String(), nullable=True),
        sa.Column("card_type", sa.String(), nullable=True),
        sa.Column("card_issuer", sa.String(), nullable=True),
        sa.Column("upi_vpa", sa.String(), nullable=True),
        sa.Column("bank_transaction_id", sa.String(), nullable=True),
        sa.Column("bank", sa.String(), nullable=True),
        sa.Column("wallet_name", sa.String(), nullable=True),
        sa.Column("refund_status", sa.String(), nullable=False, server_default="never"),
        sa.Column("refund_amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("refund_ids", sa.JSON(), nullable=False),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("gateway_payload", sa.JSON(), nullable=True),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
    )
    op.create_index("ix_payments_id", "payments", ["id"])
    op.create_index("ix_payments_gateway_payment_id", "payments", ["gateway_payment_id"], unique=True)
    op.create_index("ix_payments_gateway_order_id", "payments", ["gateway_order_id"])
    op.create_index("ix_payments_internal_bill_id", "payments", ["internal_bill_id"])


def downgrade():
    op.drop_table("payments")
    op.drop_table("orders")
    op.drop_table("bookings")
    op.drop_table("users")
