from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "9b3f2e61c7a4"
down_revision = "4c1e9a7d2b10"
branch_labels = None
depends_on = None


def upgrade():
    # ---------------- CATALOGUE ----------------
    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_activities_id", "activities", ["id"])
    op.create_index("ix_activities_name", "activities", ["name"], unique=True)

    op.create_table(
        "diy_kits",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_diy_kits_id", "diy_kits", ["id"])
    op.create_index("ix_diy_kits_name", "diy_kits", ["name"], unique=True)

    # ---------------- CART ----------------
    op.create_table(
        "cart_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kit_name", sa.String(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("user_id", "kit_name", name="uq_cart_items_user_kit"),
    )
    op.create_index("ix_cart_items_id", "cart_items", ["id"])
    op.create_index("ix_cart_items_user_id", "cart_items", ["user_id"])


def downgrade():
    op.drop_table("cart_items")
    op.drop_table("diy_kits")
    op.drop_table("activities")
