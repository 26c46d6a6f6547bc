"""Order ledger schema: catalog, BOMs, inventory, sales transactions, ledgers

Revision ID: 20261019_posledger_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_posledger_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated: bool = True):
    cols = [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]
    if updated:
        cols.append(
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False)
        )
    return cols


def _money(name: str, nullable: bool = False):
    return sa.Column(name, sa.Numeric(precision=18, scale=4), nullable=nullable)


def _index(table: str, *columns: str):
    for column in columns:
        op.create_index(f"ix_{table}_{column}", table, [column], unique=False)


def upgrade():
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        sa.Column("plu_code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("product_type", sa.String(length=32), nullable=False),
        sa.Column("category_id", sa.String(length=64), nullable=True),
        sa.Column("uom_id", sa.String(length=32), nullable=True),
        _money("min_qty"),
        sa.Column("requires_grn", sa.Boolean(), nullable=False),
        sa.Column("has_raw_materials", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "product_id", name="uq_products_company_product"),
        sa.UniqueConstraint("company_id", "plu_code", name="uq_products_company_plu"),
        sqlite_autoincrement=True,
    )
    _index("products", "company_id", "product_id")

    op.create_table(
        "bills_of_materials",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("bom_id", sa.String(length=64), nullable=False),
        sa.Column("finished_good_id", sa.String(length=64), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "bom_id", name="uq_boms_company_bom"),
        sa.UniqueConstraint("company_id", "finished_good_id", name="uq_boms_company_finished_good"),
        sqlite_autoincrement=True,
    )
    _index("bills_of_materials", "company_id", "finished_good_id")

    op.create_table(
        "bom_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("bom_pk", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        _money("qty"),
        _money("current_wac"),
        sa.CheckConstraint("qty >= 0", name="ck_bom_items_qty_nonneg"),
        sa.CheckConstraint("current_wac >= 0", name="ck_bom_items_wac_nonneg"),
        sa.ForeignKeyConstraint(["bom_pk"], ["bills_of_materials.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    _index("bom_items", "bom_pk")

    op.create_table(
        "inventory_stock",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("shop_id", sa.String(length=64), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        _money("total_quantity"),
        _money("weighted_average_cost"),
        _money("minimum_quantity"),
        *_timestamps(),
        sa.CheckConstraint("total_quantity >= 0", name="ck_inventory_stock_qty_nonneg"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "shop_id", "product_id", name="uq_inventory_stock_key"),
        sqlite_autoincrement=True,
    )
    _index("inventory_stock", "company_id", "shop_id", "product_id")

    op.create_table(
        "raw_material_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("rmt_id", sa.String(length=64), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("shop_id", sa.String(length=64), nullable=False),
        sa.Column("supplier_id", sa.String(length=64), nullable=True),
        sa.Column("category_id", sa.String(length=64), nullable=True),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        sa.Column("finished_good_id", sa.String(length=64), nullable=True),
        sa.Column("transaction_date_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("transaction_type", sa.String(length=16), nullable=False),
        sa.Column("transaction_code", sa.String(length=64), nullable=False),
        sa.Column("raw_mat_in_out", sa.String(length=8), nullable=False),
        _money("unit_cost"),
        _money("quantity"),
        _money("total_cost"),
        sa.Column("remarks", sa.String(length=255), nullable=True),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("transaction_status", sa.String(length=32), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    _index("raw_material_transactions", "rmt_id", "company_id", "shop_id")
    op.create_index(
        "ix_rmt_shop_product_occurred",
        "raw_material_transactions",
        ["company_id", "shop_id", "product_id", "transaction_date_time"],
        unique=False,
    )

    op.create_table(
        "payment_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("payment_id", sa.String(length=64), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("shop_id", sa.String(length=64), nullable=False),
        sa.Column("transaction_code", sa.String(length=64), nullable=False),
        sa.Column("transaction_date_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("transaction_type", sa.String(length=16), nullable=False),
        sa.Column("invoice_id", sa.String(length=64), nullable=True),
        _money("bill_total"),
        _money("cash_amount"),
        _money("card_amount"),
        sa.Column("card_digits", sa.String(length=8), nullable=True),
        _money("wallet_in"),
        _money("wallet_out"),
        _money("other_payment"),
        _money("loyalty_points"),
        sa.Column("customer_id", sa.String(length=64), nullable=True),
        sa.Column("selling_type_id", sa.String(length=64), nullable=True),
        _money("selling_type_charge", nullable=True),
        _money("selling_type_amount", nullable=True),
        sa.Column("transaction_in_out", sa.String(length=8), nullable=False),
        sa.Column("transaction_status", sa.String(length=32), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "shop_id", "transaction_code", name="uq_payment_txns_shop_code"),
        sqlite_autoincrement=True,
    )
    _index("payment_transactions", "company_id", "shop_id", "transaction_code", "transaction_status")
    op.create_index(
        "ix_payment_txns_shop_status_occurred",
        "payment_transactions",
        ["company_id", "shop_id", "transaction_status", "transaction_date_time"],
        unique=False,
    )

    op.create_table(
        "finished_good_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("ft_id", sa.String(length=64), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("shop_id", sa.String(length=64), nullable=False),
        sa.Column("finishedgood_id", sa.String(length=64), nullable=False),
        sa.Column("transaction_code", sa.String(length=64), nullable=False),
        sa.Column("transaction_date_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("transaction_type", sa.String(length=16), nullable=False),
        sa.Column("transaction_in_out", sa.String(length=8), nullable=False),
        sa.Column("order_no", sa.String(length=64), nullable=True),
        sa.Column("selling_type", sa.String(length=64), nullable=True),
        _money("selling_price"),
        _money("discount_amount"),
        sa.Column("customer_id", sa.String(length=64), nullable=True),
        _money("sold_qty"),
        _money("finishedgood_qty"),
        sa.Column("transaction_status", sa.String(length=32), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("finishedgood_qty >= 0", name="ck_fg_txns_qty_nonneg"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    _index("finished_good_transactions", "company_id", "shop_id", "finishedgood_id", "transaction_status")
    op.create_index(
        "ix_fg_txns_shop_code",
        "finished_good_transactions",
        ["company_id", "shop_id", "transaction_code"],
        unique=False,
    )
    op.create_index(
        "ix_fg_txns_shop_status_occurred",
        "finished_good_transactions",
        ["company_id", "shop_id", "transaction_status", "transaction_date_time"],
        unique=False,
    )

    op.create_table(
        "used_product_details",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("finished_good_transaction_pk", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        _money("quantity"),
        _money("current_wac"),
        sa.ForeignKeyConstraint(["finished_good_transaction_pk"], ["finished_good_transactions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    _index("used_product_details", "finished_good_transaction_pk", "product_id")

    op.create_table(
        "wastage",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("wastage_id", sa.String(length=64), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("shop_id", sa.String(length=64), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        _money("quantity"),
        sa.Column("uom_id", sa.String(length=32), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=False),
        sa.Column("condition", sa.String(length=16), nullable=False),
        sa.Column("transaction_code", sa.String(length=64), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    _index("wastage", "wastage_id", "company_id", "shop_id", "transaction_code")

    op.create_table(
        "code_sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("shop_id", sa.String(length=64), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "shop_id", "kind", name="uq_code_sequences_scope_kind"),
        sqlite_autoincrement=True,
    )
    _index("code_sequences", "company_id", "shop_id", "kind")

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("shop_id", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("message", sa.String(length=512), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_activity_logs_shop_created", "activity_logs", ["company_id", "shop_id", "created_at"], unique=False)

    op.create_table(
        "daily_balances",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("shop_id", sa.String(length=64), nullable=False),
        sa.Column("business_date", sa.Date(), nullable=False),
        _money("close_amount"),
        sa.Column("remarks", sa.String(length=255), nullable=True),
        sa.Column("created_by", sa.String(length=64), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "shop_id", "business_date", name="uq_daily_balances_shop_date"),
        sqlite_autoincrement=True,
    )
    _index("daily_balances", "company_id", "shop_id")


def downgrade():
    op.drop_table("daily_balances")
    op.drop_table("activity_logs")
    op.drop_table("code_sequences")
    op.drop_table("wastage")
    op.drop_table("used_product_details")
    op.drop_table("finished_good_transactions")
    op.drop_table("payment_transactions")
    op.drop_table("raw_material_transactions")
    op.drop_table("inventory_stock")
    op.drop_table("bom_items")
    op.drop_table("bills_of_materials")
    op.drop_table("products")
