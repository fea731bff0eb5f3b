"""create settlement schema

Revision ID: 3b7e4c1d9a20
Revises:
Create Date: 2026-01-24 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b7e4c1d9a20"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Integer units of 10^-8, see database.columns.Money
MONEY = sa.BigInteger()


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
    ]


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, create_constraint=True)


def upgrade() -> None:
    op.create_table(
        "user_accounts",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "wallet_accounts",
        sa.Column("wallet_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("balance", MONEY, nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["user_accounts.user_id"]),
        sa.PrimaryKeyConstraint("wallet_id"),
        sa.UniqueConstraint("user_id", "currency", name="uq_wallet_user_currency"),
        sa.CheckConstraint("balance >= 0", name="check_no_negative_balance"),
    )
    op.create_index("ix_wallet_accounts_user_id", "wallet_accounts", ["user_id"])

    op.create_table(
        "listings",
        sa.Column("listing_id", sa.Uuid(), nullable=False),
        sa.Column("seller_id", sa.Uuid(), nullable=False),
        sa.Column("from_currency", sa.String(length=3), nullable=True),
        sa.Column("to_currency", sa.String(length=3), nullable=True),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("initial_amount", MONEY, nullable=False),
        sa.Column("min_amount", MONEY, nullable=False),
        sa.Column("max_amount", MONEY, nullable=True),
        sa.Column("exchange_rate", MONEY, nullable=False),
        sa.Column("fee", MONEY, nullable=False),
        sa.Column(
            "status",
            _enum("listing_status", "active", "paused", "completed", "expired"),
            nullable=False,
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(["seller_id"], ["user_accounts.user_id"]),
        sa.PrimaryKeyConstraint("listing_id"),
        sa.CheckConstraint("amount >= 0", name="check_no_negative_inventory"),
    )
    op.create_index("ix_listings_seller_id", "listings", ["seller_id"])
    op.create_index("ix_listings_status", "listings", ["status"])

    op.create_table(
        "orders",
        sa.Column("order_id", sa.Uuid(), nullable=False),
        sa.Column("buyer_id", sa.Uuid(), nullable=False),
        sa.Column("listing_id", sa.Uuid(), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("from_currency", sa.String(length=3), nullable=False),
        sa.Column("to_currency", sa.String(length=3), nullable=False),
        sa.Column("exchange_rate", MONEY, nullable=False),
        sa.Column("fee_amount", MONEY, nullable=False),
        sa.Column("total_amount", MONEY, nullable=False),
        sa.Column("net_amount", MONEY, nullable=False),
        sa.Column("status", _enum("order_status", "pending", "completed"), nullable=False),
        sa.Column("reference", sa.String(length=64), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["buyer_id"], ["user_accounts.user_id"]),
        sa.ForeignKeyConstraint(["listing_id"], ["listings.listing_id"]),
        sa.PrimaryKeyConstraint("order_id"),
        sa.UniqueConstraint("reference"),
    )
    op.create_index("ix_orders_buyer_id", "orders", ["buyer_id"])
    op.create_index("ix_orders_listing_id", "orders", ["listing_id"])

    op.create_table(
        "payout_methods",
        sa.Column("payout_method_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column(
            "type",
            _enum(
                "payout_method_type",
                "bank_transfer",
                "mobile_money",
                "paypal",
                "payshap",
                "multicaixa",
                "ewallet",
            ),
            nullable=False,
        ),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["user_accounts.user_id"]),
        sa.PrimaryKeyConstraint("payout_method_id"),
    )
    op.create_index("ix_payout_methods_user_id", "payout_methods", ["user_id"])
    op.create_index(
        "uq_default_payout_method",
        "payout_methods",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("is_default IS TRUE"),
        sqlite_where=sa.text("is_default = 1"),
    )

    op.create_table(
        "goods_listings",
        sa.Column("goods_listing_id", sa.Uuid(), nullable=False),
        sa.Column("seller_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("price", MONEY, nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column(
            "status", _enum("goods_listing_status", "active", "sold", "inactive"), nullable=False
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(["seller_id"], ["user_accounts.user_id"]),
        sa.PrimaryKeyConstraint("goods_listing_id"),
        sa.CheckConstraint("quantity >= 0", name="check_no_negative_quantity"),
    )
    op.create_index("ix_goods_listings_seller_id", "goods_listings", ["seller_id"])

    op.create_table(
        "goods_orders",
        sa.Column("goods_order_id", sa.Uuid(), nullable=False),
        sa.Column("buyer_id", sa.Uuid(), nullable=False),
        sa.Column("seller_id", sa.Uuid(), nullable=False),
        sa.Column("goods_listing_id", sa.Uuid(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("price", MONEY, nullable=False),
        sa.Column("buyer_fee", MONEY, nullable=False),
        sa.Column("total_amount", MONEY, nullable=False),
        sa.Column(
            "status",
            _enum("goods_order_status", "pending", "completed", "refunded"),
            nullable=False,
        ),
        sa.Column("reference", sa.String(length=64), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["buyer_id"], ["user_accounts.user_id"]),
        sa.ForeignKeyConstraint(["seller_id"], ["user_accounts.user_id"]),
        sa.ForeignKeyConstraint(["goods_listing_id"], ["goods_listings.goods_listing_id"]),
        sa.PrimaryKeyConstraint("goods_order_id"),
        sa.UniqueConstraint("reference"),
    )
    op.create_index("ix_goods_orders_buyer_id", "goods_orders", ["buyer_id"])
    op.create_index("ix_goods_orders_seller_id", "goods_orders", ["seller_id"])
    op.create_index("ix_goods_orders_goods_listing_id", "goods_orders", ["goods_listing_id"])

    op.create_table(
        "escrow",
        sa.Column("escrow_id", sa.Uuid(), nullable=False),
        sa.Column("goods_order_id", sa.Uuid(), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column(
            "status", _enum("escrow_status", "held", "released", "refunded"), nullable=False
        ),
        sa.Column("held_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("released_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refunded_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["goods_order_id"], ["goods_orders.goods_order_id"]),
        sa.PrimaryKeyConstraint("escrow_id"),
        sa.UniqueConstraint("goods_order_id"),
    )

    op.create_table(
        "fees",
        sa.Column("fee_id", sa.Uuid(), nullable=False),
        sa.Column("goods_order_id", sa.Uuid(), nullable=False),
        sa.Column("listing_fee", MONEY, nullable=False),
        sa.Column("seller_commission", MONEY, nullable=False),
        sa.Column("buyer_fee", MONEY, nullable=False),
        sa.Column("payout_fee", MONEY, nullable=False),
        sa.Column("total_fees", MONEY, nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["goods_order_id"], ["goods_orders.goods_order_id"]),
        sa.PrimaryKeyConstraint("fee_id"),
        sa.UniqueConstraint("goods_order_id"),
    )

    op.create_table(
        "payouts",
        sa.Column("payout_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("goods_order_id", sa.Uuid(), nullable=True),
        sa.Column("payout_method_id", sa.Uuid(), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column(
            "status",
            _enum("payout_status", "pending", "processing", "completed", "failed"),
            nullable=False,
        ),
        sa.Column("is_cross_border", sa.Boolean(), nullable=True),
        sa.Column("conversion_rate", MONEY, nullable=True),
        sa.Column("converted_amount", MONEY, nullable=True),
        sa.Column("converted_currency", sa.String(length=3), nullable=True),
        sa.Column("payout_fee", MONEY, nullable=False),
        sa.Column("linked_account", sa.Text(), nullable=True),
        sa.Column("reference", sa.String(length=64), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["user_accounts.user_id"]),
        sa.ForeignKeyConstraint(["goods_order_id"], ["goods_orders.goods_order_id"]),
        sa.ForeignKeyConstraint(
            ["payout_method_id"], ["payout_methods.payout_method_id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("payout_id"),
        sa.UniqueConstraint("goods_order_id"),
        sa.UniqueConstraint("reference"),
    )
    op.create_index("ix_payouts_user_id", "payouts", ["user_id"])
    op.create_index("ix_payouts_payout_method_id", "payouts", ["payout_method_id"])
    op.create_index("ix_payouts_status", "payouts", ["status"])

    op.create_table(
        "earnings",
        sa.Column("earning_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("order_id", sa.Uuid(), nullable=True),
        sa.Column("payout_id", sa.Uuid(), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("fee", MONEY, nullable=False),
        sa.Column("net_amount", MONEY, nullable=False),
        sa.Column(
            "type",
            _enum("earning_type", "exchange_sale", "exchange_purchase", "referral", "bonus"),
            nullable=False,
        ),
        sa.Column(
            "status", _enum("earning_status", "available", "processing", "paid"), nullable=False
        ),
        sa.Column("metadata_", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["user_accounts.user_id"]),
        sa.ForeignKeyConstraint(["order_id"], ["orders.order_id"]),
        sa.ForeignKeyConstraint(["payout_id"], ["payouts.payout_id"]),
        sa.PrimaryKeyConstraint("earning_id"),
    )
    op.create_index("ix_earnings_user_id", "earnings", ["user_id"])
    op.create_index("ix_earnings_order_id", "earnings", ["order_id"])
    op.create_index("ix_earnings_payout_id", "earnings", ["payout_id"])
    op.create_index("ix_earnings_status", "earnings", ["status"])

    op.create_table(
        "transactions",
        sa.Column("transaction_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("wallet_id", sa.Uuid(), nullable=False),
        sa.Column("counterparty_id", sa.Uuid(), nullable=True),
        sa.Column("listing_id", sa.Uuid(), nullable=True),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("net_amount", MONEY, nullable=False),
        sa.Column("platform_fee", MONEY, nullable=False),
        sa.Column("platform_fee_percentage", MONEY, nullable=False),
        sa.Column("seller_fee", MONEY, nullable=False),
        sa.Column("seller_fee_percentage", MONEY, nullable=False),
        sa.Column("total_fees", MONEY, nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column(
            "type",
            _enum(
                "transaction_type",
                "deposit",
                "withdrawal",
                "transfer",
                "exchange_buy",
                "exchange_sell",
                "platform_fee",
                "escrow_hold",
                "escrow_release",
                "refund",
                "payout_fee",
                "payout",
            ),
            nullable=False,
        ),
        sa.Column(
            "status",
            _enum(
                "transaction_status", "pending", "completed", "failed", "cancelled", "refunded"
            ),
            nullable=False,
        ),
        sa.Column("reference", sa.String(length=100), nullable=False),
        sa.Column("provider_reference", sa.String(length=100), nullable=True),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("metadata_", sa.JSON(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["user_accounts.user_id"]),
        sa.ForeignKeyConstraint(["wallet_id"], ["wallet_accounts.wallet_id"]),
        sa.PrimaryKeyConstraint("transaction_id"),
        sa.UniqueConstraint("reference"),
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"])
    op.create_index("ix_transactions_wallet_id", "transactions", ["wallet_id"])
    op.create_index("ix_transactions_type", "transactions", ["type"])
    op.create_index("ix_transactions_user_status", "transactions", ["user_id", "status"])
    op.create_index(
        "ix_transactions_provider_reference", "transactions", ["provider_reference"]
    )

    for table in (
        "user_accounts", "wallet_accounts", "listings", "orders", "payout_methods",
        "goods_listings", "goods_orders", "escrow", "fees", "payouts", "earnings", "transactions",
    ):
        op.create_index(f"ix_{table}_created_at", table, ["created_at"])


def downgrade() -> None:
    op.drop_table("transactions")
    op.drop_table("earnings")
    op.drop_table("payouts")
    op.drop_table("fees")
    op.drop_table("escrow")
    op.drop_table("goods_orders")
    op.drop_table("goods_listings")
    op.drop_table("payout_methods")
    op.drop_table("orders")
    op.drop_table("listings")
    op.drop_table("wallet_accounts")
    op.drop_table("user_accounts")

    for enum_name in (
        "transaction_status",
        "transaction_type",
        "earning_status",
        "earning_type",
        "payout_status",
        "escrow_status",
        "goods_order_status",
        "goods_listing_status",
        "payout_method_type",
        "order_status",
        "listing_status",
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
