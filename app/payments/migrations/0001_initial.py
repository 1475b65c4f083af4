import uuid
from decimal import Decimal

import django.db.models.deletion
import django_fsm
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Payment",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Row version, incremented on every save",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "gateway_order_id",
                    models.CharField(
                        help_text="Gateway order ID (order_xxx), never changes after creation",
                        max_length=64,
                        unique=True,
                    ),
                ),
                (
                    "gateway_payment_id",
                    models.CharField(
                        blank=True,
                        help_text="Gateway payment ID (pay_xxx), set once the buyer pays",
                        max_length=64,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "gateway_signature",
                    models.CharField(
                        blank=True,
                        help_text="Signature submitted with the client-side confirmation",
                        max_length=128,
                        null=True,
                    ),
                ),
                (
                    "receipt",
                    models.CharField(
                        help_text="Merchant receipt reference sent with the gateway order",
                        max_length=40,
                    ),
                ),
                ("product_id", models.UUIDField(db_index=True, help_text="Purchased product")),
                ("seller_id", models.UUIDField(db_index=True, help_text="Seller receiving the earnings")),
                ("buyer_id", models.UUIDField(db_index=True, help_text="Buyer making the payment")),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Payment amount in major units, never changes after creation",
                        max_digits=12,
                    ),
                ),
                (
                    "currency",
                    models.CharField(default="INR", help_text="ISO 4217 currency code", max_length=3),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("created", "Created"),
                            ("authorized", "Authorized"),
                            ("captured", "Captured"),
                            ("completed", "Completed"),
                            ("refunded", "Refunded"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="created",
                        help_text="Current state of the payment (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "payment_method",
                    models.CharField(
                        blank=True,
                        help_text="Method reported by the gateway (card, upi, netbanking, ...)",
                        max_length=32,
                        null=True,
                    ),
                ),
                ("captured_at", models.DateTimeField(blank=True, null=True)),
                (
                    "refunded_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When refunds reached the full payment amount",
                        null=True,
                    ),
                ),
                ("failed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "earnings_released_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the seller share moved from pending to available",
                        null=True,
                    ),
                ),
                (
                    "error_description",
                    models.TextField(
                        blank=True,
                        help_text="Failure reason reported by the gateway",
                        null=True,
                    ),
                ),
                (
                    "notes",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Order notes and buyer-supplied description",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment",
                "verbose_name_plural": "Payments",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["seller_id", "status"], name="payment_seller_status_idx"),
                    models.Index(fields=["buyer_id", "created_at"], name="payment_buyer_created_idx"),
                    models.Index(fields=["status", "captured_at"], name="payment_status_captured_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="payment_amount_positive",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="SellerBalance",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "seller_id",
                    models.UUIDField(
                        help_text="Seller this balance belongs to",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "available_balance",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14),
                ),
                (
                    "pending_balance",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14),
                ),
                (
                    "total_earnings",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14),
                ),
                ("last_payout_at", models.DateTimeField(blank=True, null=True)),
                ("next_payout_date", models.DateField(blank=True, null=True)),
            ],
            options={
                "verbose_name": "Seller Balance",
                "verbose_name_plural": "Seller Balances",
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("available_balance__gte", 0)),
                        name="seller_balance_available_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("pending_balance__gte", 0)),
                        name="seller_balance_pending_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "event_id",
                    models.CharField(
                        help_text="Gateway event ID - unique constraint for idempotency",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        db_index=True,
                        help_text="Gateway event type (e.g., 'payment.captured')",
                        max_length=100,
                    ),
                ),
                ("payload", models.JSONField(help_text="Full webhook payload (JSON)")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("error_message", models.TextField(blank=True, null=True)),
                (
                    "retry_count",
                    models.PositiveSmallIntegerField(
                        default=0,
                        help_text="Number of processing attempts",
                    ),
                ),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="webhook_status_created_idx"),
                    models.Index(fields=["event_type", "created_at"], name="webhook_type_created_idx"),
                    models.Index(fields=["status", "retry_count"], name="webhook_status_retry_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Refund",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "gateway_refund_id",
                    models.CharField(
                        help_text="Gateway refund ID (rfnd_xxx)",
                        max_length=64,
                        unique=True,
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("currency", models.CharField(default="INR", max_length=3)),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current refund state, mirrors the gateway",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("reason", models.CharField(blank=True, default="", max_length=255)),
                (
                    "speed_requested",
                    models.CharField(
                        choices=[("normal", "Normal"), ("optimum", "Optimum")],
                        default="normal",
                        max_length=16,
                    ),
                ),
                ("speed_processed", models.CharField(blank=True, max_length=16, null=True)),
                (
                    "initiated_by",
                    models.CharField(
                        default="buyer",
                        help_text="Who requested the refund (buyer, seller, admin, system, gateway)",
                        max_length=32,
                    ),
                ),
                (
                    "idempotency_key",
                    models.CharField(blank=True, db_index=True, max_length=255, null=True),
                ),
                ("receipt", models.CharField(blank=True, max_length=40, null=True)),
                ("notes", models.JSONField(blank=True, default=dict)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "payment",
                    models.ForeignKey(
                        help_text="Payment being refunded",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refunds",
                        to="payments.payment",
                    ),
                ),
            ],
            options={
                "verbose_name": "Refund",
                "verbose_name_plural": "Refunds",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["payment", "status"], name="refund_payment_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="refund_amount_positive",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentTransaction",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("seller_id", models.UUIDField(db_index=True)),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Signed amount: positive for credits, negative for debits",
                        max_digits=12,
                    ),
                ),
                (
                    "type",
                    models.CharField(
                        choices=[("credit", "Credit"), ("debit", "Debit")],
                        max_length=10,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="completed",
                        max_length=10,
                    ),
                ),
                ("description", models.TextField(blank=True, null=True)),
                (
                    "gateway_refund_id",
                    models.CharField(blank=True, db_index=True, max_length=64, null=True),
                ),
                (
                    "idempotency_key",
                    models.CharField(
                        help_text="Unique key to prevent duplicate entries",
                        max_length=255,
                        unique=True,
                    ),
                ),
                ("notes", models.JSONField(blank=True, default=dict)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "payment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="payments.payment",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment Transaction",
                "verbose_name_plural": "Payment Transactions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["payment", "type"], name="txn_payment_type_idx"),
                    models.Index(fields=["seller_id", "created_at"], name="txn_seller_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("type", "credit"), ("amount__gt", 0)),
                            models.Q(("type", "debit"), ("amount__lt", 0)),
                            _connector="OR",
                        ),
                        name="payment_transaction_amount_sign_matches_type",
                    )
                ],
            },
        ),
    ]
