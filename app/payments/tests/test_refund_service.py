"""
Tests for RefundService and the refund debit unit of work.

Most tests refund `completed_payment`, whose seller share (449.10) is
already in available balance. Refunds of `captured_payment` exercise
the clawback shortfall path, since its earnings are still pending.
"""

from decimal import Decimal

import pytest

from notifications.models import Notification, NotificationKind
from payments.exceptions import (
    GatewayRequestError,
    PaymentError,
    PaymentNotFoundError,
    PaymentValidationError,
    RefundAmountExceededError,
    RefundNotAllowedError,
)
from payments.ledger import PaymentTransaction, ledger
from payments.models import Payment, Refund
from payments.services import InitiateRefundParams, RefundService
from payments.services.refund_service import (
    ALREADY_RECORDED,
    CLAWBACK_OUTSTANDING,
    DEBITED,
    mark_refunded_if_covered,
    record_refund_debit,
)
from payments.state_machines import (
    PaymentStatus,
    RefundStatus,
    TransactionStatus,
    TransactionType,
)
from payments.tests.factories import RefundFactory
from payments.tests.gateway_stubs import make_gateway_refund


def refund_params(payment, amount=None, **kwargs):
    return InitiateRefundParams(
        gateway_payment_id=payment.gateway_payment_id,
        amount=amount,
        reason=kwargs.pop("reason", "Buyer changed mind"),
        **kwargs,
    )


@pytest.fixture
def gateway_refunds(gateway_client):
    """Make the mocked gateway echo back whatever amount was requested."""

    def _refund(payment_id, amount_minor, **kwargs):
        payment = Payment.objects.get(gateway_payment_id=payment_id)
        return make_gateway_refund(payment, Decimal(amount_minor) / 100)

    gateway_client.refund.side_effect = _refund
    return gateway_client


# =============================================================================
# Eligibility
# =============================================================================


class TestCheckRefundEligibility:
    def test_captured_payment_fully_refundable(self, captured_payment):
        eligibility = RefundService.check_refund_eligibility(captured_payment)

        assert eligibility.eligible
        assert eligibility.max_refundable == Decimal("499.00")
        assert eligibility.refunded_amount == Decimal("0.00")

    def test_pending_and_processed_refunds_count(self, completed_payment):
        RefundFactory(payment=completed_payment, amount=Decimal("100.00"))
        RefundFactory(payment=completed_payment, amount=Decimal("50.00"), status=RefundStatus.PENDING)
        RefundFactory(payment=completed_payment, amount=Decimal("300.00"), status=RefundStatus.FAILED)

        eligibility = RefundService.check_refund_eligibility(completed_payment)

        assert eligibility.refunded_amount == Decimal("150.00")
        assert eligibility.max_refundable == Decimal("349.00")

    def test_nothing_left(self, completed_payment):
        RefundFactory(payment=completed_payment, amount=Decimal("499.00"))

        eligibility = RefundService.check_refund_eligibility(completed_payment)

        assert not eligibility.eligible
        assert eligibility.block_reason == "No remaining amount to refund"

    @pytest.mark.parametrize("fixture_name", ["payment", "authorized_payment", "failed_payment"])
    def test_uncaptured_not_eligible(self, request, fixture_name):
        payment = request.getfixturevalue(fixture_name)

        eligibility = RefundService.check_refund_eligibility(payment)

        assert not eligibility.eligible
        assert eligibility.block_reason


# =============================================================================
# Initiate Refund
# =============================================================================


class TestInitiateRefund:
    def test_partial_refund(self, gateway_refunds, completed_payment):
        result = RefundService.initiate_refund(refund_params(completed_payment, Decimal("100.00")))

        assert result.success
        assert result.data.debit_status == DEBITED

        refund = result.data.refund
        assert refund.amount == Decimal("100.00")
        assert refund.status == RefundStatus.PROCESSED
        assert refund.initiated_by == "buyer"
        assert refund.idempotency_key.startswith(f"refund:{completed_payment.gateway_payment_id}:1:")

        assert Payment.objects.get(pk=completed_payment.pk).status == PaymentStatus.COMPLETED

        debit = PaymentTransaction.objects.get(type=TransactionType.DEBIT)
        assert debit.amount == Decimal("-100.00")
        assert debit.status == TransactionStatus.COMPLETED
        assert debit.idempotency_key == f"refund:{refund.gateway_refund_id}:debit"

        balance = ledger.get_balance(completed_payment.seller_id)
        assert balance.available_balance == Decimal("349.10")
        assert balance.total_earnings == Decimal("449.10")

    def test_gateway_call(self, gateway_refunds, completed_payment):
        RefundService.initiate_refund(
            refund_params(completed_payment, Decimal("100.00"), speed="optimum", idempotency_key="client-key-1")
        )

        args, kwargs = gateway_refunds.refund.call_args
        assert args == (completed_payment.gateway_payment_id, 10000)
        assert kwargs["speed"] == "optimum"
        assert kwargs["idempotency_key"] == "client-key-1"
        assert kwargs["receipt"].startswith("rcpt_")
        assert kwargs["notes"]["refund_type"] == "PARTIAL"
        assert kwargs["notes"]["reason"] == "Buyer changed mind"

    def test_full_refund_defaults_to_remaining_amount(self, gateway_refunds, completed_payment):
        result = RefundService.initiate_refund(refund_params(completed_payment))

        assert result.data.refund.amount == Decimal("499.00")
        assert result.data.payment.status == PaymentStatus.REFUNDED
        assert gateway_refunds.refund.call_args.kwargs["notes"]["refund_type"] == "FULL"

    def test_partials_reaching_amount_mark_refunded(self, gateway_refunds, completed_payment):
        # Fund the seller enough to cover both clawbacks
        ledger.credit(completed_payment.seller_id, Decimal("100.00"))

        RefundService.initiate_refund(refund_params(completed_payment, Decimal("300.00")))
        result = RefundService.initiate_refund(refund_params(completed_payment, Decimal("199.00")))

        payment = Payment.objects.get(pk=completed_payment.pk)
        assert payment.status == PaymentStatus.REFUNDED
        assert payment.refunded_at is not None
        assert result.data.refund.idempotency_key.startswith(f"refund:{payment.gateway_payment_id}:2:")
        assert ledger.get_balance(payment.seller_id).available_balance == Decimal("50.10")

    def test_exceeding_remaining_amount(self, gateway_refunds, completed_payment):
        RefundFactory(payment=completed_payment, amount=Decimal("400.00"))

        with pytest.raises(RefundAmountExceededError):
            RefundService.initiate_refund(refund_params(completed_payment, Decimal("100.00")))

        gateway_refunds.refund.assert_not_called()

    def test_exceeding_payment_amount(self, gateway_refunds, completed_payment):
        with pytest.raises(RefundAmountExceededError) as exc_info:
            RefundService.initiate_refund(refund_params(completed_payment, Decimal("499.01")))

        assert exc_info.value.error_code == "REFUND_AMOUNT_EXCEEDED"
        gateway_refunds.refund.assert_not_called()

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), Decimal("1.005")])
    def test_invalid_amount(self, gateway_refunds, completed_payment, amount):
        with pytest.raises(PaymentValidationError):
            RefundService.initiate_refund(refund_params(completed_payment, amount))

    def test_invalid_speed(self, gateway_refunds, completed_payment):
        with pytest.raises(PaymentValidationError) as exc_info:
            RefundService.initiate_refund(refund_params(completed_payment, speed="instant"))

        assert exc_info.value.error_code == "INVALID_REFUND_SPEED"

    def test_unknown_payment(self, gateway_refunds, db):
        with pytest.raises(PaymentNotFoundError):
            RefundService.initiate_refund(InitiateRefundParams(gateway_payment_id="pay_missing"))

    def test_failed_payment_not_refundable(self, gateway_refunds, failed_payment):
        Payment.objects.filter(pk=failed_payment.pk).update(gateway_payment_id="pay_failed")

        with pytest.raises(RefundNotAllowedError):
            RefundService.initiate_refund(InitiateRefundParams(gateway_payment_id="pay_failed"))

        gateway_refunds.refund.assert_not_called()

    def test_gateway_rejection_changes_nothing(self, gateway_client, completed_payment):
        gateway_client.refund.side_effect = GatewayRequestError("Payment gateway rejected the request")

        with pytest.raises(GatewayRequestError):
            RefundService.initiate_refund(refund_params(completed_payment, Decimal("100.00")))

        assert not Refund.objects.exists()
        assert ledger.get_balance(completed_payment.seller_id).available_balance == Decimal("449.10")

    def test_pending_gateway_refund_still_debits(self, gateway_client, completed_payment):
        gateway_client.refund.return_value = make_gateway_refund(
            completed_payment, Decimal("100.00"), status="pending"
        )

        result = RefundService.initiate_refund(refund_params(completed_payment, Decimal("100.00")))

        assert result.data.refund.status == RefundStatus.PENDING
        assert result.data.debit_status == DEBITED

    def test_completes_placeholder_created_by_webhook(self, gateway_client, completed_payment):
        RefundFactory(
            payment=completed_payment,
            gateway_refund_id="rfnd_early",
            amount=Decimal("100.00"),
            status=RefundStatus.PENDING,
            initiated_by="gateway",
        )
        gateway_client.refund.return_value = make_gateway_refund(
            completed_payment, Decimal("100.00"), refund_id="rfnd_early"
        )

        result = RefundService.initiate_refund(refund_params(completed_payment, Decimal("100.00")))

        assert Refund.objects.count() == 1
        refund = Refund.objects.get(gateway_refund_id="rfnd_early")
        assert refund.status == RefundStatus.PROCESSED
        assert refund.initiated_by == "buyer"
        assert result.data.debit_status == DEBITED

    def test_queues_refund_notifications(self, gateway_refunds, completed_payment):
        RefundService.initiate_refund(refund_params(completed_payment, Decimal("100.00")))

        kinds = set(
            Notification.objects.filter(
                kind__in=[NotificationKind.REFUND_PROCESSED, NotificationKind.REFUND_ISSUED]
            ).values_list("kind", flat=True)
        )
        assert kinds == {NotificationKind.REFUND_PROCESSED, NotificationKind.REFUND_ISSUED}


class TestClawbackShortfall:
    def test_refund_recorded_and_error_raised(self, gateway_refunds, captured_payment):
        with pytest.raises(PaymentError) as exc_info:
            RefundService.initiate_refund(refund_params(captured_payment, Decimal("100.00")))

        assert exc_info.value.error_code == "INSUFFICIENT_BALANCE"

        # The gateway refund happened, so it stays recorded
        refund = Refund.objects.get(payment=captured_payment)
        assert refund.amount == Decimal("100.00")

        debit = PaymentTransaction.objects.get(type=TransactionType.DEBIT)
        assert debit.status == TransactionStatus.FAILED
        assert debit.amount == Decimal("-100.00")

        balance = ledger.get_balance(captured_payment.seller_id)
        assert balance.available_balance == Decimal("0.00")
        assert balance.pending_balance == Decimal("449.10")

    def test_full_refund_still_marks_refunded(self, gateway_refunds, captured_payment):
        with pytest.raises(PaymentError):
            RefundService.initiate_refund(refund_params(captured_payment))

        assert Payment.objects.get(pk=captured_payment.pk).status == PaymentStatus.REFUNDED


# =============================================================================
# Shared Units of Work
# =============================================================================


class TestRecordRefundDebit:
    def test_second_call_is_noop(self, completed_payment):
        refund = RefundFactory(payment=completed_payment, amount=Decimal("100.00"))

        assert record_refund_debit(completed_payment, refund) == DEBITED
        assert record_refund_debit(completed_payment, refund) == ALREADY_RECORDED

        assert PaymentTransaction.objects.filter(type=TransactionType.DEBIT).count() == 1
        assert ledger.get_balance(completed_payment.seller_id).available_balance == Decimal("349.10")

    def test_shortfall_is_recorded_once(self, captured_payment):
        refund = RefundFactory(payment=captured_payment, amount=Decimal("100.00"))

        assert record_refund_debit(captured_payment, refund) == CLAWBACK_OUTSTANDING
        assert record_refund_debit(captured_payment, refund) == ALREADY_RECORDED

        assert PaymentTransaction.objects.filter(type=TransactionType.DEBIT).count() == 1


class TestMarkRefundedIfCovered:
    def test_partial_coverage(self, captured_payment):
        RefundFactory(payment=captured_payment, amount=Decimal("498.99"))

        assert mark_refunded_if_covered(captured_payment) is False
        assert captured_payment.status == PaymentStatus.CAPTURED

    def test_failed_refunds_do_not_count(self, captured_payment):
        RefundFactory(payment=captured_payment, amount=Decimal("499.00"), status=RefundStatus.FAILED)

        assert mark_refunded_if_covered(captured_payment) is False

    def test_full_coverage(self, captured_payment):
        RefundFactory(payment=captured_payment, amount=Decimal("200.00"))
        RefundFactory(payment=captured_payment, amount=Decimal("299.00"), status=RefundStatus.PENDING)

        assert mark_refunded_if_covered(captured_payment) is True
        assert Payment.objects.get(pk=captured_payment.pk).status == PaymentStatus.REFUNDED

    def test_already_refunded(self, captured_payment):
        RefundFactory(payment=captured_payment, amount=Decimal("499.00"))
        mark_refunded_if_covered(captured_payment)

        assert mark_refunded_if_covered(captured_payment) is False
