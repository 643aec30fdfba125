from datetime import datetime, timedelta, timezone as dt_timezone

from django.test import SimpleTestCase, TestCase, override_settings

from shop.exceptions import ConflictError, InvalidInput, InvalidTransition, OrderNotFound
from shop.lifecycle import OrderLifecycle, allow_any, forward_only, load_policy
from shop.repository import OrderRepository
from shop.tests.helpers import create_order, make_user

T0 = datetime(2026, 10, 18, 9, 0, tzinfo=dt_timezone.utc)


class _Clock:
    def __init__(self, start=T0):
        self.now = start

    def __call__(self):
        return self.now

    def tick(self, minutes=5):
        self.now = self.now + timedelta(minutes=minutes)
        return self.now


class AdminUpdateTests(TestCase):
    def setUp(self):
        self.clock = _Clock()
        self.lifecycle = OrderLifecycle(repository=OrderRepository(), policy=allow_any, clock=self.clock)
        self.order = create_order(status="confirmed", payment_status="paid")

    def test_status_change_appends_history_and_sets_shipped_at(self):
        updated = self.lifecycle.update(self.order.id, status="shipped", tracking_number="TRK-9")

        self.assertEqual(updated.status, "shipped")
        self.assertEqual(updated.tracking_number, "TRK-9")
        self.assertEqual(updated.shipped_at, T0)
        self.assertEqual(updated.updated_at, T0)
        self.assertEqual(len(updated.status_history), 2)
        self.assertEqual(
            updated.status_history[-1],
            {"status": "shipped", "timestamp": T0.isoformat(), "note": "Status updated to shipped"},
        )

    def test_same_status_adds_no_history(self):
        updated = self.lifecycle.update(self.order.id, status="confirmed", admin_notes="called buyer")
        self.assertEqual(len(updated.status_history), 1)
        self.assertEqual(updated.admin_notes, "called buyer")
        self.assertEqual(updated.version, self.order.version + 1)

    def test_reentering_shipped_keeps_first_shipped_at(self):
        self.lifecycle.update(self.order.id, status="shipped")
        self.clock.tick()
        self.lifecycle.update(self.order.id, status="delivered")
        self.clock.tick()
        again = self.lifecycle.update(self.order.id, status="shipped")

        self.assertEqual(again.shipped_at, T0)
        self.assertEqual(again.delivered_at, T0 + timedelta(minutes=5))
        self.assertEqual([h["status"] for h in again.status_history], ["confirmed", "shipped", "delivered", "shipped"])

    def test_prior_history_entry_blocks_derived_timestamp(self):
        order = create_order(
            status="confirmed",
            status_history=[
                {"status": "shipped", "timestamp": "2026-01-01T00:00:00+00:00", "note": "imported"},
                {"status": "confirmed", "timestamp": "2026-01-02T00:00:00+00:00", "note": "imported"},
            ],
        )
        updated = self.lifecycle.update(order.id, status="shipped")
        self.assertIsNone(updated.shipped_at)
        self.assertEqual(len(updated.status_history), 3)

    def test_blank_strings_clear_optional_fields(self):
        self.lifecycle.update(self.order.id, tracking_number="TRK", shipping_provider="Delhivery")
        cleared = self.lifecycle.update(self.order.id, tracking_number="", shipping_provider="  ")
        self.assertIsNone(cleared.tracking_number)
        self.assertIsNone(cleared.shipping_provider)

    def test_fields_not_sent_are_untouched(self):
        self.lifecycle.update(self.order.id, admin_notes="fragile")
        updated = self.lifecycle.update(self.order.id, tracking_number="TRK")
        self.assertEqual(updated.admin_notes, "fragile")

    def test_updated_at_refreshed_without_changes(self):
        self.clock.tick(30)
        updated = self.lifecycle.update(self.order.id)
        self.assertEqual(updated.updated_at, self.clock.now)

    def test_unknown_status(self):
        with self.assertRaises(InvalidInput):
            self.lifecycle.update(self.order.id, status="lost")

    def test_missing_order(self):
        with self.assertRaises(OrderNotFound):
            self.lifecycle.update("00000000-0000-0000-0000-000000000000", status="shipped")

    def test_stale_version_keeps_history(self):
        self.lifecycle.update(self.order.id, status="shipped")
        with self.assertRaises(ConflictError):
            self.lifecycle.update(self.order.id, status="cancelled", expected_version=self.order.version)
        current = OrderRepository().get_by_id(self.order.id)
        self.assertEqual(current.status, "shipped")
        self.assertEqual([h["status"] for h in current.status_history], ["confirmed", "shipped"])

    def test_forward_only_policy_rejects_leaving_delivered(self):
        strict = OrderLifecycle(repository=OrderRepository(), policy=forward_only, clock=self.clock)
        strict.update(self.order.id, status="delivered")
        with self.assertRaises(InvalidTransition):
            strict.update(self.order.id, status="pending")


class PaymentReconciliationTests(TestCase):
    def setUp(self):
        self.clock = _Clock()
        self.lifecycle = OrderLifecycle(repository=OrderRepository(), clock=self.clock)
        self.order = create_order()

    def test_confirm_payment(self):
        order = self.lifecycle.confirm_payment(self.order.id, "pay_123")
        self.assertEqual(order.status, "confirmed")
        self.assertEqual(order.payment_status, "paid")
        self.assertEqual(order.payment_id, "pay_123")
        self.assertEqual(order.payment_date, T0)
        self.assertEqual(order.status_history[-1]["note"], "Payment received via Razorpay")

    def test_confirm_payment_is_idempotent(self):
        first = self.lifecycle.confirm_payment(self.order.id, "pay_123")
        self.clock.tick()
        second = self.lifecycle.confirm_payment(self.order.id, "pay_123")
        self.assertEqual(second.version, first.version)
        self.assertEqual(second.status_history, first.status_history)

    def test_fail_payment(self):
        order = self.lifecycle.fail_payment(self.order.id, "pay_9", reason="Card declined")
        self.assertEqual(order.payment_status, "failed")
        self.assertEqual(order.status, "pending")
        self.assertEqual(order.status_history[-1]["note"], "Payment failed: Card declined (Payment ID: pay_9)")

    def test_fail_payment_ignored_after_capture(self):
        paid = self.lifecycle.confirm_payment(self.order.id, "pay_1")
        after = self.lifecycle.fail_payment(self.order.id, "pay_2", reason="late event")
        self.assertEqual(after.payment_status, "paid")
        self.assertEqual(after.version, paid.version)

    def test_client_reported_failure(self):
        order = self.lifecycle.record_client_payment_result(
            self.order.id, "failed", "order_draft_001", note="User closed checkout"
        )
        self.assertEqual(order.payment_status, "failed")
        self.assertEqual(order.status_history[-1]["note"], "User closed checkout")

    def test_client_can_cancel_draft(self):
        order = self.lifecycle.record_client_payment_result(self.order.id, "failed", "order_draft_001", status="cancelled")
        self.assertEqual(order.status, "cancelled")
        self.assertIsNone(order.shipped_at)

    def test_client_report_cannot_undo_paid_order(self):
        self.lifecycle.confirm_payment(self.order.id, "pay_1")
        with self.assertRaises(InvalidTransition):
            self.lifecycle.record_client_payment_result(self.order.id, "failed", "order_draft_001")

    def test_client_report_only_moves_to_pending_or_cancelled(self):
        for target in ("shipped", "delivered", "confirmed"):
            with self.subTest(status=target):
                with self.assertRaises(InvalidInput):
                    self.lifecycle.record_client_payment_result(self.order.id, "pending", "order_draft_001", status=target)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "pending")
        self.assertIsNone(self.order.shipped_at)

    def test_client_report_needs_matching_gateway_order(self):
        for gateway_order_id in (None, "", "order_someone_else"):
            with self.subTest(gateway_order_id=gateway_order_id):
                with self.assertRaises(OrderNotFound):
                    self.lifecycle.record_client_payment_result(self.order.id, "failed", gateway_order_id)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, "pending")

    def test_client_report_on_buyer_order_needs_same_buyer(self):
        buyer = make_user("asha")
        order = create_order(user=buyer)
        for other in (None, make_user("mallory")):
            with self.subTest(buyer=other):
                with self.assertRaises(OrderNotFound):
                    self.lifecycle.record_client_payment_result(order.id, "failed", "order_draft_001", buyer=other)
        updated = self.lifecycle.record_client_payment_result(order.id, "failed", "order_draft_001", buyer=buyer)
        self.assertEqual(updated.payment_status, "failed")

    def test_client_report_only_touches_pending_orders(self):
        order = create_order(status="cancelled")
        with self.assertRaises(InvalidTransition):
            self.lifecycle.record_client_payment_result(order.id, "pending", "order_draft_001")


class TransitionPolicyTests(SimpleTestCase):
    def test_forward_only(self):
        self.assertTrue(forward_only("pending", "confirmed"))
        self.assertTrue(forward_only("confirmed", "shipped"))
        self.assertTrue(forward_only("shipped", "cancelled"))
        self.assertTrue(forward_only("delivered", "delivered"))
        self.assertFalse(forward_only("shipped", "pending"))
        self.assertFalse(forward_only("cancelled", "pending"))
        self.assertFalse(forward_only("delivered", "shipped"))

    def test_allow_any(self):
        self.assertTrue(allow_any("delivered", "pending"))

    @override_settings(ORDER_TRANSITION_POLICY="shop.lifecycle.forward_only")
    def test_policy_loaded_from_settings(self):
        self.assertIs(load_policy(), forward_only)
