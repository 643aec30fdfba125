import json
import uuid

from django.core.cache import cache
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from shop.models import Order
from shop.tests.helpers import create_order, make_user


class AdminOrdersAccessTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.order = create_order(status="confirmed", payment_status="paid")

    def test_anonymous_is_401(self):
        detail = f"/admin/orders/{self.order.id}"
        responses = [
            self.client.get("/admin/orders"),
            self.client.get(detail),
            self.client.put(detail, {"status": "cancelled"}, format="json"),
        ]
        for r in responses:
            self.assertEqual(r.status_code, 401)
            self.assertEqual(json.loads(r.content)["error"], "Unauthorized")
        self.assertEqual(Order.objects.get(pk=self.order.pk).status, "confirmed")

    def test_customer_is_403(self):
        self.client.force_login(make_user("buyer", role="customer"))
        r = self.client.get("/admin/orders")
        self.assertEqual(r.status_code, 403)
        data = json.loads(r.content)
        self.assertEqual(data["error"], "Forbidden - Admin access required")
        self.assertNotIn("orders", data)

    def test_user_without_role_is_403(self):
        self.client.force_login(make_user("ghost"))
        r = self.client.put(f"/admin/orders/{self.order.id}", {"status": "cancelled"}, format="json")
        self.assertEqual(r.status_code, 403)
        self.assertEqual(Order.objects.get(pk=self.order.pk).status, "confirmed")

    @override_settings(ORDER_SERVICE_DB_ALIAS=None)
    def test_missing_service_credential_is_503(self):
        self.client.force_login(make_user("boss", role="admin"))
        r = self.client.get("/admin/orders")
        self.assertEqual(r.status_code, 503)
        self.assertEqual(json.loads(r.content)["error"], "Server configuration error")


class AdminOrdersTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.client.force_login(make_user("boss", role="admin"))

    def test_default_list_is_ready_to_ship_queue(self):
        paid = create_order(status="paid", payment_status="paid")
        confirmed = create_order(status="confirmed")
        create_order()

        r = self.client.get("/admin/orders")
        self.assertEqual(r.status_code, 200)
        ids = {o["id"] for o in json.loads(r.content)["orders"]}
        self.assertEqual(ids, {str(paid.id), str(confirmed.id)})

    def test_list_filters(self):
        shipped = create_order(status="shipped", payment_status="paid")
        create_order(status="confirmed", payment_status="paid")

        r = self.client.get("/admin/orders", {"status": "shipped"})
        self.assertEqual([o["id"] for o in json.loads(r.content)["orders"]], [str(shipped.id)])

        failed = create_order(payment_status="failed")
        r = self.client.get("/admin/orders", {"paymentStatus": "failed"})
        self.assertEqual([o["orderNumber"] for o in json.loads(r.content)["orders"]], [failed.order_number])

    def test_unknown_filter_value(self):
        r = self.client.get("/admin/orders", {"status": "lost"})
        self.assertEqual(r.status_code, 400)
        self.assertIn("status", json.loads(r.content)["fields"])

        r = self.client.get("/admin/orders", {"payment_status": "bogus"})
        self.assertIn("paymentStatus", json.loads(r.content)["fields"])

    def test_detail_and_not_found(self):
        order = create_order()
        r = self.client.get(f"/admin/orders/{order.id}")
        self.assertEqual(r.status_code, 200)
        data = json.loads(r.content)["order"]
        self.assertEqual(data["orderNumber"], order.order_number)
        self.assertEqual(data["totalCents"], 50000)
        self.assertEqual(data["version"], 1)

        for missing in (uuid.uuid4(), "not-a-uuid"):
            with self.subTest(order_id=missing):
                r = self.client.get(f"/admin/orders/{missing}")
                self.assertEqual(r.status_code, 404)
                self.assertEqual(json.loads(r.content)["error"], "Order not found")

    def test_mark_shipped(self):
        order = create_order(status="confirmed", payment_status="paid")
        r = self.client.put(
            f"/admin/orders/{order.id}",
            {"status": "shipped", "trackingNumber": "AWB123", "shippingProvider": "Delhivery"},
            format="json",
        )
        self.assertEqual(r.status_code, 200)
        data = json.loads(r.content)["order"]
        self.assertEqual(data["status"], "shipped")
        self.assertEqual(data["trackingNumber"], "AWB123")
        self.assertIsNotNone(data["shippedAt"])
        self.assertEqual(data["statusHistory"][-1]["note"], "Status updated to shipped")
        self.assertEqual(data["version"], 2)

    def test_same_status_and_blank_tracking(self):
        order = create_order(status="shipped", payment_status="paid")
        self.client.put(f"/admin/orders/{order.id}", {"trackingNumber": "AWB1"}, format="json")
        r = self.client.put(
            f"/admin/orders/{order.id}", {"status": "shipped", "trackingNumber": ""}, format="json"
        )
        data = json.loads(r.content)["order"]
        self.assertIsNone(data["trackingNumber"])
        self.assertEqual(len(data["statusHistory"]), 1)

    def test_snake_case_fields_are_accepted(self):
        order = create_order(status="confirmed", payment_status="paid")
        r = self.client.put(
            f"/admin/orders/{order.id}", {"tracking_number": "AWB9", "admin_notes": "gift wrap"}, format="json"
        )
        data = json.loads(r.content)["order"]
        self.assertEqual((data["trackingNumber"], data["adminNotes"]), ("AWB9", "gift wrap"))

    def test_stale_version_is_409(self):
        order = create_order(status="confirmed", payment_status="paid")
        self.client.put(f"/admin/orders/{order.id}", {"status": "shipped", "version": 1}, format="json")

        r = self.client.put(f"/admin/orders/{order.id}", {"status": "cancelled", "version": 1}, format="json")
        self.assertEqual(r.status_code, 409)
        current = Order.objects.get(pk=order.pk)
        self.assertEqual(current.status, "shipped")
        self.assertEqual([h["status"] for h in current.status_history], ["confirmed", "shipped"])

    def test_unknown_status_is_400(self):
        order = create_order()
        r = self.client.put(f"/admin/orders/{order.id}", {"status": "teleported"}, format="json")
        self.assertEqual(r.status_code, 400)

    def test_update_missing_order_is_404(self):
        r = self.client.put(f"/admin/orders/{uuid.uuid4()}", {"status": "shipped"}, format="json")
        self.assertEqual(r.status_code, 404)
