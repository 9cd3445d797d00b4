"""
Payload normalization and status mapping: pure logic.
"""
import unittest

from app.services.payments.errors import MalformedEventError
from app.services.payments.events import PaymentStatus, map_status, normalize_event, parse_body


class TestMapStatus(unittest.TestCase):
    def test_completed_aliases(self):
        for raw in ("success", "SUCCESSFUL", " Completed "):
            self.assertIs(map_status(raw), PaymentStatus.COMPLETED)

    def test_failed_aliases(self):
        for raw in ("failed", "Declined", "CANCELLED"):
            self.assertIs(map_status(raw), PaymentStatus.FAILED)

    def test_anything_else_is_pending(self):
        for raw in (None, "", "processing", "reversed"):
            self.assertIs(map_status(raw), PaymentStatus.PENDING)

    def test_only_pending_is_not_terminal(self):
        self.assertFalse(PaymentStatus.PENDING.is_terminal)
        self.assertTrue(PaymentStatus.COMPLETED.is_terminal)
        self.assertTrue(PaymentStatus.FAILED.is_terminal)


class TestNormalizeEvent(unittest.TestCase):
    def test_enveloped_event(self):
        event = normalize_event(
            {"event": "charge.success", "data": {"reference": "pay_1", "status": "success", "transaction_id": "T1"}}
        )
        self.assertEqual(event.reference, "pay_1")
        self.assertIs(event.status, PaymentStatus.COMPLETED)
        self.assertEqual(event.transaction_id, "T1")
        self.assertEqual(event.event_name, "charge.success")

    def test_enveloped_reference_falls_back_to_transaction_reference(self):
        event = normalize_event({"type": "charge.failed", "data": {"transaction_reference": "pay_2", "status": "failed"}})
        self.assertEqual(event.reference, "pay_2")
        self.assertEqual(event.event_name, "charge.failed")

    def test_enveloped_reference_falls_back_to_top_level(self):
        event = normalize_event({"reference": "pay_3", "data": {"status": "success"}})
        self.assertEqual(event.reference, "pay_3")

    def test_flat_event(self):
        event = normalize_event({"transaction_reference": "pay_4", "status": "declined"})
        self.assertEqual(event.reference, "pay_4")
        self.assertIs(event.status, PaymentStatus.FAILED)
        self.assertIsNone(event.transaction_id)

    def test_numeric_ids_are_coerced(self):
        event = normalize_event({"data": {"reference": "pay_6", "transaction_id": 88231, "status": "success"}})
        self.assertEqual(event.transaction_id, "88231")

    def test_missing_status_is_pending(self):
        self.assertIs(normalize_event({"reference": "pay_5"}).status, PaymentStatus.PENDING)

    def test_missing_reference_rejected(self):
        for body in ({"status": "success"}, {"data": {"reference": "  "}}, {}):
            with self.assertRaises(MalformedEventError):
                normalize_event(body)

    def test_null_data_is_read_as_flat(self):
        event = normalize_event({"data": None, "reference": "pay_1", "status": "success"})
        self.assertEqual(event.reference, "pay_1")
        self.assertIs(event.status, PaymentStatus.COMPLETED)

    def test_data_must_be_object(self):
        with self.assertRaises(MalformedEventError):
            normalize_event({"data": ["pay_1"]})

    def test_wrong_field_type_rejected(self):
        with self.assertRaises(MalformedEventError):
            normalize_event({"reference": {"id": "pay_1"}})


class TestParseBody(unittest.TestCase):
    def test_rejects_non_object(self):
        for raw in (b"[]", b"\"pay_1\"", b"not json", b"\xff\xfe"):
            with self.assertRaises(MalformedEventError):
                parse_body(raw)

    def test_accepts_object(self):
        self.assertEqual(parse_body(b'{"reference": "pay_1"}'), {"reference": "pay_1"})


if __name__ == "__main__":
    unittest.main()
