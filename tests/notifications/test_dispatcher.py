"""
NotificationDispatcher with a mocked EmailClient.
"""
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from app.core.config import settings
from app.models.academy_course import AcademyCourse
from app.models.class_purchase import ClassPurchase
from app.models.notification_outbox import NotificationOutbox
from app.models.payment import Payment
from app.models.tutor_application import TutorApplication
from app.models.user import User
from app.services.notifications.dispatcher import (
    PAYMENT_CONFIRMATION,
    PAYMENT_FAILURE,
    NotificationDispatcher,
)
from app.services.notifications.outbox import STATUS_FAILED, STATUS_PENDING, STATUS_SENT, OutboxService
from app.services.payments.errors import NotificationError
from app.services.payments.service import PaymentWebhookService


@pytest.fixture
def email():
    client = MagicMock()
    client.send.return_value = "msg_1"
    return client


def _outcome_payload(**overrides) -> dict:
    payload = {
        "user_id": "u1",
        "payment_id": "pay_1",
        "amount": "150.00",
        "currency": "ZMW",
        "product_type": "subscription",
    }
    payload.update(overrides)
    return payload


def test_confirmation_goes_to_account_email(db, email):
    db.add(User(id="u1", email="student@example.com", full_name="Mwila Banda"))
    row = OutboxService(db).enqueue(PAYMENT_CONFIRMATION, _outcome_payload())

    assert NotificationDispatcher(db, email_client=email).deliver(row.id) is True

    to, subject, html = email.send.call_args.args
    assert to == "student@example.com"
    assert subject.startswith("Payment Confirmed")
    assert "ZMW 150.00" in html
    assert "Pro Subscription (1 Month)" in html
    assert "Mwila Banda" in html
    assert row.status == STATUS_SENT


def test_failure_email_uses_generic_label_for_unknown_product(db, email):
    db.add(User(id="u1", email="student@example.com"))
    row = OutboxService(db).enqueue(PAYMENT_FAILURE, _outcome_payload(product_type="bundle"))

    NotificationDispatcher(db, email_client=email).deliver(row.id)

    _, subject, html = email.send.call_args.args
    assert subject.startswith("Payment Failed")
    assert "Purchase" in html


def test_missing_address_is_not_retried(db, email):
    row = OutboxService(db).enqueue(PAYMENT_CONFIRMATION, _outcome_payload(user_id="ghost"))

    assert NotificationDispatcher(db, email_client=email).deliver(row.id) is False

    email.send.assert_not_called()
    assert row.status == STATUS_FAILED


def test_transient_error_schedules_retry(db, email):
    db.add(User(id="u1", email="student@example.com"))
    email.send.side_effect = NotificationError("provider 503")
    row = OutboxService(db).enqueue(PAYMENT_CONFIRMATION, _outcome_payload())

    assert NotificationDispatcher(db, email_client=email).deliver(row.id) is False

    assert row.status == STATUS_PENDING
    assert row.attempts == 1
    assert row.last_error == "provider 503"


def test_class_join_uses_captured_recipient(db, email):
    row = OutboxService(db).enqueue(
        "class_join",
        {"user_id": "u1", "class_title": "Equity", "scheduled_at": None, "join_url": "https://x/live-class/c1"},
        recipient="buyer@example.com",
    )

    NotificationDispatcher(db, email_client=email).deliver(row.id)

    to, subject, html = email.send.call_args.args
    assert to == "buyer@example.com"
    assert subject == "Your Class Access: Equity"
    assert "https://x/live-class/c1" in html


def test_tutor_enrollment_emails_each_matching_tutor_once(db, email):
    db.add_all(
        [
            User(id="s1", email="student@example.com", full_name="Chanda"),
            AcademyCourse(id="A", name="Criminal Law"),
            AcademyCourse(id="B", name="Company Law"),
            TutorApplication(user_id="t1", full_name="T One", email="t1@example.com", status="approved",
                             selected_courses=["Criminal Law"]),
            TutorApplication(user_id="t2", full_name="T Two", email="t2@example.com", status="approved",
                             selected_courses=["Company Law", "Criminal Law"]),
            TutorApplication(user_id="t3", full_name="T Three", email="t3@example.com", status="pending",
                             selected_courses=["Criminal Law"]),
        ]
    )
    row = OutboxService(db).enqueue("tutor_enrollment", {"student_user_id": "s1", "course_ids": ["A", "B"]})
    email.send.side_effect = [None, NotificationError("rate limited")]

    dispatcher = NotificationDispatcher(db, email_client=email)
    assert dispatcher.deliver(row.id) is False
    assert len(row.payload["notified"]) == 1

    email.send.side_effect = None
    row.next_attempt_at = row.created_at
    assert dispatcher.deliver(row.id) is True

    recipients = [c.args[0] for c in email.send.call_args_list]
    assert len(recipients) == 3
    assert recipients[1] == recipients[2]
    assert set(recipients) == {"t1@example.com", "t2@example.com"}
    assert row.status == STATUS_SENT


def test_unknown_kind_fails(db, email):
    row = OutboxService(db).enqueue("sms", {})
    assert NotificationDispatcher(db, email_client=email).deliver(row.id) is False
    assert row.status == STATUS_FAILED


def test_class_join_without_captured_email_goes_to_account(session_factory, seed, sign, db, email):
    seed(
        User(id="u1", email="acct@example.com"),
        Payment(
            id="pay_c1",
            user_id="u1",
            amount=Decimal("80.00"),
            product_type="class",
            status="pending",
            payment_metadata={"classId": "c1", "classPurchaseType": "live"},
        ),
    )
    raw, signature = sign({"event": "charge.success", "data": {"reference": "pay_c1", "status": "success"}})
    PaymentWebhookService(session_factory=session_factory, settings=settings, dispatch=MagicMock()).handle(raw, signature)

    row = db.query(NotificationOutbox).filter_by(kind="class_join").one()
    assert row.recipient is None
    assert NotificationDispatcher(db, email_client=email).deliver(row.id) is True

    assert [c.args[0] for c in email.send.call_args_list] == ["acct@example.com"]
    assert db.query(ClassPurchase).filter_by(payment_id="pay_c1").count() == 1
