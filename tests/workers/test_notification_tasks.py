from unittest.mock import MagicMock, patch

from app.models.notification_outbox import NotificationOutbox
from app.models.user import User
from app.services.notifications.outbox import OutboxService
from app.workers.tasks import notifications as tasks


def test_enqueue_deliveries_survives_broker_errors():
    with patch.object(tasks.deliver_notification, "delay", side_effect=[ConnectionError("down"), None]) as delay:
        tasks.enqueue_deliveries(["o1", "o2"])
    assert [c.args[0] for c in delay.call_args_list] == ["o1", "o2"]


def test_sweep_delivers_due_rows(session_factory, seed):
    seed(User(id="u1", email="student@example.com"))
    session = session_factory()
    row = OutboxService(session).enqueue(
        "payment_confirmation",
        {"user_id": "u1", "payment_id": "pay_1", "amount": "10", "currency": "ZMW", "product_type": "class"},
    )
    session.commit()
    row_id = row.id
    session.close()

    email = MagicMock()
    with patch.object(tasks, "SessionLocal", session_factory), patch.object(tasks, "EmailClient", return_value=email):
        result = tasks.sweep_notification_outbox()

    assert result == {"due": 1, "sent": 1}
    email.send.assert_called_once()
    email.close.assert_called_once()
    check = session_factory()
    assert check.get(NotificationOutbox, row_id).status == "sent"
    check.close()


def test_deliver_notification_unknown_row(session_factory):
    email = MagicMock()
    with patch.object(tasks, "SessionLocal", session_factory), patch.object(tasks, "EmailClient", return_value=email):
        result = tasks.deliver_notification("missing")
    assert result == {"outbox_id": "missing", "sent": False}
    email.send.assert_not_called()
