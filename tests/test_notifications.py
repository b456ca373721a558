import os
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from salon_api.config import Settings
from salon_api.schemas.appointment import Appointment
from salon_api.services import notifications
from salon_api.services.notifications import (
    LoggingNotifier,
    NotificationDispatcher,
    SmtpNotifier,
    build_notifier,
    render_appointment_email,
)


def _appointment(**overrides) -> Appointment:
    data = {
        "id": 7,
        "customer_name": "Ada <Lovelace>",
        "customer_email": "ada@example.com",
        "customer_phone": "555-0100",
        "date": "2025-03-15",
        "time": "15:04",
        "service_id": 1,
        "service_description": "Small",
        "currency": "USD",
        "price_cents": 12050,
        "status": "confirmed",
    }
    data.update(overrides)
    return Appointment(**data)


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None, **kwargs) -> None:
        self.host = host
        self.port = port
        self.started_tls = False
        self.logged_in = None
        self.sent = []
        self.closed = False
        FakeSMTP.instances.append(self)

    def starttls(self, context=None) -> None:
        self.started_tls = True

    def login(self, user, password) -> None:
        self.logged_in = (user, password)

    def sendmail(self, sender, recipients, message) -> None:
        self.sent.append((sender, recipients, message))

    def quit(self) -> None:
        self.closed = True


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(notifications.smtplib, "SMTP", FakeSMTP)
    monkeypatch.setattr(notifications.smtplib, "SMTP_SSL", FakeSMTP)
    return FakeSMTP


def _smtp_notifier(**overrides) -> SmtpNotifier:
    options = {
        "host": "smtp.example.com",
        "port": 587,
        "username": "mailer",
        "password": "secret",
        "sender": "salon@example.com",
        "admin_email": "owner@example.com",
    }
    options.update(overrides)
    return SmtpNotifier(**options)


def test_render_escapes_and_formats_price() -> None:
    body = render_appointment_email("Hi", "Hello Ada <Lovelace>", _appointment(notes="bring photos"), "Knotless Braids")

    assert "Hello Ada &lt;Lovelace&gt;" in body
    assert "USD 120.50" in body
    assert "Knotless Braids" in body
    assert "bring photos" in body


def test_smtp_admin_notice_goes_to_admin(fake_smtp) -> None:
    _smtp_notifier().notify_admin_new_appointment(_appointment(status="pending"), "Knotless Braids")

    [server] = fake_smtp.instances
    assert server.started_tls is True
    assert server.logged_in == ("mailer", "secret")
    assert server.closed is True
    sender, recipients, message = server.sent[0]
    assert sender == "salon@example.com"
    assert recipients == ["owner@example.com"]
    assert "New appointment #7" in message


def test_smtp_customer_messages_go_to_customer(fake_smtp) -> None:
    notifier = _smtp_notifier()
    notifier.notify_customer_confirmed(_appointment(), "Knotless Braids")
    notifier.notify_customer_updated(_appointment(status="pending"), "Knotless Braids")
    notifier.notify_customer_cancelled(_appointment(status="cancelled"), "Knotless Braids")

    subjects = []
    for server in fake_smtp.instances:
        _, recipients, message = server.sent[0]
        assert recipients == ["ada@example.com"]
        subjects.append(message)
    assert "Appointment confirmed" in subjects[0]
    assert "Appointment updated" in subjects[1]
    assert "Appointment cancelled" in subjects[2]


def test_smtp_uses_implicit_tls_on_465(fake_smtp) -> None:
    _smtp_notifier(port=465).notify_customer_confirmed(_appointment(), "")

    [server] = fake_smtp.instances
    assert server.port == 465
    assert server.started_tls is False


def test_smtp_skips_admin_notice_without_admin_email(fake_smtp) -> None:
    _smtp_notifier(admin_email=None).notify_admin_new_appointment(_appointment(), "")
    assert fake_smtp.instances == []


def test_build_notifier_picks_smtp_only_when_fully_configured() -> None:
    assert isinstance(build_notifier(Settings()), LoggingNotifier)
    assert isinstance(build_notifier(Settings(smtp_host="smtp.example.com")), LoggingNotifier)

    configured = Settings(
        smtp_host="smtp.example.com",
        smtp_user="mailer",
        smtp_password="secret",
        sender_email="salon@example.com",
    )
    assert isinstance(build_notifier(configured), SmtpNotifier)


def test_dispatcher_runs_work_off_the_caller_thread() -> None:
    seen = []
    dispatcher = NotificationDispatcher(LoggingNotifier(), max_workers=1)
    try:
        future = dispatcher.dispatch(seen.append, "sent")
        dispatcher.drain(timeout=5)
    finally:
        dispatcher.shutdown()

    assert future.done()
    assert seen == ["sent"]


def test_dispatcher_swallows_notifier_failures() -> None:
    def boom() -> None:
        raise RuntimeError("smtp down")

    dispatcher = NotificationDispatcher(LoggingNotifier(), max_workers=1)
    try:
        future = dispatcher.dispatch(boom)
        dispatcher.drain(timeout=5)
    finally:
        dispatcher.shutdown()

    assert isinstance(future.exception(), RuntimeError)
