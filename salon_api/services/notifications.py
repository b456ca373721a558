"""Best-effort booking notifications.

The appointment service only knows the :class:`Notifier` interface and hands
each call to a :class:`NotificationDispatcher`, which runs it on a worker
thread after the store has been updated. A failing notifier is logged and
otherwise ignored.
"""

from __future__ import annotations

import html
import logging
import smtplib
import ssl
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_for_futures
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from threading import Lock
from typing import Any, Callable, Optional, Protocol, Set

from salon_api.schemas.appointment import Appointment

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify_admin_new_appointment(self, appointment: Appointment, service_name: str) -> None:
        ...

    def notify_customer_confirmed(self, appointment: Appointment, service_name: str) -> None:
        ...

    def notify_customer_updated(self, appointment: Appointment, service_name: str) -> None:
        ...

    def notify_customer_cancelled(self, appointment: Appointment, service_name: str) -> None:
        ...


class LoggingNotifier:
    """Default notifier when no mail server is configured."""

    def notify_admin_new_appointment(self, appointment: Appointment, service_name: str) -> None:
        logger.info(
            "New appointment #%s from %s for %s on %s at %s",
            appointment.id,
            appointment.customer_name,
            service_name or appointment.service_id,
            appointment.date,
            appointment.time,
        )

    def notify_customer_confirmed(self, appointment: Appointment, service_name: str) -> None:
        logger.info("Appointment #%s confirmed for %s", appointment.id, appointment.customer_email)

    def notify_customer_updated(self, appointment: Appointment, service_name: str) -> None:
        logger.info("Appointment #%s updated for %s", appointment.id, appointment.customer_email)

    def notify_customer_cancelled(self, appointment: Appointment, service_name: str) -> None:
        logger.info("Appointment #%s cancelled for %s", appointment.id, appointment.customer_email)


def _format_price(appointment: Appointment) -> str:
    amount = f"{appointment.price_cents / 100:.2f}"
    return f"{appointment.currency} {amount}".strip()


def render_appointment_email(heading: str, intro: str, appointment: Appointment, service_name: str) -> str:
    rows = [
        ("Service", service_name or f"#{appointment.service_id}"),
        ("Style", appointment.service_description),
        ("Date", appointment.date),
        ("Time", appointment.time),
        ("Price", _format_price(appointment)),
        ("Status", appointment.status),
    ]
    if appointment.staff_name:
        rows.append(("Stylist", appointment.staff_name))
    if appointment.notes:
        rows.append(("Notes", appointment.notes))
    table = "".join(
        f"<tr><th align='left'>{html.escape(label)}</th><td>{html.escape(str(value))}</td></tr>"
        for label, value in rows
    )
    return (
        "<html><body>"
        f"<h2>{html.escape(heading)}</h2>"
        f"<p>{html.escape(intro)}</p>"
        f"<table>{table}</table>"
        "</body></html>"
    )


class SmtpNotifier:
    """Sends HTML mail through an SMTP relay (STARTTLS, or TLS on port 465)."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        username: str,
        password: str,
        sender: str,
        admin_email: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._sender = sender
        self._admin_email = admin_email
        self._timeout = timeout

    def _send(self, to: str, subject: str, body: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self._sender
        msg["To"] = to
        msg.attach(MIMEText(body, "html", "utf-8"))

        context = ssl.create_default_context()
        if self._port == 465:
            server = smtplib.SMTP_SSL(self._host, self._port, context=context, timeout=self._timeout)
        else:
            server = smtplib.SMTP(self._host, self._port, timeout=self._timeout)
            server.starttls(context=context)
        try:
            server.login(self._username, self._password)
            server.sendmail(self._sender, [to], msg.as_string())
        finally:
            server.quit()
        logger.info("Sent '%s' to %s via %s", subject, to, self._host)

    def notify_admin_new_appointment(self, appointment: Appointment, service_name: str) -> None:
        if not self._admin_email:
            logger.warning("Admin email not configured; skipping new appointment notice")
            return
        body = render_appointment_email(
            "New appointment request",
            f"{appointment.customer_name} ({appointment.customer_email}, "
            f"{appointment.customer_phone}) requested an appointment.",
            appointment,
            service_name,
        )
        self._send(self._admin_email, f"New appointment #{appointment.id}", body)

    def notify_customer_confirmed(self, appointment: Appointment, service_name: str) -> None:
        body = render_appointment_email(
            "Your appointment is confirmed",
            f"Hello {appointment.customer_name}, we look forward to seeing you.",
            appointment,
            service_name,
        )
        self._send(appointment.customer_email, "Appointment confirmed", body)

    def notify_customer_updated(self, appointment: Appointment, service_name: str) -> None:
        body = render_appointment_email(
            "Your appointment was updated",
            f"Hello {appointment.customer_name}, here are your current booking details.",
            appointment,
            service_name,
        )
        self._send(appointment.customer_email, "Appointment updated", body)

    def notify_customer_cancelled(self, appointment: Appointment, service_name: str) -> None:
        body = render_appointment_email(
            "Your appointment was cancelled",
            f"Hello {appointment.customer_name}, unfortunately we cannot take this booking.",
            appointment,
            service_name,
        )
        self._send(appointment.customer_email, "Appointment cancelled", body)


class NotificationDispatcher:
    """Runs notifier calls on a small thread pool, fire-and-forget."""

    def __init__(self, notifier: Notifier, *, max_workers: int = 2) -> None:
        self.notifier = notifier
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="notify"
        )
        self._pending: Set[Future] = set()
        self._lock = Lock()

    def dispatch(self, func: Callable[..., Any], *args: Any) -> Future:
        future = self._executor.submit(func, *args)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._on_done)
        return future

    def _on_done(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Notification failed: %s", exc, exc_info=exc)

    def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for notifications queued so far. Intended for tests and shutdown."""

        with self._lock:
            pending = list(self._pending)
        if pending:
            wait_for_futures(pending, timeout=timeout)

    def shutdown(self, *, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


def build_notifier(settings: Any) -> Notifier:
    if settings.smtp_configured:
        return SmtpNotifier(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            sender=settings.sender_email,
            admin_email=settings.admin_email,
        )
    logger.info("SMTP not configured; notifications will be logged only")
    return LoggingNotifier()
