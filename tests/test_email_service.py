import smtplib

from stagelocker.core.config import Settings
from stagelocker.services import email_service
from stagelocker.services.email_service import (
    ConsoleNotificationSink,
    DisabledNotificationSink,
    SmtpNotificationSink,
    build_link,
    build_notification_sink,
)


class FakeSMTP:
    sent = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def ehlo(self):
        pass

    def starttls(self, context=None):
        pass

    def login(self, username, password):
        pass

    def send_message(self, msg):
        FakeSMTP.sent.append(msg)


def _smtp_settings(**overrides) -> Settings:
    values = dict(
        email_backend="smtp",
        smtp_host="smtp.example.com",
        smtp_from_email="no-reply@example.com",
        frontend_url="https://locker.example.com/",
    )
    values.update(overrides)
    return Settings(**values)


def test_build_link_encodes_token():
    link = build_link("https://locker.example.com/", "verify-email", "a.b+c")

    assert link == "https://locker.example.com/verify-email?token=a.b%2Bc"


def test_backend_selection():
    assert isinstance(build_notification_sink(_smtp_settings()), SmtpNotificationSink)
    assert isinstance(build_notification_sink(Settings(email_backend="console")), ConsoleNotificationSink)
    assert isinstance(build_notification_sink(Settings(email_backend="disabled")), DisabledNotificationSink)


def test_smtp_sink_sends_verification_link(monkeypatch):
    FakeSMTP.sent = []
    monkeypatch.setattr(email_service.smtplib, "SMTP", FakeSMTP)
    sink = SmtpNotificationSink(_smtp_settings())

    assert sink.send_verification("user@example.com", "tok123") is True

    msg = FakeSMTP.sent[0]
    assert msg["To"] == "user@example.com"
    assert msg["From"] == "Stage Locker <no-reply@example.com>"
    assert "https://locker.example.com/verify-email?token=tok123" in msg.get_body(("plain",)).get_content()


def test_smtp_sink_reports_failure(monkeypatch):
    class BrokenSMTP(FakeSMTP):
        def send_message(self, msg):
            raise smtplib.SMTPException("boom")

    monkeypatch.setattr(email_service.smtplib, "SMTP", BrokenSMTP)
    sink = SmtpNotificationSink(_smtp_settings())

    assert sink.send_password_reset("user@example.com", "tok123") is False


def test_smtp_sink_without_host_does_not_send():
    sink = SmtpNotificationSink(_smtp_settings(smtp_host=""))

    assert sink.send_verification("user@example.com", "tok123") is False


def test_disabled_sink_always_fails():
    sink = DisabledNotificationSink()

    assert sink.send_verification("user@example.com", "t") is False
    assert sink.send_password_reset("user@example.com", "t") is False
