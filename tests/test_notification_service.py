"""
Tests for alert formatting and multi-channel fan-out.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import requests

from logguard.schemas.alert import AlertResponse
from logguard.schemas.config import (
    EmailConfig,
    NotificationConfig,
    NotificationRule,
    RuleEmailConfig,
    TelegramConfig,
)
from logguard.services.metrics import PerformanceMetrics
from logguard.services.notification_service import (
    AlertNotifier,
    LoggingMailTransport,
    SmtpMailTransport,
    TelegramSender,
    build_mail_transport,
    format_email,
    format_telegram_message,
)
from tests.helpers import make_response


def make_alert(**overrides) -> AlertResponse:
    data = dict(
        id="alert_1700000000000_abc123def",
        timestamp=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
        host="web-01",
        severity="critical",
        status="new",
        summary="Brute force attempt",
        ai_suggestion="Block the source IP",
        confidence=95,
        log_content="sshd: Failed password for root from 10.0.0.5",
    )
    data.update(overrides)
    return AlertResponse(**data)


def global_telegram(enabled=True):
    return TelegramConfig(enabled=enabled, bot_token="global-token", chat_id="111")


def rule(rule_id, match, chat_id=None, recipients=None, enabled=True):
    return NotificationRule(
        id=rule_id,
        name=rule_id,
        enabled=enabled,
        match_string=match,
        telegram=TelegramConfig(enabled=True, bot_token=f"{rule_id}-token", chat_id=chat_id) if chat_id else None,
        email=RuleEmailConfig(enabled=True, recipients=recipients) if recipients else None,
    )


def build_notifier(config, send_result=True, mail=None):
    telegram = MagicMock(spec=TelegramSender)
    telegram.send_message.return_value = send_result
    return AlertNotifier(config, telegram=telegram, mail_transport=mail or MagicMock()), telegram


class TestFormatting:

    def test_telegram_message_carries_alert_id(self):
        text = format_telegram_message(make_alert())
        assert "*Level:* CRITICAL" in text
        assert "*Host:* web-01" in text
        assert "Block the source IP" in text
        assert "Alert ID: `alert_1700000000000_abc123def`" in text

    def test_email_subject_and_body(self):
        subject, body = format_email(make_alert(severity="warning"))
        assert subject == "LogGuard AI Alert - WARNING on web-01"
        assert "Alert ID: alert_1700000000000_abc123def" in body
        assert "Brute force attempt" in body

    def test_missing_suggestion(self):
        assert "No suggestion available" in format_telegram_message(make_alert(ai_suggestion=None))


class TestFanOut:

    async def test_global_telegram_only(self):
        notifier, telegram = build_notifier(NotificationConfig(telegram=global_telegram()))

        results = await notifier.dispatch(make_alert())

        assert [(r.channel, r.target, r.ok) for r in results] == [("telegram", "global", True)]
        telegram.send_message.assert_called_once()
        assert telegram.send_message.call_args.args[:2] == ("global-token", "111")

    async def test_global_and_matching_rules_all_fire(self):
        config = NotificationConfig(
            telegram=global_telegram(),
            rules=[
                rule("rule_a", "Failed password", chat_id="222"),
                rule("rule_b", "root", chat_id="333"),
                rule("rule_c", "kernel panic", chat_id="444"),
            ],
        )
        notifier, telegram = build_notifier(config)

        results = await notifier.dispatch(make_alert())

        assert sorted(r.target for r in results) == ["global", "rule_a", "rule_b"]
        chats = sorted(call.args[1] for call in telegram.send_message.call_args_list)
        assert chats == ["111", "222", "333"]

    async def test_rules_with_same_chat_send_independently(self):
        config = NotificationConfig(rules=[
            rule("rule_a", "Failed", chat_id="222"),
            rule("rule_b", "password", chat_id="222"),
        ])
        notifier, telegram = build_notifier(config)

        await notifier.dispatch(make_alert())

        assert telegram.send_message.call_count == 2

    async def test_disabled_rule_does_not_fire(self):
        config = NotificationConfig(rules=[rule("rule_a", "Failed", chat_id="222", enabled=False)])
        notifier, telegram = build_notifier(config)

        assert await notifier.dispatch(make_alert()) == []
        telegram.send_message.assert_not_called()

    async def test_disabling_one_rule_leaves_other_channels_firing(self):
        config = NotificationConfig(
            telegram=global_telegram(),
            rules=[
                rule("rule_a", "Failed password", chat_id="222"),
                rule("rule_b", "root", chat_id="333"),
                rule("rule_c", "sshd", chat_id="444", enabled=False),
            ],
        )
        notifier, telegram = build_notifier(config)

        results = await notifier.dispatch(make_alert())

        assert {r.target for r in results} == {"global", "rule_a", "rule_b"}
        assert all(r.ok for r in results)
        chats = sorted(call.args[1] for call in telegram.send_message.call_args_list)
        assert chats == ["111", "222", "333"]

    async def test_rule_matching_is_case_sensitive(self):
        config = NotificationConfig(rules=[rule("rule_a", "failed password", chat_id="222")])
        notifier, telegram = build_notifier(config)

        assert await notifier.dispatch(make_alert()) == []

    async def test_rule_matches_explicit_log_content(self):
        config = NotificationConfig(rules=[rule("rule_a", "OOM killer", chat_id="222")])
        notifier, telegram = build_notifier(config)

        results = await notifier.dispatch(make_alert(), "kernel: OOM killer invoked")

        assert [r.target for r in results] == ["rule_a"]

    async def test_falls_back_to_summary_without_log_content(self):
        config = NotificationConfig(rules=[rule("rule_a", "Brute force", chat_id="222")])
        notifier, _ = build_notifier(config)

        results = await notifier.dispatch(make_alert(log_content=None))

        assert [r.target for r in results] == ["rule_a"]

    async def test_global_email(self):
        mail = MagicMock()
        config = NotificationConfig(email=EmailConfig(enabled=True, recipients="ops@example.com, sec@example.com"))
        notifier, _ = build_notifier(config, mail=mail)

        results = await notifier.dispatch(make_alert())

        assert [(r.channel, r.ok) for r in results] == [("email", True)]
        recipients, subject, body = mail.send.call_args.args
        assert recipients == ["ops@example.com", "sec@example.com"]
        assert subject.startswith("LogGuard AI Alert - CRITICAL")

    async def test_rule_email(self):
        mail = MagicMock()
        config = NotificationConfig(rules=[rule("rule_a", "root", recipients="root-team@example.com")])
        notifier, _ = build_notifier(config, mail=mail)

        results = await notifier.dispatch(make_alert())

        assert [(r.channel, r.target) for r in results] == [("email", "rule_a")]
        assert mail.send.call_args.args[0] == ["root-team@example.com"]

    async def test_one_failure_does_not_block_others(self):
        mail = MagicMock()
        mail.send.side_effect = OSError("smtp down")
        config = NotificationConfig(
            telegram=global_telegram(),
            email=EmailConfig(enabled=True, recipients="ops@example.com"),
            rules=[rule("rule_a", "root", chat_id="222")],
        )
        notifier, telegram = build_notifier(config, mail=mail)

        results = await notifier.dispatch(make_alert())

        outcome = {(r.channel, r.target): r.ok for r in results}
        assert outcome == {
            ("telegram", "global"): True,
            ("email", "global"): False,
            ("telegram", "rule_a"): True,
        }

    async def test_sender_exception_is_captured(self):
        config = NotificationConfig(telegram=global_telegram())
        notifier, telegram = build_notifier(config)
        telegram.send_message.side_effect = RuntimeError("unexpected")

        results = await notifier.dispatch(make_alert())

        assert results[0].ok is False
        assert "unexpected" in results[0].error

    async def test_nothing_configured(self):
        notifier, telegram = build_notifier(NotificationConfig())
        assert await notifier.dispatch(make_alert()) == []


class TestChannelGuards:

    def test_disabled_telegram_returns_false(self):
        notifier, telegram = build_notifier(NotificationConfig())
        assert notifier.send_telegram_notification(make_alert(), global_telegram(enabled=False)) is False
        telegram.send_message.assert_not_called()

    def test_telegram_without_token_returns_false(self):
        notifier, _ = build_notifier(NotificationConfig())
        config = TelegramConfig(enabled=True, bot_token="", chat_id="1")
        assert notifier.send_telegram_notification(make_alert(), config) is False

    def test_email_without_recipients_returns_false(self):
        notifier, _ = build_notifier(NotificationConfig())
        assert notifier.send_email_notification(make_alert(), " , ") is False


class TestTelegramSender:

    def build(self, response=None, side_effect=None, metrics=None):
        self.session = requests.Session()
        self.session.post = MagicMock(return_value=response, side_effect=side_effect)
        return TelegramSender(
            session_factory=lambda: self.session, metrics=metrics, timeout=5, api_url="https://tg.example/"
        )

    def test_success(self):
        sender = self.build(make_response(200, {"ok": True}))

        assert sender.send_message("abc", "42", "hi") is True

        args, kwargs = self.session.post.call_args
        assert args[0] == "https://tg.example/botabc/sendMessage"
        assert kwargs["json"] == {"chat_id": "42", "text": "hi", "parse_mode": "Markdown"}

    def test_non_success_status(self):
        assert self.build(make_response(400, {"ok": False})).send_message("abc", "42", "hi") is False

    def test_network_error(self):
        sender = self.build(side_effect=requests.exceptions.ConnectionError("down"))
        assert sender.send_message("abc", "42", "hi") is False

    def test_token_kept_out_of_metrics(self):
        metrics = PerformanceMetrics()
        sender = self.build(make_response(200, {"ok": True}), metrics=metrics)

        sender.send_message("secret-token", "42", "hi")

        recorded = metrics.get_metrics().api_calls
        assert recorded[0].endpoint == "/bot<token>/sendMessage"

    async def test_concurrent_sends_use_separate_sessions(self):
        sessions = []

        def new_session():
            session = MagicMock(spec=requests.Session)
            session.__enter__.return_value = session
            session.post.return_value = make_response(200, {"ok": True})
            sessions.append(session)
            return session

        sender = TelegramSender(session_factory=new_session, timeout=5)
        config = NotificationConfig(
            telegram=global_telegram(),
            rules=[rule("rule_a", "Failed", chat_id="222"), rule("rule_b", "root", chat_id="333")],
        )
        notifier = AlertNotifier(config, telegram=sender, mail_transport=MagicMock())

        results = await notifier.dispatch(make_alert())

        assert all(r.ok for r in results)
        assert len(sessions) == 3
        assert all(s.post.call_count == 1 for s in sessions)
        assert all(s.__exit__.called for s in sessions)


class TestMailTransport:

    def test_logging_transport_without_smtp_credentials(self):
        assert isinstance(build_mail_transport(EmailConfig()), LoggingMailTransport)

    def test_smtp_transport_with_credentials(self):
        config = EmailConfig(username="bot@example.com", password="pw")
        assert isinstance(build_mail_transport(config), SmtpMailTransport)

    def test_smtp_send(self):
        config = EmailConfig(smtp="smtp.example.com", port=2525, username="bot@example.com", password="pw")
        with patch("logguard.services.notification_service.smtplib.SMTP") as smtp_cls:
            SmtpMailTransport(config, timeout=3).send(["ops@example.com"], "Subject", "Body")

        smtp_cls.assert_called_once_with("smtp.example.com", 2525, timeout=3)
        smtp = smtp_cls.return_value.__enter__.return_value
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("bot@example.com", "pw")
        message = smtp.send_message.call_args.args[0]
        assert message["To"] == "ops@example.com"
        assert message["Subject"] == "Subject"
