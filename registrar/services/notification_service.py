"""
Transactional e-mail through the Brevo HTTP API.

Sending is best effort: every public method returns a SendResult and never
raises, so a mail outage can not undo a committed payment.
"""

import base64
import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

import requests
from flask import current_app
from markupsafe import escape

from registrar.utils.money import quantize
from registrar.utils.shortcode import format_short_code

_email_re = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

PAYMENT_METHOD_LABELS = {
    "paypal": "PayPal",
    "check": "Check (awaiting payment)",
    "none": "No payment required",
}


@dataclass
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ConfirmationItem:
    student_name: str
    activity_name: str
    cost: Decimal = Decimal("0")
    donation: Decimal = Decimal("0")


@dataclass
class PaymentConfirmation:
    recipient_email: str
    recipient_name: str
    short_code: str
    payment_method: str
    total_amount: Decimal
    subtotal: Decimal
    items: List[ConfirmationItem] = field(default_factory=list)
    transaction_id: Optional[str] = None
    discount: Optional[dict] = None


@dataclass
class ClassRoster:
    """One class in a roster e-mail; ``students`` are RosterEntry rows."""

    activity_name: str
    starts_at: datetime
    students: list = field(default_factory=list)
    attachment_name: Optional[str] = None
    attachment: Optional[bytes] = None


def is_valid_email(address) -> bool:
    return bool(address) and bool(_email_re.match(address))


def _format_when(starts_at):
    return starts_at.strftime("%A, %B %d at %I:%M %p").replace(" 0", " ")


class BrevoNotifier:
    def __init__(self, api_key, sender_email, sender_name="Ensembles",
                 api_url="https://api.brevo.com/v3/smtp/email", timeout=10,
                 session=None):
        self.api_key = api_key
        self.sender_email = sender_email
        self.sender_name = sender_name
        self.api_url = api_url
        self.timeout = timeout
        self.http = session or requests.Session()

    @classmethod
    def from_config(cls, config):
        return cls(
            api_key=config.get("BREVO_API_KEY"),
            sender_email=config.get("BREVO_SENDER_EMAIL"),
            sender_name=config.get("BREVO_SENDER_NAME", "Ensembles"),
            api_url=config.get("BREVO_API_URL", "https://api.brevo.com/v3/smtp/email"),
            timeout=config.get("EMAIL_TIMEOUT_SECONDS", 10),
        )

    @property
    def configured(self):
        return bool(self.api_key) and is_valid_email(self.sender_email)

    def send_payment_confirmation(self, confirmation: PaymentConfirmation) -> SendResult:
        code = format_short_code(confirmation.short_code)
        subject = f"Registration confirmed - {code}"

        rows = []
        for item in confirmation.items:
            line = f"{item.student_name}: {item.activity_name} ${quantize(item.cost)}"
            if item.donation:
                line += f" + ${quantize(item.donation)} donation"
            rows.append(line)

        text_lines = [
            f"Hello {confirmation.recipient_name},",
            "",
            "Thank you for registering. Your confirmation code is "
            f"{code}.",
            "",
            *rows,
            "",
            f"Subtotal: ${quantize(confirmation.subtotal)}",
        ]
        if confirmation.discount:
            text_lines.append(
                f"Voucher {confirmation.discount['code']} "
                f"({confirmation.discount['label']}): "
                f"-${confirmation.discount['discount']}"
            )
        text_lines.append(f"Total: ${quantize(confirmation.total_amount)}")
        text_lines.append(
            "Payment: "
            + PAYMENT_METHOD_LABELS.get(confirmation.payment_method,
                                        confirmation.payment_method)
        )
        if confirmation.transaction_id and confirmation.payment_method == "paypal":
            text_lines.append(f"Transaction: {confirmation.transaction_id}")

        return self._send(
            confirmation.recipient_email,
            confirmation.recipient_name,
            subject,
            "\n".join(text_lines),
        )

    def send_class_reminder(self, recipient_email, recipient_name, activity_name,
                            starts_at, participants) -> SendResult:
        """``starts_at`` is an aware datetime in the app timezone."""
        when = _format_when(starts_at)
        names = ", ".join(participants)
        text = "\n".join([
            f"Hello {recipient_name},",
            "",
            f"This is a reminder that {activity_name} starts {when}.",
            f"Registered: {names}",
            "",
            "See you there!",
        ])
        return self._send(recipient_email, recipient_name,
                          f"Reminder: {activity_name}", text)

    def send_class_rosters(self, recipient_email, recipient_name, rosters) -> SendResult:
        """One e-mail listing every class in ``rosters``, workbooks attached."""
        if len(rosters) == 1:
            subject = f"Class roster: {rosters[0].activity_name}"
        else:
            subject = f"Class rosters for {len(rosters)} classes"

        text_lines = [f"Hello {recipient_name},", "",
                      "Here are the rosters for your upcoming classes."]
        attachments = []
        for roster in rosters:
            header = (f"{roster.activity_name} - {_format_when(roster.starts_at)} "
                      f"({len(roster.students)} registered)")
            text_lines += ["", header]
            if not roster.students:
                text_lines.append("  No students registered yet.")
            for idx, student in enumerate(roster.students, start=1):
                line = f"  {idx}. {student.student_name}"
                if student.age is not None:
                    line += f" ({student.age})"
                if student.answer:
                    line += f" - {student.answer}"
                if student.note:
                    line += f" - Note: {student.note}"
                text_lines.append(line)
            if roster.attachment:
                attachments.append({
                    "name": roster.attachment_name,
                    "content": base64.b64encode(roster.attachment).decode("ascii"),
                })

        return self._send(recipient_email, recipient_name, subject,
                          "\n".join(text_lines), attachments=attachments)

    def _send(self, recipient_email, recipient_name, subject, text,
              attachments=None) -> SendResult:
        if not is_valid_email(recipient_email):
            return SendResult(False, error="Invalid recipient email")
        if not self.configured:
            current_app.logger.warning(
                "[notifications] Brevo is not configured; e-mail not sent")
            return SendResult(False, error="Email service not configured")

        html = "<br>".join(str(escape(line)) for line in text.split("\n"))
        payload = {
            "sender": {"name": self.sender_name, "email": self.sender_email},
            "to": [{"email": recipient_email, "name": recipient_name or recipient_email}],
            "subject": subject,
            "textContent": text,
            "htmlContent": f"<html><body>{html}</body></html>",
        }
        if attachments:
            payload["attachment"] = attachments
        headers = {
            "api-key": self.api_key,
            "accept": "application/json",
            "content-type": "application/json",
        }

        try:
            resp = self.http.post(self.api_url, json=payload, headers=headers,
                                  timeout=self.timeout)
        except requests.RequestException as e:
            current_app.logger.warning(
                f"[notifications] Brevo request failed: {e}")
            return SendResult(False, error=str(e))

        if resp.status_code >= 400:
            try:
                detail = resp.json().get("message") or resp.text
            except ValueError:
                detail = resp.text
            current_app.logger.warning(
                f"[notifications] Brevo returned {resp.status_code}: {detail}")
            return SendResult(False, error=f"Brevo API error {resp.status_code}: {detail}")

        try:
            message_id = resp.json().get("messageId")
        except ValueError:
            message_id = None
        current_app.logger.info(
            f"[notifications] Sent '{subject}' to {recipient_email}")
        return SendResult(True, message_id=message_id)


def get_notifier():
    return current_app.extensions["notifier"]
