from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SmtpSettings:
    server: str
    port: int = 587
    username: str = ""
    password: str = ""
    from_email: str = "no-reply@opsdesk.local"

    @property
    def enabled(self) -> bool:
        return bool(self.server)


class EmailNotifier:
    """Best-effort SMTP notifications; a failed send is logged and reported as False."""

    def __init__(self, settings: SmtpSettings):
        self._settings = settings

    def send(self, to_emails: Sequence[str], subject: str, body: str, *, is_html: bool = True) -> bool:
        recipients = [e for e in to_emails if e]
        if not recipients:
            return False
        if not self._settings.enabled:
            logger.debug("SMTP disabled, skipping email %r to %s", subject, recipients)
            return False

        try:
            msg = MIMEMultipart()
            msg["From"] = self._settings.from_email
            msg["To"] = ", ".join(recipients)
            msg["Subject"] = subject
            msg.attach(MIMEText(body, "html" if is_html else "plain"))

            with smtplib.SMTP(self._settings.server, self._settings.port) as server:
                server.starttls()
                if self._settings.username and self._settings.password:
                    server.login(self._settings.username, self._settings.password)
                server.send_message(msg, to_addrs=recipients)

            logger.info("Email %r sent to %s", subject, recipients)
            return True
        except Exception:
            logger.exception("Failed to send email %r to %s", subject, recipients)
            return False


def cash_advance_email(
    *,
    headline: str,
    requester_name: str,
    amount,
    advance_type: str,
    purpose: Optional[str],
    comment: Optional[str] = None,
) -> str:
    rows = [
        f"<p>{headline}</p>",
        "<ul>",
        f"<li><strong>Requested by:</strong> {requester_name}</li>",
        f"<li><strong>Type:</strong> {advance_type}</li>",
        f"<li><strong>Amount:</strong> {amount}</li>",
        f"<li><strong>Purpose:</strong> {purpose or '-'}</li>",
    ]
    if comment:
        rows.append(f"<li><strong>Comment:</strong> {comment}</li>")
    rows.append("</ul>")
    return "\n".join(rows)
