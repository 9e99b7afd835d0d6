import os
import re
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Any, Dict, List, Optional
from loguru import logger

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DEFAULT_TIMEOUT = 20.0


def normalize_recipients(value: Any) -> List[str]:
    """Keep only well-formed address strings, trimmed."""
    if not isinstance(value, list):
        return []
    recipients = [entry.strip() for entry in value if isinstance(entry, str)]
    return [entry for entry in recipients if EMAIL_PATTERN.match(entry)]


def build_email_html(body: str, agent_link: str) -> str:
    """Render the plain-text body as HTML with a survey button."""
    safe_body = body.replace("<", "&lt;").replace(">", "&gt;")

    if not agent_link:
        return "<div>" + safe_body.replace("\n", "<br />") + "</div>"

    button_html = (
        '<div style="margin-top:16px;">'
        f'<a href="{agent_link}" target="_blank" rel="noopener noreferrer" '
        'style="display:inline-block;padding:12px 20px;border-radius:10px;background:#2563eb;'
        'color:#ffffff;font-weight:600;text-decoration:none;">Open Survey</a></div>'
    )

    if agent_link in safe_body:
        anchor = (
            f'<a href="{agent_link}" target="_blank" rel="noopener noreferrer" '
            f'style="color:#2563eb;font-weight:600;">{agent_link}</a>'
        )
        safe_body = safe_body.replace(agent_link, anchor)

    return "<div>" + safe_body.replace("\n", "<br />") + button_html + "</div>"


class SmtpMailer:
    """Sends survey invitations over SMTP, recipients in Bcc."""

    def __init__(
        self,
        host: Optional[str],
        port: int,
        user: Optional[str],
        password: Optional[str],
        from_email: Optional[str],
        from_name: str = "SurvAgent",
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_email = from_email
        self.from_name = from_name
        self.timeout = timeout

    @classmethod
    def from_env(cls) -> "SmtpMailer":
        try:
            port = int(os.getenv("SMTP_PORT", "0"))
        except ValueError:
            logger.warning("SMTP_PORT is not a number, email disabled")
            port = 0
        try:
            timeout = float(os.getenv("SMTP_TIMEOUT", DEFAULT_TIMEOUT))
        except ValueError:
            logger.warning(f"SMTP_TIMEOUT is not a number, using {DEFAULT_TIMEOUT}s")
            timeout = DEFAULT_TIMEOUT
        user = os.getenv("SMTP_USER")
        return cls(
            host=os.getenv("SMTP_HOST"),
            port=port,
            user=user,
            password=os.getenv("SMTP_PASS"),
            from_email=os.getenv("SMTP_FROM_EMAIL") or user,
            from_name=os.getenv("SMTP_FROM_NAME", "SurvAgent"),
            timeout=timeout,
        )

    @property
    def is_configured(self) -> bool:
        return all([self.host, self.port, self.user, self.password, self.from_email])

    def build_message(
        self,
        recipients: List[str],
        subject: str,
        body: str,
        agent_link: str = "",
        html_body: Optional[str] = None,
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = self.from_email
        msg["Bcc"] = ", ".join(recipients)
        msg["Subject"] = subject
        msg["Message-ID"] = make_msgid()
        msg.set_content(f"{body}\n\nSurvey link: {agent_link}" if agent_link else body)
        msg.add_alternative(html_body or build_email_html(body, agent_link), subtype="html")
        return msg

    def send(
        self,
        recipients: List[str],
        subject: str,
        body: str,
        agent_link: str = "",
        html_body: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Deliver one message. Raises smtplib.SMTPException / OSError on failure."""
        msg = self.build_message(recipients, subject, body, agent_link, html_body)

        if self.port == 465:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as s:
                s.login(self.user, self.password)
                refused = s.send_message(msg)
        else:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as s:
                s.starttls()
                s.login(self.user, self.password)
                refused = s.send_message(msg)

        logger.info(f"Email sent to {len(recipients)} recipients: {subject!r}")
        return {"message_id": msg.get("Message-ID"), "refused": refused}
