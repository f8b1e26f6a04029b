"""Email utility: sends transactional emails via SMTP (TLS)."""
from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

logger = logging.getLogger(__name__)

_BRAND = "Kamdhenuseva"

_BASE_STYLE = """
    body { font-family: Arial, sans-serif; background: #fdf8f0; margin: 0; padding: 0; }
    .container { max-width: 520px; margin: 40px auto; background: #fff;
                  border-radius: 8px; padding: 32px; box-shadow: 0 2px 8px rgba(0,0,0,.1); }
    .logo { font-size: 26px; font-weight: 700; color: #b45309; margin-bottom: 24px; }
    .otp { font-size: 40px; font-weight: 800; letter-spacing: 10px; color: #b45309;
            background: #fff7ed; padding: 16px 24px; border-radius: 8px;
            display: inline-block; margin: 16px 0; }
    .highlight { color: #b45309; font-weight: 600; }
    .footer { margin-top: 24px; font-size: 12px; color: #9ca3af; }
"""


def _page(body: str) -> str:
    return f"""
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <style>{_BASE_STYLE}</style>
</head>
<body>
  <div class="container">
    <div class="logo">{_BRAND}</div>
    {body}
    <div class="footer">&copy; {_BRAND} &nbsp;|&nbsp; Daya Devraha Trust</div>
  </div>
</body>
</html>
"""


def describe_expiry(seconds: int) -> str:
    """Human wording for an OTP lifetime: ``24 hours``, ``20 seconds``..."""
    if seconds % 3600 == 0:
        hours = seconds // 3600
        return f"{hours} hour{'s' if hours != 1 else ''}"
    if seconds % 60 == 0:
        minutes = seconds // 60
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    return f"{seconds} second{'s' if seconds != 1 else ''}"


class SMTPMailer:
    """
    Outbound mail handle.

    Built once at application startup and passed to whoever needs to send
    mail. Every send returns ``True``/``False``; delivery problems are logged
    and never raised to the caller.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        sender: str = "",
        timeout: int = 15,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "SMTPMailer":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASS,
            sender=settings.EMAIL_FROM,
        )

    @property
    def configured(self) -> bool:
        return bool(self.host and self.sender)

    def _connect(self) -> smtplib.SMTP:
        """Open an authenticated SMTP TLS connection."""
        conn = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        conn.ehlo()
        conn.starttls()
        conn.ehlo()
        if self.username:
            conn.login(self.username, self.password)
        return conn

    def send_email(self, to: str, subject: str, html_body: str, plain_body: str = "") -> bool:
        """Send a transactional email. Returns True on success, False on failure."""
        if not self.configured:
            logger.warning(f"[Email] SMTP not configured, dropping '{subject}' for {to}")
            return False

        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = f"{_BRAND} <{self.sender}>"
            msg["To"] = to

            if plain_body:
                msg.attach(MIMEText(plain_body, "plain", "utf-8"))
            msg.attach(MIMEText(html_body, "html", "utf-8"))

            with self._connect() as conn:
                conn.sendmail(self.sender, [to], msg.as_string())

            logger.info(f"[Email] Sent '{subject}' → {to}")
            return True

        except (smtplib.SMTPException, OSError) as exc:
            logger.error(f"[Email] Failed to send '{subject}' to {to}: {exc}")
            return False

    # ── Convenience senders ───────────────────────────────────────────────────

    def send_otp_email(self, to: str, otp: str, label: str, expires_in_seconds: int) -> bool:
        """Send a 6-digit code; *label* names what the code is for."""
        expiry = describe_expiry(expires_in_seconds)
        subject = f"Your {_BRAND} {label} code"
        html_body = _page(f"""
    <p>Hello,</p>
    <p>Use the code below for your <strong>{label.lower()}</strong>.
       It expires in <strong>{expiry}</strong>.</p>
    <div class="otp">{otp}</div>
    <p>If you did not request this code, please ignore this email.</p>
""")
        plain_body = f"Your {_BRAND} {label.lower()} code is: {otp}\n\nExpires in {expiry}."
        return self.send_email(to, subject, html_body, plain_body)

    def send_donation_confirmation_email(
        self,
        to: str,
        name: Optional[str],
        amount: int,
        currency: str,
        donation_type: str,
        payment_id: str,
        cow_id: Optional[str] = None,
    ) -> bool:
        greeting = f"Dear {name}," if name else "Dear donor,"
        target = f"cow <span class=\"highlight\">{cow_id}</span>" if cow_id else f"our {donation_type} seva"
        subject = f"{_BRAND}: thank you for your donation"
        html_body = _page(f"""
    <p>{greeting}</p>
    <p>We have received your donation of
       <span class="highlight">{currency} {amount}</span> towards {target}.</p>
    <p>Payment reference: <strong>{payment_id}</strong></p>
    <p>May Gau Mata bless you and your family.</p>
""")
        plain_body = (
            f"{greeting}\n\nWe have received your donation of {currency} {amount}."
            f"\nPayment reference: {payment_id}"
        )
        return self.send_email(to, subject, html_body, plain_body)

    def send_puja_payment_received_email(
        self,
        to: str,
        name: str,
        order_id: str,
        amount: int,
        currency: str,
    ) -> bool:
        subject = f"{_BRAND}: Cow Puja payment received"
        html_body = _page(f"""
    <p>Namaste {name},</p>
    <p>Your payment of <span class="highlight">{currency} {amount}</span> for the
       Cow Puja (order <strong>{order_id}</strong>) has been received.</p>
    <p>Our team will confirm the puja date with you shortly.</p>
""")
        plain_body = (
            f"Namaste {name},\n\nYour payment of {currency} {amount} for Cow Puja order "
            f"{order_id} has been received. We will confirm the date shortly."
        )
        return self.send_email(to, subject, html_body, plain_body)
