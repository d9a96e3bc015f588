# app/services/email.py

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Optional

from app.core.config import settings
from app.models.contract import AffiliateContract

logger = logging.getLogger(__name__)


class EmailService:
    """Отправка писем через SMTP (STARTTLS)."""

    def __init__(self, smtp_host: str, smtp_port: int, smtp_user: str, smtp_password: str, from_name: str):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.from_email = smtp_user
        self.from_name = from_name

    def send_email(self, to_email: str, subject: str, html_content: str, text_content: Optional[str] = None) -> bool:
        """
        Возвращает True при успешной отправке.
        Ошибки SMTP и сети логируются, наружу не пробрасываются.
        """
        if not self.smtp_user or not self.smtp_password:
            logger.warning("Email not configured. SMTP credentials missing.")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        if text_content:
            msg.attach(MIMEText(text_content, "plain", "utf-8"))
        msg.attach(MIMEText(html_content, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=10) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, to_email, msg.as_string())
        except smtplib.SMTPAuthenticationError:
            logger.error("SMTP Authentication failed. Check email credentials.")
            return False
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error: {e}")
            return False
        except OSError as e:
            logger.error(f"Network error sending email: {e}")
            return False

        logger.info(f"Email sent successfully to {to_email}")
        return True

    def send_contract_completed_email(self, contract: AffiliateContract, recipient: str) -> bool:
        """Письмо партнеру с итоговыми данными подписанного договора."""
        meta = contract.meta or {}
        rows = [
            ("계약번호", f"#{contract.id}"),
            ("이름", contract.name),
            ("연락처", contract.phone),
            ("이메일", recipient),
            ("주소", contract.address or "-"),
            ("정산 계좌", f"{contract.bank_name or ''} {contract.bank_account or ''} ({contract.bank_account_holder or ''})"),
            ("완료일", meta.get("completedAt", "-")),
        ]
        table = "".join(
            f"<tr><th style='text-align:left;padding:4px 12px'>{escape(k)}</th><td>{escape(str(v))}</td></tr>"
            for k, v in rows
        )
        html_content = (
            "<html><body style='font-family: Arial, sans-serif; color: #333'>"
            f"<h2>어필리에이트 계약서가 완료되었습니다</h2>"
            f"<p>{escape(contract.name)}님, 계약이 정상적으로 체결되었습니다.</p>"
            f"<table>{table}</table>"
            "</body></html>"
        )
        text_content = "\n".join(f"{k}: {v}" for k, v in rows)
        return self.send_email(recipient, "[크루즈] 어필리에이트 계약서 사본", html_content, text_content)


email_service = EmailService(
    smtp_host=settings.SMTP_HOST,
    smtp_port=settings.SMTP_PORT,
    smtp_user=settings.SMTP_USER,
    smtp_password=settings.SMTP_PASSWORD,
    from_name=settings.SMTP_FROM_NAME,
)
