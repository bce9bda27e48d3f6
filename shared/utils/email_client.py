import smtplib
import logging
import time
from typing import List, Optional, Tuple
from email.mime.base import MIMEBase
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email import encoders
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class EmailClient:
    """SMTP client with retries, used for notification emails."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_ssl: bool = False,
        max_retries: int = 3,
        retry_delay: int = 3
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.username = username
        self.password = password
        self.use_ssl = use_ssl
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    @contextmanager
    def _connection(self):
        server = None
        try:
            if self.use_ssl:
                server = smtplib.SMTP_SSL(self.smtp_host, self.smtp_port)
            else:
                server = smtplib.SMTP(self.smtp_host, self.smtp_port)
                server.starttls()
            if self.username:
                server.login(self.username, self.password)
            yield server
        finally:
            if server:
                try:
                    server.quit()
                except Exception as e:
                    logger.warning("Error closing SMTP connection: %s", e)

    def _build_message(
        self,
        sender: str,
        recipients: List[str],
        subject: str,
        text_body: str,
        html_body: Optional[str] = None,
        attachments: Optional[List[Tuple[str, bytes]]] = None
    ) -> MIMEMultipart:
        msg = MIMEMultipart("mixed" if attachments else "alternative")
        msg["From"] = sender
        msg["To"] = ", ".join(recipients)
        msg["Subject"] = subject

        msg.attach(MIMEText(text_body or "", "plain"))
        if html_body:
            msg.attach(MIMEText(html_body, "html"))

        # attachments are (file_name, content) pairs, e.g. a generated PDF
        for file_name, content in attachments or []:
            part = MIMEBase("application", "octet-stream")
            part.set_payload(content)
            encoders.encode_base64(part)
            part.add_header(
                "Content-Disposition",
                f'attachment; filename="{file_name}"'
            )
            msg.attach(part)
        return msg

    def send_email(
        self,
        sender: str,
        recipients: List[str],
        subject: str,
        text_body: str,
        html_body: Optional[str] = None,
        attachments: Optional[List[Tuple[str, bytes]]] = None
    ) -> bool:
        msg = self._build_message(
            sender, recipients, subject, text_body, html_body, attachments)

        for attempt in range(1, self.max_retries + 1):
            try:
                with self._connection() as server:
                    server.sendmail(sender, recipients, msg.as_string())
                logger.info("Email sent to %s", ", ".join(recipients))
                return True
            except smtplib.SMTPAuthenticationError:
                logger.error("SMTP authentication failed, check username/password")
                break
            except smtplib.SMTPConnectError:
                logger.error("Could not connect to SMTP server %s", self.smtp_host)
            except Exception as e:
                logger.error("Email attempt %s failed: %s", attempt, e)
                time.sleep(self.retry_delay)

        logger.error("Failed to send email after %s attempts", self.max_retries)
        return False
