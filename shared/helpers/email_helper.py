import logging
import re
from typing import List, Optional, Tuple

from ..utils.email_client import EmailClient
from ..core.config import settings

logger = logging.getLogger(__name__)

NOTIFICATION_TEMPLATE = """
<html>
<body style="font-family: Arial; background:#f5f7fb; padding:20px;">
    <div style="max-width:600px;background:white;padding:30px;border-radius:10px;">
        <p>Hi <strong>{recipient_name}</strong>,</p>
        <h2 style="color:#2b2f36;">{title}</h2>
        <p>{message}</p>
        {action}
        <hr/>
        <p style="color:gray;font-size:12px;">This is an automated message.</p>
    </div>
</body>
</html>
"""


class EmailHelper:
    """Sends notification emails when SMTP is configured."""

    def __init__(self, mailer: Optional[EmailClient] = None):
        self.mailer = mailer
        if self.mailer is None and settings.SMTP_HOST:
            self.mailer = EmailClient(
                smtp_host=settings.SMTP_HOST,
                smtp_port=settings.SMTP_PORT,
                username=settings.SMTP_USERNAME,
                password=settings.SMTP_PASSWORD,
                use_ssl=settings.SMTP_USE_SSL,
            )

    @property
    def enabled(self) -> bool:
        return self.mailer is not None

    def send_notification_email(
        self,
        recipients: List[str],
        recipient_name: str,
        title: str,
        message: str,
        link: Optional[str] = None,
        attachments: Optional[List[Tuple[str, bytes]]] = None,
    ) -> bool:
        if not self.enabled:
            logger.debug("SMTP not configured, skipping email '%s'", title)
            return False

        action = ""
        if link:
            action = f'<p><a href="{settings.FRONTEND_URL}{link}">Open in ClearLet</a></p>'

        html_body = NOTIFICATION_TEMPLATE.format(
            recipient_name=recipient_name,
            title=title,
            message=message,
            action=action,
        )
        return self.mailer.send_email(
            sender=settings.EMAIL_SENDER,
            recipients=recipients,
            subject=title,
            text_body=self._strip_html_tags(html_body),
            html_body=html_body,
            attachments=attachments,
        )

    @staticmethod
    def _strip_html_tags(html: str) -> str:
        return re.sub("<.*?>", "", html or "")
