import logging
import smtplib
from email.message import EmailMessage
from socket import gaierror, timeout

from config_models import EmailConfig

logger = logging.getLogger(__name__)


class MailerError(Exception):
    """Exception raised for email sending errors."""

    pass


def _send(config: EmailConfig, message: EmailMessage) -> None:
    with smtplib.SMTP(config.smtp_host, config.smtp_port, timeout=30) as server:
        server.starttls()
        if config.smtp_user:
            server.login(config.smtp_user, config.smtp_password)
        server.send_message(message)


def send_promotion_email(
    config: EmailConfig,
    recipient: str,
    user_name: str,
    plan_name: str,
    expires_at,
    amount,
) -> bool:
    """Send the promotion activation confirmation.

    Args:
        config: Email configuration.
        recipient: Email recipient address.
        user_name: Name used in the greeting.
        plan_name: Human readable plan name.
        expires_at: Datetime the promotion ends.
        amount: Total amount charged.

    Returns:
        True if email was sent successfully.

    Raises:
        MailerError: If email sending fails.
    """
    if not recipient:
        raise MailerError("Recipient address is empty")

    message = EmailMessage()
    message["Subject"] = f"Your {plan_name} promotion is active"
    message["From"] = config.sender
    message["To"] = recipient
    message.set_content(
        f"Hi {user_name},\n\n"
        f"Your \"{plan_name}\" promotion is now active and runs until "
        f"{expires_at:%Y-%m-%d %H:%M} UTC.\n"
        f"Amount charged: {float(amount):.2f}\n\n"
        f"Manage your promotions: {config.frontend_url.rstrip('/')}/promote-gigs\n"
    )

    try:
        logger.info("Sending promotion email to %s (%s)", recipient, plan_name)
        _send(config, message)
        logger.info("Promotion email sent to %s", recipient)
        return True

    except smtplib.SMTPAuthenticationError as e:
        logger.error("SMTP authentication failed: %s", e)
        raise MailerError(f"Email authentication failed: {e}")

    except smtplib.SMTPRecipientsRefused as e:
        logger.error("Recipients refused: %s", e)
        raise MailerError(f"Email recipients refused: {e}")

    except smtplib.SMTPException as e:
        logger.error("SMTP error: %s", e)
        raise MailerError(f"Failed to send email: {e}")

    except (gaierror, timeout) as e:
        logger.error("Network error while sending email: %s", e)
        raise MailerError(f"Network error: could not connect to mail server: {e}")

    except OSError as e:
        logger.error("OS error while sending email: %s", e)
        raise MailerError(f"Failed to send email: {e}")
