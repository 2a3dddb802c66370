"""Email delivery for OTP codes and book notifications.

Supports AWS SES, Resend and a console provider, selected by EMAIL_PROVIDER.
Messages are rendered from a template key plus a data dict.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from html import escape
from typing import Callable, Optional

from app.core.config import Settings, settings as default_settings
from app.core.constants import EmailTemplate, OtpType

logger = logging.getLogger(__name__)


# =============================================================================
# Email Provider Interface
# =============================================================================

class EmailProvider(ABC):
    """Abstract base class for email providers."""

    @abstractmethod
    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None
    ) -> bool:
        """Send an email. Returns True on success, False on failure."""
        pass


# =============================================================================
# AWS SES Provider
# =============================================================================

class SESProvider(EmailProvider):
    """AWS SES email provider."""

    def __init__(self, settings: Settings):
        import boto3
        self.settings = settings
        self.client = boto3.client('ses', region_name=settings.AWS_SES_REGION)

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None
    ) -> bool:
        from botocore.exceptions import ClientError, NoCredentialsError

        try:
            source = f"{self.settings.EMAIL_FROM_NAME} <{self.settings.EMAIL_FROM_ADDRESS}>"

            body = {
                'Html': {
                    'Data': html_body,
                    'Charset': 'UTF-8'
                }
            }

            if text_body:
                body['Text'] = {
                    'Data': text_body,
                    'Charset': 'UTF-8'
                }

            send_params = {
                'Source': source,
                'Destination': {
                    'ToAddresses': [to_email]
                },
                'Message': {
                    'Subject': {
                        'Data': subject,
                        'Charset': 'UTF-8'
                    },
                    'Body': body
                }
            }

            if self.settings.SES_CONFIGURATION_SET:
                send_params['ConfigurationSetName'] = self.settings.SES_CONFIGURATION_SET

            # boto3 is synchronous
            response = await asyncio.to_thread(self.client.send_email, **send_params)

            message_id = response.get('MessageId', 'unknown')
            logger.info(f"[SES] Email sent to {to_email}, MessageId: {message_id}")
            return True

        except NoCredentialsError:
            logger.error("[SES] AWS credentials not found")
            return False
        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']
            logger.error(f"[SES] Error sending to {to_email}: {error_code} - {error_message}")
            return False
        except Exception as e:
            logger.error(f"[SES] Unexpected error sending to {to_email}: {str(e)}")
            return False


# =============================================================================
# Resend Provider
# =============================================================================

class ResendProvider(EmailProvider):
    """Resend email provider."""

    def __init__(self, settings: Settings):
        if not settings.RESEND_API_KEY:
            raise ValueError("RESEND_API_KEY is required when using Resend provider")

        import resend
        resend.api_key = settings.RESEND_API_KEY
        self.resend = resend
        self.settings = settings

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None
    ) -> bool:
        try:
            params = {
                "from": f"{self.settings.EMAIL_FROM_NAME} <{self.settings.EMAIL_FROM_ADDRESS}>",
                "to": [to_email],
                "subject": subject,
                "html": html_body,
            }

            if text_body:
                params["text"] = text_body

            response = await asyncio.to_thread(self.resend.Emails.send, params)

            email_id = response.get('id', 'unknown') if isinstance(response, dict) else getattr(response, 'id', 'unknown')
            logger.info(f"[Resend] Email sent to {to_email}, ID: {email_id}")
            return True

        except Exception as e:
            logger.error(f"[Resend] Error sending to {to_email}: {str(e)}")
            return False


# =============================================================================
# Console Provider
# =============================================================================

class ConsoleProvider(EmailProvider):
    """Writes messages to the log instead of delivering them. For local development."""

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None
    ) -> bool:
        logger.info(f"[Console] To: {to_email} | Subject: {subject}\n{text_body or html_body}")
        return True


# =============================================================================
# Templates
# =============================================================================

def _wrap_html(heading: str, content: str, settings: Settings) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
            body {{
                font-family: Arial, sans-serif;
                line-height: 1.6;
                color: #333;
                max-width: 600px;
                margin: 0 auto;
                padding: 20px;
            }}
            .container {{
                background-color: #f9f9f9;
                border-radius: 10px;
                padding: 30px;
            }}
            .header {{
                text-align: center;
                color: #2c3e50;
                margin-bottom: 30px;
            }}
            .otp-code {{
                font-size: 32px;
                font-weight: bold;
                color: #3498db;
                letter-spacing: 8px;
                text-align: center;
                margin: 20px 0;
            }}
            .footer {{
                text-align: center;
                color: #7f8c8d;
                font-size: 12px;
                margin-top: 30px;
            }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header"><h1>{heading}</h1></div>
            {content}
            <div class="footer">
                <p>This is an automated message, please do not reply.</p>
                <p>{escape(settings.EMAIL_FROM_NAME)}</p>
            </div>
        </div>
    </body>
    </html>
    """


def render_otp_email(data: dict, settings: Settings) -> tuple[str, str]:
    """Render the OTP message. Expects ``otp`` and optionally ``type``."""
    otp = escape(str(data["otp"]))
    if data.get("type") == OtpType.FORGOT_PASSWORD:
        heading = "Password Reset"
        intro = "Use the code below to confirm your new password."
    else:
        heading = "Email Verification"
        intro = "Thank you for registering. Use the code below to verify your email address."

    minutes = settings.OTP_EXPIRY_MINUTES
    html_body = _wrap_html(
        heading,
        f"""
            <p>{intro}</p>
            <div class="otp-code">{otp}</div>
            <p>This code will expire in {minutes} minutes.</p>
            <p>If you didn't request this code, please ignore this email.</p>
        """,
        settings,
    )
    text_body = f"""
{heading}

{intro}

Your code is: {data["otp"]}

This code will expire in {minutes} minutes.

If you didn't request this code, please ignore this email.
    """
    return html_body, text_body


def render_new_book_email(data: dict, settings: Settings) -> tuple[str, str]:
    """Render the new book announcement."""
    first_name = escape(str(data.get("first_name", "")))
    title = escape(str(data["book_title"]))
    author = escape(str(data["book_author"]))
    category = escape(str(data.get("book_category", "")))
    published = escape(str(data.get("book_published_date", "")))
    added_by = escape(str(data.get("added_by", "System")))

    html_body = _wrap_html(
        "New Book Added",
        f"""
            <p>Hi {first_name},</p>
            <p>A new book has been added to the library:</p>
            <ul>
                <li><strong>Title:</strong> {title}</li>
                <li><strong>Author:</strong> {author}</li>
                <li><strong>Category:</strong> {category}</li>
                <li><strong>Published:</strong> {published}</li>
                <li><strong>Added by:</strong> {added_by}</li>
            </ul>
        """,
        settings,
    )
    text_body = f"""
Hi {data.get("first_name", "")},

A new book has been added to the library:

Title: {data["book_title"]}
Author: {data["book_author"]}
Category: {data.get("book_category", "")}
Published: {data.get("book_published_date", "")}
Added by: {data.get("added_by", "System")}
    """
    return html_body, text_body


TEMPLATES: dict[str, Callable[[dict, Settings], tuple[str, str]]] = {
    EmailTemplate.OTP: render_otp_email,
    EmailTemplate.NEW_BOOK: render_new_book_email,
}


# =============================================================================
# Sender
# =============================================================================

class EmailSender:
    """Renders a template and hands it to a provider. ``send`` never raises."""

    def __init__(self, provider: EmailProvider, settings: Settings = None):
        self.provider = provider
        self.settings = settings or default_settings

    async def send(self, to: str, subject: str, template_key: str, template_data: dict) -> bool:
        renderer = TEMPLATES.get(template_key)
        if renderer is None:
            logger.error(f"Unknown email template: {template_key}")
            return False

        try:
            html_body, text_body = renderer(template_data, self.settings)
            return await self.provider.send(to, subject, html_body, text_body)
        except Exception as e:
            logger.error(f"Failed to send '{template_key}' email to {to}: {e}")
            return False


def create_email_provider(settings: Settings) -> EmailProvider:
    provider_name = settings.EMAIL_PROVIDER.lower()

    if provider_name == "ses":
        return SESProvider(settings)
    if provider_name == "resend":
        return ResendProvider(settings)
    if provider_name == "console":
        return ConsoleProvider()
    raise ValueError(f"Unknown email provider: {provider_name}. Use 'ses', 'resend' or 'console'.")


_sender_instance: Optional[EmailSender] = None


def get_email_sender() -> EmailSender:
    """Get the configured email sender (singleton)."""
    global _sender_instance

    if _sender_instance is None:
        provider = create_email_provider(default_settings)
        _sender_instance = EmailSender(provider, default_settings)
        logger.info(f"Email provider initialized: {default_settings.EMAIL_PROVIDER}")

    return _sender_instance
