"""
Transactional email over the Resend HTTP API.

Sending is disabled (logged and skipped) when RESEND_API_KEY is not set,
which is the normal state for local development and tests.
"""
import os
import logging
from html import escape
from typing import Optional

import requests

logger = logging.getLogger(__name__)

RESEND_API_URL = 'https://api.resend.com/emails'
DEFAULT_FROM = 'SiteTime <no-reply@sitetime.app>'


class EmailService:
    def __init__(self, api_key: Optional[str] = None, sender: Optional[str] = None, base_url: Optional[str] = None,
                 http_post=None):
        self.api_key = api_key if api_key is not None else os.environ.get('RESEND_API_KEY', '')
        self.sender = sender or os.environ.get('EMAIL_FROM', DEFAULT_FROM)
        self.base_url = (base_url or os.environ.get('APP_BASE_URL', 'http://localhost:5173')).rstrip('/')
        self.http_post = http_post or requests.post

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def send(self, to: str, subject: str, html: str, text: Optional[str] = None) -> bool:
        """
        Send one email.

        Returns:
            True when the provider accepted the message. Failures are
            logged and reported as False; callers never fail on email.
        """
        if not self.enabled:
            logger.info(f"Email disabled (no RESEND_API_KEY); skipping '{subject}' to {to}")
            return False

        payload = {'from': self.sender, 'to': [to], 'subject': subject, 'html': html}
        if text:
            payload['text'] = text
        try:
            resp = self.http_post(
                RESEND_API_URL,
                json=payload,
                headers={'Authorization': f'Bearer {self.api_key}', 'Content-Type': 'application/json'},
                timeout=15,
            )
            resp.raise_for_status()
            logger.info(f"Email '{subject}' sent to {to}")
            return True
        except requests.RequestException as e:
            logger.error(f"Failed to send email '{subject}' to {to}: {e}")
            return False

    def _login_url(self) -> str:
        return f"{self.base_url}/login"

    def send_invitation(self, to: str, name: str, organization_name: str, role_label: str,
                        temporary_password: str) -> bool:
        subject = f"You've been invited to {organization_name} on SiteTime"
        text = (
            f"Hi {name},\n\n"
            f"You have been added as a {role_label} for {organization_name}.\n"
            f"Sign in at {self._login_url()} with:\n"
            f"Email: {to}\n"
            f"Temporary password: {temporary_password}\n\n"
            "You will be asked to choose a new password when you first sign in."
        )
        html = (
            f"<p>Hi {escape(name)},</p>"
            f"<p>You have been added as a {escape(role_label)} for <strong>{escape(organization_name)}</strong>.</p>"
            f"<p>Sign in at <a href=\"{self._login_url()}\">{self._login_url()}</a> with:</p>"
            f"<p>Email: {escape(to)}<br>Temporary password: <code>{escape(temporary_password)}</code></p>"
            "<p>You will be asked to choose a new password when you first sign in.</p>"
        )
        return self.send(to, subject, html, text)

    def send_password_reset(self, to: str, name: str, temporary_password: str) -> bool:
        subject = 'Your SiteTime password has been reset'
        text = (
            f"Hi {name},\n\n"
            "An administrator has reset your password.\n"
            f"Temporary password: {temporary_password}\n\n"
            f"Sign in at {self._login_url()} and choose a new password."
        )
        html = (
            f"<p>Hi {escape(name)},</p>"
            "<p>An administrator has reset your password.</p>"
            f"<p>Temporary password: <code>{escape(temporary_password)}</code></p>"
            f"<p>Sign in at <a href=\"{self._login_url()}\">{self._login_url()}</a> and choose a new password.</p>"
        )
        return self.send(to, subject, html, text)
