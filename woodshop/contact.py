"""
Contact form relay to Web3Forms.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from woodshop.errors import InternalError, TransientExternalError

logger = logging.getLogger(__name__)

WEB3FORMS_SUBMIT_URL = "https://api.web3forms.com/submit"
REQUEST_TIMEOUT = 15  # seconds
DEFAULT_SUBJECT = "New message from the website contact form"


@dataclass
class Web3FormsClient:
    access_key: Optional[str]

    def submit(
        self, name: str, email: str, message: str, subject: str | None = None
    ) -> None:
        """
        Submits a contact message to Web3Forms, which emails it to the owner.

        Raises:
            InternalError: If no access key is configured.
            TransientExternalError: If Web3Forms rejects or fails the request.
        """
        if not self.access_key:
            raise InternalError("Web3Forms is not configured")

        payload = {
            "access_key": self.access_key,
            "name": name,
            "email": email,
            "message": message,
            "subject": subject or DEFAULT_SUBJECT,
        }
        try:
            response = requests.post(
                WEB3FORMS_SUBMIT_URL,
                json=payload,
                headers={"Accept": "application/json"},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise TransientExternalError(f"Contact submission failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not response.ok or not body.get("success"):
            detail = body.get("message") or f"HTTP {response.status_code}"
            raise TransientExternalError(f"Contact submission failed: {detail}")
        logger.info("Relayed contact message from %s", email)
