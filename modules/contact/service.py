"""Contact form submissions."""

import logging
import re
from typing import Optional

from core.interfaces.persistence import CONTACT_MESSAGES, IPersistenceGateway, StorageError
from core.models.team import ContactMessage

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ContactService:
    """Stores contact messages as `unread` rows.

    ``submit`` reports failure through its return value and ``last_error``.
    """

    def __init__(self, gateway: IPersistenceGateway):
        self._gateway = gateway
        self.submitting = False
        self.last_error: Optional[str] = None

    @staticmethod
    def validate(name: str, email: str, message: str) -> Optional[str]:
        """Return a validation error message, or None if the form is valid."""
        if not name or not name.strip():
            return "Name is required"
        if not email or not EMAIL_PATTERN.match(email.strip()):
            return "A valid email address is required"
        if not message or not message.strip():
            return "Message is required"
        return None

    def submit(self, name: str, email: str, message: str) -> bool:
        """Validate and store a contact message.

        Returns:
            True if the message was stored
        """
        self.last_error = self.validate(name, email, message)
        if self.last_error:
            logger.info(f"Contact form rejected: {self.last_error}")
            return False

        contact = ContactMessage(name=name.strip(), email=email.strip(), message=message.strip())

        self.submitting = True
        try:
            row = self._gateway.insert(CONTACT_MESSAGES, contact.to_record())
        except StorageError as e:
            self.last_error = str(e) or "Submission failed"
            logger.error(f"Contact submission failed: {e}")
            return False
        finally:
            self.submitting = False

        logger.info(f"Contact message stored: {row.get('id')}")
        return True
