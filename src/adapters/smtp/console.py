"""
Console email sender adapter - Implements EmailSender protocol.

Selected with EMAIL_BACKEND=console. Messages go to the application log
instead of a mail relay, so confirmation and reset links can be copied
straight out of the server output during development.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol by logging each message.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def send(self, to: str, subject: str, body: str) -> None:
        """
        Write the whole message, body included, as one INFO record.

        Args:
            to: Recipient email address (normalized by domain layer)
            subject: Message subject
            body: Plain-text body, including any links
        """
        logger.info("[EMAIL] To: %s Subject: %s\n%s", to, subject, body)
