"""Outbound mail hand-off.

Delivery itself belongs to an external mail collaborator. This class is
the seam: deployments replace it on app.state.communications, tests patch
it. The default only records that a message would have been sent —
the token never reaches the logs.
"""

import structlog

logger = structlog.get_logger()


class CommunicationsService:
    """Hands auth-related messages to the mail collaborator."""

    async def send_password_reset(self, email: str, token: str) -> None:
        logger.info("communications.password_reset_queued", email=email)
