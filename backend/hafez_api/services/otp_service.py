"""
Hafez Quraan Backend — OTP Service
====================================

What:  Validates a send-otp request and hands it to the mail dispatcher.
Why:   The code is generated and later checked by the client; this backend
       only relays it by email. Nothing about the code is stored.
"""

import logging
from typing import Optional, Union

from hafez_api.exceptions import ValidationError
from hafez_api.services.identity_service import IdentityService, identity_service
from hafez_api.services.mail_base import MailDispatcher

logger = logging.getLogger(__name__)


class OtpService:

    def __init__(self, identity: IdentityService = identity_service):
        self.identity = identity

    async def send_otp(
        self,
        dispatcher: MailDispatcher,
        email: Optional[str],
        otp: Optional[Union[str, int]],
    ) -> None:
        """
        Raises:
            ValidationError: email or otp missing, or email malformed
            UpstreamServiceError: propagated from the dispatcher
        """
        code = "" if otp is None else str(otp).strip()
        if not email or not email.strip() or not code:
            raise ValidationError(message="Email and OTP are required")
        email = self.identity.validate_email(email)

        await dispatcher.send_otp(email, code)


otp_service = OtpService()
