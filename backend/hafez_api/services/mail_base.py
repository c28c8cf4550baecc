"""
Hafez Quraan Backend — Abstract Mail Dispatcher Interface
===========================================================

What:  Contract for delivering a verification-code email.
Why:   Routes depend on this interface, so tests swap in a fake through
       `app.dependency_overrides` and a different provider could replace
       SendGrid without touching the route.
Who:   POST /send-otp; constructed once in the app lifespan.
"""

from abc import ABC, abstractmethod


class MailDispatcher(ABC):
    """
    Contract:
        - send_otp() formats and sends one email containing `otp`
        - Every provider failure surfaces as UpstreamServiceError
        - No retries: one attempt per call
    """

    @abstractmethod
    async def send_otp(self, email: str, otp: str) -> None:
        """
        Raises:
            UpstreamServiceError: provider not configured, rejected the
                credentials (authorization_failed=True), or failed otherwise.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release network resources. Called on application shutdown."""
        ...
