"""
Hafez Quraan Backend — Send-OTP Route
=======================================

What:  POST /send-otp relays a client-generated verification code by email.

Error responses (handled by global exception handlers):
    HTTP 400: missing email/otp or malformed email (ValidationError)
    HTTP 500: mail provider not configured, rejected or failed (UpstreamServiceError)
"""

import logging

from fastapi import APIRouter, Depends

from hafez_api.schemas.activity import SendOtpRequest
from hafez_api.schemas.common import ErrorResponse, MessageResponse
from hafez_api.services.mail_base import MailDispatcher
from hafez_api.services.mail_service import get_mail_dispatcher
from hafez_api.services.otp_service import otp_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Verification"])


@router.post(
    "/send-otp",
    response_model=MessageResponse,
    responses={
        400: {"description": "Missing or invalid email/otp", "model": ErrorResponse},
        500: {"description": "Email provider failure", "model": ErrorResponse},
    },
    summary="Email a verification code",
)
async def send_otp(
    body: SendOtpRequest,
    dispatcher: MailDispatcher = Depends(get_mail_dispatcher),
) -> MessageResponse:
    await otp_service.send_otp(dispatcher, email=body.email, otp=body.otp)
    return MessageResponse(message="OTP sent successfully")
