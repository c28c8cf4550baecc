"""
Hafez Quraan Backend — Activity & OTP Request Schemas
=======================================================

What:  Request bodies for POST /log-activity and POST /send-otp.

`metadata` is an opaque JSON value (object, list, scalar or null). It is
stored untouched and only ever read back by the analytics endpoint.
"""

from datetime import datetime
from typing import Any, Optional, Union

from pydantic import Field, StrictInt, StrictStr

from hafez_api.schemas.common import CamelModel


class LogActivityRequest(CamelModel):
    email: Optional[str] = Field(default=None, max_length=255)
    activity_type: Optional[str] = Field(default=None, max_length=100, description="Event tag, e.g. 'verse_memorized'")
    metadata: Any = Field(default_factory=dict, description="Arbitrary structured event data")
    timestamp: Optional[datetime] = Field(
        default=None,
        description="When the event happened (ISO 8601). Defaults to request time.",
    )


class SendOtpRequest(CamelModel):
    email: Optional[str] = Field(default=None)
    # A string or a bare number; strict so a JSON boolean is rejected, not coerced
    otp: Optional[Union[StrictStr, StrictInt]] = Field(default=None, description="Client-generated code")
