"""
SMS delivery for phone verification codes.

A gateway is built once from settings and injected where it is needed.
When SMS is disabled or credentials are missing, DisabledSmsGateway is used
and every send fails fast with SmsConfigurationError.
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional
import httpx
from app.core.exceptions import DeliveryFailedError, SmsConfigurationError
from app.core.logging import mask_phone
from app.utils.time_utils import humanize_duration

logger = logging.getLogger(__name__)

VERIFICATION_TEMPLATE = (
    "Your {brand} verification code is: {code}. "
    "This code expires in {expires_in}. Do not share this code with anyone."
)


class SmsGateway:
    """Base gateway: code generation and the verification message template."""

    is_configured = True

    def __init__(self, brand_name: str, code_ttl: timedelta):
        self.brand_name = brand_name
        self.code_ttl = code_ttl

    @staticmethod
    def generate_code() -> str:
        """Uniform random 6-digit code in 100000-999999"""
        return str(100000 + secrets.randbelow(900000))

    def build_verification_message(self, code: str) -> str:
        return VERIFICATION_TEMPLATE.format(
            brand=self.brand_name,
            code=code,
            expires_in=humanize_duration(self.code_ttl),
        )

    def send(self, phone_number: str, message: str) -> None:
        raise NotImplementedError

    def send_verification_code(self, phone_number: str, code: str) -> None:
        self.send(phone_number, self.build_verification_message(code))


class DisabledSmsGateway(SmsGateway):
    is_configured = False

    def send(self, phone_number: str, message: str) -> None:
        logger.error("Cannot send SMS: SMS delivery is not configured")
        raise SmsConfigurationError()


class TwilioSmsGateway(SmsGateway):
    """Sends SMS through the Twilio Messages REST API."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        brand_name: str,
        code_ttl: timedelta,
        base_url: str = "https://api.twilio.com/2010-04-01",
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        super().__init__(brand_name, code_ttl)
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.messages_url = f"{base_url.rstrip('/')}/Accounts/{account_sid}/Messages.json"
        self.timeout = timeout
        self._client = client

    def send(self, phone_number: str, message: str) -> None:
        data = {"From": self.from_number, "To": phone_number, "Body": message}

        try:
            if self._client is not None:
                response = self._post(self._client, data)
            else:
                with httpx.Client() as client:
                    response = self._post(client, data)
        except httpx.TimeoutException as e:
            logger.error("Twilio API timeout", extra={"phone": mask_phone(phone_number)})
            raise DeliveryFailedError() from e
        except httpx.HTTPError as e:
            logger.error(f"Twilio transport error: {e}", extra={"phone": mask_phone(phone_number)})
            raise DeliveryFailedError() from e

        if response.status_code not in (200, 201):
            logger.error(
                f"Twilio API error: {response.status_code} - {response.text}",
                extra={"phone": mask_phone(phone_number)},
            )
            raise DeliveryFailedError()

        logger.info(
            f"SMS sent: SID={response.json().get('sid')}",
            extra={"phone": mask_phone(phone_number)},
        )

    def _post(self, client: httpx.Client, data: dict) -> httpx.Response:
        return client.post(
            self.messages_url,
            data=data,
            auth=(self.account_sid, self.auth_token),
            timeout=self.timeout,
        )


def build_sms_gateway(settings) -> SmsGateway:
    """Pick the gateway variant from configuration."""
    code_ttl = settings.phone_code_ttl
    credentials = (settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN, settings.TWILIO_FROM_NUMBER)

    if not settings.SMS_ENABLED or not all(credentials):
        logger.warning("Twilio credentials not configured. SMS delivery is disabled.")
        return DisabledSmsGateway(settings.SMS_BRAND_NAME, code_ttl)

    return TwilioSmsGateway(
        account_sid=settings.TWILIO_ACCOUNT_SID,
        auth_token=settings.TWILIO_AUTH_TOKEN,
        from_number=settings.TWILIO_FROM_NUMBER,
        brand_name=settings.SMS_BRAND_NAME,
        code_ttl=code_ttl,
        base_url=settings.TWILIO_BASE_URL,
        timeout=settings.SMS_TIMEOUT_SECONDS,
    )
