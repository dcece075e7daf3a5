# clubvote/messaging/sms.py

import logging
import requests

from clubvote.errors import DeliveryError

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


class SMSChannel:
    """Outbound channel for one-time codes."""

    def send_code(self, phone_number, code, ttl_minutes=10):
        raise NotImplementedError

    @staticmethod
    def format_code_message(code, ttl_minutes):
        return f"Your election verification code is: {code}. This code will expire in {ttl_minutes} minutes."


class LogSMSChannel(SMSChannel):
    """Development channel used when no SMS provider is configured."""

    def send_code(self, phone_number, code, ttl_minutes=10):
        logger.warning("SMS provider not configured; code for %s not delivered", phone_number)
        logger.debug("Development OTP for %s: %s", phone_number, code)
        return {"sid": "DEV_MODE", "status": "logged", "to": phone_number}


class TwilioSMSChannel(SMSChannel):
    def __init__(self, account_sid, auth_token, from_number, timeout=10, session=None):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout
        self.http = session or requests.Session()

    def send_code(self, phone_number, code, ttl_minutes=10):
        url = TWILIO_MESSAGES_URL.format(sid=self.account_sid)
        data = {
            "To": phone_number,
            "From": self.from_number,
            "Body": self.format_code_message(code, ttl_minutes),
        }
        try:
            response = self.http.post(
                url,
                data=data,
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
            )
        except requests.Timeout:
            logger.error("SMS delivery to %s timed out after %ss", phone_number, self.timeout)
            raise DeliveryError()
        except requests.RequestException as e:
            logger.error("SMS delivery to %s failed: %s", phone_number, e)
            raise DeliveryError()

        if response.status_code >= 400:
            logger.error("SMS provider rejected message to %s: %s %s",
                         phone_number, response.status_code, response.text[:200])
            raise DeliveryError()

        result = response.json()
        logger.info("OTP sent to %s, SID: %s", phone_number, result.get("sid"))
        return result


def build_sms_channel(config):
    """Pick the channel from app config: Twilio when fully configured, else log-only."""
    if config.get('TWILIO_ACCOUNT_SID') and config.get('TWILIO_AUTH_TOKEN') and config.get('TWILIO_PHONE_NUMBER'):
        return TwilioSMSChannel(
            config['TWILIO_ACCOUNT_SID'],
            config['TWILIO_AUTH_TOKEN'],
            config['TWILIO_PHONE_NUMBER'],
            timeout=config.get('SMS_TIMEOUT_SECONDS', 10),
        )
    return LogSMSChannel()
