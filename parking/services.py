import logging
import secrets

from config import PIN_LENGTH, PIN_MAX_ATTEMPTS, QR_TOKEN_BYTES
from parking.exceptions import ConflictError

logger = logging.getLogger(__name__)


class TokenService:
    @staticmethod
    def generate_qr_code():
        return secrets.token_urlsafe(QR_TOKEN_BYTES)

    @staticmethod
    def generate_pin():
        return "".join(secrets.choice("0123456789") for _ in range(PIN_LENGTH))

    @classmethod
    def issue_pin(cls, taken):
        """Draw a PIN not present in `taken`, the PINs already live at the spot."""
        for _ in range(PIN_MAX_ATTEMPTS):
            pin = cls.generate_pin()
            if pin not in taken:
                return pin
            logger.info("PIN collision at spot, regenerating")
        logger.error(
            f"Could not issue a unique PIN after {PIN_MAX_ATTEMPTS} attempts "
            f"({len(taken)} PINs in use)"
        )
        raise ConflictError("No entry code could be issued for this window, please retry.")
