"""
Selfie upload gated on a passed liveness session
"""
import logging

from ..exceptions import AuthenticationRequired, LivenessNotVerified
from ..models.data_models import SessionSummary, UploadSelfieResponse, VerifyOtpResponse
from .api_client import FlashBackApiClient
from .secure_storage import SecureStorage

logger = logging.getLogger(__name__)


class SelfieUploader:
    """
    Connects the liveness verdict to the OTP login and portrait upload.

    The upload is refused unless the session summary reports overall
    success, so a selfie can never be sent without a passed liveness check.
    """

    def __init__(self, api_client: FlashBackApiClient, storage: SecureStorage):
        self.api_client = api_client
        self.storage = storage

    async def verify_otp_and_store(self, phone_number: str, otp: str) -> VerifyOtpResponse:
        """Verify the OTP and persist the returned credentials on success."""
        response = await self.api_client.verify_otp(phone_number, otp)
        if response.success and response.auth_token:
            self.storage.store_auth_token(response.auth_token)
            self.storage.store_user_phone(phone_number)
            if response.refresh_token:
                self.storage.store_refresh_token(response.refresh_token)
            logger.info("OTP verified and credentials stored")
        else:
            logger.warning(f"OTP verification did not return a token: {response.message}")
        return response

    async def upload_verified_selfie(
        self,
        summary: SessionSummary,
        image: bytes,
    ) -> UploadSelfieResponse:
        """
        Upload the captured selfie for a passed liveness session.

        Raises:
            LivenessNotVerified: If the session did not pass
            AuthenticationRequired: If no token or phone number is stored
        """
        if not summary.overall_success:
            raise LivenessNotVerified(
                f"Session {summary.session_id} did not pass liveness verification"
            )

        auth_token = self.storage.get_auth_token()
        phone_number = self.storage.get_user_phone()
        if not auth_token or not phone_number:
            raise AuthenticationRequired("Authentication required. Please login again.")

        logger.info(
            f"Uploading selfie for session {summary.session_id} "
            f"(confidence={summary.average_confidence:.2f})"
        )
        return await self.api_client.upload_selfie(image, phone_number, auth_token)
