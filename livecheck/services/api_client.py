"""
HTTP client for the FlashBack mobile API (OTP login and portrait upload)
"""
import json
import logging
from typing import Optional, Type, TypeVar

import httpx

from ..config import config
from ..exceptions import ApiError
from ..models.data_models import (
    ApiResponse,
    SendOtpResponse,
    UploadSelfieResponse,
    VerifyOtpResponse,
)

logger = logging.getLogger(__name__)

ResponseModel = TypeVar("ResponseModel", bound=ApiResponse)

LOGIN_PLATFORM = "MobileApp"


class FlashBackApiClient:
    """Async client for the three REST endpoints used by the verification flow"""

    SEND_OTP_PATH = "/api/mobile/sendOTP"
    VERIFY_OTP_PATH = "/api/mobile/verifyOTP"
    UPLOAD_PORTRAIT_PATH = "/api/mobile/uploadUserPortrait"

    def __init__(
        self,
        base_url: Optional[str] = None,
        refresh_token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: API root (defaults to API_BASE_URL)
            refresh_token: Sent as the refreshToken cookie when set
            timeout: Request timeout in seconds
            transport: Custom httpx transport, mainly for tests
        """
        self.base_url = (base_url or config.API_BASE_URL).rstrip("/")
        self.refresh_token = refresh_token if refresh_token is not None else config.API_REFRESH_TOKEN
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or config.API_TIMEOUT_SECONDS,
            transport=transport,
        )

    def _headers(self, auth_token: Optional[str] = None) -> dict:
        headers = {}
        if self.refresh_token:
            headers["Cookie"] = f"refreshToken={self.refresh_token}"
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        return headers

    async def _request(
        self,
        path: str,
        response_model: Type[ResponseModel],
        auth_token: Optional[str] = None,
        **kwargs
    ) -> ResponseModel:
        logger.info(f"POST {self.base_url}{path}")
        response = await self.client.post(path, headers=self._headers(auth_token), **kwargs)

        try:
            data = response.json()
        except json.JSONDecodeError:
            data = None
        if not isinstance(data, dict):
            # Bodies that are not a JSON object are treated as an error message
            data = {"success": False, "message": response.text}

        if not response.is_success:
            message = data.get("message") or f"HTTP {response.status_code}: {response.text}"
            logger.error(f"Request to {path} failed with {response.status_code}: {message}")
            raise ApiError(message, status_code=response.status_code)

        if "success" not in data:
            data["success"] = response.is_success
        return response_model.model_validate(data)

    async def send_otp(self, phone_number: str) -> SendOtpResponse:
        return await self._request(
            self.SEND_OTP_PATH,
            SendOtpResponse,
            json={"phoneNumber": phone_number},
        )

    async def verify_otp(self, phone_number: str, otp: str) -> VerifyOtpResponse:
        return await self._request(
            self.VERIFY_OTP_PATH,
            VerifyOtpResponse,
            json={
                "phoneNumber": phone_number,
                "otp": otp,
                "login_platform": LOGIN_PLATFORM,
            },
        )

    async def upload_selfie(
        self,
        image: bytes,
        username: str,
        auth_token: str,
        filename: str = "selfie.jpg",
    ) -> UploadSelfieResponse:
        """
        Upload a portrait as multipart form data.

        Args:
            image: Encoded image bytes (JPEG)
            username: Account name, the verified phone number
            auth_token: Bearer token from OTP verification
        """
        return await self._request(
            self.UPLOAD_PORTRAIT_PATH,
            UploadSelfieResponse,
            auth_token=auth_token,
            files={"image": (filename, image, "image/jpeg")},
            data={"username": username},
        )

    async def close(self) -> None:
        await self.client.aclose()
