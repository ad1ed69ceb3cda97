import json
import logging
from typing import Optional, Dict, Any

import aiohttp
import firebase_admin
from firebase_admin import auth, exceptions
from starlette.concurrency import run_in_threadpool

from models.auth import IdentityUser

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

# provider error codes that mean "the user got something wrong" rather than "the call failed"
REJECTED_CREDENTIALS = {
    "EMAIL_NOT_FOUND",
    "INVALID_PASSWORD",
    "INVALID_LOGIN_CREDENTIALS",
    "INVALID_EMAIL",
    "USER_DISABLED",
    "MISSING_PASSWORD",
}
REJECTED_SIGN_UP = {
    "EMAIL_EXISTS",
    "INVALID_EMAIL",
    "WEAK_PASSWORD",
    "MISSING_PASSWORD",
    "OPERATION_NOT_ALLOWED",
}
REJECTED_RESET = {
    "EXPIRED_OOB_CODE",
    "INVALID_OOB_CODE",
    "WEAK_PASSWORD",
    "USER_DISABLED",
    "OPERATION_NOT_ALLOWED",
}


class IdentityProviderError(Exception):
    """The identity provider could not be reached or answered with an unexpected error"""

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason


class FirebaseIdentityService:
    def __init__(self, session: aiohttp.ClientSession, api_key: str, app: Optional[firebase_admin.App] = None):
        """
        Initialize the identity client with the shared HTTP session and the project's web API key
        """
        self.session = session
        self.api_key = api_key
        self.app = app

    async def _call(self, endpoint: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST to an Identity Toolkit endpoint

        Raises:
            IdentityProviderError: on transport failures or a non-2xx answer, with the
                provider's error code as the reason when one is given
        """
        if not self.api_key:
            raise IdentityProviderError("Identity provider API key is not configured")

        try:
            async with self.session.post(
                    f"{IDENTITY_TOOLKIT_URL}/{endpoint}",
                    params={"key": self.api_key},
                    json=body,
            ) as response:
                payload = await response.json(content_type=None)
                if response.status >= 400:
                    message = ((payload or {}).get("error") or {}).get("message", "")
                    # codes can carry a suffix, e.g. "WEAK_PASSWORD : Password should be at least 6 characters"
                    reason = message.split(":")[0].strip() or None
                    raise IdentityProviderError(
                        f"{endpoint} failed with status {response.status}: {message}",
                        reason=reason,
                    )
                return payload or {}
        except aiohttp.ClientError as e:
            raise IdentityProviderError(f"{endpoint} request failed: {str(e)}")
        except ValueError as e:
            raise IdentityProviderError(f"{endpoint} returned an unreadable response: {str(e)}")

    async def _lookup_metadata(self, id_token: str, display_name: str) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {"name": display_name, "display_name": display_name}

        payload = await self._call("accounts:lookup", {"idToken": id_token})
        users = payload.get("users") or []
        if not users:
            return metadata

        profile = users[0]
        metadata["email_verified"] = bool(profile.get("emailVerified", False))
        if profile.get("customAttributes"):
            try:
                custom = json.loads(profile["customAttributes"])
            except ValueError:
                logger.warning("Ignoring malformed custom attributes for user %s", profile.get("localId"))
            else:
                if isinstance(custom, dict):
                    metadata.update(custom)
        return metadata

    async def sign_in(self, email: str, password: str) -> Optional[IdentityUser]:
        """
        Sign a user in with email and password

        Returns:
            The signed-in user with their profile metadata, or None if the credentials were rejected
        """
        try:
            payload = await self._call("accounts:signInWithPassword", {
                "email": email,
                "password": password,
                "returnSecureToken": True,
            })
        except IdentityProviderError as e:
            if e.reason in REJECTED_CREDENTIALS:
                return None
            raise

        display_name = payload.get("displayName") or ""
        metadata = await self._lookup_metadata(payload["idToken"], display_name)
        return IdentityUser(
            id=payload["localId"],
            email=payload.get("email", email),
            display_name=display_name or str(metadata.get("name") or ""),
            metadata=metadata,
        )

    async def sign_up(self, email: str, password: str, name: Optional[str]) -> Optional[IdentityUser]:
        """
        Register a new user with a display name

        Returns:
            The new user, or None if the provider refused the registration
        """
        try:
            payload = await self._call("accounts:signUp", {
                "email": email,
                "password": password,
                "displayName": name or "",
                "returnSecureToken": True,
            })
        except IdentityProviderError as e:
            if e.reason in REJECTED_SIGN_UP:
                logger.warning("Registration rejected for %s: %s", email, e.reason)
                return None
            raise

        return IdentityUser(
            id=payload["localId"],
            email=payload.get("email", email),
            display_name=name or "",
            metadata={"name": name or "", "display_name": name or ""},
        )

    async def send_password_reset(self, email: str) -> None:
        await self._call("accounts:sendOobCode", {"requestType": "PASSWORD_RESET", "email": email})

    async def reset_password(self, code: str, new_password: str) -> bool:
        """
        Complete a password reset with the code from the reset email

        Returns:
            False if the provider rejected the code or the new password
        """
        try:
            await self._call("accounts:resetPassword", {"oobCode": code, "newPassword": new_password})
        except IdentityProviderError as e:
            if e.reason in REJECTED_RESET:
                logger.warning("Password reset rejected: %s", e.reason)
                return False
            raise
        return True

    async def revoke_sessions(self, user_id: str) -> None:
        """Revoke the provider's refresh tokens so the user has to sign in again"""
        try:
            await run_in_threadpool(auth.revoke_refresh_tokens, user_id, app=self.app)
        except (ValueError, exceptions.FirebaseError) as e:
            raise IdentityProviderError(f"Could not revoke sessions: {str(e)}")
