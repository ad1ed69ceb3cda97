import json
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

import jwt

from models.auth import TokenClaims, TokenValidation


class TokenService:
    ALGORITHM = "HS256"
    LIFETIME = timedelta(hours=3)

    def __init__(self, secret_key: str, issuer: str, audience: str):
        """
        Initialize the token service with the signing secret and the expected issuer/audience
        """
        if not secret_key:
            raise ValueError("A signing secret is required to issue session tokens")
        self.secret_key = secret_key
        self.issuer = issuer
        self.audience = audience

    def issue(
            self,
            user_id: str,
            email: str,
            display_name: Optional[str],
            metadata: Optional[Dict[str, Any]] = None,
            now: Optional[datetime] = None,
    ) -> str:
        """
        Issue a signed session token carrying the user's identity claims

        Args:
            user_id: The identity provider's id for the user
            email: The user's email address
            display_name: The name shown on posts, likes and comments
            metadata: Opaque profile metadata, embedded as a JSON string when non-empty
            now: Issuance time, defaults to the current UTC time

        Returns:
            The encoded token, valid for three hours
        """
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "email": email,
            "name": display_name or "",
            "iss": self.issuer,
            "aud": self.audience,
            "iat": issued_at,
            "exp": issued_at + self.LIFETIME,
        }
        if metadata:
            payload["metadata"] = json.dumps(metadata, default=str)

        return jwt.encode(payload, self.secret_key, algorithm=self.ALGORITHM)

    def validate(self, token: Optional[str]) -> TokenValidation:
        """
        Verify a token's signature, expiry, issuer and audience.
        Any verification problem is reported in the result rather than raised.
        """
        if not token:
            return TokenValidation(valid=False, error="No token provided")

        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.ALGORITHM],
                issuer=self.issuer,
                audience=self.audience,
                leeway=0,
                options={"require": ["exp", "sub", "iss", "aud"]},
            )
        except jwt.ExpiredSignatureError:
            return TokenValidation(valid=False, error="Token has expired")
        except jwt.PyJWTError as e:
            return TokenValidation(valid=False, error=f"Invalid token: {str(e)}")

        try:
            metadata = json.loads(payload["metadata"]) if payload.get("metadata") else {}
        except (TypeError, ValueError):
            return TokenValidation(valid=False, error="Invalid token: malformed metadata claim")

        return TokenValidation(
            valid=True,
            claims=TokenClaims(
                user_id=payload["sub"],
                email=payload.get("email") or "",
                name=payload.get("name") or "",
                metadata=metadata if isinstance(metadata, dict) else {},
            ),
        )
