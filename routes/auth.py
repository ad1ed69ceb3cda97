import logging
from typing import Optional

from fastapi import APIRouter, HTTPException

from dependencies import CurrentUser, Identity, Tokens
from models.auth import LoginResponse
from services.identity import IdentityProviderError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login")
async def login(
        identity: Identity,
        tokens: Tokens,
        email: Optional[str] = None,
        password: Optional[str] = None,
):
    """Sign in through the identity provider and issue a session token"""
    if not email or not password:
        logger.warning("Login attempt with missing email or password")
        raise HTTPException(status_code=400, detail="Email and password are required")

    try:
        user = await identity.sign_in(email, password)
    except IdentityProviderError as e:
        logger.error("Error during login for email %s: %s", email, e)
        raise HTTPException(status_code=500, detail=f"Login failed: {str(e)}")

    if user is None:
        logger.warning("Login failed for email %s - invalid credentials", email)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    access_token = tokens.issue(user.id, user.email, user.display_name, user.metadata)
    logger.info("Login successful for email %s", email)

    return LoginResponse(
        id=user.id,
        email=user.email,
        access_token=access_token,
        metadata=user.metadata,
    ).model_dump(by_alias=True)


@router.post("/register")
async def register(
        identity: Identity,
        email: Optional[str] = None,
        password: Optional[str] = None,
        name: Optional[str] = None,
):
    if not email or not password:
        logger.warning("Register attempt with missing email or password")
        raise HTTPException(status_code=400, detail="Email and password are required")

    try:
        user = await identity.sign_up(email, password, name)
    except IdentityProviderError as e:
        logger.error("Error during registration for email %s: %s", email, e)
        raise HTTPException(status_code=500, detail=f"Registration failed: {str(e)}")

    if user is None:
        raise HTTPException(status_code=400, detail="Unable to register user")

    logger.info("User registered successfully: %s", email)
    return {"message": "User registered successfully. Please log in."}


@router.post("/logout")
async def logout(identity: Identity, current_user: CurrentUser):
    """Revoke the identity provider's refresh tokens for the current user"""
    try:
        await identity.revoke_sessions(current_user.user_id)
    except IdentityProviderError as e:
        logger.error("Error during logout for user %s: %s", current_user.user_id, e)
        raise HTTPException(status_code=500, detail=f"Logout failed: {str(e)}")

    logger.info("User %s logged out", current_user.user_id)
    return {"message": "Logged out successfully"}


@router.get("/check")
async def check_authentication(tokens: Tokens, accessToken: Optional[str] = None):
    """Report who a session token belongs to"""
    if not accessToken:
        logger.warning("No access token provided")
        raise HTTPException(status_code=401, detail="No access token provided")

    result = tokens.validate(accessToken)
    if not result.valid:
        logger.warning("Invalid or expired token: %s", result.error)
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    logger.info("Token validated for user %s", result.claims.email)
    return {"id": result.claims.user_id, "email": result.claims.email}


@router.post("/forgot-password")
async def forgot_password(identity: Identity, email: Optional[str] = None):
    if not email:
        logger.warning("Forgot password attempt with missing email")
        raise HTTPException(status_code=400, detail="Email is required")

    try:
        await identity.send_password_reset(email)
    except IdentityProviderError as e:
        logger.error("Error during forgot password for email %s: %s", email, e)
        raise HTTPException(status_code=500, detail=f"Password reset request failed: {str(e)}")

    logger.info("Password reset email sent for %s", email)
    return {"message": "Password reset email sent. Please check your inbox."}


@router.post("/reset-password")
async def reset_password(
        identity: Identity,
        accessToken: Optional[str] = None,
        newPassword: Optional[str] = None,
        confirmPassword: Optional[str] = None,
):
    """Set a new password using the reset code from the reset email"""
    if not accessToken:
        logger.warning("Reset password attempt with missing token")
        raise HTTPException(status_code=400, detail="Reset token is required")
    if not newPassword or not confirmPassword:
        logger.warning("Reset password attempt with missing password fields")
        raise HTTPException(status_code=400, detail="New password and confirmation are required")
    if newPassword != confirmPassword:
        logger.warning("Reset password attempt with mismatched passwords")
        raise HTTPException(status_code=400, detail="Passwords do not match")

    try:
        reset = await identity.reset_password(accessToken, newPassword)
    except IdentityProviderError as e:
        logger.error("Error during password reset: %s", e)
        raise HTTPException(status_code=500, detail=f"Password reset failed: {str(e)}")

    if not reset:
        raise HTTPException(status_code=400, detail="Failed to reset password.")

    logger.info("Password reset successfully")
    return {"message": "Password reset successfully. Please log in with your new password."}
