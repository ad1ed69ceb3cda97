import logging
from typing import Annotated

from fastapi import Request, Depends, HTTPException

from models.user import User
from services.content_generator import ContentGenerator
from services.identity import FirebaseIdentityService
from services.posts import PostService
from services.speech import TextReaderService
from services.tokens import TokenService

logger = logging.getLogger(__name__)


async def get_token_service(request: Request) -> TokenService:
    """Get token service from app state"""
    return request.app.state.token_service


async def get_current_user(
        request: Request,
        token_service: Annotated[TokenService, Depends(get_token_service)],
) -> User:
    """
    Verify the session token from the Authorization header and return user info
    """
    authorization = request.headers.get("Authorization")
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=401,
            detail="Invalid authorization header"
        )

    token = authorization.split("Bearer ", 1)[1].strip()
    result = token_service.validate(token)
    if not result.valid:
        logger.info("Rejected session token: %s", result.error)
        raise HTTPException(
            status_code=401,
            detail=f"Invalid authentication token: {result.error}"
        )

    claims = result.claims
    return User(
        user_id=claims.user_id,
        email=claims.email,
        name=claims.name,
        metadata=claims.metadata,
    )


async def get_post_service(request: Request) -> PostService:
    """Get post service from app state"""
    return request.app.state.post_service


async def get_identity_service(request: Request) -> FirebaseIdentityService:
    """Get identity provider client from app state"""
    return request.app.state.identity_service


async def get_content_generator(request: Request) -> ContentGenerator:
    """Get content generator from app state"""
    return request.app.state.content_generator


async def get_text_reader(request: Request) -> TextReaderService:
    """Get text reader from app state"""
    return request.app.state.text_reader


# Type annotations for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
Tokens = Annotated[TokenService, Depends(get_token_service)]
Posts = Annotated[PostService, Depends(get_post_service)]
Identity = Annotated[FirebaseIdentityService, Depends(get_identity_service)]
Generator = Annotated[ContentGenerator, Depends(get_content_generator)]
TextReader = Annotated[TextReaderService, Depends(get_text_reader)]
