import logging
from datetime import datetime, timezone
import uuid
from typing import Annotated, List, Dict, Any, Optional

from fastapi import APIRouter, HTTPException, UploadFile, File, Form
from starlette.concurrency import run_in_threadpool

from dependencies import Posts, CurrentUser
from models.post import Comment, CommentRequest
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_IMAGE_BYTES = 700 * 1024


def _require_name(user: User) -> None:
    if not user.user_id or not user.name:
        raise HTTPException(status_code=401, detail="User ID or username is missing from token claims.")


async def _read_image(image: Optional[UploadFile]) -> Optional[bytes]:
    if image is None:
        return None

    too_large = HTTPException(
        status_code=400,
        detail=f"Image size exceeds {MAX_IMAGE_BYTES // 1024}KB limit"
    )
    if image.size is not None and image.size > MAX_IMAGE_BYTES:
        raise too_large

    # one byte past the limit is enough to tell it was exceeded
    image_bytes = await image.read(MAX_IMAGE_BYTES + 1)
    if len(image_bytes) > MAX_IMAGE_BYTES:
        raise too_large
    return image_bytes or None


@router.post("/create", status_code=201)
async def create_post(
        posts: Posts,
        current_user: CurrentUser,
        title: str = Form(""),
        content: str = Form(""),
        image: Annotated[Optional[UploadFile], File()] = None,
        tags: Annotated[Optional[List[str]], Form()] = None,
) -> Dict[str, Any]:
    """Create a post from a multipart form with an optional image"""
    _require_name(current_user)
    image_bytes = await _read_image(image)

    try:
        post = await run_in_threadpool(
            posts.create,
            current_user.user_id,
            current_user.name,
            title,
            content,
            image_bytes,
            tags,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error creating post")
        raise HTTPException(status_code=500, detail=f"Error creating post: {str(e)}")

    return post.to_response()


@router.get("/all")
def get_all_posts(posts: Posts) -> List[Dict[str, Any]]:
    """Get every post, newest first"""
    try:
        return [post.to_response() for post in posts.list_all()]
    except Exception as e:
        logger.exception("Error fetching posts")
        raise HTTPException(status_code=500, detail=f"Error fetching posts: {str(e)}")


@router.get("/user/{user_id}")
def get_user_posts(user_id: str, posts: Posts) -> List[Dict[str, Any]]:
    """Get one user's posts"""
    try:
        return [post.to_response() for post in posts.list_by_user(user_id)]
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error fetching posts for user %s", user_id)
        raise HTTPException(status_code=500, detail=f"Error fetching posts: {str(e)}")


@router.get("/{post_id}")
def get_post(post_id: str, posts: Posts) -> Dict[str, Any]:
    try:
        return posts.get(post_id).to_response()
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error fetching post %s", post_id)
        raise HTTPException(status_code=500, detail=f"Error fetching post: {str(e)}")


@router.post("/like/{post_id}")
def like_post(post_id: str, posts: Posts, current_user: CurrentUser) -> Dict[str, Any]:
    """Like a post as the current user"""
    _require_name(current_user)
    try:
        post = posts.like(post_id, current_user.user_id, current_user.name)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error liking post %s", post_id)
        raise HTTPException(status_code=500, detail=f"Error liking post: {str(e)}")

    return {
        "message": "Post liked successfully",
        "likedBy": current_user.name,
        "totalLikes": post.likes,
        "likers": [like.model_dump(mode="json", by_alias=True) for like in post.liked_by],
    }


@router.post("/unlike/{post_id}")
def unlike_post(post_id: str, posts: Posts, current_user: CurrentUser) -> Dict[str, Any]:
    """Withdraw the current user's like"""
    try:
        post = posts.unlike(post_id, current_user.user_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error unliking post %s", post_id)
        raise HTTPException(status_code=500, detail=f"Error unliking post: {str(e)}")

    return {
        "message": "Post unliked successfully",
        "totalLikes": post.likes,
    }


@router.post("/comment/{post_id}")
def add_comment(
        post_id: str,
        request: CommentRequest,
        posts: Posts,
        current_user: CurrentUser,
) -> Dict[str, Any]:
    """Add a comment to a post"""
    _require_name(current_user)
    if not request.text or not request.text.strip():
        raise HTTPException(status_code=400, detail="Comment text is required.")

    comment = Comment(
        id=str(uuid.uuid4()),
        user_id=current_user.user_id,
        user_name=current_user.name,
        text=request.text,
        created_at=datetime.now(timezone.utc),
    )
    try:
        comment = posts.add_comment(post_id, comment)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error commenting on post %s", post_id)
        raise HTTPException(status_code=500, detail=f"Error adding comment: {str(e)}")

    return {
        "message": "Comment added successfully",
        "commenter": comment.user_name,
        "commentText": comment.text,
        "comment": comment.model_dump(mode="json", by_alias=True),
    }


@router.delete("/{post_id}/comment/{comment_id}")
def delete_comment(post_id: str, comment_id: str, posts: Posts, current_user: CurrentUser) -> Dict[str, Any]:
    """Delete one of the current user's comments"""
    try:
        posts.delete_comment(post_id, comment_id, current_user.user_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error deleting comment %s on post %s", comment_id, post_id)
        raise HTTPException(status_code=500, detail=f"Error deleting comment: {str(e)}")

    return {"message": "Comment deleted successfully"}


@router.delete("/{post_id}")
def delete_post(post_id: str, posts: Posts, current_user: CurrentUser) -> Dict[str, Any]:
    """Delete one of the current user's posts"""
    try:
        posts.delete(post_id, current_user.user_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error deleting post %s", post_id)
        raise HTTPException(status_code=500, detail=f"Error deleting post: {str(e)}")

    return {"message": "Post deleted successfully"}


@router.put("/{post_id}")
async def update_post(
        post_id: str,
        posts: Posts,
        current_user: CurrentUser,
        title: str = Form(""),
        content: str = Form(""),
        image: Annotated[Optional[UploadFile], File()] = None,
        tags: Annotated[Optional[List[str]], Form()] = None,
) -> Dict[str, Any]:
    """Replace a post's title, content, image and tags"""
    _require_name(current_user)
    image_bytes = await _read_image(image)

    try:
        post = await run_in_threadpool(
            posts.update,
            post_id,
            current_user.user_id,
            current_user.name,
            title,
            content,
            image_bytes,
            tags,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error updating post %s", post_id)
        raise HTTPException(status_code=500, detail=f"Error updating post: {str(e)}")

    return post.to_response()
