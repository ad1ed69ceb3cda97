import html
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

import bleach
from fastapi import HTTPException

from models.post import Post, Like, Comment
from services.firestore import FirestoreDB

logger = logging.getLogger(__name__)


def _require(value: Optional[str], message: str) -> None:
    if not value or not value.strip():
        raise HTTPException(status_code=400, detail=message)


def _clean_tags(tags: Optional[List[str]]) -> List[str]:
    return [tag.strip() for tag in tags or [] if tag and tag.strip()]


def _warn_if_not_html(content: str) -> None:
    if "<" not in content or ">" not in content:
        logger.warning("Content may not contain proper HTML formatting")


class PostService:
    def __init__(self, db: FirestoreDB):
        self.db = db

    def _load(self, post_id: str) -> Post:
        _require(post_id, "Post ID is required")
        data = self.db.get_post(post_id)
        if data is None:
            raise HTTPException(status_code=404, detail="Post not found")
        return Post.model_validate(data)

    def create(
            self,
            user_id: str,
            user_name: str,
            title: str,
            content: str,
            image_bytes: Optional[bytes] = None,
            tags: Optional[List[str]] = None,
    ) -> Post:
        """
        Validate and persist a new post

        Returns:
            The stored post with a fresh id, no likes and no comments
        """
        _require(user_id, "User ID is required")
        _require(user_name, "Username is required")
        _require(title, "Title is required")
        _require(content, "Content is required")
        _warn_if_not_html(content)

        post = Post(
            id=str(uuid.uuid4()),
            user_id=user_id,
            user_name=user_name,
            title=title,
            content=content,
            image_bytes=image_bytes or None,
            tags=_clean_tags(tags),
            likes=0,
            liked_by=[],
            comments=[],
            created_at=datetime.now(timezone.utc),
        )
        self.db.insert_post(post.id, post.to_document())
        logger.info("Created post %s for user %s", post.id, user_id)
        return post

    def list_all(self) -> List[Post]:
        return [Post.model_validate(data) for data in self.db.get_all_posts()]

    def list_by_user(self, user_id: str) -> List[Post]:
        _require(user_id, "User ID is required")
        return [Post.model_validate(data) for data in self.db.get_posts_by_user(user_id)]

    def get(self, post_id: str) -> Post:
        return self._load(post_id)

    def like(self, post_id: str, user_id: str, user_name: str) -> Post:
        """Record a like from a user; a user can like a post at most once"""
        _require(user_id, "User ID is required")
        _require(user_name, "User name is required")

        post = self._load(post_id)
        if post.has_liker(user_id):
            raise HTTPException(status_code=400, detail="User has already liked this post")

        like = Like(user_id=user_id, user_name=user_name, liked_at=datetime.now(timezone.utc))
        result = self.db.push_array_element(
            post_id,
            "likedBy",
            like.model_dump(by_alias=True),
            unique_key="userId",
            counter="likes",
        )
        if result.matched == 0:
            raise HTTPException(status_code=404, detail="Post not found")
        if result.modified == 0:
            # another request from the same user got there first
            raise HTTPException(status_code=400, detail="User has already liked this post")

        return self._load(post_id)

    def unlike(self, post_id: str, user_id: str) -> Post:
        """Withdraw a user's like"""
        _require(user_id, "User ID is required")

        post = self._load(post_id)
        if not post.has_liker(user_id):
            raise HTTPException(status_code=400, detail="User hasn't liked this post")

        result = self.db.remove_array_element(post_id, "likedBy", "userId", user_id, counter="likes")
        if result.matched == 0:
            raise HTTPException(status_code=400, detail="Post not found or user hasn't liked it")

        return self._load(post_id)

    def add_comment(self, post_id: str, comment: Comment) -> Comment:
        """Attach a comment to a post, stripping any markup from its text"""
        if comment is None:
            raise HTTPException(status_code=400, detail="Comment cannot be null")
        _require(comment.text, "Comment text is required")

        # bleach escapes what it keeps; store the text as written, minus tags
        text = html.unescape(bleach.clean(comment.text, tags=set(), strip=True))
        sanitized = comment.model_copy(update={"text": text})
        _require(sanitized.text, "Comment text is required")

        self._load(post_id)
        result = self.db.push_array_element(post_id, "comments", sanitized.model_dump(by_alias=True))
        if result.matched == 0:
            raise HTTPException(status_code=404, detail="Post not found")
        return sanitized

    def delete_comment(self, post_id: str, comment_id: str, user_id: str) -> None:
        _require(comment_id, "Comment ID is required")
        _require(user_id, "User ID is required")

        post = self._load(post_id)
        comment = post.find_comment(comment_id)
        if comment is None:
            raise HTTPException(status_code=404, detail="Comment not found")
        if comment.user_id != user_id:
            raise HTTPException(status_code=403, detail="You can only delete your own comments")

        result = self.db.remove_array_element(post_id, "comments", "id", comment_id)
        if result.matched == 0:
            raise HTTPException(status_code=404, detail="Comment not found")

    def delete(self, post_id: str, user_id: str) -> None:
        _require(user_id, "User ID is required")

        post = self._load(post_id)
        if post.user_id != user_id:
            raise HTTPException(status_code=403, detail="You can only delete your own posts")

        if not self.db.delete_post(post_id):
            raise HTTPException(status_code=404, detail="Post not found")
        logger.info("Deleted post %s", post_id)

    def update(
            self,
            post_id: str,
            user_id: str,
            user_name: str,
            title: str,
            content: str,
            image_bytes: Optional[bytes] = None,
            tags: Optional[List[str]] = None,
    ) -> Post:
        """
        Replace a post's title, content, image and tags.
        Likes, comments, the creation date and the id are left untouched.
        """
        _require(user_id, "User ID is required")
        _require(user_name, "User name is required")
        _require(title, "Title is required")
        _require(content, "Content is required")
        _warn_if_not_html(content)

        post = self._load(post_id)
        if post.user_id != user_id:
            raise HTTPException(status_code=403, detail="You can only update your own posts")

        result = self.db.update_post_fields(post_id, {
            "title": title,
            "content": content,
            "imageBytes": image_bytes or None,
            "tags": _clean_tags(tags),
        })
        if result.matched == 0:
            raise HTTPException(status_code=404, detail="Post not found")

        return self._load(post_id)
