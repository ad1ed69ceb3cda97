import base64
from datetime import datetime
from typing import List, Optional, Dict, Any

from pydantic import BaseModel, ConfigDict, Field


class Like(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    user_name: str = Field(..., alias="userName")
    liked_at: datetime = Field(..., alias="likedAt")


class Comment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str = Field(..., alias="userId")
    user_name: str = Field(..., alias="userName")
    text: str
    created_at: datetime = Field(..., alias="createdAt")


class Post(BaseModel):
    """A blog post with its likes and comments embedded"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str = Field(..., alias="userId")
    user_name: str = Field(..., alias="userName")
    title: str
    content: str
    # raw bytes never go out as JSON, see to_response()
    image_bytes: Optional[bytes] = Field(None, alias="imageBytes", exclude=True)
    tags: List[str] = []
    likes: int = 0
    liked_by: List[Like] = Field(default_factory=list, alias="likedBy")
    comments: List[Comment] = []
    created_at: datetime = Field(..., alias="createdAt")

    def has_liker(self, user_id: str) -> bool:
        return any(like.user_id == user_id for like in self.liked_by)

    def find_comment(self, comment_id: str) -> Optional[Comment]:
        return next((c for c in self.comments if c.id == comment_id), None)

    def to_document(self) -> Dict[str, Any]:
        """Firestore representation, keyed by the same camelCase names as the API"""
        document = self.model_dump(by_alias=True, exclude={"id"})
        document["imageBytes"] = self.image_bytes
        return document

    def to_response(self) -> Dict[str, Any]:
        """The {post, imageBase64} shape returned by every post endpoint"""
        return {
            "post": self.model_dump(mode="json", by_alias=True),
            "imageBase64": base64.b64encode(self.image_bytes).decode("ascii") if self.image_bytes else None,
        }


class CommentRequest(BaseModel):
    text: str = ""
