import uuid
from datetime import datetime, timezone

from models.post import Comment


def make_comment(user_id: str = "U2", user_name: str = "User Two", text: str = "Nice post") -> Comment:
    return Comment(
        id=str(uuid.uuid4()),
        user_id=user_id,
        user_name=user_name,
        text=text,
        created_at=datetime.now(timezone.utc),
    )
