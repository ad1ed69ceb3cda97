from typing import Dict, Any

from pydantic import BaseModel


class User(BaseModel):
    user_id: str
    email: str
    name: str = ""
    metadata: Dict[str, Any] = {}
