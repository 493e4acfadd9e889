from pydantic import BaseModel
from typing import Optional

class User(BaseModel):
    id: str
    email: str
    preferences: Optional[dict] = None
