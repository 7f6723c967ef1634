from pydantic import BaseModel, Field
from typing import Optional
import uuid
from datetime import datetime

# Authentication models
class UserCreate(BaseModel):
    username: str
    email: str
    password: str
    university: Optional[str] = None

class UserLogin(BaseModel):
    email: str
    password: str

class User(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    username: str
    email: str
    university: Optional[str] = None
    bio: Optional[str] = ""
    created_at: datetime = Field(default_factory=datetime.utcnow)

class Token(BaseModel):
    access_token: str
    token_type: str

class UserProfile(BaseModel):
    """Public view of a user, shown next to their documents"""
    id: str
    username: str
    university: Optional[str] = None
    bio: Optional[str] = ""
