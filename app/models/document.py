from pydantic import BaseModel, Field
from typing import List, Optional
import uuid
from datetime import datetime

from app.models.user import UserProfile

class Flashcard(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    document_id: str
    front: str
    back: str

class FlashcardContent(BaseModel):
    front: str
    back: str

class Document(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str  # uploader, receives the seller share
    title: str
    description: Optional[str] = None
    course_code: Optional[str] = None
    university: Optional[str] = None
    tags: List[str] = []
    price: int  # minor currency units (øre)
    summary: Optional[str] = None
    difficulty: Optional[int] = None  # 1 (easy) .. 5 (hard)
    file_path: str
    original_filename: Optional[str] = ""
    created_at: datetime = Field(default_factory=datetime.utcnow)

class DocumentDetail(Document):
    flashcards: List[Flashcard] = []
    uploader: Optional[UserProfile] = None

class DocumentMetadata(BaseModel):
    summary: Optional[str] = None
    tags: List[str] = []
    course_codes: List[str] = []
    difficulty: int = 3
    flashcards: List[FlashcardContent] = []

class UploadResponse(BaseModel):
    success: bool = True
    documentId: str
