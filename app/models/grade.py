from pydantic import BaseModel, Field, field_validator
from typing import Dict, Literal, Optional
import uuid
from datetime import datetime

LetterGrade = Literal["A", "B", "C", "D", "E", "F"]

class UserGradeCreate(BaseModel):
    course_code: Optional[str] = None
    grade: LetterGrade

    @field_validator("grade", mode="before")
    @classmethod
    def normalize_grade(cls, value):
        return value.strip().upper() if isinstance(value, str) else value

class UserGrade(UserGradeCreate):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    created_at: datetime = Field(default_factory=datetime.utcnow)

class GpaSummary(BaseModel):
    gpa: Optional[float] = None  # None until a grade is recorded
    count: int = 0
    distribution: Dict[str, int] = {}
