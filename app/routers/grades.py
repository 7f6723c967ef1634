from fastapi import APIRouter, Depends
from typing import List
import logging

from app.models.grade import GpaSummary, UserGrade, UserGradeCreate
from app.models.user import User
from app.db.session import get_db
from app.services.auth import get_current_user

logger = logging.getLogger(__name__)
router = APIRouter()

# Norwegian letter scale
GRADE_TO_POINTS = {"A": 5.0, "B": 4.0, "C": 3.0, "D": 2.0, "E": 1.0, "F": 0.0}

def summarize_grades(grades: List[UserGrade]) -> GpaSummary:
    if not grades:
        return GpaSummary()

    distribution = {}
    for grade in grades:
        distribution[grade.grade] = distribution.get(grade.grade, 0) + 1

    total_points = sum(GRADE_TO_POINTS[grade.grade] for grade in grades)
    return GpaSummary(gpa=total_points / len(grades), count=len(grades), distribution=distribution)

async def _load_grades(db, user_id: str) -> List[UserGrade]:
    grades = await db.user_grades.find({"user_id": user_id}).sort("created_at", 1).to_list(None)
    return [UserGrade(**grade) for grade in grades]

@router.get("/grades", response_model=List[UserGrade])
async def get_my_grades(current_user: User = Depends(get_current_user), db=Depends(get_db)):
    return await _load_grades(db, current_user.id)

@router.post("/grades", response_model=UserGrade)
async def add_grade(grade_data: UserGradeCreate, current_user: User = Depends(get_current_user), db=Depends(get_db)):
    course_code = (grade_data.course_code or "").strip().upper() or None
    grade = UserGrade(user_id=current_user.id, course_code=course_code, grade=grade_data.grade)
    await db.user_grades.insert_one(grade.model_dump())

    logger.info(f"User {current_user.id} recorded grade {grade.grade} for {course_code or 'unnamed course'}")
    return grade

@router.get("/grades/gpa", response_model=GpaSummary)
async def get_my_gpa(current_user: User = Depends(get_current_user), db=Depends(get_db)):
    return summarize_grades(await _load_grades(db, current_user.id))
