import pytest

from app.models.grade import UserGrade
from app.routers.grades import summarize_grades

from conftest import auth_headers

async def test_add_and_list_grades(client, db, buyer, other_user):
    first = await client.post("/api/grades", json={"course_code": "stk1110", "grade": "b"}, headers=auth_headers(buyer))
    await client.post("/api/grades", json={"course_code": "MAT1100", "grade": "A"}, headers=auth_headers(buyer))
    await client.post("/api/grades", json={"course_code": "IN1000", "grade": "C"}, headers=auth_headers(other_user))

    assert first.status_code == 200
    assert first.json()["course_code"] == "STK1110"
    assert first.json()["grade"] == "B"

    response = await client.get("/api/grades", headers=auth_headers(buyer))

    assert [(g["course_code"], g["grade"]) for g in response.json()] == [("STK1110", "B"), ("MAT1100", "A")]
    assert await db.user_grades.count_documents({"user_id": buyer.id}) == 2

async def test_gpa_averages_grade_points(client, buyer):
    for grade in ("A", "B", "B", "F"):
        await client.post("/api/grades", json={"grade": grade}, headers=auth_headers(buyer))

    response = await client.get("/api/grades/gpa", headers=auth_headers(buyer))

    assert response.status_code == 200
    assert response.json() == {"gpa": 3.25, "count": 4, "distribution": {"A": 1, "B": 2, "F": 1}}

async def test_gpa_is_null_without_grades(client, buyer):
    response = await client.get("/api/grades/gpa", headers=auth_headers(buyer))

    assert response.json() == {"gpa": None, "count": 0, "distribution": {}}

async def test_unknown_grade_is_rejected(client, db, buyer):
    response = await client.post("/api/grades", json={"course_code": "STK1110", "grade": "G"}, headers=auth_headers(buyer))

    assert response.status_code == 400
    assert await db.user_grades.count_documents({}) == 0

@pytest.mark.parametrize("method,path", [("get", "/api/grades"), ("post", "/api/grades"), ("get", "/api/grades/gpa")])
async def test_grades_require_authentication(client, method, path):
    response = await client.request(method.upper(), path, json={"grade": "A"} if method == "post" else None)
    assert response.status_code == 401

def test_summarize_grades():
    grades = [UserGrade(user_id="u1", grade=grade) for grade in ("E", "D", "C")]

    summary = summarize_grades(grades)

    assert summary.gpa == 2.0
    assert summary.count == 3
