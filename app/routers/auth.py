from fastapi import APIRouter, Depends, HTTPException
from datetime import timedelta

from app.models.user import Token, UserCreate, UserLogin, User
from app.db.session import get_db
from app.core.dependencies import get_settings
from app.services.auth import (
    hash_password,
    create_access_token,
    get_current_user,
    verify_password,
)

router = APIRouter()

def _issue_token(user_id: str, config) -> dict:
    access_token_expires = timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": user_id}, config=config, expires_delta=access_token_expires
    )
    return {"access_token": access_token, "token_type": "bearer"}

@router.post("/auth/register", response_model=Token)
async def register(user_data: UserCreate, db=Depends(get_db), config=Depends(get_settings)):
    existing_user = await db.users.find_one({"$or": [{"email": user_data.email}, {"username": user_data.username}]})
    if existing_user:
        raise HTTPException(status_code=400, detail="User already exists")

    user_obj = User(**user_data.model_dump(exclude={"password"}))
    user_doc = user_obj.model_dump()
    user_doc["hashed_password"] = hash_password(user_data.password)
    await db.users.insert_one(user_doc)

    return _issue_token(user_obj.id, config)

@router.post("/auth/login", response_model=Token)
async def login(user_data: UserLogin, db=Depends(get_db), config=Depends(get_settings)):
    user = await db.users.find_one({"email": user_data.email})
    if not user or not verify_password(user_data.password, user["hashed_password"]):
        raise HTTPException(status_code=400, detail="Incorrect email or password")

    return _issue_token(user["id"], config)

@router.get("/auth/me", response_model=User)
async def me(current_user: User = Depends(get_current_user)):
    return current_user
