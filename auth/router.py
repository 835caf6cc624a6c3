import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import get_db, utcnow
from . import schemas, utils

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/users",
    tags=["Users"]
)


@router.post("/register", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
def register(user: schemas.UserCreate, db: Database = Depends(get_db)):
    if db.users.find_one({"email": user.email}):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")

    user_data = {
        "name": user.name,
        "email": user.email,
        "password": utils.get_password_hash(user.password),
        "createdAt": utcnow(),
    }
    try:
        result = db.users.insert_one(user_data)
    except DuplicateKeyError:
        # Lost a race against a concurrent registration with the same email
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")

    user_data["_id"] = result.inserted_id
    logger.info("Registered user %s", result.inserted_id)
    return {
        "token": utils.create_access_token(str(result.inserted_id)),
        "user": utils.public_user(user_data),
    }


@router.post("/login", response_model=schemas.AuthResponse)
def login(form_data: schemas.UserLogin, db: Database = Depends(get_db)):
    user = db.users.find_one({"email": form_data.email})
    if not user or not utils.verify_password(form_data.password, user["password"]):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")

    return {
        "token": utils.create_access_token(str(user["_id"])),
        "user": utils.public_user(user),
    }


@router.get("/profile", response_model=schemas.UserInfo)
def read_profile(current_user: Dict[str, Any] = Depends(utils.get_current_user)):
    return utils.public_user(current_user)


@router.put("/profile", response_model=schemas.UserInfo)
def update_profile(
    update: schemas.UserUpdate,
    current_user: Dict[str, Any] = Depends(utils.get_current_user),
    db: Database = Depends(get_db),
):
    # Empty values leave the stored field untouched
    changes = {k: v for k, v in update.model_dump().items() if v}
    if changes:
        db.users.update_one({"_id": current_user["_id"]}, {"$set": changes})
        current_user = {**current_user, **changes}
    return utils.public_user(current_user)
