from fastapi import APIRouter
from pydantic import BaseModel

from cupbracket.auth import login_admin

router = APIRouter()


class AdminLoginRequest(BaseModel):
    password: str


class AdminLoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


@router.post("/admin/login", response_model=AdminLoginResponse)
def admin_login(body: AdminLoginRequest):
    """Exchange the admin password for a bearer token"""
    return AdminLoginResponse(access_token=login_admin(body.password))
