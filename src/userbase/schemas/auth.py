"""Pydantic schemas for login."""

from pydantic import BaseModel


class LoginRequest(BaseModel):
    # Deployments without email log in by username instead
    email: str = ""
    username: str = ""
    password: str = ""


class TokenResponse(BaseModel):
    token: str
