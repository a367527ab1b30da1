from pydantic import BaseModel


class LoginRequest(BaseModel):
    password: str = ""


class AuthResult(BaseModel):
    success: bool
    message: str
