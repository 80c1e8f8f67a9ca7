from pydantic import BaseModel, Field


class TokenResponse(BaseModel):
    AccessToken: str
    RefreshToken: str
    TokenType: str = "bearer"
    ExpiresIn: int
    UserId: int
    Email: str
    Name: str


class LoginRequest(BaseModel):
    Email: str = Field(..., max_length=100)
    Password: str = Field(..., max_length=128)


class RegisterRequest(BaseModel):
    Email: str = Field(..., max_length=100)
    Name: str = Field(..., max_length=50)
    Password: str = Field(..., max_length=128)


class RegisterResponse(BaseModel):
    UserId: int
    Message: str


class RefreshRequest(BaseModel):
    RefreshToken: str = Field(..., max_length=400)
