from pydantic import BaseModel, Field


class PaymentReturnRequest(BaseModel):
    Url: str = Field(..., max_length=2000)


class PaymentReturnOut(BaseModel):
    Status: str
    Title: str | None
    Description: str | None
    DurationMs: int
    CleanUrl: str

    class Config:
        from_attributes = True
