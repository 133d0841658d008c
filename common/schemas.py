from datetime import datetime
from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator
from common.security import MAX_PASSWORD_BYTES

class SignupRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v

class SignupResponse(BaseModel):
    message: str
    upi_id: str

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class LoginResponse(BaseModel):
    message: str
    token: str
    upi_id: str
    balance: int

class AccountProfile(BaseModel):
    """Account as shown to other users; never carries the password hash"""
    id: int
    name: str
    email: str
    upi_id: str = Field(validation_alias=AliasChoices("upi_id", "payment_id"))
    balance: int

    model_config = ConfigDict(from_attributes=True)

class TransferRequest(BaseModel):
    sender_upi_id: str
    receiver_upi_id: str
    # sign is checked by TransferService so that non-positive amounts report "Invalid amount"
    amount: int

class MessageResponse(BaseModel):
    message: str

class TransactionRecord(BaseModel):
    id: int
    sender_upi_id: str = Field(validation_alias=AliasChoices("sender_upi_id", "sender_payment_id"))
    receiver_upi_id: str = Field(validation_alias=AliasChoices("receiver_upi_id", "receiver_payment_id"))
    amount: int
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)
