from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    # Wire format is camelCase; Python attributes stay snake_case.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterIn(CamelModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class LoginIn(CamelModel):
    email: EmailStr
    password: str


class LoginOut(CamelModel):
    token: str
    expires_in: int


class VerifyIn(CamelModel):
    email: EmailStr
    verification_code: str = Field(min_length=1, max_length=16)


class ResendVerifyIn(CamelModel):
    email: EmailStr


class MessageOut(BaseModel):
    message: str
