from enum import Enum

from sqlmodel import Field, SQLModel


class UserRole(str, Enum):
    CLIENT = "CLIENT"
    PROVIDER = "PROVIDER"
    ADMIN = "ADMIN"


class UserBase(SQLModel):
    name: str
    email: str = Field(unique=True, index=True)
    phone: str | None = None
    role: UserRole = UserRole.CLIENT


class User(UserBase, table=True):
    __tablename__ = "users"
    id: int | None = Field(default=None, primary_key=True)
