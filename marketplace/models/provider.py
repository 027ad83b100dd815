from sqlmodel import Field, SQLModel


class Provider(SQLModel, table=True):
    __tablename__ = "providers"
    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    bio: str | None = None
    document: str | None = None
    city: str | None = Field(default=None, index=True)
    state: str | None = Field(default=None, index=True)


class ProviderUpdate(SQLModel):
    bio: str | None = None
    document: str | None = None
    city: str | None = None
    state: str | None = None
