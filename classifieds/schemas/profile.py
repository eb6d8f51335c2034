from pydantic import BaseModel, Field

from classifieds.adapters.base import UserProfile


class ProfileOut(BaseModel):
    id: str
    email: str
    name: str | None = None
    location: str | None = None
    phone_number: str | None = None

    @classmethod
    def from_profile(cls, p: UserProfile) -> "ProfileOut":
        return cls(id=p.id, email=p.email, name=p.name, location=p.location, phone_number=p.phone_number)


class ProfileUpdate(BaseModel):
    """Only the fields present in the request body are written (merge)."""
    name: str | None = Field(default=None, max_length=200)
    location: str | None = Field(default=None, max_length=200)
    phone_number: str | None = Field(default=None, max_length=50)
