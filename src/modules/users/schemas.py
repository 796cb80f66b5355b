"""Pydantic schemas for users."""

from pydantic import BaseModel, ConfigDict, Field, computed_field

from src.shared.enums import UserRole


class UserPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    user_id: str = Field(serialization_alias="id")
    email: str
    first_name: str
    last_name: str
    role: UserRole
    specialization: str | None = None
    phone: str | None = None

    @computed_field(return_type=str)
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
