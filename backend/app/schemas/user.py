from pydantic import BaseModel, ConfigDict


class UserOnboard(BaseModel):
    name: str
    display_name: str | None = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    display_name: str | None = None
    created_at: str
