from pydantic import BaseModel, ConfigDict, Field


class RepoLinkUpsert(BaseModel):
    repo_name: str = Field(pattern=r"^[\w.-]+/[\w.-]+$")  # "owner/repo"
    access_token: str = Field(min_length=1)
    default_branch: str = "main"


class RepoLinkResponse(BaseModel):
    """Repository link as shown to clients. The access token is never echoed."""

    model_config = ConfigDict(from_attributes=True)

    repo_name: str
    repo_url: str
    default_branch: str
    updated_at: str
