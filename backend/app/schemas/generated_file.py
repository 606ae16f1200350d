"""Generated file schemas.

``GeneratedFileSpec`` / ``GeneratedPayload`` validate the JSON the model is
asked to return; ``GeneratedFileResponse`` is the stored row.
"""

from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_LANGUAGE = "typescript"


class GeneratedFileSpec(BaseModel):
    filepath: str
    content: str
    language: str = DEFAULT_LANGUAGE

    @field_validator("language", mode="before")
    @classmethod
    def _default_language(cls, value: object) -> object:
        # Models send null or "" for files they could not classify
        return value or DEFAULT_LANGUAGE


class GeneratedPayload(BaseModel):
    files: list[GeneratedFileSpec]
    explanation: str | None = None


class GeneratedFileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    task_id: str
    file_path: str
    file_content: str
    language: str
    status: str
    created_at: str


class GenerateResponse(BaseModel):
    success: bool = True
    files_generated: int
    files: list[GeneratedFileSpec]
    explanation: str
    parsed: bool = True
