"""Code generator — asks the model for a set of files and stores them as drafts.

The model is told to answer with ``{"files": [{filepath, content, language}],
"explanation": ...}``. The JSON may arrive bare or inside a ```json fence.
Anything that does not validate is kept as a single plain-text file instead
of failing the request, so model output is never lost.
"""

import logging
import re
import uuid
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db import utcnow
from backend.app.errors import UpstreamError
from backend.app.models.execution_log import LogType
from backend.app.models.generated_file import FileStatus, GeneratedFile
from backend.app.schemas.generated_file import GeneratedFileSpec, GeneratedPayload
from backend.app.services.audit import append_log
from backend.app.services.broadcaster import (
    INSERT,
    broadcast_all,
    file_change_event,
    log_created_event,
    task_change_event,
)
from backend.app.services.llm_client import GeminiClient
from backend.app.services.prompt_engine import PromptEngine
from backend.app.services.task_store import get_task

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

GENERATION_TEMPERATURE = 0.7
GENERATION_MAX_TOKENS = 8000

FALLBACK_FILEPATH = "generated-code.txt"
FALLBACK_EXPLANATION = "Generated code (parsing failed, showing raw output)"
DEFAULT_EXPLANATION = "Code generated successfully"

_FENCED_JSON = re.compile(r"```json\s*\n(.*?)\n\s*```", re.DOTALL)


@dataclass(slots=True)
class GenerationResult:
    files: list[GeneratedFileSpec]
    explanation: str
    parsed: bool


def parse_generation(raw: str) -> tuple[GeneratedPayload, bool]:
    """Parse model output into files. Returns the payload and whether parsing succeeded.

    An unparseable answer, or one with no files, becomes one ``text`` file
    holding the raw output.
    """
    match = _FENCED_JSON.search(raw)
    candidate = match.group(1).strip() if match else raw.strip()
    try:
        payload = GeneratedPayload.model_validate_json(candidate)
    except ValidationError as exc:
        logger.warning("[CODEGEN] Model output is not valid file JSON: %s", exc.errors()[:1])
    else:
        if payload.files:
            return payload, True
        logger.warning("[CODEGEN] Model returned an empty file list")

    fallback = GeneratedPayload(
        files=[GeneratedFileSpec(filepath=FALLBACK_FILEPATH, content=raw, language="text")],
        explanation=FALLBACK_EXPLANATION,
    )
    return fallback, False


class CodeGenerator:
    def __init__(
        self, session_factory: SessionFactory, llm: GeminiClient, prompts: PromptEngine
    ) -> None:
        self._session_factory = session_factory
        self._llm = llm
        self._prompts = prompts

    async def generate(self, task_id: str, user_id: str) -> GenerationResult:
        async with self._session_factory() as db:
            task = await get_task(db, task_id, user_id)
            description = task.description

        logger.info("[CODEGEN] Generating code for task %s", task_id)
        response = await self._llm.generate(
            self._prompts.render_code_generation(description),
            temperature=GENERATION_TEMPERATURE,
            max_output_tokens=GENERATION_MAX_TOKENS,
        )
        if not response.text:
            raise UpstreamError("No response from AI")

        payload, parsed = parse_generation(response.text)
        explanation = payload.explanation or DEFAULT_EXPLANATION
        paths = [f.filepath for f in payload.files]

        async with self._session_factory() as db:
            now = utcnow()
            rows = [
                GeneratedFile(
                    id=str(uuid.uuid4()),
                    task_id=task_id,
                    user_id=user_id,
                    file_path=item.filepath,
                    file_content=item.content,
                    language=item.language,
                    status=FileStatus.DRAFT,
                    created_at=now,
                )
                for item in payload.files
            ]
            db.add_all(rows)

            task = await get_task(db, task_id, user_id)
            task.generated_files_count = len(rows)
            task.result = explanation
            task.updated_at = now

            entry = await append_log(
                db,
                task_id,
                LogType.SUCCESS,
                f"Generated {len(rows)} files: {', '.join(paths)}",
            )
            await db.commit()
            events = [file_change_event(row, INSERT) for row in rows]
            events += [task_change_event(task), log_created_event(entry, user_id)]

        await broadcast_all(events)
        logger.info("[CODEGEN] Stored %d draft files for task %s", len(rows), task_id)
        return GenerationResult(files=payload.files, explanation=explanation, parsed=parsed)
