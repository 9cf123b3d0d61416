import logging
from typing import Any

from pydantic import ValidationError
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request
from starlette.types import Message, Receive

from blurb_studio.api.schemas import GenerateJsonBody
from blurb_studio.config import Settings
from blurb_studio.errors import AppError, ErrorCode
from blurb_studio.prompts.builder import Mode
from blurb_studio.security.sanitizer import base_content_type, check_declared_upload
from blurb_studio.workflow.generation import CoverImage, GenerationRequest

logger = logging.getLogger(__name__)

# room for the text fields and multipart boundaries around the image
FORM_OVERHEAD_BYTES = 256 * 1024
MAX_FORM_FIELDS = 16
FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


async def parse_generation_request(request: Request, settings: Settings) -> GenerationRequest:
    content_type = base_content_type(request.headers.get("content-type"))
    if content_type == "application/json" or content_type.endswith("+json"):
        return await _parse_json(request)
    if content_type in FORM_CONTENT_TYPES:
        return await _parse_form(request, settings)
    raise AppError(ErrorCode.MALFORMED_BODY, detail=f"content_type={content_type or 'none'}")


async def _parse_json(request: Request) -> GenerationRequest:
    try:
        payload: Any = await request.json()
    except ValueError as exc:
        raise AppError(ErrorCode.MALFORMED_BODY, detail="invalid json") from exc
    if not isinstance(payload, dict):
        raise AppError(ErrorCode.MALFORMED_BODY, detail=f"json root={type(payload).__name__}")
    try:
        body = GenerateJsonBody.model_validate(payload)
    except ValidationError as exc:
        fields = ",".join(str(error["loc"][0]) for error in exc.errors() if error.get("loc"))
        raise AppError(ErrorCode.MALFORMED_BODY, detail=f"invalid fields={fields}") from exc

    return GenerationRequest(
        mode=Mode.parse(body.mode),
        title=body.title or "",
        author=body.author or "",
        source_text=body.input or body.text_source or "",
    )


async def _parse_form(request: Request, settings: Settings) -> GenerationRequest:
    body_limit = settings.max_upload_bytes + FORM_OVERHEAD_BYTES
    declared_length = request.headers.get("content-length", "")
    if declared_length.isdigit() and int(declared_length) > body_limit:
        raise AppError(ErrorCode.IMAGE_TOO_LARGE, detail=f"content_length={declared_length}")

    # chunked bodies carry no Content-Length, so the limit is enforced while reading
    bounded = Request(request.scope, receive=_bounded_receive(request.receive, body_limit))
    try:
        form = await bounded.form(max_files=1, max_fields=MAX_FORM_FIELDS)
    except (MultiPartException, HTTPException, ValueError) as exc:
        raise AppError(ErrorCode.MALFORMED_BODY, detail=f"multipart: {exc}") from exc

    try:
        mode = Mode.parse(_form_text(form, "mode"))
        title = _form_text(form, "title")
        author = _form_text(form, "author")
        source_text = _form_text(form, "textSource")
        cover_image = await _read_cover_image(form.get("coverImage"), settings.max_upload_bytes)
    finally:
        await form.close()

    return GenerationRequest(
        mode=mode,
        title=title,
        author=author,
        source_text=source_text,
        cover_image=cover_image,
    )


def _form_text(form: FormData, name: str) -> str:
    value = form.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise AppError(ErrorCode.MALFORMED_BODY, detail=f"field {name} is a file")
    return value


async def _read_cover_image(value: UploadFile | str | None, max_bytes: int) -> CoverImage | None:
    if value is None:
        return None
    if isinstance(value, str):
        if value.strip():
            raise AppError(ErrorCode.MALFORMED_BODY, detail="coverImage is not a file")
        return None
    if not value.filename and not value.size:
        # browsers send an empty part when no file was picked
        return None

    check_declared_upload(value.content_type, value.size, max_bytes)
    data = await value.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise AppError(ErrorCode.IMAGE_TOO_LARGE, detail=f"read>{max_bytes}")
    logger.info(
        "upload.accepted filename=%s content_type=%s bytes=%d",
        (value.filename or "")[:80],
        value.content_type,
        len(data),
    )
    return CoverImage(data=data, content_type=value.content_type or "", filename=value.filename or "")


def _bounded_receive(receive: Receive, limit: int) -> Receive:
    received = 0

    async def wrapped() -> Message:
        nonlocal received
        message = await receive()
        if message["type"] == "http.request":
            received += len(message.get("body", b""))
            if received > limit:
                raise AppError(ErrorCode.IMAGE_TOO_LARGE, detail=f"body>{limit}")
        return message

    return wrapped
