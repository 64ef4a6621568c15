from __future__ import annotations
import os
import shutil
import logging
import tempfile
from dataclasses import dataclass
from typing import Optional

from fastapi import APIRouter, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from captionsum.compressor import Compressor, ImageCodec
from captionsum.config import Settings, configure_logging, get_settings
from captionsum.errors import InputValidationError, ServiceError
from captionsum.generation import GeminiClient, GenerationInvoker, Generator
from captionsum.limits import CaptionGate, SummaryCache
from captionsum.prompts import caption_parts, summary_parts
from captionsum.transcripts import (
    TranscriptResolver,
    TranscriptSource,
    YouTubeTranscriptSource,
    default_candidates,
    validate_video_id,
)

logger = logging.getLogger(__name__)


class SummarizeReq(BaseModel):
    videoId: Optional[str] = None


@dataclass
class Services:
    settings: Settings
    compressor: Compressor
    resolver: TranscriptResolver
    captioner: GenerationInvoker
    summarizer: GenerationInvoker
    cache: SummaryCache
    gate: CaptionGate


def build_services(
    settings: Settings,
    *,
    codec: Optional[ImageCodec] = None,
    transcript_source: Optional[TranscriptSource] = None,
    generator: Optional[Generator] = None,
) -> Services:
    client = generator or GeminiClient(
        settings.gemini_api_key,
        base_url=settings.gemini_api_base,
        timeout=settings.generation_timeout,
    )
    return Services(
        settings=settings,
        compressor=Compressor(codec, strategy=settings.compression_strategy),
        resolver=TranscriptResolver(
            transcript_source or YouTubeTranscriptSource(),
            candidates=default_candidates(settings.primary_language, settings.secondary_language),
            timeout=settings.transcript_timeout,
            max_chars=settings.transcript_max_chars,
        ),
        captioner=GenerationInvoker(client, settings.caption_models),
        summarizer=GenerationInvoker(client, settings.summary_models),
        cache=SummaryCache(settings.summary_cache_size, settings.summary_cache_ttl),
        gate=CaptionGate(settings.max_concurrent_captions),
    )


router = APIRouter()


def _services(request: Request) -> Services:
    return request.app.state.services


def _remove_scratch(path: str) -> None:
    try:
        shutil.rmtree(path)
    except OSError as e:
        # never fails the request
        logger.warning("Failed to clean up %s: %s", path, e)


@router.get("/")
def root():
    return {"ok": True, "message": "captionsum: image captions + YouTube summaries"}


@router.post("/api/caption")
def caption(request: Request, image: Optional[UploadFile] = File(None)):
    svc = _services(request)
    if image is None:
        raise InputValidationError("image file is required")
    limit = svc.settings.max_upload_bytes
    data = image.file.read(limit + 1)
    if not data:
        raise InputValidationError("uploaded image is empty")
    if len(data) > limit:
        raise InputValidationError(f"uploaded image exceeds the {limit} byte limit")

    tmpdir = tempfile.mkdtemp(prefix="caption_", dir=svc.settings.scratch_dir)
    try:
        with open(os.path.join(tmpdir, "upload"), "wb") as f:
            f.write(data)

        result = svc.compressor.compress(data, svc.settings.caption_target_kb)
        with open(os.path.join(tmpdir, "compressed-upload.jpeg"), "wb") as f:
            f.write(result.data)

        with svc.gate.slot():
            generated = svc.captioner.invoke(caption_parts(result.data, result.mime_type))
    finally:
        _remove_scratch(tmpdir)

    return {"success": True, "caption": generated.text}


@router.post("/api/summarize")
def summarize(request: Request, req: SummarizeReq):
    svc = _services(request)
    video_id = validate_video_id(req.videoId)

    cached = svc.cache.get(video_id)
    if cached is not None:
        logger.info("Summary cache hit for %s", video_id)
        return cached

    logger.info("Processing video ID: %s", video_id)
    transcript = svc.resolver.resolve(video_id)
    generated = svc.summarizer.invoke(summary_parts(transcript))

    body = {
        "success": True,
        "videoId": video_id,
        "summary": generated.text,
        "transcriptLanguage": transcript.language,
        "modelUsed": generated.model,
    }
    svc.cache.put(video_id, body)
    return body


# ---------- error mapping ----------
def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return _failure(exc.status_code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _failure(400, "Malformed request body")


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return _failure(500, "Internal server error")


def create_app(
    settings: Optional[Settings] = None,
    *,
    codec: Optional[ImageCodec] = None,
    transcript_source: Optional[TranscriptSource] = None,
    generator: Optional[Generator] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="captionsum", version="1.0.0")
    app.state.services = build_services(
        settings, codec=codec, transcript_source=transcript_source, generator=generator
    )
    app.include_router(router)
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
    return app


app = create_app()
