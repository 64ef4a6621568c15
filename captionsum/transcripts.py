from __future__ import annotations
import re
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from youtube_transcript_api import YouTubeTranscriptApi

from captionsum.errors import InputValidationError, NoTranscriptAvailable
from captionsum.fallback import CandidatesExhausted, try_in_order

logger = logging.getLogger(__name__)

VIDEO_ID_RE = re.compile(r"[A-Za-z0-9_-]{11}")
TRUNCATION_MARKER = " ... [transcript truncated]"
AUTO_DETECTED = "Auto-detected"


def validate_video_id(video_id: Optional[str]) -> str:
    """YouTube ids are exactly 11 chars of [A-Za-z0-9_-]."""
    if not video_id:
        raise InputValidationError("videoId is required")
    if not VIDEO_ID_RE.fullmatch(video_id):
        raise InputValidationError(f"Invalid videoId: {video_id!r}")
    return video_id


@dataclass(frozen=True)
class Caption:
    text: str
    start: float = 0.0
    duration: float = 0.0


@dataclass(frozen=True)
class TranscriptCandidate:
    language: Optional[str]  # None = let the source pick
    name: str
    reply_in_language: bool = False

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class TranscriptResult:
    text: str
    length: int
    language: str
    truncated: bool = False
    reply_in_language: bool = False


class TranscriptSource(Protocol):
    def fetch(self, video_id: str, language: Optional[str]) -> Sequence[Caption]: ...


class TranscriptTimeout(Exception):
    pass


class EmptyTranscript(Exception):
    pass


def default_candidates(primary=("hi", "Hindi"), secondary=("en", "English")) -> List[TranscriptCandidate]:
    return [
        TranscriptCandidate(primary[0], primary[1], reply_in_language=True),
        TranscriptCandidate(secondary[0], secondary[1]),
        TranscriptCandidate(None, AUTO_DETECTED),
    ]


# ---------------------------
# youtube_transcript_api source
# ---------------------------
class YouTubeTranscriptSource:
    def __init__(self, api: Optional[YouTubeTranscriptApi] = None):
        self.api = api or YouTubeTranscriptApi()

    def fetch(self, video_id: str, language: Optional[str]) -> List[Caption]:
        if language:
            fetched = self.api.fetch(video_id, languages=[language])
        else:
            # auto-generated captions first, else whatever is listed first
            transcripts = list(self.api.list(video_id))
            if not transcripts:
                return []
            generated = [t for t in transcripts if t.is_generated]
            fetched = (generated or transcripts)[0].fetch()
        return [Caption(text=s.text, start=s.start, duration=s.duration) for s in fetched]


# ---------------------------
# text helpers
# ---------------------------
def join_captions(captions: Sequence[Caption]) -> str:
    return " ".join(c.text for c in captions)


def truncate(text: str, max_chars: int) -> tuple[str, bool]:
    if len(text) <= max_chars:
        return text, False
    return text[:max_chars] + TRUNCATION_MARKER, True


class TranscriptResolver:
    """
    Tries each candidate in order, each fetch bounded by ``timeout`` seconds.

    A timed-out fetch keeps running on its worker thread; its result is
    dropped. youtube_transcript_api gives no way to cancel the request.
    """

    def __init__(
        self,
        source: TranscriptSource,
        candidates: Optional[Sequence[TranscriptCandidate]] = None,
        timeout: Optional[float] = 10.0,
        max_chars: int = 8000,
    ):
        self.source = source
        self.candidates = list(candidates or default_candidates())
        self.timeout = timeout
        self.max_chars = max_chars

    def _fetch(self, video_id: str, cand: TranscriptCandidate) -> Sequence[Caption]:
        logger.info("Fetching %s transcript for %s", cand.name, video_id)
        if self.timeout is None:
            captions = self.source.fetch(video_id, cand.language)
        else:
            executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="transcript")
            future = executor.submit(self.source.fetch, video_id, cand.language)
            try:
                captions = future.result(timeout=self.timeout)
            except FutureTimeout:
                future.cancel()
                raise TranscriptTimeout(f"timed out after {self.timeout}s") from None
            finally:
                executor.shutdown(wait=False)
        if not captions:
            raise EmptyTranscript("empty transcript")
        return captions

    def resolve(self, video_id: str) -> TranscriptResult:
        validate_video_id(video_id)
        try:
            cand, captions = try_in_order(
                self.candidates,
                lambda c: self._fetch(video_id, c),
                is_soft=lambda exc: True,
            )
        except CandidatesExhausted as e:
            tried = ", ".join(f"{c}: {err}" for c, err in e.failures)
            logger.warning("No transcript for %s (%s)", video_id, tried)
            raise NoTranscriptAvailable("No transcript available.") from e

        text = join_captions(captions)
        length = len(text)
        text, truncated = truncate(text, self.max_chars)
        logger.info("%s transcript found for %s (%d chars%s)",
                    cand.name, video_id, length, ", truncated" if truncated else "")
        return TranscriptResult(
            text=text, length=length, language=cand.name,
            truncated=truncated, reply_in_language=cand.reply_in_language,
        )

