from types import SimpleNamespace

import pytest

from captionsum.errors import InputValidationError, NoTranscriptAvailable
from captionsum.transcripts import (
    AUTO_DETECTED,
    TRUNCATION_MARKER,
    TranscriptResolver,
    YouTubeTranscriptSource,
    truncate,
    validate_video_id,
)

from conftest import FakeSource, captions

VID = "dQw4w9WgXcQ"


@pytest.mark.parametrize("vid", ["dQw4w9WgXcQ", "abc-DEF_123", "___________"])
def test_valid_video_ids(vid):
    assert validate_video_id(vid) == vid


@pytest.mark.parametrize("vid", [None, "", "dQw4w9WgXc", "dQw4w9WgXcQQ", "dQw4w9 gXcQ", "dQw4w9WgXc!"])
def test_invalid_video_ids(vid):
    with pytest.raises(InputValidationError):
        validate_video_id(vid)


def test_invalid_id_makes_no_source_call():
    source = FakeSource({"hi": captions("x")})
    with pytest.raises(InputValidationError):
        TranscriptResolver(source).resolve("dQw4w9 gXcQ")
    assert source.calls == []


def test_primary_language_wins():
    source = FakeSource({"hi": captions("namaste", "duniya"), "en": captions("hello")})
    result = TranscriptResolver(source).resolve(VID)
    assert result.text == "namaste duniya"
    assert result.language == "Hindi"
    assert result.reply_in_language
    assert source.calls == [(VID, "hi")]


def test_falls_back_to_secondary_on_error():
    source = FakeSource({"hi": RuntimeError("no hindi"), "en": captions("hello", "world")})
    result = TranscriptResolver(source).resolve(VID)
    assert (result.text, result.language) == ("hello world", "English")
    assert not result.reply_in_language
    assert [lang for _, lang in source.calls] == ["hi", "en"]


def test_falls_back_to_auto_after_empty_and_timeout():
    source = FakeSource({
        "hi": [],
        "en": ("sleep", 0.5, captions("too late")),
        None: captions("auto", "text"),
    })
    result = TranscriptResolver(source, timeout=0.1).resolve(VID)
    assert (result.text, result.language) == ("auto text", AUTO_DETECTED)
    assert [lang for _, lang in source.calls] == ["hi", "en", None]


def test_all_candidates_fail():
    source = FakeSource({"hi": RuntimeError("a"), "en": [], None: ValueError("c")})
    with pytest.raises(NoTranscriptAvailable):
        TranscriptResolver(source).resolve(VID)
    assert len(source.calls) == 3


def test_unbounded_timeout_calls_source_directly():
    source = FakeSource({"hi": captions("direct")})
    assert TranscriptResolver(source, timeout=None).resolve(VID).text == "direct"


def test_long_transcript_is_truncated():
    source = FakeSource({"hi": captions("a" * 9000)})
    result = TranscriptResolver(source).resolve(VID)
    assert result.text == "a" * 8000 + TRUNCATION_MARKER
    assert result.length == 9000
    assert result.truncated


def test_short_transcript_untouched():
    text, truncated = truncate("b" * 500, 8000)
    assert text == "b" * 500
    assert not truncated


# ---------- youtube_transcript_api adapter ----------
def snippet(text):
    return SimpleNamespace(text=text, start=0.0, duration=1.5)


class FakeApi:
    def __init__(self, listed=()):
        self.listed = listed
        self.fetched = []

    def fetch(self, video_id, languages):
        self.fetched.append((video_id, languages))
        return [snippet("one"), snippet("two")]

    def list(self, video_id):
        return iter(self.listed)


def listed_transcript(text, generated):
    return SimpleNamespace(is_generated=generated, fetch=lambda: [snippet(text)])


def test_source_fetches_requested_language():
    api = FakeApi()
    out = YouTubeTranscriptSource(api).fetch(VID, "en")
    assert api.fetched == [(VID, ["en"])]
    assert [c.text for c in out] == ["one", "two"]
    assert out[0].duration == 1.5


def test_source_auto_prefers_generated():
    api = FakeApi([listed_transcript("manual", False), listed_transcript("generated", True)])
    out = YouTubeTranscriptSource(api).fetch(VID, None)
    assert [c.text for c in out] == ["generated"]


def test_source_auto_falls_back_to_first_listed():
    api = FakeApi([listed_transcript("manual", False)])
    assert [c.text for c in YouTubeTranscriptSource(api).fetch(VID, None)] == ["manual"]


def test_source_auto_nothing_listed():
    assert YouTubeTranscriptSource(FakeApi()).fetch(VID, None) == []
