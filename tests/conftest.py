import io
import os
import time
from contextlib import contextmanager

import pytest
from PIL import Image

from captionsum.compressor import ImageAsset
from captionsum.config import Settings
from captionsum.errors import ModelNotFound
from captionsum.transcripts import Caption


def gemini_payload(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def make_image(width, height, fmt="PNG", mode="RGB", noise=False):
    if noise:
        img = Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))
        if mode != "RGB":
            img = img.convert(mode)
    else:
        img = Image.new(mode, (width, height), color=(120, 180, 40, 255)[: len(mode)])
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


class FakeCodec:
    """size_kb(quality) decides how big each encode is."""

    def __init__(self, width, height, size_kb):
        self.width = width
        self.height = height
        self.size_kb = size_kb
        self.calls = []

    def decode(self, data):
        return ImageAsset(data=data, width=self.width, height=self.height, mime_type="image/png")

    @contextmanager
    def encoder(self, asset, width, height):
        def encode(quality):
            self.calls.append((width, height, quality))
            return b"x" * int(self.size_kb(quality) * 1024)

        yield encode


class FakeSource:
    """
    ``outcomes`` maps language (None = auto) to a list of captions, an
    exception instance, or ("sleep", seconds, captions).
    """

    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.calls = []

    def fetch(self, video_id, language):
        self.calls.append((video_id, language))
        out = self.outcomes.get(language, [])
        if isinstance(out, Exception):
            raise out
        if isinstance(out, tuple) and out[0] == "sleep":
            time.sleep(out[1])
            return out[2]
        return out


class FakeGenerator:
    """``responses`` maps model id to a payload dict or an exception instance."""

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def generate(self, model, parts):
        self.calls.append((model, list(parts)))
        out = self.responses.get(model, ModelNotFound(model))
        if isinstance(out, Exception):
            raise out
        return out


def captions(*texts):
    return [Caption(text=t, start=float(i), duration=1.0) for i, t in enumerate(texts)]


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        gemini_api_key="test-key",
        caption_models=("cap-a", "cap-b"),
        summary_models=("sum-a", "sum-b", "sum-c"),
        transcript_timeout=1.0,
        scratch_dir=str(tmp_path),
        max_concurrent_captions=2,
    )
