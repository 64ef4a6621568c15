from __future__ import annotations
import base64
from typing import List

from captionsum.generation import Part
from captionsum.transcripts import TranscriptResult

CAPTION_PROMPT = """
You are a top-tier social media strategist with a flair for viral content.

Given an image, write exactly two highly engaging captions (1-2 sentences each), optimized for Instagram or Twitter.

Each caption must:
- Be playful and catchy using witty, humorous, or clever language.
- Include relevant and expressive emojis to enhance visual appeal.
- Use 2-3 trending or niche hashtags.
- Match the tone of the platform:
- Instagram: aesthetic, aspirational
- Twitter: punchy, conversational
- Encourage audience interaction using questions, calls-to-action, or relatable humor.
Format the output clearly so each caption is easy to copy-paste for social media.
"""


def text_part(text: str) -> Part:
    return {"text": text}


def image_part(data: bytes, mime_type: str = "image/jpeg") -> Part:
    return {"inline_data": {"mime_type": mime_type, "data": base64.b64encode(data).decode("ascii")}}


def caption_parts(image: bytes, mime_type: str = "image/jpeg") -> List[Part]:
    return [image_part(image, mime_type), text_part(CAPTION_PROMPT)]


def summary_prompt(transcript: TranscriptResult) -> str:
    if transcript.reply_in_language:
        lang = transcript.language
        return (f"Summarize the following {lang} transcript of a YouTube video in {lang}:"
                f"\n\n{transcript.text}")
    return f"Summarize the following English transcript of a YouTube video:\n\n{transcript.text}"


def summary_parts(transcript: TranscriptResult) -> List[Part]:
    return [text_part(summary_prompt(transcript))]
