from __future__ import annotations
import argparse
import sys
from pathlib import Path

from captionsum.compressor import STRATEGIES, Compressor
from captionsum.config import configure_logging, get_settings
from captionsum.errors import ServiceError
from captionsum.main import build_services
from captionsum.prompts import caption_parts, summary_parts


def _caption(args, svc) -> int:
    data = Path(args.image).read_bytes()
    result = svc.compressor.compress(data, args.target_kb or svc.settings.caption_target_kb)
    print(f"> compressed to {result.size_kb:.1f}KB (quality {result.quality})")
    generated = svc.captioner.invoke(caption_parts(result.data, result.mime_type))
    print(generated.text)
    return 0


def _summarize(args, svc) -> int:
    print("> fetching transcript...")
    transcript = svc.resolver.resolve(args.video_id)
    print(f"> {transcript.language} transcript, {transcript.length:,} chars")
    generated = svc.summarizer.invoke(summary_parts(transcript))
    print(f"\n===== summary ({generated.model}) =====\n")
    print(generated.text)
    return 0


def _compress(args, svc) -> int:
    compressor = Compressor(strategy=args.strategy or svc.settings.compression_strategy)
    result = compressor.compress(Path(args.image).read_bytes(),
                                 args.target_kb or svc.settings.caption_target_kb)
    Path(args.out).write_bytes(result.data)
    print(f"{args.out}: {result.width}x{result.height}, quality {result.quality}, "
          f"{result.size_kb:.1f}KB, {result.attempts} encodes")
    return 0


def _serve(args, svc) -> int:
    import uvicorn
    uvicorn.run("captionsum.main:app", host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="captionsum")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("caption", help="social-media captions for an image")
    p.add_argument("image")
    p.add_argument("--target-kb", type=int, default=None)
    p.set_defaults(func=_caption)

    p = sub.add_parser("summarize", help="summarize a YouTube video by id")
    p.add_argument("video_id")
    p.set_defaults(func=_summarize)

    p = sub.add_parser("compress", help="compress an image to a target size")
    p.add_argument("image")
    p.add_argument("out")
    p.add_argument("--target-kb", type=int, default=None)
    p.add_argument("--strategy", choices=sorted(STRATEGIES), default=None)
    p.set_defaults(func=_compress)

    p = sub.add_parser("serve", help="run the HTTP API")
    p.add_argument("--host", default="0.0.0.0")
    p.add_argument("--port", type=int, default=3000)
    p.set_defaults(func=_serve)
    return ap


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)
    svc = build_services(settings)
    try:
        return args.func(args, svc)
    except ServiceError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
