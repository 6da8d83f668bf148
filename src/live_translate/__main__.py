import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from live_translate.config import LiveTranslateConfig
from live_translate.log_format import ColoredFormatter

ENV_FILE_PATH = Path.home() / ".config" / "live-translate" / "env"

logger = logging.getLogger("live_translate")


def _load_env_file(path: Path = ENV_FILE_PATH) -> None:
    if not path.exists():
        return
    with open(path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip().strip("'\"")
            if key not in os.environ:
                os.environ[key] = value


def _configure_logging(verbose: bool) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(ColoredFormatter(datefmt="%H:%M:%S"))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)

    for noisy in ("websockets", "httpcore", "httpx", "openai"):
        logging.getLogger(noisy).setLevel(logging.INFO if verbose else logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="live-translate",
        description="Live speech transcription and translation",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Run the local server (default)")
    serve_parser.add_argument("--host", help="Bind address")
    serve_parser.add_argument("--port", type=int, help="Bind port")
    serve_parser.add_argument(
        "--capture",
        choices=["browser", "sounddevice"],
        help="Where microphone audio comes from",
    )

    verify_parser = subparsers.add_parser(
        "verify-scribe", help="Stream a raw 16 kHz mono s16le file to the realtime service"
    )
    verify_parser.add_argument("pcm_path", nargs="?", help="Path to the .pcm file")

    return parser


def main(argv: list[str] | None = None) -> None:
    _load_env_file()
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    config = LiveTranslateConfig()
    if args.command == "verify-scribe":
        sys.exit(_run_verify(config, args.pcm_path))
    _run_server(config, args)


def _run_verify(config: LiveTranslateConfig, pcm_path: str | None) -> int:
    from live_translate.factory import create_token_minter
    from live_translate.adapters.elevenlabs_realtime import ElevenLabsRealtimeTranscriber
    from live_translate.verify import verify_scribe

    api_key = config.elevenlabs_key()
    if not api_key:
        print("Missing ELEVENLABS_API_KEY.", file=sys.stderr)
        return 1
    if not pcm_path:
        print("Usage: live-translate verify-scribe <path-to-16khz-mono-s16le.pcm>", file=sys.stderr)
        return 1
    path = Path(pcm_path)
    if not path.is_file():
        print(f"File not found: {pcm_path}", file=sys.stderr)
        return 1

    return asyncio.run(
        verify_scribe(
            path.read_bytes(),
            token_minter=create_token_minter(config, api_key),
            transcriber=ElevenLabsRealtimeTranscriber(url=config.elevenlabs_realtime_url),
        )
    )


def _run_server(config: LiveTranslateConfig, args: argparse.Namespace) -> None:
    import uvicorn

    from live_translate.server.app import create_app

    if getattr(args, "host", None):
        config.host = args.host
    if getattr(args, "port", None):
        config.port = args.port
    if getattr(args, "capture", None):
        config.capture_source = args.capture

    if not config.elevenlabs_key():
        logger.warning("ELEVENLABS_API_KEY not set, the page must supply a key")
    if not config.openai_key():
        logger.warning("OPENAI_API_KEY not set, the page must supply a key")

    app = create_app(config)
    logger.info("Serving on http://%s:%d", config.host, config.port)
    uvicorn.run(app, host=config.host, port=config.port, log_config=None)


if __name__ == "__main__":
    main()
