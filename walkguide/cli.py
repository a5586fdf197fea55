"""Command-line entrypoint for the walking guide."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from typing import Sequence

from dotenv import load_dotenv

from .backends import BackendRouter
from .config import GuideConfig, load_config
from .constants import DOTENV_FILENAME
from .interpreter import intent_to_debug, interpret
from .orchestrator import Orchestrator
from .preferences import JsonPreferenceStore
from .types import Backend, InteractionState

LOGGER = logging.getLogger("walkguide.cli")


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Walking guide: periodic scene narration with voice commands",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m walkguide.cli\n"
            "  python -m walkguide.cli --backend claude --camera 1\n"
            "  python -m walkguide.cli --image street.jpg\n"
            "  python -m walkguide.cli --interpret \"とまれ ジェミニ\"\n"
            "\n"
            "Live keys (type, then Enter):\n"
            "  <empty>  start listening for a command / cancel listening\n"
            "  r        resume automatic narration\n"
            "  p PATH   describe a picked image file\n"
            "  q        quit\n"
        ),
    )
    parser.add_argument("--interpret", type=str, help="Print the command intent for TEXT and exit")
    parser.add_argument("--image", type=str, help="Describe one image file aloud and exit")
    parser.add_argument(
        "--backend",
        type=str,
        choices=[backend.value for backend in Backend],
        help="Select and persist the vision backend",
    )
    parser.add_argument("--camera", type=int, default=0, help="Camera index (OpenCV VideoCapture)")
    parser.add_argument("--env-file", type=str, default=DOTENV_FILENAME, help="dotenv file with API keys")
    parser.add_argument(
        "--show-debug",
        action="store_true",
        help="Print debug info even when debug config is off",
    )
    return parser.parse_args(argv)


def _redacted(cfg: GuideConfig) -> GuideConfig:
    return replace(
        cfg,
        gemini_api_key="***" if cfg.gemini_api_key else None,
        claude_api_key="***" if cfg.claude_api_key else None,
        openai_api_key="***" if cfg.openai_api_key else None,
    )


def _build_orchestrator(cfg: GuideConfig, camera_index: int) -> Orchestrator:
    from .devices import GoogleSpeechRecognizer, OpenCVCamera, Pyttsx3Speech

    return Orchestrator(
        capture=OpenCVCamera(camera_index),
        analyzer=BackendRouter.from_config(cfg),
        speech=Pyttsx3Speech(),
        recognizer=GoogleSpeechRecognizer(),
        preferences=JsonPreferenceStore(cfg.prefs_path),
        cfg=cfg,
    )


async def _describe_file(orchestrator: Orchestrator, path: str) -> int:
    from .devices import FileCapture

    await orchestrator.start(narrate=False)
    outcome = await orchestrator.analyze_picked_image(FileCapture(path))
    if outcome is None or outcome.result is None:
        print(f"analysis failed: {outcome.error if outcome else 'busy'}")
        return 1
    print(outcome.result.text)
    print(f"backend={outcome.result.backend.value} urgent={outcome.result.urgent} latency_ms={outcome.result.latency_ms}")
    return 0


async def _run_live(orchestrator: Orchestrator) -> int:
    from .devices import FileCapture

    await orchestrator.start()
    loop = asyncio.get_running_loop()
    try:
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            command = line.strip()
            if command.lower() == "q":
                break
            if command.lower() == "r":
                await orchestrator.resume_narration()
            elif command.lower().startswith("p "):
                await orchestrator.analyze_picked_image(FileCapture(command[2:].strip()))
            elif orchestrator.state in (InteractionState.AWAITING_COMMAND, InteractionState.LISTENING):
                await orchestrator.cancel_listen()
            elif orchestrator.state is InteractionState.IDLE:
                await orchestrator.request_listen()
            else:
                LOGGER.info("Busy (%s); input ignored", orchestrator.state.value)
    finally:
        await orchestrator.shutdown()
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    if args.interpret is not None:
        intent = interpret(args.interpret)
        print(intent.kind.value)
        print(f"debug={intent_to_debug(intent)}")
        return 0

    load_dotenv(args.env_file)
    cfg = load_config()
    logging.basicConfig(
        level=logging.DEBUG if cfg.debug else logging.INFO,
        format="[%(asctime)s] %(levelname)s:%(name)s: %(message)s",
    )
    if cfg.debug or args.show_debug:
        print(f"config={_redacted(cfg)}")

    orchestrator = _build_orchestrator(cfg, args.camera)
    if args.backend:
        orchestrator.select_backend(Backend(args.backend))

    if args.image:
        return asyncio.run(_describe_file(orchestrator, args.image))
    try:
        return asyncio.run(_run_live(orchestrator))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
