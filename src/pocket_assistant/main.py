"""
Main entry point for the pocket assistant voice client.
"""

import argparse
import asyncio
import logging
import sys
import threading

from pocket_assistant.config import get_settings
from pocket_assistant.intent.extractor import LocalExtractor
from pocket_assistant.intent.responses import describe_intent
from pocket_assistant.services import ServiceContext
from pocket_assistant.voice.errors import PermissionDenied, VoicePipelineError
from pocket_assistant.voice.schemas import PipelineSuccess


def setup_logging() -> None:
    """Configure application logging."""
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    p = argparse.ArgumentParser(prog="pocket-assistant", description="Voice command client")
    p.add_argument(
        "--mode",
        choices=["text", "voice"],
        default="text",
        help="Extract intents from typed text, or run the voice pipeline",
    )
    p.add_argument("--text", help="Command text (text mode); read from stdin when omitted")
    p.add_argument(
        "--dispatch",
        choices=["remote", "local"],
        default=settings.dispatch_source,
        help="Answer with the remote assistant or locally (default: POCKET_DISPATCH_SOURCE or 'remote')",
    )
    p.add_argument(
        "--api-url",
        default=settings.api_base_url,
        help="Assistant backend URL (default: POCKET_API_BASE_URL)",
    )
    p.add_argument(
        "--once",
        action="store_true",
        help="Voice mode: process a single command and exit",
    )
    return p


async def run_text(args: argparse.Namespace) -> None:
    extractor = LocalExtractor()
    lines = [args.text] if args.text else [line for line in sys.stdin.read().splitlines() if line.strip()]
    for line in lines:
        intent = extractor.extract(line)
        print(intent.model_dump_json(exclude_none=True))
        print(describe_intent(intent))


def read_line() -> "asyncio.Future[str | None]":
    """
    Read one line from stdin without tying up the event loop.

    The read runs on a daemon thread, so a keypress that never comes does not
    keep the process alive once the loop is done. Resolves to None at EOF.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[str | None] = loop.create_future()

    def _deliver(line: str | None) -> None:
        if not future.done():
            future.set_result(line)

    def _read() -> None:
        line = sys.stdin.readline()
        try:
            loop.call_soon_threadsafe(_deliver, line if line else None)
        except RuntimeError:
            # Loop already closed; nobody is waiting for this line.
            pass

    threading.Thread(target=_read, name="stdin-reader", daemon=True).start()
    return future


async def run_voice(args: argparse.Namespace) -> None:
    logger = logging.getLogger(__name__)
    settings = get_settings().model_copy(
        update={"dispatch_source": args.dispatch, "api_base_url": args.api_url}
    )
    services = ServiceContext.build(settings)
    controller = services.create_controller(
        on_transcription=lambda text: print(f"\n[You] {text}\n", flush=True),
        on_error=lambda message: print(f"\n[Error] {message}\n", flush=True),
    )

    # An Enter press still pending after an auto-stop starts the next command.
    pending_enter: asyncio.Future | None = None
    try:
        while True:
            print("\n[Voice] Press Enter to speak... ", end="", flush=True)
            line = await (pending_enter or read_line())
            pending_enter = None
            if line is None:
                return

            try:
                await controller.start()
            except PermissionDenied:
                return
            except VoicePipelineError as e:
                logger.warning(f"Could not start recording: {e}")
                continue
            print("[Voice] Recording... press Enter to stop (auto-stops on silence).", flush=True)
            stopper = read_line()
            waiter = asyncio.create_task(controller.wait())
            done, _ = await asyncio.wait({stopper, waiter}, return_when=asyncio.FIRST_COMPLETED)
            if stopper in done:
                controller.stop()
            else:
                pending_enter = stopper
            result = await waiter
            if isinstance(result, PipelineSuccess):
                logger.info(f"Intent: {result.intent.model_dump(exclude_none=True)}")
            if args.once:
                return
    finally:
        await services.aclose()


async def run(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    if args.mode == "voice":
        await run_voice(args)
    else:
        await run_text(args)


def main() -> None:
    """Main entry point for the application."""
    setup_logging()

    try:
        asyncio.run(run(sys.argv[1:]))
    except KeyboardInterrupt:
        print("\nVoice session terminated by user.")
        sys.exit(0)
    except Exception as e:
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
