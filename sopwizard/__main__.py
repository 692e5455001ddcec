#!/usr/bin/env python3
"""
Main entry point for the SOP wizard.
Allows running the package with: python -m sopwizard
"""
import asyncio
import sys
from dataclasses import replace
from typing import Any, Dict, List, Optional

from .config import get_config, Config
from .interview import (
    InterviewWizard, InterviewPrompts, ConsoleService, SOPResultStore, CaptureState, Stage
)
from .interview.models import InterviewResult
from .utils import setup_logging, format_time

COMMANDS_HELP = "Commands: /record  /stop  /cancel  (or type 'help' for help with this step)"


def parse_args(argv: List[str], config: Config) -> Dict[str, Any]:
    """Read --flag and --flag=value options."""
    options: Dict[str, Any] = {
        "use_voice": config.enable_voice,
        "timeout": config.transcribe_timeout,
        "out": None,
    }

    explicit_voice = "--voice" in argv
    explicit_text = "--text" in argv or "--no-voice" in argv
    if explicit_text:
        options["use_voice"] = False
    elif explicit_voice:
        options["use_voice"] = True

    for arg in argv:
        if arg.startswith("--timeout="):
            try:
                options["timeout"] = float(arg.split("=", 1)[1])
            except ValueError:
                raise ValueError("Invalid timeout value. Use --timeout=<seconds>")
            if options["timeout"] <= 0:
                raise ValueError("Timeout must be a positive number of seconds")
        elif arg.startswith("--out="):
            options["out"] = arg.split("=", 1)[1] or None
    return options


def show_hint(wizard: InterviewWizard) -> None:
    if wizard.stage in (Stage.INTRO, Stage.FINALIZE, Stage.COMPLETE):
        return
    print(f"   💡 Example: {InterviewPrompts.example_answer(wizard.stage)}")


async def read_line(prompt: str) -> Optional[str]:
    """Read a line without blocking the event loop; None on end of input."""
    try:
        return await asyncio.to_thread(input, prompt)
    except EOFError:
        return None


async def run_interview(wizard: InterviewWizard) -> Optional[InterviewResult]:
    """Drive the wizard from the terminal until it completes or is cancelled."""
    wizard.open()
    show_hint(wizard)

    while not wizard.closed and not wizard.cancelled:
        recording = wizard.capture_state is CaptureState.RECORDING
        line = await read_line("🎙️  (recording, /stop to finish) > " if recording else "✍️  > ")
        if line is None:
            await wizard.cancel()
            break
        command = line.strip()

        if command == "/cancel":
            await wizard.cancel()
        elif command == "/record":
            if not wizard.voice_available:
                print("📝 Voice input is off. Run with --voice to enable recording.")
            elif await wizard.start_recording():
                print("🔴 Recording... type /stop when you're done speaking")
        elif command == "/stop":
            if not recording:
                print("ℹ️  Not recording. Type /record first.")
                continue
            print(f"⏳ Transcribing {format_time(wizard.elapsed_seconds)} of audio...")
            await wizard.stop_recording()
        else:
            wizard.submit_text(line)

        if wizard.last_error:
            print(f"⚠️  {wizard.last_error}")
            if wizard.show_retry:
                print("   (type /record to try again)")
        elif not wizard.closed and not wizard.cancelled:
            show_hint(wizard)

    return wizard.result


def main():
    """Command-line interface for the SOP wizard."""

    # Load configuration from environment
    try:
        config = get_config()
        options = parse_args(sys.argv[1:], config)
    except ValueError as e:
        print(f"❌ Configuration Error: {e}")
        sys.exit(1)

    config = replace(config, enable_voice=options["use_voice"], transcribe_timeout=options["timeout"])
    log_file = setup_logging(config.log_file, config.log_level)

    # Show configuration
    if config.enable_voice:
        print("🎙️  Voice Mode: answers can be spoken with /record and /stop")
        print("   (Use --text or --no-voice to type only)")
        print(f"🌐 Transcription: {config.transcribe_backend} (timeout {config.transcribe_timeout:.0f}s)")
    else:
        print("📝 Text Mode: answers are typed")
        print("   (Use --voice to enable recording)")
    print(f"📁 Detailed logs: {log_file}")
    print(COMMANDS_HELP)
    print("=" * 50)

    console = ConsoleService()
    store = SOPResultStore(config.output_dir)
    wizard = InterviewWizard(config=config)
    wizard.event_bus.subscribe_all(console.handle_event)

    try:
        result = asyncio.run(run_interview(wizard))
    except KeyboardInterrupt:
        print("\n🛑 Interview interrupted")
        sys.exit(130)

    if result is None:
        print("\n🚫 INTERVIEW CANCELLED")
        print(f"📈 Session metrics: {wizard.metrics.get_metrics()}")
        sys.exit(0)

    path = store.save(result, options["out"])
    print("\n" + "=" * 50)
    print("🎯 SOP DRAFT COMPLETE")
    print("=" * 50)
    print(f"📋 Title: {result.document.title}")
    print(f"🔢 Steps: {len(result.steps)}")
    print(f"💾 Saved to: {path}")
    print(f"📈 Session metrics: {wizard.metrics.get_metrics()}")


if __name__ == "__main__":
    main()
