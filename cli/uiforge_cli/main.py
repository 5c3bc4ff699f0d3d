"""Main entry point for uiforge CLI."""

from __future__ import annotations

import asyncio
import contextlib
import signal
import sys
import webbrowser
from collections.abc import Awaitable, Callable
from pathlib import Path

import httpx

from uiforge_cli import __version__
from uiforge_cli.client import ApiClient, ApiError
from uiforge_cli.config import Config
from uiforge_cli.consumer import ConsumerOutcome, ConsumerResult, StreamConsumer
from uiforge_cli.refresher import PreviewRefresher

DEVICES = ("desktop", "tablet", "mobile")


def print_help():
    """Print help message."""
    print(f"""
uiforge CLI v{__version__}

Usage:
  uiforge [options] "<prompt>"
  uiforge [options] modify FILE "<instruction>"
  uiforge models
  uiforge config [set url|model|tier VALUE]

Commands:
  modify            Rewrite an existing component file following an instruction
  models            List available models and the tiers that may use them
  config            Show the saved configuration, or change one value

Options:
  --model ID        Model to generate with (default: from config, deepseek-chat)
  --device NAME     Preview frame width: desktop, tablet, mobile (default: desktop)
  --out DIR         Also write the generated project files to DIR
  --open            Open the preview in a browser when it is ready
  --quiet           Don't print the streamed source
  --api-url URL     Override API endpoint (default: http://localhost:8000)
  -h, --help        Show this help
  -v, --version     Show version

Environment:
  UIFORGE_API_URL   Override API endpoint (same as --api-url)

Examples:
  uiforge "a pricing table with three plans"
  uiforge --model gpt-4 --device mobile --open "a login form"
  uiforge modify src/App.tsx "make the button red"
  uiforge config set tier pro

Press Ctrl+C while streaming to cancel the generation.
""")


def parse_args(args: list[str]) -> dict:
    """
    Parse command line arguments.

    Returns dict with:
        command: str | None (models, modify, config, None for generate)
        prompt: str | None
        file: str | None (modify)
        instruction: str | None (modify)
        config_args: list[str] (config)
        model: str | None
        device: str
        out: str | None
        api_url: str | None
        open: bool
        quiet: bool
        show_help: bool
        show_version: bool
    """
    result = {
        "command": None,
        "prompt": None,
        "file": None,
        "instruction": None,
        "config_args": [],
        "model": None,
        "device": "desktop",
        "out": None,
        "api_url": None,
        "open": False,
        "quiet": False,
        "show_help": False,
        "show_version": False,
    }
    words: list[str] = []
    takes_value = {"--model": "model", "--device": "device", "--out": "out", "--api-url": "api_url"}

    i = 0
    while i < len(args):
        arg = args[i]

        if arg in takes_value:
            if i + 1 >= len(args):
                print(f"Error: {arg} requires a value")
                sys.exit(1)
            result[takes_value[arg]] = args[i + 1]
            i += 1
        elif arg == "--open":
            result["open"] = True
        elif arg == "--quiet":
            result["quiet"] = True
        elif arg in ("--help", "-h"):
            result["show_help"] = True
        elif arg in ("--version", "-v"):
            result["show_version"] = True
        elif arg.startswith("-"):
            print(f"Unknown option: {arg}")
            print("Run 'uiforge --help' for usage.")
            sys.exit(1)
        else:
            words.append(arg)

        i += 1

    if words == ["models"]:
        result["command"] = "models"
    elif words[:1] == ["modify"]:
        result["command"] = "modify"
        if len(words) > 1:
            result["file"] = words[1]
        result["instruction"] = " ".join(words[2:]) or None
    elif words[:1] == ["config"]:
        result["command"] = "config"
        result["config_args"] = words[1:]
    elif words:
        result["prompt"] = " ".join(words)

    if result["device"] not in DEVICES:
        print(f"Error: --device must be one of {', '.join(DEVICES)}")
        sys.exit(1)

    return result


def write_project(project: dict, out_dir: Path) -> list[Path]:
    """Write the generated project files under out_dir."""
    written = []
    root = out_dir.resolve()
    for name, content in project["files"].items():
        path = (root / name).resolve()
        if not path.is_relative_to(root):
            print(f"  Skipping file outside the project: {name}")
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        written.append(path)
    return written


def _typewriter(char: str, buffer: str) -> None:
    sys.stdout.write(char)
    sys.stdout.flush()


async def _stream_to_preview(
    config: Config,
    args: dict,
    start: Callable[[StreamConsumer], Awaitable[ConsumerResult]],
) -> int:
    """Run one stream through a consumer, then report and write its preview. Returns the exit code."""
    client = ApiClient(config.api_url, tier=config.tier)
    refresher = PreviewRefresher(client, config.preview_dir, device=args["device"])
    consumer = StreamConsumer(client, refresher=refresher, on_update=None if args["quiet"] else _typewriter)

    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, consumer.abort)

    try:
        result = await start(consumer)
    finally:
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)
        await client.aclose()

    print()
    if result.outcome is ConsumerOutcome.ABORTED:
        print("Generation cancelled.")
        return 130
    if result.outcome is ConsumerOutcome.FAILED:
        print(f"Error: {result.message}")
        return 1

    if args["out"]:
        written = write_project(result.project, Path(args["out"]))
        print(f"Project written to {Path(args['out']).resolve()} ({len(written)} files)")

    print(f"Preview: {result.preview_path}")
    if args["open"] and result.preview_path is not None:
        webbrowser.open(result.preview_path.as_uri())
    return 0


async def generate(config: Config, args: dict) -> int:
    """Stream one generation and write its preview. Returns the exit code."""
    model = args["model"] or config.default_model
    return await _stream_to_preview(config, args, lambda consumer: consumer.run(args["prompt"], model))


async def modify(config: Config, args: dict) -> int:
    """Stream a rewrite of an existing component file and write its preview."""
    path = Path(args["file"])
    try:
        code = path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: cannot read {path}: {e.strerror}")
        return 1
    if not code.strip():
        print(f"Error: {path} is empty")
        return 1

    model = args["model"] or config.default_model
    return await _stream_to_preview(config, args, lambda consumer: consumer.modify(code, args["instruction"], model))


CONFIG_KEYS = {"url": "default_url", "model": "default_model", "tier": "tier"}


def configure(config: Config, words: list[str]) -> int:
    """Show the saved configuration, or `set KEY VALUE` one entry."""
    if not words:
        print(f"  url     {config.default_url}")
        print(f"  model   {config.default_model}")
        print(f"  tier    {config.tier or '-'}")
        print(f"  file    {config.config_file}")
        return 0

    if len(words) != 3 or words[0] != "set" or words[1] not in CONFIG_KEYS:
        print(f"Usage: uiforge config [set {'|'.join(CONFIG_KEYS)} VALUE]")
        return 1

    _, key, value = words
    setattr(config, CONFIG_KEYS[key], value)
    print(f"Saved {key} = {value}")
    return 0


async def list_models(config: Config) -> int:
    client = ApiClient(config.api_url, tier=config.tier)
    try:
        models = await client.list_models()
    except (ApiError, httpx.HTTPError) as e:
        print(f"Error: {e}")
        return 1
    finally:
        await client.aclose()

    for model in models:
        print(f"  {model['id']:<18} {model['provider']:<10} {', '.join(model['tiers'])}")
    return 0


def main():
    """Main entry point."""
    args = parse_args(sys.argv[1:])

    # Handle help and version first
    if args["show_help"]:
        print_help()
        return

    if args["show_version"]:
        print(f"uiforge-cli {__version__}")
        return

    config = Config(api_url_override=args["api_url"])

    if args["command"] == "models":
        sys.exit(asyncio.run(list_models(config)))

    if args["command"] == "config":
        sys.exit(configure(config, args["config_args"]))

    if args["command"] == "modify":
        if not args["file"] or not args["instruction"]:
            print("Usage: uiforge modify FILE \"<instruction>\"")
            sys.exit(1)
        sys.exit(asyncio.run(modify(config, args)))

    if not args["prompt"]:
        print_help()
        sys.exit(1)

    sys.exit(asyncio.run(generate(config, args)))


if __name__ == "__main__":
    main()
