"""CLI entry point for ollama-json.

Entry point:
    ollama-json models [--json]
    ollama-json complete "<prompt>" [--system TEXT] [--model ID] [--serve]
"""

import argparse
import asyncio
import json
import logging
import sys
from contextlib import aclosing
from typing import Optional

import httpx
from dotenv import load_dotenv

from ollama_json.adapters.ollama import OllamaJSONProvider
from ollama_json.config import ProviderConfig, load_config_from_env
from ollama_json.core import OllamaAPIError, OllamaClient
from ollama_json.errors import BackendError, ProviderError
from ollama_json.schema import CompletionTombStone, Message, Role
from ollama_json.server import start_server, stop_server

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────
# ARGUMENT PARSING
# ─────────────────────────────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ollama-json",
        description="JSON chat completions from a local Ollama server.",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--host", default=None, help="Server base URL (default: OLLAMA_HOST or localhost:11434)"
    )
    sub = parser.add_subparsers(dest="command")

    # models
    models_p = sub.add_parser("models", help="List models available on the server")
    models_p.add_argument(
        "--json", action="store_true", dest="json_output", help="JSON output"
    )

    # complete
    complete_p = sub.add_parser("complete", help="Request a JSON completion")
    complete_p.add_argument("prompt", help="User message")
    complete_p.add_argument("--system", default=None, help="System message")
    complete_p.add_argument("--model", default=None, help="Model ID (default: OLLAMA_MODEL or fast default)")
    complete_p.add_argument(
        "--serve", action="store_true",
        help="Start `ollama serve` for this run and stop it afterwards",
    )

    return parser


# ─────────────────────────────────────────────────────────────────────
# COMMANDS
# ─────────────────────────────────────────────────────────────────────


async def _cmd_models(host: str, json_output: bool = False) -> int:
    """List available models. Returns exit code."""
    client = OllamaClient(host)
    try:
        models = await client.list_models()
    except (httpx.HTTPError, OllamaAPIError) as e:
        raise BackendError(f"Error listing models: {e}") from e
    finally:
        await client.aclose()

    if json_output:
        json.dump({"host": host, "models": models}, sys.stdout, indent=2)
        sys.stdout.write("\n")
    else:
        for model_id in models:
            print(model_id)
    return 0


async def _cmd_complete(
    host: str,
    prompt: str,
    system: Optional[str] = None,
    model: Optional[str] = None,
    serve: bool = False,
) -> int:
    """Stream one completion to stderr, then print the parsed JSON to stdout. Returns exit code."""
    config = ProviderConfig(base_url=host, model=model or "")
    messages = []
    if system:
        messages.append(Message(role=Role.SYSTEM, content=system))
    messages.append(Message(role=Role.USER, content=prompt))

    process = None
    if serve:
        process = start_server(host=host.split("://", 1)[-1])

    try:
        provider = await OllamaJSONProvider.create(config, process)
    except BaseException:
        # No provider owns the server yet
        if process is not None:
            await asyncio.to_thread(stop_server, process.handle)
        raise

    result: Optional[CompletionTombStone] = None
    async with provider:
        async with aclosing(provider.stream_completion(messages)) as events:
            async for event in events:
                if isinstance(event, CompletionTombStone):
                    result = event
                else:
                    sys.stderr.write(event.content)
                    sys.stderr.flush()
    sys.stderr.write("\n")

    logger.debug("completion from %s: %d chars", result.model, len(result.content))
    try:
        parsed = json.loads(result.content)
    except json.JSONDecodeError:
        print("Model returned non-JSON output", file=sys.stderr)
        print(result.content)
        return 1
    json.dump(parsed, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


# ─────────────────────────────────────────────────────────────────────
# ENTRY POINT
# ─────────────────────────────────────────────────────────────────────


def main():
    parser = _build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Logging
    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(name)s %(message)s", stream=sys.stderr)

    # Load env
    load_dotenv()

    env_config = load_config_from_env()
    host = args.host or env_config.base_url

    try:
        if args.command == "models":
            code = asyncio.run(_cmd_models(host, json_output=args.json_output))
        elif args.command == "complete":
            code = asyncio.run(_cmd_complete(
                host=host,
                prompt=args.prompt,
                system=args.system,
                model=args.model or env_config.model,
                serve=args.serve,
            ))
        else:
            parser.print_help()
            code = 1
    except ProviderError as e:
        print(f"Error: {e}", file=sys.stderr)
        code = 1

    sys.exit(code)


if __name__ == "__main__":
    main()
