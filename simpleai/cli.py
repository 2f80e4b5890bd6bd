#!/usr/bin/env python3
"""
SimpleAI CLI — Talk to a configured LLM provider from the terminal.

Usage:
    python -m simpleai.cli models [--provider ollama]
    python -m simpleai.cli chat "Say hello in one sentence." [--system "..."] [--json]
    python -m simpleai.cli init-config simpleai.json
    python -m simpleai.cli migrate-config old.json new.yaml

Global options (before the command):
    --config PATH     FactoryConfig file (.json / .yaml); default from SIMPLEAI_CONFIG_PATH
    --provider NAME   Provider to use instead of the configured default
    --log-level LVL   DEBUG, INFO, WARNING, ...
"""

import argparse
import asyncio
import json
import sys
from typing import Any

from simpleai.config import (
    default_factory_config,
    get_settings,
    load_factory_config,
    parse_factory_config,
    save_factory_config,
)
from simpleai.errors import SimpleAIError
from simpleai.logging import setup_logging
from simpleai.models import ChatRequest, Message, decoder_for
from simpleai.providers.factory import LLMFactory, get_factory
from simpleai.version import APP_NAME, VERSION


def _factory(args: argparse.Namespace) -> LLMFactory:
    factory = get_factory()
    if args.config:
        factory.load_config(load_factory_config(args.config))
    if args.provider:
        factory.set_default_provider(args.provider)
    return factory


async def _list_models(args: argparse.Namespace) -> int:
    factory = _factory(args)
    name = factory.default_provider_name
    try:
        if not await factory.is_provider_available(name):
            print(f"Error: provider '{name}' is not available.")
            return 1
        models = await factory.list_models(name)
    finally:
        await factory.aclose()

    print(f"Available models ({name}):")
    for model in models:
        print(f"  - {model.name}")
    return 0


async def _chat(args: argparse.Namespace) -> int:
    factory = _factory(args)
    request = ChatRequest(
        system_prompt=args.system or "",
        messages=(Message.user(args.prompt),),
        decoder=decoder_for(Any) if args.json else None,
    )
    try:
        provider = factory.get_default_provider()
        response = await provider.chat(request)
    finally:
        await factory.aclose()

    if args.json:
        print(json.dumps(response.data, indent=2, ensure_ascii=False))
    else:
        print(response.message)
    return 0


def _init_config(args: argparse.Namespace) -> int:
    path = save_factory_config(default_factory_config(), args.path)
    print(f"Wrote default config to {path}")
    return 0


def _migrate_config(args: argparse.Namespace) -> int:
    with open(args.source, "r", encoding="utf-8") as f:
        data = json.load(f)
    path = save_factory_config(parse_factory_config(data), args.dest)
    print(f"Migrated {args.source} -> {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="simpleai", description=f"{APP_NAME} {VERSION} — LLM chat from the terminal"
    )
    parser.add_argument("--config", help="FactoryConfig file (.json / .yaml)")
    parser.add_argument("--provider", help="Provider to use instead of the default")
    parser.add_argument("--log-level", help="Log level (default from SIMPLEAI_LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("models", help="List models of the selected provider")

    chat = subparsers.add_parser("chat", help="Send a single prompt")
    chat.add_argument("prompt", help="User message")
    chat.add_argument("--system", help="System prompt")
    chat.add_argument("--json", action="store_true", help="Extract and print the JSON reply")

    init = subparsers.add_parser("init-config", help="Write a default config file")
    init.add_argument("path", help="Destination (.json / .yaml)")

    migrate = subparsers.add_parser("migrate-config", help="Convert a legacy JSON config")
    migrate.add_argument("source", help="Legacy JSON config")
    migrate.add_argument("dest", help="Destination (.json / .yaml)")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(args.log_level or settings.log_level, json_output=settings.log_json)

    try:
        if args.command == "models":
            return asyncio.run(_list_models(args))
        if args.command == "chat":
            return asyncio.run(_chat(args))
        if args.command == "init-config":
            return _init_config(args)
        if args.command == "migrate-config":
            return _migrate_config(args)
    except (SimpleAIError, OSError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    return 1


if __name__ == "__main__":
    sys.exit(main())
