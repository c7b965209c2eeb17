"""
Createosaur - Main Entry Point

Command line front end for the generation core.

Usage:
    createosaur set-key stability sk-...
    createosaur generate "a red dinosaur with stripes" --output dino.png
    createosaur generate "a tiny raptor" --anonymous --server http://127.0.0.1:8000
    createosaur serve
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import aiohttp

from createosaur import __version__
from createosaur.core.data_types import ImageBlob
from createosaur.core.storage import LocalStore
from createosaur.generation.hook import GenerationHook
from createosaur.generation.service import ImageGenerationService
from createosaur.providers.base import GenerationConfig, GenerationResponse
from createosaur.providers.model_mapping import MODEL_CAPABILITIES, PROVIDER_MODEL_MAPPING
from createosaur.providers.registry import ProviderRegistry, build_default_registry
from createosaur.trial.client import DEFAULT_SERVER_URL, AnonymousGenerationClient
from createosaur.trial.quota import FreeTrialTracker


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="createosaur", description="Multi-provider AI creature image generation"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="More logging (-v info, -vv debug)")
    parser.add_argument("--state", type=Path, default=None,
                        help="Local state file (default: ~/.config/createosaur/state.json)")

    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate one or more images")
    gen.add_argument("prompt", help="Text prompt")
    gen.add_argument("--provider", help="Preferred provider for this request")
    gen.add_argument("--model", help="Model id or capability (e.g. sd-fast)")
    gen.add_argument("--width", type=int)
    gen.add_argument("--height", type=int)
    gen.add_argument("--steps", type=int)
    gen.add_argument("--guidance", type=float)
    gen.add_argument("--seed", type=int)
    gen.add_argument("--negative", help="Negative prompt")
    gen.add_argument("--count", type=int, default=1, help="Images to generate (max 4)")
    gen.add_argument("--output", type=Path, default=Path("creature.png"),
                     help="Output file; numbered when --count > 1")
    gen.add_argument("--anonymous", action="store_true",
                     help="Use the free trial server instead of local credentials")
    gen.add_argument("--server", default=DEFAULT_SERVER_URL, help="Trial server URL")

    sub.add_parser("providers", help="List providers and their configuration state")

    set_key = sub.add_parser("set-key", help="Store a provider API key")
    set_key.add_argument("name", help="Provider name (huggingface, openai, stability)")
    set_key.add_argument("key", help="API key")

    set_default = sub.add_parser("set-default", help="Set the preferred provider")
    set_default.add_argument("name", help="Provider name")

    sub.add_parser("capabilities", help="Show the capability to model table")

    sub.add_parser("trial", help="Show the local free trial status")

    serve = sub.add_parser("serve", help="Run the anonymous trial server")
    serve.add_argument("--host", help="Bind address (overrides settings)")
    serve.add_argument("--port", type=int, help="Port (overrides settings)")

    return parser


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def output_path(base: Path, index: int, count: int, response: GenerationResponse) -> Path:
    path = base
    if count > 1:
        path = base.with_name(f"{base.stem}_{index + 1}{base.suffix}")
    if response.image is not None and response.image.is_vector:
        path = path.with_suffix(".svg")
    return path


async def fetch_image(url: str) -> ImageBlob:
    """Resolve a response's image reference to bytes."""
    if url.startswith("data:"):
        return ImageBlob.from_data_uri(url)
    async with aiohttp.ClientSession() as session:
        async with session.get(url) as resp:
            resp.raise_for_status()
            return ImageBlob(await resp.read(), resp.content_type or "image/png")


async def save_response(response: GenerationResponse, path: Path) -> Path:
    image = response.image
    if image is None:
        image = await fetch_image(response.image_url or "")
    return image.save(path)


def _configs(args: argparse.Namespace) -> list[GenerationConfig]:
    config = GenerationConfig(
        prompt=args.prompt,
        negative_prompt=args.negative,
        model=args.model,
        steps=args.steps,
        guidance=args.guidance,
        width=args.width,
        height=args.height,
        seed=args.seed,
        provider=args.provider,
    )
    return [config] * max(1, args.count)


async def run_generate(args: argparse.Namespace, store: LocalStore) -> int:
    service = ImageGenerationService(build_default_registry(store))
    client = None
    if args.anonymous:
        client = AnonymousGenerationClient(FreeTrialTracker(store), base_url=args.server)

    def on_progress(stage: str, percent: int) -> None:
        print(f"[{percent:3d}%] {stage}")

    hook = GenerationHook(
        service,
        anonymous_client=client,
        is_authenticated=not args.anonymous,
        on_progress=on_progress,
    )

    if not args.anonymous and service.demo_mode:
        print("No provider credentials found; running in demo mode.")

    outcome = await hook.generate(_configs(args))

    exit_code = 0 if outcome.success else 1
    for i, response in enumerate(outcome.responses):
        if not response.success:
            print(f"✗ {response.error}")
            continue
        path = output_path(args.output, i, len(outcome.responses), response)
        try:
            saved = await save_response(response, path)
        except (aiohttp.ClientError, OSError, ValueError) as e:
            print(f"✗ Could not save image: {e}")
            exit_code = 1
            continue
        meta = response.metadata
        print(f"✓ {meta.provider}/{meta.model} -> {saved}")

    if outcome.conversion_message:
        print(outcome.conversion_message)
    return exit_code


def cmd_providers(registry: ProviderRegistry) -> int:
    default = registry.get_default_provider_name()
    for provider in registry.get_all_providers():
        marker = "*" if provider.name == default else " "
        validation = provider.validate_config()
        status = "ok" if validation.valid else validation.error
        print(f"{marker} {provider.name:<12} {provider.display_name:<20} {status}")
        for model in provider.config.models:
            print(f"    - {model.id}: {model.name}")
    return 0


def cmd_set_key(registry: ProviderRegistry, store: LocalStore, name: str, key: str) -> int:
    provider = registry.get_provider(name)
    if provider is None:
        print(f"Unknown provider: {name}. Available: {', '.join(registry.list_providers())}")
        return 1
    store.set(provider.config.credential_key, key)
    validation = provider.validate_config()
    if not validation.valid:
        print(f"Warning: {validation.error}")
    print(f"Saved key for {provider.display_name}")
    return 0


def cmd_set_default(registry: ProviderRegistry, name: str) -> int:
    if not registry.set_default_provider(name):
        print(f"Unknown provider: {name}. Available: {', '.join(registry.list_providers())}")
        return 1
    print(f"Default provider set to {name}")
    return 0


def cmd_capabilities() -> int:
    for capability in MODEL_CAPABILITIES.values():
        print(f"{capability.id}: {capability.name}")
        for provider_name, mapping in PROVIDER_MODEL_MAPPING.items():
            if capability.id in mapping:
                print(f"    {provider_name:<12} {mapping[capability.id]}")
    return 0


def cmd_trial(store: LocalStore) -> int:
    tracker = FreeTrialTracker(store)
    status = tracker.get_trial_status()
    print(f"State:     {tracker.state().value}")
    print(f"Used:      {status.generations_used}/{status.max_generations}")
    print(f"Remaining: {status.remaining}")
    print(tracker.get_conversion_message())
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from createosaur.server.app import create_app
    from createosaur.server.settings import ServerSettings

    settings = ServerSettings()
    uvicorn.run(
        create_app(settings),
        host=args.host or settings.server_host,
        port=args.port or settings.server_port,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for Createosaur.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    if args.command == "serve":
        return cmd_serve(args)
    if args.command == "capabilities":
        return cmd_capabilities()

    store = LocalStore(args.state) if args.state else LocalStore.default()

    if args.command == "generate":
        return asyncio.run(run_generate(args, store))
    if args.command == "trial":
        return cmd_trial(store)

    registry = build_default_registry(store)
    if args.command == "providers":
        return cmd_providers(registry)
    if args.command == "set-key":
        return cmd_set_key(registry, store, args.name, args.key)
    if args.command == "set-default":
        return cmd_set_default(registry, args.name)

    return 1


if __name__ == "__main__":
    sys.exit(main())
