"""Command-line interface for rendering and delivering document PDFs."""

import argparse
import asyncio
import importlib
import json
import os
import sys
from pathlib import Path
from typing import List, Optional

from docserver.core import config
from docserver.core.browser import (
    LocalBrowserStrategy,
    ServerlessBrowserStrategy,
    select_browser_strategy,
)
from docserver.core.environment import detect_environment
from docserver.core.errors import ProvisioningError, ValidationError
from docserver.core.models import RenderRequest
from docserver.core.pipeline import DocumentPipeline
from docserver.core.renderer import PageRenderer
from docserver.core.sink import ArtifactSink
from docserver.routes.documents import failure_payload, success_payload

REQUIRED_PACKAGES = ["fastapi", "httpx", "playwright", "dotenv", "pydantic", "brotli", "uvicorn"]


def _profile_for(runtime: Optional[str]):
    if runtime:
        return detect_environment(dict(os.environ, PDF_RUNTIME=runtime))
    return detect_environment()


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, indent=2))


def cmd_render(args: argparse.Namespace) -> int:
    profile = _profile_for(args.runtime)
    try:
        request = RenderRequest.from_params(args.id, args.kind, url=args.url, upload_url=args.upload_url)
    except ValidationError as exc:
        _print_json(failure_payload(exc, profile))
        return 2

    pipeline = DocumentPipeline(
        renderer=PageRenderer(
            timeout_ms=args.timeout_ms if args.timeout_ms is not None else config.PDF_NAVIGATION_TIMEOUT_MS,
            grace_delay_ms=args.grace_ms if args.grace_ms is not None else config.PDF_RENDER_GRACE_MS,
        ),
        sink=ArtifactSink(output_dir=args.output_dir),
        base_url=args.base_url,
    )
    result = asyncio.run(pipeline.run(request, profile))

    if result.ok and result.artifact is not None:
        _print_json(success_payload(result.artifact))
        return 0

    error = result.error
    _print_json(failure_payload(error, profile))
    return 2 if isinstance(error, ValidationError) and error.status_code == 400 else 1


def cmd_fetch_browser(args: argparse.Namespace) -> int:
    strategy = ServerlessBrowserStrategy(
        pack_url=args.pack_url or config.CHROMIUM_PACK_URL,
        cache_dir=args.cache_dir or config.CHROMIUM_CACHE_DIR,
    )
    if strategy.is_materialized() and not args.force:
        print(f"[OK] Chromium already present at {strategy.executable_path}")
        return 0
    try:
        path = strategy.materialize()
    except ProvisioningError as exc:
        print(f"[FAIL] {exc.message}")
        return 1
    print(f"[OK] Chromium ready at {path}")
    return 0


def cmd_doctor(args: argparse.Namespace) -> int:
    """Verify the setup: packages, environment classification, browser."""

    issues: List[str] = []
    warnings: List[str] = []

    print("[*] Checking Python version...")
    if sys.version_info < (3, 9):
        issues.append("Python 3.9 or higher required")
    else:
        print(f"  Python {sys.version_info.major}.{sys.version_info.minor} [OK]")

    print("\n[*] Checking required packages...")
    for package in REQUIRED_PACKAGES:
        try:
            importlib.import_module(package)
            print(f"  {package} [OK]")
        except ImportError:
            issues.append(f"Package '{package}' not installed")
            print(f"  {package} [FAIL]")

    print("\n[*] Checking .env file...")
    if (Path.cwd() / ".env").exists():
        print("  .env file: [OK]")
    else:
        warnings.append(".env file not found (defaults apply)")
        print("  .env file: [WARN] Not found")

    profile = _profile_for(args.runtime)
    print("\n[*] Environment")
    print(f"  runtime: {profile.runtime.value}")
    print(f"  platform: {profile.platform}")
    print(f"  vercel: {profile.is_vercel}  production: {profile.is_production}")

    print("\n[*] Checking browser...")
    strategy = select_browser_strategy(profile)
    if isinstance(strategy, LocalBrowserStrategy):
        try:
            print(f"  {strategy.resolve_executable()} [OK]")
        except ProvisioningError as exc:
            issues.append(exc.message)
            print("  system Chrome: [FAIL]")
    elif isinstance(strategy, ServerlessBrowserStrategy):
        if strategy.is_materialized():
            print(f"  {strategy.executable_path} [OK]")
        else:
            warnings.append(f"Chromium not cached yet; first request downloads {strategy.pack_url}")
            print("  Chromium pack: [WARN] Not cached")

    print("\n[*] Output")
    if profile.read_only:
        print("  local disk: skipped (read-only runtime); uploadUrl required")
    else:
        print(f"  local disk: {config.PDF_OUTPUT_DIR}")

    if issues:
        print("\n[ISSUES FOUND]")
        for issue in issues:
            print(f"  - {issue}")
    if warnings:
        print("\n[WARNINGS]")
        for warning in warnings:
            print(f"  - {warning}")
    if not issues and not warnings:
        print("\n[SUCCESS] All checks passed.")
    return 1 if issues else 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("docserver.api:app", host=args.host, port=args.port, reload=False)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docrender",
        description="Render quote and invoice pages to PDF and deliver them to storage",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="Render one document through the full pipeline")
    render.add_argument("kind", help="Document type: quote or invoice")
    render.add_argument("id", help="Document id")
    render.add_argument("--url", help="Render this page instead of the default doc-preview URL")
    render.add_argument("--upload-url", help="Pre-authorized upload URL for remote storage")
    render.add_argument("--base-url", help=f"Base URL of the preview pages (default: {config.LOCAL_BASE_URL} locally)")
    render.add_argument("--runtime", choices=("local", "serverless"), help="Force the runtime classification")
    render.add_argument("--timeout-ms", type=int, help=f"Navigation timeout (default: {config.PDF_NAVIGATION_TIMEOUT_MS})")
    render.add_argument("--grace-ms", type=int, help=f"Delay after the page settles (default: {config.PDF_RENDER_GRACE_MS})")
    render.add_argument("--output-dir", type=Path, help=f"Local output directory (default: {config.PDF_OUTPUT_DIR})")
    render.set_defaults(func=cmd_render)

    fetch = sub.add_parser("fetch-browser", help="Download and unpack the serverless Chromium pack")
    fetch.add_argument("--cache-dir", type=Path, help=f"Cache directory (default: {config.CHROMIUM_CACHE_DIR})")
    fetch.add_argument("--pack-url", help="Override the pinned pack URL")
    fetch.add_argument("--force", action="store_true", help="Re-fetch even if already cached")
    fetch.set_defaults(func=cmd_fetch_browser)

    doctor = sub.add_parser("doctor", help="Check packages, environment and browser availability")
    doctor.add_argument("--runtime", choices=("local", "serverless"), help="Force the runtime classification")
    doctor.set_defaults(func=cmd_doctor)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line interface."""

    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
