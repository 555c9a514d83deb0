"""Shared fixtures: fake Playwright objects and an in-memory storage service."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import pytest

from docserver.adapters.storage import UploadUrlBackend
from docserver.core.browser import BrowserProvisioner, BrowserStrategy
from docserver.core.environment import EnvironmentProfile, RuntimeKind
from docserver.core.pipeline import DocumentPipeline
from docserver.core.renderer import PageRenderer
from docserver.core.sink import ArtifactSink

FAKE_PDF = b"%PDF-1.7\n% fake document\n%%EOF\n"


@dataclass
class BrowserRegistry:
    """Counts driver/browser lifecycle events across fake instances."""

    started: int = 0
    stopped: int = 0
    launched: int = 0
    closed: int = 0
    launch_kwargs: List[Dict[str, Any]] = field(default_factory=list)
    viewports: List[Optional[Dict[str, int]]] = field(default_factory=list)
    launch_error: Optional[BaseException] = None
    new_page_error: Optional[BaseException] = None

    @property
    def alive(self) -> int:
        return self.launched - self.closed


class FakeResponse:
    def __init__(self, status: int = 200) -> None:
        self.status = status


class FakePage:
    def __init__(
        self,
        *,
        pdf_bytes: bytes = FAKE_PDF,
        status: int = 200,
        goto_error: Optional[Exception] = None,
        pdf_error: Optional[Exception] = None,
    ) -> None:
        self.pdf_bytes = pdf_bytes
        self.status = status
        self.goto_error = goto_error
        self.pdf_error = pdf_error
        self.goto_calls: List[Dict[str, Any]] = []
        self.pdf_calls: List[Dict[str, Any]] = []

    async def goto(self, url: str, **kwargs: Any) -> FakeResponse:
        self.goto_calls.append({"url": url, **kwargs})
        if self.goto_error is not None:
            raise self.goto_error
        return FakeResponse(self.status)

    async def pdf(self, **kwargs: Any) -> bytes:
        self.pdf_calls.append(kwargs)
        if self.pdf_error is not None:
            raise self.pdf_error
        return self.pdf_bytes


class FakeBrowser:
    def __init__(self, registry: BrowserRegistry, page: FakePage) -> None:
        self._registry = registry
        self._page = page

    async def new_page(self, viewport: Optional[Dict[str, int]] = None) -> FakePage:
        self._registry.viewports.append(viewport)
        if self._registry.new_page_error is not None:
            raise self._registry.new_page_error
        return self._page

    async def close(self) -> None:
        self._registry.closed += 1


class FakeChromium:
    def __init__(self, registry: BrowserRegistry, page: FakePage) -> None:
        self._registry = registry
        self._page = page

    async def launch(self, **kwargs: Any) -> FakeBrowser:
        self._registry.launch_kwargs.append(kwargs)
        if self._registry.launch_error is not None:
            raise self._registry.launch_error
        self._registry.launched += 1
        return FakeBrowser(self._registry, self._page)


class FakePlaywright:
    def __init__(self, registry: BrowserRegistry, page: FakePage) -> None:
        self._registry = registry
        self.chromium = FakeChromium(registry, page)

    async def stop(self) -> None:
        self._registry.stopped += 1


class FakePlaywrightContext:
    def __init__(self, registry: BrowserRegistry, page: FakePage) -> None:
        self._registry = registry
        self._page = page

    async def start(self) -> FakePlaywright:
        self._registry.started += 1
        return FakePlaywright(self._registry, self._page)


class StaticStrategy(BrowserStrategy):
    name = "fake"
    launch_args = ("--no-sandbox",)

    def resolve_executable(self) -> Path:
        return Path("/opt/fake/chrome")


class FakeStorageService:
    """Upload URL endpoint plus a download endpoint keyed by storage id."""

    base_url = "https://storage.test"

    def __init__(self, *, fail_status: Optional[int] = None) -> None:
        self.objects: Dict[str, bytes] = {}
        self.requests: List[httpx.Request] = []
        self.fail_status = fail_status

    @property
    def upload_url(self) -> str:
        return f"{self.base_url}/api/storage/upload?token=abc123"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/api/storage/upload":
            if self.fail_status:
                return httpx.Response(self.fail_status, json={"error": "rejected"})
            storage_id = f"kg{len(self.objects) + 1:04d}"
            self.objects[storage_id] = request.content
            return httpx.Response(200, json={"storageId": storage_id})
        if request.url.path.startswith("/api/storage/"):
            storage_id = request.url.path.rsplit("/", 1)[-1]
            if storage_id in self.objects:
                return httpx.Response(200, content=self.objects[storage_id])
        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def backend_factory(self, target: str) -> UploadUrlBackend:
        return UploadUrlBackend(target, transport=self.transport)

    def fetch(self, storage_id: str) -> bytes:
        with httpx.Client(transport=self.transport) as client:
            response = client.get(f"{self.base_url}/api/storage/{storage_id}")
            response.raise_for_status()
            return response.content


@pytest.fixture
def registry() -> BrowserRegistry:
    return BrowserRegistry()


@pytest.fixture
def page() -> FakePage:
    return FakePage()


@pytest.fixture
def provisioner(registry: BrowserRegistry, page: FakePage) -> BrowserProvisioner:
    return BrowserProvisioner(
        playwright_factory=lambda: FakePlaywrightContext(registry, page),
        strategy_factory=lambda profile: StaticStrategy(),
    )


@pytest.fixture
def storage_service() -> FakeStorageService:
    return FakeStorageService()


@pytest.fixture
def local_profile() -> EnvironmentProfile:
    return EnvironmentProfile(runtime=RuntimeKind.INTERACTIVE_LOCAL, platform="linux")


@pytest.fixture
def serverless_profile() -> EnvironmentProfile:
    return EnvironmentProfile(
        runtime=RuntimeKind.SERVERLESS_READONLY,
        platform="linux",
        is_vercel=True,
        is_production=True,
    )


@pytest.fixture
def sink(tmp_path: Path, storage_service: FakeStorageService) -> ArtifactSink:
    return ArtifactSink(output_dir=tmp_path / "pdfs", upload_backend_factory=storage_service.backend_factory)


@pytest.fixture
def pipeline(provisioner: BrowserProvisioner, sink: ArtifactSink) -> DocumentPipeline:
    return DocumentPipeline(
        provisioner=provisioner,
        renderer=PageRenderer(timeout_ms=30000, grace_delay_ms=0),
        sink=sink,
        base_url="http://preview.test",
    )
