"""Headless browser provisioning.

Two strategies, picked once per request from the :class:`EnvironmentProfile`:

* ``LocalBrowserStrategy`` looks for a system Chrome/Chromium install at a
  short list of well-known per-OS paths.
* ``ServerlessBrowserStrategy`` materializes a prebuilt Chromium from a pinned
  pack archive into a writable cache directory, then launches it with flags
  suited to sandboxless containers.

Either way the caller gets a :class:`BrowserHandle` owning one browser process
and one page. :meth:`BrowserProvisioner.session` guarantees the process is
terminated when the ``async with`` block exits.
"""

from __future__ import annotations

import io
import logging
import os
import shutil
import tarfile
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Sequence

import brotli
import httpx
from fastapi.concurrency import run_in_threadpool
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from . import config
from .environment import EnvironmentProfile
from .errors import ProvisioningError

logger = logging.getLogger(__name__)


LOCAL_BROWSER_PATHS: Dict[str, List[str]] = {
    "darwin": ["/Applications/Google Chrome.app/Contents/MacOS/Google Chrome"],
    "linux": [
        "/usr/bin/google-chrome-stable",
        "/usr/bin/google-chrome",
        "/usr/bin/chromium-browser",
        "/usr/bin/chromium",
    ],
    "win32": ["C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe"],
}

LOCAL_LAUNCH_ARGS = ("--no-sandbox", "--disable-setuid-sandbox")

SERVERLESS_LAUNCH_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-gpu",
    "--disable-dev-shm-usage",
    "--no-zygote",
    "--single-process",
    "--hide-scrollbars",
    "--disable-web-security",
    "--mute-audio",
)

CHROMIUM_BINARY_NAME = "chromium"


def _os_family(platform: str) -> str:
    if platform.startswith("linux"):
        return "linux"
    if platform.startswith("win") or platform == "cygwin":
        return "win32"
    return platform


class BrowserHandle:
    """A live browser process plus its single page, owned by one request."""

    def __init__(
        self,
        playwright: Any,
        browser: Any,
        page: Any,
        *,
        strategy: str,
        executable_path: str,
    ) -> None:
        self._playwright = playwright
        self.browser = browser
        self.page = page
        self.strategy = strategy
        self.executable_path = executable_path
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Terminate the browser process and stop the driver. Safe to call twice."""

        if self._closed:
            return
        self._closed = True
        try:
            await self.browser.close()
        except PlaywrightError:
            logger.warning("Failed to close browser cleanly (%s)", self.strategy, exc_info=True)
        finally:
            try:
                await self._playwright.stop()
            except PlaywrightError:
                logger.warning("Failed to stop Playwright driver", exc_info=True)


class BrowserStrategy:
    """Capability object: where the executable comes from and how to launch it."""

    name = "base"
    launch_args: Sequence[str] = ()

    def resolve_executable(self) -> Path:
        raise NotImplementedError

    def launch_env(self) -> Optional[Dict[str, str]]:
        return None


class LocalBrowserStrategy(BrowserStrategy):
    """Use a system-installed Chrome found at a well-known location."""

    name = "local"
    launch_args = LOCAL_LAUNCH_ARGS

    def __init__(
        self,
        platform: str,
        *,
        override: Optional[str] = None,
        exists: Callable[[str], bool] = os.path.exists,
    ) -> None:
        self.platform = _os_family(platform)
        self._override = override
        self._exists = exists

    def candidate_paths(self) -> List[str]:
        paths = list(LOCAL_BROWSER_PATHS.get(self.platform, []))
        if self._override:
            paths.insert(0, self._override)
        return paths

    def resolve_executable(self) -> Path:
        candidates = self.candidate_paths()
        for candidate in candidates:
            if self._exists(candidate):
                logger.info("Using system Chrome at %s", candidate)
                return Path(candidate)

        expected = "\n".join(f"- {path}" for path in candidates) or "- (no known locations)"
        raise ProvisioningError(
            f"Chrome not found. Please install Google Chrome. "
            f"For {self.platform}, expected locations:\n{expected}",
            strategy=self.name,
            searched_paths=candidates,
        )


class ServerlessBrowserStrategy(BrowserStrategy):
    """Materialize a prebuilt Chromium pack into ``cache_dir`` and launch it."""

    name = "serverless"
    launch_args = SERVERLESS_LAUNCH_ARGS

    def __init__(
        self,
        *,
        pack_url: str = config.CHROMIUM_PACK_URL,
        cache_dir: Path = config.CHROMIUM_CACHE_DIR,
        timeout: float = config.CHROMIUM_FETCH_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.pack_url = pack_url
        self.cache_dir = Path(cache_dir)
        self._timeout = timeout
        self._transport = transport

    @property
    def executable_path(self) -> Path:
        return self.cache_dir / CHROMIUM_BINARY_NAME

    def is_materialized(self) -> bool:
        return self.executable_path.is_file() and os.access(self.executable_path, os.X_OK)

    def resolve_executable(self) -> Path:
        if not self.is_materialized():
            self.materialize()
        return self.executable_path

    def materialize(self) -> Path:
        """Download and unpack the pack. Safe to run concurrently; the binary is published last."""

        logger.info("Fetching Chromium pack from %s into %s", self.pack_url, self.cache_dir)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(prefix=".staging-", dir=self.cache_dir))
        except OSError as exc:
            raise ProvisioningError(
                f"Cannot prepare Chromium cache at {self.cache_dir}: {exc}", strategy=self.name
            ) from exc

        try:
            archive = staging / "pack.tar"
            self._download(archive)
            unpacked = staging / "pack"
            if _safe_extract_tar(archive, unpacked) == 0:
                raise ProvisioningError(
                    f"Chromium pack at {self.pack_url} is empty", strategy=self.name
                )
            inflated = staging / "out"
            _inflate_pack(unpacked, inflated)
            binary = inflated / CHROMIUM_BINARY_NAME
            if not binary.is_file():
                raise ProvisioningError(
                    f"Chromium pack at {self.pack_url} does not contain a '{CHROMIUM_BINARY_NAME}' binary",
                    strategy=self.name,
                )
            binary.chmod(0o755)
            self._publish(inflated)
        except (httpx.HTTPError, tarfile.TarError, brotli.error, OSError) as exc:
            raise ProvisioningError(
                f"Failed to initialize Chromium from {self.pack_url}: {exc}", strategy=self.name
            ) from exc
        finally:
            shutil.rmtree(staging, ignore_errors=True)

        logger.info("Chromium executable ready at %s", self.executable_path)
        return self.executable_path

    def launch_env(self) -> Optional[Dict[str, str]]:
        env = dict(os.environ)
        lib_dirs = self.library_dirs()
        if lib_dirs:
            existing = env.get("LD_LIBRARY_PATH")
            joined = os.pathsep.join(str(path) for path in lib_dirs)
            env["LD_LIBRARY_PATH"] = f"{joined}{os.pathsep}{existing}" if existing else joined
        fonts = self.cache_dir / "fonts"
        if fonts.is_dir():
            env["FONTCONFIG_PATH"] = str(fonts)
        return env

    def library_dirs(self) -> List[Path]:
        if not self.cache_dir.is_dir():
            return []
        found = set()
        for path in self.cache_dir.rglob("*.so*"):
            relative = path.relative_to(self.cache_dir)
            if any(part.startswith(".") for part in relative.parts):
                continue
            found.add(path.parent)
        return sorted(found)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _download(self, destination: Path) -> None:
        with httpx.Client(
            timeout=self._timeout, follow_redirects=True, transport=self._transport
        ) as client:
            with client.stream("GET", self.pack_url) as response:
                if response.status_code >= 400:
                    raise ProvisioningError(
                        f"Failed to download Chromium pack: {response.status_code} {self.pack_url}",
                        strategy=self.name,
                    )
                with destination.open("wb") as fh:
                    for chunk in response.iter_bytes():
                        fh.write(chunk)

    def _publish(self, inflated: Path) -> None:
        for entry in sorted(inflated.iterdir()):
            if entry.name == CHROMIUM_BINARY_NAME:
                continue
            target = self.cache_dir / entry.name
            if target.exists():
                continue
            try:
                os.replace(entry, target)
            except OSError:
                # Another request published the same entry first.
                if not target.exists():
                    raise
        os.replace(inflated / CHROMIUM_BINARY_NAME, self.executable_path)


def _safe_member_path(name: str) -> Optional[Path]:
    member_path = Path(name)
    if member_path.is_absolute() or ".." in member_path.parts:
        return None
    return member_path


def _extract_tar_members(tar: tarfile.TarFile, dest_dir: Path) -> int:
    """Extract regular files only (prevents path traversal and links)."""

    extracted = 0
    for member in tar.getmembers():
        if not member.isfile():
            continue
        member_path = _safe_member_path(member.name)
        if member_path is None:
            logger.warning("Skipping unsafe archive member %s", member.name)
            continue
        source = tar.extractfile(member)
        if source is None:
            continue
        out_path = dest_dir / member_path
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with source, out_path.open("wb") as dst:
            shutil.copyfileobj(source, dst)
        if member.mode & 0o111:
            out_path.chmod(0o755)
        extracted += 1
    return extracted


def _safe_extract_tar(archive: Path, dest_dir: Path) -> int:
    dest_dir.mkdir(parents=True, exist_ok=True)
    with tarfile.open(archive, "r:*") as tar:
        return _extract_tar_members(tar, dest_dir)


def _inflate_pack(pack_dir: Path, out_dir: Path) -> None:
    """Expand brotli members: ``x.tar.br`` -> ``out/x/``, ``x.br`` -> ``out/x``."""

    out_dir.mkdir(parents=True, exist_ok=True)
    for path in sorted(pack_dir.rglob("*")):
        if not path.is_file():
            continue
        name = path.name
        if name.endswith(".tar.br"):
            data = brotli.decompress(path.read_bytes())
            target = out_dir / name[: -len(".tar.br")]
            target.mkdir(parents=True, exist_ok=True)
            with tarfile.open(fileobj=io.BytesIO(data), mode="r:") as tar:
                _extract_tar_members(tar, target)
        elif name.endswith(".br"):
            (out_dir / name[: -len(".br")]).write_bytes(brotli.decompress(path.read_bytes()))
        else:
            target = out_dir / path.relative_to(pack_dir)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, target)


async def _discard(playwright: Any, browser: Any) -> None:
    """Tear down a half-built session. The driver is stopped even if close fails."""

    try:
        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError:
                logger.warning("Failed to close half-launched browser", exc_info=True)
    finally:
        await playwright.stop()


def select_browser_strategy(profile: EnvironmentProfile) -> BrowserStrategy:
    """Pick the provisioning strategy legal for ``profile``."""

    if profile.read_only:
        return ServerlessBrowserStrategy()
    return LocalBrowserStrategy(profile.platform, override=config.CHROME_EXECUTABLE_PATH)


class BrowserProvisioner:
    """Launch isolated headless browsers; one per request, never shared."""

    def __init__(
        self,
        *,
        playwright_factory: Callable[[], Any] = async_playwright,
        strategy_factory: Callable[[EnvironmentProfile], BrowserStrategy] = select_browser_strategy,
        viewport: Optional[Dict[str, int]] = None,
    ) -> None:
        self._playwright_factory = playwright_factory
        self._strategy_factory = strategy_factory
        self._viewport = viewport or {
            "width": config.PDF_VIEWPORT_WIDTH,
            "height": config.PDF_VIEWPORT_HEIGHT,
        }

    async def acquire(self, profile: EnvironmentProfile) -> BrowserHandle:
        """Start one browser process. The caller owns the returned handle."""

        strategy = self._strategy_factory(profile)
        executable = await run_in_threadpool(strategy.resolve_executable)

        try:
            playwright = await self._playwright_factory().start()
        except Exception as exc:
            raise ProvisioningError(
                f"Failed to start Playwright driver: {exc}", strategy=strategy.name
            ) from exc

        browser = None
        try:
            browser = await playwright.chromium.launch(
                executable_path=str(executable),
                args=list(strategy.launch_args),
                headless=True,
                env=strategy.launch_env(),
            )
            page = await browser.new_page(viewport=dict(self._viewport))
        except BaseException as exc:
            await _discard(playwright, browser)
            if isinstance(exc, (PlaywrightError, OSError)):
                raise ProvisioningError(
                    f"Failed to launch browser at {executable}: {exc}", strategy=strategy.name
                ) from exc
            raise

        logger.info("Launched %s browser (%s)", strategy.name, executable)
        return BrowserHandle(
            playwright,
            browser,
            page,
            strategy=strategy.name,
            executable_path=str(executable),
        )

    @asynccontextmanager
    async def session(self, profile: EnvironmentProfile) -> AsyncIterator[BrowserHandle]:
        """Yield a browser handle that is closed on every exit path."""

        handle = await self.acquire(profile)
        try:
            yield handle
        finally:
            await handle.close()


__all__ = [
    "LOCAL_BROWSER_PATHS",
    "BrowserHandle",
    "BrowserStrategy",
    "LocalBrowserStrategy",
    "ServerlessBrowserStrategy",
    "BrowserProvisioner",
    "select_browser_strategy",
]
