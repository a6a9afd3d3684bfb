"""
Binary Fetcher
--------------

Resolves the newest Traefik release for Linux/amd64 through the GitHub release
API, downloads the archive and installs the executable. There is no checksum
verification and no retry: any failure is fatal for the run.
"""

import os
import shutil
import tarfile
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import requests
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
)

from traefik_setup.config import AppConfig
from traefik_setup.errors import NetworkError
from traefik_setup.ui import NordColors, console, logger, print_step, print_success
from traefik_setup.utils import format_file_size, run_command

CHUNK_SIZE = 8192


def select_asset_url(release: Dict[str, Any], pattern: str) -> str:
    """
    Pick the download URL of the first asset whose name contains ``pattern``.

    Args:
        release: Release metadata as returned by the GitHub API
        pattern: Substring identifying the platform archive

    Returns:
        The asset's browser_download_url

    Raises:
        NetworkError: If no asset matches
    """
    for asset in release.get("assets") or []:
        name = asset.get("name", "")
        url = asset.get("browser_download_url")
        if pattern in name and url:
            logger.debug("Selected asset %s", name)
            return url
    tag = release.get("tag_name", "unknown release")
    raise NetworkError(f"No asset matching '{pattern}' found in {tag}")


def installed_version(config: AppConfig) -> Optional[str]:
    """Output of ``traefik version`` for the installed binary, None if absent."""
    if not config.BINARY_PATH.is_file():
        return None
    result = run_command([str(config.BINARY_PATH), "version"], check=False)
    output = (result.stdout or "").strip()
    return output or None


class BinaryFetcher:
    """Downloads and installs the Traefik executable."""

    def __init__(self, config: AppConfig, session: Optional[requests.Session] = None) -> None:
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.setdefault("Accept", "application/vnd.github+json")

    def fetch_release(self, tag: Optional[str] = None) -> Dict[str, Any]:
        """Query the release API for the latest release (or a pinned tag)."""
        url = self.config.release_url(tag)
        logger.info("Querying %s", url)
        try:
            response = self.session.get(url, timeout=self.config.HTTP_TIMEOUT)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise NetworkError(f"Release query failed: {e}")
        except ValueError as e:
            raise NetworkError(f"Release API returned invalid JSON: {e}")

    def resolve_download_url(self, tag: Optional[str] = None) -> str:
        if tag:
            print_step(f"Looking up Traefik {tag}...")
        else:
            print_step("Searching for the latest Traefik version...")
        release = self.fetch_release(tag)
        url = select_asset_url(release, self.config.ASSET_PATTERN)
        logger.info("Release %s: %s", release.get("tag_name", "?"), url)
        return url

    def download(self, url: str, destination: Path) -> Path:
        """
        Download ``url`` to ``destination`` with a progress bar.

        Raises:
            NetworkError: On any HTTP or transport error
        """
        print_step(f"Downloading Traefik from {url}")
        try:
            with self.session.get(url, stream=True, timeout=self.config.HTTP_TIMEOUT) as response:
                response.raise_for_status()
                total = int(response.headers.get("content-length", 0)) or None
                with (
                    open(destination, "wb") as archive,
                    Progress(
                        TextColumn(f"[bold {NordColors.FROST_2}]{{task.description}}"),
                        BarColumn(style=NordColors.FROST_4, complete_style=NordColors.FROST_2),
                        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
                        DownloadColumn(),
                        TimeRemainingColumn(),
                        console=console,
                        transient=True,
                    ) as progress,
                ):
                    task = progress.add_task("Downloading", total=total)
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            archive.write(chunk)
                            progress.update(task, advance=len(chunk))
        except requests.RequestException as e:
            raise NetworkError(f"Download failed: {e}")

        logger.info("Downloaded %s", format_file_size(destination.stat().st_size))
        return destination

    def extract_binary(self, archive: Path, workdir: Path) -> Path:
        """
        Extract the traefik executable from the archive.

        Only the executable member is read; its content is streamed out so no
        archive path ends up on disk.
        """
        target = workdir / self.config.BINARY_MEMBER
        try:
            with tarfile.open(archive, "r:gz") as tar:
                member = next(
                    (
                        m
                        for m in tar.getmembers()
                        if m.isfile() and os.path.basename(m.name) == self.config.BINARY_MEMBER
                    ),
                    None,
                )
                if member is None:
                    raise NetworkError(
                        f"Archive does not contain '{self.config.BINARY_MEMBER}'"
                    )
                source = tar.extractfile(member)
                with source, open(target, "wb") as out:
                    shutil.copyfileobj(source, out)
        except (tarfile.TarError, OSError) as e:
            raise NetworkError(f"Could not unpack {archive.name}: {e}")
        return target

    def install_binary(self, binary: Path) -> Path:
        destination = self.config.BINARY_PATH
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(binary), str(destination))
        os.chmod(destination, 0o755)
        return destination

    def report_version(self) -> Optional[str]:
        output = installed_version(self.config)
        if output:
            console.print(f"[dim]{output}[/dim]")
        return output

    def fetch_and_install(self, tag: Optional[str] = None) -> Path:
        """Resolve, download, unpack and install the binary. Returns the installed path."""
        url = self.resolve_download_url(tag)
        workdir = Path(tempfile.mkdtemp(prefix="traefik_setup_", dir=self.config.TEMP_DIR))
        try:
            archive = self.download(url, workdir / "traefik.tar.gz")
            print_step(
                f"Unpacking and installing the binary to {self.config.BINARY_PATH.parent}..."
            )
            installed = self.install_binary(self.extract_binary(archive, workdir))
        finally:
            shutil.rmtree(workdir, ignore_errors=True)

        print_success("Traefik installed successfully")
        self.report_version()
        return installed
