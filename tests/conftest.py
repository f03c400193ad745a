"""Core test fixtures for the tpibox project."""

import gzip
import hashlib
import lzma
import os
import posixpath
import shlex
import zipfile
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from tpibox.bmc.models import NODE_COUNT, RemoteFileInfo, UsbMode, UsbStatus
from tpibox.core.deadline import Deadline
from tpibox.core.errors import FlashError, RemoteCommandError


IMAGE_BYTES = b"TPIBOX-TEST-IMAGE\x00" * 4096 + b"tail"
IMAGE_HASH = hashlib.sha256(IMAGE_BYTES).hexdigest()


# ---- Test Isolation Fixtures ----


@pytest.fixture(autouse=True)
def isolated_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[dict[str, Path], None, None]:
    """Point XDG directories into tmp_path and drop TPIBOX_* variables.

    The working directory is moved as well so no ./tpibox.yaml is picked up.
    """
    for key in list(os.environ):
        if key.upper().startswith("TPIBOX_"):
            monkeypatch.delenv(key, raising=False)

    cache_home = tmp_path / "xdg-cache"
    config_home = tmp_path / "xdg-config"
    work_dir = tmp_path / "work"
    for directory in (cache_home, config_home, work_dir):
        directory.mkdir()

    monkeypatch.setenv("XDG_CACHE_HOME", str(cache_home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.chdir(work_dir)

    yield {"cache_home": cache_home, "config_home": config_home, "work_dir": work_dir}


@pytest.fixture
def cli_runner() -> CliRunner:
    """Return a Typer CLI test runner."""
    return CliRunner()


# ---- Image Fixtures ----


def write_compressed(path: Path, data: bytes, kind: str) -> Path:
    """Write ``data`` to ``path`` using the given container format."""
    if kind == "xz":
        path.write_bytes(lzma.compress(data))
    elif kind == "gz":
        path.write_bytes(gzip.compress(data))
    elif kind == "zip":
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.writestr("image.img", data)
    else:
        path.write_bytes(data)
    return path


@pytest.fixture
def image_bytes() -> bytes:
    return IMAGE_BYTES


@pytest.fixture
def image_hash() -> str:
    return IMAGE_HASH


@pytest.fixture
def raw_image(tmp_path: Path) -> Path:
    """Uncompressed image file outside any cache."""
    images = tmp_path / "images"
    images.mkdir(exist_ok=True)
    path = images / "os.img"
    path.write_bytes(IMAGE_BYTES)
    return path


# ---- Fake Collaborators ----


class FakeResponse:
    """Minimal streaming stand-in for ``requests.Response``."""

    def __init__(
        self,
        body: bytes = b"",
        status_code: int = 200,
        headers: dict[str, str] | None = None,
        chunk_size: int = 64 * 1024,
    ):
        self.body = body
        self.status_code = status_code
        self.headers = headers or {}
        self.chunk_size = chunk_size
        self.closed = False

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.closed = True

    def iter_content(self, chunk_size: int = 1) -> Generator[bytes, None, None]:
        for start in range(0, len(self.body), self.chunk_size):
            yield self.body[start : start + self.chunk_size]


class FakeSession:
    """Serves fixed bodies per URL and records every GET."""

    def __init__(self, responses: dict[str, FakeResponse] | None = None):
        self.responses = responses or {}
        self.requests: list[str] = []

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append(url)
        return self.responses[url]


class FakeTransport:
    """In-memory BMC filesystem speaking the three remote primitives."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.dirs: set[str] = {"/", "/tmp"}
        self.commands: list[str] = []
        self.uploads: list[str] = []
        self.closed = False

    def list_dir(self, path: str) -> list[RemoteFileInfo]:
        path = path.rstrip("/") or "/"
        if path not in self.dirs:
            raise FileNotFoundError(path)
        entries = [
            RemoteFileInfo(name=posixpath.basename(name), size=len(data))
            for name, data in self.files.items()
            if posixpath.dirname(name) == path
        ]
        entries.extend(
            RemoteFileInfo(name=posixpath.basename(name), is_dir=True)
            for name in self.dirs
            if name != path and posixpath.dirname(name) == path
        )
        return entries

    def upload_file(
        self, local_path: Path, remote_path: str, deadline: Deadline | None = None
    ) -> None:
        if posixpath.dirname(remote_path) not in self.dirs:
            raise OSError(f"no such directory for {remote_path}")
        self.uploads.append(remote_path)
        self.files[remote_path] = Path(local_path).read_bytes()
        if deadline is not None:
            deadline.check("cache")

    def exec_command(self, command: str) -> str:
        self.commands.append(command)
        argv = shlex.split(command)
        if argv[:2] == ["mkdir", "-p"]:
            path = argv[2].rstrip("/")
            while path and path not in self.dirs:
                self.dirs.add(path)
                path = posixpath.dirname(path)
        elif argv[:2] == ["mv", "-f"]:
            source, target = argv[2], argv[3]
            if source not in self.files:
                raise RemoteCommandError(f"mv: cannot stat {source}", exit_status=1)
            self.files[target] = self.files.pop(source)
        elif argv[:2] == ["rm", "-f"]:
            self.files.pop(argv[2], None)
        elif argv[:2] == ["rm", "-rf"]:
            root = argv[2].rstrip("/")
            self.files = {
                name: data
                for name, data in self.files.items()
                if not name.startswith(root + "/")
            }
            self.dirs = {d for d in self.dirs if d != root and not d.startswith(root + "/")}
        else:
            raise RemoteCommandError(f"unsupported command {command!r}", exit_status=127)
        return ""

    def close(self) -> None:
        self.closed = True


class FakeBMC:
    """Records flash and state-change calls instead of talking to a board."""

    def __init__(self) -> None:
        self.power = dict.fromkeys(range(1, NODE_COUNT + 1), False)
        self.usb = UsbStatus(mode=UsbMode.HOST, node=1, route_bmc=False)
        self.local_flashes: list[dict[str, Any]] = []
        self.remote_flashes: list[dict[str, Any]] = []
        self.state_changes: list[tuple[Any, ...]] = []
        self.fail_flash: str | None = None

    def flash_from_local_file(
        self,
        node: int,
        path: Path,
        content_hash: str,
        skip_crc: bool = False,
        deadline: Deadline | None = None,
    ) -> None:
        if self.fail_flash:
            raise FlashError(self.fail_flash)
        self.local_flashes.append(
            {
                "node": node,
                "path": Path(path),
                "content_hash": content_hash,
                "skip_crc": skip_crc,
                "data": Path(path).read_bytes(),
            }
        )

    def flash_from_remote_path(
        self, node: int, remote_path: str, deadline: Deadline | None = None
    ) -> None:
        if self.fail_flash:
            raise FlashError(self.fail_flash)
        self.remote_flashes.append({"node": node, "remote_path": remote_path})

    def power_status(self) -> dict[int, bool]:
        return dict(self.power)

    def power_on(self, node: int) -> None:
        self.state_changes.append(("power_on", node))
        self.power[node] = True

    def power_off(self, node: int) -> None:
        self.state_changes.append(("power_off", node))
        self.power[node] = False

    def usb_status(self) -> UsbStatus:
        return self.usb

    def usb_set(self, node: int, mode: UsbMode, bmc_route: bool = False) -> None:
        self.state_changes.append(("usb_set", node, mode, bmc_route))
        self.usb = UsbStatus(mode=mode, node=node, route_bmc=bmc_route)

    def info(self) -> dict[str, str]:
        return {"ip": "192.168.1.10", "mac": "02:00:00:00:00:01"}

    def about(self) -> dict[str, str]:
        return {"version": "2.0.5", "buildroot": "2022.02"}


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def fake_bmc() -> FakeBMC:
    return FakeBMC()
