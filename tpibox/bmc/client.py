"""HTTP client for the BMC's management API."""

import logging
import time
import uuid
from pathlib import Path
from typing import Any

import requests
import urllib3

from tpibox.bmc.models import (
    NODE_COUNT,
    FlashProgress,
    FlashState,
    UsbMode,
    UsbStatus,
)
from tpibox.config.models import BMCConfig
from tpibox.core.deadline import Deadline
from tpibox.core.errors import (
    BMCError,
    ConfigError,
    FlashError,
    NetworkError,
    ProvisionTimeoutError,
)


logger = logging.getLogger(__name__)

# USB mode codes understood by the BMC; the route bit selects the BMC as USB host
USB_MODE_CODES = {UsbMode.HOST: 0, UsbMode.DEVICE: 1, UsbMode.FLASH: 2}
USB_ROUTE_BMC_BIT = 4

UPLOAD_CHUNK_SIZE = 1024 * 1024


def validate_node(node: int) -> int:
    """Check a 1-based node number and return it."""
    if not isinstance(node, int) or isinstance(node, bool) or not 1 <= node <= NODE_COUNT:
        raise ConfigError(f"Node must be between 1 and {NODE_COUNT}, got {node!r}")
    return node


class _MultipartFileStream:
    """Streams one file as a multipart/form-data body with a known length.

    ``requests`` buffers ``files=`` uploads in memory, which does not work for
    multi-gigabyte images.
    """

    def __init__(self, path: Path, field: str = "file", deadline: Deadline | None = None):
        self.boundary = uuid.uuid4().hex
        self._deadline = deadline
        self._file = path.open("rb")
        self._size = path.stat().st_size
        self._head = (
            f"--{self.boundary}\r\n"
            f'Content-Disposition: form-data; name="{field}"; filename="{path.name}"\r\n'
            "Content-Type: application/octet-stream\r\n\r\n"
        ).encode()
        self._tail = f"\r\n--{self.boundary}--\r\n".encode()
        self._pending = self._head

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    def __len__(self) -> int:
        return len(self._head) + self._size + len(self._tail)

    def __iter__(self):
        while True:
            chunk = self.read(UPLOAD_CHUNK_SIZE)
            if not chunk:
                return
            yield chunk

    def read(self, size: int = -1) -> bytes:
        if self._deadline is not None:
            self._deadline.check("flash")
        if self._pending:
            data, self._pending = self._pending, b""
            return data
        if self._file.closed:
            return b""
        data = self._file.read(UPLOAD_CHUNK_SIZE if size is None or size < 0 else size)
        if data:
            return data
        self._file.close()
        return self._tail

    def close(self) -> None:
        self._file.close()


class BMCClient:
    """Client for the BMC HTTP API (``/api/bmc``).

    Nodes are numbered 1..4 on this interface and translated to the BMC's
    0-based indices on the wire.
    """

    API_PATH = "/api/bmc"
    # Polls without a running job before a flash counts as never started
    MAX_IDLE_POLLS = 30

    def __init__(
        self,
        config: BMCConfig | None = None,
        session: requests.Session | None = None,
        poll_interval: float = 2.0,
    ):
        self.config = config or BMCConfig()
        self.session = session or requests.Session()
        self.session.auth = (self.config.username, self.config.password)
        self.session.verify = self.config.verify_tls
        self.poll_interval = poll_interval
        if not self.config.verify_tls:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def _get_full_url(self, suffix: str = "") -> str:
        return f"{self.config.base_url}{self.API_PATH}{suffix}"

    def _handle_response(self, response: requests.Response) -> Any:
        """Check the status and return the ``result`` part of the body."""
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise BMCError(
                f"BMC request failed: {e}: {response.text[:200]}",
                status_code=response.status_code,
            ) from e

        if not response.content.strip():
            return None
        try:
            payload = response.json()
        except ValueError as e:
            raise BMCError(
                f"BMC returned invalid JSON (status {response.status_code}): "
                f"{response.text[:200]}",
                status_code=response.status_code,
            ) from e
        return self._extract_result(payload)

    @staticmethod
    def _extract_result(payload: Any) -> Any:
        # {"response": [{"result": ...}]}
        if isinstance(payload, dict) and "response" in payload:
            response = payload["response"]
            if isinstance(response, list) and response:
                response = response[0]
            if isinstance(response, dict) and "result" in response:
                return response["result"]
            return response
        return payload

    def _request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        suffix: str = "",
        timeout: float | None = None,
        **kwargs: Any,
    ) -> Any:
        url = self._get_full_url(suffix)
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                timeout=timeout or self.config.request_timeout,
                **kwargs,
            )
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"BMC request to {url} failed: {e}") from e
        return self._handle_response(response)

    def _get(self, type_: str, **params: Any) -> Any:
        return self._request("GET", {"opt": "get", "type": type_, **params})

    def _set(self, type_: str, **params: Any) -> Any:
        return self._request("GET", {"opt": "set", "type": type_, **params})

    @staticmethod
    def _first_mapping(result: Any) -> dict[str, Any]:
        if isinstance(result, list):
            merged: dict[str, Any] = {}
            for item in result:
                if isinstance(item, dict):
                    merged.update(item)
            return merged
        if isinstance(result, dict):
            return result
        raise BMCError(f"Unexpected BMC result: {result!r}")

    def info(self) -> dict[str, str]:
        return {k: str(v) for k, v in self._first_mapping(self._get("info")).items()}

    def about(self) -> dict[str, str]:
        return {k: str(v) for k, v in self._first_mapping(self._get("about")).items()}

    def power_status(self) -> dict[int, bool]:
        result = self._first_mapping(self._get("power"))
        status = {}
        for node in range(1, NODE_COUNT + 1):
            status[node] = str(result.get(f"node{node}", "0")).strip() in ("1", "true", "on")
        return status

    def power_on(self, node: int) -> None:
        validate_node(node)
        logger.info("Powering on node %d", node)
        self._set("power", **{f"node{node}": 1})

    def power_off(self, node: int) -> None:
        validate_node(node)
        logger.info("Powering off node %d", node)
        self._set("power", **{f"node{node}": 0})

    def usb_status(self) -> UsbStatus:
        result = self._first_mapping(self._get("usb"))
        node_text = str(result.get("node", "Node 1"))
        digits = "".join(ch for ch in node_text if ch.isdigit())
        try:
            return UsbStatus(
                mode=UsbMode.parse(str(result.get("mode", "host"))),
                node=int(digits) if digits else 1,
                route_bmc=str(result.get("route", "")).upper() == "BMC",
            )
        except ValueError as e:
            raise BMCError(f"Unexpected USB status from BMC: {result!r}") from e

    def usb_set(self, node: int, mode: UsbMode, bmc_route: bool = False) -> None:
        validate_node(node)
        code = USB_MODE_CODES[mode]
        if bmc_route:
            code |= USB_ROUTE_BMC_BIT
        logger.info("Setting USB of node %d to %s (bmc route: %s)", node, mode.value, bmc_route)
        self._set("usb", mode=code, node=node - 1)

    def flash_progress(self) -> FlashProgress:
        """Current state of the BMC's flash job."""
        result = self._get("flash")
        if isinstance(result, dict):
            if "Done" in result:
                return FlashProgress(state=FlashState.DONE)
            if "Error" in result:
                return FlashProgress(state=FlashState.ERROR, message=str(result["Error"]))
            if "Transferring" in result:
                progress = result["Transferring"] or {}
                return FlashProgress(
                    state=FlashState.TRANSFERRING,
                    bytes_written=progress.get("bytes_written"),
                    size=progress.get("size"),
                )
        text = str(result or "").strip().lower()
        if text in ("done", "ok", "success"):
            return FlashProgress(state=FlashState.DONE)
        if text.startswith("error"):
            return FlashProgress(state=FlashState.ERROR, message=str(result))
        return FlashProgress(state=FlashState.IDLE)

    def _wait_for_flash(self, node: int, deadline: Deadline) -> None:
        last_percent: int | None = None
        transferring = False
        idle_polls = 0
        while True:
            deadline.check("flash")
            progress = self.flash_progress()
            if progress.state is FlashState.DONE:
                logger.info("Flashing node %d finished", node)
                return
            if progress.state is FlashState.ERROR:
                raise FlashError(
                    progress.message or "BMC reported a flash error", node=node, phase="flash"
                )
            if progress.state is FlashState.IDLE:
                if transferring:
                    # Job vanished after it was seen transferring
                    if last_percent is not None and last_percent >= 100:
                        logger.info("Flashing node %d finished", node)
                        return
                    reached = "unknown" if last_percent is None else f"{last_percent}%"
                    raise FlashError(
                        f"Flash job ended at {reached} progress without completing",
                        node=node,
                        phase="flash",
                    )
                idle_polls += 1
                if idle_polls >= self.MAX_IDLE_POLLS:
                    raise FlashError(
                        f"BMC did not start the flash job after {idle_polls} polls",
                        node=node,
                        phase="flash",
                    )
            else:
                transferring = True
                if progress.bytes_written is not None and progress.size:
                    percent = int(progress.bytes_written * 100 / progress.size)
                    if last_percent is None or percent // 10 != last_percent // 10:
                        logger.info("Flashing node %d: %d%%", node, percent)
                    last_percent = percent
            time.sleep(self.poll_interval)

    def flash_from_local_file(
        self,
        node: int,
        path: Path,
        content_hash: str,
        skip_crc: bool = False,
        deadline: Deadline | None = None,
    ) -> None:
        """Upload an image from this machine and write it to ``node``."""
        validate_node(node)
        deadline = deadline or Deadline.never()
        size = path.stat().st_size
        params: dict[str, Any] = {
            "file": path.name,
            "length": size,
            "node": node - 1,
            "sha256": content_hash,
        }
        if skip_crc:
            params["skip_crc"] = ""

        try:
            handshake = self._set("flash", **params)
            handle = self._first_mapping(handshake).get("handle")
            if handle is None:
                raise FlashError(f"BMC did not return an upload handle: {handshake!r}")

            logger.info("Uploading %s (%d bytes) to node %d", path.name, size, node)
            body = _MultipartFileStream(path, deadline=deadline)
            try:
                self._request(
                    "POST",
                    suffix=f"/upload/{handle}",
                    data=body,
                    headers={"Content-Type": body.content_type},
                    timeout=deadline.request_timeout(None),
                )
            finally:
                body.close()

            self._wait_for_flash(node, deadline)
        except (FlashError, ProvisionTimeoutError) as e:
            raise e.with_context(node=node, phase="flash")
        except NetworkError as e:
            raise FlashError(str(e), node=node, phase="flash") from e

    def flash_from_remote_path(
        self, node: int, remote_path: str, deadline: Deadline | None = None
    ) -> None:
        """Write an image already stored on the BMC to ``node``."""
        validate_node(node)
        deadline = deadline or Deadline.never()
        logger.info("Flashing node %d from BMC file %s", node, remote_path)
        try:
            self._set("flash", local="", file=remote_path, node=node - 1)
            self._wait_for_flash(node, deadline)
        except (FlashError, ProvisionTimeoutError) as e:
            raise e.with_context(node=node, phase="flash")
        except NetworkError as e:
            raise FlashError(str(e), node=node, phase="flash") from e


def create_bmc_client(config: BMCConfig, session: requests.Session | None = None) -> BMCClient:
    """Create a BMCClient from configuration."""
    return BMCClient(config=config, session=session)
