"""SSH/SFTP access to the BMC filesystem."""

import errno
import logging
import shlex
import socket
import stat
from pathlib import Path

import paramiko

from tpibox.bmc.models import RemoteFileInfo
from tpibox.config.models import BMCConfig
from tpibox.core.deadline import Deadline
from tpibox.core.errors import NetworkError, RemoteCommandError


logger = logging.getLogger(__name__)


class SSHTransport:
    """Lists, uploads and executes on the BMC over one reused SSH connection.

    The connection is opened lazily on first use and kept until ``close()``.
    """

    def __init__(
        self,
        host: str,
        username: str,
        password: str | None = None,
        port: int = 22,
        timeout: float = 30.0,
    ):
        self._hostname = host
        self._username = username
        self._password = password
        self._port = port
        self._timeout = timeout
        self._ssh_client: paramiko.SSHClient | None = None
        self._sftp_client: paramiko.SFTPClient | None = None

    def __repr__(self) -> str:
        return f"<SSHTransport {self._username}@{self._hostname}:{self._port}>"

    def __enter__(self) -> "SSHTransport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _client(self) -> paramiko.SSHClient:
        if self._ssh_client is not None:
            return self._ssh_client
        ssh_client = paramiko.SSHClient()
        # Host keys are not pinned: the BMC gets a new one on every firmware update
        ssh_client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            ssh_client.connect(
                self._hostname,
                port=self._port,
                username=self._username,
                password=self._password,
                timeout=self._timeout,
                banner_timeout=self._timeout,
                look_for_keys=self._password is None,
                allow_agent=self._password is None,
            )
        except paramiko.ssh_exception.NoValidConnectionsError as e:
            raise NetworkError(
                f"Cannot connect to {self}: {e} (is SSH enabled on the BMC?)"
            ) from e
        except paramiko.ssh_exception.AuthenticationException as e:
            raise NetworkError(f"SSH authentication failed for {self}: {e}") from e
        except (paramiko.ssh_exception.SSHException, OSError) as e:
            raise NetworkError(f"Cannot connect to {self}: {e}") from e
        logger.debug("Opened SSH connection %s", self)
        self._ssh_client = ssh_client
        return ssh_client

    def _sftp(self) -> paramiko.SFTPClient:
        if self._sftp_client is None:
            try:
                self._sftp_client = self._client().open_sftp()
            except paramiko.ssh_exception.SSHException as e:
                raise NetworkError(f"Cannot open SFTP session on {self}: {e}") from e
        return self._sftp_client

    def close(self) -> None:
        if self._sftp_client is not None:
            self._sftp_client.close()
            self._sftp_client = None
        if self._ssh_client is not None:
            self._ssh_client.close()
            self._ssh_client = None

    def list_dir(self, path: str) -> list[RemoteFileInfo]:
        try:
            entries = self._sftp().listdir_attr(path)
        except (paramiko.ssh_exception.SSHException, socket.timeout) as e:
            raise NetworkError(f"Listing {self}:{path} failed: {e}") from e
        except OSError as e:
            if e.errno == errno.ENOENT:
                raise FileNotFoundError(errno.ENOENT, "no such remote directory", path) from e
            raise
        return [
            RemoteFileInfo(
                name=entry.filename,
                size=entry.st_size or 0,
                is_dir=stat.S_ISDIR(entry.st_mode or 0),
            )
            for entry in entries
        ]

    def upload_file(
        self, local_path: Path, remote_path: str, deadline: Deadline | None = None
    ) -> None:
        logger.info("Uploading %s to %s:%s", local_path, self._hostname, remote_path)
        callback = None
        if deadline is not None:
            # Called by paramiko after every written block
            def callback(_transferred: int, _total: int) -> None:
                deadline.check("cache")

        try:
            self._sftp().put(str(local_path), remote_path, callback=callback, confirm=True)
        except (paramiko.ssh_exception.SSHException, socket.timeout) as e:
            raise NetworkError(f"Upload to {self}:{remote_path} failed: {e}") from e

    def exec_command(self, command: str) -> str:
        logger.debug("Running on %s: %s", self, command)
        try:
            _stdin, stdout, stderr = self._client().exec_command(
                command, timeout=self._timeout
            )
            output = stdout.read().decode("utf-8", errors="replace")
            error_output = stderr.read().decode("utf-8", errors="replace")
            exit_status = stdout.channel.recv_exit_status()
        except (paramiko.ssh_exception.SSHException, socket.timeout) as e:
            raise NetworkError(f"Command {command!r} on {self} failed: {e}") from e
        if exit_status != 0:
            raise RemoteCommandError(
                f"{command!r} exited with {exit_status}: {error_output.strip()}",
                exit_status=exit_status,
            )
        return output


def quote(path: str) -> str:
    """Quote a remote path for use in a shell command."""
    return shlex.quote(path)


def create_ssh_transport(config: BMCConfig) -> SSHTransport:
    """Create an SSHTransport from BMC configuration."""
    return SSHTransport(
        host=config.host.split("://", 1)[-1].rstrip("/"),
        username=config.ssh_user or config.username,
        password=config.ssh_password or config.password,
        port=config.ssh_port,
        timeout=config.request_timeout,
    )
