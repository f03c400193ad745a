"""BMC connection configuration models."""

from pydantic import BaseModel, Field, model_validator


DEFAULT_REMOTE_CACHE_DIR = "/tmp/tpibox-cache"


class BMCConfig(BaseModel):
    """Connection settings for the board management controller.

    The HTTP API and the SSH service use separate credentials; the SSH
    credentials fall back to the HTTP ones when left unset.
    """

    host: str = Field(default="turingpi.local", description="BMC hostname or IP")
    username: str = Field(default="root", description="BMC API username")
    password: str = Field(default="turing", description="BMC API password")
    ssh_user: str | None = Field(
        default=None, description="SSH username for BMC file operations"
    )
    ssh_password: str | None = Field(
        default=None, description="SSH password for BMC file operations"
    )
    ssh_port: int = Field(default=22, ge=1, le=65535)
    verify_tls: bool = Field(
        default=False, description="Verify the BMC's TLS certificate"
    )
    request_timeout: float = Field(
        default=30.0, gt=0, description="Timeout in seconds for BMC API calls"
    )
    remote_cache_dir: str = Field(
        default=DEFAULT_REMOTE_CACHE_DIR,
        description="Directory on the BMC holding cached images",
    )

    @model_validator(mode="after")
    def default_ssh_credentials(self) -> "BMCConfig":
        if not self.ssh_user:
            self.ssh_user = self.username
        if not self.ssh_password:
            self.ssh_password = self.password
        return self

    @property
    def base_url(self) -> str:
        if self.host.startswith(("http://", "https://")):
            return self.host.rstrip("/")
        return f"https://{self.host}"
