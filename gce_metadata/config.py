from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Default metadata server address. Reachable from every GCE instance without DNS.
METADATA_IP = "169.254.169.254"

# DNS name of the metadata server (trailing dot: skip search domains)
METADATA_HOSTNAME = "metadata.google.internal."

METADATA_FLAVOR_HEADER = "Metadata-Flavor"
METADATA_FLAVOR_VALUE = "Google"


class HostSettings(BaseSettings):
    """Where metadata requests go. Instantiate per call; values come from the environment.

    Validated on its own: a malformed detection setting does not affect it.
    """

    model_config = SettingsConfigDict(populate_by_name=True)

    metadata_host: str = Field("", validation_alias="GCE_METADATA_HOST")

    @property
    def host(self) -> str:
        """The host to send metadata requests to. An explicit override always wins."""
        return self.metadata_host or METADATA_IP

    @property
    def host_overridden(self) -> bool:
        return bool(self.metadata_host)


class MetadataSettings(HostSettings):
    """Host settings plus the knobs used by environment detection."""

    metadata_ip: str = Field(METADATA_IP, validation_alias="GCE_METADATA_IP")
    detect_timeout: float = Field(5.0, validation_alias="GCE_METADATA_DETECT_TIMEOUT")


def get_host_settings() -> HostSettings:
    return HostSettings()


def get_settings() -> MetadataSettings:
    return MetadataSettings()
