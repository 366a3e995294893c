from pathlib import Path
from pydantic import BaseModel, Field
from typing import Optional


class GatewayConfig(BaseModel):
    """
    Runtime configuration for nfs-gateway.

    This configuration is loaded from:
    1. Command-line flags (applied by the entry point)
    2. Environment variables (NFSG_*)
    3. Configuration file (if provided)
    4. Default values (hardcoded)

    Priority: Flags > Environment variables > Config file > Defaults
    """

    # Storage layout
    data_root: str = Field(
        default="/var/lib/nfsg",
        description="Location to store the volume database and exported directories"
    )

    db_timeout_sec: float = Field(
        default=10.0,
        gt=0,
        le=300,
        description="Seconds to wait for the volume database lock"
    )

    # Export mechanism
    exportfs_path: Optional[str] = Field(
        default=None,
        description="Path to the exportfs binary. If empty, it is looked up on PATH."
    )

    setup_nfs: bool = Field(
        default=True,
        description="Prepare the kernel NFS server (nfsd mount, daemons) on startup"
    )

    # API server
    api_host: str = Field(
        default="127.0.0.1",
        description="API server host"
    )

    api_port: int = Field(
        default=80,
        ge=1,
        le=65535,
        description="API server port"
    )

    # Logging
    log_level: str = Field(
        default="info",
        description="Logging level (debug/info/warning/error)"
    )

    log_file: Optional[str] = Field(
        default=None,
        description="Optional file to write logs to in addition to stderr"
    )

    @property
    def nfs_root(self) -> Path:
        """Directory holding one subdirectory per volume."""
        return Path(self.data_root) / "nfs"

    @property
    def db_path(self) -> Path:
        """SQLite file backing the record store."""
        return Path(self.data_root) / "volumes.db"

    @classmethod
    def from_env(cls, **overrides) -> "GatewayConfig":
        """
        Load configuration from environment variables.

        Environment variables (NFSG_*) override defaults and ``overrides``
        (typically values read from a config file):

        - NFSG_DATA_ROOT: Data root directory
        - NFSG_DB_TIMEOUT: Database lock timeout in seconds
        - NFSG_EXPORTFS: Path to exportfs
        - NFSG_SETUP_NFS: Prepare kernel NFS server (true/false)
        - NFSG_API_HOST: API server host
        - NFSG_API_PORT: API server port
        - NFSG_LOG_LEVEL: Logging level
        - NFSG_LOG_FILE: Log file path
        """
        import os

        kwargs = dict(overrides)

        if "NFSG_DATA_ROOT" in os.environ:
            kwargs["data_root"] = os.environ["NFSG_DATA_ROOT"]
        if "NFSG_DB_TIMEOUT" in os.environ:
            kwargs["db_timeout_sec"] = float(os.environ["NFSG_DB_TIMEOUT"])
        if "NFSG_EXPORTFS" in os.environ:
            kwargs["exportfs_path"] = os.environ["NFSG_EXPORTFS"]
        if "NFSG_SETUP_NFS" in os.environ:
            kwargs["setup_nfs"] = os.environ["NFSG_SETUP_NFS"].lower() == "true"
        if "NFSG_API_HOST" in os.environ:
            kwargs["api_host"] = os.environ["NFSG_API_HOST"]
        if "NFSG_API_PORT" in os.environ:
            kwargs["api_port"] = int(os.environ["NFSG_API_PORT"])
        if "NFSG_LOG_LEVEL" in os.environ:
            kwargs["log_level"] = os.environ["NFSG_LOG_LEVEL"]
        if "NFSG_LOG_FILE" in os.environ:
            kwargs["log_file"] = os.environ["NFSG_LOG_FILE"]

        return cls(**kwargs)

    @classmethod
    def from_file(cls, config_path: str) -> "GatewayConfig":
        """
        Load configuration from a YAML or JSON file.

        Supported formats: .yaml, .yml, .json
        """
        import yaml

        with open(config_path, "r") as f:
            if config_path.endswith((".yaml", ".yml")):
                data = yaml.safe_load(f) or {}
            elif config_path.endswith(".json"):
                import json
                data = json.load(f)
            else:
                raise ValueError(f"Unsupported config format: {config_path}")

        return cls(**data)

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "GatewayConfig":
        """Config file (if any) overlaid by the environment."""
        if config_path is None:
            return cls.from_env()
        file_config = cls.from_file(config_path)
        return cls.from_env(**file_config.model_dump(exclude_unset=True))
