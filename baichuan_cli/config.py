"""Configuration dataclasses for baichuan-cli."""

import os
from dataclasses import dataclass

from baichuan_cli.client import DEFAULT_ENDPOINT, DEFAULT_TIMEOUT, BaichuanClient
from baichuan_cli.models import Model

DEFAULT_HISTORY_FILE = ".bc_cli_history"


@dataclass
class ClientConfig:
    """Settings for talking to the Baichuan API.

    Attributes:
        api_key: API key, sent as bearer token.
        secret_key: Secret used to sign requests.
        model: Target model.
        endpoint: Chat endpoint URL.
        timeout: Per-call timeout in seconds.
        strict_codes: Treat undocumented response codes as decode errors
            (False maps them to ResponseCode UNKNOWN).
        history_file: Where the REPL keeps its input history.
        log_level: Root logging level name for the CLI.
    """

    api_key: str
    secret_key: str
    model: Model = Model.BAICHUAN2_53B
    endpoint: str = DEFAULT_ENDPOINT
    timeout: float = DEFAULT_TIMEOUT
    strict_codes: bool = True
    history_file: str = DEFAULT_HISTORY_FILE
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ValueError("api_key must not be empty")
        if not self.secret_key:
            raise ValueError("secret_key must not be empty")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if isinstance(self.model, str):
            self.model = Model.parse(self.model)
        self.log_level = self.log_level.upper()

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "ClientConfig":
        """Build a config from environment variables.

        ``BAICHUAN_API_KEY``/``BAICHUAN_SECRET_KEY`` win over the plain
        ``API_KEY``/``SECRET_KEY`` names.

        Raises:
            ValueError: If credentials are missing or a value is malformed.
        """
        env = os.environ if environ is None else environ

        def getenv(*keys: str) -> str | None:
            for key in keys:
                value = env.get(key)
                if value:
                    return value
            return None

        kwargs = {}
        if model := getenv("BAICHUAN_MODEL"):
            kwargs["model"] = Model.parse(model)
        if endpoint := getenv("BAICHUAN_ENDPOINT"):
            kwargs["endpoint"] = endpoint
        if timeout := getenv("BAICHUAN_TIMEOUT"):
            kwargs["timeout"] = float(timeout)

        return cls(
            api_key=getenv("BAICHUAN_API_KEY", "API_KEY") or "",
            secret_key=getenv("BAICHUAN_SECRET_KEY", "SECRET_KEY") or "",
            **kwargs,
        )

    def create_client(self) -> BaichuanClient:
        return BaichuanClient(
            self.api_key,
            self.secret_key,
            self.model,
            endpoint=self.endpoint,
            timeout=self.timeout,
            strict_codes=self.strict_codes,
        )
