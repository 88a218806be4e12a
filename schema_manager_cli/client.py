"""HTTP client for the Schema Manager API."""

from typing import Any

import httpx

from .config import CLIConfig, get_config


class APIError(Exception):
    """API error with status code and message."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{status_code}] {message}")


class SchemaManagerClient:
    """HTTP client for the Schema Manager API.

    Every operation is a POST of ``{"action": ..., ...}`` to ``/schema-manager``.
    """

    ENDPOINT = "/schema-manager"

    def __init__(self, config: CLIConfig | None = None, verbose: bool = False):
        self.config = config or get_config()
        self.verbose = verbose
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.config.url,
                headers={
                    "Authorization": f"Bearer {self.config.token}",
                    "Content-Type": "application/json",
                },
                timeout=60.0,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self) -> "SchemaManagerClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        """Handle API response, raising APIError if not successful."""
        if self.verbose:
            print(f"  -> {response.status_code} ({response.elapsed.total_seconds():.2f}s)")

        if response.status_code >= 400:
            try:
                error_data = response.json()
                message = error_data.get("error") or response.text
            except (ValueError, AttributeError):
                message = response.text or f"HTTP {response.status_code}"

            raise APIError(response.status_code, message)

        try:
            return response.json()
        except ValueError:
            return {}

    def call(self, action: str, **fields: Any) -> dict[str, Any]:
        """Run one action. Fields that are None are left out of the body."""
        payload = {"action": action}
        payload.update({key: value for key, value in fields.items() if value is not None})

        if self.verbose:
            print(f"POST {self.ENDPOINT} ({action})")
        response = self.client.post(self.ENDPOINT, json=payload)
        return self._handle_response(response)


def get_client(verbose: bool = False) -> SchemaManagerClient:
    """Get a configured API client."""
    config = get_config()
    errors = config.validate()
    if errors:
        raise ValueError("\n".join(errors))
    return SchemaManagerClient(config, verbose=verbose)
