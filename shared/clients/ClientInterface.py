from abc import ABC, abstractmethod
import time
from typing import Any, Callable

import httpx
from httpx._types import QueryParamTypes

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.errors import ConfigurationError, RateLimitedError, RemoteError, TransientError
from shared.storage.StoreInterface import StoreInterface


class ClientInterface(ABC):
    def __init__(self, helper_config: HelperConfig, user_store: StoreInterface, clock: Callable[[], float] = time.time):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self._user_store = user_store
        self._clock = clock
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=self._get_default_timeout())

        # client and config
        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Validates that all required configuration values for the client are set and valid.

        Raises:
            ConfigurationError: If any required configuration value is missing or invalid.
        """
        for config in self._get_required_config():
            try:
                _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)
            except ValueError as e:
                raise ConfigurationError(f"{self.get_client_type().upper()} client '{self.get_engine_name()}' is misconfigured: {e}")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """
        Returns the type of the client in lowercase. E.g. "plm"
        """
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "plm"
        """
        pass

    def get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "arena"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "Arena"
        """
        pass

    def _get_default_timeout(self) -> float:
        return 30.0

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns all required configurations for the client.

        Returns:
            list[EnvConfig]: A list containing the details of each required configuration key.
        """
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        """
        Returns:
            str: The full configuration key name for the client. E.g. "PLM_ARENA_BASE_URL"
        """
        key_prefix = f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}"
        return f"{key_prefix}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Retrieves the value of a configuration key for the client.

        Args:
            raw_key (str): The raw configuration key name
            default (Any): The default value to return if the configuration key is not set
            val_type (str): The type of the configuration value ("string", "number", "bool", "list")
        """
        key = self._get_config_key_name(raw_key)
        if val_type == "string":
            return self._helper_config.get_string_val(key, default=default)
        elif val_type == "number":
            return self._helper_config.get_number_val(key, default=default)
        elif val_type == "bool":
            return self._helper_config.get_bool_val(key, default=default)
        elif val_type == "list":
            return self._helper_config.get_list_val(key, default=default)
        else:
            raise ValueError(f"Unsupported config value type '{val_type}' for env key '{raw_key}' in {self.get_client_type().upper()} client '{self.get_engine_name()}'.")

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """
        Returns the authentication header for the backend server.

        Returns:
            dict: A dictionary containing the auth data, empty if the backend authenticates otherwise.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """
        Returns the base URL of the backend server from env variables

        Returns:
            str: The base URL of the backend server (e.g. "https://api.arenasolutions.com/v1")
        """
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """
        Returns the endpoint path for healthcheck requests.
        """
        pass

    ##########################################
    ########### ERROR HANDLING ###############
    ##########################################

    def _extract_error_message(self, response: httpx.Response) -> str:
        """
        Extracts the error message from a failed response: the body's structured
        error field when present, otherwise the raw body text.
        """
        try:
            body = response.json()
        except ValueError:
            return response.text[:500] or f"HTTP {response.status_code}"

        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if isinstance(error, str) and error:
                return error
            if body.get("message"):
                return str(body["message"])
            errors = body.get("errors")
            if isinstance(errors, list) and errors and isinstance(errors[0], dict) and errors[0].get("message"):
                return str(errors[0]["message"])
        return response.text[:500]

    def _classify_error(self, response: httpx.Response, message: str) -> Exception:
        """
        Maps a non-2xx response to the error taxonomy. Subclasses handle their
        backend-specific auth statuses first and defer to this for the rest.
        """
        if response.status_code == 429:
            return RateLimitedError(f"{self._get_engine_name()} rate limit reached: {message}")
        return RemoteError(
            f"{self._get_engine_name()} request failed with status {response.status_code}: {message}",
            status=response.status_code,
        )

    def raise_for_status(self, response: httpx.Response) -> None:
        """
        Raises the classified error for non-2xx responses.
        """
        if response.is_success:
            return
        message = self._extract_error_message(response)
        self.logging.error(
            "Request to %s failed with status %d: %s",
            response.request.url.path,
            response.status_code,
            message,
        )
        raise self._classify_error(response, message)

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """Check if the backend is reachable by sending a test request.

        Returns:
            httpx.Response: The response from the healthcheck request.
        """
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialise the HTTP client. A transport may be injected (e.g. httpx.MockTransport)."""
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        """Close the HTTP client and any other resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_request(
        self,
        method: str = "GET",
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        authenticated: bool = True,
    ) -> httpx.Response:
        """Send an HTTP request to the backend.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, ...).
            json: JSON-serialisable body (sets Content-Type automatically).
            params: URL query parameters.
            endpoint: Path to append to the base URL (leading slash optional).
            additional_headers: Extra headers that override the defaults.
            authenticated: Whether to attach the auth header.

        Returns:
            The raw httpx.Response, whatever its status.

        Raises:
            Exception: If the client is not initialised.
            TransientError: If the backend cannot be reached.
        """
        if self._client is None:
            raise Exception("HTTP client not initialised. Call boot() before making requests.")

        endpoint = "/" + endpoint.strip().lstrip("/") if endpoint.strip() else ""

        headers: dict = {}
        if authenticated:
            headers.update(self._get_auth_header())
        if additional_headers:
            headers.update(additional_headers)

        url = f"{self._get_base_url().rstrip('/')}{endpoint}"
        try:
            return await self._client.request(method, url, headers=headers, params=params, json=json, timeout=self.timeout)
        except httpx.TransportError as e:
            self.logging.error("Could not reach %s at %s: %s", self._get_engine_name(), endpoint or "/", e)
            raise TransientError(f"Could not reach {self._get_engine_name()}.") from e

    async def do_json_request(
        self,
        method: str = "GET",
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        authenticated: bool = True,
    ) -> Any:
        """Send a request, raise the classified error on failure, and decode the JSON body."""
        response = await self.do_request(method=method, json=json, params=params, endpoint=endpoint, authenticated=authenticated)
        self.raise_for_status(response)
        if not response.content:
            return {}
        return response.json()
