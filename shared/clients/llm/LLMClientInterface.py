from abc import abstractmethod
import time
from typing import Callable

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.clients.llm.models.Generation import GenerationConfig, GenerationResult
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import AuthRequiredError, InputValidationError
from shared.storage.StoreInterface import StoreInterface

API_KEY_STORE_KEY = "llm_api_key"


class LLMClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig, user_store: StoreInterface, clock: Callable[[], float] = time.time):
        super().__init__(helper_config=helper_config, user_store=user_store, clock=clock)

        # generation config
        self.model = self.get_config_val("MODEL", default=self._get_default_model(), val_type="string")
        self.generation_config = GenerationConfig(
            temperature=helper_config.get_number_val(f"{self.get_client_type().upper()}_TEMPERATURE", default=0.7),
            max_output_tokens=helper_config.get_number_val(f"{self.get_client_type().upper()}_MAX_OUTPUT_TOKENS", default=8192),
            top_p=helper_config.get_number_val(f"{self.get_client_type().upper()}_TOP_P", default=0.95),
            top_k=helper_config.get_number_val(f"{self.get_client_type().upper()}_TOP_K", default=40),
        )

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    def _get_default_timeout(self) -> float:
        return 60.0

    @abstractmethod
    def _get_default_model(self) -> str:
        """Returns the model used when none is configured (e.g. "gemini-2.0-flash")."""
        pass

    ################ API KEY ##################
    def get_api_key(self) -> str | None:
        """
        Returns the user's own API key, falling back to the configured one.
        """
        return self._user_store.get_property(API_KEY_STORE_KEY) or self.get_config_val("API_KEY", default="", val_type="string") or None

    def has_api_key(self) -> bool:
        return self.get_api_key() is not None

    def set_api_key(self, api_key: str) -> None:
        """
        Persists the API key in the user scope.

        Raises:
            InputValidationError: If the key is empty.
        """
        api_key = (api_key or "").strip()
        if not api_key:
            raise InputValidationError("The API key must not be empty.")
        self._user_store.set_property(API_KEY_STORE_KEY, api_key)
        self.logging.info("Stored %s API key for the current user.", self._get_engine_name())

    def clear_api_key(self) -> None:
        self._user_store.delete_property(API_KEY_STORE_KEY)

    def _require_api_key(self) -> str:
        api_key = self.get_api_key()
        if not api_key:
            raise AuthRequiredError(
                f"No {self._get_engine_name()} API key configured.",
                next_step="Set your API key in the settings.",
            )
        return api_key

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_generate(self) -> str:
        """Returns the endpoint path for generation requests (e.g. "/models/gemini-2.0-flash:generateContent")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def _get_generate_payload(self, prompt: str, system_instruction: str | None = None) -> dict:
        """Build the backend-specific request body for a generation request.

        Args:
            prompt (str): The user prompt.
            system_instruction (str | None): Optional instruction applied to the whole conversation.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    @abstractmethod
    def _get_auth_params(self, api_key: str) -> dict:
        """Returns the query parameters that carry the API key, if the backend authenticates that way."""
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def _parse_endpoint_generate(self, response: dict) -> GenerationResult:
        """Extract the generated text from a raw generation response.

        Raises:
            ValueError: If the prompt was blocked or no text was produced.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        return await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_healthcheck(),
            params=self._get_auth_params(self._require_api_key()),
        )

    async def do_generate(self, prompt: str, system_instruction: str | None = None) -> GenerationResult:
        """Send one generation request and return the generated text.

        Raises:
            InputValidationError: If the prompt is empty.
            AuthRequiredError: If no API key is available or the backend rejects the key (400, 403).
            RateLimitedError: If the backend rejects the call with 429.
            NotFoundError: If the model does not exist.
            RemoteError: For any other non-2xx response.
            ValueError: If the response does not contain usable text.
        """
        if not (prompt or "").strip():
            raise InputValidationError("The prompt must not be empty.")
        api_key = self._require_api_key()

        data = await self.do_json_request(
            method="POST",
            endpoint=self._get_endpoint_generate(),
            json=self._get_generate_payload(prompt, system_instruction=system_instruction),
            params=self._get_auth_params(api_key),
        )
        result = self._parse_endpoint_generate(data)
        self.logging.info(
            "Generated %d characters with %s (%s), finish reason %s, %d tokens.",
            len(result.text), self._get_engine_name(), self.model, result.finish_reason, result.usage.total_tokens,
        )
        return result
