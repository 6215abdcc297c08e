import httpx

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.llm.models.Generation import GenerationResult, GenerationUsage
from shared.models.config import EnvConfig
from shared.models.errors import InvalidCredentialError, NotFoundError

SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)
SAFETY_THRESHOLD = "BLOCK_MEDIUM_AND_ABOVE"


class LLMClientGemini(LLMClientInterface):

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Gemini"

    def _get_default_model(self) -> str:
        return "gemini-2.0-flash"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://generativelanguage.googleapis.com/v1beta"),
            EnvConfig(env_key="MODEL", val_type="string", default="gemini-2.0-flash"),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        # the key travels as query parameter
        return {}

    def _get_auth_params(self, api_key: str) -> dict:
        return {"key": api_key}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self.get_config_val("BASE_URL", default="https://generativelanguage.googleapis.com/v1beta", val_type="string")

    def _get_endpoint_healthcheck(self) -> str:
        return f"/models/{self.model}"

    def _get_endpoint_generate(self) -> str:
        return f"/models/{self.model}:generateContent"

    ################ PAYLOAD BUILDER ##################
    def _get_generate_payload(self, prompt: str, system_instruction: str | None = None) -> dict:
        """Build the Gemini generateContent request body.

        Returns:
            dict: {"contents": [...], "generationConfig": {...}, "safetySettings": [...]}
        """
        config = self.generation_config
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": config.temperature,
                "maxOutputTokens": config.max_output_tokens,
                "topP": config.top_p,
                "topK": config.top_k,
            },
            "safetySettings": [
                {"category": category, "threshold": SAFETY_THRESHOLD} for category in SAFETY_CATEGORIES
            ],
        }
        if system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        return payload

    ##########################################
    ########### ERROR HANDLING ###############
    ##########################################

    def _classify_error(self, response: httpx.Response, message: str) -> Exception:
        if response.status_code in (400, 403):
            return InvalidCredentialError(f"{self._get_engine_name()} rejected the request: {message}")
        if response.status_code == 404:
            return NotFoundError(
                f"{self._get_engine_name()} model '{self.model}' was not found: {message}",
                next_step="Check the configured model name.",
            )
        return super()._classify_error(response, message)

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_endpoint_generate(self, response: dict) -> GenerationResult:
        block_reason = (response.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise ValueError(f"The prompt was blocked by {self._get_engine_name()} ({block_reason}).")

        candidates = response.get("candidates") or []
        if not candidates:
            raise ValueError(f"{self._get_engine_name()} returned no candidates.")

        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)
        finish_reason = candidate.get("finishReason")
        if not text.strip():
            raise ValueError(f"{self._get_engine_name()} returned no text (finish reason: {finish_reason}).")
        if finish_reason == "MAX_TOKENS":
            self.logging.warning("Generation hit the output token limit, the text may be truncated.")

        usage = response.get("usageMetadata") or {}
        return GenerationResult(
            text=text,
            finish_reason=finish_reason,
            usage=GenerationUsage(
                prompt_tokens=usage.get("promptTokenCount", 0),
                output_tokens=usage.get("candidatesTokenCount", 0),
                total_tokens=usage.get("totalTokenCount", 0),
            ),
        )
