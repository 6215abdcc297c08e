from services.tokens.TokenSyntax import create_token_text, extract_tokens, validate_tokens
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.plm.models.Field import CategoryFieldSet
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import InputValidationError
from shared.models.generation import GeneratedDocument
from shared.ratelimit.RateLimiter import RateLimiter

SYSTEM_INSTRUCTION = (
    "You write technical business documents about parts and assemblies managed in a PLM system. "
    "Wherever a record value belongs, insert the matching placeholder exactly as listed, "
    "never invent values and never invent placeholders that are not listed."
)


class GenerationService:
    """Drafts document text with tokens already placed, through the rate-limited AI client."""

    def __init__(
        self,
        helper_config: HelperConfig,
        llm_client: LLMClientInterface,
        rate_limiter: RateLimiter,
    ):
        self.logging = helper_config.get_logger()
        self._llm_client = llm_client
        self._rate_limiter = rate_limiter

    def build_prompt(self, field_set: CategoryFieldSet, document_type: str, instructions: str = "") -> str:
        placeholders = "\n".join(
            f"- {create_token_text(field_set.category_name, field.name)} ({field.name})"
            for field in field_set.all_fields()
        )
        prompt = (
            f"Write a {document_type.strip()} for an item of the category \"{field_set.category_name}\".\n\n"
            f"Available placeholders:\n{placeholders}\n\n"
            "Use the placeholders verbatim, including the double braces. "
            "Return only the document text, without markdown code fences."
        )
        if instructions and instructions.strip():
            prompt += f"\n\nAdditional instructions:\n{instructions.strip()}"
        return prompt

    async def generate_document(
        self,
        field_set: CategoryFieldSet | None,
        document_type: str,
        instructions: str = "",
    ) -> GeneratedDocument:
        """
        Generates a document in a single AI call and checks the tokens it contains.

        Raises:
            InputValidationError: If category or document type is missing, or the
                AI service returned no usable text.
            AuthRequiredError: If no API key is configured or it was rejected.
            RateLimitedError: Terminal, after repeated remote rate limits.
            TransientError: After exhausting the general retries.
        """
        if field_set is None or not field_set.category_name.strip():
            raise InputValidationError("Select a category before generating a document.")
        if not (document_type or "").strip():
            raise InputValidationError("Select a document type before generating a document.")

        prompt = self.build_prompt(field_set, document_type, instructions)
        self.logging.info("Generating '%s' for category '%s'.", document_type, field_set.category_name)
        try:
            result = await self._rate_limiter.execute_with_retry(
                lambda: self._llm_client.do_generate(prompt, system_instruction=SYSTEM_INSTRUCTION)
            )
        except ValueError as e:
            raise InputValidationError(
                f"The AI service returned no usable text: {e}",
                next_step="Rephrase your instructions and try again.",
            ) from e

        text = _strip_code_fences(result.text)
        tokens = extract_tokens(text)
        validation = validate_tokens(tokens, field_set.category_name, field_set.field_names())
        if validation.invalid:
            self.logging.warning("Generated text contains %d invalid token(s).", len(validation.invalid))
        return GeneratedDocument(
            text=text,
            tokens=tokens,
            validation=validation,
            finish_reason=result.finish_reason,
            usage=result.usage,
        )


def _strip_code_fences(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```") and stripped.endswith("```"):
        lines = stripped.split("\n")
        return "\n".join(lines[1:-1]).strip()
    return stripped
