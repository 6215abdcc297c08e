from services.autodetect.FieldMatcher import FuzzyFieldMatcher
from services.tokens.TokenEngine import TokenEngine
from shared.clients.plm.models.Field import CategoryFieldSet
from shared.document.DocumentInterface import DocumentInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.token import FieldSuggestion, Token, TokenProvenance


class AutodetectService:
    """Suggests tokens for field labels already written in the document and inserts the accepted ones."""

    def __init__(
        self,
        helper_config: HelperConfig,
        document: DocumentInterface,
        token_engine: TokenEngine,
        matcher: FuzzyFieldMatcher | None = None,
    ):
        self.logging = helper_config.get_logger()
        self._document = document
        self._token_engine = token_engine
        self._matcher = matcher or FuzzyFieldMatcher()

    def scan(self, field_set: CategoryFieldSet) -> list[FieldSuggestion]:
        suggestions = self._matcher.match(self._document.get_text(), field_set.all_fields())
        self.logging.info("Autodetect found %d suggestion(s) for category '%s'.", len(suggestions), field_set.category_name)
        return suggestions

    def apply_suggestions(self, suggestions: list[FieldSuggestion], field_set: CategoryFieldSet) -> list[Token]:
        """
        Inserts a token after each matched label.

        Suggestions are applied from the highest offset down, so every insertion
        leaves the offsets of the remaining ones untouched.
        """
        tokens = []
        for suggestion in sorted(suggestions, key=lambda s: (s.end, s.start), reverse=True):
            field = field_set.get_field(suggestion.field_name)
            if field is None:
                self.logging.warning("Field '%s' is not part of category '%s', skipping suggestion.", suggestion.field_name, field_set.category_name)
                continue

            text = self._document.get_text()
            if text[suggestion.start:suggestion.end] != suggestion.matched_text:
                self.logging.warning("Text at %d no longer reads '%s', skipping suggestion.", suggestion.start, suggestion.matched_text)
                continue

            offset = suggestion.end
            if offset == 0 or not text[offset - 1].isspace():
                self._document.insert_text(offset, " ")
                offset += 1

            tokens.append(self._token_engine.insert_token_at(
                offset,
                category_name=field_set.category_name,
                category_id=field_set.category_id,
                field_name=field.name,
                field_type=field.field_type,
                attribute_id=field.attribute_id,
                provenance=TokenProvenance.AUTODETECTED,
                matched_text=suggestion.matched_text,
                confidence=suggestion.confidence,
            ))
        self.logging.info("Inserted %d autodetected token(s).", len(tokens))
        return tokens
