"""Token lifecycle: insertion, location, substitution and change detection.

The document text is the source of truth for literals; the TokenStore is a
side index keyed by anchor id. The two drift when users edit the document, so
lookups that fail (lost anchor, unreadable metadata) are logged and skipped.
"""

import time
from typing import Callable

from services.tokens.TokenStore import TokenStore
from services.tokens.TokenSyntax import TOKEN_PATTERN, create_token_text, extract_tokens, parse_token_text, validate_tokens
from shared.clients.plm.PLMClientInterface import PLMClientInterface
from shared.clients.plm.models.Field import STANDARD_FIELD_NAMES, CategoryFieldSet, FieldDefinition, FieldType
from shared.clients.plm.models.Item import ItemDetails
from shared.document.DocumentInterface import DocumentInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import TextStyle
from shared.models.errors import ConfigurationError, InputValidationError
from shared.models.token import (
    ExtractedToken,
    PopulateResult,
    RecordLink,
    Token,
    TokenChange,
    TokenOccurrence,
    TokenProvenance,
    TokenValidationResult,
)

TOKEN_STYLE = TextStyle(background_color="#FFF2CC", foreground_color="#1155CC", bold=True)


class TokenEngine:
    def __init__(
        self,
        helper_config: HelperConfig,
        document: DocumentInterface,
        token_store: TokenStore,
        plm_client: PLMClientInterface | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.logging = helper_config.get_logger()
        self._document = document
        self._token_store = token_store
        self._plm_client = plm_client
        self._clock = clock

    ##########################################
    ############### INSERTION ################
    ##########################################

    def insert_token_at_cursor(
        self,
        category_name: str,
        category_id: str,
        field_name: str,
        field_type: FieldType = FieldType.STANDARD,
        attribute_id: str | None = None,
    ) -> Token:
        """
        Inserts a styled, anchored token at the insertion point and moves the cursor behind it.

        Raises:
            InputValidationError: If the document has no insertion point.
        """
        cursor = self._document.get_cursor()
        if cursor is None:
            raise InputValidationError(
                "There is no insertion point in the document.",
                next_step="Place the cursor where the token should go and try again.",
            )
        token = self.insert_token_at(cursor, category_name, category_id, field_name, field_type, attribute_id)
        self._document.set_cursor(cursor + len(token.text))
        return token

    def insert_token_at(
        self,
        offset: int,
        category_name: str,
        category_id: str,
        field_name: str,
        field_type: FieldType = FieldType.STANDARD,
        attribute_id: str | None = None,
        provenance: TokenProvenance = TokenProvenance.MANUAL,
        matched_text: str | None = None,
        confidence: float | None = None,
    ) -> Token:
        text = create_token_text(category_name, field_name)
        self._document.insert_text(offset, text)
        return self._bind_span(
            start=offset,
            text=text,
            category_name=category_name,
            category_id=category_id,
            field_name=field_name,
            field_type=field_type,
            attribute_id=attribute_id,
            provenance=provenance,
            matched_text=matched_text,
            confidence=confidence,
        )

    def insert_generated_text(self, text: str, field_set: CategoryFieldSet) -> list[Token]:
        """
        Inserts generated text at the cursor and binds every literal in it that
        belongs to the field set. Literals of other categories or unknown fields
        stay plain text.

        Raises:
            InputValidationError: If there is no insertion point or the text is empty.
        """
        if not (text or "").strip():
            raise InputValidationError("There is no generated text to insert.")
        cursor = self._document.get_cursor()
        if cursor is None:
            raise InputValidationError(
                "There is no insertion point in the document.",
                next_step="Place the cursor where the text should go and try again.",
            )

        self._document.insert_text(cursor, text)
        tokens = []
        for match in TOKEN_PATTERN.finditer(text):
            parsed = parse_token_text(match.group(0))
            if parsed is None:
                continue
            field = field_set.get_field(parsed.field)
            if parsed.category != field_set.category_name or field is None:
                self.logging.warning("Leaving unbound token %s in generated text.", match.group(0))
                continue
            tokens.append(self._bind_span(
                start=cursor + match.start(),
                text=match.group(0),
                category_name=field_set.category_name,
                category_id=field_set.category_id,
                field_name=parsed.field,
                field_type=field.field_type,
                attribute_id=field.attribute_id,
                provenance=TokenProvenance.AI_GENERATED,
            ))
        self._document.set_cursor(cursor + len(text))
        self.logging.info("Inserted %d characters of generated text with %d tokens.", len(text), len(tokens))
        return tokens

    def _bind_span(self, start: int, text: str, **metadata) -> Token:
        end = start + len(text)
        self._document.set_text_style(start, end, TOKEN_STYLE)
        anchor_id = self._document.add_anchor(start, end)
        token = Token(id=anchor_id, text=text, created_at=self._clock(), **metadata)
        self._token_store.save_token(token)
        self.logging.debug("Bound token %s to anchor %s.", text, anchor_id)
        return token

    ##########################################
    ################ LOOKUP ##################
    ##########################################

    def find_all_tokens_in_document(self) -> list[TokenOccurrence]:
        occurrences = []
        for match in TOKEN_PATTERN.finditer(self._document.get_text()):
            parsed = parse_token_text(match.group(0))
            if parsed is None:
                continue
            occurrences.append(TokenOccurrence(
                text=match.group(0),
                category=parsed.category,
                field=parsed.field,
                start=match.start(),
                end=match.end(),
            ))
        return occurrences

    def get_linked_record(self) -> RecordLink | None:
        return self._token_store.get_record_link()

    ##########################################
    ############# SUBSTITUTION ###############
    ##########################################

    def substitute_token(self, token_text: str, value: str, strip_formatting: bool = True) -> int:
        """
        Replaces every occurrence of the literal with value.

        Each search resumes after the text just inserted, so a value containing
        the literal is not replaced again.

        Returns:
            int: Number of replaced occurrences.
        """
        if not token_text:
            raise InputValidationError("No token text given.")
        count = 0
        search_from = 0
        while True:
            start = self._document.get_text().find(token_text, search_from)
            if start == -1:
                break
            self._document.replace_text(start, start + len(token_text), value)
            if strip_formatting and value:
                self._document.clear_text_style(start, start + len(value))
            search_from = start + len(value)
            count += 1
        return count

    async def populate_from_record(self, record_id: str) -> PopulateResult:
        """
        Replaces every known token with the record's value and links the record.

        Tokens whose field the record does not have, or has no value for, stay
        in place and are reported as unresolved.

        Raises:
            AuthRequiredError: If the PLM session is missing or expired.
            NotFoundError: If the record does not exist.
        """
        record = await self._fetch_record(record_id)
        for token in self._token_store.get_all_tokens():
            if token.category_name != record.category_name and token.category_id != record.category_id:
                self.logging.warning(
                    "Token %s belongs to category '%s' but record %s is in '%s'.",
                    token.text, token.category_name, record.number or record.id, record.category_name,
                )

        replaced, unresolved, _ = self._fill_literals(record)

        link = RecordLink(record_id=record.id, record_number=record.number, populated_at=self._clock())
        self._token_store.save_record_link(link)
        if unresolved:
            self.logging.warning("Record %s has no value for: %s", record.number or record.id, ", ".join(unresolved))
        self.logging.info("Populated %d token occurrence(s) from record %s.", replaced, record.number or record.id)
        return PopulateResult(record=link, replaced=replaced, unresolved=unresolved)

    async def detect_changes(self, record_id: str | None = None) -> list[TokenChange]:
        """
        Compares the text currently at each populated token against the record's
        current value. Tokens still showing their literal were never populated
        and are not reported.

        Raises:
            InputValidationError: If no record id is given and none is linked.
        """
        record = await self._fetch_record(self._resolve_record_id(record_id))
        return self._detect_changes_for(record)

    async def update_from_record(self, record_id: str | None = None) -> list[TokenChange]:
        """
        Rewrites every changed token with the record's current value, fills
        literals whose field has gained a value, and refreshes the record link.
        """
        record = await self._fetch_record(self._resolve_record_id(record_id))
        changes = self._detect_changes_for(record)
        for change in changes:
            token = self._token_store.get_token(change.token_id)
            if token is None:
                continue
            span = self._locate_value(token)
            if span is None:
                self.logging.warning("Lost track of token %s, not updating it.", token.text)
                continue
            start, end = span
            self._document.replace_text(start, end, change.new_value)
            token.last_value = change.new_value
            self._token_store.save_token(token)

        _, _, filled = self._fill_literals(record)
        changes.extend(filled)

        self._token_store.save_record_link(
            RecordLink(record_id=record.id, record_number=record.number, populated_at=self._clock())
        )
        self.logging.info("Updated %d token(s) from record %s.", len(changes), record.number or record.id)
        return changes

    def _fill_literals(self, record: ItemDetails) -> tuple[int, list[str], list[TokenChange]]:
        """
        Substitutes every literal still in the document whose field has a value in the record.

        Returns:
            tuple: (replaced occurrences, unresolved literals, one TokenChange per filled stored token)
        """
        stored = self._token_store.get_all_tokens()
        fields: dict[str, FieldDefinition] = {}
        for token in stored:
            fields.setdefault(token.text, token.to_field())
        for occurrence in self.find_all_tokens_in_document():
            if occurrence.text not in fields:
                fields[occurrence.text] = self._field_by_name(occurrence.field)

        replaced = 0
        unresolved = []
        filled = []
        for token_text, field in fields.items():
            value = record.resolve_field_value(field)
            # an empty value would delete the literal and its anchor
            if not value:
                if token_text in self._document.get_text():
                    unresolved.append(token_text)
                continue
            count = self.substitute_token(token_text, value)
            replaced += count
            if not count:
                continue
            for token in stored:
                if token.text == token_text:
                    token.last_value = value
                    self._token_store.save_token(token)
                    filled.append(TokenChange(
                        token_id=token.id,
                        token_text=token.text,
                        field_name=token.field_name,
                        current_value=token.text,
                        new_value=value,
                    ))
        return replaced, unresolved, filled

    def _detect_changes_for(self, record: ItemDetails) -> list[TokenChange]:
        text = self._document.get_text()
        changes = []
        for token in self._token_store.get_all_tokens():
            fresh = record.resolve_field_value(token.to_field())
            if not fresh:
                continue
            span = self._locate_value(token)
            if span is None:
                self.logging.debug("Token %s is no longer in the document.", token.text)
                continue
            current = text[span[0]:span[1]]
            if current == token.text or current == fresh:
                continue
            changes.append(TokenChange(
                token_id=token.id,
                token_text=token.text,
                field_name=token.field_name,
                current_value=current,
                new_value=fresh,
            ))
        return changes

    def _locate_value(self, token: Token) -> tuple[int, int] | None:
        """
        Span currently showing the token: its anchor, or else the first occurrence of its last value.
        """
        anchor = self._document.get_anchor_range(token.id)
        if anchor is not None:
            return anchor.start, anchor.end
        if token.last_value:
            start = self._document.get_text().find(token.last_value)
            if start != -1:
                return start, start + len(token.last_value)
        return None

    ##########################################
    ############## GENERATED #################
    ##########################################

    def extract_tokens_from_generated_text(self, text: str) -> list[ExtractedToken]:
        return extract_tokens(text)

    def validate_tokens(
        self,
        tokens: list[ExtractedToken | str],
        expected_category: str,
        allowed_fields: list[str],
    ) -> TokenValidationResult:
        return validate_tokens(tokens, expected_category, allowed_fields)

    ##########################################
    ############### DELETION #################
    ##########################################

    def delete_token(self, token_id: str, remove_text: bool = False) -> bool:
        """
        Removes the token's metadata and anchor; the literal stays in the text unless remove_text is set.
        """
        token = self._token_store.get_token(token_id)
        if token is None:
            self.logging.warning("Token '%s' is unknown, nothing to delete.", token_id)
            return self._token_store.delete_token(token_id)

        anchor = self._document.get_anchor_range(token_id)
        if remove_text and anchor is not None:
            self._document.replace_text(anchor.start, anchor.end, "")
        self._document.remove_anchor(token_id)
        return self._token_store.delete_token(token_id)

    def clear_all_tokens(self) -> int:
        for token_id in self._token_store.get_token_ids():
            self._document.remove_anchor(token_id)
        count = self._token_store.clear_all()
        self.logging.info("Cleared %d token(s).", count)
        return count

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _resolve_record_id(self, record_id: str | None) -> str:
        if record_id:
            return record_id
        link = self._token_store.get_record_link()
        if link is None:
            raise InputValidationError(
                "This document is not linked to a record.",
                next_step="Populate the document from a record first.",
            )
        return link.record_id

    async def _fetch_record(self, record_id: str) -> ItemDetails:
        if self._plm_client is None:
            raise ConfigurationError("No PLM client available to fetch records.")
        return await self._plm_client.do_fetch_item_details(record_id)

    def _field_by_name(self, field_name: str) -> FieldDefinition:
        for standard_name in STANDARD_FIELD_NAMES:
            if standard_name.lower() == field_name.strip().lower():
                return FieldDefinition(name=standard_name, field_type=FieldType.STANDARD)
        return FieldDefinition(name=field_name, field_type=FieldType.CUSTOM)
