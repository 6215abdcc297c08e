import json

from pydantic import ValidationError

from shared.helper.HelperConfig import HelperConfig
from shared.models.token import RecordLink, Token
from shared.storage.StoreInterface import StoreInterface

TOKEN_KEY_PREFIX = "token_"
TOKEN_INDEX_KEY = "token_index"
LINKED_RECORD_KEY = "linked_record"
CATEGORY_TOKENS_PREFIX = "category_tokens_"


class TokenStore:
    """Token metadata in the document-scoped store.

    Layout: one entry per token keyed by its anchor id, an index of all token
    ids (the store has no prefix scan), one field-to-token-ids mapping per
    category and the linked record.
    """

    def __init__(self, helper_config: HelperConfig, store: StoreInterface):
        self.logging = helper_config.get_logger()
        self._store = store

    ##########################################
    ################ TOKENS ##################
    ##########################################

    def save_token(self, token: Token) -> None:
        self._store.set_property(self._token_key(token.id), token.model_dump_json())

        index = self.get_token_ids()
        if token.id not in index:
            index.append(token.id)
            self._write_json(TOKEN_INDEX_KEY, index)

        mapping = self.get_category_tokens(token.category_id)
        ids = mapping.setdefault(token.field_name, [])
        if token.id not in ids:
            ids.append(token.id)
            self._write_json(self._category_key(token.category_id), mapping)

    def get_token(self, token_id: str) -> Token | None:
        raw = self._store.get_property(self._token_key(token_id))
        if raw is None:
            return None
        try:
            return Token.model_validate_json(raw)
        except ValidationError as e:
            self.logging.warning("Metadata of token '%s' is corrupt, ignoring it: %s", token_id, e)
            return None

    def get_all_tokens(self) -> list[Token]:
        tokens = []
        for token_id in self.get_token_ids():
            token = self.get_token(token_id)
            if token is not None:
                tokens.append(token)
        return tokens

    def get_token_ids(self) -> list[str]:
        index = self._read_json(TOKEN_INDEX_KEY, default=[])
        return [str(token_id) for token_id in index] if isinstance(index, list) else []

    def delete_token(self, token_id: str) -> bool:
        """
        Removes the token's metadata. Returns False if it was not known.
        """
        token = self.get_token(token_id)
        index = self.get_token_ids()
        if token is None and token_id not in index:
            return False

        self._store.delete_property(self._token_key(token_id))
        if token_id in index:
            index.remove(token_id)
            self._write_json(TOKEN_INDEX_KEY, index)
        if token is not None:
            self._unmap(token)
        return True

    def clear_all(self) -> int:
        """
        Removes every token and every category mapping. Returns the number of tokens removed.
        """
        token_ids = self.get_token_ids()
        category_ids = set()
        for token_id in token_ids:
            token = self.get_token(token_id)
            if token is not None:
                category_ids.add(token.category_id)
            self._store.delete_property(self._token_key(token_id))
        for category_id in category_ids:
            self._store.delete_property(self._category_key(category_id))
        self._store.delete_property(TOKEN_INDEX_KEY)
        return len(token_ids)

    ################ CATEGORY MAPPING ##################
    def get_category_tokens(self, category_id: str) -> dict[str, list[str]]:
        mapping = self._read_json(self._category_key(category_id), default={})
        return mapping if isinstance(mapping, dict) else {}

    def _unmap(self, token: Token) -> None:
        mapping = self.get_category_tokens(token.category_id)
        ids = mapping.get(token.field_name, [])
        if token.id in ids:
            ids.remove(token.id)
        if not ids:
            mapping.pop(token.field_name, None)
        if mapping:
            self._write_json(self._category_key(token.category_id), mapping)
        else:
            self._store.delete_property(self._category_key(token.category_id))

    ##########################################
    ############ RECORD LINK #################
    ##########################################

    def save_record_link(self, link: RecordLink) -> None:
        self._store.set_property(LINKED_RECORD_KEY, link.model_dump_json())

    def get_record_link(self) -> RecordLink | None:
        raw = self._store.get_property(LINKED_RECORD_KEY)
        if raw is None:
            return None
        try:
            return RecordLink.model_validate_json(raw)
        except ValidationError as e:
            self.logging.warning("Linked record entry is corrupt, ignoring it: %s", e)
            return None

    def clear_record_link(self) -> None:
        self._store.delete_property(LINKED_RECORD_KEY)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _token_key(self, token_id: str) -> str:
        return f"{TOKEN_KEY_PREFIX}{token_id}"

    def _category_key(self, category_id: str) -> str:
        return f"{CATEGORY_TOKENS_PREFIX}{category_id}"

    def _read_json(self, key: str, default):
        raw = self._store.get_property(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            self.logging.warning("Entry '%s' is not valid JSON, ignoring it.", key)
            return default

    def _write_json(self, key: str, value) -> None:
        self._store.set_property(key, json.dumps(value))
