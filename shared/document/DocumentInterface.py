from abc import ABC, abstractmethod

from shared.models.document import AnchorRange, TextStyle
from shared.storage.StoreInterface import StoreInterface


class DocumentInterface(ABC):
    """Mutable rich-text document as exposed by the host editor.

    Offsets are character offsets into the flattened body text. Anchors are
    host-maintained markers that relocate when the text around them changes;
    the token metadata index is keyed by their ids, never by raw offsets.
    """

    ##########################################
    ################ GETTER ##################
    ##########################################

    @abstractmethod
    def get_document_id(self) -> str:
        pass

    @abstractmethod
    def get_text(self) -> str:
        """
        Returns the full body text of the document.
        """
        pass

    @abstractmethod
    def get_cursor(self) -> int | None:
        """
        Returns the current insertion point, or None if there is no active cursor.
        """
        pass

    @abstractmethod
    def get_text_style(self, offset: int) -> TextStyle | None:
        """
        Returns the style applied to the character at offset, or None if unstyled.
        """
        pass

    @abstractmethod
    def get_anchor_range(self, anchor_id: str) -> AnchorRange | None:
        """
        Returns the current range of the anchor, or None if the anchor no longer exists.
        """
        pass

    @abstractmethod
    def get_properties(self) -> StoreInterface:
        """
        Returns the document-scoped property store that travels with the document.
        """
        pass

    ##########################################
    ################ MUTATION ################
    ##########################################

    @abstractmethod
    def set_cursor(self, offset: int | None) -> None:
        pass

    @abstractmethod
    def insert_text(self, offset: int, text: str) -> None:
        """
        Inserts text at offset. Anchors after the offset shift accordingly.
        """
        pass

    @abstractmethod
    def replace_text(self, start: int, end: int, text: str) -> None:
        """
        Replaces the range [start, end) with text.
        """
        pass

    @abstractmethod
    def set_text_style(self, start: int, end: int, style: TextStyle) -> None:
        pass

    @abstractmethod
    def clear_text_style(self, start: int, end: int) -> None:
        pass

    @abstractmethod
    def add_anchor(self, start: int, end: int) -> str:
        """
        Creates an anchor covering [start, end) and returns its opaque id.
        """
        pass

    @abstractmethod
    def remove_anchor(self, anchor_id: str) -> None:
        pass
