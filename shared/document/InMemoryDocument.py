import uuid

from shared.document.DocumentInterface import DocumentInterface
from shared.models.document import AnchorRange, TextStyle
from shared.storage.MemoryStore import MemoryStore
from shared.storage.StoreInterface import StoreInterface


class InMemoryDocument(DocumentInterface):
    """Reference host document kept entirely in memory.

    Styling is tracked per character. Anchor relocation rules:
      - text inserted before an anchor shifts it, text inserted strictly inside grows it
      - a replacement covering exactly the anchor resizes the anchor to the new text
      - a replacement inside an anchor grows or shrinks it
      - any other overlap, or an anchor shrinking to zero length, drops the anchor
    """

    def __init__(
        self,
        text: str = "",
        document_id: str | None = None,
        properties: StoreInterface | None = None,
        cursor: int | None = None,
    ):
        self._document_id = document_id or uuid.uuid4().hex
        self._text = text
        self._styles: list[TextStyle | None] = [None] * len(text)
        self._anchors: dict[str, tuple[int, int]] = {}
        self._properties = properties if properties is not None else MemoryStore()
        self._cursor: int | None = None
        self.set_cursor(cursor)

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_document_id(self) -> str:
        return self._document_id

    def get_text(self) -> str:
        return self._text

    def get_cursor(self) -> int | None:
        return self._cursor

    def get_text_style(self, offset: int) -> TextStyle | None:
        self._check_range(offset, offset + 1)
        return self._styles[offset]

    def get_anchor_range(self, anchor_id: str) -> AnchorRange | None:
        if anchor_id not in self._anchors:
            return None
        start, end = self._anchors[anchor_id]
        return AnchorRange(anchor_id=anchor_id, start=start, end=end)

    def get_anchor_ids(self) -> list[str]:
        return list(self._anchors.keys())

    def get_properties(self) -> StoreInterface:
        return self._properties

    ##########################################
    ################ MUTATION ################
    ##########################################

    def set_cursor(self, offset: int | None) -> None:
        if offset is not None:
            self._check_range(offset, offset)
        self._cursor = offset

    def insert_text(self, offset: int, text: str) -> None:
        self._check_range(offset, offset)
        if not text:
            return
        length = len(text)
        self._text = self._text[:offset] + text + self._text[offset:]
        self._styles[offset:offset] = [None] * length

        for anchor_id, (start, end) in list(self._anchors.items()):
            if start >= offset:
                self._anchors[anchor_id] = (start + length, end + length)
            elif start < offset < end:
                self._anchors[anchor_id] = (start, end + length)

        if self._cursor is not None and self._cursor >= offset:
            self._cursor += length

    def replace_text(self, start: int, end: int, text: str) -> None:
        self._check_range(start, end)
        inherited = self._styles[start] if start < end else None
        delta = len(text) - (end - start)
        self._text = self._text[:start] + text + self._text[end:]
        self._styles[start:end] = [inherited] * len(text)

        for anchor_id, (a_start, a_end) in list(self._anchors.items()):
            if a_start == start and a_end == end:
                new_range = (start, start + len(text))
            elif a_end <= start:
                continue
            elif a_start >= end:
                new_range = (a_start + delta, a_end + delta)
            elif a_start <= start and a_end >= end:
                new_range = (a_start, a_end + delta)
            else:
                new_range = None

            if new_range is None or new_range[1] <= new_range[0]:
                del self._anchors[anchor_id]
            else:
                self._anchors[anchor_id] = new_range

        if self._cursor is not None:
            if self._cursor >= end:
                self._cursor += delta
            elif self._cursor > start:
                self._cursor = start + len(text)

    def set_text_style(self, start: int, end: int, style: TextStyle) -> None:
        self._check_range(start, end)
        for i in range(start, end):
            self._styles[i] = style.model_copy()

    def clear_text_style(self, start: int, end: int) -> None:
        self._check_range(start, end)
        for i in range(start, end):
            self._styles[i] = None

    def add_anchor(self, start: int, end: int) -> str:
        self._check_range(start, end)
        if end <= start:
            raise ValueError("Anchor range must not be empty.")
        anchor_id = f"anchor.{uuid.uuid4().hex[:16]}"
        self._anchors[anchor_id] = (start, end)
        return anchor_id

    def remove_anchor(self, anchor_id: str) -> None:
        self._anchors.pop(anchor_id, None)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _check_range(self, start: int, end: int) -> None:
        if start < 0 or end < start or end > len(self._text):
            raise IndexError(f"Range [{start}, {end}) is outside the document (length {len(self._text)}).")
