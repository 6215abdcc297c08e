from abc import ABC, abstractmethod
from enum import Enum


class StoreScope(str, Enum):
    """Scopes of persisted key/value state.

    USER survives across documents for the signed-in identity,
    DOCUMENT travels with one specific document.
    """

    USER = "user"
    DOCUMENT = "document"


class StoreInterface(ABC):
    """Key/value property store holding string values.

    Stores offer no prefix scan; callers that need to enumerate entries keep
    their own index.
    """

    @abstractmethod
    def get_property(self, key: str) -> str | None:
        """
        Returns the stored value for key, or None if absent.
        """
        pass

    @abstractmethod
    def set_property(self, key: str, value: str) -> None:
        """
        Stores value under key, replacing any previous value.

        Raises:
            StoreQuotaError: If the value exceeds the store's per-entry limit.
        """
        pass

    @abstractmethod
    def delete_property(self, key: str) -> None:
        """
        Removes key. Deleting an absent key is a no-op.
        """
        pass
