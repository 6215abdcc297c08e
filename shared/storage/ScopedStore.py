from shared.storage.StoreInterface import StoreInterface, StoreScope


class ScopedStore:
    """Pairs the per-user store with the per-document store."""

    def __init__(self, user_store: StoreInterface, document_store: StoreInterface):
        self._stores: dict[StoreScope, StoreInterface] = {
            StoreScope.USER: user_store,
            StoreScope.DOCUMENT: document_store,
        }

    def get_scope(self, scope: StoreScope | str) -> StoreInterface:
        """
        Returns the store backing the given scope.

        Raises:
            ValueError: If the scope is unknown.
        """
        try:
            return self._stores[StoreScope(scope)]
        except ValueError:
            raise ValueError(f"Unknown store scope '{scope}'. Expected one of: {[s.value for s in StoreScope]}")

    def get_user_store(self) -> StoreInterface:
        return self._stores[StoreScope.USER]

    def get_document_store(self) -> StoreInterface:
        return self._stores[StoreScope.DOCUMENT]
