from abc import abstractmethod
import time
from typing import Any, Callable

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.clients.plm.models.Category import CategoriesListResponse, CategoryDetails
from shared.clients.plm.models.Field import FieldDefinition
from shared.clients.plm.models.Item import ItemDetails, ItemsListResponse
from shared.clients.plm.models.Session import PLMSession
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import AuthRequiredError, InputValidationError, NotFoundError, SessionExpiredError
from shared.storage.StoreInterface import StoreInterface

SESSION_KEY = "plm_session"


class PLMClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig, user_store: StoreInterface, clock: Callable[[], float] = time.time):
        super().__init__(helper_config=helper_config, user_store=user_store, clock=clock)
        self.session_check_interval = float(self.get_config_val("SESSION_CHECK_MINUTES", default=30, val_type="number")) * 60
        self.page_size = int(self.get_config_val("PAGE_SIZE", default=400, val_type="number"))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "plm"
        """
        return "plm"

    def _get_endpoint_healthcheck(self) -> str:
        return self._get_endpoint_current_user()

    ################ SESSION ##################
    def get_session(self) -> PLMSession | None:
        """
        Returns the stored session, or None if there is none or it cannot be read.
        """
        raw = self._user_store.get_property(SESSION_KEY)
        if not raw:
            return None
        try:
            return PLMSession.model_validate_json(raw)
        except ValueError as e:
            self.logging.warning("Stored %s session is unreadable, discarding it: %s", self._get_engine_name(), e)
            self._user_store.delete_property(SESSION_KEY)
            return None

    def is_logged_in(self) -> bool:
        session = self.get_session()
        return session is not None and session.is_usable()

    def _save_session(self, session: PLMSession) -> None:
        self._user_store.set_property(SESSION_KEY, session.model_dump_json())

    def clear_session(self) -> None:
        self._user_store.delete_property(SESSION_KEY)

    def _require_session(self) -> PLMSession:
        session = self.get_session()
        if session is None or not session.is_usable():
            raise AuthRequiredError(f"You are not logged in to {self._get_engine_name()}.")
        return session

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_login(self) -> str:
        """Returns the endpoint path for login requests (e.g. "/login")."""
        pass

    @abstractmethod
    def _get_endpoint_current_user(self) -> str:
        """Returns the endpoint path of the lightweight liveness probe (e.g. "/settings/users/me")."""
        pass

    @abstractmethod
    def _get_endpoint_categories(self) -> str:
        """Returns the endpoint path for the category list (e.g. "/settings/items/categories")."""
        pass

    @abstractmethod
    def _get_endpoint_category_attributes(self, category_id: str) -> str:
        """Returns the endpoint path for the custom fields of one category."""
        pass

    @abstractmethod
    def _get_endpoint_items(self) -> str:
        """Returns the endpoint path for item listing requests (e.g. "/items")."""
        pass

    @abstractmethod
    def _get_endpoint_item_details(self, item_id: str) -> str:
        """Returns the endpoint path for a single item (e.g. "/items/{id}")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def _get_login_payload(self, email: str, password: str, workspace_id: str) -> dict:
        pass

    @abstractmethod
    def _get_items_params(self, limit: int, offset: int) -> dict:
        pass

    @abstractmethod
    def _get_item_details_params(self) -> dict:
        pass

    ##########################################
    ########### ERROR HANDLING ###############
    ##########################################

    def _classify_error(self, response: httpx.Response, message: str) -> Exception:
        if response.status_code == 401:
            # automatic re-login would need the password, which is never retained
            self.clear_session()
            return SessionExpiredError(f"{self._get_engine_name()} rejected the session: {message}")
        if response.status_code == 404:
            return NotFoundError(f"{self._get_engine_name()} could not find the requested resource: {message}")
        return super()._classify_error(response, message)

    ##########################################
    ############### REQUESTS #################
    ##########################################

    ############# SESSION REQUESTS ##############
    async def do_login(self, email: str, password: str, workspace_id: str) -> PLMSession:
        """
        Logs in and persists the new session in the user scope.

        Raises:
            InputValidationError: If any credential is empty.
            AuthRequiredError: If the backend rejects the credentials.
        """
        missing = [name for name, val in (("email", email), ("password", password), ("workspace id", workspace_id)) if not str(val or "").strip()]
        if missing:
            raise InputValidationError(f"Missing login field(s): {', '.join(missing)}.")

        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_login(),
            json=self._get_login_payload(email.strip(), password, str(workspace_id).strip()),
            authenticated=False,
        )
        if response.status_code in (400, 401, 403):
            message = self._extract_error_message(response)
            self.logging.warning("Login to %s failed for %s: %s", self._get_engine_name(), email, message)
            raise AuthRequiredError(
                f"Login to {self._get_engine_name()} failed: {message}",
                next_step="Check your email, password and workspace ID.",
            )
        self.raise_for_status(response)

        session_id = self._parse_login_response(response.json())
        if not session_id:
            raise AuthRequiredError(f"{self._get_engine_name()} did not return a session.")

        now = self._clock()
        session = PLMSession(
            session_id=session_id,
            email=email.strip(),
            workspace_id=str(workspace_id).strip(),
            created_at=now,
            last_validated_at=now,
        )
        self._save_session(session)
        self.logging.info("Logged in to %s as %s (workspace %s).", self._get_engine_name(), session.email, session.workspace_id)
        return session

    def do_logout(self) -> None:
        self.clear_session()
        self.logging.info("Logged out of %s.", self._get_engine_name())

    async def ensure_session_alive(self) -> PLMSession:
        """
        Probes the server with a no-op call when the last validation is older
        than the configured interval, and refreshes the validation timestamp.

        Raises:
            AuthRequiredError: If there is no session.
            SessionExpiredError: If the server no longer accepts the session.
        """
        session = self._require_session()
        now = self._clock()
        if now - session.last_validated_at <= self.session_check_interval:
            return session

        self.logging.debug("Validating %s session (last validated %.0fs ago).", self._get_engine_name(), now - session.last_validated_at)
        await self.do_json_request(method="GET", endpoint=self._get_endpoint_current_user())
        session.last_validated_at = now
        self._save_session(session)
        return session

    async def _do_authenticated_request(self, endpoint: str, params: dict | None = None) -> Any:
        await self.ensure_session_alive()
        return await self.do_json_request(method="GET", endpoint=endpoint, params=params)

    ############# LISTING REQUESTS ##############
    async def do_fetch_categories(self) -> list[CategoryDetails]:
        """
        Fetches all item categories.
        """
        data = await self._do_authenticated_request(self._get_endpoint_categories())
        categories_response = self._parse_endpoint_categories(data)
        self.logging.info("Fetched %d categories from %s.", len(categories_response.categories), self._get_engine_name())
        return categories_response.categories

    async def do_fetch_category_attributes(self, category_id: str) -> list[FieldDefinition]:
        """
        Fetches the custom fields of one category.
        """
        data = await self._do_authenticated_request(self._get_endpoint_category_attributes(category_id))
        return self._parse_endpoint_attributes(data)

    async def do_fetch_items(self) -> list[ItemDetails]:
        """
        Fetches all items in fixed-size pages until a page returns fewer rows than requested.
        """
        items: list[ItemDetails] = []
        offset = 0
        while True:
            data = await self._do_authenticated_request(
                self._get_endpoint_items(),
                params=self._get_items_params(limit=self.page_size, offset=offset),
            )
            page = self._parse_endpoint_items(data, limit=self.page_size, offset=offset)
            items.extend(page.items)
            self.logging.info("Fetched items %d-%d from %s, total so far: %d", offset, offset + len(page.items), self._get_engine_name(), len(items))
            if len(page.items) < self.page_size:
                break
            offset += self.page_size
        return items

    ############# GET REQUESTS ##############
    async def do_fetch_item_details(self, item_id: str) -> ItemDetails:
        """
        Fetches a single item with all its attributes.

        Raises:
            InputValidationError: If item_id is empty.
            NotFoundError: If the item does not exist.
        """
        if not str(item_id or "").strip():
            raise InputValidationError("No record id given.")
        data = await self._do_authenticated_request(
            self._get_endpoint_item_details(str(item_id).strip()),
            params=self._get_item_details_params(),
        )
        return self._parse_endpoint_item(data)

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def _parse_login_response(self, response: dict) -> str:
        """
        Returns the session id from a login response.
        """
        pass

    @abstractmethod
    def _parse_endpoint_categories(self, response: dict) -> CategoriesListResponse:
        pass

    @abstractmethod
    def _parse_endpoint_attributes(self, response: dict) -> list[FieldDefinition]:
        """
        Parses the custom field list of a category into CUSTOM field definitions.
        """
        pass

    @abstractmethod
    def _parse_endpoint_items(self, response: dict, limit: int, offset: int) -> ItemsListResponse:
        pass

    @abstractmethod
    def _parse_endpoint_item(self, response: dict) -> ItemDetails:
        pass
