from shared.clients.plm.PLMClientInterface import PLMClientInterface
from shared.clients.plm.models.Category import CategoriesListResponse, CategoryDetails
from shared.clients.plm.models.Field import FieldDefinition, FieldType
from shared.clients.plm.models.Item import ItemAttribute, ItemDetails, ItemsListResponse
from shared.models.config import EnvConfig


class PLMClientArena(PLMClientInterface):

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Arena"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.arenasolutions.com/v1"),
            EnvConfig(env_key="PAGE_SIZE", val_type="number", default=400),
            EnvConfig(env_key="SESSION_CHECK_MINUTES", val_type="number", default=30),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        session = self.get_session()
        if session and session.is_usable():
            return {"arena_session_id": session.session_id}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self.get_config_val("BASE_URL", default="https://api.arenasolutions.com/v1", val_type="string")

    def _get_endpoint_login(self) -> str:
        return "/login"

    def _get_endpoint_current_user(self) -> str:
        return "/settings/users/me"

    def _get_endpoint_categories(self) -> str:
        return "/settings/items/categories"

    def _get_endpoint_category_attributes(self, category_id: str) -> str:
        return f"/settings/items/categories/{category_id}/attributes"

    def _get_endpoint_items(self) -> str:
        return "/items"

    def _get_endpoint_item_details(self, item_id: str) -> str:
        return f"/items/{item_id}"

    ################ PAYLOAD BUILDER ##################
    def _get_login_payload(self, email: str, password: str, workspace_id: str) -> dict:
        payload: dict = {"email": email, "password": password}
        payload["workspaceId"] = int(workspace_id) if workspace_id.isdigit() else workspace_id
        return payload

    def _get_items_params(self, limit: int, offset: int) -> dict:
        return {"limit": limit, "offset": offset, "responseview": "full"}

    def _get_item_details_params(self) -> dict:
        return {"responseview": "full"}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_login_response(self, response: dict) -> str:
        return str(response.get("arenaSessionId") or "")

    def _parse_endpoint_categories(self, response: dict) -> CategoriesListResponse:
        categories = []
        for item in response.get("results", []):
            parent = item.get("parentCategory") or {}
            categories.append(CategoryDetails(
                engine=self._get_engine_name(),
                id=str(item.get("guid")),
                name=item.get("name") or "",
                path=item.get("path"),
                parent_id=parent.get("guid"),
                assignable=bool(item.get("assignable", True)),
            ))
        return CategoriesListResponse(
            engine=self._get_engine_name(),
            categories=categories,
            overallCount=response.get("count"),
        )

    def _parse_endpoint_attributes(self, response: dict) -> list[FieldDefinition]:
        fields = []
        for item in response.get("results", []):
            if not item.get("guid") or not item.get("name"):
                self.logging.debug("Skipping attribute without guid or name: %s", item)
                continue
            fields.append(FieldDefinition(
                name=item["name"],
                field_type=FieldType.CUSTOM,
                attribute_id=str(item["guid"]),
                data_type=item.get("fieldType"),
            ))
        return fields

    def _parse_endpoint_items(self, response: dict, limit: int, offset: int) -> ItemsListResponse:
        items = [self._parse_endpoint_item(item) for item in response.get("results", [])]
        return ItemsListResponse(
            engine=self._get_engine_name(),
            items=items,
            offset=offset,
            limit=limit,
            overallCount=response.get("count"),
        )

    def _parse_endpoint_item(self, response: dict) -> ItemDetails:
        category = response.get("category") or {}
        lifecycle = response.get("lifecyclePhase") or {}
        owner = response.get("owner") or {}
        return ItemDetails(
            #base
            engine=self._get_engine_name(),
            id=str(response.get("guid")),
            number=response.get("number"),
            name=response.get("name"),

            #details
            revision=response.get("revisionNumber"),
            description=response.get("description"),
            category_id=category.get("guid"),
            category_name=category.get("name"),
            lifecycle_phase=lifecycle.get("name"),
            owner=owner.get("fullName") or owner.get("email"),
            creation_date=response.get("creationDateTime"),
            effective_date=response.get("effectiveDateTime"),
            attributes=[
                ItemAttribute(id=str(attr.get("guid")), name=attr.get("name"), value=attr.get("value"))
                for attr in response.get("additionalAttributes", [])
                if attr.get("guid")
            ],
        )
