from services.tokens.TokenEngine import TokenEngine
from services.tokens.TokenStore import TokenStore
from shared.document.InMemoryDocument import InMemoryDocument
from shared.helper.HelperConfig import HelperConfig
from shared.clients.plm.PLMClientInterface import PLMClientInterface


def open_document(helper_config: HelperConfig, text: str, plm_client: PLMClientInterface | None = None) -> tuple[InMemoryDocument, TokenEngine]:
    """Wrap request text in an in-memory document with its own token engine.

    The document carries no token metadata; tokens found in the text are resolved by field name.
    """
    document = InMemoryDocument(text=text, cursor=len(text))
    token_store = TokenStore(helper_config=helper_config, store=document.get_properties())
    engine = TokenEngine(helper_config=helper_config, document=document, token_store=token_store, plm_client=plm_client)
    return document, engine
