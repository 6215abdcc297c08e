from shared.clients.plm.PLMClientInterface import PLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import ConfigurationError
from shared.storage.StoreInterface import StoreInterface


class PLMClientManager:
    """Manager class to instantiate the configured PLM client."""

    def __init__(self, helper_config: HelperConfig, user_store: StoreInterface):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self._user_store = user_store
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """Read the PLM engine name from env configuration.

        Returns:
            str: Capitalised engine name (e.g. "Arena").

        Raises:
            ConfigurationError: If PLM_ENGINE is not set or empty.
        """
        try:
            engine = self.helper_config.get_string_val("PLM_ENGINE")
        except ValueError:
            raise ConfigurationError("No PLM engine specified in configuration (PLM_ENGINE).")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> PLMClientInterface:
        """Instantiate the PLM client for the configured engine.

        Raises:
            ConfigurationError: If the engine is unsupported or cannot be imported.
        """
        engine = self._get_engine_from_env()
        class_name = f"PLMClient{engine}"
        try:
            module = __import__(
                f"shared.clients.plm.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ConfigurationError("Unsupported PLM engine '%s'. Error: %s" % (engine, e))
        client = client_class(helper_config=self.helper_config, user_store=self._user_store)
        self.logging.debug("Instantiated PLM client for engine: %s", engine)
        return client

    def get_client(self) -> PLMClientInterface:
        """Return the instantiated PLM client."""
        return self.client
