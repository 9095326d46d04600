from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.document import ChangeEvent


class StoreClientInterface(ABC):
    """Primary document store. Owns one driver connection, opened by boot() and released by close()."""

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Validates that all required configuration values for the client are set and valid.

        Raises:
            ValueError: If any required configuration value is missing or invalid.
        """
        for config in self._get_required_config():
            _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    @abstractmethod
    def is_booted(self) -> bool:
        pass

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        return "store"

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "mongo"
        """
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        """
        Returns:
            str: The full configuration key name for the client. E.g. "STORE_MONGO_URI"
        """
        return f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        key = self._get_config_key_name(raw_key)
        if val_type == "string":
            return self._helper_config.get_string_val(key, default=default)
        elif val_type == "number":
            return self._helper_config.get_number_val(key, default=default)
        elif val_type == "bool":
            return self._helper_config.get_bool_val(key, default=default)
        raise ValueError(f"Unsupported config value type '{val_type}' for env key '{raw_key}' in store client '{self.get_engine_name()}'.")

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def boot(self) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    @abstractmethod
    async def do_healthcheck(self) -> bool:
        pass

    @abstractmethod
    async def find_by_id(self, collection: str, doc_id: Any) -> dict | None:
        """
        Fetches the current version of a document.

        Args:
            collection (str): Collection name.
            doc_id (Any): The document's primary key, as carried by a change event or as a string.

        Returns:
            dict | None: The document, or None if it no longer exists.
        """
        pass

    @abstractmethod
    def iter_documents(self, collection: str, batch_size: int = 100) -> AsyncIterator[dict]:
        """
        Iterates every document of a collection once.
        """
        pass

    @abstractmethod
    def watch(self, collection: str) -> AsyncIterator[ChangeEvent]:
        """
        Opens a change feed on a collection. Updates carry the full post-image document.

        Yields:
            ChangeEvent: One event per insert, update, replace or delete. Other operations are skipped.
        """
        pass
