"""Application bootstrap."""

import logging

from agents.capsule_manager import CapsuleManager
from agents.combination_agent import CombinationAgent
from capsule_app.config import CapsuleConfig
from capsule_app.logging_config import configure_logging, get_logger, log_event
from tools.capsule_store import CapsuleStore, SQLiteCapsuleStore
from tools.locks import KeyedLock
from tools.suggestion_client import GeminiSuggestionClient, SuggestionClient


LOGGER = get_logger(__name__)


class CapsuleConciergeApp:
    """Wires together the store, the AI stylist client and the agents."""

    def __init__(
        self,
        config: CapsuleConfig | None = None,
        store: CapsuleStore | None = None,
        suggestion_client: SuggestionClient | None = None,
    ) -> None:
        self.config = config or CapsuleConfig.from_env()
        configure_logging()

        self.store = store or SQLiteCapsuleStore(self.config.database_path)
        self.suggestion_client = suggestion_client or GeminiSuggestionClient(self.config)
        self.capsule_locks = KeyedLock()
        self.capsules = CapsuleManager(self.store, locks=self.capsule_locks)
        self.combinations = CombinationAgent(
            store=self.store,
            suggestion_client=self.suggestion_client,
            locks=self.capsule_locks,
        )
        log_event(
            LOGGER,
            logging.INFO,
            "app_initialised",
            environment=self.config.environment or "local",
            model=self.config.model,
        )


__all__ = ["CapsuleConciergeApp"]
