"""Shared collaborators for relay cycles."""

from collections.abc import Callable

import httpx

from wxrelay.api import ProviderClient, create_provider
from wxrelay.config.runtime import RuntimeSettings
from wxrelay.config.settings import Settings
from wxrelay.delivery import WebhookRelay
from wxrelay.processing import ConditionSnapshots, DedupLedger
from wxrelay.store import ActivityLog, AlertTypeStore, KeyValueStore, LocationStore, SettingsStore

ProviderFactory = Callable[[RuntimeSettings], ProviderClient]
RelayFactory = Callable[[RuntimeSettings], WebhookRelay]


class RelayContext:
    """Stores and client factories used by every cycle.

    The factories take the runtime settings read at the start of each cycle,
    so credential and webhook changes apply on the next run.
    """

    def __init__(
        self,
        settings: Settings,
        store: KeyValueStore,
        provider_factory: ProviderFactory | None = None,
        relay_factory: RelayFactory | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the context.

        Args:
            settings: Process settings.
            store: Backing key-value store.
            provider_factory: Builds a provider client; defaults to :func:`create_provider`.
            relay_factory: Builds a webhook relay; defaults to :class:`WebhookRelay`.
            transport: Optional HTTP transport passed to the default factories.
        """
        self.settings = settings
        self.store = store
        self.settings_store = SettingsStore(store, settings.runtime_defaults())
        self.locations = LocationStore(store)
        self.alert_types = AlertTypeStore(store)
        self.ledger = DedupLedger(store)
        self.snapshots = ConditionSnapshots(store)
        self.activity = ActivityLog(store, self.settings_store)
        self._transport = transport
        self.provider_factory = provider_factory or self._default_provider
        self.relay_factory = relay_factory or self._default_relay

    def _default_provider(self, runtime: RuntimeSettings) -> ProviderClient:
        return create_provider(runtime, self.settings, transport=self._transport)

    def _default_relay(self, runtime: RuntimeSettings) -> WebhookRelay:
        return WebhookRelay(
            runtime.webhook_url,
            timeout=self.settings.webhook_timeout,
            user_agent=self.settings.user_agent,
            item_delay=self.settings.webhook_item_delay,
            transport=self._transport,
        )
