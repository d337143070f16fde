"""Factories for the gateway and cache used by CLI commands.

CLI commands never construct concrete implementations directly; tests
patch these functions to substitute fakes.
"""

from multiship.cli.config import MultiShipConfig
from multiship.gateway.http_client import StorefrontClient
from multiship.services.consignment_cache import (
    ConsignmentStore,
    FileConsignmentStore,
    InMemoryConsignmentStore,
)


def get_gateway(
    base_url: str | None = None,
    config: MultiShipConfig | None = None,
) -> StorefrontClient:
    """Create the Storefront client.

    Args:
        base_url: Storefront origin; overrides the config value.
        config: Loaded config for the base URL, timeout, and gift message URL.

    Returns:
        An unopened StorefrontClient; use it with ``async with``.
    """
    cfg = config or MultiShipConfig()
    return StorefrontClient(
        base_url=base_url or cfg.storefront.base_url,
        timeout=cfg.storefront.timeout,
        gift_message_url=cfg.storefront.gift_message_url,
    )


def get_cache(checkout_id: str, config: MultiShipConfig | None = None) -> ConsignmentStore:
    """Create the consignment cache for one checkout session.

    A disabled cache is an in-memory store, so restoration still works
    within the running process.
    """
    cfg = config or MultiShipConfig()
    if not cfg.cache.enabled:
        return InMemoryConsignmentStore()
    return FileConsignmentStore(cfg.cache.path_for(checkout_id))
