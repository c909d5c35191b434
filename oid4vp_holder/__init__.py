"""OID4VP holder plugin: select held credentials for DCQL queries."""

import logging

from acapy_agent.config.injection_context import InjectionContext

from .config import Config

LOGGER = logging.getLogger(__name__)


async def setup(context: InjectionContext):
    """Setup the plugin."""
    LOGGER.info("Setting up OID4VP holder plugin...")
    config = Config.from_settings(context.settings)
    context.injector.bind_instance(Config, config)
    LOGGER.info("OID4VP holder reading held credentials of type %s", config.record_type)
