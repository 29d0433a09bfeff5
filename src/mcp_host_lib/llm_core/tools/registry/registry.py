"""Aggregation of tool descriptors across connected providers."""

import asyncio
from typing import List, Optional, Tuple

from ...exceptions import DiscoveryFailedError, ProtocolError, TransportError
from ...logger import get_logger
from ..models import ToolDescriptor
from ..ports import ToolProvider

logger = get_logger(__name__)


class ToolRegistry:
    """
    A central registry of the tools offered by every connected provider.

    Descriptors are kept per provider in discovery order. Tool names only need
    to be unique within one provider; when several providers expose the same
    name, the provider that was discovered first wins.
    """

    # Errors that mean "provider unreachable" rather than a programming error.
    DISCOVERY_ERRORS = (asyncio.TimeoutError, TransportError, ProtocolError, OSError)

    def __init__(self, discovery_timeout: float = 5.0) -> None:
        """Initialize the ToolRegistry.

        Args:
            discovery_timeout: Seconds to wait for a provider's tool list.
        """
        self.discovery_timeout = discovery_timeout
        self._entries: List[Tuple[ToolProvider, List[ToolDescriptor]]] = []

    async def discover(self, provider: ToolProvider) -> List[ToolDescriptor]:
        """Fetch a provider's tools and record them.

        Re-discovering a known provider replaces its descriptors and keeps its position.

        Args:
            provider: The provider to query.

        Returns:
            The descriptors reported by the provider.

        Raises:
            DiscoveryFailedError: If the provider does not answer in time or the call fails.
                Already registered providers are not affected.
        """
        logger.debug("Discovering tools of provider '%s'...", provider.provider_id)
        try:
            descriptors = list(await asyncio.wait_for(provider.list_tools(), timeout=self.discovery_timeout))
        except asyncio.TimeoutError as exc:
            msg = f"Provider '{provider.provider_id}' did not list its tools within {self.discovery_timeout}s."
            logger.error(msg)
            raise DiscoveryFailedError(msg) from exc
        except self.DISCOVERY_ERRORS as exc:
            msg = f"Tool discovery failed for provider '{provider.provider_id}': {exc}"
            logger.error(msg)
            raise DiscoveryFailedError(msg) from exc

        for index, (known, _) in enumerate(self._entries):
            if known is provider:
                self._entries[index] = (provider, descriptors)
                break
        else:
            self._entries.append((provider, descriptors))

        for descriptor in descriptors:
            owner = self.resolve(descriptor.name)
            if owner is not provider:
                logger.warning(
                    "Tool '%s' of provider '%s' is shadowed by provider '%s'.",
                    descriptor.name,
                    provider.provider_id,
                    owner.provider_id if owner else "?",
                )

        logger.info(
            "Provider '%s' offers %d tool(s): %s",
            provider.provider_id,
            len(descriptors),
            [d.name for d in descriptors],
        )
        return descriptors

    def resolve(self, name: str) -> Optional[ToolProvider]:
        """Return the first registered provider that hosts ``name``, or None."""
        for provider, descriptors in self._entries:
            if any(descriptor.name == name for descriptor in descriptors):
                return provider
        return None

    def all_descriptors(self) -> List[ToolDescriptor]:
        """Return every known descriptor in discovery order."""
        return [descriptor for _, descriptors in self._entries for descriptor in descriptors]

    def tool_names(self) -> List[str]:
        """Return the names of all known tools in discovery order."""
        return [descriptor.name for descriptor in self.all_descriptors()]

    def remove(self, provider: ToolProvider) -> None:
        """Forget a provider and its tools. Unknown providers are ignored."""
        self._entries = [(known, descriptors) for known, descriptors in self._entries if known is not provider]
        logger.info("Removed provider '%s' from the registry.", provider.provider_id)

    @property
    def providers(self) -> List[ToolProvider]:
        """Registered providers in discovery order."""
        return [provider for provider, _ in self._entries]
