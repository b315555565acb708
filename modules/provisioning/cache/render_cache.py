"""
Render cache.

Renders a template at most once per (template, identity value) and
hands back the stored output on every later request. Concurrent
misses on the same key are collapsed so only one of them generates
secrets; the others wait and read the winner's instance.
"""

import asyncio
from typing import Dict, Any, Optional, Tuple

from modules.provisioning.generators import generate
from modules.provisioning.hashing import apply as apply_hashing
from modules.provisioning.cache.keyed_lock import KeyedLock
from modules.provisioning.config import ProvisioningConfig, get_provisioning_config
from modules.provisioning.core.interfaces import (
    Template,
    TemplateConfiguration,
    RenderedInstance,
    RenderResult,
    ITemplateExecutor,
)
from modules.provisioning.storage.template_store import ITemplateStore
from shared.utils.logger import setup_logger

logger = setup_logger(__name__)


class RenderCache:
    """
    Get-or-create access to rendered instances.

    Features:
    - Single-flight generation per key
    - Lock released on every exit path
    - Hit/miss statistics
    """

    def __init__(
        self,
        store: ITemplateStore,
        executor: ITemplateExecutor,
        config: Optional[ProvisioningConfig] = None,
        locks: Optional[KeyedLock] = None
    ):
        """
        Initialize render cache.

        Args:
            store: Template store holding rendered instances
            executor: Template executor used on cache misses
            config: Provisioning configuration (optional, defaults to global)
            locks: Per-key lock map (optional)
        """
        self.store = store
        self.executor = executor
        self.config = config or get_provisioning_config()
        self.locks = locks or KeyedLock()

        self.hits = 0
        self.misses = 0
        self.generations = 0
        self.uncached = 0

    def generate_values(self, configuration: TemplateConfiguration) -> Tuple[Dict[str, str], Dict[str, str]]:
        """
        Generate every dynamic field of a configuration.

        Returns:
            (plaintext values, stored values) keyed by field name
        """
        plaintext: Dict[str, str] = {}
        stored: Dict[str, str] = {}

        for spec in configuration.dynamic_fields:
            value = generate(spec, self.config)
            algorithm = spec.effective_algorithm(configuration.hashing_algorithm)
            plaintext[spec.field_name] = value
            stored[spec.field_name] = apply_hashing(algorithm, value, self.config)

        return plaintext, stored

    def render(
        self,
        template: Template,
        configuration: TemplateConfiguration,
        request_params: Dict[str, Any],
        generated: Dict[str, str]
    ) -> bytes:
        """Render with defaults, overridden by request params, overridden by generated values."""
        context: Dict[str, Any] = {}
        context.update(configuration.default_values)
        context.update(request_params)
        context.update(generated)
        return self.executor.render(template.source, context)

    def _generate_and_render(
        self,
        template: Template,
        configuration: TemplateConfiguration,
        request_params: Dict[str, Any]
    ) -> Tuple[Dict[str, str], Dict[str, str], bytes]:
        plaintext, stored = self.generate_values(configuration)
        output = self.render(template, configuration, request_params, stored)
        return plaintext, stored, output

    async def produce(
        self,
        template: Template,
        configuration: TemplateConfiguration,
        request_params: Dict[str, Any]
    ) -> Tuple[Dict[str, str], Dict[str, str], bytes]:
        """
        Generate, hash and render in a worker thread.

        Hashing is CPU-bound, so it runs off the event loop.

        Returns:
            (plaintext values, stored values, rendered output)
        """
        return await asyncio.to_thread(self._generate_and_render, template, configuration, request_params)

    async def get_or_create(
        self,
        template: Template,
        configuration: TemplateConfiguration,
        identity_value: Optional[str],
        request_params: Dict[str, Any]
    ) -> RenderResult:
        """
        Return the cached output for an identity, rendering it on first request.

        Args:
            template: Template to render
            configuration: Configuration snapshot read with the template
            identity_value: Cache key within the template, None to skip caching
            request_params: Caller-supplied parameters

        Returns:
            RenderResult; disclosed_values is only set when this call generated

        Raises:
            ConfigurationException: If a generator cannot satisfy a field
            RenderException: If the template fails to render
            PersistenceException: If the instance cannot be stored
        """
        if identity_value is None:
            self.uncached += 1
            plaintext, _, output = await self.produce(template, configuration, request_params)
            logger.debug(f"Rendered {template.name} without caching")
            return RenderResult(output=output, cached=False, disclosed_values=plaintext)

        existing = await self.store.get_instance(template.name, identity_value)
        if existing is not None:
            self.hits += 1
            logger.debug(f"Cache hit: {template.name}:{identity_value}")
            return RenderResult(output=existing.rendered_output, cached=True, identity_value=identity_value)

        async with self.locks.acquire((template.name, identity_value)):
            # Another request may have finished while we waited
            existing = await self.store.get_instance(template.name, identity_value)
            if existing is not None:
                self.hits += 1
                logger.debug(f"Cache hit after wait: {template.name}:{identity_value}")
                return RenderResult(output=existing.rendered_output, cached=True, identity_value=identity_value)

            logger.info(f"Cache miss: {template.name}:{identity_value}, generating")

            plaintext, stored, output = await self.produce(template, configuration, request_params)

            instance = RenderedInstance(
                template_name=template.name,
                identity_value=identity_value,
                generated_fields=stored,
                rendered_output=output,
            )
            kept = await self.store.insert_instance(instance)

            if kept is not instance:
                # Written by another process between our check and insert
                self.hits += 1
                logger.info(f"Instance {template.name}:{identity_value} already stored, discarding ours")
                return RenderResult(output=kept.rendered_output, cached=True, identity_value=identity_value)

            self.misses += 1
            self.generations += 1
            logger.info(
                f"Stored rendered instance {template.name}:{identity_value} "
                f"({len(stored)} generated fields)"
            )
            return RenderResult(
                output=output,
                cached=False,
                identity_value=identity_value,
                disclosed_values=plaintext,
            )

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache stats
        """
        cacheable = self.hits + self.misses
        hit_rate = (self.hits / cacheable * 100) if cacheable > 0 else 0

        return {
            "hits": self.hits,
            "misses": self.misses,
            "generations": self.generations,
            "uncached": self.uncached,
            "in_flight": len(self.locks),
            "hit_rate_percent": round(hit_rate, 2),
            "total_requests": cacheable + self.uncached,
        }
