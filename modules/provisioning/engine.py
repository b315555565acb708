"""
Provisioning Engine - Main orchestrator.

Coordinates the template store, template executor and render cache
behind the operations exposed to the API layer.
"""

from datetime import date, time
from typing import Dict, Any, Optional, List, Union

import yaml

from modules.provisioning.cache.keyed_lock import KeyedLock
from modules.provisioning.cache.render_cache import RenderCache
from modules.provisioning.config import ProvisioningConfig, get_provisioning_config
from modules.provisioning.core.interfaces import (
    Template,
    TemplateConfiguration,
    RenderedInstance,
    RenderedInstanceSummary,
    RenderResult,
    ITemplateExecutor,
)
from modules.provisioning.core.exceptions import (
    RenderedInstanceNotFoundException,
    ValidationException,
    TemplateValidationException,
    RenderException,
)
from modules.provisioning.storage.template_store import ITemplateStore
from modules.provisioning.templating.engine import JinjaTemplateExecutor
from shared.utils.logger import setup_logger

logger = setup_logger(__name__)


class ProvisioningEngine:
    """
    Main provisioning engine.

    Render pipeline:
    1. Load template and configuration snapshot
    2. Derive the identity value from the request
    3. Return the cached instance, or generate, hash, render and store it
    """

    def __init__(
        self,
        store: ITemplateStore,
        executor: Optional[ITemplateExecutor] = None,
        config: Optional[ProvisioningConfig] = None
    ):
        """
        Initialize provisioning engine.

        Args:
            store: Template store implementation
            executor: Template executor (optional, defaults to sandboxed Jinja2)
            config: Provisioning configuration (optional)
        """
        self.config = config or get_provisioning_config()
        self.store = store
        self.executor = executor or JinjaTemplateExecutor()
        self.cache = RenderCache(self.store, self.executor, self.config)

        # Serializes mutations of one template; renders never take it
        self.mutation_locks = KeyedLock()

        logger.info(f"Initialized ProvisioningEngine ({type(store).__name__})")

    @staticmethod
    def _check_name(name: str) -> str:
        if not isinstance(name, str) or not name.strip():
            raise ValidationException("Template name must be a non-empty string")
        return name

    # ==========================================================================
    # TEMPLATES
    # ==========================================================================

    async def upload_template(self, name: str, source: Union[bytes, str]) -> Template:
        """
        Create or replace a template.

        The configuration of an existing template is kept.

        Raises:
            TemplateValidationException: If source is not UTF-8 or does not parse
        """
        self._check_name(name)

        if isinstance(source, bytes):
            try:
                source = source.decode("utf-8")
            except UnicodeDecodeError as e:
                raise TemplateValidationException(f"Template is not valid UTF-8: {e}")

        self.executor.validate(source)

        async with self.mutation_locks.acquire(name):
            template = await self.store.put(name, source)

        logger.info(f"Uploaded template: {name} ({len(source)} chars)")
        return template

    async def render_template(self, name: str, query_params: Dict[str, Any]) -> RenderResult:
        """
        Render a template for a request.

        Args:
            name: Template name
            query_params: Request parameters; the configured id_field
                selects the cache identity

        Returns:
            RenderResult

        Raises:
            TemplateNotFoundException: If the template does not exist
            RenderException: If rendering fails (nothing is cached)
        """
        template, configuration = await self.store.get(name)

        if not template.source:
            raise RenderException(f"Template {name} is empty")

        identity_value = configuration.identity_value(query_params)
        if configuration.caching_enabled and identity_value is None:
            logger.debug(f"Request for {name} has no '{configuration.id_field}', not caching")

        return await self.cache.get_or_create(template, configuration, identity_value, dict(query_params))

    async def delete_template(self, name: str) -> None:
        """
        Delete a template with its configuration and rendered instances.

        Raises:
            TemplateNotFoundException: If the template does not exist
        """
        async with self.mutation_locks.acquire(name):
            await self.store.delete(name)
        logger.info(f"Deleted template: {name}")

    # ==========================================================================
    # DEFAULT VALUES
    # ==========================================================================

    @staticmethod
    def parse_default_values(text: Union[bytes, str]) -> Dict[str, Any]:
        """
        Parse a YAML (or JSON) document of default values.

        An empty document clears the defaults.

        Raises:
            ValidationException: If the text does not parse or is not a mapping
        """
        if isinstance(text, bytes):
            try:
                text = text.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ValidationException(f"Default values are not valid UTF-8: {e}")

        try:
            values = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValidationException(f"Invalid YAML: {e}")

        if values is None:
            return {}
        if not isinstance(values, dict):
            raise ValidationException(
                f"Default values must be a mapping, got {type(values).__name__}"
            )
        return values

    @classmethod
    def normalize_default_values(cls, values: Any) -> Any:
        """
        Convert default values to JSON-compatible types.

        Dates and times become ISO 8601 strings and mapping keys become
        strings, so every store persists the same document.

        Raises:
            ValidationException: If a value has no JSON form
        """
        if isinstance(values, dict):
            return {str(k): cls.normalize_default_values(v) for k, v in values.items()}
        if isinstance(values, (list, tuple, set)):
            return [cls.normalize_default_values(v) for v in values]
        if isinstance(values, (date, time)):
            return values.isoformat()
        if values is None or isinstance(values, (str, int, float, bool)):
            return values
        raise ValidationException(
            f"Unsupported default value of type {type(values).__name__}"
        )

    async def set_default_values(self, name: str, values: Dict[str, Any]) -> None:
        """
        Replace a template's default values.

        Raises:
            TemplateNotFoundException: If the template does not exist
            ValidationException: If values is not a mapping
        """
        if not isinstance(values, dict):
            raise ValidationException(
                f"Default values must be a mapping, got {type(values).__name__}"
            )
        values = self.normalize_default_values(values)

        async with self.mutation_locks.acquire(name):
            await self.store.set_default_values(name, values)
        logger.info(f"Set {len(values)} default values for {name}")

    # ==========================================================================
    # CONFIGURATION
    # ==========================================================================

    async def get_configuration(self, name: str) -> TemplateConfiguration:
        """Get a template's configuration."""
        _, configuration = await self.store.get(name)
        return configuration

    async def set_configuration(
        self,
        name: str,
        configuration: Union[TemplateConfiguration, Dict[str, Any]],
        keep_default_values: Optional[bool] = None
    ) -> TemplateConfiguration:
        """
        Validate and replace a template's configuration.

        Existing rendered instances are not invalidated.

        Args:
            name: Template name
            configuration: New configuration, as an object or its wire form
            keep_default_values: Keep the stored default values instead of
                the ones carried by the configuration. Defaults to True for
                a wire-form dict without a 'default_values' key, False otherwise

        Returns:
            The configuration now in effect

        Raises:
            TemplateNotFoundException: If the template does not exist
            ValidationException: If the configuration is invalid
        """
        if isinstance(configuration, dict):
            if keep_default_values is None:
                keep_default_values = "default_values" not in configuration
            configuration = TemplateConfiguration.from_dict(configuration)
        elif keep_default_values is None:
            keep_default_values = False

        configuration.validate()
        configuration.default_values = self.normalize_default_values(configuration.default_values)

        async with self.mutation_locks.acquire(name):
            _, current = await self.store.get(name)
            if keep_default_values:
                configuration.default_values = current.default_values
            await self.store.set_configuration(name, configuration)

        logger.info(
            f"Set configuration for {name}: id_field={configuration.id_field}, "
            f"{len(configuration.dynamic_fields)} dynamic fields, "
            f"hashing={configuration.hashing_algorithm.value}"
        )
        return configuration

    # ==========================================================================
    # RENDERED INSTANCES
    # ==========================================================================

    async def list_rendered_instances(self, name: str) -> List[RenderedInstanceSummary]:
        """
        List cached instances of a template, newest first.

        Raises:
            TemplateNotFoundException: If the template does not exist
        """
        await self.store.get(name)
        return await self.store.list_instances(name)

    async def get_rendered_instance(self, name: str, identity_value: str) -> RenderedInstance:
        """
        Get one cached instance.

        Raises:
            TemplateNotFoundException: If the template does not exist
            RenderedInstanceNotFoundException: If nothing is cached for the identity
        """
        await self.store.get(name)
        instance = await self.store.get_instance(name, identity_value)
        if instance is None:
            raise RenderedInstanceNotFoundException(
                f"No rendered instance of {name} for '{identity_value}'"
            )
        return instance

    # ==========================================================================
    # STATUS
    # ==========================================================================

    def get_stats(self) -> Dict[str, Any]:
        """Render cache statistics."""
        return self.cache.get_stats()

    async def health_check(self) -> Dict[str, Any]:
        """Check health of provisioning system."""
        store_ok = await self.store.health_check()
        return {
            "status": "healthy" if store_ok else "degraded",
            "database": store_ok,
            "store_type": type(self.store).__name__,
            "executor_type": type(self.executor).__name__,
            "cache": self.get_stats(),
        }
