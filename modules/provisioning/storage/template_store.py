"""
Template store abstraction for provisioning module.

Owns templates, their configuration and the rendered instances cached
under them. Allows different storage backends (memory, SQL database).
"""

import asyncio
import copy
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List, Tuple

from modules.provisioning.core.interfaces import (
    Template,
    TemplateConfiguration,
    RenderedInstance,
    RenderedInstanceSummary,
    utc_now,
)
from modules.provisioning.core.exceptions import TemplateNotFoundException


class ITemplateStore(ABC):
    """
    Abstract interface for template storage.

    Allows swapping storage backends without changing engine code.
    Every method is a single atomic unit against the backend.
    """

    @abstractmethod
    async def put(self, name: str, source: str) -> Template:
        """
        Create or replace a template.

        Initializes an empty configuration (no caching, no dynamic
        fields, no hashing) if the template has none yet.

        Args:
            name: Template name
            source: Template source text

        Returns:
            The stored template
        """
        pass

    @abstractmethod
    async def get(self, name: str) -> Tuple[Template, TemplateConfiguration]:
        """
        Get a template and its configuration.

        Raises:
            TemplateNotFoundException: If the template does not exist
        """
        pass

    @abstractmethod
    async def delete(self, name: str) -> None:
        """
        Delete a template, its configuration and all its rendered instances.

        Raises:
            TemplateNotFoundException: If the template does not exist
        """
        pass

    @abstractmethod
    async def set_configuration(self, name: str, configuration: TemplateConfiguration) -> None:
        """
        Replace a template's configuration.

        Existing rendered instances are left untouched.

        Raises:
            TemplateNotFoundException: If the template does not exist
        """
        pass

    @abstractmethod
    async def set_default_values(self, name: str, values: Dict[str, Any]) -> None:
        """
        Replace only the default values of a template's configuration.

        Raises:
            TemplateNotFoundException: If the template does not exist
        """
        pass

    @abstractmethod
    async def get_instance(self, name: str, identity_value: str) -> Optional[RenderedInstance]:
        """
        Get the rendered instance for a template/identity pair.

        Returns:
            RenderedInstance or None if not cached
        """
        pass

    @abstractmethod
    async def insert_instance(self, instance: RenderedInstance) -> RenderedInstance:
        """
        Insert a rendered instance unless one already exists for its key.

        Returns:
            The instance held by the store afterwards (the existing one
            if another writer got there first)

        Raises:
            TemplateNotFoundException: If the template was deleted meanwhile
        """
        pass

    @abstractmethod
    async def list_instances(self, name: str) -> List[RenderedInstanceSummary]:
        """
        List rendered instances of a template, newest first.
        """
        pass

    async def health_check(self) -> bool:
        """Check that the backend is reachable."""
        return True


class InMemoryTemplateStore(ITemplateStore):
    """
    In-memory template storage implementation.

    Simple, fast, but everything is lost on restart.
    Good for development and tests.
    """

    def __init__(self):
        """Initialize in-memory storage."""
        self._templates: Dict[str, Template] = {}
        self._configurations: Dict[str, TemplateConfiguration] = {}
        self._instances: Dict[str, Dict[str, RenderedInstance]] = {}
        self._lock = asyncio.Lock()

    def _require(self, name: str) -> None:
        if name not in self._templates:
            raise TemplateNotFoundException(f"Template not found: {name}")

    async def put(self, name: str, source: str) -> Template:
        """Store template in memory."""
        async with self._lock:
            existing = self._templates.get(name)
            now = utc_now()
            template = Template(
                name=name,
                source=source,
                created_at=existing.created_at if existing else now,
                updated_at=now,
            )
            self._templates[name] = template
            self._configurations.setdefault(name, TemplateConfiguration())
            self._instances.setdefault(name, {})
            return copy.copy(template)

    async def get(self, name: str) -> Tuple[Template, TemplateConfiguration]:
        """Get template from memory."""
        self._require(name)
        return (
            copy.copy(self._templates[name]),
            copy.deepcopy(self._configurations[name]),
        )

    async def delete(self, name: str) -> None:
        """Delete template and everything under it from memory."""
        async with self._lock:
            self._require(name)
            del self._templates[name]
            self._configurations.pop(name, None)
            self._instances.pop(name, None)

    async def set_configuration(self, name: str, configuration: TemplateConfiguration) -> None:
        """Replace configuration in memory."""
        async with self._lock:
            self._require(name)
            self._configurations[name] = copy.deepcopy(configuration)

    async def set_default_values(self, name: str, values: Dict[str, Any]) -> None:
        """Replace default values in memory."""
        async with self._lock:
            self._require(name)
            self._configurations[name].default_values = copy.deepcopy(values)

    async def get_instance(self, name: str, identity_value: str) -> Optional[RenderedInstance]:
        """Get rendered instance from memory."""
        return self._instances.get(name, {}).get(identity_value)

    async def insert_instance(self, instance: RenderedInstance) -> RenderedInstance:
        """Insert rendered instance into memory if absent."""
        async with self._lock:
            self._require(instance.template_name)
            bucket = self._instances.setdefault(instance.template_name, {})
            return bucket.setdefault(instance.identity_value, instance)

    async def list_instances(self, name: str) -> List[RenderedInstanceSummary]:
        """List rendered instances from memory."""
        instances = list(self._instances.get(name, {}).values())

        # Sort by creation time (newest first)
        instances.sort(key=lambda i: i.created_at, reverse=True)

        return [
            RenderedInstanceSummary(identity_value=i.identity_value, created_at=i.created_at)
            for i in instances
        ]
