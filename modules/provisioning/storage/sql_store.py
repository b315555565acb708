"""
SQL-backed template store.

Uses the async SQLAlchemy models in src.database.models. Each store
method runs in exactly one transaction, so a failure never leaves a
configuration without its template or a half-written instance.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, Any, Optional, List, Tuple, AsyncGenerator

from sqlalchemy import select, delete, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from modules.provisioning.core.interfaces import (
    Template,
    TemplateConfiguration,
    RenderedInstance,
    RenderedInstanceSummary,
    utc_now,
)
from modules.provisioning.core.exceptions import (
    ProvisioningException,
    TemplateNotFoundException,
    PersistenceException,
)
from modules.provisioning.storage.template_store import ITemplateStore
from src.database.models import (
    TemplateRecord,
    TemplateConfigurationRecord,
    RenderedInstanceRecord,
)
from shared.utils.logger import setup_logger

logger = setup_logger(__name__)


def _as_utc(value: Optional[datetime]) -> datetime:
    # SQLite hands back naive datetimes
    if value is None:
        return utc_now()
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlTemplateStore(ITemplateStore):
    """
    Template store over an async SQLAlchemy session maker.

    Example:
        >>> engine = create_engine_for_url("sqlite+aiosqlite:///./provisioning.db")
        >>> store = SqlTemplateStore(create_session_maker(engine))
        >>> await store.put("cloud-init", "hostname: {{ hostname }}")
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        """
        Initialize SQL store.

        Args:
            session_maker: Async session maker bound to the provisioning database
        """
        self.session_maker = session_maker

    @asynccontextmanager
    async def _transaction(self) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    yield session
        except ProvisioningException:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Database operation failed: {e}")
            raise PersistenceException(f"Database operation failed: {e}") from e

    @staticmethod
    async def _require(session: AsyncSession, name: str) -> TemplateRecord:
        record = await session.get(TemplateRecord, name)
        if record is None:
            raise TemplateNotFoundException(f"Template not found: {name}")
        return record

    @staticmethod
    def _to_configuration(record: Optional[TemplateConfigurationRecord]) -> TemplateConfiguration:
        if record is None:
            return TemplateConfiguration()
        return TemplateConfiguration.from_dict({
            "id_field": record.id_field,
            "dynamic_fields": record.dynamic_fields or [],
            "hashing_algorithm": record.hashing_algorithm,
            "default_values": record.default_values or {},
        })

    @staticmethod
    def _to_instance(record: RenderedInstanceRecord) -> RenderedInstance:
        return RenderedInstance(
            template_name=record.template_name,
            identity_value=record.identity_value,
            generated_fields=dict(record.generated_fields or {}),
            rendered_output=bytes(record.rendered_output),
            created_at=_as_utc(record.created_at),
        )

    async def put(self, name: str, source: str) -> Template:
        """Create or replace template row, adding a default configuration row if missing."""
        now = utc_now()
        async with self._transaction() as session:
            record = await session.get(TemplateRecord, name)
            if record is None:
                record = TemplateRecord(name=name, source=source, created_at=now, updated_at=now)
                session.add(record)
                # Parent row must exist before the configuration row references it
                await session.flush()
                logger.debug(f"Inserted template row: {name}")
            else:
                record.source = source
                record.updated_at = now
                logger.debug(f"Updated template row: {name}")

            configuration = await session.get(TemplateConfigurationRecord, name)
            if configuration is None:
                defaults = TemplateConfiguration()
                session.add(TemplateConfigurationRecord(
                    template_name=name,
                    id_field=defaults.id_field,
                    dynamic_fields=[],
                    hashing_algorithm=defaults.hashing_algorithm.value,
                    default_values={},
                ))

            return Template(
                name=name,
                source=source,
                created_at=_as_utc(record.created_at),
                updated_at=now,
            )

    async def get(self, name: str) -> Tuple[Template, TemplateConfiguration]:
        """Load template and configuration rows."""
        async with self._transaction() as session:
            record = await self._require(session, name)
            configuration = await session.get(TemplateConfigurationRecord, name)
            template = Template(
                name=record.name,
                source=record.source,
                created_at=_as_utc(record.created_at),
                updated_at=_as_utc(record.updated_at),
            )
            return template, self._to_configuration(configuration)

    async def delete(self, name: str) -> None:
        """Delete instances, configuration and template rows in one transaction."""
        async with self._transaction() as session:
            await self._require(session, name)
            result = await session.execute(
                delete(RenderedInstanceRecord).where(RenderedInstanceRecord.template_name == name)
            )
            await session.execute(
                delete(TemplateConfigurationRecord).where(TemplateConfigurationRecord.template_name == name)
            )
            await session.execute(
                delete(TemplateRecord).where(TemplateRecord.name == name)
            )
            logger.debug(f"Deleted template {name} with {result.rowcount} rendered instances")

    async def set_configuration(self, name: str, configuration: TemplateConfiguration) -> None:
        """Replace configuration row."""
        data = configuration.to_dict()
        async with self._transaction() as session:
            await self._require(session, name)
            record = await session.get(TemplateConfigurationRecord, name)
            if record is None:
                record = TemplateConfigurationRecord(template_name=name)
                session.add(record)
            record.id_field = data["id_field"]
            record.dynamic_fields = data["dynamic_fields"]
            record.hashing_algorithm = data["hashing_algorithm"]
            record.default_values = data["default_values"]

    async def set_default_values(self, name: str, values: Dict[str, Any]) -> None:
        """Replace default values column."""
        async with self._transaction() as session:
            await self._require(session, name)
            record = await session.get(TemplateConfigurationRecord, name)
            if record is None:
                record = TemplateConfigurationRecord(
                    template_name=name,
                    id_field="",
                    dynamic_fields=[],
                    hashing_algorithm="none",
                )
                session.add(record)
            record.default_values = dict(values)

    async def get_instance(self, name: str, identity_value: str) -> Optional[RenderedInstance]:
        """Load a rendered instance row."""
        async with self._transaction() as session:
            record = await session.get(RenderedInstanceRecord, (name, identity_value))
            return self._to_instance(record) if record is not None else None

    async def insert_instance(self, instance: RenderedInstance) -> RenderedInstance:
        """Insert a rendered instance row, deferring to an existing row on conflict."""
        name = instance.template_name
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    await self._require(session, name)
                    existing = await session.get(RenderedInstanceRecord, (name, instance.identity_value))
                    if existing is not None:
                        return self._to_instance(existing)
                    session.add(RenderedInstanceRecord(
                        template_name=name,
                        identity_value=instance.identity_value,
                        generated_fields=dict(instance.generated_fields),
                        rendered_output=instance.rendered_output,
                        created_at=instance.created_at,
                    ))
            return instance
        except IntegrityError:
            # Lost a race against another writer, or the template went away
            logger.info(f"Insert conflict for {name}:{instance.identity_value}, re-reading")
            stored = await self.get_instance(name, instance.identity_value)
            if stored is not None:
                return stored
            await self.get(name)
            raise PersistenceException(f"Failed to store rendered instance for {name}")
        except ProvisioningException:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Database operation failed: {e}")
            raise PersistenceException(f"Database operation failed: {e}") from e

    async def list_instances(self, name: str) -> List[RenderedInstanceSummary]:
        """List rendered instance rows, newest first."""
        async with self._transaction() as session:
            result = await session.execute(
                select(RenderedInstanceRecord.identity_value, RenderedInstanceRecord.created_at)
                .where(RenderedInstanceRecord.template_name == name)
                .order_by(RenderedInstanceRecord.created_at.desc())
            )
            return [
                RenderedInstanceSummary(identity_value=row.identity_value, created_at=_as_utc(row.created_at))
                for row in result
            ]

    async def health_check(self) -> bool:
        """Run a trivial query against the database."""
        try:
            async with self.session_maker() as session:
                await session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return False
