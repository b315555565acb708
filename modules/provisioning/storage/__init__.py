"""
Template storage backends.
"""

from modules.provisioning.storage.template_store import ITemplateStore, InMemoryTemplateStore
from modules.provisioning.storage.sql_store import SqlTemplateStore

__all__ = ["ITemplateStore", "InMemoryTemplateStore", "SqlTemplateStore"]
