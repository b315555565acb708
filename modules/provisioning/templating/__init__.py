"""
Template execution.
"""

from modules.provisioning.templating.engine import JinjaTemplateExecutor

__all__ = ["JinjaTemplateExecutor"]
