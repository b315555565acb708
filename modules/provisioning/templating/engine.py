"""
Jinja2 template executor.

Uploaded templates are untrusted, so they run in Jinja's sandbox.
Undefined variables are errors rather than empty strings: a missing
value in a provisioning artifact should fail loudly.
"""

from typing import Dict, Any

from jinja2 import StrictUndefined, TemplateError, TemplateSyntaxError
from jinja2.sandbox import SandboxedEnvironment

from modules.provisioning.core.interfaces import ITemplateExecutor
from modules.provisioning.core.exceptions import RenderException, TemplateValidationException
from shared.utils.logger import setup_logger

logger = setup_logger(__name__)


class JinjaTemplateExecutor(ITemplateExecutor):
    """
    Template executor backed by a sandboxed Jinja2 environment.
    """

    def __init__(self):
        self.jinja_env = SandboxedEnvironment(
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )

    def validate(self, source: str) -> None:
        try:
            self.jinja_env.parse(source)
        except TemplateSyntaxError as e:
            raise TemplateValidationException(f"Template syntax error on line {e.lineno}: {e.message}")

    def render(self, source: str, context: Dict[str, Any]) -> bytes:
        try:
            template = self.jinja_env.from_string(source)
            # Jinja expands the context as keyword arguments
            variables = {str(key): value for key, value in context.items()}
            return template.render(variables).encode("utf-8")
        except TemplateSyntaxError as e:
            raise RenderException(f"Template syntax error on line {e.lineno}: {e.message}")
        except TemplateError as e:
            raise RenderException(f"Template render error: {e}")
        except Exception as e:
            logger.warning(f"Template raised {type(e).__name__} during render")
            raise RenderException(f"Template render error: {type(e).__name__}: {e}")
