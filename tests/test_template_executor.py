"""
Tests for the sandboxed Jinja2 executor.
"""

import pytest

from modules.provisioning.core.exceptions import RenderException, TemplateValidationException
from modules.provisioning.templating import JinjaTemplateExecutor


@pytest.fixture
def executor():
    return JinjaTemplateExecutor()


def test_render_returns_bytes(executor):
    output = executor.render("host={{ host }}\n", {"host": "node1"})

    assert output == b"host=node1\n"


def test_render_does_not_escape(executor):
    assert executor.render("{{ v }}", {"v": "<a & b>"}) == b"<a & b>"


def test_render_supports_loops_and_filters(executor):
    source = "{% for p in ports %}{{ p }},{% endfor %}{{ name | upper }}"

    assert executor.render(source, {"ports": [22, 80], "name": "web"}) == b"22,80,WEB"


def test_undefined_variable_is_an_error(executor):
    with pytest.raises(RenderException):
        executor.render("{{ missing }}", {})


def test_validate_accepts_valid_source(executor):
    executor.validate("{% if x %}{{ x }}{% endif %}")


def test_validate_rejects_syntax_error(executor):
    with pytest.raises(TemplateValidationException):
        executor.validate("{% if x %}{{ x }")


def test_sandbox_blocks_unsafe_attributes(executor):
    with pytest.raises(RenderException):
        executor.render("{{ ''.__class__.__mro__[1].__subclasses__() }}", {})


def test_runtime_error_maps_to_render_exception(executor):
    with pytest.raises(RenderException):
        executor.render("{{ 1 // zero }}", {"zero": 0})


def test_render_accepts_non_string_context_keys(executor):
    assert executor.render("{{ name }}", {1: "one", "name": "web"}) == b"web"
