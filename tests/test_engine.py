"""
End-to-end tests for the provisioning engine.

Each test runs against both the in-memory and the SQLite store.
"""

import asyncio
import re

import pytest

from modules.provisioning.core.exceptions import (
    RenderException,
    RenderedInstanceNotFoundException,
    TemplateNotFoundException,
    TemplateValidationException,
    ValidationException,
)
from modules.provisioning.core.interfaces import (
    DynamicFieldSpec,
    GeneratorKind,
    HashingAlgorithm,
    TemplateConfiguration,
)
from modules.provisioning.engine import ProvisioningEngine
from shared.utils.logger import setup_logger

logger = setup_logger(__name__)

MAC_TEMPLATE = b"mac={{ mac_address }}, token={{ token }}"
MAC_CONFIG = {
    "id_field": "mac_address",
    "dynamic_fields": [{"field_name": "token", "type": "alphanumeric", "length": 8}],
    "hashing_algorithm": "none",
}
OUTPUT_PATTERN = re.compile(r"^mac=(?P<mac>[^,]+), token=(?P<token>[A-Za-z0-9]{8})$")


async def _mac_template(engine):
    await engine.upload_template("mac", MAC_TEMPLATE)
    await engine.set_configuration("mac", dict(MAC_CONFIG))


@pytest.mark.asyncio
async def test_mac_token_scenario(engine):
    await _mac_template(engine)

    first = await engine.render_template("mac", {"mac_address": "AA:BB:CC"})
    match = OUTPUT_PATTERN.match(first.text)
    assert match is not None
    assert match.group("mac") == "AA:BB:CC"
    logger.info(f"Rendered: {first.text}")

    again = await engine.render_template("mac", {"mac_address": "AA:BB:CC"})
    assert again.text == first.text
    assert again.cached is True

    other = await engine.render_template("mac", {"mac_address": "DD:EE:FF"})
    other_match = OUTPUT_PATTERN.match(other.text)
    assert other_match is not None
    assert other_match.group("token") != match.group("token")


@pytest.mark.asyncio
async def test_concurrent_renders_generate_once(engine):
    await _mac_template(engine)

    results = await asyncio.gather(*[
        engine.render_template("mac", {"mac_address": "AA:BB:CC"})
        for _ in range(10)
    ])

    assert len({r.output for r in results}) == 1
    assert engine.get_stats()["generations"] == 1
    assert len(await engine.list_rendered_instances("mac")) == 1


@pytest.mark.asyncio
async def test_cached_output_survives_configuration_change(engine):
    await _mac_template(engine)
    first = await engine.render_template("mac", {"mac_address": "AA:BB:CC"})

    await engine.set_configuration("mac", {
        "id_field": "mac_address",
        "dynamic_fields": [{"field_name": "token", "type": "alphanumeric", "length": 20}],
    })

    again = await engine.render_template("mac", {"mac_address": "AA:BB:CC"})
    fresh = await engine.render_template("mac", {"mac_address": "DD:EE:FF"})

    assert again.text == first.text
    assert len(fresh.text.split("token=")[1]) == 20


@pytest.mark.asyncio
async def test_missing_id_field_skips_cache(engine):
    await _mac_template(engine)

    first = await engine.render_template("mac", {"mac_address_typo": "x", "mac_address": None})
    assert first.cached is False
    assert await engine.list_rendered_instances("mac") == []


@pytest.mark.asyncio
async def test_template_without_configuration_never_caches(engine):
    await engine.upload_template("plain", b"{{ greeting }}")

    result = await engine.render_template("plain", {"greeting": "hi"})

    assert result.text == "hi"
    assert result.cached is False
    assert await engine.list_rendered_instances("plain") == []


@pytest.mark.asyncio
async def test_uncached_renders_generate_independently(engine):
    await engine.upload_template("t", b"{{ token }}")
    await engine.set_configuration("t", dict(MAC_CONFIG))

    first = await engine.render_template("t", {})
    second = await engine.render_template("t", {})

    assert first.text != second.text
    assert first.disclosed_values["token"] == first.text


@pytest.mark.asyncio
async def test_hashed_values_disclosed_once(engine):
    await engine.upload_template("shadow", b"root:{{ password }}")
    await engine.set_configuration("shadow", {
        "id_field": "host",
        "dynamic_fields": [{"field_name": "password", "type": "passphrase", "word_count": 3}],
        "hashing_algorithm": "yescrypt",
    })

    first = await engine.render_template("shadow", {"host": "node1"})
    plaintext = first.disclosed_values["password"]
    instance = await engine.get_rendered_instance("shadow", "node1")

    assert len(plaintext.split("-")) == 3
    assert instance.generated_fields["password"].startswith("$y$")
    assert instance.generated_fields["password"] != plaintext
    assert plaintext not in first.text

    second = await engine.render_template("shadow", {"host": "node1"})
    assert second.disclosed_values == {}
    assert second.output == first.output


@pytest.mark.asyncio
async def test_no_hashing_stores_plaintext(engine):
    await _mac_template(engine)

    result = await engine.render_template("mac", {"mac_address": "AA"})
    instance = await engine.get_rendered_instance("mac", "AA")

    assert instance.generated_fields["token"] == result.disclosed_values["token"]


@pytest.mark.asyncio
async def test_default_values_and_overrides(engine):
    await engine.upload_template("net", b"{{ hostname }}.{{ domain }}")
    values = engine.parse_default_values("domain: lab.example.com\nhostname: default\n")
    await engine.set_default_values("net", values)

    result = await engine.render_template("net", {"hostname": "node7"})

    assert result.text == "node7.lab.example.com"


@pytest.mark.asyncio
async def test_set_configuration_keeps_stored_defaults(engine):
    await engine.upload_template("t", b"{{ a }}")
    await engine.set_default_values("t", {"a": 1})

    await engine.set_configuration("t", dict(MAC_CONFIG))
    configuration = await engine.get_configuration("t")
    assert configuration.default_values == {"a": 1}

    await engine.set_configuration("t", {**MAC_CONFIG, "default_values": {"a": 2}})
    configuration = await engine.get_configuration("t")
    assert configuration.default_values == {"a": 2}


@pytest.mark.asyncio
async def test_reupload_keeps_configuration(engine):
    await _mac_template(engine)

    await engine.upload_template("mac", b"v2 {{ mac_address }} {{ token }}")

    configuration = await engine.get_configuration("mac")
    assert configuration.id_field == "mac_address"
    assert configuration.hashing_algorithm is HashingAlgorithm.NONE


@pytest.mark.asyncio
async def test_delete_cascades(engine):
    await _mac_template(engine)
    await engine.render_template("mac", {"mac_address": "AA"})

    await engine.delete_template("mac")

    with pytest.raises(TemplateNotFoundException):
        await engine.render_template("mac", {"mac_address": "AA"})
    with pytest.raises(TemplateNotFoundException):
        await engine.list_rendered_instances("mac")

    await engine.upload_template("mac", MAC_TEMPLATE)
    assert await engine.list_rendered_instances("mac") == []
    assert (await engine.get_configuration("mac")).id_field == ""


@pytest.mark.asyncio
async def test_get_rendered_instance_missing(engine):
    await _mac_template(engine)

    with pytest.raises(RenderedInstanceNotFoundException):
        await engine.get_rendered_instance("mac", "nobody")
    with pytest.raises(TemplateNotFoundException):
        await engine.get_rendered_instance("ghost", "nobody")


@pytest.mark.asyncio
async def test_upload_rejects_bad_templates(engine):
    with pytest.raises(TemplateValidationException):
        await engine.upload_template("bad", b"{% if %}")
    with pytest.raises(TemplateValidationException):
        await engine.upload_template("bad", b"\xff\xfe\x00")
    with pytest.raises(ValidationException):
        await engine.upload_template("", b"ok")
    with pytest.raises(TemplateNotFoundException):
        await engine.get_configuration("bad")


@pytest.mark.asyncio
async def test_render_failure_caches_nothing(engine):
    await engine.upload_template("t", b"{{ token }} {{ required }}")
    await engine.set_configuration("t", {**MAC_CONFIG, "id_field": "host"})

    with pytest.raises(RenderException):
        await engine.render_template("t", {"host": "h1"})
    assert await engine.list_rendered_instances("t") == []

    result = await engine.render_template("t", {"host": "h1", "required": "yes"})
    assert result.text.endswith(" yes")


@pytest.mark.asyncio
async def test_empty_template_cannot_render(engine):
    await engine.upload_template("empty", b"")

    with pytest.raises(RenderException):
        await engine.render_template("empty", {})


@pytest.mark.asyncio
@pytest.mark.parametrize("configuration", [
    {"id_field": "", "dynamic_fields": []},
    {"dynamic_fields": []},
    {"id_field": "mac", "hashing_algorithm": "md5"},
    {"id_field": "mac", "dynamic_fields": [{"field_name": "x", "type": "uuid", "length": 8}]},
    {"id_field": "mac", "dynamic_fields": [{"field_name": "x", "type": "alphanumeric", "length": 0}]},
    {"id_field": "mac", "dynamic_fields": [{"field_name": "x", "type": "alphanumeric"}]},
    {"id_field": "mac", "dynamic_fields": [{"type": "alphanumeric", "length": 4}]},
    {"id_field": "mac", "dynamic_fields": [
        {"field_name": "x", "type": "alphanumeric", "length": 4},
        {"field_name": "x", "type": "passphrase", "length": 2},
    ]},
    {"id_field": "mac", "default_values": ["not", "a", "mapping"]},
])
async def test_invalid_configurations_rejected(engine, configuration):
    await engine.upload_template("t", b"x")

    with pytest.raises(ValidationException):
        await engine.set_configuration("t", configuration)

    assert (await engine.get_configuration("t")).id_field == ""


@pytest.mark.asyncio
async def test_set_configuration_missing_template(engine):
    with pytest.raises(TemplateNotFoundException):
        await engine.set_configuration("ghost", dict(MAC_CONFIG))


@pytest.mark.parametrize("text", ["- a\n- b\n", "just a string", "42"])
def test_parse_default_values_rejects_non_mappings(text):
    with pytest.raises(ValidationException):
        ProvisioningEngine.parse_default_values(text)


def test_parse_default_values_accepts_json_and_yaml():
    assert ProvisioningEngine.parse_default_values('{"a": 1, "b": [1, 2]}') == {"a": 1, "b": [1, 2]}
    assert ProvisioningEngine.parse_default_values(b"a: 1\nb:\n  c: d\n") == {"a": 1, "b": {"c": "d"}}
    assert ProvisioningEngine.parse_default_values("") == {}


def test_parse_default_values_invalid_yaml():
    with pytest.raises(ValidationException):
        ProvisioningEngine.parse_default_values("a: [1, 2\n")


@pytest.mark.asyncio
async def test_health_check(engine):
    health = await engine.health_check()

    assert health["status"] == "healthy"
    assert health["database"] is True
    assert "hits" in health["cache"]


@pytest.mark.asyncio
async def test_yaml_dates_in_default_values(engine):
    await engine.upload_template("lease", b"{{ host }} until {{ expires }}")
    values = engine.parse_default_values("expires: 2025-01-01\n1: numeric key\nhost: node1\n")

    await engine.set_default_values("lease", values)

    configuration = await engine.get_configuration("lease")
    assert configuration.default_values == {"expires": "2025-01-01", "1": "numeric key", "host": "node1"}
    result = await engine.render_template("lease", {})
    assert result.text == "node1 until 2025-01-01"


@pytest.mark.asyncio
async def test_default_values_without_json_form_rejected(engine):
    await engine.upload_template("t", b"x")

    with pytest.raises(ValidationException):
        await engine.set_default_values("t", {"bad": object()})


@pytest.mark.asyncio
@pytest.mark.parametrize("field", [
    DynamicFieldSpec("token", GeneratorKind.ALPHANUMERIC, 8, hashing_algorithm="md5"),
    DynamicFieldSpec("token", "uuid", 8),
    DynamicFieldSpec("token", GeneratorKind.ALPHANUMERIC, "8"),
    DynamicFieldSpec("token", GeneratorKind.ALPHANUMERIC, True),
    DynamicFieldSpec("", GeneratorKind.ALPHANUMERIC, 8),
])
async def test_invalid_configuration_objects_rejected(engine, field):
    await engine.upload_template("t", b"{{ token }}")

    with pytest.raises(ValidationException):
        await engine.set_configuration("t", TemplateConfiguration(id_field="mac", dynamic_fields=[field]))

    assert (await engine.get_configuration("t")).id_field == ""


@pytest.mark.asyncio
async def test_configuration_object_controls_default_values(engine):
    await engine.upload_template("t", b"x")
    await engine.set_default_values("t", {"a": 1})

    await engine.set_configuration("t", TemplateConfiguration(id_field="mac"), keep_default_values=True)
    assert (await engine.get_configuration("t")).default_values == {"a": 1}

    await engine.set_configuration("t", TemplateConfiguration(id_field="mac", default_values={}))
    assert (await engine.get_configuration("t")).default_values == {}
