"""
HTTP API tests.

Drive the FastAPI application in-process through httpx.
"""

import json

import httpx
import pytest
import pytest_asyncio

from modules.provisioning.engine import ProvisioningEngine
from modules.provisioning.storage import InMemoryTemplateStore
from src.api.main import create_application

PREFIX = "/api/v1"
MAC_CONFIG = {
    "id_field": "mac_address",
    "dynamic_fields": [{"field_name": "token", "type": "alphanumeric", "length": 8}],
    "hashing_algorithm": "sha512",
}


@pytest_asyncio.fixture
async def client(provisioning_config):
    engine = ProvisioningEngine(InMemoryTemplateStore(), config=provisioning_config)
    app = create_application(engine=engine)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


async def _upload(client, name: str, source: bytes):
    return await client.post(
        f"{PREFIX}/template/{name}",
        files={"file": (f"{name}.j2", source, "text/plain")},
    )


@pytest.mark.asyncio
async def test_upload_and_render(client):
    response = await _upload(client, "hello", b"Hello {{ who }}!")
    assert response.status_code == 201
    assert response.json()["name"] == "hello"
    assert response.json()["size"] == len("Hello {{ who }}!")

    response = await client.get(f"{PREFIX}/template/hello", params={"who": "world"})
    assert response.status_code == 200
    assert response.text == "Hello world!"
    assert response.headers["content-type"].startswith("text/plain")
    assert response.headers["x-cache"] == "MISS"


@pytest.mark.asyncio
async def test_render_discloses_generated_values_once(client):
    await _upload(client, "mac", b"mac={{ mac_address }}, token={{ token }}")
    response = await client.put(f"{PREFIX}/config/mac", json=MAC_CONFIG)
    assert response.status_code == 200

    first = await client.get(f"{PREFIX}/template/mac", params={"mac_address": "AA:BB:CC"})
    second = await client.get(f"{PREFIX}/template/mac", params={"mac_address": "AA:BB:CC"})

    assert first.status_code == 200
    disclosed = json.loads(first.headers["x-generated-values"])
    assert len(disclosed["token"]) == 8
    assert disclosed["token"] not in first.text
    assert "token=$6$" in first.text

    assert second.text == first.text
    assert second.headers["x-cache"] == "HIT"
    assert "x-generated-values" not in second.headers


@pytest.mark.asyncio
async def test_configuration_roundtrip(client):
    await _upload(client, "mac", b"{{ token }}")

    response = await client.get(f"{PREFIX}/config/mac")
    assert response.status_code == 200
    assert response.json()["configuration"]["id_field"] == ""

    await client.put(f"{PREFIX}/config/mac", json=MAC_CONFIG)

    body = (await client.get(f"{PREFIX}/config/mac")).json()
    assert body["template_name"] == "mac"
    assert body["configuration"]["id_field"] == "mac_address"
    assert body["configuration"]["hashing_algorithm"] == "sha512"
    assert body["configuration"]["dynamic_fields"] == [
        {"field_name": "token", "type": "alphanumeric", "length": 8, "hashing_algorithm": None}
    ]


@pytest.mark.asyncio
async def test_invalid_configuration_is_400(client):
    await _upload(client, "mac", b"{{ token }}")

    response = await client.put(f"{PREFIX}/config/mac", json={**MAC_CONFIG, "hashing_algorithm": "md5"})

    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "error"
    assert body["error"] == "validation_error"
    assert "md5" in body["message"]


@pytest.mark.asyncio
async def test_non_object_configuration_is_400(client):
    await _upload(client, "mac", b"{{ token }}")

    response = await client.put(f"{PREFIX}/config/mac", json=["nope"])

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_default_values_yaml_body(client):
    await _upload(client, "net", b"{{ hostname }}.{{ domain }}")

    response = await client.put(
        f"{PREFIX}/template/net/values",
        content=b"domain: lab.example.com\nhostname: default\n",
        headers={"content-type": "application/yaml"},
    )
    assert response.status_code == 200

    response = await client.get(f"{PREFIX}/template/net", params={"hostname": "node1"})
    assert response.text == "node1.lab.example.com"


@pytest.mark.asyncio
async def test_default_values_must_be_mapping(client):
    await _upload(client, "net", b"x")

    response = await client.put(f"{PREFIX}/template/net/values", content=b"- a\n- b\n")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_template_is_404(client):
    for response in [
        await client.get(f"{PREFIX}/template/ghost"),
        await client.delete(f"{PREFIX}/template/ghost"),
        await client.get(f"{PREFIX}/config/ghost"),
        await client.put(f"{PREFIX}/config/ghost", json=MAC_CONFIG),
        await client.put(f"{PREFIX}/template/ghost/values", content=b"a: 1"),
        await client.get(f"{PREFIX}/rendered/ghost"),
    ]:
        assert response.status_code == 404
        assert response.json()["error"] == "template_not_found"


@pytest.mark.asyncio
async def test_invalid_template_upload_is_400(client):
    response = await _upload(client, "bad", b"{% for %}")

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_template"


@pytest.mark.asyncio
async def test_render_error_is_422(client):
    await _upload(client, "strict", b"{{ missing }}")

    response = await client.get(f"{PREFIX}/template/strict")

    assert response.status_code == 422
    assert response.json()["error"] == "render_error"


@pytest.mark.asyncio
async def test_rendered_instances_listing_and_lookup(client):
    await _upload(client, "mac", b"{{ mac_address }} {{ token }}")
    await client.put(f"{PREFIX}/config/mac", json=MAC_CONFIG)
    await client.get(f"{PREFIX}/template/mac", params={"mac_address": "00:11:22:33:44:55"})
    await client.get(f"{PREFIX}/template/mac", params={"mac_address": "66:77:88:99:aa:bb"})

    listing = (await client.get(f"{PREFIX}/rendered/mac")).json()
    assert listing["total"] == 2
    assert {i["identity_value"] for i in listing["instances"]} == {
        "00:11:22:33:44:55", "66:77:88:99:aa:bb"
    }

    response = await client.get(f"{PREFIX}/rendered/mac/00:11:22:33:44:55")
    assert response.status_code == 200
    body = response.json()
    assert body["identity_value"] == "00:11:22:33:44:55"
    assert body["generated_fields"]["token"].startswith("$6$")
    assert body["rendered_output"].startswith("00:11:22:33:44:55 $6$")

    response = await client.get(f"{PREFIX}/rendered/mac/nobody")
    assert response.status_code == 404
    assert response.json()["error"] == "rendered_instance_not_found"


@pytest.mark.asyncio
async def test_delete_template(client):
    await _upload(client, "gone", b"x")

    response = await client.delete(f"{PREFIX}/template/gone")
    assert response.status_code == 200
    assert response.json()["status"] == "success"

    response = await client.get(f"{PREFIX}/template/gone")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] is True
    assert body["store_type"] == "InMemoryTemplateStore"
    assert "generations" in body["cache"]
