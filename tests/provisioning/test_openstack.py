"""Unit tests for the OpenStack REST client.

Responses are shaped like real Keystone v3, Nova, Glance and Neutron
payloads, trimmed to the fields the client reads.
"""

import json

import httpx
import pytest

from novalaunch.provisioning.errors import EndpointNotFoundError, ProvisioningError
from novalaunch.provisioning.openstack import (
    OpenStackClient,
    _select_endpoint,
    public_address,
)
from novalaunch.provisioning.types import InstanceHandle, InstanceRequest, RawRecord, TypedResource

AUTH_URL = "https://keystone.test:5000/v3"
COMPUTE_URL = "https://nova.test:8774/v2.1/proj-1"
IMAGE_URL = "https://glance.test:9292"
NETWORK_URL = "https://neutron.test:9696"

CATALOG = [
    {
        "type": "compute",
        "name": "nova",
        "endpoints": [
            {"interface": "internal", "region": "RegionOne", "url": "http://nova.internal:8774/v2.1/proj-1"},
            {"interface": "public", "region": "RegionTwo", "url": "https://nova.two:8774/v2.1/proj-1"},
            {"interface": "public", "region": "RegionOne", "url": COMPUTE_URL},
        ],
    },
    {"type": "image", "name": "glance", "endpoints": [{"interface": "public", "region": "RegionOne", "url": IMAGE_URL + "/"}]},
    {"type": "network", "name": "neutron", "endpoints": [{"interface": "public", "region": "RegionOne", "url": NETWORK_URL}]},
]

SERVER_BUILD = {
    "server": {
        "id": "9168b536-cd40-4630-b43f-b259807c6e87",
        "status": "BUILD",
        "addresses": {},
    }
}

SERVER_ACTIVE = {
    "server": {
        "id": "9168b536-cd40-4630-b43f-b259807c6e87",
        "status": "ACTIVE",
        "addresses": {
            "private": [
                {"addr": "fd00::5", "version": 6, "OS-EXT-IPS:type": "fixed"},
                {"addr": "192.168.0.3", "version": 4, "OS-EXT-IPS:type": "fixed"},
                {"addr": "172.24.4.10", "version": 4, "OS-EXT-IPS:type": "floating"},
            ]
        },
    }
}


class FakeOpenStack:
    """Routes requests to canned responses and records what was sent."""

    def __init__(self):
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        url = str(request.url)
        if url == f"{AUTH_URL}/auth/tokens":
            return httpx.Response(201, headers={"X-Subject-Token": "tok-123"}, json={"token": {"catalog": CATALOG}})
        if request.headers.get("X-Auth-Token") != "tok-123":
            return httpx.Response(401, json={"error": "unauthorized"})
        if url == f"{COMPUTE_URL}/flavors/detail":
            return httpx.Response(200, json={"flavors": [{"id": "1", "name": "m1.tiny", "ram": 512}, {"id": "42", "name": "m1.small"}]})
        if url == f"{IMAGE_URL}/v2/images":
            return httpx.Response(200, json={"images": [{"id": "img-1", "name": "cirros"}], "next": "/v2/images?marker=img-1"})
        if url == f"{IMAGE_URL}/v2/images?marker=img-1":
            return httpx.Response(200, json={"images": [{"id": "img-2", "name": "ubuntu-22.04"}, {"id": "img-3", "name": None}]})
        if url == f"{NETWORK_URL}/v2.0/networks":
            return httpx.Response(200, json={"networks": [{"id": "net-1", "name": "public", "router:external": True}]})
        if url == f"{COMPUTE_URL}/servers" and request.method == "POST":
            return httpx.Response(202, json={"server": {"id": SERVER_BUILD["server"]["id"], "adminPass": "x"}})
        if url == f"{COMPUTE_URL}/servers/{SERVER_ACTIVE['server']['id']}":
            return httpx.Response(200, json=SERVER_ACTIVE)
        if url.startswith(f"{COMPUTE_URL}/servers/"):
            return httpx.Response(404, json={"itemNotFound": {"code": 404}})
        return httpx.Response(500)


@pytest.fixture
def fake_api():
    return FakeOpenStack()


@pytest.fixture
def client(fake_api):
    return OpenStackClient(
        AUTH_URL,
        "demo",
        "s3cret-password",
        "demo-project",
        region="RegionOne",
        transport=httpx.MockTransport(fake_api),
    )


# ── Authentication ───────────────────────────────────────────────


async def test_authenticates_once_with_password_scope(client, fake_api):
    await client.list_flavors()
    await client.list_networks()

    auth_requests = [r for r in fake_api.requests if r.url.path.endswith("/auth/tokens")]
    assert len(auth_requests) == 1
    body = json.loads(auth_requests[0].content)
    user = body["auth"]["identity"]["password"]["user"]
    assert user == {"name": "demo", "domain": {"name": "Default"}, "password": "s3cret-password"}
    assert body["auth"]["scope"]["project"] == {"name": "demo-project", "domain": {"name": "Default"}}


def test_select_endpoint_by_interface_and_region():
    assert _select_endpoint(CATALOG, "compute", "RegionOne") == COMPUTE_URL
    assert _select_endpoint(CATALOG, "compute", "RegionTwo") == "https://nova.two:8774/v2.1/proj-1"
    assert _select_endpoint(CATALOG, "compute") == "https://nova.two:8774/v2.1/proj-1"
    assert _select_endpoint(CATALOG, "image") == IMAGE_URL
    assert _select_endpoint(CATALOG, "volumev3") is None


async def test_missing_endpoint_raises(fake_api):
    client = OpenStackClient(AUTH_URL, "demo", "pw", "p", region="Nowhere", transport=httpx.MockTransport(fake_api))
    with pytest.raises(EndpointNotFoundError, match="No public 'compute' endpoint") as excinfo:
        await client.list_flavors()
    assert excinfo.value.service_type == "compute"
    assert isinstance(excinfo.value, ProvisioningError)


async def test_auth_failure_raises_http_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"error": {"code": 401}}))
    client = OpenStackClient(AUTH_URL, "demo", "wrong", "p", transport=transport)
    with pytest.raises(httpx.HTTPStatusError):
        await client.list_flavors()


# ── Catalogs ─────────────────────────────────────────────────────


async def test_list_flavors_returns_typed_resources(client):
    assert await client.list_flavors() == [TypedResource("1", "m1.tiny"), TypedResource("42", "m1.small")]


async def test_list_images_follows_pagination(client):
    images = await client.list_images()
    assert [i.id for i in images] == ["img-1", "img-2", "img-3"]
    assert images[2].name == ""


async def test_list_networks_returns_raw_records(client):
    (network,) = await client.list_networks()
    assert isinstance(network, RawRecord)
    assert network["id"] == "net-1"
    assert network.fields["router:external"] is True


# ── Servers ──────────────────────────────────────────────────────


async def test_create_instance_posts_payload(client, fake_api):
    request = InstanceRequest(
        flavor_ref="42",
        image_ref="img-2",
        name="web",
        key_name="demo-key",
        user_data_encoded="ZWNobyBoaQ==",
        networks=({"uuid": "net-1"},),
    )
    handle = await client.create_instance(request)

    assert handle.id == SERVER_BUILD["server"]["id"]
    post = next(r for r in fake_api.requests if r.method == "POST" and r.url.path.endswith("/servers"))
    assert json.loads(post.content) == request.to_payload()


async def test_get_instance_returns_state_and_addresses(client):
    handle = await client.get_instance(SERVER_ACTIVE["server"]["id"])
    assert handle.state == "ACTIVE"
    assert "private" in handle.addresses


async def test_get_missing_instance_raises(client):
    with pytest.raises(httpx.HTTPStatusError):
        await client.get_instance("missing")


# ── Dry run ──────────────────────────────────────────────────────


async def test_dry_run_sends_nothing(caplog):
    def _fail(request):
        raise AssertionError(f"unexpected request: {request.url}")

    client = OpenStackClient(AUTH_URL, "demo", "pw", "p", dry_run=True, transport=httpx.MockTransport(_fail))
    request = InstanceRequest("42", "img-1", "web", None, "", ({"uuid": "net-1"},))

    with caplog.at_level("INFO"):
        handle = await client.create_instance(request)
        flavors = await client.list_flavors()

    assert handle.id == "dry-run-id"
    assert flavors == []
    assert "[dry-run] POST compute:/servers" in caplog.text
    assert '"flavorRef": "42"' in caplog.text


# ── public_address ───────────────────────────────────────────────


def test_public_address_prefers_floating():
    handle = InstanceHandle(id="x", addresses=SERVER_ACTIVE["server"]["addresses"])
    assert public_address(handle) == "172.24.4.10"


def test_public_address_falls_back_to_first_ipv4():
    addresses = {"private": [{"addr": "fd00::5", "version": 6}, {"addr": "10.0.0.7", "version": 4}]}
    assert public_address(InstanceHandle(id="x", addresses=addresses)) == "10.0.0.7"


def test_public_address_none_without_addresses():
    assert public_address(InstanceHandle(id="x")) is None
