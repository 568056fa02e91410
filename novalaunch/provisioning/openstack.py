"""OpenStack provider: Keystone auth plus the Nova, Glance and Neutron calls
needed to build a single server, via the OpenStack REST APIs."""

import json
import logging

import httpx

from novalaunch.provisioning.errors import EndpointNotFoundError
from novalaunch.provisioning.interfaces import CatalogSource, ComputeAPI
from novalaunch.provisioning.types import InstanceHandle, InstanceRequest, RawRecord, TypedResource

logger = logging.getLogger(__name__)

DEFAULT_DOMAIN = "Default"
DEFAULT_INTERFACE = "public"
REQUEST_TIMEOUT = 60

DRY_RUN_INSTANCE_ID = "dry-run-id"


# ── Helpers ───────────────────────────────────────────────────────


def _auth_payload(username, password, project, domain):
    """Keystone v3 password auth body scoped to *project*."""
    return {
        "auth": {
            "identity": {
                "methods": ["password"],
                "password": {
                    "user": {"name": username, "domain": {"name": domain}, "password": password},
                },
            },
            "scope": {"project": {"name": project, "domain": {"name": domain}}},
        }
    }


def _select_endpoint(catalog, service_type, region=None, interface=DEFAULT_INTERFACE):
    """Pick the endpoint URL for *service_type* from a Keystone v3 catalog.

    Returns None if the service has no endpoint for the interface/region.
    """
    for service in catalog:
        if service.get("type") != service_type:
            continue
        for endpoint in service.get("endpoints", []):
            if endpoint.get("interface") != interface:
                continue
            if region and endpoint.get("region", endpoint.get("region_id")) != region:
                continue
            return endpoint["url"].rstrip("/")
    return None


def _handle_from_server(server):
    return InstanceHandle(
        id=server["id"],
        state=server.get("status", ""),
        addresses=server.get("addresses") or {},
    )


def public_address(handle):
    """Best SSH host for a server: a floating address, else the first IPv4 one.

    Returns None while the server has no addresses yet.
    """
    candidates = [addr for addrs in handle.addresses.values() for addr in addrs]
    for addr in candidates:
        if addr.get("OS-EXT-IPS:type") == "floating":
            return addr.get("addr")
    for addr in candidates:
        if addr.get("version", 4) == 4:
            return addr.get("addr")
    return None


# ── Client ────────────────────────────────────────────────────────


class OpenStackClient(CatalogSource, ComputeAPI):
    """Catalog and compute calls against an OpenStack cloud.

    Authenticates lazily on the first request. With ``dry_run`` every
    request is logged instead of sent and nothing is authenticated.
    """

    def __init__(self, auth_url, username, password, project, domain=DEFAULT_DOMAIN, region=None, dry_run=False, transport=None):
        self.auth_url = auth_url.rstrip("/")
        self.username = username
        self.password = password
        self.project = project
        self.domain = domain or DEFAULT_DOMAIN
        self.region = region
        self.dry_run = dry_run
        self._transport = transport
        self._token = None
        self._catalog = None

    def _client(self):
        return httpx.AsyncClient(transport=self._transport, timeout=REQUEST_TIMEOUT)

    async def authenticate(self):
        """Obtain a project-scoped token and the service catalog."""
        url = f"{self.auth_url}/auth/tokens"
        payload = _auth_payload(self.username, self.password, self.project, self.domain)
        logger.debug(f"Authenticating as '{self.username}' on project '{self.project}'")
        async with self._client() as client:
            resp = await client.post(url, json=payload)
        resp.raise_for_status()
        self._token = resp.headers["X-Subject-Token"]
        self._catalog = resp.json()["token"].get("catalog", [])

    async def endpoint(self, service_type):
        if self._catalog is None:
            await self.authenticate()
        url = _select_endpoint(self._catalog, service_type, self.region)
        if url is None:
            region = f" in region '{self.region}'" if self.region else ""
            raise EndpointNotFoundError(
                service_type,
                f"No {DEFAULT_INTERFACE} '{service_type}' endpoint in the service catalog{region}",
            )
        return url

    async def _api_request(self, service_type, method, path, data=None):
        """Make an authenticated request to *service_type*.

        Returns:
            Parsed JSON response, or ``None`` in dry-run mode.
        """
        if self.dry_run:
            logger.info(f"[dry-run] {method} {service_type}:{path}")
            if data is not None:
                logger.info(f"[dry-run] payload: {json.dumps(data, indent=2)}")
            return None

        url = f"{await self.endpoint(service_type)}{path}"
        headers = {"X-Auth-Token": self._token, "Accept": "application/json"}
        async with self._client() as client:
            resp = await client.request(method, url, json=data, headers=headers)
        resp.raise_for_status()
        return resp.json()

    # ── CatalogSource ─────────────────────────────────────────────

    async def list_flavors(self):
        result = await self._api_request("compute", "GET", "/flavors/detail")
        if result is None:
            return []
        return [TypedResource(id=f["id"], name=f["name"]) for f in result.get("flavors", [])]

    async def list_images(self):
        """List images from Glance, following ``next`` pagination links."""
        images = []
        path = "/v2/images"
        while path:
            result = await self._api_request("image", "GET", path)
            if result is None:
                break
            images.extend(TypedResource(id=i["id"], name=i.get("name") or "") for i in result.get("images", []))
            path = result.get("next")
        return images

    async def list_networks(self):
        result = await self._api_request("network", "GET", "/v2.0/networks")
        if result is None:
            return []
        return [RawRecord(dict(n)) for n in result.get("networks", [])]

    # ── ComputeAPI ────────────────────────────────────────────────

    async def create_instance(self, request: InstanceRequest):
        result = await self._api_request("compute", "POST", "/servers", request.to_payload())
        if result is None:
            return InstanceHandle(id=DRY_RUN_INSTANCE_ID, state="BUILD")
        handle = _handle_from_server(result["server"])
        logger.debug(f"Server create accepted (id={handle.id})")
        return handle

    async def get_instance(self, instance_id):
        result = await self._api_request("compute", "GET", f"/servers/{instance_id}")
        if result is None:
            return InstanceHandle(id=instance_id, state="ACTIVE")
        return _handle_from_server(result["server"])
