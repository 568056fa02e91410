"""Build the server creation request from resolved resources."""

import base64

from novalaunch.provisioning.types import InstanceRequest, RawRecord, TypedResource


def encode_user_data(user_data) -> str:
    """Base64-encode user data (``str`` is taken as UTF-8) for the wire."""
    if not user_data:
        return ""
    if isinstance(user_data, str):
        user_data = user_data.encode("utf-8")
    return base64.b64encode(user_data).decode("ascii")


def build_instance_request(
    flavor: TypedResource,
    image: TypedResource,
    network: RawRecord,
    key_name=None,
    user_data=None,
    server_name=None,
    fallback_name="default",
) -> InstanceRequest:
    """Assemble an InstanceRequest.

    The server is named *server_name* when set, otherwise *fallback_name*
    (the logical machine name).
    """
    return InstanceRequest(
        flavor_ref=flavor.id,
        image_ref=image.id,
        name=server_name or fallback_name,
        key_name=key_name,
        user_data_encoded=encode_user_data(user_data),
        networks=({"uuid": network["id"]},),
    )
