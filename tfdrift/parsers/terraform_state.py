"""
Terraform state decoder.

Only the fields needed to extract IAM grants are read. Everything else in the
document is ignored, so newer state schema versions keep decoding.
"""
import json
import logging
from typing import IO, Any, Dict, List, Optional, Tuple

from tfdrift.errors import DecodeError
from tfdrift.models.state import StateInstance, StateResource, TerraformState

log = logging.getLogger(__name__)

# Default max size for a terraform state file is 512 MiB.
DEFAULT_STATE_SIZE_LIMIT = 512 * 1024 * 1024

_STRING_FIELDS = ("id", "member", "folder", "project", "role")


def _string(attrs: Dict[str, Any], key: str, where: str) -> Optional[str]:
    val = attrs.get(key)
    if val is None:
        return None
    if not isinstance(val, str):
        raise DecodeError(f"{where}.{key}: expected string, got {type(val).__name__}")
    return val


def _string_list(attrs: Dict[str, Any], key: str, where: str) -> Tuple[str, ...]:
    val = attrs.get(key)
    if val is None:
        return ()
    if not isinstance(val, list):
        raise DecodeError(f"{where}.{key}: expected array, got {type(val).__name__}")
    for i, item in enumerate(val):
        if not isinstance(item, str):
            raise DecodeError(f"{where}.{key}[{i}]: expected string, got {type(item).__name__}")
    return tuple(val)


def _decode_instance(raw: Any, where: str) -> StateInstance:
    if not isinstance(raw, dict):
        raise DecodeError(f"{where}: expected object, got {type(raw).__name__}")
    # Real state files nest values under "attributes"; accept the flat form too.
    attrs = raw.get("attributes")
    if attrs is None:
        attrs = raw
    elif not isinstance(attrs, dict):
        raise DecodeError(f"{where}.attributes: expected object, got {type(attrs).__name__}")
    where = f"{where}.attributes" if attrs is not raw else where

    values = {key: _string(attrs, key, where) for key in _STRING_FIELDS}
    return StateInstance(members=_string_list(attrs, "members", where), **values)


def _decode_resource(raw: Any, where: str) -> StateResource:
    if not isinstance(raw, dict):
        raise DecodeError(f"{where}: expected object, got {type(raw).__name__}")
    rtype = _string(raw, "type", where) or ""
    name = _string(raw, "name", where) or ""
    raw_instances = raw.get("instances")
    if raw_instances is None:
        raw_instances = []
    if not isinstance(raw_instances, list):
        raise DecodeError(f"{where}.instances: expected array, got {type(raw_instances).__name__}")
    instances = tuple(
        _decode_instance(inst, f"{where}.instances[{i}]")
        for i, inst in enumerate(raw_instances)
    )
    return StateResource(type=rtype, name=name, instances=instances)


def parse_state(data: Any) -> TerraformState:
    """Build a TerraformState from an already JSON-decoded document."""
    if not isinstance(data, dict):
        raise DecodeError(f"top level: expected object, got {type(data).__name__}")

    raw_resources = data.get("resources")
    if raw_resources is None:
        raw_resources = []
    if not isinstance(raw_resources, list):
        raise DecodeError(f"resources: expected array, got {type(raw_resources).__name__}")

    resources: List[StateResource] = [
        _decode_resource(r, f"resources[{i}]") for i, r in enumerate(raw_resources)
    ]

    version = data.get("version")
    tf_version = data.get("terraform_version")
    return TerraformState(
        resources=tuple(resources),
        version=version if isinstance(version, int) and not isinstance(version, bool) else None,
        terraform_version=tf_version if isinstance(tf_version, str) else None,
    )


def decode_bytes(data: bytes, max_bytes: int = DEFAULT_STATE_SIZE_LIMIT) -> TerraformState:
    if len(data) > max_bytes:
        data = data[:max_bytes]
    try:
        doc = json.loads(data)
    except (ValueError, RecursionError) as exc:
        # UnicodeDecodeError and JSONDecodeError are both ValueErrors.
        raise DecodeError(str(exc)) from exc
    return parse_state(doc)


def _read_limited(stream: IO[bytes], limit: int) -> bytes:
    # Raw streams may return short reads before EOF.
    chunks: List[bytes] = []
    remaining = limit
    while remaining > 0:
        chunk = stream.read(min(remaining, 1024 * 1024))
        if not chunk:
            break
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def decode(stream: IO[bytes], max_bytes: int = DEFAULT_STATE_SIZE_LIMIT) -> TerraformState:
    """
    Read at most max_bytes from stream and decode it as Terraform state.

    Anything past the limit is never read. If the cut leaves invalid JSON the
    result is a DecodeError; the stream itself is left for the caller to close.
    """
    if max_bytes <= 0:
        raise ValueError(f"max_bytes must be positive, got {max_bytes}")
    state = decode_bytes(_read_limited(stream, max_bytes), max_bytes)
    log.debug(
        "decoded state (version=%s, terraform %s) with %d resources",
        state.version, state.terraform_version, len(state.resources),
    )
    return state
