"""Reading the current storage sources out of the target Go code base."""

import os

from core.orchestrator import STORAGE_IMPL_PATH, STORAGE_INTERFACE_PATH
from core.state import GenerationRequest


def resolve_path(code_base, relative_path):
    """Resolve a path inside code_base, refusing anything that escapes it."""
    if not code_base:
        raise ValueError("CODE_BASE is not set; point it at the Go project checkout")
    root = os.path.realpath(code_base)
    resolved = os.path.realpath(os.path.join(root, relative_path))
    if not resolved.startswith(root + os.sep):
        raise ValueError(f"Path escapes code base: {relative_path}")
    return resolved


def read_source(code_base, relative_path):
    with open(resolve_path(code_base, relative_path)) as f:
        return f.read()


def read_storage_interface(code_base):
    return read_source(code_base, STORAGE_INTERFACE_PATH)


def read_storage_impl(code_base):
    return read_source(code_base, STORAGE_IMPL_PATH)


def build_request(code_base, sql_schema, state_machine):
    """Build a GenerationRequest carrying the current storage files."""
    return GenerationRequest(
        sql_schema=sql_schema,
        state_machine=state_machine,
        current_storage_interface=read_storage_interface(code_base),
        current_storage_impl=read_storage_impl(code_base),
    )
