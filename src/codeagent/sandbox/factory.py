"""Sandbox backend construction helpers."""

from codeagent.config import Settings
from codeagent.sandbox.base import SandboxBackend
from codeagent.sandbox.local import LocalBackend

_ALLOWED_BACKENDS = {"e2b", "local"}


def resolve_backend_name(settings: Settings) -> str:
    value = settings.sandbox_backend.strip().lower()
    if value in _ALLOWED_BACKENDS:
        return value
    return "e2b"


def build_sandbox_backend(settings: Settings) -> SandboxBackend:
    if resolve_backend_name(settings) == "local":
        return LocalBackend(settings.local_sandbox_root)
    from codeagent.sandbox.e2b import E2BBackend

    return E2BBackend(api_key=settings.e2b_api_key)
