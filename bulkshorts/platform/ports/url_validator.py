from typing import Protocol, runtime_checkable

@runtime_checkable
class UrlValidatorPort(Protocol):
    """Given candidate URLs, return the ones judged valid (order preserved)."""
    async def validate(self, urls: list[str]) -> list[str]: ...
