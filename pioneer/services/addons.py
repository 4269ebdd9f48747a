"""Add-on lifecycle interfaces.

The add-on manager belongs to the host browser; studies receive an
implementation and only ever look up and uninstall add-ons through it.
"""

from typing import Protocol


class Addon(Protocol):
    id: str
    is_active: bool

    async def uninstall(self) -> None: ...


class AddonManager(Protocol):
    async def get_addon_by_id(self, addon_id: str) -> Addon | None: ...
