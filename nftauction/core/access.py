"""
Role-based access control for marketplace contracts.

Roles are plain capability names checked against an explicit caller
address; there is no implicit sender.
"""

from typing import Dict, Set

from nftauction.core.chain import Contract
from nftauction.core.errors import InvalidParameter, Unauthorized
from nftauction.utils.validation import NULL_ADDRESS

# Fee/oracle configuration, fee withdrawal, role management
ADMIN_ROLE = "ADMIN_ROLE"

# Collectible minting
OPERATOR_ROLE = "OPERATOR_ROLE"


class AccessControlled(Contract):
    """Contract whose privileged operations are gated by roles."""

    _state_fields = ("_roles",)

    def __init__(self, chain, deployer: bytes, admin: bytes):
        super().__init__(chain, deployer)
        if admin == NULL_ADDRESS:
            raise InvalidParameter("admin must not be the null address")
        self._roles: Dict[str, Set[bytes]] = {ADMIN_ROLE: {admin}}

    def has_role(self, role: str, account: bytes) -> bool:
        return account in self._roles.get(role, set())

    def grant_role(self, caller: bytes, role: str, account: bytes) -> None:
        """Grant a role. Admin only."""
        self._check_role(ADMIN_ROLE, caller)
        if account == NULL_ADDRESS:
            raise InvalidParameter("account must not be the null address")
        self._touch()
        self._roles.setdefault(role, set()).add(account)
        self.emit("RoleGranted", role=role, account=account, sender=caller)

    def revoke_role(self, caller: bytes, role: str, account: bytes) -> None:
        """Revoke a role. Admin only."""
        self._check_role(ADMIN_ROLE, caller)
        self._touch()
        self._roles.get(role, set()).discard(account)
        self.emit("RoleRevoked", role=role, account=account, sender=caller)

    def _check_role(self, role: str, caller: bytes) -> None:
        if not self.has_role(role, caller):
            raise Unauthorized(caller, role)
