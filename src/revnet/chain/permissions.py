"""On-chain permission registry adapter.

Implements the PermissionRegistry interface against a deployed
permissions contract. The contract stores, per (operator, account,
project), a 256-bit word where bit N set means permission id N is held.
Writes replace the whole word, so grant and revoke read the current word
first and write the merged result.

Named PermissionIds are mapped to the contract's numeric ids here and
nowhere else.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from revnet.errors import CollaboratorRejection, ReasonCode
from revnet.models.permission import PermissionId

PERMISSION_CODES: dict[PermissionId, int] = {
    PermissionId.ROOT: 1,
    PermissionId.QUEUE_RULESETS: 2,
    PermissionId.DEPLOY_ERC20: 8,
    PermissionId.MINT_TOKENS: 10,
    PermissionId.SET_SPLIT_GROUPS: 18,
    PermissionId.ADJUST_721_TIERS: 21,
    PermissionId.SET_721_METADATA: 22,
    PermissionId.MINT_721: 23,
}
_CODE_TO_PERMISSION = {code: pid for pid, code in PERMISSION_CODES.items()}

PERMISSIONS_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "hasPermissions",
        "stateMutability": "view",
        "inputs": [
            {"name": "operator", "type": "address"},
            {"name": "account", "type": "address"},
            {"name": "projectId", "type": "uint256"},
            {"name": "permissionIds", "type": "uint256[]"},
            {"name": "includeRoot", "type": "bool"},
            {"name": "includeWildcardProjectId", "type": "bool"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "permissionsOf",
        "stateMutability": "view",
        "inputs": [
            {"name": "operator", "type": "address"},
            {"name": "account", "type": "address"},
            {"name": "projectId", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "setPermissionsFor",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "account", "type": "address"},
            {
                "name": "permissionsData",
                "type": "tuple",
                "components": [
                    {"name": "operator", "type": "address"},
                    {"name": "projectId", "type": "uint64"},
                    {"name": "permissionIds", "type": "uint8[]"},
                ],
            },
        ],
        "outputs": [],
    },
]


def permission_codes(permission_ids: Iterable[PermissionId]) -> list[int]:
    """Numeric ids, ascending."""
    return sorted(PERMISSION_CODES[PermissionId(p)] for p in permission_ids)


def pack_permissions(permission_ids: Iterable[PermissionId]) -> int:
    packed = 0
    for code in permission_codes(permission_ids):
        packed |= 1 << code
    return packed


def unpack_permissions(packed: int) -> frozenset[PermissionId]:
    """Decode a packed word. Bits with no named permission are ignored."""
    return frozenset(
        pid for code, pid in _CODE_TO_PERMISSION.items() if packed >> code & 1
    )


def set_bits(packed: int) -> list[int]:
    """Every numeric id set in a packed word, named or not, ascending."""
    return [code for code in range(packed.bit_length()) if packed >> code & 1]


class Web3PermissionRegistry:
    """PermissionRegistry backed by a deployed permissions contract.

    Read-only when constructed without a signing account.
    """

    def __init__(
        self,
        w3: Any,
        contract: Any,
        signer: Optional[Any] = None,
        chain_id: int = 11155111,
        receipt_timeout: int = 300,
    ) -> None:
        self._w3 = w3
        self._contract = contract
        self._signer = signer
        self._chain_id = chain_id
        self._receipt_timeout = receipt_timeout
        self.last_tx_hash: Optional[str] = None

    @classmethod
    def connect(
        cls,
        rpc_url: str,
        permissions_address: str,
        private_key: Optional[str] = None,
        chain_id: int = 11155111,
    ) -> Web3PermissionRegistry:
        from web3 import HTTPProvider, Web3
        from eth_account import Account

        w3 = Web3(HTTPProvider(rpc_url))
        contract = w3.eth.contract(
            address=Web3.to_checksum_address(permissions_address),
            abi=PERMISSIONS_ABI,
        )
        signer = Account.from_key(private_key) if private_key else None
        return cls(w3, contract, signer=signer, chain_id=chain_id)

    @property
    def signer_address(self) -> Optional[str]:
        return self._signer.address if self._signer is not None else None

    def has_permissions(
        self,
        operator: str,
        account: str,
        project_id: int,
        permission_ids: Iterable[PermissionId],
    ) -> bool:
        fn = self._contract.functions.hasPermissions(
            operator, account, project_id, permission_codes(permission_ids), True, True
        )
        return bool(self._call(fn))

    def permissions_of(self, operator: str, account: str, project_id: int) -> frozenset[PermissionId]:
        """Permissions held for exactly this project (wildcard not merged)."""
        return unpack_permissions(self._packed_of(operator, account, project_id))

    def _packed_of(self, operator: str, account: str, project_id: int) -> int:
        fn = self._contract.functions.permissionsOf(operator, account, project_id)
        return int(self._call(fn))

    def grant(
        self,
        account: str,
        operator: str,
        project_id: int,
        permission_ids: Iterable[PermissionId],
    ) -> None:
        held = self._packed_of(operator, account, project_id)
        self._write(account, operator, project_id, held | pack_permissions(permission_ids))

    def revoke(
        self,
        account: str,
        operator: str,
        project_id: int,
        permission_ids: Iterable[PermissionId],
    ) -> None:
        held = self._packed_of(operator, account, project_id)
        self._write(account, operator, project_id, held & ~pack_permissions(permission_ids))

    def _write(
        self,
        account: str,
        operator: str,
        project_id: int,
        packed: int,
    ) -> None:
        """Replace the stored word with `packed`, keeping ids this package has no name for."""
        from web3.exceptions import ContractLogicError

        if self._signer is None:
            raise CollaboratorRejection(
                ReasonCode.UNAUTHORIZED, "Registry is read-only: no signing key configured"
            )
        fn = self._contract.functions.setPermissionsFor(
            account, (operator, project_id, set_bits(packed))
        )
        try:
            tx = fn.build_transaction({
                "from": self._signer.address,
                "nonce": self._w3.eth.get_transaction_count(self._signer.address),
                "chainId": self._chain_id,
            })
        except ContractLogicError as e:
            raise CollaboratorRejection(ReasonCode.UNAUTHORIZED, f"Grant reverted: {e}") from e

        signed = self._signer.sign_transaction(tx)
        tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = self._w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self._receipt_timeout)
        self.last_tx_hash = tx_hash.hex()
        if receipt.status != 1:
            raise CollaboratorRejection(
                ReasonCode.UNAUTHORIZED, f"Grant transaction {self.last_tx_hash} reverted"
            )

    @staticmethod
    def _call(fn: Any) -> Any:
        from web3.exceptions import ContractLogicError

        try:
            return fn.call()
        except ContractLogicError as e:
            raise CollaboratorRejection(ReasonCode.UNAUTHORIZED, f"Call reverted: {e}") from e
