"""
Block explorer links for log output.
"""

EXPLORER_BASE_URL = "https://solana.fm"

_CLUSTER_PARAMS = {
    "mainnet-beta": None,
    "devnet": "devnet-solana",
    "testnet": "testnet-solana",
    "localnet": "localnet-solana",
}


def _suffix(cluster: str) -> str:
    param = _CLUSTER_PARAMS.get(cluster)
    return f"?cluster={param}" if param else ""


def explorer_tx_url(signature: str, cluster: str = "devnet") -> str:
    return f"{EXPLORER_BASE_URL}/tx/{signature}{_suffix(cluster)}"


def explorer_address_url(address: object, cluster: str = "devnet") -> str:
    return f"{EXPLORER_BASE_URL}/address/{address}{_suffix(cluster)}"
