"""Chain registry mapping chain key to metadata."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from types import MappingProxyType

from chainrelay.errors import ConfigurationError, UnknownChain


@dataclass(frozen=True)
class ChainMetadata:
    key: str
    native_token: str
    chain_id: int
    is_poa: bool = False
    block_time: float = 12.0  # seconds


KNOWN_CHAINS: dict[str, ChainMetadata] = {
    "ETH": ChainMetadata(key="ETH", native_token="ETH", chain_id=1),
    "POLYGON": ChainMetadata(key="POLYGON", native_token="MATIC", chain_id=137, is_poa=True, block_time=2.0),
    "BNB": ChainMetadata(key="BNB", native_token="BNB", chain_id=56, is_poa=True, block_time=3.0),
    "OP": ChainMetadata(key="OP", native_token="ETH", chain_id=10, is_poa=True, block_time=2.0),
    "BASE": ChainMetadata(key="BASE", native_token="ETH", chain_id=8453, is_poa=True, block_time=2.0),
    "ARB": ChainMetadata(key="ARB", native_token="ETH", chain_id=42161, is_poa=True, block_time=0.25),
    "Holesky": ChainMetadata(key="Holesky", native_token="ETH", chain_id=17000),
}


class ChainRegistry:
    """Read-only set of supported chains, in configuration order.

    Keys are matched exactly; ``"eth"`` is not ``"ETH"``.
    """

    def __init__(self, chains: Iterable[ChainMetadata]):
        entries: dict[str, ChainMetadata] = {}
        for meta in chains:
            if meta.key in entries:
                raise ConfigurationError(f"Duplicate chain key '{meta.key}' in registry")
            entries[meta.key] = meta
        self._chains = MappingProxyType(entries)

    @classmethod
    def from_keys(cls, keys: Iterable[str]) -> ChainRegistry:
        """Select a subset of the known chain table."""
        chains = []
        for key in keys:
            if key not in KNOWN_CHAINS:
                raise ConfigurationError(
                    f"Unknown chain '{key}' in configuration. Known: {list(KNOWN_CHAINS)}"
                )
            chains.append(KNOWN_CHAINS[key])
        return cls(chains)

    def is_supported(self, key: str) -> bool:
        return key in self._chains

    def metadata(self, key: str) -> ChainMetadata:
        if key not in self._chains:
            raise UnknownChain(key)
        return self._chains[key]

    def keys(self) -> tuple[str, ...]:
        return tuple(self._chains)

    def __len__(self) -> int:
        return len(self._chains)

    def __contains__(self, key: object) -> bool:
        return key in self._chains
