"""Block explorer transaction models."""

from pydantic import BaseModel, Field

SATOSHI_PER_DOGE = 100_000_000


class ChainOutput(BaseModel):
    """A single transaction output."""
    value: int = Field(description="Output value in satoshi")
    addresses: list[str] = Field(default_factory=list)

    @property
    def amount(self) -> float:
        """Output value in DOGE."""
        return self.value / SATOSHI_PER_DOGE


class ChainTransaction(BaseModel):
    """A transaction as reported by the block explorer."""
    hash: str
    confirmations: int = 0
    outputs: list[ChainOutput] = Field(default_factory=list)

    def outputs_to(self, address: str) -> list[ChainOutput]:
        """Outputs paying ``address``."""
        return [o for o in self.outputs if address in o.addresses]

    def amount_to(self, address: str) -> float:
        """Total DOGE sent to ``address`` across all outputs."""
        return sum(o.value for o in self.outputs_to(address)) / SATOSHI_PER_DOGE
