"""
Stats Data Structures
=====================
Records shared by the aggregation engine and the adapters around it:

- Block: one block as seen by the agent, plus its derived block time
- NodeIdentity: who this agent is, sent once per connection as "hello"
- Uptime / StatsError: the bookkeeping parts of the live stats
- Stats: the aggregate pushed to the collector on every poll cycle

Wire names (``gasPrice``, ``blocktimeAvg`` ...) are produced by the
``to_dict`` methods so the collector protocol stays stable.
"""

import re
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

UNKNOWN_HASH = "?"


class ErrorCode(str, Enum):
    LIVENESS_UNREACHABLE = "1"
    BLOCK_FETCH_FAILED = "2"
    HEAD_NUMBER_PARSE_FAILED = "3"
    STATUS_QUERY_FAILED = "4"


def to_number(value: Any) -> int:
    """
    Convert a node-native numeric value to an int.

    Accepts ints, decimal strings and ``0x`` hex strings. Raises
    ``ValueError`` (or ``TypeError``) for anything else.
    """
    if isinstance(value, bool):
        raise TypeError("boolean is not a block quantity")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text.startswith("0x"):
            return int(text, 16)
        return int(text)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise TypeError(f"Cannot convert {type(value).__name__} to a number")


def slugify(text: str) -> str:
    """Lowercase, ASCII-only, dash separated."""
    text = text.encode("ascii", "ignore").decode("ascii").lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")


@dataclass
class Block:
    number: int = 0
    hash: str = UNKNOWN_HASH
    difficulty: int = 0
    timestamp: int = 0
    blocktime: Optional[int] = None

    @classmethod
    def sentinel(cls) -> 'Block':
        """Placeholder for a block the node could not (yet) provide."""
        return cls()

    @property
    def is_known(self) -> bool:
        return self.hash != UNKNOWN_HASH

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class NodeIdentity:
    name: str
    node: str
    os: str
    os_v: str

    @property
    def id(self) -> str:
        return slugify(f"{self.name} {self.os} {self.os_v}")

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "name": self.name,
            "node": self.node,
            "os": self.os,
            "os_v": self.os_v,
        }


@dataclass
class StatsError:
    code: ErrorCode
    msg: str

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.code.value, "msg": self.msg}


@dataclass
class Uptime:
    down: int = 0
    inc: int = 0
    total: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Stats:
    """
    Live aggregate of everything known about the node.

    Attributes:
        active: Liveness query answered in the last cycle
        listening: Node accepts inbound peer connections
        mining: Node reports it is mining
        peers: Connected peer count
        pending: Transactions in the node's pool (from the pending watch)
        gas_price: Current gas price in wei
        block: Head block
        blocks: Recent history, newest first
        blocktime_avg: Mean block time over ``blocks`` in seconds
        difficulty: Difficulty of each entry in ``blocks``, same order
        uptime: Attempt/failure counters and the derived percentage
        errors: Errors raised during the most recent cycle only
    """

    active: bool = False
    listening: bool = False
    mining: bool = False
    peers: int = 0
    pending: int = 0
    gas_price: int = 0
    block: Block = field(default_factory=Block)
    blocks: List[Block] = field(default_factory=list)
    blocktime_avg: float = 0.0
    difficulty: List[int] = field(default_factory=list)
    uptime: Uptime = field(default_factory=Uptime)
    errors: List[StatsError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Collector wire format."""
        return {
            "active": self.active,
            "listening": self.listening,
            "mining": self.mining,
            "peers": self.peers,
            "pending": self.pending,
            "gasPrice": self.gas_price,
            "block": self.block.to_dict(),
            "blocks": [b.to_dict() for b in self.blocks],
            "blocktimeAvg": self.blocktime_avg,
            "difficulty": list(self.difficulty),
            "uptime": self.uptime.to_dict(),
            "errors": [e.to_dict() for e in self.errors],
        }
