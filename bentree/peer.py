from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Peer:
    ip: str
    port: int
    peer_id: Optional[bytes] = None

    def __str__(self) -> str:
        return f"{self.ip}:{self.port}"
