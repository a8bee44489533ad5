from random import choice


class ClientInfo:
    PEER_ID_PREFIX = b"-BT0100-"
    DEFAULT_PORT = 6889

    def __init__(self, port: int = DEFAULT_PORT) -> None:
        self.peer_id: bytes = self._gen_peer_id()
        self.port = port
        self.compact = 1
        self.no_peer_id = 0

    @classmethod
    def _gen_peer_id(cls) -> bytes:
        return cls.PEER_ID_PREFIX + b"".join(
            [choice(b"0123456789").to_bytes(1, byteorder='big')
             for _ in range(20 - len(cls.PEER_ID_PREFIX))]
        )
