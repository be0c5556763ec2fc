import pytest

from netstats.core.models import (
    Block, ErrorCode, NodeIdentity, Stats, StatsError, slugify, to_number,
)


class TestToNumber:
    @pytest.mark.parametrize("value, expected", [
        (42, 42),
        ("42", 42),
        ("0x2a", 42),
        ("0X2A", 42),
        (42.0, 42),
    ])
    def test_accepts_node_formats(self, value, expected):
        assert to_number(value) == expected

    @pytest.mark.parametrize("value, error", [
        ("0xzz", ValueError),
        ("forty", ValueError),
        (None, TypeError),
        (True, TypeError),
        (1.5, TypeError),
    ])
    def test_rejects_garbage(self, value, error):
        with pytest.raises(error):
            to_number(value)


class TestIdentity:
    def test_slugify(self):
        assert slugify("Local Node linux 6.1.0-13-amd64") == "local-node-linux-6-1-0-13-amd64"

    def test_id_is_deterministic(self):
        a = NodeIdentity(name="Local Node", node="Geth/v1", os="linux", os_v="6.1")
        b = NodeIdentity(name="Local Node", node="Geth/v2", os="linux", os_v="6.1")
        assert a.id == b.id == "local-node-linux-6-1"

    def test_hello_payload(self):
        identity = NodeIdentity(name="n1", node="Geth", os="darwin", os_v="23.0")
        assert identity.to_dict() == {
            "id": "n1-darwin-23-0",
            "name": "n1",
            "node": "Geth",
            "os": "darwin",
            "os_v": "23.0",
        }


class TestStats:
    def test_sentinel_block(self):
        block = Block.sentinel()
        assert block.hash == "?"
        assert not block.is_known
        assert (block.number, block.difficulty, block.timestamp) == (0, 0, 0)

    def test_wire_format(self):
        stats = Stats(active=True, peers=3, gas_price=10)
        stats.errors.append(StatsError(ErrorCode.BLOCK_FETCH_FAILED, "block 9"))
        data = stats.to_dict()

        assert set(data) == {
            "active", "listening", "mining", "peers", "pending", "gasPrice",
            "block", "blocks", "blocktimeAvg", "difficulty", "uptime", "errors",
        }
        assert data["gasPrice"] == 10
        assert data["uptime"] == {"down": 0, "inc": 0, "total": 0.0}
        assert data["errors"] == [{"code": "2", "msg": "block 9"}]
        assert data["block"]["hash"] == "?"
