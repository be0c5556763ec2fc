"""
Agent configuration.

Values come from a YAML file, overridden by environment variables (a
``.env`` file is loaded by the launcher before this runs).
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass
class AgentConfig:
    rpc_host: str = "localhost"
    rpc_port: int = 8545
    rpc_timeout: float = 10
    poa: bool = False
    collector_url: str = "ws://localhost:3000"
    socketio_path: str = "socket.io"
    instance_name: str = "Local Node"
    version_string: Optional[str] = None
    update_interval: float = 1.0
    watch_interval: float = 1.0
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @property
    def rpc_url(self) -> str:
        return f"http://{self.rpc_host}:{self.rpc_port}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AgentConfig':
        """Build from the flat option names used by the bootstrap layer."""
        config = cls()
        mapping = {
            "rpcHost": "rpc_host",
            "rpcPort": "rpc_port",
            "collectorUrl": "collector_url",
            "instanceName": "instance_name",
            "versionString": "version_string",
        }
        for key, value in data.items():
            attr = mapping.get(key, key)
            if not hasattr(config, attr):
                logger.warning("Ignoring unknown config option '%s'", key)
                continue
            setattr(config, attr, value)
        config.rpc_port = int(config.rpc_port)
        return config


def _read_yaml(path: str) -> dict:
    config_path = Path(path)
    if not config_path.exists():
        logger.warning("Config not found at %s, using defaults", config_path)
        return {}
    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def load_config(path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> AgentConfig:
    """
    Load ``path`` (YAML) and apply environment overrides:
    RPC_HOST, RPC_PORT, WS_SERVER, INSTANCE_NAME / EC2_INSTANCE_ID,
    ETH_VERSION, LOG_LEVEL.
    """
    env = os.environ if environ is None else environ
    raw = _read_yaml(path) if path else {}

    rpc_cfg = raw.get("rpc", {})
    collector_cfg = raw.get("collector", {})
    node_cfg = raw.get("node", {})
    agent_cfg = raw.get("agent", {})
    log_cfg = raw.get("logging", {})

    defaults = AgentConfig()
    config = AgentConfig(
        rpc_host=env.get("RPC_HOST", rpc_cfg.get("host", defaults.rpc_host)),
        rpc_port=int(env.get("RPC_PORT", rpc_cfg.get("port", defaults.rpc_port))),
        rpc_timeout=float(rpc_cfg.get("timeout_seconds", defaults.rpc_timeout)),
        poa=bool(rpc_cfg.get("poa", defaults.poa)),
        collector_url=env.get("WS_SERVER", collector_cfg.get("url", defaults.collector_url)),
        socketio_path=collector_cfg.get("path", defaults.socketio_path),
        instance_name=(
            env.get("INSTANCE_NAME")
            or env.get("EC2_INSTANCE_ID")
            or node_cfg.get("name", defaults.instance_name)
        ),
        version_string=env.get("ETH_VERSION", node_cfg.get("version")),
        update_interval=float(agent_cfg.get("update_interval_seconds", defaults.update_interval)),
        watch_interval=float(agent_cfg.get("watch_interval_seconds", defaults.watch_interval)),
        log_level=env.get("LOG_LEVEL", log_cfg.get("level", defaults.log_level)),
        log_file=log_cfg.get("file"),
    )
    return config


def setup_logging(config: AgentConfig, debug: bool = False):
    level = logging.DEBUG if debug else getattr(logging, str(config.log_level).upper(), logging.INFO)
    handlers = [logging.StreamHandler()]

    if config.log_file:
        Path(config.log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(config.log_file))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
