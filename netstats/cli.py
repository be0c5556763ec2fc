"""
Command line entry point.

Usage:
    netstats-agent                              # config/agent_config.yaml
    netstats-agent --config path.yaml           # Custom config
    netstats-agent --rpc-host 10.0.0.5          # Override node address
    netstats-agent --collector ws://stats:3000  # Override collector
    netstats-agent --debug                      # Debug logging
"""

import argparse
import logging

from dotenv import load_dotenv

from .config import load_config, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Report blockchain node stats to a collector")
    parser.add_argument("--config", default="config/agent_config.yaml", help="Path to config file")
    parser.add_argument("--rpc-host", default=None, help="Override node RPC host")
    parser.add_argument("--rpc-port", type=int, default=None, help="Override node RPC port")
    parser.add_argument("--collector", default=None, help="Override collector URL")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    load_dotenv()
    config = load_config(args.config)
    if args.rpc_host:
        config.rpc_host = args.rpc_host
    if args.rpc_port:
        config.rpc_port = args.rpc_port
    if args.collector:
        config.collector_url = args.collector

    setup_logging(config, debug=args.debug)

    from .service import NetstatsService

    service = NetstatsService(config)
    try:
        service.start()
    except KeyboardInterrupt:
        logging.info("Shutting down...")
        service.stop()


if __name__ == "__main__":
    main()
