from .node_client import LATEST, NodeQuery, NodeQueryError, Web3NodeClient

__all__ = ['LATEST', 'NodeQuery', 'NodeQueryError', 'Web3NodeClient']
