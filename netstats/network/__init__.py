from .transport import SocketIOTransport, Transport

__all__ = ['SocketIOTransport', 'Transport']
