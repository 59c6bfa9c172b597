from parley.channels.web import WebChannel

__all__ = ["WebChannel"]
