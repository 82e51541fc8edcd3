from .assets import AssetStore
from .server import ExpositionServer, Request, Response

__all__ = ["AssetStore", "ExpositionServer", "Request", "Response"]
