"""RoomRender - HTTP relay from interior render requests to the Stability image API."""

__version__ = "1.0.0"
