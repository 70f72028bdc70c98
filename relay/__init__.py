"""Websocket relay for small multiplayer game rooms."""
