"""Async client-side state layer for the Serenia assistant."""

from serenia_client.client import SereniaClient

__all__ = ["SereniaClient"]
