"""Peer-to-peer mesh building blocks: Nostr signaling, topology selection, verification codes and update policy."""

__version__ = "0.1.3"