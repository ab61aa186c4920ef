"""Exceptions raised at the engine's outer seams.

Decoding and synthesis never raise: they return ``None`` or an explicit
outcome instead.  These types cover output devices, delivery and storage.
"""

from __future__ import annotations


class UnsupportedCapabilityError(RuntimeError):
    """An output device cannot render the requested signal (e.g. no vibration motor)."""


class DeliveryError(RuntimeError):
    """A message could not be handed to the chat backend."""


class StorageError(RuntimeError):
    """The local queue/cache store is unavailable or a write failed."""
