"""
Interfaces for the two external systems the bridge talks to.

The import and retry services only depend on these, so they can be driven by
the real HTTP clients in production and by in-memory fakes in tests.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .models import Order, SubmitResult


class OrderSource(ABC):
    """Where orders come from and where status tags go back to."""

    @abstractmethod
    def get_order(self, gid: str) -> Optional[Order]:
        """Fetch an order by GID. Returns None if it does not exist."""
        pass

    @abstractmethod
    def add_tags(self, gid: str, tags: List[str]) -> None:
        pass

    @abstractmethod
    def remove_tags(self, gid: str, tags: List[str]) -> None:
        pass


class ImportTarget(ABC):
    """The production system orders are imported into."""

    @abstractmethod
    def submit(self, payload: Dict[str, Any]) -> SubmitResult:
        """
        Send one wire-format payload.

        Must not raise for HTTP or network failures; those come back as an
        unsuccessful SubmitResult (http_status 0 when there was no response).
        """
        pass


@dataclass
class HandlerResult:
    """HTTP status plus JSON body produced by a service call."""
    status_code: int
    body: Dict[str, Any]
