"""
Dependency bundle for a pipeline run.

Each external collaborator is passed explicitly so tests can swap in
doubles. The real clients check their credentials on first use.
"""

from dataclasses import dataclass
from typing import Any

from .analyzer import ReasoningClient
from .config import Config
from .email_client import ResendClient
from .notifier import TelegramNotifier
from .store import SupabaseStore


@dataclass
class Ports:
    """External collaborators used by the pipeline."""

    store: Any
    reasoner: Any
    email_client: Any
    notifier: Any


def build_ports(config: Config) -> Ports:
    """Create the production clients from configuration."""
    return Ports(
        store=SupabaseStore(config),
        reasoner=ReasoningClient(config),
        email_client=ResendClient(config),
        notifier=TelegramNotifier(config),
    )
