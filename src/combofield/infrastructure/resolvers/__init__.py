"""Row resolver implementations."""

from combofield.infrastructure.resolvers.http import HttpRowResolver
from combofield.infrastructure.resolvers.memory import InMemoryRowResolver

__all__ = ["HttpRowResolver", "InMemoryRowResolver"]
