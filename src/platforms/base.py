"""Abstract base class for job sources."""

from abc import ABC, abstractmethod

from src.core.schemas import JobPosting


class JobSource(ABC):
    """Base class that every job board integration must implement."""

    @property
    @abstractmethod
    def source_id(self) -> str:
        """Identifier recorded in refresh logs (e.g. 'stepstone')."""

    @abstractmethod
    async def fetch(self) -> list[JobPosting]:
        """Return the postings currently listed by this source."""
