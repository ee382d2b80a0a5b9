"""
Base Prediction Repository

Narrow storage interface for prediction records, decoupling the tracker
from any specific storage technology.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from forecast_engine.data.schemas import PredictionRecord
from forecast_engine.exceptions import RecordNotFoundError, RepositoryError

__all__ = ["BasePredictionRepository", "RepositoryError", "RecordNotFoundError"]


class BasePredictionRepository(ABC):
    """
    Abstract store of PredictionRecords keyed by id.

    Implementations raise RepositoryError when the underlying storage
    fails.
    """

    @abstractmethod
    async def get_by_id(self, id: str) -> Optional[PredictionRecord]:
        """
        Retrieve a record by its ID.

        Args:
            id: The unique identifier of the record

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def put(self, record: PredictionRecord) -> PredictionRecord:
        """
        Insert or replace a record.

        Args:
            record: The record to store

        Returns:
            The stored record
        """
        pass

    @abstractmethod
    async def list_recent(self, limit: Optional[int] = None) -> List[PredictionRecord]:
        """
        List records, oldest first.

        Args:
            limit: Return only the newest `limit` records

        Returns:
            Stored records
        """
        pass

    async def get_or_raise(self, id: str) -> PredictionRecord:
        """Retrieve a record, raising RecordNotFoundError if it is missing."""
        record = await self.get_by_id(id)
        if record is None:
            raise RecordNotFoundError(f"Prediction record {id} not found")
        return record
