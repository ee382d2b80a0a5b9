"""
Prediction Record Repositories

In-memory and JSON-file implementations of BasePredictionRepository.
Both keep only the newest `max_records` records.
"""

import asyncio
import contextlib
import json
import os
import tempfile
from collections import OrderedDict
from typing import List, Optional

import structlog

from forecast_engine.data.schemas import PredictionRecord
from forecast_engine.exceptions import RepositoryError
from forecast_engine.repositories.base import BasePredictionRepository

logger = structlog.get_logger(__name__)

DEFAULT_MAX_RECORDS = 100


def _newest(records: List[PredictionRecord], limit: Optional[int]) -> List[PredictionRecord]:
    if limit is None:
        return list(records)
    return list(records[-limit:]) if limit > 0 else []


class InMemoryPredictionRepository(BasePredictionRepository):
    """Process-local store, insertion ordered."""

    def __init__(self, max_records: int = DEFAULT_MAX_RECORDS):
        self.max_records = max_records
        self._records: "OrderedDict[str, PredictionRecord]" = OrderedDict()
        self._lock = asyncio.Lock()

    async def get_by_id(self, id: str) -> Optional[PredictionRecord]:
        return self._records.get(id)

    async def put(self, record: PredictionRecord) -> PredictionRecord:
        async with self._lock:
            self._records[record.id] = record
            while len(self._records) > self.max_records:
                evicted, _ = self._records.popitem(last=False)
                logger.debug("prediction_record_evicted", record_id=evicted)
        return record

    async def list_recent(self, limit: Optional[int] = None) -> List[PredictionRecord]:
        return _newest(list(self._records.values()), limit)


class JsonFilePredictionRepository(BasePredictionRepository):
    """
    Stores all records as a JSON array in one file.

    Writes go to a temporary file in the same directory which then
    replaces the target, so readers never see a partial file. Infinite
    cash runways are written as the JSON constant `Infinity`.
    """

    def __init__(self, path: str, max_records: int = DEFAULT_MAX_RECORDS):
        self.path = path
        self.max_records = max_records
        self._lock = asyncio.Lock()

    def _read(self) -> List[PredictionRecord]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
            return [PredictionRecord.model_validate(item) for item in raw]
        except (OSError, ValueError) as e:
            raise RepositoryError(f"Failed to read prediction records from {self.path}", e)

    def _write(self, records: List[PredictionRecord]) -> None:
        payload = "[" + ",".join(record.model_dump_json() for record in records) + "]"
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                with contextlib.suppress(OSError):
                    os.remove(tmp_path)
            raise RepositoryError(f"Failed to write prediction records to {self.path}", e)

    async def get_by_id(self, id: str) -> Optional[PredictionRecord]:
        records = await asyncio.to_thread(self._read)
        return next((r for r in records if r.id == id), None)

    async def put(self, record: PredictionRecord) -> PredictionRecord:
        async with self._lock:
            records = await asyncio.to_thread(self._read)
            records = [r for r in records if r.id != record.id]
            records.append(record)
            records = records[-self.max_records:]
            await asyncio.to_thread(self._write, records)

        logger.debug("prediction_record_saved", record_id=record.id, path=self.path)
        return record

    async def list_recent(self, limit: Optional[int] = None) -> List[PredictionRecord]:
        records = await asyncio.to_thread(self._read)
        return _newest(records, limit)
