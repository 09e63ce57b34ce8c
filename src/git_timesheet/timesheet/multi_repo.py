"""Fetch history from several repositories in parallel, then generate once."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from ..exceptions import TimesheetError
from ..history.git_extractor import GitLogSource, LogQuery
from ..logging_config import get_logger
from .generator import TimesheetGenerator, tag_records
from .models import PeriodLike, Timesheet

logger = get_logger(__name__)

_DEFAULT_WORKERS = 5

SourceLike = Union[GitLogSource, str, Path]


class MultiRepoTimesheetGenerator(TimesheetGenerator):
    """TimesheetGenerator that reads from many local repositories.

    Only the fetch stage is concurrent. A source that fails to read is
    logged and skipped; the remaining sources still produce a timesheet.
    """

    def __init__(self, *args: Any, max_workers: int = _DEFAULT_WORKERS, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.max_workers = max(1, max_workers)

    def generate_from_sources(
        self,
        sources: Sequence[SourceLike],
        query: Optional[LogQuery] = None,
        period: Optional[PeriodLike] = None,
    ) -> Timesheet:
        """Fetch every source and run the pipeline on the combined commits.

        Raises:
            EmptyInputError: If no source yields a valid commit
        """
        resolved = [s if isinstance(s, GitLogSource) else GitLogSource(s) for s in sources]
        records = self.fetch_all(resolved, query)
        return self.generate(records, period=period)

    def fetch_all(
        self, sources: Sequence[GitLogSource], query: Optional[LogQuery] = None
    ) -> list[dict[str, Any]]:
        """Tagged records from all readable sources, in source order."""
        results: dict[int, list[dict[str, Any]]] = {}
        if not sources:
            return []

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(sources))) as executor:
            futures = {
                executor.submit(self._fetch_one, source, query): index
                for index, source in enumerate(sources)
            }
            for future in as_completed(futures):
                index = futures[future]
                try:
                    results[index] = future.result()
                except TimesheetError as e:
                    logger.warning("Skipping repository %s: %s", sources[index].repo_path, e)

        records: list[dict[str, Any]] = []
        for index in sorted(results):
            records.extend(results[index])
        logger.info(
            "Fetched %d records from %d of %d repositories",
            len(records),
            len(results),
            len(sources),
        )
        return records

    @staticmethod
    def _fetch_one(source: GitLogSource, query: Optional[LogQuery]) -> list[dict[str, Any]]:
        result = source.fetch(query)
        info = source.repo_info()
        return tag_records(result.commits, info.name, info.type)
