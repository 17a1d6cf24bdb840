from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

from obspy import UTCDateTime

from .catalog import EVENT_FILE, read_catalog, search_events
from .models import EventResult
from .processor import EventProcessor
from .response import ResponseEvaluator
from .settings import Settings

logger = logging.getLogger(__name__)


class DataKitchen:
    """Processes every event folder under ``settings.work_path`` in parallel."""

    def __init__(self, settings: Settings, evaluator: Optional[ResponseEvaluator] = None):
        self.settings = settings
        self.evaluator = evaluator
        self.output_root = settings.out_path or settings.work_path / time.strftime("processed%Y%m%d%H%M%S")

    def _catalog_event_ids(self) -> Optional[set]:
        s = self.settings
        if s.catalog_file is None:
            return None
        origins = search_events(
            read_catalog(s.catalog_file),
            starttime=UTCDateTime(s.start_time) if s.start_time else None,
            endtime=UTCDateTime(s.end_time) if s.end_time else None,
            min_magnitude=s.min_magnitude,
            max_magnitude=s.max_magnitude,
        )
        return {origin.event_id for origin in origins}

    def event_folders(self) -> List[Path]:
        work_path = self.settings.work_path
        folders = sorted(p for p in work_path.iterdir() if p.is_dir() and (p / EVENT_FILE).is_file())
        wanted = self._catalog_event_ids()
        if wanted is not None:
            folders = [p for p in folders if p.name in wanted]
        return folders

    def process(self, folder: Path) -> EventResult:
        try:
            processor = EventProcessor(folder, self.output_root, self.settings, evaluator=self.evaluator)
            return processor.run()
        except Exception:
            logger.exception("Error while processing %s", folder.name)
            return EventResult(event_id=folder.name, has_run=False)

    def run(self) -> List[EventResult]:
        folders = self.event_folders()
        logger.info("%d events found in %s", len(folders), self.settings.work_path)
        if not folders:
            return []
        self.output_root.mkdir(parents=True, exist_ok=True)

        with ThreadPoolExecutor(max_workers=self.settings.threads) as pool:
            results = list(pool.map(self.process, folders))

        for result in results:
            if not result.has_run:
                logger.error("%s failed", result.event_id)
            elif result.had_problem:
                logger.warning("%s encountered problems during processing", result.event_id)
        done = sum(1 for r in results if r.has_run)
        logger.info("Finished %d of %d events into %s", done, len(results), self.output_root)
        return results
