from __future__ import annotations

import logging
from typing import List, Optional

from kitchen.kitchen import DataKitchen
from kitchen.settings import parse_args


def main(argv: Optional[List[str]] = None) -> int:
    settings = parse_args(argv)
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger = logging.getLogger("kitchen.main")
    logger.debug("Settings: %s", settings)

    if not settings.work_path.is_dir():
        logger.error("Work path %s is not a directory", settings.work_path)
        return 1

    results = DataKitchen(settings).run()
    failed = [r.event_id for r in results if not r.has_run]
    if failed:
        logger.error("%d events failed: %s", len(failed), ", ".join(failed))
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
