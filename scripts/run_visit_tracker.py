#!/usr/bin/env python3
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

print(
    f"[visit-tracker] site={os.environ.get('VISIT_TRACKER_SITE_ID', '0')} | "
    f"host={os.environ.get('VISIT_TRACKER_HOST', 'tr.prospecteye.com')} | "
    f"port={os.environ.get('VISIT_TRACKER_CDP_PORT', '9222')} | "
    f"debug={os.environ.get('VISIT_TRACKER_DEBUG', '0')}",
    file=sys.stderr,
)

from tracking_clients.visit_tracker.main import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
