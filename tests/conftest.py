"""Shared pytest setup: import path and a predictable bot environment."""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("TELEGRAM_WEBHOOK_SECRET", "s3cret-path")
for _name in ("TELEGRAM_BOT_TOKEN", "GSHEET_ID", "GOOGLE_SERVICE_ACCOUNT_FILE", "GOOGLE_SERVICE_ACCOUNT_JSON"):
    os.environ.pop(_name, None)
