from __future__ import annotations

import sys

from orderdesk.cli import run_cli
from orderdesk.config import ConfigError, load_config
from orderdesk.db import Db, DbError
from orderdesk.log import configure_logging
from orderdesk.wiring import build_services


def main() -> int:
    try:
        cfg = load_config()
        configure_logging(cfg.log_level)
        db = Db(cfg.db)
        run_cli(db, build_services(cfg.business), cfg.business)
        return 0
    except ConfigError as e:
        print(f"[CONFIG ERROR] {e}")
        return 2
    except DbError as e:
        print(f"[DB ERROR] {e}")
        return 3
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
