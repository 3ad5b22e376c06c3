import sys
import logging

from pydantic import ValidationError

from config import get_settings
from csv_io import write_accounts
from payments_engine import PaymentsEngine

logger = logging.getLogger(__name__)


def main():
    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=settings.log_level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    if len(sys.argv) != 2:
        print("Usage: python main.py <input.csv>", file=sys.stderr)
        sys.exit(1)

    filepath = sys.argv[1]
    engine = PaymentsEngine(num_workers=settings.num_workers)
    try:
        accounts = engine.process_file(filepath)
    except OSError as e:
        logger.error(f"Cannot read {filepath}: {e}")
        sys.exit(1)

    if engine.stats.rows_skipped:
        logger.warning(f"{engine.stats.rows_skipped} malformed row(s) skipped")

    write_accounts(
        (accounts[client_id] for client_id in sorted(accounts)),
        sys.stdout,
        precision=settings.output_precision,
    )


if __name__ == "__main__":
    main()
