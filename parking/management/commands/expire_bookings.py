import logging
import time

from django.core.management.base import BaseCommand

from config import SWEEP_INTERVAL_SECONDS
from services.expiry import ExpirySweeper

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = (
        "Cancel unpaid bookings past their deadline and complete elapsed ones. "
        "Schedule a single run from cron (e.g. every minute); --loop is for "
        "hosts without a scheduler."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--loop",
            action="store_true",
            help="Keep sweeping every --interval seconds instead of running once",
        )
        parser.add_argument("--interval", type=int, default=SWEEP_INTERVAL_SECONDS)

    def handle(self, *args, **options):
        if not options["loop"]:
            self._sweep()
            self.stdout.write(self.style.SUCCESS("Sweep finished"))
            return

        try:
            while True:
                try:
                    self._sweep()
                except Exception as e:
                    # The next pass retries whatever this one left behind
                    logger.error(f"Expiry sweep failed: {e}", exc_info=True)
                time.sleep(options["interval"])
        except KeyboardInterrupt:
            self.stdout.write(self.style.SUCCESS("Sweep loop stopped"))

    def _sweep(self):
        result = ExpirySweeper.run()
        self.stdout.write(
            f"Expired {result['expired']} unpaid booking(s), "
            f"completed {result['completed']} elapsed booking(s)"
        )
