# fees/management/commands/generate_monthly_fees.py

"""
Generate monthly tuition fees for active students.

USAGE EXAMPLES:
===============

# 1. Current month, every active center
python manage.py generate_monthly_fees

# 2. A range of months, every active center
python manage.py generate_monthly_fees --start 2025-01 --end 2025-06

# 3. One center only
python manage.py generate_monthly_fees --center <center id>
"""

from django.core.management.base import BaseCommand, CommandError
from django.core.exceptions import ValidationError
import logging

from centerdesk.managers import CenterContext, execute_for_all_centers, get_current_center
from core.models import Center
from core.utils import first_of_month, get_center_today
from fees.services import FeeGenerationService
from fees.utils import parse_month

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Generate monthly tuition fees for active students of each center'

    def add_arguments(self, parser):
        parser.add_argument(
            '--start', type=str, default=None,
            help='First month to bill (YYYY-MM); defaults to the current month'
        )
        parser.add_argument(
            '--end', type=str, default=None,
            help='Last month to bill (YYYY-MM); defaults to --start'
        )
        parser.add_argument(
            '--center', type=str, default=None,
            help='Only generate for this center id'
        )

    def _parse_months(self, options):
        """Parse --start/--end once, before any center is processed."""
        try:
            start = parse_month(options['start']) if options['start'] else None
            end = parse_month(options['end']) if options['end'] else start
        except ValueError as e:
            raise CommandError(str(e))

        if start and end and end < start:
            raise CommandError("--end cannot be before --start")
        return start, end

    def _generate(self, start, end):
        center = get_current_center()
        # Without --start, each center bills its own current month
        start = start or first_of_month(get_center_today(center))
        end = end or start
        result = FeeGenerationService.generate_for_all_students(center, start, end)

        style = self.style.SUCCESS if result['success'] else self.style.WARNING
        self.stdout.write(style(
            f"{center.name}: {result['total_fees_generated']} fee(s) for "
            f"{result['students_processed']} student(s)"
        ))
        for error in result['errors']:
            self.stdout.write(self.style.ERROR(f"  {error}"))

        return result

    def handle(self, *args, **options):
        start, end = self._parse_months(options)

        if options['center']:
            try:
                center = Center.objects.get(pk=options['center'], is_active=True)
            except (Center.DoesNotExist, ValueError, ValidationError):
                raise CommandError(f"No active center with id {options['center']}")

            with CenterContext(center):
                self._generate(start, end)
            return

        results = execute_for_all_centers(self._generate, start, end)

        failed = [center_id for center_id, result in results.items() if result is None]
        total = sum(result['total_fees_generated'] for result in results.values() if result)

        self.stdout.write(self.style.SUCCESS(
            f"Generated {total} fee(s) across {len(results)} center(s)"
        ))
        if failed:
            logger.warning(f"Fee generation failed for {len(failed)} center(s): {failed}")
            self.stdout.write(self.style.ERROR(f"{len(failed)} center(s) failed; see the log"))
