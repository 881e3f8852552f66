from django.core.management.base import BaseCommand

from clinic.services.appointments import sweep_expired_approvals


class Command(BaseCommand):
    help = "Complete approved appointments whose time slot has passed and release their beds."

    def handle(self, *args, **opts):
        updated = sweep_expired_approvals()
        self.stdout.write(self.style.SUCCESS(f"Sweep finished: {updated} appointment(s) completed."))
