from django.core.management.base import BaseCommand

from orders.services import get_order_service


class Command(BaseCommand):
    help = "Expire pending orders past their payment window and release their stock."

    def add_arguments(self, parser):
        parser.add_argument(
            "--reconcile",
            action="store_true",
            help="Also re-verify stale awaiting payments with the gateway first.",
        )

    def handle(self, *args, **options):
        service = get_order_service()

        if options["reconcile"]:
            summary = service.reconcile_pending_payments()
            self.stdout.write(f"Reconciled: {summary}")

        expired = service.expire_pending_orders()
        self.stdout.write(self.style.SUCCESS(f"Expired {expired} pending order(s)."))
